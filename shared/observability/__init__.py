from .setup import setup_observability, configure_logging
from .metrics import (
    orders_created_total,
    orders_charge_total,
    orders_charged_cents_total,
    orders_charge_duration_seconds,
    orders_fulfillment_calls_total,
    orders_transitions_total
)
