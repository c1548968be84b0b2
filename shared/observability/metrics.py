from prometheus_client import Counter, Histogram

# Business Metrics
orders_created_total = Counter(
    "orders_created_total",
    "Total orders created"
)

orders_charge_total = Counter(
    "orders_charge_total",
    "Charge attempts by outcome",
    ["outcome"] # Labels: 'charged', 'free', 'conflict', 'gateway_error'
)

orders_charged_cents_total = Counter(
    "orders_charged_cents_total",
    "Total cents successfully captured through the charge service"
)

orders_charge_duration_seconds = Histogram(
    "orders_charge_duration_seconds",
    "Charge orchestration duration in seconds"
)

orders_fulfillment_calls_total = Counter(
    "orders_fulfillment_calls_total",
    "Fulfillment service calls by outcome",
    ["outcome"] # Labels: 'success', 'failed'
)

orders_transitions_total = Counter(
    "orders_transitions_total",
    "Committed order status transitions",
    ["to_status"] # Labels: 'charged', 'fulfilled'
)
