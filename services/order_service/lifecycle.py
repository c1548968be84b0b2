"""
Order status state machine: pending -> charged -> fulfilled.
"""
from typing import Dict, FrozenSet

from .errors import InvalidTransition, OrderValidationError
from .schemas import Order, OrderStatus

# Current status -> statuses it may move to
VALID_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CHARGED}),
    OrderStatus.CHARGED: frozenset({OrderStatus.FULFILLED}),
    OrderStatus.FULFILLED: frozenset(), # terminal
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in VALID_TRANSITIONS[current]


def ensure_transition(order: Order, target: OrderStatus):
    if not can_transition(order.status, target):
        raise InvalidTransition(
            f"order {order.id!r} is {order.status.value} and cannot move to {target.value}"
        )


def validate_new_order(order: Order):
    """Rejects malformed orders before anything is written to the store."""
    if "@" not in order.customer_email:
        raise OrderValidationError("invalid customerEmail")
    if not order.line_items:
        raise OrderValidationError("an order must contain at least one line item")
    for item in order.line_items:
        if not item.description:
            raise OrderValidationError("every line item needs a description")
        if item.quantity < 1:
            raise OrderValidationError(
                f"line item {item.description!r} has invalid quantity {item.quantity}"
            )
    if order.total_cents < 0:
        raise OrderValidationError("an order's total cannot be less than 0")
