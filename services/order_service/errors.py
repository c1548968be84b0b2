"""
Error taxonomy for the order lifecycle engine.

Every failure carries a stable ``kind`` and a human-readable message. The
router is the only place that turns a kind into an HTTP status code.
"""
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INVALID_TRANSITION = "invalid_transition"
    VALIDATION = "validation"
    GATEWAY = "gateway"
    INVALID_STATE = "invalid_state"
    STORE = "store"


class OrderError(Exception):
    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OrderNotFound(OrderError):
    """No order with the requested id exists."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, order_id: str):
        super().__init__(f"order {order_id!r} not found")
        self.order_id = order_id


class OrderAlreadyExists(OrderError):
    """An insert used an id that is already taken."""
    kind = ErrorKind.ALREADY_EXISTS

    def __init__(self, order_id: str):
        super().__init__(f"order {order_id!r} already exists")
        self.order_id = order_id


class InvalidTransition(OrderError):
    """The order's current status does not allow the requested transition."""
    kind = ErrorKind.INVALID_TRANSITION


class OrderValidationError(OrderError):
    """Malformed client input. Never retried by the engine."""
    kind = ErrorKind.VALIDATION


class GatewayError(OrderError):
    """The charge or fulfillment service call failed. Safe for the caller to retry."""
    kind = ErrorKind.GATEWAY


class InvalidState(OrderError):
    """An invariant the engine relies on was broken. Indicates a bug, not a client error."""
    kind = ErrorKind.INVALID_STATE


class StoreError(OrderError):
    """The order store failed for a reason other than not-found / already-exists."""
    kind = ErrorKind.STORE
