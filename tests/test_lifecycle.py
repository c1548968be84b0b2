import pytest

from services.order_service.errors import ErrorKind, InvalidTransition, OrderValidationError
from services.order_service.lifecycle import can_transition, ensure_transition, validate_new_order
from services.order_service.schemas import LineItem, Order, OrderStatus

from conftest import make_order


def test_total_is_signed_sum_of_line_items():
    order = make_order(items=[("item 1", 1000, 1), ("item 2", 5000, 10), ("discount", -500, 2)])
    assert order.total_cents == 1000 + 50000 - 1000
    # recomputed, not cached
    order.line_items.append(LineItem(description="item 3", unit_price_cents=1, quantity=3))
    assert order.total_cents == 50003


def test_total_serialises_but_is_never_an_input():
    order = make_order(items=[("item 1", 250, 4)])
    dumped = order.model_dump(by_alias=True)
    assert dumped["totalCents"] == 1000
    assert dumped["lineItems"][0] == {"description": "item 1", "unitPriceCents": 250, "quantity": 4}

    dumped["totalCents"] = 1
    assert Order.model_validate(dumped).total_cents == 1000


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (OrderStatus.PENDING, OrderStatus.CHARGED, True),
        (OrderStatus.CHARGED, OrderStatus.FULFILLED, True),
        (OrderStatus.PENDING, OrderStatus.FULFILLED, False),
        (OrderStatus.CHARGED, OrderStatus.PENDING, False),
        (OrderStatus.FULFILLED, OrderStatus.CHARGED, False),
        (OrderStatus.FULFILLED, OrderStatus.PENDING, False),
        (OrderStatus.CHARGED, OrderStatus.CHARGED, False),
    ],
)
def test_transitions_only_move_forward(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_ensure_transition_raises_conflict_kind():
    with pytest.raises(InvalidTransition) as exc:
        ensure_transition(make_order(status=OrderStatus.FULFILLED), OrderStatus.CHARGED)
    assert exc.value.kind == ErrorKind.INVALID_TRANSITION
    assert "fulfilled" in exc.value.message


def test_status_string_mapping():
    assert OrderStatus.parse("pending") is OrderStatus.PENDING
    assert OrderStatus.parse("charged") is OrderStatus.CHARGED
    assert OrderStatus.parse_filter("any") is None
    assert OrderStatus.parse_filter("") is None
    assert OrderStatus.parse_filter(None) is None
    assert OrderStatus.parse_filter("fulfilled") is OrderStatus.FULFILLED
    with pytest.raises(OrderValidationError):
        OrderStatus.parse("shipped")
    with pytest.raises(OrderValidationError):
        OrderStatus.parse_filter("cancelled")


@pytest.mark.parametrize("value", [" pending ", "PENDING", "Charged", "fulfilled\n", "ANY"])
def test_status_mapping_is_exact(value):
    with pytest.raises(OrderValidationError):
        OrderStatus.parse_filter(value)


def test_validate_accepts_free_order():
    validate_new_order(make_order(items=[("item 1", 100, 1), ("#1 customer discount", -100, 1)]))


@pytest.mark.parametrize(
    "email,items,message",
    [
        ("no-at-sign", [("item 1", 100, 1)], "customerEmail"),
        ("test@test", [], "at least one line item"),
        ("test@test", [("item 1", 100, 0)], "quantity"),
        ("test@test", [("", 100, 1)], "description"),
        ("test@test", [("item 1", 100, 1), ("discount", -200, 1)], "less than 0"),
    ],
)
def test_validate_rejects_malformed_orders(email, items, message):
    order = make_order(items=items)
    order.customer_email = email
    with pytest.raises(OrderValidationError) as exc:
        validate_new_order(order)
    assert message in exc.value.message
