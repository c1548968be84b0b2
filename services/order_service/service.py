"""
Order lifecycle engine.

Creates orders and drives them through pending -> charged -> fulfilled,
calling the charge and fulfillment services only where needed. Every
charge/fulfill runs under a per-order lock, so operations on one order are
totally ordered while different orders never wait on each other.

Known gap: if the charge service accepts a charge and the process dies (or
the caller cancels) before the "charged" status is written, the customer is
charged while the order still reads pending. Closing that needs a durable
"charging" marker holding the charge reference, written before the gateway
call and resolved after it. It is not implemented here.
"""
import asyncio
import time
from typing import Iterable, List, Optional

import structlog

from shared.observability import (
    orders_created_total,
    orders_charge_total,
    orders_charged_cents_total,
    orders_charge_duration_seconds,
    orders_fulfillment_calls_total,
    orders_transitions_total,
)
from .errors import GatewayError, InvalidState, InvalidTransition, OrderValidationError
from .gateways import ChargeGateway, FulfillmentGateway
from .lifecycle import ensure_transition, validate_new_order
from .locks import KeyedLock
from .repository import OrderRepository
from .schemas import LineItem, Order, OrderStatus

logger = structlog.get_logger(__name__)


class OrderService:
    def __init__(
        self,
        store: OrderRepository,
        charge_gateway: ChargeGateway,
        fulfillment_gateway: FulfillmentGateway,
        locks: Optional[KeyedLock] = None,
    ):
        self.store = store
        self.charge_gateway = charge_gateway
        self.fulfillment_gateway = fulfillment_gateway
        self.locks = locks or KeyedLock()

    async def create_order(
        self, customer_email: str, line_items: Iterable[LineItem], order_id: Optional[str] = None
    ) -> Order:
        order = Order(
            id=order_id or "",
            customer_email=customer_email,
            line_items=list(line_items),
            status=OrderStatus.PENDING,
        )
        validate_new_order(order)

        order.id = await self.store.insert(order)
        orders_created_total.inc()
        logger.info("order_created", order_id=order.id, total_cents=order.total_cents)
        return order

    async def get_order(self, order_id: str) -> Order:
        return await self.store.get(order_id)

    async def list_orders(self, status: Optional[OrderStatus] = None) -> List[Order]:
        return await self.store.list(status)

    async def charge_order(self, order_id: str, card_token: str) -> int:
        """Charges the order's total and marks it charged. Returns the charged cents."""
        start = time.perf_counter()
        with structlog.contextvars.bound_contextvars(order_id=order_id):
            async with self.locks.hold(order_id):
                order = await self.store.get(order_id)
                try:
                    ensure_transition(order, OrderStatus.CHARGED)
                except InvalidTransition:
                    orders_charge_total.labels(outcome="conflict").inc()
                    logger.info("charge_rejected", status=order.status.value)
                    raise

                amount = order.total_cents
                if amount < 0:
                    # Creation validation should make this impossible
                    logger.critical("negative_total_on_pending_order", total_cents=amount)
                    raise InvalidState(f"order {order_id!r} has a negative total of {amount}")

                if amount > 0:
                    if not card_token:
                        raise OrderValidationError("a card token is required to charge this order")
                    try:
                        await self.charge_gateway.charge(card_token, amount)
                    except GatewayError:
                        orders_charge_total.labels(outcome="gateway_error").inc()
                        logger.warning("charge_failed", amount_cents=amount)
                        raise
                    orders_charged_cents_total.inc(amount)

                await self.store.set_status(order_id, OrderStatus.CHARGED, expected=OrderStatus.PENDING)

            orders_transitions_total.labels(to_status=OrderStatus.CHARGED.value).inc()
            orders_charge_total.labels(outcome="charged" if amount else "free").inc()
            orders_charge_duration_seconds.observe(time.perf_counter() - start)
            logger.info("order_charged", amount_cents=amount)
        return amount

    async def fulfill_order(self, order_id: str) -> None:
        """Ships every physical line item and marks the order fulfilled. Idempotent once fulfilled."""
        with structlog.contextvars.bound_contextvars(order_id=order_id):
            async with self.locks.hold(order_id):
                order = await self.store.get(order_id)
                if order.status == OrderStatus.FULFILLED:
                    logger.info("order_already_fulfilled")
                    return
                ensure_transition(order, OrderStatus.FULFILLED)

                await self._fulfill_items(order)
                await self.store.set_status(order_id, OrderStatus.FULFILLED, expected=OrderStatus.CHARGED)

            orders_transitions_total.labels(to_status=OrderStatus.FULFILLED.value).inc()
            logger.info("order_fulfilled")

    async def _fulfill_items(self, order: Order):
        # Discounts are not shipped. Items sharing a description are merged because
        # the fulfillment service de-duplicates on (order id, description).
        quantities = {}
        for item in order.line_items:
            if item.unit_price_cents > 0:
                quantities[item.description] = quantities.get(item.description, 0) + item.quantity

        results = await asyncio.gather(
            *(
                self.fulfillment_gateway.fulfill(order.id, description, quantity)
                for description, quantity in quantities.items()
            ),
            return_exceptions=True,
        )

        failures = []
        for description, result in zip(quantities, results):
            if isinstance(result, GatewayError):
                failures.append((description, result))
            elif isinstance(result, BaseException):
                raise result
        orders_fulfillment_calls_total.labels(outcome="success").inc(len(results) - len(failures))

        if failures:
            orders_fulfillment_calls_total.labels(outcome="failed").inc(len(failures))
            for description, err in failures:
                logger.warning("fulfillment_failed", description=description, error=err.message)
            names = ", ".join(repr(d) for d, _ in failures)
            raise GatewayError(
                f"fulfillment failed for {len(failures)} of {len(results)} line items: {names}"
            ) from failures[0][1]
