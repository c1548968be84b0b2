"""
Order Store contract and its implementations.

Atomicity contract shared by every implementation:

* ``insert`` checks for an existing id and writes in one step, so two
  concurrent inserts of the same explicit id cannot both succeed.
* ``set_status`` with ``expected`` is a conditional update: it only writes
  when the current status equals ``expected``.
* Orders returned to callers are copies; mutating them never changes
  stored state.

The store does not validate transitions on its own; that belongs to the
lifecycle engine.
"""
import abc
import asyncio
import uuid
from typing import Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from .errors import InvalidState, InvalidTransition, OrderAlreadyExists, OrderNotFound, StoreError
from .models import OrderRecord
from .schemas import LineItem, Order, OrderStatus


def new_order_id() -> str:
    return str(uuid.uuid4())


class OrderRepository(abc.ABC):

    @abc.abstractmethod
    async def get(self, order_id: str) -> Order:
        """Returns the order or raises OrderNotFound."""

    @abc.abstractmethod
    async def list(self, status: Optional[OrderStatus] = None) -> List[Order]:
        """All orders when status is None, otherwise only matching ones (possibly none)."""

    @abc.abstractmethod
    async def insert(self, order: Order) -> str:
        """Persists the order, assigning a fresh id if it has none. Returns the id."""

    @abc.abstractmethod
    async def set_status(self, order_id: str, status: OrderStatus, expected: Optional[OrderStatus] = None):
        """Overwrites the status, optionally only if it currently equals `expected`."""


class InMemoryOrderRepository(OrderRepository):
    """Reference store. Dicts keep insertion order, which list() preserves."""

    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._lock = asyncio.Lock()

    async def get(self, order_id: str) -> Order:
        async with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFound(order_id)
            return order.model_copy(deep=True)

    async def list(self, status: Optional[OrderStatus] = None) -> List[Order]:
        async with self._lock:
            return [
                order.model_copy(deep=True)
                for order in self._orders.values()
                if status is None or order.status == status
            ]

    async def insert(self, order: Order) -> str:
        stored = order.model_copy(deep=True)
        async with self._lock:
            if not stored.id:
                stored.id = new_order_id()
            elif stored.id in self._orders:
                raise OrderAlreadyExists(stored.id)
            self._orders[stored.id] = stored
        return stored.id

    async def set_status(self, order_id: str, status: OrderStatus, expected: Optional[OrderStatus] = None):
        async with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFound(order_id)
            if expected is not None and order.status != expected:
                raise InvalidTransition(
                    f"order {order_id!r} is {order.status.value}, expected {expected.value}"
                )
            order.status = status


class SqlOrderRepository(OrderRepository):
    """Store backed by async SQLAlchemy (asyncpg in production)."""

    def __init__(self, sessions: async_sessionmaker):
        self.sessions = sessions

    @staticmethod
    def _to_order(record: OrderRecord) -> Order:
        try:
            status = OrderStatus(record.status)
        except ValueError:
            raise InvalidState(f"order {record.id!r} has unknown stored status {record.status!r}")
        return Order(
            id=record.id,
            customer_email=record.customer_email,
            line_items=[LineItem(**item) for item in record.line_items],
            status=status,
        )

    async def get(self, order_id: str) -> Order:
        try:
            async with self.sessions() as db:
                record = await db.get(OrderRecord, order_id)
        except SQLAlchemyError as e:
            raise StoreError(f"error getting order {order_id!r}: {e}") from e
        if record is None:
            raise OrderNotFound(order_id)
        return self._to_order(record)

    async def list(self, status: Optional[OrderStatus] = None) -> List[Order]:
        stmt = select(OrderRecord).order_by(OrderRecord.created_at, OrderRecord.id)
        if status is not None:
            stmt = stmt.where(OrderRecord.status == status.value)
        try:
            async with self.sessions() as db:
                result = await db.execute(stmt)
                records = result.scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"error listing orders: {e}") from e
        return [self._to_order(r) for r in records]

    async def insert(self, order: Order) -> str:
        order_id = order.id or new_order_id()
        record = OrderRecord(
            id=order_id,
            customer_email=order.customer_email,
            line_items=[item.model_dump() for item in order.line_items],
            status=order.status.value,
        )
        async with self.sessions() as db:
            db.add(record)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise OrderAlreadyExists(order_id) from e
            except SQLAlchemyError as e:
                await db.rollback()
                raise StoreError(f"error inserting order {order_id!r}: {e}") from e
        return order_id

    async def set_status(self, order_id: str, status: OrderStatus, expected: Optional[OrderStatus] = None):
        stmt = update(OrderRecord).where(OrderRecord.id == order_id).values(status=status.value)
        if expected is not None:
            stmt = stmt.where(OrderRecord.status == expected.value)
        try:
            async with self.sessions() as db:
                result = await db.execute(stmt)
                await db.commit()
                if result.rowcount == 1:
                    return
                # Nothing matched: tell "missing" apart from "wrong status"
                current = await db.scalar(select(OrderRecord.status).where(OrderRecord.id == order_id))
        except SQLAlchemyError as e:
            raise StoreError(f"error updating order {order_id!r} to {status.value}: {e}") from e
        if current is None:
            raise OrderNotFound(order_id)
        if expected is None:
            raise StoreError(f"update of order {order_id!r} matched no rows")
        raise InvalidTransition(f"order {order_id!r} is {current}, expected {expected.value}")
