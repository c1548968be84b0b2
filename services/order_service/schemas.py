from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from .errors import OrderValidationError


class OrderStatus(str, Enum):
    PENDING = "pending"     # customer not charged yet
    CHARGED = "charged"     # payment captured
    FULFILLED = "fulfilled" # every physical line item handed to fulfillment

    @classmethod
    def parse(cls, value: str) -> "OrderStatus":
        """Maps the exact external string (lowercase, no padding) to a status. Anything else is rejected, never defaulted."""
        try:
            return cls(value)
        except ValueError:
            raise OrderValidationError(f"unknown value for status: {value!r}")

    @classmethod
    def parse_filter(cls, value: Optional[str]) -> Optional["OrderStatus"]:
        """Like parse(), but empty / 'any' mean no filter (None)."""
        if value is None or value in ("", "any"):
            return None
        return cls.parse(value)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class LineItem(CamelModel):
    # Product ID or discount ID
    description: str
    # Per-unit price; negative for discounts
    unit_price_cents: int
    quantity: int

    @property
    def total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


class Order(CamelModel):
    id: str = ""
    customer_email: str
    line_items: List[LineItem]
    status: OrderStatus = OrderStatus.PENDING

    @computed_field(alias="totalCents")
    @property
    def total_cents(self) -> int:
        # Always derived from the line items, never stored
        return sum(item.total_cents for item in self.line_items)


# --- Request / Response bodies ---

class OrderCreate(CamelModel):
    customer_email: str
    line_items: List[LineItem] = Field(default_factory=list) # empty is rejected by validate_new_order
    id: Optional[str] = None


class OrderResponse(CamelModel):
    order: Order


class OrderListResponse(CamelModel):
    orders: List[Order]


class ChargeRequest(CamelModel):
    card_token: str = ""


class ChargeResponse(CamelModel):
    charged_cents: int


class FulfillResponse(CamelModel):
    order_id: str = Field(alias="orderID")
    status: OrderStatus
