"""
Clients for the two external collaborators: the charge service and the
fulfillment service. Both are reached over HTTP with httpx.

A failed call never tells us anything partial: the charge service either
created a charge (201) or we treat it as "did not charge".
"""
from typing import Protocol

import httpx
import structlog

from .errors import GatewayError

logger = structlog.get_logger(__name__)


class ChargeGateway(Protocol):
    async def charge(self, card_token: str, amount_cents: int) -> None: ...


class FulfillmentGateway(Protocol):
    async def fulfill(self, order_id: str, description: str, quantity: int) -> None: ...


def _error_body(resp: httpx.Response) -> str:
    # The body is only informational, so a failed read is not fatal
    try:
        return resp.text
    except (httpx.HTTPError, UnicodeDecodeError):
        return ""


class HttpChargeGateway:
    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def charge(self, card_token: str, amount_cents: int) -> None:
        payload = {"cardToken": card_token, "amountCents": amount_cents}
        try:
            resp = await self.client.post("/charge", json=payload)
        except httpx.HTTPError as e:
            raise GatewayError(f"error making charge request: {e}") from e
        # /charge creates a new charge, so anything but 201 is a failure
        if resp.status_code != 201:
            raise GatewayError(f"error charging: {resp.status_code} {_error_body(resp)}")
        logger.info("charge_created", amount_cents=amount_cents)


class HttpFulfillmentGateway:
    """The fulfillment service de-duplicates on (orderID, description), so repeats are safe."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def fulfill(self, order_id: str, description: str, quantity: int) -> None:
        payload = {"orderID": order_id, "description": description, "quantity": quantity}
        try:
            resp = await self.client.put("/fulfill", json=payload)
        except httpx.HTTPError as e:
            raise GatewayError(f"error making fulfillment request for {description!r}: {e}") from e
        if not resp.is_success:
            raise GatewayError(
                f"error fulfilling {description!r}: {resp.status_code} {_error_body(resp)}"
            )


def build_client(base_url: str, timeout_seconds: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)
