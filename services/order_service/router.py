from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .errors import ErrorKind, OrderError, OrderValidationError
from .schemas import (
    ChargeRequest,
    ChargeResponse,
    FulfillResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatus,
)
from .service import OrderService

router = APIRouter(prefix="/orders")
public_router = APIRouter()  # For any public endpoints (e.g. health check)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.VALIDATION: 400,
    ErrorKind.GATEWAY: 500,
    ErrorKind.INVALID_STATE: 500,
    ErrorKind.STORE: 500,
}


async def order_error_handler(request: Request, exc: OrderError) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_KIND.get(exc.kind, 500),
        content={"error": exc.message, "kind": exc.kind.value},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies and query strings get the same shape as engine validation errors
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"] if part not in ("body", "query", "path"))
        problems.append(f"{location}: {err['msg']}" if location else err["msg"])
    error = OrderValidationError("invalid request: " + "; ".join(problems))
    return await order_error_handler(request, error)


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


@public_router.get("/health")
async def health_check():
    return {"service": "order", "status": "running"}


@router.get("", response_model=OrderListResponse)
async def list_orders(
    status: Optional[str] = Query(default=None),
    service: OrderService = Depends(get_order_service),
):
    # /orders?status=pending limits the result to pending orders
    status_filter = OrderStatus.parse_filter(status)
    orders = await service.list_orders(status_filter)
    return OrderListResponse(orders=orders)


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(payload: OrderCreate, service: OrderService = Depends(get_order_service)):
    order = await service.create_order(payload.customer_email, payload.line_items, order_id=payload.id)
    return OrderResponse(order=order)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    return OrderResponse(order=await service.get_order(order_id))


@router.post("/{order_id}/charge", response_model=ChargeResponse)
async def charge_order(
    order_id: str,
    payload: Optional[ChargeRequest] = Body(default=None),
    service: OrderService = Depends(get_order_service),
):
    # No body is fine for orders with nothing to charge
    card_token = payload.card_token if payload is not None else ""
    charged = await service.charge_order(order_id, card_token)
    return ChargeResponse(charged_cents=charged)


@router.post("/{order_id}/fulfill", response_model=FulfillResponse)
async def fulfill_order(order_id: str, service: OrderService = Depends(get_order_service)):
    await service.fulfill_order(order_id)
    return FulfillResponse(order_id=order_id, status=OrderStatus.FULFILLED)
