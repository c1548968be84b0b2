from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from shared.config.database import create_engine, create_sessionmaker, create_tables
from shared.config.settings import Settings
from shared.observability import setup_observability
from .errors import OrderError
from .gateways import (
    ChargeGateway,
    FulfillmentGateway,
    HttpChargeGateway,
    HttpFulfillmentGateway,
    build_client,
)
from .repository import InMemoryOrderRepository, OrderRepository, SqlOrderRepository
from .router import order_error_handler, public_router, request_validation_handler, router
from .service import OrderService
from . import models  # noqa: F401  registers OrderRecord with Base

logger = structlog.get_logger(__name__)


def create_order_app(
    settings: Optional[Settings] = None,
    store: Optional[OrderRepository] = None,
    charge_gateway: Optional[ChargeGateway] = None,
    fulfillment_gateway: Optional[FulfillmentGateway] = None,
) -> FastAPI:
    """
    Wires the order service. Anything not passed in is built from settings:
    the store from ORDER_STORE, the gateways as httpx clients.
    """
    settings = settings or Settings.from_env()
    app = FastAPI(title="Order Service", version="1.0.0")

    # --- OBSERVABILITY BOOTSTRAP ---
    setup_observability(app, "order_service", settings)

    engine = None
    if store is None:
        if settings.order_store == "sql":
            engine = create_engine(settings)
            store = SqlOrderRepository(create_sessionmaker(engine))
        else:
            store = InMemoryOrderRepository()

    clients = []
    if charge_gateway is None:
        clients.append(build_client(settings.charge_service_url, settings.gateway_timeout_seconds))
        charge_gateway = HttpChargeGateway(clients[-1])
    if fulfillment_gateway is None:
        clients.append(build_client(settings.fulfillment_service_url, settings.gateway_timeout_seconds))
        fulfillment_gateway = HttpFulfillmentGateway(clients[-1])

    app.state.order_service = OrderService(store, charge_gateway, fulfillment_gateway)

    app.add_exception_handler(OrderError, order_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(public_router)
    app.include_router(router)

    @app.on_event("startup")
    async def startup_event():
        if engine is not None:
            await create_tables(engine)
        logger.info("order_service_started", store=type(store).__name__)

    @app.on_event("shutdown")
    async def shutdown_event():
        for client in clients:
            await client.aclose()
        if engine is not None:
            await engine.dispose()

    return app
