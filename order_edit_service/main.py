"""
main.py — FastAPI Entry Point for the Order Edit Service

This module provides the REST API consumed by the storefront presentation layer.
It connects the HTTP surface with the order workflows and the commerce and
marketing clients.

Responsibilities:
    • Serve the product catalog and the caller's visible orders
    • Accept checkouts (order creation) and order edits
    • Translate service errors into `{error}` JSON responses
    • Own the lifetime of the upstream HTTP clients
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .clients import CommerceClient, MarketingClient
from .config import Settings
from .errors import OrderEditError, ValidationError
from .listing import list_visible_orders
from .logging_config import get_logger, setup_logging
from .models import ModifyOrderRequest, ModifyOrderResponse, NewOrderRequest, NewOrderResponse
from .ownership import ensure_order_owned
from .workflow import create_order_workflow, modify_order_workflow

log = get_logger(__name__)


def create_app(settings: Settings = None, commerce: CommerceClient = None,
               marketing: MarketingClient = None) -> FastAPI:
    """
    Builds the FastAPI application.

    Args:
        settings (Settings, optional): Resolved configuration. Read from the
            environment when omitted, failing fast on missing variables.
        commerce (CommerceClient, optional): Prebuilt commerce client (tests).
        marketing (MarketingClient, optional): Prebuilt marketing client (tests).

    Returns:
        FastAPI: The configured application.

    Raises:
        ConfigurationError: If a required environment variable is missing.
    """
    if settings is None:
        settings = Settings.from_env()
        setup_logging(settings.log_file)

    commerce = commerce or CommerceClient(settings)
    marketing = marketing or MarketingClient(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(f"Order-Edit-Service startet (Identität: {settings.identity_tag}).")
        yield
        commerce.close()
        marketing.close()
        log.info("Order-Edit-Service beendet, HTTP-Clients geschlossen.")

    app = FastAPI(title="Order Edit Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.commerce = commerce
    app.state.marketing = marketing

    @app.exception_handler(OrderEditError)
    async def order_edit_error_handler(request: Request, exc: OrderEditError):
        if exc.status_code >= 500:
            log.error(f"{request.method} {request.url.path} fehlgeschlagen: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.error})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        log.critical(f"{request.method} {request.url.path}: Unerwarteter Fehler: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Unknown error"})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Typfehler im Body werden wie fachliche Validierungsfehler behandelt
        messages = [f"{'.'.join(str(p) for p in e['loc'][1:])}: {e['msg']}" for e in exc.errors()]
        return JSONResponse(status_code=ValidationError.status_code, content={"error": "; ".join(messages)})

    # API Endpoint: Catalog
    @app.get("/products")
    def get_products():
        """Returns the first 10 products with up to 20 variants each, as delivered by the platform."""
        return commerce.list_products()

    # API Endpoint: Order listing
    @app.get("/orders")
    def get_orders():
        """Returns the caller's tagged orders, without empty, zero-total or hidden ones."""
        return list_visible_orders(commerce, settings)

    @app.post("/orders", response_model=NewOrderResponse)
    def create_order(order: NewOrderRequest):
        """
        Places a test order for the submitted cart.

        The order is tagged with the caller identity, marked as paid, and an
        "Order Created" event is sent to the marketing pipeline (best effort).
        """
        log.info(f"Neue Bestellung mit {len(order.items)} Positionen erhalten.")
        return create_order_workflow(order, commerce, marketing, settings)

    @app.get("/orders/verify")
    def verify_order(id: str = None):
        """Returns the detail view of one owned order (totals, discounts, line items)."""
        if not id:
            raise ValidationError("Missing id")
        ensure_order_owned(commerce, id, settings.identity_tag)
        return commerce.get_order(id)

    # API Endpoint: Order edit
    @app.post("/orders/modify", response_model=ModifyOrderResponse)
    def modify_order(body: ModifyOrderRequest):
        """
        Applies one edit (discount, remove, add) to an owned order and commits it.

        Returns 200 even when the marketing notification failed; the failure is
        reported in `klaviyoError`.
        """
        log.info(f"[Order: {body.orderId}] Änderungsanfrage erhalten: {body.model_dump(exclude_none=True)}")
        return modify_order_workflow(body, commerce, marketing, settings)

    @app.get("/whoami")
    def whoami():
        return {"identityTag": settings.identity_tag}

    # Health Check Endpoint
    @app.get("/health")
    def health_check():
        """
        Simple health check endpoint for monitoring systems and container orchestrators.
        """
        return {"status": "ok"}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
