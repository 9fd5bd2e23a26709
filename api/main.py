"""
Storefront Checkout - Main FastAPI Application.

REST API layer for order creation from the cart and PhonePe payment
reconciliation.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from api.routes import admin, health, orders
from core.domain.exceptions import (
    GatewayConfigurationError,
    OrderError,
    PaymentGatewayError,
)
from core.infrastructure.adapters.phonepe import PhonePePaymentGateway
from core.infrastructure.database import close_database, init_database
from core.infrastructure.event_bus import get_event_bus, log_domain_event
from core.infrastructure.logging import configure_logging
from core.settings import get_app_settings


settings = get_app_settings()
configure_logging(settings.api.log_level)
logger = logging.getLogger(__name__)


# Domain error code -> HTTP status
ERROR_STATUS_CODES = {
    "EMPTY_CART": 400,
    "PRODUCT_UNAVAILABLE": 400,
    "INSUFFICIENT_STOCK": 400,
    "NOT_CANCELLABLE": 400,
    "INVALID_STATUS_TRANSITION": 400,
    "INVALID_CALLBACK": 401,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "USER_NOT_FOUND": 404,
    "NOT_FOUND": 404,
    "CONCURRENT_MODIFICATION": 409,
    "ORDER_NUMBER_CONFLICT": 500,
    "ORDER_NUMBER_EXHAUSTED": 500,
    "GATEWAY_ERROR": 500,
    "GATEWAY_NOT_CONFIGURED": 503,
}

GATEWAY_FAILURE_MESSAGE = "Payment could not be initiated. Please try again."


# =============================================================================
# CREATE FASTAPI APP
# =============================================================================

app = FastAPI(
    title="Storefront Checkout API",
    description="""
    Order creation and payment reconciliation for the storefront.

    Features:
    - Create orders from the user's cart
    - PhonePe Standard Checkout payment sessions
    - Payment callback and status polling reconciliation
    - Order history, statistics and cancellation
    - Admin order management and analytics
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)


# =============================================================================
# REQUEST LOGGING MIDDLEWARE
# =============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing."""
    start_time = time.time()

    logger.info(f"→ {request.method} {request.url.path}")

    response = await call_next(request)

    duration = time.time() - start_time
    logger.info(
        f"← {request.method} {request.url.path} "
        f"[{response.status_code}] ({duration:.3f}s)"
    )

    return response


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    """Map domain errors to HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(exc.code, 500)
    message = exc.message

    # Gateway internals stay in the logs
    if isinstance(exc, PaymentGatewayError) and not isinstance(exc, GatewayConfigurationError):
        message = GATEWAY_FAILURE_MESSAGE

    if status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content={"success": False, "code": exc.code, "message": message},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "code": "INTERNAL_ERROR",
            "message": "Internal server error",
        },
    )


# =============================================================================
# STARTUP/SHUTDOWN EVENTS
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Run on application startup."""
    logger.info("🚀 Storefront Checkout API starting up...")

    await init_database(settings.database)

    missing = settings.phonepe.missing_credentials()
    if missing:
        logger.warning(f"⚠️ PhonePe settings incomplete: {', '.join(missing)}")

    try:
        app.state.payment_gateway = PhonePePaymentGateway(settings.phonepe)
        logger.info(f"✅ PhonePe gateway ready ({settings.phonepe.env})")
    except GatewayConfigurationError as e:
        app.state.payment_gateway = None
        logger.error(f"❌ PhonePe gateway disabled: {e.message}")

    get_event_bus().subscribe(log_domain_event)

    logger.info("📚 Swagger UI available at: /docs")


@app.on_event("shutdown")
async def shutdown_event():
    """Run on application shutdown."""
    logger.info("👋 Storefront Checkout API shutting down...")

    gateway = getattr(app.state, "payment_gateway", None)
    if gateway is not None:
        await gateway.close()

    await close_database()


# =============================================================================
# INCLUDE ROUTERS
# =============================================================================

app.include_router(
    health.router,
    tags=["Health"]
)

app.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)

app.include_router(
    admin.router,
    prefix="/admin/orders",
    tags=["Admin"]
)


# =============================================================================
# ROOT ENDPOINT
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """API root endpoint."""
    return {
        "message": "Storefront Checkout API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }
