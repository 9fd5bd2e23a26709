"""
FastAPI Dependencies.

Provides dependency injection for use cases and services. Long-lived
resources (database engine, payment gateway) are built once at
application startup; request-scoped services are cheap wrappers around
them.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import async_sessionmaker

# Load environment variables ONCE before any settings objects are created
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=_PROJECT_ROOT / ".env")

from core.application.interfaces import IPaymentGateway
from core.application.services import (
    OrderAdminService,
    OrderNumberGenerator,
    OrderQueryService,
    PaymentReconciliationService,
)
from core.application.use_cases import CreateOrderFromCartUseCase
from core.domain.event_bus import EventBus
from core.domain.exceptions import (
    AdminAccessRequiredError,
    AuthenticationRequiredError,
    GatewayConfigurationError,
)
from core.infrastructure.database import config as database_config
from core.infrastructure.event_bus import get_event_bus
from core.settings import AppSettings, get_app_settings

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


# =============================================================================
# INFRASTRUCTURE
# =============================================================================

def get_settings() -> AppSettings:
    return get_app_settings()


def get_session_factory() -> async_sessionmaker:
    return database_config.get_session_factory()


def get_domain_event_bus() -> EventBus:
    return get_event_bus()


def get_payment_gateway(request: Request) -> IPaymentGateway:
    """Return the gateway built at startup (see api.main)."""
    gateway = getattr(request.app.state, "payment_gateway", None)
    if gateway is None:
        raise GatewayConfigurationError("Payment gateway is not configured")
    return gateway


# =============================================================================
# IDENTITY (authenticated upstream)
# =============================================================================

def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise AuthenticationRequiredError()
    return x_user_id.strip()


def require_admin(
    user_id: str = Depends(get_current_user_id),
    x_user_role: Optional[str] = Header(default=None),
) -> str:
    if (x_user_role or "").strip().lower() != ADMIN_ROLE:
        raise AdminAccessRequiredError()
    return user_id


# =============================================================================
# APPLICATION SERVICES
# =============================================================================

def get_create_order_use_case(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    payment_gateway: IPaymentGateway = Depends(get_payment_gateway),
    event_bus: EventBus = Depends(get_domain_event_bus),
    settings: AppSettings = Depends(get_settings),
) -> CreateOrderFromCartUseCase:
    return CreateOrderFromCartUseCase(
        session_factory=session_factory,
        payment_gateway=payment_gateway,
        event_bus=event_bus,
        order_number_generator=OrderNumberGenerator(
            max_attempts=settings.api.order_number_max_attempts
        ),
        currency=settings.phonepe.currency,
    )


def get_reconciliation_service(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    payment_gateway: IPaymentGateway = Depends(get_payment_gateway),
    event_bus: EventBus = Depends(get_domain_event_bus),
    settings: AppSettings = Depends(get_settings),
) -> PaymentReconciliationService:
    return PaymentReconciliationService(
        session_factory=session_factory,
        payment_gateway=payment_gateway,
        event_bus=event_bus,
        currency=settings.phonepe.currency,
    )


def get_order_query_service(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    settings: AppSettings = Depends(get_settings),
) -> OrderQueryService:
    return OrderQueryService(
        session_factory=session_factory,
        default_page_size=settings.api.default_page_size,
        max_page_size=settings.api.max_page_size,
        currency=settings.phonepe.currency,
    )


def get_order_admin_service(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    event_bus: EventBus = Depends(get_domain_event_bus),
    settings: AppSettings = Depends(get_settings),
) -> OrderAdminService:
    return OrderAdminService(
        session_factory=session_factory,
        event_bus=event_bus,
        currency=settings.phonepe.currency,
    )
