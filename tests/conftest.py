"""Shared pytest fixtures: in-memory database, catalog seeding, services."""

import functools
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import List

# The app reads settings at import time; point it at a throwaway database
os.environ["DB_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from core.application.services import (
    OrderAdminService,
    OrderNumberGenerator,
    OrderQueryService,
    PaymentReconciliationService,
)
from core.application.use_cases import (
    CreateOrderFromCartRequest,
    CreateOrderFromCartUseCase,
)
from core.infrastructure.database.config import build_session_factory
from core.infrastructure.database.models import (
    Base,
    CartItemModel,
    ProductModel,
    UserModel,
    VariantModel,
)
from core.infrastructure.event_bus import InMemoryEventBus
from tests.mocks.fake_payment_gateway import FakePaymentGateway


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
REDIRECT_URL = "https://shop.example.test/orders/return"


# =============================================================================
# CATALOG SEEDING
# =============================================================================

class CatalogSeeder:
    """Writes the user / catalog / cart rows checkout reads."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def user(self, user_id: str = "user-1", name: str = "Asha Rao", phone: str = "9876543210") -> str:
        async with self.session_factory() as session:
            await session.merge(UserModel(id=user_id, name=name, email=f"{user_id}@example.com", phone=phone))
            await session.commit()
        return user_id

    async def variant(
        self,
        price: str = "499.00",
        stock: int = 10,
        name: str = "Blue / M",
        product_name: str = "Linen Shirt",
        product_active: bool = True,
        variant_active: bool = True,
    ):
        """Returns (product_id, variant_id)."""
        async with self.session_factory() as session:
            product = ProductModel(name=product_name, is_active=product_active)
            session.add(product)
            await session.flush()
            variant = VariantModel(
                product_id=product.id,
                name=name,
                price=Decimal(price),
                stock=stock,
                is_active=variant_active,
            )
            session.add(variant)
            await session.commit()
            return product.id, variant.id

    async def cart_line(self, user_id: str, product_id: str, variant_id: str, quantity: int = 1) -> None:
        async with self.session_factory() as session:
            session.add(
                CartItemModel(
                    user_id=user_id,
                    product_id=product_id,
                    variant_id=variant_id,
                    quantity=quantity,
                )
            )
            await session.commit()

    async def stock(self, variant_id: str) -> int:
        async with self.session_factory() as session:
            return await session.scalar(select(VariantModel.stock).where(VariantModel.id == variant_id))

    async def set_stock(self, variant_id: str, stock: int) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(VariantModel).where(VariantModel.id == variant_id).values(stock=stock)
            )
            await session.commit()

    async def cart_count(self, user_id: str) -> int:
        async with self.session_factory() as session:
            return await session.scalar(
                select(func.count()).select_from(CartItemModel).where(CartItemModel.user_id == user_id)
            )


@dataclass
class SeededCart:
    """user-1 with 2 x 499.00 and 1 x 1299.50 in the cart (2297.50 total)."""

    user_id: str
    variant_ids: List[str]


async def seed_standard_cart(seeder: CatalogSeeder, user_id: str = "user-1") -> SeededCart:
    await seeder.user(user_id)
    shirt_product, shirt_variant = await seeder.variant(price="499.00", stock=10)
    shoe_product, shoe_variant = await seeder.variant(
        price="1299.50", stock=3, name="UK 9", product_name="Canvas Sneaker"
    )
    await seeder.cart_line(user_id, shirt_product, shirt_variant, quantity=2)
    await seeder.cart_line(user_id, shoe_product, shoe_variant, quantity=1)
    return SeededCart(user_id=user_id, variant_ids=[shirt_variant, shoe_variant])


# =============================================================================
# DATABASE
# =============================================================================

@pytest_asyncio.fixture
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
def seeder(session_factory) -> CatalogSeeder:
    return CatalogSeeder(session_factory)


@pytest_asyncio.fixture
async def standard_cart(seeder) -> SeededCart:
    return await seed_standard_cart(seeder)


# =============================================================================
# COLLABORATORS / SERVICES
# =============================================================================

@pytest.fixture
def fake_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def published_events(event_bus) -> list:
    events = []
    event_bus.subscribe(events.append)
    return events


@pytest.fixture
def create_order_use_case(session_factory, fake_gateway, event_bus) -> CreateOrderFromCartUseCase:
    return CreateOrderFromCartUseCase(
        session_factory=session_factory,
        payment_gateway=fake_gateway,
        event_bus=event_bus,
        order_number_generator=OrderNumberGenerator(max_attempts=10),
    )


@pytest.fixture
def reconciliation_service(session_factory, fake_gateway, event_bus) -> PaymentReconciliationService:
    return PaymentReconciliationService(
        session_factory=session_factory,
        payment_gateway=fake_gateway,
        event_bus=event_bus,
    )


@pytest.fixture
def query_service(session_factory) -> OrderQueryService:
    return OrderQueryService(session_factory=session_factory, default_page_size=10, max_page_size=50)


@pytest.fixture
def admin_service(session_factory, event_bus) -> OrderAdminService:
    return OrderAdminService(session_factory=session_factory, event_bus=event_bus)


@pytest.fixture
def checkout(create_order_use_case):
    """Run a checkout for a user with default request fields."""

    async def _checkout(user_id: str = "user-1", **overrides):
        request = CreateOrderFromCartRequest(user_id=user_id, redirect_url=REDIRECT_URL, **overrides)
        return await create_order_use_case.execute(request)

    return _checkout


# =============================================================================
# API
# =============================================================================

class PortalSeeder:
    """Runs CatalogSeeder coroutines on the TestClient's event loop."""

    def __init__(self, client: TestClient, seeder: CatalogSeeder):
        self._client = client
        self._seeder = seeder

    def __getattr__(self, name):
        method = getattr(self._seeder, name)

        def _call(*args, **kwargs):
            return self._client.portal.call(functools.partial(method, *args, **kwargs))

        return _call

    def standard_cart(self, user_id: str = "user-1") -> SeededCart:
        return self._client.portal.call(seed_standard_cart, self._seeder, user_id)


@pytest.fixture
def api_client(fake_gateway):
    """
    TestClient with startup run (fresh in-memory database) and the
    payment gateway replaced by the fake.
    """
    from api.dependencies import get_payment_gateway
    from api.main import app

    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def api_seed(api_client) -> PortalSeeder:
    from core.infrastructure.database.config import get_session_factory

    return PortalSeeder(api_client, CatalogSeeder(get_session_factory()))
