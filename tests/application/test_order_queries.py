"""Tests for OrderQueryService and OrderAdminService."""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.application.dtos import UpdateOrderStatusRequest
from core.domain.enums import OrderStatus, PaymentStatus
from core.domain.exceptions import (
    InvalidStatusTransitionError,
    OrderNotCancellableError,
    OrderNotFoundError,
)
from core.domain.repositories import OrderSearchCriteria
from tests.conftest import seed_standard_cart
from tests.mocks.fake_payment_gateway import VALID_CALLBACK_AUTH, callback_body


async def _pay(reconciliation_service, order):
    await reconciliation_service.handle_payment_callback(
        VALID_CALLBACK_AUTH, callback_body(order.merchant_order_id, "COMPLETED")
    )


# =============================================================================
# READS
# =============================================================================

@pytest.mark.asyncio
async def test_get_order_scoped_to_owner(checkout, standard_cart, query_service):
    order = (await checkout()).order

    dto = await query_service.get_order(order.id, "user-1")
    assert dto.order_number == order.order_number.value
    assert dto.pricing.total == Decimal("2297.50")

    with pytest.raises(OrderNotFoundError):
        await query_service.get_order(order.id, "user-2")

    # Administrators read any order
    assert (await query_service.get_order(order.id, None)).id == order.id


@pytest.mark.asyncio
async def test_list_orders_paginates(checkout, standard_cart, query_service):
    for _ in range(3):
        await checkout()

    page = await query_service.list_orders("user-1", page=2, limit=2)

    assert page.pagination.total == 3
    assert page.pagination.pages == 2
    assert page.pagination.page == 2
    assert len(page.orders) == 1


@pytest.mark.asyncio
async def test_list_orders_limit_is_capped(checkout, standard_cart, query_service):
    await checkout()

    page = await query_service.list_orders("user-1", limit=500)

    assert page.pagination.limit == query_service.max_page_size


@pytest.mark.asyncio
async def test_list_orders_filters_and_sorts(
    checkout, standard_cart, query_service, reconciliation_service
):
    first = (await checkout()).order
    second = (await checkout()).order
    await _pay(reconciliation_service, first)

    paid = await query_service.list_orders("user-1", payment_status=PaymentStatus.COMPLETED)
    assert [o.id for o in paid.orders] == [first.id]

    pending = await query_service.list_orders("user-1", status=OrderStatus.PENDING)
    assert [o.id for o in pending.orders] == [second.id]

    by_number = await query_service.list_orders("user-1", sort_by="orderNumber", sort_order="asc")
    numbers = [o.order_number for o in by_number.orders]
    assert numbers == sorted(numbers)


@pytest.mark.asyncio
async def test_list_orders_only_returns_own_orders(
    checkout, standard_cart, seeder, query_service
):
    await seed_standard_cart(seeder, user_id="user-2")
    await checkout()
    await checkout(user_id="user-2")

    mine = await query_service.list_orders("user-1")
    everyone = await query_service.list_orders(None)

    assert mine.pagination.total == 1
    assert everyone.pagination.total == 2


@pytest.mark.parametrize("sort_by", ["email", "created_at", ""])
def test_search_criteria_rejects_unknown_sort_field(sort_by):
    with pytest.raises(ValueError, match="Cannot sort"):
        OrderSearchCriteria(sort_by=sort_by)


@pytest.mark.asyncio
async def test_stats_count_paid_orders_only(
    checkout, standard_cart, query_service, reconciliation_service
):
    paid = (await checkout()).order
    await checkout()
    await _pay(reconciliation_service, paid)

    stats = await query_service.get_stats("user-1")

    assert stats.total_orders == 2
    assert stats.total_spent == Decimal("2297.50")
    assert stats.average_order_value == Decimal("2297.50")
    assert stats.status_counts == {"confirmed": 1, "pending": 1}


@pytest.mark.asyncio
async def test_stats_for_user_without_orders(seeder, query_service):
    await seeder.user("user-1")

    stats = await query_service.get_stats("user-1")

    assert stats.total_orders == 0
    assert stats.total_spent == Decimal("0.00")
    assert stats.average_order_value == Decimal("0.00")


# =============================================================================
# ADMIN
# =============================================================================

@pytest.mark.asyncio
async def test_admin_moves_paid_order_through_fulfilment(
    checkout, standard_cart, admin_service, reconciliation_service
):
    order = (await checkout()).order
    await _pay(reconciliation_service, order)
    eta = datetime(2026, 11, 2, tzinfo=timezone.utc)

    processing = await admin_service.update_status(
        order.id,
        UpdateOrderStatusRequest(status=OrderStatus.PROCESSING, tracking_number="AWB123", estimated_delivery=eta),
    )
    completed = await admin_service.update_status(
        order.id, UpdateOrderStatusRequest(status=OrderStatus.COMPLETED)
    )

    assert processing.status == OrderStatus.PROCESSING
    assert processing.tracking_number == "AWB123"
    assert processing.estimated_delivery == eta
    assert completed.status == OrderStatus.COMPLETED
    assert completed.tracking_number == "AWB123"


@pytest.mark.asyncio
async def test_admin_cannot_skip_payment(checkout, standard_cart, admin_service):
    order = (await checkout()).order

    with pytest.raises(InvalidStatusTransitionError):
        await admin_service.update_status(order.id, UpdateOrderStatusRequest(status=OrderStatus.CONFIRMED))


@pytest.mark.asyncio
async def test_admin_cannot_cancel_paid_order(
    checkout, standard_cart, admin_service, reconciliation_service
):
    order = (await checkout()).order
    await _pay(reconciliation_service, order)

    with pytest.raises(OrderNotCancellableError):
        await admin_service.update_status(order.id, UpdateOrderStatusRequest(status=OrderStatus.CANCELLED))


@pytest.mark.asyncio
async def test_admin_update_unknown_order(admin_service):
    with pytest.raises(OrderNotFoundError):
        await admin_service.update_status("missing", UpdateOrderStatusRequest(tracking_number="X"))


@pytest.mark.asyncio
async def test_analytics(checkout, standard_cart, seeder, admin_service, reconciliation_service):
    await seed_standard_cart(seeder, user_id="user-2")
    first = (await checkout()).order
    second = (await checkout(user_id="user-2")).order
    await checkout()
    await _pay(reconciliation_service, first)
    await reconciliation_service.handle_payment_callback(
        VALID_CALLBACK_AUTH, callback_body(second.merchant_order_id, "FAILED")
    )

    analytics = await admin_service.get_analytics()

    assert analytics.total_orders == 3
    assert analytics.paid_orders == 1
    assert analytics.revenue == Decimal("2297.50")
    assert analytics.average_paid_order_value == Decimal("2297.50")
    assert analytics.by_status == {"confirmed": 1, "cancelled": 1, "pending": 1}
    assert analytics.by_payment_status == {"completed": 1, "failed": 1, "pending": 1}
