"""
Tests for PaymentReconciliationService.

Callback and poll paths share one rule set; stock decrement and cart
clearing must happen exactly once per order, on the transition into a
completed payment.
"""
import logging
import time
from unittest.mock import AsyncMock

import pytest

from core.domain.enums import OrderStatus, PaymentStatus
from core.domain.exceptions import (
    CallbackValidationError,
    ConcurrentModificationError,
    OrderNotCancellableError,
    OrderNotFoundError,
    PaymentGatewayError,
)
from core.domain.repositories import OrderSearchCriteria
from core.infrastructure.adapters.phonepe import PhonePePaymentGateway
from core.infrastructure.database.repositories import SQLAlchemyOrderRepository
from core.infrastructure.database.unit_of_work import create_uow
from core.infrastructure.logging import SECURITY_LOGGER_NAME
from core.settings import PhonePeSettings
from tests.mocks.fake_payment_gateway import VALID_CALLBACK_AUTH, callback_body


async def _load(session_factory, order_id):
    async with create_uow(session_factory) as uow:
        return await uow.orders.find_by_id(order_id)


async def _search(session_factory, user_id="user-1"):
    async with create_uow(session_factory) as uow:
        return await uow.orders.search(OrderSearchCriteria(user_id=user_id))


# =============================================================================
# CALLBACK PATH
# =============================================================================

@pytest.mark.asyncio
async def test_completed_callback_confirms_and_applies_side_effects(
    checkout, standard_cart, reconciliation_service, session_factory, seeder
):
    order = (await checkout()).order

    result = await reconciliation_service.handle_payment_callback(
        VALID_CALLBACK_AUTH, callback_body(order.merchant_order_id, "COMPLETED", "TXN-42")
    )

    assert result.status == OrderStatus.CONFIRMED
    assert result.payment_status == PaymentStatus.COMPLETED

    stored = await _load(session_factory, order.id)
    assert stored.status == OrderStatus.CONFIRMED
    assert stored.payment_details.gateway_transaction_id == "TXN-42"
    assert stored.payment_details.gateway_raw_response["payload"]["state"] == "COMPLETED"
    assert stored.payment_details.payment_timestamp is not None

    shirt, sneaker = standard_cart.variant_ids
    assert await seeder.stock(shirt) == 8
    assert await seeder.stock(sneaker) == 2
    assert await seeder.cart_count("user-1") == 0


@pytest.mark.asyncio
async def test_duplicate_completed_callback_applies_side_effects_once(
    checkout, standard_cart, reconciliation_service, session_factory, seeder
):
    order = (await checkout()).order
    body = callback_body(order.merchant_order_id, "COMPLETED")

    await reconciliation_service.handle_payment_callback(VALID_CALLBACK_AUTH, body)
    await reconciliation_service.handle_payment_callback(VALID_CALLBACK_AUTH, body)

    assert await seeder.stock(standard_cart.variant_ids[0]) == 8
    assert await seeder.stock(standard_cart.variant_ids[1]) == 2


@pytest.mark.asyncio
async def test_failed_callback_cancels_order_without_side_effects(
    checkout, standard_cart, reconciliation_service, session_factory, seeder
):
    order = (await checkout()).order

    result = await reconciliation_service.handle_payment_callback(
        VALID_CALLBACK_AUTH,
        callback_body(order.merchant_order_id, "FAILED", error_code="PAYMENT_DECLINED"),
    )

    assert result.status == OrderStatus.CANCELLED
    assert result.payment_status == PaymentStatus.FAILED
    assert "PAYMENT_DECLINED" in result.payment_details.failure_reason
    assert await seeder.stock(standard_cart.variant_ids[0]) == 10
    assert await seeder.cart_count("user-1") == 2


@pytest.mark.asyncio
async def test_completed_after_failed_is_ignored(
    checkout, standard_cart, reconciliation_service, seeder
):
    order = (await checkout()).order
    await reconciliation_service.handle_payment_callback(
        VALID_CALLBACK_AUTH, callback_body(order.merchant_order_id, "FAILED")
    )

    result = await reconciliation_service.handle_payment_callback(
        VALID_CALLBACK_AUTH, callback_body(order.merchant_order_id, "COMPLETED")
    )

    assert result.status == OrderStatus.CANCELLED
    assert result.payment_status == PaymentStatus.FAILED
    assert await seeder.stock(standard_cart.variant_ids[0]) == 10


@pytest.mark.asyncio
async def test_payment_completed_for_cancelled_order_is_flagged(
    checkout, standard_cart, reconciliation_service, caplog
):
    order = (await checkout()).order
    await reconciliation_service.cancel_order(order.id, "user-1")

    with caplog.at_level(logging.ERROR):
        result = await reconciliation_service.handle_payment_callback(
            VALID_CALLBACK_AUTH, callback_body(order.merchant_order_id, "COMPLETED")
        )

    assert result.status == OrderStatus.CANCELLED
    assert "manual refund required" in caplog.text


@pytest.mark.asyncio
async def test_callback_with_bad_signature_is_rejected_and_logged(
    checkout, standard_cart, reconciliation_service, session_factory, caplog
):
    order = (await checkout()).order

    with caplog.at_level(logging.WARNING, logger=SECURITY_LOGGER_NAME):
        with pytest.raises(CallbackValidationError):
            await reconciliation_service.handle_payment_callback(
                "not-the-hash", callback_body(order.merchant_order_id, "COMPLETED")
            )

    assert any(record.name == SECURITY_LOGGER_NAME for record in caplog.records)
    stored = await _load(session_factory, order.id)
    assert stored.payment_status == PaymentStatus.PENDING
    assert stored.payment_details.gateway_raw_response is None


@pytest.mark.asyncio
async def test_callback_for_unknown_order(reconciliation_service, caplog):
    with caplog.at_level(logging.ERROR):
        with pytest.raises(OrderNotFoundError):
            await reconciliation_service.handle_payment_callback(
                VALID_CALLBACK_AUTH, callback_body("no-such-order", "COMPLETED")
            )

    assert "unknown order" in caplog.text


@pytest.mark.asyncio
async def test_callback_pending_records_raw_response(
    checkout, standard_cart, reconciliation_service, session_factory
):
    order = (await checkout()).order

    await reconciliation_service.handle_payment_callback(
        VALID_CALLBACK_AUTH, callback_body(order.merchant_order_id, "PENDING")
    )

    stored = await _load(session_factory, order.id)
    assert stored.payment_status == PaymentStatus.PENDING
    assert stored.payment_details.gateway_raw_response is not None


@pytest.mark.asyncio
async def test_oversold_variant_is_floored_at_zero(
    checkout, standard_cart, reconciliation_service, seeder, caplog
):
    order = (await checkout()).order
    sneaker = standard_cart.variant_ids[1]
    await seeder.set_stock(sneaker, 0)

    with caplog.at_level(logging.ERROR):
        result = await reconciliation_service.handle_payment_callback(
            VALID_CALLBACK_AUTH, callback_body(order.merchant_order_id, "COMPLETED")
        )

    assert result.status == OrderStatus.CONFIRMED
    assert await seeder.stock(sneaker) == 0
    assert "Oversold" in caplog.text


# =============================================================================
# POLLING PATH
# =============================================================================

@pytest.mark.asyncio
async def test_poll_reconciles_completed_payment(
    checkout, standard_cart, reconciliation_service, fake_gateway, seeder
):
    order = (await checkout()).order
    fake_gateway.status_state = "COMPLETED"

    status = await reconciliation_service.check_payment_status(order.id, "user-1")

    assert status.gateway_reachable is True
    assert status.gateway_state == "COMPLETED"
    assert status.status == OrderStatus.CONFIRMED
    assert status.payment_status == PaymentStatus.COMPLETED
    assert status.transaction_id == "TXN-POLL"
    assert await seeder.cart_count("user-1") == 0


@pytest.mark.asyncio
async def test_poll_then_callback_applies_side_effects_once(
    checkout, standard_cart, reconciliation_service, fake_gateway, seeder
):
    order = (await checkout()).order
    fake_gateway.status_state = "COMPLETED"

    await reconciliation_service.check_payment_status(order.id, "user-1")
    await reconciliation_service.handle_payment_callback(
        VALID_CALLBACK_AUTH, callback_body(order.merchant_order_id, "COMPLETED")
    )
    await reconciliation_service.check_payment_status(order.id, "user-1")

    assert await seeder.stock(standard_cart.variant_ids[0]) == 8


@pytest.mark.asyncio
async def test_poll_without_change_does_not_write(
    checkout, standard_cart, reconciliation_service, fake_gateway, session_factory
):
    order = (await checkout()).order
    before = await _load(session_factory, order.id)

    status = await reconciliation_service.check_payment_status(order.id, "user-1")

    after = await _load(session_factory, order.id)
    assert status.payment_status == PaymentStatus.PENDING
    assert after.version == before.version
    assert after.payment_details.gateway_raw_response is None


@pytest.mark.asyncio
async def test_poll_degrades_when_gateway_unreachable(
    checkout, standard_cart, reconciliation_service, fake_gateway
):
    order = (await checkout()).order
    fake_gateway.fail_status = True

    status = await reconciliation_service.check_payment_status(order.id, "user-1")

    assert status.gateway_reachable is False
    assert status.payment_status == PaymentStatus.PENDING
    assert status.message


@pytest.mark.asyncio
async def test_poll_degrades_on_malformed_gateway_reply(
    checkout, standard_cart, reconciliation_service, session_factory
):
    order = (await checkout()).order
    phonepe = PhonePePaymentGateway(
        PhonePeSettings(client_id="TEST-CLIENT", client_secret="client-secret", env="sandbox")
    )
    phonepe._send = AsyncMock(
        side_effect=[
            (200, {"access_token": "tok-1", "expires_at": int(time.time()) + 3600}),
            (200, {"state": "COMPLETED", "paymentDetails": ["x"]}),
        ]
    )
    reconciliation_service.payment_gateway = phonepe

    status = await reconciliation_service.check_payment_status(order.id, "user-1")

    assert status.gateway_reachable is False
    assert status.status == OrderStatus.PENDING
    assert (await _load(session_factory, order.id)).status == OrderStatus.PENDING


@pytest.mark.asyncio
async def test_poll_is_scoped_to_owner(checkout, standard_cart, reconciliation_service, fake_gateway):
    order = (await checkout()).order

    with pytest.raises(OrderNotFoundError):
        await reconciliation_service.check_payment_status(order.id, "someone-else")

    assert fake_gateway.status_queries == []


# =============================================================================
# CANCELLATION
# =============================================================================

@pytest.mark.asyncio
async def test_cancel_unpaid_order(checkout, standard_cart, reconciliation_service, session_factory):
    order = (await checkout()).order

    cancelled = await reconciliation_service.cancel_order(order.id, "user-1")

    assert cancelled.status == OrderStatus.CANCELLED
    stored = await _load(session_factory, order.id)
    assert stored.status == OrderStatus.CANCELLED
    assert stored.payment_status == PaymentStatus.CANCELLED


@pytest.mark.asyncio
async def test_cancel_paid_order_rejected(checkout, standard_cart, reconciliation_service):
    order = (await checkout()).order
    await reconciliation_service.handle_payment_callback(
        VALID_CALLBACK_AUTH, callback_body(order.merchant_order_id, "COMPLETED")
    )

    with pytest.raises(OrderNotCancellableError):
        await reconciliation_service.cancel_order(order.id, "user-1")


@pytest.mark.asyncio
async def test_cancel_other_users_order_is_not_found(checkout, standard_cart, reconciliation_service):
    order = (await checkout()).order

    with pytest.raises(OrderNotFoundError):
        await reconciliation_service.cancel_order(order.id, "user-2")


# =============================================================================
# CONCURRENCY
# =============================================================================

@pytest.mark.asyncio
async def test_stale_save_raises_conflict(checkout, standard_cart, reconciliation_service, session_factory):
    order = (await checkout()).order
    stale = await _load(session_factory, order.id)

    await reconciliation_service.cancel_order(order.id, "user-1")

    stale.apply_payment_status(PaymentStatus.COMPLETED)
    async with create_uow(session_factory) as uow:
        with pytest.raises(ConcurrentModificationError):
            await uow.orders.save(stale)


@pytest.mark.asyncio
async def test_callback_racing_checkout_keeps_completed_payment(
    checkout, standard_cart, reconciliation_service, fake_gateway, session_factory, seeder
):
    """Callback lands before checkout records the gateway reference."""

    async def deliver_callback(merchant_order_id):
        await reconciliation_service.handle_payment_callback(
            VALID_CALLBACK_AUTH, callback_body(merchant_order_id, "COMPLETED")
        )

    fake_gateway.on_create = deliver_callback

    result = await checkout()

    stored = await _load(session_factory, result.order.id)
    assert stored.status == OrderStatus.CONFIRMED
    assert stored.payment_status == PaymentStatus.COMPLETED
    assert stored.payment_details.gateway_order_id == result.gateway_order.gateway_order_id
    assert await seeder.stock(standard_cart.variant_ids[0]) == 8


@pytest.mark.asyncio
async def test_gateway_failure_after_racing_callback_keeps_completed_payment(
    checkout, standard_cart, reconciliation_service, fake_gateway, session_factory, seeder
):
    """Callback completes the payment while the create call is failing."""

    async def deliver_callback(merchant_order_id):
        await reconciliation_service.handle_payment_callback(
            VALID_CALLBACK_AUTH, callback_body(merchant_order_id, "COMPLETED")
        )

    fake_gateway.on_create = deliver_callback
    fake_gateway.fail_create = True

    with pytest.raises(PaymentGatewayError):
        await checkout()

    orders, _ = await _search(session_factory)
    stored = orders[0]
    assert stored.status == OrderStatus.CONFIRMED
    assert stored.payment_status == PaymentStatus.COMPLETED
    assert stored.payment_details.failure_reason is None
    assert await seeder.stock(standard_cart.variant_ids[0]) == 8


@pytest.mark.asyncio
async def test_callback_landing_between_load_and_save_is_reevaluated(
    checkout, standard_cart, reconciliation_service, session_factory, seeder, monkeypatch, caplog
):
    order = (await checkout()).order
    before = await _load(session_factory, order.id)
    body = callback_body(order.merchant_order_id, "COMPLETED")

    original_find = SQLAlchemyOrderRepository.find_by_merchant_order_id
    pending_race = [True]

    async def find_then_race(self, merchant_order_id):
        loaded = await original_find(self, merchant_order_id)
        if pending_race:
            pending_race.pop()
            # A second delivery commits while this one still holds the old version
            await reconciliation_service.handle_payment_callback(VALID_CALLBACK_AUTH, body)
        return loaded

    monkeypatch.setattr(SQLAlchemyOrderRepository, "find_by_merchant_order_id", find_then_race)

    with caplog.at_level(logging.WARNING):
        result = await reconciliation_service.handle_payment_callback(VALID_CALLBACK_AUTH, body)

    assert result.status == OrderStatus.CONFIRMED
    assert "changed concurrently" in caplog.text

    stored = await _load(session_factory, order.id)
    assert stored.status == OrderStatus.CONFIRMED
    assert stored.version == before.version + 2

    shirt, sneaker = standard_cart.variant_ids
    assert await seeder.stock(shirt) == 8
    assert await seeder.stock(sneaker) == 2
    assert await seeder.cart_count("user-1") == 0
