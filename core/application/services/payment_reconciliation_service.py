"""
Payment Reconciliation Service.

Brings local order / payment status in line with the gateway. Two entry
points feed the same rule (Order.apply_payment_status):

- handle_payment_callback: gateway webhook
- check_payment_status: client-driven poll

Stock decrement and cart clearing run only when an order transitions
into the paid branch, in the same transaction as the conditional
(version-checked) order update. A concurrent writer makes the update
fail, and the order is reloaded and re-evaluated, so the side effects
run at most once per order.

Also owns user-initiated cancellation, which competes for the same
state.
"""
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Tuple
import logging

from sqlalchemy.ext.asyncio import async_sessionmaker

from core.application.dtos.order_dto import PaymentStatusDTO
from core.application.interfaces import IPaymentGateway
from core.domain.entities.order import Order
from core.domain.enums import OrderStatus, PaymentOutcome, PaymentStatus
from core.domain.event_bus import EventBus
from core.domain.exceptions import (
    CallbackValidationError,
    ConcurrentModificationError,
    OrderNotFoundError,
    PaymentGatewayError,
)
from core.domain.repositories import OrderRepository
from core.infrastructure.database.unit_of_work import UnitOfWork, create_uow
from core.infrastructure.logging import get_security_logger


logger = logging.getLogger(__name__)
security_logger = get_security_logger()

GATEWAY_UNREACHABLE_MESSAGE = (
    "Payment gateway could not be reached; showing the last known status"
)

OrderLoader = Callable[[OrderRepository], Awaitable[Optional[Order]]]


class PaymentReconciliationService:
    """
    Payment Reconciliation Engine.

    Gateway observations never raise for a "payment failed" state; only
    failures to reach or trust the gateway do.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        payment_gateway: IPaymentGateway,
        event_bus: EventBus,
        currency: str = "INR",
        max_attempts: int = 3,
    ):
        """
        Args:
            session_factory: SQLAlchemy async session factory
            payment_gateway: Gateway adapter (injected, built at startup)
            event_bus: Event Bus for publishing domain events after commit
            currency: Store currency
            max_attempts: Reload-and-retry budget on version conflicts
        """
        self.session_factory = session_factory
        self.payment_gateway = payment_gateway
        self.event_bus = event_bus
        self.currency = currency
        self.max_attempts = max_attempts

    # =========================================================================
    # CALLBACK PATH
    # =========================================================================

    async def handle_payment_callback(self, auth_header: Optional[str], raw_body: bytes) -> Order:
        """
        Validate a webhook and apply it to the referenced order.

        The raw payload is recorded on the order whatever the outcome.

        Raises:
            CallbackValidationError: Signature or body rejected; nothing written
            OrderNotFoundError: No order carries the callback's merchantOrderId
        """
        try:
            callback = self.payment_gateway.validate_callback(auth_header, raw_body)
        except CallbackValidationError as e:
            security_logger.warning(f"Rejected payment callback: {e.message}")
            raise

        payload = callback.payload
        merchant_order_id = payload.merchant_order_id
        new_status = PaymentStatus.from_gateway_state(payload.state)
        logger.info(
            f"[{merchant_order_id}] Payment callback {callback.type}: "
            f"state={payload.state} -> {new_status.value}"
        )

        order, outcome = await self._reconcile(
            load=lambda orders: orders.find_by_merchant_order_id(merchant_order_id),
            new_status=new_status,
            transaction_id=payload.transaction_id,
            failure_reason=_failure_reason(payload.error_code),
            raw_response=callback.raw,
            timestamp=_from_epoch_millis(payload.timestamp),
            always_record=True,
        )
        if order is None:
            logger.error(
                f"[{merchant_order_id}] ⚠️ Payment callback for unknown order "
                f"(state={payload.state}, gateway order {payload.gateway_order_id})"
            )
            raise OrderNotFoundError(merchant_order_id)

        logger.info(f"[{merchant_order_id}] Callback reconciled: {outcome.value}")
        return order

    # =========================================================================
    # POLLING PATH
    # =========================================================================

    async def check_payment_status(self, order_id: str, user_id: str) -> PaymentStatusDTO:
        """
        Poll the gateway for one of the user's orders and reconcile.

        When the gateway cannot be reached the last known local status is
        returned with ``gateway_reachable=False`` instead of an error.

        Raises:
            OrderNotFoundError: Order missing or owned by another user
        """
        async with create_uow(self.session_factory, self.currency) as uow:
            order = await uow.orders.find_by_id(order_id)
        if order is None or order.user_id != user_id:
            raise OrderNotFoundError(order_id)

        merchant_order_id = order.merchant_order_id
        try:
            gateway_status = await self.payment_gateway.get_order_status(merchant_order_id)
        except PaymentGatewayError as e:
            logger.warning(f"[{merchant_order_id}] Status poll degraded, gateway unreachable: {e}")
            return _status_dto(
                order,
                gateway_state=None,
                gateway_reachable=False,
                message=GATEWAY_UNREACHABLE_MESSAGE,
            )

        attempt = gateway_status.latest_attempt
        new_status = PaymentStatus.from_gateway_state(gateway_status.state)
        reconciled, outcome = await self._reconcile(
            load=lambda orders: orders.find_by_id(order_id),
            new_status=new_status,
            transaction_id=attempt.transaction_id if attempt else None,
            failure_reason=_failure_reason(attempt.error_code if attempt else None),
            raw_response=gateway_status.raw,
            timestamp=_from_epoch_millis(attempt.timestamp if attempt else None),
            always_record=False,
        )
        if reconciled is None:
            raise OrderNotFoundError(order_id)

        logger.info(
            f"[{merchant_order_id}] Poll: gateway={gateway_status.state}, outcome={outcome.value}"
        )
        return _status_dto(reconciled, gateway_state=gateway_status.state, gateway_reachable=True)

    # =========================================================================
    # CANCELLATION
    # =========================================================================

    async def cancel_order(self, order_id: str, user_id: str) -> Order:
        """
        Cancel one of the user's unpaid orders.

        Raises:
            OrderNotFoundError: Order missing or owned by another user
            OrderNotCancellableError: Already paid or already closed
        """
        for attempt in range(1, self.max_attempts + 1):
            async with create_uow(self.session_factory, self.currency) as uow:
                order = await uow.orders.find_by_id(order_id)
                if order is None or order.user_id != user_id:
                    raise OrderNotFoundError(order_id)

                order.cancel(reason="Cancelled by customer")
                try:
                    await uow.orders.save(order)
                except ConcurrentModificationError:
                    self._log_conflict(order, attempt)
                    continue
                await uow.commit()

            logger.info(f"[{order.merchant_order_id}] Order {order.order_number} cancelled by customer")
            await self._publish(order)
            return order

        raise ConcurrentModificationError(order_id)

    # =========================================================================
    # SHARED RECONCILIATION
    # =========================================================================

    async def _reconcile(
        self,
        load: OrderLoader,
        new_status: PaymentStatus,
        transaction_id: Optional[str],
        failure_reason: Optional[str],
        raw_response: dict,
        timestamp: Optional[datetime],
        always_record: bool,
    ) -> Tuple[Optional[Order], PaymentOutcome]:
        """
        Load, apply, conditionally save, and run side effects, retrying on
        version conflicts.

        Returns:
            (order or None when not found, outcome of the last evaluation)
        """
        order: Optional[Order] = None
        for attempt in range(1, self.max_attempts + 1):
            async with create_uow(self.session_factory, self.currency) as uow:
                order = await load(uow.orders)
                if order is None:
                    return None, PaymentOutcome.IGNORED

                outcome = order.apply_payment_status(new_status, transaction_id, failure_reason)
                self._log_anomalies(order, new_status, outcome)

                changed = outcome in (
                    PaymentOutcome.CONFIRMED,
                    PaymentOutcome.FAILED,
                    PaymentOutcome.UPDATED,
                )
                if not changed and not always_record:
                    return order, outcome

                order.record_gateway_response(raw_response, timestamp)
                try:
                    await uow.orders.save(order)
                except ConcurrentModificationError:
                    self._log_conflict(order, attempt)
                    continue

                if outcome is PaymentOutcome.CONFIRMED:
                    await self._apply_payment_side_effects(uow, order)
                await uow.commit()

            await self._publish(order)
            return order, outcome

        raise ConcurrentModificationError(order.id if order else "unknown")

    async def _apply_payment_side_effects(self, uow: UnitOfWork, order: Order) -> None:
        """Decrement stock for every line and empty the buyer's cart."""
        ref = order.merchant_order_id
        for item in order.items:
            shortfall = await uow.stock.decrement(item.variant_id, item.quantity)
            if shortfall:
                logger.error(
                    f"[{ref}] ⚠️ Oversold: variant {item.variant_id} ({item.variant_name}) "
                    f"short by {shortfall} unit(s) for order {order.order_number}; stock floored at 0"
                )

        cleared = await uow.carts.clear(order.user_id)
        logger.info(
            f"[{ref}] ✅ Order {order.order_number} confirmed: stock decremented for "
            f"{len(order.items)} line(s), {cleared} cart line(s) cleared"
        )

    def _log_anomalies(self, order: Order, new_status: PaymentStatus, outcome: PaymentOutcome) -> None:
        if outcome is not PaymentOutcome.IGNORED:
            return
        if new_status == PaymentStatus.COMPLETED and order.status == OrderStatus.CANCELLED:
            logger.error(
                f"[{order.merchant_order_id}] ⚠️ Payment completed for cancelled order "
                f"{order.order_number}; status left cancelled, manual refund required"
            )
        elif order.is_paid and new_status != PaymentStatus.COMPLETED:
            logger.warning(
                f"[{order.merchant_order_id}] Ignoring gateway state {new_status.value} "
                f"for already paid order {order.order_number}"
            )

    def _log_conflict(self, order: Order, attempt: int) -> None:
        logger.warning(
            f"[{order.merchant_order_id}] Order {order.order_number} changed concurrently, "
            f"re-evaluating (attempt {attempt}/{self.max_attempts})"
        )

    async def _publish(self, order: Order) -> None:
        events = order.get_domain_events()
        if events:
            await self.event_bus.publish_all(events)
            order.clear_domain_events()


def _failure_reason(error_code: Optional[str]) -> Optional[str]:
    if not error_code:
        return None
    return f"Payment failed at gateway: {error_code}"


def _from_epoch_millis(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _status_dto(
    order: Order,
    gateway_state: Optional[str],
    gateway_reachable: bool,
    message: Optional[str] = None,
) -> PaymentStatusDTO:
    return PaymentStatusDTO(
        order_id=order.id,
        order_number=order.order_number.value,
        status=order.status,
        payment_status=order.payment_status,
        gateway_state=gateway_state,
        amount=order.pricing.total.amount,
        transaction_id=order.payment_details.gateway_transaction_id,
        gateway_reachable=gateway_reachable,
        message=message,
    )
