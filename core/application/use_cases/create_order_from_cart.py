"""
Create Order From Cart Use Case.

Turns the user's cart into a pending order and opens a payment session
at the gateway.

Flow:
1. Load the user and their cart (product / variant attached)
2. Validate every line (all-or-nothing) and price it from the live variant
3. Persist the order (pending / payment pending) with a unique order number
4. Create the gateway payment order
5. Record the gateway reference, or mark the payment failed and re-raise

The order is always persisted before the gateway is called, so a payment
intent is never lost when the gateway call fails.
"""
from dataclasses import dataclass
from typing import List, Optional
import logging

from sqlalchemy.ext.asyncio import async_sessionmaker

from core.application.dtos.payment_dto import GatewayOrder
from core.application.interfaces import IPaymentGateway
from core.application.services.order_number_generator import OrderNumberGenerator
from core.domain.entities.catalog import CartLine, UserProfile
from core.domain.entities.order import Order, OrderItem, Pricing
from core.domain.event_bus import EventBus
from core.domain.exceptions import (
    ConcurrentModificationError,
    EmptyCartError,
    InsufficientStockError,
    OrderNumberConflictError,
    OrderNumberExhaustedError,
    PaymentGatewayError,
    ProductUnavailableError,
    UserNotFoundError,
)
from core.domain.value_objects import Address, CustomerDetails, MerchantOrderId
from core.infrastructure.database.unit_of_work import create_uow


logger = logging.getLogger(__name__)


# =============================================================================
# REQUEST / RESPONSE (Application Layer)
# =============================================================================

@dataclass
class CreateOrderFromCartRequest:
    user_id: str
    redirect_url: str
    customer_details: Optional[CustomerDetails] = None
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None
    notes: Optional[str] = None


@dataclass
class CreateOrderFromCartResponse:
    order: Order
    gateway_order: GatewayOrder


# =============================================================================
# USE CASE
# =============================================================================

class CreateOrderFromCartUseCase:
    """
    Order Creation Orchestrator.

    Validation failures raise before anything is written. A gateway
    failure after the order is stored marks the payment failed, keeps
    the order pending, and re-raises PaymentGatewayError.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        payment_gateway: IPaymentGateway,
        event_bus: EventBus,
        order_number_generator: OrderNumberGenerator,
        currency: str = "INR",
        max_save_attempts: int = 3,
    ):
        """
        Initialize use case with dependencies.

        Args:
            session_factory: SQLAlchemy async session factory
            payment_gateway: Gateway adapter (injected, built at startup)
            event_bus: Event Bus for publishing domain events after commit
            order_number_generator: Source of unique order numbers
            currency: Store currency
            max_save_attempts: Retries for version conflicts when recording
                the gateway reference
        """
        self.session_factory = session_factory
        self.payment_gateway = payment_gateway
        self.event_bus = event_bus
        self.order_number_generator = order_number_generator
        self.currency = currency
        self.max_save_attempts = max_save_attempts

    async def execute(self, request: CreateOrderFromCartRequest) -> CreateOrderFromCartResponse:
        """
        Execute the checkout workflow.

        Raises:
            UserNotFoundError, EmptyCartError, ProductUnavailableError,
            InsufficientStockError: Validation failed; nothing persisted
            OrderNumberExhaustedError: No unique order number found
            PaymentGatewayError: Gateway call failed; order kept with
                payment status failed
        """
        logger.info(f"[user:{request.user_id}] Starting checkout")

        # ================================================================
        # STEP 1-2: Load and validate cart
        # ================================================================
        async with create_uow(self.session_factory, self.currency) as uow:
            user = await uow.users.get_profile(request.user_id)
            if user is None:
                raise UserNotFoundError(request.user_id)
            lines = await uow.carts.get_lines(request.user_id)

        items = self._build_items(lines)
        pricing = Pricing.from_items(items, currency=self.currency)
        customer = request.customer_details or self._customer_from_profile(user)

        logger.info(
            f"[user:{request.user_id}] Cart validated: {len(items)} line(s), "
            f"total={pricing.total}"
        )

        # ================================================================
        # STEP 3: Persist pending order
        # ================================================================
        merchant_order_id = MerchantOrderId.generate()
        order = await self._persist_new_order(
            request=request,
            merchant_order_id=merchant_order_id,
            items=items,
            pricing=pricing,
            customer=customer,
        )
        await self._publish(order)

        # ================================================================
        # STEP 4-5: Open the gateway payment session
        # ================================================================
        try:
            gateway_order = await self.payment_gateway.create_order(
                amount_minor_units=order.payment_details.amount,
                redirect_url=request.redirect_url,
                merchant_order_id=merchant_order_id.value,
            )
        except PaymentGatewayError as e:
            logger.error(
                f"[{merchant_order_id}] ❌ Gateway order creation failed for "
                f"order {order.order_number}: {e}"
            )
            order = await self._update_with_retry(
                order, lambda o: o.mark_payment_failed(f"Payment initiation failed: {e.message}")
            )
            raise

        order = await self._update_with_retry(
            order,
            lambda o: o.mark_payment_initiated(gateway_order.gateway_order_id, gateway_order.state),
        )
        logger.info(
            f"[{merchant_order_id}] ✅ Order {order.order_number} awaiting payment "
            f"(gateway order {gateway_order.gateway_order_id})"
        )
        return CreateOrderFromCartResponse(order=order, gateway_order=gateway_order)

    # =========================================================================
    # VALIDATION / PRICING
    # =========================================================================

    def _build_items(self, lines: List[CartLine]) -> List[OrderItem]:
        """Validate every cart line and price it from the current variant."""
        lines = [line for line in lines if line.quantity > 0]
        if not lines:
            raise EmptyCartError()

        items = []
        for line in lines:
            product, variant = line.product, line.variant
            if product is None or variant is None:
                raise ProductUnavailableError(
                    product.name if product else line.product_id,
                    variant.name if variant else None,
                )
            if not product.is_active or not variant.is_active:
                raise ProductUnavailableError(product.name, variant.name)
            if line.quantity > variant.stock:
                raise InsufficientStockError(variant.name, line.quantity, variant.stock)

            items.append(
                OrderItem.create(
                    product_id=product.id,
                    variant_id=variant.id,
                    quantity=line.quantity,
                    price=variant.price,
                    product_name=product.name,
                    variant_name=variant.name,
                    sku=variant.sku,
                )
            )
        return items

    @staticmethod
    def _customer_from_profile(user: UserProfile) -> CustomerDetails:
        return CustomerDetails(name=user.name, email=user.email, phone=user.phone)

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    async def _persist_new_order(
        self,
        request: CreateOrderFromCartRequest,
        merchant_order_id: MerchantOrderId,
        items: List[OrderItem],
        pricing: Pricing,
        customer: CustomerDetails,
    ) -> Order:
        """
        Insert the order under a fresh order number.

        Existence-check collisions and insert-time collisions draw on the
        same attempt budget.
        """
        attempts = self.order_number_generator.max_attempts
        for attempt in range(1, attempts + 1):
            async with create_uow(self.session_factory, self.currency) as uow:
                order_number = await self.order_number_generator.try_generate(uow.orders)
                if order_number is None:
                    continue
                order = Order.create(
                    order_number=order_number,
                    merchant_order_id=merchant_order_id,
                    user_id=request.user_id,
                    items=items,
                    pricing=pricing,
                    customer_details=customer,
                    shipping_address=request.shipping_address,
                    billing_address=request.billing_address,
                    notes=request.notes,
                )
                try:
                    await uow.orders.add(order)
                except OrderNumberConflictError:
                    logger.warning(
                        f"[{merchant_order_id}] Order number {order_number} taken at insert "
                        f"(attempt {attempt}/{attempts})"
                    )
                    continue
                await uow.commit()

            logger.info(f"[{merchant_order_id}] Order {order.order_number} created (pending)")
            return order

        logger.error(f"[{merchant_order_id}] Order number generation exhausted after {attempts} attempts")
        raise OrderNumberExhaustedError(attempts)

    async def _update_with_retry(self, order: Order, mutate) -> Order:
        """Apply ``mutate`` and save, reloading on version conflicts."""
        for attempt in range(1, self.max_save_attempts + 1):
            async with create_uow(self.session_factory, self.currency) as uow:
                if attempt > 1:
                    order = await uow.orders.find_by_id(order.id)
                mutate(order)
                try:
                    await uow.orders.save(order)
                except ConcurrentModificationError:
                    logger.warning(
                        f"[{order.merchant_order_id}] Order changed concurrently, reloading "
                        f"(attempt {attempt}/{self.max_save_attempts})"
                    )
                    continue
                await uow.commit()

            await self._publish(order)
            return order

        raise ConcurrentModificationError(order.id)

    async def _publish(self, order: Order) -> None:
        events = order.get_domain_events()
        if events:
            await self.event_bus.publish_all(events)
            order.clear_domain_events()
