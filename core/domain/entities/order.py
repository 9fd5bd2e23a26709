"""
Order aggregate root.

CRITICAL: This file must contain ZERO imports from:
- sqlalchemy
- pydantic
- fastapi

All order / payment status rules live here. Services load an Order,
call one of its methods, and persist it with an optimistic version
check; they never assign status fields directly.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import uuid

from ..enums import OrderStatus, PaymentOutcome, PaymentStatus
from ..events.base import DomainEvent
from ..events.order_events import (
    OrderCancelledEvent,
    OrderConfirmedEvent,
    OrderCreatedEvent,
    OrderStatusChangedEvent,
    PaymentInitiatedEvent,
    PaymentStatusChangedEvent,
)
from ..exceptions import InvalidStatusTransitionError, OrderNotCancellableError
from ..value_objects import Address, CustomerDetails, MerchantOrderId, Money, OrderNumber


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Lifecycle moves an administrator may make. Payment-driven moves
# (pending -> confirmed / cancelled) go through apply_payment_status().
ADMIN_STATUS_TRANSITIONS: Dict[OrderStatus, frozenset] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset(
        {OrderStatus.PROCESSING, OrderStatus.COMPLETED, OrderStatus.REFUNDED}
    ),
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED, OrderStatus.REFUNDED}),
    OrderStatus.COMPLETED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}


@dataclass
class OrderItem:
    """Individual line item within an order, priced at order time."""
    product_id: str
    variant_id: str
    quantity: int
    price: Money
    total_price: Money
    product_name: str = ""
    variant_name: str = ""
    sku: Optional[str] = None

    @classmethod
    def create(
        cls,
        product_id: str,
        variant_id: str,
        quantity: int,
        price: Money,
        product_name: str = "",
        variant_name: str = "",
        sku: Optional[str] = None,
    ) -> "OrderItem":
        if quantity < 1:
            raise ValueError(f"Quantity must be at least 1, got {quantity}")
        if price.is_negative():
            raise ValueError(f"Price cannot be negative: {price}")
        return cls(
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity,
            price=price,
            total_price=price * quantity,
            product_name=product_name,
            variant_name=variant_name,
            sku=sku,
        )

    def calculate_total(self) -> Money:
        """Recalculate total based on quantity and unit price."""
        calculated = self.price * self.quantity
        if calculated != self.total_price:
            raise ValueError(f"Total mismatch: {calculated} vs {self.total_price}")
        return calculated


@dataclass
class Pricing:
    """Pricing snapshot. total == subtotal + tax + shipping_cost - discount."""
    subtotal: Money
    tax: Money
    discount: Money
    shipping_cost: Money
    total: Money

    @classmethod
    def from_items(
        cls,
        items: List[OrderItem],
        tax: Optional[Money] = None,
        discount: Optional[Money] = None,
        shipping_cost: Optional[Money] = None,
        currency: str = "INR",
    ) -> "Pricing":
        """
        Compute pricing from line items.

        Tax, discount and shipping are zero today but stay first-class
        so a pricing policy can fill them in later.
        """
        subtotal = Money.zero(currency)
        for item in items:
            subtotal = subtotal + item.calculate_total()

        tax = tax or Money.zero(currency)
        discount = discount or Money.zero(currency)
        shipping_cost = shipping_cost or Money.zero(currency)

        pricing = cls(
            subtotal=subtotal,
            tax=tax,
            discount=discount,
            shipping_cost=shipping_cost,
            total=subtotal + tax + shipping_cost - discount,
        )
        pricing.verify()
        return pricing

    def verify(self) -> None:
        """
        Raises:
            ValueError: If any component is negative or the total does not balance
        """
        for name in ("subtotal", "tax", "discount", "shipping_cost", "total"):
            if getattr(self, name).is_negative():
                raise ValueError(f"Pricing {name} cannot be negative")
        expected = self.subtotal + self.tax + self.shipping_cost - self.discount
        if expected != self.total:
            raise ValueError(f"Pricing total mismatch: {self.total} vs {expected}")


@dataclass
class PaymentDetails:
    """Embedded payment sub-record; amount is in gateway minor units."""
    payment_method: str
    merchant_order_id: MerchantOrderId
    amount: int
    currency: str = "INR"
    status: PaymentStatus = PaymentStatus.PENDING
    gateway_order_id: Optional[str] = None
    gateway_transaction_id: Optional[str] = None
    failure_reason: Optional[str] = None
    # Opaque audit blob; never parsed back for business logic
    gateway_raw_response: Optional[Dict[str, Any]] = None
    payment_timestamp: Optional[datetime] = None


@dataclass
class Order:
    """
    Order aggregate root.

    Created once per checkout attempt and never deleted. Items, pricing
    and the customer/address snapshots are immutable after creation.
    """
    id: str
    order_number: OrderNumber
    user_id: str
    items: List[OrderItem]
    pricing: Pricing
    payment_details: PaymentDetails
    customer_details: CustomerDetails
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None
    status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None

    # Fulfilment (admin-maintained)
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    estimated_delivery: Optional[datetime] = None

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    # Optimistic concurrency token, bumped by the repository on every save
    version: int = 0

    _domain_events: List[DomainEvent] = field(default_factory=list, init=False, repr=False)

    # =========================================================================
    # FACTORY
    # =========================================================================

    @classmethod
    def create(
        cls,
        order_number: OrderNumber,
        merchant_order_id: MerchantOrderId,
        user_id: str,
        items: List[OrderItem],
        pricing: Pricing,
        customer_details: CustomerDetails,
        shipping_address: Optional[Address] = None,
        billing_address: Optional[Address] = None,
        notes: Optional[str] = None,
        payment_method: str = "phonepe",
    ) -> "Order":
        """
        Factory method to create a new pending Order.

        Records OrderCreatedEvent.

        Raises:
            ValueError: If the order has no items or pricing does not balance
        """
        if not items:
            raise ValueError("Order must contain at least one item")
        pricing.verify()

        order = cls(
            id=str(uuid.uuid4()),
            order_number=order_number,
            user_id=user_id,
            items=list(items),
            pricing=pricing,
            payment_details=PaymentDetails(
                payment_method=payment_method,
                merchant_order_id=merchant_order_id,
                amount=pricing.total.to_minor_units(),
                currency=pricing.total.currency,
            ),
            customer_details=customer_details,
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            notes=notes,
        )
        order._record_event(
            OrderCreatedEvent(
                order_id=order.id,
                order_number=order.order_number.value,
                user_id=user_id,
                merchant_order_id=merchant_order_id.value,
                total_amount=str(pricing.total.amount),
                items_count=len(items),
            )
        )
        return order

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def merchant_order_id(self) -> str:
        return self.payment_details.merchant_order_id.value

    @property
    def payment_status(self) -> PaymentStatus:
        return self.payment_details.status

    @property
    def is_paid(self) -> bool:
        return self.payment_details.status == PaymentStatus.COMPLETED

    @property
    def can_be_cancelled(self) -> bool:
        return (
            not self.is_paid
            and self.status not in (OrderStatus.CANCELLED, OrderStatus.REFUNDED, OrderStatus.COMPLETED)
        )

    # =========================================================================
    # PAYMENT LIFECYCLE
    # =========================================================================

    def mark_payment_initiated(self, gateway_order_id: str, gateway_state: Optional[str] = None) -> None:
        """Store the gateway's order id after the remote payment order is created."""
        self.payment_details.gateway_order_id = gateway_order_id
        initial = PaymentStatus.from_gateway_state(gateway_state)
        # Never overrides an outcome a callback may already have applied
        if self.payment_details.status == PaymentStatus.PENDING and initial == PaymentStatus.PROCESSING:
            self.payment_details.status = initial
        self._touch()
        self._record_event(
            PaymentInitiatedEvent(
                order_id=self.id,
                order_number=self.order_number.value,
                user_id=self.user_id,
                merchant_order_id=self.merchant_order_id,
                gateway_order_id=gateway_order_id,
            )
        )

    def mark_payment_failed(self, reason: str) -> None:
        """
        Record that the payment could not be initiated at the gateway.

        The order itself stays pending and is kept for audit / follow-up.
        An outcome a callback already applied is left untouched.
        """
        previous = self.payment_details.status
        if previous not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            return
        self.payment_details.status = PaymentStatus.FAILED
        self.payment_details.failure_reason = reason
        self._touch()
        self._record_payment_change(previous, PaymentStatus.FAILED, reason)

    def record_gateway_response(self, raw: Dict[str, Any], timestamp: Optional[datetime] = None) -> None:
        """Attach the raw gateway payload for audit, regardless of outcome."""
        self.payment_details.gateway_raw_response = raw
        self.payment_details.payment_timestamp = timestamp or _utcnow()
        self._touch()

    def apply_payment_status(
        self,
        new_status: PaymentStatus,
        transaction_id: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> PaymentOutcome:
        """
        Apply a gateway observation to the order.

        Rules:
        - terminal orders (completed / cancelled / refunded) never change
        - a completed payment is final; later observations are ignored
        - COMPLETED confirms the order (only on the transition into completed)
        - FAILED cancels the order
        - other states only move the payment status

        Returns:
            PaymentOutcome; CONFIRMED means stock and cart side effects are due
        """
        if self.status.is_terminal:
            return PaymentOutcome.IGNORED

        current = self.payment_details.status
        if current == PaymentStatus.COMPLETED:
            return PaymentOutcome.UNCHANGED if new_status == current else PaymentOutcome.IGNORED

        if new_status == current:
            return PaymentOutcome.UNCHANGED

        if new_status == PaymentStatus.COMPLETED:
            self.payment_details.status = PaymentStatus.COMPLETED
            self.payment_details.failure_reason = None
            if transaction_id:
                self.payment_details.gateway_transaction_id = transaction_id
            self.status = OrderStatus.CONFIRMED
            self._touch()
            self._record_payment_change(current, new_status)
            self._record_event(
                OrderConfirmedEvent(
                    order_id=self.id,
                    order_number=self.order_number.value,
                    user_id=self.user_id,
                    merchant_order_id=self.merchant_order_id,
                    gateway_transaction_id=self.payment_details.gateway_transaction_id,
                )
            )
            return PaymentOutcome.CONFIRMED

        if new_status == PaymentStatus.FAILED:
            reason = failure_reason or "Payment failed"
            self.payment_details.status = PaymentStatus.FAILED
            self.payment_details.failure_reason = reason
            self.status = OrderStatus.CANCELLED
            self._touch()
            self._record_payment_change(current, new_status, reason)
            self._record_event(
                OrderCancelledEvent(
                    order_id=self.id,
                    order_number=self.order_number.value,
                    user_id=self.user_id,
                    reason=reason,
                )
            )
            return PaymentOutcome.FAILED

        self.payment_details.status = new_status
        self._touch()
        self._record_payment_change(current, new_status)
        return PaymentOutcome.UPDATED

    # =========================================================================
    # CANCELLATION / ADMIN LIFECYCLE
    # =========================================================================

    def cancel(self, reason: Optional[str] = None) -> None:
        """
        Cancel an unpaid order.

        Raises:
            OrderNotCancellableError: If the order is already paid or already closed
        """
        if self.is_paid:
            raise OrderNotCancellableError(
                "Order has already been paid and cannot be cancelled"
            )
        if not self.can_be_cancelled:
            raise OrderNotCancellableError(
                f"Order cannot be cancelled in status '{self.status.value}'"
            )

        previous = self.payment_details.status
        self.status = OrderStatus.CANCELLED
        self.payment_details.status = PaymentStatus.CANCELLED
        self._touch()
        self._record_payment_change(previous, PaymentStatus.CANCELLED, reason)
        self._record_event(
            OrderCancelledEvent(
                order_id=self.id,
                order_number=self.order_number.value,
                user_id=self.user_id,
                reason=reason or "Cancelled by customer",
            )
        )

    def change_status(self, new_status: OrderStatus) -> None:
        """
        Administrative lifecycle move.

        Raises:
            InvalidStatusTransitionError: If the move is not allowed
            OrderNotCancellableError: If cancelling a paid order
        """
        if new_status == self.status:
            return
        if new_status == OrderStatus.CANCELLED:
            self.cancel(reason="Cancelled by administrator")
            return
        if new_status not in ADMIN_STATUS_TRANSITIONS[self.status]:
            raise InvalidStatusTransitionError(self.status.value, new_status.value)

        previous = self.status
        self.status = new_status
        self._touch()
        self._record_event(
            OrderStatusChangedEvent(
                order_id=self.id,
                order_number=self.order_number.value,
                user_id=self.user_id,
                previous_status=previous.value,
                new_status=new_status.value,
            )
        )

    def update_tracking(
        self,
        tracking_number: Optional[str] = None,
        tracking_url: Optional[str] = None,
        estimated_delivery: Optional[datetime] = None,
    ) -> None:
        if tracking_number is not None:
            self.tracking_number = tracking_number
        if tracking_url is not None:
            self.tracking_url = tracking_url
        if estimated_delivery is not None:
            self.estimated_delivery = estimated_delivery
        self._touch()

    # =========================================================================
    # EVENT COLLECTION
    # =========================================================================

    def get_domain_events(self) -> List[DomainEvent]:
        """
        Get all domain events collected by this aggregate.

        Returns:
            Copy of events list (published to the Event Bus after commit)
        """
        return list(self._domain_events)

    def clear_domain_events(self) -> None:
        """Clear all collected domain events (after publishing)."""
        self._domain_events.clear()

    def _record_event(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    def _record_payment_change(
        self,
        previous: PaymentStatus,
        new: PaymentStatus,
        reason: Optional[str] = None,
    ) -> None:
        self._record_event(
            PaymentStatusChangedEvent(
                order_id=self.id,
                order_number=self.order_number.value,
                user_id=self.user_id,
                previous_status=previous.value,
                new_status=new.value,
                reason=reason,
            )
        )

    def _touch(self) -> None:
        self.updated_at = _utcnow()
