"""
Order Domain Events.

Events that occur during the checkout and payment lifecycle of an order.
"""
from dataclasses import dataclass
from typing import Optional

from .base import DomainEvent


@dataclass
class _OrderEvent(DomainEvent):
    """Common base: aggregate_id mirrors the order's storage id."""

    order_id: str = ""
    order_number: str = ""

    def __post_init__(self):
        if not self.aggregate_id and self.order_id:
            self.aggregate_id = self.order_id
        super().__post_init__()


@dataclass
class OrderCreatedEvent(_OrderEvent):
    """
    Order was created from the user's cart.

    Trigger: checkout; order is pending and payment not yet initiated.
    """

    merchant_order_id: str = ""
    total_amount: str = ""
    items_count: int = 0


@dataclass
class PaymentInitiatedEvent(_OrderEvent):
    """Gateway payment order created; customer can be redirected."""

    merchant_order_id: str = ""
    gateway_order_id: str = ""


@dataclass
class PaymentStatusChangedEvent(_OrderEvent):
    """Local payment status moved (e.g. pending -> processing, -> failed)."""

    previous_status: str = ""
    new_status: str = ""
    reason: Optional[str] = None


@dataclass
class OrderConfirmedEvent(_OrderEvent):
    """
    Payment completed and order confirmed.

    Emitted exactly once per order; stock and cart side effects
    are applied in the same transaction.
    """

    merchant_order_id: str = ""
    gateway_transaction_id: Optional[str] = None


@dataclass
class OrderCancelledEvent(_OrderEvent):
    """Order cancelled by the customer or by a failed payment."""

    reason: Optional[str] = None


@dataclass
class OrderStatusChangedEvent(_OrderEvent):
    """Order lifecycle status changed by an administrator."""

    previous_status: str = ""
    new_status: str = ""
