"""Domain events."""

from .base import DomainEvent
from .order_events import (
    OrderCancelledEvent,
    OrderConfirmedEvent,
    OrderCreatedEvent,
    OrderStatusChangedEvent,
    PaymentInitiatedEvent,
    PaymentStatusChangedEvent,
)

__all__ = [
    "DomainEvent",
    "OrderCancelledEvent",
    "OrderConfirmedEvent",
    "OrderCreatedEvent",
    "OrderStatusChangedEvent",
    "PaymentInitiatedEvent",
    "PaymentStatusChangedEvent",
]
