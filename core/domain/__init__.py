"""Domain layer - pure domain models and interfaces."""

from .entities import Order, OrderItem, PaymentDetails, Pricing
from .enums import OrderStatus, PaymentOutcome, PaymentStatus
from .repositories import OrderRepository
from .value_objects import Address, CustomerDetails, MerchantOrderId, Money, OrderNumber

__all__ = [
    "Address",
    "CustomerDetails",
    "MerchantOrderId",
    "Money",
    "Order",
    "OrderItem",
    "OrderNumber",
    "OrderRepository",
    "OrderStatus",
    "PaymentDetails",
    "PaymentOutcome",
    "PaymentStatus",
    "Pricing",
]
