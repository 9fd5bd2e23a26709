"""Domain entities."""

from .catalog import CartLine, Product, UserProfile, Variant
from .order import ADMIN_STATUS_TRANSITIONS, Order, OrderItem, PaymentDetails, Pricing

__all__ = [
    "ADMIN_STATUS_TRANSITIONS",
    "CartLine",
    "Order",
    "OrderItem",
    "PaymentDetails",
    "Pricing",
    "Product",
    "UserProfile",
    "Variant",
]
