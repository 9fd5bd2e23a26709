"""Domain enums."""

from .order_status import (
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    PaymentOutcome,
    PaymentStatus,
)

__all__ = [
    "TERMINAL_ORDER_STATUSES",
    "OrderStatus",
    "PaymentOutcome",
    "PaymentStatus",
]
