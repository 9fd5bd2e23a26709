"""
Order and payment status enums.

Order status is the order lifecycle; payment status tracks the gateway
payment session. The two move together only through the Order aggregate.
"""
from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    """Order lifecycle status values."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_ORDER_STATUSES


TERMINAL_ORDER_STATUSES = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}
)


class PaymentStatus(str, Enum):
    """Local payment status values."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def from_gateway_state(cls, state: Optional[str]) -> "PaymentStatus":
        """
        Map a gateway state string to a local payment status.

        Unknown or missing states map to PENDING so an unexpected value
        can never mark an order as paid.
        """
        if not state:
            return cls.PENDING
        return _GATEWAY_STATE_MAP.get(state.strip().upper(), cls.PENDING)


_GATEWAY_STATE_MAP = {
    "PENDING": PaymentStatus.PENDING,
    "PROCESSING": PaymentStatus.PROCESSING,
    "COMPLETED": PaymentStatus.COMPLETED,
    "FAILED": PaymentStatus.FAILED,
    "CANCELLED": PaymentStatus.CANCELLED,
}


class PaymentOutcome(str, Enum):
    """Result of applying a gateway observation to an order."""

    CONFIRMED = "confirmed"  # entered the completed branch; stock/cart side effects due
    FAILED = "failed"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    IGNORED = "ignored"  # order already terminal or already paid
