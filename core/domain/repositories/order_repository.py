"""Repository interfaces for the Order aggregate."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..entities.order import Order
from ..enums import OrderStatus, PaymentStatus
from ..value_objects import OrderNumber


SORTABLE_FIELDS = ("createdAt", "total", "orderNumber")


@dataclass(frozen=True)
class OrderSearchCriteria:
    """Filter / sort / page parameters for order listings."""

    user_id: Optional[str] = None
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    sort_by: str = "createdAt"
    descending: bool = True
    offset: int = 0
    limit: int = 10

    def __post_init__(self):
        if self.sort_by not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort orders by '{self.sort_by}'")
        if self.offset < 0 or self.limit < 1:
            raise ValueError("Invalid pagination window")


@dataclass(frozen=True)
class OrderTotals:
    """Aggregated figures over a set of orders."""

    total_orders: int
    by_status: Dict[str, int]
    by_payment_status: Dict[str, int]
    paid_orders: int
    paid_revenue_minor_units: int


class OrderRepository(ABC):
    """Abstract repository for Order aggregate persistence."""

    @abstractmethod
    async def add(self, order: Order) -> None:
        """Insert a new order.

        Raises:
            OrderNumberConflictError: If the order number is already taken
        """
        pass

    @abstractmethod
    async def save(self, order: Order) -> None:
        """Persist changes to an existing order.

        Conditional on ``order.version`` still matching the stored row;
        bumps the version on success.

        Raises:
            ConcurrentModificationError: If the row changed since it was loaded
        """
        pass

    @abstractmethod
    async def find_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def find_by_merchant_order_id(self, merchant_order_id: str) -> Optional[Order]:
        """Look up the order a gateway callback refers to."""
        pass

    @abstractmethod
    async def order_number_exists(self, order_number: OrderNumber) -> bool:
        pass

    @abstractmethod
    async def search(self, criteria: OrderSearchCriteria) -> Tuple[List[Order], int]:
        """Return one page of matching orders and the total match count."""
        pass

    @abstractmethod
    async def totals(self, user_id: Optional[str] = None) -> OrderTotals:
        """Aggregate counts and paid revenue, optionally scoped to one user."""
        pass
