"""Repository interfaces."""

from .catalog_repository import CartRepository, StockRepository, UserRepository
from .order_repository import OrderRepository, OrderSearchCriteria, OrderTotals

__all__ = [
    "CartRepository",
    "OrderRepository",
    "OrderSearchCriteria",
    "OrderTotals",
    "StockRepository",
    "UserRepository",
]
