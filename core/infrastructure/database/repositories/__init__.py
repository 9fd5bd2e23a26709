"""SQLAlchemy repository implementations."""

from .sqlalchemy_catalog_repository import (
    SQLAlchemyCartRepository,
    SQLAlchemyStockRepository,
    SQLAlchemyUserRepository,
)
from .sqlalchemy_order_repository import SQLAlchemyOrderRepository

__all__ = [
    "SQLAlchemyCartRepository",
    "SQLAlchemyOrderRepository",
    "SQLAlchemyStockRepository",
    "SQLAlchemyUserRepository",
]
