"""
Unit of Work Pattern Implementation.

Manages database transactions and repository lifecycle.
"""
from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.infrastructure.database.repositories import (
    SQLAlchemyCartRepository,
    SQLAlchemyOrderRepository,
    SQLAlchemyStockRepository,
    SQLAlchemyUserRepository,
)


logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Unit of Work pattern implementation.

    Owns one session per ``async with`` block and exposes the
    repositories that share it. Nothing is written until commit();
    leaving the block on an exception rolls back.

    Usage:
        async with create_uow(session_factory) as uow:
            order = await uow.orders.find_by_id(order_id)
            order.cancel()
            await uow.orders.save(order)
            await uow.commit()
    """

    def __init__(self, session_factory: async_sessionmaker, currency: str = "INR") -> None:
        """
        Initialize Unit of Work.

        Args:
            session_factory: SQLAlchemy async session factory
            currency: Currency catalog prices are denominated in
        """
        self._session_factory = session_factory
        self._currency = currency
        self._session: Optional[AsyncSession] = None

        # Lazy-loaded repositories
        self._orders: Optional[SQLAlchemyOrderRepository] = None
        self._users: Optional[SQLAlchemyUserRepository] = None
        self._carts: Optional[SQLAlchemyCartRepository] = None
        self._stock: Optional[SQLAlchemyStockRepository] = None

    async def __aenter__(self) -> "UnitOfWork":
        """Start transaction scope."""
        self._session = self._session_factory()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Roll back on exception, then release the session."""
        try:
            if exc_type is not None:
                logger.debug(f"Rolling back transaction: {exc_type.__name__}")
                await self._session.rollback()
        finally:
            await self._session.close()
            self._session = None
            self._orders = self._users = self._carts = self._stock = None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("UnitOfWork not initialized. Use async context manager.")
        return self._session

    @property
    def orders(self) -> SQLAlchemyOrderRepository:
        if self._orders is None:
            self._orders = SQLAlchemyOrderRepository(self.session)
        return self._orders

    @property
    def users(self) -> SQLAlchemyUserRepository:
        if self._users is None:
            self._users = SQLAlchemyUserRepository(self.session)
        return self._users

    @property
    def carts(self) -> SQLAlchemyCartRepository:
        if self._carts is None:
            self._carts = SQLAlchemyCartRepository(self.session, currency=self._currency)
        return self._carts

    @property
    def stock(self) -> SQLAlchemyStockRepository:
        if self._stock is None:
            self._stock = SQLAlchemyStockRepository(self.session)
        return self._stock

    async def commit(self) -> None:
        """Commit transaction."""
        try:
            await self.session.commit()
            logger.debug("✅ Transaction committed")
        except Exception as e:
            logger.error(f"❌ Commit failed: {e}")
            await self.rollback()
            raise

    async def rollback(self) -> None:
        """Rollback transaction."""
        await self.session.rollback()


def create_uow(session_factory: async_sessionmaker, currency: str = "INR") -> UnitOfWork:
    """Create a new Unit of Work instance.

    Args:
        session_factory: SQLAlchemy async session factory
        currency: Catalog currency

    Returns:
        UnitOfWork instance
    """
    return UnitOfWork(session_factory, currency=currency)
