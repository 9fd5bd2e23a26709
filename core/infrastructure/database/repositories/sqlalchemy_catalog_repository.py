"""
SQLAlchemy repositories for the user, cart and stock collaborators.
"""
from typing import List, Optional
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.domain.entities.catalog import CartLine, UserProfile
from core.domain.repositories import CartRepository, StockRepository, UserRepository
from core.infrastructure.database.mappers import CatalogMapper
from core.infrastructure.database.models import CartItemModel, UserModel, VariantModel


logger = logging.getLogger(__name__)


class SQLAlchemyUserRepository(UserRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        model = await self.session.get(UserModel, user_id)
        return CatalogMapper.user_to_domain(model) if model else None


class SQLAlchemyCartRepository(CartRepository):

    def __init__(self, session: AsyncSession, currency: str = "INR"):
        self.session = session
        self.currency = currency

    async def get_lines(self, user_id: str) -> List[CartLine]:
        result = await self.session.execute(
            select(CartItemModel)
            .options(
                selectinload(CartItemModel.product),
                selectinload(CartItemModel.variant),
            )
            .where(CartItemModel.user_id == user_id)
            .order_by(CartItemModel.id)
        )
        return [
            CatalogMapper.cart_line_to_domain(model, self.currency)
            for model in result.scalars().all()
        ]

    async def clear(self, user_id: str) -> int:
        result = await self.session.execute(
            delete(CartItemModel)
            .where(CartItemModel.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


class SQLAlchemyStockRepository(StockRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def decrement(self, variant_id: str, quantity: int) -> int:
        """
        Take ``quantity`` units from a variant's stock.

        The decrement is guarded by ``stock >= quantity``. When the guard
        fails (sold out between checkout and payment) stock is floored at
        zero and the uncovered units are returned.
        """
        result = await self.session.execute(
            update(VariantModel)
            .where(VariantModel.id == variant_id, VariantModel.stock >= quantity)
            .values(stock=VariantModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            return 0

        available = await self.session.scalar(
            select(VariantModel.stock).where(VariantModel.id == variant_id)
        )
        if available is None:
            logger.error(f"Stock decrement for missing variant {variant_id}")
            return quantity

        await self.session.execute(
            update(VariantModel)
            .where(VariantModel.id == variant_id)
            .values(stock=0)
            .execution_options(synchronize_session=False)
        )
        return quantity - available
