"""
SQLAlchemy Order Repository Implementation.

Implements OrderRepository with async SQLAlchemy. Updates are
conditional on the order's version so concurrent writers cannot
silently overwrite each other.
"""
from typing import List, Optional, Tuple
import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.domain.entities.order import Order
from core.domain.enums import PaymentStatus
from core.domain.exceptions import ConcurrentModificationError, OrderNumberConflictError
from core.domain.repositories import OrderRepository, OrderSearchCriteria, OrderTotals
from core.domain.value_objects import OrderNumber
from core.infrastructure.database.mappers import OrderMapper
from core.infrastructure.database.models import OrderModel


logger = logging.getLogger(__name__)


_SORT_COLUMNS = {
    "createdAt": OrderModel.created_at,
    "total": OrderModel.total,
    "orderNumber": OrderModel.order_number,
}


class SQLAlchemyOrderRepository(OrderRepository):
    """
    SQLAlchemy implementation of OrderRepository.

    Commit is handled by the Unit of Work; methods here only flush.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def add(self, order: Order) -> None:
        """
        Insert a new order with its items.

        Raises:
            OrderNumberConflictError: order_number unique constraint hit
        """
        self.session.add(OrderMapper.to_persistence(order))
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            if "order_number" in str(e.orig):
                raise OrderNumberConflictError(order.order_number.value) from e
            raise
        logger.info(f"[{order.order_number}] ✅ Order inserted")

    async def save(self, order: Order) -> None:
        """
        Conditionally update an existing order.

        Raises:
            ConcurrentModificationError: version no longer matches
        """
        expected = order.version
        result = await self.session.execute(
            update(OrderModel)
            .where(OrderModel.id == order.id, OrderModel.version == expected)
            .values(version=expected + 1, **OrderMapper.mutable_columns(order))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(
                f"[{order.order_number}] Version conflict (expected v{expected})"
            )
            raise ConcurrentModificationError(order.id)

        order.version = expected + 1

    async def find_by_id(self, order_id: str) -> Optional[Order]:
        result = await self.session.execute(
            self._select_with_items().where(OrderModel.id == order_id)
        )
        model = result.scalar_one_or_none()
        return OrderMapper.to_domain(model) if model else None

    async def find_by_merchant_order_id(self, merchant_order_id: str) -> Optional[Order]:
        result = await self.session.execute(
            self._select_with_items().where(OrderModel.merchant_order_id == merchant_order_id)
        )
        model = result.scalar_one_or_none()
        return OrderMapper.to_domain(model) if model else None

    async def order_number_exists(self, order_number: OrderNumber) -> bool:
        result = await self.session.execute(
            select(OrderModel.id).where(OrderModel.order_number == order_number.value)
        )
        return result.first() is not None

    async def search(self, criteria: OrderSearchCriteria) -> Tuple[List[Order], int]:
        """
        Filtered, sorted, paginated listing.

        Returns:
            (orders on this page, total matching orders)
        """
        conditions = []
        if criteria.user_id is not None:
            conditions.append(OrderModel.user_id == criteria.user_id)
        if criteria.status is not None:
            conditions.append(OrderModel.status == criteria.status.value)
        if criteria.payment_status is not None:
            conditions.append(OrderModel.payment_status == criteria.payment_status.value)

        total = await self.session.scalar(
            select(func.count()).select_from(OrderModel).where(*conditions)
        )

        sort_column = _SORT_COLUMNS[criteria.sort_by]
        ordering = sort_column.desc() if criteria.descending else sort_column.asc()
        result = await self.session.execute(
            self._select_with_items()
            .where(*conditions)
            .order_by(ordering, OrderModel.id)
            .offset(criteria.offset)
            .limit(criteria.limit)
        )
        orders = [OrderMapper.to_domain(model) for model in result.scalars().all()]
        return orders, int(total or 0)

    async def totals(self, user_id: Optional[str] = None) -> OrderTotals:
        scope = [OrderModel.user_id == user_id] if user_id is not None else []

        by_status = {
            status: count
            for status, count in (
                await self.session.execute(
                    select(OrderModel.status, func.count())
                    .where(*scope)
                    .group_by(OrderModel.status)
                )
            ).all()
        }
        by_payment_status = {
            status: count
            for status, count in (
                await self.session.execute(
                    select(OrderModel.payment_status, func.count())
                    .where(*scope)
                    .group_by(OrderModel.payment_status)
                )
            ).all()
        }
        paid_count, paid_revenue = (
            await self.session.execute(
                select(func.count(), func.coalesce(func.sum(OrderModel.payment_amount), 0))
                .where(*scope, OrderModel.payment_status == PaymentStatus.COMPLETED.value)
            )
        ).one()

        return OrderTotals(
            total_orders=sum(by_status.values()),
            by_status=by_status,
            by_payment_status=by_payment_status,
            paid_orders=int(paid_count),
            paid_revenue_minor_units=int(paid_revenue),
        )

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    @staticmethod
    def _select_with_items():
        # populate_existing: a reload after a version conflict must see fresh rows
        return (
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .execution_options(populate_existing=True)
        )
