"""Read-side application service for orders."""

from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from core.application.dtos.order_dto import OrderDTO, OrderListDTO, OrderStatsDTO, PaginationDTO
from core.domain.enums import OrderStatus, PaymentStatus
from core.domain.exceptions import OrderNotFoundError
from core.domain.repositories import OrderSearchCriteria
from core.domain.value_objects import from_minor_units
from core.infrastructure.database.unit_of_work import create_uow


class OrderQueryService:
    """
    Order reads: single order, filtered listings and statistics.

    Every user-facing read is scoped to the owning user; passing
    ``user_id=None`` to list_orders lists across users (admin only).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        default_page_size: int = 10,
        max_page_size: int = 100,
        currency: str = "INR",
    ) -> None:
        self._session_factory = session_factory
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.currency = currency

    async def get_order(self, order_id: str, user_id: Optional[str]) -> OrderDTO:
        """Get one order.

        Args:
            order_id: Order storage id
            user_id: Owner to scope to, or None for an administrator

        Raises:
            OrderNotFoundError: Missing, or owned by someone else
        """
        async with create_uow(self._session_factory, self.currency) as uow:
            order = await uow.orders.find_by_id(order_id)

        if order is None or (user_id is not None and order.user_id != user_id):
            raise OrderNotFoundError(order_id)
        return OrderDTO.from_domain(order)

    async def list_orders(
        self,
        user_id: Optional[str],
        page: int = 1,
        limit: Optional[int] = None,
        status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> OrderListDTO:
        """List orders with the standard pagination envelope."""
        page = max(page, 1)
        limit = min(max(limit or self.default_page_size, 1), self.max_page_size)
        criteria = OrderSearchCriteria(
            user_id=user_id,
            status=status,
            payment_status=payment_status,
            sort_by=sort_by,
            descending=sort_order != "asc",
            offset=(page - 1) * limit,
            limit=limit,
        )

        async with create_uow(self._session_factory, self.currency) as uow:
            orders, total = await uow.orders.search(criteria)

        return OrderListDTO(
            orders=[OrderDTO.from_domain(order) for order in orders],
            pagination=PaginationDTO.build(page=page, limit=limit, total=total),
        )

    async def get_stats(self, user_id: str) -> OrderStatsDTO:
        """Spending statistics over the user's paid orders plus status counts."""
        async with create_uow(self._session_factory, self.currency) as uow:
            totals = await uow.orders.totals(user_id=user_id)

        total_spent = from_minor_units(totals.paid_revenue_minor_units)
        average = (
            (total_spent / totals.paid_orders).quantize(Decimal("0.01"))
            if totals.paid_orders
            else Decimal("0.00")
        )
        return OrderStatsDTO(
            total_orders=totals.total_orders,
            total_spent=total_spent,
            average_order_value=average,
            status_counts=totals.by_status,
        )
