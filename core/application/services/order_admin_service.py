"""Administrative order operations."""

from decimal import Decimal
import logging

from sqlalchemy.ext.asyncio import async_sessionmaker

from core.application.dtos.order_dto import OrderAnalyticsDTO, OrderDTO, UpdateOrderStatusRequest
from core.domain.event_bus import EventBus
from core.domain.exceptions import OrderNotFoundError
from core.domain.value_objects import from_minor_units
from core.infrastructure.database.unit_of_work import create_uow


logger = logging.getLogger(__name__)


class OrderAdminService:
    """
    Lifecycle moves, fulfilment tracking and store-wide analytics.

    Payment-driven transitions stay with the reconciliation service;
    administrators move orders only along the fulfilment lifecycle.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        event_bus: EventBus,
        currency: str = "INR",
    ) -> None:
        self._session_factory = session_factory
        self.event_bus = event_bus
        self.currency = currency

    async def update_status(self, order_id: str, request: UpdateOrderStatusRequest) -> OrderDTO:
        """Apply a lifecycle transition and/or tracking details.

        Raises:
            OrderNotFoundError: Unknown order
            InvalidStatusTransitionError: Move not allowed from the current status
            OrderNotCancellableError: Cancelling a paid order
            ConcurrentModificationError: Order changed while being edited
        """
        async with create_uow(self._session_factory, self.currency) as uow:
            order = await uow.orders.find_by_id(order_id)
            if order is None:
                raise OrderNotFoundError(order_id)

            previous = order.status
            if request.status is not None:
                order.change_status(request.status)
            if any(
                value is not None
                for value in (request.tracking_number, request.tracking_url, request.estimated_delivery)
            ):
                order.update_tracking(
                    tracking_number=request.tracking_number,
                    tracking_url=request.tracking_url,
                    estimated_delivery=request.estimated_delivery,
                )

            await uow.orders.save(order)
            await uow.commit()

        logger.info(
            f"[{order.merchant_order_id}] Admin updated order {order.order_number}: "
            f"{previous.value} -> {order.status.value}"
        )
        events = order.get_domain_events()
        if events:
            await self.event_bus.publish_all(events)
            order.clear_domain_events()
        return OrderDTO.from_domain(order)

    async def get_analytics(self) -> OrderAnalyticsDTO:
        async with create_uow(self._session_factory, self.currency) as uow:
            totals = await uow.orders.totals()

        revenue = from_minor_units(totals.paid_revenue_minor_units)
        average = (
            (revenue / totals.paid_orders).quantize(Decimal("0.01"))
            if totals.paid_orders
            else Decimal("0.00")
        )
        return OrderAnalyticsDTO(
            total_orders=totals.total_orders,
            paid_orders=totals.paid_orders,
            revenue=revenue,
            average_paid_order_value=average,
            currency=self.currency,
            by_status=totals.by_status,
            by_payment_status=totals.by_payment_status,
        )
