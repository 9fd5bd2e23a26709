"""
Admin order endpoints.

Cross-user order listing, lifecycle/tracking updates and analytics.
Every route requires the admin role (X-User-Role: admin).
"""
from typing import Literal, Optional
import logging

from fastapi import APIRouter, Depends, Query

from api.dependencies import (
    get_order_admin_service,
    get_order_query_service,
    require_admin,
)
from core.application.dtos import (
    OrderAnalyticsDTO,
    OrderDTO,
    OrderListDTO,
    UpdateOrderStatusRequest,
)
from core.application.services import OrderAdminService, OrderQueryService
from core.domain.enums import OrderStatus, PaymentStatus


logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_admin)])


@router.get(
    "",
    response_model=OrderListDTO,
    summary="List orders across all users",
)
async def list_all_orders(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    order_status: Optional[OrderStatus] = Query(default=None, alias="status"),
    payment_status: Optional[PaymentStatus] = Query(default=None, alias="paymentStatus"),
    sort_by: Literal["createdAt", "total", "orderNumber"] = Query(default="createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    service: OrderQueryService = Depends(get_order_query_service),
):
    return await service.list_orders(
        user_id=None,
        page=page,
        limit=limit,
        status=order_status,
        payment_status=payment_status,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get(
    "/analytics",
    response_model=OrderAnalyticsDTO,
    summary="Order analytics",
)
async def get_analytics(
    service: OrderAdminService = Depends(get_order_admin_service),
):
    """Counts by status / payment status and revenue over paid orders."""
    return await service.get_analytics()


@router.patch(
    "/{order_id}/status",
    response_model=OrderDTO,
    summary="Update order status and tracking",
)
async def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    admin_id: str = Depends(require_admin),
    service: OrderAdminService = Depends(get_order_admin_service),
):
    """
    Move an order through its lifecycle and/or update tracking.

    **Errors:**
    - 400: transition not allowed, or cancelling a paid order
    - 404: order not found
    - 409: order changed concurrently
    """
    logger.info(f"[{order_id}] Admin {admin_id} updating order")
    return await service.update_status(order_id, body)
