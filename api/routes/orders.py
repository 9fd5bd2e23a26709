"""
Order endpoints.

Checkout, payment callback, payment status polling, order reads and
cancellation. All routes except the gateway callback act on behalf of
the user identified by the X-User-Id header.
"""
from typing import Literal, Optional
import logging

from fastapi import APIRouter, Depends, Header, Query, Request, status

from api.dependencies import (
    get_create_order_use_case,
    get_current_user_id,
    get_order_query_service,
    get_reconciliation_service,
)
from core.application.dtos import (
    CallbackAckDTO,
    CreateOrderRequest,
    CreateOrderResponse,
    OrderDTO,
    OrderListDTO,
    OrderStatsDTO,
    PaymentRedirectDTO,
    PaymentStatusDTO,
)
from core.application.services import OrderQueryService, PaymentReconciliationService
from core.application.use_cases import CreateOrderFromCartRequest, CreateOrderFromCartUseCase
from core.domain.enums import OrderStatus, PaymentStatus


logger = logging.getLogger(__name__)
router = APIRouter()


# =============================================================================
# CHECKOUT
# =============================================================================

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=CreateOrderResponse,
    summary="Create order from cart",
    description="Create a pending order from the user's cart and open a payment session",
)
async def create_order(
    body: CreateOrderRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: CreateOrderFromCartUseCase = Depends(get_create_order_use_case),
):
    """
    Create an order from the current cart.

    **Returns:**
    - The created order and the gateway redirect URL

    **Errors:**
    - 400: empty cart, unavailable product, insufficient stock
    - 500: payment gateway failure (order is kept with payment failed)
    """
    result = await use_case.execute(
        CreateOrderFromCartRequest(
            user_id=user_id,
            redirect_url=body.redirect_url,
            customer_details=body.customer_details.to_domain() if body.customer_details else None,
            shipping_address=body.shipping_address.to_domain() if body.shipping_address else None,
            billing_address=body.billing_address.to_domain() if body.billing_address else None,
            notes=body.notes,
        )
    )
    order = result.order
    return CreateOrderResponse(
        order=OrderDTO.from_domain(order),
        payment=PaymentRedirectDTO(
            merchant_order_id=order.merchant_order_id,
            gateway_order_id=result.gateway_order.gateway_order_id,
            redirect_url=result.gateway_order.redirect_url,
            expire_at=result.gateway_order.expire_at,
        ),
    )


# =============================================================================
# PAYMENT CALLBACK / STATUS
# =============================================================================

@router.post(
    "/payment-callback",
    response_model=CallbackAckDTO,
    summary="Payment gateway webhook",
)
async def payment_callback(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    service: PaymentReconciliationService = Depends(get_reconciliation_service),
):
    """
    Gateway webhook. Authenticated by the gateway's Authorization header,
    not by user identity.
    """
    raw_body = await request.body()
    order = await service.handle_payment_callback(authorization, raw_body)
    return CallbackAckDTO(
        merchant_order_id=order.merchant_order_id,
        status=order.status,
        payment_status=order.payment_status,
    )


@router.get(
    "/stats",
    response_model=OrderStatsDTO,
    summary="Order statistics for the current user",
)
async def get_order_stats(
    user_id: str = Depends(get_current_user_id),
    service: OrderQueryService = Depends(get_order_query_service),
):
    return await service.get_stats(user_id)


@router.get(
    "/{order_id}/payment-status",
    response_model=PaymentStatusDTO,
    summary="Poll payment status",
)
async def check_payment_status(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PaymentReconciliationService = Depends(get_reconciliation_service),
):
    """
    Query the gateway and reconcile the order.

    If the gateway is unreachable the last known status is returned with
    `gatewayReachable: false`.
    """
    return await service.check_payment_status(order_id, user_id)


# =============================================================================
# READS
# =============================================================================

@router.get(
    "",
    response_model=OrderListDTO,
    summary="List the current user's orders",
)
async def list_orders(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, description="Page size (capped)"),
    order_status: Optional[OrderStatus] = Query(default=None, alias="status"),
    payment_status: Optional[PaymentStatus] = Query(default=None, alias="paymentStatus"),
    sort_by: Literal["createdAt", "total", "orderNumber"] = Query(default="createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    user_id: str = Depends(get_current_user_id),
    service: OrderQueryService = Depends(get_order_query_service),
):
    return await service.list_orders(
        user_id=user_id,
        page=page,
        limit=limit,
        status=order_status,
        payment_status=payment_status,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get(
    "/{order_id}",
    response_model=OrderDTO,
    summary="Get order by ID",
)
async def get_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    service: OrderQueryService = Depends(get_order_query_service),
):
    return await service.get_order(order_id, user_id)


# =============================================================================
# CANCELLATION
# =============================================================================

@router.put(
    "/{order_id}/cancel",
    response_model=OrderDTO,
    summary="Cancel an unpaid order",
)
async def cancel_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PaymentReconciliationService = Depends(get_reconciliation_service),
):
    order = await service.cancel_order(order_id, user_id)
    return OrderDTO.from_domain(order)
