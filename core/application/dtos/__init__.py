"""Application DTOs."""

from .order_dto import (
    AddressDTO,
    CallbackAckDTO,
    CreateOrderRequest,
    CreateOrderResponse,
    CustomerDetailsDTO,
    OrderAnalyticsDTO,
    OrderDTO,
    OrderItemDTO,
    OrderListDTO,
    OrderStatsDTO,
    PaginationDTO,
    PaymentRedirectDTO,
    PaymentStatusDTO,
    UpdateOrderStatusRequest,
)
from .payment_dto import (
    CallbackPayload,
    CallbackResponse,
    GatewayOrder,
    GatewayOrderStatus,
    PaymentAttempt,
)

__all__ = [
    "AddressDTO",
    "CallbackAckDTO",
    "CallbackPayload",
    "CallbackResponse",
    "CreateOrderRequest",
    "CreateOrderResponse",
    "CustomerDetailsDTO",
    "GatewayOrder",
    "GatewayOrderStatus",
    "OrderAnalyticsDTO",
    "OrderDTO",
    "OrderItemDTO",
    "OrderListDTO",
    "OrderStatsDTO",
    "PaginationDTO",
    "PaymentAttempt",
    "PaymentRedirectDTO",
    "PaymentStatusDTO",
    "UpdateOrderStatusRequest",
]
