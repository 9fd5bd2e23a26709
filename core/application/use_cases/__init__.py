"""Application use cases."""
from .create_order_from_cart import (
    CreateOrderFromCartRequest,
    CreateOrderFromCartResponse,
    CreateOrderFromCartUseCase,
)

__all__ = [
    "CreateOrderFromCartRequest",
    "CreateOrderFromCartResponse",
    "CreateOrderFromCartUseCase",
]
