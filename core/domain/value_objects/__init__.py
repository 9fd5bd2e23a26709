"""Domain value objects."""

from .order_number import ORDER_NUMBER_LENGTH, OrderNumber
from .value_objects import (
    Address,
    CustomerDetails,
    MerchantOrderId,
    Money,
    from_minor_units,
    to_minor_units,
)

__all__ = [
    "ORDER_NUMBER_LENGTH",
    "Address",
    "CustomerDetails",
    "MerchantOrderId",
    "Money",
    "OrderNumber",
    "from_minor_units",
    "to_minor_units",
]
