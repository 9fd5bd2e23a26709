"""
Domain exceptions.

Every business failure carries a stable machine-readable ``code``.
The API layer maps codes to HTTP status; the domain never knows HTTP.
"""
from typing import Optional


class OrderError(Exception):
    """Base class for order / payment domain errors."""

    code = "ORDER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# =============================================================================
# VALIDATION ERRORS (order is not created)
# =============================================================================

class EmptyCartError(OrderError):
    code = "EMPTY_CART"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class ProductUnavailableError(OrderError):
    code = "PRODUCT_UNAVAILABLE"

    def __init__(self, product_name: str, variant_name: Optional[str] = None):
        label = f"{product_name} ({variant_name})" if variant_name else product_name
        super().__init__(f"Product is no longer available: {label}")
        self.product_name = product_name
        self.variant_name = variant_name


class InsufficientStockError(OrderError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, variant_name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {variant_name}: requested {requested}, available {available}"
        )
        self.variant_name = variant_name
        self.requested = requested
        self.available = available


class UserNotFoundError(OrderError):
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__(f"User not found: {user_id}")


# =============================================================================
# LOOKUP / STATE ERRORS
# =============================================================================

class OrderNotFoundError(OrderError):
    code = "NOT_FOUND"

    def __init__(self, order_ref: str):
        super().__init__(f"Order not found: {order_ref}")
        self.order_ref = order_ref


class OrderNotCancellableError(OrderError):
    code = "NOT_CANCELLABLE"


class InvalidStatusTransitionError(OrderError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot change order status from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class ConcurrentModificationError(OrderError):
    """Raised when an order was changed by someone else between read and write."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} was modified concurrently")
        self.order_id = order_id


class OrderNumberConflictError(OrderError):
    """The store's unique constraint rejected an order number at insert."""

    code = "ORDER_NUMBER_CONFLICT"

    def __init__(self, order_number: str):
        super().__init__(f"Order number already in use: {order_number}")
        self.order_number = order_number


class OrderNumberExhaustedError(OrderError):
    code = "ORDER_NUMBER_EXHAUSTED"

    def __init__(self, attempts: int):
        super().__init__(f"Could not generate a unique order number after {attempts} attempts")


# =============================================================================
# PAYMENT GATEWAY ERRORS
# =============================================================================

class PaymentGatewayError(OrderError):
    """
    The gateway call itself failed (network, timeout, non-2xx, bad payload).

    Distinct from the gateway reporting a failed payment, which is a
    normal state and never raises.
    """

    code = "GATEWAY_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GatewayConfigurationError(PaymentGatewayError):
    code = "GATEWAY_NOT_CONFIGURED"


class CallbackValidationError(OrderError):
    """Inbound webhook failed signature or shape validation."""

    code = "INVALID_CALLBACK"


# =============================================================================
# ACCESS ERRORS (identity comes from the upstream auth layer)
# =============================================================================

class AuthenticationRequiredError(OrderError):
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AdminAccessRequiredError(OrderError):
    code = "FORBIDDEN"

    def __init__(self, message: str = "Administrator access required"):
        super().__init__(message)
