"""Application DTOs for Order operations.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from core.domain.entities.order import Order, OrderItem
from core.domain.enums import OrderStatus, PaymentStatus
from core.domain.value_objects import Address, CustomerDetails


_CAMEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "str_strip_whitespace": True,
}


# =============================================================================
# SHARED
# =============================================================================

class AddressDTO(BaseModel):
    """Postal address; every field is required and non-blank."""

    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=30)
    address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    zip_code: str = Field(..., min_length=1, max_length=20)

    model_config = _CAMEL_CONFIG

    def to_domain(self) -> Address:
        return Address(
            name=self.name,
            phone=self.phone,
            address=self.address,
            city=self.city,
            state=self.state,
            country=self.country,
            zip_code=self.zip_code,
        )

    @classmethod
    def from_domain(cls, address: Optional[Address]) -> Optional["AddressDTO"]:
        if address is None:
            return None
        return cls(**address.to_dict())


class CustomerDetailsDTO(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=30)

    model_config = _CAMEL_CONFIG

    def to_domain(self) -> CustomerDetails:
        return CustomerDetails(name=self.name, email=self.email, phone=self.phone)


# =============================================================================
# REQUESTS
# =============================================================================

class CreateOrderRequest(BaseModel):
    """Checkout request. Items always come from the user's cart."""

    customer_details: Optional[CustomerDetailsDTO] = None
    shipping_address: Optional[AddressDTO] = None
    billing_address: Optional[AddressDTO] = None
    notes: Optional[str] = Field(None, max_length=1000)
    redirect_url: str = Field(..., min_length=1, description="Where the gateway returns the customer")

    model_config = _CAMEL_CONFIG


class UpdateOrderStatusRequest(BaseModel):
    """Admin lifecycle / fulfilment update."""

    status: Optional[OrderStatus] = None
    tracking_number: Optional[str] = Field(None, max_length=100)
    tracking_url: Optional[str] = Field(None, max_length=500)
    estimated_delivery: Optional[datetime] = None

    model_config = _CAMEL_CONFIG


# =============================================================================
# RESPONSES
# =============================================================================

class OrderItemDTO(BaseModel):
    product_id: str
    variant_id: str
    product_name: str
    variant_name: str
    sku: Optional[str] = None
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=0, description="Unit price at order time")
    total_price: Decimal = Field(..., ge=0)

    model_config = {**_CAMEL_CONFIG, "frozen": True}

    @classmethod
    def from_domain(cls, item: OrderItem) -> "OrderItemDTO":
        return cls(
            product_id=item.product_id,
            variant_id=item.variant_id,
            product_name=item.product_name,
            variant_name=item.variant_name,
            sku=item.sku,
            quantity=item.quantity,
            price=item.price.amount,
            total_price=item.total_price.amount,
        )


class PricingDTO(BaseModel):
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    shipping_cost: Decimal
    total: Decimal
    currency: str

    model_config = {**_CAMEL_CONFIG, "frozen": True}


class PaymentDetailsDTO(BaseModel):
    payment_method: str
    merchant_order_id: str
    gateway_order_id: Optional[str] = None
    gateway_transaction_id: Optional[str] = None
    amount: int = Field(..., ge=0, description="Amount in minor units")
    currency: str
    status: PaymentStatus
    failure_reason: Optional[str] = None
    payment_timestamp: Optional[datetime] = None

    model_config = {**_CAMEL_CONFIG, "frozen": True}


class OrderDTO(BaseModel):
    """Response DTO for order details."""

    id: str
    order_number: str
    user_id: str
    status: OrderStatus
    items: List[OrderItemDTO] = Field(default_factory=list)
    pricing: PricingDTO
    payment_details: PaymentDetailsDTO
    customer_details: CustomerDetailsDTO
    shipping_address: Optional[AddressDTO] = None
    billing_address: Optional[AddressDTO] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {**_CAMEL_CONFIG, "frozen": True}

    @classmethod
    def from_domain(cls, order: Order) -> "OrderDTO":
        pricing = order.pricing
        payment = order.payment_details
        customer = order.customer_details
        return cls(
            id=order.id,
            order_number=order.order_number.value,
            user_id=order.user_id,
            status=order.status,
            items=[OrderItemDTO.from_domain(item) for item in order.items],
            pricing=PricingDTO(
                subtotal=pricing.subtotal.amount,
                tax=pricing.tax.amount,
                discount=pricing.discount.amount,
                shipping_cost=pricing.shipping_cost.amount,
                total=pricing.total.amount,
                currency=pricing.total.currency,
            ),
            payment_details=PaymentDetailsDTO(
                payment_method=payment.payment_method,
                merchant_order_id=payment.merchant_order_id.value,
                gateway_order_id=payment.gateway_order_id,
                gateway_transaction_id=payment.gateway_transaction_id,
                amount=payment.amount,
                currency=payment.currency,
                status=payment.status,
                failure_reason=payment.failure_reason,
                payment_timestamp=payment.payment_timestamp,
            ),
            # Snapshots are stored as captured; skip re-validating them here
            customer_details=CustomerDetailsDTO.model_construct(
                name=customer.name, email=customer.email, phone=customer.phone
            ),
            shipping_address=AddressDTO.from_domain(order.shipping_address),
            billing_address=AddressDTO.from_domain(order.billing_address),
            notes=order.notes,
            tracking_number=order.tracking_number,
            tracking_url=order.tracking_url,
            estimated_delivery=order.estimated_delivery,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class PaymentRedirectDTO(BaseModel):
    merchant_order_id: str
    gateway_order_id: str
    redirect_url: str
    expire_at: Optional[int] = None

    model_config = {**_CAMEL_CONFIG, "frozen": True}


class CreateOrderResponse(BaseModel):
    order: OrderDTO
    payment: PaymentRedirectDTO

    model_config = {**_CAMEL_CONFIG, "frozen": True}


class PaginationDTO(BaseModel):
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=0)

    model_config = {"frozen": True}

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationDTO":
        return cls(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit)


class OrderListDTO(BaseModel):
    """DTO for listing orders."""

    orders: List[OrderDTO] = Field(default_factory=list)
    pagination: PaginationDTO

    model_config = {"frozen": True}


class PaymentStatusDTO(BaseModel):
    """Result of a client-driven payment status poll."""

    order_id: str
    order_number: str
    status: OrderStatus
    payment_status: PaymentStatus
    gateway_state: Optional[str] = None
    amount: Decimal
    transaction_id: Optional[str] = None
    gateway_reachable: bool = True
    message: Optional[str] = None

    model_config = {**_CAMEL_CONFIG, "frozen": True}


class CallbackAckDTO(BaseModel):
    success: bool = True
    merchant_order_id: str
    status: OrderStatus
    payment_status: PaymentStatus

    model_config = {**_CAMEL_CONFIG, "frozen": True}


class OrderStatsDTO(BaseModel):
    """Per-user order statistics."""

    total_orders: int
    total_spent: Decimal
    average_order_value: Decimal
    status_counts: Dict[str, int] = Field(default_factory=dict)

    model_config = {**_CAMEL_CONFIG, "frozen": True}


class OrderAnalyticsDTO(BaseModel):
    """Store-wide order analytics for administrators."""

    total_orders: int
    paid_orders: int
    revenue: Decimal
    average_paid_order_value: Decimal
    currency: str
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_payment_status: Dict[str, int] = Field(default_factory=dict)

    model_config = {**_CAMEL_CONFIG, "frozen": True}
