"""Static mappers for domain entities <-> database models."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from core.domain.entities.catalog import CartLine, Product, UserProfile, Variant
from core.domain.entities.order import Order, OrderItem, PaymentDetails, Pricing
from core.domain.enums import OrderStatus, PaymentStatus
from core.domain.value_objects import (
    Address,
    CustomerDetails,
    MerchantOrderId,
    Money,
    OrderNumber,
)

from .models import (
    CartItemModel,
    OrderItemModel,
    OrderModel,
    ProductModel,
    UserModel,
    VariantModel,
)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; every stored timestamp is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _money(amount: Any, currency: str) -> Money:
    return Money(amount=Decimal(str(amount)), currency=currency)


class OrderItemMapper:
    """Static mapper for OrderItem <-> OrderItemModel transformation."""

    @staticmethod
    def to_domain(model: OrderItemModel, currency: str) -> OrderItem:
        return OrderItem(
            product_id=model.product_id,
            variant_id=model.variant_id,
            quantity=model.quantity,
            price=_money(model.price, currency),
            total_price=_money(model.total_price, currency),
            product_name=model.product_name,
            variant_name=model.variant_name,
            sku=model.sku,
        )

    @staticmethod
    def to_persistence(entity: OrderItem, position: int) -> OrderItemModel:
        return OrderItemModel(
            position=position,
            product_id=entity.product_id,
            variant_id=entity.variant_id,
            product_name=entity.product_name,
            variant_name=entity.variant_name,
            sku=entity.sku,
            quantity=entity.quantity,
            price=entity.price.amount,
            total_price=entity.total_price.amount,
        )


class OrderMapper:
    """Static mapper for Order <-> OrderModel transformation with nested items."""

    @staticmethod
    def to_domain(model: OrderModel) -> Order:
        """Convert ORM model to domain aggregate (with nested items).

        Args:
            model: OrderModel instance with items loaded

        Returns:
            Order domain aggregate
        """
        currency = model.currency
        return Order(
            id=model.id,
            order_number=OrderNumber(value=model.order_number),
            user_id=model.user_id,
            items=[OrderItemMapper.to_domain(item, currency) for item in model.items],
            pricing=Pricing(
                subtotal=_money(model.subtotal, currency),
                tax=_money(model.tax, currency),
                discount=_money(model.discount, currency),
                shipping_cost=_money(model.shipping_cost, currency),
                total=_money(model.total, currency),
            ),
            payment_details=PaymentDetails(
                payment_method=model.payment_method,
                merchant_order_id=MerchantOrderId(value=model.merchant_order_id),
                amount=int(model.payment_amount),
                currency=model.payment_currency,
                status=PaymentStatus(model.payment_status),
                gateway_order_id=model.gateway_order_id,
                gateway_transaction_id=model.gateway_transaction_id,
                failure_reason=model.failure_reason,
                gateway_raw_response=model.gateway_raw_response,
                payment_timestamp=_aware(model.payment_timestamp),
            ),
            customer_details=CustomerDetails.from_dict(model.customer_details or {}),
            shipping_address=Address.from_dict(model.shipping_address),
            billing_address=Address.from_dict(model.billing_address),
            status=OrderStatus(model.status),
            notes=model.notes,
            tracking_number=model.tracking_number,
            tracking_url=model.tracking_url,
            estimated_delivery=_aware(model.estimated_delivery),
            created_at=_aware(model.created_at),
            updated_at=_aware(model.updated_at),
            version=model.version,
        )

    @staticmethod
    def to_persistence(entity: Order) -> OrderModel:
        """Convert a new domain aggregate to an ORM model (with items)."""
        model = OrderModel(
            id=entity.id,
            order_number=entity.order_number.value,
            user_id=entity.user_id,
            currency=entity.pricing.total.currency,
            customer_details=entity.customer_details.to_dict(),
            created_at=entity.created_at,
            version=entity.version,
            **OrderMapper.mutable_columns(entity),
        )
        model.subtotal = entity.pricing.subtotal.amount
        model.tax = entity.pricing.tax.amount
        model.discount = entity.pricing.discount.amount
        model.shipping_cost = entity.pricing.shipping_cost.amount
        model.total = entity.pricing.total.amount
        model.payment_method = entity.payment_details.payment_method
        model.merchant_order_id = entity.merchant_order_id
        model.payment_amount = entity.payment_details.amount
        model.payment_currency = entity.payment_details.currency
        model.shipping_address = entity.shipping_address.to_dict() if entity.shipping_address else None
        model.billing_address = entity.billing_address.to_dict() if entity.billing_address else None
        model.items = [
            OrderItemMapper.to_persistence(item, position)
            for position, item in enumerate(entity.items)
        ]
        return model

    @staticmethod
    def mutable_columns(entity: Order) -> Dict[str, Any]:
        """Columns that may change after creation (used by conditional updates)."""
        payment = entity.payment_details
        return {
            "status": entity.status.value,
            "gateway_order_id": payment.gateway_order_id,
            "gateway_transaction_id": payment.gateway_transaction_id,
            "payment_status": payment.status.value,
            "failure_reason": payment.failure_reason,
            "gateway_raw_response": payment.gateway_raw_response,
            "payment_timestamp": payment.payment_timestamp,
            "notes": entity.notes,
            "tracking_number": entity.tracking_number,
            "tracking_url": entity.tracking_url,
            "estimated_delivery": entity.estimated_delivery,
            "updated_at": entity.updated_at,
        }


class CatalogMapper:
    """Read-only mappers for collaborator tables."""

    @staticmethod
    def user_to_domain(model: UserModel) -> UserProfile:
        return UserProfile(id=model.id, name=model.name, email=model.email, phone=model.phone)

    @staticmethod
    def product_to_domain(model: Optional[ProductModel]) -> Optional[Product]:
        if model is None:
            return None
        return Product(id=model.id, name=model.name, is_active=model.is_active)

    @staticmethod
    def variant_to_domain(model: Optional[VariantModel], currency: str) -> Optional[Variant]:
        if model is None:
            return None
        return Variant(
            id=model.id,
            product_id=model.product_id,
            name=model.name,
            sku=model.sku,
            price=_money(model.price, currency),
            stock=model.stock,
            is_active=model.is_active,
        )

    @staticmethod
    def cart_line_to_domain(model: CartItemModel, currency: str) -> CartLine:
        return CartLine(
            product_id=model.product_id,
            variant_id=model.variant_id,
            quantity=model.quantity,
            product=CatalogMapper.product_to_domain(model.product),
            variant=CatalogMapper.variant_to_domain(model.variant, currency),
        )
