"""
SQLAlchemy ORM Models.

Maps domain entities to database tables. The catalog / cart / user
tables are owned by other parts of the storefront; checkout reads them
and only ever touches variant stock and cart rows.
"""
from datetime import datetime, timezone
import uuid

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship


Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ACCOUNT / CATALOG / CART
# =============================================================================

class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(30), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    cart_items = relationship("CartItemModel", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<UserModel(id={self.id}, email={self.email})>"


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(500), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    variants = relationship("VariantModel", back_populates="product")

    def __repr__(self):
        return f"<ProductModel(id={self.id}, name={self.name})>"


class VariantModel(Base):
    __tablename__ = "variants"

    id = Column(String(36), primary_key=True, default=_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    sku = Column(String(100), nullable=True, unique=True)
    price = Column(Numeric(12, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    product = relationship("ProductModel", back_populates="variants")

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_variants_stock_non_negative"),
    )

    def __repr__(self):
        return f"<VariantModel(id={self.id}, name={self.name}, stock={self.stock})>"


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    variant_id = Column(String(36), ForeignKey("variants.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    user = relationship("UserModel", back_populates="cart_items")
    product = relationship("ProductModel")
    variant = relationship("VariantModel")

    __table_args__ = (
        UniqueConstraint("user_id", "variant_id", name="uq_cart_items_user_variant"),
    )

    def __repr__(self):
        return f"<CartItemModel(user={self.user_id}, variant={self.variant_id}, qty={self.quantity})>"


# =============================================================================
# ORDER MODEL
# =============================================================================

class OrderModel(Base):
    """
    Order database model.

    Pricing and the payment sub-record are flattened into columns;
    customer / address snapshots and the raw gateway reply are JSON.
    """

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    order_number = Column(String(8), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="pending", index=True)

    # Pricing snapshot
    subtotal = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_cost = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")

    # Payment sub-record
    payment_method = Column(String(30), nullable=False, default="phonepe")
    merchant_order_id = Column(String(64), nullable=False)
    gateway_order_id = Column(String(100), nullable=True)
    gateway_transaction_id = Column(String(100), nullable=True)
    payment_amount = Column(BigInteger, nullable=False)
    payment_currency = Column(String(3), nullable=False, default="INR")
    payment_status = Column(String(20), nullable=False, default="pending", index=True)
    failure_reason = Column(Text, nullable=True)
    gateway_raw_response = Column(JSON, nullable=True)
    payment_timestamp = Column(DateTime(timezone=True), nullable=True)

    # Snapshots
    customer_details = Column(JSON, nullable=False)
    shipping_address = Column(JSON, nullable=True)
    billing_address = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)

    # Fulfilment
    tracking_number = Column(String(100), nullable=True)
    tracking_url = Column(String(500), nullable=True)
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Optimistic concurrency token
    version = Column(Integer, nullable=False, default=0)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.position",
    )

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_orders_order_number"),
        UniqueConstraint("merchant_order_id", name="uq_orders_merchant_order_id"),
        Index("ix_orders_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<OrderModel(id={self.id}, order_number={self.order_number}, status={self.status})>"


class OrderItemModel(Base):
    """Line item snapshot; never updated after the order is created."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    product_id = Column(String(36), nullable=False)
    variant_id = Column(String(36), nullable=False, index=True)
    product_name = Column(String(500), nullable=False, default="")
    variant_name = Column(String(200), nullable=False, default="")
    sku = Column(String(100), nullable=True)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")

    def __repr__(self):
        return f"<OrderItemModel(id={self.id}, variant={self.variant_id}, quantity={self.quantity})>"
