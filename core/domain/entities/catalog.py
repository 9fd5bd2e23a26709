"""
Catalog, cart and user read models.

These are owned by other parts of the storefront. Checkout only reads
them (and decrements stock / clears the cart on confirmation).
"""
from dataclasses import dataclass
from typing import Optional

from ..value_objects import Money


@dataclass
class Product:
    id: str
    name: str
    is_active: bool = True


@dataclass
class Variant:
    id: str
    product_id: str
    name: str
    price: Money
    stock: int
    sku: Optional[str] = None
    is_active: bool = True


@dataclass
class CartLine:
    """
    One cart entry with its product and variant resolved.

    product / variant are None when the referenced record has been removed.
    """
    product_id: str
    variant_id: str
    quantity: int
    product: Optional[Product] = None
    variant: Optional[Variant] = None


@dataclass
class UserProfile:
    id: str
    name: str
    email: str
    phone: Optional[str] = None
