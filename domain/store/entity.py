"""
商店领域实体 - 客户、商品、购物车
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
import uuid

from domain.common.exceptions import DomainValidationException, NotFoundException
from domain.common.validators import validate_email


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Address:
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""


@dataclass
class Customer:
    """客户实体"""

    id: str
    email: str
    name: str
    phone: str = ""
    loyalty_points: int = 0
    address: Address = field(default_factory=Address)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        validate_email(self.email)
        if not self.name:
            raise DomainValidationException("customer name is required", field="name")
        if self.loyalty_points < 0:
            raise DomainValidationException("loyalty points cannot be negative", field="loyalty_points")

    def adjust_loyalty_points(self, delta: int) -> int:
        """Apply a delta and clamp the balance at zero; returns the new balance."""
        self.loyalty_points = max(0, self.loyalty_points + delta)
        self.updated_at = utcnow()
        return self.loyalty_points


@dataclass
class Product:
    """商品实体"""

    id: str
    name: str
    price: Decimal
    sku: str
    stock: int = 0
    description: str = ""
    category: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if self.price < 0:
            raise DomainValidationException(f"price cannot be negative: {self.price}", field="price")
        if self.stock < 0:
            raise DomainValidationException(f"stock cannot be negative: {self.stock}", field="stock")

    def has_stock(self, quantity: int) -> bool:
        return self.stock >= quantity


@dataclass
class CartItem:
    product_id: str
    name: str
    sku: str
    price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class Cart:
    """购物车实体"""

    id: str
    customer_id: str
    items: List[CartItem] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def is_empty(self) -> bool:
        return not self.items

    def find_item(self, product_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def add_item(self, product: Product, quantity: int) -> CartItem:
        if quantity <= 0:
            raise DomainValidationException("quantity must be positive", field="quantity")
        item = self.find_item(product.id)
        if item is None:
            item = CartItem(
                product_id=product.id,
                name=product.name,
                sku=product.sku,
                price=product.price,
                quantity=quantity,
            )
            self.items.append(item)
        else:
            item.quantity += quantity
        self.updated_at = utcnow()
        return item

    def remove_item(self, product_id: str) -> None:
        if self.find_item(product_id) is None:
            raise NotFoundException("Cart item", product_id)
        self.items = [item for item in self.items if item.product_id != product_id]
        self.updated_at = utcnow()

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """数量小于等于0时移除该商品"""
        if quantity <= 0:
            self.remove_item(product_id)
            return
        item = self.find_item(product_id)
        if item is None:
            raise NotFoundException("Cart item", product_id)
        item.quantity = quantity
        self.updated_at = utcnow()

    def clear(self) -> None:
        self.items = []
        self.updated_at = utcnow()
