"""
内存仓储实现 - 进程内字典存储

Records are deep-copied on the way in and on the way out, so callers never
share mutable state with the store.
"""
from __future__ import annotations

import asyncio
import copy
from typing import Dict, List, TypeVar

from domain.common.exceptions import AlreadyExistsException, NotFoundException
from domain.payment.entity import Transaction
from domain.store.entity import Cart, Customer, Product
from domain.store.repository import StoreRepository


T = TypeVar("T")


def _clone(value: T) -> T:
    return copy.deepcopy(value)


class MemoryStoreRepository(StoreRepository):
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._customers: Dict[str, Customer] = {}
        self._products: Dict[str, Product] = {}
        self._carts: Dict[str, Cart] = {}
        self._transactions: Dict[str, Transaction] = {}

    # Customers
    async def create_customer(self, customer: Customer) -> Customer:
        async with self._lock:
            if customer.id in self._customers:
                raise AlreadyExistsException("Customer", customer.id, field="id")
            if any(c.email == customer.email for c in self._customers.values()):
                raise AlreadyExistsException("Customer", customer.email, field="email")
            self._customers[customer.id] = _clone(customer)
            return _clone(customer)

    async def get_customer(self, customer_id: str) -> Customer:
        async with self._lock:
            customer = self._customers.get(customer_id)
            if customer is None:
                raise NotFoundException("Customer", customer_id)
            return _clone(customer)

    async def get_customer_by_email(self, email: str) -> Customer:
        async with self._lock:
            for customer in self._customers.values():
                if customer.email == email:
                    return _clone(customer)
            raise NotFoundException("Customer", email)

    async def update_customer(self, customer: Customer) -> Customer:
        async with self._lock:
            if customer.id not in self._customers:
                raise NotFoundException("Customer", customer.id)
            self._customers[customer.id] = _clone(customer)
            return _clone(customer)

    async def list_customers(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        async with self._lock:
            customers = list(self._customers.values())[offset:offset + limit]
            return [_clone(c) for c in customers]

    # Products
    async def create_product(self, product: Product) -> Product:
        async with self._lock:
            if product.id in self._products:
                raise AlreadyExistsException("Product", product.id, field="id")
            if any(p.sku == product.sku for p in self._products.values()):
                raise AlreadyExistsException("Product", product.sku, field="sku")
            self._products[product.id] = _clone(product)
            return _clone(product)

    async def get_product(self, product_id: str) -> Product:
        async with self._lock:
            product = self._products.get(product_id)
            if product is None:
                raise NotFoundException("Product", product_id)
            return _clone(product)

    async def update_product(self, product: Product) -> Product:
        async with self._lock:
            if product.id not in self._products:
                raise NotFoundException("Product", product.id)
            self._products[product.id] = _clone(product)
            return _clone(product)

    async def list_products(self) -> List[Product]:
        async with self._lock:
            return [_clone(p) for p in self._products.values()]

    # Carts
    async def create_cart(self, cart: Cart) -> Cart:
        async with self._lock:
            if cart.id in self._carts:
                raise AlreadyExistsException("Cart", cart.id, field="id")
            self._carts[cart.id] = _clone(cart)
            return _clone(cart)

    async def get_cart(self, cart_id: str) -> Cart:
        async with self._lock:
            cart = self._carts.get(cart_id)
            if cart is None:
                raise NotFoundException("Cart", cart_id)
            return _clone(cart)

    async def get_cart_by_customer(self, customer_id: str) -> Cart:
        async with self._lock:
            for cart in self._carts.values():
                if cart.customer_id == customer_id:
                    return _clone(cart)
            raise NotFoundException("Cart", customer_id)

    async def update_cart(self, cart: Cart) -> Cart:
        async with self._lock:
            if cart.id not in self._carts:
                raise NotFoundException("Cart", cart.id)
            self._carts[cart.id] = _clone(cart)
            return _clone(cart)

    # Transactions
    async def create_transaction(self, transaction: Transaction) -> Transaction:
        async with self._lock:
            if transaction.id in self._transactions:
                raise AlreadyExistsException("Transaction", transaction.id, field="id")
            self._transactions[transaction.id] = _clone(transaction)
            return _clone(transaction)

    async def get_transaction(self, transaction_id: str) -> Transaction:
        async with self._lock:
            transaction = self._transactions.get(transaction_id)
            if transaction is None:
                raise NotFoundException("Transaction", transaction_id)
            return _clone(transaction)

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        async with self._lock:
            if transaction.id not in self._transactions:
                raise NotFoundException("Transaction", transaction.id)
            self._transactions[transaction.id] = _clone(transaction)
            return _clone(transaction)

    async def list_transactions_by_customer(
        self, customer_id: str, limit: int = 10, offset: int = 0
    ) -> List[Transaction]:
        async with self._lock:
            matches = [t for t in self._transactions.values() if t.customer_id == customer_id]
            matches.sort(key=lambda t: t.created_at, reverse=True)
            return [_clone(t) for t in matches[offset:offset + limit]]
