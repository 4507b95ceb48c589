"""
商店仓储实现 - 使用SQLAlchemy实现数据访问
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional

from pydantic_core import to_jsonable_python
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.logging_config import get_logger
from domain.common.exceptions import AlreadyExistsException, NotFoundException
from domain.payment.entity import Transaction, TransactionStatus
from domain.store.entity import Address, Cart, CartItem, Customer, Product
from domain.store.repository import StoreRepository
from infrastructure.models.store import (
    CartItemModel,
    CartModel,
    CustomerModel,
    ProductModel,
    TransactionModel,
)


logger = get_logger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite 不保存时区信息
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _money(value: Any) -> Decimal:
    return Decimal(str(value))


class SQLAlchemyStoreRepository(StoreRepository):
    """商店仓储的SQLAlchemy实现"""

    def __init__(self, session_factory: async_sessionmaker, engine=None):
        self.session_factory = session_factory
        self.engine = engine
        self._lock = asyncio.Lock()

    # ---- mappers ----

    def _customer_to_entity(self, model: CustomerModel) -> Customer:
        return Customer(
            id=model.id,
            email=model.email,
            name=model.name,
            phone=model.phone or "",
            loyalty_points=model.loyalty_points,
            address=Address(
                street=model.street or "",
                city=model.city or "",
                state=model.state or "",
                postal_code=model.postal_code or "",
                country=model.country or "",
            ),
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
        )

    def _customer_to_model(self, entity: Customer) -> CustomerModel:
        return CustomerModel(
            id=entity.id,
            email=entity.email,
            name=entity.name,
            phone=entity.phone,
            loyalty_points=entity.loyalty_points,
            street=entity.address.street,
            city=entity.address.city,
            state=entity.address.state,
            postal_code=entity.address.postal_code,
            country=entity.address.country,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    def _product_to_entity(self, model: ProductModel) -> Product:
        return Product(
            id=model.id,
            name=model.name,
            description=model.description or "",
            price=_money(model.price),
            sku=model.sku,
            stock=model.stock,
            category=model.category or "",
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
        )

    def _product_to_model(self, entity: Product) -> ProductModel:
        return ProductModel(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            price=entity.price,
            sku=entity.sku,
            stock=entity.stock,
            category=entity.category,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    def _cart_to_entity(self, model: CartModel) -> Cart:
        return Cart(
            id=model.id,
            customer_id=model.customer_id,
            items=[
                CartItem(
                    product_id=item.product_id,
                    name=item.name,
                    sku=item.sku,
                    price=_money(item.price),
                    quantity=item.quantity,
                )
                for item in model.items
            ],
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
        )

    @staticmethod
    def _cart_items_to_models(cart: Cart) -> List[CartItemModel]:
        return [
            CartItemModel(
                product_id=item.product_id,
                name=item.name,
                sku=item.sku,
                price=item.price,
                quantity=item.quantity,
            )
            for item in cart.items
        ]

    def _transaction_to_entity(self, model: TransactionModel) -> Transaction:
        return Transaction(
            id=model.id,
            customer_id=model.customer_id,
            amount=_money(model.amount),
            payment_method=model.payment_method,
            status=TransactionStatus(model.status),
            payment_details=model.payment_details or {},
            metadata=model.extra_metadata or {},
            error_message=model.error_message,
            processed_at=_as_utc(model.processed_at),
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
        )

    def _transaction_to_model(self, entity: Transaction) -> TransactionModel:
        return TransactionModel(
            id=entity.id,
            customer_id=entity.customer_id,
            amount=entity.amount,
            status=entity.status.value,
            payment_method=entity.payment_method,
            payment_details=to_jsonable_python(entity.payment_details),
            extra_metadata=to_jsonable_python(entity.metadata),
            error_message=entity.error_message,
            processed_at=entity.processed_at,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    async def _insert(self, model: Any, resource: str, key: str, field: str) -> Any:
        async with self._lock:
            async with self.session_factory() as session:
                try:
                    session.add(model)
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    logger.warning("store_create_conflict", resource=resource, key=key)
                    raise AlreadyExistsException(resource, key, field=field)
                return model

    # ---- customers ----

    async def create_customer(self, customer: Customer) -> Customer:
        model = await self._insert(
            self._customer_to_model(customer), "Customer", customer.email, "email"
        )
        logger.info("customer_created", customer_id=model.id)
        return self._customer_to_entity(model)

    async def get_customer(self, customer_id: str) -> Customer:
        async with self._lock:
            async with self.session_factory() as session:
                model = await session.get(CustomerModel, customer_id)
        if model is None:
            raise NotFoundException("Customer", customer_id)
        return self._customer_to_entity(model)

    async def get_customer_by_email(self, email: str) -> Customer:
        async with self._lock:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(CustomerModel).where(CustomerModel.email == email)
                )
                model = result.scalar_one_or_none()
        if model is None:
            raise NotFoundException("Customer", email)
        return self._customer_to_entity(model)

    async def update_customer(self, customer: Customer) -> Customer:
        async with self._lock:
            async with self.session_factory() as session:
                model = await session.get(CustomerModel, customer.id)
                if model is None:
                    raise NotFoundException("Customer", customer.id)
                model.email = customer.email
                model.name = customer.name
                model.phone = customer.phone
                model.loyalty_points = customer.loyalty_points
                model.street = customer.address.street
                model.city = customer.address.city
                model.state = customer.address.state
                model.postal_code = customer.address.postal_code
                model.country = customer.address.country
                model.updated_at = customer.updated_at
                await session.commit()
        return self._customer_to_entity(model)

    async def list_customers(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        async with self._lock:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(CustomerModel)
                    .order_by(CustomerModel.created_at)
                    .offset(offset)
                    .limit(limit)
                )
                models = result.scalars().all()
        return [self._customer_to_entity(m) for m in models]

    # ---- products ----

    async def create_product(self, product: Product) -> Product:
        model = await self._insert(self._product_to_model(product), "Product", product.sku, "sku")
        return self._product_to_entity(model)

    async def get_product(self, product_id: str) -> Product:
        async with self._lock:
            async with self.session_factory() as session:
                model = await session.get(ProductModel, product_id)
        if model is None:
            raise NotFoundException("Product", product_id)
        return self._product_to_entity(model)

    async def update_product(self, product: Product) -> Product:
        async with self._lock:
            async with self.session_factory() as session:
                model = await session.get(ProductModel, product.id)
                if model is None:
                    raise NotFoundException("Product", product.id)
                model.name = product.name
                model.description = product.description
                model.price = product.price
                model.sku = product.sku
                model.stock = product.stock
                model.category = product.category
                model.updated_at = product.updated_at
                await session.commit()
        return self._product_to_entity(model)

    async def list_products(self) -> List[Product]:
        async with self._lock:
            async with self.session_factory() as session:
                result = await session.execute(select(ProductModel).order_by(ProductModel.id))
                models = result.scalars().all()
        return [self._product_to_entity(m) for m in models]

    # ---- carts ----

    async def create_cart(self, cart: Cart) -> Cart:
        model = CartModel(
            id=cart.id,
            customer_id=cart.customer_id,
            created_at=cart.created_at,
            updated_at=cart.updated_at,
            items=self._cart_items_to_models(cart),
        )
        model = await self._insert(model, "Cart", cart.id, "id")
        return self._cart_to_entity(model)

    async def get_cart(self, cart_id: str) -> Cart:
        async with self._lock:
            async with self.session_factory() as session:
                model = await session.get(CartModel, cart_id)
        if model is None:
            raise NotFoundException("Cart", cart_id)
        return self._cart_to_entity(model)

    async def get_cart_by_customer(self, customer_id: str) -> Cart:
        async with self._lock:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(CartModel).where(CartModel.customer_id == customer_id).limit(1)
                )
                model = result.scalar_one_or_none()
        if model is None:
            raise NotFoundException("Cart", customer_id)
        return self._cart_to_entity(model)

    async def update_cart(self, cart: Cart) -> Cart:
        async with self._lock:
            async with self.session_factory() as session:
                model = await session.get(CartModel, cart.id)
                if model is None:
                    raise NotFoundException("Cart", cart.id)
                model.items = self._cart_items_to_models(cart)
                model.updated_at = cart.updated_at
                await session.commit()
        return self._cart_to_entity(model)

    # ---- transactions ----

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        model = await self._insert(
            self._transaction_to_model(transaction), "Transaction", transaction.id, "id"
        )
        logger.info("transaction_created", transaction_id=model.id, customer_id=model.customer_id)
        return self._transaction_to_entity(model)

    async def get_transaction(self, transaction_id: str) -> Transaction:
        async with self._lock:
            async with self.session_factory() as session:
                model = await session.get(TransactionModel, transaction_id)
        if model is None:
            raise NotFoundException("Transaction", transaction_id)
        return self._transaction_to_entity(model)

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        async with self._lock:
            async with self.session_factory() as session:
                model = await session.get(TransactionModel, transaction.id)
                if model is None:
                    raise NotFoundException("Transaction", transaction.id)
                model.amount = transaction.amount
                model.status = transaction.status.value
                model.payment_details = to_jsonable_python(transaction.payment_details)
                model.extra_metadata = to_jsonable_python(transaction.metadata)
                model.error_message = transaction.error_message
                model.processed_at = transaction.processed_at
                model.updated_at = transaction.updated_at
                await session.commit()
        logger.info("transaction_updated", transaction_id=model.id, status=model.status)
        return self._transaction_to_entity(model)

    async def list_transactions_by_customer(
        self, customer_id: str, limit: int = 10, offset: int = 0
    ) -> List[Transaction]:
        async with self._lock:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(TransactionModel)
                    .where(TransactionModel.customer_id == customer_id)
                    .order_by(TransactionModel.created_at.desc())
                    .offset(offset)
                    .limit(limit)
                )
                models = result.scalars().all()
        return [self._transaction_to_entity(m) for m in models]

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
