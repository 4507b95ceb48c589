"""
商店仓储接口 - 客户、商品、购物车、交易的统一数据访问抽象

Implementations raise NotFoundException when a record is absent and
AlreadyExistsException on duplicate creation. Every operation must be safe to
call from concurrent checkouts.
"""
from abc import ABC, abstractmethod
from typing import List

from domain.payment.entity import Transaction
from domain.store.entity import Cart, Customer, Product


class StoreRepository(ABC):
    """仓储抽象接口 - 只定义能做什么，不管怎么做"""

    # Customers
    @abstractmethod
    async def create_customer(self, customer: Customer) -> Customer:
        """创建客户"""

    @abstractmethod
    async def get_customer(self, customer_id: str) -> Customer:
        """根据ID获取客户"""

    @abstractmethod
    async def get_customer_by_email(self, email: str) -> Customer:
        """根据邮箱获取客户"""

    @abstractmethod
    async def update_customer(self, customer: Customer) -> Customer:
        """更新客户"""

    @abstractmethod
    async def list_customers(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        """客户列表"""

    # Products
    @abstractmethod
    async def create_product(self, product: Product) -> Product:
        """创建商品"""

    @abstractmethod
    async def get_product(self, product_id: str) -> Product:
        """根据ID获取商品"""

    @abstractmethod
    async def update_product(self, product: Product) -> Product:
        """更新商品（含库存）"""

    @abstractmethod
    async def list_products(self) -> List[Product]:
        """商品列表"""

    # Carts
    @abstractmethod
    async def create_cart(self, cart: Cart) -> Cart:
        """创建购物车"""

    @abstractmethod
    async def get_cart(self, cart_id: str) -> Cart:
        """根据ID获取购物车"""

    @abstractmethod
    async def get_cart_by_customer(self, customer_id: str) -> Cart:
        """获取客户的购物车"""

    @abstractmethod
    async def update_cart(self, cart: Cart) -> Cart:
        """更新购物车"""

    # Transactions
    @abstractmethod
    async def create_transaction(self, transaction: Transaction) -> Transaction:
        """创建交易记录"""

    @abstractmethod
    async def get_transaction(self, transaction_id: str) -> Transaction:
        """根据ID获取交易"""

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """更新交易"""

    @abstractmethod
    async def list_transactions_by_customer(
        self, customer_id: str, limit: int = 10, offset: int = 0
    ) -> List[Transaction]:
        """获取客户的交易列表（按创建时间倒序）"""

    async def close(self) -> None:
        """释放底层资源"""
        return None
