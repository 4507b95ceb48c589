"""
Cart use-cases: one active cart per customer.
"""
from __future__ import annotations

from core.logging_config import get_logger
from domain.common.exceptions import InventoryException, NotFoundException
from domain.store.entity import Cart, new_id
from domain.store.repository import StoreRepository


logger = get_logger(__name__)


class CartService:
    def __init__(self, repo: StoreRepository) -> None:
        self.repo = repo

    async def create_cart(self, customer_id: str) -> Cart:
        await self.repo.get_customer(customer_id)
        cart = await self.repo.create_cart(Cart(id=new_id(), customer_id=customer_id))
        logger.info("cart_created", cart_id=cart.id, customer_id=customer_id)
        return cart

    async def get_or_create_cart(self, customer_id: str) -> Cart:
        try:
            return await self.repo.get_cart_by_customer(customer_id)
        except NotFoundException:
            return await self.create_cart(customer_id)

    async def add_item(self, customer_id: str, product_id: str, quantity: int = 1) -> Cart:
        cart = await self.get_or_create_cart(customer_id)
        product = await self.repo.get_product(product_id)
        existing = cart.find_item(product_id)
        wanted = quantity + (existing.quantity if existing else 0)
        if not product.has_stock(wanted):
            raise InventoryException(
                f"insufficient stock for product {product.name}: have {product.stock}, need {wanted}",
                details={"product_id": product_id, "available": product.stock, "requested": wanted},
            )
        cart.add_item(product, quantity)
        cart = await self.repo.update_cart(cart)
        logger.info("cart_item_added", cart_id=cart.id, product_id=product_id, quantity=quantity)
        return cart

    async def remove_item(self, customer_id: str, product_id: str) -> Cart:
        cart = await self.repo.get_cart_by_customer(customer_id)
        cart.remove_item(product_id)
        cart = await self.repo.update_cart(cart)
        logger.info("cart_item_removed", cart_id=cart.id, product_id=product_id)
        return cart

    async def update_quantity(self, customer_id: str, product_id: str, quantity: int) -> Cart:
        cart = await self.repo.get_cart_by_customer(customer_id)
        cart.update_quantity(product_id, quantity)
        cart = await self.repo.update_cart(cart)
        logger.info("cart_item_updated", cart_id=cart.id, product_id=product_id, quantity=quantity)
        return cart

    async def clear_cart(self, customer_id: str) -> Cart:
        cart = await self.get_or_create_cart(customer_id)
        cart.clear()
        cart = await self.repo.update_cart(cart)
        logger.info("cart_cleared", cart_id=cart.id)
        return cart

    async def save_cart(self, cart: Cart) -> Cart:
        return await self.repo.update_cart(cart)
