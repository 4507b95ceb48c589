"""
Inventory use-cases: stock checks, reservation and release on the product
stock held by the repository.

Reservation is a plain read-modify-write per call; concurrent checkouts of
the same product are only serialized by the repository's own locking.
"""
from __future__ import annotations

from typing import List

from core.logging_config import get_logger
from domain.common.exceptions import InventoryException
from domain.store.entity import Cart, Product
from domain.store.repository import StoreRepository


logger = get_logger(__name__)


class InventoryService:
    def __init__(self, repo: StoreRepository) -> None:
        self.repo = repo

    async def list_products(self) -> List[Product]:
        return await self.repo.list_products()

    async def get_product(self, product_id: str) -> Product:
        return await self.repo.get_product(product_id)

    async def check_availability(self, product_id: str, quantity: int) -> bool:
        product = await self.repo.get_product(product_id)
        available = product.has_stock(quantity)
        logger.debug(
            "inventory_check",
            product_id=product_id,
            requested=quantity,
            available=product.stock,
            sufficient=available,
        )
        return available

    async def validate_cart(self, cart: Cart) -> None:
        """Fail with an inventory error if any line cannot be fulfilled."""
        for item in cart.items:
            if not await self.check_availability(item.product_id, item.quantity):
                raise InventoryException(
                    f"insufficient stock for product {item.name}",
                    details={"product_id": item.product_id, "requested": item.quantity},
                )

    async def reserve_stock(self, product_id: str, quantity: int) -> Product:
        product = await self.repo.get_product(product_id)
        if not product.has_stock(quantity):
            raise InventoryException(
                f"insufficient stock for product {product.name}: have {product.stock}, need {quantity}",
                details={"product_id": product_id, "available": product.stock, "requested": quantity},
            )
        product.stock -= quantity
        product = await self.repo.update_product(product)
        logger.info("stock_reserved", product_id=product_id, quantity=quantity, remaining=product.stock)
        return product

    async def release_stock(self, product_id: str, quantity: int) -> Product:
        product = await self.repo.get_product(product_id)
        product.stock += quantity
        product = await self.repo.update_product(product)
        logger.info("stock_released", product_id=product_id, quantity=quantity, new_stock=product.stock)
        return product
