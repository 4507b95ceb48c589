"""
JSON文件仓储实现 - 内存存储 + 每次写操作后落盘
"""
from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from pydantic import TypeAdapter

from core.logging_config import get_logger
from domain.payment.entity import Transaction
from domain.store.entity import Cart, Customer, Product
from infrastructure.repositories.memory_repository import MemoryStoreRepository


logger = get_logger(__name__)


@dataclass
class StoreSnapshot:
    customers: List[Customer] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)
    carts: List[Cart] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)


_snapshot_adapter = TypeAdapter(StoreSnapshot)


class FileStoreRepository(MemoryStoreRepository):
    """
    文件仓储

    The whole store is rewritten atomically (temp file + rename) after every
    successful mutation.
    """

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = Path(path)
        self._write_lock = asyncio.Lock()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        raw = self.path.read_bytes()
        if not raw.strip():
            return
        snapshot = _snapshot_adapter.validate_json(raw)
        self._customers = {c.id: c for c in snapshot.customers}
        self._products = {p.id: p for p in snapshot.products}
        self._carts = {c.id: c for c in snapshot.carts}
        self._transactions = {t.id: t for t in snapshot.transactions}
        logger.info(
            "file_store_loaded",
            path=str(self.path),
            customers=len(self._customers),
            products=len(self._products),
            transactions=len(self._transactions),
        )

    def _write(self, payload: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_bytes(payload)
        os.replace(tmp, self.path)

    async def _flush(self) -> None:
        async with self._write_lock:
            async with self._lock:
                snapshot = StoreSnapshot(
                    customers=list(self._customers.values()),
                    products=list(self._products.values()),
                    carts=list(self._carts.values()),
                    transactions=list(self._transactions.values()),
                )
                payload = _snapshot_adapter.dump_json(snapshot, indent=2)
            await asyncio.to_thread(self._write, payload)

    async def create_customer(self, customer: Customer) -> Customer:
        result = await super().create_customer(customer)
        await self._flush()
        return result

    async def update_customer(self, customer: Customer) -> Customer:
        result = await super().update_customer(customer)
        await self._flush()
        return result

    async def create_product(self, product: Product) -> Product:
        result = await super().create_product(product)
        await self._flush()
        return result

    async def update_product(self, product: Product) -> Product:
        result = await super().update_product(product)
        await self._flush()
        return result

    async def create_cart(self, cart: Cart) -> Cart:
        result = await super().create_cart(cart)
        await self._flush()
        return result

    async def update_cart(self, cart: Cart) -> Cart:
        result = await super().update_cart(cart)
        await self._flush()
        return result

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        result = await super().create_transaction(transaction)
        await self._flush()
        return result

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        result = await super().update_transaction(transaction)
        await self._flush()
        return result
