"""
Customer use-cases.
"""
from __future__ import annotations

from typing import List, Optional

from core.logging_config import get_logger
from domain.common.validators import validate_phone
from domain.store.entity import Address, Customer, new_id
from domain.store.repository import StoreRepository


logger = get_logger(__name__)


class CustomerService:
    def __init__(self, repo: StoreRepository) -> None:
        self.repo = repo

    async def register_customer(
        self,
        email: str,
        name: str,
        phone: str = "",
        address: Optional[Address] = None,
        loyalty_points: int = 0,
    ) -> Customer:
        if phone:
            validate_phone(phone)
        customer = Customer(
            id=new_id(),
            email=email,
            name=name,
            phone=phone,
            loyalty_points=loyalty_points,
            address=address or Address(),
        )
        customer = await self.repo.create_customer(customer)
        logger.info("customer_registered", customer_id=customer.id, email=customer.email)
        return customer

    async def get_customer(self, customer_id: str) -> Customer:
        return await self.repo.get_customer(customer_id)

    async def get_customer_by_email(self, email: str) -> Customer:
        return await self.repo.get_customer_by_email(email)

    async def list_customers(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        return await self.repo.list_customers(limit=limit, offset=offset)

    async def update_loyalty_points(self, customer_id: str, earned: int, redeemed: int) -> Customer:
        customer = await self.repo.get_customer(customer_id)
        balance = customer.adjust_loyalty_points(earned - redeemed)
        customer = await self.repo.update_customer(customer)
        logger.info(
            "loyalty_points_updated",
            customer_id=customer_id,
            earned=earned,
            redeemed=redeemed,
            balance=balance,
        )
        return customer
