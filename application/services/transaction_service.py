"""
Transaction use-cases: history queries and refunds.
"""
from __future__ import annotations

from typing import List, Optional

from application.services.event_subject import EventSubject
from core.logging_config import get_logger
from domain.payment.entity import Transaction
from domain.payment.events import CheckoutEvent, EventType
from domain.store.repository import StoreRepository


logger = get_logger(__name__)


class TransactionService:
    def __init__(self, repo: StoreRepository, subject: Optional[EventSubject] = None) -> None:
        self.repo = repo
        self.subject = subject

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        transaction = await self.repo.create_transaction(transaction)
        logger.info(
            "transaction_created",
            transaction_id=transaction.id,
            customer_id=transaction.customer_id,
            status=transaction.status.value,
        )
        return transaction

    async def get_transaction(self, transaction_id: str) -> Transaction:
        return await self.repo.get_transaction(transaction_id)

    async def list_customer_transactions(
        self, customer_id: str, limit: int = 10, offset: int = 0
    ) -> List[Transaction]:
        return await self.repo.list_transactions_by_customer(customer_id, limit=limit, offset=offset)

    async def refund_transaction(self, transaction_id: str, reason: Optional[str] = None) -> Transaction:
        """Mark a completed transaction refunded and announce it."""
        transaction = await self.repo.get_transaction(transaction_id)
        transaction.mark_refunded()
        if reason:
            transaction.metadata["refund_reason"] = reason
        transaction = await self.repo.update_transaction(transaction)
        logger.info("transaction_refunded", transaction_id=transaction.id, amount=str(transaction.amount))
        if self.subject is not None:
            self.subject.publish(CheckoutEvent(
                type=EventType.REFUND_ISSUED,
                transaction_id=transaction.id,
                customer_id=transaction.customer_id,
                amount=transaction.amount,
                payment_method=transaction.payment_method,
                status=transaction.status.value,
                message=reason or "Refund issued",
            ))
        return transaction
