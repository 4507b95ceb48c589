"""
Checkout facade: orchestrates one order from inventory reservation to
receipt.

Flow per call::

    started event -> validate inventory -> reserve -> build payment
      -> decorate -> strategy (deadline + retries) -> completed | failed

Reserved stock is released when any step after the reservation fails.
Events are published fire-and-forget through the EventSubject.
"""
from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, Awaitable, Callable, List, Optional

from application.dtos.checkout import CheckoutOptions
from application.factories.decorator_factory import DecoratorFactory, DecoratorParams
from application.factories.payment_factory import PaymentFactory
from application.factories.strategy_factory import StrategyFactory
from application.services.cart_service import CartService
from application.services.customer_service import CustomerService
from application.services.event_subject import EventSubject
from application.services.inventory_service import InventoryService
from application.services.transaction_service import TransactionService
from core.config import PaymentSettings
from core.logging_config import get_logger
from domain.common.exceptions import (
    BusinessException,
    DomainValidationException,
    PaymentFailedException,
    PaymentTimeoutException,
    has_error_code,
)
from domain.payment.base import Payment, PaymentContext, PaymentResult
from domain.payment.entity import Receipt, ReceiptItem, Transaction
from domain.payment.events import CheckoutEvent, EventType
from domain.payment.strategies import PaymentStrategy, SplitPart
from domain.store.entity import Cart, Customer, new_id
from shared.codes.payment_codes import PaymentCode


logger = get_logger(__name__)

# 这些错误重试也不会成功，直接终止
NON_RETRYABLE_CODES = (
    PaymentCode.FRAUD_DETECTED,
    PaymentCode.INVALID_PAYMENT,
    PaymentCode.TIMEOUT,
)


def _decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


class CheckoutFacade:
    def __init__(
        self,
        *,
        inventory: InventoryService,
        customers: CustomerService,
        carts: CartService,
        transactions: TransactionService,
        payment_factory: PaymentFactory,
        decorator_factory: DecoratorFactory,
        strategy_factory: StrategyFactory,
        subject: EventSubject,
        settings: Optional[PaymentSettings] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.inventory = inventory
        self.customers = customers
        self.carts = carts
        self.transactions = transactions
        self.payment_factory = payment_factory
        self.decorator_factory = decorator_factory
        self.strategy_factory = strategy_factory
        self.subject = subject
        self.settings = settings or PaymentSettings()
        self._sleep = sleep

    async def checkout(self, customer_id: str, options: CheckoutOptions) -> Receipt:
        """Load the customer's cart and run :meth:`process_order` on it."""
        customer = await self.customers.get_customer(customer_id)
        cart = await self.carts.get_or_create_cart(customer_id)
        return await self.process_order(cart, customer, options)

    async def process_order(self, cart: Cart, customer: Customer, options: CheckoutOptions) -> Receipt:
        if cart.is_empty():
            raise DomainValidationException("cart is empty", field="cart")

        subtotal = cart.total()
        method = options.payment_method or "credit_card"
        transaction = Transaction(
            id=new_id(),
            customer_id=customer.id,
            amount=subtotal,
            payment_method=method,
            metadata=dict(options.metadata),
        )
        transaction.metadata.setdefault("customer_email", customer.email)
        logger.info(
            "checkout_started",
            transaction_id=transaction.id,
            customer_id=customer.id,
            cart_id=cart.id,
            amount=str(subtotal),
        )
        self._publish(EventType.PAYMENT_STARTED, transaction, amount=subtotal, status="pending")

        try:
            await self.inventory.validate_cart(cart)
        except Exception as exc:
            raise await self._fail(transaction, exc, "inventory validation failed") from exc

        try:
            await self._reserve_inventory(cart)
        except Exception as exc:
            raise await self._fail(transaction, exc, "inventory reservation failed") from exc

        try:
            payment, strategy = self._build_payment_plan(customer, options)
        except Exception as exc:
            await self._rollback_inventory(cart)
            raise await self._fail(transaction, exc, "payment setup failed") from exc

        try:
            transaction.mark_processing()
            result = await self._execute_with_retry(strategy, payment, subtotal, transaction.id)
        except Exception as exc:
            await self._rollback_inventory(cart)
            raise await self._fail(transaction, exc, "payment processing failed") from exc

        return await self._complete(transaction, cart, customer, result, strategy)

    async def _reserve_inventory(self, cart: Cart) -> None:
        # 预留过程中失败不回滚已预留的部分
        for item in cart.items:
            await self.inventory.reserve_stock(item.product_id, item.quantity)

    async def _rollback_inventory(self, cart: Cart) -> None:
        logger.warning("inventory_rollback", cart_id=cart.id)
        for item in cart.items:
            try:
                await self.inventory.release_stock(item.product_id, item.quantity)
            except Exception as exc:
                logger.error("inventory_rollback_failed", product_id=item.product_id, error=str(exc))

    def _build_payment_plan(
        self, customer: Customer, options: CheckoutOptions
    ) -> tuple[Optional[Payment], PaymentStrategy]:
        strategy_name = options.payment_strategy or "instant"
        if strategy_name == "split":
            if options.decorators:
                raise DomainValidationException(
                    "decorators cannot be combined with split payments", field="decorators"
                )
            parts = [
                SplitPart(
                    payment=self.payment_factory.create_payment(
                        part.payment_method,
                        self.payment_factory.config_for(part.payment_method, part.payment_details),
                    ),
                    amount=part.amount,
                )
                for part in options.split_parts
            ]
            return None, self.strategy_factory.create_split_strategy(parts)

        base = self.payment_factory.create_payment(
            options.payment_method,
            self.payment_factory.config_for(options.payment_method, options.payment_details),
        )
        decorated = self.decorator_factory.apply_decorators(
            base,
            options.decorators,
            DecoratorParams(
                customer=customer,
                discount_code=options.discount_code,
                loyalty_points=options.loyalty_points,
            ),
        )
        strategy = self.strategy_factory.create_strategy(
            strategy_name,
            installments=options.installments,
            interest_rate=options.interest_rate,
        )
        return decorated, strategy

    async def _execute_with_retry(
        self,
        strategy: PaymentStrategy,
        payment: Optional[Payment],
        amount: Decimal,
        transaction_id: str,
    ) -> PaymentResult:
        """Run the strategy under one deadline shared by every attempt.

        The same payment chain is re-run on each attempt, so an instrument
        that is not idempotent may be charged more than once.
        """
        ctx = PaymentContext.with_timeout(self.settings.timeout_seconds)
        attempts = max(0, self.settings.retry_attempts) + 1
        attempt = 0
        while True:
            try:
                return await self._execute_once(ctx, strategy, payment, amount)
            except Exception as exc:
                if any(has_error_code(exc, code) for code in NON_RETRYABLE_CODES):
                    logger.warning(
                        "payment_attempt_aborted",
                        transaction_id=transaction_id,
                        attempt=attempt + 1,
                        error=str(exc),
                    )
                    raise
                logger.warning(
                    "payment_attempt_failed",
                    transaction_id=transaction_id,
                    attempt=attempt + 1,
                    error=str(exc),
                )
                if attempt + 1 >= attempts:
                    raise
            attempt += 1
            await self._wait_before_retry(ctx, attempt, transaction_id)

    async def _execute_once(
        self,
        ctx: PaymentContext,
        strategy: PaymentStrategy,
        payment: Optional[Payment],
        amount: Decimal,
    ) -> PaymentResult:
        ctx.ensure_active()
        remaining = ctx.remaining()
        try:
            return await asyncio.wait_for(strategy.execute(ctx, payment, amount), timeout=remaining)
        except asyncio.TimeoutError as exc:
            ctx.cancel()
            raise PaymentTimeoutException(
                f"payment timed out after {self.settings.timeout_seconds:g}s"
            ) from exc

    async def _wait_before_retry(self, ctx: PaymentContext, attempt: int, transaction_id: str) -> None:
        delay = self.settings.retry_delay_seconds
        remaining = ctx.remaining()
        if ctx.expired() or (remaining is not None and remaining <= delay):
            ctx.cancel()
            raise PaymentTimeoutException("payment deadline exceeded before retry")
        logger.info("payment_retry", transaction_id=transaction_id, attempt=attempt, delay=delay)
        await self._sleep(delay)

    async def _complete(
        self,
        transaction: Transaction,
        cart: Cart,
        customer: Customer,
        result: PaymentResult,
        strategy: PaymentStrategy,
    ) -> Receipt:
        transaction.mark_completed(result.amount)
        transaction.payment_method = result.payment_method
        transaction.payment_details = dict(result.metadata)
        transaction.metadata.update({
            "strategy": strategy.name,
            "applied_decorators": list(result.applied_decorators),
            "payment_transaction_id": result.transaction_id,
        })

        await self._update_loyalty_points(customer, result)
        receipt = self._build_receipt(transaction, cart, customer, result)
        await self._persist_transaction(transaction)

        cart.clear()
        try:
            await self.carts.save_cart(cart)
        except BusinessException as exc:
            logger.warning("cart_clear_failed", cart_id=cart.id, error=str(exc))

        self._publish(
            EventType.PAYMENT_SUCCESS,
            transaction,
            amount=result.amount,
            status=transaction.status.value,
            payment_method=result.payment_method,
            message=result.message,
            metadata={
                "strategy": strategy.name,
                "applied_decorators": list(result.applied_decorators),
                "original_amount": str(result.original_amount),
            },
            result=result,
        )
        logger.info(
            "checkout_completed",
            transaction_id=transaction.id,
            amount=str(result.amount),
            strategy=strategy.name,
        )
        return receipt

    async def _update_loyalty_points(self, customer: Customer, result: PaymentResult) -> None:
        earned = int(result.metadata.get("loyalty_points_earned", 0) or 0)
        redeemed = int(result.metadata.get("loyalty_points_redeemed", 0) or 0)
        if not earned and not redeemed:
            return
        try:
            updated = await self.customers.update_loyalty_points(customer.id, earned, redeemed)
            customer.loyalty_points = updated.loyalty_points
        except Exception as exc:
            logger.warning("loyalty_points_update_failed", customer_id=customer.id, error=str(exc))

    async def _persist_transaction(self, transaction: Transaction) -> None:
        try:
            await self.transactions.create_transaction(transaction)
        except Exception as exc:
            logger.error("transaction_save_failed", transaction_id=transaction.id, error=str(exc))

    def _build_receipt(
        self, transaction: Transaction, cart: Cart, customer: Customer, result: PaymentResult
    ) -> Receipt:
        items: List[ReceiptItem] = [
            ReceiptItem(
                product_id=item.product_id,
                name=item.name,
                sku=item.sku,
                quantity=item.quantity,
                unit_price=item.price,
                total=item.line_total,
            )
            for item in cart.items
        ]
        meta = result.metadata
        return Receipt(
            id=new_id(),
            transaction_id=transaction.id,
            customer_id=customer.id,
            customer_name=customer.name,
            customer_email=customer.email,
            items=items,
            subtotal=cart.total(),
            discount=_decimal(meta.get("discount_amount")),
            loyalty_discount=_decimal(meta.get("loyalty_discount")),
            tax=_decimal(meta.get("tax_amount")),
            cashback=_decimal(meta.get("cashback_amount")),
            loyalty_points_earned=int(meta.get("loyalty_points_earned", 0) or 0),
            total=result.amount,
            payment_method=result.payment_method,
            payment_details=dict(meta),
            applied_decorators=list(result.applied_decorators),
        )

    async def _fail(self, transaction: Transaction, exc: BaseException, stage: str) -> PaymentFailedException:
        logger.error(stage.replace(" ", "_"), transaction_id=transaction.id, error=str(exc))
        if not transaction.is_final_status():
            transaction.mark_failed(str(exc))
        await self._persist_transaction(transaction)
        self._publish(
            EventType.PAYMENT_FAILED,
            transaction,
            amount=transaction.amount,
            status=transaction.status.value,
            error=str(exc),
            message=stage,
        )
        return PaymentFailedException.for_stage(stage, exc)

    def _publish(
        self,
        event_type: EventType,
        transaction: Transaction,
        *,
        amount: Decimal,
        status: str = "",
        payment_method: Optional[str] = None,
        message: str = "",
        error: Optional[str] = None,
        metadata: Optional[dict] = None,
        result: Optional[PaymentResult] = None,
    ) -> None:
        event = CheckoutEvent(
            type=event_type,
            transaction_id=transaction.id,
            customer_id=transaction.customer_id,
            amount=amount,
            payment_method=payment_method or transaction.payment_method,
            status=status,
            message=message,
            error=error,
            metadata={"customer_email": transaction.metadata.get("customer_email"), **(metadata or {})},
            result=result,
        )
        self.subject.publish(event)
