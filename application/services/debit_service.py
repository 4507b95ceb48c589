"""
Debit use-case: settle a cart from a balance held in another currency.

Conversion goes through the pivot currency of the configured rate table.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from application.dtos.checkout import DebitRequest, DebitResult
from application.services.cart_service import CartService
from core.config import CurrencySettings
from core.logging_config import get_logger
from domain.common.exceptions import DomainValidationException, InsufficientFundsException
from domain.common.money import quantize_money


logger = get_logger(__name__)


class CurrencyConverter:
    def __init__(self, rates: Mapping[str, Decimal]) -> None:
        self.rates = {code.upper(): Decimal(rate) for code, rate in rates.items()}

    def rate(self, currency: str) -> Decimal:
        rate = self.rates.get(currency.upper())
        if rate is None or rate <= 0:
            raise DomainValidationException(f"unsupported currency: {currency}", field="currency")
        return rate

    def convert(self, amount: Decimal, source: str, target: str) -> Decimal:
        if source.upper() == target.upper():
            return quantize_money(amount)
        return quantize_money(amount * self.rate(source) / self.rate(target))


class DebitService:
    def __init__(self, carts: CartService, currency: CurrencySettings) -> None:
        self.carts = carts
        self.converter = CurrencyConverter(currency.rates)

    async def debit(self, customer_id: str, request: DebitRequest) -> DebitResult:
        cart = await self.carts.get_or_create_cart(customer_id)
        if cart.is_empty():
            raise DomainValidationException("cart is empty", field="cart")
        total = cart.total()
        converted = self.converter.convert(total, request.cart_currency, request.balance_currency)
        if converted > request.balance:
            raise InsufficientFundsException(
                f"insufficient funds: need {converted} {request.balance_currency}, "
                f"have {request.balance} {request.balance_currency}",
                details={"required": str(converted), "available": str(request.balance)},
            )
        await self.carts.clear_cart(customer_id)
        logger.info(
            "cart_debited",
            customer_id=customer_id,
            cart_total=str(total),
            converted_total=str(converted),
            currency=request.balance_currency,
        )
        return DebitResult(
            customer_id=customer_id,
            cart_total=total,
            cart_currency=request.cart_currency,
            converted_total=converted,
            balance_currency=request.balance_currency,
            balance_before=request.balance,
            balance_after=request.balance - converted,
        )
