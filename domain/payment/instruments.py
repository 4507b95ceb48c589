"""
Concrete payment instruments: credit card, PayPal wallet and crypto address.

Instruments validate their inputs at construction and never hold invalid
data. Amounts and transaction ids are synthesized; no network is involved.
"""
from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict

import structlog

from domain.common.exceptions import (
    DomainValidationException,
    InvalidPaymentException,
)
from domain.common.validators import (
    validate_amount_range,
    validate_card_number,
    validate_crypto_address,
    validate_cvv,
    validate_email,
    validate_expiry_date,
)
from domain.payment.base import Payment, PaymentContext, PaymentResult

logger = structlog.get_logger(__name__)

SUPPORTED_CRYPTO_TYPES = ("BTC", "ETH", "USDT")


class BaseInstrument(Payment):
    method: str = ""
    currency: str = "USD"
    default_min_amount = Decimal("1")
    default_max_amount = Decimal("10000")

    def __init__(
        self,
        *,
        min_amount: Decimal | None = None,
        max_amount: Decimal | None = None,
        latency: float = 0.0,
    ) -> None:
        self.min_amount = Decimal(min_amount) if min_amount is not None else self.default_min_amount
        self.max_amount = Decimal(max_amount) if max_amount is not None else self.default_max_amount
        self.latency = latency

    def payment_type(self) -> str:
        return self.method

    def validate(self, amount: Decimal) -> None:
        try:
            validate_amount_range(amount, self.min_amount, self.max_amount)
        except DomainValidationException as exc:
            raise DomainValidationException(
                "invalid payment amount", field="amount", details=exc.details
            ) from exc

    async def process(self, ctx: PaymentContext, amount: Decimal) -> PaymentResult:
        ctx.ensure_active()
        self.validate(amount)
        if self.latency:
            await asyncio.sleep(self.latency)
        transaction_id = str(uuid.uuid4())
        result = PaymentResult(
            success=True,
            transaction_id=transaction_id,
            amount=amount,
            original_amount=amount,
            processed_amount=amount,
            currency=self.currency,
            payment_method=self.method,
            message=self._success_message(),
            metadata=self._result_metadata(transaction_id),
        )
        logger.info(
            "payment_processed",
            method=self.method,
            transaction_id=transaction_id,
            amount=str(amount),
        )
        return result

    def _success_message(self) -> str:
        return "Payment processed successfully"

    def _result_metadata(self, transaction_id: str) -> Dict[str, Any]:
        return {}


class CreditCardPayment(BaseInstrument):
    method = "credit_card"

    def __init__(self, card_number: str, card_holder: str, expiry_date: str, cvv: str, **kwargs) -> None:
        super().__init__(**kwargs)
        try:
            self._card_number = validate_card_number(card_number)
        except DomainValidationException as exc:
            raise InvalidPaymentException("invalid card number", field=exc.field) from exc
        try:
            validate_cvv(cvv)
        except DomainValidationException as exc:
            raise InvalidPaymentException("invalid CVV", field=exc.field) from exc
        try:
            validate_expiry_date(expiry_date)
        except DomainValidationException as exc:
            raise InvalidPaymentException("invalid expiry date", field=exc.field) from exc
        if not card_holder:
            raise InvalidPaymentException("card holder name is required", field="card_holder")
        self.card_holder = card_holder
        self.expiry_date = expiry_date
        self._cvv = cvv

    @property
    def last_four(self) -> str:
        return f"****{self._card_number[-4:]}"

    def details(self) -> Dict[str, Any]:
        return {
            "type": self.method,
            "card_holder": self.card_holder,
            "last_4_digits": self.last_four,
            "expiry_date": self.expiry_date,
        }

    def _result_metadata(self, transaction_id: str) -> Dict[str, Any]:
        return {
            "card_holder": self.card_holder,
            "last_4_digits": self.last_four,
            "processed_at": datetime.now(timezone.utc).isoformat(),
        }


class PayPalPayment(BaseInstrument):
    method = "paypal"
    default_max_amount = Decimal("5000")

    def __init__(self, email: str, password: str, **kwargs) -> None:
        super().__init__(**kwargs)
        try:
            validate_email(email)
        except DomainValidationException as exc:
            raise InvalidPaymentException("invalid PayPal email", field=exc.field) from exc
        if not password:
            raise InvalidPaymentException("PayPal password is required", field="paypal_password")
        self.email = email
        self._password = password

    def details(self) -> Dict[str, Any]:
        return {"type": self.method, "email": self.email}

    def _success_message(self) -> str:
        return "PayPal payment processed successfully"

    def _result_metadata(self, transaction_id: str) -> Dict[str, Any]:
        return {
            "paypal_email": self.email,
            "processed_at": datetime.now(timezone.utc).isoformat(),
        }


class CryptoPayment(BaseInstrument):
    method = "crypto"
    default_min_amount = Decimal("10")
    default_max_amount = Decimal("50000")

    def __init__(self, wallet_address: str, crypto_type: str, **kwargs) -> None:
        super().__init__(**kwargs)
        crypto_type = (crypto_type or "").upper()
        if crypto_type not in SUPPORTED_CRYPTO_TYPES:
            raise InvalidPaymentException(
                f"unsupported cryptocurrency type: {crypto_type}", field="crypto_type"
            )
        try:
            validate_crypto_address(wallet_address, crypto_type)
        except DomainValidationException as exc:
            raise InvalidPaymentException("invalid wallet address", field=exc.field) from exc
        self.wallet_address = wallet_address
        self.crypto_type = crypto_type
        self.currency = crypto_type

    @property
    def masked_address(self) -> str:
        if len(self.wallet_address) < 10:
            return "****"
        return f"{self.wallet_address[:6]}****{self.wallet_address[-4:]}"

    def details(self) -> Dict[str, Any]:
        return {
            "type": self.method,
            "crypto_type": self.crypto_type,
            "wallet_address": self.masked_address,
        }

    def _success_message(self) -> str:
        return "Cryptocurrency payment processed successfully"

    def _result_metadata(self, transaction_id: str) -> Dict[str, Any]:
        return {
            "crypto_type": self.crypto_type,
            "wallet_address": self.masked_address,
            "blockchain_tx": "0x" + transaction_id.replace("-", "")[:16],
            "processed_at": datetime.now(timezone.utc).isoformat(),
        }
