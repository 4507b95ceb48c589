from decimal import Decimal

import pytest

from domain.common.exceptions import (
    DomainValidationException,
    InvalidPaymentException,
    PaymentTimeoutException,
)
from domain.payment.base import PaymentContext
from domain.payment.instruments import CreditCardPayment, CryptoPayment, PayPalPayment

CARD = "4532015112830366"
BTC = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"


@pytest.mark.asyncio
async def test_credit_card_charges_and_masks_number():
    card = CreditCardPayment(CARD, "John Doe", "12/25", "123")
    result = await card.process(PaymentContext(), Decimal("59.98"))
    assert result.success
    assert result.amount == Decimal("59.98")
    assert result.original_amount == result.processed_amount == Decimal("59.98")
    assert result.payment_method == "credit_card"
    assert result.metadata["last_4_digits"] == "****0366"
    assert result.applied_decorators == []
    assert card.details()["last_4_digits"] == "****0366"
    assert CARD not in str(card.details())


@pytest.mark.parametrize(
    "kwargs, field",
    [
        (dict(card_number="1234567890123456"), "card_number"),
        (dict(cvv="1"), "cvv"),
        (dict(expiry_date="2025-12"), "expiry_date"),
        (dict(card_holder=""), "card_holder"),
    ],
)
def test_credit_card_rejects_invalid_construction(kwargs, field):
    params = dict(card_number=CARD, card_holder="John Doe", expiry_date="12/25", cvv="123")
    params.update(kwargs)
    with pytest.raises(InvalidPaymentException) as exc:
        CreditCardPayment(**params)
    assert exc.value.field == field


@pytest.mark.asyncio
async def test_amount_limits_are_enforced_per_instrument():
    paypal = PayPalPayment("user@example.com", "secret")
    with pytest.raises(DomainValidationException) as exc:
        await paypal.process(PaymentContext(), Decimal("5000.01"))
    assert exc.value.message == "invalid payment amount"
    assert isinstance(exc.value.__cause__, DomainValidationException)

    crypto = CryptoPayment(BTC, "btc")
    with pytest.raises(DomainValidationException):
        await crypto.process(PaymentContext(), Decimal("9.99"))


@pytest.mark.asyncio
async def test_crypto_result_uses_coin_currency():
    crypto = CryptoPayment(BTC, "BTC")
    result = await crypto.process(PaymentContext(), Decimal("100"))
    assert result.currency == "BTC"
    assert result.metadata["wallet_address"] == "1A1zP1****vfNa"
    assert result.metadata["blockchain_tx"].startswith("0x")
    assert len(result.metadata["blockchain_tx"]) == 18


def test_crypto_rejects_unknown_coin():
    with pytest.raises(InvalidPaymentException) as exc:
        CryptoPayment(BTC, "DOGE")
    assert exc.value.field == "crypto_type"


def test_paypal_requires_credentials():
    with pytest.raises(InvalidPaymentException):
        PayPalPayment("bad-email", "secret")
    with pytest.raises(InvalidPaymentException):
        PayPalPayment("user@example.com", "")


@pytest.mark.asyncio
async def test_cancelled_context_stops_processing():
    card = CreditCardPayment(CARD, "John Doe", "12/25", "123")
    ctx = PaymentContext()
    ctx.cancel()
    with pytest.raises(PaymentTimeoutException):
        await card.process(ctx, Decimal("10"))
