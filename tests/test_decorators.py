from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.common.exceptions import DomainValidationException, FraudDetectedException
from domain.payment.base import PaymentContext
from domain.payment.decorators import (
    CashbackDecorator,
    DiscountDecorator,
    FraudDetectionDecorator,
    LoyaltyPointsDecorator,
    TaxDecorator,
    VelocityWindow,
)
from tests.stubs import StubPayment, StubRandom

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def discount(wrapped, **kwargs):
    params = dict(discount_type="percentage", value=Decimal("10"), clock=lambda: NOW)
    params.update(kwargs)
    return DiscountDecorator(wrapped, **params)


@pytest.mark.asyncio
async def test_percentage_discount_reduces_the_charge():
    inner = StubPayment()
    result = await discount(inner).process(PaymentContext(), Decimal("100"))
    assert inner.calls == [Decimal("90.00")]
    assert result.amount == Decimal("90.00")
    assert result.original_amount == Decimal("100")
    assert result.metadata["discount_amount"] == Decimal("10.00")
    assert result.applied_decorators == ["discount"]


@pytest.mark.asyncio
async def test_fixed_discount_is_capped_by_max_and_amount():
    inner = StubPayment()
    capped = discount(inner, discount_type="fixed", value=Decimal("50"), max_discount=Decimal("20"))
    result = await capped.process(PaymentContext(), Decimal("100"))
    assert result.amount == Decimal("80")

    inner = StubPayment()
    whole = discount(inner, discount_type="fixed", value=Decimal("50"))
    result = await whole.process(PaymentContext(), Decimal("30"))
    assert result.amount == Decimal("0")


@pytest.mark.asyncio
async def test_discount_rejects_expired_or_small_orders():
    expired = discount(StubPayment(), expires_at=NOW - timedelta(seconds=1))
    with pytest.raises(DomainValidationException) as exc:
        await expired.process(PaymentContext(), Decimal("100"))
    assert exc.value.field == "discount_code"

    minimum = discount(StubPayment(), min_amount=Decimal("50"))
    with pytest.raises(DomainValidationException):
        await minimum.process(PaymentContext(), Decimal("49.99"))


def test_discount_construction_rules():
    with pytest.raises(DomainValidationException):
        discount(StubPayment(), value=Decimal("0"))
    with pytest.raises(DomainValidationException):
        discount(StubPayment(), value=Decimal("101"))
    with pytest.raises(DomainValidationException):
        discount(StubPayment(), discount_type="bogus")


@pytest.mark.asyncio
async def test_tax_uses_region_rate_with_fallback():
    inner = StubPayment()
    taxed = TaxDecorator(inner, region="CA", rates={"CA": Decimal("7.25")}, default_rate=Decimal("8"))
    result = await taxed.process(PaymentContext(), Decimal("100"))
    assert result.amount == Decimal("107.25")
    assert result.metadata["tax_amount"] == Decimal("7.25")
    assert result.metadata["tax_region"] == "CA"

    fallback = TaxDecorator(StubPayment(), region="WA", rates={"CA": Decimal("7.25")}, default_rate=Decimal("8"))
    assert fallback.rate == Decimal("8")


@pytest.mark.asyncio
async def test_cashback_is_informational():
    inner = StubPayment()
    decorator = CashbackDecorator(
        inner, threshold=Decimal("100"), low_percentage=Decimal("1"), high_percentage=Decimal("2")
    )
    high = await decorator.process(PaymentContext(), Decimal("150"))
    assert high.amount == Decimal("150")
    assert high.metadata["cashback_amount"] == Decimal("3.00")
    low = await decorator.process(PaymentContext(), Decimal("50"))
    assert low.metadata["cashback_amount"] == Decimal("0.50")
    assert inner.calls == [Decimal("150"), Decimal("50")]


@pytest.mark.asyncio
async def test_chain_order_and_amount_bookkeeping():
    # tax is outermost: it sees 100 first, the discount sees the taxed amount
    inner = StubPayment()
    chain = TaxDecorator(
        discount(inner), region="DEFAULT", rates={}, default_rate=Decimal("10")
    )
    result = await chain.process(PaymentContext(), Decimal("100"))
    assert inner.calls == [Decimal("99.00")]
    assert result.applied_decorators == ["discount", "tax"]
    assert result.amount == result.processed_amount == Decimal("99.00")
    assert result.original_amount == Decimal("100")
    assert result.metadata["tax_amount"] == Decimal("10.00")
    assert result.metadata["discount_amount"] == Decimal("11.00")


def fraud(inner, rng, velocity=None, max_tx=10):
    return FraudDetectionDecorator(
        inner,
        max_risk_score=70,
        max_transactions_per_window=max_tx,
        velocity=velocity or VelocityWindow(3600),
        rng=rng,
    )


@pytest.mark.asyncio
async def test_fraud_blocks_high_risk_before_charging():
    inner = StubPayment()
    # 6000 > 5000: base score 50, plus 29 from the rng
    with pytest.raises(FraudDetectedException) as exc:
        await fraud(inner, StubRandom(risk=29)).process(PaymentContext(), Decimal("6000"))
    assert exc.value.details == {"risk_score": 79}
    assert inner.calls == []


@pytest.mark.asyncio
async def test_fraud_geolocation_failure():
    with pytest.raises(FraudDetectedException):
        await fraud(StubPayment(), StubRandom(geo=0)).process(PaymentContext(), Decimal("10"))


@pytest.mark.asyncio
async def test_fraud_velocity_window_is_shared():
    clock_value = [0.0]
    window = VelocityWindow(60, clock=lambda: clock_value[0])
    first = fraud(StubPayment(), StubRandom(), velocity=window, max_tx=2)
    second = fraud(StubPayment(), StubRandom(), velocity=window, max_tx=2)

    result = await first.process(PaymentContext(), Decimal("10"))
    assert result.metadata["fraud_risk_score"] == 0
    await second.process(PaymentContext(), Decimal("10"))
    with pytest.raises(FraudDetectedException):
        await first.process(PaymentContext(), Decimal("10"))

    clock_value[0] = 61.0
    await second.process(PaymentContext(), Decimal("10"))


def loyalty(inner, available=500, redeem=500):
    return LoyaltyPointsDecorator(
        inner,
        available_points=available,
        points_to_redeem=redeem,
        points_per_currency_unit=Decimal("100"),
        max_redemption_percentage=Decimal("50"),
    )


@pytest.mark.asyncio
async def test_loyalty_points_redemption():
    inner = StubPayment()
    result = await loyalty(inner).process(PaymentContext(), Decimal("100"))
    assert inner.calls == [Decimal("95.00")]
    assert result.metadata["loyalty_discount"] == Decimal("5.00")
    assert result.metadata["loyalty_points_earned"] == 100
    assert result.metadata["loyalty_balance_after"] == 100


@pytest.mark.asyncio
async def test_loyalty_points_limits():
    with pytest.raises(DomainValidationException):
        loyalty(StubPayment(), available=100, redeem=200)
    inner = StubPayment()
    with pytest.raises(DomainValidationException):
        await loyalty(inner).process(PaymentContext(), Decimal("8"))
    assert inner.calls == []


@pytest.mark.asyncio
async def test_errors_from_wrapped_payment_propagate_unchanged():
    boom = FraudDetectedException("inner says no")
    with pytest.raises(FraudDetectedException) as exc:
        await discount(StubPayment(error=boom, failures=1)).process(PaymentContext(), Decimal("100"))
    assert exc.value is boom
