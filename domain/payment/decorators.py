"""
Payment decorators: discount, tax, cashback, fraud detection, loyalty points.

Every decorator wraps exactly one inner Payment, forwards an adjusted amount
and annotates the returned result once the inner call succeeds. Errors from
the wrapped payment propagate unchanged.

Amount bookkeeping on the way back up the chain:

* ``processed_amount`` / ``amount`` are written by the innermost decorator
  only, so they always equal what the instrument was charged.
* ``original_amount`` is rewritten by every decorator with its own input, so
  the outermost decorator leaves the caller-facing amount.
"""
from __future__ import annotations

import random
import threading
import time
from collections import deque
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Deque, Dict, Mapping, Optional

import structlog

from domain.common.exceptions import DomainValidationException, FraudDetectedException
from domain.common.money import quantize_money
from domain.payment.base import Payment, PaymentContext, PaymentResult

logger = structlog.get_logger(__name__)

HUNDRED = Decimal("100")


class PaymentDecorator(Payment):
    name: str = ""

    def __init__(self, wrapped: Payment) -> None:
        self._wrapped = wrapped

    @property
    def wrapped(self) -> Payment:
        return self._wrapped

    def payment_type(self) -> str:
        return self._wrapped.payment_type()

    def details(self) -> Dict[str, Any]:
        return self._wrapped.details()

    async def process(self, ctx: PaymentContext, amount: Decimal) -> PaymentResult:
        return await self._wrapped.process(ctx, amount)

    def _annotate(
        self,
        result: PaymentResult,
        amount: Decimal,
        adjusted: Decimal,
        metadata: Mapping[str, Any],
    ) -> PaymentResult:
        if not result.applied_decorators:
            result.processed_amount = adjusted
            result.amount = adjusted
        result.original_amount = amount
        result.applied_decorators.append(self.name)
        result.metadata.update(metadata)
        return result


class DiscountDecorator(PaymentDecorator):
    name = "discount"

    PERCENTAGE = "percentage"
    FIXED = "fixed"

    def __init__(
        self,
        wrapped: Payment,
        *,
        discount_type: str,
        value: Decimal,
        min_amount: Decimal = Decimal("0"),
        max_discount: Decimal = Decimal("0"),
        expires_at: Optional[datetime] = None,
        code: str = "",
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        super().__init__(wrapped)
        if discount_type not in (self.PERCENTAGE, self.FIXED):
            raise DomainValidationException(
                f"unsupported discount type: {discount_type}", field="discount_type"
            )
        if value <= 0:
            raise DomainValidationException("discount value must be positive", field="discount_value")
        if discount_type == self.PERCENTAGE and value > HUNDRED:
            raise DomainValidationException(
                "percentage discount cannot exceed 100%", field="discount_value"
            )
        self.discount_type = discount_type
        self.value = Decimal(value)
        self.min_amount = Decimal(min_amount)
        self.max_discount = Decimal(max_discount)
        self.expires_at = expires_at
        self.code = code
        self._clock = clock

    def calculate_discount(self, amount: Decimal) -> Decimal:
        if self.discount_type == self.PERCENTAGE:
            discount = quantize_money(amount * self.value / HUNDRED)
        else:
            discount = self.value
        if self.max_discount > 0 and discount > self.max_discount:
            discount = self.max_discount
        return min(discount, amount)

    async def process(self, ctx: PaymentContext, amount: Decimal) -> PaymentResult:
        if self.expires_at is not None and self._clock() > self.expires_at:
            raise DomainValidationException("discount code has expired", field="discount_code")
        if amount < self.min_amount:
            raise DomainValidationException(
                f"minimum amount for discount is {self.min_amount:.2f}", field="amount"
            )
        discount = self.calculate_discount(amount)
        final_amount = amount - discount
        logger.info(
            "discount_applied",
            discount_type=self.discount_type,
            original_amount=str(amount),
            discount_amount=str(discount),
            final_amount=str(final_amount),
        )
        result = await self._wrapped.process(ctx, final_amount)
        return self._annotate(result, amount, final_amount, {
            "discount_type": self.discount_type,
            "discount_value": self.value,
            "discount_amount": discount,
            "discount_code": self.code,
        })


class TaxDecorator(PaymentDecorator):
    name = "tax"

    def __init__(
        self,
        wrapped: Payment,
        *,
        region: str,
        rates: Optional[Mapping[str, Decimal]] = None,
        default_rate: Decimal = Decimal("0"),
    ) -> None:
        super().__init__(wrapped)
        self.region = region
        self.rates = {key: Decimal(rate) for key, rate in (rates or {}).items()}
        self.default_rate = Decimal(default_rate)

    @property
    def rate(self) -> Decimal:
        return self.rates.get(self.region, self.default_rate)

    async def process(self, ctx: PaymentContext, amount: Decimal) -> PaymentResult:
        rate = self.rate
        tax = quantize_money(amount * rate / HUNDRED)
        total = amount + tax
        logger.info("tax_applied", region=self.region, tax_rate=str(rate), tax_amount=str(tax))
        result = await self._wrapped.process(ctx, total)
        return self._annotate(result, amount, total, {
            "subtotal": amount,
            "tax_amount": tax,
            "tax_rate": rate,
            "tax_region": self.region,
        })


class CashbackDecorator(PaymentDecorator):
    """Informational only: the charge is not reduced."""

    name = "cashback"

    def __init__(
        self,
        wrapped: Payment,
        *,
        threshold: Decimal,
        low_percentage: Decimal,
        high_percentage: Decimal,
    ) -> None:
        super().__init__(wrapped)
        self.threshold = Decimal(threshold)
        self.low_percentage = Decimal(low_percentage)
        self.high_percentage = Decimal(high_percentage)

    def percentage_for(self, amount: Decimal) -> Decimal:
        return self.high_percentage if amount >= self.threshold else self.low_percentage

    async def process(self, ctx: PaymentContext, amount: Decimal) -> PaymentResult:
        percentage = self.percentage_for(amount)
        cashback = quantize_money(amount * percentage / HUNDRED)
        result = await self._wrapped.process(ctx, amount)
        logger.info("cashback_calculated", cashback_amount=str(cashback), percentage=str(percentage))
        return self._annotate(result, amount, amount, {
            "cashback_amount": cashback,
            "cashback_percentage": percentage,
        })


class VelocityWindow:
    """Sliding window of recent transaction timestamps for a single bucket."""

    def __init__(self, window_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.window_seconds = window_seconds
        self._clock = clock
        self._timestamps: Deque[float] = deque()
        self._lock = threading.Lock()

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def recent_count(self) -> int:
        with self._lock:
            self._evict(self._clock())
            return len(self._timestamps)

    def record(self) -> None:
        with self._lock:
            now = self._clock()
            self._evict(now)
            self._timestamps.append(now)


class FraudDetectionDecorator(PaymentDecorator):
    name = "fraud_detection"

    GEOLOCATION_FAILURE_PERCENT = 5

    def __init__(
        self,
        wrapped: Payment,
        *,
        max_risk_score: int,
        max_transactions_per_window: int,
        velocity: VelocityWindow,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(wrapped)
        self.max_risk_score = max_risk_score
        self.max_transactions_per_window = max_transactions_per_window
        self.velocity = velocity
        self._rng = rng or random.Random()

    def calculate_risk_score(self, amount: Decimal) -> int:
        score = 0
        if amount > 1000:
            score += 20
        if amount > 5000:
            score += 30
        return score + self._rng.randrange(30)

    def _velocity_check(self) -> None:
        recent = self.velocity.recent_count()
        if recent >= self.max_transactions_per_window:
            raise FraudDetectedException(
                f"transaction velocity exceeded: {recent} transactions in "
                f"{self.velocity.window_seconds:g}s",
                details={"recent_transactions": recent},
            )

    def _geolocation_check(self) -> None:
        if self._rng.randrange(100) < self.GEOLOCATION_FAILURE_PERCENT:
            raise FraudDetectedException("geolocation validation failed")

    async def process(self, ctx: PaymentContext, amount: Decimal) -> PaymentResult:
        risk_score = self.calculate_risk_score(amount)
        logger.info("fraud_risk_calculated", risk_score=risk_score, max_risk_score=self.max_risk_score)
        if risk_score > self.max_risk_score:
            raise FraudDetectedException(
                f"transaction blocked: high fraud risk (score: {risk_score})",
                details={"risk_score": risk_score},
            )
        self._velocity_check()
        self._geolocation_check()
        result = await self._wrapped.process(ctx, amount)
        self.velocity.record()
        return self._annotate(result, amount, amount, {
            "fraud_risk_score": risk_score,
            "fraud_checks_passed": ["risk_score", "velocity_check", "geolocation_check"],
        })


class LoyaltyPointsDecorator(PaymentDecorator):
    name = "loyalty_points"

    def __init__(
        self,
        wrapped: Payment,
        *,
        available_points: int,
        points_to_redeem: int,
        points_per_currency_unit: Decimal,
        max_redemption_percentage: Decimal,
    ) -> None:
        super().__init__(wrapped)
        if points_to_redeem < 0:
            raise DomainValidationException("points to redeem cannot be negative", field="loyalty_points")
        if points_to_redeem > available_points:
            raise DomainValidationException("insufficient loyalty points", field="loyalty_points")
        if points_per_currency_unit <= 0:
            raise DomainValidationException("points ratio must be positive", field="points_ratio")
        self.available_points = available_points
        self.points_to_redeem = points_to_redeem
        self.ratio = Decimal(points_per_currency_unit)
        self.max_redemption_percentage = Decimal(max_redemption_percentage)

    @property
    def discount(self) -> Decimal:
        return quantize_money(Decimal(self.points_to_redeem) / self.ratio)

    async def process(self, ctx: PaymentContext, amount: Decimal) -> PaymentResult:
        discount = self.discount
        max_redemption = amount * self.max_redemption_percentage / HUNDRED
        if discount > max_redemption:
            raise DomainValidationException(
                "loyalty points redemption exceeds maximum "
                f"({self.max_redemption_percentage:.2f}% of purchase)",
                field="loyalty_points",
            )
        final_amount = max(amount - discount, Decimal("0"))
        points_earned = int(amount)
        logger.info(
            "loyalty_points_applied",
            points_redeemed=self.points_to_redeem,
            points_earned=points_earned,
            discount=str(discount),
        )
        result = await self._wrapped.process(ctx, final_amount)
        return self._annotate(result, amount, final_amount, {
            "loyalty_points_redeemed": self.points_to_redeem,
            "loyalty_points_earned": points_earned,
            "loyalty_discount": discount,
            "loyalty_balance_after": self.available_points - self.points_to_redeem + points_earned,
        })
