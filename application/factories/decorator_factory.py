"""
Decorator factory: wraps a payment in a chain of decorators built from
feature names and configuration.

The first requested feature becomes the outermost decorator, so it sees the
caller's amount first and the chain applies adjustments in request order.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from core.config import DecoratorSettings
from core.logging_config import get_logger
from domain.common.exceptions import DomainValidationException
from domain.payment.base import Payment
from domain.payment.decorators import (
    CashbackDecorator,
    DiscountDecorator,
    FraudDetectionDecorator,
    LoyaltyPointsDecorator,
    TaxDecorator,
    VelocityWindow,
)
from domain.store.entity import Customer


logger = get_logger(__name__)

DEFAULT_TAX_REGION = "DEFAULT"


@dataclass
class DecoratorParams:
    customer: Optional[Customer] = None
    discount_code: Optional[str] = None
    loyalty_points: int = 0


class DecoratorFactory:
    def __init__(
        self,
        settings: Optional[DecoratorSettings] = None,
        *,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        velocity: Optional[VelocityWindow] = None,
    ) -> None:
        self.settings = settings or DecoratorSettings()
        self._rng = rng or random.Random()
        self._clock = clock
        # 所有欺诈检测装饰器共享同一个速率窗口
        self.velocity = velocity or VelocityWindow(self.settings.fraud_detection.velocity_window_seconds)
        self._builders = {
            "discount": self._create_discount,
            "tax": self._create_tax,
            "cashback": self._create_cashback,
            "fraud_detection": self._create_fraud_detection,
            "loyalty_points": self._create_loyalty_points,
        }

    def available_decorators(self) -> list[str]:
        return list(self._builders)

    def is_enabled(self, feature: str) -> bool:
        return getattr(self.settings, feature).enabled

    def apply_decorators(
        self, payment: Payment, features: Sequence[str], params: Optional[DecoratorParams] = None
    ) -> Payment:
        params = params or DecoratorParams()
        unknown = [feature for feature in features if feature not in self._builders]
        if unknown:
            raise DomainValidationException(
                f"unsupported decorator: {unknown[0]}",
                field="decorators",
                details={"available": self.available_decorators()},
            )
        current = payment
        for feature in reversed(features):
            current = self.create_decorator(feature, current, params)
        return current

    def create_decorator(self, feature: str, wrapped: Payment, params: DecoratorParams) -> Payment:
        builder = self._builders.get(feature)
        if builder is None:
            raise DomainValidationException(f"unsupported decorator: {feature}", field="decorators")
        if not self.is_enabled(feature):
            logger.info("decorator_disabled_skipped", decorator=feature)
            return wrapped
        return builder(wrapped, params)

    def _create_discount(self, wrapped: Payment, params: DecoratorParams) -> Payment:
        cfg = self.settings.discount
        code = (params.discount_code or "").strip().upper()
        if code:
            entry = cfg.codes.get(code)
            if entry is None:
                raise DomainValidationException(f"invalid discount code: {code}", field="discount_code")
            discount_type = entry.type
            value = entry.value
            min_amount = entry.min_amount
            max_discount = entry.max_discount or cfg.max_fixed_amount
            expires_at = entry.expires_at
        else:
            discount_type = cfg.default_type
            value = cfg.default_value
            min_amount = 0
            max_discount = cfg.max_fixed_amount
            expires_at = self._clock() + timedelta(days=cfg.validity_days)
        if discount_type == DiscountDecorator.PERCENTAGE:
            value = min(value, cfg.max_percentage)
        return DiscountDecorator(
            wrapped,
            discount_type=discount_type,
            value=value,
            min_amount=min_amount,
            max_discount=max_discount,
            expires_at=expires_at,
            code=code,
            clock=self._clock,
        )

    def _create_tax(self, wrapped: Payment, params: DecoratorParams) -> Payment:
        cfg = self.settings.tax
        region = DEFAULT_TAX_REGION
        if params.customer is not None and params.customer.address.state:
            region = params.customer.address.state
        return TaxDecorator(wrapped, region=region, rates=cfg.rates, default_rate=cfg.default_rate)

    def _create_cashback(self, wrapped: Payment, params: DecoratorParams) -> Payment:
        cfg = self.settings.cashback
        return CashbackDecorator(
            wrapped,
            threshold=cfg.tier1_threshold,
            low_percentage=cfg.tier1_percentage,
            high_percentage=cfg.tier2_percentage,
        )

    def _create_fraud_detection(self, wrapped: Payment, params: DecoratorParams) -> Payment:
        cfg = self.settings.fraud_detection
        return FraudDetectionDecorator(
            wrapped,
            max_risk_score=cfg.max_risk_score,
            max_transactions_per_window=cfg.max_transactions_per_window,
            velocity=self.velocity,
            rng=self._rng,
        )

    def _create_loyalty_points(self, wrapped: Payment, params: DecoratorParams) -> Payment:
        if params.loyalty_points == 0:
            logger.info("loyalty_decorator_skipped", reason="no points to redeem")
            return wrapped
        cfg = self.settings.loyalty_points
        available = params.customer.loyalty_points if params.customer is not None else 0
        return LoyaltyPointsDecorator(
            wrapped,
            available_points=available,
            points_to_redeem=params.loyalty_points,
            points_per_currency_unit=cfg.points_to_currency_ratio,
            max_redemption_percentage=cfg.max_redemption_percentage,
        )
