"""
Strategy factory: builds payment strategies from a strategy name.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from core.config import StrategySettings
from core.logging_config import get_logger
from domain.common.exceptions import DomainValidationException
from domain.payment.strategies import (
    DeferredPaymentStrategy,
    InstantPaymentStrategy,
    PaymentStrategy,
    SplitPart,
    SplitPaymentStrategy,
)


logger = get_logger(__name__)


class StrategyFactory:
    STRATEGIES = ("instant", "deferred", "split")

    def __init__(self, settings: Optional[StrategySettings] = None) -> None:
        self.settings = settings or StrategySettings()

    def supported_strategies(self) -> list[str]:
        return list(self.STRATEGIES)

    def create_strategy(
        self,
        strategy_type: str,
        *,
        installments: Optional[int] = None,
        interest_rate: Optional[Decimal] = None,
    ) -> PaymentStrategy:
        strategy_type = (strategy_type or "instant").lower()
        cfg = self.settings
        if strategy_type == "instant":
            strategy: PaymentStrategy = InstantPaymentStrategy(cfg.instant_min_amount, cfg.instant_max_amount)
        elif strategy_type == "deferred":
            strategy = DeferredPaymentStrategy(
                cfg.deferred_min_amount,
                cfg.deferred_max_amount,
                installments or cfg.deferred_installments,
                cfg.deferred_interest_rate if interest_rate is None else interest_rate,
            )
        elif strategy_type == "split":
            raise DomainValidationException(
                "split strategy must be created with create_split_strategy",
                field="payment_strategy",
            )
        else:
            raise DomainValidationException(
                f"unsupported payment strategy: {strategy_type}",
                field="payment_strategy",
                details={"supported": self.supported_strategies()},
            )
        logger.info("payment_strategy_created", strategy=strategy.name)
        return strategy

    def create_split_strategy(self, parts: Sequence[SplitPart]) -> SplitPaymentStrategy:
        strategy = SplitPaymentStrategy(parts)
        logger.info("payment_strategy_created", strategy=strategy.name)
        return strategy
