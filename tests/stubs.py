"""Test doubles shared across test modules."""
from __future__ import annotations

import asyncio
import random
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from application.factories.decorator_factory import DecoratorFactory
from application.factories.payment_factory import PaymentFactory
from application.factories.strategy_factory import StrategyFactory
from application.services.cart_service import CartService
from application.services.checkout_service import CheckoutFacade
from application.services.customer_service import CustomerService
from application.services.event_subject import EventSubject
from application.services.inventory_service import InventoryService
from application.services.transaction_service import TransactionService
from core.config import DecoratorSettings, InstrumentSettings, PaymentSettings
from domain.payment.base import Payment, PaymentContext, PaymentResult
from domain.payment.events import CheckoutEvent, EventType


def fast_payment_settings(**overrides) -> PaymentSettings:
    """Instrument latency and retry delay zeroed out."""
    values = dict(
        timeout_seconds=5.0,
        retry_attempts=3,
        retry_delay_seconds=0.0,
        credit_card=InstrumentSettings(latency_seconds=0),
        paypal=InstrumentSettings(max_amount=Decimal("5000"), latency_seconds=0),
        crypto=InstrumentSettings(min_amount=Decimal("10"), max_amount=Decimal("50000"), latency_seconds=0),
    )
    values.update(overrides)
    return PaymentSettings(**values)


def make_event(event_type=EventType.PAYMENT_SUCCESS, **kwargs) -> CheckoutEvent:
    values = dict(
        type=event_type,
        transaction_id="tx-0123456789",
        customer_id="cust-1",
        amount=Decimal("42.50"),
        payment_method="credit_card",
        status="completed",
    )
    values.update(kwargs)
    return CheckoutEvent(**values)


class StubPayment(Payment):
    """Records every charge; fails the first ``failures`` calls with ``error``."""

    def __init__(
        self,
        *,
        method: str = "stub",
        error: Optional[Exception] = None,
        failures: int = 0,
        delay: float = 0.0,
    ) -> None:
        self.method = method
        self.error = error
        self.failures = failures
        self.delay = delay
        self.calls: List[Decimal] = []
        self.results: List[PaymentResult] = []

    def payment_type(self) -> str:
        return self.method

    def details(self) -> Dict[str, Any]:
        return {"type": self.method}

    async def process(self, ctx: PaymentContext, amount: Decimal) -> PaymentResult:
        ctx.ensure_active()
        self.calls.append(amount)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None and len(self.calls) <= self.failures:
            raise self.error
        result = PaymentResult(
            success=True,
            transaction_id=str(uuid.uuid4()),
            amount=amount,
            original_amount=amount,
            processed_amount=amount,
            currency="USD",
            payment_method=self.method,
        )
        self.results.append(result)
        return result


class StubRandom(random.Random):
    """randrange(30) drives the fraud risk score, randrange(100) the geolocation check."""

    def __init__(self, risk: int = 0, geo: int = 99) -> None:
        super().__init__(0)
        self.risk = risk
        self.geo = geo

    def randrange(self, start, stop=None, step=1):  # type: ignore[override]
        return self.risk if start == 30 else self.geo


class RecordingObserver:
    def __init__(self, name: str = "recorder", error: Optional[Exception] = None, delay: float = 0.0):
        self._name = name
        self.error = error
        self.delay = delay
        self.events: List[CheckoutEvent] = []

    @property
    def name(self) -> str:
        return self._name

    async def notify(self, event: CheckoutEvent) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.events.append(event)
        if self.error is not None:
            raise self.error


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def build_facade(
    repo,
    subject: EventSubject,
    payment_settings: PaymentSettings,
    *,
    decorator_settings: Optional[DecoratorSettings] = None,
    rng: Optional[random.Random] = None,
    sleep=None,
) -> CheckoutFacade:
    return CheckoutFacade(
        inventory=InventoryService(repo),
        customers=CustomerService(repo),
        carts=CartService(repo),
        transactions=TransactionService(repo, subject),
        payment_factory=PaymentFactory(payment_settings),
        decorator_factory=DecoratorFactory(decorator_settings, rng=rng or StubRandom()),
        strategy_factory=StrategyFactory(),
        subject=subject,
        settings=payment_settings,
        sleep=sleep or SleepRecorder(),
    )
