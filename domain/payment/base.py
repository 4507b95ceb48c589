"""
Payment abstraction shared by instruments, decorators and strategies.

A ``Payment`` charges an amount and returns a ``PaymentResult``. Decorators
are Payments that wrap exactly one inner Payment; strategies decide how a
(possibly decorated) Payment is executed.
"""
from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from domain.common.exceptions import PaymentTimeoutException


@dataclass
class PaymentResult:
    success: bool
    transaction_id: str
    amount: Decimal
    original_amount: Decimal
    processed_amount: Decimal
    currency: str
    payment_method: str
    message: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    applied_decorators: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class PaymentConfig:
    """Construction parameters for the supported instruments."""

    currency: str = "USD"
    card_number: str = ""
    card_holder: str = ""
    expiry_date: str = ""
    cvv: str = ""
    paypal_email: str = ""
    paypal_password: str = ""
    wallet_address: str = ""
    crypto_type: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PaymentContext:
    """Deadline / cancellation carried through one payment execution.

    ``deadline`` is a ``time.monotonic()`` timestamp.
    """

    deadline: Optional[float] = None
    cancelled: bool = False

    @classmethod
    def with_timeout(cls, seconds: Optional[float]) -> "PaymentContext":
        if seconds is None or seconds <= 0:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def cancel(self) -> None:
        self.cancelled = True

    def expired(self) -> bool:
        if self.cancelled:
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def ensure_active(self) -> None:
        if self.expired():
            raise PaymentTimeoutException("payment context expired")


class Payment(ABC):
    """A chargeable instrument (or a decorator around one)."""

    @abstractmethod
    async def process(self, ctx: PaymentContext, amount: Decimal) -> PaymentResult:
        """Charge ``amount``; raise a BusinessException on failure."""

    @abstractmethod
    def payment_type(self) -> str:
        """Method tag, e.g. ``credit_card``."""

    @abstractmethod
    def details(self) -> Dict[str, Any]:
        """Instrument description with secrets masked."""
