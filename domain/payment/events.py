"""
Checkout domain events.

Immutable records of payment lifecycle transitions, fanned out to observers.
Domain remains free of infrastructure imports.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional
import uuid

from domain.payment.base import PaymentResult


class EventType(str, Enum):
    PAYMENT_STARTED = "payment_started"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    REFUND_ISSUED = "refund_issued"


@dataclass(frozen=True)
class CheckoutEvent:
    type: EventType
    transaction_id: str
    customer_id: str
    amount: Decimal
    payment_method: str
    status: str = ""
    message: str = ""
    error: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    result: Optional[PaymentResult] = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "type": self.type.value,
            "transaction_id": self.transaction_id,
            "customer_id": self.customer_id,
            "amount": str(self.amount),
            "payment_method": self.payment_method,
            "status": self.status,
            "message": self.message,
            "error": self.error,
            "metadata": dict(self.metadata),
            "result": _result_to_dict(self.result),
            "timestamp": self.occurred_at.isoformat(),
        }


def _result_to_dict(result: Optional[PaymentResult]) -> Optional[dict]:
    if result is None:
        return None
    return {
        "success": result.success,
        "transaction_id": result.transaction_id,
        "amount": str(result.amount),
        "original_amount": str(result.original_amount),
        "processed_amount": str(result.processed_amount),
        "currency": result.currency,
        "payment_method": result.payment_method,
        "message": result.message,
        "applied_decorators": list(result.applied_decorators),
        "metadata": dict(result.metadata),
        "timestamp": result.timestamp.isoformat(),
    }
