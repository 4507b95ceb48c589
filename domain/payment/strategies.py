"""
Payment strategies decide how a (possibly decorated) Payment is executed:
at once, as the first installment of a schedule, or split across instruments.
"""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence

import structlog

from domain.common.exceptions import DomainValidationException, PaymentFailedException
from domain.common.money import quantize_money
from domain.common.validators import validate_amount_range
from domain.payment.base import Payment, PaymentContext, PaymentResult

logger = structlog.get_logger(__name__)

MAX_SPLIT_PARTS = 5
MIN_INSTALLMENTS = 2
MAX_INSTALLMENTS = 12


class PaymentStrategy(ABC):
    @abstractmethod
    async def execute(
        self, ctx: PaymentContext, payment: Optional[Payment], amount: Decimal
    ) -> PaymentResult:
        """Run the payment and return the (possibly combined) result."""

    @abstractmethod
    def validate_amount(self, amount: Decimal) -> None:
        """Raise DomainValidationException when ``amount`` is not acceptable."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...


class InstantPaymentStrategy(PaymentStrategy):
    def __init__(self, min_amount: Decimal = Decimal("1"), max_amount: Decimal = Decimal("10000")) -> None:
        self.min_amount = Decimal(min_amount)
        self.max_amount = Decimal(max_amount)

    @property
    def name(self) -> str:
        return "instant"

    def validate_amount(self, amount: Decimal) -> None:
        validate_amount_range(amount, self.min_amount, self.max_amount)

    async def execute(self, ctx: PaymentContext, payment: Optional[Payment], amount: Decimal) -> PaymentResult:
        self.validate_amount(amount)
        if payment is None:
            raise DomainValidationException("instant strategy requires a payment", field="payment")
        logger.info("instant_payment_started", amount=str(amount), payment_type=payment.payment_type())
        try:
            result = await payment.process(ctx, amount)
        except Exception as exc:
            logger.error("instant_payment_failed", error=str(exc))
            raise PaymentFailedException("instant payment failed") from exc
        result.metadata["payment_strategy"] = self.name
        return result


@dataclass
class Installment:
    number: int
    amount: Decimal
    due_date: date
    status: str = "pending"


@dataclass
class DeferredSchedule:
    id: str
    total_amount: Decimal
    total_with_interest: Decimal
    interest_rate: Decimal
    installments: List[Installment] = field(default_factory=list)

    @classmethod
    def build(
        cls, amount: Decimal, count: int, interest_rate: Decimal, start: Optional[date] = None
    ) -> "DeferredSchedule":
        """Split ``amount`` plus interest into ``count`` cent-rounded installments.

        The last installment absorbs the rounding remainder so the installments
        always sum to the total.
        """
        start = start or date.today()
        total = quantize_money(amount * (1 + interest_rate / 100))
        each = quantize_money(total / count)
        installments = [
            Installment(number=i + 1, amount=each, due_date=start + timedelta(days=30 * i))
            for i in range(count)
        ]
        installments[-1].amount = total - each * (count - 1)
        return cls(
            id=str(uuid.uuid4()),
            total_amount=amount,
            total_with_interest=total,
            interest_rate=interest_rate,
            installments=installments,
        )


class DeferredPaymentStrategy(PaymentStrategy):
    def __init__(
        self,
        min_amount: Decimal = Decimal("100"),
        max_amount: Decimal = Decimal("10000"),
        installments: int = 3,
        interest_rate: Decimal = Decimal("0"),
    ) -> None:
        if not MIN_INSTALLMENTS <= installments <= MAX_INSTALLMENTS:
            raise DomainValidationException(
                f"installments must be between {MIN_INSTALLMENTS} and {MAX_INSTALLMENTS}",
                field="installments",
            )
        if interest_rate < 0:
            raise DomainValidationException("interest rate cannot be negative", field="interest_rate")
        self.min_amount = Decimal(min_amount)
        self.max_amount = Decimal(max_amount)
        self.installments = installments
        self.interest_rate = Decimal(interest_rate)

    @property
    def name(self) -> str:
        return f"deferred_{self.installments}_installments"

    def validate_amount(self, amount: Decimal) -> None:
        validate_amount_range(amount, self.min_amount, self.max_amount)

    async def execute(self, ctx: PaymentContext, payment: Optional[Payment], amount: Decimal) -> PaymentResult:
        self.validate_amount(amount)
        if payment is None:
            raise DomainValidationException("deferred strategy requires a payment", field="payment")
        schedule = DeferredSchedule.build(amount, self.installments, self.interest_rate)
        first = schedule.installments[0].amount
        logger.info(
            "deferred_first_installment_started",
            schedule_id=schedule.id,
            first_installment=str(first),
            installments=self.installments,
        )
        try:
            result = await payment.process(ctx, first)
        except Exception as exc:
            logger.error("deferred_first_installment_failed", schedule_id=schedule.id, error=str(exc))
            raise PaymentFailedException("deferred payment first installment failed") from exc

        result.metadata.update({
            "payment_strategy": "deferred",
            "schedule_id": schedule.id,
            "total_amount": schedule.total_amount,
            "total_with_interest": schedule.total_with_interest,
            "installments": self.installments,
            "interest_rate": self.interest_rate,
            "first_installment": first,
            "remaining_installments": self.installments - 1,
            "installment_schedule": [
                {
                    "installment_number": item.number,
                    "amount": item.amount,
                    "due_date": item.due_date.isoformat(),
                    "status": item.status,
                }
                for item in schedule.installments
            ],
        })
        result.original_amount = amount
        result.amount = first
        result.processed_amount = first
        return result


@dataclass
class SplitPart:
    payment: Payment
    amount: Decimal


class SplitPaymentStrategy(PaymentStrategy):
    """Process several instruments one after another.

    If a part fails, the parts already charged are only logged as rolled
    back; no compensating charge is issued.
    """

    def __init__(self, parts: Sequence[SplitPart]) -> None:
        if not parts:
            raise DomainValidationException("at least one payment method is required", field="split_parts")
        if len(parts) > MAX_SPLIT_PARTS:
            raise DomainValidationException(
                f"maximum {MAX_SPLIT_PARTS} payment methods allowed for split payment",
                field="split_parts",
            )
        self.parts = list(parts)

    @property
    def name(self) -> str:
        return f"split_{len(self.parts)}_methods"

    def validate_amount(self, amount: Decimal) -> None:
        if amount <= 0:
            raise DomainValidationException("amount must be positive", field="amount")
        for index, part in enumerate(self.parts, start=1):
            if part.amount <= 0:
                raise DomainValidationException(
                    f"split payment part {index} has invalid amount: {part.amount:.2f}",
                    field="split_parts",
                )
        split_sum = sum((part.amount for part in self.parts), Decimal("0"))
        if quantize_money(split_sum) != quantize_money(amount):
            raise DomainValidationException(
                f"split payment amounts ({split_sum:.2f}) do not match total amount ({amount:.2f})",
                field="split_parts",
            )

    async def execute(self, ctx: PaymentContext, payment: Optional[Payment], amount: Decimal) -> PaymentResult:
        self.validate_amount(amount)
        logger.info("split_payment_started", total_amount=str(amount), parts=len(self.parts))

        processed: List[PaymentResult] = []
        for index, part in enumerate(self.parts, start=1):
            logger.info(
                "split_payment_part_started",
                part=index,
                total_parts=len(self.parts),
                amount=str(part.amount),
                payment_type=part.payment.payment_type(),
            )
            try:
                result = await part.payment.process(ctx, part.amount)
            except Exception as exc:
                self._rollback(processed)
                raise PaymentFailedException(f"split payment part {index} failed") from exc
            processed.append(result)

        total_processed = sum((result.amount for result in processed), Decimal("0"))
        combined = PaymentResult(
            success=True,
            transaction_id=processed[0].transaction_id,
            amount=amount,
            original_amount=amount,
            processed_amount=total_processed,
            currency=processed[0].currency,
            payment_method="split",
            message=f"Split payment completed across {len(self.parts)} methods",
            metadata={
                "payment_strategy": "split",
                "payment_count": len(self.parts),
                "split_details": [
                    {
                        "part": index,
                        "payment_method": result.payment_method,
                        "amount": result.amount,
                        "transaction_id": result.transaction_id,
                        "status": "completed",
                    }
                    for index, result in enumerate(processed, start=1)
                ],
            },
        )
        logger.info("split_payment_completed", transaction_id=combined.transaction_id, parts=len(self.parts))
        return combined

    def _rollback(self, processed: List[PaymentResult]) -> None:
        logger.warning("split_payment_rollback", count=len(processed))
        for index, result in enumerate(processed, start=1):
            logger.info(
                "split_payment_part_rolled_back",
                part=index,
                transaction_id=result.transaction_id,
                amount=str(result.amount),
            )
