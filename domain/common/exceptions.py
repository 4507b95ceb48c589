"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。

Wrapping keeps the original error reachable through ``__cause__``; use
:func:`has_error_code` to classify an error regardless of how many layers
re-raised it.
"""
from __future__ import annotations

from typing import Iterator, Optional

from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)

    def __str__(self) -> str:
        cause = self.__cause__
        if cause is not None and str(cause) and str(cause) not in self.message:
            return f"{self.message}: {cause}"
        return self.message


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="ValidationError",
            details=details,
            field=field,
        )


class NotFoundException(BusinessException):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message=f"{resource} not found",
            error_type="NotFound",
            details={"resource": resource, "id": resource_id},
        )


class AlreadyExistsException(BusinessException):
    def __init__(self, resource: str, key: str, *, field: str | None = None):
        super().__init__(
            code=BusinessCode.ALREADY_EXISTS,
            message=f"{resource} already exists",
            error_type="AlreadyExists",
            details={"resource": resource, "key": key},
            field=field,
        )


class UnauthorizedException(BusinessException):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            code=BusinessCode.UNAUTHORIZED,
            message=message,
            error_type="Unauthorized",
        )


class InternalException(BusinessException):
    def __init__(self, message: str = "Internal error", *, details: dict | None = None):
        super().__init__(
            code=BusinessCode.SYSTEM_ERROR,
            message=message,
            error_type="InternalError",
            details=details,
        )


class PaymentFailedException(BusinessException):
    def __init__(self, message: str = "Payment failed", *, details: dict | None = None):
        super().__init__(
            code=PaymentCode.PAYMENT_FAILED,
            message=message,
            error_type="PaymentFailed",
            details=details,
        )

    @classmethod
    def for_stage(cls, stage: str, cause: BaseException) -> "PaymentFailedException":
        """Envelope describing the checkout stage that failed; chain with ``from cause``."""
        return cls(f"{stage}: {cause}", details={"stage": stage})

    def __str__(self) -> str:
        return self.message


class InsufficientFundsException(BusinessException):
    def __init__(self, message: str = "Insufficient funds", *, details: dict | None = None):
        super().__init__(
            code=PaymentCode.INSUFFICIENT_FUNDS,
            message=message,
            error_type="InsufficientFunds",
            details=details,
        )


class InvalidPaymentException(BusinessException):
    def __init__(self, message: str = "Invalid payment", *, field: str | None = None):
        super().__init__(
            code=PaymentCode.INVALID_PAYMENT,
            message=message,
            error_type="InvalidPayment",
            field=field,
        )


class FraudDetectedException(BusinessException):
    def __init__(self, message: str = "Transaction flagged as fraudulent", *, details: dict | None = None):
        super().__init__(
            code=PaymentCode.FRAUD_DETECTED,
            message=message,
            error_type="FraudDetected",
            details=details,
        )


class InventoryException(BusinessException):
    def __init__(self, message: str = "Inventory error", *, details: dict | None = None):
        super().__init__(
            code=PaymentCode.INVENTORY_ERROR,
            message=message,
            error_type="InventoryError",
            details=details,
        )


class PaymentTimeoutException(BusinessException):
    def __init__(self, message: str = "Payment timed out"):
        super().__init__(
            code=PaymentCode.TIMEOUT,
            message=message,
            error_type="Timeout",
        )


def iter_error_chain(exc: BaseException | None) -> Iterator[BaseException]:
    """Yield ``exc`` followed by every explicit cause beneath it."""
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        exc = exc.__cause__


def has_error_code(exc: BaseException | None, code: int) -> bool:
    return any(
        isinstance(err, BusinessException) and err.code == code
        for err in iter_error_chain(exc)
    )


def classified_cause(exc: BaseException | None) -> Optional[BusinessException]:
    """First BusinessException in the chain below the PAYMENT_FAILED envelopes."""
    for err in iter_error_chain(exc):
        if isinstance(err, BusinessException) and err.code != PaymentCode.PAYMENT_FAILED:
            return err
    return None
