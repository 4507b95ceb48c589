"""
支付领域实体 - 交易聚合根与收据
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from domain.common.exceptions import DomainValidationException


class TransactionStatus(str, Enum):
    """交易状态枚举"""
    PENDING = "pending"           # 待处理
    PROCESSING = "processing"     # 处理中
    COMPLETED = "completed"       # 已完成
    FAILED = "failed"             # 失败
    REFUNDED = "refunded"         # 已退款


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Transaction:
    """
    交易聚合根 - 一次结账对应一笔交易

    业务规则：
    1. 金额不能为负
    2. 状态转换必须遵循状态机 pending -> processing -> completed|failed
    3. 只有已完成的交易才能退款
    """

    id: str
    customer_id: str
    amount: Decimal
    payment_method: str
    status: TransactionStatus = TransactionStatus.PENDING
    payment_details: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    error_message: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if self.amount < 0:
            raise DomainValidationException(
                f"交易金额不能为负: {self.amount}",
                field="amount",
            )

    def mark_processing(self) -> None:
        if self.status not in (TransactionStatus.PENDING, TransactionStatus.PROCESSING):
            raise DomainValidationException(
                f"无法从状态 {self.status.value} 转换为 processing",
                field="status",
            )
        self.status = TransactionStatus.PROCESSING
        self.updated_at = _utcnow()

    def mark_completed(self, amount: Optional[Decimal] = None) -> None:
        if self.status not in (TransactionStatus.PENDING, TransactionStatus.PROCESSING):
            raise DomainValidationException(
                f"无法从状态 {self.status.value} 转换为 completed",
                field="status",
            )
        if amount is not None:
            self.amount = amount
        self.status = TransactionStatus.COMPLETED
        self.processed_at = _utcnow()
        self.updated_at = self.processed_at
        self.error_message = None

    def mark_failed(self, reason: Optional[str] = None) -> None:
        if self.status not in (TransactionStatus.PENDING, TransactionStatus.PROCESSING):
            raise DomainValidationException(
                f"无法从状态 {self.status.value} 转换为 failed",
                field="status",
            )
        self.status = TransactionStatus.FAILED
        self.error_message = reason
        self.updated_at = _utcnow()

    def mark_refunded(self) -> None:
        if self.status != TransactionStatus.COMPLETED:
            raise DomainValidationException(
                f"交易状态为 {self.status.value}，无法退款",
                field="status",
            )
        self.status = TransactionStatus.REFUNDED
        self.updated_at = _utcnow()

    def is_final_status(self) -> bool:
        return self.status in (
            TransactionStatus.COMPLETED,
            TransactionStatus.FAILED,
            TransactionStatus.REFUNDED,
        )


@dataclass
class ReceiptItem:
    product_id: str
    name: str
    sku: str
    quantity: int
    unit_price: Decimal
    total: Decimal


@dataclass
class Receipt:
    """结账收据"""

    id: str
    transaction_id: str
    customer_id: str
    customer_name: str
    customer_email: str
    items: List[ReceiptItem]
    subtotal: Decimal
    total: Decimal
    payment_method: str
    discount: Decimal = Decimal("0")
    loyalty_discount: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    cashback: Decimal = Decimal("0")
    loyalty_points_earned: int = 0
    payment_details: Dict[str, Any] = field(default_factory=dict)
    applied_decorators: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
