"""
支付指标收集 - 成功/失败计数、金额（分）、按支付方式计数
"""
from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

from core.logging_config import get_logger
from domain.common.money import to_cents
from domain.payment.events import CheckoutEvent, EventType


logger = get_logger(__name__)


@dataclass
class MetricsSnapshot:
    success_count: int = 0
    failure_count: int = 0
    refund_count: int = 0
    total_amount: Decimal = Decimal("0.00")
    payment_method_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        total = self.success_count + self.failure_count
        return self.success_count / total * 100.0 if total else 0.0


class MetricsObserver:
    def __init__(self, export_interval: float = 60.0) -> None:
        self.export_interval = export_interval
        self._lock = threading.Lock()
        self._success = 0
        self._failure = 0
        self._refunds = 0
        self._total_cents = 0
        self._by_method: Dict[str, int] = {}
        self._export_task: Optional[asyncio.Task] = None

    @property
    def name(self) -> str:
        return "metrics_collector"

    async def notify(self, event: CheckoutEvent) -> None:
        with self._lock:
            if event.type is EventType.PAYMENT_SUCCESS:
                self._success += 1
                self._total_cents += to_cents(event.amount)
                self._by_method[event.payment_method] = self._by_method.get(event.payment_method, 0) + 1
            elif event.type is EventType.PAYMENT_FAILED:
                self._failure += 1
            elif event.type is EventType.REFUND_ISSUED:
                self._refunds += 1
                self._total_cents -= to_cents(event.amount)

    def get_metrics(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                success_count=self._success,
                failure_count=self._failure,
                refund_count=self._refunds,
                total_amount=(Decimal(self._total_cents) / 100).quantize(Decimal("0.01")),
                payment_method_counts=dict(self._by_method),
            )

    def reset(self) -> None:
        with self._lock:
            self._success = 0
            self._failure = 0
            self._refunds = 0
            self._total_cents = 0
            self._by_method = {}
        logger.info("metrics_reset")

    def export(self) -> MetricsSnapshot:
        snapshot = self.get_metrics()
        logger.info(
            "payment_metrics",
            total_payments=snapshot.success_count + snapshot.failure_count,
            successful_payments=snapshot.success_count,
            failed_payments=snapshot.failure_count,
            refunds=snapshot.refund_count,
            success_rate=round(snapshot.success_rate, 2),
            total_amount=str(snapshot.total_amount),
            payment_method_counts=snapshot.payment_method_counts,
        )
        return snapshot

    async def _export_loop(self) -> None:
        while True:
            await asyncio.sleep(self.export_interval)
            self.export()

    def start(self) -> None:
        if self._export_task is None and self.export_interval > 0:
            self._export_task = asyncio.get_running_loop().create_task(self._export_loop())

    async def close(self) -> None:
        if self._export_task is not None:
            self._export_task.cancel()
            await asyncio.gather(self._export_task, return_exceptions=True)
            self._export_task = None
