"""
短信通知 - 滚动一分钟窗口限流
"""
from __future__ import annotations

import asyncio
import threading
import time
from collections import deque
from typing import Callable, Deque, List, Optional

from core.config import SMSSettings
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException
from domain.payment.events import CheckoutEvent, EventType
from shared.codes import BusinessCode


logger = get_logger(__name__)

RATE_WINDOW_SECONDS = 60.0


class SMSRateLimitExceeded(BusinessException):
    def __init__(self, limit: int):
        super().__init__(
            code=BusinessCode.BUSINESS_ERROR,
            message=f"SMS rate limit exceeded ({limit} messages per minute)",
            error_type="RateLimitExceeded",
            details={"limit": limit},
        )


def build_sms(event: CheckoutEvent) -> str:
    amount = f"${event.amount:.2f}"
    tx = event.transaction_id[:8]
    if event.type is EventType.PAYMENT_STARTED:
        return f"Payment of {amount} is being processed. TX: {tx}"
    if event.type is EventType.PAYMENT_SUCCESS:
        return f"Payment of {amount} successful! TX: {tx}"
    if event.type is EventType.PAYMENT_FAILED:
        return f"Payment of {amount} failed. TX: {tx}. Please try again."
    if event.type is EventType.REFUND_ISSUED:
        return f"Refund of {amount} issued. TX: {tx}"
    return f"Payment notification. TX: {tx}"


class SMSObserver:
    def __init__(
        self,
        settings: Optional[SMSSettings] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        send_delay: float = 0.0,
    ) -> None:
        self.settings = settings or SMSSettings()
        self._clock = clock
        self._send_delay = send_delay
        self._lock = threading.Lock()
        self._sent_at: Deque[float] = deque()
        self.sent: List[str] = []

    @property
    def name(self) -> str:
        return "sms_notifier"

    def _reserve_slot(self) -> None:
        # 检查与记录在同一把锁内完成，并发调用不会超出限额
        with self._lock:
            now = self._clock()
            while self._sent_at and now - self._sent_at[0] >= RATE_WINDOW_SECONDS:
                self._sent_at.popleft()
            if len(self._sent_at) >= self.settings.rate_limit:
                raise SMSRateLimitExceeded(self.settings.rate_limit)
            self._sent_at.append(now)

    async def notify(self, event: CheckoutEvent) -> None:
        self._reserve_slot()
        message = build_sms(event)
        if self._send_delay:
            await asyncio.sleep(self._send_delay)
        self.sent.append(message)
        logger.info(
            "sms_sent",
            provider=self.settings.provider,
            event_type=event.type.value,
            transaction_id=event.transaction_id,
        )
