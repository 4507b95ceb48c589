"""
邮件通知 - 有界队列 + 工作协程池

notify() only enqueues; a full queue is reported as an error instead of
blocking the publisher.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import List, Optional

from core.config import EmailSettings
from core.logging_config import get_logger
from domain.common.exceptions import InternalException
from domain.payment.events import CheckoutEvent, EventType


logger = get_logger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str


_SUBJECTS = {
    EventType.PAYMENT_STARTED: "Payment Processing Started",
    EventType.PAYMENT_SUCCESS: "Payment Successful",
    EventType.PAYMENT_FAILED: "Payment Failed",
    EventType.REFUND_ISSUED: "Refund Issued",
}


def build_email(event: CheckoutEvent) -> EmailMessage:
    amount = f"${event.amount:.2f}"
    if event.type is EventType.PAYMENT_STARTED:
        body = f"Your payment of {amount} has been initiated.\nTransaction ID: {event.transaction_id}"
    elif event.type is EventType.PAYMENT_SUCCESS:
        body = (
            f"Your payment of {amount} has been processed successfully.\n"
            f"Transaction ID: {event.transaction_id}\nPayment Method: {event.payment_method}"
        )
    elif event.type is EventType.PAYMENT_FAILED:
        body = (
            f"Your payment of {amount} has failed.\nTransaction ID: {event.transaction_id}\n"
            "Please try again or contact support."
        )
    else:
        body = f"A refund of {amount} has been issued to your account.\nTransaction ID: {event.transaction_id}"
    to = event.metadata.get("customer_email") or event.customer_id
    return EmailMessage(to=to, subject=_SUBJECTS.get(event.type, "Payment Notification"), body=body)


class EmailObserver:
    def __init__(self, settings: Optional[EmailSettings] = None) -> None:
        self.settings = settings or EmailSettings()
        self._queue: "asyncio.Queue[EmailMessage]" = asyncio.Queue(maxsize=self.settings.queue_size)
        self._workers: List[asyncio.Task] = []
        self.sent: List[EmailMessage] = []

    @property
    def name(self) -> str:
        return "email_notifier"

    @property
    def started(self) -> bool:
        return bool(self._workers)

    def start(self) -> None:
        if self._workers:
            return
        loop = asyncio.get_running_loop()
        self._workers = [
            loop.create_task(self._worker(i)) for i in range(self.settings.worker_pool_size)
        ]
        logger.info("email_worker_pool_started", workers=self.settings.worker_pool_size)

    async def notify(self, event: CheckoutEvent) -> None:
        message = build_email(event)
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("email_queue_full", transaction_id=event.transaction_id)
            raise InternalException(
                "email queue full", details={"queue_size": self.settings.queue_size}
            )
        logger.info(
            "email_queued",
            event_type=event.type.value,
            transaction_id=event.transaction_id,
        )

    async def _worker(self, worker_id: int) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self._send(message)
                logger.info("email_sent", worker_id=worker_id, to=message.to, subject=message.subject)
            except Exception as exc:
                logger.error("email_send_failed", worker_id=worker_id, to=message.to, error=str(exc))
            finally:
                self._queue.task_done()

    async def _send(self, message: EmailMessage) -> None:
        # 模拟SMTP发送
        await asyncio.sleep(self.settings.send_delay_seconds)
        self.sent.append(message)

    async def close(self) -> None:
        """等待队列清空后停止工作协程"""
        if self._workers:
            await self._queue.join()
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("email_worker_pool_stopped")
