"""
Event subject: fans checkout events out to every attached observer.

Each observer is invoked concurrently and in isolation; a failing, slow or
crashing observer never affects its siblings or the publisher.
"""
from __future__ import annotations

import asyncio
import threading
from typing import List, Optional, Set

from application.ports.events import EventObserver
from core.logging_config import get_logger
from domain.payment.events import CheckoutEvent


logger = get_logger(__name__)


class EventSubject:
    def __init__(self, observer_timeout: Optional[float] = 10.0) -> None:
        self._observers: List[EventObserver] = []
        self._lock = threading.Lock()
        self.observer_timeout = observer_timeout
        self._pending: Set[asyncio.Task] = set()

    def attach(self, observer: EventObserver) -> None:
        with self._lock:
            self._observers.append(observer)
        logger.info("observer_attached", observer=observer.name)

    def detach(self, name: str) -> bool:
        with self._lock:
            before = len(self._observers)
            self._observers = [obs for obs in self._observers if obs.name != name]
            removed = len(self._observers) != before
        if removed:
            logger.info("observer_detached", observer=name)
        return removed

    def observers(self) -> List[EventObserver]:
        with self._lock:
            return list(self._observers)

    async def notify(self, event: CheckoutEvent) -> None:
        """Deliver ``event`` to a snapshot of the observers and wait for all of them."""
        snapshot = self.observers()
        if not snapshot:
            return
        await asyncio.gather(
            *(self._deliver(observer, event) for observer in snapshot),
            return_exceptions=True,
        )

    async def _deliver(self, observer: EventObserver, event: CheckoutEvent) -> None:
        try:
            if self.observer_timeout:
                await asyncio.wait_for(observer.notify(event), timeout=self.observer_timeout)
            else:
                await observer.notify(event)
        except asyncio.TimeoutError:
            logger.warning(
                "observer_notify_timeout",
                observer=observer.name,
                event_type=event.type.value,
                timeout=self.observer_timeout,
            )
        except Exception as exc:
            logger.exception(
                "observer_notify_failed",
                observer=observer.name,
                event_type=event.type.value,
                error=str(exc),
            )

    def publish(self, event: CheckoutEvent) -> asyncio.Task:
        """Fire-and-forget: schedule ``notify`` without waiting for delivery."""
        task = asyncio.get_running_loop().create_task(self.notify(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight ``publish``."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
