"""
Event observer port (application/ports) exposing a replaceable protocol.

The checkout use-case publishes lifecycle events through an EventSubject;
infrastructure provides the concrete observers (email, SMS, webhook, ...).
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from domain.payment.events import CheckoutEvent


@runtime_checkable
class EventObserver(Protocol):
    """Receives checkout events.

    Implementations may be invoked concurrently with other observers and must
    not block indefinitely; failures are raised, not returned.
    """

    @property
    def name(self) -> str: ...

    async def notify(self, event: CheckoutEvent) -> None: ...
