"""
Webhook通知 - JSON POST，线性退避重试
"""
from __future__ import annotations

from typing import Optional

import httpx
from pydantic_core import to_jsonable_python
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from core.config import WebhookSettings
from core.logging_config import get_logger
from domain.common.exceptions import InternalException
from domain.payment.events import CheckoutEvent


logger = get_logger(__name__)

USER_AGENT = "Checkout-Engine/1.0"


class WebhookDeliveryError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class WebhookObserver:
    def __init__(
        self,
        settings: WebhookSettings,
        *,
        client: Optional[httpx.AsyncClient] = None,
        retry_wait_start: float = 1.0,
        retry_wait_increment: float = 1.0,
    ) -> None:
        if not settings.url:
            raise ValueError("webhook url is required")
        self.settings = settings
        self._client = client
        self._owns_client = client is None
        self._wait_start = retry_wait_start
        self._wait_increment = retry_wait_increment

    @property
    def name(self) -> str:
        return "webhook_notifier"

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.settings.timeout_seconds))
        return self._client

    async def _send(self, payload: dict) -> None:
        try:
            response = await self.client.post(
                self.settings.url,
                json=payload,
                headers={"User-Agent": USER_AGENT},
            )
        except httpx.HTTPError as exc:
            raise WebhookDeliveryError(f"failed to send request: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise WebhookDeliveryError(
                f"webhook returned status code: {response.status_code}",
                status_code=response.status_code,
            )

    async def notify(self, event: CheckoutEvent) -> None:
        payload = to_jsonable_python(event.to_dict(), fallback=str)
        attempts = self.settings.retry_attempts + 1
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_incrementing(start=self._wait_start, increment=self._wait_increment),
            retry=retry_if_exception_type(WebhookDeliveryError),
            reraise=False,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    number = attempt.retry_state.attempt_number
                    if number > 1:
                        logger.info("webhook_retry", attempt=number, transaction_id=event.transaction_id)
                    await self._send(payload)
        except RetryError as exc:
            last = exc.last_attempt.exception()
            logger.warning(
                "webhook_delivery_failed",
                transaction_id=event.transaction_id,
                attempts=attempts,
                error=str(last),
            )
            raise InternalException(
                f"webhook failed after {attempts} attempts",
                details={"url": self.settings.url},
            ) from last
        logger.info("webhook_sent", transaction_id=event.transaction_id, url=self.settings.url)

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
