"""
审计日志 - 追加写入JSON Lines，每条记录落盘
"""
from __future__ import annotations

import asyncio
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Optional

from core.logging_config import get_logger
from domain.payment.events import CheckoutEvent


logger = get_logger(__name__)


class AuditLogObserver:
    def __init__(self, log_path: str) -> None:
        self.path = Path(log_path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file: Optional[IO[str]] = open(self.path, "a", encoding="utf-8")
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "audit_logger"

    @staticmethod
    def build_entry(event: CheckoutEvent) -> dict:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_id": event.event_id,
            "event_type": event.type.value,
            "transaction_id": event.transaction_id,
            "customer_id": event.customer_id,
            "amount": str(event.amount),
            "payment_method": event.payment_method,
            "status": event.status,
            "metadata": dict(event.metadata),
        }
        if event.error:
            entry["error"] = event.error
        if event.result is not None:
            entry["result"] = event.to_dict()["result"]
        return entry

    def _append(self, line: str) -> None:
        if self._file is None:
            raise RuntimeError("audit log is closed")
        self._file.write(line)
        self._file.flush()
        os.fsync(self._file.fileno())

    async def notify(self, event: CheckoutEvent) -> None:
        line = json.dumps(self.build_entry(event), default=str, ensure_ascii=False) + "\n"
        async with self._lock:
            await asyncio.to_thread(self._append, line)
        logger.debug("audit_entry_written", transaction_id=event.transaction_id)

    async def close(self) -> None:
        async with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
