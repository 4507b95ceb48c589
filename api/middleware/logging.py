"""
请求/响应日志中间件
记录HTTP请求和响应耗时；请求体中的支付凭据会被脱敏
"""
import json
import time
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.config import settings
from core.logging_config import get_logger


logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

    # 支付凭据字段，日志中一律脱敏
    SENSITIVE_FIELDS = {
        "card_number",
        "cvv",
        "paypal_password",
        "password",
        "wallet_address",
    }

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.log_body: bool = settings.LOG_REQUEST_BODY_ENABLE_BY_DEFAULT
        self.max_body_bytes: int = settings.LOG_REQUEST_BODY_MAX_BYTES

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        info: dict = {"query_params": dict(request.query_params)}
        if request.method in ("POST", "PUT", "PATCH") and self.log_body:
            body = await self._read_body(request)
            if body is not None:
                info["body"] = body

        logger.info("request_started", **info)
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                duration=round(time.perf_counter() - start, 4),
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise

        duration = time.perf_counter() - start
        self._log_response(response, duration)
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response

    async def _read_body(self, request: Request) -> Any:
        body = await request.body()
        if not body:
            return None
        snippet = body[: self.max_body_bytes].decode("utf-8", errors="ignore")
        if "application/json" not in request.headers.get("content-type", "").lower():
            return snippet
        try:
            return self._sanitize(json.loads(snippet))
        except ValueError:
            # 截断后的JSON无法解析
            return {"truncated": True}

    def _sanitize(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                k: ("***" if k.lower() in self.SENSITIVE_FIELDS else self._sanitize(v))
                for k, v in data.items()
            }
        if isinstance(data, list):
            return [self._sanitize(v) for v in data]
        return data

    def _log_response(self, response: Response, duration: float) -> None:
        status_code = response.status_code
        if status_code < 400:
            logger.info("request_completed", status_code=status_code, duration=round(duration, 4))
        elif status_code < 500:
            logger.warning("request_client_error", status_code=status_code, duration=round(duration, 4))
        else:
            logger.error("request_server_error", status_code=status_code, duration=round(duration, 4))
