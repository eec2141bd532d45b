"""
Request logging for the Redmine client.

LoggingExecutor wraps any executor and records each call (request issued,
response with duration, error with duration) without changing what the
call returns or raises.
"""

import json
import logging
import re
import time
from typing import Any, Optional, Protocol

logger = logging.getLogger("redmine_app.api")

SENSITIVE_FIELDS = [
    "password",
    "api_key",
    "apiKey",
    "token",
    "secret",
    "auth",
    "authorization",
    "key",
]


class Executor(Protocol):
    async def execute(self, path: str, method: str = "GET", body: Optional[Any] = None) -> Any:
        ...


def _is_sensitive_field(field_name: str) -> bool:
    lower_field = field_name.lower()
    return any(sensitive.lower() in lower_field for sensitive in SENSITIVE_FIELDS)


def _redact_object(obj: Any) -> Any:
    if isinstance(obj, list):
        return [_redact_object(item) for item in obj]
    if isinstance(obj, dict):
        return {
            key: "***" if _is_sensitive_field(str(key)) else _redact_object(value)
            for key, value in obj.items()
        }
    return obj


def _redact_plain_text(text: str) -> str:
    result = text
    for field in SENSITIVE_FIELDS:
        # key=value (query strings, form data)
        result = re.sub(rf"({field})=([^&\s]+)", r"\1=***", result, flags=re.IGNORECASE)
        # key: value
        result = re.sub(rf"({field}):\s*([^,\s}}]+)", r"\1: ***", result, flags=re.IGNORECASE)
        # "key":"value"
        result = re.sub(rf'("{field}"\s*:\s*")([^"]+)(")', r"\1***\3", result, flags=re.IGNORECASE)
    return result


def redact_sensitive_data(data: str) -> str:
    """Replace values of sensitive fields in a JSON document or plain text with ***."""
    try:
        parsed = json.loads(data)
    except (json.JSONDecodeError, TypeError):
        return _redact_plain_text(data)
    if not isinstance(parsed, (dict, list)):
        return _redact_plain_text(data)
    return json.dumps(_redact_object(parsed))


class ApiLogger:
    """Formats request/response/error lines for the API log."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def log_request(self, counter: int, method: str, path: str) -> None:
        self.log.info(f"[{counter}] {method} {redact_sensitive_data(path)}")

    def log_response(self, counter: int, duration_ms: int) -> None:
        self.log.info(f"[{counter}] → OK ({duration_ms}ms)")

    def log_error(self, counter: int, error: BaseException, duration_ms: int) -> None:
        self.log.error(f"[{counter}] ERROR: {redact_sensitive_data(str(error))} ({duration_ms}ms)")


class LoggingExecutor:
    """Executor decorator that logs every call passing through it."""

    def __init__(self, wrapped: Executor, enabled: bool = True, api_logger: ApiLogger | None = None):
        self.wrapped = wrapped
        self.enabled = enabled
        self.api_logger = api_logger or ApiLogger()
        self._counter = 0

    async def execute(self, path: str, method: str = "GET", body: Optional[Any] = None) -> Any:
        if not self.enabled:
            return await self.wrapped.execute(path, method, body)

        self._counter += 1
        request_id = self._counter
        start = time.monotonic()
        self.api_logger.log_request(request_id, method, path)

        try:
            result = await self.wrapped.execute(path, method, body)
        except Exception as e:
            self.api_logger.log_error(request_id, e, _elapsed_ms(start))
            raise

        self.api_logger.log_response(request_id, _elapsed_ms(start))
        return result

    async def aclose(self) -> None:
        close = getattr(self.wrapped, "aclose", None)
        if close is not None:
            await close()


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
