from __future__ import annotations

import socket
import time
import urllib.error
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ErrorType(str, Enum):
    NETWORK = "network_error"
    CORS = "cors_error"
    AUTH = "auth_error"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    SERVER = "server_error"
    CLIENT = "client_error"
    DATA = "data_error"
    NOT_FOUND = "not_found"


USER_MESSAGES: Dict[ErrorType, str] = {
    ErrorType.NETWORK: "Check your internet connection and try again",
    ErrorType.CORS: "Unable to access music service. Please try again",
    ErrorType.AUTH: "Music service temporarily unavailable",
    ErrorType.RATE_LIMIT: "Too many requests. Please wait a moment and try again",
    ErrorType.TIMEOUT: "Request timed out. Please try again",
    ErrorType.SERVER: "Music service is temporarily down. Please try again later",
    ErrorType.CLIENT: "Invalid request. Please refresh the page",
    ErrorType.DATA: "Unable to load music. Showing cached content",
    ErrorType.NOT_FOUND: "We couldn't find that item",
}
DEFAULT_USER_MESSAGE = "Something went wrong. Please try again"

RETRYABLE_TYPES = frozenset(
    {ErrorType.NETWORK, ErrorType.TIMEOUT, ErrorType.SERVER, ErrorType.RATE_LIMIT}
)


@dataclass(slots=True, frozen=True)
class ErrorDisplay:
    icon: str
    title: str
    show_retry: bool


_DISPLAYS: Dict[ErrorType, ErrorDisplay] = {
    ErrorType.NETWORK: ErrorDisplay("🌐", "Connection Error", True),
    ErrorType.CORS: ErrorDisplay("🚫", "Access Error", True),
    ErrorType.AUTH: ErrorDisplay("🔐", "Authentication Error", False),
    ErrorType.RATE_LIMIT: ErrorDisplay("⏱️", "Rate Limited", True),
    ErrorType.TIMEOUT: ErrorDisplay("⌛", "Request Timeout", True),
    ErrorType.SERVER: ErrorDisplay("🔧", "Server Error", True),
    ErrorType.CLIENT: ErrorDisplay("❌", "Invalid Request", False),
    ErrorType.DATA: ErrorDisplay("📊", "Data Error", False),
    ErrorType.NOT_FOUND: ErrorDisplay("🔎", "Not Found", False),
}
DEFAULT_DISPLAY = ErrorDisplay("📡", "API Error", True)


class CatalogAPIError(Exception):
    """Classified failure surfaced by the data-access layer."""

    def __init__(
        self,
        type: ErrorType,
        message: str,
        *,
        status: int = 0,
        code: Optional[str] = None,
        user_message: Optional[str] = None,
        retryable: Optional[bool] = None,
        retry_after: Optional[float] = None,
        context: Optional[Mapping[str, Any]] = None,
        raised_at: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.type = ErrorType(type)
        self.message = message
        self.status = status
        self.code = code or self.type.name
        self.user_message = user_message or USER_MESSAGES.get(self.type, DEFAULT_USER_MESSAGE)
        if retryable is None:
            retryable = self.type in RETRYABLE_TYPES
        self.retryable = retryable
        self.retry_after = retry_after
        self.context: Dict[str, Any] = dict(context or {})
        self.raised_at = time.time() if raised_at is None else raised_at

    def __repr__(self) -> str:
        return (
            f"CatalogAPIError(type={self.type.value!r}, status={self.status}, "
            f"code={self.code!r}, retryable={self.retryable})"
        )

    def display(self) -> ErrorDisplay:
        return _DISPLAYS.get(self.type, DEFAULT_DISPLAY)

    def retry_available_at(self) -> Optional[float]:
        if self.retry_after is None:
            return None
        return self.raised_at + self.retry_after

    def seconds_until_retry(self, now: Optional[float] = None) -> Optional[int]:
        """Whole seconds left on a rate-limit countdown, never negative."""
        available = self.retry_available_at()
        if available is None:
            return None
        current = time.time() if now is None else now
        remaining = available - current
        if remaining <= 0:
            return 0
        return int(remaining) + (1 if remaining % 1 else 0)

    def to_record(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "status": self.status,
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "retryable": self.retryable,
            "retry_after": self.retry_after,
            "context": dict(self.context),
        }


def network_error(message: str, **context: Any) -> CatalogAPIError:
    return CatalogAPIError(
        ErrorType.NETWORK, message, status=0, code="NETWORK_ERROR", context=context
    )


def timeout_error(message: str, **context: Any) -> CatalogAPIError:
    return CatalogAPIError(
        ErrorType.TIMEOUT, message, status=408, code="TIMEOUT", context=context
    )


def http_error(
    status: int,
    message: str,
    *,
    code: Optional[str] = None,
    retry_after: Optional[float] = None,
    context: Optional[Mapping[str, Any]] = None,
) -> CatalogAPIError:
    """Classify an HTTP failure status."""
    if status == 429:
        type_ = ErrorType.RATE_LIMIT
    elif status >= 500:
        type_ = ErrorType.SERVER
    elif status in (401, 403):
        type_ = ErrorType.AUTH
    else:
        type_ = ErrorType.CLIENT
    return CatalogAPIError(
        type_,
        message,
        status=status,
        code=code or f"HTTP_{status}",
        retryable=status >= 500 or status == 429,
        retry_after=retry_after if status == 429 else None,
        context=context,
    )


def data_error(message: str, **context: Any) -> CatalogAPIError:
    return CatalogAPIError(
        ErrorType.DATA,
        message,
        status=500,
        code="TRANSFORM_ERROR",
        retryable=False,
        context=context,
    )


def is_transient_network_error(exc: BaseException) -> bool:
    if isinstance(exc, (socket.gaierror, TimeoutError, ConnectionError)):
        return True
    if isinstance(exc, urllib.error.URLError) and not isinstance(exc, urllib.error.HTTPError):
        return True
    return False


def coerce_error(exc: BaseException, **context: Any) -> CatalogAPIError:
    """Normalize any exception into a CatalogAPIError."""
    if isinstance(exc, CatalogAPIError):
        return exc
    if isinstance(exc, urllib.error.HTTPError):
        return http_error(exc.code, str(exc.reason or exc), context=context)
    if isinstance(exc, (TimeoutError, socket.timeout)):
        return timeout_error(str(exc) or "Request timed out", **context)
    if isinstance(exc, urllib.error.URLError) and isinstance(exc.reason, TimeoutError):
        return timeout_error(str(exc.reason) or "Request timed out", **context)
    if is_transient_network_error(exc):
        return network_error(str(exc) or "Network request failed", **context)
    status = getattr(exc, "status", None)
    if isinstance(status, int) and status >= 400:
        return http_error(status, str(exc), context=context)
    return network_error(str(exc) or exc.__class__.__name__, **context)
