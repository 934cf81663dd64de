"""Exception hierarchy and HTTP error mapping for gistmgr."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class GistMgrError(Exception):
    """
    Base exception for gistmgr.

    Attributes:
        details: Optional structured information (e.g., HTTP status, file id).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class StorageError(GistMgrError):
    """Raised when the local store is unavailable or a read/write fails."""


class ValidationError(GistMgrError):
    """Raised when input is rejected before any storage or network call."""


class ConsistencyError(GistMgrError):
    """Raised when an entry that an invariant requires is missing."""


class InvalidStateError(GistMgrError):
    """Raised when the library is used in an invalid state (e.g., open not called)."""


class NetworkError(GistMgrError):
    """Raised when network/timeout issues prevent the request."""


class RemoteError(GistMgrError):
    """Raised when GitHub answers with an error; the message is GitHub's own."""


class AuthError(RemoteError):
    """Raised when authentication fails (HTTP 401, OAuth flow failure)."""


class PermissionError(RemoteError):
    """Raised when access is denied (HTTP 403 without rate limiting)."""


class InvalidArgumentError(RemoteError):
    """Raised when GitHub rejects the request payload (HTTP 400/422)."""


class NotFoundError(RemoteError):
    """Raised when a gist or raw file is not found (HTTP 404)."""


class RateLimitError(RemoteError):
    """Raised when rate-limited (HTTP 429, or 403 with the limit exhausted)."""


class ApiError(RemoteError):
    """Raised for unclassified API errors (5xx, unknown 4xx, etc.)."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to gistmgr exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


_RATE_LIMIT_KEYWORDS: tuple[str, ...] = (
    "rate limit",
    "rate_limited",
    "secondary rate",
    "abuse",
)


def _is_rate_limit_reason(reason: str | None) -> bool:
    if not reason:
        return False
    return any(key in reason.lower() for key in _RATE_LIMIT_KEYWORDS)


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> GistMgrError:
    """
    Map an HTTP error to a gistmgr exception.

    Policy:
        - 400/422 -> InvalidArgumentError
        - 401 -> AuthError
        - 403 -> PermissionError, but RateLimitError if rate-limit related
        - 404 -> NotFoundError
        - 429 -> RateLimitError
        - 5xx -> ApiError
        - otherwise -> ApiError
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP error {info.status_code}"

    if info.status_code in (400, 422):
        return InvalidArgumentError(message, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 403:
        if _is_rate_limit_reason(info.reason) or _is_rate_limit_reason(info.message):
            return RateLimitError(message, details=details, cause=cause)
        return PermissionError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(message, details=details, cause=cause)
    if 500 <= info.status_code <= 599:
        return ApiError(message, details=details, cause=cause)

    return ApiError(message, details=details, cause=cause)


NETWORK_FAILURE_MESSAGE = "Could not reach GitHub, check your connection and try again"


def user_message(exc: BaseException) -> str:
    """
    Render an error for the status line.

    RemoteError messages come from GitHub and are shown verbatim; transport
    failures are shown as a generic connectivity message.
    """
    if isinstance(exc, NetworkError):
        return NETWORK_FAILURE_MESSAGE
    if isinstance(exc, RemoteError):
        return str(exc)
    if isinstance(exc, GistMgrError):
        return str(exc)
    return f"Unexpected error: {exc}"
