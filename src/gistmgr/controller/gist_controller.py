"""GitHub Gist API controller."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

import requests
from google.auth import exceptions as google_auth_exceptions

from gistmgr.auth import AuthInfo, OAuthClient
from gistmgr.errors import (
    ApiError,
    AuthError,
    GistMgrError,
    HttpErrorInfo,
    InvalidArgumentError,
    NetworkError,
    RateLimitError,
    map_http_error,
)
from gistmgr.models import RemoteFile, RemoteGist
from gistmgr.util.time import normalize_stamp

from .fields import (
    API_BASE,
    API_TIMEOUT_SEC,
    GISTS_PATH,
    PER_PAGE,
    RAW_TIMEOUT_SEC,
    USER_PATH,
    gist_path,
)

T = TypeVar("T")

# Methods GitHub may safely receive twice.
_IDEMPOTENT_METHODS = frozenset({"GET", "DELETE"})

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _RetryPolicy:
    max_retries: int = 3
    initial_delay_sec: float = 1.0


class GistController:
    """
    GitHub gist API controller.

    Notes:
        - The HTTP session is NOT exposed.
        - Raw content is fetched with a separate, unauthenticated session.
    """

    def __init__(self, auth_info: AuthInfo) -> None:
        self._retry_policy = _RetryPolicy()
        self._session = OAuthClient(auth_info).build_session()
        self._raw_session = requests.Session()

    @classmethod
    def from_session(
        cls,
        session: Any,
        *,
        raw_session: Any = None,
    ) -> "GistController":
        """Create controller from a pre-built HTTP session (useful for tests)."""
        obj = cls.__new__(cls)
        obj._retry_policy = _RetryPolicy()
        obj._session = session
        obj._raw_session = raw_session if raw_session is not None else session
        return obj

    # ----------------------------
    # Public API
    # ----------------------------
    def get_user(self) -> dict[str, Any]:
        """Return the authenticated user (used to verify a stored token)."""
        data = self._request("GET", USER_PATH)
        return data if isinstance(data, dict) else {}

    def list_gists(self) -> list[RemoteGist]:
        """List all gists of the authenticated user, following pages."""
        results: list[RemoteGist] = []
        page = 1

        while True:
            data = self._request(
                "GET",
                GISTS_PATH,
                params={"per_page": PER_PAGE, "page": page},
            )
            items = data if isinstance(data, list) else []
            for item in items:
                if isinstance(item, dict):
                    results.append(_gist_dict_to_remote(item))

            if len(items) < PER_PAGE:
                break
            page += 1

        return results

    def create_gist(
        self,
        description: str,
        public: bool,
        files: dict[str, str],
    ) -> RemoteGist:
        if not files:
            raise InvalidArgumentError("A gist needs at least one file")

        body = {
            "description": description,
            "public": bool(public),
            "files": {name: {"content": content} for name, content in files.items()},
        }
        data = self._request("POST", GISTS_PATH, json=body)
        return _gist_dict_to_remote(data)

    def edit_gist(
        self,
        gist_id: str,
        *,
        description: Optional[str] = None,
        files: Optional[dict[str, Optional[dict[str, str]]]] = None,
    ) -> RemoteGist:
        """
        Edit a gist.

        `files` maps an existing (or new) filename to:
            - {"content": ...} to add or replace content
            - {"filename": ...} to rename (may be combined with content)
            - None to delete the file
        """
        body: dict[str, Any] = {}
        if description is not None:
            body["description"] = description
        if files is not None:
            body["files"] = files
        if not body:
            raise InvalidArgumentError("Nothing to edit", details={"gist_id": gist_id})

        data = self._request("PATCH", gist_path(gist_id), json=body)
        return _gist_dict_to_remote(data)

    def delete_gist(self, gist_id: str) -> None:
        self._request("DELETE", gist_path(gist_id))

    def fetch_raw(self, raw_url: str) -> str:
        """GET the raw file body. Single attempt, bounded by RAW_TIMEOUT_SEC."""
        if not raw_url:
            raise InvalidArgumentError("raw_url must be a non-empty string")

        try:
            resp = self._raw_session.get(raw_url, timeout=RAW_TIMEOUT_SEC)
        except Exception as exc:
            raise self._map_exception(exc) from exc

        if resp.status_code >= 400:
            raise map_http_error(_response_to_info(resp))

        return resp.content.decode("utf-8", errors="replace")

    # ----------------------------
    # Internals
    # ----------------------------
    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{API_BASE}{path}"

        def call() -> Any:
            resp = self._session.request(method, url, timeout=API_TIMEOUT_SEC, **kwargs)
            if resp.status_code >= 400:
                raise map_http_error(_response_to_info(resp))
            if resp.status_code == 204 or not resp.content:
                return None
            return resp.json()

        return self._execute(call, idempotent=method in _IDEMPOTENT_METHODS)

    def _execute(self, func: Callable[[], T], *, idempotent: bool = True) -> T:
        """
        Run `func`, retrying transient failures with exponential backoff.

        A non-idempotent request is resent only when GitHub cannot have acted
        on it: a rate-limit rejection or a failure to connect.
        """
        delay = self._retry_policy.initial_delay_sec
        for attempt in range(self._retry_policy.max_retries + 1):
            try:
                return func()
            except Exception as exc:
                mapped = self._map_exception(exc)
                retry = self._should_retry(mapped, idempotent=idempotent)
                if retry and attempt < self._retry_policy.max_retries:
                    logger.warning("Retrying GitHub request after %s: %s", type(mapped).__name__, mapped)
                    time.sleep(delay)
                    delay *= 2
                    continue
                if mapped is exc:
                    raise
                raise mapped from exc

        raise ApiError("Unexpected retry loop termination")

    def _should_retry(self, exc: Exception, *, idempotent: bool = True) -> bool:
        if isinstance(exc, RateLimitError):
            return True
        if not idempotent:
            return isinstance(exc, NetworkError) and isinstance(
                exc.cause, requests.exceptions.ConnectTimeout
            )
        if isinstance(exc, NetworkError):
            return True
        if isinstance(exc, ApiError):
            status_code = getattr(exc, "details", {}).get("status_code")
            return isinstance(status_code, int) and 500 <= status_code <= 599
        return False

    def _map_exception(self, exc: Exception) -> Exception:
        if isinstance(exc, GistMgrError):
            return exc

        if isinstance(exc, google_auth_exceptions.RefreshError):
            return AuthError("GitHub rejected the access token", cause=exc)
        if isinstance(exc, google_auth_exceptions.TransportError):
            return NetworkError("Network error", cause=exc)

        if isinstance(exc, (requests.exceptions.RequestException, OSError, TimeoutError)):
            return NetworkError("Network error", cause=exc)

        if isinstance(exc, ValueError):
            return ApiError("GitHub returned an unreadable response", cause=exc)

        return ApiError("GitHub API error", cause=exc)


def _gist_dict_to_remote(data: Any) -> RemoteGist:
    if not isinstance(data, dict):
        raise ApiError("GitHub returned an unexpected gist payload")

    gist_id = data.get("id")
    if not isinstance(gist_id, str) or not gist_id:
        raise ApiError("GitHub returned a gist without id")

    description = data.get("description")
    updated_at = data.get("updated_at")

    files: list[RemoteFile] = []
    raw_files = data.get("files") or {}
    if isinstance(raw_files, dict):
        for key, entry in raw_files.items():
            if not isinstance(entry, dict):
                continue
            filename = entry.get("filename")
            raw_url = entry.get("raw_url")
            content = entry.get("content")
            files.append(
                RemoteFile(
                    filename=filename if isinstance(filename, str) else str(key),
                    raw_url=raw_url if isinstance(raw_url, str) else "",
                    content=content if isinstance(content, str) else None,
                )
            )

    return RemoteGist(
        id=gist_id,
        description=description if isinstance(description, str) else "",
        public=bool(data.get("public", False)),
        updated_at=normalize_stamp(updated_at) if isinstance(updated_at, str) else "",
        files=files,
    )


def _response_to_info(resp: Any) -> HttpErrorInfo:
    status_code = getattr(resp, "status_code", None)
    reason = getattr(resp, "reason", None)
    headers = getattr(resp, "headers", None) or {}

    message = None
    details: dict[str, Any] = {}

    try:
        payload = resp.json()
    except Exception:
        payload = None

    if isinstance(payload, dict):
        if isinstance(payload.get("message"), str):
            message = payload["message"]
        if isinstance(payload.get("documentation_url"), str):
            details["documentation_url"] = payload["documentation_url"]
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            details["errors"] = errors

    if headers.get("X-RateLimit-Remaining") == "0" or headers.get("Retry-After"):
        reason = "rate_limited"
        details["rate_limit_reset"] = headers.get("X-RateLimit-Reset")

    if not isinstance(status_code, int):
        status_code = 0

    return HttpErrorInfo(
        status_code=status_code,
        reason=reason if isinstance(reason, str) else None,
        message=message,
        details=details or None,
    )
