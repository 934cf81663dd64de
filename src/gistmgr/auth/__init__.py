"""Public auth exports for gistmgr."""

from __future__ import annotations

from .auth_info import AuthInfo
from .login import NOT_AUTHENTICATED_MESSAGE, authenticate
from .oauth_client import DEFAULT_SCOPES, OAuthClient

__all__ = [
    "AuthInfo",
    "OAuthClient",
    "DEFAULT_SCOPES",
    "authenticate",
    "NOT_AUTHENTICATED_MESSAGE",
]
