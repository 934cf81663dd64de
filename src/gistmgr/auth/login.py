"""Resolve credentials from the config file, running the OAuth flow when needed."""

from __future__ import annotations

import logging
from typing import Any, Optional

from gistmgr.errors import AuthError

from .auth_info import AuthInfo
from .oauth_client import OAuthClient

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED_MESSAGE = "Not authenticated yet, run `gistmgr login` first"


def authenticate(
    config: Any,
    *,
    token: Optional[str] = None,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    interactive: bool = True,
) -> AuthInfo:
    """
    Return token AuthInfo for the API client.

    Order:
        1. An explicit token is stored and used.
        2. A token already in the config is used.
        3. With an OAuth app (arguments or config) and interactive=True, the
           browser flow runs and the obtained token is stored.

    Raises:
        AuthError: if no credential can be obtained.
    """
    if token:
        config.set("access_token", token)
        return AuthInfo.from_token(token)

    if config.access_token and not (client_id or client_secret):
        return AuthInfo.from_token(config.access_token)

    client_id = client_id or config.client_id
    client_secret = client_secret or config.client_secret
    if not interactive or not (client_id and client_secret):
        raise AuthError(NOT_AUTHENTICATED_MESSAGE)

    app = AuthInfo.from_oauth_app(client_id, client_secret)
    creds = OAuthClient(app).get_credentials()
    access_token = getattr(creds, "token", None)
    if not isinstance(access_token, str) or not access_token:
        raise AuthError("OAuth flow returned no access token", details={"client_id": client_id})

    if config.client_id != client_id:
        config.set("client_id", client_id)
    if config.client_secret != client_secret:
        config.set("client_secret", client_secret)
    config.set("access_token", access_token)
    logger.info("Stored access token obtained through OAuth app %s", client_id)
    return AuthInfo.from_token(access_token)
