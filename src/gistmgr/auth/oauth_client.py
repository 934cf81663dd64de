"""OAuth client utilities for gistmgr."""

from __future__ import annotations

from typing import Sequence

from gistmgr.errors import AuthError, InvalidArgumentError

from .auth_info import AuthInfo

GITHUB_AUTH_URI: str = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URI: str = "https://github.com/login/oauth/access_token"
DEFAULT_SCOPES: tuple[str, ...] = ("gist",)

API_HEADERS: dict[str, str] = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
    "User-Agent": "gistmgr",
}


class OAuthClient:
    """Create GitHub credentials and authorized HTTP sessions."""

    def __init__(self, auth_info: AuthInfo) -> None:
        if auth_info.kind not in ("token", "oauth"):
            raise InvalidArgumentError("OAuthClient requires AuthInfo(kind='token'|'oauth')")
        self._auth_info = auth_info

    def get_credentials(self, scopes: Sequence[str] = DEFAULT_SCOPES):
        """
        Return credentials carrying a GitHub access token.

        kind="token" wraps the stored token; kind="oauth" runs the
        authorization code flow on a local redirect server.

        Returns:
            google.oauth2.credentials.Credentials

        Raises:
            AuthError: on flow failures or missing libraries.
            InvalidArgumentError: if scopes is invalid.
        """
        if not scopes or not all(isinstance(s, str) and s.strip() for s in scopes):
            raise InvalidArgumentError("scopes must be a non-empty sequence of strings")

        try:
            from google.oauth2.credentials import Credentials
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "Google auth libraries are not available",
                details={"hint": "Install google-auth and google-auth-oauthlib"},
                cause=exc,
            ) from exc

        if self._auth_info.kind == "token":
            # GitHub tokens do not expire and carry no refresh token.
            return Credentials(token=self._auth_info.access_token, scopes=list(scopes))

        return self._run_flow(scopes)

    def build_session(self, scopes: Sequence[str] = DEFAULT_SCOPES):
        """
        Build an HTTP session that signs every request with the access token.

        Returns:
            google.auth.transport.requests.AuthorizedSession
        """
        try:
            from google.auth.transport.requests import AuthorizedSession
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "google-auth is not available",
                details={"hint": "Install google-auth"},
                cause=exc,
            ) from exc

        creds = self.get_credentials(scopes=scopes)
        session = AuthorizedSession(creds)
        session.headers.update(API_HEADERS)
        return session

    def _run_flow(self, scopes: Sequence[str]):
        try:
            from google_auth_oauthlib.flow import InstalledAppFlow
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "google-auth-oauthlib is not available",
                details={"hint": "Install google-auth-oauthlib"},
                cause=exc,
            ) from exc

        client_config = {
            "installed": {
                "client_id": self._auth_info.client_id,
                "client_secret": self._auth_info.client_secret,
                "auth_uri": GITHUB_AUTH_URI,
                "token_uri": GITHUB_TOKEN_URI,
                "redirect_uris": ["http://localhost"],
            }
        }
        try:
            flow = InstalledAppFlow.from_client_config(client_config, scopes=list(scopes))
            return flow.run_local_server(
                port=0,
                authorization_prompt_message="Visit the URL for the auth dialog: {url}",
                success_message="Authentication succeeded, you may close this window.",
                open_browser=True,
            )
        except Exception as exc:
            raise AuthError(
                "OAuth authorization flow failed",
                details={"client_id": self._auth_info.client_id},
                cause=exc,
            ) from exc
