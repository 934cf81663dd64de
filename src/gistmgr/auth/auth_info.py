"""Authentication information for gistmgr."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

KINDS: tuple[str, ...] = ("token", "oauth")


@dataclass(slots=True, frozen=True)
class AuthInfo:
    """
    Authentication information.

    kind = "token":
        data must include:
            - access_token (personal access token or a stored OAuth token)
    kind = "oauth":
        data must include:
            - client_id
            - client_secret
    """

    kind: str
    data: dict[str, Any]

    def __post_init__(self) -> None:
        if self.kind not in KINDS:
            raise ValueError("AuthInfo.kind must be 'token' or 'oauth'")

        if not isinstance(self.data, dict):
            raise TypeError("AuthInfo.data must be a dict")

        required = ("access_token",) if self.kind == "token" else ("client_id", "client_secret")
        for key in required:
            value = self.data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"AuthInfo.data['{key}'] must be a non-empty string")

    @classmethod
    def from_token(cls, access_token: str) -> AuthInfo:
        return cls(kind="token", data={"access_token": access_token})

    @classmethod
    def from_oauth_app(cls, client_id: str, client_secret: str) -> AuthInfo:
        return cls(kind="oauth", data={"client_id": client_id, "client_secret": client_secret})

    @property
    def access_token(self) -> str:
        return str(self.data.get("access_token", ""))

    @property
    def client_id(self) -> str:
        return str(self.data.get("client_id", ""))

    @property
    def client_secret(self) -> str:
        return str(self.data.get("client_secret", ""))
