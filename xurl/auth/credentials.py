"""
Credential value objects.

The client knows exactly three kinds of credential. Each is a frozen
dataclass tagged with a ``CredentialKind``; code that needs to branch on
the kind matches on ``credential.kind`` instead of inspecting types.

The JSON shape mirrors the token store file:

    {"type": "oauth2", "oauth2": {"access_token": ..., ...}}
    {"type": "oauth1", "oauth1": {"access_token": ..., ...}}
    {"type": "bearer", "bearer": "AAAA..."}
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from xurl.core.exceptions import ParseError


class CredentialKind(str, Enum):
    """Credential kinds, valued as they appear in the store file."""

    BEARER = "bearer"
    OAUTH1 = "oauth1"
    OAUTH2 = "oauth2"


@dataclass(frozen=True)
class BearerCredential:
    """Static app-only bearer token."""

    token: str
    kind: ClassVar[CredentialKind] = CredentialKind.BEARER

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "bearer": self.token}


@dataclass(frozen=True)
class OAuth1Credential:
    """OAuth 1.0a user context: consumer pair plus access token pair."""

    access_token: str
    token_secret: str
    consumer_key: str
    consumer_secret: str = field(repr=False)
    kind: ClassVar[CredentialKind] = CredentialKind.OAUTH1

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "oauth1": {
                "access_token": self.access_token,
                "token_secret": self.token_secret,
                "consumer_key": self.consumer_key,
                "consumer_secret": self.consumer_secret,
            },
        }


@dataclass(frozen=True)
class OAuth2Credential:
    """OAuth 2.0 user context token pair.

    Attributes:
        access_token: Token sent as ``Bearer``
        refresh_token: Token exchanged for a new access token
        expiration_time: Unix epoch seconds after which the access token is stale
    """

    access_token: str
    refresh_token: str = field(repr=False)
    expiration_time: int
    kind: ClassVar[CredentialKind] = CredentialKind.OAUTH2

    def is_expired(self, now: float | None = None) -> bool:
        current = time.time() if now is None else now
        return current > self.expiration_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "oauth2": {
                "access_token": self.access_token,
                "refresh_token": self.refresh_token,
                "expiration_time": self.expiration_time,
            },
        }


Credential = Union[BearerCredential, OAuth1Credential, OAuth2Credential]


def credential_from_dict(data: Any) -> Credential:
    """Decode one credential record of the token store file.

    Raises:
        ParseError: If the record has an unknown type or missing fields
    """
    if not isinstance(data, dict):
        raise ParseError(f"Credential record must be an object, got {type(data).__name__}")

    try:
        kind = CredentialKind(data.get("type"))
    except ValueError as e:
        raise ParseError(f"Unknown credential type: {data.get('type')!r}") from e

    try:
        if kind is CredentialKind.BEARER:
            return BearerCredential(token=str(data["bearer"]))
        if kind is CredentialKind.OAUTH1:
            body = data["oauth1"]
            return OAuth1Credential(
                access_token=str(body["access_token"]),
                token_secret=str(body["token_secret"]),
                consumer_key=str(body["consumer_key"]),
                consumer_secret=str(body["consumer_secret"]),
            )
        body = data["oauth2"]
        return OAuth2Credential(
            access_token=str(body["access_token"]),
            refresh_token=str(body["refresh_token"]),
            expiration_time=int(body["expiration_time"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ParseError(f"Invalid {kind.value} credential record: {e}") from e


__all__ = [
    "CredentialKind",
    "BearerCredential",
    "OAuth1Credential",
    "OAuth2Credential",
    "Credential",
    "credential_from_dict",
]
