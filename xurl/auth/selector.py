"""Authorization header selection.

``AuthSelector`` turns a request plus an optional scheme into an
``Authorization`` header, reading credentials from the store and
refreshing OAuth2 tokens when they are stale.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from enum import Enum

from xurl.core.exceptions import AuthError, XurlError

from . import oauth1
from .credentials import CredentialKind
from .pkce_flow import PKCEFlow
from .storage import TokenStore
from .tokens import TokenRefresher

_logger = logging.getLogger(__name__)


class AuthScheme(str, Enum):
    """Schemes accepted by ``--auth``."""

    OAUTH1 = "oauth1"
    OAUTH2 = "oauth2"
    APP = "app"

    @classmethod
    def parse(cls, value: str) -> AuthScheme:
        try:
            return cls(value.strip().lower())
        except ValueError as e:
            raise AuthError(f"Invalid auth type: {value}") from e


# Order tried when no scheme is requested
FALLBACK_ORDER = (CredentialKind.OAUTH2, CredentialKind.OAUTH1, CredentialKind.BEARER)

_SCHEME_KINDS = {
    AuthScheme.OAUTH1: CredentialKind.OAUTH1,
    AuthScheme.OAUTH2: CredentialKind.OAUTH2,
    AuthScheme.APP: CredentialKind.BEARER,
}


class AuthSelector:
    """Produce ``Authorization`` headers from stored credentials.

    Args:
        store: Token store shared with the refresher and the flow
        refresher: Used when a stored OAuth2 token has expired
        flow: Used when OAuth2 is requested explicitly and no account is
            stored; without a flow that case is an error
    """

    def __init__(
        self,
        store: TokenStore,
        refresher: TokenRefresher | None = None,
        flow: PKCEFlow | None = None,
    ) -> None:
        self.store = store
        self.refresher = refresher
        self.flow = flow

    def close(self) -> None:
        """Close the HTTP clients of the refresher and the flow."""
        clients = []
        for owner in (self.refresher, self.flow):
            if owner is not None and owner.http_client not in clients:
                clients.append(owner.http_client)
        for client in clients:
            client.close()

    def header_for(
        self,
        method: str,
        url: str,
        scheme: str | None = None,
        username: str | None = None,
        params: Mapping[str, str] | None = None,
    ) -> str:
        """Return the ``Authorization`` header value for a request.

        Args:
            method: HTTP method of the request
            url: Full request URL
            scheme: ``oauth1``, ``oauth2`` or ``app``; None tries them all
            username: OAuth2 account to use; None means the first account
            params: Form-encoded body parameters (signed by OAuth1)

        Raises:
            AuthError: If the requested scheme fails, the scheme is unknown,
                or no stored credential yields a header
        """
        if scheme:
            kind = _SCHEME_KINDS[AuthScheme.parse(scheme)]
            return self._builder(kind)(method, url, username, params, True)

        for kind in FALLBACK_ORDER:
            if not self._has_credential(kind):
                continue
            try:
                return self._builder(kind)(method, url, username, params, False)
            except XurlError as e:
                _logger.debug("%s credentials unusable, trying next scheme: %s", kind.value, e)

        raise AuthError("No authentication method available")

    def _has_credential(self, kind: CredentialKind) -> bool:
        if kind is CredentialKind.OAUTH2:
            return bool(self.store.get_oauth2_usernames())
        if kind is CredentialKind.OAUTH1:
            return self.store.has_oauth1_tokens()
        return self.store.has_bearer_token()

    def _builder(self, kind: CredentialKind) -> Callable[..., str]:
        return {
            CredentialKind.OAUTH2: self._oauth2_header,
            CredentialKind.OAUTH1: self._oauth1_header,
            CredentialKind.BEARER: self._bearer_header,
        }[kind]

    def _oauth2_header(
        self,
        method: str,
        url: str,
        username: str | None,
        params: Mapping[str, str] | None,
        explicit: bool,
    ) -> str:
        if username:
            credential = self.store.get_oauth2_token(username)
            if credential is None:
                raise AuthError(f"No cached OAuth2 token found for {username}")
        else:
            first = self.store.get_first_oauth2_token()
            if first is None:
                if explicit and self.flow is not None:
                    self.flow.authenticate()
                    first = self.store.get_first_oauth2_token()
                if first is None:
                    raise AuthError("No OAuth2 tokens found")
            username, credential = first

        if not credential.is_expired():
            return f"Bearer {credential.access_token}"

        if self.refresher is None:
            raise AuthError(f"OAuth2 token for {username} has expired")
        _logger.info("OAuth2 token for %s has expired, refreshing", username)
        return f"Bearer {self.refresher.refresh(username)}"

    def _oauth1_header(
        self,
        method: str,
        url: str,
        username: str | None,
        params: Mapping[str, str] | None,
        explicit: bool,
    ) -> str:
        credential = self.store.get_oauth1_tokens()
        if credential is None:
            raise AuthError("No OAuth1 tokens found")
        return oauth1.sign(method, url, credential, params=params)

    def _bearer_header(
        self,
        method: str,
        url: str,
        username: str | None,
        params: Mapping[str, str] | None,
        explicit: bool,
    ) -> str:
        credential = self.store.get_bearer_token()
        if credential is None:
            raise AuthError("No bearer token found")
        return f"Bearer {credential.token}"


__all__ = ["AuthScheme", "AuthSelector", "FALLBACK_ORDER"]
