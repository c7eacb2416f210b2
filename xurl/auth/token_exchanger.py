"""Token endpoint calls for the OAuth2 flow.

This module contains the business logic of talking to the token endpoint
(authorization-code and refresh-token grants) and to the user-info
endpoint, separated from the callback server and from the store.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from xurl.core.exceptions import ApiError, AuthError, NetworkError, ParseError

from .constants import OAuthProtocol, TokenDefaults

if TYPE_CHECKING:
    from xurl.core.config import Config

    from .http_client import HttpClient

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenResponse:
    """Tokens returned by the token endpoint.

    Attributes:
        access_token: New access token
        refresh_token: Refresh token, or None when the server did not send one
        expiration_time: Unix epoch seconds computed as ``now + expires_in``
    """

    access_token: str
    refresh_token: str | None
    expiration_time: int


class TokenExchanger:
    """Handle token endpoint and user-info requests.

    Client credentials go in an HTTP Basic header when a client secret is
    configured; public clients send ``client_id`` in the body instead.
    """

    def __init__(self, config: Config, http_client: HttpClient) -> None:
        self.config = config
        self.http_client = http_client

    def exchange_code(self, code: str, code_verifier: str) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Raises:
            AuthError: If the token endpoint rejects the code or the
                response is unusable
        """
        return self._token_request(
            {
                "grant_type": OAuthProtocol.GRANT_TYPE_AUTH_CODE,
                "code": code,
                "redirect_uri": self.config.redirect_uri,
                "code_verifier": code_verifier,
            },
            action="Token exchange",
        )

    def refresh(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new access token.

        Raises:
            AuthError: If the token endpoint rejects the refresh token
        """
        return self._token_request(
            {
                "grant_type": OAuthProtocol.GRANT_TYPE_REFRESH_TOKEN,
                "refresh_token": refresh_token,
            },
            action="Token refresh",
        )

    def fetch_username(self, access_token: str) -> str:
        """Resolve the username owning ``access_token`` via the user-info endpoint.

        Raises:
            AuthError: If the lookup fails or the response has no username
        """
        try:
            response = self.http_client.get(
                self.config.info_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            payload = response.json()
        except (ApiError, NetworkError, ParseError) as e:
            raise AuthError(f"User lookup failed: {e}") from e

        data = payload.get("data")
        username = data.get("username") if isinstance(data, dict) else None
        if not isinstance(username, str) or not username:
            raise AuthError("User lookup failed: missing username field")
        return username

    def _token_request(self, form: dict[str, str], action: str) -> TokenResponse:
        auth: tuple[str, str] | None = None
        if self.config.client_secret:
            auth = (self.config.client_id, self.config.client_secret)
        else:
            form = {**form, "client_id": self.config.client_id}

        try:
            response = self.http_client.post(
                self.config.token_url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                auth=auth,
            )
            payload = response.json()
        except ApiError as e:
            _logger.error("%s failed: HTTP %s", action, e.status_code)
            raise AuthError(f"{action} failed: {e}") from e
        except (NetworkError, ParseError) as e:
            _logger.error("%s failed: %s", action, e)
            raise AuthError(f"{action} failed: {e}") from e

        return _parse_token_payload(payload, action)


def _parse_token_payload(payload: dict[str, Any], action: str) -> TokenResponse:
    access_token = payload.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise AuthError(f"{action} failed: response missing access_token")

    refresh_token = payload.get("refresh_token") or None

    expires_in = payload.get("expires_in", TokenDefaults.DEFAULT_EXPIRES_IN_SECONDS)
    try:
        expires_in = int(expires_in)
    except (TypeError, ValueError):
        expires_in = TokenDefaults.DEFAULT_EXPIRES_IN_SECONDS

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expiration_time=int(time.time()) + expires_in,
    )


__all__ = ["TokenExchanger", "TokenResponse"]
