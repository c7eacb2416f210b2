"""OAuth 2.0 Authorization Code + PKCE flow.

This module provides the high-level flow orchestration. The HTTP listener
lives in callback_server.py and token endpoint calls in token_exchanger.py.
"""

from __future__ import annotations

import logging
import urllib.parse
import webbrowser

from xurl.core.config import Config
from xurl.core.exceptions import AuthError

from .callback_server import OAuthCallbackServer
from .constants import OAuth2Scopes, OAuthProtocol, PkceProtocol
from .http_client import HttpClient, HttpxHttpClient
from .pkce import PkceCodes, generate_pkce, generate_state
from .storage import TokenStore
from .token_exchanger import TokenExchanger

_logger = logging.getLogger(__name__)


def build_authorize_url(config: Config, pkce: PkceCodes, state: str) -> str:
    """Build the URL the user opens to grant access."""
    params = {
        "response_type": OAuthProtocol.RESPONSE_TYPE_CODE,
        "client_id": config.client_id,
        "redirect_uri": config.redirect_uri,
        "scope": " ".join(OAuth2Scopes.all()),
        "state": state,
        "code_challenge": pkce.code_challenge,
        "code_challenge_method": PkceProtocol.CODE_CHALLENGE_METHOD,
    }
    separator = "&" if urllib.parse.urlsplit(config.auth_url).query else "?"
    return config.auth_url + separator + urllib.parse.urlencode(
        params, quote_via=urllib.parse.quote
    )


class PKCEFlow:
    """Run the browser-based OAuth2 authorization flow.

    1. Generates PKCE material and a state token
    2. Starts the local callback listener on the redirect URI
    3. Opens the authorization URL in the browser
    4. Waits for the callback, bounded by ``config.callback_timeout``
    5. Checks the state, exchanges the code for tokens
    6. Resolves the username and saves the tokens in the store

    Example:
        >>> flow = PKCEFlow(TokenStore.load(), Config.load())
        >>> username = flow.authenticate()
    """

    def __init__(
        self,
        store: TokenStore,
        config: Config,
        http_client: HttpClient | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.http_client = http_client or HttpxHttpClient(timeout=config.http_timeout)
        self.exchanger = TokenExchanger(config, self.http_client)

    def authenticate(self, open_browser: bool = True) -> str:
        """Run the flow and persist the resulting tokens.

        Args:
            open_browser: If False, only print the authorization URL

        Returns:
            Username the tokens were stored under

        Raises:
            AuthError: On missing client ID, timeout, callback error,
                state mismatch, or token exchange / user lookup failure
            StorageError: If the tokens cannot be persisted
        """
        if not self.config.client_id:
            raise AuthError("Missing CLIENT_ID: cannot start the OAuth2 flow")

        pkce = generate_pkce()
        state = generate_state()
        auth_url = build_authorize_url(self.config, pkce, state)

        redirect = urllib.parse.urlsplit(self.config.redirect_uri)
        host = redirect.hostname or "localhost"
        port = redirect.port or 80

        try:
            server = OAuthCallbackServer(host, port, redirect.path)
        except OSError as e:
            raise AuthError(f"Cannot listen on {host}:{port} for the OAuth callback: {e}") from e

        with server:
            self._present_url(auth_url, open_browser)
            result = server.wait_for_callback(self.config.callback_timeout)

        if result is None:
            raise AuthError(
                f"Authorization timed out after {self.config.callback_timeout} seconds"
            )
        if result.error:
            detail = f": {result.error_description}" if result.error_description else ""
            raise AuthError(f"Authorization denied ({result.error}){detail}")
        if result.state != state:
            raise AuthError("Invalid state parameter in OAuth callback")
        if not result.code:
            raise AuthError("Missing authorization code in OAuth callback")

        tokens = self.exchanger.exchange_code(result.code, pkce.code_verifier)
        if not tokens.refresh_token:
            raise AuthError("Token exchange failed: response missing refresh_token")

        username = self.exchanger.fetch_username(tokens.access_token)
        self.store.save_oauth2_token(
            username, tokens.access_token, tokens.refresh_token, tokens.expiration_time
        )
        _logger.info("Stored OAuth2 tokens for %s", username)
        return username

    @staticmethod
    def _present_url(auth_url: str, open_browser: bool) -> None:
        opened = False
        if open_browser:
            try:
                opened = webbrowser.open(auth_url)
            except webbrowser.Error as e:
                _logger.warning("Could not open browser: %s", e)
        if not opened:
            print(f"Visit this URL to authenticate:\n{auth_url}")


__all__ = ["PKCEFlow", "build_authorize_url"]
