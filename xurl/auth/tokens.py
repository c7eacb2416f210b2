"""
OAuth2 token refresh.

Exchanges the stored refresh token for a new access token and writes the
result back to the store. Refresh is attempted once per call; a failure
is reported, not retried.
"""

import logging

from xurl.core.config import Config
from xurl.core.exceptions import AuthError

from .http_client import HttpClient, HttpxHttpClient
from .storage import TokenStore
from .token_exchanger import TokenExchanger

_logger = logging.getLogger(__name__)


class TokenRefresher:
    """Refresh stored OAuth2 tokens.

    Example:
        >>> refresher = TokenRefresher(store, Config.load())
        >>> access_token = refresher.refresh("alice")
    """

    def __init__(
        self,
        store: TokenStore,
        config: Config,
        http_client: HttpClient | None = None,
    ):
        self.store = store
        self.config = config
        self.http_client = http_client or HttpxHttpClient(timeout=config.http_timeout)
        self.exchanger = TokenExchanger(config, self.http_client)

    def refresh(self, username: str | None = None) -> str:
        """Refresh the access token of ``username`` (or the first account).

        The rotated refresh token is stored when the server sends one;
        otherwise the current refresh token is kept.

        Returns:
            The new access token

        Raises:
            AuthError: If no token is stored or the token endpoint refuses
            StorageError: If the refreshed token cannot be persisted
        """
        if username:
            credential = self.store.get_oauth2_token(username)
            if credential is None:
                raise AuthError(f"No cached OAuth2 token found for {username}")
        else:
            first = self.store.get_first_oauth2_token()
            if first is None:
                raise AuthError("No OAuth2 tokens found")
            username, credential = first

        if not credential.refresh_token:
            raise AuthError(f"Cannot refresh token for {username}: no refresh_token available")

        _logger.debug("Refreshing OAuth2 token for %s", username)
        tokens = self.exchanger.refresh(credential.refresh_token)

        self.store.save_oauth2_token(
            username,
            tokens.access_token,
            tokens.refresh_token or credential.refresh_token,
            tokens.expiration_time,
        )
        _logger.info("Refreshed OAuth2 token for %s", username)
        return tokens.access_token


__all__ = ["TokenRefresher"]
