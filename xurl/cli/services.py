"""Wiring of configuration, token store and API client for CLI commands."""

from xurl.api import ApiClient
from xurl.auth import AuthSelector, HttpxHttpClient, PKCEFlow, TokenRefresher, TokenStore
from xurl.core.config import Config


def open_store(config: Config) -> TokenStore:
    """Load the token store named by ``config``, importing legacy credentials."""
    return TokenStore.load(config.token_store_path, config.legacy_credentials_path)


def build_selector(config: Config, store: TokenStore) -> AuthSelector:
    """Selector that refreshes expired OAuth2 tokens and can run the browser flow."""
    http_client = HttpxHttpClient(timeout=config.http_timeout)
    return AuthSelector(
        store,
        refresher=TokenRefresher(store, config, http_client),
        flow=PKCEFlow(store, config, http_client),
    )


def build_api_client(config: Config, store: TokenStore) -> ApiClient:
    return ApiClient(config, build_selector(config, store))
