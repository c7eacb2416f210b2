"""
xurl authentication

Credential storage and Authorization header production for the X API.

This package provides:
- A JSON token store holding bearer, OAuth1 and per-user OAuth2 credentials
- Import of existing twurl (``.twurlrc``) credentials
- OAuth 1.0a HMAC-SHA1 request signing
- OAuth 2.0 Authorization Code + PKCE flow with a local callback listener
- OAuth2 token refresh
- Scheme selection with a fallback chain

Basic Usage:
    >>> from xurl.auth import AuthSelector, PKCEFlow, TokenRefresher, TokenStore
    >>> from xurl.core.config import Config
    >>>
    >>> config = Config.load()
    >>> store = TokenStore.load(config.token_store_path, config.legacy_credentials_path)
    >>>
    >>> # One-time authentication
    >>> username = PKCEFlow(store, config).authenticate()
    >>>
    >>> # Header for a request (refreshes an expired OAuth2 token)
    >>> selector = AuthSelector(store, refresher=TokenRefresher(store, config))
    >>> header = selector.header_for("GET", "https://api.x.com/2/users/me")
"""

# Credentials
from .credentials import (
    BearerCredential,
    Credential,
    CredentialKind,
    OAuth1Credential,
    OAuth2Credential,
)

# HTTP client
from .http_client import HttpClient, HttpResponse, HttpxHttpClient

# OAuth flow
from .pkce import PkceCodes, generate_pkce, generate_state
from .pkce_flow import PKCEFlow, build_authorize_url
from .selector import AuthScheme, AuthSelector

# Storage
from .storage import TokenStore
from .token_exchanger import TokenExchanger, TokenResponse

# Token management
from .tokens import TokenRefresher

__all__ = [
    # Credentials
    "Credential",
    "CredentialKind",
    "BearerCredential",
    "OAuth1Credential",
    "OAuth2Credential",
    # Storage
    "TokenStore",
    # OAuth
    "PKCEFlow",
    "build_authorize_url",
    "TokenExchanger",
    "TokenResponse",
    "PkceCodes",
    "generate_pkce",
    "generate_state",
    # Tokens
    "TokenRefresher",
    # Selection
    "AuthScheme",
    "AuthSelector",
    # HTTP client
    "HttpClient",
    "HttpResponse",
    "HttpxHttpClient",
]
