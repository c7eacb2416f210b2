"""
Centralized constants for the auth package.

Constants are grouped by:
- Protocol constants: Fixed by OAuth 1.0a, OAuth 2.0 and PKCE
- Provider constants: Scopes and defaults of the X authorization server
- Internal constants: Implementation details
"""

from __future__ import annotations

# =============================================================================
# PROTOCOL CONSTANTS (Fixed by Standards)
# =============================================================================


class OAuthProtocol:
    """Constants defined by OAuth 2.0 and related RFCs."""

    HTTP_OK = 200
    HTTP_NOT_FOUND = 404

    GRANT_TYPE_AUTH_CODE = "authorization_code"
    GRANT_TYPE_REFRESH_TOKEN = "refresh_token"

    RESPONSE_TYPE_CODE = "code"


class OAuth1Protocol:
    """Constants defined by OAuth 1.0a (RFC 5849)."""

    SIGNATURE_METHOD = "HMAC-SHA1"
    VERSION = "1.0"

    # Characters left unescaped by percent_encode besides alphanumerics
    UNRESERVED = "-_.~"


class PkceProtocol:
    """Constants defined by PKCE (RFC 7636).

    Code verifier requirements (RFC 7636 Section 4.1):
    - Must be 43-128 characters
    - Using unreserved characters (A-Z, a-z, 0-9, -, ., _, ~)
    """

    # secrets.token_urlsafe(64) yields 86 characters
    CODE_VERIFIER_BYTES = 64
    MIN_VERIFIER_LENGTH = 43
    MAX_VERIFIER_LENGTH = 128

    CODE_CHALLENGE_METHOD = "S256"

    STATE_BYTES = 32


# =============================================================================
# PROVIDER CONSTANTS
# =============================================================================


class OAuth2Scopes:
    """Scopes requested during the OAuth2 authorization flow."""

    READ = (
        "block.read",
        "bookmark.read",
        "dm.read",
        "follows.read",
        "like.read",
        "list.read",
        "mute.read",
        "space.read",
        "tweet.read",
        "timeline.read",
        "users.read",
    )
    WRITE = (
        "block.write",
        "bookmark.write",
        "dm.write",
        "follows.write",
        "like.write",
        "list.write",
        "mute.write",
        "tweet.write",
        "tweet.moderate.write",
        "timeline.write",
        "media.write",
    )
    OTHER = ("offline.access",)

    @classmethod
    def all(cls) -> list[str]:
        return [*cls.READ, *cls.WRITE, *cls.OTHER]


class TokenDefaults:
    """Defaults applied to token endpoint responses."""

    # Used when the token endpoint omits expires_in
    DEFAULT_EXPIRES_IN_SECONDS = 7200


class OAuthDefaults:
    """Defaults for the local callback listener."""

    # serve_forever() poll interval; bounds how quickly shutdown() returns
    SERVER_POLL_INTERVAL = 0.2

    # Socket timeout for each accepted callback connection
    CONNECTION_TIMEOUT = 5


# =============================================================================
# INTERNAL CONSTANTS
# =============================================================================


class StorageDefaults:
    """Filesystem storage defaults."""

    # octal 0600 = rw------- (user: rw, group: -, other: -)
    FILE_PERMISSIONS = 0o600

    STORE_FILENAME = ".xurl"
    LEGACY_FILENAME = ".twurlrc"


__all__ = [
    "OAuthProtocol",
    "OAuth1Protocol",
    "PkceProtocol",
    "OAuth2Scopes",
    "TokenDefaults",
    "OAuthDefaults",
    "StorageDefaults",
]
