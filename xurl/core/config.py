"""Environment-driven configuration for xurl.

This module keeps a declarative schema of every environment variable the
client reads, with automatic type coercion and validation, and a
``Config`` object built from it once per process.

Environment variables are read after ``.env`` has been loaded by the
package ``__init__``.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from xurl.core.exceptions import ValidationError

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class EnvVarSpec:
    """Specification for a single environment variable.

    Attributes:
        name: Environment variable name (e.g., "CLIENT_ID")
        default: Default value if env var not set
        type_hint: Type for validation (int, str, float, bool)
        description: Human-readable description for docs
        validator: Optional custom validation function
        constraint: Text shown when the validator rejects a value
    """

    name: str
    default: Any
    type_hint: type
    description: str
    validator: Callable[[Any], bool] | None = None
    constraint: str = "is not a valid value"

    def read(self, environ: dict[str, str] | None = None) -> Any:
        """Read, coerce and validate the variable.

        Raises:
            ValidationError: If the value cannot be coerced or is rejected
        """
        source = os.environ if environ is None else environ
        raw = source.get(self.name)
        if raw is None or raw == "":
            return self.default

        try:
            value = _coerce(raw, self.type_hint)
        except ValueError as e:
            raise ValidationError(
                self.name, raw, f"must be {self.type_hint.__name__}"
            ) from e

        if self.validator is not None and not self.validator(value):
            raise ValidationError(self.name, value, self.constraint)
        return value


def _coerce(raw: str, type_hint: type) -> Any:
    if type_hint is bool:
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(raw)
    if type_hint is int:
        return int(raw.strip())
    if type_hint is float:
        return float(raw.strip())
    return raw.strip()


class ConfigSchema:
    """Registry of all configuration environment variables."""

    # === OAuth2 client ===

    CLIENT_ID = EnvVarSpec(
        name="CLIENT_ID",
        default="",
        type_hint=str,
        description="OAuth2 client ID of the registered app",
    )

    CLIENT_SECRET = EnvVarSpec(
        name="CLIENT_SECRET",
        default="",
        type_hint=str,
        description="OAuth2 client secret of the registered app",
    )

    # === OAuth2 PKCE flow URLs ===

    REDIRECT_URI = EnvVarSpec(
        name="REDIRECT_URI",
        default="http://localhost:8080/callback",
        type_hint=str,
        description="Redirect URI registered for the app; its host:port is listened on",
        validator=lambda x: x.startswith("http://"),
        constraint="must be an http:// URL served by the local callback listener",
    )

    AUTH_URL = EnvVarSpec(
        name="AUTH_URL",
        default="https://x.com/i/oauth2/authorize",
        type_hint=str,
        description="OAuth2 authorization endpoint",
    )

    TOKEN_URL = EnvVarSpec(
        name="TOKEN_URL",
        default="https://api.x.com/2/oauth2/token",
        type_hint=str,
        description="OAuth2 token endpoint",
    )

    # === API ===

    API_BASE_URL = EnvVarSpec(
        name="API_BASE_URL",
        default="https://api.x.com",
        type_hint=str,
        description="Base URL prepended to relative request paths",
    )

    INFO_URL = EnvVarSpec(
        name="INFO_URL",
        default=None,
        type_hint=str,
        description="User info endpoint (defaults to {API_BASE_URL}/2/users/me)",
    )

    # === Storage ===

    XURL_TOKEN_STORE = EnvVarSpec(
        name="XURL_TOKEN_STORE",
        default=None,
        type_hint=str,
        description="Path of the token store file (defaults to ~/.xurl)",
    )

    XURL_LEGACY_CREDENTIALS = EnvVarSpec(
        name="XURL_LEGACY_CREDENTIALS",
        default=None,
        type_hint=str,
        description="Path of the legacy twurl credentials file (defaults to ~/.twurlrc)",
    )

    # === Timeouts ===

    OAUTH_CALLBACK_TIMEOUT = EnvVarSpec(
        name="OAUTH_CALLBACK_TIMEOUT",
        default=300,
        type_hint=int,
        description="Seconds to wait for the OAuth2 browser callback",
        validator=lambda x: 1 <= x <= 3600,
        constraint="must be between 1 and 3600",
    )

    HTTP_TIMEOUT = EnvVarSpec(
        name="HTTP_TIMEOUT",
        default=30.0,
        type_hint=float,
        description="Timeout in seconds for each HTTP request",
        validator=lambda x: x > 0,
        constraint="must be positive",
    )

    # === Logging ===

    LOG_LEVEL = EnvVarSpec(
        name="LOG_LEVEL",
        default="WARNING",
        type_hint=str,
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        validator=lambda x: bool(x.split()) and x.split()[0].upper() in _VALID_LOG_LEVELS,
        constraint="must be one of " + ", ".join(_VALID_LOG_LEVELS),
    )

    @classmethod
    def all(cls) -> list[EnvVarSpec]:
        return [value for value in vars(cls).values() if isinstance(value, EnvVarSpec)]


@dataclass
class Config:
    """Resolved configuration values.

    Build it with ``Config.load()``; tests construct it directly.
    """

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ConfigSchema.REDIRECT_URI.default
    auth_url: str = ConfigSchema.AUTH_URL.default
    token_url: str = ConfigSchema.TOKEN_URL.default
    api_base_url: str = ConfigSchema.API_BASE_URL.default
    info_url: str = ""
    token_store_path: Path | None = None
    legacy_credentials_path: Path | None = None
    callback_timeout: int = ConfigSchema.OAUTH_CALLBACK_TIMEOUT.default
    http_timeout: float = ConfigSchema.HTTP_TIMEOUT.default
    log_level: str = ConfigSchema.LOG_LEVEL.default

    def __post_init__(self) -> None:
        if not self.info_url:
            self.info_url = f"{self.api_base_url.rstrip('/')}/2/users/me"

    @classmethod
    def load(cls, environ: dict[str, str] | None = None) -> Config:
        """Load configuration from the environment.

        Raises:
            ValidationError: If any variable holds an invalid value
        """
        s = ConfigSchema
        token_store = s.XURL_TOKEN_STORE.read(environ)
        legacy = s.XURL_LEGACY_CREDENTIALS.read(environ)
        return cls(
            client_id=s.CLIENT_ID.read(environ),
            client_secret=s.CLIENT_SECRET.read(environ),
            redirect_uri=s.REDIRECT_URI.read(environ),
            auth_url=s.AUTH_URL.read(environ),
            token_url=s.TOKEN_URL.read(environ),
            api_base_url=s.API_BASE_URL.read(environ),
            info_url=s.INFO_URL.read(environ) or "",
            token_store_path=Path(token_store).expanduser() if token_store else None,
            legacy_credentials_path=Path(legacy).expanduser() if legacy else None,
            callback_timeout=s.OAUTH_CALLBACK_TIMEOUT.read(environ),
            http_timeout=s.HTTP_TIMEOUT.read(environ),
            log_level=s.LOG_LEVEL.read(environ).split()[0].upper(),
        )


__all__ = ["Config", "ConfigSchema", "EnvVarSpec"]
