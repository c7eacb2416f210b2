"""
Import of credentials from a legacy twurl ``.twurlrc`` file.

The file is YAML shaped like::

    profiles:
      someuser:
        CONSUMER_KEY:
          username: someuser
          consumer_key: CONSUMER_KEY
          consumer_secret: ...
          token: ...
          secret: ...
    configuration:
      default_profile: [someuser, CONSUMER_KEY]
    bearer_tokens:
      CONSUMER_KEY: AAAA...

Only the first profile and the first bearer token are taken. "First" means
the lexicographically smallest key, so the choice does not depend on the
order the YAML parser happens to return.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from xurl.core.exceptions import ParseError, StorageError

from ..credentials import BearerCredential, OAuth1Credential

_logger = logging.getLogger(__name__)


@dataclass
class LegacyCredentials:
    """Credentials found in a legacy file. Either field may be missing."""

    oauth1: OAuth1Credential | None = None
    bearer: BearerCredential | None = None


def read_legacy_file(path: Path) -> LegacyCredentials:
    """Read and parse a legacy credentials file.

    Args:
        path: Path to the ``.twurlrc`` document

    Returns:
        The first OAuth1 profile and the first bearer token found

    Raises:
        StorageError: If the file cannot be read
        ParseError: If the document is not valid YAML or has the wrong shape
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        _logger.error("Failed to read legacy credentials %s: %s", path, e)
        raise StorageError(f"Cannot read legacy credentials {path}: {e}") from e

    return parse_legacy_document(text, source=str(path))


def parse_legacy_document(text: str, source: str = "<string>") -> LegacyCredentials:
    """Parse the YAML text of a legacy credentials file.

    Raises:
        ParseError: If the document is malformed
    """
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid legacy credentials in {source}: {e}") from e

    if document is None:
        return LegacyCredentials()
    if not isinstance(document, dict):
        raise ParseError(f"Invalid legacy credentials in {source}: top level must be a mapping")

    profiles = _mapping(document.get("profiles"), "profiles", source)
    bearer_tokens = _mapping(document.get("bearer_tokens"), "bearer_tokens", source)

    result = LegacyCredentials()

    for username in sorted(profiles, key=str):
        consumer_keys = _mapping(profiles[username], f"profiles.{username}", source)
        if not consumer_keys:
            continue
        consumer_key = min(consumer_keys, key=str)
        profile = _mapping(
            consumer_keys[consumer_key], f"profiles.{username}.{consumer_key}", source
        )
        result.oauth1 = OAuth1Credential(
            access_token=str(profile.get("token") or ""),
            token_secret=str(profile.get("secret") or ""),
            consumer_key=str(consumer_key),
            consumer_secret=str(profile.get("consumer_secret") or ""),
        )
        _logger.debug("Selected legacy profile %s", username)
        break

    if bearer_tokens:
        first_key = min(bearer_tokens, key=str)
        result.bearer = BearerCredential(token=str(bearer_tokens[first_key]))

    return result


def _mapping(value: Any, name: str, source: str) -> dict[Any, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ParseError(
            f"Invalid legacy credentials in {source}: {name!r} must be a mapping, "
            f"got {type(value).__name__}"
        )
    return value


__all__ = ["LegacyCredentials", "read_legacy_file", "parse_legacy_document"]
