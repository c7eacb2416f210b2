"""
Filesystem-backed token store.

Stores every credential the client knows about in a single JSON file
(``~/.xurl`` by default) with owner-only permissions. The file is the
only persisted copy and is rewritten in full on every mutation.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from xurl.core.exceptions import ParseError, StorageError, XurlError

from ..constants import StorageDefaults
from ..credentials import (
    BearerCredential,
    CredentialKind,
    OAuth1Credential,
    OAuth2Credential,
    credential_from_dict,
)
from .legacy_import import read_legacy_file

_logger = logging.getLogger(__name__)


def default_store_path() -> Path:
    return Path.home() / StorageDefaults.STORE_FILENAME


def default_legacy_path() -> Path:
    return Path.home() / StorageDefaults.LEGACY_FILENAME


class TokenStore:
    """Persistent store for bearer, OAuth1 and OAuth2 credentials.

    Holds at most one bearer credential, at most one OAuth1 credential and
    any number of OAuth2 credentials keyed by username.

    Example:
        >>> store = TokenStore.load()
        >>> store.save_bearer_token("AAAA...")
        >>> store.get_bearer_token()
        BearerCredential(token='AAAA...')
    """

    def __init__(self, file_path: Path | str | None = None) -> None:
        """Create an empty store bound to ``file_path``.

        Nothing is read or written; use ``TokenStore.load`` to read an
        existing file.
        """
        self.file_path = Path(file_path) if file_path else default_store_path()
        self._oauth2: dict[str, OAuth2Credential] = {}
        self._oauth1: OAuth1Credential | None = None
        self._bearer: BearerCredential | None = None

    @classmethod
    def load(
        cls,
        file_path: Path | str | None = None,
        legacy_path: Path | str | None = None,
    ) -> TokenStore:
        """Load the store from disk, importing legacy credentials if needed.

        When the store is missing an OAuth1 or a bearer credential and the
        legacy file exists, its first profile and bearer token fill the
        empty slots. Import failures are logged and otherwise ignored.

        Args:
            file_path: Store file (defaults to ``~/.xurl``)
            legacy_path: Legacy twurl file (defaults to ``~/.twurlrc``)

        Raises:
            StorageError: If the store file exists but cannot be read
            ParseError: If the store file is not valid JSON
        """
        store = cls(file_path)
        store._read()

        if store._oauth1 is None or store._bearer is None:
            legacy = Path(legacy_path) if legacy_path else default_legacy_path()
            if legacy.exists():
                try:
                    store.import_legacy(legacy)
                except XurlError as e:
                    _logger.warning("Error importing from %s: %s", legacy, e)

        return store

    # ------------------------------------------------------------------
    # Bearer
    # ------------------------------------------------------------------

    def save_bearer_token(self, token: str) -> None:
        self._bearer = BearerCredential(token=token)
        self._save()

    def get_bearer_token(self) -> BearerCredential | None:
        return self._bearer

    def has_bearer_token(self) -> bool:
        return self._bearer is not None

    def clear_bearer_token(self) -> None:
        self._bearer = None
        self._save()

    # ------------------------------------------------------------------
    # OAuth1
    # ------------------------------------------------------------------

    def save_oauth1_tokens(
        self,
        access_token: str,
        token_secret: str,
        consumer_key: str,
        consumer_secret: str,
    ) -> None:
        self._oauth1 = OAuth1Credential(
            access_token=access_token,
            token_secret=token_secret,
            consumer_key=consumer_key,
            consumer_secret=consumer_secret,
        )
        self._save()

    def get_oauth1_tokens(self) -> OAuth1Credential | None:
        return self._oauth1

    def has_oauth1_tokens(self) -> bool:
        return self._oauth1 is not None

    def clear_oauth1_tokens(self) -> None:
        self._oauth1 = None
        self._save()

    # ------------------------------------------------------------------
    # OAuth2
    # ------------------------------------------------------------------

    def save_oauth2_token(
        self,
        username: str,
        access_token: str,
        refresh_token: str,
        expiration_time: int,
    ) -> None:
        self._oauth2[username] = OAuth2Credential(
            access_token=access_token,
            refresh_token=refresh_token,
            expiration_time=int(expiration_time),
        )
        self._save()

    def get_oauth2_token(self, username: str) -> OAuth2Credential | None:
        return self._oauth2.get(username)

    def get_first_oauth2_token(self) -> tuple[str, OAuth2Credential] | None:
        """Return the account with the lexicographically smallest username."""
        if not self._oauth2:
            return None
        username = min(self._oauth2)
        return username, self._oauth2[username]

    def get_oauth2_usernames(self) -> list[str]:
        return sorted(self._oauth2)

    def clear_oauth2_token(self, username: str) -> None:
        self._oauth2.pop(username, None)
        self._save()

    # ------------------------------------------------------------------
    # Whole store
    # ------------------------------------------------------------------

    def clear_all(self) -> None:
        self._oauth2 = {}
        self._oauth1 = None
        self._bearer = None
        self._save()

    def import_legacy(self, path: Path | str) -> None:
        """Fill missing OAuth1 / bearer slots from a legacy twurl file.

        Existing credentials are never overwritten. The store is persisted
        afterwards.

        Raises:
            StorageError: If the legacy file cannot be read or the store
                cannot be written
            ParseError: If the legacy file is malformed; the store is left
                untouched
        """
        legacy = read_legacy_file(Path(path))

        if self._oauth1 is None and legacy.oauth1 is not None:
            self._oauth1 = legacy.oauth1
            _logger.info("Imported OAuth1 credentials from %s", path)
        if self._bearer is None and legacy.bearer is not None:
            self._bearer = legacy.bearer
            _logger.info("Imported bearer token from %s", path)

        self._save()

    def to_dict(self) -> dict[str, Any]:
        """Serialise the store to its on-disk JSON shape."""
        data: dict[str, Any] = {
            "oauth2_tokens": {
                username: credential.to_dict() for username, credential in self._oauth2.items()
            },
        }
        if self._oauth1 is not None:
            data["oauth1_tokens"] = self._oauth1.to_dict()
        if self._bearer is not None:
            data["bearer_token"] = self._bearer.to_dict()
        data["file_path"] = str(self.file_path)
        return data

    def __repr__(self) -> str:
        return (
            f"TokenStore(path={str(self.file_path)!r}, oauth2={self.get_oauth2_usernames()}, "
            f"oauth1={self.has_oauth1_tokens()}, bearer={self.has_bearer_token()})"
        )

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read(self) -> None:
        if not self.file_path.exists():
            return

        try:
            with open(self.file_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            _logger.error("Corrupted token store %s: %s", self.file_path, e)
            raise ParseError(
                f"Invalid token store {self.file_path}: {e}"
                " (run 'xurl auth clear --all' to reset it)"
            ) from e
        except OSError as e:
            _logger.error("Failed to read token store %s: %s", self.file_path, e)
            raise StorageError(f"Cannot read token store {self.file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ParseError(f"Invalid token store {self.file_path}: top level must be an object")

        oauth2 = data.get("oauth2_tokens") or {}
        if not isinstance(oauth2, dict):
            raise ParseError(f"Invalid token store {self.file_path}: 'oauth2_tokens' must be an object")

        for username, record in oauth2.items():
            credential = credential_from_dict(record)
            if credential.kind is not CredentialKind.OAUTH2:
                raise ParseError(f"Non-OAuth2 credential stored for user {username!r}")
            self._oauth2[username] = credential

        if data.get("oauth1_tokens"):
            credential = credential_from_dict(data["oauth1_tokens"])
            if credential.kind is not CredentialKind.OAUTH1:
                raise ParseError("Non-OAuth1 credential stored in 'oauth1_tokens'")
            self._oauth1 = credential

        if data.get("bearer_token"):
            credential = credential_from_dict(data["bearer_token"])
            if credential.kind is not CredentialKind.BEARER:
                raise ParseError("Non-bearer credential stored in 'bearer_token'")
            self._bearer = credential

    def _save(self) -> None:
        """Write the whole store atomically with mode 0600.

        Raises:
            StorageError: If the write fails
        """
        payload = json.dumps(self.to_dict(), indent=2)
        directory = self.file_path.parent
        tmp_name = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=directory, prefix=f".{self.file_path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                if hasattr(os, "fchmod"):
                    os.fchmod(f.fileno(), StorageDefaults.FILE_PERMISSIONS)
                f.write(payload)
            os.replace(tmp_name, self.file_path)
            tmp_name = None
        except OSError as e:
            _logger.error("Failed to write token store %s: %s", self.file_path, e)
            raise StorageError(f"Cannot write token store {self.file_path}: {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)


__all__ = ["TokenStore", "default_store_path", "default_legacy_path"]
