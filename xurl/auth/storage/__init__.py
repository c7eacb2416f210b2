"""
Credential persistence.

``TokenStore`` is the single on-disk store for every credential kind;
``legacy_import`` reads credentials from an existing twurl setup.
"""

from .legacy_import import LegacyCredentials, parse_legacy_document, read_legacy_file
from .token_store import TokenStore, default_legacy_path, default_store_path

__all__ = [
    "TokenStore",
    "default_store_path",
    "default_legacy_path",
    "LegacyCredentials",
    "read_legacy_file",
    "parse_legacy_document",
]
