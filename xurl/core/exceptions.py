"""
Custom exception hierarchy for xurl.

All exceptions inherit from XurlError, allowing callers to catch every
library-specific error with a single except clause.

The hierarchy mirrors the failure domains of the client:

- IOFailureError: the filesystem or the network failed us
- ParseError: a persisted file or a wire payload is malformed
- AuthError: no usable credential, or the authorization server said no
- ApiError: the API answered with a non-2xx status
- ProtocolError: the media upload protocol reached a terminal failure

Example:
    >>> try:
    ...     selector.header_for("GET", url)
    ... except AuthError as e:
    ...     print(f"Authentication failed: {e}")
"""

from __future__ import annotations

import json
from typing import Any


class XurlError(Exception):
    """Base exception for all xurl errors."""

    pass


class ValidationError(XurlError):
    """Raised when a configuration value fails validation.

    Attributes:
        field: Name of the field that failed validation
        value: The invalid value that was provided
        message: Human-readable explanation of the validation error

    Example:
        >>> Config.load()  # with OAUTH_CALLBACK_TIMEOUT=0
        ValidationError: Invalid 'OAUTH_CALLBACK_TIMEOUT': must be between 1 and 3600 (got 0)
    """

    def __init__(self, field: str, value: object, message: str) -> None:
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"Invalid {field!r}: {message} (got {value!r})")

    def __repr__(self) -> str:
        return (
            f"ValidationError(field={self.field!r}, value={self.value!r}, message={self.message!r})"
        )


class IOFailureError(XurlError):
    """Raised when a filesystem or transport operation fails."""

    pass


class StorageError(IOFailureError):
    """Raised when reading or writing a credential file fails.

    Example:
        >>> store.save_bearer_token("AAAA")
        StorageError: Cannot write token store /root/.xurl: Permission denied
    """

    pass


class NetworkError(IOFailureError):
    """Raised when an HTTP request cannot be completed.

    Covers connection failures, timeouts and streamed lines that exceed
    the maximum line size.
    """

    pass


class ParseError(XurlError):
    """Raised when a persisted file or a response body cannot be decoded."""

    pass


class AuthError(XurlError):
    """Raised when authentication cannot produce a usable credential.

    This covers missing credentials, unknown auth schemes, authorization
    timeouts, state mismatches and token exchange or refresh failures.
    """

    pass


class ApiError(XurlError):
    """Raised when the API answers with a non-2xx status.

    The server's error payload is kept verbatim so it can be shown to
    the user unchanged.

    Attributes:
        status_code: HTTP status code of the response
        payload: Decoded JSON body, or the raw text when it is not JSON
    """

    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self.payload = payload
        if isinstance(payload, str):
            message = payload
        else:
            message = json.dumps(payload)
        super().__init__(message)


class ProtocolError(XurlError):
    """Raised when the media upload protocol cannot continue.

    Example:
        >>> uploader.wait_for_processing()
        ProtocolError: Media processing failed
    """

    pass


class MediaIdNotSetError(ProtocolError):
    """Raised when a media command needs a media ID that INIT never set."""

    def __init__(self) -> None:
        super().__init__("media ID not set, call init first")


__all__ = [
    "XurlError",
    "ValidationError",
    "IOFailureError",
    "StorageError",
    "NetworkError",
    "ParseError",
    "AuthError",
    "ApiError",
    "ProtocolError",
    "MediaIdNotSetError",
]
