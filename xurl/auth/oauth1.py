"""
OAuth 1.0a request signing (HMAC-SHA1).

``sign`` is a pure function of the request, the credential, a nonce and a
timestamp. Nonce and timestamp are generated when not supplied, which is
the normal case; tests pass them in to get stable signatures.

``percent_encode`` turns a space into ``+`` rather than ``%20``; signature
base strings depend on it.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import time
import urllib.parse
from collections.abc import Iterable, Mapping

from .constants import OAuth1Protocol
from .credentials import OAuth1Credential

_SAFE = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
    + OAuth1Protocol.UNRESERVED.encode()
)


def percent_encode(value: str) -> str:
    """Percent-encode a value for the signature base string and header.

    Alphanumerics and ``-_.~`` pass through, a space becomes ``+`` and every
    other byte of the UTF-8 encoding becomes ``%XX``.

    Example:
        >>> percent_encode("a b+c/d?e&f")
        'a+b%2Bc%2Fd%3Fe%26f'
    """
    out = []
    for byte in value.encode("utf-8"):
        if byte in _SAFE:
            out.append(chr(byte))
        elif byte == 0x20:
            out.append("+")
        else:
            out.append(f"%{byte:02X}")
    return "".join(out)


def generate_nonce() -> str:
    """Return a fresh random nonce (64 random bits, hex encoded)."""
    return secrets.token_hex(8)


def generate_timestamp() -> str:
    """Return the current Unix time in whole seconds."""
    return str(int(time.time()))


def base_url(url: str) -> str:
    """Strip query and fragment, keeping scheme, host and path."""
    parts = urllib.parse.urlsplit(url)
    return urllib.parse.urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, "", ""))


def signature_base_string(method: str, url: str, params: Iterable[tuple[str, str]]) -> str:
    """Build ``METHOD&enc(base_url)&enc(sorted params)``."""
    encoded = sorted((percent_encode(k), percent_encode(v)) for k, v in params)
    parameter_string = "&".join(f"{k}={v}" for k, v in encoded)
    return "&".join(
        (
            percent_encode(method.upper()),
            percent_encode(base_url(url)),
            percent_encode(parameter_string),
        )
    )


def compute_signature(base_string: str, consumer_secret: str, token_secret: str) -> str:
    """Return base64(HMAC-SHA1(key, base_string))."""
    key = f"{percent_encode(consumer_secret)}&{percent_encode(token_secret)}"
    digest = hmac.new(key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def sign(
    method: str,
    url: str,
    credential: OAuth1Credential,
    params: Mapping[str, str] | None = None,
    nonce: str | None = None,
    timestamp: str | None = None,
) -> str:
    """Produce the ``Authorization`` header value for a request.

    Args:
        method: HTTP method
        url: Full request URL; its query parameters are signed too
        credential: Consumer and access token pairs
        params: Form-encoded body parameters, if any
        nonce: Override the random nonce
        timestamp: Override the current timestamp

    Returns:
        ``OAuth oauth_consumer_key="...", ..., oauth_version="1.0"``
    """
    oauth_params = {
        "oauth_consumer_key": credential.consumer_key,
        "oauth_nonce": nonce if nonce is not None else generate_nonce(),
        "oauth_signature_method": OAuth1Protocol.SIGNATURE_METHOD,
        "oauth_timestamp": timestamp if timestamp is not None else generate_timestamp(),
        "oauth_token": credential.access_token,
        "oauth_version": OAuth1Protocol.VERSION,
    }

    signing_params = list(oauth_params.items())
    query = urllib.parse.urlsplit(url).query
    signing_params.extend(urllib.parse.parse_qsl(query, keep_blank_values=True))
    if params:
        signing_params.extend(params.items())

    base_string = signature_base_string(method, url, signing_params)
    oauth_params["oauth_signature"] = compute_signature(
        base_string, credential.consumer_secret, credential.token_secret
    )

    header = ", ".join(
        f'{percent_encode(k)}="{percent_encode(v)}"' for k, v in sorted(oauth_params.items())
    )
    return f"OAuth {header}"


__all__ = [
    "percent_encode",
    "generate_nonce",
    "generate_timestamp",
    "base_url",
    "signature_base_string",
    "compute_signature",
    "sign",
]
