"""
PKCE (Proof Key for Code Exchange) utilities for OAuth security.

PKCE binds the authorization code to a secret generated by this client,
so an intercepted code is useless without the verifier. The material is
ephemeral: it lives for exactly one authorization flow and is never
persisted.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass

from .constants import PkceProtocol


@dataclass(frozen=True)
class PkceCodes:
    """PKCE code verifier and challenge pair.

    Attributes:
        code_verifier: Cryptographically random string (43-128 chars)
        code_challenge: Base64url-encoded SHA256 hash of verifier
    """

    code_verifier: str
    code_challenge: str


def compute_code_challenge(code_verifier: str) -> str:
    """Return base64url(SHA256(verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_pkce() -> PkceCodes:
    """Generate PKCE code verifier and challenge.

    The verifier uses ``secrets.token_urlsafe``, whose alphabet
    (A-Z, a-z, 0-9, ``-``, ``_``) is a subset of the unreserved
    characters RFC 7636 allows.

    Example:
        >>> pkce = generate_pkce()
        >>> pkce.code_challenge == compute_code_challenge(pkce.code_verifier)
        True
    """
    code_verifier = secrets.token_urlsafe(PkceProtocol.CODE_VERIFIER_BYTES)
    return PkceCodes(
        code_verifier=code_verifier,
        code_challenge=compute_code_challenge(code_verifier),
    )


def generate_state() -> str:
    """Generate the random ``state`` value binding the callback to this flow."""
    return secrets.token_urlsafe(PkceProtocol.STATE_BYTES)


__all__ = ["PkceCodes", "compute_code_challenge", "generate_pkce", "generate_state"]
