"""PKCE (Proof Key for Code Exchange) primitives.

Implements RFC 7636 S256 parameter generation plus the CSRF state token.
Nothing here caches: every call draws fresh bytes from ``secrets``.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from cloudauth.models.security import PKCEPair

VERIFIER_BYTES = 32
STATE_BITS = 64


def generate_verifier() -> str:
    """Generate a cryptographically secure code verifier.

    32 random bytes, hex-encoded. The result is 64 characters, inside the
    43-128 range RFC 7636 Section 4.1 allows, and uses only unreserved
    characters.

    Returns:
        A 64-character lowercase hex string
    """
    return secrets.token_hex(VERIFIER_BYTES)


def derive_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for a verifier.

    RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))

    Args:
        verifier: The code verifier to hash

    Returns:
        Base64url-encoded SHA256 hash of the verifier, without padding
    """
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def generate_state() -> str:
    """Generate the CSRF state token for one authorization attempt.

    Independent of the PKCE pair. 64 random bits rendered as lowercase hex
    without leading zeros.
    """
    return format(secrets.randbits(STATE_BITS), "x")


def generate_pair() -> PKCEPair:
    """Generate a fresh verifier and its matching challenge."""
    verifier = generate_verifier()
    return PKCEPair(verifier=verifier, challenge=derive_challenge(verifier))
