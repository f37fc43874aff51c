"""Token generation and hashing helpers."""
from __future__ import annotations

import hashlib
import hmac
import secrets

TOKEN_BYTES = 32


def generate_token_hex(num_bytes: int = TOKEN_BYTES) -> str:
    """Return a hex-encoded token drawn from the OS CSPRNG."""
    return secrets.token_hex(num_bytes)


def generate_token_urlsafe(num_bytes: int = TOKEN_BYTES) -> str:
    """Return a URL-safe token suitable for a cookie value."""
    return secrets.token_urlsafe(num_bytes)


def hash_token(token: str) -> str:
    """Return a SHA-256 hash of the provided token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def constant_time_equals(left: str, right: str) -> bool:
    """Compare two strings without leaking the position of the first difference."""
    return hmac.compare_digest(left.encode("utf-8"), right.encode("utf-8"))
