# src/watson_auth/models/__init__.py
"""SQLAlchemy models for the Watson auth service."""

from .nonce import AuthNonce
from .session import AuthSession

__all__ = ["AuthNonce", "AuthSession"]
