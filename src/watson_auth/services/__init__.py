# src/watson_auth/services/__init__.py
"""Authentication engine services."""

from .auth import AuthenticatedIdentity, AuthService, IssuedChallenge
from .chain import ChainClient
from .nonce_store import NonceStore
from .sessions import IssuedSession, SessionManager
from .signature import AccountKind, SignatureVerifier

__all__ = [
    "AccountKind",
    "AuthService",
    "AuthenticatedIdentity",
    "ChainClient",
    "IssuedChallenge",
    "IssuedSession",
    "NonceStore",
    "SessionManager",
    "SignatureVerifier",
]
