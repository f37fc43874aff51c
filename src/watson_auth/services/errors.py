"""Exception hierarchy for the authentication engine.

Every failure the engine reports is an :class:`AuthError`. The three direct
subclasses map onto the HTTP status families the API returns:

- :class:`RequestValidationFailure` (400): the client sent something malformed.
- :class:`AuthenticationFailure` (401): the proof or credential was rejected.
- :class:`InfrastructureError` (500): the store or the chain could not be used.
"""

from __future__ import annotations

from fastapi import status


class AuthError(Exception):
    """Base class for authentication engine failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Authentication error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class RequestValidationFailure(AuthError):
    """Client-caused failure: the request itself is malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class ChainMismatchError(RequestValidationFailure):
    default_detail = "Wrong chain id"


class OriginMismatchError(RequestValidationFailure):
    default_detail = "Wrong origin"


class InvalidAddressError(RequestValidationFailure):
    default_detail = "Invalid address"


class MalformedChallengeError(RequestValidationFailure):
    """The challenge text is missing a field or has a malformed one."""

    def __init__(self, field: str, reason: str | None = None) -> None:
        self.field = field
        detail = f"Malformed challenge: {field}"
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__(detail)


class SignatureFormatError(RequestValidationFailure):
    default_detail = "Invalid signature format"


class AuthenticationFailure(AuthError):
    """The presented proof or credential was rejected."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication failed"


class NonceError(AuthenticationFailure):
    default_detail = "Invalid nonce"


class NonceNotFoundError(NonceError):
    default_detail = "Nonce not found"


class NonceAlreadyUsedError(NonceError):
    default_detail = "Nonce already used"


class NonceExpiredError(NonceError):
    default_detail = "Nonce expired"


class ChallengeMismatchError(AuthenticationFailure):
    """A challenge field disagrees with the server configuration."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"{field} mismatch")


class ChallengeExpiredError(AuthenticationFailure):
    default_detail = "Challenge expired"


class SignatureRecoveryError(AuthenticationFailure):
    default_detail = "Signature recovery failed"


class InvalidSignatureError(AuthenticationFailure):
    default_detail = "Signature invalid"


class NotAuthenticatedError(AuthenticationFailure):
    default_detail = "Not authenticated"


class InfrastructureError(AuthError):
    """A collaborator failed; details are logged, never returned to clients."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal authentication error"


class StoreUnavailableError(InfrastructureError):
    default_detail = "Store unavailable"


class ChainQueryError(InfrastructureError):
    """The chain RPC endpoint was unreachable or returned a malformed envelope."""

    default_detail = "Chain query failed"


class ContractCallError(ChainQueryError):
    """``eth_call`` returned a JSON-RPC error, typically an execution revert."""

    def __init__(self, detail: str | None = None, *, code: int | None = None) -> None:
        self.code = code
        super().__init__(detail)
