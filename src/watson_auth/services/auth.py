"""Sign-in flow: challenge issuance, proof submission, session lookup, logout."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from eth_utils import is_hex_address, to_checksum_address

from watson_auth.core.settings import Settings
from watson_auth.db.time import utcnow
from watson_auth.services.challenge import ChallengeMessage, build_message, parse_message
from watson_auth.services.errors import (
    ChainMismatchError,
    ChallengeExpiredError,
    ChallengeMismatchError,
    InvalidAddressError,
    InvalidSignatureError,
    NotAuthenticatedError,
    OriginMismatchError,
)
from watson_auth.services.nonce_store import NonceStore
from watson_auth.services.sessions import IssuedSession, SessionManager
from watson_auth.services.signature import SignatureVerifier

CHALLENGE_VERSION = "1"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedChallenge:
    """Challenge handed to a client for signing."""

    nonce: str
    message: str
    expires_at: datetime


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Identity attached to a request once its session has been resolved."""

    address: str


class AuthService:
    """Composes the nonce store, codec, verifier and session manager."""

    def __init__(
        self,
        settings: Settings,
        nonces: NonceStore,
        sessions: SessionManager,
        verifier: SignatureVerifier,
    ) -> None:
        self.settings = settings
        self.nonces = nonces
        self.sessions = sessions
        self.verifier = verifier

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(seconds=self.settings.session_ttl_seconds)

    def request_challenge(self, address: str, chain_id: int, origin: str) -> IssuedChallenge:
        """Issue a nonce and render the challenge text ``address`` must sign."""
        if chain_id != self.settings.siwe_chain_id:
            raise ChainMismatchError()
        if not origin.startswith(self.settings.siwe_origin):
            raise OriginMismatchError()
        if not is_hex_address(address):
            raise InvalidAddressError()

        nonce = self.nonces.issue(timedelta(seconds=self.settings.nonce_ttl_seconds))
        issued_at = utcnow().replace(microsecond=0)
        message = build_message(
            ChallengeMessage(
                domain=self.settings.siwe_domain,
                address=to_checksum_address(address),
                statement=self.settings.siwe_statement,
                uri=self.settings.siwe_origin,
                version=CHALLENGE_VERSION,
                chain_id=self.settings.siwe_chain_id,
                nonce=nonce.value,
                issued_at=issued_at,
                expiration_time=nonce.expires_at.replace(microsecond=0),
            )
        )
        return IssuedChallenge(nonce=nonce.value, message=message, expires_at=nonce.expires_at)

    def _check_against_settings(self, parsed: ChallengeMessage) -> None:
        if parsed.domain != self.settings.siwe_domain:
            raise ChallengeMismatchError("domain")
        if parsed.uri != self.settings.siwe_origin:
            raise ChallengeMismatchError("uri")
        if parsed.chain_id != self.settings.siwe_chain_id:
            raise ChallengeMismatchError("chain id")
        if parsed.version != CHALLENGE_VERSION:
            raise ChallengeMismatchError("version")
        if parsed.expiration_time is not None and parsed.expiration_time <= utcnow():
            raise ChallengeExpiredError()

    async def submit_proof(self, message: str, signature: str) -> IssuedSession:
        """Verify a signed challenge and mint a session for its address.

        The nonce is consumed before the signature is checked, so a failed
        proof still burns it and the same challenge cannot be retried with a
        different signature.
        """
        parsed = parse_message(message)
        self._check_against_settings(parsed)
        await asyncio.to_thread(self.nonces.try_consume, parsed.nonce)

        if not await self.verifier.verify(message, signature, parsed.address):
            logger.info("Signature rejected for %s", parsed.address)
            raise InvalidSignatureError()

        return await asyncio.to_thread(self.sessions.create, parsed.address, self.session_ttl)

    def who_am_i(self, session_id: str | None) -> AuthenticatedIdentity:
        """Resolve a session credential or raise :class:`NotAuthenticatedError`."""
        address = self.sessions.resolve(session_id) if session_id else None
        if address is None:
            raise NotAuthenticatedError()
        return AuthenticatedIdentity(address=address)

    def logout(self, session_id: str | None) -> None:
        if session_id:
            self.sessions.revoke(session_id)
