"""Signature verification for externally-owned and contract accounts."""

from __future__ import annotations

import logging
from enum import Enum

from eth_abi import encode as abi_encode
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import decode_hex, function_signature_to_4byte_selector, keccak

from watson_auth.core.security import constant_time_equals
from watson_auth.services.chain import ChainQuery
from watson_auth.services.errors import (
    ContractCallError,
    SignatureFormatError,
    SignatureRecoveryError,
)

PERSONAL_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n"
SIGNATURE_LENGTH = 65
ERC1271_MAGIC_VALUE = bytes.fromhex("1626ba7e")
IS_VALID_SIGNATURE_SELECTOR = function_signature_to_4byte_selector(
    "isValidSignature(bytes32,bytes)"
)

logger = logging.getLogger(__name__)


class AccountKind(Enum):
    """How an address proves control: key recovery or on-chain validation."""

    EOA = "eoa"
    CONTRACT = "contract"


def personal_message_hash(message: str) -> bytes:
    """Return the EIP-191 personal-message digest of ``message``.

    The prefix carries the decimal byte length of the UTF-8 encoded text.
    """
    data = message.encode("utf-8")
    return keccak(PERSONAL_MESSAGE_PREFIX + str(len(data)).encode("ascii") + data)


def decode_signature(signature: str) -> bytes:
    """Decode a hex signature with or without the ``0x`` prefix."""
    if not isinstance(signature, str) or not signature:
        raise SignatureFormatError()
    try:
        return decode_hex(signature)
    except ValueError as err:
        raise SignatureFormatError("Signature is not valid hex") from err


def _split_eoa_signature(signature: str) -> tuple[bytes, int]:
    raw = decode_signature(signature)
    if len(raw) != SIGNATURE_LENGTH:
        raise SignatureFormatError(f"Signature must be {SIGNATURE_LENGTH} bytes")
    v = raw[64]
    # Wallets emit either 0/1 or 27/28
    if v in (0, 1):
        v += 27
    if v not in (27, 28):
        raise SignatureFormatError("Signature recovery id must be 0, 1, 27 or 28")
    return raw[:64], v - 27


def recover_address(digest: bytes, signature: str) -> str:
    """Recover the checksummed signer address of ``digest``."""
    rs, recovery_id = _split_eoa_signature(signature)
    try:
        sig = keys.Signature(signature_bytes=rs + bytes([recovery_id]))
        public_key = sig.recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError, ValueError) as err:
        raise SignatureRecoveryError() from err
    return public_key.to_checksum_address()


def verify_eoa(digest: bytes, signature: str, expected_address: str) -> bool:
    """Return True if ``signature`` over ``digest`` recovers to ``expected_address``.

    Raises:
        SignatureFormatError: The signature is not 65 bytes of valid hex.
        SignatureRecoveryError: No public key can be recovered.
    """
    recovered = recover_address(digest, signature)
    return constant_time_equals(recovered.lower(), expected_address.lower())


class SignatureVerifier:
    """Dispatches verification on the on-chain kind of the claimed address."""

    def __init__(self, chain: ChainQuery) -> None:
        self.chain = chain

    async def resolve_account_kind(self, address: str) -> AccountKind:
        """Query current chain state; never cached since code can be deployed later."""
        code = await self.chain.code_at(address)
        kind = AccountKind.CONTRACT if code else AccountKind.EOA
        logger.debug("Account %s resolved as %s", address, kind.value)
        return kind

    async def verify_contract(self, digest: bytes, signature: str, contract_address: str) -> bool:
        """Ask the contract whether it accepts ``signature`` for ``digest`` (ERC-1271).

        A reverted call or any return other than the magic value is an invalid
        signature. Transport failures propagate as :class:`ChainQueryError`.
        """
        raw = decode_signature(signature)
        data = IS_VALID_SIGNATURE_SELECTOR + abi_encode(["bytes32", "bytes"], [digest, raw])
        try:
            result = await self.chain.call(contract_address, data)
        except ContractCallError as err:
            logger.info("isValidSignature call on %s failed: %s", contract_address, err)
            return False
        if len(result) < len(ERC1271_MAGIC_VALUE):
            logger.info("isValidSignature on %s returned %d bytes", contract_address, len(result))
            return False
        return result[: len(ERC1271_MAGIC_VALUE)] == ERC1271_MAGIC_VALUE

    async def verify(self, message: str, signature: str, claimed_address: str) -> bool:
        """Verify ``signature`` over ``message`` for ``claimed_address``.

        The path is chosen from the chain state of ``claimed_address`` alone.
        """
        digest = personal_message_hash(message)
        kind = await self.resolve_account_kind(claimed_address)
        if kind is AccountKind.CONTRACT:
            return await self.verify_contract(digest, signature, claimed_address)
        return verify_eoa(digest, signature, claimed_address)
