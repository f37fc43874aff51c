"""JSON-RPC client for the configured chain.

Only read-only calls are made: ``eth_getCode`` to tell contract accounts from
externally-owned ones, ``eth_call`` for ERC-1271 validation, and ``eth_chainId``
for a startup sanity check. Every request is bounded by the configured timeout.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Protocol

import httpx
from eth_utils import decode_hex, encode_hex, to_checksum_address

from watson_auth.core.settings import Settings, get_settings
from watson_auth.services.errors import ChainQueryError, ContractCallError

logger = logging.getLogger(__name__)


class ChainQuery(Protocol):
    """Read-only view of the chain used by the signature verifier."""

    async def code_at(self, address: str) -> bytes: ...

    async def call(self, to: str, data: bytes) -> bytes: ...


class ChainClient:
    """HTTP JSON-RPC client wrapper for a single chain endpoint."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._ids = itertools.count(1)

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        client = await self._ensure_client()
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await client.post(self.rpc_url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("RPC %s failed: %s", method, exc)
            raise ChainQueryError(f"RPC {method} failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            logger.warning("RPC %s responded with HTTP %s", method, response.status_code)
            raise ChainQueryError(f"RPC {method} responded with HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise ChainQueryError(f"RPC {method} returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise ChainQueryError(f"RPC {method} returned a non-object response")

        error = body.get("error")
        if error is not None:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message") if isinstance(error, dict) else str(error)
            if method == "eth_call":
                raise ContractCallError(f"eth_call error: {message}", code=code)
            logger.warning("RPC %s returned error %s: %s", method, code, message)
            raise ChainQueryError(f"RPC {method} error: {message}")

        if "result" not in body:
            raise ChainQueryError(f"RPC {method} response has no result")
        return body["result"]

    @staticmethod
    def _decode_result(method: str, result: Any) -> bytes:
        if not isinstance(result, str):
            raise ChainQueryError(f"RPC {method} result is not a hex string")
        try:
            return decode_hex(result)
        except ValueError as exc:
            raise ChainQueryError(f"RPC {method} result is not valid hex") from exc

    async def code_at(self, address: str) -> bytes:
        """Return the deployed bytecode at ``address`` (empty for an EOA)."""
        result = await self._rpc("eth_getCode", [to_checksum_address(address), "latest"])
        return self._decode_result("eth_getCode", result)

    async def call(self, to: str, data: bytes) -> bytes:
        """Run a read-only contract call against the latest block."""
        call = {"to": to_checksum_address(to), "data": encode_hex(data)}
        result = await self._rpc("eth_call", [call, "latest"])
        return self._decode_result("eth_call", result)

    async def chain_id(self) -> int:
        """Return the chain id reported by the endpoint."""
        result = await self._rpc("eth_chainId", [])
        if not isinstance(result, str):
            raise ChainQueryError("RPC eth_chainId result is not a hex string")
        try:
            return int(result, 16)
        except ValueError as exc:
            raise ChainQueryError("RPC eth_chainId result is not valid hex") from exc


_chain_client: ChainClient | None = None


def build_chain_client(settings: Settings) -> ChainClient:
    return ChainClient(settings.rpc_url, timeout_seconds=settings.rpc_timeout_seconds)


def get_chain_client() -> ChainClient:
    """Return the process-wide chain client."""
    global _chain_client
    if _chain_client is None:
        _chain_client = build_chain_client(get_settings())
    return _chain_client


async def close_chain_client() -> None:
    global _chain_client
    if _chain_client is not None:
        await _chain_client.close()
        _chain_client = None
