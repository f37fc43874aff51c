"""Tests for the JSON-RPC chain client."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from watson_auth.services.chain import ChainClient
from watson_auth.services.errors import ChainQueryError, ContractCallError

RPC_URL = "http://rpc.test"
ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> ChainClient:
    return ChainClient(RPC_URL, timeout_seconds=1.0, transport=httpx.MockTransport(handler))


def _result(value: object) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": value})

    return handler


async def test_code_at_decodes_bytecode() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x6080604052"})

    client = _client(handler)
    try:
        assert await client.code_at(ADDRESS) == bytes.fromhex("6080604052")
    finally:
        await client.close()

    assert seen[0]["method"] == "eth_getCode"
    assert seen[0]["params"] == ["0x5FbDB2315678afecb367f032d93F642f64180aa3", "latest"]


async def test_code_at_empty_for_eoa() -> None:
    client = _client(_result("0x"))
    try:
        assert await client.code_at(ADDRESS) == b""
    finally:
        await client.close()


async def test_call_sends_hex_data_to_latest_block() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x1626ba7e"})

    client = _client(handler)
    try:
        result = await client.call(ADDRESS, b"\x16\x26\xba\x7e\x00")
    finally:
        await client.close()

    assert result == bytes.fromhex("1626ba7e")
    assert seen[0]["method"] == "eth_call"
    assert seen[0]["params"] == [
        {"to": "0x5FbDB2315678afecb367f032d93F642f64180aa3", "data": "0x1626ba7e00"},
        "latest",
    ]


async def test_request_ids_increase() -> None:
    ids: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        ids.append(body["id"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x"})

    client = _client(handler)
    try:
        await client.code_at(ADDRESS)
        await client.code_at(ADDRESS)
    finally:
        await client.close()

    assert ids == [1, 2]


async def test_call_revert_is_contract_call_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": 3, "message": "execution reverted"},
            },
        )

    client = _client(handler)
    try:
        with pytest.raises(ContractCallError) as excinfo:
            await client.call(ADDRESS, b"\x00")
    finally:
        await client.close()
    assert excinfo.value.code == 3


async def test_error_from_other_methods_is_not_a_contract_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "boom"}}
        )

    client = _client(handler)
    try:
        with pytest.raises(ChainQueryError) as excinfo:
            await client.code_at(ADDRESS)
    finally:
        await client.close()
    assert not isinstance(excinfo.value, ContractCallError)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="upstream down"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=["batch", "reply"]),
        httpx.Response(200, json={"jsonrpc": "2.0", "id": 1}),
        httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": 12}),
        httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0xzz"}),
    ],
)
async def test_malformed_responses_are_chain_query_errors(response: httpx.Response) -> None:
    client = _client(lambda request: response)
    try:
        with pytest.raises(ChainQueryError) as excinfo:
            await client.call(ADDRESS, b"\x00")
    finally:
        await client.close()
    assert not isinstance(excinfo.value, ContractCallError)


async def test_transport_failure_is_chain_query_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    try:
        with pytest.raises(ChainQueryError):
            await client.code_at(ADDRESS)
    finally:
        await client.close()


async def test_chain_id_parses_hex_quantity() -> None:
    client = _client(_result("0xa"))
    try:
        assert await client.chain_id() == 10
    finally:
        await client.close()
