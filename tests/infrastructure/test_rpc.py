"""Tests for the JSON-RPC client against an in-process mock transport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from tests.conftest import rpc_client
from votectl.infrastructure.rpc import (
    JsonRpcClient,
    RpcResponseError,
    RpcStats,
    RpcTransportError,
)


def _client(handler: Any, *, max_retries: int = 0) -> JsonRpcClient:
    return JsonRpcClient(
        "http://rpc.test",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        max_retries=max_retries,
        backoff=0,
    )


class TestRequests:
    def test_get_signatures_params(self) -> None:
        calls: list[dict[str, Any]] = []
        client = rpc_client(lambda method, params: [], calls)
        assert client.get_signatures_for_address("addr", limit=5, before="sig") == []
        assert calls[0]["method"] == "getSignaturesForAddress"
        assert calls[0]["params"] == [
            "addr",
            {"commitment": "confirmed", "limit": 5, "before": "sig"},
        ]

    def test_get_transaction_uses_json_parsed(self) -> None:
        calls: list[dict[str, Any]] = []
        client = rpc_client(lambda method, params: None, calls)
        assert client.get_transaction("sig") is None
        config = calls[0]["params"][1]
        assert config["encoding"] == "jsonParsed"
        assert config["maxSupportedTransactionVersion"] == 0

    def test_get_blocks_upgrades_processed(self) -> None:
        calls: list[dict[str, Any]] = []
        client = rpc_client(lambda method, params: [1, 2], calls)
        client.commitment = "processed"
        assert client.get_blocks(1, 2) == [1, 2]
        assert calls[0]["params"] == [1, 2, {"commitment": "confirmed"}]

    def test_request_ids_increase(self) -> None:
        calls: list[dict[str, Any]] = []
        client = rpc_client(lambda method, params: [], calls)
        client.get_blocks(1)
        client.get_blocks(1)
        assert [c["id"] for c in calls] == [1, 2]

    def test_non_list_result_rejected(self) -> None:
        client = rpc_client(lambda method, params: {"oops": True})
        with pytest.raises(RpcResponseError, match="non-list"):
            client.get_blocks(1, 2)


class TestErrors:
    def test_error_object(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            error = {"code": -32602, "message": "Invalid param", "data": {"x": 1}}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": error})

        with pytest.raises(RpcResponseError, match="Invalid param") as excinfo:
            _client(handler).get_blocks(1, 2)
        assert excinfo.value.code == -32602
        assert excinfo.value.data == {"x": 1}

    def test_invalid_json(self) -> None:
        client = _client(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(RpcResponseError, match="invalid JSON"):
            client.get_blocks(1)

    def test_client_error_not_retried(self) -> None:
        attempts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            return httpx.Response(400, text="bad request")

        with pytest.raises(RpcResponseError, match="HTTP 400"):
            _client(handler, max_retries=3).get_blocks(1)
        assert len(attempts) == 1

    def test_server_error_retried_then_succeeds(self) -> None:
        attempts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            if len(attempts) < 3:
                return httpx.Response(503)
            body = json.loads(request.content)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": [7]})

        client = _client(handler, max_retries=3)
        assert client.get_blocks(7) == [7]
        assert client.stats == RpcStats(requests=3, retries=2, failures=0)
        assert len(attempts) == 3

    def test_transport_error_exhausts_retries(self) -> None:
        attempts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RpcTransportError, match="after 3 attempt"):
            _client(handler, max_retries=2).get_blocks(1)
        assert len(attempts) == 3

    def test_exhausted_retries_count_one_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502)

        client = _client(handler, max_retries=1)
        with pytest.raises(RpcTransportError):
            client.get_blocks(1)
        assert client.stats == RpcStats(requests=2, retries=1, failures=1)


class TestStats:
    def test_counts_each_call(self) -> None:
        client = rpc_client(lambda method, params: [])
        client.get_blocks(1, 2)
        client.get_signatures_for_address("addr")
        assert client.stats == RpcStats(requests=2)

    def test_since_is_a_delta(self) -> None:
        client = rpc_client(lambda method, params: [])
        client.get_blocks(1)
        before = client.stats.snapshot()
        client.get_blocks(2)
        client.get_blocks(3)
        assert client.stats.since(before) == RpcStats(requests=2)
        assert before == RpcStats(requests=1)
