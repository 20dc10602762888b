"""Minimal synchronous JSON-RPC client for a validator's HTTP endpoint."""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class RpcError(RuntimeError):
    """Base error for JSON-RPC calls."""


class RpcTransportError(RpcError):
    """The endpoint could not be reached, or kept failing after retries."""


class RpcResponseError(RpcError):
    """The endpoint answered with a JSON-RPC error object or bad payload."""

    def __init__(self, message: str, *, code: int | None = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


@dataclass
class RpcStats:
    """Running totals of HTTP traffic made by one client.

    ``failures`` counts calls that gave up after exhausting their retries.
    """

    requests: int = 0
    retries: int = 0
    failures: int = 0

    def snapshot(self) -> RpcStats:
        return RpcStats(self.requests, self.retries, self.failures)

    def since(self, earlier: RpcStats) -> RpcStats:
        return RpcStats(
            self.requests - earlier.requests,
            self.retries - earlier.retries,
            self.failures - earlier.failures,
        )


class JsonRpcClient:
    """
    JSON-RPC 2.0 over HTTP POST with retry on transient failures.

    Notes
    - Transport errors, 429 and 5xx responses are retried with exponential
      backoff, up to ``max_retries`` extra attempts.
    - JSON-RPC error objects are never retried; they raise RpcResponseError.
    """

    def __init__(
        self,
        url: str,
        *,
        commitment: str = "confirmed",
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff: float = 0.5,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self.commitment = commitment
        self._max_retries = max_retries
        self._backoff = backoff
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self._ids = itertools.count(1)
        self.stats = RpcStats()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> JsonRpcClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Public API ---------------
    def get_signatures_for_address(
        self,
        address: str,
        *,
        limit: int | None = None,
        before: str | None = None,
    ) -> list[dict[str, Any]]:
        """Newest-first transaction statuses touching *address*."""
        config: dict[str, Any] = {"commitment": self.commitment}
        if limit is not None:
            config["limit"] = limit
        if before is not None:
            config["before"] = before
        result = self.request("getSignaturesForAddress", [address, config])
        if not isinstance(result, list):
            raise RpcResponseError("getSignaturesForAddress returned a non-list result")
        return result

    def get_transaction(self, signature: str) -> dict[str, Any] | None:
        """Fetch a confirmed transaction with instructions parsed to JSON.

        Returns None when the node no longer has the transaction.
        """
        config = {
            "encoding": "jsonParsed",
            "commitment": self.commitment,
            "maxSupportedTransactionVersion": 0,
        }
        return self.request("getTransaction", [signature, config])

    def get_blocks(self, start_slot: int, end_slot: int | None = None) -> list[int]:
        """Confirmed slots in ``[start_slot, end_slot]``."""
        # getBlocks rejects "processed".
        commitment = "confirmed" if self.commitment == "processed" else self.commitment
        params: list[Any] = [start_slot]
        if end_slot is not None:
            params.append(end_slot)
        params.append({"commitment": commitment})
        result = self.request("getBlocks", params)
        if not isinstance(result, list):
            raise RpcResponseError("getBlocks returned a non-list result")
        return result

    # --------------- Internal ---------------
    def request(self, method: str, params: list[Any] | None = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        attempt = 0
        backoff = self._backoff
        last_exc: Exception | None = None
        while attempt <= self._max_retries:
            self.stats.requests += 1
            try:
                resp = self._client.post(self.url, json=payload)
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                last_exc = exc
            else:
                if resp.status_code == 200:
                    return self._unwrap(method, resp)
                if resp.status_code in _RETRYABLE_STATUS:
                    last_exc = RpcResponseError(f"HTTP {resp.status_code} from {method}")
                else:
                    raise RpcResponseError(
                        f"HTTP {resp.status_code} from {method}: {resp.text[:200]}"
                    )

            attempt += 1
            if attempt <= self._max_retries:
                self.stats.retries += 1
                logger.debug("Retrying %s (attempt %d): %s", method, attempt, last_exc)
                time.sleep(backoff)
                backoff = min(backoff * 2, 8.0)

        self.stats.failures += 1
        raise RpcTransportError(f"{method} failed after {attempt} attempt(s)") from last_exc

    @staticmethod
    def _unwrap(method: str, resp: httpx.Response) -> Any:
        try:
            body = resp.json()
        except ValueError as exc:
            raise RpcResponseError(f"{method} returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise RpcResponseError(f"{method} returned an unexpected payload")
        error = body.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise RpcResponseError(
                    f"{method}: {error.get('message', 'unknown error')}",
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise RpcResponseError(f"{method}: {error}")
        return body.get("result")
