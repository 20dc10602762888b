"""Blocking websocket client for the validator's JSON-RPC pubsub endpoint.

Only the two subscriptions the vote stream needs are modelled:
``voteSubscribe`` and ``slotSubscribe``.  Notifications for both arrive
interleaved on one socket and are yielded in arrival order.
"""

from __future__ import annotations

import itertools
import json
import logging
from collections import deque
from collections.abc import Callable, Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import connect

logger = logging.getLogger(__name__)


class PubsubError(RuntimeError):
    """The pubsub connection failed or a subscription was refused."""


class SlotInfo(BaseModel):
    """Payload of a ``slotNotification``."""

    model_config = ConfigDict(frozen=True)

    slot: int
    parent: int
    root: int


class RpcVote(BaseModel):
    """Payload of a ``voteNotification``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    vote_pubkey: str = Field(alias="votePubkey")
    slots: list[int]
    hash: str
    timestamp: int | None = None
    signature: str | None = None


Notification = SlotInfo | RpcVote

_SUBSCRIPTIONS: dict[str, tuple[str, type[BaseModel]]] = {
    "voteSubscribe": ("voteUnsubscribe", RpcVote),
    "slotSubscribe": ("slotUnsubscribe", SlotInfo),
}


class PubsubClient:
    """Context-managed pubsub session.

    Usage::

        with PubsubClient(ws_url) as pubsub:
            pubsub.subscribe("voteSubscribe")
            pubsub.subscribe("slotSubscribe")
            for event in pubsub.notifications():
                ...
    """

    def __init__(
        self,
        url: str,
        *,
        open_timeout: float = 10.0,
        connector: Callable[..., Any] | None = None,
    ) -> None:
        self.url = url
        self._open_timeout = open_timeout
        self._connector = connector or connect
        self._ws: Any = None
        self._ids = itertools.count(1)
        self._pending: deque[dict[str, Any]] = deque()
        # subscription id -> (subscribe method, payload model)
        self._subscriptions: dict[int, tuple[str, type[BaseModel]]] = {}

    def __enter__(self) -> PubsubClient:
        try:
            self._ws = self._connector(self.url, open_timeout=self._open_timeout)
        except (OSError, TimeoutError, WebSocketException) as exc:
            raise PubsubError(f"Unable to connect to {self.url}: {exc}") from exc
        logger.debug("Connected to %s", self.url)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------

    def subscribe(self, method: str) -> int:
        """Send a subscribe request and wait for its subscription id."""
        if method not in _SUBSCRIPTIONS:
            raise ValueError(f"Unsupported subscription: {method}")
        request_id = next(self._ids)
        self._send({"jsonrpc": "2.0", "id": request_id, "method": method})

        while True:
            message = self._recv()
            if message.get("id") != request_id:
                self._pending.append(message)
                continue
            if "error" in message:
                error = message["error"]
                detail = error.get("message") if isinstance(error, dict) else error
                raise PubsubError(f"{method} refused: {detail}")
            subscription = message.get("result")
            if not isinstance(subscription, int):
                raise PubsubError(f"{method} returned no subscription id")
            self._subscriptions[subscription] = (method, _SUBSCRIPTIONS[method][1])
            logger.debug("%s -> subscription %d", method, subscription)
            return subscription

    def notifications(self) -> Iterator[Notification]:
        """Yield parsed notifications until the server closes the socket."""
        while self._pending:
            event = self._parse(self._pending.popleft())
            if event is not None:
                yield event
        try:
            for raw in self._ws:
                event = self._parse(self._decode(raw))
                if event is not None:
                    yield event
        except ConnectionClosed as exc:
            raise PubsubError(f"Pubsub connection lost: {exc}") from exc

    def unsubscribe_all(self) -> None:
        """Best-effort unsubscribe; the socket may already be gone."""
        for subscription, (method, _model) in list(self._subscriptions.items()):
            unsubscribe = _SUBSCRIPTIONS[method][0]
            try:
                self._send(
                    {
                        "jsonrpc": "2.0",
                        "id": next(self._ids),
                        "method": unsubscribe,
                        "params": [subscription],
                    }
                )
            except PubsubError as exc:
                logger.debug("%s(%d) failed: %s", unsubscribe, subscription, exc)
            del self._subscriptions[subscription]

    def close(self) -> None:
        if self._ws is not None:
            self._ws.close()
            self._ws = None

    # ------------------------------------------------------------------

    def _send(self, payload: dict[str, Any]) -> None:
        try:
            self._ws.send(json.dumps(payload))
        except (ConnectionClosed, OSError) as exc:
            raise PubsubError(f"Pubsub send failed: {exc}") from exc

    def _recv(self) -> dict[str, Any]:
        try:
            raw = self._ws.recv()
        except (ConnectionClosed, OSError) as exc:
            raise PubsubError(f"Pubsub connection lost: {exc}") from exc
        return self._decode(raw)

    @staticmethod
    def _decode(raw: str | bytes) -> dict[str, Any]:
        try:
            message = json.loads(raw)
        except ValueError as exc:
            raise PubsubError("Pubsub sent invalid JSON") from exc
        if not isinstance(message, dict):
            raise PubsubError("Pubsub sent a non-object message")
        return message

    def _parse(self, message: dict[str, Any]) -> Notification | None:
        params = message.get("params")
        if not isinstance(params, dict):
            return None
        entry = self._subscriptions.get(params.get("subscription"))  # type: ignore[arg-type]
        if entry is None:
            return None
        method, model = entry
        try:
            return model.model_validate(params.get("result"))  # type: ignore[return-value]
        except ValidationError as exc:
            logger.warning("Dropping malformed %s notification: %s", method, exc)
            return None
