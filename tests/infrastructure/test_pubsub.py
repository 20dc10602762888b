"""Tests for the pubsub client using an in-memory socket."""

from __future__ import annotations

from typing import Any

import pytest

from tests.conftest import (
    SLOT_SUBSCRIPTION,
    VOTE_SUBSCRIPTION,
    FakeConnection,
    make_pubkey,
    slot_notification,
    stream_script,
    vote_notification,
)
from votectl.infrastructure.pubsub import PubsubClient, PubsubError, RpcVote, SlotInfo


def _client(connection: FakeConnection) -> PubsubClient:
    return PubsubClient("ws://pubsub.test", connector=lambda url, **kw: connection)


def _subscribed(client: PubsubClient) -> PubsubClient:
    client.subscribe("voteSubscribe")
    client.subscribe("slotSubscribe")
    return client


class TestSubscribe:
    def test_subscription_ids(self) -> None:
        conn = FakeConnection(stream_script())
        with _client(conn) as client:
            assert client.subscribe("voteSubscribe") == VOTE_SUBSCRIPTION
            assert client.subscribe("slotSubscribe") == SLOT_SUBSCRIPTION
        assert [m["method"] for m in conn.sent] == ["voteSubscribe", "slotSubscribe"]
        assert conn.closed

    def test_unknown_method(self) -> None:
        with _client(FakeConnection([])) as client, pytest.raises(ValueError):
            client.subscribe("rootSubscribe")

    def test_refused(self) -> None:
        conn = FakeConnection([{"jsonrpc": "2.0", "id": 1, "error": {"message": "disabled"}}])
        with _client(conn) as client, pytest.raises(PubsubError, match="disabled"):
            client.subscribe("voteSubscribe")

    def test_closed_before_ack(self) -> None:
        with _client(FakeConnection([])) as client, pytest.raises(PubsubError, match="lost"):
            client.subscribe("voteSubscribe")

    def test_connect_failure(self) -> None:
        def refuse(url: str, **kwargs: Any) -> None:
            raise ConnectionRefusedError("refused")

        with pytest.raises(PubsubError, match="Unable to connect"):
            PubsubClient("ws://pubsub.test", connector=refuse).__enter__()


class TestNotifications:
    def test_parsed_in_arrival_order(self) -> None:
        pubkey = make_pubkey(3)
        conn = FakeConnection(
            stream_script(slot_notification(5, 4, 1), vote_notification(pubkey, [4, 5]))
        )
        with _client(conn) as client:
            events = list(_subscribed(client).notifications())

        assert events == [
            SlotInfo(slot=5, parent=4, root=1),
            RpcVote(vote_pubkey=pubkey, slots=[4, 5], hash="h"),
        ]

    def test_early_notifications_are_buffered(self) -> None:
        conn = FakeConnection(
            [
                {"jsonrpc": "2.0", "id": 1, "result": VOTE_SUBSCRIPTION},
                vote_notification(make_pubkey(3), [1]),
                {"jsonrpc": "2.0", "id": 2, "result": SLOT_SUBSCRIPTION},
                slot_notification(2, 1),
            ]
        )
        with _client(conn) as client:
            events = list(_subscribed(client).notifications())
        assert [type(e) for e in events] == [RpcVote, SlotInfo]

    def test_malformed_and_unknown_dropped(self) -> None:
        bad = slot_notification(1, 0)
        bad["params"]["result"] = {"slot": "x"}
        foreign = slot_notification(2, 1)
        foreign["params"]["subscription"] = 99
        conn = FakeConnection(stream_script(bad, foreign, slot_notification(3, 2)))
        with _client(conn) as client:
            events = list(_subscribed(client).notifications())
        assert events == [SlotInfo(slot=3, parent=2, root=0)]


class TestUnsubscribe:
    def test_unsubscribe_all(self) -> None:
        conn = FakeConnection(stream_script())
        with _client(conn) as client:
            _subscribed(client).unsubscribe_all()
        unsubscribes = [(m["method"], m["params"]) for m in conn.sent[2:]]
        assert unsubscribes == [
            ("voteUnsubscribe", [VOTE_SUBSCRIPTION]),
            ("slotUnsubscribe", [SLOT_SUBSCRIPTION]),
        ]

    def test_unsubscribe_after_close_is_quiet(self) -> None:
        conn = FakeConnection(stream_script())
        client = _subscribed(_client(conn).__enter__())
        conn.closed = True
        client.unsubscribe_all()
        client.close()
