"""Shared pytest fixtures and test helpers for votectl tests."""

from __future__ import annotations

import json
import logging
import subprocess
from collections import deque
from collections.abc import Callable, Generator, Iterator
from pathlib import Path
from typing import Any

import base58
import httpx
import pytest
from click.testing import CliRunner
from websockets.exceptions import ConnectionClosedOK

from votectl.domain.keys import VOTE_PROGRAM_ID
from votectl.infrastructure.pubsub import PubsubClient
from votectl.infrastructure.rpc import JsonRpcClient
from votectl.services.telemetry import disable_telemetry


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Keep the developer's own votectl/Solana configuration out of tests.

    CLI invocations reconfigure logging and may enable telemetry; both are
    put back afterwards.
    """
    import os

    for name in list(os.environ):
        if name.startswith("VOTECTL_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SOLANA_CLI_CONFIG", str(tmp_path / "no-such-solana-config.yml"))

    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def project_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary project directory set as CWD."""
    root = tmp_path / "project"
    root.mkdir()
    monkeypatch.chdir(root)
    return root


@pytest.fixture
def source_repo(tmp_path: Path) -> Path:
    """A local git repository with one commit, usable as a clone remote."""
    repo = tmp_path / "upstream"
    repo.mkdir()

    def git(*args: str) -> None:
        subprocess.run(["git", *args], cwd=repo, capture_output=True, check=True)

    git("init")
    git("config", "user.email", "test@test.com")
    git("config", "user.name", "Test")
    (repo / "README.md").write_text("# upstream\n", encoding="utf-8")
    git("add", ".")
    git("commit", "-m", "init")
    return repo


@pytest.fixture
def keypair_file(tmp_path: Path) -> tuple[Path, str]:
    """A Solana-format keypair file and the base58 pubkey it encodes."""
    secret = bytes(range(32))
    public = bytes(range(100, 132))
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(secret + public)), encoding="utf-8")
    return path, base58.b58encode(public).decode("ascii")


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def make_pubkey(seed: int) -> str:
    return base58.b58encode(bytes([seed]) * 32).decode("ascii")


def make_signature(seed: int) -> str:
    return base58.b58encode(bytes([seed]) * 64).decode("ascii")


def vote_transaction(slots: list[int], *, kind: str = "vote") -> dict[str, Any]:
    """A ``getTransaction`` jsonParsed result holding one vote instruction."""
    return {
        "meta": {"err": None},
        "transaction": {
            "message": {
                "instructions": [
                    {
                        "program": "vote",
                        "programId": VOTE_PROGRAM_ID,
                        "parsed": {
                            "type": kind,
                            "info": {
                                "vote": {"slots": slots, "hash": "hash", "timestamp": None},
                            },
                        },
                    }
                ]
            }
        },
    }


def transfer_transaction() -> dict[str, Any]:
    return {
        "meta": {"err": None},
        "transaction": {
            "message": {
                "instructions": [
                    {
                        "program": "system",
                        "programId": "11111111111111111111111111111111",
                        "parsed": {"type": "transfer", "info": {}},
                    }
                ]
            }
        },
    }


RpcHandler = Callable[[str, list[Any]], Any]


def mock_transport(handler: RpcHandler, calls: list[dict[str, Any]] | None = None) -> httpx.MockTransport:
    """Wrap a ``(method, params) -> result`` function as a JSON-RPC server."""

    def respond(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if calls is not None:
            calls.append(body)
        result = handler(body["method"], body.get("params", []))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return httpx.MockTransport(respond)


def rpc_client(handler: RpcHandler, calls: list[dict[str, Any]] | None = None) -> JsonRpcClient:
    client = httpx.Client(transport=mock_transport(handler, calls))
    return JsonRpcClient("http://rpc.test", client=client, max_retries=0, backoff=0)


# Fixed vote history used by viewer and vv command tests.
#   sig 1: landed 105, ok,     votes [103, 104]
#   sig 2: landed 103, failed, votes [101, 102]
#   sig 3: landed 102, ok,     votes [100]
#   sig 4: landed 101, not a vote
VOTE_ACCOUNT = make_pubkey(7)
HISTORY = [
    {"signature": make_signature(1), "slot": 105, "err": None, "_tx": vote_transaction([103, 104])},
    {
        "signature": make_signature(2),
        "slot": 103,
        "err": {"InstructionError": [0, {"Custom": 0}]},
        "_tx": vote_transaction([102, 101], kind="voteSwitch"),
    },
    {"signature": make_signature(3), "slot": 102, "err": None, "_tx": vote_transaction([100])},
    {"signature": make_signature(4), "slot": 101, "err": None, "_tx": transfer_transaction()},
]
CONFIRMED = [100, 101, 102, 103, 105]


def history_handler(method: str, params: list[Any]) -> Any:
    if method == "getSignaturesForAddress":
        limit = params[1].get("limit", len(HISTORY))
        return [{k: v for k, v in e.items() if k != "_tx"} for e in HISTORY[:limit]]
    if method == "getTransaction":
        for entry in HISTORY:
            if entry["signature"] == params[0]:
                return entry["_tx"]
        return None
    if method == "getBlocks":
        start, end = params[0], params[1]
        return [slot for slot in CONFIRMED if start <= slot <= end]
    raise AssertionError(f"unexpected RPC method {method}")


# ---------------------------------------------------------------------------
# In-memory pubsub socket
# ---------------------------------------------------------------------------

VOTE_SUBSCRIPTION = 10
SLOT_SUBSCRIPTION = 11


class FakeConnection:
    """Scripted stand-in for ``websockets.sync.client.ClientConnection``."""

    def __init__(self, messages: list[dict[str, Any]]) -> None:
        self.messages = deque(json.dumps(m) for m in messages)
        self.sent: list[dict[str, Any]] = []
        self.closed = False

    def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent.append(json.loads(data))

    def recv(self) -> str:
        if not self.messages:
            raise ConnectionClosedOK(None, None)
        return self.messages.popleft()

    def __iter__(self) -> Iterator[str]:
        while self.messages:
            yield self.messages.popleft()

    def close(self) -> None:
        self.closed = True


def slot_notification(slot: int, parent: int, root: int = 0) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "method": "slotNotification",
        "params": {
            "subscription": SLOT_SUBSCRIPTION,
            "result": {"slot": slot, "parent": parent, "root": root},
        },
    }


def vote_notification(vote_pubkey: str, slots: list[int]) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "method": "voteNotification",
        "params": {
            "subscription": VOTE_SUBSCRIPTION,
            "result": {"votePubkey": vote_pubkey, "slots": slots, "hash": "h", "timestamp": None},
        },
    }


def stream_script(*notifications: dict[str, Any]) -> list[dict[str, Any]]:
    """Subscription acks for vote (id 1) and slot (id 2), then *notifications*."""
    return [
        {"jsonrpc": "2.0", "id": 1, "result": VOTE_SUBSCRIPTION},
        {"jsonrpc": "2.0", "id": 2, "result": SLOT_SUBSCRIPTION},
        *notifications,
    ]


def pubsub_factory(connection: FakeConnection) -> Callable[[], PubsubClient]:
    return lambda: PubsubClient("ws://pubsub.test", connector=lambda url, **kw: connection)


# Validator V votes 1, then 2, then 3 where 3 forks off 1.
FORK_SCRIPT = stream_script(
    slot_notification(1, 0),
    vote_notification(make_pubkey(9), [1]),
    slot_notification(2, 1),
    vote_notification(make_pubkey(9), [2]),
    slot_notification(3, 1),
    vote_notification(make_pubkey(9), [3]),
)
