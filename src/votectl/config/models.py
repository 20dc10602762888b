"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, votectl.toml only contains overrides.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, Field

from votectl.domain.cluster import is_url_or_moniker, is_websocket_url

Commitment = Literal["processed", "confirmed", "finalized"]

DEFAULT_CHECKOUT_DIR = "solana-v1.10"
DEFAULT_CHECKOUT_REMOTE = "https://github.com/solana-labs/solana.git"


def _check_rpc_url(value: str) -> str:
    if not is_url_or_moniker(value):
        raise ValueError(f"{value!r} is not an http(s) URL or cluster moniker")
    return value


def _check_websocket_url(value: str) -> str:
    if not is_websocket_url(value):
        raise ValueError(f"{value!r} is not a ws:// or wss:// URL")
    return value


RpcUrl = Annotated[str, AfterValidator(_check_rpc_url)]
WebsocketUrl = Annotated[str, AfterValidator(_check_websocket_url)]


class BootstrapConfig(BaseModel):
    """[bootstrap] section."""

    model_config = {"frozen": True}

    directory: str = DEFAULT_CHECKOUT_DIR
    remote: str = DEFAULT_CHECKOUT_REMOTE
    branch: str | None = None
    depth: int | None = Field(default=None, ge=1)


class RpcConfig(BaseModel):
    """[rpc] section.

    ``url`` and ``websocket_url`` left unset fall back to the Solana CLI
    config file, then to mainnet-beta.
    """

    model_config = {"frozen": True}

    url: RpcUrl | None = None
    websocket_url: WebsocketUrl | None = None
    commitment: Commitment = "confirmed"
    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0)


class StreamConfig(BaseModel):
    """[stream] section."""

    model_config = {"frozen": True}

    max_tracked_slots: int = Field(default=1000, ge=2)
