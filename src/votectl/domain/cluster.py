"""Cluster URL handling: monikers, validation and websocket derivation."""

from __future__ import annotations

from urllib.parse import SplitResult, urlsplit, urlunsplit

CLUSTER_MONIKERS: dict[str, str] = {
    "m": "https://api.mainnet-beta.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "t": "https://api.testnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "d": "https://api.devnet.solana.com",
    "devnet": "https://api.devnet.solana.com",
    "l": "http://localhost:8899",
    "localhost": "http://localhost:8899",
}


def normalize_to_url_if_moniker(url_or_moniker: str) -> str:
    """Expand a cluster moniker to its RPC URL; other input is returned as-is."""
    return CLUSTER_MONIKERS.get(url_or_moniker, url_or_moniker)


def _has_host_and_port(parts: SplitResult) -> bool:
    try:
        port = parts.port
    except ValueError:
        return False
    # 65535 leaves no room for the pubsub port one above it.
    return bool(parts.hostname) and (port is None or 0 < port < 65535)


def is_url_or_moniker(value: str) -> bool:
    """True for a known moniker or an http(s) URL with a host and usable port."""
    if value in CLUSTER_MONIKERS:
        return True
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and _has_host_and_port(parts)


def is_websocket_url(value: str) -> bool:
    """True for a ws(s) URL with a host."""
    try:
        parts = urlsplit(value)
        port = parts.port
    except ValueError:
        return False
    return parts.scheme in ("ws", "wss") and bool(parts.hostname) and port != 0


def compute_websocket_url(json_rpc_url: str) -> str:
    """Derive the pubsub endpoint from a JSON-RPC URL.

    ``https`` maps to ``wss`` and anything else to ``ws``.  An explicit
    port is bumped by one, matching the validator's default layout
    (RPC on 8899, pubsub on 8900).  Unparseable input yields ``""``.
    """
    try:
        parts = urlsplit(json_rpc_url)
        port = parts.port
    except ValueError:
        return ""
    if not parts.scheme or not parts.hostname:
        return ""

    scheme = "wss" if parts.scheme.lower() == "https" else "ws"
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if port is not None:
        if port >= 65535:
            raise ValueError(f"port out of range: {port}")
        netloc = f"{host}:{port + 1}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo += f":{parts.password}"
        netloc = f"{userinfo}@{netloc}"
    return urlunsplit((scheme, netloc, parts.path, parts.query, parts.fragment))
