"""Base58 public keys, signatures and keypair files."""

from __future__ import annotations

import json
from pathlib import Path

import base58

PUBKEY_BYTES = 32
SIGNATURE_BYTES = 64
KEYPAIR_BYTES = 64

VOTE_PROGRAM_ID = "Vote111111111111111111111111111111111111111"


class KeypairError(ValueError):
    """A keypair file is missing, unreadable or malformed."""


def _decoded_length(value: str) -> int | None:
    try:
        return len(base58.b58decode(value))
    except ValueError:
        return None


def is_valid_pubkey(value: str) -> bool:
    return bool(value) and _decoded_length(value) == PUBKEY_BYTES


def is_valid_signature(value: str) -> bool:
    return bool(value) and _decoded_length(value) == SIGNATURE_BYTES


def pubkey_from_keypair_file(path: str | Path) -> str:
    """Read a Solana JSON keypair file and return its base58 public key.

    The file holds 64 integers: the ed25519 secret seed followed by the
    public key, so no curve math is needed to recover the address.
    """
    p = Path(path).expanduser()
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise KeypairError(f"keypair file not found: {p}") from exc
    except (OSError, UnicodeError, json.JSONDecodeError) as exc:
        raise KeypairError(f"unable to read keypair file {p}: {exc}") from exc

    if not isinstance(raw, list) or len(raw) != KEYPAIR_BYTES:
        raise KeypairError(f"{p} is not a {KEYPAIR_BYTES}-byte keypair")
    try:
        secret = bytes(raw)
    except (TypeError, ValueError) as exc:
        raise KeypairError(f"{p} contains non-byte values") from exc
    return base58.b58encode(secret[PUBKEY_BYTES:]).decode("ascii")
