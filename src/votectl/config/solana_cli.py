"""Reader for the Solana CLI's ``config.yml``.

Only the three keys votectl cares about are extracted.  A missing or
malformed file yields the same defaults the Solana CLI itself uses.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

logger = logging.getLogger(__name__)

DEFAULT_JSON_RPC_URL = "https://api.mainnet-beta.solana.com"
CLI_CONFIG_ENV_VAR = "SOLANA_CLI_CONFIG"


def default_config_file() -> Path:
    return Path.home() / ".config" / "solana" / "cli" / "config.yml"


def default_keypair_path() -> str:
    return str(Path.home() / ".config" / "solana" / "id.json")


@dataclass(frozen=True)
class SolanaCliConfig:
    """Subset of the Solana CLI config relevant to vote inspection."""

    json_rpc_url: str = DEFAULT_JSON_RPC_URL
    websocket_url: str = ""
    keypair_path: str = ""

    def __post_init__(self) -> None:
        if not self.keypair_path:
            object.__setattr__(self, "keypair_path", default_keypair_path())


def load_cli_config(path: Path | None = None) -> SolanaCliConfig:
    """Load the Solana CLI config, falling back to defaults on any problem."""
    if path is None:
        env_path = os.environ.get(CLI_CONFIG_ENV_VAR)
        path = Path(env_path) if env_path else default_config_file()

    if not path.is_file():
        return SolanaCliConfig()

    try:
        data = YAML(typ="safe").load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeError, YAMLError) as exc:
        logger.warning("Ignoring unreadable Solana CLI config %s: %s", path, exc)
        return SolanaCliConfig()
    if not isinstance(data, dict):
        return SolanaCliConfig()

    return SolanaCliConfig(
        json_rpc_url=str(data.get("json_rpc_url") or DEFAULT_JSON_RPC_URL),
        websocket_url=str(data.get("websocket_url") or ""),
        keypair_path=str(data.get("keypair_path") or ""),
    )
