"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``VOTECTL_*`` prefix
  3. TOML file    — ``votectl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Cluster endpoints and the keypair left unset after this chain are filled
from the Solana CLI config (see :mod:`votectl.config.solana_cli`) by
:meth:`VoteSettings.resolve_rpc_url`, :meth:`VoteSettings.resolve_websocket_url`
and :attr:`VoteSettings.keypair_path`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from votectl.config.discovery import find_config
from votectl.config.models import (
    BootstrapConfig,
    RpcConfig,
    RpcUrl,
    StreamConfig,
    WebsocketUrl,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``votectl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class VoteSettings(BaseSettings):
    """Unified settings for the votectl CLI.

    Stored on the :class:`AppContext` at the CLI root level.

    Attributes:
        project_root: Directory the bootstrap checkout lives in (parent of
            ``votectl.toml``, or CWD if no config found).
        config_path: The TOML file actually loaded, if any.
        url: ``--url`` override (URL or cluster moniker).
        ws_url: ``--ws-url`` override.
        keypair: ``--keypair`` override.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "VOTECTL_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    url: RpcUrl | None = None
    ws_url: WebsocketUrl | None = None
    keypair: str | None = None
    commitment: str | None = None
    solana_config: Path | None = None

    # --- TOML sections ---
    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)
    rpc: RpcConfig = Field(default_factory=RpcConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> VoteSettings:
        """Construct settings from CLI invocation.

        Discovers ``votectl.toml`` via walk-up (or explicit *config_path*),
        resolves *project_root* from the config file's parent directory,
        and merges CLI flags as highest-priority overrides.  Flags passed
        as None are dropped so they don't mask env or TOML values.
        Invalid values from any source raise :class:`click.ClickException`.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(project_root)

        resolved_root = project_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        flags = {k: v for k, v in cli_flags.items() if v is not None}

        _tls.toml_path = toml_path
        try:
            return cls(
                project_root=resolved_root,
                config_path=toml_path,
                **flags,
            )
        except ValidationError as exc:
            import click

            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            )
            raise click.ClickException(f"Invalid configuration: {problems}") from exc
        finally:
            _tls.toml_path = None

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def checkout_path(self) -> Path:
        """Absolute location of the bootstrap checkout."""
        return self.project_root / self.bootstrap.directory

    @property
    def effective_commitment(self) -> str:
        return self.commitment or self.rpc.commitment

    def resolve_rpc_url(self) -> str:
        """JSON-RPC URL after all fallbacks, with monikers expanded."""
        from votectl.config.solana_cli import load_cli_config
        from votectl.domain.cluster import normalize_to_url_if_moniker

        raw_url = self.url or self.rpc.url or load_cli_config(self.solana_config).json_rpc_url
        return normalize_to_url_if_moniker(raw_url)

    def resolve_websocket_url(self) -> str:
        """Pubsub URL: explicit setting, Solana CLI config, or derived from the RPC URL.

        Raises ValueError when the RPC URL has no websocket counterpart.
        """
        from votectl.config.solana_cli import load_cli_config
        from votectl.domain.cluster import compute_websocket_url

        explicit = self.ws_url or self.rpc.websocket_url
        if explicit:
            return explicit
        if not (self.url or self.rpc.url):
            configured = load_cli_config(self.solana_config).websocket_url
            if configured:
                return configured

        json_rpc_url = self.resolve_rpc_url()
        websocket_url = compute_websocket_url(json_rpc_url)
        if not websocket_url:
            raise ValueError(f"cannot derive a websocket URL from {json_rpc_url!r}")
        return websocket_url

    @property
    def keypair_path(self) -> str:
        """Keypair location: ``--keypair`` or the Solana CLI config value."""
        if self.keypair:
            return self.keypair
        from votectl.config.solana_cli import load_cli_config

        return load_cli_config(self.solana_config).keypair_path
