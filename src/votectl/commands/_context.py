"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy RPC/pubsub construction and centralized
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from votectl.output.formatters import OutputSettings, format_event, format_result

if TYPE_CHECKING:
    from votectl.config.settings import VoteSettings
    from votectl.infrastructure.pubsub import PubsubClient
    from votectl.infrastructure.rpc import JsonRpcClient
    from votectl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Endpoints are resolved lazily so ``--help``, ``--version`` and
    ``bootstrap`` never read the Solana CLI config or open a socket.
    """

    def __init__(self, settings: VoteSettings) -> None:
        self.settings = settings
        self._rpc: JsonRpcClient | None = None
        self._rpc_url: str | None = None
        self._websocket_url: str | None = None

        from votectl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from votectl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def rpc_url(self) -> str:
        if self._rpc_url is None:
            self._rpc_url = self.settings.resolve_rpc_url()
            if self.settings.verbose:
                click.echo(f"JSON RPC URL: {self._rpc_url}", err=True)
        return self._rpc_url

    @property
    def websocket_url(self) -> str:
        """Resolved only by commands that subscribe, so ``vv`` never needs one."""
        if self._websocket_url is None:
            try:
                self._websocket_url = self.settings.resolve_websocket_url()
            except ValueError as exc:
                raise click.ClickException(f"{exc}; pass --ws-url") from exc
            if self.settings.verbose:
                click.echo(f"Websocket URL: {self._websocket_url}", err=True)
        return self._websocket_url

    @property
    def rpc(self) -> JsonRpcClient:
        """The JSON-RPC client (created lazily on first access)."""
        if self._rpc is None:
            from votectl.infrastructure.rpc import JsonRpcClient

            rpc_cfg = self.settings.rpc
            self._rpc = JsonRpcClient(
                self.rpc_url,
                commitment=self.settings.effective_commitment,
                timeout=rpc_cfg.timeout,
                max_retries=rpc_cfg.max_retries,
            )
        return self._rpc

    def pubsub(self) -> PubsubClient:
        """A fresh, unopened pubsub client for the configured websocket URL."""
        from votectl.infrastructure.pubsub import PubsubClient

        return PubsubClient(self.websocket_url, open_timeout=self.settings.rpc.timeout)

    def close(self) -> None:
        if self._rpc is not None:
            self._rpc.close()
            self._rpc = None

    def emit(self, result: ServiceResult, *, json_lines: bool = False) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        *json_lines* keeps JSON output on one line so it can follow a stream
        of event lines.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        if settings.json_output and json_lines:
            output = result.model_dump_json()
        else:
            output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)

    def emit_event(self, event: dict[str, object]) -> None:
        """Write one streaming event line to stdout (suppressed by --quiet)."""
        if self.settings.quiet:
            return
        click.echo(format_event(event, json_output=self.settings.json_output))
