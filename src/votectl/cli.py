"""Root CLI group for votectl with global flags and command registration."""

from __future__ import annotations

import click

from votectl import __version__
from votectl.commands import register_commands
from votectl.commands._base import VoteGroup, validate_url_or_moniker, validate_websocket_url
from votectl.commands._context import AppContext
from votectl.config.settings import VoteSettings


@click.group(
    cls=VoteGroup,
    invoke_without_command=True,
    examples="""\
  votectl bootstrap
  votectl -u devnet vv <VOTE_ACCOUNT>
  votectl -u l votes --max-slots 100""",
)
@click.version_option(version=__version__, prog_name="votectl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "-u",
    "--url",
    default=None,
    callback=validate_url_or_moniker,
    help="JSON RPC URL or moniker for the cluster [default: Solana CLI config].",
)
@click.option(
    "--ws-url",
    default=None,
    callback=validate_websocket_url,
    help="Websocket URL [default: derived from --url].",
)
@click.option("--keypair", default=None, help="Keypair file [default: Solana CLI config].")
@click.option(
    "--commitment",
    type=click.Choice(["processed", "confirmed", "finalized"]),
    default=None,
    help="Commitment level for RPC queries.",
)
@click.option(
    "--solana-config",
    type=click.Path(dir_okay=False),
    default=None,
    help="Solana CLI config.yml to read defaults from.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    url: str | None,
    ws_url: str | None,
    keypair: str | None,
    commitment: str | None,
    solana_config: str | None,
) -> None:
    """votectl — validator vote inspection utility."""
    settings = VoteSettings.from_cli(
        config_path=config_path,
        json_output=json_output or None,
        quiet=quiet or None,
        verbose=verbose or None,
        log_json=log_json or None,
        url=url,
        ws_url=ws_url,
        keypair=keypair,
        commitment=commitment,
        solana_config=solana_config,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
