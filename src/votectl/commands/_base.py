"""Custom Click base classes with --examples support.

Provides VoteCommand and VoteGroup that accept an ``examples`` parameter.
When ``--examples`` is passed, the command prints usage examples and exits.
This keeps ``--help`` concise while making examples available on demand.
"""

from __future__ import annotations

from typing import Any

import click


def _add_examples_option(cmd: click.Command | click.Group, examples: str) -> None:
    """Attach an eager ``--examples`` flag to a Click command or group."""

    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


class VoteCommand(click.Command):
    """Click Command subclass that supports an ``--examples`` flag."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


class VoteGroup(click.Group):
    """Click Group subclass that supports an ``--examples`` flag.

    Sets ``command_class = VoteCommand`` so subcommands accept ``examples``
    without an explicit ``cls=``.
    """

    command_class = VoteCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


# --- Parameter validators -------------------------------------------------


def validate_pubkey(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    from votectl.domain.keys import is_valid_pubkey

    if value is not None and not is_valid_pubkey(value):
        raise click.BadParameter(f"{value!r} is not a valid base58 public key")
    return value


def validate_signature(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> str | None:
    from votectl.domain.keys import is_valid_signature

    if value is not None and not is_valid_signature(value):
        raise click.BadParameter(f"{value!r} is not a valid base58 signature")
    return value


def validate_url_or_moniker(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> str | None:
    from votectl.domain.cluster import is_url_or_moniker

    if value is not None and not is_url_or_moniker(value):
        raise click.BadParameter(
            f"{value!r} is not an http(s) URL or one of m, t, d, l, "
            "mainnet-beta, testnet, devnet, localhost"
        )
    return value


def validate_websocket_url(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> str | None:
    from votectl.domain.cluster import is_websocket_url

    if value is not None and not is_websocket_url(value):
        raise click.BadParameter(f"{value!r} is not a ws:// or wss:// URL")
    return value
