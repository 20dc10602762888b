"""Subcommand modules for votectl.

Provides register_commands() which uses deferred imports to keep
``votectl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from votectl.commands.bootstrap import bootstrap
    from votectl.commands.votes import votes
    from votectl.commands.vv import vv

    cli.add_command(bootstrap)
    cli.add_command(vv)
    cli.add_command(votes)
