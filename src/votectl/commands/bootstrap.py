"""Command: fetch the upstream source checkout if it is missing."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from votectl.commands._base import VoteCommand

if TYPE_CHECKING:
    from votectl.commands._context import AppContext


@click.command(
    cls=VoteCommand,
    examples="""\
  votectl bootstrap
  votectl bootstrap --check
  votectl bootstrap --branch v1.10 --depth 1
  votectl --json bootstrap""",
)
@click.option("--check", "check_only", is_flag=True, help="Report without cloning.")
@click.option("--branch", default=None, help="Branch or tag to check out.")
@click.option("--depth", type=click.IntRange(min=1), default=None, help="Shallow clone depth.")
@click.pass_obj
def bootstrap(app: AppContext, check_only: bool, branch: str | None, depth: int | None) -> None:
    """Clone the upstream source tree into the project root unless it exists."""
    from votectl.services.bootstrap import BootstrapService

    settings = app.settings
    overrides = {k: v for k, v in (("branch", branch), ("depth", depth)) if v is not None}
    if overrides:
        settings = settings.model_copy(
            update={"bootstrap": settings.bootstrap.model_copy(update=overrides)}
        )
    app.emit(BootstrapService(settings).ensure_checkout(check_only=check_only))
