"""Command: stream cluster votes and check them against tower lockouts."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from votectl.commands._base import VoteCommand

if TYPE_CHECKING:
    from votectl.commands._context import AppContext


@click.command(
    cls=VoteCommand,
    examples="""\
  votectl votes
  votectl -u l votes --max-slots 100
  votectl --json votes | jq 'select(.event == "tower")'""",
)
@click.option(
    "--max-slots",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many slot notifications.",
)
@click.pass_obj
def votes(app: AppContext, max_slots: int | None) -> None:
    """Stream votes and abort if any validator votes while locked out."""
    from votectl.services.stream import VoteStreamService

    svc = VoteStreamService(
        app.pubsub,
        max_tracked_slots=app.settings.stream.max_tracked_slots,
    )
    app.emit(svc.stream_votes(max_slots=max_slots, on_event=app.emit_event), json_lines=True)
