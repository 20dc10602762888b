"""Command: vote viewer for a single vote account."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from votectl.commands._base import VoteCommand, validate_pubkey, validate_signature

if TYPE_CHECKING:
    from votectl.commands._context import AppContext


@click.command(
    cls=VoteCommand,
    examples="""\
  votectl vv
  votectl vv 5ZWgXcyqrrNpQHCme5SdC5hCeYb2o3fEJhF7Gok3bTVN --limit 50
  votectl -u testnet vv <ADDRESS> --before <SIGNATURE>
  votectl --json vv <ADDRESS>""",
)
@click.argument("vote_account_address", required=False, callback=validate_pubkey)
@click.option(
    "-l",
    "--limit",
    type=click.IntRange(min=1, max=1000),
    default=10,
    show_default=True,
    help="Number of transactions to process.",
)
@click.option(
    "--before",
    default=None,
    callback=validate_signature,
    help="Start searching backwards from this transaction signature.",
)
@click.pass_obj
def vv(app: AppContext, vote_account_address: str | None, limit: int, before: str | None) -> None:
    """Show where recent votes of a vote account landed, slot by slot.

    VOTE_ACCOUNT_ADDRESS defaults to the public key of the configured keypair.
    """
    from votectl.domain.keys import KeypairError, pubkey_from_keypair_file
    from votectl.services.result import ServiceResult
    from votectl.services.viewer import VoteViewService

    if vote_account_address is None:
        try:
            vote_account_address = pubkey_from_keypair_file(app.settings.keypair_path)
        except KeypairError as exc:
            app.emit(ServiceResult.failure("view_votes", "KEYPAIR_ERROR", str(exc)))
            return

    svc = VoteViewService(app.rpc)
    app.emit(svc.view_votes(vote_account_address, limit=limit, before=before))
