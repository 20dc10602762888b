"""VoteViewService — recent vote transactions of one vote account as a slot table."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from votectl.domain.keys import VOTE_PROGRAM_ID
from votectl.domain.vote_table import VoteMeta, VoteTable
from votectl.infrastructure.rpc import RpcError
from votectl.services.result import ServiceResult
from votectl.services.telemetry import phase, traced

if TYPE_CHECKING:
    from votectl.infrastructure.rpc import JsonRpcClient

log = structlog.get_logger(__name__)

_SIMPLE_VOTE_TYPES = frozenset({"vote", "voteSwitch"})


def simple_vote_slots(transaction: dict[str, Any]) -> list[int] | None:
    """Voted slots of a single-instruction Vote/VoteSwitch transaction.

    *transaction* is a ``getTransaction`` result in ``jsonParsed``
    encoding.  Anything else (multiple instructions, other programs,
    other vote instructions) yields None.
    """
    try:
        instructions = transaction["transaction"]["message"]["instructions"]
    except (KeyError, TypeError):
        return None
    if not isinstance(instructions, list) or len(instructions) != 1:
        return None

    instruction = instructions[0]
    if instruction.get("programId") != VOTE_PROGRAM_ID:
        return None
    parsed = instruction.get("parsed")
    if not isinstance(parsed, dict) or parsed.get("type") not in _SIMPLE_VOTE_TYPES:
        return None
    try:
        slots = parsed["info"]["vote"]["slots"]
    except (KeyError, TypeError):
        return None
    return [int(slot) for slot in slots]


class VoteViewService:
    """Builds the vote table for a vote account from JSON-RPC data."""

    def __init__(self, rpc: JsonRpcClient) -> None:
        self._rpc = rpc

    @traced
    def view_votes(
        self,
        vote_account: str,
        *,
        limit: int = 10,
        before: str | None = None,
    ) -> ServiceResult:
        op = "view_votes"
        warnings: list[str] = []
        data: dict[str, Any] = {
            "vote_account": vote_account,
            "transaction_count": 0,
            "vote_transaction_count": 0,
            "rows": [],
        }

        try:
            with phase("get_signatures", rpc=self._rpc) as step:
                statuses = self._rpc.get_signatures_for_address(
                    vote_account, limit=limit, before=before
                )
                if step:
                    step.note(signatures=len(statuses))
            data["transaction_count"] = len(statuses)
            log.debug("signatures.fetched", count=len(statuses), vote_account=vote_account)
            if not statuses:
                return ServiceResult(ok=True, op=op, data=data)

            with phase("get_transactions", rpc=self._rpc) as step:
                vote_metas = self._collect_vote_metas(statuses, warnings)
                if step:
                    step.note(vote_transactions=len(vote_metas))
            data["vote_transaction_count"] = len(vote_metas)

            table = VoteTable.from_vote_metas(vote_metas)
            if not table.grid:
                warnings.append("No simple vote transactions found")
                return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

            start_slot, end_slot = table.start_slot, table.end_slot
            with phase("get_blocks", rpc=self._rpc) as step:
                confirmed_slots = set(self._rpc.get_blocks(start_slot, end_slot))
                if step:
                    step.note(
                        start_slot=start_slot,
                        end_slot=end_slot,
                        confirmed=len(confirmed_slots),
                    )
        except RpcError as exc:
            return ServiceResult.failure(
                op,
                "RPC_ERROR",
                str(exc),
                detail={"rpc_url": self._rpc.url},
                warnings=warnings,
            )

        rows = table.rows(confirmed_slots)
        missed = sum(1 for row in rows if row.confirmed and row.miss)
        data.update(
            {
                "start_slot": start_slot,
                "end_slot": end_slot,
                "slot_count": table.slot_count,
                "confirmed_count": len(confirmed_slots),
                "missed_slots": missed,
                "failed_votes": table.failed_vote_count,
                "depth": table.depth,
                "rows": [row.to_dict() for row in rows],
                "lines": [row.render() for row in rows],
            }
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    def _collect_vote_metas(
        self, statuses: list[dict[str, Any]], warnings: list[str]
    ) -> list[VoteMeta]:
        vote_metas: list[VoteMeta] = []
        for status in statuses:
            signature = str(status["signature"])
            landed_slot = int(status["slot"])
            transaction = self._rpc.get_transaction(signature)
            if transaction is None:
                warnings.append(f"Transaction {signature} is no longer available")
                continue

            slots = simple_vote_slots(transaction)
            if not slots:
                continue
            vote_metas.append(
                VoteMeta(
                    signature=signature,
                    success=status.get("err") is None,
                    vote_slots=tuple(slots),
                    landed_slot=landed_slot,
                )
            )
        return vote_metas
