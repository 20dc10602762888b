"""Vote stream — replay cluster-wide votes through per-validator towers.

:class:`VoteMonitor` is the pure state machine fed by notifications;
:class:`VoteStreamService` wires it to a live pubsub connection.

Votes are queued under their last voted slot and only replayed once that
slot's parent is known, so every replayed vote can be checked against the
fork it was cast on.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from votectl.domain.tower import Vote, VoteState, conflicting_slots, is_recent
from votectl.infrastructure.pubsub import PubsubClient, PubsubError, RpcVote, SlotInfo
from votectl.services.result import ServiceResult
from votectl.services.telemetry import traced

log = structlog.get_logger(__name__)

StreamEvent = dict[str, Any]
EventSink = Callable[[StreamEvent], None]


class LockoutViolation(RuntimeError):
    """A validator voted on a slot its tower is still locked out of."""

    def __init__(
        self,
        *,
        slot: int,
        vote_pubkey: str,
        vote_state: VoteState,
        ancestors: set[int],
        conflicting: list[int],
    ) -> None:
        super().__init__(
            f"{vote_pubkey} locked out at {slot}: tower slots {conflicting} "
            "are not ancestors"
        )
        self.slot = slot
        self.vote_pubkey = vote_pubkey
        self.vote_state = vote_state
        self.ancestors = ancestors
        self.conflicting = conflicting

    def to_detail(self) -> dict[str, Any]:
        return {
            "slot": self.slot,
            "vote_pubkey": self.vote_pubkey,
            "conflicting_slots": self.conflicting,
            "tower": self.vote_state.to_dict(),
            "ancestors": sorted(self.ancestors),
        }


def build_ancestors(slot: int, slot_parents: dict[int, int]) -> set[int]:
    """Follow parent links from *slot* as far as they are known."""
    ancestors: set[int] = set()
    while slot in slot_parents:
        parent = slot_parents[slot]
        if parent in ancestors:
            break
        ancestors.add(parent)
        slot = parent
    return ancestors


@dataclass
class VoteMonitor:
    max_tracked_slots: int = 1000
    votes_by_slot: dict[int, list[tuple[str, Vote]]] = field(default_factory=dict)
    slot_parents: dict[int, int] = field(default_factory=dict)
    vote_states: dict[str, VoteState] = field(default_factory=dict)
    slots_seen: int = 0
    votes_seen: int = 0
    votes_processed: int = 0
    votes_skipped: int = 0

    def on_vote(self, rpc_vote: RpcVote) -> list[StreamEvent]:
        self.votes_seen += 1
        events: list[StreamEvent] = [
            {
                "event": "vote",
                "vote_pubkey": rpc_vote.vote_pubkey,
                "slots": list(rpc_vote.slots),
                "hash": rpc_vote.hash,
            }
        ]
        if rpc_vote.slots:
            vote = Vote(
                slots=tuple(rpc_vote.slots),
                hash=rpc_vote.hash,
                timestamp=rpc_vote.timestamp,
            )
            self.votes_by_slot.setdefault(vote.slots[-1], []).append(
                (rpc_vote.vote_pubkey, vote)
            )
        return events + self._replay()

    def on_slot(self, slot_info: SlotInfo) -> list[StreamEvent]:
        self.slots_seen += 1
        self.slot_parents[slot_info.slot] = slot_info.parent
        events: list[StreamEvent] = [
            {
                "event": "slot",
                "slot": slot_info.slot,
                "parent": slot_info.parent,
                "root": slot_info.root,
            }
        ]
        return events + self._replay()

    def summary(self) -> dict[str, int]:
        return {
            "slots_seen": self.slots_seen,
            "votes_seen": self.votes_seen,
            "votes_processed": self.votes_processed,
            "votes_skipped": self.votes_skipped,
            "validators": len(self.vote_states),
            "tracked_slots": len(self.slot_parents),
        }

    # ------------------------------------------------------------------

    def _prune(self) -> int:
        """Cap the parent map and drop queued votes older than it."""
        while len(self.slot_parents) >= self.max_tracked_slots:
            del self.slot_parents[min(self.slot_parents)]
        lowest_slot = min(self.slot_parents)
        self.votes_by_slot = {
            slot: votes for slot, votes in self.votes_by_slot.items() if slot >= lowest_slot
        }
        return lowest_slot

    def _replay(self) -> list[StreamEvent]:
        if not self.slot_parents:
            return []

        self._prune()
        highest_slot = max(self.slot_parents)
        ready = sorted(slot for slot in self.votes_by_slot if slot <= highest_slot)

        events: list[StreamEvent] = []
        if ready:
            events.append({"event": "process_slots", "slots": ready})
        for slot in ready:
            for vote_pubkey, vote in self.votes_by_slot.pop(slot):
                events.extend(self._apply(slot, vote_pubkey, vote))
        return events

    def _apply(self, slot: int, vote_pubkey: str, vote: Vote) -> list[StreamEvent]:
        vote_state = self.vote_states.setdefault(vote_pubkey, VoteState())

        lowest_tower_slot = vote_state.lowest_vote_slot()
        if lowest_tower_slot is not None and lowest_tower_slot not in self.slot_parents:
            return [self._skip(slot, vote_pubkey, "lowest_tower_slot", lowest_tower_slot)]

        lowest_vote_slot = vote.slots[0]
        if lowest_vote_slot not in self.slot_parents:
            return [self._skip(slot, vote_pubkey, "lowest_vote_slot", lowest_vote_slot)]

        highest_vote_slot = vote.slots[-1]
        if not is_recent(vote_state, highest_vote_slot):
            return []

        ancestors = build_ancestors(highest_vote_slot, self.slot_parents)
        conflicting = conflicting_slots(vote_state, highest_vote_slot, ancestors)
        if conflicting:
            raise LockoutViolation(
                slot=highest_vote_slot,
                vote_pubkey=vote_pubkey,
                vote_state=vote_state.clone(),
                ancestors=ancestors,
                conflicting=conflicting,
            )

        vote_state.process_vote_unchecked(vote)
        self.votes_processed += 1
        return [
            {
                "event": "tower",
                "slot": slot,
                "vote_pubkey": vote_pubkey,
                "depth": len(vote_state.votes),
                "credits": vote_state.credits,
                "root_slot": vote_state.root_slot,
            }
        ]

    def _skip(self, slot: int, vote_pubkey: str, reason: str, missing_slot: int) -> StreamEvent:
        self.votes_skipped += 1
        log.debug(
            "vote.skipped",
            vote_pubkey=vote_pubkey,
            reason=reason,
            missing_slot=missing_slot,
        )
        return {
            "event": "skip",
            "slot": slot,
            "vote_pubkey": vote_pubkey,
            "reason": reason,
            "missing_slot": missing_slot,
        }


class VoteStreamService:
    """Drive a :class:`VoteMonitor` from a live pubsub connection."""

    def __init__(
        self,
        pubsub_factory: Callable[[], PubsubClient],
        *,
        max_tracked_slots: int = 1000,
    ) -> None:
        self._pubsub_factory = pubsub_factory
        self._max_tracked_slots = max_tracked_slots

    @traced
    def stream_votes(
        self,
        *,
        max_slots: int | None = None,
        on_event: EventSink | None = None,
    ) -> ServiceResult:
        op = "stream_votes"
        monitor = VoteMonitor(max_tracked_slots=self._max_tracked_slots)
        emit = on_event or (lambda _event: None)
        interrupted = False

        try:
            with self._pubsub_factory() as pubsub:
                pubsub.subscribe("voteSubscribe")
                pubsub.subscribe("slotSubscribe")
                try:
                    for notification in pubsub.notifications():
                        if isinstance(notification, SlotInfo):
                            events = monitor.on_slot(notification)
                        else:
                            events = monitor.on_vote(notification)
                        for event in events:
                            emit(event)
                        if max_slots is not None and monitor.slots_seen >= max_slots:
                            break
                except KeyboardInterrupt:
                    interrupted = True
                finally:
                    pubsub.unsubscribe_all()
        except LockoutViolation as exc:
            log.error("vote.locked_out", **exc.to_detail())
            return ServiceResult.failure(
                op,
                "LOCKED_OUT",
                str(exc),
                detail={**exc.to_detail(), **monitor.summary()},
            )
        except PubsubError as exc:
            return ServiceResult.failure(
                op,
                "PUBSUB_ERROR",
                str(exc),
                detail=monitor.summary(),
            )

        return ServiceResult(
            ok=True,
            op=op,
            data={**monitor.summary(), "interrupted": interrupted},
        )
