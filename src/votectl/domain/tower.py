"""Tower BFT vote state: lockouts, expiry, rooting and credits.

A validator's vote state is a stack of at most ``MAX_LOCKOUT_HISTORY``
lockouts.  Each new vote pops every lockout that has expired by the new
slot, pushes itself with one confirmation, then doubles the lockout of
every entry that now has enough votes stacked on top of it.  The oldest
entry becomes the root (and earns a credit) when the stack overflows.
"""

from __future__ import annotations

import copy
from collections import deque
from collections.abc import Iterable, Set
from dataclasses import dataclass, field

MAX_LOCKOUT_HISTORY = 31
INITIAL_LOCKOUT = 2


@dataclass
class Lockout:
    slot: int
    confirmation_count: int = 1

    def lockout(self) -> int:
        return INITIAL_LOCKOUT**self.confirmation_count

    def last_locked_out_slot(self) -> int:
        return self.slot + self.lockout()

    def is_locked_out_at_slot(self, slot: int) -> bool:
        return self.last_locked_out_slot() >= slot


@dataclass(frozen=True)
class Vote:
    """A vote as observed on the wire: voted slots plus the bank hash."""

    slots: tuple[int, ...]
    hash: str
    timestamp: int | None = None


@dataclass
class VoteState:
    votes: deque[Lockout] = field(default_factory=deque)
    root_slot: int | None = None
    credits: int = 0

    def last_lockout(self) -> Lockout | None:
        return self.votes[-1] if self.votes else None

    def last_voted_slot(self) -> int | None:
        last = self.last_lockout()
        return last.slot if last else None

    def lowest_vote_slot(self) -> int | None:
        return min((v.slot for v in self.votes), default=None)

    def process_next_vote_slot(self, next_vote_slot: int) -> None:
        last = self.last_voted_slot()
        if last is not None and next_vote_slot <= last:
            return

        self._pop_expired_votes(next_vote_slot)

        if len(self.votes) == MAX_LOCKOUT_HISTORY:
            rooted = self.votes.popleft()
            self.root_slot = rooted.slot
            self.credits += 1

        self.votes.append(Lockout(next_vote_slot))
        self._double_lockouts()

    # A single-slot vote that skips hash verification.
    process_slot_vote_unchecked = process_next_vote_slot

    def process_vote_unchecked(self, vote: Vote | Iterable[int]) -> None:
        slots = vote.slots if isinstance(vote, Vote) else vote
        for slot in slots:
            self.process_next_vote_slot(slot)

    def _pop_expired_votes(self, next_vote_slot: int) -> None:
        while self.votes and not self.votes[-1].is_locked_out_at_slot(next_vote_slot):
            self.votes.pop()

    def _double_lockouts(self) -> None:
        stack_depth = len(self.votes)
        for i, v in enumerate(self.votes):
            if stack_depth > i + v.confirmation_count:
                v.confirmation_count += 1

    def clone(self) -> VoteState:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, object]:
        return {
            "votes": [[v.slot, v.confirmation_count] for v in self.votes],
            "root_slot": self.root_slot,
            "credits": self.credits,
        }


def is_recent(vote_state: VoteState, slot: int) -> bool:
    """A slot is recent if it's newer than the last vote in *vote_state*."""
    last = vote_state.last_voted_slot()
    return last is None or slot > last


def conflicting_slots(vote_state: VoteState, slot: int, ancestors: Set[int]) -> list[int]:
    """Tower slots that would still lock a vote for *slot* onto another fork.

    Simulates the vote on a copy so expired lockouts are popped first;
    whatever survives must be *slot* itself or one of its ancestors.
    """
    simulated = vote_state.clone()
    simulated.process_slot_vote_unchecked(slot)
    return [v.slot for v in simulated.votes if v.slot != slot and v.slot not in ancestors]


def is_locked_out(vote_state: VoteState, slot: int, ancestors: Set[int]) -> bool:
    return bool(conflicting_slots(vote_state, slot, ancestors))
