"""Slot-by-slot layout of a vote account's recent vote transactions.

Every vote occupies one column ("depth") across the slots from its first
voted slot through one past the slot it landed in.  Votes are placed newest
first, each in the lowest depth that is free for its whole span, so
overlapping votes stack side by side.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Set
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TableEntryKind(str, Enum):
    SPACE = "space"
    VOTE = "vote"
    VOTE_GAP = "vote_gap"
    WAITING = "waiting"
    LANDED = "landed"


@dataclass(frozen=True)
class VoteMeta:
    """One simple vote transaction as seen from the vote account's history."""

    signature: str
    success: bool
    vote_slots: tuple[int, ...]
    landed_slot: int

    def __post_init__(self) -> None:
        if not self.vote_slots:
            raise ValueError("vote_slots must not be empty")
        object.__setattr__(self, "vote_slots", tuple(sorted(self.vote_slots)))

    @property
    def first_vote_slot(self) -> int:
        return self.vote_slots[0]

    @property
    def last_vote_slot(self) -> int:
        return self.vote_slots[-1]

    def span(self) -> range:
        """Slots this vote occupies in the table, inclusive of landed + 1."""
        return range(self.first_vote_slot, self.landed_slot + 2)

    def kind_at(self, slot: int) -> TableEntryKind:
        if slot == self.landed_slot:
            return TableEntryKind.LANDED
        if slot in self.vote_slots:
            return TableEntryKind.VOTE
        if slot < self.last_vote_slot:
            return TableEntryKind.VOTE_GAP
        if slot < self.landed_slot:
            return TableEntryKind.WAITING
        return TableEntryKind.SPACE


CELL_WIDTH = 9
_BLANK_CELL = " " * CELL_WIDTH


@dataclass(frozen=True)
class TableEntry:
    kind: TableEntryKind
    vote_meta: VoteMeta

    def render(self) -> str:
        if self.kind is TableEntryKind.SPACE:
            return _BLANK_CELL
        if self.kind is TableEntryKind.VOTE_GAP:
            return "   xx    "
        if self.kind is TableEntryKind.WAITING:
            return "   ^^    "
        sign = "+" if self.kind is TableEntryKind.VOTE else "="
        flag = " " if self.vote_meta.success else "!"
        return f"{sign}{flag}{self.vote_meta.signature[:4]}..{flag}"

    @property
    def is_successful_vote(self) -> bool:
        return self.kind is TableEntryKind.VOTE and self.vote_meta.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "signature": self.vote_meta.signature,
            "success": self.vote_meta.success,
        }


@dataclass(frozen=True)
class VoteTableRow:
    slot: int
    entries: tuple[TableEntry | None, ...]
    confirmed: bool
    miss: bool

    @property
    def prefix(self) -> str:
        if not self.confirmed:
            return " SKIP "
        return " MISS " if self.miss else "      "

    def render(self) -> str:
        cells = "".join(
            f"{entry.render() if entry else _BLANK_CELL} | " for entry in self.entries
        )
        return f"{self.prefix}{self.slot:8}{self.prefix} {cells}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "slot": self.slot,
            "confirmed": self.confirmed,
            "miss": self.miss,
            "entries": [entry.to_dict() if entry else None for entry in self.entries],
        }


@dataclass
class VoteTable:
    """Packed vote grid keyed by slot, ready to be joined with confirmations."""

    grid: dict[int, list[TableEntry | None]] = field(default_factory=dict)
    max_last_vote_slot: int = 0
    failed_vote_count: int = 0
    depth: int = 0

    @classmethod
    def from_vote_metas(cls, vote_metas: Iterable[VoteMeta]) -> VoteTable:
        metas = sorted(vote_metas, key=lambda m: m.landed_slot, reverse=True)
        table = cls()
        if not metas:
            return table

        slot_vote_count: Counter[int] = Counter()
        for meta in metas:
            slot_vote_count.update(meta.span())
        table.depth = max(slot_vote_count.values(), default=0)

        grid: dict[int, list[TableEntry | None]] = {}
        for meta in metas:
            table.max_last_vote_slot = max(table.max_last_vote_slot, meta.last_vote_slot)
            if not meta.success:
                table.failed_vote_count += 1

            span = meta.span()
            if not span:
                continue
            for slot in span:
                grid.setdefault(slot, [None] * table.depth)

            depth = next(
                d for d in range(table.depth) if all(grid[slot][d] is None for slot in span)
            )
            for slot in span:
                grid[slot][depth] = TableEntry(kind=meta.kind_at(slot), vote_meta=meta)

        if grid:
            # The landed + 1 column of the newest vote is never complete.
            del grid[max(grid)]
        if grid:
            for slot in range(min(grid), max(grid)):
                grid.setdefault(slot, [])
        table.grid = dict(sorted(grid.items()))
        return table

    @property
    def start_slot(self) -> int | None:
        return next(iter(self.grid), None)

    @property
    def end_slot(self) -> int | None:
        return next(reversed(self.grid), None) if self.grid else None

    @property
    def slot_count(self) -> int:
        if not self.grid:
            return 0
        return self.end_slot - self.start_slot + 1  # type: ignore[operator]

    def rows(self, confirmed_slots: Set[int]) -> list[VoteTableRow]:
        rows: list[VoteTableRow] = []
        for slot, entries in self.grid.items():
            miss = slot < self.max_last_vote_slot and not any(
                entry is not None and entry.is_successful_vote for entry in entries
            )
            rows.append(
                VoteTableRow(
                    slot=slot,
                    entries=tuple(entries),
                    confirmed=slot in confirmed_slots,
                    miss=miss,
                )
            )
        return rows
