"""Tests for vote table layout and row rendering."""

from __future__ import annotations

import pytest

from votectl.domain.vote_table import (
    TableEntry,
    TableEntryKind,
    VoteMeta,
    VoteTable,
    VoteTableRow,
)

SIG_A = "AAAAsignature"
SIG_B = "BBBBsignature"
SIG_C = "CCCCsignature"


def _metas() -> list[VoteMeta]:
    return [
        VoteMeta(signature=SIG_A, success=True, vote_slots=(104, 103), landed_slot=105),
        VoteMeta(signature=SIG_B, success=False, vote_slots=(101, 102), landed_slot=103),
        VoteMeta(signature=SIG_C, success=True, vote_slots=(100,), landed_slot=102),
    ]


def _kinds(table: VoteTable, slot: int) -> list[str | None]:
    return [e.kind.value if e else None for e in table.grid[slot]]


class TestVoteMeta:
    def test_slots_sorted(self) -> None:
        meta = VoteMeta(signature="s", success=True, vote_slots=(3, 1, 2), landed_slot=4)
        assert meta.vote_slots == (1, 2, 3)
        assert list(meta.span()) == [1, 2, 3, 4, 5]

    def test_empty_slots_rejected(self) -> None:
        with pytest.raises(ValueError):
            VoteMeta(signature="s", success=True, vote_slots=(), landed_slot=4)

    def test_kind_at(self) -> None:
        meta = VoteMeta(signature="s", success=True, vote_slots=(10, 12), landed_slot=15)
        assert meta.kind_at(10) is TableEntryKind.VOTE
        assert meta.kind_at(11) is TableEntryKind.VOTE_GAP
        assert meta.kind_at(13) is TableEntryKind.WAITING
        assert meta.kind_at(15) is TableEntryKind.LANDED
        assert meta.kind_at(16) is TableEntryKind.SPACE


class TestTableEntryRender:
    def test_cells_are_fixed_width(self) -> None:
        ok = VoteMeta(signature=SIG_A, success=True, vote_slots=(1,), landed_slot=2)
        bad = VoteMeta(signature=SIG_B, success=False, vote_slots=(1,), landed_slot=2)
        assert TableEntry(TableEntryKind.VOTE, ok).render() == "+ AAAA.. "
        assert TableEntry(TableEntryKind.LANDED, bad).render() == "=!BBBB..!"
        assert TableEntry(TableEntryKind.VOTE_GAP, ok).render() == "   xx    "
        assert TableEntry(TableEntryKind.WAITING, ok).render() == "   ^^    "
        assert TableEntry(TableEntryKind.SPACE, ok).render() == " " * 9


class TestVoteTable:
    def test_empty(self) -> None:
        table = VoteTable.from_vote_metas([])
        assert table.grid == {}
        assert table.start_slot is None
        assert table.slot_count == 0

    def test_layout(self) -> None:
        table = VoteTable.from_vote_metas(_metas())
        assert table.depth == 3
        assert table.max_last_vote_slot == 104
        assert table.failed_vote_count == 1
        # Newest-landed vote's landed+1 row (106) is dropped.
        assert list(table.grid) == [100, 101, 102, 103, 104, 105]
        assert (table.start_slot, table.end_slot, table.slot_count) == (100, 105, 6)

        assert _kinds(table, 100) == [None, None, "vote"]
        assert _kinds(table, 101) == [None, "vote", "waiting"]
        assert _kinds(table, 102) == [None, "vote", "landed"]
        assert _kinds(table, 103) == ["vote", "landed", "space"]
        assert _kinds(table, 104) == ["vote", "space", None]
        assert _kinds(table, 105) == ["landed", None, None]

    def test_gap_rows_are_filled_empty(self) -> None:
        metas = [
            VoteMeta(signature=SIG_A, success=True, vote_slots=(20,), landed_slot=21),
            VoteMeta(signature=SIG_B, success=True, vote_slots=(10,), landed_slot=11),
        ]
        table = VoteTable.from_vote_metas(metas)
        assert list(table.grid) == list(range(10, 22))
        assert table.grid[15] == []

    def test_rows_miss_and_confirmation(self) -> None:
        table = VoteTable.from_vote_metas(_metas())
        rows = {row.slot: row for row in table.rows({100, 101, 102, 103, 105})}

        assert not rows[100].miss
        assert rows[101].miss and rows[101].confirmed
        assert rows[102].miss
        assert not rows[103].miss
        assert not rows[104].confirmed
        # 105 is past the highest voted slot, so never a miss.
        assert not rows[105].miss

        assert rows[101].prefix == " MISS "
        assert rows[104].prefix == " SKIP "
        assert rows[100].prefix == "      "


class TestVoteTableRow:
    def test_render(self) -> None:
        meta = VoteMeta(signature=SIG_B, success=False, vote_slots=(101,), landed_slot=103)
        row = VoteTableRow(
            slot=101,
            entries=(None, TableEntry(TableEntryKind.VOTE, meta)),
            confirmed=True,
            miss=True,
        )
        blank = " " * 9
        assert row.render() == " MISS      101 MISS  " + blank + " | " + "+!BBBB..! | "
        assert row.render().startswith(" MISS " + f"{101:8}" + " MISS ")

    def test_render_empty_row(self) -> None:
        row = VoteTableRow(slot=7, entries=(), confirmed=False, miss=False)
        assert row.render() == " SKIP " + "       7" + " SKIP " + " "

    def test_to_dict(self) -> None:
        meta = VoteMeta(signature=SIG_A, success=True, vote_slots=(1,), landed_slot=2)
        row = VoteTableRow(
            slot=1, entries=(TableEntry(TableEntryKind.VOTE, meta), None), confirmed=True, miss=False
        )
        assert row.to_dict() == {
            "slot": 1,
            "confirmed": True,
            "miss": False,
            "entries": [{"kind": "vote", "signature": SIG_A, "success": True}, None],
        }
