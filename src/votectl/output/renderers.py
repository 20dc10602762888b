"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.text import Text

from votectl.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from votectl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS[result.op]
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    return f"OK: {result.op}"


def render_event(event: dict[str, Any]) -> str:
    """One human-readable line for a vote-stream event."""
    kind = event.get("event")
    if kind == "vote":
        return f"Vote: {event['vote_pubkey']} slots={event['slots']} hash={event['hash']}"
    if kind == "slot":
        return f"Slot {event['slot']} (parent {event['parent']}, root {event['root']})"
    if kind == "process_slots":
        return f"Vote slots to process: {event['slots']}"
    if kind == "skip":
        return (
            f"  WARN: Unable to process {event['vote_pubkey']} vote for slot {event['slot']} "
            f"due to {event['reason'].replace('_', ' ')} = {event['missing_slot']}"
        )
    if kind == "tower":
        return (
            f"  {event['vote_pubkey']} slot {event['slot']}: "
            f"tower depth: {event['depth']}, credits: {event['credits']}"
        )
    return json.dumps(event, separators=(",", ":"))


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="vote.ok")
    op = Text(f"  {result.op}", style="vote.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="vote.key")
    if key in ("vote_account", "vote_pubkey"):
        v = Text(str(value), style="vote.pubkey")
    elif key in ("directory", "path"):
        v = Text(str(value), style="vote.path")
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    phase: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render the phase tree with color-coded timing and RPC traffic."""
    prefix = " " * indent
    name = phase.get("name", "?")
    duration = phase.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = Text(prefix)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {name}")
    rpc = phase.get("rpc")
    if rpc:
        line.append(f"  rpc={rpc['requests']}")
        if rpc.get("retries"):
            line.append(f" retries={rpc['retries']}", style="vote.warning")
        if rpc.get("failures"):
            line.append(f" failed={rpc['failures']}", style="vote.error")
    details = phase.get("details") or {}
    if details:
        line.append(f"  ({', '.join(f'{k}={v}' for k, v in details.items())})", style="dim")
    console.print(line)

    for child in phase.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="vote.error")
    op = Text(f"  {result.op}", style="vote.op")
    console.print(label, op, Text(" — "), Text(msg))

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── Op renderers ──────────────────────────────────────────────────────


def _render_bootstrap(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    if d.get("cloned"):
        state = "cloned"
    elif d.get("would_clone"):
        state = "missing (would clone)"
    else:
        state = "present (skipped)"
    _field(console, "directory", d.get("directory", ""))
    _field(console, "remote", d.get("remote", ""))
    if d.get("branch"):
        _field(console, "branch", d["branch"])
    _field(console, "checkout", state)
    if verbose:
        _render_meta(console, result)


def _render_vote_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the slot table in its fixed-width text layout."""
    d = result.data
    console.print(f"{d.get('transaction_count', 0)} transactions to process")
    lines = d.get("lines") or []
    if not lines:
        if verbose:
            _render_meta(console, result)
        return

    console.print()
    for line in lines:
        text = Text(line)
        if line.startswith(" MISS "):
            text.stylize("vote.miss", 0, 6)
        elif line.startswith(" SKIP "):
            text.stylize("vote.skip", 0, 6)
        console.print(text, no_wrap=True, overflow="ignore", crop=False)

    console.print()
    slot_range = Text(f"{d['start_slot']}..{d['end_slot']}", style="vote.slot")
    console.print(Text("Slot Range: "), slot_range, sep="")
    console.print(f"{d['confirmed_count']} of {d['slot_count']} confirmed")
    if d.get("missed_slots"):
        console.print(Text(f"Missed slots: {d['missed_slots']}", style="vote.miss"))
    if d.get("failed_votes"):
        console.print(Text(f"Failed vote transactions: {d['failed_votes']}", style="vote.warning"))
    if verbose:
        _render_meta(console, result)


def _render_stream_summary(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    d = result.data
    _status_line(console, result)
    for key in ("slots_seen", "votes_seen", "votes_processed", "votes_skipped", "validators"):
        _field(console, key, d.get(key, 0))
    if d.get("interrupted"):
        _field(console, "interrupted", True)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "bootstrap": _render_bootstrap,
    "view_votes": _render_vote_table,
    "stream_votes": _render_stream_summary,
}
