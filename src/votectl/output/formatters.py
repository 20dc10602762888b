"""Output mode dispatch.

The CLI renders ServiceResult for humans (Rich), for scripts (``--json``)
or tersely (``--quiet``).  This module picks the mode; the per-op Rich
rendering lives in :mod:`votectl.output.renderers`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from votectl.services.result import ServiceResult


@dataclass(frozen=True)
class OutputSettings:
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display; human output when *settings* is None."""
    settings = settings or OutputSettings()

    if settings.json_output:
        return result.model_dump_json(indent=2)

    from votectl.output.renderers import render_quiet, render_result

    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)


def format_event(event: dict[str, Any], *, json_output: bool = False) -> str:
    """Format one vote-stream event as a single line."""
    if json_output:
        return json.dumps(event, separators=(",", ":"))

    from votectl.output.renderers import render_event

    return render_event(event)
