"""Phase timing for service calls, surfaced with ``-v``.

A service method decorated with :func:`traced` opens a root phase; code
inside it opens child phases with :func:`phase`.  A phase bound to a
:class:`JsonRpcClient` records how many HTTP requests, retries and
give-ups happened while it was open, so a slow ``vv`` can be told apart
from a flaky endpoint.  Phases also carry small vote-domain details
(signature counts, slot ranges).  The finished tree is attached to
``ServiceResult.meta["telemetry"]``.

Everything is a no-op until :func:`enable_telemetry` is called.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

import structlog

from votectl.services.result import ServiceResult

if TYPE_CHECKING:
    from votectl.infrastructure.rpc import JsonRpcClient, RpcStats

log = structlog.get_logger(__name__)

_enabled: ContextVar[bool] = ContextVar("votectl_telemetry", default=False)
_open_phase: ContextVar[Phase | None] = ContextVar("votectl_open_phase", default=None)


@dataclass
class Phase:
    name: str
    started: float = field(default_factory=time.perf_counter)
    elapsed_ms: float = 0.0
    rpc: RpcStats | None = None
    details: dict[str, Any] = field(default_factory=dict)
    children: list[Phase] = field(default_factory=list)

    def note(self, **details: Any) -> None:
        self.details.update(details)

    def finish(self) -> None:
        self.elapsed_ms = round((time.perf_counter() - self.started) * 1000, 2)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "duration_ms": self.elapsed_ms}
        if self.rpc is not None:
            out["rpc"] = {
                "requests": self.rpc.requests,
                "retries": self.rpc.retries,
                "failures": self.rpc.failures,
            }
        if self.details:
            out["details"] = dict(self.details)
        if self.children:
            out["children"] = [child.to_dict() for child in self.children]
        return out


@contextmanager
def _opened(current: Phase, client: JsonRpcClient | None) -> Iterator[Phase]:
    before = client.stats.snapshot() if client is not None else None
    token = _open_phase.set(current)
    try:
        yield current
    finally:
        _open_phase.reset(token)
        current.finish()
        if client is not None and before is not None:
            current.rpc = client.stats.since(before)


@contextmanager
def phase(name: str, *, rpc: JsonRpcClient | None = None) -> Iterator[Phase | None]:
    """Time a step of the enclosing traced call.

    Yields None when telemetry is off or no traced call is running.
    """
    parent = _open_phase.get() if _enabled.get() else None
    if parent is None:
        yield None
        return
    child = Phase(name)
    parent.children.append(child)
    with _opened(child, rpc):
        yield child


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Run *func* as a root phase and attach the tree to its ServiceResult."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get():
            return func(*args, **kwargs)

        root = Phase(func.__qualname__)
        with _opened(root, None):
            result = func(*args, **kwargs)
        log.debug("phase.done", phase=root.name, duration_ms=root.elapsed_ms)
        if isinstance(result, ServiceResult):
            meta = {**(result.meta or {}), "telemetry": root.to_dict()}
            result = result.model_copy(update={"meta": meta})  # type: ignore[assignment]
        return result

    return wrapper


def enable_telemetry() -> None:
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)
