"""Per-operation timing for ``--verbose`` runs.

A :func:`traced` service method opens a root span; :func:`trace_span`
blocks inside it (registry write, reconciler apply, teardown) hang child
spans off it. When the method returns a :class:`ServiceResult`, the span
tree lands in ``meta["telemetry"]`` where the renderers pick it up.

Disabled is the normal state, and costs one ContextVar lookup per call.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from zonectl.domain.errors import ZoneError
from zonectl.services.result import ServiceResult

log = structlog.get_logger("zonectl.telemetry")

_verbose_enabled: ContextVar[bool] = ContextVar("_verbose_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)

_P = ParamSpec("_P")
_R = TypeVar("_R")


@dataclass
class Span:
    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    annotations: dict[str, Any] = field(default_factory=dict)
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None

    @property
    def duration_ms(self) -> float:
        """Elapsed milliseconds, or 0.0 while the span is still open."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self) -> None:
        self.end_time = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def walk(self) -> Iterator[Span]:
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            out["annotations"] = dict(self.annotations)
        if self.children:
            out["children"] = [child.to_dict() for child in self.children]
        return out


@contextmanager
def _activated(span: Span) -> Generator[Span]:
    token = _current_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _current_span.reset(token)


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Time a block as a child of the active span.

    Yields None when telemetry is off or no traced operation is running,
    so callers guard annotations with ``if span is not None``.
    """
    parent = _current_span.get() if _verbose_enabled.get() else None
    if parent is None:
        yield None
        return
    child = Span(name=name, parent=parent)
    parent.children.append(child)
    with _activated(child):
        yield child


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Open a root span around a service operation.

    Failures raised as :class:`ZoneError` are annotated with their code
    before propagating.
    """

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _verbose_enabled.get():
            return func(*args, **kwargs)

        span = Span(name=func.__qualname__)
        try:
            with _activated(span):
                result = func(*args, **kwargs)
        except ZoneError as exc:
            span.annotate("error", exc.code)
            log.debug("span.failed", span_name=span.name, code=exc.code)
            raise
        except Exception:
            log.debug("span.failed", span_name=span.name)
            raise

        log.debug(
            "span.complete",
            span_name=span.name,
            duration_ms=round(span.duration_ms, 2),
            spans=sum(1 for _ in span.walk()),
        )
        if isinstance(result, ServiceResult):
            meta = {**(result.meta or {}), "telemetry": span.to_dict()}
            return result.model_copy(update={"meta": meta})  # type: ignore[return-value]
        return result

    return wrapper


def enable_telemetry() -> None:
    _verbose_enabled.set(True)


def disable_telemetry() -> None:
    _verbose_enabled.set(False)


def get_current_span() -> Span | None:
    """The innermost open span, for ad-hoc annotation."""
    return _current_span.get() if _verbose_enabled.get() else None
