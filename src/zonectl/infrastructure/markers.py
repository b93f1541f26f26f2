"""Map-visualization collaborator contract.

Marker calls are best-effort: callers log and swallow failures.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog


class MarkerSink(Protocol):
    def create_marker_set(self, marker_set: str, options: dict[str, Any]) -> None: ...

    def add_marker(
        self,
        marker_set: str,
        marker_id: str,
        kind: str,
        payload: dict[str, Any],
    ) -> None: ...

    def remove_marker(self, marker_set: str, marker_id: str) -> None: ...


class LoggingMarkerSink:
    """Sink used when no map server is attached: emits one log event per call."""

    def __init__(self) -> None:
        self._log = structlog.get_logger("zonectl.markers")

    def create_marker_set(self, marker_set: str, options: dict[str, Any]) -> None:
        self._log.info("marker_set.create", marker_set=marker_set, label=options.get("label"))

    def add_marker(
        self,
        marker_set: str,
        marker_id: str,
        kind: str,
        payload: dict[str, Any],
    ) -> None:
        self._log.info(
            "marker.add",
            marker_set=marker_set,
            marker_id=marker_id,
            kind=kind,
            label=payload.get("label"),
        )

    def remove_marker(self, marker_set: str, marker_id: str) -> None:
        self._log.info("marker.remove", marker_set=marker_set, marker_id=marker_id)
