"""PresentationSync: best-effort map markers for zones.

Every zone gets a boundary shape ``zone_<id>`` and a teleport point of
interest ``zone_<id>_tp`` in the configured marker set. Marker failures
never fail a zone operation: they are logged and reported as warnings.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from zonectl.config.models import MapConfig
    from zonectl.domain.zone import Zone
    from zonectl.infrastructure.markers import MarkerSink

logger = logging.getLogger(__name__)


def shape_marker_id(zone_id: str) -> str:
    return f"zone_{zone_id}"


def poi_marker_id(zone_id: str) -> str:
    return f"zone_{zone_id}_tp"


class PresentationSync:
    def __init__(self, markers: MarkerSink, config: MapConfig) -> None:
        self._markers = markers
        self._config = config

    def init_marker_set(self, warnings: list[str]) -> bool:
        """Create the zone marker set on the map server. Returns False if skipped or failed."""
        if not self._config.enabled:
            return False
        options: dict[str, Any] = {
            "label": self._config.marker_set_label,
            "toggleable": True,
            "default_hidden": False,
            "sorting": 1,
        }
        try:
            self._markers.create_marker_set(self._config.marker_set, options)
        except Exception as exc:
            logger.warning("Creating marker set %s failed: %s", self._config.marker_set, exc)
            warnings.append(f"Marker set '{self._config.marker_set}' could not be created: {exc}")
            return False
        return True

    def zone_created(self, zone: Zone, warnings: list[str]) -> None:
        if not self._config.enabled:
            return
        try:
            self._markers.add_marker(
                self._config.marker_set, shape_marker_id(zone.id), "shape", _shape_payload(zone)
            )
            self._markers.add_marker(
                self._config.marker_set, poi_marker_id(zone.id), "poi", _poi_payload(zone)
            )
        except Exception as exc:
            logger.warning("Map markers for zone %s failed: %s", zone.id, exc, exc_info=True)
            warnings.append(f"Map markers for zone '{zone.id}' could not be added: {exc}")

    def zone_updated(self, zone: Zone, warnings: list[str]) -> None:
        """Markers are keyed by id, so re-adding replaces them."""
        self.zone_created(zone, warnings)

    def zone_removed(self, zone: Zone, warnings: list[str]) -> None:
        if not self._config.enabled:
            return
        try:
            self._markers.remove_marker(self._config.marker_set, shape_marker_id(zone.id))
            self._markers.remove_marker(self._config.marker_set, poi_marker_id(zone.id))
        except Exception as exc:
            logger.warning("Removing markers of zone %s failed: %s", zone.id, exc, exc_info=True)
            warnings.append(f"Map markers for zone '{zone.id}' could not be removed: {exc}")


def _shape_payload(zone: Zone) -> dict[str, Any]:
    return {
        "label": zone.name,
        "detail": zone.description,
        "owner": zone.owner_group_id,
        "points": [{"x": c.x, "z": c.z} for c in zone.corners],
        "y": zone.center.y,
    }


def _poi_payload(zone: Zone) -> dict[str, Any]:
    return {
        "label": f"{zone.name} (teleport)",
        "x": zone.center.x,
        "y": zone.center.y,
        "z": zone.center.z,
    }
