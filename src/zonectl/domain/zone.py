"""Zone, team, and pending-deletion models.

INVARIANT: a zone's corners are always ``center ± half_extent``. They are a
computed field: serialized for readers (map feeds, JSON output) but never
accepted back on load, so they cannot drift from the center.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, computed_field, model_validator

from zonectl.domain.geometry import Corners, Position, contains, square_corners


class Zone(BaseModel):
    """A claimed square territory."""

    model_config = {"frozen": True}

    id: str
    name: str
    description: str = ""
    owner_group_id: str
    center: Position
    half_extent: float = Field(gt=0)
    for_sale: bool = False
    price: int = Field(default=0, ge=0)
    created_at: str
    created_by: str

    @model_validator(mode="before")
    @classmethod
    def _drop_stored_corners(cls, data: Any) -> Any:
        if isinstance(data, dict) and "corners" in data:
            data = {k: v for k, v in data.items() if k != "corners"}
        return data

    @computed_field  # type: ignore[prop-decorator]
    @property
    def corners(self) -> Corners:
        return square_corners(self.center, self.half_extent)

    def contains(self, point: Position) -> bool:
        return contains(point, self.corners)

    def with_price(self, price: int) -> Zone:
        """Return a copy listed at *price* (``for_sale`` follows ``price > 0``)."""
        return self.model_copy(update={"price": price, "for_sale": price > 0})

    def to_record(self) -> dict[str, Any]:
        """JSON-safe dict for the store."""
        return self.model_dump(mode="json")


class Team(BaseModel):
    """An owning group. Only the leader may claim, modify, or delete zones."""

    model_config = {"frozen": True}

    id: str
    name: str
    leader: str
    members: list[str] = Field(default_factory=list)
    color: str = "white"

    def is_member(self, player: str) -> bool:
        return player == self.leader or player in self.members

    @property
    def everyone(self) -> list[str]:
        """Leader first, then members, without duplicates."""
        return [self.leader, *(m for m in self.members if m != self.leader)]


class PendingDeletion(BaseModel):
    """Confirmation token for a requested zone deletion."""

    model_config = {"frozen": True}

    zone_id: str
    requester: str
    requested_at: float

    def expires_at(self, window: float) -> float:
        return self.requested_at + window

    def is_expired(self, now: float, window: float) -> bool:
        return now >= self.expires_at(window)
