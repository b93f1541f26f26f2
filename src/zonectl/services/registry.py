"""ZoneRegistry: the canonical zone-id → Zone mapping.

Enforces non-overlap across every active zone (regardless of owner) before
handing a new claim to the ledger. The overlap scan runs against a plain
read of the zone list and is *not* repeated inside the ledger commit: two
concurrent claims with different ids can both pass the scan. The commit
only serializes same-id claims and same-payer debits.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import pydantic

from zonectl.domain.errors import (
    ConflictError,
    InsufficientFundsError,
    NotFoundError,
    OverlapError,
    ValidationError,
)
from zonectl.domain.geometry import Position, overlaps
from zonectl.domain.ids import derive_zone_id, validate_zone_id
from zonectl.domain.zone import Zone
from zonectl.infrastructure.kv import Check, Entry, Put
from zonectl.services._helpers import iso_from_epoch, parse_price
from zonectl.services.ledger import zone_key

if TYPE_CHECKING:
    from zonectl.config.models import ZonesConfig
    from zonectl.infrastructure.kv import KvStore
    from zonectl.services.ledger import Ledger
    from zonectl.services.teams import TeamDirectory

logger = logging.getLogger(__name__)

MUTABLE_SETTINGS = ("description", "price")


class ZoneRegistry:
    def __init__(
        self,
        store: KvStore,
        ledger: Ledger,
        teams: TeamDirectory,
        config: ZonesConfig,
        *,
        clock: Callable[[], float],
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._teams = teams
        self._config = config
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, zone_id: str) -> Zone | None:
        found = self.get_versioned(zone_id)
        return found[0] if found is not None else None

    def require(self, zone_id: str) -> Zone:
        zone = self.get(zone_id)
        if zone is None:
            raise NotFoundError(f"Zone '{zone_id}' not found", zone_id=zone_id)
        return zone

    def get_versioned(self, zone_id: str) -> tuple[Zone, str] | None:
        """The zone plus the store version a later commit must check against.

        Ids that no zone name could derive are simply absent.
        """
        if not validate_zone_id(zone_id):
            return None
        entry = self._store.get(zone_key(zone_id))
        zone = self._load(entry)
        if zone is None or entry.version is None:
            return None
        return zone, entry.version

    def list_all(self) -> list[Zone]:
        """Every active zone, in store order."""
        zones = (self._load(entry) for entry in self._store.list(("zones",)))
        return [zone for zone in zones if zone is not None]

    def list_by_owner(self, owner_group_id: str) -> list[Zone]:
        return [z for z in self.list_all() if z.owner_group_id == owner_group_id]

    def find_containing(self, point: Position) -> Zone | None:
        """First zone in store order whose square contains *point*."""
        for zone in self.list_all():
            if zone.contains(point):
                return zone
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        name: str,
        description: str,
        center: Position,
        owner_group_id: str,
        payer: str,
    ) -> Zone:
        """Validate a new claim and commit it with the payer's debit.

        Raises:
            ValidationError: The name derives an empty id.
            InsufficientFundsError: The payer cannot cover the creation cost.
            OverlapError: The candidate intersects an active zone.
            ConflictError: The ledger commit lost a race.
        """
        name = name.strip()
        zone_id = derive_zone_id(name)
        if not zone_id:
            raise ValidationError(
                "Zone name must contain at least one letter or digit",
                name=name,
            )
        zone = Zone(
            id=zone_id,
            name=name,
            description=description,
            owner_group_id=owner_group_id,
            center=center,
            half_extent=self._config.half_extent,
            created_at=iso_from_epoch(self._clock()),
            created_by=payer,
        )

        cost = self._config.creation_cost
        snapshot = self._ledger.balance(payer)
        if snapshot.amount < cost:
            raise InsufficientFundsError(
                f"Creating a zone costs {cost}; {payer} has {snapshot.amount}",
                cost=cost,
                balance=snapshot.amount,
            )

        for other in self.list_all():
            if overlaps(zone.corners, other.corners, self._config.buffer):
                raise OverlapError(
                    f"Zone '{name}' would overlap zone '{other.name}'",
                    zone_id=zone_id,
                    conflicts_with=other.id,
                )

        self._ledger.commit_create(zone, payer, cost, snapshot)
        logger.info("Zone %s created by %s for team %s", zone_id, payer, owner_group_id)
        return zone

    def update_settings(self, zone_id: str, field: str, value: Any, requester: str) -> Zone:
        """Change ``description`` or ``price``. Geometry is never touched.

        Raises:
            NotFoundError: The zone does not exist.
            AuthorizationError: *requester* does not lead the owning team.
            ValidationError: Unknown setting or malformed price.
            ConflictError: The zone changed between read and write.
        """
        found = self.get_versioned(zone_id)
        if found is None:
            raise NotFoundError(f"Zone '{zone_id}' not found", zone_id=zone_id)
        zone, version = found
        self._teams.require_leader(zone.owner_group_id, requester)

        setting = field.strip().lower()
        if setting == "description":
            updated = zone.model_copy(update={"description": str(value)})
        elif setting == "price":
            try:
                updated = zone.with_price(parse_price(value))
            except ValueError as exc:
                raise ValidationError(str(exc), setting=setting, value=value) from exc
        else:
            raise ValidationError(
                f"Unknown setting '{field}'. Valid settings: {', '.join(MUTABLE_SETTINGS)}",
                setting=field,
            )

        ok = self._store.atomic_commit(
            [Check(zone_key(zone_id), version)],
            [Put(zone_key(zone_id), updated.to_record())],
        )
        if not ok:
            raise ConflictError(f"Zone '{zone_id}' changed; try again", zone_id=zone_id)
        return updated

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _load(entry: Entry) -> Zone | None:
        if not entry.exists:
            return None
        try:
            return Zone.model_validate(entry.value)
        except pydantic.ValidationError:
            logger.warning("Skipping malformed zone record %s", "/".join(entry.key))
            return None
