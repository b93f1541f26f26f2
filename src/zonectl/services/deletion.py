"""DeletionWorkflow: two-phase zone deletion.

Per ``(requester, zone_id)``::

    none ──request──▶ pending ──confirm──▶ confirmed
                         │
                         └──window elapses──▶ expired

A request writes a pending token to the store and arms a keyed expiry
timer. Confirmation is accepted only while the token exists *and* its
stored timestamp is inside the window, so a token that outlived its timer
(process restart) can never be confirmed late.

The workflow keeps no per-cycle state in memory. The token is the pending
state; the terminal outcome is written to ``("deletion_outcomes", ...)``
in the same commit that removes the token, and cleared by the next request.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import pydantic

from zonectl.domain.errors import NoPendingRequestError, NotFoundError, ReconciliationError
from zonectl.domain.ids import validate_zone_id
from zonectl.domain.lifecycle import DeletionState, is_valid_transition
from zonectl.domain.zone import PendingDeletion
from zonectl.infrastructure.kv import Check, Delete, Entry, Key, Mutation, Put, is_key_segment

if TYPE_CHECKING:
    from zonectl.domain.zone import Zone
    from zonectl.infrastructure.kv import KvStore
    from zonectl.infrastructure.timers import TimerScheduler
    from zonectl.services.ledger import Ledger
    from zonectl.services.reconciler import ProtectionReconciler
    from zonectl.services.registry import ZoneRegistry
    from zonectl.services.teams import TeamDirectory

logger = logging.getLogger(__name__)


def pending_key(requester: str, zone_id: str) -> Key:
    return ("pending_deletions", requester, zone_id)


def outcome_key(requester: str, zone_id: str) -> Key:
    return ("deletion_outcomes", requester, zone_id)


@dataclass(frozen=True)
class DeletionOutcome:
    """Result of a confirmed deletion.

    The zone record is gone either way; ``teardown_error`` is set when some
    primitives could not be removed.
    """

    zone: Zone
    removed: int
    teardown_error: ReconciliationError | None = None


class DeletionWorkflow:
    def __init__(
        self,
        store: KvStore,
        registry: ZoneRegistry,
        teams: TeamDirectory,
        ledger: Ledger,
        reconciler: ProtectionReconciler,
        timers: TimerScheduler,
        *,
        window: float,
        clock: Callable[[], float],
    ) -> None:
        self._store = store
        self._registry = registry
        self._teams = teams
        self._ledger = ledger
        self._reconciler = reconciler
        self._timers = timers
        self._window = window
        self._clock = clock

    @property
    def window(self) -> float:
        return self._window

    def request_delete(self, zone_id: str, requester: str) -> PendingDeletion:
        """Record a pending deletion and arm its expiry.

        Re-requesting replaces the token and re-arms the timer.

        Raises:
            NotFoundError: The zone does not exist.
            AuthorizationError: *requester* does not lead the owning team.
        """
        zone = self._registry.require(zone_id)
        self._teams.require_leader(zone.owner_group_id, requester)

        pending = PendingDeletion(zone_id=zone_id, requester=requester, requested_at=self._clock())
        self._store.delete(outcome_key(requester, zone_id))
        version = self._store.set(pending_key(requester, zone_id), pending.model_dump())
        self._timers.schedule(
            (requester, zone_id),
            self._window,
            functools.partial(self._expire, requester, zone_id, version),
        )
        logger.info("Deletion of %s requested by %s", zone_id, requester)
        return pending

    def confirm_delete(self, zone_id: str, requester: str) -> DeletionOutcome:
        """Tear down and remove the zone if a live request exists.

        Raises:
            NoPendingRequestError: Never requested, or the window elapsed.
                Nothing but the stale token is touched.
            NotFoundError: The zone vanished since the request.
            AuthorizationError: *requester* no longer leads the owning team.
            ConflictError: The zone changed while it was being deleted.
        """
        if not validate_zone_id(zone_id) or not is_key_segment(requester):
            raise NoPendingRequestError(
                f"No pending deletion of '{zone_id}' by {requester}; request it first",
                zone_id=zone_id,
            )
        key = pending_key(requester, zone_id)
        entry = self._store.get(key)
        current = self._state_of(entry, requester, zone_id)
        if current is DeletionState.EXPIRED and entry.version is not None:
            self._expire(requester, zone_id, entry.version)
            self._timers.cancel((requester, zone_id))
            raise NoPendingRequestError(
                f"The deletion request for '{zone_id}' expired; request it again",
                zone_id=zone_id,
            )
        if not is_valid_transition(current, DeletionState.CONFIRMED) or entry.version is None:
            raise NoPendingRequestError(
                f"No pending deletion of '{zone_id}' by {requester}; request it first",
                zone_id=zone_id,
            )

        found = self._registry.get_versioned(zone_id)
        if found is None:
            self._release(key, entry.version)
            self._timers.cancel((requester, zone_id))
            raise NotFoundError(f"Zone '{zone_id}' no longer exists", zone_id=zone_id)
        zone, version = found
        self._teams.require_leader(zone.owner_group_id, requester)

        removed = 0
        teardown_error: ReconciliationError | None = None
        try:
            removed = self._reconciler.teardown(zone)
        except ReconciliationError as exc:
            teardown_error = exc
            removed = exc.applied

        self._ledger.commit_delete(
            zone_id,
            version,
            release=[key],
            record=[Put(outcome_key(requester, zone_id), DeletionState.CONFIRMED.value)],
        )
        self._timers.cancel((requester, zone_id))
        logger.info("Zone %s deleted by %s", zone_id, requester)
        return DeletionOutcome(zone=zone, removed=removed, teardown_error=teardown_error)

    def state(self, zone_id: str, requester: str) -> DeletionState:
        """Current state of the (requester, zone) cycle."""
        if not validate_zone_id(zone_id) or not is_key_segment(requester):
            return DeletionState.NONE
        return self._state_of(self._store.get(pending_key(requester, zone_id)), requester, zone_id)

    def shutdown(self) -> None:
        """Cancel every armed expiry timer."""
        self._timers.shutdown()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _state_of(self, token: Entry, requester: str, zone_id: str) -> DeletionState:
        pending = self._parse(token.value) if token.exists else None
        if pending is not None:
            if pending.is_expired(self._clock(), self._window):
                return DeletionState.EXPIRED
            return DeletionState.PENDING
        outcome = self._store.get(outcome_key(requester, zone_id))
        if outcome.exists and outcome.value in (DeletionState.CONFIRMED, DeletionState.EXPIRED):
            return DeletionState(outcome.value)
        return DeletionState.NONE

    def _expire(self, requester: str, zone_id: str, version: str) -> None:
        """Drop the token if it is still the one this timer was armed for."""
        expired = Put(outcome_key(requester, zone_id), DeletionState.EXPIRED.value)
        if self._release(pending_key(requester, zone_id), version, expired):
            logger.info("Deletion request for %s by %s expired", zone_id, requester)

    def _release(self, key: Key, version: str, *extra: Mutation) -> bool:
        return self._store.atomic_commit([Check(key, version)], [Delete(key), *extra])

    @staticmethod
    def _parse(value: object) -> PendingDeletion | None:
        try:
            return PendingDeletion.model_validate(value)
        except pydantic.ValidationError:
            logger.warning("Ignoring malformed pending deletion %r", value)
            return None
