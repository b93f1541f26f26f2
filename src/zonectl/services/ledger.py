"""Ledger: balances and the atomic zone commits.

The ledger's ``atomic_commit`` calls are the single serialization point of
the zone core: a create only lands if the zone key is still absent *and*
the payer's balance has not moved since it was read; a delete only lands if
the zone record is still the version the caller fetched. Neither commit
retries. A lost race surfaces as :class:`ConflictError` and the caller
decides whether to try again with fresh reads.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, NamedTuple

from zonectl.domain.errors import ConflictError, ValidationError
from zonectl.infrastructure.kv import Check, Delete, Key, Mutation, Put, is_key_segment

if TYPE_CHECKING:
    from zonectl.domain.zone import Zone
    from zonectl.infrastructure.kv import KvStore

logger = logging.getLogger(__name__)


def zone_key(zone_id: str) -> Key:
    return ("zones", zone_id)


def balance_key(player: str) -> Key:
    return ("economy", "balances", player)


class BalanceSnapshot(NamedTuple):
    """A balance read. ``version`` is None when the player has no record."""

    player: str
    amount: int
    version: str | None


class Ledger:
    """Balance reads plus the create/delete commits."""

    def __init__(self, store: KvStore) -> None:
        self._store = store

    def balance(self, player: str) -> BalanceSnapshot:
        """Read *player*'s balance. An absent record reads as zero.

        Raises:
            ValidationError: *player* is not a storable name.
        """
        if not is_key_segment(player):
            raise ValidationError(f"Invalid player name {player!r}", player=player)
        entry = self._store.get(balance_key(player))
        amount = int(entry.value) if entry.exists else 0
        return BalanceSnapshot(player=player, amount=amount, version=entry.version)

    def commit_create(
        self,
        zone: Zone,
        payer: str,
        cost: int,
        snapshot: BalanceSnapshot,
    ) -> None:
        """Insert *zone* and debit *payer* in one commit.

        Raises:
            ConflictError: The zone id was taken or the balance changed
                after *snapshot* was read.
        """
        checks = [
            Check(zone_key(zone.id), None),
            Check(balance_key(payer), snapshot.version),
        ]
        mutations = [
            Put(zone_key(zone.id), zone.to_record()),
            Put(balance_key(payer), snapshot.amount - cost),
        ]
        if not self._store.atomic_commit(checks, mutations):
            logger.info("Create commit for %s lost a race", zone.id)
            raise ConflictError(
                f"Zone '{zone.id}' or the balance of {payer} changed; try again",
                zone_id=zone.id,
                payer=payer,
            )
        logger.debug("Committed zone %s (%s paid %d)", zone.id, payer, cost)

    def commit_delete(
        self,
        zone_id: str,
        expected_version: str,
        release: Iterable[Key] = (),
        record: Iterable[Put] = (),
    ) -> None:
        """Remove the zone record and every key in *release* in one commit.

        Any *record* writes land in the same commit.

        Raises:
            ConflictError: The zone record is no longer *expected_version*.
        """
        mutations: list[Mutation] = [
            Delete(zone_key(zone_id)),
            *(Delete(key) for key in release),
            *record,
        ]
        if not self._store.atomic_commit([Check(zone_key(zone_id), expected_version)], mutations):
            raise ConflictError(
                f"Zone '{zone_id}' changed while it was being deleted",
                zone_id=zone_id,
            )
        logger.debug("Deleted zone %s", zone_id)

    def deposit(self, player: str, amount: int) -> int:
        """Credit *amount* to *player* and return the new balance.

        Raises:
            ValidationError: *amount* is not a positive integer.
            ConflictError: The balance changed between read and commit.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError("Deposit amount must be a positive whole number", amount=amount)
        snapshot = self.balance(player)
        new_amount = snapshot.amount + amount
        ok = self._store.atomic_commit(
            [Check(balance_key(player), snapshot.version)],
            [Put(balance_key(player), new_amount)],
        )
        if not ok:
            raise ConflictError(f"The balance of {player} changed; try again", player=player)
        return new_amount
