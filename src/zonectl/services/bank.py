"""BankService: balance inspection and deposits."""

from __future__ import annotations

from typing import TYPE_CHECKING

from zonectl.domain.errors import ZoneError
from zonectl.services._helpers import error_result
from zonectl.services.base import BaseService
from zonectl.services.ledger import Ledger
from zonectl.services.result import ServiceResult
from zonectl.services.telemetry import traced

if TYPE_CHECKING:
    from zonectl.infrastructure.world import World


class BankService(BaseService):
    def __init__(self, world: World) -> None:
        super().__init__(world)
        self._ledger = Ledger(world.store)

    @traced
    def balance(self, player: str) -> ServiceResult:
        try:
            snapshot = self._ledger.balance(player)
        except ZoneError as exc:
            return error_result("balance", exc)
        return ServiceResult(
            ok=True,
            op="balance",
            data={
                "player": player,
                "balance": snapshot.amount,
                "zone_cost": self._world.settings.zones.creation_cost,
            },
        )

    @traced
    def deposit(self, player: str, amount: int) -> ServiceResult:
        """Credit *amount* coins to *player* (operator action)."""
        try:
            new_balance = self._ledger.deposit(player, amount)
        except ZoneError as exc:
            return error_result("deposit", exc)
        return ServiceResult(
            ok=True,
            op="deposit",
            data={"player": player, "deposited": amount, "balance": new_balance},
        )
