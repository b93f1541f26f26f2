"""Command group: balances."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from zonectl.commands._base import ZoneGroup
from zonectl.services.bank import BankService

if TYPE_CHECKING:
    from zonectl.commands._context import AppContext


@click.group(
    cls=ZoneGroup,
    examples="""\
  zonectl -p alice bank balance
  zonectl bank deposit alice 5""",
)
@click.pass_obj
def bank(app: AppContext) -> None:
    """Inspect and credit player balances."""


@bank.command(
    examples="""\
  zonectl -p alice bank balance
  zonectl bank balance bob
  zonectl -q bank balance bob"""
)
@click.argument("player", required=False)
@click.pass_obj
def balance(app: AppContext, player: str | None) -> None:
    """Show a player's balance."""
    app.emit(BankService(app.world).balance(app.require_player(player)))


@bank.command(
    examples="""\
  zonectl bank deposit alice 5"""
)
@click.argument("player")
@click.argument("amount", type=int)
@click.pass_obj
def deposit(app: AppContext, player: str, amount: int) -> None:
    """Credit AMOUNT coins to PLAYER."""
    app.emit(BankService(app.world).deposit(player, amount))
