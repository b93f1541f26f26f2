"""Subcommand modules for zonectl.

Provides register_commands() which uses deferred imports to keep
``zonectl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the command groups on the root CLI group."""
    from zonectl.commands.bank import bank
    from zonectl.commands.teams import teams
    from zonectl.commands.zones import zones

    cli.add_command(zones)
    cli.add_command(bank)
    cli.add_command(teams)
