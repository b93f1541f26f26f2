"""AppContext: shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``. Provides lazy World initialization, the acting
player, and centralized result emission (stdout/stderr routing + exit
codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from zonectl.output.formatters import format_result

if TYPE_CHECKING:
    from zonectl.config.settings import ZonectlSettings
    from zonectl.infrastructure.world import World
    from zonectl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The World is created on first use so ``--help`` and ``--version``
    never open the store or a server connection.
    """

    def __init__(self, settings: ZonectlSettings) -> None:
        self.settings = settings
        self._world: World | None = None

        from zonectl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from zonectl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def world(self) -> World:
        """The World instance (created lazily on first access)."""
        if self._world is None:
            from zonectl.infrastructure.world import World

            self._world = World(self.settings)
            self._world.init_event_bus()
        return self._world

    def require_player(self, player: str | None = None) -> str:
        """The acting player: *player*, else ``--player`` / ``ZONECTL_PLAYER``."""
        resolved = player or self.settings.player
        if not resolved:
            raise click.UsageError("No player given; pass --player or set ZONECTL_PLAYER.")
        from zonectl.config.logging import bind_player

        bind_player(resolved)
        return resolved

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: writes to stdout; warnings go to stderr so they don't
          pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        output = format_result(
            result,
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        if result.ok:
            click.echo(output)
            if not self.settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)

    def close(self) -> None:
        """Drain plugin events and release the World (registered on the root context)."""
        if self._world is not None:
            self._world.close()
            self._world = None
