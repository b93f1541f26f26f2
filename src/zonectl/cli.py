"""Root CLI group for zonectl with global flags and command registration."""

from __future__ import annotations

import click

from zonectl import __version__
from zonectl.commands import register_commands
from zonectl.commands._context import AppContext
from zonectl.config.settings import ZonectlSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="zonectl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("-p", "--player", default=None, help="Acting player (or ZONECTL_PLAYER).")
@click.option("--dry-run", is_flag=True, help="Record world commands instead of sending them.")
@click.option("--sync", is_flag=True, help="Force synchronous event dispatch.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    player: str | None,
    dry_run: bool,
    sync: bool,
) -> None:
    """zonectl: team zone claims, protection, and deletion."""
    ctx.ensure_object(dict)
    settings = ZonectlSettings.from_cli(
        config_path=config_path,
        # Unset flags stay None so env vars and zonectl.toml still apply.
        json_output=json_output or None,
        quiet=quiet or None,
        verbose=verbose or None,
        log_json=log_json or None,
        player=player,
        dry_run=dry_run or None,
        sync=sync or None,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
