"""Click command classes shared by every zonectl command.

Worked examples are kept out of ``--help``: a command built with
``examples=...`` grows an eager ``--examples`` flag that prints them and
exits before any argument is validated or the world is opened.
"""

from __future__ import annotations

from typing import Any

import click


class _ExamplesMixin:
    """Adds the ``--examples`` flag when the command is given examples."""

    params: list[click.Parameter]

    def _init_examples(self, examples: str | None) -> None:
        self.examples = examples
        if examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._print_examples,
                    help="Show usage examples.",
                )
            )

    def _print_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if value and self.examples:
            click.echo(f"Examples for '{ctx.command_path}':\n")
            click.echo(self.examples)
            ctx.exit(0)


class ZoneCommand(_ExamplesMixin, click.Command):
    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)


class ZoneGroup(_ExamplesMixin, click.Group):
    """Group whose subcommands are :class:`ZoneCommand` by default."""

    command_class = ZoneCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)
