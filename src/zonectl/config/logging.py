"""Log routing for zonectl.

Services log through stdlib ``logging``; structlog renders every record,
ours and third-party, through one stderr handler. ``--log-json`` switches
the renderer to one JSON object per line, which is what server operators
feed into their log shippers. The acting player is carried in structlog's
context variables so every line written during a command names who ran it.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Chatty libraries that stay at WARNING even under --verbose.
_QUIET_LOGGERS = ("sqlalchemy", "pluggy")


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install the stderr handler and set zonectl's level.

    Safe to call more than once; the root handler is replaced, not stacked.

    Args:
        verbose: zonectl loggers emit DEBUG and up; otherwise WARNING and up.
        log_json: JSON lines instead of the console renderer.
    """
    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("zonectl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_player(player: str) -> None:
    """Tag every subsequent log line in this context with the acting player."""
    structlog.contextvars.bind_contextvars(player=player)
