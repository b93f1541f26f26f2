"""Locating ``zonectl.toml``.

``ZONECTL_CONFIG`` wins when set; otherwise the nearest ``zonectl.toml``
in the working directory or any of its parents is used, so a server
operator can run zonectl from anywhere inside the server directory.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "zonectl.toml"
CONFIG_ENV_VAR = "ZONECTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Path of the config file in effect, or None.

    A ``ZONECTL_CONFIG`` pointing at a missing file yields None rather
    than falling back to the directory search.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        path = Path(override)
        return path if path.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
