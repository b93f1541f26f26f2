"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs (CLI flags passed by Click)
  2. Env vars (``ZONECTL_*`` prefix, ``__`` for nested sections)
  3. TOML file (``zonectl.toml`` discovered via walk-up)
  4. Code defaults (baked into the section models)
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from zonectl.config.discovery import find_config
from zonectl.config.models import (
    DeletionConfig,
    EventsConfig,
    MapConfig,
    RconConfig,
    ReconcilerConfig,
    StoreConfig,
    ZonesConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``zonectl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class ZonectlSettings(BaseSettings):
    """Unified settings for zonectl.

    Attributes:
        root: Working root (parent of ``zonectl.toml``, or CWD). Relative
            store paths resolve against it.
        config_path: The TOML file that was loaded, if any.
        player: Acting player for commands that need one.
        dry_run: Record world commands instead of sending them over RCON.
        sync: Dispatch plugin hooks inline instead of on the worker pool.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "ZONECTL_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    dry_run: bool = False
    sync: bool = False
    player: str | None = None

    # --- TOML sections ---
    store: StoreConfig = Field(default_factory=StoreConfig)
    zones: ZonesConfig = Field(default_factory=ZonesConfig)
    reconciler: ReconcilerConfig = Field(default_factory=ReconcilerConfig)
    deletion: DeletionConfig = Field(default_factory=DeletionConfig)
    rcon: RconConfig = Field(default_factory=RconConfig)
    map: MapConfig = Field(default_factory=MapConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)

    @property
    def db_path(self) -> Path:
        path = Path(self.store.path)
        return path if path.is_absolute() else self.root / path

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> ZonectlSettings:
        """Construct settings from a CLI invocation.

        Discovers ``zonectl.toml`` via walk-up (or explicit *config_path*),
        resolves *root* from the config file's parent directory, and merges
        CLI flags as highest-priority overrides. Flags passed as None are
        dropped so they never mask env or TOML values.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(root)

        resolved_root = root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        flags = {k: v for k, v in cli_flags.items() if v is not None}
        _tls.toml_path = toml_path
        try:
            return cls(root=resolved_root, config_path=toml_path, **flags)
        finally:
            _tls.toml_path = None
