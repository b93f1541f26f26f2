"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, zonectl.toml only contains
overrides. The defaults reproduce the live server's rules: 256-block
square claims, a one-block buffer, one coin per claim, and a sixty-second
deletion confirmation window.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    backend: Literal["sqlite", "memory"] = "sqlite"
    path: str = ".zonectl/zonectl.db"


class ZonesConfig(BaseModel):
    """[zones] section."""

    model_config = {"frozen": True}

    half_extent: float = Field(default=128, gt=0)
    buffer: float = Field(default=1, ge=0)
    creation_cost: int = Field(default=1, ge=0)
    world_min_y: int = -64
    world_max_y: int = 320
    gate_base_y: int = 0

    @model_validator(mode="after")
    def _world_band(self) -> ZonesConfig:
        if self.world_max_y <= self.world_min_y:
            msg = "world_max_y must be above world_min_y"
            raise ValueError(msg)
        return self


class ReconcilerConfig(BaseModel):
    """[reconciler] section."""

    model_config = {"frozen": True}

    pacing_seconds: float = Field(default=0.2, ge=0)
    sweep_radius: int = Field(default=10, gt=0)


class DeletionConfig(BaseModel):
    """[deletion] section."""

    model_config = {"frozen": True}

    confirm_window_seconds: float = Field(default=60, gt=0)


class RconConfig(BaseModel):
    """[rcon] section. Disabled means commands are recorded, not sent."""

    model_config = {"frozen": True}

    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 25575
    password: str = ""
    timeout: float = 5.0


class MapConfig(BaseModel):
    """[map] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    marker_set: str = "zones"
    marker_set_label: str = "Protected Zones"


class EventsConfig(BaseModel):
    """[events] section."""

    model_config = {"frozen": True}

    sync: bool = False
    max_workers: int = Field(default=2, ge=1)
    notify_members: bool = True
