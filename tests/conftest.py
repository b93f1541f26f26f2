"""Shared pytest fixtures and test doubles for zonectl tests."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from zonectl.config.models import EventsConfig, StoreConfig
from zonectl.config.settings import ZonectlSettings
from zonectl.domain.zone import Team
from zonectl.infrastructure.channel import ChannelError, RecordingChannel
from zonectl.infrastructure.kv import MemoryKvStore
from zonectl.infrastructure.world import World
from zonectl.services.ledger import Ledger
from zonectl.services.teams import TeamDirectory

START_TIME = 1_700_000_000.0


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualTimers:
    """TimerScheduler whose callbacks run only when a test fires them."""

    def __init__(self) -> None:
        self.pending: dict[Hashable, tuple[float, Callable[[], None]]] = {}

    def schedule(self, key: Hashable, delay: float, callback: Callable[[], None]) -> None:
        self.pending[key] = (delay, callback)

    def cancel(self, key: Hashable) -> bool:
        return self.pending.pop(key, None) is not None

    def armed(self) -> list[Hashable]:
        return list(self.pending)

    def shutdown(self) -> None:
        self.pending.clear()

    def fire(self, key: Hashable) -> None:
        _, callback = self.pending.pop(key)
        callback()


class FailingChannel(RecordingChannel):
    """Records commands and raises on the *fail_at*-th call (0-based)."""

    def __init__(self, fail_at: int) -> None:
        super().__init__()
        self.fail_at = fail_at
        self.calls = 0

    def execute(self, command: str) -> str:
        call = self.calls
        self.calls += 1
        if call == self.fail_at:
            raise ChannelError("connection reset by server")
        return super().execute(command)


class RecordingMarkerSink:
    def __init__(self, *, fail: bool = False) -> None:
        self.markers: dict[tuple[str, str], tuple[str, dict[str, Any]]] = {}
        self.sets: dict[str, dict[str, Any]] = {}
        self.fail = fail

    def add_marker(
        self, marker_set: str, marker_id: str, kind: str, payload: dict[str, Any]
    ) -> None:
        if self.fail:
            raise RuntimeError("map server unavailable")
        self.markers[(marker_set, marker_id)] = (kind, payload)

    def remove_marker(self, marker_set: str, marker_id: str) -> None:
        if self.fail:
            raise RuntimeError("map server unavailable")
        self.markers.pop((marker_set, marker_id), None)

    def create_marker_set(self, marker_set: str, options: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("map server unavailable")
        self.sets[marker_set] = options


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def settings(tmp_path: Path) -> ZonectlSettings:
    """Memory-backed settings with production zone rules."""
    return ZonectlSettings(
        root=tmp_path,
        store=StoreConfig(backend="memory"),
        events=EventsConfig(sync=True, notify_members=False),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def sleeps() -> list[float]:
    """Every delay the reconciler's pacer asked for."""
    return []


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def markers() -> RecordingMarkerSink:
    return RecordingMarkerSink()


@pytest.fixture
def world(
    settings: ZonectlSettings,
    channel: RecordingChannel,
    markers: RecordingMarkerSink,
    timers: ManualTimers,
    clock: FakeClock,
    sleeps: list[float],
) -> Iterator[World]:
    """In-memory World seeded with two teams and funded leaders.

    * team ``red``: leader ``alice``, member ``bob``
    * team ``blue``: leader ``dave``
    * balances: alice 5, dave 5, bob 0
    """
    w = World(
        settings,
        store=MemoryKvStore(),
        channel=channel,
        markers=markers,
        timers=timers,
        clock=clock,
        sleep=sleeps.append,
    )
    teams = TeamDirectory(w.store)
    teams.register(Team(id="red", name="Red", leader="alice", members=["bob"], color="red"))
    teams.register(Team(id="blue", name="Blue", leader="dave", color="blue"))
    ledger = Ledger(w.store)
    ledger.deposit("alice", 5)
    ledger.deposit("dave", 5)
    try:
        yield w
    finally:
        w.close()


@pytest.fixture
def _isolated_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run CLI commands in a temp directory with an unpaced reconciler.

    Each invocation opens the SQLite store under ``tmp_path/.zonectl``, so
    state carries over between ``cli_runner.invoke`` calls in one test.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ZONECTL_RECONCILER__PACING_SECONDS", "0")
    monkeypatch.setenv("ZONECTL_EVENTS__SYNC", "true")
    for var in ("ZONECTL_PLAYER", "ZONECTL_CONFIG", "ZONECTL_RCON__ENABLED"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def failing_channel() -> Callable[[int], FailingChannel]:
    """Factory for a channel that breaks on the n-th command."""
    return FailingChannel
