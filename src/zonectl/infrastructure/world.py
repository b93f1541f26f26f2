"""World: the dependency container injected into every service.

The World owns the handles to every external collaborator: the
transactional store, the command channel, the map-marker sink, the
position provider, the expiry timer registry, and the plugin event bus.
Nothing in zonectl reaches these through module globals; tests construct a
World with fakes for any of them.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from zonectl.infrastructure.channel import CommandChannel, RecordingChannel
from zonectl.infrastructure.kv import KvStore, MemoryKvStore
from zonectl.infrastructure.markers import LoggingMarkerSink, MarkerSink
from zonectl.infrastructure.positions import PositionProvider, StorePositionProvider
from zonectl.infrastructure.timers import TimerRegistry, TimerScheduler

if TYPE_CHECKING:
    from zonectl.config.settings import ZonectlSettings
    from zonectl.plugins.event_bus import EventBus

logger = logging.getLogger(__name__)


def open_store(settings: ZonectlSettings) -> KvStore:
    """Build the store named by ``[store] backend``."""
    if settings.store.backend == "memory":
        return MemoryKvStore()

    from zonectl.infrastructure.database.engine import init_database
    from zonectl.infrastructure.database.kv_store import SqlKvStore

    return SqlKvStore(init_database(settings.db_path))


def open_channel(settings: ZonectlSettings) -> CommandChannel:
    """RCON when enabled and not a dry run; otherwise a recording channel."""
    if settings.dry_run or not settings.rcon.enabled:
        return RecordingChannel()

    from zonectl.infrastructure.rcon import RconChannel

    rcon = settings.rcon
    return RconChannel(rcon.host, rcon.port, rcon.password, timeout=rcon.timeout)


class World:
    """Collaborator handles plus the clock and sleep used for timing.

    ``clock`` returns epoch seconds (pending-deletion timestamps must survive
    a restart); ``sleep`` is what the reconciler's pacer blocks on.
    """

    def __init__(
        self,
        settings: ZonectlSettings,
        *,
        store: KvStore | None = None,
        channel: CommandChannel | None = None,
        markers: MarkerSink | None = None,
        positions: PositionProvider | None = None,
        timers: TimerScheduler | None = None,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._settings = settings
        self._store = store if store is not None else open_store(settings)
        self._channel = channel if channel is not None else open_channel(settings)
        self._markers = markers if markers is not None else LoggingMarkerSink()
        self._positions = (
            positions if positions is not None else StorePositionProvider(self._store)
        )
        self._timers = timers if timers is not None else TimerRegistry()
        self.clock: Callable[[], float] = clock or time.time
        self.sleep: Callable[[float], None] = sleep or time.sleep
        self._event_bus: EventBus | None = None

    @property
    def settings(self) -> ZonectlSettings:
        return self._settings

    @property
    def store(self) -> KvStore:
        return self._store

    @property
    def channel(self) -> CommandChannel:
        return self._channel

    @property
    def markers(self) -> MarkerSink:
        return self._markers

    @property
    def positions(self) -> PositionProvider:
        return self._positions

    @property
    def timers(self) -> TimerScheduler:
        return self._timers

    @property
    def event_bus(self) -> EventBus | None:
        """The plugin event bus (None if not initialized)."""
        return self._event_bus

    def init_event_bus(self, *, sync: bool | None = None) -> None:
        """Create the plugin manager, load entry points, register built-ins."""
        from zonectl.plugins.builtins.notifier import MemberNotifier
        from zonectl.plugins.event_bus import EventBus
        from zonectl.plugins.manager import PluginManager

        events = self._settings.events
        pm = PluginManager()
        pm.discover_and_load()
        if events.notify_members:
            pm.register_plugin(MemberNotifier(self._channel), name="member-notifier")

        self._event_bus = EventBus(
            pm,
            sync=(events.sync or self._settings.sync) if sync is None else sync,
            max_workers=events.max_workers,
        )

    def close(self) -> None:
        """Cancel timers, drain events, and release the channel and store."""
        self._timers.shutdown()
        if self._event_bus is not None:
            self._event_bus.shutdown()
            self._event_bus = None
        self._channel.close()
        self._store.close()
