"""Hook dispatch via pluggy, inline or on a ThreadPoolExecutor.

INVARIANT: Plugin failures are warnings, never errors. A failing hook is
logged and reported back to the caller; it never undoes the zone change
that triggered it.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from zonectl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class EventBus:
    """Dispatches lifecycle hooks to registered plugins.

    Parameters:
        plugin_manager: Loaded PluginManager for hook dispatch.
        sync: Dispatch inline (``--sync``, tests) instead of on the pool.
        max_workers: ThreadPoolExecutor worker count.
    """

    def __init__(
        self,
        plugin_manager: PluginManager,
        *,
        sync: bool = False,
        max_workers: int = 2,
    ) -> None:
        self._pm = plugin_manager
        self._sync = sync
        self._executor: ThreadPoolExecutor | None = (
            None if sync else ThreadPoolExecutor(max_workers=max_workers)
        )
        self._futures: list[Future[bool]] = []

    @property
    def plugin_manager(self) -> PluginManager:
        return self._pm

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> bool:
        """Dispatch *hook_name* with *payload*.

        Returns False only when a synchronous dispatch failed. Asynchronous
        failures surface in the log and in :meth:`drain`.
        """
        if self._sync:
            return self._execute_hook(hook_name, payload)
        assert self._executor is not None
        self._futures.append(self._executor.submit(self._execute_hook, hook_name, payload))
        return True

    def drain(self, timeout: float = 30) -> int:
        """Wait for in-flight dispatches. Returns how many of them failed."""
        failed = 0
        for future in self._futures:
            if not future.result(timeout=timeout):
                failed += 1
        self._futures.clear()
        return failed

    def shutdown(self) -> None:
        """Drain and stop the worker pool."""
        self.drain()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _execute_hook(self, hook_name: str, payload: dict[str, Any]) -> bool:
        hook_fn = getattr(self._pm.hook, hook_name, None)
        if hook_fn is None:
            return True
        try:
            hook_fn(**payload)
        except Exception:
            logger.warning("Hook %s failed", hook_name, exc_info=True)
            return False
        return True
