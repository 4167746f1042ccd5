# src/tasksync/tasks/sync_channel.py

"""
Live-update channel.

Turns an unordered, at-least-once stream of payload-less ChangeSignals into a
bounded number of refresh() calls:

- one reconciler task owns refresh(); nothing else calls it through the channel,
- a single "refresh requested" flag (asyncio.Event) absorbs bursts:
    * flag already set (refresh scheduled)   -> signal dropped,
    * refresh in flight, flag clear          -> flag set, exactly one follow-up refresh,
- a listener task reads the push source and reconnects with exponential backoff;
  after a reconnect one refresh is requested since signals may have been missed.

close() cancels both tasks, so a refresh in flight never lands after teardown.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..core.errors import TaskSyncError
from ..core.ports import PushSource
from .task_models import ChangeSignal

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[object]]


@dataclass(slots=True)
class SyncStats:
    signals: int = 0
    coalesced: int = 0
    refreshes: int = 0
    failed_refreshes: int = 0
    reconnects: int = 0


class SyncChannel:
    def __init__(
            self,
            refresh: RefreshCallback,
            source: PushSource | None = None,
            *,
            debounce_seconds: float = 0.25,
            reconnect_initial_seconds: float = 1.0,
            reconnect_max_seconds: float = 60.0,
    ) -> None:
        self._refresh = refresh
        self._source = source
        self._debounce_s = max(0.0, float(debounce_seconds))
        self._backoff_initial_s = max(0.05, float(reconnect_initial_seconds))
        self._backoff_max_s = max(self._backoff_initial_s, float(reconnect_max_seconds))

        self._requested = asyncio.Event()
        self._in_flight = False
        self._live = False
        self._reconciler: asyncio.Task[None] | None = None
        self._listener: asyncio.Task[None] | None = None
        self.stats = SyncStats()

    @property
    def is_open(self) -> bool:
        return self._reconciler is not None

    @property
    def is_live(self) -> bool:
        """True while the push source is connected and delivering."""
        return self._live

    @property
    def refresh_pending(self) -> bool:
        return self._requested.is_set() or self._in_flight

    def open(self) -> None:
        if self.is_open:
            return
        # Fresh flag: nothing seen before a previous close() is replayed.
        self._requested = asyncio.Event()
        self._in_flight = False
        self._reconciler = asyncio.create_task(self._reconcile_loop(), name="tasksync-reconciler")
        if self._source is not None:
            self._listener = asyncio.create_task(self._listen_loop(), name="tasksync-push-listener")
        logger.info("Sync channel opened (push=%s)", "on" if self._source is not None else "off")

    async def close(self) -> None:
        tasks = [t for t in (self._listener, self._reconciler) if t is not None]
        self._listener = None
        self._reconciler = None
        self._requested.clear()
        self._in_flight = False
        self._live = False

        current = asyncio.current_task()
        others = [t for t in tasks if t is not current]
        for t in others:
            t.cancel()
        for t in others:
            with contextlib.suppress(asyncio.CancelledError):
                await t
        if current in tasks:
            # Forced sign-out from inside a refresh: cancel ourselves only after the awaits above.
            current.cancel()
        if tasks:
            logger.info("Sync channel closed")

    def notify(self, signal: ChangeSignal) -> None:
        """Handle one push signal. Kind is logged only; all kinds mean "refetch"."""
        self.stats.signals += 1
        logger.debug("Change signal: %s", signal.kind.value)
        self.request_refresh()

    def request_refresh(self) -> bool:
        """Ask for one refresh. Returns False if the request was coalesced into a pending one."""
        if not self.is_open:
            return False
        if self._requested.is_set():
            self.stats.coalesced += 1
            return False
        self._requested.set()
        return True

    async def _reconcile_loop(self) -> None:
        while True:
            await self._requested.wait()
            if self._debounce_s > 0:
                await asyncio.sleep(self._debounce_s)
            # Signals up to here are covered by the refresh below.
            self._requested.clear()

            self._in_flight = True
            try:
                await self._refresh()
                self.stats.refreshes += 1
            except TaskSyncError as e:
                self.stats.failed_refreshes += 1
                logger.warning("Background refresh failed: %s", e.message)
            except Exception:
                self.stats.failed_refreshes += 1
                logger.exception("Background refresh crashed")
            finally:
                self._in_flight = False

    async def _listen_loop(self) -> None:
        source = self._source
        if source is None:
            return
        delay = self._backoff_initial_s
        connected_before = False

        while True:
            try:
                await source.connect()
                self._live = True
                delay = self._backoff_initial_s
                if connected_before:
                    self.stats.reconnects += 1
                    logger.info("Push channel back; refreshing to catch up")
                    self.request_refresh()
                connected_before = True

                async for signal in source.signals():
                    self.notify(signal)
                logger.warning("Push channel closed by the server")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Push channel dropped: %r", e)
            finally:
                self._live = False
                try:
                    await source.disconnect()
                except Exception:
                    logger.debug("Push disconnect failed.", exc_info=True)

            logger.info("Live updates paused; reconnecting in %.1fs", delay)
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._backoff_max_s)
