# tests/test_sync_channel.py

from __future__ import annotations

import asyncio

import pytest

from tasksync.core.errors import RemoteError
from tasksync.tasks.sync_channel import SyncChannel
from tasksync.tasks.task_models import ChangeKind, ChangeSignal

from .fakes import FakePushSource, wait_for


class CountingRefresh:
    """Refresh callback that records calls and can be held open by a gate."""

    def __init__(self) -> None:
        self.calls = 0
        self.started = asyncio.Event()
        self.gate: asyncio.Event | None = None
        self.fail_next: list[Exception] = []
        self.cancelled = False

    async def __call__(self) -> None:
        self.calls += 1
        self.started.set()
        try:
            if self.gate is not None:
                await self.gate.wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.fail_next:
            raise self.fail_next.pop(0)


def _channel(refresh: CountingRefresh, source: FakePushSource | None = None) -> SyncChannel:
    return SyncChannel(
        refresh,
        source,
        debounce_seconds=0,
        reconnect_initial_seconds=0.05,
        reconnect_max_seconds=0.2,
    )


@pytest.mark.asyncio
async def test_burst_of_signals_collapses_into_one_refresh() -> None:
    refresh = CountingRefresh()
    channel = _channel(refresh)
    channel.open()
    try:
        for _ in range(5):
            channel.notify(ChangeSignal(ChangeKind.UPDATED))

        await wait_for(lambda: refresh.calls == 1)
        await asyncio.sleep(0.05)

        assert refresh.calls == 1
        assert channel.stats.signals == 5
        assert channel.stats.coalesced == 4
        assert not channel.refresh_pending
    finally:
        await channel.close()


@pytest.mark.asyncio
async def test_signals_during_refresh_schedule_exactly_one_follow_up() -> None:
    refresh = CountingRefresh()
    refresh.gate = asyncio.Event()
    channel = _channel(refresh)
    channel.open()
    try:
        channel.notify(ChangeSignal(ChangeKind.UPDATED))
        await refresh.started.wait()
        assert channel.refresh_pending

        channel.notify(ChangeSignal(ChangeKind.CREATED))
        channel.notify(ChangeSignal(ChangeKind.CREATED))
        refresh.gate.set()

        await wait_for(lambda: refresh.calls == 2)
        await asyncio.sleep(0.05)
        assert refresh.calls == 2
        assert channel.stats.refreshes == 2
    finally:
        await channel.close()


@pytest.mark.asyncio
async def test_closed_channel_ignores_signals_and_does_not_replay() -> None:
    refresh = CountingRefresh()
    channel = _channel(refresh)

    assert channel.request_refresh() is False

    channel.open()
    channel.notify(ChangeSignal(ChangeKind.DELETED))
    await channel.close()
    assert not channel.is_open

    channel.open()
    try:
        await asyncio.sleep(0.05)
        assert refresh.calls == 0
    finally:
        await channel.close()


@pytest.mark.asyncio
async def test_close_cancels_refresh_in_flight() -> None:
    refresh = CountingRefresh()
    refresh.gate = asyncio.Event()
    channel = _channel(refresh)
    channel.open()

    channel.request_refresh()
    await refresh.started.wait()
    await channel.close()

    assert refresh.cancelled
    assert channel.stats.refreshes == 0
    assert not channel.refresh_pending


@pytest.mark.asyncio
async def test_failed_refresh_keeps_the_loop_running() -> None:
    refresh = CountingRefresh()
    refresh.fail_next = [RemoteError("server down"), RuntimeError("bug")]
    channel = _channel(refresh)
    channel.open()
    try:
        channel.request_refresh()
        await wait_for(lambda: channel.stats.failed_refreshes == 1)
        channel.request_refresh()
        await wait_for(lambda: channel.stats.failed_refreshes == 2)
        channel.request_refresh()
        await wait_for(lambda: channel.stats.refreshes == 1)
        assert refresh.calls == 3
    finally:
        await channel.close()


@pytest.mark.asyncio
async def test_push_signals_trigger_refresh() -> None:
    refresh = CountingRefresh()
    source = FakePushSource()
    channel = _channel(refresh, source)
    channel.open()
    try:
        await wait_for(lambda: channel.is_live)
        source.emit(ChangeKind.CREATED)
        await wait_for(lambda: refresh.calls == 1)
    finally:
        await channel.close()

    assert not channel.is_live
    assert source.disconnects == 1


@pytest.mark.asyncio
async def test_reconnect_requests_a_catch_up_refresh() -> None:
    refresh = CountingRefresh()
    source = FakePushSource()
    channel = _channel(refresh, source)
    channel.open()
    try:
        await wait_for(lambda: channel.is_live)
        source.drop()
        await wait_for(lambda: source.connects == 2 and channel.is_live)
        await wait_for(lambda: refresh.calls == 1)

        assert channel.stats.reconnects == 1
        assert channel.stats.signals == 0
    finally:
        await channel.close()


@pytest.mark.asyncio
async def test_initial_connect_is_retried_with_backoff() -> None:
    refresh = CountingRefresh()
    source = FakePushSource()
    source.fail_connects = 2
    channel = _channel(refresh, source)
    channel.open()
    try:
        await wait_for(lambda: channel.is_live)

        assert source.connects == 3
        # First successful connection is not a reconnect.
        assert channel.stats.reconnects == 0
        assert refresh.calls == 0
    finally:
        await channel.close()


@pytest.mark.asyncio
async def test_channel_without_push_source_is_never_live() -> None:
    refresh = CountingRefresh()
    channel = _channel(refresh)
    channel.open()
    try:
        assert channel.is_open
        assert not channel.is_live
    finally:
        await channel.close()


@pytest.mark.asyncio
async def test_close_from_inside_refresh_cancels_the_reconciler() -> None:
    source = FakePushSource()
    channel: SyncChannel

    async def refresh_then_close() -> None:
        await channel.close()

    channel = SyncChannel(refresh_then_close, source, debounce_seconds=0, reconnect_initial_seconds=0.05)
    channel.open()
    await wait_for(lambda: channel.is_live)
    reconciler = channel._reconciler
    listener = channel._listener

    channel.request_refresh()

    await wait_for(reconciler.done)
    assert reconciler.cancelled()
    assert listener.done()
    assert not channel.is_open


@pytest.mark.asyncio
async def test_listen_loop_without_source_returns() -> None:
    channel = _channel(CountingRefresh())
    await asyncio.wait_for(channel._listen_loop(), timeout=1.0)
    assert not channel.is_live
