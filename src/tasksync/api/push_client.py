# src/tasksync/api/push_client.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable

import socketio

from ..tasks.task_models import ChangeKind, ChangeSignal

logger = logging.getLogger(__name__)

# Server-side event names; their payloads are ignored.
EVENT_KINDS: dict[str, ChangeKind] = {
    "taskCreated": ChangeKind.CREATED,
    "taskUpdated": ChangeKind.UPDATED,
    "taskDeleted": ChangeKind.DELETED,
}

_DISCONNECTED = None


class SocketIOPushSource:
    """
    Socket.IO push source.

    The library's own reconnection is disabled: SyncChannel owns the backoff and
    calls connect() again after a drop. Signals are buffered in a small queue;
    when it is full further signals are dropped (one pending signal already
    guarantees a refresh).
    """

    def __init__(
            self,
            url: str,
            *,
            credential: Callable[[], str | None] | None = None,
            buffer_size: int = 64,
    ) -> None:
        self._url = url
        self._credential = credential
        self._buffer_size = max(1, int(buffer_size))
        self._sio: socketio.AsyncClient | None = None
        self._queue: asyncio.Queue[ChangeSignal | None] | None = None

    async def connect(self) -> None:
        await self.disconnect()

        queue: asyncio.Queue[ChangeSignal | None] = asyncio.Queue(maxsize=self._buffer_size)
        sio = socketio.AsyncClient(reconnection=False)

        for event, kind in EVENT_KINDS.items():
            sio.on(event, handler=_make_handler(queue, ChangeSignal(kind)))
        sio.on("disconnect", handler=_make_handler(queue, _DISCONNECTED))

        token = self._credential() if self._credential is not None else None
        auth = {"token": token} if token else None

        await sio.connect(self._url, auth=auth)
        logger.info("Push channel connected to %s", self._url)
        self._sio = sio
        self._queue = queue

    async def signals(self) -> AsyncIterator[ChangeSignal]:
        queue = self._queue
        if queue is None:
            raise ConnectionError("Push channel is not connected")
        while True:
            item = await queue.get()
            if item is _DISCONNECTED:
                return
            yield item

    async def disconnect(self) -> None:
        sio, self._sio = self._sio, None
        self._queue = None
        if sio is not None and sio.connected:
            await sio.disconnect()


def _make_handler(queue: asyncio.Queue[ChangeSignal | None], item: ChangeSignal | None):
    def handler(*_args) -> None:
        if item is _DISCONNECTED:
            # The end marker must get through; pending signals are moot after a drop.
            while not queue.empty():
                queue.get_nowait()
        try:
            queue.put_nowait(item)
        except asyncio.QueueFull:
            logger.debug("Push buffer full; dropping %s", item)

    return handler
