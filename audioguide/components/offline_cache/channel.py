"""
CacheWorkerChannel - page-to-worker message channel.

The page never calls the manager's lifecycle methods directly; it posts
messages and awaits the reply. Messages are handled one at a time, in
the order they were posted, by a single consumer task.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from audioguide.core.ports.network import FetchRequest, FetchResponse

from ._impl import CacheLifecycleManager
from .models import MessageType, WorkerMessage

logger = logging.getLogger(__name__)

_Envelope = tuple[WorkerMessage, "asyncio.Future[dict[str, Any]]"]


class CacheWorkerChannel:
    """Single-consumer message queue in front of a CacheLifecycleManager."""

    def __init__(self, manager: CacheLifecycleManager) -> None:
        self._manager = manager
        self._queue: asyncio.Queue[_Envelope | None] | None = None
        self._consumer: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._consumer = asyncio.create_task(self._consume(self._queue))
        logger.debug("Cache worker channel started")

    async def close(self) -> None:
        """Drain pending messages, then stop the consumer."""
        if self._queue is None or self._consumer is None:
            return
        await self._queue.put(None)
        await self._consumer
        self._queue = None
        self._consumer = None
        logger.debug("Cache worker channel closed")

    async def __aenter__(self) -> CacheWorkerChannel:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def post(self, message: WorkerMessage | Mapping[str, Any]) -> dict[str, Any]:
        """
        Send a message and wait for the worker's reply.

        Raises:
            RuntimeError: If the channel is not started
            ValueError: If a raw message cannot be parsed
        """
        if self._queue is None or not self.running:
            raise RuntimeError("CacheWorkerChannel is not started")
        if not isinstance(message, WorkerMessage):
            message = WorkerMessage.from_dict(message)
        reply: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        await self._queue.put((message, reply))
        return await reply

    async def fetch(self, request: FetchRequest | str) -> FetchResponse:
        """
        Issue a page request through the worker's fetch interception.

        Fetches bypass the message queue; they never wait behind a
        lifecycle message and never raise.
        """
        return await self._manager.handle_fetch(request)

    # Convenience wrappers mirroring the message types

    async def skip_waiting(self) -> dict[str, Any]:
        return await self.post(WorkerMessage(MessageType.SKIP_WAITING))

    async def invalidate(self, url: str) -> bool:
        reply = await self.post(WorkerMessage(MessageType.CACHE_INVALIDATE, {"url": url}))
        return bool(reply.get("success"))

    async def clear(self) -> bool:
        reply = await self.post(WorkerMessage(MessageType.CACHE_CLEAR))
        return bool(reply.get("success"))

    async def cache_size(self) -> int:
        reply = await self.post(WorkerMessage(MessageType.GET_CACHE_SIZE))
        return int(reply.get("size", 0))

    async def status(self) -> dict[str, Any]:
        return await self.post(WorkerMessage(MessageType.GET_STATUS))

    async def _consume(self, queue: asyncio.Queue[_Envelope | None]) -> None:
        while True:
            envelope = await queue.get()
            try:
                if envelope is None:
                    return
                message, reply = envelope
                try:
                    result = await self._manager.handle_message(message)
                except Exception as exc:
                    logger.exception("Worker message %s failed", message.type.value)
                    if not reply.done():
                        reply.set_exception(exc)
                else:
                    if not reply.done():
                        reply.set_result(result)
            finally:
                queue.task_done()
