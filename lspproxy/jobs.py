"""A queue of callbacks that run against the editor state on the main loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Union

logger = logging.getLogger(__name__)

Callback = Callable[[Any], None]


class Jobs:
    """Holds callbacks sent from background tasks until the main loop runs them."""

    CAPACITY = 1024

    def __init__(self) -> None:
        self._callbacks: asyncio.Queue[Callback] = asyncio.Queue(maxsize=self.CAPACITY)

    async def dispatch(self, job: Callback) -> None:
        """Queue a callback, waiting while the queue is full."""
        await self._callbacks.put(job)

    async def next_callback(self) -> Callback:
        """Wait for and return the next queued callback."""
        return await self._callbacks.get()

    def handle_callback(
        self, editor: Any, call: Union[None, Callback, BaseException]
    ) -> None:
        """Run a callback against the editor; a failed job is only logged."""
        if call is None:
            return
        if isinstance(call, BaseException):
            logger.error("Async job failed: %s", call)
            return
        call(editor)

    def pending(self) -> int:
        return self._callbacks.qsize()