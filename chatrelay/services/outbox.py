# chatrelay/services/outbox.py

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

Frame = Tuple[str, Any]


class Outbox(Protocol):
    """
    Outbound side of one client connection.

    ``deliver`` is called from inside the room critical sections, so it must
    never block or perform I/O: implementations only enqueue.
    """

    def deliver(self, event: str, data: Any) -> None: ...


# ============================================================================
# QUEUE-BACKED OUTBOX
# ============================================================================

class QueueOutbox:
    """
    Bounded asyncio queue drained by a single writer task.

    Frames are written in the exact order they were delivered, which keeps
    the per-room ordering established under the room lock intact all the way
    to the socket. A consumer that falls ``maxsize`` frames behind is marked
    overflowed; the writer stops and the transport closes the connection.

    Must be used from the event loop thread that owns the queue.
    """

    def __init__(self, maxsize: int = 1000, label: str = "") -> None:
        self._queue: asyncio.Queue[Optional[Frame]] = asyncio.Queue(maxsize=maxsize)
        self.label = label
        self.overflowed = False
        self.closed = False

    def deliver(self, event: str, data: Any) -> None:
        if self.closed or self.overflowed:
            return
        try:
            self._queue.put_nowait((event, data))
        except asyncio.QueueFull:
            self.overflowed = True
            logger.warning("Outbox %s overflowed, dropping connection", self.label)

    def close(self) -> None:
        """Stop the writer once it reaches this point in the queue."""
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # The writer checks ``closed`` after every frame.
            pass

    def pending(self) -> int:
        return self._queue.qsize()

    async def drain(self, send: Callable[[dict], Awaitable[None]]) -> None:
        """
        Forward frames to ``send`` until closed or overflowed.

        Args:
            send: coroutine taking the JSON frame, e.g. ``websocket.send_json``
        """
        while not self.overflowed:
            frame = await self._queue.get()
            if frame is None or self.overflowed:
                break
            event, data = frame
            await send({"event": event, "data": data})
            if self.closed and self._queue.empty():
                break
