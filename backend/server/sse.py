"""
Server-Sent Events for workspace changes.

The chart is shown before the advisory result exists, so the browser
learns about later changes (suggestions applied, assistant replies) from
this stream. Every event carries the dataset generation it belongs to.
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any, AsyncIterator, Optional

from pydantic import BaseModel

# Comment line sent when the stream has been idle this many seconds
KEEPALIVE_SECONDS = 15.0


class WorkspaceEvent(str, Enum):
    dataset_loaded = "dataset_loaded"
    dataset_cleared = "dataset_cleared"
    config_updated = "config_updated"
    analysis_ready = "analysis_ready"
    analysis_unavailable = "analysis_unavailable"
    chat_turn = "chat_turn"


class SSEEvent(BaseModel):
    event: WorkspaceEvent
    generation: int = 0
    data: Any = None
    id: Optional[str] = None

    def format(self) -> str:
        """Serialize to SSE wire format; data is one JSON line."""
        body = {"generation": self.generation, "data": self.data}
        lines = []
        if self.id:
            lines.append(f"id: {self.id}")
        lines.append(f"event: {self.event.value}")
        lines.append("data: " + json.dumps(body, default=str, ensure_ascii=False))
        return "\n".join(lines) + "\n\n"


class SSEChannel:
    """
    Single-consumer queue of workspace events.

    The session emits; the /api/events endpoint iterates until close().
    Events emitted after close() are dropped.
    """

    def __init__(self, keepalive: float = KEEPALIVE_SECONDS) -> None:
        self._queue: asyncio.Queue[Optional[SSEEvent]] = asyncio.Queue()
        self._closed = False
        self._seq = 0
        self._keepalive = keepalive

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, event: WorkspaceEvent, data: Any = None, generation: int = 0) -> None:
        if self._closed:
            return
        self._seq += 1
        await self._queue.put(SSEEvent(
            event=event,
            generation=generation,
            data=data,
            id=f"{generation}-{self._seq}",
        ))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(None)

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=self._keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            if event is None:
                break
            yield event.format()
