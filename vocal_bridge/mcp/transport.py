"""
Server-push channel for one session.

POST /mcp answers inline; this transport carries messages the server pushes
outside a request: responses for the legacy SSE transport, and keepalive
comments for clients holding GET /mcp open.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

from vocal_bridge.core.errors import SessionClosed

logger = logging.getLogger("VocalBridge.mcp.transport")

KEEPALIVE_COMMENT = ": keepalive\n\n"


def format_sse(data: str, event: Optional[str] = None) -> str:
    """Encode one Server-Sent Events frame."""
    lines = []
    if event:
        lines.append(f"event: {event}")
    for chunk in data.splitlines() or [""]:
        lines.append(f"data: {chunk}")
    return "\n".join(lines) + "\n\n"


class SessionTransport:
    def __init__(self, session_id: str, keepalive_seconds: float = 30.0):
        self.session_id = session_id
        self.keepalive_seconds = keepalive_seconds
        self._queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
        self._closed = asyncio.Event()
        self.open_streams = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def has_open_stream(self) -> bool:
        return self.open_streams > 0

    async def send(self, message: Dict[str, Any]) -> None:
        if self.closed:
            raise SessionClosed(f"Session {self.session_id} is closed")
        await self._queue.put(message)

    def close(self) -> None:
        if self.closed:
            return
        self._closed.set()
        # Wake any stream blocked on the queue.
        self._queue.put_nowait(None)

    async def events(self, endpoint: Optional[str] = None) -> AsyncIterator[str]:
        """
        Yield SSE frames until the transport is closed.

        When endpoint is given the first frame is the legacy 'endpoint' event
        telling the client where to POST its messages.
        """
        self.open_streams += 1
        try:
            if endpoint is not None:
                yield format_sse(endpoint, event="endpoint")
            while not self.closed:
                try:
                    message = await asyncio.wait_for(self._queue.get(), timeout=self.keepalive_seconds)
                except asyncio.TimeoutError:
                    yield KEEPALIVE_COMMENT
                    continue
                if message is None:
                    break
                yield format_sse(json.dumps(message), event="message")
        finally:
            self.open_streams -= 1
