"""
Vocal Bridge Session Registry
-----------------------------
Owns the live sessions: id -> (ProtocolEngine, SessionTransport).

All mutation goes through resolve(), terminate() and on_transport_closed(),
each a critical section under one asyncio.Lock. Ids are server-minted uuid4
strings; an id the registry does not recognise always gets a fresh session.

Lifecycle policy:
  - sessions idle longer than idle_ttl_seconds are swept by a background task,
    unless a server-push stream is still attached;
  - at max_sessions the least recently seen idle session is evicted to make
    room for a new one;
  - requests racing on the same stale id share one replacement session.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set

from vocal_bridge.mcp.engine import ProtocolEngine
from vocal_bridge.mcp.transport import SessionTransport

logger = logging.getLogger("VocalBridge.Sessions")

EngineFactory = Callable[[str], ProtocolEngine]


@dataclass
class Session:
    id: str
    engine: ProtocolEngine
    transport: SessionTransport
    created_at: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.monotonic)

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def idle_seconds(self, now: Optional[float] = None) -> float:
        return max(0.0, (now if now is not None else time.monotonic()) - self.last_seen)

    def close(self) -> None:
        self.engine.close()
        self.transport.close()


class SessionRegistry:
    def __init__(
        self,
        engine_factory: EngineFactory,
        *,
        idle_ttl_seconds: float = 3600.0,
        max_sessions: int = 1000,
        sweep_interval_seconds: float = 60.0,
        keepalive_seconds: float = 30.0,
    ):
        self._engine_factory = engine_factory
        self.idle_ttl_seconds = idle_ttl_seconds
        self.max_sessions = max(1, max_sessions)
        self.sweep_interval_seconds = sweep_interval_seconds
        self.keepalive_seconds = keepalive_seconds

        self._sessions: Dict[str, Session] = {}
        # stale id -> id of the session minted in its place
        self._replacements: Dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._sweeper: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()
        self._created_total = 0
        self._evicted_total = 0

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        """Lookup without creating. Reads only; safe outside the lock."""
        if not session_id:
            return None
        return self._sessions.get(session_id)

    async def resolve(self, session_id: Optional[str] = None) -> Session:
        """
        Return the live session for session_id, or create a new one.

        The new session gets a freshly minted id; callers echo session.id
        back to the client.
        """
        async with self._lock:
            if session_id:
                existing = self._sessions.get(session_id)
                if existing is not None:
                    existing.touch()
                    return existing
                replacement_id = self._replacements.get(session_id)
                if replacement_id is not None:
                    replacement = self._sessions.get(replacement_id)
                    if replacement is not None:
                        replacement.touch()
                        return replacement
                    del self._replacements[session_id]

            session = self._create_locked()
            if session_id:
                self._replacements[session_id] = session.id
                logger.info(
                    "Unknown session id %s; minted replacement %s",
                    session_id[:8],
                    session.id[:8],
                )
            return session

    async def create(self) -> Session:
        async with self._lock:
            return self._create_locked()

    def _create_locked(self) -> Session:
        if len(self._sessions) >= self.max_sessions:
            self._evict_one_locked()

        session_id = str(uuid.uuid4())
        while session_id in self._sessions:
            session_id = str(uuid.uuid4())
        session = Session(
            id=session_id,
            engine=self._engine_factory(session_id),
            transport=SessionTransport(session_id, keepalive_seconds=self.keepalive_seconds),
        )
        self._sessions[session_id] = session
        self._created_total += 1
        logger.info("Session %s created (%d live)", session_id[:8], len(self._sessions))
        return session

    def _evict_one_locked(self) -> None:
        candidates = [s for s in self._sessions.values() if not s.transport.has_open_stream]
        if not candidates:
            logger.warning(
                "Session limit %d reached and every session holds an open stream; exceeding limit",
                self.max_sessions,
            )
            return
        victim = min(candidates, key=lambda s: s.last_seen)
        self._remove_locked(victim.id)
        self._evicted_total += 1
        logger.info("Session %s evicted (limit %d reached)", victim.id[:8], self.max_sessions)

    def _remove_locked(self, session_id: str) -> Optional[Session]:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        session.close()
        stale = [old for old, new in self._replacements.items() if new == session_id or old == session_id]
        for old in stale:
            del self._replacements[old]
        return session

    async def terminate(self, session_id: Optional[str]) -> bool:
        """Tear down a session. Returns False when it was not live."""
        if not session_id:
            return False
        async with self._lock:
            session = self._remove_locked(session_id)
        if session is None:
            return False
        logger.info("Session %s terminated (%d live)", session_id[:8], len(self._sessions))
        return True

    async def on_transport_closed(self, session_id: str) -> bool:
        """Called when a session's stream disconnects; same effect as terminate()."""
        async with self._lock:
            session = self._remove_locked(session_id)
        if session is None:
            return False
        logger.info("Session %s closed by transport disconnect", session_id[:8])
        return True

    def notify_transport_closed(self, session_id: str) -> None:
        """
        Schedule on_transport_closed() from synchronous or cancelled contexts,
        such as the finally block of a streaming response.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "No running event loop; session %s left for the sweeper", session_id[:8]
            )
            return
        task = loop.create_task(self.on_transport_closed(session_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def sweep(self) -> int:
        """Terminate sessions idle beyond the TTL. Returns how many were removed."""
        now = time.monotonic()
        async with self._lock:
            expired = [
                s.id
                for s in self._sessions.values()
                if not s.transport.has_open_stream and s.idle_seconds(now) > self.idle_ttl_seconds
            ]
            for session_id in expired:
                self._remove_locked(session_id)
        if expired:
            logger.info("Swept %d idle sessions (%d live)", len(expired), len(self._sessions))
        return len(expired)

    async def close_all(self) -> int:
        async with self._lock:
            ids = list(self._sessions)
            for session_id in ids:
                self._remove_locked(session_id)
        return len(ids)

    def stats(self) -> Dict[str, int]:
        return {
            "live": len(self._sessions),
            "streaming": sum(1 for s in self._sessions.values() if s.transport.has_open_stream),
            "created_total": self._created_total,
            "evicted_total": self._evicted_total,
        }

    # ------------------------------------------------------------------
    # Background sweeper
    # ------------------------------------------------------------------

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def start(self) -> bool:
        if self.sweeper_running:
            return False
        self._sweeper = asyncio.create_task(self._sweep_loop(), name="vocal-bridge-session-sweeper")
        logger.info(
            "Session sweeper started (ttl=%.0fs, interval=%.0fs, max=%d)",
            self.idle_ttl_seconds,
            self.sweep_interval_seconds,
            self.max_sessions,
        )
        return True

    async def stop(self) -> bool:
        task = self._sweeper
        self._sweeper = None
        if task is None:
            return False
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Session sweeper stopped")
        return True

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Session sweep failed")
