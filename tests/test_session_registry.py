"""Tests for vocal_bridge.mcp.sessions — session ownership and lifecycle policy."""

import asyncio

import pytest

from vocal_bridge.mcp.engine import ProtocolEngine
from vocal_bridge.mcp.registry import ToolRegistry
from vocal_bridge.mcp.sessions import SessionRegistry


def _sessions(**kwargs) -> SessionRegistry:
    tools = ToolRegistry().freeze()
    return SessionRegistry(lambda sid: ProtocolEngine(tools, session_id=sid), **kwargs)


class TestResolve:
    @pytest.mark.asyncio
    async def test_missing_id_mints_new_session(self):
        sessions = _sessions()
        first = await sessions.resolve(None)
        second = await sessions.resolve(None)
        assert first.id != second.id
        assert len(sessions) == 2

    @pytest.mark.asyncio
    async def test_known_id_returns_same_engine(self):
        sessions = _sessions()
        session = await sessions.resolve()
        again = await sessions.resolve(session.id)
        assert again is session
        assert again.engine is session.engine

    @pytest.mark.asyncio
    async def test_unknown_id_gets_fresh_server_minted_id(self):
        sessions = _sessions()
        session = await sessions.resolve("client-chosen-id")
        assert session.id != "client-chosen-id"
        assert "client-chosen-id" not in sessions

    @pytest.mark.asyncio
    async def test_stale_id_reuses_one_replacement(self):
        sessions = _sessions()
        first = await sessions.resolve("stale")
        second = await sessions.resolve("stale")
        assert first is second
        assert len(sessions) == 1

    @pytest.mark.asyncio
    async def test_concurrent_resolves_produce_unique_sessions(self):
        sessions = _sessions()
        created = await asyncio.gather(*(sessions.resolve() for _ in range(50)))
        assert len({s.id for s in created}) == 50
        assert len(sessions) == 50

    @pytest.mark.asyncio
    async def test_concurrent_resolves_of_same_id_share_session(self):
        sessions = _sessions()
        session = await sessions.resolve()
        resolved = await asyncio.gather(*(sessions.resolve(session.id) for _ in range(20)))
        assert all(s is session for s in resolved)
        assert len(sessions) == 1


class TestTermination:
    @pytest.mark.asyncio
    async def test_terminate_closes_engine_and_transport(self):
        sessions = _sessions()
        session = await sessions.resolve()

        assert await sessions.terminate(session.id) is True
        assert session.engine.closed
        assert session.transport.closed
        assert sessions.get(session.id) is None
        assert await sessions.terminate(session.id) is False

    @pytest.mark.asyncio
    async def test_terminated_id_is_replaced_on_next_request(self):
        sessions = _sessions()
        session = await sessions.resolve()
        await sessions.terminate(session.id)

        replacement = await sessions.resolve(session.id)
        assert replacement.id != session.id
        assert not replacement.engine.closed

    @pytest.mark.asyncio
    async def test_transport_close_removes_session(self):
        sessions = _sessions()
        session = await sessions.resolve()
        assert await sessions.on_transport_closed(session.id) is True
        assert session.id not in sessions

    @pytest.mark.asyncio
    async def test_close_all(self):
        sessions = _sessions()
        for _ in range(3):
            await sessions.resolve()
        assert await sessions.close_all() == 3
        assert len(sessions) == 0


class TestLifecyclePolicy:
    @pytest.mark.asyncio
    async def test_sweep_removes_idle_sessions(self):
        sessions = _sessions(idle_ttl_seconds=10)
        idle = await sessions.resolve()
        fresh = await sessions.resolve()
        idle.last_seen -= 60

        assert await sessions.sweep() == 1
        assert idle.id not in sessions
        assert fresh.id in sessions

    @pytest.mark.asyncio
    async def test_sweep_keeps_sessions_with_open_streams(self):
        sessions = _sessions(idle_ttl_seconds=10)
        session = await sessions.resolve()
        session.last_seen -= 60
        session.transport.open_streams = 1

        assert await sessions.sweep() == 0
        assert session.id in sessions

    @pytest.mark.asyncio
    async def test_limit_evicts_least_recently_seen(self):
        sessions = _sessions(max_sessions=2)
        oldest = await sessions.resolve()
        newer = await sessions.resolve()
        oldest.last_seen -= 100

        third = await sessions.resolve()
        assert oldest.id not in sessions
        assert newer.id in sessions
        assert third.id in sessions
        assert oldest.engine.closed
        assert sessions.stats()["evicted_total"] == 1

    @pytest.mark.asyncio
    async def test_stats(self):
        sessions = _sessions()
        await sessions.resolve()
        stats = sessions.stats()
        assert stats["live"] == 1
        assert stats["streaming"] == 0
        assert stats["created_total"] == 1

    @pytest.mark.asyncio
    async def test_sweeper_start_stop(self):
        sessions = _sessions(sweep_interval_seconds=0.01)
        assert await sessions.start() is True
        assert await sessions.start() is False
        assert sessions.sweeper_running
        assert await sessions.stop() is True
        assert not sessions.sweeper_running
        assert await sessions.stop() is False
