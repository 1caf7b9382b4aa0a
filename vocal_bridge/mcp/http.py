"""
MCP over HTTP — FastAPI Router
==============================
Binds sessions to the HTTP request/response cycle.

  POST   /mcp                 — JSON-RPC request(s); answered inline
  GET    /mcp                 — SSE push stream for a session, or server info
  DELETE /mcp                 — tear a session down
  GET    /sse                 — legacy SSE transport: opens a session stream
  POST   /messages?sessionId= — legacy SSE transport: message delivery

The session id travels in the Mcp-Session-Id header in both directions.
Runtime objects (SessionRegistry, ToolRegistry) live on app.state and are
installed by the server lifespan.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from vocal_bridge.core.errors import RpcError, SessionClosed
from vocal_bridge.mcp.engine import error_response
from vocal_bridge.mcp.protocol import (
    INVALID_REQUEST,
    PARSE_ERROR,
    SERVER_NAME,
    SESSION_CLOSED,
    SESSION_HEADER,
    SUPPORTED_PROTOCOL_VERSIONS,
)
from vocal_bridge.mcp.registry import ToolRegistry
from vocal_bridge.mcp.sessions import Session, SessionRegistry
from vocal_bridge.version import __version__

logger = logging.getLogger("VocalBridge.mcp.http")

mcp_router = APIRouter(tags=["mcp"])

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# Protocol-plane errors that mean the request itself was unusable.
_BAD_REQUEST_CODES = frozenset({PARSE_ERROR, INVALID_REQUEST})


def _get_sessions(request: Request) -> SessionRegistry:
    """Return the session registry or raise HTTP 503."""
    sessions = getattr(request.app.state, "sessions", None)
    if sessions is None:
        raise HTTPException(status_code=503, detail="Session registry is not initialised")
    return sessions


def _get_registry(request: Request) -> ToolRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Tool registry is not initialised")
    return registry


def _http_status(response: Union[Dict[str, Any], List[Dict[str, Any]]]) -> int:
    """Map a JSON-RPC reply onto an HTTP status code."""
    if isinstance(response, list):
        return 200
    error = response.get("error")
    if not isinstance(error, dict):
        return 200
    code = error.get("code")
    if code in _BAD_REQUEST_CODES:
        return 400
    if code == SESSION_CLOSED:
        return 404
    return 200


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise RpcError(PARSE_ERROR, f"Parse error: {exc}") from exc


async def _stream_session(
    sessions: SessionRegistry,
    session: Session,
    endpoint: Optional[str] = None,
) -> AsyncIterator[str]:
    events = session.transport.events(endpoint=endpoint)
    try:
        async for frame in events:
            yield frame
    finally:
        # Disconnect or server-side close; either way the session is done.
        sessions.notify_transport_closed(session.id)
        await events.aclose()


def server_info(registry: ToolRegistry) -> Dict[str, Any]:
    return {
        "name": SERVER_NAME,
        "version": __version__,
        "protocol": "MCP",
        "protocolVersions": list(SUPPORTED_PROTOCOL_VERSIONS),
        "transports": ["streamable-http", "sse"],
        "endpoints": {
            "mcp": "/mcp",
            "sse": "/sse",
            "messages": "/messages",
            "health": "/health",
        },
        "toolCount": len(registry),
        "tools": registry.groups(),
    }


# ---------------------------------------------------------------------------
# Streamable HTTP transport
# ---------------------------------------------------------------------------


@mcp_router.post("/mcp")
async def mcp_post(request: Request):
    sessions = _get_sessions(request)
    try:
        payload = await _read_json(request)
    except RpcError as exc:
        return JSONResponse(error_response(None, exc), status_code=400)

    session = await sessions.resolve(request.headers.get(SESSION_HEADER))
    headers = {SESSION_HEADER: session.id}

    response = await session.engine.handle_payload(payload)
    if response is None:
        return Response(status_code=202, headers=headers)
    return JSONResponse(response, status_code=_http_status(response), headers=headers)


@mcp_router.get("/mcp")
async def mcp_get(request: Request):
    sessions = _get_sessions(request)
    session_id = request.headers.get(SESSION_HEADER)
    if not session_id:
        return server_info(_get_registry(request))

    session = sessions.get(session_id)
    if session is None:
        return JSONResponse({"error": "Session not found"}, status_code=404)
    session.touch()
    logger.info("SSE stream opened for session %s", session.id[:8])
    return StreamingResponse(
        _stream_session(sessions, session),
        media_type="text/event-stream",
        headers={**_SSE_HEADERS, SESSION_HEADER: session.id},
    )


@mcp_router.delete("/mcp")
async def mcp_delete(request: Request):
    sessions = _get_sessions(request)
    session_id = request.headers.get(SESSION_HEADER)
    if not session_id:
        return JSONResponse({"error": f"Missing {SESSION_HEADER} header"}, status_code=400)
    if await sessions.terminate(session_id):
        return {"success": True}
    return JSONResponse({"error": "Session not found"}, status_code=404)


# ---------------------------------------------------------------------------
# Legacy SSE transport
# ---------------------------------------------------------------------------


@mcp_router.get("/sse")
async def sse_connect(request: Request):
    sessions = _get_sessions(request)
    session = await sessions.create()
    endpoint = f"/messages?sessionId={session.id}"
    logger.info("Legacy SSE session %s connected", session.id[:8])
    return StreamingResponse(
        _stream_session(sessions, session, endpoint=endpoint),
        media_type="text/event-stream",
        headers={**_SSE_HEADERS, SESSION_HEADER: session.id},
    )


@mcp_router.post("/messages")
async def sse_message(request: Request, session_id: str = Query(..., alias="sessionId")):
    sessions = _get_sessions(request)
    session = sessions.get(session_id)
    if session is None:
        return JSONResponse({"error": "Session not found or expired"}, status_code=404)
    if not session.transport.has_open_stream:
        # Replies travel over the SSE stream; without one they would pile up unread.
        return JSONResponse({"error": "No open SSE stream for this session"}, status_code=409)
    session.touch()

    try:
        payload = await _read_json(request)
    except RpcError as exc:
        return JSONResponse(error_response(None, exc), status_code=400)

    response = await session.engine.handle_payload(payload)
    if response is not None:
        try:
            await session.transport.send(response)
        except SessionClosed:
            return JSONResponse({"error": "Session not found or expired"}, status_code=404)
    return JSONResponse({"accepted": True}, status_code=202)
