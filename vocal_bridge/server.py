"""
Vocal Bridge MCP Server
=======================

Architecture:
- Transport: MCP streamable HTTP (POST/GET/DELETE /mcp) plus the legacy
  SSE pair (GET /sse, POST /messages)
- Sessions: vocal_bridge.mcp.SessionRegistry, one ProtocolEngine per client
- Tools: Railway, Supabase, GitHub, workspace filesystem, memory graph
- Memory: SQLite entity/relation store (WAL mode)
- Platform calls: shared httpx.AsyncClient, caller-supplied tokens

Usage:
    vocal-bridge serve            # Start server on 0.0.0.0:8080 (or $PORT)
    vocal-bridge serve --port 8000
    python -m vocal_bridge.server --config vocal_bridge.yaml
"""

import argparse
import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import httpx
import portalocker
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vocal_bridge.core.config import BridgeConfig
from vocal_bridge.mcp.engine import ProtocolEngine
from vocal_bridge.mcp.http import mcp_router
from vocal_bridge.mcp.protocol import SERVER_NAME, SESSION_HEADER
from vocal_bridge.mcp.sessions import SessionRegistry
from vocal_bridge.mcp.tools import build_registry
from vocal_bridge.store.entity_store import EntityRelationStore
from vocal_bridge.version import __version__
from vocal_bridge.workspace.filesystem import Workspace

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_handlers = [logging.StreamHandler()]
_log_file = os.environ.get("VOCAL_BRIDGE_LOG_FILE")
if _log_file:
    _handlers.append(logging.FileHandler(os.path.abspath(_log_file), mode="a"))
logging.basicConfig(
    level=os.environ.get("VOCAL_BRIDGE_LOG_LEVEL", "INFO").upper(),
    format=_LOG_FORMAT,
    handlers=_handlers,
)
logger = logging.getLogger("VocalBridge")

# --- Global State ---
_SERVER_INSTANCE_LOCK_HANDLE: Optional[portalocker.Lock] = None
_SERVER_INSTANCE_LOCK_PATH: Optional[Path] = None


def _server_instance_lock_timeout_seconds() -> float:
    raw = os.environ.get("VOCAL_BRIDGE_INSTANCE_LOCK_TIMEOUT_SEC", "0.25").strip()
    try:
        return max(0.0, float(raw))
    except ValueError:
        logger.warning(
            "Invalid VOCAL_BRIDGE_INSTANCE_LOCK_TIMEOUT_SEC='%s'; using default 0.25s",
            raw,
        )
        return 0.25


def _acquire_server_instance_lock(config: BridgeConfig) -> None:
    """
    Acquire an exclusive process-wide server lease for the configured data dir.

    Two servers on one data dir would each hold their own in-memory session
    table while sharing the SQLite memory store.
    """
    global _SERVER_INSTANCE_LOCK_HANDLE, _SERVER_INSTANCE_LOCK_PATH

    data_dir = Path(config.data_dir)
    lock_path = data_dir / ".vocal_bridge_server.instance.lock"
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    lock_handle = portalocker.Lock(
        str(lock_path),
        mode="a",
        timeout=_server_instance_lock_timeout_seconds(),
        flags=portalocker.LOCK_EX | portalocker.LOCK_NB,
        fail_when_locked=True,
    )

    try:
        lock_handle.acquire()
    except portalocker.exceptions.LockException as exc:
        raise RuntimeError(
            "Vocal Bridge server instance lock is already held for data directory "
            f"'{data_dir}'. Stop the running server before starting another one."
        ) from exc

    _SERVER_INSTANCE_LOCK_HANDLE = lock_handle
    _SERVER_INSTANCE_LOCK_PATH = lock_path
    logger.info("Acquired server instance lock: %s", lock_path)


def _release_server_instance_lock() -> None:
    """Release the process-wide server lease if held."""
    global _SERVER_INSTANCE_LOCK_HANDLE, _SERVER_INSTANCE_LOCK_PATH
    lock_handle = _SERVER_INSTANCE_LOCK_HANDLE
    lock_path = _SERVER_INSTANCE_LOCK_PATH
    _SERVER_INSTANCE_LOCK_HANDLE = None
    _SERVER_INSTANCE_LOCK_PATH = None
    if lock_handle is None:
        return

    try:
        lock_handle.release()
    except (OSError, portalocker.exceptions.LockException) as exc:
        logger.warning("Failed to release server instance lock %s: %s", lock_path, exc)
    if lock_path is not None:
        logger.info("Released server instance lock: %s", lock_path)


def configure_logging(config: BridgeConfig) -> None:
    """Apply the configured level and log file on top of the import-time setup."""
    root = logging.getLogger()
    root.setLevel(config.server.log_level.upper())
    if not config.server.log_file:
        return
    path = os.path.abspath(config.server.log_file)
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == path:
            return
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, mode="a")
    file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root.addHandler(file_handler)
    logger.info("Logging to %s", path)


def load_config(path: Optional[str] = None) -> BridgeConfig:
    """YAML file when one is named (argument or VOCAL_BRIDGE_CONFIG), else environment."""
    path = path or os.environ.get("VOCAL_BRIDGE_CONFIG")
    if path:
        return BridgeConfig.from_yaml(path)
    return BridgeConfig.from_env()


def create_app(
    config: Optional[BridgeConfig] = None,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    acquire_lock: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    http_client, when given, is used for every platform call and is not
    closed on shutdown. acquire_lock=False skips the data-dir lease (tests
    running several apps side by side).
    """
    config = config or load_config()
    configure_logging(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Vocal Bridge MCP server starting...")
        config.ensure_directories()
        if acquire_lock:
            _acquire_server_instance_lock(config)

        store: Optional[EntityRelationStore] = None
        sessions: Optional[SessionRegistry] = None
        client = http_client
        owns_client = client is None
        try:
            store = EntityRelationStore(config.store.db_path)
            workspace = Workspace(
                config.workspace.root,
                max_read_bytes=config.workspace.max_read_bytes,
                tree_max_depth=config.workspace.tree_max_depth,
            )
            if owns_client:
                client = httpx.AsyncClient(timeout=config.platforms.request_timeout_seconds)

            registry = build_registry(
                store=store,
                workspace=workspace,
                platforms=config.platforms,
                http_client=client,
            )

            def engine_factory(session_id: str) -> ProtocolEngine:
                return ProtocolEngine(
                    registry,
                    session_id=session_id,
                    tool_response_max_chars=config.tool_response_max_chars,
                    slow_call_ms=config.slow_tool_call_ms,
                )

            sessions = SessionRegistry(
                engine_factory,
                idle_ttl_seconds=config.sessions.idle_ttl_seconds,
                max_sessions=config.sessions.max_sessions,
                sweep_interval_seconds=config.sessions.sweep_interval_seconds,
                keepalive_seconds=config.sessions.keepalive_seconds,
            )
            await sessions.start()

            app.state.config = config
            app.state.store = store
            app.state.workspace = workspace
            app.state.registry = registry
            app.state.sessions = sessions
            logger.info(
                "Vocal Bridge ready: %d tools, db=%s, workspace=%s",
                len(registry),
                config.store.db_path,
                config.workspace.root,
            )
            yield
        finally:
            logger.info("Shutting down Vocal Bridge MCP server...")
            if sessions is not None:
                await sessions.stop()
                closed = await sessions.close_all()
                logger.info("Closed %d sessions", closed)
            app.state.sessions = None
            if owns_client and client is not None:
                await client.aclose()
            if store is not None:
                store.close()
            if acquire_lock:
                _release_server_instance_lock()
            logger.info("Vocal Bridge MCP server stopped.")

    app = FastAPI(
        title="Vocal Bridge MCP Server",
        description="MCP server bridging voice assistants to Railway, Supabase, GitHub, "
        "a sandboxed workspace and a persistent memory graph",
        version=__version__,
        lifespan=lifespan,
    )

    # Clients read the session id from a response header, so it must be exposed.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[SESSION_HEADER],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        sessions = getattr(app.state, "sessions", None)
        if sessions is None:
            return {"status": "initializing", "server": SERVER_NAME, "version": __version__}
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "sessions": sessions.stats(),
            "workspaceDir": config.workspace.root,
            "dbPath": config.store.db_path,
        }

    app.include_router(mcp_router)
    return app


# --- Main ---

def main(argv=None):
    parser = argparse.ArgumentParser(description="Vocal Bridge MCP Server")
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable hot reload")
    args = parser.parse_args(argv)

    if args.config:
        os.environ["VOCAL_BRIDGE_CONFIG"] = args.config
    config = load_config()
    host = args.host or config.server.host
    port = args.port or config.server.port

    logger.info("Starting Vocal Bridge MCP server on %s:%d", host, port)

    try:
        uvicorn.run(
            "vocal_bridge.server:create_app",
            factory=True,
            host=host,
            port=port,
            reload=args.reload,
            log_level=config.server.log_level.lower(),
        )
    except OSError as e:
        if e.errno in (98, 10048):
            logger.error(
                "Failed to start server on port %d: port is already in use. "
                "Another Vocal Bridge instance may be running.",
                port,
            )
            sys.exit(1)
        raise


if __name__ == "__main__":
    main()
