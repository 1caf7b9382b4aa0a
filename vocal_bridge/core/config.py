"""
Vocal Bridge Configuration
--------------------------
Centralized configuration for the MCP bridge server.
Loads from environment variables and YAML config files.

Hosted platforms inject PORT, WORKSPACE_DIR and DB_PATH; everything else has
a VOCAL_BRIDGE_ prefixed override.
"""

import os
import logging
from pathlib import Path
from typing import Optional, List, Dict, Any

import yaml
from pydantic import BaseModel, Field, model_validator

from vocal_bridge.platform import get_data_dir

logger = logging.getLogger("VocalBridge.Config")

DEFAULT_DATA_DIR = str(get_data_dir())
DEFAULT_PORT = 8080
DEFAULT_MAX_READ_BYTES = 5 * 1024 * 1024


def _parse_optional_int_env(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = int(raw)
        if value <= 0:
            raise ValueError
        return value
    except ValueError:
        logger.warning(
            "Invalid %s value '%s'; expected positive integer. Ignoring.",
            name,
            raw,
        )
        return None


def _parse_optional_float_env(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
        if value <= 0:
            raise ValueError
        return value
    except ValueError:
        logger.warning(
            "Invalid %s value '%s'; expected positive float. Ignoring.",
            name,
            raw,
        )
        return None


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    log_file: Optional[str] = None
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class StoreConfig(BaseModel):
    """Entity-relation store configuration."""
    db_path: Optional[str] = None


class WorkspaceConfig(BaseModel):
    """Sandboxed filesystem tool configuration."""
    root: Optional[str] = None
    max_read_bytes: int = DEFAULT_MAX_READ_BYTES
    tree_max_depth: int = 3


class SessionConfig(BaseModel):
    """Session registry lifecycle policy."""
    idle_ttl_seconds: float = 3600.0
    max_sessions: int = 1000
    sweep_interval_seconds: float = 60.0
    keepalive_seconds: float = 30.0


class PlatformConfig(BaseModel):
    """Outbound platform API endpoints."""
    railway_api_url: str = "https://backboard.railway.app/graphql/v2"
    supabase_api_url: str = "https://api.supabase.com/v1"
    github_api_url: str = "https://api.github.com"
    request_timeout_seconds: float = 30.0


class BridgeConfig(BaseModel):
    """Root configuration for Vocal Bridge."""
    data_dir: str = DEFAULT_DATA_DIR
    tool_response_max_chars: Optional[int] = None
    slow_tool_call_ms: float = 5000.0
    server: ServerConfig = Field(default_factory=ServerConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    sessions: SessionConfig = Field(default_factory=SessionConfig)
    platforms: PlatformConfig = Field(default_factory=PlatformConfig)

    @model_validator(mode="after")
    def _resolve_data_paths(self) -> "BridgeConfig":
        # Paths left unset follow data_dir, so a YAML file only needs data_dir.
        if not self.store.db_path:
            self.store.db_path = os.path.join(self.data_dir, "memory.db")
        if not self.workspace.root:
            self.workspace.root = os.path.join(self.data_dir, "workspace")
        return self

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        """Build configuration from environment variables."""
        data_dir = os.environ.get("VOCAL_BRIDGE_DATA_DIR", DEFAULT_DATA_DIR)

        port = _parse_optional_int_env("PORT") or _parse_optional_int_env("VOCAL_BRIDGE_PORT")
        session_ttl = _parse_optional_float_env("VOCAL_BRIDGE_SESSION_TTL_SECONDS")
        max_sessions = _parse_optional_int_env("VOCAL_BRIDGE_MAX_SESSIONS")
        sweep_interval = _parse_optional_float_env("VOCAL_BRIDGE_SESSION_SWEEP_SECONDS")
        keepalive = _parse_optional_float_env("VOCAL_BRIDGE_SSE_KEEPALIVE_SECONDS")
        request_timeout = _parse_optional_float_env("VOCAL_BRIDGE_PLATFORM_TIMEOUT_SECONDS")
        max_read_bytes = _parse_optional_int_env("VOCAL_BRIDGE_WORKSPACE_MAX_READ_BYTES")
        slow_call_ms = _parse_optional_float_env("VOCAL_BRIDGE_SLOW_TOOL_CALL_MS")

        cors_raw = os.environ.get("VOCAL_BRIDGE_CORS_ORIGINS", "*")
        cors_origins = [part.strip() for part in cors_raw.split(",") if part.strip()] or ["*"]

        return cls(
            data_dir=data_dir,
            tool_response_max_chars=_parse_optional_int_env("VOCAL_BRIDGE_TOOL_RESPONSE_MAX_CHARS"),
            slow_tool_call_ms=slow_call_ms or 5000.0,
            server=ServerConfig(
                host=os.environ.get("VOCAL_BRIDGE_HOST", "0.0.0.0"),
                port=port or DEFAULT_PORT,
                log_level=os.environ.get("VOCAL_BRIDGE_LOG_LEVEL", "INFO").upper(),
                log_file=os.environ.get("VOCAL_BRIDGE_LOG_FILE") or None,
                cors_origins=cors_origins,
            ),
            store=StoreConfig(
                db_path=_first_env("DB_PATH", "VOCAL_BRIDGE_DB_PATH"),
            ),
            workspace=WorkspaceConfig(
                root=_first_env("WORKSPACE_DIR", "VOCAL_BRIDGE_WORKSPACE_DIR"),
                max_read_bytes=max_read_bytes or DEFAULT_MAX_READ_BYTES,
            ),
            sessions=SessionConfig(
                idle_ttl_seconds=session_ttl or 3600.0,
                max_sessions=max_sessions or 1000,
                sweep_interval_seconds=sweep_interval or 60.0,
                keepalive_seconds=keepalive or 30.0,
            ),
            platforms=PlatformConfig(
                request_timeout_seconds=request_timeout or 30.0,
            ),
        )

    @classmethod
    def from_yaml(cls, path: str) -> "BridgeConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r") as f:
                data: Dict[str, Any] = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Config file not found: %s — using environment", path)
            return cls.from_env()
        return cls(**data)

    def ensure_directories(self) -> None:
        """Create data directories if they don't exist."""
        Path(self.data_dir).mkdir(parents=True, exist_ok=True)
        Path(self.store.db_path).parent.mkdir(parents=True, exist_ok=True)
        Path(self.workspace.root).mkdir(parents=True, exist_ok=True)
