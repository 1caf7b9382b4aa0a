"""
Vocal Bridge Platform Abstraction
---------------------------------
Cross-platform data directory resolution.

The bridge runs as a container on hosted platforms and as a plain process on
developer machines; both cases resolve to a writable data directory here.
"""

import os
import sys
import logging
from pathlib import Path
from typing import Dict, Any

import platformdirs

logger = logging.getLogger("VocalBridge.Platform")

_APP_NAME = "vocal-bridge"
_APP_AUTHOR = "VocalBridge"


def is_running_in_docker() -> bool:
    """Detect if we're running inside a Docker container."""
    if os.environ.get("VOCAL_BRIDGE_DOCKER") == "1":
        return True
    if Path("/.dockerenv").exists():
        return True
    try:
        with open("/proc/1/cgroup", "r") as f:
            return "docker" in f.read()
    except (FileNotFoundError, PermissionError):
        return False


def get_data_dir() -> Path:
    """
    Get the Vocal Bridge data directory.

    Priority: VOCAL_BRIDGE_DATA_DIR env var > /data in Docker > platformdirs.

    Contains: memory.db, workspace/, the server instance lock
    """
    env_val = os.environ.get("VOCAL_BRIDGE_DATA_DIR")
    if env_val:
        return Path(env_val)
    if is_running_in_docker():
        return Path("/data")
    return Path(platformdirs.user_data_dir(_APP_NAME, _APP_AUTHOR))


def get_platform_info() -> Dict[str, Any]:
    """Return platform diagnostic information for the doctor command."""
    return {
        "os": sys.platform,
        "python": sys.version.split()[0],
        "is_docker": is_running_in_docker(),
        "data_dir": str(get_data_dir()),
    }
