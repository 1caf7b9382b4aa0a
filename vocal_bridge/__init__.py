"""
Vocal Bridge: MCP tool server for deployment platforms and project memory
"""

from vocal_bridge.core.errors import (
    InvalidArgument,
    PlatformAPIError,
    StorageError,
    UnknownTool,
    VocalBridgeError,
)
from vocal_bridge.version import __version__

__all__ = [
    "__version__",
    "VocalBridgeError",
    "InvalidArgument",
    "UnknownTool",
    "StorageError",
    "PlatformAPIError",
]
