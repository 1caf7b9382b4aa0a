"""
Vocal Bridge exceptions.

Tool handlers raise these; the tool registry turns any of them into an
error-flagged tool result. Protocol-plane failures use RpcError instead.
"""

from __future__ import annotations

from typing import Any, Optional


class VocalBridgeError(RuntimeError):
    """Base class for bridge errors."""


class InvalidArgument(VocalBridgeError):
    """Raised when a tool argument is missing or malformed."""

    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        super().__init__(f"Invalid argument '{field}': {detail}")


class UnknownTool(VocalBridgeError):
    """Raised when a tool name is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class StorageError(VocalBridgeError):
    """Raised when the entity-relation store cannot complete an operation."""


class WorkspaceError(VocalBridgeError):
    """Raised for workspace path escapes and failed filesystem operations."""


class SessionClosed(VocalBridgeError):
    """Raised when a message reaches an engine whose session was torn down."""


class PlatformAPIError(VocalBridgeError):
    """Raised when an external platform rejects a request or is unreachable."""

    def __init__(
        self,
        detail: str,
        *,
        platform: Optional[str] = None,
        status_code: Optional[int] = None,
        payload: Optional[Any] = None,
    ) -> None:
        self.detail = detail
        self.platform = platform
        self.status_code = status_code
        self.payload = payload
        super().__init__(detail)


class RpcError(Exception):
    """A JSON-RPC protocol-plane error carrying its wire code."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)

    def to_dict(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error
