"""
Tool outcomes as explicit values.

Handlers return plain payloads; the registry wraps them (or whatever they
raised) into a ToolResult, so no exception crosses into the protocol engine.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger("VocalBridge.mcp.results")

TRUNCATION_SUFFIX = "\n\n[Response truncated due to size limits]"


def truncate_tool_text(text: str, name: str, max_chars: Optional[int]) -> str:
    """Apply the configured length cap to a tool response."""
    if max_chars is None or len(text) <= max_chars:
        return text
    logger.info("Truncating response for tool '%s' (%d -> %d chars)", name, len(text), max_chars)
    cutoff = max(0, max_chars - len(TRUNCATION_SUFFIX))
    return text[:cutoff] + TRUNCATION_SUFFIX


@dataclass(frozen=True)
class ToolResult:
    is_error: bool
    payload: Any = None
    message: str = ""
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, payload: Any) -> "ToolResult":
        return cls(is_error=False, payload=payload)

    @classmethod
    def failure(cls, message: str, error_type: Optional[str] = None) -> "ToolResult":
        return cls(is_error=True, message=message, error_type=error_type)

    def text(self) -> str:
        if self.is_error:
            return f"Error: {self.message}"
        if isinstance(self.payload, str):
            return self.payload
        return json.dumps(self.payload, indent=2, default=str)

    def to_content(self, name: str = "", max_chars: Optional[int] = None) -> Dict[str, Any]:
        """Render as an MCP tools/call result."""
        return {
            "content": [{"type": "text", "text": truncate_tool_text(self.text(), name, max_chars)}],
            "isError": self.is_error,
        }
