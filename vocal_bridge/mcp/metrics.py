import time
import logging
from typing import Any, Optional

logger = logging.getLogger("VocalBridge.mcp.metrics")


class ToolCallMetrics:
    """
    Tracks latency and payload size for a single MCP tool call.
    """
    def __init__(self, msg_id: Any, name: str, session_id: Optional[str] = None):
        self.msg_id = msg_id
        self.name = name
        self.session_id = session_id
        self.response_bytes = 0
        self.is_error: Optional[bool] = None
        self.started_monotonic = time.monotonic()

    def record_result(self, is_error: bool, text: str) -> None:
        self.is_error = is_error
        self.response_bytes = len(text.encode("utf-8"))

    def get_outcome(self) -> str:
        if self.is_error is None:
            return "no_response"
        return "error" if self.is_error else "success"

    def elapsed_ms(self) -> float:
        return max(0.0, (time.monotonic() - self.started_monotonic) * 1000.0)

    def log_telemetry(self, warn_threshold_ms: float) -> None:
        """Log normalized telemetry for the tool call."""
        elapsed_ms = self.elapsed_ms()
        log_method = logger.warning if elapsed_ms >= warn_threshold_ms else logger.info
        log_method(
            "Tool call telemetry: name=%s id=%r session=%s outcome=%s elapsed_ms=%.1f response_bytes=%d",
            self.name,
            self.msg_id,
            (self.session_id or "-")[:8],
            self.get_outcome(),
            elapsed_ms,
            self.response_bytes,
        )
