from vocal_bridge.mcp.engine import EngineState, ProtocolEngine
from vocal_bridge.mcp.registry import ToolDescriptor, ToolRegistry
from vocal_bridge.mcp.results import ToolResult
from vocal_bridge.mcp.sessions import Session, SessionRegistry

__all__ = [
    "EngineState",
    "ProtocolEngine",
    "ToolDescriptor",
    "ToolRegistry",
    "ToolResult",
    "Session",
    "SessionRegistry",
]
