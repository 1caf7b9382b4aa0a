"""
Vocal Bridge MCP Protocol Engine
--------------------------------
One engine per session. Decodes JSON-RPC envelopes, enforces the
Uninitialized -> Ready -> Closed lifecycle, and routes tool methods to the
shared ToolRegistry.

Tool failures are data-plane outcomes: they come back as a successful
JSON-RPC response whose result carries isError=true. Only malformed
envelopes, unknown methods and lifecycle violations produce JSON-RPC errors.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from vocal_bridge.core.errors import RpcError
from vocal_bridge.mcp.metrics import ToolCallMetrics
from vocal_bridge.mcp.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    SERVER_INSTRUCTIONS,
    SERVER_NAME,
    SESSION_CLOSED,
    SUPPORTED_PROTOCOL_VERSIONS,
    negotiate_protocol_version,
)
from vocal_bridge.mcp.registry import ToolRegistry
from vocal_bridge.version import __version__

logger = logging.getLogger("VocalBridge.mcp.engine")

_NO_ID = object()

# Methods served before the initialize handshake completes.
_PRE_INIT_METHODS = frozenset({"initialize", "ping"})


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


def success_response(msg_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": msg_id, "result": result}


def error_response(msg_id: Any, error: RpcError) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": msg_id, "error": error.to_dict()}


class ProtocolEngine:
    """JSON-RPC state machine bound to a single session."""

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        session_id: Optional[str] = None,
        tool_response_max_chars: Optional[int] = None,
        slow_call_ms: float = 5000.0,
    ):
        self.registry = registry
        self.session_id = session_id
        self.tool_response_max_chars = tool_response_max_chars
        self.slow_call_ms = slow_call_ms
        self.state = EngineState.UNINITIALIZED
        self.protocol_version: Optional[str] = None
        self.client_info: Dict[str, Any] = {}
        self.client_capabilities: Dict[str, Any] = {}
        self.client_acknowledged = False

    @property
    def closed(self) -> bool:
        return self.state is EngineState.CLOSED

    def close(self) -> None:
        if self.state is not EngineState.CLOSED:
            logger.debug("Engine for session %s closed from state %s", self.session_id, self.state.value)
        self.state = EngineState.CLOSED

    async def handle_payload(self, payload: Any) -> Union[Dict[str, Any], List[Dict[str, Any]], None]:
        """
        Handle a decoded request body: a single envelope or a batch.

        Returns the response object, a list of responses for a batch, or None
        when nothing needs answering (notifications only).
        """
        if isinstance(payload, list):
            if not payload:
                return error_response(None, RpcError(INVALID_REQUEST, "Invalid Request: empty batch"))
            responses = []
            for message in payload:
                response = await self.handle_message(message)
                if response is not None:
                    responses.append(response)
            return responses or None
        return await self.handle_message(payload)

    async def handle_message(self, message: Any) -> Optional[Dict[str, Any]]:
        msg_id = message.get("id", _NO_ID) if isinstance(message, dict) else _NO_ID
        is_notification = msg_id is _NO_ID
        reply_id = None if is_notification else msg_id

        if self.closed:
            return error_response(reply_id, RpcError(SESSION_CLOSED, "Session closed"))

        try:
            method, params = self._validate_envelope(message)
        except RpcError as exc:
            return error_response(reply_id, exc)

        if method is None:
            # A client's response to a server-initiated request; nothing to send back.
            return None

        try:
            result = await self._dispatch(method, params, reply_id, is_notification)
        except RpcError as exc:
            if is_notification:
                logger.debug("Dropping error for notification %s: %s", method, exc.message)
                return None
            return error_response(reply_id, exc)
        except Exception as exc:
            logger.exception("Unhandled error while processing %s", method)
            if is_notification:
                return None
            return error_response(reply_id, RpcError(INTERNAL_ERROR, f"Internal error: {exc}"))

        if is_notification:
            return None
        return success_response(reply_id, result)

    @staticmethod
    def _validate_envelope(message: Any) -> Tuple[Optional[str], Dict[str, Any]]:
        if not isinstance(message, dict):
            raise RpcError(INVALID_REQUEST, "Invalid Request: expected a JSON object")
        if message.get("jsonrpc") != JSONRPC_VERSION:
            raise RpcError(INVALID_REQUEST, "Invalid Request: jsonrpc must be '2.0'")

        method = message.get("method")
        if method is None and ("result" in message or "error" in message):
            return None, {}
        if not isinstance(method, str) or not method:
            raise RpcError(INVALID_REQUEST, "Invalid Request: method must be a non-empty string")

        params = message.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise RpcError(INVALID_PARAMS, "Invalid params: params must be an object")
        return method, params

    async def _dispatch(self, method: str, params: Dict[str, Any], msg_id: Any, is_notification: bool) -> Any:
        if method.startswith("notifications/"):
            if method == "notifications/initialized":
                self.client_acknowledged = True
            return None

        if self.state is EngineState.UNINITIALIZED and method not in _PRE_INIT_METHODS:
            raise RpcError(INVALID_REQUEST, "Server not initialized: send 'initialize' first")

        if method == "initialize":
            return self._handle_initialize(params)
        if method == "ping":
            return {}
        if method == "tools/list":
            return {"tools": [descriptor.to_mcp() for descriptor in self.registry.list()]}
        if method == "tools/call":
            return await self._handle_tools_call(params, msg_id)

        if is_notification:
            return None
        raise RpcError(METHOD_NOT_FOUND, f"Method not found: {method}")

    def _handle_initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        if self.state is EngineState.READY:
            raise RpcError(INVALID_REQUEST, "Session already initialized")

        requested = params.get("protocolVersion")
        if requested is not None and not isinstance(requested, str):
            raise RpcError(INVALID_PARAMS, "Invalid params: protocolVersion must be a string")
        negotiated = negotiate_protocol_version(requested)
        if negotiated is None:
            raise RpcError(
                INVALID_PARAMS,
                f"Unsupported protocol version: {requested}",
                {"supported": list(SUPPORTED_PROTOCOL_VERSIONS), "requested": requested},
            )

        client_info = params.get("clientInfo")
        capabilities = params.get("capabilities")
        self.client_info = client_info if isinstance(client_info, dict) else {}
        self.client_capabilities = capabilities if isinstance(capabilities, dict) else {}
        self.protocol_version = negotiated
        self.state = EngineState.READY
        logger.info(
            "Session %s initialized: protocol=%s client=%s",
            self.session_id,
            negotiated,
            self.client_info.get("name", "unknown"),
        )
        return {
            "protocolVersion": negotiated,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
            "instructions": SERVER_INSTRUCTIONS,
        }

    async def _handle_tools_call(self, params: Dict[str, Any], msg_id: Any) -> Dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name.strip():
            raise RpcError(INVALID_PARAMS, "Invalid params: 'name' must be a non-empty string")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise RpcError(INVALID_PARAMS, "Invalid params: 'arguments' must be an object")

        metrics = ToolCallMetrics(msg_id, name, self.session_id)
        result = await self.registry.dispatch(name, arguments)
        content = result.to_content(name, self.tool_response_max_chars)
        metrics.record_result(result.is_error, content["content"][0]["text"])
        metrics.log_telemetry(self.slow_call_ms)
        return content
