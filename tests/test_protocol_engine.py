"""Tests for vocal_bridge.mcp.engine — per-session JSON-RPC state machine."""

import json

import pytest

from vocal_bridge.mcp.engine import EngineState, ProtocolEngine
from vocal_bridge.mcp.protocol import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    SERVER_NAME,
    SESSION_CLOSED,
    SUPPORTED_PROTOCOL_VERSIONS,
)
from vocal_bridge.mcp.registry import ToolRegistry, object_schema
from vocal_bridge.mcp.results import TRUNCATION_SUFFIX


def _registry() -> ToolRegistry:
    registry = ToolRegistry()

    @registry.tool("add", "Add two numbers.", object_schema({"a": {}, "b": {}}, ["a", "b"]))
    async def add(args):
        return {"sum": args["a"] + args["b"]}

    @registry.tool("blob", "Large payload.")
    async def blob(args):
        return "y" * 1000

    return registry.freeze()


def _request(method, params=None, msg_id=1):
    message = {"jsonrpc": "2.0", "id": msg_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


async def _ready_engine(**kwargs) -> ProtocolEngine:
    engine = ProtocolEngine(_registry(), session_id="s-1", **kwargs)
    response = await engine.handle_message(
        _request("initialize", {"protocolVersion": "2025-06-18", "clientInfo": {"name": "pytest"}})
    )
    assert "result" in response
    return engine


class TestInitialize:
    @pytest.mark.asyncio
    async def test_initialize_negotiates_requested_version(self):
        engine = ProtocolEngine(_registry())
        response = await engine.handle_message(
            _request("initialize", {"protocolVersion": "2024-11-05", "capabilities": {}})
        )
        result = response["result"]
        assert response["id"] == 1
        assert result["protocolVersion"] == "2024-11-05"
        assert result["serverInfo"]["name"] == SERVER_NAME
        assert result["capabilities"] == {"tools": {"listChanged": False}}
        assert engine.state is EngineState.READY

    @pytest.mark.asyncio
    async def test_initialize_without_version_gets_latest(self):
        engine = ProtocolEngine(_registry())
        response = await engine.handle_message(_request("initialize", {}))
        assert response["result"]["protocolVersion"] == SUPPORTED_PROTOCOL_VERSIONS[0]

    @pytest.mark.asyncio
    async def test_unsupported_version_is_invalid_params(self):
        engine = ProtocolEngine(_registry())
        response = await engine.handle_message(_request("initialize", {"protocolVersion": "1999-01-01"}))
        assert response["error"]["code"] == INVALID_PARAMS
        assert response["error"]["data"]["requested"] == "1999-01-01"
        assert engine.state is EngineState.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_second_initialize_rejected(self):
        engine = await _ready_engine()
        response = await engine.handle_message(_request("initialize", {}, msg_id=2))
        assert response["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_tools_list_before_initialize_rejected(self):
        engine = ProtocolEngine(_registry())
        response = await engine.handle_message(_request("tools/list"))
        assert response["error"]["code"] == INVALID_REQUEST
        assert "not initialized" in response["error"]["message"]

    @pytest.mark.asyncio
    async def test_ping_allowed_before_initialize(self):
        engine = ProtocolEngine(_registry())
        response = await engine.handle_message(_request("ping"))
        assert response == {"jsonrpc": "2.0", "id": 1, "result": {}}


class TestRequests:
    @pytest.mark.asyncio
    async def test_tools_list(self):
        engine = await _ready_engine()
        response = await engine.handle_message(_request("tools/list", msg_id=2))
        names = [t["name"] for t in response["result"]["tools"]]
        assert names == ["add", "blob"]

    @pytest.mark.asyncio
    async def test_tools_call_success(self):
        engine = await _ready_engine()
        response = await engine.handle_message(
            _request("tools/call", {"name": "add", "arguments": {"a": 2, "b": 3}}, msg_id="abc")
        )
        assert response["id"] == "abc"
        result = response["result"]
        assert result["isError"] is False
        assert json.loads(result["content"][0]["text"]) == {"sum": 5}

    @pytest.mark.asyncio
    async def test_tools_call_unknown_tool_is_tool_error_not_rpc_error(self):
        engine = await _ready_engine()
        response = await engine.handle_message(
            _request("tools/call", {"name": "does_not_exist", "arguments": {}}, msg_id=3)
        )
        assert "error" not in response
        assert response["result"]["isError"] is True
        assert "does_not_exist" in response["result"]["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_tools_call_handler_fault_is_tool_error(self):
        engine = await _ready_engine()
        response = await engine.handle_message(
            _request("tools/call", {"name": "add", "arguments": {"a": 1}}, msg_id=4)
        )
        assert response["result"]["isError"] is True
        assert response["result"]["content"][0]["text"].startswith("Error: ")

    @pytest.mark.asyncio
    async def test_tools_call_requires_name(self):
        engine = await _ready_engine()
        response = await engine.handle_message(_request("tools/call", {"arguments": {}}, msg_id=5))
        assert response["error"]["code"] == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_tools_call_arguments_must_be_object(self):
        engine = await _ready_engine()
        response = await engine.handle_message(
            _request("tools/call", {"name": "add", "arguments": [1, 2]}, msg_id=6)
        )
        assert response["error"]["code"] == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_tool_response_truncated_to_cap(self):
        engine = await _ready_engine(tool_response_max_chars=200)
        response = await engine.handle_message(_request("tools/call", {"name": "blob"}, msg_id=7))
        text = response["result"]["content"][0]["text"]
        assert len(text) == 200
        assert text.endswith(TRUNCATION_SUFFIX)

    @pytest.mark.asyncio
    async def test_unknown_method(self):
        engine = await _ready_engine()
        response = await engine.handle_message(_request("resources/list", msg_id=8))
        assert response["error"]["code"] == METHOD_NOT_FOUND
        assert "resources/list" in response["error"]["message"]


class TestEnvelope:
    @pytest.mark.asyncio
    async def test_notification_gets_no_response(self):
        engine = await _ready_engine()
        response = await engine.handle_message({"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert response is None
        assert engine.client_acknowledged is True

    @pytest.mark.asyncio
    async def test_wrong_jsonrpc_version(self):
        engine = ProtocolEngine(_registry())
        response = await engine.handle_message({"jsonrpc": "1.0", "id": 1, "method": "ping"})
        assert response["error"]["code"] == INVALID_REQUEST
        assert response["id"] == 1

    @pytest.mark.asyncio
    async def test_non_object_message(self):
        engine = ProtocolEngine(_registry())
        response = await engine.handle_message("hello")
        assert response["error"]["code"] == INVALID_REQUEST
        assert response["id"] is None

    @pytest.mark.asyncio
    async def test_client_response_is_ignored(self):
        engine = await _ready_engine()
        assert await engine.handle_message({"jsonrpc": "2.0", "id": 9, "result": {}}) is None

    @pytest.mark.asyncio
    async def test_batch(self):
        engine = await _ready_engine()
        responses = await engine.handle_payload(
            [
                _request("ping", msg_id=10),
                {"jsonrpc": "2.0", "method": "notifications/initialized"},
                _request("tools/list", msg_id=11),
            ]
        )
        assert [r["id"] for r in responses] == [10, 11]

    @pytest.mark.asyncio
    async def test_empty_batch_is_invalid(self):
        engine = ProtocolEngine(_registry())
        response = await engine.handle_payload([])
        assert response["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_closed_engine_rejects_everything(self):
        engine = await _ready_engine()
        engine.close()
        assert engine.closed
        response = await engine.handle_message(_request("ping", msg_id=12))
        assert response["error"]["code"] == SESSION_CLOSED
