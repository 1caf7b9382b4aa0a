import json
from unittest.mock import MagicMock, patch

import requests

import vocal_bridge.cli as cli


def _response(status_code=200, body=None, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body if body is not None else {}
    response.headers = headers or {}
    return response


def test_resolve_server_url_precedence(monkeypatch):
    monkeypatch.delenv("VOCAL_BRIDGE_SERVER_URL", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    assert cli._resolve_server_url(None) == "http://127.0.0.1:8080"

    monkeypatch.setenv("PORT", "9000")
    assert cli._resolve_server_url(None) == "http://127.0.0.1:9000"

    monkeypatch.setenv("VOCAL_BRIDGE_SERVER_URL", "https://bridge.example/")
    assert cli._resolve_server_url(None) == "https://bridge.example"
    assert cli._resolve_server_url("http://explicit:1/") == "http://explicit:1"


def test_doctor_healthy_server(capsys):
    health = _response(body={"status": "ok", "version": "2.0.0", "sessions": {"live": 0}})
    initialize = _response(
        body={"result": {"protocolVersion": "2025-11-25", "serverInfo": {"name": "vocal-bridge-mcp", "version": "2.0.0"}}},
        headers={"Mcp-Session-Id": "sid-1"},
    )

    with patch("vocal_bridge.cli.requests.get", return_value=health), patch(
        "vocal_bridge.cli.requests.post", return_value=initialize
    ), patch("vocal_bridge.cli.requests.delete") as delete:
        args = cli.build_parser().parse_args(["doctor", "--server-url", "http://127.0.0.1:8080"])
        rc = cli.cmd_doctor(args)

    assert rc == 0
    delete.assert_called_once()
    assert delete.call_args.kwargs["headers"] == {"Mcp-Session-Id": "sid-1"}
    output = capsys.readouterr().out
    assert "Health check: PASS" in output
    assert "MCP handshake: PASS" in output


def test_doctor_unreachable_server(capsys):
    with patch(
        "vocal_bridge.cli.requests.get",
        side_effect=requests.ConnectionError("connection refused"),
    ), patch("vocal_bridge.cli.requests.post") as post:
        rc = cli.main(["doctor", "--server-url", "http://127.0.0.1:1"])

    assert rc == 2
    post.assert_not_called()
    assert "Health check: FAIL" in capsys.readouterr().out


def test_doctor_failed_handshake():
    health = _response(body={"status": "ok"})
    rejected = _response(status_code=400, body={"error": {"code": -32600}})

    with patch("vocal_bridge.cli.requests.get", return_value=health), patch(
        "vocal_bridge.cli.requests.post", return_value=rejected
    ):
        rc = cli.main(["doctor"])

    assert rc == 1


def test_tools_lists_every_group(capsys):
    assert cli.main(["tools"]) == 0
    output = capsys.readouterr().out
    for group in ("[railway]", "[supabase]", "[github]", "[filesystem]", "[memory]"):
        assert group in output
    assert "memory_store" in output


def test_tools_json_matches_tools_list_shape(capsys):
    assert cli.main(["tools", "--json"]) == 0
    tools = json.loads(capsys.readouterr().out)
    names = {t["name"] for t in tools}
    assert {"railway_deploy", "supabase_run_sql", "github_push_files", "fs_read_file", "memory_relate"} <= names
    assert all("inputSchema" in t and "annotations" in t for t in tools)


def test_serve_forwards_arguments():
    with patch("vocal_bridge.server.main") as server_main:
        rc = cli.main(["serve", "--port", "9999", "--host", "127.0.0.1"])
    assert rc == 0
    server_main.assert_called_once_with(["--host", "127.0.0.1", "--port", "9999"])
