"""
Vocal Bridge CLI — operational utilities for the MCP server.

Usage:
    vocal-bridge serve [--host HOST] [--port PORT] [--config PATH]
    vocal-bridge doctor [--server-url URL]
    vocal-bridge tools [--json]

Commands:
    serve     Run the HTTP server (same as `python -m vocal_bridge.server`).
    doctor    Check that a running server answers /health and completes an
              MCP initialize handshake.
    tools     Print the tool catalogue exposed over tools/list.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Optional

import requests

from vocal_bridge.mcp.protocol import SESSION_HEADER, SUPPORTED_PROTOCOL_VERSIONS
from vocal_bridge.platform import get_platform_info
from vocal_bridge.version import __version__

_DEFAULT_SERVER_URL = "http://127.0.0.1:8080"


def _resolve_server_url(explicit: Optional[str]) -> str:
    """Explicit --server-url, then VOCAL_BRIDGE_SERVER_URL, then localhost:$PORT."""
    if explicit:
        return explicit.rstrip("/")
    env_url = os.environ.get("VOCAL_BRIDGE_SERVER_URL")
    if env_url:
        return env_url.rstrip("/")
    port = os.environ.get("PORT")
    if port and port.isdigit():
        return f"http://127.0.0.1:{port}"
    return _DEFAULT_SERVER_URL


def _check_server_health(url: str, timeout_seconds: float) -> tuple[bool, str, dict]:
    try:
        response = requests.get(f"{url}/health", timeout=timeout_seconds)
    except requests.RequestException as exc:
        return False, str(exc), {}
    if response.status_code != 200:
        return False, f"http_{response.status_code}", {}
    try:
        body = response.json()
    except ValueError:
        return False, "health response is not JSON", {}
    return body.get("status") == "ok", str(body.get("status")), body


def _check_mcp_handshake(url: str, timeout_seconds: float) -> tuple[bool, str]:
    """Run initialize, then DELETE the session so the probe leaves nothing behind."""
    payload = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "initialize",
        "params": {
            "protocolVersion": SUPPORTED_PROTOCOL_VERSIONS[0],
            "capabilities": {},
            "clientInfo": {"name": "vocal-bridge-doctor", "version": __version__},
        },
    }
    try:
        response = requests.post(f"{url}/mcp", json=payload, timeout=timeout_seconds)
    except requests.RequestException as exc:
        return False, str(exc)
    if response.status_code != 200:
        return False, f"http_{response.status_code}"

    session_id = response.headers.get(SESSION_HEADER)
    try:
        body = response.json()
    except ValueError:
        return False, "initialize response is not JSON"
    result = body.get("result") or {}
    if "error" in body or not result.get("protocolVersion"):
        return False, f"initialize failed: {body.get('error')}"

    if session_id:
        try:
            requests.delete(f"{url}/mcp", headers={SESSION_HEADER: session_id}, timeout=timeout_seconds)
        except requests.RequestException as exc:
            return True, f"ok (session cleanup failed: {exc})"
    server = result.get("serverInfo") or {}
    return True, f"ok ({server.get('name')} {server.get('version')}, protocol {result['protocolVersion']})"


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────

def cmd_serve(args: argparse.Namespace) -> int:
    from vocal_bridge import server

    argv = []
    if args.config:
        argv += ["--config", args.config]
    if args.host:
        argv += ["--host", args.host]
    if args.port:
        argv += ["--port", str(args.port)]
    if args.reload:
        argv.append("--reload")
    server.main(argv)
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    """
    Probe a running server.

    Exit codes:
      0 = healthy
      1 = health passes but the MCP handshake does not
      2 = server unreachable or unhealthy
    """
    target_url = _resolve_server_url(args.server_url)
    timeout = max(0.1, float(args.timeout_seconds))

    health_ok, health_detail, health = _check_server_health(target_url, timeout)
    mcp_ok, mcp_detail = (False, "skipped")
    if health_ok:
        mcp_ok, mcp_detail = _check_mcp_handshake(target_url, timeout)

    print("\nVocal Bridge Doctor")
    print("=" * 50)
    print(f"Target server URL: {target_url}")
    local = get_platform_info()
    print(f"Local platform: {local['os']} (python {local['python']}, docker={local['is_docker']})")
    print(f"Local data dir: {local['data_dir']}")
    print(f"Health check: {'PASS' if health_ok else 'FAIL'} ({health_detail})")
    if health:
        print(f"Server version: {health.get('version')}")
        print(f"Sessions: {health.get('sessions')}")
        print(f"Workspace: {health.get('workspaceDir')}")
        print(f"Memory DB: {health.get('dbPath')}")
    print(f"MCP handshake: {'PASS' if mcp_ok else 'FAIL'} ({mcp_detail})")
    print()

    if not health_ok:
        return 2
    if not mcp_ok:
        return 1
    return 0


def cmd_tools(args: argparse.Namespace) -> int:
    from vocal_bridge.mcp.tools import build_registry
    from vocal_bridge.store.entity_store import EntityRelationStore
    from vocal_bridge.workspace.filesystem import Workspace

    # Tools are built against throwaway storage; only the catalogue is read.
    with tempfile.TemporaryDirectory(prefix="vocal-bridge-tools-") as scratch:
        store = EntityRelationStore(Path(scratch) / "memory.db")
        try:
            registry = build_registry(store=store, workspace=Workspace(Path(scratch) / "workspace"))
            descriptors = registry.list()
        finally:
            store.close()

    if args.json:
        print(json.dumps([d.to_mcp() for d in descriptors], indent=2))
        return 0

    current_group = None
    for descriptor in descriptors:
        if descriptor.group != current_group:
            current_group = descriptor.group
            print(f"\n[{current_group}]")
        summary = descriptor.description.split(". ")[0].rstrip(".")
        print(f"  {descriptor.name:<32} {summary}")
    print(f"\n{len(descriptors)} tools")
    return 0


# ─────────────────────────────────────────────────────────────────────────────
# Argument parser
# ─────────────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vocal-bridge",
        description="Vocal Bridge CLI — operational utilities for the MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  vocal-bridge serve --port 8080\n"
               "  vocal-bridge doctor --server-url http://127.0.0.1:8080\n"
               "  vocal-bridge tools --json\n",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the MCP HTTP server.")
    serve.add_argument("--config", default=None, metavar="PATH", help="YAML configuration file.")
    serve.add_argument("--host", default=None, help="Host to bind to.")
    serve.add_argument("--port", type=int, default=None, help="Port to bind to.")
    serve.add_argument("--reload", action="store_true", default=False, help="Enable hot reload.")

    doctor = subparsers.add_parser(
        "doctor",
        help="Check a running server's health and MCP handshake.",
        description=(
            "Calls GET /health, then performs an MCP initialize over POST /mcp\n"
            "and deletes the probe session."
        ),
    )
    doctor.add_argument(
        "--server-url",
        default=None,
        metavar="URL",
        help=f"Server base URL (default: VOCAL_BRIDGE_SERVER_URL or {_DEFAULT_SERVER_URL}).",
    )
    doctor.add_argument(
        "--timeout-seconds",
        type=float,
        default=5.0,
        help="Per-request timeout (default: 5).",
    )

    tools = subparsers.add_parser("tools", help="List the tools the server exposes.")
    tools.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print the tools/list descriptors as JSON.",
    )
    return parser


_COMMANDS = {
    "serve": cmd_serve,
    "doctor": cmd_doctor,
    "tools": cmd_tools,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return _COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
