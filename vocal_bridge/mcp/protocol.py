"""
Vocal Bridge MCP Protocol Constants
"""

from typing import Optional

SUPPORTED_PROTOCOL_VERSIONS = ("2025-11-25", "2025-06-18", "2024-11-05")
JSON_SCHEMA_2020_12 = "https://json-schema.org/draft/2020-12/schema"
JSONRPC_VERSION = "2.0"

SERVER_NAME = "vocal-bridge-mcp"
SESSION_HEADER = "Mcp-Session-Id"

# Standard JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Vocal Bridge specific error codes
SESSION_CLOSED = -32001

SERVER_INSTRUCTIONS = (
    "Vocal Bridge MCP server. Deploy with Railway, manage Supabase databases, "
    "work with GitHub repositories, edit files in the shared workspace, and keep "
    "project knowledge in the memory graph (memory_* tools)."
)


def negotiate_protocol_version(version: Optional[str]) -> Optional[str]:
    if not version:
        return SUPPORTED_PROTOCOL_VERSIONS[0]
    if version in SUPPORTED_PROTOCOL_VERSIONS:
        return version
    return None
