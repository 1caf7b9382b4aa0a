"""
Tool groups exposed over MCP.

build_registry() assembles every group into one frozen ToolRegistry at
startup; sessions share it read-only.
"""

from typing import Optional

import httpx

from vocal_bridge.core.config import PlatformConfig
from vocal_bridge.mcp.registry import ToolRegistry
from vocal_bridge.mcp.tools.filesystem import register_filesystem_tools
from vocal_bridge.mcp.tools.github import register_github_tools
from vocal_bridge.mcp.tools.memory import register_memory_tools
from vocal_bridge.mcp.tools.railway import register_railway_tools
from vocal_bridge.mcp.tools.supabase import register_supabase_tools
from vocal_bridge.store.entity_store import EntityRelationStore
from vocal_bridge.workspace.filesystem import Workspace


def build_registry(
    *,
    store: EntityRelationStore,
    workspace: Workspace,
    platforms: Optional[PlatformConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ToolRegistry:
    settings = platforms or PlatformConfig()
    registry = ToolRegistry()
    register_railway_tools(registry, settings, http_client)
    register_supabase_tools(registry, settings, http_client)
    register_github_tools(registry, settings, http_client)
    register_filesystem_tools(registry, workspace)
    register_memory_tools(registry, store)
    return registry.freeze()


__all__ = [
    "build_registry",
    "register_filesystem_tools",
    "register_github_tools",
    "register_memory_tools",
    "register_railway_tools",
    "register_supabase_tools",
]
