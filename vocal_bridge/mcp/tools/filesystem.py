"""Workspace file tools."""

import asyncio
from typing import Any, Dict

from vocal_bridge.mcp.arguments import optional_bool, optional_int, optional_str, require_str
from vocal_bridge.mcp.registry import ToolRegistry, object_schema
from vocal_bridge.workspace.filesystem import Workspace

GROUP = "filesystem"

_PATH = {"type": "string", "description": "Path relative to the workspace root"}


def register_filesystem_tools(registry: ToolRegistry, workspace: Workspace) -> None:

    @registry.tool(
        "fs_read_file",
        "Read a text file from the workspace.",
        object_schema({"path": _PATH}, required=["path"]),
        group=GROUP,
        read_only=True,
    )
    async def fs_read_file(args: Dict[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(workspace.read_file, require_str(args, "path"))

    @registry.tool(
        "fs_write_file",
        "Create or overwrite a file in the workspace; parent directories are created.",
        object_schema(
            {"path": _PATH, "content": {"type": "string"}},
            required=["path", "content"],
        ),
        group=GROUP,
        idempotent=True,
    )
    async def fs_write_file(args: Dict[str, Any]) -> Dict[str, Any]:
        path = require_str(args, "path")
        content = require_str(args, "content", allow_empty=True)
        return await asyncio.to_thread(workspace.write_file, path, content)

    @registry.tool(
        "fs_edit_file",
        "Replace text in a workspace file (first occurrence unless replace_all is set).",
        object_schema(
            {
                "path": _PATH,
                "old_text": {"type": "string"},
                "new_text": {"type": "string"},
                "replace_all": {"type": "boolean", "default": False},
            },
            required=["path", "old_text", "new_text"],
        ),
        group=GROUP,
    )
    async def fs_edit_file(args: Dict[str, Any]) -> Dict[str, Any]:
        path = require_str(args, "path")
        old_text = require_str(args, "old_text", allow_empty=True)
        new_text = require_str(args, "new_text", allow_empty=True)
        replace_all = optional_bool(args, "replace_all")
        return await asyncio.to_thread(
            workspace.edit_file, path, old_text, new_text, replace_all=replace_all
        )

    @registry.tool(
        "fs_delete_file",
        "Delete a file, or a directory when recursive is set or it is empty.",
        object_schema(
            {"path": _PATH, "recursive": {"type": "boolean", "default": False}},
            required=["path"],
        ),
        group=GROUP,
        destructive=True,
    )
    async def fs_delete_file(args: Dict[str, Any]) -> Dict[str, Any]:
        path = require_str(args, "path")
        recursive = optional_bool(args, "recursive")
        return await asyncio.to_thread(workspace.delete_file, path, recursive=recursive)

    @registry.tool(
        "fs_create_directory",
        "Create a directory (and parents) in the workspace.",
        object_schema({"path": _PATH}, required=["path"]),
        group=GROUP,
        idempotent=True,
    )
    async def fs_create_directory(args: Dict[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(workspace.create_directory, require_str(args, "path"))

    @registry.tool(
        "fs_list_directory",
        "List the entries of a workspace directory.",
        object_schema({"path": _PATH}),
        group=GROUP,
        read_only=True,
    )
    async def fs_list_directory(args: Dict[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(workspace.list_directory, optional_str(args, "path", "."))

    @registry.tool(
        "fs_directory_tree",
        "Show the nested structure of a workspace directory.",
        object_schema(
            {"path": _PATH, "max_depth": {"type": "integer", "minimum": 1, "maximum": 10}}
        ),
        group=GROUP,
        read_only=True,
    )
    async def fs_directory_tree(args: Dict[str, Any]) -> Dict[str, Any]:
        path = optional_str(args, "path", ".")
        max_depth = optional_int(args, "max_depth", minimum=1, maximum=10)
        return await asyncio.to_thread(workspace.directory_tree, path, max_depth)

    @registry.tool(
        "fs_file_info",
        "Report type, size and modification time of a workspace path.",
        object_schema({"path": _PATH}, required=["path"]),
        group=GROUP,
        read_only=True,
    )
    async def fs_file_info(args: Dict[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(workspace.file_info, require_str(args, "path"))
