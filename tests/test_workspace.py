"""Tests for vocal_bridge.workspace and the fs_* tools."""

import pytest

from vocal_bridge.core.errors import WorkspaceError
from vocal_bridge.mcp.registry import ToolRegistry
from vocal_bridge.mcp.tools.filesystem import register_filesystem_tools
from vocal_bridge.workspace.filesystem import Workspace


@pytest.fixture
def workspace(tmp_path):
    return Workspace(tmp_path / "ws", max_read_bytes=1024, tree_max_depth=2)


class TestPaths:
    def test_parent_escape_rejected(self, workspace):
        with pytest.raises(WorkspaceError, match="escapes"):
            workspace.resolve("../outside.txt")
        with pytest.raises(WorkspaceError):
            workspace.resolve("a/../../outside.txt")

    def test_absolute_paths_are_rooted_in_workspace(self, workspace):
        assert workspace.resolve("/src/app.py") == workspace.root / "src" / "app.py"

    def test_empty_path_is_root(self, workspace):
        assert workspace.resolve("") == workspace.root
        assert workspace.display(workspace.root) == ""


class TestFileOperations:
    def test_write_then_read(self, workspace):
        result = workspace.write_file("src/main.py", "print('hello')\n")
        assert result == {"success": True, "path": "src/main.py", "size": 15}
        assert workspace.read_file("src/main.py")["content"] == "print('hello')\n"

    def test_read_missing_file(self, workspace):
        with pytest.raises(WorkspaceError, match="File not found"):
            workspace.read_file("nope.txt")

    def test_read_respects_size_limit(self, workspace):
        workspace.write_file("big.txt", "x" * 2048)
        with pytest.raises(WorkspaceError, match="limit"):
            workspace.read_file("big.txt")

    def test_edit_first_occurrence_and_all(self, workspace):
        workspace.write_file("cfg.txt", "a=1\na=1\n")
        assert workspace.edit_file("cfg.txt", "a=1", "a=2")["replacements"] == 1
        assert workspace.read_file("cfg.txt")["content"] == "a=2\na=1\n"

        workspace.write_file("cfg.txt", "a=1\na=1\n")
        assert workspace.edit_file("cfg.txt", "a=1", "a=3", replace_all=True)["replacements"] == 2
        assert workspace.read_file("cfg.txt")["content"] == "a=3\na=3\n"

    def test_edit_missing_text(self, workspace):
        workspace.write_file("cfg.txt", "a=1")
        with pytest.raises(WorkspaceError, match="not found"):
            workspace.edit_file("cfg.txt", "b=2", "b=3")

    def test_delete_file_and_directories(self, workspace):
        workspace.write_file("dir/file.txt", "x")
        with pytest.raises(WorkspaceError, match="not empty"):
            workspace.delete_file("dir")
        workspace.delete_file("dir", recursive=True)
        assert not (workspace.root / "dir").exists()

    def test_delete_root_refused(self, workspace):
        with pytest.raises(WorkspaceError, match="root"):
            workspace.delete_file("/", recursive=True)

    def test_list_directory_puts_directories_first(self, workspace):
        workspace.write_file("b.txt", "bb")
        workspace.create_directory("zdir")
        listing = workspace.list_directory()
        assert listing["count"] == 2
        assert listing["items"][0] == {"name": "zdir", "type": "directory", "size": None}
        assert listing["items"][1] == {"name": "b.txt", "type": "file", "size": 2}

    def test_directory_tree_depth_and_skips(self, workspace):
        workspace.write_file("a/b/c/deep.txt", "x")
        workspace.write_file("node_modules/pkg/index.js", "x")
        tree = workspace.directory_tree()["tree"]
        assert [n["name"] for n in tree] == ["a"]
        b = tree[0]["children"][0]
        assert b["name"] == "b"
        assert "children" not in b

    def test_file_info(self, workspace):
        workspace.write_file("info.txt", "abc")
        info = workspace.file_info("info.txt")
        assert info["type"] == "file"
        assert info["size"] == 3
        assert info["modified"].endswith("+00:00")


class TestFilesystemTools:
    @pytest.mark.asyncio
    async def test_tools_round_trip_through_registry(self, workspace):
        registry = ToolRegistry()
        register_filesystem_tools(registry, workspace)

        written = await registry.dispatch("fs_write_file", {"path": "app/index.html", "content": "<h1>Hi</h1>"})
        assert written.is_error is False

        read = await registry.dispatch("fs_read_file", {"path": "app/index.html"})
        assert read.payload["content"] == "<h1>Hi</h1>"

        listing = await registry.dispatch("fs_list_directory", {})
        assert listing.payload["items"][0]["name"] == "app"

    @pytest.mark.asyncio
    async def test_escape_is_tool_error(self, workspace):
        registry = ToolRegistry()
        register_filesystem_tools(registry, workspace)
        result = await registry.dispatch("fs_read_file", {"path": "../../etc/passwd"})
        assert result.is_error is True
        assert result.error_type == "WorkspaceError"

    @pytest.mark.asyncio
    async def test_tree_depth_is_bounded(self, workspace):
        registry = ToolRegistry()
        register_filesystem_tools(registry, workspace)
        result = await registry.dispatch("fs_directory_tree", {"max_depth": 50})
        assert result.is_error is True
        assert "max_depth" in result.message
