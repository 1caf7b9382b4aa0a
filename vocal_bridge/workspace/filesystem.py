"""
Vocal Bridge Workspace
----------------------
Plain file operations confined to one workspace directory.

Voice clients build projects here before pushing them to GitHub, so every
path is interpreted relative to the workspace root and anything that resolves
outside it is rejected.
"""

import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from vocal_bridge.core.errors import WorkspaceError

logger = logging.getLogger("VocalBridge.Workspace")

TREE_SKIP_NAMES = frozenset({".git", "node_modules", "__pycache__", ".venv"})


def _is_relative_to(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


class Workspace:
    def __init__(self, root, *, max_read_bytes: int = 5 * 1024 * 1024, tree_max_depth: int = 3):
        self.root = Path(root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.max_read_bytes = max_read_bytes
        self.tree_max_depth = tree_max_depth

    def resolve(self, path: str) -> Path:
        """Map a client path onto the workspace, refusing escapes."""
        relative = (path or ".").strip().lstrip("/\\") or "."
        candidate = (self.root / relative).resolve()
        if not _is_relative_to(candidate, self.root):
            raise WorkspaceError(f"Path escapes the workspace: {path}")
        return candidate

    def display(self, path: Path) -> str:
        rel = path.relative_to(self.root).as_posix()
        return rel if rel != "." else ""

    def read_file(self, path: str) -> Dict[str, Any]:
        target = self.resolve(path)
        if not target.is_file():
            raise WorkspaceError(f"File not found: {path}")
        size = target.stat().st_size
        if self.max_read_bytes > 0 and size > self.max_read_bytes:
            raise WorkspaceError(
                f"File {path} is {size} bytes; limit is {self.max_read_bytes}"
            )
        content = target.read_text(encoding="utf-8", errors="replace")
        return {"path": self.display(target), "content": content, "size": size}

    def write_file(self, path: str, content: str) -> Dict[str, Any]:
        target = self.resolve(path)
        if target.is_dir():
            raise WorkspaceError(f"Path is a directory: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode("utf-8")
        target.write_bytes(data)
        logger.info("Wrote %s (%d bytes)", target, len(data))
        return {"success": True, "path": self.display(target), "size": len(data)}

    def edit_file(self, path: str, old_text: str, new_text: str, *, replace_all: bool = False) -> Dict[str, Any]:
        target = self.resolve(path)
        if not target.is_file():
            raise WorkspaceError(f"File not found: {path}")
        if not old_text:
            raise WorkspaceError("old_text must not be empty")
        original = target.read_text(encoding="utf-8")
        occurrences = original.count(old_text)
        if occurrences == 0:
            raise WorkspaceError(f"Text to replace was not found in {path}")
        count = occurrences if replace_all else 1
        updated = original.replace(old_text, new_text, count)
        target.write_text(updated, encoding="utf-8")
        return {"success": True, "path": self.display(target), "replacements": count}

    def delete_file(self, path: str, *, recursive: bool = False) -> Dict[str, Any]:
        target = self.resolve(path)
        if target == self.root:
            raise WorkspaceError("Refusing to delete the workspace root")
        if not target.exists():
            raise WorkspaceError(f"Path not found: {path}")
        if target.is_dir():
            if recursive:
                shutil.rmtree(target)
            else:
                try:
                    target.rmdir()
                except OSError as exc:
                    raise WorkspaceError(
                        f"Directory {path} is not empty; pass recursive=true to remove it"
                    ) from exc
        else:
            target.unlink()
        logger.info("Deleted %s", target)
        return {"success": True, "path": self.display(target)}

    def create_directory(self, path: str) -> Dict[str, Any]:
        target = self.resolve(path)
        if target.is_file():
            raise WorkspaceError(f"Path is a file: {path}")
        target.mkdir(parents=True, exist_ok=True)
        return {"success": True, "path": self.display(target)}

    def list_directory(self, path: str = ".") -> Dict[str, Any]:
        target = self.resolve(path)
        if not target.is_dir():
            raise WorkspaceError(f"Directory not found: {path}")
        items: List[Dict[str, Any]] = []
        for child in sorted(target.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower())):
            is_dir = child.is_dir()
            items.append(
                {
                    "name": child.name,
                    "type": "directory" if is_dir else "file",
                    "size": None if is_dir else child.stat().st_size,
                }
            )
        return {"path": self.display(target), "count": len(items), "items": items}

    def directory_tree(self, path: str = ".", max_depth: Optional[int] = None) -> Dict[str, Any]:
        target = self.resolve(path)
        if not target.is_dir():
            raise WorkspaceError(f"Directory not found: {path}")
        depth = self.tree_max_depth if max_depth is None else max(1, max_depth)
        return {"path": self.display(target), "tree": self._tree_node(target, depth)}

    def _tree_node(self, directory: Path, depth: int) -> List[Dict[str, Any]]:
        nodes: List[Dict[str, Any]] = []
        for child in sorted(directory.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower())):
            if child.name in TREE_SKIP_NAMES:
                continue
            if child.is_dir():
                node: Dict[str, Any] = {"name": child.name, "type": "directory"}
                if depth > 1:
                    node["children"] = self._tree_node(child, depth - 1)
                nodes.append(node)
            else:
                nodes.append({"name": child.name, "type": "file"})
        return nodes

    def file_info(self, path: str) -> Dict[str, Any]:
        target = self.resolve(path)
        if not target.exists():
            raise WorkspaceError(f"Path not found: {path}")
        stat = target.stat()
        return {
            "path": self.display(target),
            "type": "directory" if target.is_dir() else "file",
            "size": stat.st_size,
            "modified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
        }
