from vocal_bridge.workspace.filesystem import Workspace

__all__ = ["Workspace"]
