"""
Vocal Bridge Tool Registry
--------------------------
Name -> descriptor mapping, built once at startup and read-only afterwards.

Input schemas are advisory: they are published through tools/list for client
UIs and voice prompts, and each handler validates its own arguments.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from vocal_bridge.core.errors import UnknownTool, VocalBridgeError
from vocal_bridge.mcp.protocol import JSON_SCHEMA_2020_12
from vocal_bridge.mcp.results import ToolResult

logger = logging.getLogger("VocalBridge.mcp.registry")

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


def object_schema(
    properties: Dict[str, Dict[str, Any]],
    required: Sequence[str] = (),
) -> Dict[str, Any]:
    """Build a JSON-schema object for a tool's arguments."""
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = list(required)
    return schema


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: Dict[str, Any]
    handler: ToolHandler
    group: str = "general"
    read_only: bool = False
    destructive: bool = False
    idempotent: bool = False
    annotations: Dict[str, Any] = field(default_factory=dict)

    def to_mcp(self) -> Dict[str, Any]:
        schema = dict(self.input_schema)
        schema.setdefault("$schema", JSON_SCHEMA_2020_12)
        annotations = {
            "readOnlyHint": self.read_only,
            "destructiveHint": self.destructive,
            "idempotentHint": self.idempotent or self.read_only,
            "openWorldHint": self.group not in ("memory", "filesystem"),
        }
        annotations.update(self.annotations)
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": schema,
            "annotations": annotations,
        }


class ToolRegistry:
    """Static tool table shared by every session's protocol engine."""

    def __init__(self):
        self._tools: Dict[str, ToolDescriptor] = {}
        self._frozen = False

    def register(self, descriptor: ToolDescriptor) -> None:
        if self._frozen:
            raise RuntimeError(f"Tool registry is frozen; cannot register '{descriptor.name}'")
        if descriptor.name in self._tools:
            raise ValueError(f"Tool '{descriptor.name}' is already registered")
        self._tools[descriptor.name] = descriptor

    def tool(
        self,
        name: str,
        description: str,
        input_schema: Optional[Dict[str, Any]] = None,
        *,
        group: str = "general",
        read_only: bool = False,
        destructive: bool = False,
        idempotent: bool = False,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator form of register() for async handlers."""
        def decorator(handler: ToolHandler) -> ToolHandler:
            self.register(
                ToolDescriptor(
                    name=name,
                    description=description,
                    input_schema=input_schema or object_schema({}),
                    handler=handler,
                    group=group,
                    read_only=read_only,
                    destructive=destructive,
                    idempotent=idempotent,
                )
            )
            return handler
        return decorator

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        logger.info("Tool registry frozen with %d tools", len(self._tools))
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def list(self) -> List[ToolDescriptor]:
        """Descriptors in registration order."""
        return list(self._tools.values())

    def get(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownTool(name) from None

    def groups(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for descriptor in self._tools.values():
            grouped.setdefault(descriptor.group, []).append(descriptor.name)
        return grouped

    async def dispatch(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """
        Invoke a tool by name.

        Every outcome comes back as a ToolResult: unknown names, handler
        validation failures and collaborator faults become failure results.
        """
        try:
            descriptor = self.get(name)
        except UnknownTool as exc:
            return ToolResult.failure(str(exc), error_type=type(exc).__name__)

        try:
            payload = await descriptor.handler(arguments or {})
        except VocalBridgeError as exc:
            logger.info("Tool '%s' failed: %s", name, exc)
            return ToolResult.failure(str(exc), error_type=type(exc).__name__)
        except Exception as exc:
            logger.exception("Tool '%s' raised unexpectedly", name)
            return ToolResult.failure(str(exc) or type(exc).__name__, error_type=type(exc).__name__)

        if isinstance(payload, ToolResult):
            return payload
        return ToolResult.ok(payload)
