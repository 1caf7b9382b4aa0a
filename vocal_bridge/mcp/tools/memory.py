"""
Memory graph tools backed by the entity-relation store.

The store is synchronous SQLite; each call runs in a worker thread so slow
disk I/O never blocks the event loop.
"""

import asyncio
from typing import Any, Dict

from vocal_bridge.mcp.arguments import (
    optional_dict,
    optional_int,
    optional_str,
    require_str,
)
from vocal_bridge.mcp.registry import ToolRegistry, object_schema
from vocal_bridge.store.entity_store import (
    DEFAULT_LIST_LIMIT,
    MAX_LIST_LIMIT,
    PREVIEW_CHARS,
    EntityRelationStore,
)

GROUP = "memory"

_METADATA = {"type": "object", "description": "Arbitrary key-value metadata"}


def register_memory_tools(registry: ToolRegistry, store: EntityRelationStore) -> None:

    @registry.tool(
        "memory_store",
        "Store a named, typed piece of project knowledge (config, schema, decision, note). "
        "Always creates a new entity; names may repeat.",
        object_schema(
            {
                "name": {"type": "string", "description": "Label used to recall the entity"},
                "type": {"type": "string", "description": "Category, e.g. project, schema, decision"},
                "content": {"type": "string", "description": "Text payload (JSON is fine)"},
                "metadata": _METADATA,
            },
            required=["name", "type", "content"],
        ),
        group=GROUP,
    )
    async def memory_store(args: Dict[str, Any]) -> Dict[str, Any]:
        name = require_str(args, "name")
        entity_type = require_str(args, "type")
        content = require_str(args, "content", allow_empty=True)
        metadata = optional_dict(args, "metadata")
        entity_id = await asyncio.to_thread(store.store, name, entity_type, content, metadata)
        return {"id": entity_id, "name": name, "type": entity_type, "stored": True}

    @registry.tool(
        "memory_recall",
        "Recall one entity by id or exact name (newest match wins for duplicate names).",
        object_schema(
            {"name_or_id": {"type": "string", "description": "Entity id or exact name"}},
            required=["name_or_id"],
        ),
        group=GROUP,
        read_only=True,
    )
    async def memory_recall(args: Dict[str, Any]) -> Dict[str, Any]:
        key = require_str(args, "name_or_id")
        entity = await asyncio.to_thread(store.recall, key)
        if entity is None:
            return {"found": False, "name_or_id": key}
        return {"found": True, **entity.to_public()}

    @registry.tool(
        "memory_search",
        "Search entities whose name or content contains the query (case-insensitive), "
        "most recently updated first, at most 50 results.",
        object_schema(
            {
                "query": {"type": "string", "description": "Substring to look for"},
                "type": {"type": "string", "description": "Only entities of this type"},
            },
            required=["query"],
        ),
        group=GROUP,
        read_only=True,
    )
    async def memory_search(args: Dict[str, Any]) -> Dict[str, Any]:
        query = require_str(args, "query")
        entity_type = optional_str(args, "type")
        entities = await asyncio.to_thread(store.search, query, entity_type)
        return {
            "count": len(entities),
            "entities": [e.to_public(preview_chars=PREVIEW_CHARS) for e in entities],
        }

    @registry.tool(
        "memory_list",
        "List stored entities, most recently updated first.",
        object_schema(
            {
                "type": {"type": "string", "description": "Only entities of this type"},
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": MAX_LIST_LIMIT,
                    "default": DEFAULT_LIST_LIMIT,
                },
            }
        ),
        group=GROUP,
        read_only=True,
    )
    async def memory_list(args: Dict[str, Any]) -> Dict[str, Any]:
        entity_type = optional_str(args, "type")
        limit = optional_int(args, "limit", DEFAULT_LIST_LIMIT, minimum=1, maximum=MAX_LIST_LIMIT)
        entities = await asyncio.to_thread(store.list, entity_type, limit)
        return {
            "count": len(entities),
            "entities": [e.to_public(preview_chars=PREVIEW_CHARS) for e in entities],
        }

    @registry.tool(
        "memory_update",
        "Replace an entity's content (and metadata, if given). Reports updated=false for unknown ids.",
        object_schema(
            {
                "id": {"type": "string"},
                "content": {"type": "string"},
                "metadata": _METADATA,
            },
            required=["id", "content"],
        ),
        group=GROUP,
        idempotent=True,
    )
    async def memory_update(args: Dict[str, Any]) -> Dict[str, Any]:
        entity_id = require_str(args, "id")
        content = require_str(args, "content", allow_empty=True)
        metadata = optional_dict(args, "metadata")
        updated = await asyncio.to_thread(store.update, entity_id, content, metadata)
        return {"updated": updated, "id": entity_id}

    @registry.tool(
        "memory_delete",
        "Delete an entity. Relations that reference it are kept and show the deleted side as null.",
        object_schema({"id": {"type": "string"}}, required=["id"]),
        group=GROUP,
        destructive=True,
        idempotent=True,
    )
    async def memory_delete(args: Dict[str, Any]) -> Dict[str, Any]:
        entity_id = require_str(args, "id")
        deleted = await asyncio.to_thread(store.delete, entity_id)
        return {"deleted": deleted, "id": entity_id}

    @registry.tool(
        "memory_relate",
        "Create a directed relation between two entities, e.g. project -has_schema-> table.",
        object_schema(
            {
                "from_id": {"type": "string"},
                "to_id": {"type": "string"},
                "relation_type": {"type": "string", "description": "Edge label, e.g. depends_on"},
                "metadata": _METADATA,
            },
            required=["from_id", "to_id", "relation_type"],
        ),
        group=GROUP,
    )
    async def memory_relate(args: Dict[str, Any]) -> Dict[str, Any]:
        from_id = require_str(args, "from_id")
        to_id = require_str(args, "to_id")
        relation_type = require_str(args, "relation_type")
        metadata = optional_dict(args, "metadata")
        relation_id = await asyncio.to_thread(store.relate, from_id, to_id, relation_type, metadata)
        return {
            "created": True,
            "id": relation_id,
            "from_id": from_id,
            "to_id": to_id,
            "relation_type": relation_type,
        }

    @registry.tool(
        "memory_get_relations",
        "List every relation where the entity is either endpoint, with endpoint names and types.",
        object_schema({"entity_id": {"type": "string"}}, required=["entity_id"]),
        group=GROUP,
        read_only=True,
    )
    async def memory_get_relations(args: Dict[str, Any]) -> Dict[str, Any]:
        entity_id = require_str(args, "entity_id")
        relations = await asyncio.to_thread(store.get_relations, entity_id)
        return {
            "entity_id": entity_id,
            "count": len(relations),
            "relations": [r.to_public() for r in relations],
        }

    @registry.tool(
        "memory_stats",
        "Count stored entities and relations, with a per-type breakdown.",
        group=GROUP,
        read_only=True,
    )
    async def memory_stats(args: Dict[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(store.stats)
