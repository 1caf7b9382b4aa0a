"""Tests for the memory_* tools exposed over MCP."""

import pytest

from vocal_bridge.mcp.registry import ToolRegistry
from vocal_bridge.mcp.tools.memory import register_memory_tools
from vocal_bridge.store.entity_store import EntityRelationStore


@pytest.fixture
def registry(tmp_path):
    store = EntityRelationStore(tmp_path / "memory.db")
    tools = ToolRegistry()
    register_memory_tools(tools, store)
    yield tools
    store.close()


async def _call(registry, tool_name, /, **arguments):
    result = await registry.dispatch(tool_name, arguments)
    assert result.is_error is False, result.message
    return result.payload


@pytest.mark.asyncio
async def test_store_and_recall(registry):
    stored = await _call(registry, "memory_store", name="cfg", type="project", content='{"a":1}')
    assert stored["stored"] is True

    recalled = await _call(registry, "memory_recall", name_or_id="cfg")
    assert recalled["found"] is True
    assert recalled["id"] == stored["id"]
    assert recalled["name"] == "cfg"
    assert recalled["type"] == "project"


@pytest.mark.asyncio
async def test_recall_miss_is_not_an_error(registry):
    recalled = await _call(registry, "memory_recall", name_or_id="ghost")
    assert recalled == {"found": False, "name_or_id": "ghost"}


@pytest.mark.asyncio
async def test_relate_and_get_relations(registry):
    a = (await _call(registry, "memory_store", name="n1", type="t", content="c1"))["id"]
    b = (await _call(registry, "memory_store", name="n2", type="t", content="c2"))["id"]
    relation = await _call(registry, "memory_relate", from_id=a, to_id=b, relation_type="depends_on")

    relations = await _call(registry, "memory_get_relations", entity_id=a)
    assert relations["count"] == 1
    assert relations["relations"][0]["id"] == relation["id"]
    assert relations["relations"][0]["to_name"] == "n2"


@pytest.mark.asyncio
async def test_search_truncates_previews(registry):
    await _call(registry, "memory_store", name="long", type="doc", content="z" * 500)
    found = await _call(registry, "memory_search", query="long")
    assert found["count"] == 1
    content = found["entities"][0]["content"]
    assert content.endswith("...")
    assert len(content) == 203


@pytest.mark.asyncio
async def test_update_unknown_id_reports_false(registry):
    updated = await _call(registry, "memory_update", id="missing", content="x")
    assert updated == {"updated": False, "id": "missing"}


@pytest.mark.asyncio
async def test_delete_then_stats(registry):
    entity_id = (await _call(registry, "memory_store", name="tmp", type="note", content=""))["id"]
    assert (await _call(registry, "memory_delete", id=entity_id))["deleted"] is True
    stats = await _call(registry, "memory_stats")
    assert stats["entities"] == 0


@pytest.mark.asyncio
async def test_list_filters_by_type(registry):
    await _call(registry, "memory_store", name="a", type="table", content="")
    await _call(registry, "memory_store", name="b", type="note", content="")
    listed = await _call(registry, "memory_list", type="table")
    assert [e["name"] for e in listed["entities"]] == ["a"]


@pytest.mark.asyncio
async def test_missing_required_argument(registry):
    result = await registry.dispatch("memory_store", {"name": "x", "type": "y"})
    assert result.is_error is True
    assert "content" in result.message
