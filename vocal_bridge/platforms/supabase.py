"""
Supabase management API client.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List

from vocal_bridge.core.errors import InvalidArgument
from vocal_bridge.platforms.base import PlatformClient, _coerce_error_detail

DEFAULT_SUPABASE_API_URL = "https://api.supabase.com/v1"

LIST_TABLES_SQL = """
SELECT table_name, table_type
FROM information_schema.tables
WHERE table_schema = 'public'
ORDER BY table_name;
"""

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")
_COLUMN_TYPE = re.compile(r"^[A-Za-z][A-Za-z0-9_ ]*(\(\s*\d+(\s*,\s*\d+)?\s*\))?(\[\])?$")


def build_create_table_sql(table_name: str, columns: List[Dict[str, Any]]) -> str:
    """
    Render CREATE TABLE IF NOT EXISTS from column specs.

    Names and types are checked against conservative patterns because they
    are interpolated into SQL; defaults are passed through as SQL expressions.
    """
    if not _IDENTIFIER.match(table_name or ""):
        raise InvalidArgument("tableName", f"not a valid identifier: {table_name!r}")
    if not columns:
        raise InvalidArgument("columns", "at least one column is required")

    defs = []
    for index, column in enumerate(columns):
        if not isinstance(column, dict):
            raise InvalidArgument(f"columns[{index}]", "expected object")
        name = column.get("name")
        col_type = column.get("type")
        if not isinstance(name, str) or not _IDENTIFIER.match(name) or "." in name:
            raise InvalidArgument(f"columns[{index}].name", f"not a valid identifier: {name!r}")
        if not isinstance(col_type, str) or not _COLUMN_TYPE.match(col_type.strip()):
            raise InvalidArgument(f"columns[{index}].type", f"not a valid column type: {col_type!r}")
        parts = [name, col_type.strip()]
        if column.get("primaryKey"):
            parts.append("PRIMARY KEY")
        if column.get("notNull"):
            parts.append("NOT NULL")
        default = column.get("default")
        if default not in (None, ""):
            if ";" in str(default):
                raise InvalidArgument(f"columns[{index}].default", "must be a single expression")
            parts.append(f"DEFAULT {default}")
        defs.append(" ".join(parts))
    return f"CREATE TABLE IF NOT EXISTS {table_name} ({', '.join(defs)});"


class SupabaseClient(PlatformClient):
    platform = "supabase"

    def __init__(self, token: str, *, base_url: str = DEFAULT_SUPABASE_API_URL, **kwargs):
        super().__init__(token, base_url=base_url, **kwargs)

    def _error_message(self, payload: Any, status_code: int) -> str:
        detail = _coerce_error_detail(payload, f"HTTP {status_code}")
        return f"Supabase API error: {detail}"

    async def list_projects(self) -> Any:
        return await self._request("GET", "/projects")

    async def get_project(self, project_ref: str) -> Any:
        return await self._request("GET", f"/projects/{project_ref}")

    async def create_project(
        self,
        name: str,
        organization_id: str,
        db_password: str,
        region: str = "us-east-1",
    ) -> Any:
        return await self._request(
            "POST",
            "/projects",
            json_body={
                "name": name,
                "organization_id": organization_id,
                "db_pass": db_password,
                "region": region,
                "plan": "free",
            },
        )

    async def list_organizations(self) -> Any:
        return await self._request("GET", "/organizations")

    async def run_sql(self, project_ref: str, sql: str) -> Any:
        return await self._request(
            "POST",
            f"/projects/{project_ref}/database/query",
            json_body={"query": sql},
        )

    async def list_tables(self, project_ref: str) -> Any:
        return await self.run_sql(project_ref, LIST_TABLES_SQL)

    async def create_table(self, project_ref: str, table_name: str, columns: List[Dict[str, Any]]) -> Dict[str, Any]:
        sql = build_create_table_sql(table_name, columns)
        result = await self.run_sql(project_ref, sql)
        return {"success": True, "table": table_name, "sql": sql, "result": result}
