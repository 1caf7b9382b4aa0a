"""Supabase project and database tools."""

from typing import Any, Dict, Optional

import httpx

from vocal_bridge.core.config import PlatformConfig
from vocal_bridge.mcp.arguments import optional_str, require_list, require_str
from vocal_bridge.mcp.registry import ToolRegistry, object_schema
from vocal_bridge.platforms.supabase import SupabaseClient

GROUP = "supabase"

_TOKEN = {"type": "string", "description": "Supabase access token"}
_PROJECT_REF = {"type": "string", "description": "Project reference ID"}


def register_supabase_tools(
    registry: ToolRegistry,
    settings: PlatformConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> None:

    def client_for(args: Dict[str, Any]) -> SupabaseClient:
        return SupabaseClient(
            require_str(args, "token"),
            base_url=settings.supabase_api_url,
            timeout=settings.request_timeout_seconds,
            http_client=http_client,
        )

    @registry.tool(
        "supabase_list_projects",
        "List all Supabase projects.",
        object_schema({"token": _TOKEN}, required=["token"]),
        group=GROUP,
        read_only=True,
    )
    async def supabase_list_projects(args: Dict[str, Any]) -> Any:
        async with client_for(args) as client:
            return await client.list_projects()

    @registry.tool(
        "supabase_get_project",
        "Get details of a Supabase project.",
        object_schema({"token": _TOKEN, "projectRef": _PROJECT_REF}, required=["token", "projectRef"]),
        group=GROUP,
        read_only=True,
    )
    async def supabase_get_project(args: Dict[str, Any]) -> Any:
        project_ref = require_str(args, "projectRef")
        async with client_for(args) as client:
            return await client.get_project(project_ref)

    @registry.tool(
        "supabase_create_project",
        "Create a new Supabase project on the free plan.",
        object_schema(
            {
                "token": _TOKEN,
                "name": {"type": "string", "description": "Project name"},
                "organizationId": {"type": "string", "description": "Organization ID"},
                "dbPassword": {"type": "string", "description": "Database password"},
                "region": {"type": "string", "description": "Region (default: us-east-1)"},
            },
            required=["token", "name", "organizationId", "dbPassword"],
        ),
        group=GROUP,
    )
    async def supabase_create_project(args: Dict[str, Any]) -> Any:
        name = require_str(args, "name")
        organization_id = require_str(args, "organizationId")
        db_password = require_str(args, "dbPassword")
        region = optional_str(args, "region", "us-east-1")
        async with client_for(args) as client:
            return await client.create_project(name, organization_id, db_password, region)

    @registry.tool(
        "supabase_list_organizations",
        "List Supabase organizations the token can access.",
        object_schema({"token": _TOKEN}, required=["token"]),
        group=GROUP,
        read_only=True,
    )
    async def supabase_list_organizations(args: Dict[str, Any]) -> Any:
        async with client_for(args) as client:
            return await client.list_organizations()

    @registry.tool(
        "supabase_run_sql",
        "Run a SQL statement against a Supabase project's database.",
        object_schema(
            {
                "token": _TOKEN,
                "projectRef": _PROJECT_REF,
                "sql": {"type": "string", "description": "SQL query to execute"},
            },
            required=["token", "projectRef", "sql"],
        ),
        group=GROUP,
        destructive=True,
    )
    async def supabase_run_sql(args: Dict[str, Any]) -> Any:
        project_ref = require_str(args, "projectRef")
        sql = require_str(args, "sql")
        async with client_for(args) as client:
            return await client.run_sql(project_ref, sql)

    @registry.tool(
        "supabase_list_tables",
        "List tables in the public schema of a Supabase project.",
        object_schema({"token": _TOKEN, "projectRef": _PROJECT_REF}, required=["token", "projectRef"]),
        group=GROUP,
        read_only=True,
    )
    async def supabase_list_tables(args: Dict[str, Any]) -> Any:
        project_ref = require_str(args, "projectRef")
        async with client_for(args) as client:
            return await client.list_tables(project_ref)

    @registry.tool(
        "supabase_create_table",
        "Create a table (if it does not exist) in a Supabase project.",
        object_schema(
            {
                "token": _TOKEN,
                "projectRef": _PROJECT_REF,
                "tableName": {"type": "string", "description": "Table name"},
                "columns": {
                    "type": "array",
                    "description": "Column definitions",
                    "items": object_schema(
                        {
                            "name": {"type": "string"},
                            "type": {"type": "string"},
                            "primaryKey": {"type": "boolean"},
                            "notNull": {"type": "boolean"},
                            "default": {"type": "string"},
                        },
                        required=["name", "type"],
                    ),
                },
            },
            required=["token", "projectRef", "tableName", "columns"],
        ),
        group=GROUP,
        idempotent=True,
    )
    async def supabase_create_table(args: Dict[str, Any]) -> Any:
        project_ref = require_str(args, "projectRef")
        table_name = require_str(args, "tableName")
        columns = require_list(args, "columns")
        async with client_for(args) as client:
            return await client.create_table(project_ref, table_name, columns)
