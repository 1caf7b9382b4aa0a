"""Railway deployment tools."""

from typing import Any, Dict, Optional

import httpx

from vocal_bridge.core.config import PlatformConfig
from vocal_bridge.core.errors import InvalidArgument
from vocal_bridge.mcp.arguments import optional_str, require_dict, require_str
from vocal_bridge.mcp.registry import ToolRegistry, object_schema
from vocal_bridge.platforms.railway import RailwayClient

GROUP = "railway"

_TOKEN = {"type": "string", "description": "Railway API token"}
_SERVICE_ID = {"type": "string", "description": "Service ID"}
_ENVIRONMENT_ID = {"type": "string", "description": "Environment ID"}
_PROJECT_ID = {"type": "string", "description": "Project ID"}


def register_railway_tools(
    registry: ToolRegistry,
    settings: PlatformConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> None:

    def client_for(args: Dict[str, Any]) -> RailwayClient:
        return RailwayClient(
            require_str(args, "token"),
            base_url=settings.railway_api_url,
            timeout=settings.request_timeout_seconds,
            http_client=http_client,
        )

    @registry.tool(
        "railway_list_projects",
        "List all Railway projects for the authenticated user, with environments and services.",
        object_schema({"token": _TOKEN}, required=["token"]),
        group=GROUP,
        read_only=True,
    )
    async def railway_list_projects(args: Dict[str, Any]) -> Any:
        async with client_for(args) as client:
            return await client.list_projects()

    @registry.tool(
        "railway_create_project",
        "Create a new Railway project.",
        object_schema(
            {
                "token": _TOKEN,
                "name": {"type": "string", "description": "Project name"},
                "description": {"type": "string", "description": "Project description"},
            },
            required=["token", "name"],
        ),
        group=GROUP,
    )
    async def railway_create_project(args: Dict[str, Any]) -> Any:
        name = require_str(args, "name")
        description = optional_str(args, "description", "")
        async with client_for(args) as client:
            return await client.create_project(name, description)

    @registry.tool(
        "railway_create_service",
        "Create a service in a Railway project from a GitHub repository.",
        object_schema(
            {
                "token": _TOKEN,
                "projectId": _PROJECT_ID,
                "environmentId": _ENVIRONMENT_ID,
                "repoUrl": {"type": "string", "description": "GitHub repository, e.g. owner/repo"},
                "branch": {"type": "string", "description": "Branch name (default: main)"},
            },
            required=["token", "projectId", "environmentId", "repoUrl"],
        ),
        group=GROUP,
    )
    async def railway_create_service(args: Dict[str, Any]) -> Any:
        project_id = require_str(args, "projectId")
        environment_id = require_str(args, "environmentId")
        repo_url = require_str(args, "repoUrl")
        branch = optional_str(args, "branch", "main")
        async with client_for(args) as client:
            return await client.create_service(project_id, environment_id, repo_url, branch)

    @registry.tool(
        "railway_deploy",
        "Trigger a deployment of a Railway service.",
        object_schema(
            {"token": _TOKEN, "serviceId": _SERVICE_ID, "environmentId": _ENVIRONMENT_ID},
            required=["token", "serviceId", "environmentId"],
        ),
        group=GROUP,
    )
    async def railway_deploy(args: Dict[str, Any]) -> Any:
        service_id = require_str(args, "serviceId")
        environment_id = require_str(args, "environmentId")
        async with client_for(args) as client:
            return await client.deploy(service_id, environment_id)

    @registry.tool(
        "railway_generate_domain",
        "Generate a public railway.app domain for a service.",
        object_schema(
            {"token": _TOKEN, "serviceId": _SERVICE_ID, "environmentId": _ENVIRONMENT_ID},
            required=["token", "serviceId", "environmentId"],
        ),
        group=GROUP,
    )
    async def railway_generate_domain(args: Dict[str, Any]) -> Any:
        service_id = require_str(args, "serviceId")
        environment_id = require_str(args, "environmentId")
        async with client_for(args) as client:
            return await client.generate_domain(service_id, environment_id)

    @registry.tool(
        "railway_set_variables",
        "Set environment variables on a Railway service.",
        object_schema(
            {
                "token": _TOKEN,
                "serviceId": _SERVICE_ID,
                "environmentId": _ENVIRONMENT_ID,
                "variables": {
                    "type": "object",
                    "description": "Key-value pairs of environment variables",
                    "additionalProperties": {"type": "string"},
                },
                "projectId": _PROJECT_ID,
            },
            required=["token", "serviceId", "environmentId", "variables"],
        ),
        group=GROUP,
        idempotent=True,
    )
    async def railway_set_variables(args: Dict[str, Any]) -> Any:
        service_id = require_str(args, "serviceId")
        environment_id = require_str(args, "environmentId")
        variables = require_dict(args, "variables")
        if not variables:
            raise InvalidArgument("variables", "at least one variable is required")
        project_id = optional_str(args, "projectId")
        async with client_for(args) as client:
            return await client.set_variables(service_id, environment_id, variables, project_id)

    @registry.tool(
        "railway_get_deployments",
        "List recent deployments of a Railway project.",
        object_schema({"token": _TOKEN, "projectId": _PROJECT_ID}, required=["token", "projectId"]),
        group=GROUP,
        read_only=True,
    )
    async def railway_get_deployments(args: Dict[str, Any]) -> Any:
        project_id = require_str(args, "projectId")
        async with client_for(args) as client:
            return await client.get_deployments(project_id)
