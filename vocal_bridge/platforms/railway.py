"""
Railway deployment platform client (GraphQL API).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from vocal_bridge.core.errors import PlatformAPIError
from vocal_bridge.platforms.base import PlatformClient

DEFAULT_RAILWAY_API_URL = "https://backboard.railway.app/graphql/v2"

LIST_PROJECTS_QUERY = """
query {
  me {
    projects {
      edges {
        node {
          id
          name
          description
          createdAt
          environments { edges { node { id name } } }
          services { edges { node { id name } } }
        }
      }
    }
  }
}
"""

CREATE_PROJECT_MUTATION = """
mutation($input: ProjectCreateInput!) {
  projectCreate(input: $input) {
    id
    name
    environments { edges { node { id name } } }
  }
}
"""

CREATE_SERVICE_MUTATION = """
mutation($input: ServiceCreateInput!) {
  serviceCreate(input: $input) { id name }
}
"""

DEPLOY_MUTATION = """
mutation($serviceId: String!, $environmentId: String!) {
  serviceInstanceDeploy(serviceId: $serviceId, environmentId: $environmentId)
}
"""

GENERATE_DOMAIN_MUTATION = """
mutation($input: ServiceDomainCreateInput!) {
  serviceDomainCreate(input: $input) { id domain }
}
"""

UPSERT_VARIABLES_MUTATION = """
mutation($input: VariableCollectionUpsertInput!) {
  variableCollectionUpsert(input: $input)
}
"""

DEPLOYMENTS_QUERY = """
query($projectId: String!) {
  deployments(input: { projectId: $projectId }) {
    edges {
      node {
        id
        status
        createdAt
        staticUrl
        service { name }
      }
    }
  }
}
"""


def _nodes(connection: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten a GraphQL relay connection into its nodes."""
    if not connection:
        return []
    return [edge["node"] for edge in connection.get("edges", []) if edge.get("node") is not None]


class RailwayClient(PlatformClient):
    platform = "railway"

    def __init__(self, token: str, *, base_url: str = DEFAULT_RAILWAY_API_URL, **kwargs):
        super().__init__(token, base_url=base_url, **kwargs)

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload = await self._request("POST", json_body={"query": query, "variables": variables or {}})
        if isinstance(payload, dict) and payload.get("errors"):
            first = payload["errors"][0]
            message = first.get("message") if isinstance(first, dict) else str(first)
            raise PlatformAPIError(message or "Railway GraphQL error", platform=self.platform, payload=payload)
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            raise PlatformAPIError("Railway returned no data", platform=self.platform, payload=payload)
        return payload["data"]

    async def list_projects(self) -> List[Dict[str, Any]]:
        data = await self.graphql(LIST_PROJECTS_QUERY)
        projects = []
        for node in _nodes(data["me"]["projects"]):
            projects.append(
                {
                    **node,
                    "environments": _nodes(node.get("environments")),
                    "services": _nodes(node.get("services")),
                }
            )
        return projects

    async def create_project(self, name: str, description: str = "") -> Dict[str, Any]:
        data = await self.graphql(
            CREATE_PROJECT_MUTATION,
            {"input": {"name": name, "description": description}},
        )
        project = data["projectCreate"]
        return {**project, "environments": _nodes(project.get("environments"))}

    async def create_service(
        self,
        project_id: str,
        environment_id: str,
        repo_url: str,
        branch: str = "main",
    ) -> Dict[str, Any]:
        data = await self.graphql(
            CREATE_SERVICE_MUTATION,
            {
                "input": {
                    "projectId": project_id,
                    "environmentId": environment_id,
                    "source": {"repo": repo_url},
                    "branch": branch,
                }
            },
        )
        return data["serviceCreate"]

    async def deploy(self, service_id: str, environment_id: str) -> Dict[str, Any]:
        data = await self.graphql(
            DEPLOY_MUTATION,
            {"serviceId": service_id, "environmentId": environment_id},
        )
        return {"success": True, "deploymentId": data.get("serviceInstanceDeploy")}

    async def generate_domain(self, service_id: str, environment_id: str) -> Dict[str, Any]:
        data = await self.graphql(
            GENERATE_DOMAIN_MUTATION,
            {"input": {"serviceId": service_id, "environmentId": environment_id}},
        )
        return data["serviceDomainCreate"]

    async def set_variables(
        self,
        service_id: str,
        environment_id: str,
        variables: Dict[str, str],
        project_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        variables_input: Dict[str, Any] = {
            "serviceId": service_id,
            "environmentId": environment_id,
            "variables": {str(k): str(v) for k, v in variables.items()},
        }
        if project_id:
            variables_input["projectId"] = project_id
        await self.graphql(UPSERT_VARIABLES_MUTATION, {"input": variables_input})
        return {"success": True, "count": len(variables)}

    async def get_deployments(self, project_id: str) -> List[Dict[str, Any]]:
        data = await self.graphql(DEPLOYMENTS_QUERY, {"projectId": project_id})
        return _nodes(data["deployments"])
