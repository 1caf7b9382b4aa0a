"""
GitHub REST API client.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from vocal_bridge.core.errors import InvalidArgument, PlatformAPIError
from vocal_bridge.platforms.base import PlatformClient

DEFAULT_GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"


def _seg(value: str) -> str:
    """Quote a single URL path segment."""
    return quote(str(value), safe="")


def _path(value: str) -> str:
    """Quote a repository file path, keeping its slashes."""
    return quote(str(value).strip("/"), safe="/")


class GitHubClient(PlatformClient):
    platform = "github"

    def __init__(self, token: str, *, base_url: str = DEFAULT_GITHUB_API_URL, **kwargs):
        super().__init__(token, base_url=base_url, **kwargs)

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Accept"] = "application/vnd.github.v3+json"
        headers["X-GitHub-Api-Version"] = GITHUB_API_VERSION
        return headers

    def _repo(self, owner: str, repo: str) -> str:
        return f"/repos/{_seg(owner)}/{_seg(repo)}"

    # -- account -------------------------------------------------------

    async def get_user(self) -> Dict[str, Any]:
        return await self._request("GET", "/user")

    async def verify_token(self) -> Dict[str, Any]:
        try:
            user = await self.get_user()
        except PlatformAPIError as exc:
            return {"valid": False, "error": str(exc)}
        return {
            "valid": True,
            "user": {
                "login": user.get("login"),
                "name": user.get("name"),
                "email": user.get("email"),
                "avatar_url": user.get("avatar_url"),
            },
        }

    # -- repositories --------------------------------------------------

    async def list_repositories(self, sort: str = "updated", per_page: int = 30) -> Any:
        return await self._request("GET", "/user/repos", params={"sort": sort, "per_page": per_page})

    async def get_repository(self, owner: str, repo: str) -> Any:
        return await self._request("GET", self._repo(owner, repo))

    async def create_repository(
        self,
        name: str,
        description: str = "",
        private: bool = False,
        auto_init: bool = True,
    ) -> Any:
        return await self._request(
            "POST",
            "/user/repos",
            json_body={
                "name": name,
                "description": description,
                "private": private,
                "auto_init": auto_init,
            },
        )

    async def delete_repository(self, owner: str, repo: str) -> Any:
        return await self._request("DELETE", self._repo(owner, repo))

    # -- contents ------------------------------------------------------

    async def get_file_contents(self, owner: str, repo: str, path: str, ref: str = "main") -> Any:
        data = await self._request(
            "GET",
            f"{self._repo(owner, repo)}/contents/{_path(path)}",
            params={"ref": ref},
        )
        if isinstance(data, dict) and data.get("encoding") == "base64" and data.get("content"):
            try:
                data["decodedContent"] = base64.b64decode(data["content"]).decode("utf-8", errors="replace")
            except (binascii.Error, ValueError):
                data["decodedContent"] = None
        return data

    async def create_or_update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        branch: str = "main",
        sha: Optional[str] = None,
    ) -> Any:
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            body["sha"] = sha
        return await self._request("PUT", f"{self._repo(owner, repo)}/contents/{_path(path)}", json_body=body)

    async def delete_file(
        self,
        owner: str,
        repo: str,
        path: str,
        message: str,
        sha: str,
        branch: str = "main",
    ) -> Any:
        return await self._request(
            "DELETE",
            f"{self._repo(owner, repo)}/contents/{_path(path)}",
            json_body={"message": message, "sha": sha, "branch": branch},
        )

    async def push_files(
        self,
        owner: str,
        repo: str,
        files: List[Dict[str, Any]],
        message: str,
        branch: str = "main",
    ) -> Dict[str, Any]:
        """Commit several files at once through the git data API."""
        for index, item in enumerate(files):
            if not isinstance(item, dict) or not isinstance(item.get("path"), str) or not isinstance(item.get("content"), str):
                raise InvalidArgument(f"files[{index}]", "expected {path: string, content: string}")

        base = self._repo(owner, repo)
        ref = await self._request("GET", f"{base}/git/ref/heads/{_path(branch)}")
        head_sha = ref["object"]["sha"]
        head_commit = await self._request("GET", f"{base}/git/commits/{head_sha}")
        base_tree_sha = head_commit["tree"]["sha"]

        blobs = await asyncio.gather(
            *(
                self._request(
                    "POST",
                    f"{base}/git/blobs",
                    json_body={"content": item["content"], "encoding": "utf-8"},
                )
                for item in files
            )
        )
        tree_items = [
            {"path": item["path"].strip("/"), "mode": "100644", "type": "blob", "sha": blob["sha"]}
            for item, blob in zip(files, blobs)
        ]
        tree = await self._request(
            "POST",
            f"{base}/git/trees",
            json_body={"base_tree": base_tree_sha, "tree": tree_items},
        )
        commit = await self._request(
            "POST",
            f"{base}/git/commits",
            json_body={"message": message, "tree": tree["sha"], "parents": [head_sha]},
        )
        await self._request(
            "PATCH",
            f"{base}/git/refs/heads/{_path(branch)}",
            json_body={"sha": commit["sha"]},
        )
        return {"commit": commit, "filesUpdated": len(files)}

    async def get_tree(self, owner: str, repo: str, sha: str = "main", recursive: bool = True) -> Any:
        params = {"recursive": "1"} if recursive else None
        return await self._request("GET", f"{self._repo(owner, repo)}/git/trees/{_seg(sha)}", params=params)

    async def list_contents(self, owner: str, repo: str, path: str = "", ref: str = "main") -> Any:
        endpoint = f"{self._repo(owner, repo)}/contents"
        if path and path.strip("/"):
            endpoint = f"{endpoint}/{_path(path)}"
        return await self._request("GET", endpoint, params={"ref": ref})

    # -- branches and commits -----------------------------------------

    async def list_branches(self, owner: str, repo: str) -> Any:
        return await self._request("GET", f"{self._repo(owner, repo)}/branches")

    async def get_branch(self, owner: str, repo: str, branch: str) -> Any:
        return await self._request("GET", f"{self._repo(owner, repo)}/branches/{_path(branch)}")

    async def create_branch(self, owner: str, repo: str, branch_name: str, from_branch: str = "main") -> Any:
        source = await self.get_branch(owner, repo, from_branch)
        return await self._request(
            "POST",
            f"{self._repo(owner, repo)}/git/refs",
            json_body={"ref": f"refs/heads/{branch_name}", "sha": source["commit"]["sha"]},
        )

    async def delete_branch(self, owner: str, repo: str, branch: str) -> Any:
        return await self._request("DELETE", f"{self._repo(owner, repo)}/git/refs/heads/{_path(branch)}")

    async def list_commits(self, owner: str, repo: str, branch: str = "main", per_page: int = 30) -> Any:
        return await self._request(
            "GET",
            f"{self._repo(owner, repo)}/commits",
            params={"sha": branch, "per_page": per_page},
        )

    async def get_commit(self, owner: str, repo: str, sha: str) -> Any:
        return await self._request("GET", f"{self._repo(owner, repo)}/commits/{_seg(sha)}")

    # -- pull requests and issues -------------------------------------

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str = "",
        draft: bool = False,
    ) -> Any:
        return await self._request(
            "POST",
            f"{self._repo(owner, repo)}/pulls",
            json_body={"title": title, "head": head, "base": base, "body": body, "draft": draft},
        )

    async def list_pull_requests(self, owner: str, repo: str, state: str = "open", per_page: int = 30) -> Any:
        return await self._request(
            "GET",
            f"{self._repo(owner, repo)}/pulls",
            params={"state": state, "per_page": per_page},
        )

    async def get_pull_request(self, owner: str, repo: str, pull_number: int) -> Any:
        return await self._request("GET", f"{self._repo(owner, repo)}/pulls/{int(pull_number)}")

    async def merge_pull_request(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        commit_title: str = "",
        commit_message: str = "",
        merge_method: str = "merge",
    ) -> Any:
        body: Dict[str, Any] = {"merge_method": merge_method}
        if commit_title:
            body["commit_title"] = commit_title
        if commit_message:
            body["commit_message"] = commit_message
        return await self._request(
            "PUT",
            f"{self._repo(owner, repo)}/pulls/{int(pull_number)}/merge",
            json_body=body,
        )

    async def create_issue(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str = "",
        labels: Optional[List[str]] = None,
        assignees: Optional[List[str]] = None,
    ) -> Any:
        return await self._request(
            "POST",
            f"{self._repo(owner, repo)}/issues",
            json_body={
                "title": title,
                "body": body,
                "labels": labels or [],
                "assignees": assignees or [],
            },
        )

    async def list_issues(self, owner: str, repo: str, state: str = "open", per_page: int = 30) -> Any:
        return await self._request(
            "GET",
            f"{self._repo(owner, repo)}/issues",
            params={"state": state, "per_page": per_page},
        )

    async def add_comment(self, owner: str, repo: str, issue_number: int, body: str) -> Any:
        return await self._request(
            "POST",
            f"{self._repo(owner, repo)}/issues/{int(issue_number)}/comments",
            json_body={"body": body},
        )

    # -- search --------------------------------------------------------

    async def search_repositories(
        self,
        query: str,
        sort: str = "stars",
        order: str = "desc",
        per_page: int = 10,
    ) -> Any:
        return await self._request(
            "GET",
            "/search/repositories",
            params={"q": query, "sort": sort, "order": order, "per_page": per_page},
        )

    async def search_code(self, query: str, per_page: int = 30) -> Any:
        return await self._request("GET", "/search/code", params={"q": query, "per_page": per_page})
