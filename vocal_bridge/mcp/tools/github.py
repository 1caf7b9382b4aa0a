"""GitHub repository tools."""

from typing import Any, Dict, Optional

import httpx

from vocal_bridge.core.config import PlatformConfig
from vocal_bridge.mcp.arguments import (
    optional_bool,
    optional_int,
    optional_list,
    optional_str,
    require_int,
    require_list,
    require_str,
)
from vocal_bridge.mcp.registry import ToolRegistry, object_schema
from vocal_bridge.platforms.github import GitHubClient

GROUP = "github"

_TOKEN = {"type": "string", "description": "GitHub personal access token"}
_OWNER = {"type": "string", "description": "Repository owner"}
_REPO = {"type": "string", "description": "Repository name"}
_BRANCH = {"type": "string", "description": "Branch name (default: main)"}
_PER_PAGE = {"type": "integer", "minimum": 1, "maximum": 100, "description": "Results per page (default: 30)"}
_STATE = {"type": "string", "enum": ["open", "closed", "all"], "description": "State (default: open)"}


def _repo_schema(extra: Optional[Dict[str, Dict[str, Any]]] = None, required=()):
    properties = {"token": _TOKEN, "owner": _OWNER, "repo": _REPO}
    properties.update(extra or {})
    return object_schema(properties, required=["token", "owner", "repo", *required])


def _owner_repo(args: Dict[str, Any]):
    return require_str(args, "owner"), require_str(args, "repo")


def register_github_tools(
    registry: ToolRegistry,
    settings: PlatformConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> None:

    def client_for(args: Dict[str, Any]) -> GitHubClient:
        return GitHubClient(
            require_str(args, "token"),
            base_url=settings.github_api_url,
            timeout=settings.request_timeout_seconds,
            http_client=http_client,
        )

    # -- account -------------------------------------------------------

    @registry.tool(
        "github_verify_token",
        "Check whether a GitHub token is valid and whose it is.",
        object_schema({"token": _TOKEN}, required=["token"]),
        group=GROUP,
        read_only=True,
    )
    async def github_verify_token(args: Dict[str, Any]) -> Any:
        async with client_for(args) as client:
            return await client.verify_token()

    @registry.tool(
        "github_get_user",
        "Get the authenticated GitHub user.",
        object_schema({"token": _TOKEN}, required=["token"]),
        group=GROUP,
        read_only=True,
    )
    async def github_get_user(args: Dict[str, Any]) -> Any:
        async with client_for(args) as client:
            return await client.get_user()

    # -- repositories --------------------------------------------------

    @registry.tool(
        "github_list_repositories",
        "List the authenticated user's repositories.",
        object_schema(
            {
                "token": _TOKEN,
                "sort": {
                    "type": "string",
                    "enum": ["created", "updated", "pushed", "full_name"],
                    "description": "Sort order (default: updated)",
                },
                "perPage": _PER_PAGE,
            },
            required=["token"],
        ),
        group=GROUP,
        read_only=True,
    )
    async def github_list_repositories(args: Dict[str, Any]) -> Any:
        sort = optional_str(args, "sort", "updated")
        per_page = optional_int(args, "perPage", 30, minimum=1, maximum=100)
        async with client_for(args) as client:
            return await client.list_repositories(sort, per_page)

    @registry.tool(
        "github_get_repository",
        "Get details of a repository.",
        _repo_schema(),
        group=GROUP,
        read_only=True,
    )
    async def github_get_repository(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        async with client_for(args) as client:
            return await client.get_repository(owner, repo)

    @registry.tool(
        "github_create_repository",
        "Create a repository for the authenticated user.",
        object_schema(
            {
                "token": _TOKEN,
                "name": {"type": "string", "description": "Repository name"},
                "description": {"type": "string"},
                "isPrivate": {"type": "boolean", "description": "Make repository private (default: false)"},
                "autoInit": {"type": "boolean", "description": "Initialize with README (default: true)"},
            },
            required=["token", "name"],
        ),
        group=GROUP,
    )
    async def github_create_repository(args: Dict[str, Any]) -> Any:
        name = require_str(args, "name")
        description = optional_str(args, "description", "")
        private = optional_bool(args, "isPrivate", False)
        auto_init = optional_bool(args, "autoInit", True)
        async with client_for(args) as client:
            return await client.create_repository(name, description, private, auto_init)

    @registry.tool(
        "github_delete_repository",
        "Permanently delete a repository.",
        _repo_schema(),
        group=GROUP,
        destructive=True,
    )
    async def github_delete_repository(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        async with client_for(args) as client:
            return await client.delete_repository(owner, repo)

    # -- contents ------------------------------------------------------

    @registry.tool(
        "github_get_file_contents",
        "Read a file from a repository; text is returned decoded in decodedContent.",
        _repo_schema(
            {
                "path": {"type": "string", "description": "File path"},
                "ref": {"type": "string", "description": "Branch or commit (default: main)"},
            },
            required=["path"],
        ),
        group=GROUP,
        read_only=True,
    )
    async def github_get_file_contents(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        path = require_str(args, "path")
        ref = optional_str(args, "ref", "main")
        async with client_for(args) as client:
            return await client.get_file_contents(owner, repo, path, ref)

    @registry.tool(
        "github_create_or_update_file",
        "Create or update a single file with a commit. Pass sha when updating.",
        _repo_schema(
            {
                "path": {"type": "string"},
                "content": {"type": "string"},
                "message": {"type": "string", "description": "Commit message"},
                "branch": _BRANCH,
                "sha": {"type": "string", "description": "Blob SHA of the file being replaced"},
            },
            required=["path", "content", "message"],
        ),
        group=GROUP,
    )
    async def github_create_or_update_file(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        path = require_str(args, "path")
        content = require_str(args, "content", allow_empty=True)
        message = require_str(args, "message")
        branch = optional_str(args, "branch", "main")
        sha = optional_str(args, "sha")
        async with client_for(args) as client:
            return await client.create_or_update_file(owner, repo, path, content, message, branch, sha)

    @registry.tool(
        "github_delete_file",
        "Delete a file with a commit.",
        _repo_schema(
            {
                "path": {"type": "string"},
                "message": {"type": "string", "description": "Commit message"},
                "sha": {"type": "string", "description": "Blob SHA of the file to delete"},
                "branch": _BRANCH,
            },
            required=["path", "message", "sha"],
        ),
        group=GROUP,
        destructive=True,
    )
    async def github_delete_file(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        path = require_str(args, "path")
        message = require_str(args, "message")
        sha = require_str(args, "sha")
        branch = optional_str(args, "branch", "main")
        async with client_for(args) as client:
            return await client.delete_file(owner, repo, path, message, sha, branch)

    @registry.tool(
        "github_push_files",
        "Commit multiple files to a branch in a single commit.",
        _repo_schema(
            {
                "files": {
                    "type": "array",
                    "items": object_schema(
                        {"path": {"type": "string"}, "content": {"type": "string"}},
                        required=["path", "content"],
                    ),
                },
                "message": {"type": "string", "description": "Commit message"},
                "branch": _BRANCH,
            },
            required=["files", "message"],
        ),
        group=GROUP,
    )
    async def github_push_files(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        files = require_list(args, "files")
        message = require_str(args, "message")
        branch = optional_str(args, "branch", "main")
        async with client_for(args) as client:
            return await client.push_files(owner, repo, files, message, branch)

    @registry.tool(
        "github_get_tree",
        "Get a repository tree (recursive by default).",
        _repo_schema(
            {
                "sha": {"type": "string", "description": "Tree SHA or branch (default: main)"},
                "recursive": {"type": "boolean", "description": "Include subtrees (default: true)"},
            }
        ),
        group=GROUP,
        read_only=True,
    )
    async def github_get_tree(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        sha = optional_str(args, "sha", "main")
        recursive = optional_bool(args, "recursive", True)
        async with client_for(args) as client:
            return await client.get_tree(owner, repo, sha, recursive)

    @registry.tool(
        "github_list_contents",
        "List files and directories at a repository path.",
        _repo_schema(
            {
                "path": {"type": "string", "description": "Directory path (default: root)"},
                "ref": {"type": "string", "description": "Branch or commit (default: main)"},
            }
        ),
        group=GROUP,
        read_only=True,
    )
    async def github_list_contents(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        path = optional_str(args, "path", "")
        ref = optional_str(args, "ref", "main")
        async with client_for(args) as client:
            return await client.list_contents(owner, repo, path, ref)

    # -- branches and commits -----------------------------------------

    @registry.tool(
        "github_list_branches",
        "List branches of a repository.",
        _repo_schema(),
        group=GROUP,
        read_only=True,
    )
    async def github_list_branches(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        async with client_for(args) as client:
            return await client.list_branches(owner, repo)

    @registry.tool(
        "github_create_branch",
        "Create a branch from the head of another branch.",
        _repo_schema(
            {
                "branchName": {"type": "string", "description": "New branch name"},
                "fromBranch": {"type": "string", "description": "Source branch (default: main)"},
            },
            required=["branchName"],
        ),
        group=GROUP,
    )
    async def github_create_branch(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        branch_name = require_str(args, "branchName")
        from_branch = optional_str(args, "fromBranch", "main")
        async with client_for(args) as client:
            return await client.create_branch(owner, repo, branch_name, from_branch)

    @registry.tool(
        "github_delete_branch",
        "Delete a branch.",
        _repo_schema({"branch": {"type": "string", "description": "Branch to delete"}}, required=["branch"]),
        group=GROUP,
        destructive=True,
    )
    async def github_delete_branch(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        branch = require_str(args, "branch")
        async with client_for(args) as client:
            return await client.delete_branch(owner, repo, branch)

    @registry.tool(
        "github_list_commits",
        "List recent commits on a branch.",
        _repo_schema({"branch": _BRANCH, "perPage": _PER_PAGE}),
        group=GROUP,
        read_only=True,
    )
    async def github_list_commits(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        branch = optional_str(args, "branch", "main")
        per_page = optional_int(args, "perPage", 30, minimum=1, maximum=100)
        async with client_for(args) as client:
            return await client.list_commits(owner, repo, branch, per_page)

    @registry.tool(
        "github_get_commit",
        "Get a single commit with its changed files.",
        _repo_schema({"sha": {"type": "string", "description": "Commit SHA"}}, required=["sha"]),
        group=GROUP,
        read_only=True,
    )
    async def github_get_commit(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        sha = require_str(args, "sha")
        async with client_for(args) as client:
            return await client.get_commit(owner, repo, sha)

    # -- pull requests ---------------------------------------------------

    @registry.tool(
        "github_create_pull_request",
        "Open a pull request.",
        _repo_schema(
            {
                "title": {"type": "string"},
                "head": {"type": "string", "description": "Source branch"},
                "base": {"type": "string", "description": "Target branch"},
                "body": {"type": "string"},
                "draft": {"type": "boolean", "description": "Create as draft (default: false)"},
            },
            required=["title", "head", "base"],
        ),
        group=GROUP,
    )
    async def github_create_pull_request(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        title = require_str(args, "title")
        head = require_str(args, "head")
        base = require_str(args, "base")
        body = optional_str(args, "body", "")
        draft = optional_bool(args, "draft", False)
        async with client_for(args) as client:
            return await client.create_pull_request(owner, repo, title, head, base, body, draft)

    @registry.tool(
        "github_list_pull_requests",
        "List pull requests of a repository.",
        _repo_schema({"state": _STATE, "perPage": _PER_PAGE}),
        group=GROUP,
        read_only=True,
    )
    async def github_list_pull_requests(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        state = optional_str(args, "state", "open")
        per_page = optional_int(args, "perPage", 30, minimum=1, maximum=100)
        async with client_for(args) as client:
            return await client.list_pull_requests(owner, repo, state, per_page)

    @registry.tool(
        "github_get_pull_request",
        "Get a pull request.",
        _repo_schema({"pullNumber": {"type": "integer"}}, required=["pullNumber"]),
        group=GROUP,
        read_only=True,
    )
    async def github_get_pull_request(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        pull_number = require_int(args, "pullNumber")
        async with client_for(args) as client:
            return await client.get_pull_request(owner, repo, pull_number)

    @registry.tool(
        "github_merge_pull_request",
        "Merge a pull request.",
        _repo_schema(
            {
                "pullNumber": {"type": "integer"},
                "commitTitle": {"type": "string"},
                "commitMessage": {"type": "string"},
                "mergeMethod": {"type": "string", "enum": ["merge", "squash", "rebase"]},
            },
            required=["pullNumber"],
        ),
        group=GROUP,
    )
    async def github_merge_pull_request(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        pull_number = require_int(args, "pullNumber")
        commit_title = optional_str(args, "commitTitle", "")
        commit_message = optional_str(args, "commitMessage", "")
        merge_method = optional_str(args, "mergeMethod", "merge")
        async with client_for(args) as client:
            return await client.merge_pull_request(
                owner, repo, pull_number, commit_title, commit_message, merge_method
            )

    # -- issues --------------------------------------------------------

    @registry.tool(
        "github_create_issue",
        "Open an issue.",
        _repo_schema(
            {
                "title": {"type": "string"},
                "body": {"type": "string"},
                "labels": {"type": "array", "items": {"type": "string"}},
                "assignees": {"type": "array", "items": {"type": "string"}},
            },
            required=["title"],
        ),
        group=GROUP,
    )
    async def github_create_issue(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        title = require_str(args, "title")
        body = optional_str(args, "body", "")
        labels = optional_list(args, "labels")
        assignees = optional_list(args, "assignees")
        async with client_for(args) as client:
            return await client.create_issue(owner, repo, title, body, labels, assignees)

    @registry.tool(
        "github_list_issues",
        "List issues of a repository.",
        _repo_schema({"state": _STATE, "perPage": _PER_PAGE}),
        group=GROUP,
        read_only=True,
    )
    async def github_list_issues(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        state = optional_str(args, "state", "open")
        per_page = optional_int(args, "perPage", 30, minimum=1, maximum=100)
        async with client_for(args) as client:
            return await client.list_issues(owner, repo, state, per_page)

    @registry.tool(
        "github_add_comment",
        "Comment on an issue or pull request.",
        _repo_schema(
            {"issueNumber": {"type": "integer"}, "body": {"type": "string"}},
            required=["issueNumber", "body"],
        ),
        group=GROUP,
    )
    async def github_add_comment(args: Dict[str, Any]) -> Any:
        owner, repo = _owner_repo(args)
        issue_number = require_int(args, "issueNumber")
        body = require_str(args, "body")
        async with client_for(args) as client:
            return await client.add_comment(owner, repo, issue_number, body)

    # -- search --------------------------------------------------------

    @registry.tool(
        "github_search_repositories",
        "Search public repositories.",
        object_schema(
            {
                "token": _TOKEN,
                "query": {"type": "string", "description": "GitHub search query"},
                "sort": {"type": "string", "enum": ["stars", "forks", "updated"]},
                "order": {"type": "string", "enum": ["asc", "desc"]},
                "perPage": {"type": "integer", "minimum": 1, "maximum": 100},
            },
            required=["token", "query"],
        ),
        group=GROUP,
        read_only=True,
    )
    async def github_search_repositories(args: Dict[str, Any]) -> Any:
        query = require_str(args, "query")
        sort = optional_str(args, "sort", "stars")
        order = optional_str(args, "order", "desc")
        per_page = optional_int(args, "perPage", 10, minimum=1, maximum=100)
        async with client_for(args) as client:
            return await client.search_repositories(query, sort, order, per_page)

    @registry.tool(
        "github_search_code",
        "Search code across repositories.",
        object_schema(
            {
                "token": _TOKEN,
                "query": {"type": "string", "description": "GitHub code search query"},
                "perPage": _PER_PAGE,
            },
            required=["token", "query"],
        ),
        group=GROUP,
        read_only=True,
    )
    async def github_search_code(args: Dict[str, Any]) -> Any:
        query = require_str(args, "query")
        per_page = optional_int(args, "perPage", 30, minimum=1, maximum=100)
        async with client_for(args) as client:
            return await client.search_code(query, per_page)
