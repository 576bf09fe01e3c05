"""GitHub REST API tools (repositories, issues, pull requests, search)."""
from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional

from ..config import ServerSettings
from ..envelope import render_json
from ..server import ToolServer

TOKEN_ENV_VARS = ("GITHUB_PERSONAL_ACCESS_TOKEN", "GITHUB_API_TOKEN", "GITHUB_TOKEN")

OWNER: Dict[str, Any] = {"type": "string", "minLength": 1, "description": "Repository owner (username or organization)"}
REPO: Dict[str, Any] = {"type": "string", "minLength": 1, "description": "Repository name"}
ISSUE_NUMBER: Dict[str, Any] = {"type": "integer", "description": "Issue number", "minimum": 1}
PULL_NUMBER: Dict[str, Any] = {"type": "integer", "description": "Pull request number", "minimum": 1}
PAGE: Dict[str, Any] = {"type": "integer", "description": "Page number of the results", "minimum": 1}
PER_PAGE: Dict[str, Any] = {
    "type": "integer",
    "description": "Results per page (max 100)",
    "minimum": 1,
    "maximum": 100,
}
ORDER: Dict[str, Any] = {"type": "string", "enum": ["asc", "desc"], "description": "Sort order"}
STRING_LIST: Dict[str, Any] = {"type": "array", "items": {"type": "string"}}
SEARCH_QUERY: Dict[str, Any] = {"type": "string", "minLength": 1, "description": "Search query"}


def _schema(required: List[str], **properties: Any) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


def _number(value: Any) -> Any:
    """JSON numbers used in URL paths: 42.0 -> 42."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _summary(header: str, data: Any) -> str:
    return f"{header}\n\n{render_json(data)}"


def _repo_summary(repo: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": repo.get("name"),
        "full_name": repo.get("full_name"),
        "description": repo.get("description"),
        "html_url": repo.get("html_url"),
        "language": repo.get("language"),
        "stargazers_count": repo.get("stargazers_count"),
        "forks_count": repo.get("forks_count"),
        "updated_at": repo.get("updated_at"),
        "topics": repo.get("topics"),
    }


class GitHubServer(ToolServer):
    name = "github"
    version = "0.2.0"
    service = "GitHub"
    base_url = "https://api.github.com"

    def __init__(self, settings: Optional[ServerSettings] = None, *, transport=None) -> None:
        settings = settings or ServerSettings()
        # Resolved before super().__init__ so default_headers() can use it
        self.token = settings.get_env(*TOKEN_ENV_VARS)
        super().__init__(settings, transport=transport)
        if not self.token:
            self.logger.warning(
                "No GitHub token configured; read tools use anonymous access, write tools are disabled",
                extra={"server": self.name},
            )

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers["Accept"] = "application/vnd.github.v3+json"
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def _require_token(self) -> None:
        self.require_credential(self.token, "GITHUB_PERSONAL_ACCESS_TOKEN")

    def _repo_path(self, args: Dict[str, Any], suffix: str = "") -> str:
        return f"/repos/{args['owner']}/{args['repo']}{suffix}"

    def register_tools(self) -> None:
        # Repositories
        self.add_tool(
            "fetch_repositories",
            "Fetch GitHub repositories for a user or organization",
            _schema(
                ["username"],
                username={"type": "string", "description": "GitHub username or organization name"},
                type={
                    "type": "string",
                    "description": "Type of repositories (all, owner, member)",
                    "enum": ["all", "owner", "member"],
                    "default": "owner",
                },
                sort={
                    "type": "string",
                    "description": "Sort repositories by (created, updated, pushed, full_name)",
                    "enum": ["created", "updated", "pushed", "full_name"],
                    "default": "updated",
                },
                per_page={**PER_PAGE, "default": 30},
            ),
            self.fetch_repositories,
        )
        self.add_tool(
            "fetch_repository",
            "Fetch detailed information about a specific GitHub repository",
            _schema(["owner", "repo"], owner=OWNER, repo=REPO),
            self.fetch_repository,
        )
        self.add_tool(
            "search_repositories",
            "Search GitHub repositories using the GitHub search API",
            _schema(
                ["query"],
                query={"type": "string", "minLength": 1, "description": 'Search query (e.g. "language:python", "topic:mcp")'},
                sort={
                    "type": "string",
                    "description": "Sort by (stars, forks, help-wanted-issues, updated)",
                    "enum": ["stars", "forks", "help-wanted-issues", "updated"],
                },
                order=ORDER,
                page=PAGE,
                per_page={**PER_PAGE, "default": 30},
            ),
            self.search_repositories,
        )
        self.add_tool(
            "create_repository",
            "Create a new GitHub repository in your account",
            _schema(
                ["name"],
                name={"type": "string", "minLength": 1, "description": "Repository name"},
                description={"type": "string", "description": "Repository description"},
                private={"type": "boolean", "description": "Whether the repository should be private"},
                autoInit={"type": "boolean", "description": "Initialize with README.md"},
            ),
            self.create_repository,
        )
        self.add_tool(
            "fork_repository",
            "Fork a GitHub repository to your account or specified organization",
            _schema(
                ["owner", "repo"],
                owner=OWNER,
                repo=REPO,
                organization={
                    "type": "string",
                    "description": "Optional: organization to fork to (defaults to your personal account)",
                },
            ),
            self.fork_repository,
        )
        self.add_tool(
            "create_branch",
            "Create a new branch in a GitHub repository",
            _schema(
                ["owner", "repo", "branch"],
                owner=OWNER,
                repo=REPO,
                branch={"type": "string", "description": "Name for the new branch"},
                from_branch={
                    "type": "string",
                    "description": "Optional: source branch to create from (defaults to the repository's default branch)",
                },
            ),
            self.create_branch,
        )
        self.add_tool(
            "list_commits",
            "Get list of commits of a branch in a GitHub repository",
            _schema(["owner", "repo"], owner=OWNER, repo=REPO, sha={"type": "string"}, page=PAGE, per_page=PER_PAGE),
            self.list_commits,
        )

        # Files
        self.add_tool(
            "get_file_contents",
            "Get the contents of a file or directory from a GitHub repository",
            _schema(
                ["owner", "repo", "path"],
                owner=OWNER,
                repo=REPO,
                path={"type": "string", "description": "Path to the file or directory"},
                branch={"type": "string", "description": "Branch to get contents from"},
            ),
            self.get_file_contents,
        )
        self.add_tool(
            "create_or_update_file",
            "Create or update a single file in a GitHub repository",
            _schema(
                ["owner", "repo", "path", "content", "message", "branch"],
                owner=OWNER,
                repo=REPO,
                path={"type": "string", "description": "Path where to create/update the file"},
                content={"type": "string", "description": "Content of the file"},
                message={"type": "string", "description": "Commit message"},
                branch={"type": "string", "description": "Branch to create/update the file in"},
                sha={
                    "type": "string",
                    "description": "SHA of the file being replaced (required when updating existing files)",
                },
            ),
            self.create_or_update_file,
        )

        # Issues
        self.add_tool(
            "create_issue",
            "Create a new issue in a GitHub repository",
            _schema(
                ["owner", "repo", "title"],
                owner=OWNER,
                repo=REPO,
                title={"type": "string"},
                body={"type": "string"},
                assignees=STRING_LIST,
                milestone={"type": "integer"},
                labels=STRING_LIST,
            ),
            self.create_issue,
        )
        self.add_tool(
            "get_issue",
            "Get details of a specific issue in a GitHub repository.",
            _schema(["owner", "repo", "issue_number"], owner=OWNER, repo=REPO, issue_number=ISSUE_NUMBER),
            self.get_issue,
        )
        self.add_tool(
            "list_issues",
            "List issues in a GitHub repository with filtering options",
            _schema(
                ["owner", "repo"],
                owner=OWNER,
                repo=REPO,
                direction=ORDER,
                labels=STRING_LIST,
                page=PAGE,
                per_page=PER_PAGE,
                since={"type": "string", "description": "ISO 8601 timestamp"},
                sort={"type": "string", "enum": ["created", "updated", "comments"]},
                state={"type": "string", "enum": ["open", "closed", "all"]},
            ),
            self.list_issues,
        )
        self.add_tool(
            "update_issue",
            "Update an existing issue in a GitHub repository",
            _schema(
                ["owner", "repo", "issue_number"],
                owner=OWNER,
                repo=REPO,
                issue_number=ISSUE_NUMBER,
                title={"type": "string"},
                body={"type": "string"},
                assignees=STRING_LIST,
                milestone={"type": "integer"},
                labels=STRING_LIST,
                state={"type": "string", "enum": ["open", "closed"]},
            ),
            self.update_issue,
        )
        self.add_tool(
            "add_issue_comment",
            "Add a comment to an existing issue",
            _schema(
                ["owner", "repo", "issue_number", "body"],
                owner=OWNER,
                repo=REPO,
                issue_number=ISSUE_NUMBER,
                body={"type": "string"},
            ),
            self.add_issue_comment,
        )

        # Search
        self.add_tool(
            "search_code",
            "Search for code across GitHub repositories",
            _schema(["q"], q=SEARCH_QUERY, order=ORDER, page=PAGE, per_page=PER_PAGE),
            self.search_code,
        )
        self.add_tool(
            "search_issues",
            "Search for issues and pull requests across GitHub repositories",
            _schema(
                ["q"],
                q=SEARCH_QUERY,
                order=ORDER,
                page=PAGE,
                per_page=PER_PAGE,
                sort={
                    "type": "string",
                    "enum": [
                        "comments", "reactions", "reactions-+1", "reactions--1", "reactions-smile",
                        "reactions-thinking_face", "reactions-heart", "reactions-tada",
                        "interactions", "created", "updated",
                    ],
                },
            ),
            self.search_issues,
        )
        self.add_tool(
            "search_users",
            "Search for users on GitHub",
            _schema(
                ["q"],
                q=SEARCH_QUERY,
                order=ORDER,
                page=PAGE,
                per_page=PER_PAGE,
                sort={"type": "string", "enum": ["followers", "repositories", "joined"]},
            ),
            self.search_users,
        )

        # Pull requests
        self.add_tool(
            "create_pull_request",
            "Create a new pull request in a GitHub repository",
            _schema(
                ["owner", "repo", "title", "head", "base"],
                owner=OWNER,
                repo=REPO,
                title={"type": "string", "description": "Pull request title"},
                body={"type": "string", "description": "Pull request body/description"},
                head={"type": "string", "description": "The name of the branch where your changes are implemented"},
                base={"type": "string", "description": "The name of the branch you want the changes pulled into"},
                draft={"type": "boolean", "description": "Whether to create the pull request as a draft"},
                maintainer_can_modify={
                    "type": "boolean",
                    "description": "Whether maintainers can modify the pull request",
                },
            ),
            self.create_pull_request,
        )
        self.add_tool(
            "get_pull_request",
            "Get details of a specific pull request",
            _schema(["owner", "repo", "pull_number"], owner=OWNER, repo=REPO, pull_number=PULL_NUMBER),
            self.get_pull_request,
        )
        self.add_tool(
            "list_pull_requests",
            "List and filter repository pull requests",
            _schema(
                ["owner", "repo"],
                owner=OWNER,
                repo=REPO,
                state={"type": "string", "enum": ["open", "closed", "all"], "description": "State of the pull requests to return"},
                head={"type": "string", "description": "Filter by head user or head organization and branch name"},
                base={"type": "string", "description": "Filter by base branch name"},
                sort={
                    "type": "string",
                    "enum": ["created", "updated", "popularity", "long-running"],
                    "description": "What to sort results by",
                },
                direction={**ORDER, "description": "The direction of the sort"},
                per_page=PER_PAGE,
                page=PAGE,
            ),
            self.list_pull_requests,
        )
        self.add_tool(
            "create_pull_request_review",
            "Create a review on a pull request",
            _schema(
                ["owner", "repo", "pull_number", "body", "event"],
                owner=OWNER,
                repo=REPO,
                pull_number=PULL_NUMBER,
                commit_id={"type": "string", "description": "The SHA of the commit that needs a review"},
                body={"type": "string", "description": "The body text of the review"},
                event={
                    "type": "string",
                    "enum": ["APPROVE", "REQUEST_CHANGES", "COMMENT"],
                    "description": "The review action to perform",
                },
                comments={
                    "type": "array",
                    "description": "Comments to post as part of the review (specify either position or line, not both)",
                    "items": {
                        "anyOf": [
                            {
                                "type": "object",
                                "properties": {
                                    "path": {"type": "string"},
                                    "position": {"type": "number"},
                                    "body": {"type": "string"},
                                },
                                "required": ["path", "position", "body"],
                            },
                            {
                                "type": "object",
                                "properties": {
                                    "path": {"type": "string"},
                                    "line": {"type": "number"},
                                    "body": {"type": "string"},
                                },
                                "required": ["path", "line", "body"],
                            },
                        ]
                    },
                },
            ),
            self.create_pull_request_review,
        )
        self.add_tool(
            "merge_pull_request",
            "Merge a pull request",
            _schema(
                ["owner", "repo", "pull_number"],
                owner=OWNER,
                repo=REPO,
                pull_number=PULL_NUMBER,
                commit_title={"type": "string", "description": "Title for the automatic commit message"},
                commit_message={"type": "string", "description": "Extra detail to append to automatic commit message"},
                merge_method={"type": "string", "enum": ["merge", "squash", "rebase"], "description": "Merge method to use"},
            ),
            self.merge_pull_request,
        )
        self.add_tool(
            "get_pull_request_files",
            "Get the list of files changed in a pull request",
            _schema(["owner", "repo", "pull_number"], owner=OWNER, repo=REPO, pull_number=PULL_NUMBER),
            self.get_pull_request_files,
        )
        self.add_tool(
            "get_pull_request_status",
            "Get the combined status of all status checks for a pull request",
            _schema(["owner", "repo", "pull_number"], owner=OWNER, repo=REPO, pull_number=PULL_NUMBER),
            self.get_pull_request_status,
        )
        self.add_tool(
            "update_pull_request_branch",
            "Update a pull request branch with the latest changes from the base branch",
            _schema(
                ["owner", "repo", "pull_number"],
                owner=OWNER,
                repo=REPO,
                pull_number=PULL_NUMBER,
                expected_head_sha={"type": "string", "description": "The expected SHA of the pull request's HEAD ref"},
            ),
            self.update_pull_request_branch,
        )
        self.add_tool(
            "get_pull_request_comments",
            "Get the review comments on a pull request",
            _schema(["owner", "repo", "pull_number"], owner=OWNER, repo=REPO, pull_number=PULL_NUMBER),
            self.get_pull_request_comments,
        )
        self.add_tool(
            "get_pull_request_reviews",
            "Get the reviews on a pull request",
            _schema(["owner", "repo", "pull_number"], owner=OWNER, repo=REPO, pull_number=PULL_NUMBER),
            self.get_pull_request_reviews,
        )

    # -- repositories -------------------------------------------------------

    async def fetch_repositories(self, args: Dict[str, Any]) -> str:
        username = args["username"]
        data = await self.client.get(
            f"/users/{username}/repos",
            params={"type": args.get("type"), "sort": args.get("sort"), "per_page": args.get("per_page")},
        )
        repos = [_repo_summary(repo) for repo in data or []]
        return _summary(f"Found {len(repos)} repositories for {username}:", repos)

    async def fetch_repository(self, args: Dict[str, Any]) -> str:
        data = await self.client.get(self._repo_path(args))
        summary = _repo_summary(data)
        summary.update(
            {
                "open_issues_count": data.get("open_issues_count"),
                "created_at": data.get("created_at"),
                "license": (data.get("license") or {}).get("name"),
            }
        )
        return _summary(f"Repository: {args['owner']}/{args['repo']}", summary)

    async def search_repositories(self, args: Dict[str, Any]) -> str:
        query = args["query"]
        data = await self.client.get(
            "/search/repositories",
            params={
                "q": query,
                "sort": args.get("sort"),
                "order": args.get("order"),
                "page": args.get("page"),
                "per_page": args.get("per_page"),
            },
        )
        repos = [_repo_summary(repo) for repo in (data or {}).get("items", [])]
        total = (data or {}).get("total_count", len(repos))
        return _summary(f'Search results for "{query}" ({total} total):', repos)

    async def create_repository(self, args: Dict[str, Any]) -> Any:
        self._require_token()
        return await self.client.post(
            "/user/repos",
            json=_compact(
                name=args["name"],
                description=args.get("description"),
                private=args.get("private"),
                auto_init=args.get("autoInit"),
            ),
        )

    async def fork_repository(self, args: Dict[str, Any]) -> Any:
        self._require_token()
        body = {"organization": args["organization"]} if args.get("organization") else None
        return await self.client.post(self._repo_path(args, "/forks"), json=body)

    async def create_branch(self, args: Dict[str, Any]) -> Any:
        self._require_token()
        from_branch = args.get("from_branch")
        if not from_branch:
            repo = await self.client.get(self._repo_path(args))
            from_branch = repo.get("default_branch") or "main"
        base = await self.client.get(self._repo_path(args, f"/branches/{from_branch}"))
        sha = base["commit"]["sha"]
        return await self.client.post(
            self._repo_path(args, "/git/refs"),
            json={"ref": f"refs/heads/{args['branch']}", "sha": sha},
        )

    async def list_commits(self, args: Dict[str, Any]) -> Any:
        return await self.client.get(
            self._repo_path(args, "/commits"),
            params={"sha": args.get("sha"), "page": args.get("page"), "per_page": args.get("per_page")},
        )

    # -- files ----------------------------------------------------------------

    async def get_file_contents(self, args: Dict[str, Any]) -> Any:
        path = str(args["path"]).lstrip("/")
        data = await self.client.get(
            self._repo_path(args, f"/contents/{path}"),
            params={"ref": args.get("branch")},
        )
        if isinstance(data, dict) and data.get("type") == "file" and data.get("encoding") == "base64":
            raw = data.get("content") or ""
            data["content"] = base64.b64decode(raw).decode("utf-8", errors="replace")
            data["encoding"] = "utf-8"
        return data

    async def create_or_update_file(self, args: Dict[str, Any]) -> Any:
        self._require_token()
        path = str(args["path"]).lstrip("/")
        encoded = base64.b64encode(args["content"].encode("utf-8")).decode("ascii")
        body: Dict[str, Any] = {
            "message": args["message"],
            "content": encoded,
            "branch": args["branch"],
        }
        if args.get("sha"):
            body["sha"] = args["sha"]
        return await self.client.put(self._repo_path(args, f"/contents/{path}"), json=body)

    # -- issues -----------------------------------------------------------------

    async def create_issue(self, args: Dict[str, Any]) -> Any:
        self._require_token()
        return await self.client.post(
            self._repo_path(args, "/issues"),
            json=_compact(
                title=args["title"],
                body=args.get("body"),
                assignees=args.get("assignees"),
                milestone=_number(args.get("milestone")),
                labels=args.get("labels"),
            ),
        )

    async def get_issue(self, args: Dict[str, Any]) -> Any:
        return await self.client.get(self._repo_path(args, f"/issues/{_number(args['issue_number'])}"))

    async def list_issues(self, args: Dict[str, Any]) -> Any:
        labels = args.get("labels")
        return await self.client.get(
            self._repo_path(args, "/issues"),
            params={
                "state": args.get("state"),
                "labels": ",".join(labels) if labels else None,
                "sort": args.get("sort"),
                "direction": args.get("direction"),
                "since": args.get("since"),
                "page": args.get("page"),
                "per_page": args.get("per_page"),
            },
        )

    async def update_issue(self, args: Dict[str, Any]) -> Any:
        self._require_token()
        return await self.client.patch(
            self._repo_path(args, f"/issues/{_number(args['issue_number'])}"),
            json=_compact(
                title=args.get("title"),
                body=args.get("body"),
                state=args.get("state"),
                labels=args.get("labels"),
                assignees=args.get("assignees"),
                milestone=_number(args.get("milestone")),
            ),
        )

    async def add_issue_comment(self, args: Dict[str, Any]) -> Any:
        self._require_token()
        return await self.client.post(
            self._repo_path(args, f"/issues/{_number(args['issue_number'])}/comments"),
            json={"body": args["body"]},
        )

    # -- search ---------------------------------------------------------------

    async def _search(self, kind: str, args: Dict[str, Any]) -> Any:
        return await self.client.get(
            f"/search/{kind}",
            params={
                "q": args["q"],
                "sort": args.get("sort"),
                "order": args.get("order"),
                "per_page": args.get("per_page"),
                "page": args.get("page"),
            },
        )

    async def search_code(self, args: Dict[str, Any]) -> Any:
        return await self._search("code", args)

    async def search_issues(self, args: Dict[str, Any]) -> Any:
        return await self._search("issues", args)

    async def search_users(self, args: Dict[str, Any]) -> Any:
        return await self._search("users", args)

    # -- pull requests ----------------------------------------------------------

    def _pull_path(self, args: Dict[str, Any], suffix: str = "") -> str:
        return self._repo_path(args, f"/pulls/{_number(args['pull_number'])}{suffix}")

    async def create_pull_request(self, args: Dict[str, Any]) -> Any:
        self._require_token()
        return await self.client.post(
            self._repo_path(args, "/pulls"),
            json=_compact(
                title=args["title"],
                body=args.get("body"),
                head=args["head"],
                base=args["base"],
                draft=args.get("draft"),
                maintainer_can_modify=args.get("maintainer_can_modify"),
            ),
        )

    async def get_pull_request(self, args: Dict[str, Any]) -> Any:
        return await self.client.get(self._pull_path(args))

    async def list_pull_requests(self, args: Dict[str, Any]) -> Any:
        return await self.client.get(
            self._repo_path(args, "/pulls"),
            params={
                "state": args.get("state"),
                "head": args.get("head"),
                "base": args.get("base"),
                "sort": args.get("sort"),
                "direction": args.get("direction"),
                "per_page": args.get("per_page"),
                "page": args.get("page"),
            },
        )

    async def create_pull_request_review(self, args: Dict[str, Any]) -> Any:
        self._require_token()
        return await self.client.post(
            self._pull_path(args, "/reviews"),
            json=_compact(
                commit_id=args.get("commit_id"),
                body=args["body"],
                event=args["event"],
                comments=args.get("comments"),
            ),
        )

    async def merge_pull_request(self, args: Dict[str, Any]) -> Any:
        self._require_token()
        return await self.client.put(
            self._pull_path(args, "/merge"),
            json=_compact(
                commit_title=args.get("commit_title"),
                commit_message=args.get("commit_message"),
                merge_method=args.get("merge_method"),
            ),
        )

    async def get_pull_request_files(self, args: Dict[str, Any]) -> Any:
        return await self.client.get(self._pull_path(args, "/files"))

    async def get_pull_request_status(self, args: Dict[str, Any]) -> Any:
        pull = await self.client.get(self._pull_path(args))
        head_sha = ((pull or {}).get("head") or {}).get("sha")
        if not head_sha:
            return {"state": "unknown", "statuses": [], "pull_number": _number(args["pull_number"])}
        return await self.client.get(self._repo_path(args, f"/commits/{head_sha}/status"))

    async def update_pull_request_branch(self, args: Dict[str, Any]) -> Any:
        self._require_token()
        return await self.client.put(
            self._pull_path(args, "/update-branch"),
            json=_compact(expected_head_sha=args.get("expected_head_sha")),
        )

    async def get_pull_request_comments(self, args: Dict[str, Any]) -> Any:
        return await self.client.get(self._pull_path(args, "/comments"))

    async def get_pull_request_reviews(self, args: Dict[str, Any]) -> Any:
        return await self.client.get(self._pull_path(args, "/reviews"))


def _compact(**fields: Any) -> Optional[Dict[str, Any]]:
    """Request body without unset fields; GitHub treats explicit nulls as 'clear this'."""
    return {key: value for key, value in fields.items() if value is not None}
