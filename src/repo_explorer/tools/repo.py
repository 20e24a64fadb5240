"""
Repository tools.

Tool-style operations over a RepoExplorer:

- search_code: cached identifier search with direct-scan fallback
- repo_status: live git status merged with cached insights
- repo_info: registry entry plus status of one repository
- list_repos: registered repositories and whether they are cloned
- build_cache: force a full cache rebuild
- clone_repo / update_repo / create_reference_repos: manage checkouts

Structured results are returned as indented JSON in ToolResult.output.
"""

import json
from abc import abstractmethod
from typing import Any

import structlog

from ..explorer import RepoExplorer
from .base import BaseTool, ToolResult
from .schemas import (
    CloneRepoArgs,
    CreateReferenceReposArgs,
    NoArgs,
    RepoRefArgs,
    RepoStatusArgs,
    SearchCodeArgs,
)

logger = structlog.get_logger()


def _json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


class RepoTool(BaseTool):
    """Base for tools that operate on a RepoExplorer.

    Subclasses implement run(args) and may raise; execute() turns every
    exception into a failed ToolResult.
    """

    def __init__(self, explorer: RepoExplorer) -> None:
        self.explorer = explorer

    def execute(self, **kwargs: Any) -> ToolResult:
        try:
            args = self.validate_args(kwargs)
        except Exception as e:
            return ToolResult(success=False, output="", error=str(e))

        try:
            return ToolResult(success=True, output=self.run(args))
        except Exception as e:
            logger.warning("tool.failed", tool=self.name, error=str(e))
            return ToolResult(success=False, output="", error=str(e))

    @abstractmethod
    def run(self, args: Any) -> str:
        """Perform the operation and return the tool output."""
        pass


class SearchCodeTool(RepoTool):
    name = "search_code"
    description = (
        "Search for code across repositories. Exact identifiers are answered "
        "from the cached index; other patterns match identifier parts "
        "case-insensitively. Returns files ranked by number of matches, each "
        "match with surrounding lines. "
        "Example: search_code(pattern='getUserProfile', file_pattern='*.ts')."
    )
    args_model = SearchCodeArgs

    def run(self, args: SearchCodeArgs) -> str:
        response = self.explorer.search_code(
            args.pattern,
            file_pattern=args.file_pattern,
            category=args.category,
            repo=args.repo,
            max_results=args.max_results,
            context_lines=args.context_lines,
        )
        return _json(response.to_dict())


class RepoStatusTool(RepoTool):
    name = "repo_status"
    description = (
        "Get status of all repositories, of one category, or of one repository: "
        "branch, last commit, local changes and, when the cache is current, "
        "file statistics and code insights."
    )
    args_model = RepoStatusArgs

    def run(self, args: RepoStatusArgs) -> str:
        return _json(self.explorer.get_enhanced_status(args.category, args.repo))


class RepoInfoTool(RepoTool):
    name = "repo_info"
    description = "Get the configuration entry and status of one repository."
    args_model = RepoRefArgs

    def run(self, args: RepoRefArgs) -> str:
        return _json(self.explorer.get_repository_info(args.category, args.repo))


class ListReposTool(RepoTool):
    name = "list_repos"
    description = "List the registered repositories and whether each one is cloned."
    args_model = NoArgs

    def run(self, args: NoArgs) -> str:
        return _json(self.explorer.list_repositories())


class BuildCacheTool(RepoTool):
    name = "build_cache"
    description = (
        "Rebuild the search and structure cache of a repository, "
        "regardless of whether the current cache is valid."
    )
    args_model = RepoRefArgs
    mutating = True

    def run(self, args: RepoRefArgs) -> str:
        cache = self.explorer.build_cache(args.category, args.repo)
        stats = cache.metadata.stats
        return (
            f"Cache built for {args.category}/{args.repo} at revision "
            f"{cache.metadata.revision_id[:12]}: {stats.total_files} files, "
            f"{len(cache.search_index.exact_terms)} identifiers, "
            f"{len(cache.code_structure.classes)} classes, "
            f"{len(cache.code_structure.functions)} functions"
        )


class CloneRepoTool(RepoTool):
    name = "clone_repo"
    description = "Clone a specific repository"
    args_model = CloneRepoArgs
    mutating = True

    def run(self, args: CloneRepoArgs) -> str:
        return self.explorer.clone_repo(args.category, args.repo, shallow=args.shallow)


class UpdateRepoTool(RepoTool):
    name = "update_repo"
    description = "Update (pull) a specific repository"
    args_model = RepoRefArgs
    mutating = True

    def run(self, args: RepoRefArgs) -> str:
        return self.explorer.update_repo(args.category, args.repo)


class CreateReferenceReposTool(RepoTool):
    name = "create_reference_repos"
    description = "Create the reference repo structure and optionally clone all repositories"
    args_model = CreateReferenceReposArgs
    mutating = True

    def run(self, args: CreateReferenceReposArgs) -> str:
        lines = self.explorer.create_reference_repos(
            clone_all=args.clone_all,
            shallow=args.shallow,
            category=args.category,
        )
        return "\n".join(lines)
