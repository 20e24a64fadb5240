"""
Setup helpers for initializing tools.
"""

from ..explorer import RepoExplorer
from .registry import ToolRegistry
from .repo import (
    BuildCacheTool,
    CloneRepoTool,
    CreateReferenceReposTool,
    ListReposTool,
    RepoInfoTool,
    RepoStatusTool,
    SearchCodeTool,
    UpdateRepoTool,
)


def register_query_tools(registry: ToolRegistry, explorer: RepoExplorer) -> None:
    """Register the read-only tools.

    Registers:
    - search_code
    - repo_status
    - repo_info
    - list_repos
    """
    registry.register(SearchCodeTool(explorer))
    registry.register(RepoStatusTool(explorer))
    registry.register(RepoInfoTool(explorer))
    registry.register(ListReposTool(explorer))


def register_management_tools(registry: ToolRegistry, explorer: RepoExplorer) -> None:
    """Register the tools that write to disk.

    Registers:
    - build_cache
    - clone_repo
    - update_repo
    - create_reference_repos
    """
    registry.register(BuildCacheTool(explorer))
    registry.register(CloneRepoTool(explorer))
    registry.register(UpdateRepoTool(explorer))
    registry.register(CreateReferenceReposTool(explorer))


def register_all_tools(registry: ToolRegistry, explorer: RepoExplorer) -> None:
    """Register every repo-explorer tool."""
    register_query_tools(registry, explorer)
    register_management_tools(registry, explorer)
