"""
Tools module - operations exposed to the calling client.

Exports the tools, the registry and the base components.
"""

from .base import BaseTool, ToolResult
from .registry import DuplicateToolError, ToolNotFoundError, ToolRegistry
from .repo import (
    BuildCacheTool,
    CloneRepoTool,
    CreateReferenceReposTool,
    ListReposTool,
    RepoInfoTool,
    RepoStatusTool,
    RepoTool,
    SearchCodeTool,
    UpdateRepoTool,
)
from .schemas import (
    CloneRepoArgs,
    CreateReferenceReposArgs,
    NoArgs,
    RepoRefArgs,
    RepoStatusArgs,
    SearchCodeArgs,
)
from .setup import register_all_tools, register_management_tools, register_query_tools

__all__ = [
    # Base
    "BaseTool",
    "ToolResult",
    # Registry
    "ToolRegistry",
    "ToolNotFoundError",
    "DuplicateToolError",
    # Tools
    "RepoTool",
    "SearchCodeTool",
    "RepoStatusTool",
    "RepoInfoTool",
    "ListReposTool",
    "BuildCacheTool",
    "CloneRepoTool",
    "UpdateRepoTool",
    "CreateReferenceReposTool",
    # Schemas
    "SearchCodeArgs",
    "RepoStatusArgs",
    "RepoRefArgs",
    "CloneRepoArgs",
    "CreateReferenceReposArgs",
    "NoArgs",
    # Setup
    "register_query_tools",
    "register_management_tools",
    "register_all_tools",
]
