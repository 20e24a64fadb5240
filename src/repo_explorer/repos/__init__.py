"""
Repos module - repository registry and working-tree access.

``repos.status`` is imported directly (it depends on the indexer, which
itself depends on this package).
"""

from .registry import RepositoryNotFoundError, RepositoryRegistry
from .worktree import CommitInfo, TreeStatus, WorkingTree, WorkingTreeError

__all__ = [
    "RepositoryNotFoundError",
    "RepositoryRegistry",
    "CommitInfo",
    "TreeStatus",
    "WorkingTree",
    "WorkingTreeError",
]
