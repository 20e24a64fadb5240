"""
Enhanced repository status.

Live working-tree state (branch, last commit, porcelain status) merged
with summaries from the cache when, and only when, the cache is valid:

    {
        "exists": true,
        "path": "/home/me/referencerepos/nostr/ndk",
        "branch": "master",
        "last_revision": "3f1c...",
        "last_commit": {"hash": ..., "date": ..., "message": ..., "author": ...},
        "modified": false,
        "status": {"modified": [], "added": [], "deleted": []},
        "stats": {...},                 # cached
        "package_info": {...},          # cached, if a manifest was found
        "code_insights": {              # cached
            "class_count": 120,
            "function_count": 830,
            "top_modules": [{"module": "react", "count": 41}, ...]
        }
    }
"""

from dataclasses import asdict
from typing import Any

import structlog

from ..indexer.cache import CacheStore, CacheValidator
from .registry import RepositoryRegistry
from .worktree import WorkingTreeError

logger = structlog.get_logger()

TOP_MODULES_IN_STATUS = 5


def get_repo_status(
    registry: RepositoryRegistry,
    store: CacheStore,
    validator: CacheValidator,
    category: str,
    repo: str,
) -> dict[str, Any]:
    """Status entry of one pair. Never raises for git or cache problems."""
    repo_path = registry.repo_path(category, repo)
    result: dict[str, Any] = {"exists": repo_path.is_dir(), "path": str(repo_path)}
    if not result["exists"]:
        return result

    try:
        tree_status = registry.worktree(category, repo).status()
    except WorkingTreeError as e:
        logger.warning("status.git_failed", category=category, repo=repo, error=str(e))
        result["error"] = str(e)
        return result

    last_commit = tree_status.last_commit
    result.update({
        "branch": tree_status.branch,
        "last_revision": last_commit.hash if last_commit else None,
        "last_commit": asdict(last_commit) if last_commit else None,
        "modified": bool(tree_status.modified),
        "status": {
            "modified": tree_status.modified,
            "added": tree_status.added,
            "deleted": tree_status.deleted,
        },
    })

    if not validator.is_valid(category, repo):
        return result

    metadata = store.load_part(category, repo, "metadata")
    if metadata is not None:
        result["stats"] = asdict(metadata.stats)
        if metadata.manifest_info is not None:
            result["package_info"] = asdict(metadata.manifest_info)

    code_structure = store.load_part(category, repo, "code_structure")
    if code_structure is not None:
        result["code_insights"] = {
            "class_count": len(code_structure.classes),
            "function_count": len(code_structure.functions),
            "top_modules": [
                asdict(m) for m in code_structure.most_imported_modules[:TOP_MODULES_IN_STATUS]
            ],
        }

    return result


def get_enhanced_status(
    registry: RepositoryRegistry,
    store: CacheStore,
    validator: CacheValidator,
    category: str | None = None,
    repo: str | None = None,
) -> dict[str, dict[str, Any]]:
    """Status of all pairs, one category, or one pair, keyed "category/repo".

    Raises:
        RepositoryNotFoundError: If an explicitly requested category or
            pair is not registered
    """
    if category and repo:
        registry.require(category, repo)
        pairs = [(category, repo)]
    elif category:
        registry.require_category(category)
        pairs = [(category, name) for name in registry.repos(category)]
    else:
        pairs = list(registry.pairs())

    return {
        f"{cat}/{name}": get_repo_status(registry, store, validator, cat, name)
        for cat, name in pairs
    }


def get_repository_info(
    registry: RepositoryRegistry,
    store: CacheStore,
    validator: CacheValidator,
    category: str,
    repo: str,
) -> dict[str, Any]:
    """Registry entry (url, description) merged with the pair's status.

    Raises:
        RepositoryNotFoundError: If the pair is not registered
    """
    entry = registry.get(category, repo)
    return {
        "category": category,
        "repo": repo,
        **entry.model_dump(),
        **get_repo_status(registry, store, validator, category, repo),
    }
