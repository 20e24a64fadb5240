"""
Repository management -- listing, cloning and updating registered repositories.
"""

from typing import Any

import structlog

from .registry import RepositoryNotFoundError, RepositoryRegistry
from .worktree import WorkingTree, WorkingTreeError

logger = structlog.get_logger()


def list_repositories(registry: RepositoryRegistry) -> list[dict[str, Any]]:
    """One entry per registered pair, with whether it is cloned."""
    entries = []
    for category, repo in registry.pairs():
        config = registry.get(category, repo)
        entries.append({
            "category": category,
            "repo": repo,
            "description": config.description,
            "url": config.url,
            "cloned": registry.exists(category, repo),
        })
    return entries


def clone_repo(
    registry: RepositoryRegistry,
    category: str,
    repo: str,
    shallow: bool = False,
) -> str:
    """Clone a registered repository into its working-tree path.

    Returns:
        A one-line summary

    Raises:
        RepositoryNotFoundError: If the pair is not registered
        WorkingTreeError: If git clone fails
    """
    config = registry.get(category, repo)
    repo_path = registry.repo_path(category, repo)

    if registry.exists(category, repo):
        return f"Repository {category}/{repo} already exists at {repo_path}"

    try:
        WorkingTree.clone(config.url, repo_path, shallow=shallow)
    except WorkingTreeError as e:
        raise WorkingTreeError(f"Failed to clone repository {category}/{repo}: {e}") from e

    return f"Repository {category}/{repo} cloned successfully to {repo_path}"


def update_repo(registry: RepositoryRegistry, category: str, repo: str) -> str:
    """Pull the latest changes of a cloned repository.

    Raises:
        RepositoryNotFoundError: If the pair is not registered or not cloned
        WorkingTreeError: If git pull fails
    """
    registry.require(category, repo)
    repo_path = registry.repo_path(category, repo)
    if not registry.exists(category, repo):
        raise RepositoryNotFoundError(f"Repository {category}/{repo} does not exist at {repo_path}")

    try:
        summary = registry.worktree(category, repo).pull()
    except WorkingTreeError as e:
        raise WorkingTreeError(f"Failed to update repository {category}/{repo}: {e}") from e

    logger.info("repo.updated", category=category, repo=repo, summary=summary)
    return f"Repository {category}/{repo} updated: {summary}"


def create_reference_repos(
    registry: RepositoryRegistry,
    clone_all: bool = False,
    shallow: bool = False,
    category: str | None = None,
) -> list[str]:
    """Create the directory layout and optionally clone every repository.

    Failures of single repositories, and an unknown ``category``, are
    reported as lines of the result instead of raising.
    """
    registry.ensure_structure()
    if not clone_all:
        return [f"Reference repository structure created at {registry.base_dir}"]

    lines: list[str] = []
    for cat in [category] if category else registry.categories():
        if cat not in registry.categories():
            lines.append(f"Category {cat} not found in configuration")
            continue

        for repo in registry.repos(cat):
            try:
                lines.append(clone_repo(registry, cat, repo, shallow=shallow))
            except (RepositoryNotFoundError, WorkingTreeError) as e:
                logger.warning("repo.clone_failed", category=cat, repo=repo, error=str(e))
                lines.append(f"Error cloning {cat}/{repo}: {e}")
    return lines
