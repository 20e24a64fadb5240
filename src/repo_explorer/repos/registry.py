"""
Repository registry.

Maps (category, name) pairs from the configuration to working-tree paths
and cache paths. The registry is a plain value built from an AppConfig;
nothing here reads process-wide state.
"""

from collections.abc import Iterator
from pathlib import Path

from ..config.schema import AppConfig, RepositoryConfig
from .worktree import WorkingTree


class RepositoryNotFoundError(Exception):
    """Requested category or repository is not in the registry, or not on disk."""

    pass


class RepositoryRegistry:
    """Registered repositories and where they live.

    Layout on disk:
        <repo_base_dir>/<category>/<repo>          working tree
        <cache_root>/<category>/<repo>/*.json      cache documents
    """

    def __init__(self, config: AppConfig) -> None:
        self.base_dir = Path(config.repo_base_dir)
        self.cache_root = Path(config.cache_root)
        self._repositories = config.repositories

    def categories(self) -> list[str]:
        """Registered categories, in configuration order."""
        return list(self._repositories)

    def repos(self, category: str) -> list[str]:
        """Repository names of a category (empty if the category is unknown)."""
        return list(self._repositories.get(category, {}))

    def pairs(self) -> Iterator[tuple[str, str]]:
        """Every (category, repo) pair in configuration order."""
        for category, repos in self._repositories.items():
            for repo in repos:
                yield category, repo

    def has(self, category: str, repo: str) -> bool:
        return repo in self._repositories.get(category, {})

    def get(self, category: str, repo: str) -> RepositoryConfig:
        """Registry entry for a pair.

        Raises:
            RepositoryNotFoundError: If the pair is not registered
        """
        self.require(category, repo)
        return self._repositories[category][repo]

    def require_category(self, category: str) -> None:
        """Raises RepositoryNotFoundError if the category is unknown."""
        if category not in self._repositories:
            raise RepositoryNotFoundError(f"Category {category} not found in configuration")

    def require(self, category: str, repo: str) -> None:
        """Raises RepositoryNotFoundError if the pair is unknown."""
        if not self.has(category, repo):
            raise RepositoryNotFoundError(
                f"Repository {category}/{repo} not found in configuration"
            )

    def select(
        self,
        category: str | None = None,
        repo: str | None = None,
    ) -> list[tuple[str, str]]:
        """Pairs selected by optional filters, tolerant of unknown names.

        An unknown category selects nothing; an unknown repo name inside a
        known category selects nothing for that category.
        """
        categories = [category] if category else self.categories()
        selected: list[tuple[str, str]] = []
        for cat in categories:
            names = self.repos(cat)
            if repo:
                names = [repo] if repo in names else []
            selected.extend((cat, name) for name in names)
        return selected

    def repo_path(self, category: str, repo: str) -> Path:
        return self.base_dir / category / repo

    def worktree(self, category: str, repo: str) -> WorkingTree:
        return WorkingTree(self.repo_path(category, repo))

    def exists(self, category: str, repo: str) -> bool:
        """True if the working tree of the pair is present on disk."""
        return self.repo_path(category, repo).is_dir()

    def ensure_structure(self) -> None:
        """Create the base directory, one directory per category, and the cache root."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for category in self.categories():
            (self.base_dir / category).mkdir(parents=True, exist_ok=True)
        self.cache_root.mkdir(parents=True, exist_ok=True)
