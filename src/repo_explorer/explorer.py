"""
RepoExplorer -- the components of one configuration, wired together.

Every component receives the configuration explicitly; nothing reads
process-wide state. The CLI and the tools work through this object.

Usage:
    explorer = RepoExplorer(load_config())
    response = explorer.search_code("useState", file_pattern="*.tsx")
    explorer.close()
"""

from typing import Any

import structlog

from .config.schema import AppConfig
from .indexer.builder import CacheBuilder
from .indexer.cache import CacheStore, CacheValidator, RepoCache
from .repos import manage, status
from .repos.registry import RepositoryRegistry
from .search.engine import SearchEngine
from .search.rebuild import BackgroundRebuildQueue, RebuildScheduler, create_rebuild_scheduler
from .search.results import SearchResponse

logger = structlog.get_logger()


class RepoExplorer:
    """Facade over registry, cache and search for one AppConfig.

    Args:
        config: Validated configuration
        rebuilder: Rebuild scheduler to use instead of the one selected
            by ``config.search.rebuild_mode``
    """

    def __init__(self, config: AppConfig, rebuilder: RebuildScheduler | None = None) -> None:
        self.config = config
        self.registry = RepositoryRegistry(config)
        self.store = CacheStore(config.cache_root)
        self.validator = CacheValidator(self.store, self.registry)
        self.builder = CacheBuilder(
            self.registry,
            self.store,
            max_file_size=config.index.max_file_size,
        )
        self.rebuilder = rebuilder or create_rebuild_scheduler(
            self.builder, config.search.rebuild_mode
        )
        self.engine = SearchEngine(
            self.registry,
            self.store,
            self.validator,
            rebuilder=self.rebuilder,
            config=config.search,
        )

    # ── Search and cache ─────────────────────────────────────────────────

    def search_code(
        self,
        pattern: str,
        file_pattern: str = "*",
        category: str | None = None,
        repo: str | None = None,
        max_results: int | None = None,
        context_lines: int | None = None,
    ) -> SearchResponse:
        return self.engine.search_code(
            pattern,
            file_pattern=file_pattern,
            category=category,
            repo=repo,
            max_results=max_results,
            context_lines=context_lines,
        )

    def build_cache(self, category: str, repo: str) -> RepoCache:
        """Force a full rebuild of a pair's cache.

        Raises:
            RepositoryNotFoundError: If the pair is unknown or not cloned
        """
        self.registry.require(category, repo)
        return self.builder.build(category, repo)

    def clear_cache(self, category: str, repo: str) -> bool:
        self.registry.require(category, repo)
        return self.store.clear(category, repo)

    # ── Repositories ─────────────────────────────────────────────────────

    def list_repositories(self) -> list[dict[str, Any]]:
        return manage.list_repositories(self.registry)

    def get_enhanced_status(
        self,
        category: str | None = None,
        repo: str | None = None,
    ) -> dict[str, dict[str, Any]]:
        return status.get_enhanced_status(
            self.registry, self.store, self.validator, category, repo
        )

    def get_repository_info(self, category: str, repo: str) -> dict[str, Any]:
        return status.get_repository_info(
            self.registry, self.store, self.validator, category, repo
        )

    def ensure_structure(self) -> None:
        self.registry.ensure_structure()

    def clone_repo(self, category: str, repo: str, shallow: bool = False) -> str:
        return manage.clone_repo(self.registry, category, repo, shallow=shallow)

    def update_repo(self, category: str, repo: str) -> str:
        return manage.update_repo(self.registry, category, repo)

    def create_reference_repos(
        self,
        clone_all: bool = False,
        shallow: bool = False,
        category: str | None = None,
    ) -> list[str]:
        return manage.create_reference_repos(
            self.registry, clone_all=clone_all, shallow=shallow, category=category
        )

    def close(self, wait: bool = True) -> None:
        """Let queued background rebuilds finish (or drop them) and stop the worker."""
        if isinstance(self.rebuilder, BackgroundRebuildQueue):
            self.rebuilder.shutdown(wait=wait)
            logger.debug("explorer.closed", waited=wait)
