"""
Full cache build for one repository.

scan structure -> search index -> code structure -> metadata -> save.
The structure scan runs first because both indexers work from its file
list; the code-structure pass also annotates the structure's file
entries, so the structure document is saved last-updated.
"""

import time
from collections.abc import Sequence

import structlog

from ..logging import get_human_log
from ..repos.registry import RepositoryNotFoundError, RepositoryRegistry
from .cache import CacheStore, RepoCache
from .metadata import get_repository_metadata
from .structure import DEFAULT_EXTRACTORS, StructuralExtractor, analyze_code_structure
from .tokens import DEFAULT_MAX_INDEXED_SIZE, build_search_index
from .tree import scan_file_structure

logger = structlog.get_logger()


class CacheBuilder:
    """Builds and saves the RepoCache of registered repositories."""

    def __init__(
        self,
        registry: RepositoryRegistry,
        store: CacheStore,
        max_file_size: int = DEFAULT_MAX_INDEXED_SIZE,
        extractors: Sequence[StructuralExtractor] = DEFAULT_EXTRACTORS,
    ) -> None:
        self.registry = registry
        self.store = store
        self.max_file_size = max_file_size
        self.extractors = extractors
        self._hlog = get_human_log()

    def build(self, category: str, repo: str) -> RepoCache:
        """Rebuild the cache of a pair regardless of its current validity.

        Raises:
            RepositoryNotFoundError: If the working tree is not on disk
            WorkingTreeError: If the revision identifier cannot be read
            OSError: If scanning the root or saving fails
        """
        repo_path = self.registry.repo_path(category, repo)
        if not repo_path.is_dir():
            raise RepositoryNotFoundError(
                f"Repository {category}/{repo} does not exist at {repo_path}"
            )

        log = logger.bind(category=category, repo=repo)
        self._hlog.build_start(category, repo)
        start = time.monotonic()

        try:
            structure = scan_file_structure(repo_path)
            log.info("cache.structure_scanned", files=len(structure.files))

            search_index = build_search_index(repo_path, structure, self.max_file_size)
            log.info(
                "cache.search_index_built",
                exact_terms=len(search_index.exact_terms),
                terms=len(search_index.terms),
            )

            code_structure = analyze_code_structure(repo_path, structure, self.extractors)
            log.info(
                "cache.code_structure_built",
                classes=len(code_structure.classes),
                functions=len(code_structure.functions),
            )

            metadata = get_repository_metadata(repo_path, structure)

            cache = RepoCache(
                metadata=metadata,
                structure=structure,
                search_index=search_index,
                code_structure=code_structure,
            )
            self.store.save(category, repo, cache)
        except Exception as e:
            self._hlog.build_failed(category, repo, str(e))
            raise

        self._hlog.build_complete(
            category,
            repo,
            files=len(structure.files),
            seconds=round(time.monotonic() - start, 1),
        )
        return cache
