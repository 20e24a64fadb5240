"""
On-disk cache for repository indexes.

Each (category, repo) pair has its own directory under the cache root
holding four independently loadable JSON documents:

    metadata.json        revision identifier, stats, manifest
    structure.json       directory and file map
    searchIndex.json     exact-token and sub-token postings
    codeStructure.json   classes, functions, imports, exports

Every document is written atomically (temporary file + rename). The
four writes are not grouped, so a save first removes metadata.json and
writes it again only after the other three documents are on disk. A
crash in between leaves a cache without metadata, which is invalid as a
whole: validity is decided only by the revision identifier in
metadata.json.

Typical usage:
    store = CacheStore(config.cache_root)
    validator = CacheValidator(store, registry)
    if validator.is_valid("nostr", "ndk"):
        index = store.load_part("nostr", "ndk", "search_index")
"""

import json
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import structlog

from ..repos.registry import RepositoryRegistry
from ..repos.worktree import WorkingTreeError
from .metadata import RepoMetadata
from .structure import CodeStructureIndex
from .tokens import SearchIndex
from .tree import FileStructure

logger = structlog.get_logger()

CachePart = Literal["metadata", "structure", "search_index", "code_structure"]

# Part name -> (document file name, document type)
PART_DOCUMENTS: dict[str, tuple[str, Any]] = {
    "metadata": ("metadata.json", RepoMetadata),
    "structure": ("structure.json", FileStructure),
    "search_index": ("searchIndex.json", SearchIndex),
    "code_structure": ("codeStructure.json", CodeStructureIndex),
}


@dataclass
class RepoCache:
    """The four artifacts of one cache build."""

    metadata: RepoMetadata
    structure: FileStructure
    search_index: SearchIndex
    code_structure: CodeStructureIndex


class CacheStore:
    """Persists and loads RepoCache documents.

    Loading never raises: missing or malformed documents produce None
    and a log entry.
    """

    def __init__(self, cache_root: Path) -> None:
        self.cache_root = Path(cache_root)

    def cache_dir(self, category: str, repo: str) -> Path:
        return self.cache_root / category / repo

    def document_path(self, category: str, repo: str, part: CachePart) -> Path:
        filename, _ = PART_DOCUMENTS[part]
        return self.cache_dir(category, repo) / filename

    def save(self, category: str, repo: str, cache: RepoCache) -> None:
        """Write all four documents, metadata last.

        Raises:
            OSError: If the cache directory or a document cannot be written
        """
        target = self.cache_dir(category, repo)
        target.mkdir(parents=True, exist_ok=True)

        metadata_path = self.document_path(category, repo, "metadata")
        metadata_path.unlink(missing_ok=True)

        for part in PART_DOCUMENTS:
            if part == "metadata":
                continue
            document = getattr(cache, part)
            self._write_atomic(self.document_path(category, repo, part), document.to_dict())
        self._write_atomic(metadata_path, cache.metadata.to_dict())

        logger.info("cache.saved", category=category, repo=repo, path=str(target))

    def load(self, category: str, repo: str) -> RepoCache | None:
        """Load all four documents, or None if any is missing or malformed."""
        if not self.cache_dir(category, repo).is_dir():
            return None

        parts: dict[str, Any] = {}
        for part in PART_DOCUMENTS:
            document = self.load_part(category, repo, part)
            if document is None:
                logger.warning("cache.unusable", category=category, repo=repo, part=part)
                return None
            parts[part] = document
        return RepoCache(**parts)

    def load_part(self, category: str, repo: str, part: CachePart) -> Any | None:
        """Load a single document (RepoMetadata, FileStructure, SearchIndex
        or CodeStructureIndex depending on ``part``), or None."""
        path = self.document_path(category, repo, part)
        if not path.is_file():
            return None

        _, document_type = PART_DOCUMENTS[part]
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return document_type.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(
                "cache.part_invalid",
                category=category,
                repo=repo,
                part=part,
                error=str(e),
            )
            return None

    def clear(self, category: str, repo: str) -> bool:
        """Delete the cache directory of a pair.

        Returns:
            True if something was deleted.
        """
        target = self.cache_dir(category, repo)
        if not target.exists():
            return False
        shutil.rmtree(target)
        logger.info("cache.cleared", category=category, repo=repo)
        return True

    @staticmethod
    def _write_atomic(path: Path, data: dict[str, Any]) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class CacheValidator:
    """Decides whether a pair's cache was built from its current revision.

    Fail-closed: a missing metadata document, or any error reading the
    live revision, means invalid. There is no time-based expiry.
    """

    def __init__(self, store: CacheStore, registry: RepositoryRegistry) -> None:
        self.store = store
        self.registry = registry

    def is_valid(self, category: str, repo: str) -> bool:
        metadata = self.store.load_part(category, repo, "metadata")
        if metadata is None:
            return False

        try:
            current = self.registry.worktree(category, repo).current_revision()
        except WorkingTreeError as e:
            logger.debug("cache.revision_unavailable", category=category, repo=repo, error=str(e))
            return False

        return metadata.revision_id == current
