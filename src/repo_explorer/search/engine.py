"""
Search engine -- cached index first, direct scan as fallback.

For every selected repository whose working tree is on disk:

- Valid cache: look ``pattern`` up verbatim in the exact-term index.
  Only if that yields nothing, match ``pattern`` as a case-insensitive
  regular expression against every sub-token of the term index. Context
  windows come from the live files.
- Invalid or unusable cache: scan the files of the working tree for
  lines containing ``pattern`` literally, then schedule a rebuild.

A repository is searched by exactly one of the two paths; a fallback
never retries the cached path. Repositories are searched concurrently
and independently: an error in one is logged and contributes no results.
The unranked groups of all repositories, in discovery order, go through
the ResultLimiter.
"""

import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import structlog

from ..config.schema import SearchConfig
from ..indexer.cache import CacheStore, CacheValidator
from ..indexer.tokens import Posting, SearchIndex
from ..indexer.tree import list_repo_files, match_file_pattern, read_text_file
from ..logging import get_human_log
from ..repos.registry import RepositoryRegistry
from .limiter import ResultLimiter
from .rebuild import RebuildScheduler
from .results import MatchGroup, SearchResponse, build_line_match

logger = structlog.get_logger()


class SearchEngine:
    """Searches registered repositories.

    Args:
        registry: Registered repositories
        store: Cache documents
        validator: Cache validity check
        rebuilder: Receives a rebuild request after each fallback scan,
            or None to never rebuild
        config: Default limits and concurrency
    """

    def __init__(
        self,
        registry: RepositoryRegistry,
        store: CacheStore,
        validator: CacheValidator,
        rebuilder: RebuildScheduler | None = None,
        config: SearchConfig | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.validator = validator
        self.rebuilder = rebuilder
        self.config = config or SearchConfig()
        self._hlog = get_human_log()

    def search_code(
        self,
        pattern: str,
        file_pattern: str = "*",
        category: str | None = None,
        repo: str | None = None,
        max_results: int | None = None,
        context_lines: int | None = None,
    ) -> SearchResponse:
        """Search, then merge, rank and cap the results.

        Raises:
            ValueError: If pattern is empty
        """
        if max_results is None:
            max_results = self.config.max_results
        if context_lines is None:
            context_lines = self.config.context_lines

        groups = self.search(pattern, file_pattern, category, repo, context_lines)
        return ResultLimiter(max_results, context_lines).limit(groups)

    def search(
        self,
        pattern: str,
        file_pattern: str = "*",
        category: str | None = None,
        repo: str | None = None,
        context_lines: int | None = None,
    ) -> list[MatchGroup]:
        """Unranked match groups in discovery order (category, repo, file, line).

        Unknown category or repo filters select nothing.

        Raises:
            ValueError: If pattern is empty
        """
        if not pattern:
            raise ValueError("Search pattern is required")
        if context_lines is None:
            context_lines = self.config.context_lines

        pairs = self.registry.select(category, repo)
        logger.info("search.start", pattern=pattern, file_pattern=file_pattern, repos=len(pairs))
        if not pairs:
            return []

        per_repo: list[list[MatchGroup]] = [[] for _ in pairs]
        max_workers = min(len(pairs), self.config.max_workers)
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="search") as pool:
            futures = {
                pool.submit(self.search_repo, cat, name, pattern, file_pattern, context_lines): i
                for i, (cat, name) in enumerate(pairs)
            }
            for future in as_completed(futures):
                idx = futures[future]
                cat, name = pairs[idx]
                try:
                    per_repo[idx] = future.result()
                except Exception as e:
                    logger.warning("search.repo_failed", category=cat, repo=name, error=str(e))

        groups = [group for repo_groups in per_repo for group in repo_groups]
        logger.info("search.complete", pattern=pattern, groups=len(groups))
        return groups

    def search_repo(
        self,
        category: str,
        repo: str,
        pattern: str,
        file_pattern: str = "*",
        context_lines: int = 3,
    ) -> list[MatchGroup]:
        """Search one repository through the cached or the fallback path.

        Returns an empty list if the working tree is absent.
        """
        repo_path = self.registry.repo_path(category, repo)
        if not repo_path.is_dir():
            logger.debug("search.repo_absent", category=category, repo=repo)
            return []

        index = None
        if self.validator.is_valid(category, repo):
            index = self.store.load_part(category, repo, "search_index")

        if index is not None:
            return self._search_cached(
                category, repo, repo_path, index, pattern, file_pattern, context_lines
            )

        logger.info("search.fallback", category=category, repo=repo)
        self._hlog.fallback(category, repo)
        groups = self._search_fallback(
            category, repo, repo_path, pattern, file_pattern, context_lines
        )
        if self.rebuilder is not None and self.config.rebuild_on_fallback:
            try:
                self.rebuilder.schedule(category, repo)
            except Exception as e:
                logger.warning(
                    "search.rebuild_not_scheduled", category=category, repo=repo, error=str(e)
                )
        return groups

    # ── Cached path ──────────────────────────────────────────────────────

    def _search_cached(
        self,
        category: str,
        repo: str,
        repo_path: Path,
        index: SearchIndex,
        pattern: str,
        file_pattern: str,
        context_lines: int,
    ) -> list[MatchGroup]:
        groups = self._groups_from_postings(
            category, repo, repo_path, index.exact_terms.get(pattern, []),
            file_pattern, context_lines,
        )
        if groups:
            logger.debug("search.exact_hit", category=category, repo=repo, groups=len(groups))
            return groups

        regex = compile_term_pattern(pattern)
        postings = [
            posting
            for term, term_postings in index.terms.items()
            if regex.search(term)
            for posting in term_postings
        ]
        groups = self._groups_from_postings(
            category, repo, repo_path, postings, file_pattern, context_lines
        )
        logger.debug("search.fuzzy", category=category, repo=repo, groups=len(groups))
        return groups

    def _groups_from_postings(
        self,
        category: str,
        repo: str,
        repo_path: Path,
        postings: list[Posting],
        file_pattern: str,
        context_lines: int,
    ) -> list[MatchGroup]:
        """One group per posting, with context read from the live file."""
        groups: list[MatchGroup] = []
        file_lines: dict[str, list[str] | None] = {}

        for posting in postings:
            if not match_file_pattern(posting.file, file_pattern):
                continue

            if posting.file not in file_lines:
                content = read_text_file(repo_path / posting.file)
                file_lines[posting.file] = content.splitlines() if content is not None else None
            lines = file_lines[posting.file]
            if lines is None:
                logger.debug("search.file_skipped", file=posting.file, reason="unreadable")
                continue

            # Positions past the end belong to a file changed since the build
            matches = [
                build_line_match(lines, position - 1, context_lines)
                for position in posting.positions
                if 1 <= position <= len(lines)
            ]
            if matches:
                groups.append(MatchGroup(category, repo, posting.file, matches))

        return groups

    # ── Fallback path ────────────────────────────────────────────────────

    def _search_fallback(
        self,
        category: str,
        repo: str,
        repo_path: Path,
        pattern: str,
        file_pattern: str,
        context_lines: int,
    ) -> list[MatchGroup]:
        groups: list[MatchGroup] = []

        for rel_path in list_repo_files(repo_path):
            if not match_file_pattern(rel_path, file_pattern):
                continue

            content = read_text_file(repo_path / rel_path)
            if content is None:
                logger.debug("search.file_skipped", file=rel_path, reason="unreadable or binary")
                continue

            lines = content.splitlines()
            matches = [
                build_line_match(lines, i, context_lines)
                for i, line in enumerate(lines)
                if pattern in line
            ]
            if matches:
                groups.append(MatchGroup(category, repo, rel_path, matches))

        return groups


def compile_term_pattern(pattern: str) -> re.Pattern[str]:
    """Case-insensitive regex for sub-token matching.

    A pattern that is not a valid regular expression is matched as
    literal text.
    """
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error:
        return re.compile(re.escape(pattern), re.IGNORECASE)
