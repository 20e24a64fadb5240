"""
Result limiter -- merge, rank and cap search results.

Applied as a post-pass over the unranked groups of every searched
repository:

1. Groups of the same (category, repo, file) are merged; matches are
   deduplicated by line and ordered by line.
2. Files are ranked by match count, descending. Ties keep discovery
   order (the sort is stable).
3. At most ``max_results`` groups are kept; the rest are counted in
   ``omitted_count``.
4. Each match's context window is trimmed to ``context_lines`` lines on
   each side.
"""

from collections.abc import Iterable

import structlog

from ..logging import get_human_log
from .results import LineMatch, MatchGroup, SearchResponse

logger = structlog.get_logger()

DEFAULT_MAX_RESULTS = 50
DEFAULT_CONTEXT_LINES = 3


class ResultLimiter:
    """Bounds the size of a search response."""

    def __init__(
        self,
        max_results: int = DEFAULT_MAX_RESULTS,
        context_lines: int = DEFAULT_CONTEXT_LINES,
    ) -> None:
        if max_results < 1:
            raise ValueError(f"max_results must be at least 1, got {max_results}")
        if context_lines < 0:
            raise ValueError(f"context_lines must not be negative, got {context_lines}")
        self.max_results = max_results
        self.context_lines = context_lines
        self._hlog = get_human_log()

    def limit(self, groups: Iterable[MatchGroup]) -> SearchResponse:
        ranked = sorted(self.merge(groups), key=lambda g: len(g.matches), reverse=True)

        kept = ranked[: self.max_results]
        omitted = len(ranked) - len(kept)

        for group in kept:
            group.matches = [self._trim(m) for m in group.matches]

        if omitted:
            logger.info("search.truncated", shown=len(kept), omitted=omitted)
            self._hlog.truncated(len(kept), omitted)

        return SearchResponse(results=kept, truncated=omitted > 0, omitted_count=omitted)

    @staticmethod
    def merge(groups: Iterable[MatchGroup]) -> list[MatchGroup]:
        """One group per file, in order of first appearance."""
        merged: dict[tuple[str, str, str], MatchGroup] = {}
        seen_lines: dict[tuple[str, str, str], set[int]] = {}

        for group in groups:
            target = merged.get(group.key)
            if target is None:
                target = MatchGroup(group.category, group.repo, group.file)
                merged[group.key] = target
                seen_lines[group.key] = set()

            lines = seen_lines[group.key]
            for match in group.matches:
                if match.line not in lines:
                    lines.add(match.line)
                    target.matches.append(match)

        for group in merged.values():
            group.matches.sort(key=lambda m: m.line)
        return list(merged.values())

    def _trim(self, match: LineMatch) -> LineMatch:
        return LineMatch(
            line=match.line,
            content=match.content,
            context=[
                c for c in match.context
                if abs(c.line - match.line) <= self.context_lines
            ],
        )
