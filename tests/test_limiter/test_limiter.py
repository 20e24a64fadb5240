"""
Tests for ResultLimiter and the search result types.

Covers:
- cap and omitted count
- ranking by match count, stable on ties
- merge of same-file groups, line deduplication and ordering
- context trimming
- SearchResponse.to_dict / notice
"""

import pytest

from repo_explorer.search.limiter import DEFAULT_MAX_RESULTS, ResultLimiter
from repo_explorer.search.results import (
    MatchGroup,
    SearchResponse,
    build_line_match,
)

LINES = [f"line {i}" for i in range(1, 21)]


def _match(line: int, context_lines: int = 3):
    return build_line_match(LINES, line - 1, context_lines)


def _group(file: str, lines: list[int], repo: str = "app") -> MatchGroup:
    return MatchGroup("web", repo, file, [_match(n) for n in lines])


# ── Tests: cap ────────────────────────────────────────────────────────────


class TestCap:
    def test_over_cap_is_truncated(self) -> None:
        groups = [_group(f"f{i}.ts", [1]) for i in range(120)]

        response = ResultLimiter(max_results=50).limit(groups)

        assert len(response.results) == 50
        assert response.truncated is True
        assert response.omitted_count == 70

    def test_under_cap_is_complete(self) -> None:
        groups = [_group(f"f{i}.ts", [1]) for i in range(10)]

        response = ResultLimiter(max_results=50).limit(groups)

        assert len(response.results) == 10
        assert response.truncated is False
        assert response.omitted_count == 0

    def test_exactly_at_cap(self) -> None:
        groups = [_group(f"f{i}.ts", [1]) for i in range(5)]

        response = ResultLimiter(max_results=5).limit(groups)

        assert response.truncated is False
        assert response.omitted_count == 0

    def test_default_cap(self) -> None:
        assert ResultLimiter().max_results == DEFAULT_MAX_RESULTS == 50

    def test_empty_input(self) -> None:
        response = ResultLimiter().limit([])

        assert response.results == []
        assert response.truncated is False

    @pytest.mark.parametrize("max_results,context_lines", [(0, 3), (-1, 3), (10, -1)])
    def test_invalid_limits(self, max_results: int, context_lines: int) -> None:
        with pytest.raises(ValueError):
            ResultLimiter(max_results, context_lines)


# ── Tests: ranking ────────────────────────────────────────────────────────


class TestRanking:
    def test_more_matches_rank_first(self) -> None:
        a = _group("a.ts", [1, 2])
        b = _group("b.ts", [1, 2, 3, 4, 5])

        response = ResultLimiter().limit([a, b])

        assert [g.file for g in response.results] == ["b.ts", "a.ts"]

    def test_ties_keep_discovery_order(self) -> None:
        groups = [_group(name, [1]) for name in ("c.ts", "a.ts", "b.ts")]

        response = ResultLimiter().limit(groups)

        assert [g.file for g in response.results] == ["c.ts", "a.ts", "b.ts"]

    def test_cap_keeps_highest_ranked(self) -> None:
        groups = [_group("small.ts", [1]), _group("big.ts", [1, 2, 3])]

        response = ResultLimiter(max_results=1).limit(groups)

        assert [g.file for g in response.results] == ["big.ts"]
        assert response.omitted_count == 1


# ── Tests: merge ──────────────────────────────────────────────────────────


class TestMerge:
    def test_same_file_groups_are_merged(self) -> None:
        merged = ResultLimiter.merge([_group("a.ts", [5]), _group("a.ts", [2])])

        assert len(merged) == 1
        assert [m.line for m in merged[0].matches] == [2, 5]

    def test_duplicate_lines_are_dropped(self) -> None:
        merged = ResultLimiter.merge([_group("a.ts", [2, 5]), _group("a.ts", [5, 7])])

        assert [m.line for m in merged[0].matches] == [2, 5, 7]

    def test_same_path_in_other_repo_is_separate(self) -> None:
        merged = ResultLimiter.merge([_group("a.ts", [1]), _group("a.ts", [1], repo="lib")])

        assert [(g.repo, g.file) for g in merged] == [("app", "a.ts"), ("lib", "a.ts")]

    def test_merged_group_ranks_by_total(self) -> None:
        groups = [
            _group("a.ts", [1]),
            _group("b.ts", [1, 2]),
            _group("a.ts", [3, 4]),
        ]

        response = ResultLimiter().limit(groups)

        assert [(g.file, len(g.matches)) for g in response.results] == [("a.ts", 3), ("b.ts", 2)]


# ── Tests: context ────────────────────────────────────────────────────────


class TestContext:
    def test_context_is_trimmed(self) -> None:
        group = MatchGroup("web", "app", "a.ts", [_match(10, context_lines=5)])

        response = ResultLimiter(context_lines=2).limit([group])

        context = response.results[0].matches[0].context
        assert [c.line for c in context] == [8, 9, 10, 11, 12]

    def test_zero_context_keeps_match_line(self) -> None:
        group = MatchGroup("web", "app", "a.ts", [_match(10)])

        response = ResultLimiter(context_lines=0).limit([group])

        (line,) = response.results[0].matches[0].context
        assert (line.line, line.text, line.is_match) == (10, "line 10", True)

    def test_window_is_clipped_to_file(self) -> None:
        first = build_line_match(LINES, 0, 3)
        last = build_line_match(LINES, len(LINES) - 1, 3)

        assert [c.line for c in first.context] == [1, 2, 3, 4]
        assert [c.line for c in last.context] == [17, 18, 19, 20]

    def test_single_line_marks_match(self) -> None:
        match = build_line_match(LINES, 4, 1)

        assert [(c.line, c.is_match) for c in match.context] == [(4, False), (5, True), (6, False)]
        assert match.content == "line 5"


# ── Tests: SearchResponse ─────────────────────────────────────────────────


class TestSearchResponse:
    def test_notice_when_truncated(self) -> None:
        groups = [_group(f"f{i}.ts", [1]) for i in range(3)]

        response = ResultLimiter(max_results=2).limit(groups)
        data = response.to_dict()

        assert "Showing 2 of 3" in data["notice"]
        assert "1 omitted" in data["notice"]
        assert data["truncated"] is True
        assert data["omitted_count"] == 1

    def test_no_notice_when_complete(self) -> None:
        data = SearchResponse(results=[_group("a.ts", [1])]).to_dict()

        assert "notice" not in data
        assert data["results"][0]["file"] == "a.ts"
        assert data["results"][0]["matches"][0]["line"] == 1
