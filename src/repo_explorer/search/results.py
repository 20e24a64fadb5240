"""
Search result types.

A search produces MatchGroups: all the matches of one file in one
repository, each with a window of surrounding lines. Line numbers are
1-based everywhere.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ContextLine:
    line: int
    text: str
    is_match: bool


@dataclass
class LineMatch:
    """One matching line and its context window."""

    line: int
    content: str
    context: list[ContextLine] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "line": self.line,
            "content": self.content,
            "context": [
                {"line": c.line, "text": c.text, "is_match": c.is_match}
                for c in self.context
            ],
        }


@dataclass
class MatchGroup:
    """Matches of one file of one repository."""

    category: str
    repo: str
    file: str
    matches: list[LineMatch] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.category, self.repo, self.file)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "repo": self.repo,
            "file": self.file,
            "matches": [m.to_dict() for m in self.matches],
        }


@dataclass
class SearchResponse:
    """Ranked, capped search results.

    ``omitted_count`` is the number of result groups dropped by the cap;
    ``truncated`` is True exactly when it is non-zero.
    """

    results: list[MatchGroup] = field(default_factory=list)
    truncated: bool = False
    omitted_count: int = 0

    @property
    def notice(self) -> str | None:
        if not self.truncated:
            return None
        return (
            f"Showing {len(self.results)} of {len(self.results) + self.omitted_count} "
            f"matching files; {self.omitted_count} omitted. "
            "Narrow the search with file_pattern, category or repo to see the rest."
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "results": [g.to_dict() for g in self.results],
            "truncated": self.truncated,
            "omitted_count": self.omitted_count,
        }
        if self.notice:
            data["notice"] = self.notice
        return data


def build_line_match(lines: list[str], index: int, context_lines: int) -> LineMatch:
    """LineMatch for ``lines[index]`` with up to ``context_lines`` lines on each side.

    The window is clipped to the file, so a match on the first line has
    no lines before it.
    """
    start = max(0, index - context_lines)
    end = min(len(lines) - 1, index + context_lines)
    return LineMatch(
        line=index + 1,
        content=lines[index],
        context=[
            ContextLine(line=i + 1, text=lines[i], is_match=(i == index))
            for i in range(start, end + 1)
        ],
    )
