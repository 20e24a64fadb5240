"""
Token-level search index.

Two parallel postings maps are built from every indexable file:

- ``exact_terms``: identifier tokens exactly as written (case-sensitive)
- ``terms``: case-folded sub-tokens from camelCase / snake_case splitting

Each token maps to a list of postings (file, occurrences, line positions),
at most one posting per file. Positions are 1-based line numbers, in
order, recorded once per line in both maps; ``occurrences`` counts every
occurrence, so it can exceed ``len(positions)`` when a token repeats on
a line.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

import structlog

from .tree import FileStructure, read_text_file

logger = structlog.get_logger()


TOKEN_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
CAMEL_BOUNDARY_RE = re.compile(r"(?=[A-Z])")

MIN_TOKEN_LENGTH = 3
MIN_SUB_TOKEN_LENGTH = 3

# Compared case-insensitively
STOP_WORDS: frozenset[str] = frozenset({
    "the", "and", "for", "function", "var", "let", "const", "if", "else",
    "while", "return", "this", "new", "try", "catch", "class", "import",
    "export", "def", "self", "from", "none", "true", "false", "null",
    "undefined", "elif", "pass",
})

# Text/code files eligible for tokenization
INDEXED_EXTENSIONS: frozenset[str] = frozenset({
    ".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx",
    ".java", ".kt", ".swift", ".c", ".cpp", ".cc", ".h", ".hpp", ".cs",
    ".py", ".rb", ".go", ".rs", ".php",
    ".html", ".css", ".scss", ".md", ".json", ".yml", ".yaml", ".toml", ".xml", ".sh",
})

DEFAULT_MAX_INDEXED_SIZE = 1024 * 1024


@dataclass
class Posting:
    """Occurrences of one token in one file."""

    file: str
    occurrences: int
    positions: list[int] = field(default_factory=list)

    def record(self, line_no: int) -> None:
        self.occurrences += 1
        if not self.positions or self.positions[-1] != line_no:
            self.positions.append(line_no)


@dataclass
class SearchIndex:
    """Exact-token and sub-token postings of a repository."""

    exact_terms: dict[str, list[Posting]] = field(default_factory=dict)
    terms: dict[str, list[Posting]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "exact_terms": _postings_to_dict(self.exact_terms),
            "terms": _postings_to_dict(self.terms),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchIndex":
        return cls(
            exact_terms=_postings_from_dict(data["exact_terms"]),
            terms=_postings_from_dict(data["terms"]),
        )


def _postings_to_dict(postings: dict[str, list[Posting]]) -> dict[str, list[dict[str, Any]]]:
    return {
        token: [
            {"file": p.file, "occurrences": p.occurrences, "positions": p.positions}
            for p in plist
        ]
        for token, plist in postings.items()
    }


def _postings_from_dict(data: dict[str, list[dict[str, Any]]]) -> dict[str, list[Posting]]:
    return {
        token: [
            Posting(file=p["file"], occurrences=p["occurrences"], positions=list(p["positions"]))
            for p in plist
        ]
        for token, plist in data.items()
    }


def is_significant(token: str) -> bool:
    """False for short tokens and stop words, which are not indexed at all."""
    return len(token) >= MIN_TOKEN_LENGTH and token.lower() not in STOP_WORDS


def split_sub_tokens(token: str) -> list[str]:
    """Case-folded camelCase and snake_case parts of an identifier.

    The union of both splits is returned in first-seen order, without
    duplicates, keeping only parts longer than two characters. A token
    with no boundary of one kind contributes itself through that split,
    so the whole identifier, folded, is part of the result.

    Examples:
        >>> split_sub_tokens("fetch_user_data")
        ['fetch_user_data', 'fetch', 'user', 'data']
        >>> split_sub_tokens("parseJSON")
        ['parse', 'parsejson']
    """
    parts = CAMEL_BOUNDARY_RE.split(token) + token.split("_")
    result: list[str] = []
    for part in parts:
        if len(part) < MIN_SUB_TOKEN_LENGTH:
            continue
        folded = part.lower()
        if folded not in result:
            result.append(folded)
    return result


def is_indexable(rel_path: str, size: int, max_file_size: int = DEFAULT_MAX_INDEXED_SIZE) -> bool:
    """True if a file goes into the search index."""
    return size <= max_file_size and PurePosixPath(rel_path).suffix.lower() in INDEXED_EXTENSIONS


def build_search_index(
    repo_path: Path,
    structure: FileStructure,
    max_file_size: int = DEFAULT_MAX_INDEXED_SIZE,
) -> SearchIndex:
    """Tokenize every indexable file of the structure.

    Args:
        repo_path: Working tree root
        structure: Result of scan_file_structure
        max_file_size: Larger files are left out of the index

    Returns:
        SearchIndex with postings in file-discovery order
    """
    repo_path = Path(repo_path)
    index = SearchIndex()

    for rel_path, entry in structure.files.items():
        if not is_indexable(rel_path, entry.size, max_file_size):
            continue

        content = read_text_file(repo_path / rel_path)
        if content is None:
            logger.warning("index.file_skipped", file=rel_path, reason="unreadable or binary")
            continue

        _index_file(index, rel_path, content)

    return index


def _index_file(index: SearchIndex, rel_path: str, content: str) -> None:
    """Add one file's tokens to the index."""
    exact_in_file: dict[str, Posting] = {}
    terms_in_file: dict[str, Posting] = {}

    for line_no, line in enumerate(content.splitlines(), start=1):
        for token in TOKEN_RE.findall(line):
            if not is_significant(token):
                continue

            _record(index.exact_terms, exact_in_file, token, rel_path, line_no)
            for sub_token in split_sub_tokens(token):
                _record(index.terms, terms_in_file, sub_token, rel_path, line_no)


def _record(
    postings: dict[str, list[Posting]],
    in_file: dict[str, Posting],
    token: str,
    rel_path: str,
    line_no: int,
) -> None:
    posting = in_file.get(token)
    if posting is None:
        posting = Posting(file=rel_path, occurrences=1, positions=[line_no])
        in_file[token] = posting
        postings.setdefault(token, []).append(posting)
    else:
        posting.record(line_no)
