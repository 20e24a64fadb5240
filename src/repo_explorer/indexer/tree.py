"""
Repository scanner -- file and directory structure.

Enumerates the files of a working tree the way git sees them (ignore
rules honored, hidden paths skipped), records size, modification time
and a language label per file, and derives the directory map from the
file paths. Also hosts the small file helpers shared by the indexers
and the fallback search: text reading with binary detection and the
file-pattern filter.
"""

import fnmatch
import os
import stat
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any

import structlog

from ..repos.worktree import WorkingTree, WorkingTreeError

logger = structlog.get_logger()


# --- Extension to language mapping ---

LANGUAGE_MAP: dict[str, str] = {
    # JavaScript / TypeScript
    ".js": "JavaScript", ".mjs": "JavaScript", ".cjs": "JavaScript",
    ".jsx": "JavaScript (React)",
    ".ts": "TypeScript", ".tsx": "TypeScript (React)",
    # Mobile / JVM
    ".java": "Java", ".kt": "Kotlin", ".swift": "Swift", ".m": "Objective-C",
    # C family
    ".c": "C", ".h": "C/C++ Header", ".cpp": "C++", ".cc": "C++", ".hpp": "C/C++ Header",
    ".cs": "C#",
    # Scripting
    ".py": "Python", ".pyi": "Python", ".rb": "Ruby", ".php": "PHP",
    # Systems
    ".go": "Go", ".rs": "Rust",
    # Web
    ".html": "HTML", ".htm": "HTML", ".css": "CSS", ".scss": "SCSS",
    # Config / Data / Docs
    ".json": "JSON", ".md": "Markdown", ".mdx": "Markdown",
    ".yml": "YAML", ".yaml": "YAML", ".toml": "TOML", ".xml": "XML",
    # Shell
    ".sh": "Shell", ".bash": "Shell", ".bat": "Batch", ".ps1": "PowerShell",
}

# Special names (no extension)
SPECIAL_NAMES: dict[str, str] = {
    "dockerfile": "Dockerfile",
    "makefile": "Makefile",
    "gemfile": "Ruby",
    "rakefile": "Ruby",
}

UNKNOWN_LANGUAGE = "Unknown"

# Directories skipped when the tree is not a git repository
DEFAULT_IGNORE_DIRS: frozenset[str] = frozenset({
    "node_modules",
    "__pycache__",
    "venv",
    "dist",
    "build",
})


# --- Data structures ---

@dataclass
class FileEntry:
    """Per-file facts recorded by the structure scan."""

    size: int
    last_modified: str          # ISO 8601, UTC
    language: str
    imported_modules: list[str] | None = None
    exported_symbols: list[str] | None = None


@dataclass
class DirectoryEntry:
    """Direct children of one directory."""

    files: set[str] = field(default_factory=set)
    subdirectories: set[str] = field(default_factory=set)


@dataclass
class FileStructure:
    """Directory map plus file map of a working tree.

    Keys are POSIX paths relative to the repository root. The root itself
    is not a key of ``directories``; every ancestor of every file is.
    """

    directories: dict[str, DirectoryEntry] = field(default_factory=dict)
    files: dict[str, FileEntry] = field(default_factory=dict)

    def add_file(self, rel_path: str, entry: FileEntry) -> None:
        """Record a file and register all of its ancestor directories."""
        self.files[rel_path] = entry

        path = PurePosixPath(rel_path)
        parent = path.parent
        if str(parent) != ".":
            self.directories.setdefault(str(parent), DirectoryEntry()).files.add(path.name)

        child = parent
        while str(child) != ".":
            self.directories.setdefault(str(child), DirectoryEntry())
            grandparent = child.parent
            if str(grandparent) == ".":
                break
            self.directories.setdefault(str(grandparent), DirectoryEntry()).subdirectories.add(child.name)
            child = grandparent

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form (sets become sorted lists, None fields dropped)."""
        return {
            "directories": {
                path: {
                    "files": sorted(entry.files),
                    "subdirectories": sorted(entry.subdirectories),
                }
                for path, entry in self.directories.items()
            },
            "files": {
                path: {k: v for k, v in vars(entry).items() if v is not None}
                for path, entry in self.files.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileStructure":
        return cls(
            directories={
                path: DirectoryEntry(
                    files=set(entry["files"]),
                    subdirectories=set(entry["subdirectories"]),
                )
                for path, entry in data["directories"].items()
            },
            files={path: FileEntry(**entry) for path, entry in data["files"].items()},
        )


# --- Scanning ---

def detect_language(rel_path: str) -> str:
    """Language label from special file name or extension."""
    path = PurePosixPath(rel_path)
    name_lower = path.name.lower()
    if name_lower in SPECIAL_NAMES:
        return SPECIAL_NAMES[name_lower]
    return LANGUAGE_MAP.get(path.suffix.lower(), UNKNOWN_LANGUAGE)


def is_hidden(rel_path: str) -> bool:
    """True if any component of the path starts with a dot."""
    return any(part.startswith(".") for part in PurePosixPath(rel_path).parts)


def list_repo_files(repo_path: Path) -> list[str]:
    """Non-hidden files of a working tree, relative POSIX paths.

    Uses git's view of the tree (ignore rules honored) when the path is a
    git repository, and a plain directory walk otherwise.

    Raises:
        FileNotFoundError: If repo_path is not an existing directory
    """
    repo_path = Path(repo_path)
    if not repo_path.is_dir():
        raise FileNotFoundError(f"Repository path not found: {repo_path}")

    worktree = WorkingTree(repo_path)
    if worktree.is_repository():
        try:
            return [p for p in worktree.list_files() if not is_hidden(p)]
        except WorkingTreeError as e:
            logger.warning("scan.git_list_failed", path=str(repo_path), error=str(e))

    return list(_walk(repo_path))


def _walk(root: Path):
    """Directory walk skipping hidden and commonly ignored directories."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames
            if d not in DEFAULT_IGNORE_DIRS and not d.startswith(".")
        )
        for filename in sorted(filenames):
            if filename.startswith("."):
                continue
            rel_path = (Path(dirpath) / filename).relative_to(root)
            yield rel_path.as_posix()


def scan_file_structure(repo_path: Path) -> FileStructure:
    """Build the FileStructure of a working tree.

    Unreadable individual files are skipped; only an unreadable root
    fails the scan.

    Raises:
        FileNotFoundError: If repo_path does not exist
    """
    repo_path = Path(repo_path)
    structure = FileStructure()

    for rel_path in list_repo_files(repo_path):
        try:
            st = (repo_path / rel_path).stat()
        except OSError:
            logger.debug("scan.file_skipped", file=rel_path)
            continue
        if not stat.S_ISREG(st.st_mode):
            continue

        structure.add_file(
            rel_path,
            FileEntry(
                size=st.st_size,
                last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc).isoformat(),
                language=detect_language(rel_path),
            ),
        )

    return structure


# --- File helpers ---

def read_text_file(path: Path) -> str | None:
    """Read a file as UTF-8 text.

    Returns:
        The content, or None for binary files (NUL byte) and files that
        cannot be read.
    """
    try:
        data = Path(path).read_bytes()
    except OSError:
        return None
    if b"\0" in data:
        return None
    return data.decode("utf-8", errors="replace")


def match_file_pattern(rel_path: str, file_pattern: str | None) -> bool:
    """Glob-style filter where ``*`` matches any substring.

    The pattern is tested against the file name and against the full
    relative path, so both ``*.ts`` and ``src/*.ts`` work.
    """
    if not file_pattern or file_pattern == "*":
        return True
    name = PurePosixPath(rel_path).name
    return fnmatch.fnmatchcase(name, file_pattern) or fnmatch.fnmatchcase(rel_path, file_pattern)
