"""
Working-tree accessor backed by the ``git`` executable.

Everything the cache and search layers need to know about a checkout
goes through WorkingTree: whether it exists, its current revision
identifier, the list of files that git does not ignore, and the live
status shown by ``get_enhanced_status``. Clone and pull are here too so
that the registry-level operations have a single place that shells out.
"""

import subprocess
from dataclasses import dataclass, field
from pathlib import Path

import structlog

logger = structlog.get_logger()

# Field separator for `git log --format`
_SEP = "\x1f"


class WorkingTreeError(Exception):
    """A git invocation failed or the path is not a working tree."""

    pass


@dataclass
class CommitInfo:
    """Summary of the checked-out commit."""

    hash: str
    date: str
    message: str
    author: str


@dataclass
class TreeStatus:
    """Live state of a working tree."""

    branch: str | None
    last_commit: CommitInfo | None
    modified: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


class WorkingTree:
    """A checkout on disk.

    Construction is cheap and never touches the filesystem; every
    method that needs git raises WorkingTreeError on failure.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        """True if the checkout directory exists."""
        return self.path.is_dir()

    def is_repository(self) -> bool:
        """True if the directory is inside a git working tree."""
        if not self.exists():
            return False
        try:
            return self._git("rev-parse", "--is-inside-work-tree").strip() == "true"
        except WorkingTreeError:
            return False

    def current_revision(self) -> str:
        """Identifier of the checked-out commit (``git rev-parse HEAD``)."""
        return self._git("rev-parse", "HEAD").strip()

    def list_files(self) -> list[str]:
        """Tracked and untracked-but-not-ignored files, relative POSIX paths.

        Honors .gitignore, .git/info/exclude and the global excludes file.
        Paths may name files deleted from disk but still in the index;
        callers stat each path anyway.
        """
        output = self._git("ls-files", "-z", "--cached", "--others", "--exclude-standard")
        seen: set[str] = set()
        files: list[str] = []
        for rel_path in output.split("\0"):
            if rel_path and rel_path not in seen:
                seen.add(rel_path)
                files.append(rel_path)
        return files

    def status(self) -> TreeStatus:
        """Branch, last commit and porcelain status of the tree."""
        branch = self._git("rev-parse", "--abbrev-ref", "HEAD").strip() or None

        last_commit = None
        try:
            raw = self._git("log", "-1", f"--format=%H{_SEP}%aI{_SEP}%s{_SEP}%an").strip()
        except WorkingTreeError:
            # Repository without commits
            raw = ""
        if raw:
            commit_hash, date, message, author = (raw.split(_SEP) + ["", "", "", ""])[:4]
            last_commit = CommitInfo(hash=commit_hash, date=date, message=message, author=author)

        status = TreeStatus(branch=branch, last_commit=last_commit)
        for line in self._git("status", "--porcelain").splitlines():
            if len(line) < 4:
                continue
            code, rel_path = line[:2], line[3:]
            if " -> " in rel_path:
                rel_path = rel_path.split(" -> ", 1)[1]
            if code == "??" or "A" in code:
                status.added.append(rel_path)
            elif "D" in code:
                status.deleted.append(rel_path)
            elif "M" in code or "R" in code:
                status.modified.append(rel_path)
        return status

    def pull(self) -> str:
        """Run ``git pull`` and return git's summary line."""
        output = self._git("pull")
        lines = [line.strip() for line in output.splitlines() if line.strip()]
        return lines[-1] if lines else "Already up to date."

    @classmethod
    def clone(cls, url: str, path: Path, shallow: bool = False) -> "WorkingTree":
        """Clone ``url`` into ``path``.

        Args:
            url: Remote URL
            path: Destination directory (must not exist yet)
            shallow: If True, clone with ``--depth 1``

        Raises:
            WorkingTreeError: If git fails
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        cmd = ["clone"]
        if shallow:
            cmd += ["--depth", "1"]
        cmd += [url, str(path)]
        _run_git(cmd, cwd=path.parent)
        logger.info("worktree.cloned", url=url, path=str(path), shallow=shallow)
        return cls(path)

    def _git(self, *args: str) -> str:
        if not self.exists():
            raise WorkingTreeError(f"Working tree not found: {self.path}")
        return _run_git(list(args), cwd=self.path)


def _run_git(args: list[str], cwd: Path) -> str:
    """Run git and return stdout.

    Raises:
        WorkingTreeError: If git is missing or exits non-zero
    """
    try:
        proc = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            cwd=str(cwd),
        )
    except (FileNotFoundError, OSError) as e:
        raise WorkingTreeError(f"Could not run git: {e}") from e

    if proc.returncode != 0:
        message = proc.stderr.strip() or f"git {args[0]} exited with {proc.returncode}"
        raise WorkingTreeError(message)
    return proc.stdout
