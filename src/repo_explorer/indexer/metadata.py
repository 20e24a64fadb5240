"""
Repository metadata: revision identifier, aggregate statistics and
dependency-manifest contents.

The revision identifier recorded here is the only cache-validity signal:
a cache is usable exactly when it matches the working tree's current
revision.
"""

import json
import tomllib
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from ..repos.worktree import WorkingTree
from .tree import FileStructure

logger = structlog.get_logger()


@dataclass
class RepoStats:
    total_files: int
    total_bytes: int
    language_counts: dict[str, int]
    directory_count: int


@dataclass
class ManifestInfo:
    """Dependencies declared in the repository's manifest."""

    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)


@dataclass
class RepoMetadata:
    revision_id: str
    scanned_at: str             # ISO 8601, UTC
    stats: RepoStats
    manifest_info: ManifestInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepoMetadata":
        manifest = data.get("manifest_info")
        return cls(
            revision_id=data["revision_id"],
            scanned_at=data["scanned_at"],
            stats=RepoStats(**data["stats"]),
            manifest_info=ManifestInfo(**manifest) if manifest is not None else None,
        )


def compute_stats(structure: FileStructure) -> RepoStats:
    """File/byte counts, files per language (most frequent first) and directory count."""
    counts: dict[str, int] = {}
    for entry in structure.files.values():
        counts[entry.language] = counts.get(entry.language, 0) + 1

    return RepoStats(
        total_files=len(structure.files),
        total_bytes=sum(entry.size for entry in structure.files.values()),
        language_counts=dict(sorted(counts.items(), key=lambda x: (-x[1], x[0]))),
        directory_count=len(structure.directories),
    )


def read_manifest(repo_path: Path) -> ManifestInfo | None:
    """Dependencies from package.json, or from pyproject.toml when there is none.

    A malformed manifest is logged and treated as absent.
    """
    repo_path = Path(repo_path)

    package_json = repo_path / "package.json"
    if package_json.is_file():
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
            return ManifestInfo(
                dependencies=dict(data.get("dependencies") or {}),
                dev_dependencies=dict(data.get("devDependencies") or {}),
            )
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("metadata.manifest_invalid", file="package.json", error=str(e))
            return None

    pyproject = repo_path / "pyproject.toml"
    if pyproject.is_file():
        try:
            project = tomllib.loads(pyproject.read_text(encoding="utf-8")).get("project", {})
            dev: dict[str, str] = {}
            for extra, requirements in (project.get("optional-dependencies") or {}).items():
                for requirement in requirements:
                    dev[_requirement_name(requirement)] = f"{requirement} [{extra}]"
            return ManifestInfo(
                dependencies={
                    _requirement_name(r): r for r in project.get("dependencies") or []
                },
                dev_dependencies=dev,
            )
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("metadata.manifest_invalid", file="pyproject.toml", error=str(e))
            return None

    return None


def _requirement_name(requirement: str) -> str:
    """Distribution name of a PEP 508 requirement string."""
    name = requirement.strip()
    for sep in ("[", "<", ">", "=", "!", "~", ";", " ", "@"):
        name = name.split(sep, 1)[0]
    return name


def get_repository_metadata(repo_path: Path, structure: FileStructure) -> RepoMetadata:
    """Collect the metadata document of a cache build.

    Raises:
        WorkingTreeError: If the current revision cannot be determined
    """
    return RepoMetadata(
        revision_id=WorkingTree(repo_path).current_revision(),
        scanned_at=datetime.now(timezone.utc).isoformat(),
        stats=compute_stats(structure),
        manifest_info=read_manifest(repo_path),
    )
