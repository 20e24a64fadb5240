"""
Pydantic models for repo-explorer configuration.

Defines all configuration schemas using Pydantic v2 for validation,
defaults, and serialization. The resulting AppConfig is passed explicitly
to every component (registry, cache store, search engine, tools) instead
of being read from process-wide state.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


DEFAULT_REPO_BASE_DIR = Path.home() / "referencerepos"


class RepositoryConfig(BaseModel):
    """A single entry of the repository registry."""

    url: str
    description: str = ""

    model_config = {"extra": "forbid"}


class IndexConfig(BaseModel):
    """Cache build configuration."""

    max_file_size: int = Field(
        default=1024 * 1024,
        ge=1,
        description="Files larger than this (bytes) are not tokenized into the search index",
    )

    model_config = {"extra": "forbid"}


class SearchConfig(BaseModel):
    """Search and result limiting configuration.

    ``max_results`` and ``context_lines`` are the defaults used when the
    caller does not pass its own values.
    """

    max_results: int = Field(default=50, ge=1, description="Maximum result groups returned")
    context_lines: int = Field(
        default=3,
        ge=0,
        le=20,
        description="Lines of context before and after each match (0 = match line only)",
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        description="Repositories searched concurrently within one request",
    )
    rebuild_on_fallback: bool = Field(
        default=True,
        description="Schedule a cache rebuild after a fallback scan of a repository",
    )
    rebuild_mode: Literal["background", "sync"] = Field(
        default="background",
        description=(
            "'background' runs rebuilds on a worker thread without blocking the search; "
            "'sync' runs them inline (useful for scripts and tests)"
        ),
    )

    model_config = {"extra": "forbid"}


class LoggingConfig(BaseModel):
    """Logging system configuration."""

    level: Literal["debug", "info", "human", "warn", "error"] = "human"
    file: Path | None = None
    verbose: int = 0

    model_config = {"extra": "forbid"}


class AppConfig(BaseModel):
    """Complete application configuration.

    This is the root of the configuration tree. It combines all sections
    and is the entry point for validation.
    """

    repo_base_dir: Path = DEFAULT_REPO_BASE_DIR
    cache_dir: Path | None = Field(
        default=None,
        description="Cache root. Defaults to <repo_base_dir>/.cache",
    )
    repositories: dict[str, dict[str, RepositoryConfig]] = Field(default_factory=dict)
    index: IndexConfig = Field(default_factory=IndexConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "forbid"}

    @field_validator("repo_base_dir", "cache_dir", mode="after")
    @classmethod
    def _expand_user(cls, v: Path | None) -> Path | None:
        """Allow '~' in paths coming from YAML or env vars."""
        if v is None:
            return v
        return v.expanduser()

    @property
    def cache_root(self) -> Path:
        """Effective cache directory."""
        return self.cache_dir or (self.repo_base_dir / ".cache")
