"""
Pydantic models for tool arguments.

Each tool defines its argument schema as a Pydantic model, which
provides validation and JSON Schema generation.
"""

from pydantic import BaseModel, Field, model_validator

_CATEGORY_EXAMPLES = ["nostr", "react-native", "state-management"]


class SearchCodeArgs(BaseModel):
    """Arguments for the search_code tool."""

    pattern: str = Field(
        min_length=1,
        description=(
            "Identifier or text to search for. Exact identifiers are looked up "
            "in the cached index; otherwise the pattern is matched against "
            "identifier parts (case-insensitive)."
        ),
        examples=["getUserProfile", "useState", "publish"],
    )
    file_pattern: str = Field(
        default="*",
        description="File filter glob, '*' matches any substring (e.g.: '*.ts', 'src/*.js')",
        examples=["*.ts", "*.js", "*.py"],
    )
    category: str | None = Field(
        default=None,
        description="Optional category filter",
        examples=_CATEGORY_EXAMPLES,
    )
    repo: str | None = Field(default=None, description="Optional repository name filter")
    max_results: int | None = Field(
        default=None,
        ge=1,
        le=500,
        description="Maximum number of files returned (default from configuration, 50)",
    )
    context_lines: int | None = Field(
        default=None,
        ge=0,
        le=20,
        description="Context lines before and after each match (default 3, 0 = match line only)",
    )

    model_config = {"extra": "forbid"}


class RepoStatusArgs(BaseModel):
    """Arguments for the repo_status tool."""

    category: str | None = Field(
        default=None,
        description="Optional category filter",
        examples=_CATEGORY_EXAMPLES,
    )
    repo: str | None = Field(
        default=None,
        description="Optional repository name filter (requires category)",
    )

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def _repo_needs_category(self) -> "RepoStatusArgs":
        if self.repo and not self.category:
            raise ValueError("'repo' requires 'category'")
        return self


class RepoRefArgs(BaseModel):
    """A single registered repository."""

    category: str = Field(description="Category", examples=_CATEGORY_EXAMPLES)
    repo: str = Field(description="Repository name")

    model_config = {"extra": "forbid"}


class CloneRepoArgs(RepoRefArgs):
    """Arguments for the clone_repo tool."""

    shallow: bool = Field(
        default=False,
        description="Whether to perform a shallow clone (--depth 1)",
    )


class CreateReferenceReposArgs(BaseModel):
    """Arguments for the create_reference_repos tool."""

    clone_all: bool = Field(
        default=False,
        description="Whether to clone all repositories",
    )
    shallow: bool = Field(
        default=False,
        description="Whether to perform shallow clones",
    )
    category: str | None = Field(
        default=None,
        description="Optional category to limit cloning to",
        examples=_CATEGORY_EXAMPLES,
    )

    model_config = {"extra": "forbid"}


class NoArgs(BaseModel):
    """Tools without arguments."""

    model_config = {"extra": "forbid"}
