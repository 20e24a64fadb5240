"""
Command line interface for repo-explorer using Click.

Every command accepts the common options (-c/--config, --base-dir,
-v, --quiet, --log-file). Command output goes to stdout; logs and human
traceability lines go to stderr.
"""

import functools
import json
import sys
from pathlib import Path
from typing import Any, Callable

import click
from pydantic import ValidationError

from . import __version__
from .config.loader import load_config
from .explorer import RepoExplorer
from .logging import configure_logging
from .repos.registry import RepositoryNotFoundError
from .repos.worktree import WorkingTreeError
from .search.results import SearchResponse
from .tools import ToolRegistry, register_all_tools

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 3


def common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command."""
    options = [
        click.option(
            "-c",
            "--config",
            type=click.Path(path_type=Path),
            help="Path to the YAML configuration file (default: ~/.repo-explorer.yaml)",
        ),
        click.option(
            "--base-dir",
            type=click.Path(path_type=Path),
            help="Directory holding the reference repositories",
        ),
        click.option(
            "-v",
            "--verbose",
            count=True,
            help="Technical logging on stderr (-v info, -vv debug)",
        ),
        click.option("--quiet", is_flag=True, help="Only errors; no progress lines"),
        click.option(
            "--log-file",
            type=click.Path(path_type=Path),
            help="Write the full structured log (JSON lines) to this file",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _open_explorer(
    config: Path | None,
    base_dir: Path | None,
    verbose: int,
    quiet: bool,
    log_file: Path | None,
) -> RepoExplorer:
    """Load configuration, configure logging and build the explorer.

    Exits with EXIT_CONFIG_ERROR if the configuration cannot be loaded.
    """
    cli_args = {
        "base_dir": str(base_dir) if base_dir else None,
        "log_file": str(log_file) if log_file else None,
        "verbose": verbose or None,
    }
    try:
        app_config = load_config(config_path=config, cli_args=cli_args)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    except (ValidationError, ValueError) as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    configure_logging(app_config.logging, quiet=quiet)
    return RepoExplorer(app_config)


def explorer_command(func: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap a command body that takes a RepoExplorer as first argument.

    Registry errors and git failures become a message on stderr and
    exit code 1. The explorer is closed (waiting for queued rebuilds)
    when the command ends.
    """

    @common_options
    @functools.wraps(func)
    def wrapper(
        config: Path | None,
        base_dir: Path | None,
        verbose: int,
        quiet: bool,
        log_file: Path | None,
        **kwargs: Any,
    ) -> None:
        explorer = _open_explorer(config, base_dir, verbose, quiet, log_file)
        try:
            func(explorer, **kwargs)
        except (RepositoryNotFoundError, WorkingTreeError, ValueError, OSError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(EXIT_FAILED)
        finally:
            explorer.close()

    return wrapper


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _format_response(response: SearchResponse) -> str:
    if not response.results:
        return "No results"

    parts: list[str] = []
    for group in response.results:
        parts.append(f"📄 {group.category}/{group.repo}/{group.file} ({len(group.matches)} matches)")
        for match in group.matches:
            for ctx in match.context:
                marker = ">" if ctx.is_match else " "
                parts.append(f"{marker} {ctx.line:5d}: {ctx.text}")
            parts.append("")
    if response.notice:
        parts.append(f"[{response.notice}]")
    return "\n".join(parts).rstrip()


@click.group()
@click.version_option(version=__version__, prog_name="repo-explorer")
def main() -> None:
    """repo-explorer - explore and search local reference repositories.

    Repositories are registered by category in the configuration file,
    cloned under a base directory, and indexed into a per-repository cache
    that makes identifier search fast.
    """
    pass


@main.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@explorer_command
def list_repos(explorer: RepoExplorer, as_json: bool) -> None:
    """List registered repositories."""
    repos = explorer.list_repositories()
    if as_json:
        _echo_json(repos)
        return

    if not repos:
        click.echo("No repositories configured.")
        return
    for entry in repos:
        state = "cloned" if entry["cloned"] else "not cloned"
        name = f"{entry['category']}/{entry['repo']}"
        click.echo(f"  {name:<40s} {state:<11s} {entry['description']}")


@main.command()
@click.argument("category", required=False)
@click.argument("repo", required=False)
@explorer_command
def status(explorer: RepoExplorer, category: str | None, repo: str | None) -> None:
    """Show the status of all repositories, a category, or one repository (JSON)."""
    _echo_json(explorer.get_enhanced_status(category, repo))


@main.command()
@click.argument("pattern")
@click.option("-f", "--file-pattern", default="*", show_default=True, help="File filter glob")
@click.option("--category", help="Only search this category")
@click.option("--repo", help="Only search this repository")
@click.option("-n", "--max-results", type=click.IntRange(min=1), help="Maximum files returned")
@click.option("-C", "--context-lines", type=click.IntRange(0, 20), help="Context lines per match")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@explorer_command
def search(
    explorer: RepoExplorer,
    pattern: str,
    file_pattern: str,
    category: str | None,
    repo: str | None,
    max_results: int | None,
    context_lines: int | None,
    as_json: bool,
) -> None:
    """Search code across repositories."""
    response = explorer.search_code(
        pattern,
        file_pattern=file_pattern,
        category=category,
        repo=repo,
        max_results=max_results,
        context_lines=context_lines,
    )
    if as_json:
        _echo_json(response.to_dict())
    else:
        click.echo(_format_response(response))


@main.command("build-cache")
@click.argument("category", required=False)
@click.argument("repo", required=False)
@explorer_command
def build_cache(explorer: RepoExplorer, category: str | None, repo: str | None) -> None:
    """Rebuild the cache of one repository, a category, or every cloned repository."""
    if repo and not category:
        raise ValueError("REPO requires CATEGORY")
    if category and repo:
        pairs = [(category, repo)]
    else:
        if category:
            explorer.registry.require_category(category)
        pairs = [
            (cat, name)
            for cat, name in explorer.registry.select(category)
            if explorer.registry.exists(cat, name)
        ]

    for cat, name in pairs:
        cache = explorer.build_cache(cat, name)
        click.echo(f"{cat}/{name}: {cache.metadata.stats.total_files} files indexed")


@main.command("clear-cache")
@click.argument("category")
@click.argument("repo")
@explorer_command
def clear_cache(explorer: RepoExplorer, category: str, repo: str) -> None:
    """Delete the cache of one repository."""
    if explorer.clear_cache(category, repo):
        click.echo(f"Cache cleared for {category}/{repo}")
    else:
        click.echo(f"No cache for {category}/{repo}")


@main.command()
@click.argument("category")
@click.argument("repo")
@click.option("--shallow", is_flag=True, help="Clone with --depth 1")
@explorer_command
def clone(explorer: RepoExplorer, category: str, repo: str, shallow: bool) -> None:
    """Clone a registered repository."""
    click.echo(explorer.clone_repo(category, repo, shallow=shallow))


@main.command()
@click.argument("category")
@click.argument("repo")
@explorer_command
def update(explorer: RepoExplorer, category: str, repo: str) -> None:
    """Pull the latest changes of a cloned repository."""
    click.echo(explorer.update_repo(category, repo))


@main.command()
@click.option("--clone-all", is_flag=True, help="Also clone every registered repository")
@click.option("--shallow", is_flag=True, help="Clone with --depth 1")
@click.option("--category", help="Only clone this category")
@explorer_command
def init(explorer: RepoExplorer, clone_all: bool, shallow: bool, category: str | None) -> None:
    """Create the reference directory layout and optionally clone repositories."""
    for line in explorer.create_reference_repos(
        clone_all=clone_all, shallow=shallow, category=category
    ):
        click.echo(line)


def _tool_registry(explorer: RepoExplorer) -> ToolRegistry:
    registry = ToolRegistry()
    register_all_tools(registry, explorer)
    return registry


@main.command()
@click.option("--read-only", is_flag=True, help="Leave out tools that clone, pull or rebuild")
@explorer_command
def tools(explorer: RepoExplorer, read_only: bool) -> None:
    """Print the JSON schemas of the tool operations."""
    _echo_json(_tool_registry(explorer).get_schemas(include_mutating=not read_only))


@main.command()
@click.argument("name")
@click.option("--args", "raw_args", default="{}", help="Tool arguments as a JSON object")
@explorer_command
def call(explorer: RepoExplorer, name: str, raw_args: str) -> None:
    """Run one tool operation by name and print its output."""
    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as e:
        raise ValueError(f"--args is not valid JSON: {e}") from e
    if not isinstance(arguments, dict):
        raise ValueError("--args must be a JSON object")

    result = _tool_registry(explorer).call(name, arguments)
    if not result.success:
        click.echo(f"Error: {result.error}", err=True)
        sys.exit(EXIT_FAILED)
    click.echo(result.output)


@main.command("validate-config")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to the configuration file to validate",
)
def validate_config(config: Path | None) -> None:
    """Validate a YAML configuration file."""
    try:
        app_config = load_config(config_path=config)
        click.echo("Valid configuration")
        click.echo(f"  Base directory: {app_config.repo_base_dir}")
        click.echo(f"  Cache directory: {app_config.cache_root}")
        click.echo(f"  Categories: {len(app_config.repositories)}")
        click.echo(
            f"  Repositories: {sum(len(r) for r in app_config.repositories.values())}"
        )
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    except Exception as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(EXIT_FAILED)


if __name__ == "__main__":
    main()
