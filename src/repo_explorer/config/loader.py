"""
Configuration loader with deep merge.

Precedence order (lowest to highest):
1. Defaults (defined in the Pydantic schemas)
2. YAML file (explicit --config, or ~/.repo-explorer.yaml when present)
3. Environment variables
4. CLI arguments

The merge is recursive so that partial sections (e.g. one extra
repository category) keep every other key.
"""

import os
from pathlib import Path
from typing import Any

import yaml

from .schema import AppConfig


DEFAULT_CONFIG_PATH = Path.home() / ".repo-explorer.yaml"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive dictionary merge.

    Args:
        base: Base dictionary
        override: Dictionary whose values win on leaf conflicts

    Returns:
        New merged dictionary.

    Example:
        >>> deep_merge({"a": {"b": 1, "c": 2}, "d": 3}, {"a": {"b": 99}, "e": 4})
        {'a': {'b': 99, 'c': 2}, 'd': 3, 'e': 4}
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_config(config_path: Path | None) -> dict[str, Any]:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML file, or None to skip

    Returns:
        Dictionary with the configuration, or an empty dict if there is no file

    Raises:
        FileNotFoundError: If config_path is given but does not exist
    """
    if not config_path:
        return {}

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
        return data if data else {}


def load_env_overrides() -> dict[str, Any]:
    """Load overrides from environment variables.

    Supported variables:
        REPO_EXPLORER_BASE_DIR: overrides repo_base_dir
        REPO_EXPLORER_CACHE_DIR: overrides cache_dir
        REPO_EXPLORER_LOG_LEVEL: overrides logging.level
    """
    overrides: dict[str, Any] = {}

    if base_dir := os.environ.get("REPO_EXPLORER_BASE_DIR"):
        overrides["repo_base_dir"] = base_dir

    if cache_dir := os.environ.get("REPO_EXPLORER_CACHE_DIR"):
        overrides["cache_dir"] = cache_dir

    if log_level := os.environ.get("REPO_EXPLORER_LOG_LEVEL"):
        overrides.setdefault("logging", {})["level"] = log_level.lower()

    return overrides


def apply_cli_overrides(config_dict: dict[str, Any], cli_args: dict[str, Any]) -> dict[str, Any]:
    """Apply overrides coming from CLI arguments."""
    overrides: dict[str, Any] = {}

    if cli_args.get("base_dir"):
        overrides["repo_base_dir"] = cli_args["base_dir"]

    if cli_args.get("cache_dir"):
        overrides["cache_dir"] = cli_args["cache_dir"]

    if cli_args.get("log_level"):
        overrides.setdefault("logging", {})["level"] = cli_args["log_level"]

    if cli_args.get("log_file"):
        overrides.setdefault("logging", {})["file"] = cli_args["log_file"]

    if cli_args.get("verbose") is not None:
        overrides.setdefault("logging", {})["verbose"] = cli_args["verbose"]

    return deep_merge(config_dict, overrides)


def load_config(
    config_path: Path | None = None,
    cli_args: dict[str, Any] | None = None,
    use_default_path: bool = True,
) -> AppConfig:
    """Load and validate the complete application configuration.

    Args:
        config_path: Path to the YAML configuration file
        cli_args: Dictionary with CLI arguments
        use_default_path: If True and no config_path is given, read
            ~/.repo-explorer.yaml when it exists

    Returns:
        Validated AppConfig

    Raises:
        FileNotFoundError: If config_path does not exist
        ValidationError: If the final configuration is not valid
    """
    cli_args = cli_args or {}

    if config_path is None and use_default_path and DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH

    yaml_config = load_yaml_config(config_path)
    merged = deep_merge(yaml_config, load_env_overrides())
    merged = apply_cli_overrides(merged, cli_args)

    return AppConfig(**merged)
