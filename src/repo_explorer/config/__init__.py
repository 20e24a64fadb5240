"""
Configuration module for repo-explorer.

Exports the main components for convenient imports.
"""

from .loader import load_config
from .schema import (
    AppConfig,
    IndexConfig,
    LoggingConfig,
    RepositoryConfig,
    SearchConfig,
)

__all__ = [
    "load_config",
    "AppConfig",
    "IndexConfig",
    "LoggingConfig",
    "RepositoryConfig",
    "SearchConfig",
]
