"""
Indexer module - structure scan, search index, code structure, metadata and cache.
"""

from .builder import CacheBuilder
from .cache import CacheStore, CacheValidator, RepoCache
from .metadata import ManifestInfo, RepoMetadata, RepoStats, get_repository_metadata
from .structure import (
    BraceLanguageExtractor,
    CodeStructureIndex,
    PythonExtractor,
    StructuralExtractor,
    analyze_code_structure,
)
from .tokens import Posting, SearchIndex, build_search_index, split_sub_tokens
from .tree import FileStructure, scan_file_structure

__all__ = [
    "CacheBuilder",
    "CacheStore",
    "CacheValidator",
    "RepoCache",
    "ManifestInfo",
    "RepoMetadata",
    "RepoStats",
    "get_repository_metadata",
    "BraceLanguageExtractor",
    "CodeStructureIndex",
    "PythonExtractor",
    "StructuralExtractor",
    "analyze_code_structure",
    "Posting",
    "SearchIndex",
    "build_search_index",
    "split_sub_tokens",
    "FileStructure",
    "scan_file_structure",
]
