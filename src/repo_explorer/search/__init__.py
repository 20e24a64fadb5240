"""
Search module - cached and fallback code search, result limiting, rebuilds.
"""

from .engine import SearchEngine, compile_term_pattern
from .limiter import ResultLimiter
from .rebuild import (
    BackgroundRebuildQueue,
    RebuildScheduler,
    RebuildStatus,
    SynchronousRebuildQueue,
    create_rebuild_scheduler,
)
from .results import ContextLine, LineMatch, MatchGroup, SearchResponse, build_line_match

__all__ = [
    "SearchEngine",
    "compile_term_pattern",
    "ResultLimiter",
    "BackgroundRebuildQueue",
    "RebuildScheduler",
    "RebuildStatus",
    "SynchronousRebuildQueue",
    "create_rebuild_scheduler",
    "ContextLine",
    "LineMatch",
    "MatchGroup",
    "SearchResponse",
    "build_line_match",
]
