"""
HUMAN logging level -- readable traceability of cache and search activity.

Custom level between INFO (20) and WARNING (30). It does not indicate
severity: it marks the few high-level events a user wants to follow
(cache built, fallback scan, rebuild scheduled or failed) without the
technical noise of INFO/DEBUG.

Hierarchy:
    debug  (10) -> skipped files, per-file index details
    info   (20) -> system operations (config loaded, cache saved)
    human  (25) -> * what the explorer does: builds, fallbacks, rebuilds
    warn   (30) -> non-fatal problems
    error  (40) -> errors
"""

import logging

import structlog

HUMAN = 25
logging.addLevelName(HUMAN, "HUMAN")

# Register the level in structlog to avoid KeyError: 25
structlog.stdlib.LEVEL_TO_NAME[HUMAN] = "human"
