"""
Logging module - structured logging with a HUMAN traceability level.
"""

from .human import HumanLog, HumanLogHandler, get_human_log
from .levels import HUMAN
from .setup import configure_logging

__all__ = [
    "configure_logging",
    "get_human_log",
    "HUMAN",
    "HumanLog",
    "HumanLogHandler",
]
