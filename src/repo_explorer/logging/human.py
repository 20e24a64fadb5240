"""
Human Log -- formatter and helper for readable traceability lines.

Example output:
    ⟳ Building cache for nostr/ndk
    ✓ Cache ready for nostr/ndk (1204 files, 3.2s)
    ↯ Cache stale for nostr/ndk, scanning files directly
    ✗ Cache rebuild failed for nostr/ndk: not a git repository
"""

import logging
import sys
from typing import Any

from .levels import HUMAN


class HumanFormatter:
    """Turns structured events into one readable line each."""

    def format_event(self, event: str, **kw: Any) -> str | None:
        """Format an event.

        Returns:
            Formatted text, or None if the event has no human format
        """
        repo = f"{kw.get('category', '?')}/{kw.get('repo', '?')}"

        match event:
            case "cache.build.start":
                return f"⟳ Building cache for {repo}"

            case "cache.build.complete":
                files = kw.get("files", "?")
                seconds = kw.get("seconds", "?")
                return f"✓ Cache ready for {repo} ({files} files, {seconds}s)"

            case "cache.build.failed":
                return f"✗ Cache build failed for {repo}: {kw.get('error', 'unknown error')}"

            case "search.fallback":
                return f"↯ Cache stale for {repo}, scanning files directly"

            case "rebuild.scheduled":
                return f"  rebuild queued for {repo}"

            case "rebuild.failed":
                return f"✗ Cache rebuild failed for {repo}: {kw.get('error', 'unknown error')}"

            case "search.truncated":
                shown = kw.get("shown", "?")
                omitted = kw.get("omitted", "?")
                return f"  {shown} result groups shown, {omitted} omitted"

            case _:
                return None


class HumanLogHandler(logging.Handler):
    """Logging handler that formats HUMAN-level records.

    Writes to stderr so stdout stays clean for JSON output.
    """

    def __init__(self, stream=None) -> None:
        super().__init__(level=HUMAN)
        self.stream = stream or sys.stderr
        self.formatter_inst = HumanFormatter()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if record.levelno != HUMAN:
                return

            if isinstance(record.msg, dict):
                kw = dict(record.msg)
                event = kw.pop("event", "")
            else:
                event = record.getMessage()
                kw = {}

            formatted = self.formatter_inst.format_event(event, **kw)
            if formatted is not None:
                self.stream.write(formatted + "\n")
                self.stream.flush()
        except Exception:
            self.handleError(record)


class HumanLog:
    """Typed helper to emit HUMAN-level events.

    Usage:
        hlog = HumanLog(logging.getLogger("repo_explorer.human"))
        hlog.build_start("nostr", "ndk")
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._log = logger

    def _emit(self, event: str, **kw: Any) -> None:
        self._log.log(HUMAN, {"event": event, **kw})

    def build_start(self, category: str, repo: str) -> None:
        self._emit("cache.build.start", category=category, repo=repo)

    def build_complete(self, category: str, repo: str, files: int, seconds: float) -> None:
        self._emit("cache.build.complete", category=category, repo=repo, files=files, seconds=seconds)

    def build_failed(self, category: str, repo: str, error: str) -> None:
        self._emit("cache.build.failed", category=category, repo=repo, error=error)

    def fallback(self, category: str, repo: str) -> None:
        self._emit("search.fallback", category=category, repo=repo)

    def rebuild_scheduled(self, category: str, repo: str) -> None:
        self._emit("rebuild.scheduled", category=category, repo=repo)

    def rebuild_failed(self, category: str, repo: str, error: str) -> None:
        self._emit("rebuild.failed", category=category, repo=repo, error=error)

    def truncated(self, shown: int, omitted: int) -> None:
        self._emit("search.truncated", shown=shown, omitted=omitted)


def get_human_log() -> HumanLog:
    """HumanLog bound to the package's traceability logger."""
    return HumanLog(logging.getLogger("repo_explorer.human"))
