"""
Cache rebuilds triggered by fallback scans.

A search that had to scan a repository directly schedules a rebuild of
that repository's cache and returns without waiting for it. The
scheduling is hidden behind RebuildScheduler so that the search engine
does not care whether the work happens on a worker thread
(BackgroundRebuildQueue) or inline (SynchronousRebuildQueue, used by
tests and by ``rebuild_mode: sync``).

Every scheduled job has a visible status:

    pending -> running -> done
                       -> failed

Jobs for the same repository are not deduplicated. If two fallbacks
schedule two rebuilds, both run and the last save wins.
"""

import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from enum import Enum

import structlog

from ..indexer.builder import CacheBuilder
from ..logging import get_human_log

logger = structlog.get_logger()


class RebuildStatus(Enum):
    """Lifecycle of a scheduled rebuild."""

    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class RebuildScheduler(ABC):
    """Schedules cache rebuilds and reports their status.

    Implementations never raise from ``schedule``: a failed rebuild is
    logged and recorded as FAILED.
    """

    def __init__(self, builder: CacheBuilder) -> None:
        self.builder = builder
        self._statuses: dict[tuple[str, str], RebuildStatus] = {}
        self._lock = threading.Lock()
        self._hlog = get_human_log()

    @abstractmethod
    def schedule(self, category: str, repo: str) -> None:
        """Request a full rebuild of a pair's cache."""
        pass

    def status(self, category: str, repo: str) -> RebuildStatus | None:
        """Status of the most recent rebuild of a pair, or None if never scheduled."""
        with self._lock:
            return self._statuses.get((category, repo))

    def _set_status(self, category: str, repo: str, status: RebuildStatus) -> None:
        with self._lock:
            self._statuses[(category, repo)] = status

    def _mark_scheduled(self, category: str, repo: str) -> None:
        self._set_status(category, repo, RebuildStatus.PENDING)
        logger.info("rebuild.scheduled", category=category, repo=repo)
        self._hlog.rebuild_scheduled(category, repo)

    def _record_failure(self, category: str, repo: str, error: str) -> None:
        self._set_status(category, repo, RebuildStatus.FAILED)
        logger.warning("rebuild.failed", category=category, repo=repo, error=error)
        self._hlog.rebuild_failed(category, repo, error)

    def _run(self, category: str, repo: str) -> None:
        """Execute one rebuild job, recording its outcome."""
        self._set_status(category, repo, RebuildStatus.RUNNING)
        try:
            self.builder.build(category, repo)
        except Exception as e:
            self._record_failure(category, repo, str(e))
            return

        self._set_status(category, repo, RebuildStatus.DONE)
        logger.info("rebuild.done", category=category, repo=repo)


class BackgroundRebuildQueue(RebuildScheduler):
    """Runs rebuilds on a single worker thread, in scheduling order.

    Jobs run one at a time; searches never wait for the queue.
    """

    def __init__(self, builder: CacheBuilder) -> None:
        super().__init__(builder)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cache-rebuild")
        self._futures: list[Future] = []

    def schedule(self, category: str, repo: str) -> None:
        self._mark_scheduled(category, repo)
        try:
            future = self._executor.submit(self._run, category, repo)
        except RuntimeError as e:
            # Raised by submit() once the executor is shut down
            self._record_failure(category, repo, str(e))
            return
        with self._lock:
            self._futures = [f for f in self._futures if not f.done()]
            self._futures.append(future)

    def join(self, timeout: float | None = None) -> None:
        """Wait for every job scheduled so far."""
        with self._lock:
            pending = list(self._futures)
        wait_futures(pending, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs; with ``wait`` let queued jobs finish first."""
        self._executor.shutdown(wait=wait)


class SynchronousRebuildQueue(RebuildScheduler):
    """Runs each rebuild inline, before ``schedule`` returns."""

    def schedule(self, category: str, repo: str) -> None:
        self._mark_scheduled(category, repo)
        self._run(category, repo)


def create_rebuild_scheduler(builder: CacheBuilder, mode: str = "background") -> RebuildScheduler:
    """Scheduler matching ``search.rebuild_mode`` ("background" or "sync")."""
    if mode == "sync":
        return SynchronousRebuildQueue(builder)
    return BackgroundRebuildQueue(builder)
