"""
task_runner.py: bounded background pool for enrichment jobs.

Jobs run on a ThreadPoolExecutor, apart from the threads serving HTTP
requests. The number of outstanding jobs (running plus waiting) is
capped at max_workers + queue_capacity; beyond that, submit() refuses
the job straight away instead of blocking the caller.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable

from .config import (
    ENRICHMENT_MAX_WORKERS,
    ENRICHMENT_QUEUE_CAPACITY,
    ENRICHMENT_SHUTDOWN_TIMEOUT,
    ENRICHMENT_THREAD_PREFIX,
)

logger = logging.getLogger(__name__)


class TaskRunner:
    def __init__(
        self,
        max_workers: int = ENRICHMENT_MAX_WORKERS,
        queue_capacity: int = ENRICHMENT_QUEUE_CAPACITY,
        shutdown_timeout: float = ENRICHMENT_SHUTDOWN_TIMEOUT,
        thread_name_prefix: str = ENRICHMENT_THREAD_PREFIX,
    ):
        self.max_workers = max_workers
        self.queue_capacity = queue_capacity
        self.shutdown_timeout = shutdown_timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )
        self._slots = threading.BoundedSemaphore(max_workers + queue_capacity)
        self._lock = threading.Lock()
        self._pending: set[Future] = set()
        self._closed = False
        logger.info(
            f"TaskRunner started: max_workers={max_workers}, queue_capacity={queue_capacity}"
        )

    @property
    def outstanding(self) -> int:
        with self._lock:
            return len(self._pending)

    def submit(self, fn: Callable, *args) -> bool:
        """Schedule ``fn(*args)``. Returns False if the job was refused."""
        with self._lock:
            if self._closed:
                logger.warning("TaskRunner is shut down; job refused")
                return False
            if not self._slots.acquire(blocking=False):
                logger.warning(
                    f"TaskRunner queue full ({self.max_workers + self.queue_capacity} outstanding); job refused"
                )
                return False
            try:
                future = self._executor.submit(self._run, fn, *args)
            except RuntimeError:
                self._slots.release()
                logger.warning("Executor refused job during shutdown")
                return False
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return True

    @staticmethod
    def _run(fn: Callable, *args):
        try:
            fn(*args)
        except Exception:
            logger.exception(f"Background job {getattr(fn, '__name__', fn)} raised")

    def _on_done(self, future: Future):
        with self._lock:
            self._pending.discard(future)
        self._slots.release()

    def shutdown(self, timeout: float | None = None) -> bool:
        """Stop accepting jobs and wait for outstanding ones.

        Waits at most ``timeout`` seconds (the configured shutdown timeout
        by default). Jobs still waiting in the queue after that are
        cancelled. Returns True when everything finished in time.
        """
        timeout = self.shutdown_timeout if timeout is None else timeout
        with self._lock:
            self._closed = True
            pending = list(self._pending)

        logger.info(f"Draining TaskRunner: {len(pending)} outstanding job(s)")
        _, not_done = wait(pending, timeout=timeout)
        if not_done:
            logger.warning(f"{len(not_done)} job(s) did not finish within {timeout}s")
        self._executor.shutdown(wait=False, cancel_futures=True)
        return not not_done
