"""Bounded worker pool and rate limiting for API fan-out.

The property API has per-client rate limits, so enrichment runs a small
fixed number of workers instead of one thread per property. Only the
network call runs in the pool - results are folded back on the caller's
thread.
"""

import concurrent.futures
import logging
import threading
import time
from typing import Callable, Iterable, List, Optional, TypeVar

from tqdm import tqdm

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_WORKERS = 4


class RateLimiter:
    """Thread-safe minimum delay between outbound calls.

    Shared by all workers, so the delay is global, not per worker.
    """

    def __init__(self, delay_seconds: float = 0.0):
        self.delay = max(delay_seconds, 0.0)
        self._lock = threading.Lock()
        self._last = 0.0

    def wait(self):
        if self.delay <= 0:
            return
        with self._lock:
            now = time.monotonic()
            sleep_for = self.delay - (now - self._last)
            if sleep_for > 0:
                time.sleep(sleep_for)
            self._last = time.monotonic()


class ProgressCounter:
    """Monotonic completion counter, safe to bump from worker threads."""

    def __init__(self, total: int = 0):
        self.total = total
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class WorkerPool:
    """Fixed-width pool that runs one task per item.

    Create one per batch. Completion order is whatever the network gives us,
    so callers must treat the output as unordered.
    """

    def __init__(self, max_workers: int = DEFAULT_WORKERS, desc: str = "Working", show_progress: bool = False):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers
        self.desc = desc
        self.show_progress = show_progress
        self.progress: Optional[ProgressCounter] = None

    def run(self, func: Callable[[T], R], items: Iterable[T]) -> List[R]:
        """Apply func to every item with at most max_workers in flight.

        func owns its per-item error handling. Anything it lets escape is a
        bug, so the first such exception is re-raised once the batch drains.
        """
        items = list(items)
        self.progress = ProgressCounter(total=len(items))
        if not items:
            return []

        results: List[R] = []
        first_error: Optional[BaseException] = None

        def task(item: T) -> R:
            try:
                return func(item)
            finally:
                self.progress.increment()

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(task, item) for item in items]
            completed = concurrent.futures.as_completed(futures)
            if self.show_progress:
                completed = tqdm(completed, total=len(futures), desc=self.desc)
            for fut in completed:
                try:
                    results.append(fut.result())
                except Exception as exc:
                    logger.error(f"{self.desc}: worker raised {exc!r}")
                    if first_error is None:
                        first_error = exc

        if first_error is not None:
            raise first_error
        return results
