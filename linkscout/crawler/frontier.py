"""Thread-safe frontier queue with scope and depth enforcement."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .types import FrontierItem
from .url import is_http_url, is_in_scope, strip_fragment


class EnqueueStatus(str, Enum):
    """Result status for frontier enqueue attempts."""

    ENQUEUED = "enqueued"
    SKIPPED_INVALID_URL = "skipped_invalid_url"
    SKIPPED_OUT_OF_SCOPE = "skipped_out_of_scope"
    SKIPPED_DEPTH = "skipped_depth"
    SKIPPED_SEEN = "skipped_seen"
    SKIPPED_CLOSED = "skipped_closed"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one enqueue attempt."""

    status: EnqueueStatus
    normalized_url: str | None = None
    item: FrontierItem | None = None

    @property
    def accepted(self) -> bool:
        return self.status == EnqueueStatus.ENQUEUED


class Frontier:
    """Frontier queue shared by one seed's traversal workers.

    - Thread-safe `push` and `pop`.
    - The seed has depth 1; `max_depth == 0` means unlimited.
    - URLs are marked seen at enqueue-time, so each page is fetched once per
      seed.
    """

    def __init__(
        self,
        *,
        allowed_domains: Iterable[str],
        max_depth: int,
        include_subdomains: bool = False,
    ) -> None:
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")

        self.allowed_domains = tuple(allowed_domains)
        self.max_depth = max_depth
        self.include_subdomains = include_subdomains

        self._queue: queue.Queue[FrontierItem] = queue.Queue()
        self._lock = threading.Lock()
        self._seen_urls: set[str] = set()

        self._enqueued_count = 0
        self._dequeued_count = 0
        self._skipped_seen_count = 0
        self._skipped_depth_count = 0
        self._skipped_invalid_count = 0
        self._skipped_out_of_scope_count = 0

        self._closed = False

    def depth_allowed(self, depth: int) -> bool:
        return self.max_depth == 0 or depth <= self.max_depth

    def push(self, url: str, *, depth: int, referrer: str | None = None) -> EnqueueResult:
        """Attempt to enqueue one URL with constraints enforced."""

        if not is_http_url(url):
            with self._lock:
                self._skipped_invalid_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_INVALID_URL)

        normalized = strip_fragment(url)

        if not self.depth_allowed(depth):
            with self._lock:
                self._skipped_depth_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_DEPTH, normalized_url=normalized)

        if not is_in_scope(
            normalized,
            allowed_domains=self.allowed_domains,
            include_subdomains=self.include_subdomains,
        ):
            with self._lock:
                self._skipped_out_of_scope_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_OUT_OF_SCOPE, normalized_url=normalized)

        with self._lock:
            if self._closed:
                return EnqueueResult(EnqueueStatus.SKIPPED_CLOSED, normalized_url=normalized)

            if normalized in self._seen_urls:
                self._skipped_seen_count += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_SEEN, normalized_url=normalized)

            self._seen_urls.add(normalized)
            item = FrontierItem(url=normalized, depth=depth, referrer=referrer)
            self._queue.put(item)
            self._enqueued_count += 1

        return EnqueueResult(EnqueueStatus.ENQUEUED, normalized_url=normalized, item=item)

    def pop(self, *, block: bool = True, timeout: float | None = None) -> FrontierItem | None:
        """Pop one frontier item for a worker thread.

        Returns `None` when no item is available under the requested blocking mode.
        """

        try:
            if block:
                item = self._queue.get(block=True, timeout=timeout)
            else:
                item = self._queue.get(block=False)
        except queue.Empty:
            return None

        with self._lock:
            self._dequeued_count += 1
        return item

    def task_done(self) -> None:
        self._queue.task_done()

    def join(self) -> None:
        """Block until all queued tasks are marked done."""

        self._queue.join()

    def close(self) -> None:
        """Close frontier to future enqueue attempts."""

        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    def snapshot(self) -> dict[str, int]:
        """Return frontier counters for logging and tests."""

        with self._lock:
            return {
                "enqueued": self._enqueued_count,
                "dequeued": self._dequeued_count,
                "skipped_seen": self._skipped_seen_count,
                "skipped_depth": self._skipped_depth_count,
                "skipped_invalid": self._skipped_invalid_count,
                "skipped_out_of_scope": self._skipped_out_of_scope_count,
                "queued": self._queue.qsize(),
            }


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
]
