"""Result pipeline: many extraction producers, one draining consumer."""

from __future__ import annotations

from collections import deque
import logging
import sys
import threading
from typing import Generic, TextIO, TypeVar

from .stats import StatsCollector
from .storage import MatchedURLStorage


LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class ClosableQueue(Generic[T]):
    """Bounded FIFO that can be closed.

    After `close()`, `put` is a no-op returning False (also for producers that
    were blocked on a full queue), and `get` keeps returning queued items until
    the queue is empty, then returns None.
    """

    def __init__(self, maxsize: int) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be > 0")

        self.maxsize = maxsize
        self._items: deque[T] = deque()
        self._closed = False
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)

    def put(self, item: T) -> bool:
        with self._not_full:
            while not self._closed and len(self._items) >= self.maxsize:
                self._not_full.wait()
            if self._closed:
                return False
            self._items.append(item)
            self._not_empty.notify()
            return True

    def get(self) -> T | None:
        with self._not_empty:
            while not self._items and not self._closed:
                self._not_empty.wait()
            if not self._items:
                return None
            item = self._items.popleft()
            self._not_full.notify()
            return item

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def qsize(self) -> int:
        with self._lock:
            return len(self._items)


class ResultPipeline:
    """Deliver formatted records to the file sink and to an output stream.

    Producers call `submit` from any thread. A single consumer thread drains
    the bounded queue and writes to `stream`; with `unique`, it prints each
    record only the first time it sees it.
    """

    def __init__(
        self,
        storage: MatchedURLStorage | None,
        *,
        unique: bool = False,
        capacity: int = 8,
        stream: TextIO | None = None,
        stats: StatsCollector | None = None,
    ) -> None:
        self.storage = storage
        self.unique = unique
        self.stream = stream if stream is not None else sys.stdout
        self.stats = stats or StatsCollector()

        self._queue: ClosableQueue[str] = ClosableQueue(capacity)
        self._printed_lock = threading.Lock()
        self._printed: set[str] = set()
        self._consumer: threading.Thread | None = None

    def submit(self, record: str, *, persist: bool = True) -> bool:
        """Persist (optionally) and enqueue one record.

        Returns False when the queue is already closed; the record is then
        dropped without error.
        """

        if persist and self.storage is not None:
            if self.storage.append(record, unique=self.unique):
                self.stats.increment("links_persisted")

        if self._queue.put(record):
            return True

        LOGGER.debug("Dropping late result after pipeline close: %s", record)
        self.stats.increment("links_dropped")
        return False

    def start(self) -> "ResultPipeline":
        if self._consumer is not None:
            return self
        self._consumer = threading.Thread(
            target=self._drain,
            name="result-consumer",
            daemon=True,
        )
        self._consumer.start()
        return self

    def _drain(self) -> None:
        while True:
            record = self._queue.get()
            if record is None:
                break

            if self.unique and not self._first_sighting(record):
                self.stats.increment("links_duplicate")
                continue

            try:
                self.stream.write(record + "\n")
                self.stream.flush()
            except (OSError, ValueError) as exc:
                LOGGER.error("Failed writing result to output stream: %s", exc)
                continue
            self.stats.increment("links_emitted")

        try:
            self.stream.flush()
        except (OSError, ValueError) as exc:
            LOGGER.debug("Final flush of output stream failed: %s", exc)

    def _first_sighting(self, record: str) -> bool:
        with self._printed_lock:
            if record in self._printed:
                return False
            self._printed.add(record)
            return True

    def close(self) -> None:
        self._queue.close()

    @property
    def closed(self) -> bool:
        return self._queue.closed

    def join(self, timeout: float | None = None) -> None:
        """Wait for the consumer to drain everything queued before close."""

        if self._consumer is not None:
            self._consumer.join(timeout=timeout)

    def __enter__(self) -> "ResultPipeline":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
        self.join()


__all__ = [
    "ClosableQueue",
    "ResultPipeline",
]
