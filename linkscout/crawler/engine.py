"""Concurrent page traversal for one seed.

Workers pop pages from the frontier, fetch them, parse HTML with BeautifulSoup
and invoke every bound handler once per element matched by its CSS selector.
Handlers may ask for further pages through `HTMLElement.visit`.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag

from .config import CrawlConfig
from .fetcher import Fetcher
from .frontier import EnqueueStatus, Frontier
from .stats import StatsCollector
from .types import FetchResult, FrontierItem


LOGGER = logging.getLogger(__name__)

WORKER_POLL_SECONDS = 0.5
WORKER_JOIN_TIMEOUT_SECONDS = 5.0


class HTMLElement:
    """A matched element plus the page context handlers need."""

    def __init__(self, tag: Tag, *, page_url: str, depth: int, engine: "TraversalEngine") -> None:
        self.name = tag.name
        self.attrs = {name: _attr_text(value) for name, value in tag.attrs.items()}
        self._tag = tag
        self.page_url = page_url
        self.depth = depth
        self._engine = engine

    @property
    def text(self) -> str:
        return self._tag.get_text()

    def attr(self, name: str) -> str:
        return self.attrs.get(name, "")

    def visit(self, url: str) -> bool:
        """Queue `url` one level below this element's page; True when accepted."""

        return self._engine.enqueue(url, depth=self.depth + 1, referrer=self.page_url)

    def __repr__(self) -> str:
        return f"HTMLElement(name={self.name!r}, page_url={self.page_url!r})"


def _attr_text(value: str | Sequence[str]) -> str:
    # multi-valued attributes (class, rel) come back as lists
    if isinstance(value, str):
        return value
    return " ".join(value)


ElementHandler = Callable[[HTMLElement], None]


class TraversalEngine:
    """Breadth-first, multi-threaded crawl of one seed's site."""

    def __init__(
        self,
        config: CrawlConfig,
        *,
        allowed_domains: Iterable[str],
        bindings: Iterable[tuple[str, ElementHandler]],
        fetcher: Fetcher | None = None,
        stats: StatsCollector | None = None,
    ) -> None:
        self.config = config
        self.bindings = list(bindings)
        self.stats = stats or StatsCollector()

        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or Fetcher(config)
        self.frontier = Frontier(
            allowed_domains=allowed_domains,
            max_depth=config.max_depth,
            include_subdomains=config.subs,
        )

        self._workers: list[threading.Thread] = []
        self._workers_lock = threading.Lock()

    def visit(self, url: str) -> bool:
        """Queue the seed page and start the workers."""

        accepted = self.enqueue(url, depth=1, referrer=None)
        self._start_workers()
        return accepted

    def enqueue(self, url: str, *, depth: int, referrer: str | None) -> bool:
        result = self.frontier.push(url, depth=depth, referrer=referrer)
        if not result.accepted and result.status != EnqueueStatus.SKIPPED_SEEN:
            LOGGER.debug("Not visiting %s: %s", url, result.status.value)
        return result.accepted

    def wait(self) -> None:
        """Block until every queued page has been processed."""

        self.frontier.join()
        self.frontier.close()

        with self._workers_lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join(timeout=WORKER_JOIN_TIMEOUT_SECONDS)

        if self._owns_fetcher:
            self.fetcher.close()

        LOGGER.debug("Traversal finished: %s", self.frontier.snapshot())

    def _start_workers(self) -> None:
        with self._workers_lock:
            if self._workers:
                return
            self._workers = [
                threading.Thread(
                    target=self._worker,
                    name=f"crawler-worker-{idx}",
                    daemon=True,
                )
                for idx in range(self.config.threads)
            ]
            for worker in self._workers:
                worker.start()

    def _worker(self) -> None:
        while True:
            item = self.frontier.pop(block=True, timeout=WORKER_POLL_SECONDS)
            if item is None:
                if self.frontier.closed and self.frontier.qsize() == 0:
                    return
                continue

            try:
                self._process(item)
            except Exception as exc:
                LOGGER.error("Error processing %s: %s", item.url, exc)
                self.stats.increment("worker_errors")
            finally:
                self.frontier.task_done()

    def _process(self, item: FrontierItem) -> None:
        result = self.fetcher.fetch(item.url)
        self.stats.record_fetch(result)

        if not result.ok:
            LOGGER.debug(
                "Fetch failed for %s: %s",
                item.url,
                result.error or f"status {result.status_code}",
            )
            return
        if not result.is_html:
            return

        self.dispatch(result, depth=item.depth)

    def dispatch(self, result: FetchResult, *, depth: int) -> None:
        """Run every binding over the parsed page."""

        page_url = result.final_url or result.requested_url
        soup = BeautifulSoup(result.body or b"", "lxml")

        for selector, handler in self.bindings:
            for tag in soup.select(selector):
                handler(HTMLElement(tag, page_url=page_url, depth=depth, engine=self))


__all__ = [
    "ElementHandler",
    "HTMLElement",
    "TraversalEngine",
]
