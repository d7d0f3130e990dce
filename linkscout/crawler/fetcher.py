"""Page fetching over `requests` with size limits and retry logic."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import threading
import time
from typing import Callable

import requests
import urllib3

from .config import CrawlConfig
from .types import FetchResult


LOGGER = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class _AttemptConfig:
    attempts: int
    backoff_seconds: float


class Fetcher:
    """Fetch pages for the traversal workers.

    Each worker thread gets its own `requests.Session`, configured once with
    the crawl's headers, proxy and TLS settings.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        session_factory: Callable[[], requests.Session] = requests.Session,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._session_factory = session_factory
        self._sleep = sleep

        self._thread_local = threading.local()
        self._sessions_lock = threading.Lock()
        self._sessions: list[requests.Session] = []

        self._closed = False
        self._closed_lock = threading.Lock()

        if config.insecure:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def fetch(self, url: str) -> FetchResult:
        """Fetch one URL with configured retries."""

        if self._is_closed():
            return _error_result(url, "Fetcher is closed")

        attempt_cfg = _AttemptConfig(
            attempts=max(1, self.config.retries + 1),
            backoff_seconds=max(0.0, self.config.retry_backoff_seconds),
        )
        return self._fetch_with_retries(url=url, attempt_cfg=attempt_cfg)

    def close(self) -> None:
        with self._closed_lock:
            self._closed = True

        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _is_closed(self) -> bool:
        with self._closed_lock:
            return self._closed

    def _fetch_with_retries(self, *, url: str, attempt_cfg: _AttemptConfig) -> FetchResult:
        last_result: FetchResult | None = None

        for attempt in range(1, attempt_cfg.attempts + 1):
            if self._is_closed():
                return _error_result(url, "Fetcher is closed")

            result = self._fetch_once(url)
            last_result = result

            if self._is_terminal_result(result):
                return result

            if attempt < attempt_cfg.attempts:
                LOGGER.debug("Retrying %s (attempt %d): %s", url, attempt, result.error or result.status_code)
                if attempt_cfg.backoff_seconds > 0:
                    self._sleep(attempt_cfg.backoff_seconds * attempt)

        if last_result is None:
            return _error_result(url, "Unknown fetch failure")
        return last_result

    @staticmethod
    def _is_terminal_result(result: FetchResult) -> bool:
        if result.error is not None:
            return False

        if result.status_code is None:
            return False

        if result.status_code in {408, 429} or result.status_code >= 500:
            return False

        return True

    def _fetch_once(self, url: str) -> FetchResult:
        started = time.perf_counter()
        session = self._thread_local_session()

        try:
            with session.get(
                url,
                timeout=self.config.request_timeout_seconds,
                allow_redirects=not self.config.disable_redirects,
                stream=True,
            ) as response:
                body, truncated = self._read_body(response)
                elapsed_ms = int((time.perf_counter() - started) * 1000)
                return FetchResult(
                    requested_url=url,
                    final_url=response.url or url,
                    status_code=response.status_code,
                    content_type=response.headers.get("Content-Type"),
                    body=body,
                    elapsed_ms=elapsed_ms,
                    truncated=truncated,
                    error=None,
                )
        except requests.RequestException as exc:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                elapsed_ms=elapsed_ms,
                error=f"{exc.__class__.__name__}: {exc}",
            )

    def _read_body(self, response: requests.Response) -> tuple[bytes, bool]:
        limit = self.config.max_body_bytes
        if limit is None:
            return response.content or b"", False

        chunks: list[bytes] = []
        size = 0
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            if not chunk:
                continue
            remaining = limit - size
            if len(chunk) >= remaining:
                chunks.append(chunk[:remaining])
                return b"".join(chunks), True
            chunks.append(chunk)
            size += len(chunk)
        return b"".join(chunks), False

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = self._session_factory()
            session.headers.update(self.config.request_headers())
            session.verify = not self.config.insecure
            if self.config.proxy:
                session.proxies.update({"http": self.config.proxy, "https": self.config.proxy})
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session


def _error_result(url: str, error: str) -> FetchResult:
    return FetchResult(
        requested_url=url,
        final_url=None,
        status_code=None,
        content_type=None,
        body=None,
        error=error,
    )


__all__ = ["Fetcher"]
