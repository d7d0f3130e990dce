"""Seed liveness probing with class-specific retry delays."""

from __future__ import annotations

import logging
import time
from typing import Callable, Mapping

import requests

from .banned import BannedRangeFilter
from .connectivity import ConnectivityWatchdog
from .constants import (
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    PROBE_BACKOFF_SECONDS,
    PROBE_MAX_ATTEMPTS,
    PROBE_SKIP_STATUS_CODES,
)
from .types import HostAdmission, LivenessReason, LivenessVerdict
from .url import extract_hostname


LOGGER = logging.getLogger(__name__)


def classify_status(status_code: int) -> LivenessReason:
    """Map a HEAD response status to the probe's decision for that attempt."""

    if 200 <= status_code < 400:
        return LivenessReason.ALIVE
    if status_code == 429:
        return LivenessReason.RATE_LIMITED
    if status_code >= 500:
        return LivenessReason.SERVER_ERROR
    if status_code in PROBE_SKIP_STATUS_CODES:
        return LivenessReason.CLIENT_ERROR_SKIP
    return LivenessReason.UNEXPECTED_STATUS


class LivenessProber:
    """Decide whether a seed URL is admissible and answering before a crawl.

    Transient failures (network errors, 429, 5xx, unexpected statuses) are
    retried after a fixed delay per failure class, up to `max_attempts`.
    400/401/403/404 end the probe at once.
    """

    def __init__(
        self,
        banned_filter: BannedRangeFilter,
        *,
        watchdog: ConnectivityWatchdog | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        max_attempts: int = PROBE_MAX_ATTEMPTS,
        backoff_seconds: Mapping[str, float] | None = None,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")

        self.banned_filter = banned_filter
        self.watchdog = watchdog
        self.session = session or requests.Session()
        self._sleep = sleep
        self.max_attempts = max_attempts
        self.backoff_seconds = dict(PROBE_BACKOFF_SECONDS)
        if backoff_seconds:
            self.backoff_seconds.update(backoff_seconds)

    def is_alive(self, url: str, timeout_seconds: float) -> bool:
        return self.probe(url, timeout_seconds).reachable

    def probe(self, url: str, timeout_seconds: float) -> LivenessVerdict:
        if self.watchdog is not None:
            self.watchdog.wait_until_connected()

        try:
            hostname = extract_hostname(url)
        except ValueError:
            LOGGER.warning("[INVALID URL]: %s", url)
            return LivenessVerdict(url=url, reachable=False, reason=LivenessReason.INVALID_URL)

        admission = self.banned_filter.admit_host(hostname)
        if admission != HostAdmission.ADMITTED:
            LOGGER.info(
                "Skipping %s due to banned range or restricted resolution (%s)",
                url,
                admission.value,
            )
            reason = (
                LivenessReason.BANNED_RANGE
                if admission == HostAdmission.BANNED
                else LivenessReason.DNS_FAILURE
            )
            return LivenessVerdict(url=url, reachable=False, reason=reason)

        timeout = timeout_seconds if timeout_seconds > 0 else DEFAULT_PROBE_TIMEOUT_SECONDS
        return self._probe_with_retries(url, timeout)

    def _probe_with_retries(self, url: str, timeout: float) -> LivenessVerdict:
        history: list[LivenessReason] = []
        status_code: int | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self.session.head(url, timeout=timeout, allow_redirects=True)
            except requests.RequestException as exc:
                LOGGER.debug("[NETWORK ERROR]: %s, retry #%d: %s", url, attempt, exc)
                history.append(LivenessReason.NETWORK_ERROR)
                self._sleep(self.backoff_seconds[LivenessReason.NETWORK_ERROR.value])
                continue

            status_code = response.status_code
            response.close()
            outcome = classify_status(status_code)
            history.append(outcome)

            if outcome in {LivenessReason.ALIVE, LivenessReason.CLIENT_ERROR_SKIP}:
                if outcome == LivenessReason.CLIENT_ERROR_SKIP:
                    LOGGER.debug("[SKIPPING]: %s - status %d", url, status_code)
                return LivenessVerdict(
                    url=url,
                    reachable=outcome == LivenessReason.ALIVE,
                    reason=outcome,
                    attempts=attempt,
                    status_code=status_code,
                    history=tuple(history),
                )

            if outcome == LivenessReason.UNEXPECTED_STATUS:
                LOGGER.warning(
                    "[HTTP STATUS]: %s, status code: %d, retry #%d",
                    url,
                    status_code,
                    attempt,
                )
            else:
                LOGGER.debug("[RETRYING]: %s - %s (%d)", url, outcome.value, status_code)
            self._sleep(self.backoff_seconds[outcome.value])

        return LivenessVerdict(
            url=url,
            reachable=False,
            reason=LivenessReason.UNREACHABLE,
            attempts=self.max_attempts,
            status_code=status_code,
            history=tuple(history),
        )


__all__ = [
    "LivenessProber",
    "classify_status",
]
