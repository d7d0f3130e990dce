"""Thread-safe crawl statistics aggregation utilities."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import threading
from typing import Any

from .types import CrawlStats, FetchResult, LivenessVerdict, SeedOutcome


class StatsCollector:
    """Collect and summarize crawler runtime statistics.

    The collector is thread-safe and shared by the runner, the traversal
    workers and the result pipeline.
    """

    def __init__(self, base: CrawlStats | None = None) -> None:
        self._lock = threading.Lock()
        self._core = base or CrawlStats()

        self._liveness_reason_counts: dict[str, int] = defaultdict(int)
        self._fetch_status_code_counts: dict[str, int] = defaultdict(int)
        self._fetch_error_type_counts: dict[str, int] = defaultdict(int)
        self._fetch_bytes_total = 0
        self._source_counts: dict[str, int] = defaultdict(int)
        self._custom_counters: dict[str, int] = defaultdict(int)

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a core counter by name, or a custom counter otherwise."""

        if not name or value == 0:
            return
        with self._lock:
            if name in CrawlStats.__dataclass_fields__ and isinstance(
                getattr(self._core, name), int
            ):
                setattr(self._core, name, getattr(self._core, name) + value)
                return
            self._custom_counters[name] += value

    def record_seed_outcome(self, outcome: SeedOutcome) -> None:
        with self._lock:
            if outcome == SeedOutcome.COMPLETED:
                self._core.seeds_completed += 1
            elif outcome == SeedOutcome.TIMED_OUT:
                self._core.seeds_timed_out += 1
            else:
                self._core.seeds_failed += 1

    def record_liveness(self, verdict: LivenessVerdict) -> None:
        with self._lock:
            self._liveness_reason_counts[verdict.reason.value] += 1
            if not verdict.reachable:
                self._core.seeds_unreachable += 1

    def record_fetch(self, result: FetchResult) -> None:
        with self._lock:
            if result.ok:
                self._core.pages_fetched_ok += 1
            else:
                self._core.pages_fetched_error += 1

            if result.status_code is not None:
                self._fetch_status_code_counts[str(result.status_code)] += 1

            if result.error:
                err_type = result.error.split(":", maxsplit=1)[0].strip() or "Unknown"
                self._fetch_error_type_counts[err_type] += 1

            if result.content_length is not None:
                self._fetch_bytes_total += int(result.content_length)

    def record_source(self, source: str) -> None:
        with self._lock:
            self._source_counts[source] += 1

    def finish(self) -> None:
        """Mark crawl as finished."""

        with self._lock:
            self._core.finish()

    def core(self) -> CrawlStats:
        """Return a copy of the core `CrawlStats` record."""

        with self._lock:
            return CrawlStats(**{name: getattr(self._core, name) for name in CrawlStats.__dataclass_fields__})

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            core = self._core.to_json()

            start = _parse_iso_utc(self._core.started_at)
            end = _parse_iso_utc(self._core.finished_at) if self._core.finished_at else datetime.now(
                timezone.utc
            )
            duration_seconds = max(0.0, (end - start).total_seconds())
            fetched_total = self._core.pages_fetched_ok + self._core.pages_fetched_error

            return {
                **core,
                "duration_seconds": duration_seconds,
                "throughput": {
                    "pages_per_second": (
                        fetched_total / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                    "links_per_second": (
                        self._core.links_emitted / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                },
                "liveness": {
                    "reason_counts": dict(self._liveness_reason_counts),
                },
                "fetch": {
                    "status_code_counts": dict(self._fetch_status_code_counts),
                    "error_type_counts": dict(self._fetch_error_type_counts),
                    "bytes_total": self._fetch_bytes_total,
                },
                "sources": dict(self._source_counts),
                "custom_counters": dict(self._custom_counters),
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["StatsCollector"]
