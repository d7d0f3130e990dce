"""Core type definitions for the crawler.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for stats payloads."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class LinkscoutError(Exception):
    """Base class for errors raised by this package."""


class ConfigError(LinkscoutError, ValueError):
    """Invalid crawl configuration."""


class KeywordFileError(LinkscoutError):
    """Keyword list file is missing, unreadable or not text."""


class HeaderFormatError(ConfigError):
    """Custom header string could not be parsed."""


class LivenessReason(str, Enum):
    """Why a liveness probe (or one of its attempts) ended the way it did."""

    INVALID_URL = "invalid_url"
    BANNED_RANGE = "banned_range"
    DNS_FAILURE = "dns_failure"
    NETWORK_ERROR = "network_error"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR_SKIP = "client_error_skip"
    UNEXPECTED_STATUS = "unexpected_status"
    UNREACHABLE = "unreachable"
    ALIVE = "alive"


class HostAdmission(str, Enum):
    """Outcome of resolving a host and checking it against banned ranges."""

    ADMITTED = "admitted"
    BANNED = "banned"
    DNS_FAILURE = "dns_failure"


class SeedOutcome(str, Enum):
    """How the supervised processing of one seed ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class LivenessVerdict:
    """Result of probing one seed URL before traversal."""

    url: str
    reachable: bool
    reason: LivenessReason
    attempts: int = 0
    status_code: int | None = None
    history: tuple[LivenessReason, ...] = ()

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "reachable": self.reachable,
            "reason": self.reason.value,
            "attempts": self.attempts,
            "status_code": self.status_code,
            "history": [item.value for item in self.history],
        }


@dataclass(frozen=True, slots=True)
class ExtractedLink:
    """One discovered reference, resolved against the page it was found on."""

    absolute_url: str
    source: str
    origin_url: str

    def to_json(self, *, include_origin: bool = True) -> JSONDict:
        return {
            "Source": self.source,
            "URL": self.absolute_url,
            "Where": self.origin_url if include_origin else "",
        }


@dataclass(frozen=True, slots=True)
class FrontierItem:
    """A page the traversal engine still has to fetch."""

    url: str
    depth: int
    referrer: str | None = None
    discovered_at: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class FetchResult:
    """Result of attempting to download one page."""

    requested_url: str
    final_url: str | None
    status_code: int | None
    content_type: str | None
    body: bytes | None
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None
    truncated: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.status_code is not None
            and 200 <= self.status_code < 300
            and self.body is not None
        )

    @property
    def is_html(self) -> bool:
        content_type = (self.content_type or "").split(";", maxsplit=1)[0].strip().lower()
        return "html" in content_type

    @property
    def content_length(self) -> int | None:
        return None if self.body is None else len(self.body)


@dataclass(slots=True)
class CrawlStats:
    """Simple mutable counters used for crawl summary reporting."""

    seeds_read: int = 0
    seeds_invalid: int = 0
    seeds_unreachable: int = 0
    seeds_completed: int = 0
    seeds_failed: int = 0
    seeds_timed_out: int = 0

    pages_fetched_ok: int = 0
    pages_fetched_error: int = 0

    links_emitted: int = 0
    links_filtered: int = 0
    links_persisted: int = 0
    links_dropped: int = 0

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def to_json(self) -> JSONDict:
        return {
            "seeds_read": self.seeds_read,
            "seeds_invalid": self.seeds_invalid,
            "seeds_unreachable": self.seeds_unreachable,
            "seeds_completed": self.seeds_completed,
            "seeds_failed": self.seeds_failed,
            "seeds_timed_out": self.seeds_timed_out,
            "pages_fetched_ok": self.pages_fetched_ok,
            "pages_fetched_error": self.pages_fetched_error,
            "links_emitted": self.links_emitted,
            "links_filtered": self.links_filtered,
            "links_persisted": self.links_persisted,
            "links_dropped": self.links_dropped,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


__all__ = [
    "ConfigError",
    "CrawlStats",
    "ExtractedLink",
    "FetchResult",
    "FrontierItem",
    "HeaderFormatError",
    "HostAdmission",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "KeywordFileError",
    "LinkscoutError",
    "LivenessReason",
    "LivenessVerdict",
    "SeedOutcome",
    "utc_now_iso",
]
