"""Crawler package: admission checks, traversal, extraction and result delivery."""

from .banned import BannedRangeFilter, ReadWriteLock, VerdictCache, resolve_host
from .config import CrawlConfig, load_config, load_config_payload, load_keywords, parse_headers
from .connectivity import ConnectivityWatchdog, local_ipv4_addresses
from .engine import HTMLElement, TraversalEngine
from .extract import DEFAULT_RULES, ElementRule, LinkExtractor, RuleKind, format_link
from .fetcher import Fetcher
from .frontier import EnqueueResult, EnqueueStatus, Frontier
from .liveness import LivenessProber, classify_status
from .pipeline import ClosableQueue, ResultPipeline
from .runner import CrawlRunner
from .stats import StatsCollector
from .storage import MatchedURLStorage
from .supervisor import SeedSupervisor
from .types import (
    ConfigError,
    CrawlStats,
    ExtractedLink,
    FetchResult,
    FrontierItem,
    HeaderFormatError,
    HostAdmission,
    KeywordFileError,
    LinkscoutError,
    LivenessReason,
    LivenessVerdict,
    SeedOutcome,
    utc_now_iso,
)
from .url import absolute_url, contains_keyword, extract_hostname, extract_urls_from_text, is_in_scope

__all__ = [
    "BannedRangeFilter",
    "ClosableQueue",
    "ConfigError",
    "ConnectivityWatchdog",
    "CrawlConfig",
    "CrawlRunner",
    "CrawlStats",
    "DEFAULT_RULES",
    "ElementRule",
    "EnqueueResult",
    "EnqueueStatus",
    "ExtractedLink",
    "FetchResult",
    "Fetcher",
    "Frontier",
    "FrontierItem",
    "HTMLElement",
    "HeaderFormatError",
    "HostAdmission",
    "KeywordFileError",
    "LinkExtractor",
    "LinkscoutError",
    "LivenessProber",
    "LivenessReason",
    "LivenessVerdict",
    "MatchedURLStorage",
    "ReadWriteLock",
    "ResultPipeline",
    "RuleKind",
    "SeedOutcome",
    "SeedSupervisor",
    "StatsCollector",
    "TraversalEngine",
    "VerdictCache",
    "absolute_url",
    "classify_status",
    "contains_keyword",
    "extract_hostname",
    "extract_urls_from_text",
    "format_link",
    "is_in_scope",
    "load_config",
    "load_config_payload",
    "load_keywords",
    "local_ipv4_addresses",
    "parse_headers",
    "resolve_host",
    "utc_now_iso",
]
