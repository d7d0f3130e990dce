"""Typed crawler configuration with JSON/YAML load helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlsplit

import yaml  # type: ignore

from .constants import (
    DEFAULT_BANNED_RANGES,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_SIZE_KB,
    DEFAULT_OUTPUT_FILE,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_SEED_TIMEOUT_SECONDS,
    DEFAULT_THREADS,
    DEFAULT_USER_AGENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import ConfigError, HeaderFormatError, JSONDict, KeywordFileError


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"Invalid bool for '{key}': {value!r}")


def _as_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_headers(raw_headers: str | None) -> dict[str, str]:
    """Parse `Name: value;;Other: value` into a header mapping.

    Segments without a colon are ignored, but a non-empty string with no colon
    at all is rejected.
    """

    if not raw_headers:
        return {}
    if ":" not in raw_headers:
        raise HeaderFormatError(
            "headers not formatted properly (no colon to separate header and value)"
        )

    headers: dict[str, str] = {}
    for segment in raw_headers.split(";;"):
        if ": " in segment:
            name, value = segment.split(": ", maxsplit=1)
        elif ":" in segment:
            name, value = segment.split(":", maxsplit=1)
        else:
            continue
        name = name.strip()
        if name:
            headers[name] = value.strip()
    return headers


def load_keywords(path: str | Path) -> list[str]:
    """Load one keyword per line; blank lines are skipped."""

    keyword_path = Path(path)
    try:
        content = keyword_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise KeywordFileError(f"Keyword file not found: {keyword_path}") from exc
    except UnicodeDecodeError as exc:
        raise KeywordFileError(f"Keyword file is not UTF-8 text: {keyword_path}") from exc
    except OSError as exc:
        raise KeywordFileError(f"Cannot read keyword file {keyword_path}: {exc}") from exc

    if "\x00" in content:
        raise KeywordFileError(f"Keyword file contains binary data: {keyword_path}")

    return [line for line in content.splitlines() if line.strip()]


@dataclass(slots=True)
class CrawlConfig:
    """Top-level configuration shared by the runner, engine and pipeline."""

    inside: bool = False
    threads: int = DEFAULT_THREADS
    max_depth: int = DEFAULT_MAX_DEPTH
    max_size_kb: int = DEFAULT_MAX_SIZE_KB
    insecure: bool = False
    subs: bool = False

    json_output: bool = False
    show_source: bool = False
    show_where: bool = False
    unique: bool = False

    proxy: str | None = None
    timeout_seconds: float = DEFAULT_SEED_TIMEOUT_SECONDS
    disable_redirects: bool = False
    keywords_file: str | None = None

    headers: dict[str, str] = field(default_factory=dict)
    user_agent: str = DEFAULT_USER_AGENT
    output_file: str = DEFAULT_OUTPUT_FILE
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    check_connectivity: bool = True
    banned_ranges: list[str] = field(default_factory=lambda: list(DEFAULT_BANNED_RANGES))

    def __post_init__(self) -> None:
        if self.threads <= 0:
            raise ConfigError("threads must be > 0")
        if self.max_depth < 0:
            raise ConfigError("max_depth must be >= 0 (0 means unlimited)")
        if self.max_size_kb != -1 and self.max_size_kb <= 0:
            raise ConfigError("max_size_kb must be > 0, or -1 for no limit")
        if self.request_timeout_seconds <= 0:
            raise ConfigError("request_timeout_seconds must be > 0")
        if self.retries < 0:
            raise ConfigError("retries must be >= 0")
        if self.retry_backoff_seconds < 0:
            raise ConfigError("retry_backoff_seconds must be >= 0")
        if not self.output_file.strip():
            raise ConfigError("output_file cannot be empty")

        self.proxy = _as_optional_str(self.proxy)
        if self.proxy is not None:
            parsed = urlsplit(self.proxy)
            if not parsed.scheme or not parsed.netloc:
                raise ConfigError(f"Invalid proxy URL: {self.proxy!r}")

        self.keywords_file = _as_optional_str(self.keywords_file)
        self.headers = {str(k): str(v) for k, v in self.headers.items()}

    @property
    def max_body_bytes(self) -> int | None:
        """Page size limit in bytes, or None when unlimited."""

        if self.max_size_kb == -1:
            return None
        return self.max_size_kb * 1024

    def allowed_domains_for(self, hostname: str) -> list[str]:
        """Seed host plus the `Host` header override, when one is set."""

        domains = [hostname]
        host_header = self.headers.get("Host")
        if host_header and host_header not in domains:
            domains.append(host_header)
        return domains

    def request_headers(self) -> dict[str, str]:
        merged = {"User-Agent": self.user_agent}
        merged.update(self.headers)
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize config for logging and stats payloads."""

        return {
            "inside": self.inside,
            "threads": self.threads,
            "max_depth": self.max_depth,
            "max_size_kb": self.max_size_kb,
            "insecure": self.insecure,
            "subs": self.subs,
            "json_output": self.json_output,
            "show_source": self.show_source,
            "show_where": self.show_where,
            "unique": self.unique,
            "proxy": self.proxy,
            "timeout_seconds": self.timeout_seconds,
            "disable_redirects": self.disable_redirects,
            "keywords_file": self.keywords_file,
            "headers": dict(self.headers),
            "user_agent": self.user_agent,
            "output_file": self.output_file,
            "request_timeout_seconds": self.request_timeout_seconds,
            "retries": self.retries,
            "retry_backoff_seconds": self.retry_backoff_seconds,
            "check_connectivity": self.check_connectivity,
            "banned_ranges": list(self.banned_ranges),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary; missing keys take defaults."""

        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(payload) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        raw_headers = payload.get("headers", {})
        if isinstance(raw_headers, str):
            headers = parse_headers(raw_headers)
        elif isinstance(raw_headers, Mapping):
            headers = {str(k): str(v) for k, v in raw_headers.items()}
        else:
            raise ConfigError(f"Invalid headers value: {raw_headers!r}")

        banned_ranges = payload.get("banned_ranges", DEFAULT_BANNED_RANGES)
        if isinstance(banned_ranges, str) or not isinstance(banned_ranges, (list, tuple)):
            raise ConfigError("banned_ranges must be a list of CIDR strings")

        return cls(
            inside=_as_bool(payload.get("inside", False), "inside"),
            threads=_as_int(payload.get("threads", DEFAULT_THREADS), "threads"),
            max_depth=_as_int(payload.get("max_depth", DEFAULT_MAX_DEPTH), "max_depth"),
            max_size_kb=_as_int(payload.get("max_size_kb", DEFAULT_MAX_SIZE_KB), "max_size_kb"),
            insecure=_as_bool(payload.get("insecure", False), "insecure"),
            subs=_as_bool(payload.get("subs", False), "subs"),
            json_output=_as_bool(payload.get("json_output", False), "json_output"),
            show_source=_as_bool(payload.get("show_source", False), "show_source"),
            show_where=_as_bool(payload.get("show_where", False), "show_where"),
            unique=_as_bool(payload.get("unique", False), "unique"),
            proxy=_as_optional_str(payload.get("proxy")),
            timeout_seconds=_as_float(
                payload.get("timeout_seconds", DEFAULT_SEED_TIMEOUT_SECONDS),
                "timeout_seconds",
            ),
            disable_redirects=_as_bool(
                payload.get("disable_redirects", False),
                "disable_redirects",
            ),
            keywords_file=_as_optional_str(payload.get("keywords_file")),
            headers=headers,
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
            output_file=str(payload.get("output_file", DEFAULT_OUTPUT_FILE)),
            request_timeout_seconds=_as_float(
                payload.get("request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS),
                "request_timeout_seconds",
            ),
            retries=_as_int(payload.get("retries", DEFAULT_RETRIES), "retries"),
            retry_backoff_seconds=_as_float(
                payload.get("retry_backoff_seconds", DEFAULT_RETRY_BACKOFF_SECONDS),
                "retry_backoff_seconds",
            ),
            check_connectivity=_as_bool(
                payload.get("check_connectivity", True),
                "check_connectivity",
            ),
            banned_ranges=[str(item) for item in banned_ranges],
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config_payload(path: str | Path) -> dict[str, Any]:
    """Read a JSON/YAML config file into a plain mapping."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        try:
            payload = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON config at {config_path}: {exc}") from exc
    else:
        try:
            payload = _load_yaml(config_path)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML config at {config_path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"Config at {config_path} must be a mapping")
    return payload


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from JSON/YAML path."""

    return CrawlConfig.from_dict(load_config_payload(path))


__all__ = [
    "CrawlConfig",
    "load_config",
    "load_config_payload",
    "load_keywords",
    "parse_headers",
]
