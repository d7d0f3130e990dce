"""URL parsing, scope matching, keyword and text-extraction helpers."""

from __future__ import annotations

import re
from typing import Iterable, Sequence
from urllib.parse import urljoin, urlsplit, urlunsplit


DEFAULT_ALLOWED_SCHEMES = ("http", "https")

URL_IN_TEXT_PATTERN = re.compile(
    r"(?:(?:https?|ftp|smtp|unknown|sftp|file|data|telnet|ssh|ws|wss|git|svn|gopher)://)"
    r"(?:(?:[^\s:@'\"]+(?::[^\s:@'\"]*)?@)?"
    r"(?:[_A-Z0-9.-]+|\[[_A-F0-9]*:[_A-F0-9:]+\])"
    r"(?::\d{1,5})?)"
    r"(?:/[^\s'\"]*)?"
    r"(?:\?[^\s'\"]*)?"
    r"(?:#[^\s'\"]*)?",
    re.IGNORECASE,
)


def extract_hostname(url: str) -> str:
    """Return the hostname of an absolute URL.

    Raises `ValueError` when the input is not a valid absolute URL.
    """

    candidate = (url or "").strip()
    try:
        parsed = urlsplit(candidate)
        hostname = parsed.hostname
    except ValueError as exc:
        raise ValueError("Input must be a valid absolute URL") from exc

    if not parsed.scheme or not parsed.netloc or not hostname:
        raise ValueError("Input must be a valid absolute URL")
    return hostname


def is_http_url(url: str, allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES) -> bool:
    """Return True if URL is absolute and has an allowed HTTP-like scheme."""

    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    if not parsed.scheme or not parsed.netloc:
        return False
    return parsed.scheme.lower() in {scheme.lower() for scheme in allowed_schemes}


def absolute_url(base_url: str, link: str | None) -> str | None:
    """Resolve a possibly relative reference against the page it was found on.

    Empty references and pure fragments yield `None`; the fragment of the
    resolved URL is dropped.
    """

    if link is None:
        return None

    candidate = link.strip()
    if not candidate or candidate.startswith("#"):
        return None

    try:
        resolved = urljoin(base_url, candidate)
        parsed = urlsplit(resolved)
    except ValueError:
        return None

    if not parsed.scheme:
        return None

    if parsed.scheme.lower() == "data":
        return resolved

    return urlunsplit((parsed.scheme, parsed.netloc, parsed.path, parsed.query, ""))


def strip_fragment(url: str) -> str:
    parsed = urlsplit(url)
    return urlunsplit((parsed.scheme, parsed.netloc, parsed.path, parsed.query, ""))


def subdomain_scope_pattern(hostname: str) -> re.Pattern[str]:
    """Pattern accepting the host itself and any of its subdomains.

    The authority may carry an explicit port; anything after the host other
    than a port, path, query or fragment puts the URL out of scope.
    """

    return re.compile(
        r"[^:/?#]+://([^/?#]*\.)?" + re.escape(hostname) + r"(:\d+)?([/?#].*)?",
        re.IGNORECASE,
    )


def is_in_scope(
    url: str,
    *,
    allowed_domains: Iterable[str],
    include_subdomains: bool = False,
) -> bool:
    """Return True when the URL may be fetched during a seed's traversal."""

    if not is_http_url(url):
        return False

    domains = [domain.strip().lower() for domain in allowed_domains if domain and domain.strip()]
    if not domains:
        return False

    if include_subdomains:
        return any(subdomain_scope_pattern(domain).fullmatch(url) for domain in domains)

    host = (urlsplit(url).hostname or "").lower()
    return host in domains


def contains_keyword(text: str, keywords: Sequence[str]) -> bool:
    """Case-sensitive substring match against any keyword."""

    return any(keyword in text for keyword in keywords)


def extract_urls_from_text(text: str) -> list[str]:
    """Find scheme-qualified URLs in raw text, unique and in first-seen order."""

    if not text:
        return []

    seen: set[str] = set()
    out: list[str] = []
    for match in URL_IN_TEXT_PATTERN.finditer(text):
        found = match.group(0)
        if found in seen:
            continue
        seen.add(found)
        out.append(found)
    return out


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "URL_IN_TEXT_PATTERN",
    "absolute_url",
    "contains_keyword",
    "extract_hostname",
    "extract_urls_from_text",
    "is_http_url",
    "is_in_scope",
    "strip_fragment",
    "subdomain_scope_pattern",
]
