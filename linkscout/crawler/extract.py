"""Element rules and the extraction callback feeding the result pipeline.

Each `ElementRule` says which elements to match (CSS selector), which value to
read from them and which source tag to report. `LinkExtractor.bindings()`
turns the rule table into callbacks for the traversal engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import json
import logging
from typing import Callable, Iterable, Protocol, Sequence

from .config import CrawlConfig
from .pipeline import ResultPipeline
from .stats import StatsCollector
from .types import ExtractedLink
from .url import absolute_url, contains_keyword, extract_urls_from_text


LOGGER = logging.getLogger(__name__)

URL_LIKE_PREFIXES = ("http://", "https://", "//", "/", "./", "../")


class RuleKind(str, Enum):
    """How an `ElementRule` reads candidate links from a matched element."""

    ATTRIBUTE = "attribute"
    ABSOLUTE_ATTRIBUTE = "absolute_attribute"
    URL_LIKE_ATTRIBUTE = "url_like_attribute"
    TEXT_URLS = "text_urls"
    DATA_ATTRIBUTES = "data_attributes"
    SOCIAL_META = "social_meta"


class Element(Protocol):
    """What the extractor needs from a matched HTML element."""

    name: str
    page_url: str
    text: str
    attrs: dict[str, str]

    def attr(self, name: str) -> str: ...

    def visit(self, url: str) -> bool: ...


Handler = Callable[[Element], None]


@dataclass(frozen=True, slots=True)
class ElementRule:
    """One selector-to-source mapping."""

    selector: str
    source: str
    attribute: str = ""
    kind: RuleKind = RuleKind.ATTRIBUTE
    inside_only: bool = False


DEFAULT_RULES: tuple[ElementRule, ...] = (
    ElementRule("[href]", "href", "href", inside_only=True),
    ElementRule("script[src]", "script", "src"),
    ElementRule("form[action]", "form", "action"),
    ElementRule("script", "jscode", kind=RuleKind.TEXT_URLS),
    ElementRule('link[rel~="stylesheet"]', "css", "href"),
    ElementRule("[src]", "embedded", "src"),
    ElementRule("button[href], a[href]", "interactive", "href", RuleKind.ABSOLUTE_ATTRIBUTE),
    ElementRule("html", "custom_REGEX", kind=RuleKind.TEXT_URLS),
    ElementRule("*", "data", "data-", RuleKind.DATA_ATTRIBUTES),
    ElementRule("*", "custom-data", "data-custom-", RuleKind.DATA_ATTRIBUTES),
    ElementRule("meta[content]", "meta", "content", RuleKind.URL_LIKE_ATTRIBUTE),
    ElementRule("video[src]", "video", "src"),
    ElementRule("audio[src]", "audio", "src"),
    ElementRule("embed[src]", "embed", "src"),
    ElementRule("track[src]", "track", "src"),
    ElementRule("area[href]", "area", "href"),
    ElementRule("applet[archive]", "applet", "archive"),
    ElementRule("base[href]", "base", "href"),
    ElementRule("bgsound[src]", "bgsound", "src"),
    ElementRule("body[background]", "body-background", "background"),
    ElementRule(
        'link[type="application/rss+xml"], link[type="application/atom+xml"], '
        'link[type="application/xml"]',
        "feed",
        "href",
    ),
    ElementRule('img[src*=".webp"]', "webp-image", "src"),
    ElementRule('link[rel~="manifest"]', "manifest", "href"),
    ElementRule(
        'meta[property^="og:"], meta[name^="twitter:"]',
        "social-media",
        "content",
        RuleKind.SOCIAL_META,
    ),
    ElementRule('a[href$=".xml"]', "sitemap", "href"),
    ElementRule('[src^="data:"]', "data-uri", "src"),
    ElementRule('script[src^="ws://"], script[src^="wss://"]', "websocket", "src"),
    ElementRule("frame[src]", "frame", "src"),
)


def format_link(
    link: ExtractedLink,
    *,
    json_output: bool = False,
    show_source: bool = False,
    show_where: bool = False,
) -> str:
    """Render one discovered link as an output line.

    JSON output is a compact `{"Source","URL","Where"}` object, with `Where`
    empty unless `show_where` is set. Plain output may carry a `[source]` and
    an `[origin]` prefix, origin first.
    """

    if json_output:
        return json.dumps(
            link.to_json(include_origin=show_where),
            separators=(",", ":"),
            ensure_ascii=False,
        )

    record = link.absolute_url
    if show_source:
        record = f"[{link.source}] {record}"
    if show_where:
        record = f"[{link.origin_url}] {record}"
    return record


def _looks_like_url(value: str) -> bool:
    candidate = value.strip()
    if not candidate:
        return False
    if candidate.lower().startswith(URL_LIKE_PREFIXES):
        return True
    return bool(extract_urls_from_text(candidate))


class LinkExtractor:
    """Per-seed extraction callback.

    Emits every candidate link through the keyword filter into the result
    pipeline and asks the engine to visit it.
    """

    def __init__(
        self,
        config: CrawlConfig,
        pipeline: ResultPipeline,
        *,
        seed_url: str,
        keywords: Sequence[str] = (),
        rules: Iterable[ElementRule] = DEFAULT_RULES,
        stats: StatsCollector | None = None,
    ) -> None:
        self.config = config
        self.pipeline = pipeline
        self.seed_url = seed_url
        self.keywords = tuple(keywords)
        self.rules = tuple(rules)
        self.stats = stats or pipeline.stats

    def bindings(self) -> list[tuple[str, Handler]]:
        """Return `(selector, handler)` pairs, one per rule."""

        return [(rule.selector, self._rule_handler(rule)) for rule in self.rules]

    def _rule_handler(self, rule: ElementRule) -> Handler:
        def handler(element: Element) -> None:
            for raw_link, source in self.candidates(rule, element):
                if rule.inside_only and not self._inside(element, raw_link):
                    continue
                self.handle(element, raw_link, source)

        return handler

    def candidates(self, rule: ElementRule, element: Element) -> list[tuple[str, str]]:
        """Raw link values and source tags one rule yields for one element."""

        if rule.kind == RuleKind.ATTRIBUTE:
            value = element.attr(rule.attribute)
            return [(value, rule.source)] if value else []

        if rule.kind == RuleKind.ABSOLUTE_ATTRIBUTE:
            value = element.attr(rule.attribute)
            if value.startswith(("http://", "https://")):
                return [(value, rule.source)]
            return []

        if rule.kind == RuleKind.URL_LIKE_ATTRIBUTE:
            value = element.attr(rule.attribute)
            return [(value, rule.source)] if _looks_like_url(value) else []

        if rule.kind == RuleKind.TEXT_URLS:
            return [(found, rule.source) for found in extract_urls_from_text(element.text)]

        if rule.kind == RuleKind.DATA_ATTRIBUTES:
            out: list[tuple[str, str]] = []
            for name, value in element.attrs.items():
                if not name.startswith(rule.attribute):
                    continue
                # plain data- rule leaves data-custom-* to its own rule
                if rule.attribute == "data-" and name.startswith("data-custom-"):
                    continue
                if _looks_like_url(value):
                    out.append((value, rule.source))
            return out

        if rule.kind == RuleKind.SOCIAL_META:
            value = element.attr(rule.attribute)
            if not _looks_like_url(value):
                return []
            tag = element.attr("property") or element.attr("name")
            return [(value, f"{rule.source}-{tag}")]

        raise ValueError(f"Unsupported rule kind: {rule.kind!r}")

    def _inside(self, element: Element, raw_link: str) -> bool:
        if not self.config.inside:
            return True
        resolved = absolute_url(element.page_url, raw_link)
        return resolved is not None and self.seed_url in resolved

    def handle(self, element: Element, raw_link: str, source: str) -> bool:
        """Filter, format, submit and visit one raw link.

        Returns True when a record was handed to the pipeline.
        """

        resolved = absolute_url(element.page_url, raw_link)
        if resolved is None:
            return False

        emitted = False
        if not self.keywords or contains_keyword(raw_link, self.keywords):
            link = ExtractedLink(absolute_url=resolved, source=source, origin_url=element.page_url)
            record = format_link(
                link,
                json_output=self.config.json_output,
                show_source=self.config.show_source,
                show_where=self.config.show_where,
            )
            persist = not self.keywords or contains_keyword(record, self.keywords)
            self.pipeline.submit(record, persist=persist)
            self.stats.record_source(source)
            emitted = True
        else:
            LOGGER.debug("[FILTERED]: %s", raw_link)
            self.stats.increment("links_filtered")

        element.visit(resolved)
        return emitted


__all__ = [
    "DEFAULT_RULES",
    "Element",
    "ElementRule",
    "Handler",
    "LinkExtractor",
    "RuleKind",
    "format_link",
]
