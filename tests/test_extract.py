"""Tests for link formatting, element rules and the extraction callback."""

import json

import pytest

from linkscout.crawler.config import CrawlConfig
from linkscout.crawler.extract import DEFAULT_RULES, ElementRule, LinkExtractor, RuleKind, format_link
from linkscout.crawler.stats import StatsCollector
from linkscout.crawler.types import ExtractedLink
from linkscout.crawler.url import extract_urls_from_text


class FakeElement:
    """Matched element double that records visit requests."""

    def __init__(self, name="a", attrs=None, text="", page_url="https://example.com/"):
        self.name = name
        self.attrs = dict(attrs or {})
        self.text = text
        self.page_url = page_url
        self.visited = []

    def attr(self, name):
        return self.attrs.get(name, "")

    def visit(self, url):
        self.visited.append(url)
        return True


class RecordingPipeline:
    def __init__(self):
        self.stats = StatsCollector()
        self.submitted = []

    def submit(self, record, *, persist=True):
        self.submitted.append((record, persist))
        return True


def _extractor(keywords=(), **config_kwargs):
    pipeline = RecordingPipeline()
    extractor = LinkExtractor(
        CrawlConfig(**config_kwargs),
        pipeline,
        seed_url="https://example.com/",
        keywords=keywords,
    )
    return extractor, pipeline


class TestFormatLink:
    link = ExtractedLink("https://example.com/a", "href", "https://example.com/")

    def test_plain(self):
        assert format_link(self.link) == "https://example.com/a"

    def test_source(self):
        assert format_link(self.link, show_source=True) == "[href] https://example.com/a"

    def test_where_and_source(self):
        assert (
            format_link(self.link, show_source=True, show_where=True)
            == "[https://example.com/] [href] https://example.com/a"
        )

    def test_json_with_where(self):
        record = format_link(self.link, json_output=True, show_where=True)
        assert json.loads(record) == {
            "Source": "href",
            "URL": "https://example.com/a",
            "Where": "https://example.com/",
        }
        assert " " not in record

    def test_json_without_where_leaves_it_empty(self):
        record = format_link(self.link, json_output=True, show_source=True)
        assert json.loads(record)["Where"] == ""


class TestHandle:
    def test_keyword_admits_matching_link(self):
        extractor, pipeline = _extractor(keywords=["admin"])
        element = FakeElement()

        assert extractor.handle(element, "/admin/login", "href") is True
        assert pipeline.submitted == [("https://example.com/admin/login", True)]

    def test_keyword_suppresses_other_links_but_still_visits(self):
        extractor, pipeline = _extractor(keywords=["admin"])
        element = FakeElement()

        assert extractor.handle(element, "/public/home", "href") is False
        assert pipeline.submitted == []
        assert element.visited == ["https://example.com/public/home"]
        assert pipeline.stats.core().links_filtered == 1

    def test_formatted_recheck_controls_persist(self):
        # "./" is in the raw value but not in the resolved URL
        extractor, pipeline = _extractor(keywords=["./"])
        extractor.handle(FakeElement(), "./page", "href")
        assert pipeline.submitted == [("https://example.com/page", False)]

    def test_json_record_persisted_when_keyword_survives(self):
        extractor, pipeline = _extractor(keywords=["admin"], json_output=True)
        extractor.handle(FakeElement(), "/admin", "href")
        record, persist = pipeline.submitted[0]
        assert persist is True
        assert json.loads(record)["URL"] == "https://example.com/admin"

    def test_fragment_only_links_are_ignored(self):
        extractor, pipeline = _extractor()
        element = FakeElement()
        assert extractor.handle(element, "#top", "href") is False
        assert pipeline.submitted == []
        assert element.visited == []

    def test_where_is_page_url(self):
        extractor, pipeline = _extractor(show_where=True)
        element = FakeElement(page_url="https://example.com/docs/")
        extractor.handle(element, "intro.html", "href")
        assert pipeline.submitted[0][0] == "[https://example.com/docs/] https://example.com/docs/intro.html"


class TestRules:
    def _run(self, extractor, rule, element):
        extractor._rule_handler(rule)(element)

    def test_inside_only_href(self):
        extractor, pipeline = _extractor(inside=True)
        rule = DEFAULT_RULES[0]
        assert rule.source == "href" and rule.inside_only

        self._run(extractor, rule, FakeElement(attrs={"href": "https://other.example/x"}))
        self._run(extractor, rule, FakeElement(attrs={"href": "/in/scope"}))

        assert [record for record, _ in pipeline.submitted] == ["https://example.com/in/scope"]

    @pytest.mark.parametrize("name", ["link", "div", "button"])
    def test_href_on_any_element(self, name):
        extractor, pipeline = _extractor(show_source=True)
        element = FakeElement(name=name, attrs={"href": "/favicon.ico"})
        self._run(extractor, DEFAULT_RULES[0], element)

        assert pipeline.submitted == [("[href] https://example.com/favicon.ico", True)]
        assert element.visited == ["https://example.com/favicon.ico"]

    def test_interactive_requires_absolute_http(self):
        extractor, _ = _extractor()
        rule = ElementRule("button[href]", "interactive", "href", RuleKind.ABSOLUTE_ATTRIBUTE)
        assert extractor.candidates(rule, FakeElement(attrs={"href": "/relative"})) == []
        assert extractor.candidates(rule, FakeElement(attrs={"href": "https://x.example/"})) == [
            ("https://x.example/", "interactive")
        ]

    def test_script_text_urls(self):
        extractor, _ = _extractor()
        rule = ElementRule("script", "jscode", kind=RuleKind.TEXT_URLS)
        element = FakeElement(
            name="script",
            text="fetch('https://api.example.com/v1'); var u = \"wss://ws.example.com/feed\";",
        )
        assert extractor.candidates(rule, element) == [
            ("https://api.example.com/v1", "jscode"),
            ("wss://ws.example.com/feed", "jscode"),
        ]

    def test_data_attributes_split_between_rules(self):
        extractor, _ = _extractor()
        element = FakeElement(
            name="div",
            attrs={
                "data-src": "/img/a.png",
                "data-custom-link": "https://example.com/c",
                "data-count": "12",
            },
        )
        data_rule = ElementRule("*", "data", "data-", RuleKind.DATA_ATTRIBUTES)
        custom_rule = ElementRule("*", "custom-data", "data-custom-", RuleKind.DATA_ATTRIBUTES)

        assert extractor.candidates(data_rule, element) == [("/img/a.png", "data")]
        assert extractor.candidates(custom_rule, element) == [("https://example.com/c", "custom-data")]

    @pytest.mark.parametrize(
        ("attrs", "expected_source"),
        [
            ({"property": "og:image", "content": "https://cdn.example.com/i.png"}, "social-media-og:image"),
            ({"name": "twitter:url", "content": "https://example.com/t"}, "social-media-twitter:url"),
        ],
    )
    def test_social_meta_source_tag(self, attrs, expected_source):
        extractor, _ = _extractor()
        rule = ElementRule("meta", "social-media", "content", RuleKind.SOCIAL_META)
        [(value, source)] = extractor.candidates(rule, FakeElement(name="meta", attrs=attrs))
        assert value == attrs["content"]
        assert source == expected_source

    def test_meta_ignores_non_url_content(self):
        extractor, _ = _extractor()
        rule = ElementRule("meta[content]", "meta", "content", RuleKind.URL_LIKE_ATTRIBUTE)
        assert extractor.candidates(rule, FakeElement(name="meta", attrs={"content": "width=device-width"})) == []

    def test_default_rules_cover_source_tags(self):
        sources = {rule.source for rule in DEFAULT_RULES}
        for expected in [
            "href", "script", "form", "jscode", "css", "embedded", "interactive",
            "custom_REGEX", "data", "custom-data", "meta", "video", "audio", "embed",
            "track", "area", "applet", "base", "bgsound", "body-background", "feed",
            "webp-image", "manifest", "social-media", "sitemap", "data-uri",
            "websocket", "frame",
        ]:
            assert expected in sources


class TestExtractUrlsFromText:
    def test_unique_in_first_seen_order(self):
        text = "see http://a.example/x and HTTPS://B.example/y then http://a.example/x"
        assert extract_urls_from_text(text) == ["http://a.example/x", "HTTPS://B.example/y"]

    def test_schemes_and_ipv6(self):
        text = "ftp://files.example.com/pub git://[::1]:9418/repo.git"
        assert extract_urls_from_text(text) == ["ftp://files.example.com/pub", "git://[::1]:9418/repo.git"]

    def test_no_urls(self):
        assert extract_urls_from_text("nothing here") == []
