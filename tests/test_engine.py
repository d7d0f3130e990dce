"""Tests for the traversal engine, frontier and fetcher."""

from unittest.mock import Mock

import pytest
import requests

from linkscout.crawler.config import CrawlConfig
from linkscout.crawler.engine import TraversalEngine
from linkscout.crawler.extract import LinkExtractor
from linkscout.crawler.fetcher import Fetcher
from linkscout.crawler.frontier import EnqueueStatus, Frontier
from linkscout.crawler.types import FetchResult


SITE = {
    "https://example.com/": (
        "<html><head>"
        '<link rel="stylesheet" href="/style.css">'
        '<link rel="canonical" href="https://example.com/">'
        '<link rel="icon" href="/favicon.ico">'
        '<link rel="preload" href="/p.js">'
        '<script src="/app.js"></script>'
        "<script>var api = 'https://api.example.com/v1';</script>"
        "</head><body>"
        '<a href="/about">About</a>'
        '<a href="https://other.example/x">Out</a>'
        '<form action="/search"></form>'
        "</body></html>"
    ),
    "https://example.com/about": '<html><body><a href="/team">Team</a></body></html>',
    "https://example.com/team": '<html><body><a href="/deep">Deep</a></body></html>',
}


class FakeFetcher:
    """Serves pages from a dict; unknown URLs are 404s."""

    def __init__(self, pages):
        self.pages = pages
        self.fetched = []

    def fetch(self, url):
        self.fetched.append(url)
        body = self.pages.get(url)
        if body is None:
            return FetchResult(url, url, 404, "text/html", b"")
        return FetchResult(url, url, 200, "text/html; charset=utf-8", body.encode("utf-8"))

    def close(self):
        pass


class TestFrontier:
    def _frontier(self, max_depth=2, subs=False):
        return Frontier(allowed_domains=["example.com"], max_depth=max_depth, include_subdomains=subs)

    def test_depth_limit_counts_seed_as_one(self):
        frontier = self._frontier(max_depth=2)
        assert frontier.push("https://example.com/", depth=1).accepted
        assert frontier.push("https://example.com/a", depth=2).accepted
        assert frontier.push("https://example.com/b", depth=3).status == EnqueueStatus.SKIPPED_DEPTH

    def test_zero_depth_is_unlimited(self):
        frontier = self._frontier(max_depth=0)
        assert frontier.push("https://example.com/deep", depth=50).accepted

    def test_dedup_scope_and_invalid(self):
        frontier = self._frontier()
        assert frontier.push("https://example.com/a#x", depth=1).accepted
        assert frontier.push("https://example.com/a", depth=1).status == EnqueueStatus.SKIPPED_SEEN
        assert frontier.push("https://other.example/", depth=1).status == EnqueueStatus.SKIPPED_OUT_OF_SCOPE
        assert frontier.push("mailto:a@example.com", depth=1).status == EnqueueStatus.SKIPPED_INVALID_URL

    def test_closed_frontier_rejects(self):
        frontier = self._frontier()
        frontier.close()
        assert frontier.push("https://example.com/", depth=1).status == EnqueueStatus.SKIPPED_CLOSED


class TestTraversalEngine:
    def _crawl(self, pipeline, **config_kwargs):
        config = CrawlConfig(threads=2, **config_kwargs)
        fetcher = FakeFetcher(SITE)
        extractor = LinkExtractor(config, pipeline, seed_url="https://example.com/")
        engine = TraversalEngine(
            config,
            allowed_domains=["example.com"],
            bindings=extractor.bindings(),
            fetcher=fetcher,
            stats=pipeline.stats,
        )
        engine.visit("https://example.com/")
        engine.wait()
        pipeline.close()
        pipeline.join(timeout=5.0)
        return fetcher

    def test_discovers_links_across_sources(self, pipeline_factory, stream):
        pipeline = pipeline_factory(unique=True)
        self._crawl(pipeline, show_source=True)

        lines = set(stream.getvalue().splitlines())
        assert "[href] https://example.com/about" in lines
        assert "[href] https://other.example/x" in lines
        assert "[css] https://example.com/style.css" in lines
        assert "[script] https://example.com/app.js" in lines
        assert "[form] https://example.com/search" in lines
        assert "[jscode] https://api.example.com/v1" in lines
        assert "[href] https://example.com/team" in lines
        assert "[href] https://example.com/favicon.ico" in lines
        assert "[href] https://example.com/p.js" in lines
        assert "[href] https://example.com/" in lines

    def test_respects_depth_and_scope(self, pipeline_factory):
        pipeline = pipeline_factory()
        fetcher = self._crawl(pipeline)

        assert "https://example.com/about" in fetcher.fetched
        assert "https://example.com/team" not in fetcher.fetched
        assert not any(url.startswith("https://other.example") for url in fetcher.fetched)
        assert not any("api.example.com" in url for url in fetcher.fetched)

    def test_unlimited_depth_follows_chain(self, pipeline_factory):
        pipeline = pipeline_factory()
        fetcher = self._crawl(pipeline, max_depth=0)
        assert "https://example.com/deep" in fetcher.fetched

    def test_handler_errors_do_not_stop_workers(self, pipeline_factory):
        pipeline = pipeline_factory()
        config = CrawlConfig(threads=1)

        def broken(element):
            raise RuntimeError("bad handler")

        engine = TraversalEngine(
            config,
            allowed_domains=["example.com"],
            bindings=[("a[href]", broken)],
            fetcher=FakeFetcher(SITE),
            stats=pipeline.stats,
        )
        engine.visit("https://example.com/")
        engine.wait()
        assert pipeline.stats.to_json()["custom_counters"]["worker_errors"] == 1


class TestFetcher:
    def _response(self, chunks, status=200):
        response = Mock()
        response.status_code = status
        response.url = "https://example.com/"
        response.headers = {"Content-Type": "text/html"}
        response.content = b"".join(chunks)
        response.iter_content.return_value = iter(chunks)
        response.__enter__ = Mock(return_value=response)
        response.__exit__ = Mock(return_value=False)
        return response

    def _fetcher(self, session, **config_kwargs):
        return Fetcher(CrawlConfig(**config_kwargs), session_factory=lambda: session, sleep=Mock())

    def test_session_configuration(self):
        session = requests.Session()
        fetcher = self._fetcher(
            session,
            insecure=True,
            proxy="http://127.0.0.1:8080",
            headers={"Cookie": "a=b"},
        )
        assert fetcher._thread_local_session() is session
        assert session.verify is False
        assert session.proxies["https"] == "http://127.0.0.1:8080"
        assert session.headers["Cookie"] == "a=b"

    def test_truncates_to_size_limit(self):
        session = Mock()
        session.headers = {}
        session.proxies = {}
        session.get.return_value = self._response([b"a" * 1000, b"b" * 1000])
        result = self._fetcher(session, max_size_kb=1).fetch("https://example.com/")

        assert result.ok
        assert result.truncated is True
        assert len(result.body) == 1024

    def test_redirect_toggle(self):
        session = Mock()
        session.headers = {}
        session.proxies = {}
        session.get.return_value = self._response([b"<html></html>"])
        self._fetcher(session, disable_redirects=True).fetch("https://example.com/")
        assert session.get.call_args.kwargs["allow_redirects"] is False

    def test_retries_server_errors(self):
        session = Mock()
        session.headers = {}
        session.proxies = {}
        session.get.side_effect = [self._response([b""], status=503), self._response([b"ok"])]
        result = self._fetcher(session, retries=1).fetch("https://example.com/")
        assert result.status_code == 200
        assert session.get.call_count == 2

    def test_network_error_becomes_result(self):
        session = Mock()
        session.headers = {}
        session.proxies = {}
        session.get.side_effect = requests.ConnectionError("refused")
        result = self._fetcher(session).fetch("https://example.com/")
        assert not result.ok
        assert result.error.startswith("ConnectionError")
