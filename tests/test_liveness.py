"""Tests for seed liveness probing."""

from unittest.mock import Mock

import pytest
import requests

from linkscout.crawler.banned import BannedRangeFilter
from linkscout.crawler.liveness import LivenessProber, classify_status
from linkscout.crawler.types import LivenessReason


PUBLIC = lambda host: ["93.184.216.34"]  # noqa: E731


@pytest.fixture
def sleep():
    return Mock()


def _prober(session, sleep, resolver=PUBLIC, **kwargs):
    return LivenessProber(
        BannedRangeFilter(resolver=resolver),
        session=session,
        sleep=sleep,
        **kwargs,
    )


class TestClassifyStatus:
    @pytest.mark.parametrize(
        ("status", "reason"),
        [
            (200, LivenessReason.ALIVE),
            (301, LivenessReason.ALIVE),
            (399, LivenessReason.ALIVE),
            (429, LivenessReason.RATE_LIMITED),
            (500, LivenessReason.SERVER_ERROR),
            (503, LivenessReason.SERVER_ERROR),
            (400, LivenessReason.CLIENT_ERROR_SKIP),
            (401, LivenessReason.CLIENT_ERROR_SKIP),
            (403, LivenessReason.CLIENT_ERROR_SKIP),
            (404, LivenessReason.CLIENT_ERROR_SKIP),
            (418, LivenessReason.UNEXPECTED_STATUS),
            (100, LivenessReason.UNEXPECTED_STATUS),
        ],
    )
    def test_mapping(self, status, reason):
        assert classify_status(status) == reason


class TestProbe:
    def test_recovers_after_server_errors(self, make_session, sleep):
        session = make_session(500, 500, 200)
        verdict = _prober(session, sleep).probe("https://example.com/", 10)

        assert verdict.reachable is True
        assert verdict.reason == LivenessReason.ALIVE
        assert verdict.attempts == 3
        assert sleep.call_args_list == [((10.0,),), ((10.0,),)]

    def test_not_found_stops_after_one_attempt(self, make_session, sleep):
        session = make_session(404)
        verdict = _prober(session, sleep).probe("https://example.com/missing", 10)

        assert verdict.reachable is False
        assert verdict.reason == LivenessReason.CLIENT_ERROR_SKIP
        assert verdict.attempts == 1
        assert session.head.call_count == 1
        sleep.assert_not_called()

    def test_gives_up_after_four_attempts(self, make_session, sleep):
        session = make_session(503, 503, 503, 503)
        verdict = _prober(session, sleep).probe("https://example.com/", 10)

        assert verdict.reachable is False
        assert verdict.reason == LivenessReason.UNREACHABLE
        assert verdict.attempts == 4
        assert session.head.call_count == 4
        assert verdict.history == (LivenessReason.SERVER_ERROR,) * 4

    def test_backoff_table_per_failure_class(self, make_session, sleep):
        session = make_session(requests.ConnectionError("reset"), 429, 418, 200)
        verdict = _prober(session, sleep).probe("https://example.com/", 10)

        assert verdict.reachable is True
        assert [call.args[0] for call in sleep.call_args_list] == [15.0, 20.0, 5.0]
        assert verdict.history == (
            LivenessReason.NETWORK_ERROR,
            LivenessReason.RATE_LIMITED,
            LivenessReason.UNEXPECTED_STATUS,
            LivenessReason.ALIVE,
        )

    def test_head_uses_timeout_and_follows_redirects(self, make_session, sleep):
        session = make_session(200)
        _prober(session, sleep).probe("https://example.com/", 7)
        session.head.assert_called_once_with("https://example.com/", timeout=7, allow_redirects=True)

    def test_non_positive_timeout_uses_default(self, make_session, sleep):
        session = make_session(200)
        _prober(session, sleep).probe("https://example.com/", -1)
        assert session.head.call_args.kwargs["timeout"] == 30.0

    def test_invalid_url(self, make_session, sleep):
        session = make_session()
        verdict = _prober(session, sleep).probe("not a url", 10)
        assert verdict.reason == LivenessReason.INVALID_URL
        session.head.assert_not_called()

    def test_banned_host_is_never_requested(self, make_session, sleep):
        session = make_session()
        verdict = _prober(session, sleep, resolver=lambda host: ["127.0.0.1"]).probe(
            "http://localhost/", 10
        )
        assert verdict.reachable is False
        assert verdict.reason == LivenessReason.BANNED_RANGE
        session.head.assert_not_called()

    def test_dns_failure(self, make_session, sleep):
        session = make_session()
        resolver = Mock(side_effect=OSError("no such host"))
        verdict = _prober(session, sleep, resolver=resolver).probe("http://nope.invalid/", 10)
        assert verdict.reason == LivenessReason.DNS_FAILURE

    def test_waits_for_connectivity_first(self, make_session, sleep):
        watchdog = Mock()
        session = make_session(200)
        assert _prober(session, sleep, watchdog=watchdog).is_alive("https://example.com/", 5)
        watchdog.wait_until_connected.assert_called_once_with()

    def test_rejects_non_positive_attempts(self, make_session, sleep):
        with pytest.raises(ValueError):
            _prober(make_session(), sleep, max_attempts=0)
