"""Shared test fixtures."""

import io
from pathlib import Path
import sys
from unittest.mock import Mock

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from linkscout.crawler import MatchedURLStorage, ResultPipeline, StatsCollector  # noqa: E402


class FakeResponse:
    """Minimal stand-in for `requests.Response` used by the probe tests."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        self.closed = False

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_session():
    """Build a mock session whose `head` returns/raises the given outcomes in order."""

    def _make(*outcomes):
        session = Mock()
        side_effect = [
            outcome if isinstance(outcome, BaseException) else FakeResponse(outcome)
            for outcome in outcomes
        ]
        session.head.side_effect = side_effect
        return session

    return _make


@pytest.fixture
def output_path(tmp_path):
    return tmp_path / "matched_urls.txt"


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def pipeline_factory(output_path, stream):
    """Create started pipelines backed by a temp file; closed after the test."""

    created = []

    def _make(*, unique: bool = False, capacity: int = 8):
        storage = MatchedURLStorage(output_path)
        pipeline = ResultPipeline(
            storage,
            unique=unique,
            capacity=capacity,
            stream=stream,
            stats=StatsCollector(),
        )
        pipeline.start()
        created.append((pipeline, storage))
        return pipeline

    yield _make

    for pipeline, storage in created:
        pipeline.close()
        pipeline.join(timeout=5.0)
        storage.close()
