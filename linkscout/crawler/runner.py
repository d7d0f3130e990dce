"""Seed-by-seed orchestration: probe, traverse, deliver."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence

from .config import CrawlConfig
from .engine import ElementHandler, TraversalEngine
from .extract import LinkExtractor
from .liveness import LivenessProber
from .pipeline import ResultPipeline
from .stats import StatsCollector
from .supervisor import SeedSupervisor
from .types import SeedOutcome
from .url import extract_hostname


LOGGER = logging.getLogger(__name__)

EngineFactory = Callable[[list[str], list[tuple[str, ElementHandler]]], TraversalEngine]


class CrawlRunner:
    """Process seed URLs one at a time and feed one shared result pipeline."""

    def __init__(
        self,
        config: CrawlConfig,
        pipeline: ResultPipeline,
        prober: LivenessProber,
        *,
        keywords: Sequence[str] = (),
        supervisor: SeedSupervisor | None = None,
        engine_factory: EngineFactory | None = None,
        stats: StatsCollector | None = None,
    ) -> None:
        self.config = config
        self.pipeline = pipeline
        self.prober = prober
        self.keywords = tuple(keywords)
        self.supervisor = supervisor or SeedSupervisor(config.timeout_seconds)
        self.engine_factory = engine_factory or self._default_engine
        self.stats = stats or pipeline.stats

    def _default_engine(
        self,
        allowed_domains: list[str],
        bindings: list[tuple[str, ElementHandler]],
    ) -> TraversalEngine:
        return TraversalEngine(
            self.config,
            allowed_domains=allowed_domains,
            bindings=bindings,
            stats=self.stats,
        )

    def run(self, lines: Iterable[str]) -> StatsCollector:
        """Crawl every seed in `lines`, then close and drain the pipeline."""

        self.pipeline.start()
        try:
            for line in lines:
                seed = line.strip()
                if not seed:
                    continue
                self.stats.increment("seeds_read")
                self.process_seed(seed)
        finally:
            self.pipeline.close()
            self.pipeline.join()
            self.stats.finish()
        return self.stats

    def process_seed(self, seed: str) -> SeedOutcome | None:
        """Supervise one seed; returns None when the line is not a usable URL."""

        try:
            hostname = extract_hostname(seed)
        except ValueError as exc:
            LOGGER.error("Error parsing URL: %s (%s)", exc, seed)
            self.stats.increment("seeds_invalid")
            return None

        outcome = self.supervisor.run(seed, lambda: self._crawl_seed(seed, hostname))
        self.stats.record_seed_outcome(outcome)
        return outcome

    def _crawl_seed(self, seed: str, hostname: str) -> None:
        verdict = self.prober.probe(seed, self.config.timeout_seconds)
        self.stats.record_liveness(verdict)
        if not verdict.reachable:
            LOGGER.warning("[URL not reachable] %s", seed)
            return

        extractor = LinkExtractor(
            self.config,
            self.pipeline,
            seed_url=seed,
            keywords=self.keywords,
            stats=self.stats,
        )
        engine = self.engine_factory(
            self.config.allowed_domains_for(hostname),
            extractor.bindings(),
        )
        engine.visit(seed)
        engine.wait()


__all__ = [
    "CrawlRunner",
    "EngineFactory",
]
