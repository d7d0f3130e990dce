"""Optional wall-clock deadline around one seed's processing."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from .types import SeedOutcome


LOGGER = logging.getLogger(__name__)


class SeedSupervisor:
    """Run one seed's work, racing it against `timeout_seconds`.

    With a non-positive timeout the work runs inline. Otherwise it runs on a
    daemon thread; when the deadline passes first the caller moves on and the
    background work is left to finish on its own.
    """

    def __init__(self, timeout_seconds: float = -1.0) -> None:
        self.timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return self.timeout_seconds > 0

    def run(self, seed: str, work: Callable[[], None]) -> SeedOutcome:
        if not self.enabled:
            return self._run_guarded(seed, work)

        done = threading.Event()
        outcome: list[SeedOutcome] = []

        def target() -> None:
            try:
                outcome.append(self._run_guarded(seed, work))
            finally:
                done.set()

        worker = threading.Thread(target=target, name="seed-worker", daemon=True)
        worker.start()

        if not done.wait(self.timeout_seconds):
            LOGGER.warning("[timeout] %s", seed)
            return SeedOutcome.TIMED_OUT
        return outcome[0] if outcome else SeedOutcome.FAILED

    @staticmethod
    def _run_guarded(seed: str, work: Callable[[], None]) -> SeedOutcome:
        try:
            work()
        except Exception as exc:
            LOGGER.error("Error while processing %s: %s", seed, exc)
            return SeedOutcome.FAILED
        return SeedOutcome.COMPLETED


__all__ = ["SeedSupervisor"]
