"""Append-only file sink for matched URLs.

The file is opened once, in append mode, and every record is flushed as soon
as it is written so a crash does not lose URLs that were already found.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TextIO


LOGGER = logging.getLogger(__name__)


class MatchedURLStorage:
    """Persist formatted result lines under a single lock."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if self.path.parent != Path("."):
            self.path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._seen: set[str] = set()
        self._handle: TextIO | None = self.path.open("a", encoding="utf-8")

    def append(self, line: str, *, unique: bool = False) -> bool:
        """Append one record; return True when a line was written.

        With `unique`, the membership check and the write happen under the
        same lock, so a record is written at most once per process.
        """

        with self._lock:
            if self._handle is None:
                return False
            if unique:
                if line in self._seen:
                    return False
                self._seen.add(line)

            try:
                self._handle.write(line + "\n")
                self._handle.flush()
            except OSError as exc:
                LOGGER.error("Error writing URL to file %s: %s", self.path, exc)
                return False
            return True

    def close(self) -> None:
        with self._lock:
            if self._handle is None:
                return
            self._handle.close()
            self._handle = None

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._handle is None

    def __enter__(self) -> "MatchedURLStorage":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["MatchedURLStorage"]
