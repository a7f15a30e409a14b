"""Sinks for runtime sightings."""
import logging
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional

from .log_format import Sighting, encode_sighting


class Handler:
    """Receives sightings from a graveyard."""

    def log(self, sighting: Sighting) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        """Push out anything held back. Most handlers write immediately."""


class AnalyzerLogHandler(Handler):
    """Append sightings to per-marker `.tombstone` files read by the analyzer."""

    def __init__(self, log_directory: str | Path, size_limit: Optional[int] = None):
        """Initialize handler.

        Args:
            log_directory: Directory for the log files, created on first write
            size_limit: Stop appending to a file once it reaches this many bytes
        """
        self.log_directory = Path(log_directory)
        self.size_limit = size_limit
        self._lock = threading.Lock()

    def log_path(self, sighting: Sighting) -> Path:
        return self.log_directory / f"{sighting.marker_id or 'unidentified'}.tombstone"

    def log(self, sighting: Sighting) -> None:
        path = self.log_path(sighting)
        line = encode_sighting(sighting)
        with self._lock:
            self.log_directory.mkdir(parents=True, exist_ok=True)
            if self.size_limit is not None and path.exists() and path.stat().st_size >= self.size_limit:
                return
            with open(path, 'a', encoding='utf-8') as f:
                f.write(line)


class LoggingHandler(Handler):
    """Route sightings through a standard library logger channel."""

    def __init__(self, channel: str = 'tombstone', level: str | int = 'info'):
        self.logger = logging.getLogger(channel)
        self.level = level if isinstance(level, int) else logging.getLevelName(level.upper())
        if not isinstance(self.level, int):
            raise ValueError(f"Unknown log level: {level}")

    def log(self, sighting: Sighting) -> None:
        self.logger.log(
            self.level,
            "Tombstone %s(%s) reached at %s:%d in %s, invoked by %s",
            sighting.function_name,
            ', '.join(sighting.arguments),
            sighting.file_path,
            sighting.line_number,
            sighting.enclosing_function or '<module>',
            sighting.caller or 'unknown',
            extra={'tombstone': encode_sighting(sighting).rstrip('\n')},
        )


class DeduplicatingHandler(Handler):
    """Forward a marker's sighting at most once per `ttl` seconds.

    Hot code paths would otherwise log the same tombstone on every request.
    A ttl <= 0 forwards everything.
    """

    def __init__(self, inner: Handler, ttl: int = 3600,
                 clock: Callable[[], float] = time.monotonic):
        self.inner = inner
        self.ttl = ttl
        self.clock = clock
        self._seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(sighting: Sighting) -> str:
        if sighting.marker_id:
            return sighting.marker_id
        return f"{sighting.file_path}:{sighting.line_number}"

    def log(self, sighting: Sighting) -> None:
        if self.ttl <= 0:
            self.inner.log(sighting)
            return

        key = self._key(sighting)
        now = self.clock()
        with self._lock:
            expires = self._seen.get(key)
            if expires is not None and expires > now:
                return
            self._seen[key] = now + self.ttl
        self.inner.log(sighting)

    def flush(self) -> None:
        self.inner.flush()
