"""Sighting collection: stream every log file under a directory into Sighting records."""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from ..errors import ConfigurationError, DecodeFailure
from .log_format import Decoded, Sighting, decode_line

logger = logging.getLogger(__name__)


@dataclass
class CollectionResult:
    """Sightings read from a log directory plus the lines that could not be decoded."""
    sightings: List[Sighting] = field(default_factory=list)
    failures: List[DecodeFailure] = field(default_factory=list)
    files_read: int = 0
    directory_missing: bool = False


def iter_log_file(path: str | Path, log_name: Optional[str] = None,
                  max_stack_depth: Optional[int] = None) -> Iterator[Decoded]:
    """Lazily decode a log file line by line.

    Yields a Sighting or a DecodeFailure per non-blank line, in append order.
    Single pass: iterate again by calling this function again.

    Raises:
        OSError: If the file cannot be opened
    """
    log_name = log_name or str(path)
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        for sequence, line in enumerate(f, start=1):
            if not line.strip():
                continue
            yield decode_line(line, log_file=log_name, sequence=sequence, max_stack_depth=max_stack_depth)


class SightingCollector:
    """Read all sighting logs from a directory."""

    def __init__(self, log_directory: str | Path, pattern: str = '*.tombstone',
                 max_stack_depth: Optional[int] = None, workers: Optional[int] = None):
        """Initialize collector.

        Args:
            log_directory: Directory of append-only log files (searched recursively)
            pattern: Glob selecting log files
            max_stack_depth: Stack frames kept per sighting
            workers: Thread pool size, None for the executor default
        """
        self.log_directory = Path(log_directory)
        self.pattern = pattern
        self.max_stack_depth = max_stack_depth
        self.workers = workers

    def discover_logs(self) -> List[Path]:
        return sorted(path for path in self.log_directory.rglob(self.pattern) if path.is_file())

    def collect(self) -> CollectionResult:
        """Collect sightings from every log file.

        A missing directory yields an empty result.

        Raises:
            ConfigurationError: If the log path exists but is not a directory
        """
        if not self.log_directory.exists():
            logger.info("Log directory %s does not exist, no sightings collected", self.log_directory)
            return CollectionResult(directory_missing=True)
        if not self.log_directory.is_dir():
            raise ConfigurationError(f"Log directory is not a directory: {self.log_directory}")

        log_files = self.discover_logs()
        outcomes: List[Tuple[str, List[Sighting], List[DecodeFailure]]] = []
        if log_files:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                futures = {executor.submit(self.read_file, path): path for path in log_files}
                for future in as_completed(futures):
                    path = futures[future]
                    try:
                        outcomes.append(future.result())
                    except Exception as exc:
                        log_name = path.relative_to(self.log_directory).as_posix()
                        outcomes.append((log_name, [], [DecodeFailure(log_name, None, f"reading failed: {exc}")]))

        result = CollectionResult(files_read=len(log_files))
        for _, sightings, failures in sorted(outcomes, key=lambda outcome: outcome[0]):
            result.sightings.extend(sightings)
            result.failures.extend(failures)
        if result.failures:
            logger.warning("Skipped %d undecodable log line(s)", len(result.failures))
        return result

    def read_file(self, path: Path) -> Tuple[str, List[Sighting], List[DecodeFailure]]:
        """Decode one log file; never raises.

        Returns:
            (log name relative to the log directory, sightings, failures)
        """
        log_name = path.relative_to(self.log_directory).as_posix()
        sightings: List[Sighting] = []
        failures: List[DecodeFailure] = []
        try:
            for decoded in iter_log_file(path, log_name, self.max_stack_depth):
                if isinstance(decoded, DecodeFailure):
                    logger.debug("Undecodable log line %s", decoded)
                    failures.append(decoded)
                else:
                    sightings.append(decoded)
        except OSError as exc:
            failures.append(DecodeFailure(log_name, None, f"cannot read log file: {exc}"))
        return log_name, sightings, failures
