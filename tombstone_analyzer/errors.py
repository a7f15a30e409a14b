"""Error types and warning records shared across the analysis pipeline.

File- and line-level problems are *recorded* (ParseFailure, DecodeFailure) and
never raised. Only configuration problems are raised to the caller.
"""
from dataclasses import dataclass
from typing import Optional


class TombstoneError(Exception):
    """Base class for errors raised by the tombstone analyzer."""


class ConfigurationError(TombstoneError, ValueError):
    """Invalid configuration: no meaningful partial result is possible."""


class GraveyardNotSetError(TombstoneError, RuntimeError):
    """Raised when the process-wide graveyard is requested before initialize()."""


@dataclass(frozen=True)
class ParseFailure:
    """A source file that was skipped during marker extraction."""
    file_path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.file_path}: {self.reason}"


@dataclass(frozen=True)
class DecodeFailure:
    """A log line (or whole log file when line is None) that could not be decoded."""
    log_file: str
    line: Optional[int]
    reason: str

    def __str__(self) -> str:
        where = self.log_file if self.line is None else f"{self.log_file}:{self.line}"
        return f"{where}: {self.reason}"
