"""Configuration management for the tombstone analyzer.

Loads environment variables (optionally from a .env file) and provides
centralized config access. Explicit keyword overrides always win over the
environment, which wins over the defaults.
"""
import os
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

__version__ = "1.0.0"

DEFAULT_INCLUDE = ['*.py', '*.js', '*.jsx', '*.ts', '*.tsx']

# Build artifacts and dependency directories, pruned before parsing
DEFAULT_EXCLUDES = [
    'vendor', 'node_modules', 'storage',
    'venv', '.venv', 'env', '.virtualenv',
    '.tox', 'site-packages', 'dist', 'build', '__pycache__',
    '.git', '.mypy_cache', '.pytest_cache',
]

DEFAULT_FUNCTION_NAMES = ['tombstone']
DEFAULT_LOG_PATTERN = '*.tombstone'
DEFAULT_POSITION_TOLERANCE = 3
DEFAULT_STACK_TRACE_DEPTH = 5
DEFAULT_DEDUP_TTL = 3600

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_file: Optional[str | Path] = None, **overrides: Any):
        """Initialize config, loading a .env file if present.

        Args:
            env_file: Path to a .env file. Defaults to ./.env in the working directory.
            **overrides: Explicit values keyed by property name (e.g. log_directory=...).
                None values are ignored so CLI options can be passed through as-is.
        """
        load_dotenv(Path(env_file) if env_file else Path.cwd() / '.env')
        self._overrides = {key: value for key, value in overrides.items() if value is not None}

    def _get(self, key: str, env_var: str) -> Optional[Any]:
        if key in self._overrides:
            return self._overrides[key]
        value = os.getenv(env_var)
        if value is None or value == '':
            return None
        return value

    def _get_int(self, key: str, env_var: str, default: Optional[int]) -> Optional[int]:
        value = self._get(key, env_var)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{env_var} must be an integer, got {value!r}")

    def _get_bool(self, key: str, env_var: str, default: bool) -> bool:
        value = self._get(key, env_var)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _TRUE_VALUES

    def _get_list(self, key: str, env_var: str, default: List[str]) -> List[str]:
        value = self._get(key, env_var)
        if value is None:
            return list(default)
        if isinstance(value, str):
            return _split_list(value)
        return list(value)

    @property
    def root_directory(self) -> Path:
        """Project root used to find sources and relativize file paths."""
        value = self._get('root_directory', 'TOMBSTONE_ROOT_DIR')
        return Path(value).resolve() if value else Path.cwd().resolve()

    @property
    def log_directory(self) -> Path:
        """Directory holding the append-only sighting logs.

        Relative paths are resolved against the root directory.
        """
        value = self._get('log_directory', 'TOMBSTONE_LOG_DIR')
        if not value:
            return self.root_directory / 'storage' / 'tombstone'
        path = Path(value)
        return path if path.is_absolute() else self.root_directory / path

    @property
    def include(self) -> List[str]:
        return self._get_list('include', 'TOMBSTONE_INCLUDE', DEFAULT_INCLUDE)

    @property
    def excludes(self) -> List[str]:
        return self._get_list('excludes', 'TOMBSTONE_EXCLUDES', DEFAULT_EXCLUDES)

    @property
    def function_names(self) -> List[str]:
        return self._get_list('function_names', 'TOMBSTONE_FUNCTION_NAMES', DEFAULT_FUNCTION_NAMES)

    @property
    def log_pattern(self) -> str:
        return self._get('log_pattern', 'TOMBSTONE_LOG_PATTERN') or DEFAULT_LOG_PATTERN

    @property
    def position_tolerance(self) -> int:
        """Maximum line drift accepted by the position matching strategy."""
        return self._get_int('position_tolerance', 'TOMBSTONE_POSITION_TOLERANCE',
                             DEFAULT_POSITION_TOLERANCE)

    @property
    def stack_trace_depth(self) -> int:
        return self._get_int('stack_trace_depth', 'TOMBSTONE_STACK_TRACE_DEPTH',
                             DEFAULT_STACK_TRACE_DEPTH)

    @property
    def workers(self) -> Optional[int]:
        """Worker threads for extraction/collection; None lets the executor decide."""
        return self._get_int('workers', 'TOMBSTONE_WORKERS', None)

    @property
    def enabled(self) -> bool:
        """When disabled, tombstone() calls are no-ops."""
        return self._get_bool('enabled', 'TOMBSTONE_ENABLED', True)

    @property
    def handler(self) -> str:
        """Sighting sink: 'analyzer_log' (files read by the analyzer) or 'log_channel'."""
        return self._get('handler', 'TOMBSTONE_HANDLER') or 'analyzer_log'

    @property
    def log_channel(self) -> str:
        return self._get('log_channel', 'TOMBSTONE_LOG_CHANNEL') or 'tombstone'

    @property
    def log_level(self) -> str:
        return self._get('log_level', 'TOMBSTONE_LOG_LEVEL') or 'info'

    @property
    def buffer(self) -> bool:
        """Buffer sightings in memory until the graveyard is flushed."""
        return self._get_bool('buffer', 'TOMBSTONE_BUFFER', True)

    @property
    def dedup_ttl(self) -> int:
        """Seconds during which repeat sightings of one marker are suppressed (0 disables)."""
        return self._get_int('dedup_ttl', 'TOMBSTONE_DEDUP_TTL', DEFAULT_DEDUP_TTL)

    @property
    def size_limit(self) -> Optional[int]:
        """Maximum size in bytes of a single log file, None for unlimited."""
        return self._get_int('size_limit', 'TOMBSTONE_SIZE_LIMIT', None)

    def validate(self) -> 'Config':
        """Validate the analysis settings.

        Returns:
            self, so calls can be chained

        Raises:
            ConfigurationError: If the root directory is unusable or a numeric
                setting is out of range
        """
        root = self.root_directory
        if not root.exists():
            raise ConfigurationError(f"Root directory does not exist: {root}")
        if not root.is_dir():
            raise ConfigurationError(f"Root directory is not a directory: {root}")
        if not os.access(root, os.R_OK | os.X_OK):
            raise ConfigurationError(f"Root directory is not readable: {root}")

        log_dir = self.log_directory
        if log_dir.exists() and not log_dir.is_dir():
            raise ConfigurationError(f"Log directory is not a directory: {log_dir}")

        if self.position_tolerance < 0:
            raise ConfigurationError("Position tolerance must be >= 0")
        if self.stack_trace_depth < 0:
            raise ConfigurationError("Stack trace depth must be >= 0")
        workers = self.workers
        if workers is not None and workers < 1:
            raise ConfigurationError("Worker count must be >= 1")
        if not self.function_names:
            raise ConfigurationError("At least one marking function name is required")
        return self


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Drop the singleton so the next get_config() re-reads the environment."""
    global _config
    _config = None
