"""Runtime side: turn an executed tombstone call into a Sighting and hand it to handlers."""
import threading
from datetime import datetime, timezone
from pathlib import Path
from types import FrameType
from typing import Callable, Iterable, List, Optional, Sequence

from ..errors import ConfigurationError
from ..identity import compute_marker_id, normalize_metadata, normalize_scope
from .handlers import AnalyzerLogHandler, DeduplicatingHandler, Handler, LoggingHandler
from .log_format import Sighting, StackFrame


def _qualname(frame: FrameType) -> str:
    return normalize_scope(frame.f_code.co_qualname)


class Graveyard:
    """Records sightings for executed tombstones.

    With buffering enabled, sightings are held in memory until flush() is
    called (for example at the end of a request) so the hot path does no I/O.
    """

    def __init__(self, handlers: Sequence[Handler], root_directory: str | Path,
                 stack_trace_depth: int = 5, buffered: bool = False,
                 invoker_provider: Optional[Callable[[], Optional[str]]] = None,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        """Initialize graveyard.

        Args:
            handlers: Sinks receiving every sighting
            root_directory: Project root; file paths are recorded relative to it
            stack_trace_depth: Frames captured per sighting
            buffered: Hold sightings until flush()
            invoker_provider: Returns the caller identity (e.g. the current route);
                defaults to the qualified name of the calling function
            clock: Returns the current time
        """
        self.handlers = list(handlers)
        self.root_directory = Path(root_directory).resolve()
        self.stack_trace_depth = stack_trace_depth
        self.buffered = buffered
        self.invoker_provider = invoker_provider
        self.clock = clock
        self._buffer: List[Sighting] = []
        self._lock = threading.Lock()

    def relative_path(self, file_name: str) -> str:
        path = Path(file_name)
        try:
            return path.resolve().relative_to(self.root_directory).as_posix()
        except (ValueError, OSError):
            return path.as_posix()

    def build_sighting(self, function_name: str, arguments: Iterable, frame: FrameType) -> Sighting:
        """Snapshot the call site executing in frame."""
        metadata = normalize_metadata(arguments)
        file_path = self.relative_path(frame.f_code.co_filename)
        enclosing = _qualname(frame)

        stack = []
        current = frame
        while current is not None and len(stack) < self.stack_trace_depth:
            stack.append(StackFrame(
                file=self.relative_path(current.f_code.co_filename),
                line=current.f_lineno,
                function=_qualname(current) or None,
            ))
            current = current.f_back

        if self.invoker_provider is not None:
            caller = self.invoker_provider()
        elif frame.f_back is not None:
            caller = _qualname(frame.f_back) or None
        else:
            caller = None

        return Sighting(
            timestamp=self.clock(),
            caller=caller,
            stack_trace=tuple(stack),
            marker_id=compute_marker_id(function_name, metadata, file_path, enclosing),
            function_name=function_name,
            arguments=metadata,
            file_path=file_path,
            line_number=frame.f_lineno,
            enclosing_function=enclosing,
        )

    def record(self, function_name: str, arguments: Iterable, frame: FrameType) -> Sighting:
        sighting = self.build_sighting(function_name, arguments, frame)
        if self.buffered:
            with self._lock:
                self._buffer.append(sighting)
        else:
            self._dispatch([sighting])
        return sighting

    def flush(self) -> None:
        """Send buffered sightings to the handlers, in recording order."""
        with self._lock:
            pending, self._buffer = self._buffer, []
        self._dispatch(pending)
        for handler in self.handlers:
            handler.flush()

    def _dispatch(self, sightings: Iterable[Sighting]) -> None:
        for sighting in sightings:
            for handler in self.handlers:
                handler.log(sighting)

    def __enter__(self) -> 'Graveyard':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.flush()


def build_graveyard(config) -> Graveyard:
    """Wire a graveyard and its handlers from a Config.

    Raises:
        ConfigurationError: If the configured handler is unknown
    """
    if config.handler == 'analyzer_log':
        handler: Handler = AnalyzerLogHandler(config.log_directory, size_limit=config.size_limit)
    elif config.handler == 'log_channel':
        handler = LoggingHandler(config.log_channel, config.log_level)
    else:
        raise ConfigurationError(f"Unknown tombstone handler: {config.handler}")

    if config.dedup_ttl > 0:
        handler = DeduplicatingHandler(handler, ttl=config.dedup_ttl)

    return Graveyard(
        handlers=[handler],
        root_directory=config.root_directory,
        stack_trace_depth=config.stack_trace_depth,
        buffered=config.buffer,
    )
