"""Line-delimited JSON format of the sighting ("vampire") logs.

One self-contained JSON object per line. Keys are short to keep append-only
logs small; unknown keys are ignored so newer writers stay readable:

    v   format version          fn  marking function name
    a   arguments (metadata)    f   file, root-relative
    l   line                    m   enclosing function
    h   marker id               s   stack trace [{f, l, m}, ...]
    id  invocation timestamp    im  invoker (caller)
"""
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Tuple, Union

from ..errors import DecodeFailure
from ..identity import normalize_metadata, normalize_scope

FORMAT_VERSION = 10000
REQUIRED_FIELDS = ('f', 'l', 'id')


@dataclass(frozen=True)
class StackFrame:
    file: Optional[str]
    line: Optional[int]
    function: Optional[str]

    def to_dict(self) -> dict:
        return {'file': self.file, 'line': self.line, 'function': self.function}


@dataclass(frozen=True)
class Sighting:
    """A recorded runtime execution of a marked site."""
    timestamp: datetime
    caller: Optional[str]
    stack_trace: Tuple[StackFrame, ...]
    marker_id: Optional[str]
    function_name: str
    arguments: Tuple[str, ...]
    file_path: str
    line_number: int
    enclosing_function: str
    # Where the sighting was read from; empty for sightings not yet persisted
    log_file: str = ''
    sequence: int = 0

    @property
    def sort_key(self) -> tuple:
        """Timestamp order; ties keep log file append order."""
        return (self.timestamp, self.log_file, self.sequence)

    def to_dict(self) -> dict:
        return {
            'timestamp': self.timestamp.isoformat(),
            'caller': self.caller,
            'marker_id': self.marker_id,
            'function_name': self.function_name,
            'arguments': list(self.arguments),
            'file_path': self.file_path,
            'line_number': self.line_number,
            'enclosing_function': self.enclosing_function,
            'stack_trace': [frame.to_dict() for frame in self.stack_trace],
            'log_file': self.log_file,
            'sequence': self.sequence,
        }


Decoded = Union[Sighting, DecodeFailure]


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string or epoch seconds into an aware datetime (naive means UTC).

    Raises:
        ValueError: If value is not a recognised timestamp
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid timestamp {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp {value!r}")
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def encode_sighting(sighting: Sighting) -> str:
    """Encode a sighting as one log line, including the trailing newline."""
    record = {
        'v': FORMAT_VERSION,
        'fn': sighting.function_name,
        'a': list(sighting.arguments),
        'f': sighting.file_path,
        'l': sighting.line_number,
        'm': sighting.enclosing_function,
        'h': sighting.marker_id,
        's': [{'f': frame.file, 'l': frame.line, 'm': frame.function} for frame in sighting.stack_trace],
        'id': sighting.timestamp.isoformat(),
        'im': sighting.caller,
    }
    return json.dumps(record, ensure_ascii=False, separators=(',', ':')) + '\n'


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _decode_frame(raw: Any) -> StackFrame:
    if not isinstance(raw, dict):
        raise ValueError("stack frame is not an object")
    line = raw.get('l')
    if line is not None and (isinstance(line, bool) or not isinstance(line, int)):
        raise ValueError(f"invalid stack frame line {line!r}")
    return StackFrame(file=_optional_str(raw.get('f')), line=line, function=_optional_str(raw.get('m')))


def decode_line(line: str, log_file: str = '', sequence: int = 0,
                max_stack_depth: Optional[int] = None) -> Decoded:
    """Decode one log line.

    Never raises: malformed input comes back as a DecodeFailure.

    Args:
        line: Raw log line (trailing newline allowed)
        log_file: Log file the line came from, recorded on the result
        sequence: 1-based line number within log_file
        max_stack_depth: Keep at most this many stack frames (None keeps all)
    """
    try:
        record = json.loads(line)
    except (ValueError, RecursionError) as exc:
        return DecodeFailure(log_file, sequence, f"malformed JSON: {exc}")
    if not isinstance(record, dict):
        return DecodeFailure(log_file, sequence, "record is not a JSON object")

    missing = [key for key in REQUIRED_FIELDS if record.get(key) is None]
    if missing:
        return DecodeFailure(log_file, sequence, f"missing required field(s): {', '.join(missing)}")

    try:
        line_number = record['l']
        if isinstance(line_number, bool) or not isinstance(line_number, int):
            raise ValueError(f"invalid line {line_number!r}")
        timestamp = parse_timestamp(record['id'])

        arguments = record.get('a') or []
        if not isinstance(arguments, list):
            raise ValueError("arguments are not a list")

        frames = record.get('s') or []
        if not isinstance(frames, list):
            raise ValueError("stack trace is not a list")
        if max_stack_depth is not None:
            frames = frames[:max_stack_depth]
        stack_trace = tuple(_decode_frame(frame) for frame in frames)
    except (ValueError, TypeError, OverflowError, OSError) as exc:
        return DecodeFailure(log_file, sequence, str(exc))

    return Sighting(
        timestamp=timestamp,
        caller=_optional_str(record.get('im')),
        stack_trace=stack_trace,
        marker_id=_optional_str(record.get('h')) or None,
        function_name=_optional_str(record.get('fn')) or '',
        arguments=normalize_metadata(arguments),
        file_path=str(record['f']),
        line_number=line_number,
        enclosing_function=normalize_scope(_optional_str(record.get('m'))),
        log_file=log_file,
        sequence=sequence,
    )
