"""Marker identity shared by the static extractor and the runtime recorder.

Both sides must derive the same id for the same call site, so the inputs are
limited to what both can see: the marking function name, the metadata
arguments rendered as strings, the root-relative file path and the enclosing
function's qualified name. The line number is left out so that
an id survives unrelated edits above the marker.
"""
import hashlib
import json
from typing import Any, Iterable, List, Tuple

MODULE_SCOPE_NAMES = {'<module>', ''}

# Code objects the extractor never sees as a scope: a call inside one belongs
# to the enclosing function
ANONYMOUS_SCOPE_NAMES = {'<lambda>', '<genexpr>', '<listcomp>', '<setcomp>', '<dictcomp>'}


def stringify_argument(value: Any) -> str:
    """Render one marker argument the way it is stored in metadata."""
    if isinstance(value, str):
        return value
    return repr(value)


def normalize_metadata(arguments: Iterable[Any]) -> Tuple[str, ...]:
    return tuple(stringify_argument(argument) for argument in arguments)


def normalize_scope(qualified_name: str | None) -> str:
    """Map an interpreter qualified name to the scope name the extractor computes.

    Module-level code becomes the empty scope, and lambda, generator and
    comprehension segments are dropped together with their '<locals>' marker:
    'f.<locals>.<lambda>' becomes 'f'.
    """
    if not qualified_name or qualified_name in MODULE_SCOPE_NAMES:
        return ''
    parts: List[str] = []
    for part in qualified_name.split('.'):
        if part in ANONYMOUS_SCOPE_NAMES:
            if parts and parts[-1] == '<locals>':
                parts.pop()
            continue
        parts.append(part)
    return '.'.join(parts)


def compute_marker_id(function_name: str, metadata: Iterable[str],
                      file_path: str, enclosing_function: str) -> str:
    """Deterministic SHA-1 identity of a marker call site."""
    payload = json.dumps(
        [function_name, list(metadata), file_path, enclosing_function],
        ensure_ascii=False,
        separators=(',', ':'),
    )
    return hashlib.sha1(payload.encode('utf-8')).hexdigest()
