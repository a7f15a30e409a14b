"""Process-wide graveyard slot behind the `tombstone()` call-site function.

Markers are plain calls placed in application code, so they cannot receive
a graveyard as an argument. The slot is set once at process start with
initialize() and cleared with reset() (process shutdown, test teardown).
Code that owns a Graveyard should call Graveyard.record() directly instead.
"""
import inspect
import threading
from typing import Optional

from ..errors import GraveyardNotSetError
from .recorder import Graveyard, build_graveyard

_graveyard: Optional[Graveyard] = None
_lock = threading.Lock()


def initialize(graveyard: Graveyard) -> Graveyard:
    """Install the process-wide graveyard.

    Raises:
        RuntimeError: If a graveyard is already installed
    """
    global _graveyard
    with _lock:
        if _graveyard is not None:
            raise RuntimeError("A graveyard is already initialized; call reset() first")
        _graveyard = graveyard
    return graveyard


def initialize_from_config(config) -> Optional[Graveyard]:
    """Build and install a graveyard from config; does nothing when tombstones are disabled."""
    if not config.enabled:
        return None
    return initialize(build_graveyard(config))


def reset() -> None:
    """Flush and remove the process-wide graveyard."""
    global _graveyard
    with _lock:
        graveyard, _graveyard = _graveyard, None
    if graveyard is not None:
        graveyard.flush()


def get_graveyard() -> Graveyard:
    """Return the installed graveyard.

    Raises:
        GraveyardNotSetError: If initialize() has not been called
    """
    graveyard = _graveyard
    if graveyard is None:
        raise GraveyardNotSetError("No graveyard initialized; call initialize() at process start")
    return graveyard


def tombstone(*metadata) -> None:
    """Mark the calling site as a dead-code candidate.

    Typical metadata is the date the marker was placed and an author or
    ticket reference. A no-op when no graveyard is installed.
    """
    graveyard = _graveyard
    if graveyard is None:
        return
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    try:
        if caller is not None:
            graveyard.record('tombstone', metadata, caller)
    finally:
        # Break the frame reference cycle
        del frame, caller
