"""Strategies correlating a marker with the sightings recorded for it.

Each strategy answers one question for one marker and has no state beyond its
settings, so markers can be classified independently of each other.
"""
from typing import List, Optional, Protocol

from ..analyzer.extractor import Marker
from ..analyzer.index import SightingIndex
from ..graveyard.log_format import Sighting


class MatchingStrategy(Protocol):
    name: str

    def try_match(self, marker: Marker, index: SightingIndex) -> Optional[List[Sighting]]:
        """Return the matching sightings, or None when this strategy finds nothing."""
        ...


class IdentityStrategy:
    """Exact match on the marker id recorded with each sighting."""

    name = 'identity'

    def try_match(self, marker: Marker, index: SightingIndex) -> Optional[List[Sighting]]:
        return index.for_marker(marker.id) or None


class MethodNameStrategy:
    """Same enclosing function, same marking function, same metadata tags.

    Survives a change of the identity computation (e.g. the file was renamed)
    as long as the marker still sits in a function with the same name.
    Module-level markers have no function identity and never match here.
    """

    name = 'method_name'

    def try_match(self, marker: Marker, index: SightingIndex) -> Optional[List[Sighting]]:
        if not marker.enclosing_function:
            return None
        matches = [
            sighting for sighting in index.for_enclosing_function(marker.enclosing_function)
            if sighting.arguments == marker.metadata
            and (not sighting.function_name or sighting.function_name == marker.function_name)
        ]
        return matches or None


class PositionStrategy:
    """Same file and a line within `tolerance` lines of the marker."""

    name = 'position'

    def __init__(self, tolerance: int = 3):
        if tolerance < 0:
            raise ValueError("tolerance must be >= 0")
        self.tolerance = tolerance

    def try_match(self, marker: Marker, index: SightingIndex) -> Optional[List[Sighting]]:
        matches = [
            sighting for sighting in index.in_file(marker.file_path)
            if abs(sighting.line_number - marker.line_number) <= self.tolerance
        ]
        return matches or None
