"""In-memory indices over markers and sightings for one analysis run."""
from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional

from ..graveyard.log_format import Sighting
from .extractor import Marker


class MarkerIndex:
    """Marker identity -> Marker.

    Markers with an identity already in the index are not added again; they are
    kept in `duplicates` so callers can report them.
    """

    def __init__(self, markers: Iterable[Marker] = ()):
        self._markers: Dict[str, Marker] = {}
        self.duplicates: List[Marker] = []
        self.add_all(markers)

    def add(self, marker: Marker) -> bool:
        """Add a marker.

        Returns:
            False if a marker with the same id was already indexed
        """
        if marker.id in self._markers:
            self.duplicates.append(marker)
            return False
        self._markers[marker.id] = marker
        return True

    def add_all(self, markers: Iterable[Marker]) -> None:
        for marker in markers:
            self.add(marker)

    def get(self, marker_id: str) -> Optional[Marker]:
        return self._markers.get(marker_id)

    def ids(self) -> frozenset:
        return frozenset(self._markers)

    def __contains__(self, marker_id: object) -> bool:
        return marker_id in self._markers

    def __iter__(self) -> Iterator[Marker]:
        return iter(self._markers.values())

    def __len__(self) -> int:
        return len(self._markers)


class SightingIndex:
    """Marker identity -> sightings, with secondary lookups used by fallback matching."""

    def __init__(self, sightings: Iterable[Sighting] = ()):
        self._all: List[Sighting] = []
        self._by_marker: Dict[str, List[Sighting]] = defaultdict(list)
        self._by_function: Dict[str, List[Sighting]] = defaultdict(list)
        self._by_file: Dict[str, List[Sighting]] = defaultdict(list)
        self.add_all(sightings)

    def add(self, sighting: Sighting) -> None:
        self._all.append(sighting)
        if sighting.marker_id:
            self._by_marker[sighting.marker_id].append(sighting)
        if sighting.enclosing_function:
            self._by_function[sighting.enclosing_function].append(sighting)
        self._by_file[sighting.file_path].append(sighting)

    def add_all(self, sightings: Iterable[Sighting]) -> None:
        for sighting in sightings:
            self.add(sighting)

    def for_marker(self, marker_id: str) -> List[Sighting]:
        return list(self._by_marker.get(marker_id, ()))

    def for_enclosing_function(self, name: str) -> List[Sighting]:
        return list(self._by_function.get(name, ()))

    def in_file(self, file_path: str) -> List[Sighting]:
        return list(self._by_file.get(file_path, ()))

    def unclaimed(self, marker_ids: Iterable[str]) -> 'SightingIndex':
        """A new index without the sightings whose marker id is one of marker_ids."""
        claimed = set(marker_ids)
        return SightingIndex(s for s in self._all if not s.marker_id or s.marker_id not in claimed)

    def __iter__(self) -> Iterator[Sighting]:
        return iter(self._all)

    def __len__(self) -> int:
        return len(self._all)
