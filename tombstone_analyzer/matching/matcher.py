"""Classify every marker as resurrected or dormant."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..analyzer.extractor import Marker
from ..analyzer.index import MarkerIndex, SightingIndex
from ..graveyard.log_format import Sighting
from .strategies import IdentityStrategy, MatchingStrategy, MethodNameStrategy, PositionStrategy

logger = logging.getLogger(__name__)


class Status(str, Enum):
    DORMANT = 'dormant'
    RESURRECTED = 'resurrected'


@dataclass(frozen=True)
class MatchVerdict:
    marker: Marker
    sightings: Tuple[Sighting, ...]
    status: Status
    strategy: Optional[str] = None

    @property
    def is_resurrected(self) -> bool:
        return self.status is Status.RESURRECTED


@dataclass
class MatchResult:
    verdicts: List[MatchVerdict] = field(default_factory=list)
    # Sightings no marker claimed (the marker was removed but its logs remain)
    orphans: List[Sighting] = field(default_factory=list)


def default_strategies(position_tolerance: int = 3) -> List[MatchingStrategy]:
    """The fallback chain used after the identity match."""
    return [MethodNameStrategy(), PositionStrategy(position_tolerance)]


class Matcher:
    """Run the strategy chain per marker; the first strategy with a result wins.

    The identity strategy always runs first against every sighting. Fallback
    strategies only see sightings that are not claimed by identity by any
    known marker, so a sighting is never moved away from its own marker.
    """

    def __init__(self, strategies: Optional[Sequence[MatchingStrategy]] = None):
        self.identity = IdentityStrategy()
        self.strategies = list(strategies) if strategies is not None else default_strategies()

    def classify(self, marker: Marker, sightings: SightingIndex,
                 unclaimed: Optional[SightingIndex] = None) -> MatchVerdict:
        """Classify one marker.

        Args:
            marker: Marker to classify
            sightings: Every collected sighting
            unclaimed: Sightings available to the fallback strategies
                (defaults to all sightings)
        """
        matches = self.identity.try_match(marker, sightings)
        if matches:
            return self._resurrected(marker, matches, self.identity.name)

        fallback_index = sightings if unclaimed is None else unclaimed
        if len(fallback_index):
            for strategy in self.strategies:
                matches = strategy.try_match(marker, fallback_index)
                if matches:
                    return self._resurrected(marker, matches, strategy.name)

        return MatchVerdict(marker=marker, sightings=(), status=Status.DORMANT)

    def match(self, markers: MarkerIndex, sightings: SightingIndex) -> MatchResult:
        """Classify every marker in the index.

        Both indices must be fully populated; neither is modified.
        """
        result = MatchResult()
        if not len(sightings):
            result.verdicts = [MatchVerdict(marker=marker, sightings=(), status=Status.DORMANT)
                               for marker in markers]
            return result

        unclaimed = sightings.unclaimed(markers.ids())
        matched_ids = set()
        for marker in markers:
            verdict = self.classify(marker, sightings, unclaimed)
            result.verdicts.append(verdict)
            matched_ids.update(id(sighting) for sighting in verdict.sightings)

        result.orphans = [sighting for sighting in sightings if id(sighting) not in matched_ids]
        logger.debug("Matched %d marker(s), %d orphaned sighting(s)",
                     sum(v.is_resurrected for v in result.verdicts), len(result.orphans))
        return result

    @staticmethod
    def _resurrected(marker: Marker, matches: List[Sighting], strategy: str) -> MatchVerdict:
        return MatchVerdict(
            marker=marker,
            sightings=tuple(sorted(matches, key=lambda sighting: sighting.sort_key)),
            status=Status.RESURRECTED,
            strategy=strategy,
        )
