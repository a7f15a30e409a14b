"""Tests for marker/sighting correlation and the fallback strategy chain."""
import pytest

from conftest import make_marker, make_sighting, sighting_for
from tombstone_analyzer.analyzer.index import MarkerIndex, SightingIndex
from tombstone_analyzer.matching.matcher import Matcher, Status, default_strategies
from tombstone_analyzer.matching.strategies import (
    IdentityStrategy,
    MethodNameStrategy,
    PositionStrategy,
)


def _match(markers, sightings, tolerance=3):
    matcher = Matcher(default_strategies(tolerance))
    return matcher.match(MarkerIndex(markers), SightingIndex(sightings))


def _verdict_for(result, marker):
    return next(v for v in result.verdicts if v.marker == marker)


class TestIdentityMatching:
    def test_exact_match_resurrects(self):
        marker = make_marker()
        result = _match([marker], [sighting_for(marker)])
        verdict = result.verdicts[0]
        assert verdict.status is Status.RESURRECTED
        assert verdict.strategy == 'identity'
        assert len(verdict.sightings) == 1
        assert result.orphans == []

    def test_no_sightings_means_dormant(self):
        markers = [make_marker(line_number=5), make_marker(file_path='b.py')]
        result = _match(markers, [])
        assert [v.status for v in result.verdicts] == [Status.DORMANT, Status.DORMANT]
        assert all(v.sightings == () for v in result.verdicts)

    def test_no_false_resurrection(self):
        """A marker with no related sighting stays dormant even when others are seen."""
        seen = make_marker(file_path='app/a.py', enclosing_function='used')
        unseen = make_marker(file_path='app/b.py', enclosing_function='unused', metadata=('2020',))
        result = _match([seen, unseen], [sighting_for(seen)])
        assert _verdict_for(result, seen).is_resurrected
        assert _verdict_for(result, unseen).status is Status.DORMANT

    def test_sightings_are_in_timestamp_order(self):
        marker = make_marker()
        sightings = [
            sighting_for(marker, minutes=5, caller='late'),
            sighting_for(marker, minutes=1, caller='early'),
            sighting_for(marker, minutes=1, caller='early-second', sequence=2),
        ]
        verdict = _match([marker], sightings).verdicts[0]
        assert [s.caller for s in verdict.sightings] == ['early', 'early-second', 'late']

    def test_identity_beats_position(self):
        """A sighting carrying a marker's id belongs to that marker, not to a neighbour."""
        target = make_marker(line_number=10, enclosing_function='f')
        neighbour = make_marker(line_number=11, enclosing_function='f', metadata=('2019',))
        result = _match([target, neighbour], [sighting_for(target)])
        assert _verdict_for(result, target).strategy == 'identity'
        assert _verdict_for(result, neighbour).status is Status.DORMANT, \
            "A sighting claimed by identity must not resurrect a neighbouring marker"


class TestFallbackMatching:
    def test_method_name_after_file_move(self):
        """Marker moved to another file: its old id no longer exists but the function name matches."""
        marker = make_marker(file_path='app/new_home.py', line_number=40, enclosing_function='Invoice.void')
        old = make_sighting(marker_id='stale-id', file_path='app/old_home.py', line_number=12,
                            enclosing_function='Invoice.void')
        verdict = _match([marker], [old]).verdicts[0]
        assert verdict.is_resurrected
        assert verdict.strategy == 'method_name'

    def test_method_name_requires_same_metadata(self):
        marker = make_marker(file_path='app/new_home.py', enclosing_function='Invoice.void')
        other = make_sighting(file_path='app/old_home.py', enclosing_function='Invoice.void',
                              arguments=('1999-01-01',))
        assert _match([marker], [other]).verdicts[0].status is Status.DORMANT

    def test_module_level_marker_skips_method_name(self):
        marker = make_marker(file_path='a.py', enclosing_function='')
        sighting = make_sighting(file_path='b.py', enclosing_function='')
        assert MethodNameStrategy().try_match(marker, SightingIndex([sighting])) is None

    def test_position_within_tolerance(self):
        marker = make_marker(line_number=20, enclosing_function='renamed')
        drifted = make_sighting(line_number=22, enclosing_function='old_name')
        verdict = _match([marker], [drifted], tolerance=3).verdicts[0]
        assert verdict.is_resurrected
        assert verdict.strategy == 'position'

    def test_position_outside_tolerance(self):
        marker = make_marker(line_number=20, enclosing_function='renamed')
        far = make_sighting(line_number=30, enclosing_function='old_name')
        assert _match([marker], [far], tolerance=3).verdicts[0].status is Status.DORMANT

    def test_position_tolerance_zero_requires_exact_line(self):
        marker = make_marker(line_number=20)
        index = SightingIndex([make_sighting(line_number=21), make_sighting(line_number=20)])
        matches = PositionStrategy(tolerance=0).try_match(marker, index)
        assert [s.line_number for s in matches] == [20]

    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValueError):
            PositionStrategy(tolerance=-1)

    def test_position_requires_same_file(self):
        marker = make_marker(file_path='a.py', line_number=10, enclosing_function='x')
        sighting = make_sighting(file_path='b.py', line_number=10, enclosing_function='y')
        assert _match([marker], [sighting]).verdicts[0].status is Status.DORMANT

    def test_strategy_order_is_respected(self):
        """Method-name runs before position when both would match."""
        marker = make_marker(line_number=10, enclosing_function='f')
        sighting = make_sighting(marker_id=None, line_number=11, enclosing_function='f')
        verdict = _match([marker], [sighting]).verdicts[0]
        assert verdict.strategy == 'method_name'

    def test_custom_strategy_list(self):
        marker = make_marker(line_number=10, enclosing_function='f')
        sighting = make_sighting(marker_id=None, line_number=11, enclosing_function='f')
        matcher = Matcher([PositionStrategy(1)])
        verdict = matcher.match(MarkerIndex([marker]), SightingIndex([sighting])).verdicts[0]
        assert verdict.strategy == 'position'


class TestOrphans:
    def test_sighting_of_removed_marker_is_orphaned(self):
        kept = make_marker(file_path='a.py')
        removed = make_marker(file_path='gone.py')
        result = _match([kept], [sighting_for(kept), sighting_for(removed)])
        assert _verdict_for(result, kept).is_resurrected
        assert len(result.orphans) == 1
        assert result.orphans[0].file_path == 'gone.py'
        assert len(result.verdicts) == 1, "Orphaned sightings must not create report entries"


class TestIndices:
    def test_duplicate_marker_ids_keep_first(self):
        first = make_marker(line_number=10)
        again = make_marker(line_number=12)
        index = MarkerIndex([first, again])
        assert len(index) == 1
        assert index.get(first.id) is first
        assert index.duplicates == [again]

    def test_sighting_index_lookups(self):
        marker = make_marker()
        sightings = [sighting_for(marker), make_sighting(file_path='other.py', enclosing_function='h')]
        index = SightingIndex(sightings)
        assert len(index.for_marker(marker.id)) == 1
        assert len(index.in_file('other.py')) == 1
        assert len(index.for_enclosing_function('h')) == 1
        assert index.for_marker('missing') == []

    def test_unclaimed_excludes_known_ids(self):
        marker = make_marker()
        stray = make_sighting(marker_id='unknown')
        index = SightingIndex([sighting_for(marker), stray])
        unclaimed = index.unclaimed([marker.id])
        assert list(unclaimed) == [stray]
        assert len(index) == 2, "unclaimed() must not modify the original index"

    def test_identity_strategy_returns_none_without_match(self):
        marker = make_marker()
        assert IdentityStrategy().try_match(marker, SightingIndex()) is None
