"""Tests for report aggregation, JSON export and console rendering."""
import json
import random

from rich.console import Console

from conftest import make_marker, sighting_for
from tombstone_analyzer.errors import DecodeFailure, ParseFailure
from tombstone_analyzer.matching.matcher import MatchVerdict, Status
from tombstone_analyzer.report.aggregator import aggregate
from tombstone_analyzer.report.console import render_report
from tombstone_analyzer.report.json_export import render_json, write_json
from tombstone_analyzer.utils import logger as logger_utils


def _verdicts():
    dormant_a = make_marker(file_path='b/late.py', line_number=30, enclosing_function='x')
    dormant_b = make_marker(file_path='a/early.py', line_number=5, enclosing_function='y')
    alive = make_marker(file_path='a/early.py', line_number=2, enclosing_function='z')
    sightings = (
        sighting_for(alive, minutes=9, caller='third'),
        sighting_for(alive, minutes=1, caller='first'),
        sighting_for(alive, minutes=4, caller='second'),
    )
    return [
        MatchVerdict(marker=dormant_a, sightings=(), status=Status.DORMANT),
        MatchVerdict(marker=dormant_b, sightings=(), status=Status.DORMANT),
        MatchVerdict(marker=alive, sightings=sightings, status=Status.RESURRECTED, strategy='identity'),
    ]


class TestAggregate:
    def test_summary_counts(self):
        report = aggregate(_verdicts())
        assert report.summary.total == 3
        assert report.summary.dormant == 2
        assert report.summary.resurrected == 1
        assert report.summary.total == report.summary.dormant + report.summary.resurrected

    def test_files_and_markers_are_sorted(self):
        report = aggregate(_verdicts())
        assert [f.file_path for f in report.files] == ['a/early.py', 'b/late.py']
        assert [e.marker.line_number for e in report.files[0].entries] == [2, 5]

    def test_sightings_are_sorted_by_timestamp(self):
        report = aggregate(_verdicts())
        entry = report.files[0].resurrected[0]
        assert [s.caller for s in entry.sightings] == ['first', 'second', 'third']

    def test_input_order_does_not_matter(self):
        """The same verdicts in any order serialize to byte-identical output."""
        baseline = json.dumps(aggregate(_verdicts()).to_dict(), sort_keys=True)
        rng = random.Random(1234)
        for _ in range(10):
            verdicts = _verdicts()
            rng.shuffle(verdicts)
            shuffled = [
                MatchVerdict(marker=v.marker, sightings=tuple(rng.sample(v.sightings, len(v.sightings))),
                             status=v.status, strategy=v.strategy)
                for v in verdicts
            ]
            assert json.dumps(aggregate(shuffled).to_dict(), sort_keys=True) == baseline

    def test_empty_report(self):
        report = aggregate([])
        assert report.files == ()
        assert report.summary.total == 0

    def test_failures_are_counted(self):
        parse = [ParseFailure('z.py', 'syntax error near line 1'), ParseFailure('a.py', 'cannot read file')]
        decode = [DecodeFailure('x.tombstone', 3, 'malformed JSON')]
        report = aggregate(_verdicts(), parse, decode)
        assert report.summary.skipped_files == 2
        assert report.summary.skipped_lines == 1
        assert [w.file_path for w in report.warnings] == ['a.py', 'z.py']

    def test_file_report_partitions(self):
        report = aggregate(_verdicts())
        early = report.files[0]
        assert len(early.dormant) == 1
        assert len(early.resurrected) == 1


class TestJsonExport:
    def test_render_json_shape(self):
        data = json.loads(render_json(aggregate(_verdicts())))
        assert data['summary']['total'] == 3
        marker = data['files'][0]['markers'][0]
        assert marker['status'] == 'resurrected'
        assert marker['strategy'] == 'identity'
        assert [s['caller'] for s in marker['sightings']] == ['first', 'second', 'third']

    def test_write_json(self, tmp_path):
        target = tmp_path / 'out' / 'report.json'
        written = write_json(aggregate(_verdicts()), target)
        assert written == target
        assert json.loads(target.read_text(encoding='utf-8'))['summary']['dormant'] == 2
        assert not (tmp_path / 'out' / 'report.json.tmp').exists()


class TestConsoleRendering:
    def _render(self, report, **kwargs):
        console = Console(record=True, width=120, color_system=None)
        render_report(report, console, **kwargs)
        return console.export_text()

    def test_summary_lines(self):
        text = self._render(aggregate(_verdicts()))
        assert 'Total tombstones: 3' in text
        assert 'Dormant (dead code candidates): 2' in text
        assert 'Resurrected (still in use): 1' in text
        assert 'a/early.py' in text

    def test_show_sightings(self):
        text = self._render(aggregate(_verdicts()), show_sightings=True)
        assert 'by first' in text

    def test_empty(self):
        text = self._render(aggregate([]))
        assert 'No tombstones found.' in text

    def test_warnings_are_listed(self):
        report = aggregate(_verdicts(), [ParseFailure('broken.py', 'syntax error near line 2')])
        text = self._render(report)
        assert 'Skipped 1 file(s):' in text
        assert '⚠ broken.py: syntax error near line 2' in text


def test_icons_fall_back_to_ascii(monkeypatch):
    monkeypatch.setattr(logger_utils, 'is_utf8_capable', lambda: False)
    assert logger_utils.sanitize_for_terminal('⚠ a → b') == '[WARN] a -> b'
