"""Aggregate match verdicts into a deterministic, presenter-agnostic report."""
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from ..analyzer.extractor import Marker
from ..errors import DecodeFailure, ParseFailure
from ..graveyard.log_format import Sighting
from ..matching.matcher import MatchVerdict, Status


@dataclass(frozen=True)
class ReportEntry:
    marker: Marker
    status: Status
    strategy: str | None
    sightings: Tuple[Sighting, ...]

    def to_dict(self) -> dict:
        data = self.marker.to_dict()
        data['status'] = self.status.value
        data['strategy'] = self.strategy
        data['sightings'] = [sighting.to_dict() for sighting in self.sightings]
        return data


@dataclass(frozen=True)
class FileReport:
    file_path: str
    entries: Tuple[ReportEntry, ...]

    @property
    def dormant(self) -> List[ReportEntry]:
        return [entry for entry in self.entries if entry.status is Status.DORMANT]

    @property
    def resurrected(self) -> List[ReportEntry]:
        return [entry for entry in self.entries if entry.status is Status.RESURRECTED]


@dataclass(frozen=True)
class ReportSummary:
    total: int
    resurrected: int
    dormant: int
    skipped_files: int = 0
    skipped_lines: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'total': self.total,
            'resurrected': self.resurrected,
            'dormant': self.dormant,
            'skipped_files': self.skipped_files,
            'skipped_lines': self.skipped_lines,
        }


@dataclass(frozen=True)
class Report:
    files: Tuple[FileReport, ...]
    summary: ReportSummary
    warnings: Tuple[ParseFailure, ...] = ()

    def entries(self) -> Iterable[ReportEntry]:
        for file_report in self.files:
            yield from file_report.entries

    def to_dict(self) -> dict:
        return {
            'summary': self.summary.to_dict(),
            'files': [
                {'file_path': file_report.file_path,
                 'markers': [entry.to_dict() for entry in file_report.entries]}
                for file_report in self.files
            ],
            'warnings': [{'file_path': w.file_path, 'reason': w.reason} for w in self.warnings],
        }


def _entry_key(entry: ReportEntry) -> tuple:
    return (entry.marker.line_number, entry.marker.id)


def aggregate(verdicts: Iterable[MatchVerdict],
              parse_failures: Sequence[ParseFailure] = (),
              decode_failures: Sequence[DecodeFailure] = ()) -> Report:
    """Build a report from verdicts.

    Pure: the same verdicts in any order give an identical report. Files are
    sorted by path, markers by line (then id), and the sightings of each
    resurrected marker by timestamp with ties in log append order.

    Args:
        verdicts: One verdict per marker
        parse_failures: Source files skipped during extraction
        decode_failures: Log lines skipped during collection
    """
    grouped: Dict[str, List[ReportEntry]] = defaultdict(list)
    resurrected = 0
    total = 0
    for verdict in verdicts:
        total += 1
        if verdict.status is Status.RESURRECTED:
            resurrected += 1
        grouped[verdict.marker.file_path].append(ReportEntry(
            marker=verdict.marker,
            status=verdict.status,
            strategy=verdict.strategy,
            sightings=tuple(sorted(verdict.sightings, key=lambda sighting: sighting.sort_key)),
        ))

    files = tuple(
        FileReport(file_path=path, entries=tuple(sorted(grouped[path], key=_entry_key)))
        for path in sorted(grouped)
    )
    summary = ReportSummary(
        total=total,
        resurrected=resurrected,
        dormant=total - resurrected,
        skipped_files=len(parse_failures),
        skipped_lines=len(decode_failures),
    )
    warnings = tuple(sorted(parse_failures, key=lambda failure: (failure.file_path, failure.reason)))
    return Report(files=files, summary=summary, warnings=warnings)
