"""One analysis run: extract markers, collect sightings, match, aggregate."""
import logging
from dataclasses import dataclass
from typing import List

from .analyzer.collector import ExtractionResult, MarkerCollector
from .analyzer.index import MarkerIndex, SightingIndex
from .config import Config
from .graveyard.log_format import Sighting
from .graveyard.reader import CollectionResult, SightingCollector
from .matching.matcher import Matcher, MatchResult, default_strategies
from .report.aggregator import Report, aggregate

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    report: Report
    extraction: ExtractionResult
    collection: CollectionResult
    match: MatchResult
    marker_index: MarkerIndex

    @property
    def orphans(self) -> List[Sighting]:
        return self.match.orphans


def extract_markers(config: Config) -> ExtractionResult:
    collector = MarkerCollector(
        root_directory=config.root_directory,
        include=config.include,
        excludes=config.excludes,
        function_names=config.function_names,
        workers=config.workers,
    )
    return collector.collect()


def collect_sightings(config: Config) -> CollectionResult:
    collector = SightingCollector(
        log_directory=config.log_directory,
        pattern=config.log_pattern,
        max_stack_depth=config.stack_trace_depth,
        workers=config.workers,
    )
    return collector.collect()


def analyze_project(config: Config) -> AnalysisResult:
    """Run the full analysis.

    File- and line-level problems end up in the report; only configuration
    problems raise.

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    config.validate()

    extraction = extract_markers(config)
    collection = collect_sightings(config)

    marker_index = MarkerIndex(extraction.markers)
    if marker_index.duplicates:
        logger.info("%d marker(s) share an identity with an earlier marker", len(marker_index.duplicates))
    sighting_index = SightingIndex(collection.sightings)

    matcher = Matcher(default_strategies(config.position_tolerance))
    match = matcher.match(marker_index, sighting_index)

    report = aggregate(match.verdicts, extraction.failures, collection.failures)
    return AnalysisResult(
        report=report,
        extraction=extraction,
        collection=collection,
        match=match,
        marker_index=marker_index,
    )
