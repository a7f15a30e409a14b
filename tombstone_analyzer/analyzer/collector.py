"""Source tree scanning: discover files, parse them in parallel, collect markers."""
import fnmatch
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from ..errors import ConfigurationError, ParseFailure
from .extractor import Marker, MarkerExtractor
from .parser import LanguageParser, first_error_line

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Markers found in a source tree plus the files that had to be skipped."""
    markers: List[Marker] = field(default_factory=list)
    failures: List[ParseFailure] = field(default_factory=list)
    files_scanned: int = 0


def _matches(path: str, name: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch.fnmatch(name, pattern) or fnmatch.fnmatch(path, pattern)
               for pattern in patterns)


def discover_files(root: Path, include: Sequence[str], excludes: Sequence[str]) -> List[Path]:
    """Walk root and return matching source files, sorted by relative path.

    Excluded directories are pruned during the walk, so nothing below them is
    ever stat'ed or parsed.
    """
    results = []
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        dirnames[:] = sorted(
            name for name in dirnames
            if not _matches(name if rel_dir == '.' else f"{rel_dir}/{name}", name, excludes)
        )
        for name in filenames:
            rel_path = name if rel_dir == '.' else f"{rel_dir}/{name}"
            if _matches(rel_path, name, excludes):
                continue
            if include and not _matches(rel_path, name, include):
                continue
            results.append(Path(dirpath) / name)
    results.sort(key=lambda p: p.relative_to(root).as_posix())
    return results


class MarkerCollector:
    """Extract markers from every matching file below a root directory."""

    def __init__(self, root_directory: str | Path, include: Sequence[str],
                 excludes: Sequence[str], function_names: Sequence[str],
                 workers: Optional[int] = None):
        """Initialize collector.

        Args:
            root_directory: Project root; marker file paths are relative to it
            include: Glob patterns of files to parse (e.g. ['*.py'])
            excludes: Directory/file names or globs to skip
            function_names: Marking function names
            workers: Thread pool size, None for the executor default
        """
        self.root_directory = Path(root_directory).resolve()
        self.include = list(include)
        self.excludes = list(excludes)
        self.function_names = list(function_names)
        self.workers = workers

    def collect(self) -> ExtractionResult:
        """Scan the tree.

        Raises:
            ConfigurationError: If the root directory is missing or not a directory
        """
        if not self.root_directory.is_dir():
            raise ConfigurationError(f"Root directory is not a directory: {self.root_directory}")

        files = discover_files(self.root_directory, self.include, self.excludes)
        logger.debug("Scanning %d source files under %s", len(files), self.root_directory)

        outcomes: List[Tuple[str, List[Marker], Optional[ParseFailure]]] = []
        if files:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                futures = {executor.submit(self.extract_file, path): path for path in files}
                for future in as_completed(futures):
                    path = futures[future]
                    try:
                        outcomes.append(future.result())
                    except Exception as exc:
                        rel_path = path.relative_to(self.root_directory).as_posix()
                        outcomes.append((rel_path, [], ParseFailure(rel_path, f"extraction failed: {exc}")))

        # Merge single-threaded, in path order, for deterministic output
        result = ExtractionResult(files_scanned=len(files))
        for _, markers, failure in sorted(outcomes, key=lambda outcome: outcome[0]):
            result.markers.extend(markers)
            if failure:
                logger.warning("Skipped %s", failure)
                result.failures.append(failure)
        return result

    def extract_file(self, file_path: Path) -> Tuple[str, List[Marker], Optional[ParseFailure]]:
        """Extract markers from one file; never raises for per-file problems.

        Returns:
            (relative path, markers, failure or None)
        """
        file_path = Path(file_path)
        if not file_path.is_absolute():
            file_path = self.root_directory / file_path
        rel_path = file_path.relative_to(self.root_directory).as_posix()

        parser = LanguageParser.from_file_extension(file_path)
        if parser is None:
            return rel_path, [], ParseFailure(rel_path, f"unsupported file type '{file_path.suffix}'")

        try:
            with open(file_path, 'rb') as f:
                source_code = f.read()
        except OSError as exc:
            return rel_path, [], ParseFailure(rel_path, f"cannot read file: {exc}")

        tree = parser.parse_source(source_code)
        error_line = first_error_line(tree)
        if error_line is not None:
            return rel_path, [], ParseFailure(rel_path, f"syntax error near line {error_line}")

        extractor = MarkerExtractor(parser.language, self.function_names)
        return rel_path, extractor.extract_markers(tree, source_code, rel_path), None
