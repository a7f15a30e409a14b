"""JSON export of an aggregated report."""
import json
from pathlib import Path

from .aggregator import Report


def render_json(report: Report) -> str:
    return json.dumps(report.to_dict(), indent=2, sort_keys=True, ensure_ascii=False)


def write_json(report: Report, output_path: str | Path) -> Path:
    """Write the report to disk atomically.

    Returns:
        The written path
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    # Write to temp file first for atomic operation
    temp_path = output_path.with_suffix(output_path.suffix + '.tmp')
    with open(temp_path, 'w', encoding='utf-8') as f:
        f.write(render_json(report))
        f.write('\n')
    temp_path.replace(output_path)
    return output_path
