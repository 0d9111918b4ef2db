"""
CSV report generator for documenting move operations.

This module is responsible for:
- Creating detailed CSV reports of every move outcome
- Streaming writes to keep memory low
- Recording timestamps, paths, sizes and status for each file
- Generating summary statistics
- Bounding long error lists for display
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TextIO, Union

from .types import MoveResult, ReportEntry, ReportStatus

logger = logging.getLogger(__name__)

# CSV column headers in order
REPORT_COLUMNS = [
    "timestamp",
    "status",
    "source_path",
    "dest_path",
    "size_bytes",
    "message",
]

# Default number of error lines shown to the user
ERROR_SUMMARY_LIMIT = 20


def summarize_errors(errors: Sequence[str], limit: int = ERROR_SUMMARY_LIMIT) -> str:
    """
    Join the first `limit` error lines, noting how many were left out.

    The mover always returns the full list; this is for dialogs and
    terminal output only.
    """
    lines = list(errors[:limit])
    if len(errors) > limit:
        lines.append(f"... (+{len(errors) - limit} more)")
    return "\n".join(lines)


class ReportWriter:
    """
    Streaming CSV report writer for move operations.

    Writes entries incrementally to keep memory usage low.
    """

    def __init__(
        self,
        report_path: Union[str, Path],
        include_header: bool = True
    ):
        """
        Initialize the report writer.

        Args:
            report_path: Path where the CSV report will be written
            include_header: Whether to write header row (default: True)
        """
        self.report_path = Path(report_path)
        self.include_header = include_header

        self._file: Optional[TextIO] = None
        self._writer = None
        self._row_count = 0
        self._stats: Dict[str, int] = {}

    def __enter__(self):
        """Context manager entry - opens the file."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - closes the file."""
        self.close()
        return False

    def open(self) -> None:
        """Open the report file for writing."""
        if self._file is not None:
            return

        self.report_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Opening report file: {self.report_path}")
        self._file = open(self.report_path, "w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._file, quoting=csv.QUOTE_MINIMAL)

        if self.include_header:
            self._writer.writerow(REPORT_COLUMNS)

    def close(self) -> None:
        """Close the report file."""
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None
            logger.info(
                f"Report closed: {self._row_count} rows written to {self.report_path}"
            )

    def _ensure_open(self) -> None:
        if self._file is None:
            self.open()

    def _get_timestamp(self) -> str:
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def write_parameters(self, params: Dict[str, str]) -> None:
        """
        Write run parameters as rows with status "PARAMETER".

        Empty values are left out. A separator row ends the block.

        Args:
            params: Dictionary of parameter names to values
        """
        self._ensure_open()
        timestamp = self._get_timestamp()

        for key, value in params.items():
            if value:
                self._writer.writerow([timestamp, "PARAMETER", "", "", "", f"{key}={value}"])
                self._row_count += 1

        self._writer.writerow([timestamp, "PARAMETER", "", "", "", "--- END PARAMETERS ---"])
        self._row_count += 1
        self._file.flush()

    def write_entry(self, entry: ReportEntry) -> None:
        """
        Write a single report entry to the CSV.

        Args:
            entry: The ReportEntry to write
        """
        self._ensure_open()

        self._writer.writerow([
            entry.timestamp,
            entry.status,
            entry.source_path,
            entry.dest_path,
            entry.size_bytes,
            entry.message,
        ])
        self._row_count += 1
        self._stats[entry.status] = self._stats.get(entry.status, 0) + 1

        # Flush periodically for safety
        if self._row_count % 100 == 0:
            self._file.flush()

    def write_move_result(
        self,
        result: MoveResult,
        timestamp: Optional[str] = None
    ) -> None:
        """
        Write a MoveResult to the report.

        Args:
            result: The MoveResult to record
            timestamp: Optional timestamp (defaults to current time)
        """
        entry = ReportEntry(
            timestamp=timestamp or self._get_timestamp(),
            status=ReportStatus.from_move_status(result.status).value,
            source_path=result.source_path,
            dest_path=result.dest_path or "",
            size_bytes=str(result.size_bytes),
            message=result.message,
        )
        self.write_entry(entry)

    def get_stats(self) -> Dict[str, int]:
        """Get a copy of the per-status counts."""
        return dict(self._stats)

    def get_row_count(self) -> int:
        """Get total number of rows written."""
        return self._row_count

    def get_summary(self) -> str:
        """
        Get a human-readable summary of the report.

        Returns:
            Formatted summary string
        """
        stats = self._stats
        lines = [f"Report Summary ({self._row_count} total entries):"]

        moved = stats.get("MOVED", 0) + stats.get("MOVED_RENAMED", 0)
        dry_run = stats.get("DRYRUN", 0) + stats.get("DRYRUN_RENAMED", 0)

        if moved:
            lines.append(f"  Moved: {moved}")
            if stats.get("MOVED_RENAMED", 0):
                lines.append(f"    (renamed: {stats['MOVED_RENAMED']})")

        if dry_run:
            lines.append(f"  Would move (dry run): {dry_run}")
            if stats.get("DRYRUN_RENAMED", 0):
                lines.append(f"    (would rename: {stats['DRYRUN_RENAMED']})")

        skipped = stats.get("SKIPPED_EXISTS", 0) + stats.get("SKIPPED_MISSING", 0)
        if skipped:
            lines.append(f"  Skipped: {skipped}")
            if stats.get("SKIPPED_EXISTS", 0):
                lines.append(f"    (already exists: {stats['SKIPPED_EXISTS']})")
            if stats.get("SKIPPED_MISSING", 0):
                lines.append(f"    (source missing: {stats['SKIPPED_MISSING']})")

        if stats.get("ERROR", 0):
            lines.append(f"  Errors: {stats['ERROR']}")

        return "\n".join(lines)


def generate_report(
    results: List[MoveResult],
    report_path: Union[str, Path],
    params: Optional[Dict[str, str]] = None
) -> ReportWriter:
    """
    Generate a complete report from in-memory results.

    For streaming, use ReportWriter directly.

    Args:
        results: List of MoveResult objects
        report_path: Path for the CSV report
        params: Optional run parameters written before the results

    Returns:
        The ReportWriter used (for accessing stats)
    """
    with ReportWriter(report_path) as writer:
        if params:
            writer.write_parameters(params)

        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        for result in results:
            writer.write_move_result(result, timestamp)

        logger.info(writer.get_summary())
        return writer
