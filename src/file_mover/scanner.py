"""
File scanner for finding candidate files under a source root.

This module is responsible for:
- Recursively scanning a source directory tree using os.scandir (fast)
- Never following symlinks or reparse points (prevents cycles)
- Skipping unreadable directories and files that vanish mid-scan
- Applying extension and name-substring filters
- Ordering results largest-first (stable on ties)
- Reporting (count, total) progress as results are emitted
"""

import logging
import os
import threading
from pathlib import Path
from typing import List, Optional, Union

from .filters import matches_extension, matches_name
from .progress import ProgressSink, ensure_sink
from .types import FileRecord, ScanOptions, ScanResult
from .utils import is_reparse_point, normalize_path

logger = logging.getLogger(__name__)

# Emit a progress update every N records loaded
SCAN_PROGRESS_INTERVAL = 50

# Log a line every N files visited
SCAN_LOG_INTERVAL = 10000


def validate_source_root(source_root: Union[str, Path]) -> str:
    """
    Check that the source root exists and is a directory.

    Returns:
        The normalized source root

    Raises:
        FileNotFoundError: If source_root doesn't exist
        NotADirectoryError: If source_root is not a directory
    """
    if not source_root:
        raise FileNotFoundError("Source root not set")

    root_path = Path(source_root)

    if not root_path.exists():
        raise FileNotFoundError(f"Source root not found: {root_path}")

    if not root_path.is_dir():
        raise NotADirectoryError(f"Source root is not a directory: {root_path}")

    return normalize_path(root_path)


def scan_files(
    options: ScanOptions,
    progress: Optional[ProgressSink] = None,
    cancel_event: Optional[threading.Event] = None
) -> ScanResult:
    """
    Recursively scan a directory tree and collect matching files.

    Uses os.scandir for efficient directory traversal. Permission errors,
    reparse points and files that disappear before they can be stat'ed
    are skipped without aborting the scan.

    Args:
        options: Source root and filters
        progress: Optional sink for (count, total, status) updates
        cancel_event: Optional event; when set, enumeration stops and the
                      records found so far are returned

    Returns:
        ScanResult with records sorted by size, largest first

    Raises:
        FileNotFoundError: If the source root doesn't exist
        NotADirectoryError: If the source root is not a directory
    """
    root_str = validate_source_root(options.source_root)
    sink = ensure_sink(progress)
    name_contains = options.name_contains.strip()

    logger.info(f"Scanning files under: {root_str}")

    result = ScanResult()
    found: List[FileRecord] = result.records
    files_visited = 0

    def _cancelled() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    def _skip(path: str, reason: str) -> None:
        result.skipped.append((path, reason))
        logger.debug(f"Skipped {path}: {reason}")

    def _scan_recursive(dir_path: str) -> None:
        """Recursively scan directory using os.scandir."""
        nonlocal files_visited

        try:
            with os.scandir(dir_path) as entries:
                for entry in entries:
                    if _cancelled():
                        return
                    try:
                        if is_reparse_point(entry):
                            _skip(entry.path, "reparse point")
                            continue

                        if entry.is_dir(follow_symlinks=False):
                            _scan_recursive(entry.path)
                            continue

                        if not entry.is_file(follow_symlinks=False):
                            continue

                        files_visited += 1
                        if files_visited % SCAN_LOG_INTERVAL == 0:
                            logger.info(f"Scanned {files_visited} files...")

                        extension = os.path.splitext(entry.name)[1]
                        if not matches_extension(extension, options.extension_filter):
                            continue
                        if not matches_name(entry.name, name_contains):
                            continue

                        size = entry.stat(follow_symlinks=False).st_size
                        found.append(FileRecord(
                            name=entry.name,
                            full_path=entry.path,
                            size_bytes=size
                        ))

                    except OSError as e:
                        _skip(entry.path, str(e))

        except OSError as e:
            _skip(dir_path, str(e))

    _scan_recursive(root_str)

    # list.sort is stable, so equal sizes keep discovery order
    found.sort(key=lambda record: record.size_bytes, reverse=True)
    result.cancelled = _cancelled()

    if result.cancelled:
        logger.info(f"Scan cancelled: {len(found)} files found so far")
    else:
        logger.info(
            f"Scan complete: {len(found)} matching files of {files_visited} "
            f"({len(result.skipped)} entries skipped)"
        )

    _report_loaded(sink, len(found))
    return result


def _report_loaded(sink: ProgressSink, total: int) -> None:
    """Report loading progress at a coarse interval plus a final update."""
    for count in range(SCAN_PROGRESS_INTERVAL, total, SCAN_PROGRESS_INTERVAL):
        sink.report(count, total, f"Loaded: {count}/{total}")
    sink.report(total, total, f"Loaded: {total}/{total}")
