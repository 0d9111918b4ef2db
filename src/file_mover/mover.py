"""
File mover for relocating selected files to the destination.

This module is responsible for:
- Computing each file's destination folder (flat, relative structure,
  or grouped under the file's parent folder name)
- Handling name collisions with " (1)", " (2)" suffixes, failing the
  item, or skipping it for move-with-parent-folder
- Supporting dry-run mode (no actual moves)
- Catching and recording per-item errors (permissions, locked files, etc.)
  without stopping the batch
- Reporting progress once per processed item
- Returning moved source paths and the full error/skip list
"""

import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from .progress import ProgressSink, ensure_sink
from .types import (
    FileRecord,
    MoveBatchResult,
    MoveResult,
    MoveStatus,
    RelocationOptions,
)
from .utils import normalize_path, safe_move

# Upper bound for " (N)" rename attempts
MAX_RENAME_ATTEMPTS = 99999

# Refresh the status text every N items
MOVE_STATUS_INTERVAL = 10

# Log a progress line every N items
MOVE_LOG_INTERVAL = 100

logger = logging.getLogger(__name__)


def validate_destination_root(dest_root: Union[str, Path, None]) -> str:
    """
    Check that the destination root exists and is a directory.

    Returns:
        The normalized destination root

    Raises:
        FileNotFoundError: If dest_root doesn't exist
        NotADirectoryError: If dest_root is not a directory
    """
    if not dest_root:
        raise FileNotFoundError("Destination root not set")

    dest_path = Path(dest_root)

    if not dest_path.exists():
        raise FileNotFoundError(f"Destination root not found: {dest_path}")

    if not dest_path.is_dir():
        raise NotADirectoryError(f"Destination root is not a directory: {dest_path}")

    return normalize_path(dest_path)


def resolve_destination_folder(
    source_path: Union[str, Path],
    dest_root: Union[str, Path],
    source_root: Union[str, Path, None] = None,
    keep_relative_structure: bool = False,
    move_with_parent_folder: bool = False
) -> str:
    """
    Compute the folder a file should be moved into.

    - move_with_parent_folder: dest_root / <name of the file's parent>
    - keep_relative_structure: dest_root / <parent relative to source_root>
    - otherwise: dest_root

    Raises:
        ValueError: If keep_relative_structure is set and the file is not
                    under source_root
    """
    dest_root_str = normalize_path(dest_root)
    parent = os.path.dirname(normalize_path(source_path))

    if move_with_parent_folder:
        return os.path.join(dest_root_str, os.path.basename(parent))

    if keep_relative_structure:
        if not source_root:
            raise ValueError("Keeping relative structure requires a source root")
        try:
            relative = Path(parent).relative_to(normalize_path(source_root))
        except ValueError:
            raise ValueError(f"Not under source root {source_root}") from None
        return os.path.normpath(os.path.join(dest_root_str, relative))

    return dest_root_str


def resolve_destination(
    dest_folder: Union[str, Path],
    file_name: str,
    claimed_paths: Optional[Set[str]] = None,
    max_attempts: int = MAX_RENAME_ATTEMPTS
) -> str:
    """
    Resolve a unique destination path for a file.

    If the target path already exists (or is in claimed_paths), tries
    "name (1).ext", "name (2).ext", ... until a free name is found.

    Args:
        dest_folder: The folder the file goes into
        file_name: The original file name
        claimed_paths: Optional set of full paths already claimed in this
                       session (for dry runs, where nothing lands on disk)
        max_attempts: Highest suffix number to try

    Returns:
        The full destination path (unique, may have suffix)

    Raises:
        FileExistsError: If no free name is found within max_attempts
    """
    folder = normalize_path(dest_folder)
    claimed_paths = claimed_paths or set()

    def _taken(path: str) -> bool:
        return os.path.lexists(path) or path in claimed_paths

    candidate = os.path.join(folder, file_name)
    if not _taken(candidate):
        return candidate

    stem, ext = os.path.splitext(file_name)
    for counter in range(1, max_attempts + 1):
        candidate = os.path.join(folder, f"{stem} ({counter}){ext}")
        if not _taken(candidate):
            return candidate

    raise FileExistsError(
        f"Could not generate a unique name for '{file_name}' "
        f"after {max_attempts} attempts"
    )


def move_file(
    src_path: Union[str, Path],
    dest_path: Union[str, Path],
    dry_run: bool = False,
    size_bytes: int = 0
) -> MoveResult:
    """
    Move a single file from source to destination.

    Handles:
    - Missing source (skips with SKIPPED_MISSING status)
    - Existing destination (ERROR, nothing is overwritten)
    - Permission errors and files in use
    - Cross-volume moves (copy + delete fallback in safe_move)

    The destination's parent folder must already exist.

    Args:
        src_path: Source file path
        dest_path: Destination file path
        dry_run: If True, simulate the move without performing it
        size_bytes: Size recorded at scan time, carried into the result

    Returns:
        MoveResult with status and details
    """
    src_str = normalize_path(src_path)
    dest_str = normalize_path(dest_path)

    if not os.path.lexists(src_str):
        logger.info(f"Source missing (already moved?): {src_str}")
        return MoveResult(
            source_path=src_str,
            dest_path=None,
            status=MoveStatus.SKIPPED_MISSING,
            message="Source file no longer exists",
            size_bytes=size_bytes
        )

    if not os.path.isfile(src_str):
        logger.error(f"Source is not a file: {src_str}")
        return MoveResult(
            source_path=src_str,
            dest_path=None,
            status=MoveStatus.ERROR,
            message="Source path is not a regular file",
            size_bytes=size_bytes
        )

    if os.path.lexists(dest_str):
        logger.warning(f"Destination already exists: {dest_str}")
        return MoveResult(
            source_path=src_str,
            dest_path=dest_str,
            status=MoveStatus.ERROR,
            message=f"Destination exists: {dest_str}",
            size_bytes=size_bytes
        )

    if dry_run:
        logger.info(f"[DRY RUN] Moving: {src_str} -> {dest_str}")
        return MoveResult(
            source_path=src_str,
            dest_path=dest_str,
            status=MoveStatus.DRY_RUN,
            message=f"Would move to {dest_str}",
            size_bytes=size_bytes
        )

    logger.info(f"Moving: {src_str} -> {dest_str}")
    success, message = safe_move(src_str, dest_str)

    if success:
        return MoveResult(
            source_path=src_str,
            dest_path=dest_str,
            status=MoveStatus.SUCCESS,
            message=message,
            size_bytes=size_bytes
        )

    logger.error(f"Move failed: {src_str} -> {dest_str}: {message}")
    return MoveResult(
        source_path=src_str,
        dest_path=dest_str,
        status=MoveStatus.ERROR,
        message=message,
        size_bytes=size_bytes
    )


class FileMover:
    """
    Moves selected files into a destination root.

    Each item succeeds or fails on its own; an error on one file never
    stops the rest of the batch. Records are never modified: the caller
    retires them using MoveBatchResult.moved_paths.
    """

    def __init__(self, options: RelocationOptions):
        """
        Initialize the mover with relocation settings.

        Args:
            options: Destination root, source root and conflict policy
        """
        self.options = options
        self.dest_root = options.destination_root

        # Destinations claimed by earlier dry-run items, which never land
        # on disk
        self._claimed_paths: Set[str] = set()

        # Statistics
        self._stats: Dict[MoveStatus, int] = {status: 0 for status in MoveStatus}

    def _finish(self, result: MoveResult) -> MoveResult:
        self._stats[result.status] += 1
        return result

    def _error(self, record: FileRecord, dest_path: Optional[str], message: str) -> MoveResult:
        logger.error(f"Cannot move {record.full_path}: {message}")
        return self._finish(MoveResult(
            source_path=record.full_path,
            dest_path=dest_path,
            status=MoveStatus.ERROR,
            message=message,
            size_bytes=record.size_bytes
        ))

    def move_file(self, record: FileRecord) -> MoveResult:
        """
        Move one selected file to its computed destination.

        Handles:
        - Destination folder resolution and creation
        - Collisions: skip (move-with-parent-folder), rename with " (N)"
          (auto-rename on) or error (auto-rename off)
        - Tracks claimed destinations to keep dry runs consistent

        Args:
            record: The FileRecord to move

        Returns:
            MoveResult describing the outcome of the operation
        """
        options = self.options
        src_path = record.full_path

        try:
            dest_folder = resolve_destination_folder(
                src_path,
                self.dest_root,
                source_root=options.source_root,
                keep_relative_structure=options.keep_relative_structure,
                move_with_parent_folder=record.move_with_parent_folder
            )
        except ValueError as e:
            return self._error(record, None, str(e))

        # Missing source is a skip, checked before creating any folders
        if not os.path.lexists(src_path):
            logger.info(f"Source missing (already moved?): {src_path}")
            return self._finish(MoveResult(
                source_path=src_path,
                dest_path=None,
                status=MoveStatus.SKIPPED_MISSING,
                message="Source file no longer exists",
                size_bytes=record.size_bytes
            ))

        if not options.dry_run:
            try:
                os.makedirs(dest_folder, exist_ok=True)
            except OSError as e:
                return self._error(
                    record, None, f"Cannot create destination directory: {e}"
                )

        original_dest = os.path.join(dest_folder, record.name)
        dest_exists = os.path.lexists(original_dest) or original_dest in self._claimed_paths

        if dest_exists and record.move_with_parent_folder:
            logger.warning(f"Destination exists, skipping (move with folder): {original_dest}")
            return self._finish(MoveResult(
                source_path=src_path,
                dest_path=original_dest,
                status=MoveStatus.SKIPPED_EXISTS,
                message=f"Skipped, destination exists: {original_dest}",
                size_bytes=record.size_bytes
            ))

        if dest_exists and not options.auto_rename_on_conflict:
            return self._error(record, original_dest, f"Destination exists: {original_dest}")

        try:
            dest_path = resolve_destination(dest_folder, record.name, self._claimed_paths)
        except FileExistsError as e:
            return self._error(record, original_dest, str(e))

        result = move_file(src_path, dest_path, options.dry_run, record.size_bytes)

        # Live moves land on disk; only a would-be move needs remembering
        if result.status == MoveStatus.DRY_RUN:
            self._claimed_paths.add(dest_path)

        dest_name = os.path.basename(dest_path)
        was_renamed = dest_name != record.name

        if result.status == MoveStatus.SUCCESS and was_renamed:
            status = MoveStatus.SUCCESS_RENAMED
            message = f"Moved successfully (renamed from {record.name} to {dest_name})"
        elif result.status == MoveStatus.DRY_RUN and was_renamed:
            status = MoveStatus.DRY_RUN_RENAMED
            message = f"Would move to {dest_path} (renamed from {record.name} to {dest_name})"
        else:
            status = result.status
            message = result.message

        return self._finish(MoveResult(
            source_path=src_path,
            dest_path=result.dest_path,
            status=status,
            message=message,
            size_bytes=record.size_bytes
        ))

    def move_all(
        self,
        records: List[FileRecord],
        progress: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> MoveBatchResult:
        """
        Move all selected files to the destination.

        Args:
            records: Snapshot of the selected FileRecords
            progress: Optional sink; the count advances once per item
            cancel_event: Optional event checked between items; items
                          already moved stay moved

        Returns:
            MoveBatchResult with moved source paths and the error/skip list

        Raises:
            FileNotFoundError: If the destination root doesn't exist
            NotADirectoryError: If the destination root is not a directory
        """
        self.dest_root = validate_destination_root(self.options.destination_root)
        sink = ensure_sink(progress)
        batch = MoveBatchResult()
        total = len(records)

        if total == 0:
            logger.info("No files selected, nothing to move")
            batch.nothing_selected = True
            return batch

        mode_str = "DRY RUN" if self.options.dry_run else "Moving"
        logger.info(f"{mode_str} {total} files to {self.dest_root}...")

        status_text = ""
        for i, record in enumerate(records):
            if cancel_event is not None and cancel_event.is_set():
                batch.cancelled = True
                logger.info(f"Move cancelled with {total - i} files remaining")
                sink.report(i, total, f"Cancelled: {i}/{total}")
                break

            batch.add(self.move_file(record))

            count = i + 1
            if count % MOVE_STATUS_INTERVAL == 0 or count == total:
                status_text = f"Moved: {count}/{total}"
            sink.report(count, total, status_text)

            if count % MOVE_LOG_INTERVAL == 0:
                logger.info(f"Processed {count}/{total} files...")

        logger.info(
            f"Completed: {len(batch.results)} processed, "
            f"{len(batch.moved_paths)} moved, {batch.error_count} errors"
        )
        return batch

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about move operations.

        Returns:
            Dictionary mapping status names to counts
        """
        return {status.value: count for status, count in self._stats.items()}

    def get_summary(self) -> str:
        """
        Get a human-readable summary of move operations.

        Returns:
            Formatted summary string
        """
        stats = self.get_stats()
        total = sum(stats.values())

        lines = [f"Move Summary ({total} total):"]

        success_count = stats.get("success", 0) + stats.get("success_renamed", 0)
        dry_run_count = stats.get("dry_run", 0) + stats.get("dry_run_renamed", 0)
        skipped_count = stats.get("skipped_exists", 0) + stats.get("skipped_missing", 0)
        error_count = stats.get("error", 0)

        if self.options.dry_run:
            lines.append(f"  Would move: {dry_run_count}")
            if stats.get("dry_run_renamed", 0):
                lines.append(f"    (with rename: {stats.get('dry_run_renamed', 0)})")
        else:
            lines.append(f"  Moved: {success_count}")
            if stats.get("success_renamed", 0):
                lines.append(f"    (with rename: {stats.get('success_renamed', 0)})")

        if skipped_count:
            lines.append(f"  Skipped: {skipped_count}")
            if stats.get("skipped_exists", 0):
                lines.append(f"    (already exists: {stats.get('skipped_exists', 0)})")
            if stats.get("skipped_missing", 0):
                lines.append(f"    (source missing: {stats.get('skipped_missing', 0)})")

        if error_count:
            lines.append(f"  Errors: {error_count}")

        return "\n".join(lines)

    def reset_stats(self) -> None:
        """Reset statistics and claimed destinations for a new batch."""
        self._stats = {status: 0 for status in MoveStatus}
        self._claimed_paths.clear()
