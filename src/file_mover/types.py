"""
Type definitions and data classes for the file mover application.

This module defines:
- FileRecord: A discovered file plus the user's selection intent
- ScanOptions: Inputs for a scan (source root and filters)
- ScanResult: Records produced by a scan plus skipped paths
- RelocationOptions: Inputs for one move batch
- MoveStatus: Enum for move operation outcomes
- MoveResult: Data class representing the result of one file move
- MoveBatchResult: Aggregated outcome of a move batch
- ReportEntry: Data class for CSV report rows
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Set, Tuple

from .utils import format_size

# Fields fixed at discovery time
_READ_ONLY_FIELDS = frozenset({"name", "full_path", "size_bytes"})


@dataclass(slots=True, eq=False)
class FileRecord:
    """
    Represents a file discovered during scanning.

    name, full_path and size_bytes describe the file as it was at scan
    time and cannot be reassigned. selected and move_with_parent_folder
    are set by the user.

    Attributes:
        name: The file's basename (e.g., "holiday.mp4")
        full_path: The full absolute path at scan time
        size_bytes: Size in bytes at scan time (not re-validated)
        selected: Whether the file is part of the move selection
        move_with_parent_folder: Place the file under a destination
            subfolder named after its immediate parent directory
    """
    name: str
    full_path: str
    size_bytes: int
    selected: bool = False
    move_with_parent_folder: bool = False

    def __setattr__(self, key, value):
        if key in _READ_ONLY_FIELDS and hasattr(self, key):
            raise AttributeError(f"FileRecord.{key} is read-only")
        object.__setattr__(self, key, value)

    @property
    def size_human(self) -> str:
        """Size rendered in the largest unit that keeps the number below 1024."""
        return format_size(self.size_bytes)

    def __hash__(self):
        return hash(self.full_path)

    def __eq__(self, other):
        if not isinstance(other, FileRecord):
            return False
        return self.full_path == other.full_path


@dataclass(frozen=True)
class ScanOptions:
    """
    Inputs for a single scan.

    Attributes:
        source_root: Directory to scan recursively
        extension_filter: Normalized extensions (".mp4"); empty matches all
        name_contains: Case-insensitive substring filter; empty matches all
    """
    source_root: str
    extension_filter: FrozenSet[str] = frozenset()
    name_contains: str = ""


@dataclass
class ScanResult:
    """Result of a scan: records ordered largest-first."""
    records: List[FileRecord] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)
    cancelled: bool = False


@dataclass(frozen=True)
class RelocationOptions:
    """
    Settings for one move batch. Read-only for the duration of the batch.

    Attributes:
        destination_root: Directory that receives the files
        source_root: Root the records were scanned from (used by
            keep_relative_structure)
        keep_relative_structure: Recreate each file's folder path
            relative to source_root under destination_root
        auto_rename_on_conflict: Pick "name (N).ext" when the
            destination name is taken, instead of failing the item
        dry_run: Resolve destinations without moving anything
    """
    destination_root: str
    source_root: Optional[str] = None
    keep_relative_structure: bool = False
    auto_rename_on_conflict: bool = True
    dry_run: bool = False


class MoveStatus(Enum):
    """Status of a file move operation."""
    SUCCESS = "success"                  # Moved successfully
    SUCCESS_RENAMED = "success_renamed"  # Moved with " (N)" suffix due to collision
    SKIPPED_EXISTS = "skipped_exists"    # Destination exists (move-with-folder)
    SKIPPED_MISSING = "skipped_missing"  # Source no longer exists
    ERROR = "error"                      # Failed due to error
    DRY_RUN = "dry_run"                  # Would move (dry run mode)
    DRY_RUN_RENAMED = "dry_run_renamed"  # Would move with rename (dry run)


# Statuses where the file actually left its source location
MOVED_STATUSES = frozenset({MoveStatus.SUCCESS, MoveStatus.SUCCESS_RENAMED})

# Statuses that are reported to the user as skips rather than errors
SKIPPED_STATUSES = frozenset({MoveStatus.SKIPPED_EXISTS, MoveStatus.SKIPPED_MISSING})


@dataclass
class MoveResult:
    """Result of a move operation."""
    source_path: str
    dest_path: Optional[str]
    status: MoveStatus
    message: str
    size_bytes: int = 0

    @property
    def moved(self) -> bool:
        return self.status in MOVED_STATUSES

    def describe(self) -> str:
        """One line for the error/skip list."""
        return f"{self.source_path} -> {self.message}"


@dataclass
class MoveBatchResult:
    """
    Outcome of one move batch.

    moved_paths is what the caller uses to retire records; errors is the
    full, ordered list of error and skip messages. Truncating it for
    display is up to the caller.
    """
    results: List[MoveResult] = field(default_factory=list)
    moved_paths: Set[str] = field(default_factory=set)
    errors: List[str] = field(default_factory=list)
    cancelled: bool = False
    nothing_selected: bool = False

    def add(self, result: MoveResult) -> None:
        self.results.append(result)
        if result.moved:
            self.moved_paths.add(result.source_path)
        elif result.status in SKIPPED_STATUSES or result.status == MoveStatus.ERROR:
            self.errors.append(result.describe())

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if r.status == MoveStatus.ERROR)


class ReportStatus(Enum):
    """Status values for CSV report (human-readable)."""
    MOVED = "MOVED"                      # Successfully moved
    MOVED_RENAMED = "MOVED_RENAMED"      # Moved with rename due to collision
    DRYRUN = "DRYRUN"                    # Would move (dry run)
    DRYRUN_RENAMED = "DRYRUN_RENAMED"    # Would move with rename
    SKIPPED_EXISTS = "SKIPPED_EXISTS"    # Destination exists, not renamed
    SKIPPED_MISSING = "SKIPPED_MISSING"  # Source no longer exists
    ERROR = "ERROR"                      # Operation failed

    @classmethod
    def from_move_status(cls, status: MoveStatus):
        """Convert MoveStatus to ReportStatus."""
        mapping = {
            MoveStatus.SUCCESS: cls.MOVED,
            MoveStatus.SUCCESS_RENAMED: cls.MOVED_RENAMED,
            MoveStatus.DRY_RUN: cls.DRYRUN,
            MoveStatus.DRY_RUN_RENAMED: cls.DRYRUN_RENAMED,
            MoveStatus.SKIPPED_EXISTS: cls.SKIPPED_EXISTS,
            MoveStatus.SKIPPED_MISSING: cls.SKIPPED_MISSING,
            MoveStatus.ERROR: cls.ERROR,
        }
        return mapping.get(status, cls.ERROR)


@dataclass
class ReportEntry:
    """Entry for the CSV report."""
    timestamp: str
    status: str
    source_path: str
    dest_path: str
    size_bytes: str
    message: str
