"""
Filesystem and formatting helpers shared by the scanner, mover and shells.

This module is responsible for:
- Normalizing paths for consistent comparison and display
- Detecting symlinks and Windows reparse points (junctions)
- Moving a single file without ever overwriting the destination,
  including the copy+delete fallback for cross-volume moves
- Rendering and parsing human-readable sizes
"""

import errno
import logging
import os
import re
import shutil
import stat
import sys
from pathlib import Path
from typing import Tuple, Union

logger = logging.getLogger(__name__)

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGT]?B?)\s*$", re.IGNORECASE)

# Copy buffer for the cross-volume fallback
_COPY_BUFSIZE = 1024 * 1024

# errno values link() gives on filesystems without hard links
_NO_HARDLINK_ERRNOS = frozenset({
    errno.EPERM, errno.EMLINK, errno.ENOSYS, errno.ENOTSUP, errno.EOPNOTSUPP
})


def normalize_path(path: Union[str, Path]) -> str:
    """
    Return an absolute, normalized string form of a path.

    Does not resolve symlinks; the path does not have to exist.
    """
    return os.path.normpath(os.path.abspath(os.fspath(path)))


def is_reparse_point(entry: os.DirEntry) -> bool:
    """
    Check whether a directory entry is a symlink or a reparse point.

    On Windows this also catches junctions and other reparse points
    that are not reported as symlinks.
    """
    if entry.is_symlink():
        return True
    if sys.platform == "win32":
        attrs = getattr(entry.stat(follow_symlinks=False), "st_file_attributes", 0)
        return bool(attrs & stat.FILE_ATTRIBUTE_REPARSE_POINT)
    return False


def format_size(size_bytes: int) -> str:
    """
    Format a byte count using the largest unit that keeps it below 1024.

    At most two decimals are shown and trailing zeros are dropped:
    1536 -> "1.5 KB", 1024 -> "1 KB", 0 -> "0 B".
    """
    size = float(size_bytes)
    unit = 0
    while size >= 1024 and unit < len(SIZE_UNITS) - 1:
        size /= 1024
        unit += 1

    number = f"{size:.2f}".rstrip("0").rstrip(".")
    return f"{number} {SIZE_UNITS[unit]}"


def parse_size(text: str) -> int:
    """
    Parse a human-readable size ("500", "10MB", "1.5 GB") into bytes.

    Units are binary (1 KB = 1024 bytes). A bare number is bytes.

    Raises:
        ValueError: If the text is not a recognizable size
    """
    match = _SIZE_PATTERN.match(text or "")
    if not match:
        raise ValueError(f"Invalid size: {text!r}")

    number = float(match.group(1))
    unit = match.group(2).upper()
    if unit and not unit.endswith("B"):
        unit += "B"
    exponent = SIZE_UNITS.index(unit) if unit else 0
    return int(number * (1024 ** exponent))


def _copy_exclusive(src: str, dst: str) -> None:
    """
    Copy file data and metadata into a destination that must not exist.

    Raises FileExistsError without touching dst if it already exists; any
    later failure removes the partially written dst before re-raising.
    """
    with open(src, "rb") as fsrc:
        with open(dst, "xb") as fdst:
            try:
                shutil.copyfileobj(fsrc, fdst, _COPY_BUFSIZE)
            except OSError:
                fdst.close()
                _remove_partial(dst)
                raise
    try:
        shutil.copystat(src, dst)
    except OSError:
        _remove_partial(dst)
        raise


def _rename_no_replace(src: str, dst: str) -> None:
    """
    Rename src to dst, raising FileExistsError if dst exists.

    os.rename refuses an existing target on Windows but silently replaces
    it on POSIX, so there the new name is created with os.link (which
    never replaces) and the old name removed afterwards. Filesystems
    without hard links fall back to os.rename.
    """
    if sys.platform == "win32":
        os.rename(src, dst)
        return

    try:
        os.link(src, dst)
    except OSError as e:
        if e.errno not in _NO_HARDLINK_ERRNOS:
            raise
        logger.debug(f"Hard links unavailable ({e.strerror}), renaming: {src}")
        os.rename(src, dst)
        return

    try:
        os.remove(src)
    except OSError:
        # Both names point at the same file; dropping the new one undoes the move
        _remove_partial(dst)
        raise


def safe_move(src: Union[str, Path], dst: Union[str, Path]) -> Tuple[bool, str]:
    """
    Move a single file, never overwriting an existing destination.

    Tries a same-volume rename that refuses an existing target first.
    When the rename cannot cross volumes (EXDEV), copies into an
    exclusively created destination, then removes the source. Either the
    file ends up complete at dst and gone from src, or src is left
    untouched and any partial copy is removed.

    Args:
        src: Source file path
        dst: Destination file path (parent must exist)

    Returns:
        Tuple of (success, message)
    """
    src_str = os.fspath(src)
    dst_str = os.fspath(dst)

    if os.path.lexists(dst_str):
        return False, f"Destination exists: {dst_str}"

    try:
        _rename_no_replace(src_str, dst_str)
        return True, "Moved successfully"
    except FileExistsError:
        # Created between the check above and the rename
        return False, f"Destination exists: {dst_str}"
    except OSError as e:
        if e.errno != errno.EXDEV:
            return False, _describe_os_error(e)

    logger.debug(f"Cross-volume move, copying: {src_str} -> {dst_str}")
    try:
        _copy_exclusive(src_str, dst_str)
    except FileExistsError:
        return False, f"Destination exists: {dst_str}"
    except OSError as e:
        return False, f"Copy failed: {_describe_os_error(e)}"

    try:
        os.remove(src_str)
    except OSError as e:
        # Source still there: undo the copy so the move fully fails
        _remove_partial(dst_str)
        return False, f"Could not remove source after copy: {_describe_os_error(e)}"

    return True, "Moved successfully (copied across volumes)"


def _remove_partial(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove partial copy {path}: {e}")


def _describe_os_error(error: OSError) -> str:
    if isinstance(error, PermissionError):
        return f"Permission denied: {error.strerror or error}"
    return error.strerror or str(error)
