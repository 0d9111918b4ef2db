"""
Extension and name filters for scanning.

This module is responsible for:
- Turning extension checkbox toggles plus a free-text list into a
  normalized set of extensions (lower-case, leading dot)
- Case-insensitive extension and name-substring matching

An empty extension set means "no extension filtering", not "match nothing".
"""

import logging
import re
from typing import AbstractSet, Dict, FrozenSet, Iterable, Mapping, Optional, Set

logger = logging.getLogger(__name__)

# Fixed checkbox vocabulary, in display order
VIDEO_EXTENSIONS = ("mp4", "mkv", "avi", "mov", "wmv", "flv", "webm")

# Initial checkbox state
DEFAULT_TOGGLES: Dict[str, bool] = {
    "mp4": True,
    "mkv": True,
    "avi": True,
    "mov": False,
    "wmv": False,
    "flv": False,
    "webm": False,
}

# Separators accepted in the custom extensions field
_CUSTOM_SEPARATORS = re.compile(r"[,; \t\r\n]+")


def normalize_extension(ext: str) -> Optional[str]:
    """
    Normalize one extension token: trim, lower-case, add a leading dot.

    Returns None for empty or whitespace-only tokens.
    """
    ext = ext.strip()
    if not ext:
        return None
    if not ext.startswith("."):
        ext = "." + ext
    return ext.lower()


def parse_custom_extensions(text: str) -> Set[str]:
    """
    Split a free-text extension list on commas, semicolons and whitespace.

    "MP4, .mkv;avi" -> {".mp4", ".mkv", ".avi"}
    """
    extensions: Set[str] = set()
    for token in _CUSTOM_SEPARATORS.split(text or ""):
        normalized = normalize_extension(token)
        if normalized:
            extensions.add(normalized)
    return extensions


def build_extension_filter(
    toggles: Optional[Mapping[str, bool]] = None,
    custom_text: str = "",
    extra: Iterable[str] = ()
) -> FrozenSet[str]:
    """
    Build the normalized extension filter.

    Args:
        toggles: Mapping of extension name to checkbox state
        custom_text: Free-text custom extensions field
        extra: Additional extension tokens (e.g. repeated CLI options)

    Returns:
        Frozen set of extensions like ".mp4". Empty means match everything.
    """
    extensions: Set[str] = set()

    for name, enabled in (toggles or {}).items():
        if enabled:
            normalized = normalize_extension(name)
            if normalized:
                extensions.add(normalized)

    for token in extra:
        normalized = normalize_extension(token)
        if normalized:
            extensions.add(normalized)

    extensions |= parse_custom_extensions(custom_text)

    logger.debug(f"Extension filter: {sorted(extensions) or '(all files)'}")
    return frozenset(extensions)


def matches_extension(extension: str, extension_filter: AbstractSet[str]) -> bool:
    """Check an extension (".MP4") against a normalized filter set."""
    if not extension_filter:
        return True
    return extension.lower() in extension_filter


def matches_name(file_name: str, name_contains: str) -> bool:
    """Case-insensitive substring check; an empty filter matches everything."""
    if not name_contains:
        return True
    return name_contains.lower() in file_name.lower()
