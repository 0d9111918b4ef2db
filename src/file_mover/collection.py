"""
Working set of scanned files, owned by the foreground.

This module is responsible for:
- Holding the records produced by the latest scan
- Selection and move-with-parent-folder changes
- Notifying registered observers about every change (so shells can keep
  a "can move" state in sync)
- Retiring records once the mover reports them as moved
- Taking snapshots of the selection for background work
"""

import logging
from typing import Callable, Iterable, List, Optional

from .types import FileRecord

logger = logging.getLogger(__name__)

# Observer signature: callback(collection, event_name)
Observer = Callable[["FileCollection", str], None]

# Event names passed to observers
EVENT_LOADED = "loaded"
EVENT_SELECTION = "selection"
EVENT_OPTIONS = "options"
EVENT_RETIRED = "retired"
EVENT_RESET = "reset"


class FileCollection:
    """
    Ordered collection of FileRecords with plain observer registration.

    Only the foreground thread should mutate it. Background work gets
    copies through selected().
    """

    def __init__(self, records: Optional[Iterable[FileRecord]] = None):
        self._records: List[FileRecord] = list(records or [])
        self._observers: List[Observer] = []

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(list(self._records))

    @property
    def records(self) -> List[FileRecord]:
        """Copy of all records in display order."""
        return list(self._records)

    def subscribe(self, observer: Observer) -> None:
        """Register a callback for changes."""
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        """Remove a previously registered callback."""
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, event: str) -> None:
        for observer in list(self._observers):
            observer(self, event)

    def load(self, records: Iterable[FileRecord]) -> None:
        """Replace the working set with a new scan result."""
        self._records = list(records)
        logger.debug(f"Loaded {len(self._records)} records")
        self._notify(EVENT_LOADED)

    def set_selected(self, record: FileRecord, selected: bool) -> None:
        if record.selected == selected:
            return
        record.selected = selected
        self._notify(EVENT_SELECTION)

    def set_move_with_parent_folder(self, record: FileRecord, enabled: bool) -> None:
        if record.move_with_parent_folder == enabled:
            return
        record.move_with_parent_folder = enabled
        self._notify(EVENT_OPTIONS)

    def select_all(self) -> None:
        for record in self._records:
            record.selected = True
        self._notify(EVENT_SELECTION)

    def select_none(self) -> None:
        for record in self._records:
            record.selected = False
        self._notify(EVENT_SELECTION)

    @property
    def has_selection(self) -> bool:
        return any(record.selected for record in self._records)

    def selected(self) -> List[FileRecord]:
        """Snapshot of the selected records, in display order."""
        return [record for record in self._records if record.selected]

    def selected_size(self) -> int:
        """Total scan-time size of the selection in bytes."""
        return sum(record.size_bytes for record in self._records if record.selected)

    def retire(self, moved_paths: Iterable[str]) -> int:
        """
        Remove records whose source paths were moved.

        Returns:
            Number of records removed
        """
        moved = set(moved_paths)
        if not moved:
            return 0

        before = len(self._records)
        self._records = [r for r in self._records if r.full_path not in moved]
        removed = before - len(self._records)

        logger.debug(f"Retired {removed} moved records")
        self._notify(EVENT_RETIRED)
        return removed

    def reset(self) -> None:
        """Drop every record."""
        self._records = []
        self._notify(EVENT_RESET)
