"""
Background execution of scans and moves.

OperationRunner is a two-state machine: IDLE, or BUSY with a scan or a
move. Only IDLE accepts new requests; requests made while BUSY are
rejected, not queued. Work runs on a single daemon thread and completion
is delivered through a callback on that thread, so the foreground never
blocks. The receiver marshals results to its own thread. The runner goes
back to IDLE only after on_complete has returned.
"""

import logging
import threading
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, List, Optional

from .mover import FileMover, validate_destination_root
from .progress import ProgressSink
from .scanner import scan_files, validate_source_root
from .types import FileRecord, RelocationOptions, ScanOptions

logger = logging.getLogger(__name__)

# on_complete(result, error): exactly one of them is not None
CompletionCallback = Callable[[Optional[Any], Optional[BaseException]], None]


class OperationKind(Enum):
    """Kind of background operation."""
    SCAN = "scan"
    MOVE = "move"


class RequestStatus(Enum):
    """Outcome of a start_scan / start_move request."""
    STARTED = "started"
    REJECTED_BUSY = "rejected_busy"
    INVALID_SOURCE = "invalid_source"
    INVALID_DESTINATION = "invalid_destination"
    NOTHING_SELECTED = "nothing_selected"


class OperationRunner:
    """Runs one scan or move at a time off the foreground thread."""

    def __init__(self):
        self._lock = threading.Lock()
        self._busy_kind: Optional[OperationKind] = None
        self._thread: Optional[threading.Thread] = None
        self._cancel_event = threading.Event()
        self.last_error: Optional[str] = None

    @property
    def is_busy(self) -> bool:
        return self._busy_kind is not None

    @property
    def busy_kind(self) -> Optional[OperationKind]:
        """The running operation, or None when idle."""
        return self._busy_kind

    def _try_acquire(self, kind: OperationKind) -> bool:
        with self._lock:
            if self._busy_kind is not None:
                logger.warning(
                    f"Rejected {kind.value} request: {self._busy_kind.value} in progress"
                )
                return False
            self._busy_kind = kind
            self._cancel_event.clear()
            return True

    def _release(self) -> None:
        with self._lock:
            self._busy_kind = None

    def _launch(
        self,
        kind: OperationKind,
        work: Callable[[], Any],
        on_complete: Optional[CompletionCallback]
    ) -> None:
        def _run() -> None:
            result = None
            error: Optional[BaseException] = None
            try:
                try:
                    result = work()
                except Exception as e:
                    logger.exception(f"{kind.value.capitalize()} failed")
                    error = e
                # Still BUSY while the receiver takes the result
                if on_complete is not None:
                    on_complete(result, error)
            finally:
                self._release()

        self._thread = threading.Thread(
            target=_run,
            name=f"file-mover-{kind.value}",
            daemon=True
        )
        self._thread.start()

    def start_scan(
        self,
        options: ScanOptions,
        progress: Optional[ProgressSink] = None,
        on_complete: Optional[CompletionCallback] = None
    ) -> RequestStatus:
        """
        Validate the source root and start a scan in the background.

        on_complete receives a ScanResult or the exception raised.
        """
        self.last_error = None
        if self.is_busy:
            logger.warning(f"Rejected scan request: {self._busy_kind.value} in progress")
            return RequestStatus.REJECTED_BUSY
        try:
            validate_source_root(options.source_root)
        except OSError as e:
            self.last_error = str(e)
            logger.error(f"Cannot scan: {e}")
            return RequestStatus.INVALID_SOURCE

        if not self._try_acquire(OperationKind.SCAN):
            return RequestStatus.REJECTED_BUSY

        cancel_event = self._cancel_event
        self._launch(
            OperationKind.SCAN,
            lambda: scan_files(options, progress, cancel_event),
            on_complete
        )
        return RequestStatus.STARTED

    def start_move(
        self,
        records: List[FileRecord],
        options: RelocationOptions,
        progress: Optional[ProgressSink] = None,
        on_complete: Optional[CompletionCallback] = None
    ) -> RequestStatus:
        """
        Validate the destination and selection, then start moving.

        The records are copied before the worker starts, so later
        selection changes do not affect the batch. on_complete receives
        a MoveBatchResult or the exception raised.
        """
        self.last_error = None
        if self.is_busy:
            logger.warning(f"Rejected move request: {self._busy_kind.value} in progress")
            return RequestStatus.REJECTED_BUSY
        try:
            validate_destination_root(options.destination_root)
        except OSError as e:
            self.last_error = str(e)
            logger.error(f"Cannot move: {e}")
            return RequestStatus.INVALID_DESTINATION

        if not records:
            logger.info("Move requested with no files selected")
            return RequestStatus.NOTHING_SELECTED

        if not self._try_acquire(OperationKind.MOVE):
            return RequestStatus.REJECTED_BUSY

        snapshot = [replace(record) for record in records]
        cancel_event = self._cancel_event
        mover = FileMover(options)
        self._launch(
            OperationKind.MOVE,
            lambda: mover.move_all(snapshot, progress, cancel_event),
            on_complete
        )
        return RequestStatus.STARTED

    def cancel(self) -> bool:
        """
        Ask the running operation to stop after the current item.

        Returns:
            True if an operation was running
        """
        if not self.is_busy:
            return False
        logger.info(f"Cancelling {self._busy_kind.value}...")
        self._cancel_event.set()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the current worker finishes. For shells without an
        event loop (CLI) and tests.

        Returns:
            True if no worker is running anymore
        """
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()
