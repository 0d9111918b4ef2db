"""
Progress reporting contract shared by the scanner and the mover.

A ProgressSink receives report(count, total, status_text) calls from the
background worker. The receiver owns any marshalling to its own thread;
QueueProgressSink does that for shells that poll a queue.
"""

import queue
from typing import Callable, List, Optional, Protocol, Tuple


class ProgressSink(Protocol):
    """Receiver of incremental (count, total, status_text) updates."""

    def report(self, count: int, total: int, status_text: str) -> None:
        ...


class NullProgressSink:
    """Discards all updates."""

    def report(self, count: int, total: int, status_text: str) -> None:
        pass


class CallbackProgressSink:
    """Adapts a plain callable(count, total, status_text) to a ProgressSink."""

    def __init__(self, callback: Callable[[int, int, str], None]):
        self._callback = callback

    def report(self, count: int, total: int, status_text: str) -> None:
        self._callback(count, total, status_text)


class RecordingProgressSink:
    """Keeps every update in order. Useful for tests and summaries."""

    def __init__(self):
        self.updates: List[Tuple[int, int, str]] = []

    def report(self, count: int, total: int, status_text: str) -> None:
        self.updates.append((count, total, status_text))

    @property
    def last(self) -> Optional[Tuple[int, int, str]]:
        return self.updates[-1] if self.updates else None


class QueueProgressSink:
    """
    Forwards updates into a queue for a single-threaded consumer.

    Items are ("progress", count, total, status_text) tuples so the same
    queue can carry other message kinds.
    """

    def __init__(self, target: "queue.Queue"):
        self._queue = target

    def report(self, count: int, total: int, status_text: str) -> None:
        self._queue.put(("progress", count, total, status_text))


def ensure_sink(sink: Optional[ProgressSink]) -> ProgressSink:
    """Return sink, or a NullProgressSink when none was given."""
    return sink if sink is not None else NullProgressSink()
