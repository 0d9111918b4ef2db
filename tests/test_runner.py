"""
Unit tests for the background OperationRunner.
"""

import tempfile
import threading
from pathlib import Path

import pytest

from file_mover import runner as runner_mod
from file_mover.runner import OperationKind, OperationRunner, RequestStatus
from file_mover.types import (
    FileRecord,
    MoveBatchResult,
    RelocationOptions,
    ScanOptions,
    ScanResult,
)

TIMEOUT = 10


class Completion:
    """Collects the on_complete callback arguments."""

    def __init__(self):
        self.result = None
        self.error = None
        self.done = threading.Event()

    def __call__(self, result, error):
        self.result = result
        self.error = error
        self.done.set()


class BlockingSink:
    """Progress sink that holds the worker until released."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def report(self, count, total, status_text):
        self.started.set()
        self.release.wait(TIMEOUT)


def make_record(path: Path) -> FileRecord:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"data")
    return FileRecord(name=path.name, full_path=str(path), size_bytes=4, selected=True)


class TestStartScan:
    """Tests for OperationRunner.start_scan."""

    def test_scan_completes(self):
        with tempfile.TemporaryDirectory() as tmp:
            make_record(Path(tmp) / "a.mp4")
            runner = OperationRunner()
            done = Completion()

            status = runner.start_scan(ScanOptions(source_root=tmp), on_complete=done)

            assert status == RequestStatus.STARTED
            assert done.done.wait(TIMEOUT)
            assert done.error is None
            assert isinstance(done.result, ScanResult)
            assert [r.name for r in done.result.records] == ["a.mp4"]
            assert runner.wait(TIMEOUT)
            assert not runner.is_busy

    def test_invalid_source(self):
        runner = OperationRunner()
        done = Completion()

        status = runner.start_scan(ScanOptions(source_root="/nonexistent/root"), on_complete=done)

        assert status == RequestStatus.INVALID_SOURCE
        assert "not found" in runner.last_error
        assert not runner.is_busy
        assert not done.done.is_set()

    def test_worker_exception_delivered(self, monkeypatch):
        with tempfile.TemporaryDirectory() as tmp:
            def explode(options, progress, cancel_event):
                raise RuntimeError("disk vanished")

            monkeypatch.setattr(runner_mod, "scan_files", explode)
            runner = OperationRunner()
            done = Completion()

            runner.start_scan(ScanOptions(source_root=tmp), on_complete=done)

            assert done.done.wait(TIMEOUT)
            assert done.result is None
            assert isinstance(done.error, RuntimeError)
            assert runner.wait(TIMEOUT)
            assert not runner.is_busy


class TestStartMove:
    """Tests for OperationRunner.start_move."""

    def test_move_completes(self):
        with tempfile.TemporaryDirectory() as tmp:
            dest = Path(tmp) / "dest"
            dest.mkdir()
            record = make_record(Path(tmp) / "src" / "a.mp4")
            runner = OperationRunner()
            done = Completion()

            status = runner.start_move(
                [record], RelocationOptions(destination_root=str(dest)), on_complete=done
            )

            assert status == RequestStatus.STARTED
            assert done.done.wait(TIMEOUT)
            assert isinstance(done.result, MoveBatchResult)
            assert done.result.moved_paths == {record.full_path}
            assert (dest / "a.mp4").exists()

    def test_invalid_destination_touches_nothing(self):
        with tempfile.TemporaryDirectory() as tmp:
            record = make_record(Path(tmp) / "src" / "a.mp4")
            runner = OperationRunner()

            status = runner.start_move(
                [record], RelocationOptions(destination_root=str(Path(tmp) / "missing"))
            )

            assert status == RequestStatus.INVALID_DESTINATION
            assert runner.last_error
            assert not runner.is_busy
            assert Path(record.full_path).exists()
            assert not (Path(tmp) / "missing").exists()

    def test_nothing_selected(self):
        with tempfile.TemporaryDirectory() as tmp:
            runner = OperationRunner()

            status = runner.start_move([], RelocationOptions(destination_root=tmp))

            assert status == RequestStatus.NOTHING_SELECTED
            assert not runner.is_busy


class TestBusyState:
    """Requests made while an operation runs are rejected, not queued."""

    def test_rejects_while_busy(self):
        with tempfile.TemporaryDirectory() as tmp:
            dest = Path(tmp) / "dest"
            dest.mkdir()
            record = make_record(Path(tmp) / "src" / "a.mp4")
            runner = OperationRunner()
            sink = BlockingSink()
            done = Completion()

            try:
                status = runner.start_move(
                    [record], RelocationOptions(destination_root=str(dest)), sink, done
                )
                assert status == RequestStatus.STARTED
                assert sink.started.wait(TIMEOUT)

                assert runner.is_busy
                assert runner.busy_kind == OperationKind.MOVE
                assert runner.start_scan(ScanOptions(source_root=tmp)) == RequestStatus.REJECTED_BUSY
                assert runner.start_move(
                    [record], RelocationOptions(destination_root=str(dest))
                ) == RequestStatus.REJECTED_BUSY
            finally:
                sink.release.set()

            assert done.done.wait(TIMEOUT)
            assert runner.wait(TIMEOUT)
            assert not runner.is_busy
            assert runner.busy_kind is None

            second = Completion()
            assert runner.start_scan(ScanOptions(source_root=tmp), on_complete=second) == RequestStatus.STARTED
            assert second.done.wait(TIMEOUT)

    def test_rejected_even_with_invalid_input(self):
        """A busy runner reports busy before validating anything."""
        with tempfile.TemporaryDirectory() as tmp:
            dest = Path(tmp) / "dest"
            dest.mkdir()
            record = make_record(Path(tmp) / "src" / "a.mp4")
            runner = OperationRunner()
            sink = BlockingSink()

            try:
                runner.start_move([record], RelocationOptions(destination_root=str(dest)), sink)
                assert sink.started.wait(TIMEOUT)
                status = runner.start_scan(ScanOptions(source_root="/nonexistent/root"))
                assert status == RequestStatus.REJECTED_BUSY
            finally:
                sink.release.set()
            assert runner.wait(TIMEOUT)

    def test_snapshot_isolated_from_later_changes(self):
        with tempfile.TemporaryDirectory() as tmp:
            dest = Path(tmp) / "dest"
            dest.mkdir()
            records = [make_record(Path(tmp) / "src" / "Show" / f"ep{i}.mp4") for i in range(2)]
            runner = OperationRunner()
            sink = BlockingSink()
            done = Completion()

            try:
                runner.start_move(records, RelocationOptions(destination_root=str(dest)), sink, done)
                assert sink.started.wait(TIMEOUT)
                records[1].move_with_parent_folder = True
            finally:
                sink.release.set()

            assert done.done.wait(TIMEOUT)
            assert (dest / "ep1.mp4").exists()
            assert not (dest / "Show").exists()


class TestCompletion:
    """The runner stays BUSY until the receiver has the result."""

    def test_busy_inside_callback(self):
        with tempfile.TemporaryDirectory() as tmp:
            dest = Path(tmp) / "dest"
            dest.mkdir()
            record = make_record(Path(tmp) / "src" / "a.mp4")
            runner = OperationRunner()
            seen = {}
            done = threading.Event()

            def on_complete(result, error):
                seen["busy"] = runner.is_busy
                seen["kind"] = runner.busy_kind
                seen["rejected"] = runner.start_scan(ScanOptions(source_root=tmp))
                done.set()

            runner.start_move([record], RelocationOptions(destination_root=str(dest)), on_complete=on_complete)

            assert done.wait(TIMEOUT)
            assert runner.wait(TIMEOUT)
            assert seen == {
                "busy": True,
                "kind": OperationKind.MOVE,
                "rejected": RequestStatus.REJECTED_BUSY,
            }
            assert not runner.is_busy

    @pytest.mark.filterwarnings("ignore::pytest.PytestUnhandledThreadExceptionWarning")
    def test_released_when_callback_raises(self):
        with tempfile.TemporaryDirectory() as tmp:
            runner = OperationRunner()

            def broken(result, error):
                raise RuntimeError("receiver failed")

            runner.start_scan(ScanOptions(source_root=tmp), on_complete=broken)

            assert runner.wait(TIMEOUT)
            assert not runner.is_busy


class TestCancel:
    """Tests for OperationRunner.cancel."""

    def test_cancel_when_idle(self):
        assert OperationRunner().cancel() is False

    def test_cancel_move(self):
        with tempfile.TemporaryDirectory() as tmp:
            dest = Path(tmp) / "dest"
            dest.mkdir()
            records = [make_record(Path(tmp) / "src" / f"f{i}.mp4") for i in range(3)]
            runner = OperationRunner()
            sink = BlockingSink()
            done = Completion()

            try:
                runner.start_move(records, RelocationOptions(destination_root=str(dest)), sink, done)
                assert sink.started.wait(TIMEOUT)
                assert runner.cancel() is True
            finally:
                sink.release.set()

            assert done.done.wait(TIMEOUT)
            batch = done.result
            assert batch.cancelled
            assert batch.moved_paths == {records[0].full_path}
            assert Path(records[1].full_path).exists()
            assert Path(records[2].full_path).exists()
