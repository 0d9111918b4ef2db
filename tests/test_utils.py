"""
Unit tests for safe_move and path helpers.
"""

import errno
import os
import sys
import tempfile
from pathlib import Path

import pytest

from file_mover import utils as utils_mod
from file_mover.utils import normalize_path, safe_move


def _exdev(src, dst):
    raise OSError(errno.EXDEV, "Invalid cross-device link")


class TestSafeMove:
    """Tests for safe_move function."""

    def test_same_volume_move(self):
        with tempfile.TemporaryDirectory() as tmp:
            src = Path(tmp) / "a.mp4"
            dst = Path(tmp) / "b.mp4"
            src.write_bytes(b"payload")

            ok, message = safe_move(src, dst)

            assert ok
            assert message == "Moved successfully"
            assert not src.exists()
            assert dst.read_bytes() == b"payload"

    def test_never_overwrites(self):
        """Existing destination is left alone and the source stays."""
        with tempfile.TemporaryDirectory() as tmp:
            src = Path(tmp) / "a.mp4"
            dst = Path(tmp) / "b.mp4"
            src.write_bytes(b"new")
            dst.write_bytes(b"old")

            ok, message = safe_move(src, dst)

            assert not ok
            assert "Destination exists" in message
            assert src.read_bytes() == b"new"
            assert dst.read_bytes() == b"old"

    def test_rename_error_reported(self, monkeypatch):
        with tempfile.TemporaryDirectory() as tmp:
            src = Path(tmp) / "a.mp4"
            dst = Path(tmp) / "b.mp4"
            src.write_bytes(b"x")

            def denied(s, d):
                raise PermissionError(errno.EACCES, "Access is denied")

            with monkeypatch.context() as m:
                m.setattr(utils_mod.os, "link", denied)
                m.setattr(utils_mod.os, "rename", denied)
                ok, message = safe_move(src, dst)

            assert not ok
            assert message.startswith("Permission denied")
            assert src.exists()
            assert not dst.exists()


class TestNoReplaceRename:
    """A destination that appears after the exists check is never replaced."""

    def test_destination_created_after_check(self, monkeypatch):
        with tempfile.TemporaryDirectory() as tmp:
            src = Path(tmp) / "a.mp4"
            dst = Path(tmp) / "b.mp4"
            src.write_bytes(b"new")
            dst.write_bytes(b"old")

            with monkeypatch.context() as m:
                # The check misses a file another process just created
                m.setattr(utils_mod.os.path, "lexists", lambda path: False)
                ok, message = safe_move(src, dst)

            assert not ok
            assert message == f"Destination exists: {dst}"
            assert src.read_bytes() == b"new"
            assert dst.read_bytes() == b"old"

    @pytest.mark.skipif(sys.platform == "win32", reason="link-based rename is POSIX only")
    def test_without_hard_links_falls_back_to_rename(self, monkeypatch):
        with tempfile.TemporaryDirectory() as tmp:
            src = Path(tmp) / "a.mp4"
            dst = Path(tmp) / "b.mp4"
            src.write_bytes(b"payload")

            def no_links(s, d):
                raise OSError(errno.EPERM, "Operation not permitted")

            with monkeypatch.context() as m:
                m.setattr(utils_mod.os, "link", no_links)
                ok, message = safe_move(src, dst)

            assert ok
            assert message == "Moved successfully"
            assert not src.exists()
            assert dst.read_bytes() == b"payload"

    @pytest.mark.skipif(sys.platform == "win32", reason="link-based rename is POSIX only")
    def test_source_unlink_failure_undoes_link(self, monkeypatch):
        with tempfile.TemporaryDirectory() as tmp:
            src = Path(tmp) / "a.mp4"
            dst = Path(tmp) / "b.mp4"
            src.write_bytes(b"data")
            real_remove = os.remove

            def locked_source(path):
                if os.fspath(path) == str(src):
                    raise PermissionError(errno.EACCES, "File in use")
                real_remove(path)

            with monkeypatch.context() as m:
                m.setattr(utils_mod.os, "remove", locked_source)
                ok, message = safe_move(src, dst)

            assert not ok
            assert message.startswith("Permission denied")
            assert src.read_bytes() == b"data"
            assert not dst.exists()


class TestCrossVolumeFallback:
    """Tests for the copy + delete path taken on EXDEV."""

    def test_copy_then_remove(self, monkeypatch):
        with tempfile.TemporaryDirectory() as tmp:
            src = Path(tmp) / "a.mp4"
            dst = Path(tmp) / "b.mp4"
            src.write_bytes(b"x" * 5000)

            with monkeypatch.context() as m:
                m.setattr(utils_mod.os, "link", _exdev)
                m.setattr(utils_mod.os, "rename", _exdev)
                ok, message = safe_move(src, dst)

            assert ok
            assert "across volumes" in message
            assert not src.exists()
            assert dst.read_bytes() == b"x" * 5000

    def test_copy_failure_removes_partial(self, monkeypatch):
        """A failed copy leaves the source and no partial destination."""
        with tempfile.TemporaryDirectory() as tmp:
            src = Path(tmp) / "a.mp4"
            dst = Path(tmp) / "b.mp4"
            src.write_bytes(b"data")

            def broken_copy(fsrc, fdst, length=0):
                fdst.write(b"da")
                raise OSError(errno.ENOSPC, "No space left on device")

            with monkeypatch.context() as m:
                m.setattr(utils_mod.os, "link", _exdev)
                m.setattr(utils_mod.os, "rename", _exdev)
                m.setattr(utils_mod.shutil, "copyfileobj", broken_copy)
                ok, message = safe_move(src, dst)

            assert not ok
            assert message.startswith("Copy failed")
            assert src.read_bytes() == b"data"
            assert not dst.exists()

    def test_source_removal_failure_rolls_back(self, monkeypatch):
        """If the source can't be deleted, the copy is removed again."""
        with tempfile.TemporaryDirectory() as tmp:
            src = Path(tmp) / "a.mp4"
            dst = Path(tmp) / "b.mp4"
            src.write_bytes(b"data")
            real_remove = os.remove

            def locked_source(path):
                if os.fspath(path) == str(src):
                    raise PermissionError(errno.EACCES, "File in use")
                real_remove(path)

            with monkeypatch.context() as m:
                m.setattr(utils_mod.os, "link", _exdev)
                m.setattr(utils_mod.os, "rename", _exdev)
                m.setattr(utils_mod.os, "remove", locked_source)
                ok, message = safe_move(src, dst)

            assert not ok
            assert message.startswith("Could not remove source after copy")
            assert src.read_bytes() == b"data"
            assert not dst.exists()


class TestNormalizePath:
    """Tests for normalize_path function."""

    def test_absolute_and_normalized(self):
        with tempfile.TemporaryDirectory() as tmp:
            messy = os.path.join(tmp, "a", "..", "b", ".")
            assert normalize_path(messy) == os.path.join(os.path.abspath(tmp), "b")

    def test_accepts_path_objects(self):
        with tempfile.TemporaryDirectory() as tmp:
            assert normalize_path(Path(tmp)) == os.path.normpath(os.path.abspath(tmp))
