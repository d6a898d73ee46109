"""Tests for path helpers and size calculation."""

import os
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from nmcleaner.scanner import calculate_directory_size, expand_path, normalize_root

from conftest import make_node_modules


class TestExpandPath:
    def test_expands_tilde(self):
        result = expand_path("~/test")
        assert str(result).startswith(str(Path.home()))

    def test_handles_absolute_path(self):
        result = expand_path("/absolute/path")
        assert str(result) == os.path.normpath("/absolute/path")


class TestNormalizeRoot:
    def test_makes_absolute(self):
        assert os.path.isabs(normalize_root("some/relative"))

    def test_strips_trailing_separator(self, tmp_path):
        assert normalize_root(str(tmp_path) + os.sep) == str(tmp_path)


class TestCalculateDirectorySize:
    def test_empty_directory(self, tmp_path):
        assert calculate_directory_size(tmp_path) == 0

    def test_files(self, tmp_path):
        node_modules = make_node_modules(tmp_path / "app", {"a": 300, "b": 700})
        assert calculate_directory_size(node_modules) == 1000

    def test_counts_nested_node_modules(self, tmp_path):
        node_modules = make_node_modules(
            tmp_path / "app",
            {
                "index.js": 100,
                "pkg/node_modules/dep/index.js": 50,
                "pkg/package.json": 25,
            },
        )
        assert calculate_directory_size(node_modules) == 175

    def test_accepts_string_path(self, tmp_path):
        (tmp_path / "f").write_bytes(b"12345")
        assert calculate_directory_size(str(tmp_path)) == 5

    def test_missing_directory(self, tmp_path):
        assert calculate_directory_size(tmp_path / "missing") is None

    def test_cancelled(self, tmp_path):
        (tmp_path / "f").write_bytes(b"x" * 10)
        cancel = threading.Event()
        cancel.set()
        assert calculate_directory_size(tmp_path, cancel=cancel) is None

    def test_unreadable_subdirectory_counts_zero(self, tmp_path):
        (tmp_path / "ok").mkdir()
        (tmp_path / "ok" / "f").write_bytes(b"x" * 10)
        (tmp_path / "locked").mkdir()
        (tmp_path / "locked" / "f").write_bytes(b"x" * 99)

        real_scandir = os.scandir
        denied = str(tmp_path / "locked")

        def fake_scandir(path="."):
            if os.fspath(path) == denied:
                raise PermissionError("Access denied")
            return real_scandir(path)

        with patch("nmcleaner.scanner.os.scandir", side_effect=fake_scandir):
            assert calculate_directory_size(tmp_path) == 10

    @pytest.mark.skipif(os.name == "nt", reason="Symlinks need privileges on Windows")
    def test_symlinks_not_followed_by_default(self, tmp_path):
        target = tmp_path / "target"
        target.mkdir()
        (target / "big").write_bytes(b"x" * 1000)
        measured = tmp_path / "measured"
        measured.mkdir()
        (measured / "small").write_bytes(b"x" * 10)
        (measured / "link").symlink_to(target, target_is_directory=True)
        (measured / "file_link").symlink_to(target / "big")

        assert calculate_directory_size(measured) == 10

    @pytest.mark.skipif(os.name == "nt", reason="Symlinks need privileges on Windows")
    def test_symlink_cycle_counted_once(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "f").write_bytes(b"x" * 10)
        (tmp_path / "a" / "loop").symlink_to(tmp_path, target_is_directory=True)

        assert calculate_directory_size(tmp_path, follow_symlinks=True) == 10
