"""Tests for skip rules and classification."""

import os
import sys

from unittest.mock import patch

import pytest

from nmcleaner.policy import (
    SKIP_DIRECTORY_NAMES,
    SkipPolicy,
    VisitedSet,
    classify,
    directory_identity,
    is_node_modules,
)


def _stat(ino, dev=1):
    # st_mode, st_ino, st_dev, st_nlink, st_uid, st_gid, st_size, st_atime, st_mtime, st_ctime
    return os.stat_result((0o40755, ino, dev, 1, 0, 0, 0, 0, 0, 0))


class TestIsNodeModules:
    def test_exact_name(self):
        assert is_node_modules("node_modules")

    def test_other_names(self):
        assert not is_node_modules("node_module")
        assert not is_node_modules("node_modules_old")
        assert not is_node_modules(".node_modules")

    @pytest.mark.skipif(os.name == "nt", reason="Windows compares case-insensitively")
    def test_case_sensitive(self):
        assert not is_node_modules("Node_Modules")


class TestClassify:
    def test_match(self, tmp_path):
        match = classify(str(tmp_path), "node_modules")
        assert match is not None
        assert match.project_path == str(tmp_path)
        assert match.node_modules_path == str(tmp_path / "node_modules")
        assert match.size is None

    def test_no_match(self, tmp_path):
        assert classify(str(tmp_path), "src") is None

    def test_case_insensitive_platform_keeps_real_name(self, tmp_path):
        with patch("nmcleaner.policy.os.path.normcase", str.lower):
            match = classify(str(tmp_path), "Node_Modules")

        assert match is not None
        assert match.node_modules_path == str(tmp_path / "Node_Modules")


class TestSkipPolicy:
    def test_default_skip_names(self, tmp_path):
        policy = SkipPolicy()
        for name in (".git", ".pnpm-store", "$RECYCLE.BIN"):
            assert name in SKIP_DIRECTORY_NAMES
            assert policy.should_skip(str(tmp_path / name), name, depth=3)

    def test_enters_regular_directories(self, tmp_path):
        policy = SkipPolicy()
        assert not policy.should_skip(str(tmp_path / "app"), "app", depth=1)
        assert not policy.should_skip(str(tmp_path / "packages"), "packages", depth=2)

    def test_does_not_skip_build_output_names(self, tmp_path):
        # Projects nest node_modules under these, so they must be walked
        policy = SkipPolicy()
        for name in ("dist", "build", "src", "vendor"):
            assert not policy.should_skip(str(tmp_path / name), name, depth=2)

    def test_system_paths(self, tmp_path):
        proc = tmp_path / "proc"
        policy = SkipPolicy(system_paths=[str(proc)])
        assert policy.should_skip(str(proc), "proc", depth=1)
        assert not policy.should_skip(str(tmp_path / "home" / "proc"), "proc", depth=2)

    def test_system_path_normalized(self, tmp_path):
        policy = SkipPolicy(system_paths=[str(tmp_path / "sys") + os.sep])
        assert policy.should_skip(str(tmp_path / "sys"), "sys", depth=1)

    @pytest.mark.skipif(sys.platform != "linux", reason="Linux virtual filesystems")
    def test_linux_virtual_filesystems(self):
        policy = SkipPolicy()
        assert policy.should_skip("/proc", "proc", depth=1)
        assert policy.should_skip("/sys", "sys", depth=1)
        assert policy.skips_root("/proc")
        assert not policy.skips_root("/home")

    def test_root_level_names_only_below_root(self, tmp_path):
        policy = SkipPolicy(root_level_names=["Windows"])
        assert policy.should_skip(str(tmp_path / "Windows"), "Windows", depth=1)
        assert not policy.should_skip(str(tmp_path / "a" / "Windows"), "Windows", depth=2)

    def test_extra_skip_names(self, tmp_path):
        policy = SkipPolicy(extra_skip_names=["archive"])
        assert policy.should_skip(str(tmp_path / "archive"), "archive", depth=4)
        assert policy.should_skip(str(tmp_path / ".git"), ".git", depth=4)

    def test_override_skip_names(self, tmp_path):
        policy = SkipPolicy(skip_names=[])
        assert not policy.should_skip(str(tmp_path / ".git"), ".git", depth=1)


class TestDirectoryIdentity:
    def test_identity(self):
        assert directory_identity(_stat(42, dev=7)) == (7, 42)

    def test_unknown_inode(self):
        assert directory_identity(_stat(0)) is None

    def test_real_directory(self, tmp_path):
        identity = directory_identity(os.stat(tmp_path))
        if os.name != "nt":
            assert identity == (os.stat(tmp_path).st_dev, os.stat(tmp_path).st_ino)


class TestVisitedSet:
    def test_first_visit(self):
        visited = VisitedSet()
        assert visited.first_visit((1, 2))
        assert not visited.first_visit((1, 2))
        assert visited.first_visit((1, 3))
        assert len(visited) == 2

    def test_unknown_identity_always_first(self):
        visited = VisitedSet()
        assert visited.first_visit(None)
        assert visited.first_visit(None)
        assert len(visited) == 0


class TestReaches:
    def test_nested_root(self, tmp_path):
        (tmp_path / "mnt" / "usb").mkdir(parents=True)
        policy = SkipPolicy(system_paths=[])
        assert policy.reaches(str(tmp_path), str(tmp_path / "mnt" / "usb"))

    def test_same_or_sibling_root(self, tmp_path):
        policy = SkipPolicy(system_paths=[])
        assert not policy.reaches(str(tmp_path), str(tmp_path))
        assert not policy.reaches(str(tmp_path / "a"), str(tmp_path / "b"))
        assert not policy.reaches(str(tmp_path / "a" / "b"), str(tmp_path / "a"))

    def test_behind_skipped_directory(self, tmp_path):
        policy = SkipPolicy(system_paths=[str(tmp_path / "run")])
        assert not policy.reaches(str(tmp_path), str(tmp_path / "run" / "media" / "disk"))
        assert not policy.reaches(str(tmp_path), str(tmp_path / ".git" / "hooks"))

    def test_inside_node_modules(self, tmp_path):
        policy = SkipPolicy(system_paths=[])
        assert not policy.reaches(str(tmp_path), str(tmp_path / "app" / "node_modules" / "pkg"))

    def test_beyond_max_depth(self, tmp_path):
        policy = SkipPolicy(system_paths=[])
        nested = str(tmp_path / "a" / "b" / "c")
        assert policy.reaches(str(tmp_path), nested, max_depth=3)
        assert not policy.reaches(str(tmp_path), nested, max_depth=2)

    @pytest.mark.skipif(os.name == "nt", reason="Symlinks need privileges on Windows")
    def test_through_symlink(self, tmp_path):
        (tmp_path / "real" / "disk").mkdir(parents=True)
        (tmp_path / "alias").symlink_to(tmp_path / "real", target_is_directory=True)
        policy = SkipPolicy(system_paths=[])

        nested = str(tmp_path / "alias" / "disk")
        assert not policy.reaches(str(tmp_path), nested)
        assert policy.reaches(str(tmp_path), nested, follow_symlinks=True)
