"""Shared fixtures for nmcleaner tests."""

import shutil
from pathlib import Path
from unittest.mock import patch

import pytest


@pytest.fixture
def fake_trash(tmp_path_factory):
    """Replace send2trash with a move into a private trash folder.

    Yields the list of paths that were trashed, in order.
    """
    trash_dir = tmp_path_factory.mktemp("trash")
    trashed: list[str] = []

    def _send(path):
        target = trash_dir / f"{len(trashed)}-{Path(path).name}"
        shutil.move(path, target)
        trashed.append(path)

    with patch("nmcleaner.cleaner.send2trash", side_effect=_send):
        yield trashed


def make_node_modules(project: Path, files: dict[str, int] | None = None) -> Path:
    """Create project/node_modules with files of the given byte sizes."""
    node_modules = project / "node_modules"
    node_modules.mkdir(parents=True, exist_ok=True)
    for name, size in (files or {}).items():
        target = node_modules / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"x" * size)
    return node_modules
