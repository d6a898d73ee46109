"""Drive enumeration and file manager integration for nmcleaner."""

import getpass
import logging
import os
import subprocess
import sys
from pathlib import Path

from nmcleaner.exceptions import FolderOpenError
from nmcleaner.models import DriveInfo

log = logging.getLogger(__name__)

# Directories whose children are mounted volumes, with the label prefix
if sys.platform == "darwin":
    MOUNT_PARENTS = [("/Volumes", "Volume")]
else:
    MOUNT_PARENTS = [("/media", "Mount"), ("/mnt", "Mount"), ("/run/media", "Mount")]

LINUX_FILE_MANAGERS = ["xdg-open", "nautilus", "dolphin", "thunar", "pcmanfm"]


def _list_windows_drives() -> list[DriveInfo]:
    drives = []
    for code in range(ord("A"), ord("Z") + 1):
        letter = chr(code)
        drive_path = f"{letter}:\\"
        if os.path.exists(drive_path):
            drives.append(DriveInfo(path=drive_path, name=f"Drive {letter}"))
    return drives


def _child_directories(parent: Path) -> list[Path]:
    try:
        return sorted(p for p in parent.iterdir() if p.is_dir())
    except (PermissionError, OSError):
        return []


def _list_mounted_volumes(mount_parents: list[tuple[str, str]]) -> list[DriveInfo]:
    drives = []
    user = _current_user()
    for parent, label in mount_parents:
        for child in _child_directories(Path(parent)):
            # /media/<user>/<volume> and /run/media/<user>/<volume>
            if user and child.name == user and not os.path.ismount(child):
                for volume in _child_directories(child):
                    drives.append(DriveInfo(path=str(volume), name=f"{label} {volume.name}"))
                continue
            drives.append(DriveInfo(path=str(child), name=f"{label} {child.name}"))
    return drives


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def list_drives(mount_parents: list[tuple[str, str]] | None = None) -> list[DriveInfo]:
    """
    List the drives and volumes that can be scanned.

    On Windows every existing drive letter; elsewhere the root directory plus
    the volumes mounted under the platform's usual mount directories.

    Args:
        mount_parents: Override of (directory, label) pairs to look in

    Returns:
        DriveInfo list, root first
    """
    if os.name == "nt":
        return _list_windows_drives()

    drives = [DriveInfo(path="/", name="Root Directory")]
    seen = {"/"}
    for drive in _list_mounted_volumes(MOUNT_PARENTS if mount_parents is None else mount_parents):
        if drive.path not in seen:
            seen.add(drive.path)
            drives.append(drive)
    return drives


def _explorer_path(path: str) -> str:
    # "D:" needs a trailing backslash, everything else Windows separators
    if path.endswith(":"):
        return path + "\\"
    return path.replace("/", "\\")


def open_folder_in_explorer(path: str) -> None:
    """
    Open a folder in the system file manager.

    Raises:
        FolderOpenError: If no file manager could be launched
    """
    if os.name == "nt":
        commands = [["explorer", _explorer_path(path)]]
    elif sys.platform == "darwin":
        commands = [["open", path]]
    else:
        commands = [[manager, path] for manager in LINUX_FILE_MANAGERS]

    for cmd in commands:
        try:
            subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as e:
            log.debug("Could not launch %s: %s", cmd[0], e)
            continue
        return

    if len(commands) > 1:
        raise FolderOpenError("No suitable file manager found")
    raise FolderOpenError(f"Failed to open folder: {path}")
