"""
Cleanup of the target directory before copying.

The target (the game's ``~mods`` folder) is owned by us for mod
sub-directories, but Vortex keeps its own bookkeeping files at the root.
Those are recognised by name and never deleted; everything else at the root
that is not a required mod directory goes.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from install_errors import check_cancelled
from planner import RequiredState, path_key

_log = logging.getLogger(__name__)

LOCK_FILENAME = ".stalker2modmanager.lock"

PROTECTED_FILE_NAMES = frozenset(
    {
        "snapshot.json",
        "rename_folders.py",
        "update_snapshot.py",
        "update_deployment.py",
        LOCK_FILENAME,
    }
)
PROTECTED_PREFIXES = ("vortex.", "snapshot_")


@dataclass
class CleanResult:
    removed_directories: int = 0
    removed_files: int = 0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: CleanResult) -> CleanResult:
        self.removed_directories += other.removed_directories
        self.removed_files += other.removed_files
        self.errors.extend(other.errors)
        return self


def is_protected_file(
    name: str, protected_file_names: Iterable[str] = PROTECTED_FILE_NAMES
) -> bool:
    folded = name.casefold()
    if folded.startswith(PROTECTED_PREFIXES):
        return True
    return folded in {n.casefold() for n in protected_file_names}


def _clear_readonly(path: Path):
    """Clear the read-only bit on ``path`` and everything below it."""
    for dirpath, dirnames, filenames in os.walk(path):
        for name in dirnames + filenames:
            entry = Path(dirpath) / name
            if entry.is_symlink():
                continue
            try:
                mode = entry.stat().st_mode
                if not mode & stat.S_IWRITE:
                    os.chmod(entry, mode | stat.S_IWRITE)
            except OSError as exc:
                _log.debug("Could not clear read-only on %s: %s", entry, exc)
    mode = path.stat().st_mode
    if not mode & stat.S_IWRITE:
        os.chmod(path, mode | stat.S_IWRITE)


def _remove_file(path: Path):
    if not path.is_symlink():
        mode = path.stat().st_mode
        if not mode & stat.S_IWRITE:
            os.chmod(path, mode | stat.S_IWRITE)
    path.unlink()


def clean_target(
    target_root: str | Path,
    required_directories: Iterable[str],
    protected_file_names: Iterable[str] = PROTECTED_FILE_NAMES,
    log_fn: Optional[Callable[[str], None]] = None,
    cancel_event: threading.Event | None = None,
) -> CleanResult:
    """Delete direct children of ``target_root`` that are not required.

    ``required_directories`` is compared case-insensitively. Direct child
    files survive only when :func:`is_protected_file` says so. A failure on
    one entry is logged and recorded; the rest are still processed.
    """
    _log_cb = log_fn or (lambda _: None)
    target_root = Path(target_root)
    required = {path_key(p) for p in required_directories}
    protected = frozenset(protected_file_names) | {LOCK_FILENAME}
    result = CleanResult()

    for entry in sorted(target_root.iterdir()):
        check_cancelled(cancel_event)
        if entry.is_dir() and not entry.is_symlink():
            if path_key(entry) in required:
                continue
            try:
                _clear_readonly(entry)
                shutil.rmtree(entry)
                result.removed_directories += 1
                _log_cb(f"  Deleted unused mod directory: {entry.name}")
            except OSError as exc:
                msg = f"Failed to delete unused directory {entry}: {exc}"
                _log_cb(f"  {msg}")
                result.errors.append(msg)
            continue

        if entry.is_symlink() and path_key(entry) in required:
            continue
        # Re-check by name right before deleting; Vortex may write at any time.
        if is_protected_file(entry.name, protected):
            continue
        try:
            _remove_file(entry)
            result.removed_files += 1
            _log_cb(f"  Deleted unused file: {entry.name}")
        except OSError as exc:
            msg = f"Failed to delete unused file {entry}: {exc}"
            _log_cb(f"  {msg}")
            result.errors.append(msg)

    return result


def prune_stale_files(
    state: RequiredState,
    target_root: str | Path,
    log_fn: Optional[Callable[[str], None]] = None,
    cancel_event: threading.Event | None = None,
) -> CleanResult:
    """Inside each required mod directory, delete files no longer required.

    This catches files that were disabled through a per-file override or
    removed from the source since the last install. Empty sub-directories
    left behind are removed; the mod directory itself is kept. Directories
    whose source listing failed are skipped entirely.
    """
    _log_cb = log_fn or (lambda _: None)
    result = CleanResult()

    for mod_dir in sorted(Path(target_root).iterdir()):
        if not mod_dir.is_dir() or mod_dir.is_symlink():
            continue
        if not state.contains_directory(mod_dir):
            continue
        if state.is_incomplete(mod_dir):
            _log_cb(f"  Keeping existing files in {mod_dir.name}: source could not be fully listed")
            continue

        for dirpath, dirnames, filenames in os.walk(mod_dir, topdown=False):
            for filename in filenames:
                check_cancelled(cancel_event)
                path = Path(dirpath) / filename
                if state.contains_file(path):
                    continue
                try:
                    _remove_file(path)
                    result.removed_files += 1
                    _log_cb(f"  Deleted stale file: {path.relative_to(target_root)}")
                except OSError as exc:
                    msg = f"Failed to delete stale file {path}: {exc}"
                    _log_cb(f"  {msg}")
                    result.errors.append(msg)
            current = Path(dirpath)
            if current != mod_dir:
                try:
                    if not any(current.iterdir()):
                        current.rmdir()
                except OSError as exc:
                    _log.debug("Could not remove empty dir %s: %s", current, exc)

    return result
