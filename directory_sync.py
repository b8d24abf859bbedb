"""
Incremental copy of one mod's source tree into its target folder.

Files that already look up to date are skipped. The default check is the
fast size + modification-time heuristic: a target is considered current when
its size matches and it is at least as new as the source. That heuristic has
a known false negative (a same-size target with a newer mtime but different
content is kept). ``compare_mode="hash"`` trades speed for a SHA-256
comparison when that matters.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import stat
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal, Optional

from file_enumerator import iter_relative_files
from install_errors import check_cancelled
from mod_entry import ModEntry

_log = logging.getLogger(__name__)

CompareMode = Literal["mtime", "hash"]
COMPARE_MODES: tuple[CompareMode, ...] = ("mtime", "hash")

_HASH_CHUNK = 1024 * 1024


@dataclass
class CopyResult:
    copied: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


def _sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(_HASH_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def is_up_to_date(src: Path, dst: Path, compare_mode: CompareMode = "mtime") -> bool:
    """Return True when ``dst`` can be left as is.

    Any error reading either file means "copy it".
    """
    try:
        src_stat = src.stat()
        dst_stat = dst.stat()
        if src_stat.st_size != dst_stat.st_size:
            return False
        if compare_mode == "hash":
            return _sha256(src) == _sha256(dst)
        return dst_stat.st_mtime >= src_stat.st_mtime
    except OSError:
        return False


def _make_writable(path: Path):
    mode = path.stat().st_mode
    if not mode & stat.S_IWRITE:
        os.chmod(path, mode | stat.S_IWRITE)


def copy_mod(
    mod: ModEntry,
    target_root: str | Path,
    compare_mode: CompareMode = "mtime",
    log_fn: Optional[Callable[[str], None]] = None,
    cancel_event: threading.Event | None = None,
) -> CopyResult:
    """Copy ``mod``'s enabled files into ``target_root/<target_folder_name>``.

    A failure on one file is logged and recorded; the rest of the mod still
    copies. If walking the source itself fails, the remaining files of this
    mod are abandoned and the failure is recorded.
    """
    if compare_mode not in COMPARE_MODES:
        raise ValueError(f"Unknown compare mode: {compare_mode!r}")

    _log_cb = log_fn or (lambda _: None)
    result = CopyResult()
    mod_target = Path(target_root) / mod.target_folder_name
    try:
        mod_target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        msg = f"Failed to create {mod_target}: {exc}"
        _log_cb(f"  {msg}")
        result.errors.append(msg)
        return result

    try:
        for rel in iter_relative_files(mod.source_path):
            check_cancelled(cancel_event)
            if not mod.is_file_enabled(rel):
                continue

            src = mod.source_path / rel
            dst = mod_target / rel
            if dst.is_file() and is_up_to_date(src, dst, compare_mode):
                result.skipped += 1
                continue

            try:
                dst.parent.mkdir(parents=True, exist_ok=True)
                if dst.exists():
                    _make_writable(dst)
                shutil.copy2(src, dst)
                result.copied += 1
                _log.debug("Copied %s -> %s", src, dst)
            except OSError as exc:
                msg = f"Failed to copy {mod.name}/{rel}: {exc}"
                _log_cb(f"  {msg}")
                result.errors.append(msg)
    except OSError as exc:
        msg = f"Failed to list files of {mod.name}: {exc}"
        _log_cb(f"  {msg}")
        result.errors.append(msg)

    return result
