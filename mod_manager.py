"""
Stalker 2 Mod Manager - Core Logic

Discovers mods in the Vortex staging folder and installs the enabled ones
into the game's ~mods folder.

An install is a reconciliation: the target ends up holding exactly one
``<prefix>-<name>`` folder per enabled mod, with exactly that mod's enabled
files, while Vortex's own bookkeeping files at the root are left alone.
"""

from __future__ import annotations

import math
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Literal, Optional

from directory_sync import COMPARE_MODES, CompareMode, copy_mod
from garbage_collector import (
    LOCK_FILENAME,
    PROTECTED_FILE_NAMES,
    clean_target,
    prune_stale_files,
)
from install_errors import InstallError, InstallLockedError, check_cancelled
from mod_entry import ModEntry
from naming_scheme import MAX_ORDER
from planner import build_required_state, enabled_in_order

RESERVED_DIR_PREFIX = "__"
EXCLUDED_MOD_DIRS = frozenset({"Better Vaulting"})

InstallPhase = Literal["cleaning", "copying"]


@dataclass
class InstallProgress:
    """One progress report sent to the caller during an install."""

    phase: InstallPhase
    current_mod: str
    installed: int
    total: int
    percentage: int


@dataclass
class InstallSummary:
    installed_count: int = 0
    total: int = 0
    copied_files: int = 0
    skipped_files: int = 0
    removed_directories: int = 0
    removed_files: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def succeeded(self) -> bool:
        return not self.errors


def progress_percentage(installed: int, total: int) -> int:
    if total <= 0:
        return 0
    return math.floor(installed / total * 100)


class ModManager:
    """
    Main mod manager controller.

    Workflow:
        1. discover_mods() to list mod folders in the Vortex staging dir
        2. apply a saved order (config_store.apply_mods_order) and let the
           user reorder / toggle
        3. install() to reconcile the target dir with the enabled mods
    """

    def __init__(
        self,
        vortex_dir: str | Path,
        target_dir: str | Path,
        log_callback: Optional[Callable[[str], None]] = None,
        compare_mode: CompareMode = "mtime",
    ):
        if compare_mode not in COMPARE_MODES:
            raise ValueError(f"Unknown compare mode: {compare_mode!r}")
        self.vortex_dir = Path(vortex_dir)
        self.target_dir = Path(target_dir)
        self.lock_path = self.target_dir / LOCK_FILENAME
        self.compare_mode: CompareMode = compare_mode
        self._log_cb = log_callback or print

    # ── Logging ───────────────────────────────────────────────────────

    def log(self, msg: str):
        self._log_cb(msg)

    # ── Discovery ─────────────────────────────────────────────────────

    def discover_mods(self) -> list[ModEntry]:
        mods: list[ModEntry] = []

        if not self.vortex_dir.is_dir():
            self.log(f"Vortex path does not exist: {self.vortex_dir}")
            return mods

        self.log(f"Loading mods from Vortex path: {self.vortex_dir}")
        dirs = [
            d for d in self.vortex_dir.iterdir()
            if d.is_dir()
            and not d.name.startswith(RESERVED_DIR_PREFIX)
            and d.name not in EXCLUDED_MOD_DIRS
        ]
        for order, d in enumerate(sorted(dirs, key=lambda p: p.name.casefold())):
            mods.append(ModEntry(source_path=d, name=d.name, order=order))

        self.log(f"Total mods found: {len(mods)}")
        return mods

    # ── Locking ───────────────────────────────────────────────────────

    @contextmanager
    def _install_lock(self, force_unlock: bool = False) -> Iterator[None]:
        if force_unlock and self.lock_path.exists():
            self.log(f"  Removing existing lock file: {self.lock_path}")
            self.lock_path.unlink()
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            raise InstallLockedError(
                f"Another install is running against {self.target_dir} "
                f"(lock file {self.lock_path.name}). If no install is running, "
                f"delete the lock file or retry with force_unlock."
            ) from None
        except OSError as exc:
            raise InstallError(f"Could not create lock file {self.lock_path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(str(os.getpid()))
            yield
        finally:
            try:
                self.lock_path.unlink()
            except FileNotFoundError:
                pass

    # ── Install ───────────────────────────────────────────────────────

    def _ensure_target_dir(self):
        if self.target_dir.exists() and not self.target_dir.is_dir():
            raise InstallError(f"Target path is not a directory: {self.target_dir}")
        if not self.target_dir.exists():
            try:
                self.target_dir.mkdir(parents=True)
            except OSError as exc:
                raise InstallError(
                    f"Could not create target directory {self.target_dir}: {exc}"
                ) from exc
            self.log(f"Created target directory: {self.target_dir}")

    def install(
        self,
        mods: list[ModEntry],
        progress_callback: Optional[Callable[[InstallProgress], None]] = None,
        cancel_event: threading.Event | None = None,
        force_unlock: bool = False,
    ) -> InstallSummary:
        """Reconcile the target directory with the enabled ``mods``.

        Cleanup runs before any copying so that the directory set under the
        target is exactly the enabled set once the copy pass finishes.
        Per-entry I/O failures are collected in ``InstallSummary.errors``.
        Raises ``InstallError`` when the target cannot be prepared and
        ``InstallCancelled`` when ``cancel_event`` is set mid-run.
        """
        report = progress_callback or (lambda _: None)

        self._ensure_target_dir()

        enabled = enabled_in_order(mods)
        too_high = [m.name for m in enabled if m.order > MAX_ORDER]
        if too_high:
            raise InstallError(
                f"{len(too_high)} mod(s) have an order above {MAX_ORDER}: {too_high[:5]}"
            )
        negative = [m.name for m in enabled if m.order < 0]
        if negative:
            raise InstallError(f"{len(negative)} mod(s) have a negative order: {negative[:5]}")

        with self._install_lock(force_unlock=force_unlock):
            total = len(enabled)
            summary = InstallSummary(total=total)
            self.log(
                f"Starting installation. Target: {self.target_dir}, "
                f"Total mods: {len(mods)}, Enabled: {total}"
            )

            state = build_required_state(enabled, self.target_dir, log_fn=self.log)

            report(InstallProgress("cleaning", "Cleaning unused mods...", 0, total, 0))
            cleaned = clean_target(
                self.target_dir,
                state.required_directories,
                PROTECTED_FILE_NAMES,
                log_fn=self.log,
                cancel_event=cancel_event,
            )
            cleaned.merge(
                prune_stale_files(
                    state, self.target_dir, log_fn=self.log, cancel_event=cancel_event
                )
            )
            summary.removed_directories = cleaned.removed_directories
            summary.removed_files = cleaned.removed_files
            summary.errors.extend(cleaned.errors)

            self.log(f"Installing {total} enabled mods (only changed files will be copied)...")

            for mod in enabled:
                check_cancelled(cancel_event)
                summary.installed_count += 1
                index = summary.installed_count
                report(
                    InstallProgress(
                        "copying",
                        mod.name,
                        index,
                        total,
                        progress_percentage(index, total),
                    )
                )
                self.log(f"Processing mod [{index}/{total}]: {mod.name} -> {mod.target_folder_name}")

                result = copy_mod(
                    mod,
                    self.target_dir,
                    compare_mode=self.compare_mode,
                    log_fn=self.log,
                    cancel_event=cancel_event,
                )
                summary.copied_files += result.copied
                summary.skipped_files += result.skipped
                summary.errors.extend(result.errors)

                if result.copied:
                    self.log(f"  Mod '{mod.name}': copied {result.copied} changed/new file(s)")
                else:
                    self.log(f"  Mod '{mod.name}': all files are up to date, skipped")

            if summary.errors:
                self.log(
                    f"Installation finished with {summary.error_count} error(s). "
                    f"Installed {summary.installed_count} mods"
                )
            else:
                self.log(f"Installation completed. Installed {summary.installed_count} mods")
            return summary

    # ── Validation ────────────────────────────────────────────────────

    def validate_paths(self) -> list[str]:
        issues = []

        if not self.vortex_dir.is_dir():
            issues.append(f"Vortex directory does not exist: {self.vortex_dir}")

        if not self.target_dir.exists():
            issues.append(
                f"Target directory does not exist: {self.target_dir} "
                f"(will be created on first install)"
            )
        elif not self.target_dir.is_dir():
            issues.append(f"Target path is not a directory: {self.target_dir}")

        if self.lock_path.exists():
            issues.append(
                f"Lock file present: {self.lock_path} "
                f"(another install running, or a previous one crashed)"
            )

        try:
            if self.vortex_dir.resolve() == self.target_dir.resolve():
                issues.append("Vortex directory and target directory are the same folder")
        except OSError:
            pass

        return issues
