"""
Stalker 2 Mod Manager - background install worker (PySide6)

Runs ``ModManager.install`` off the UI thread. Signals emitted from the
worker thread are queued by Qt onto the receiver's thread, so slots can
touch widgets directly.
"""

from __future__ import annotations

import threading
from pathlib import Path

from PySide6.QtCore import QThread, Signal

from directory_sync import CompareMode
from install_errors import InstallCancelled, InstallError
from mod_entry import ModEntry
from mod_manager import InstallProgress, ModManager


class InstallWorker(QThread):
    """Install ``mods`` into ``target_dir`` on a background thread."""

    log_signal = Signal(str)
    progress_signal = Signal(object)  # InstallProgress
    finished_signal = Signal(object)  # InstallSummary
    failed_signal = Signal(str)
    cancelled_signal = Signal()

    def __init__(
        self,
        vortex_dir: str | Path,
        target_dir: str | Path,
        mods: list[ModEntry],
        compare_mode: CompareMode = "mtime",
        force_unlock: bool = False,
    ):
        super().__init__()
        self.manager = ModManager(
            vortex_dir,
            target_dir,
            log_callback=self.log_signal.emit,
            compare_mode=compare_mode,
        )
        # Snapshot the list; the UI keeps editing its own copy.
        self.mods = [mod.copy() for mod in mods]
        self.force_unlock = force_unlock
        self._cancel_event = threading.Event()

    def cancel(self):
        self._cancel_event.set()

    def _emit_progress(self, progress: InstallProgress):
        self.progress_signal.emit(progress)

    def run(self):
        try:
            summary = self.manager.install(
                self.mods,
                progress_callback=self._emit_progress,
                cancel_event=self._cancel_event,
                force_unlock=self.force_unlock,
            )
            self.finished_signal.emit(summary)
        except InstallCancelled:
            self.cancelled_signal.emit()
        except (InstallError, OSError) as e:
            self.failed_signal.emit(str(e))
