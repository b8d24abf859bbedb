"""
Exceptions raised out of an install run.

Per-file and per-directory I/O failures are never raised; they are logged
and collected on the result objects. Only setup failures and cancellation
escape ``ModManager.install``.
"""

from __future__ import annotations

import threading


class InstallError(Exception):
    """The install could not start (target missing, not creatable, ...)."""


class InstallLockedError(InstallError):
    """Another install already holds the target directory's lock file."""


class InstallCancelled(Exception):
    """The caller set the cancel event; work stopped at a file boundary."""


def check_cancelled(cancel_event: threading.Event | None):
    if cancel_event is not None and cancel_event.is_set():
        raise InstallCancelled("Install cancelled")
