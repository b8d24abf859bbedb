"""
Recursive file listing for mod source folders.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator


def _raise(exc: OSError):
    raise exc


def iter_relative_files(root: str | Path) -> Iterator[str]:
    """Yield every file under ``root`` as a ``/``-separated relative path.

    The walk is lazy and visits entries in sorted order, so two walks over an
    unchanged tree yield the same sequence; call again to restart. A missing
    ``root`` yields nothing (source mods get moved or deleted by Vortex).
    Errors raised while walking an existing tree propagate to the caller.
    """
    root = Path(root)
    if not root.is_dir():
        return

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames.sort()
        rel_dir = Path(dirpath).relative_to(root)
        for filename in sorted(filenames):
            yield (rel_dir / filename).as_posix()
