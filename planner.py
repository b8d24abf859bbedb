"""
Required-state planning.

Given the enabled mods in install order, compute which directories and files
must exist under the target after a correct install. Paths are stored
casefolded so membership tests are case-insensitive, matching how Windows
resolves the game's ``~mods`` folder.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from file_enumerator import iter_relative_files
from mod_entry import ModEntry


def path_key(path: str | Path) -> str:
    """Case-insensitive comparison key for a filesystem path."""
    return os.path.normpath(str(path)).casefold()


@dataclass(frozen=True)
class RequiredState:
    required_directories: frozenset[str] = field(default_factory=frozenset)
    required_files: frozenset[str] = field(default_factory=frozenset)
    # Required directories whose source could not be fully listed
    incomplete_directories: frozenset[str] = field(default_factory=frozenset)

    def contains_directory(self, path: str | Path) -> bool:
        return path_key(path) in self.required_directories

    def contains_file(self, path: str | Path) -> bool:
        return path_key(path) in self.required_files

    def is_incomplete(self, path: str | Path) -> bool:
        return path_key(path) in self.incomplete_directories


def enabled_in_order(mods: Iterable[ModEntry]) -> list[ModEntry]:
    return sorted((mod for mod in mods if mod.is_enabled), key=lambda m: m.order)


def build_required_state(
    enabled_mods: Iterable[ModEntry],
    target_root: str | Path,
    log_fn: Optional[Callable[[str], None]] = None,
) -> RequiredState:
    """Build the required directory/file sets for ``enabled_mods``.

    Disabled entries are ignored even if passed in. A mod whose source
    cannot be walked contributes its directory and whatever files were
    listed before the error, and is recorded in ``incomplete_directories``
    so that cleanup leaves its installed files alone.
    """
    _log = log_fn or (lambda _: None)
    target_root = Path(target_root)
    directories: set[str] = set()
    files: set[str] = set()
    incomplete: set[str] = set()

    for mod in enabled_in_order(enabled_mods):
        mod_target = target_root / mod.target_folder_name
        directories.add(path_key(mod_target))
        try:
            for rel in iter_relative_files(mod.source_path):
                if mod.is_file_enabled(rel):
                    files.add(path_key(mod_target / rel))
        except OSError as exc:
            _log(f"  Error collecting files from {mod.source_path}: {exc}")
            incomplete.add(path_key(mod_target))

    return RequiredState(frozenset(directories), frozenset(files), frozenset(incomplete))
