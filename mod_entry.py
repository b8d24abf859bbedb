"""
In-memory model of one discovered mod version and the list operations that
keep a working mod list consistent.

Every list operation returns a *new* list whose ``order`` values are dense
(0..N-1) and match list position. Entries are copied, never mutated in place,
so a caller holding the previous list still sees the previous state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

from naming_scheme import target_folder_name


def normalize_rel_path(rel_path: str) -> str:
    """Return ``rel_path`` with ``/`` separators and no leading/trailing slash."""
    return rel_path.replace("\\", "/").strip("/")


@dataclass
class ModEntry:
    """One mod version discovered under the Vortex staging folder."""

    source_path: Path
    name: str  # Leaf name of source_path; identity key across reloads
    order: int = 0
    is_enabled: bool = True
    file_overrides: dict[str, bool] = field(default_factory=dict)
    # file_overrides: relative path inside the mod -> enabled. Missing = enabled.

    def __post_init__(self):
        self.source_path = Path(self.source_path)
        self.file_overrides = {
            normalize_rel_path(path): bool(enabled)
            for path, enabled in self.file_overrides.items()
        }

    @property
    def target_folder_name(self) -> str:
        return target_folder_name(self.order, self.name)

    @property
    def has_disabled_files(self) -> bool:
        return any(not enabled for enabled in self.file_overrides.values())

    def is_file_enabled(self, rel_path: str) -> bool:
        return self.file_overrides.get(normalize_rel_path(rel_path), True)

    def set_file_enabled(self, rel_path: str, enabled: bool):
        self.file_overrides[normalize_rel_path(rel_path)] = enabled

    def copy(self) -> ModEntry:
        return replace(self, file_overrides=dict(self.file_overrides))


# ── List operations ───────────────────────────────────────────────────


def normalize_orders(mods: list[ModEntry]) -> list[ModEntry]:
    """Sort by current order (stable) and renumber densely from 0."""
    result = [mod.copy() for mod in sorted(mods, key=lambda m: m.order)]
    for index, mod in enumerate(result):
        mod.order = index
    return result


def _renumber(mods: list[ModEntry]) -> list[ModEntry]:
    for index, mod in enumerate(mods):
        mod.order = index
    return mods


def _index_of(mods: list[ModEntry], name: str) -> int:
    for index, mod in enumerate(mods):
        if mod.name == name:
            return index
    raise KeyError(f"No mod named {name!r}")


def find_mod(mods: list[ModEntry], name: str) -> ModEntry | None:
    """Look up a mod by name, exact first, then case-insensitive."""
    for mod in mods:
        if mod.name == name:
            return mod
    folded = name.casefold()
    for mod in mods:
        if mod.name.casefold() == folded:
            return mod
    return None


def move_mod(mods: list[ModEntry], name: str, new_index: int) -> list[ModEntry]:
    """Move the named mod to ``new_index`` (clamped to the list bounds)."""
    result = normalize_orders(mods)
    mod = result.pop(_index_of(result, name))
    new_index = max(0, min(new_index, len(result)))
    result.insert(new_index, mod)
    return _renumber(result)


def insert_mod(mods: list[ModEntry], mod: ModEntry, index: int | None = None) -> list[ModEntry]:
    """Insert ``mod`` at ``index`` (default: end of the list)."""
    result = normalize_orders(mods)
    if any(existing.name == mod.name for existing in result):
        raise ValueError(f"A mod named {mod.name!r} is already in the list")
    if index is None:
        index = len(result)
    result.insert(max(0, min(index, len(result))), mod.copy())
    return _renumber(result)


def remove_mod(mods: list[ModEntry], name: str) -> list[ModEntry]:
    result = normalize_orders(mods)
    result.pop(_index_of(result, name))
    return _renumber(result)


def set_enabled(mods: list[ModEntry], name: str, enabled: bool) -> list[ModEntry]:
    result = normalize_orders(mods)
    result[_index_of(result, name)].is_enabled = enabled
    return result


def set_file_override(
    mods: list[ModEntry], name: str, rel_path: str, enabled: bool
) -> list[ModEntry]:
    result = normalize_orders(mods)
    result[_index_of(result, name)].set_file_enabled(rel_path, enabled)
    return result
