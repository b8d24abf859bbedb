"""
Shared fixtures and helpers for the Stalker 2 Mod Manager test suite.
"""

from pathlib import Path

import pytest

from mod_entry import ModEntry
from mod_manager import ModManager


def write_files(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create ``files`` ({relative_path: content}) under ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def dirs(tmp_path):
    """Return (vortex_dir, target_dir); only the Vortex dir exists up front."""
    vortex = tmp_path / "vortex" / "stalker2"
    target = tmp_path / "game" / "Stalker2" / "Content" / "Paks" / "~mods"
    vortex.mkdir(parents=True)
    return vortex, target


@pytest.fixture
def make_mod(dirs):
    """Factory: create a mod folder in the Vortex dir and return its ModEntry."""
    vortex, _ = dirs

    def _make(name: str, files: dict[str, str | bytes], order: int = 0, **kwargs) -> ModEntry:
        source = write_files(vortex / name, files)
        return ModEntry(source_path=source, name=name, order=order, **kwargs)

    return _make


@pytest.fixture
def manager(dirs):
    vortex, target = dirs
    return ModManager(vortex, target, log_callback=lambda _: None)


def top_level_dirs(target: Path) -> set[str]:
    return {p.name for p in target.iterdir() if p.is_dir()}
