"""
Config persistence and saved-order application.

Paths and the mod order are plain JSON files in a per-user config directory.
Reading the app's own files is forgiving (missing or corrupt -> defaults);
explicit import/export of an order file raises ``ConfigError`` so the user
learns why their file was rejected.

Public API
----------
ConfigStore(config_dir)                      load/save the three JSON files
create_mods_order(mods)                      ModEntry list -> ModOrder
apply_mods_order(mods, order, ...)           restore order/enabled/file states
import_mods_order(mods, order, ...)          same, disabling mods not listed
normalize_order_name(name)                   strip Nexus id/version suffixes
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, ValidationError

from config_schema import LegacyModConfig, ModOrder, ModOrderItem, PathsConfig, dump_model
from mod_entry import ModEntry

_log = logging.getLogger(__name__)

APP_NAME = "Stalker2ModManager"
PATHS_CONFIG_FILENAME = "config.json"
MODS_ORDER_FILENAME = "mods_order.json"
LEGACY_CONFIG_FILENAME = "mods_config.json"


class ConfigError(Exception):
    """An order/config file given by the user could not be read or written."""


def default_config_dir() -> Path:
    return Path(os.environ.get("APPDATA", Path.home())) / APP_NAME


# ── Name normalisation ────────────────────────────────────────────────


def normalize_order_name(name: str) -> str:
    """Strip a Nexus-style ``-<id>-<version>...`` tail from a mod folder name.

    The cut happens at the first ``-`` followed (after optional spaces) by a
    digit:

        "SimpleModLoader-304-0-4-9-1748465595"           -> "SimpleModLoader"
        "Achievements Enabler - Steam-1493-1-5-..."      -> "Achievements Enabler - Steam"
        "Loader v2.0.1 - Steam-664-2-0-1-1737163600"     -> "Loader v2.0.1 - Steam"
    """
    if not name or not name.strip():
        return ""

    for i, ch in enumerate(name[:-1]):
        if ch != "-":
            continue
        j = i + 1
        while j < len(name) and name[j].isspace():
            j += 1
        if j >= len(name):
            break
        if name[j].isdigit():
            return name[:i].rstrip()

    return name.strip()


# ── Files ─────────────────────────────────────────────────────────────


class ConfigStore:
    def __init__(self, config_dir: str | Path | None = None):
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.paths_config_path = self.config_dir / PATHS_CONFIG_FILENAME
        self.mods_order_path = self.config_dir / MODS_ORDER_FILENAME
        self.legacy_config_path = self.config_dir / LEGACY_CONFIG_FILENAME

    def _read_model(self, path: Path, model: type[BaseModel]):
        if not path.exists():
            return model()
        try:
            return model.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            _log.warning("Could not load %s, using defaults: %s", path.name, exc)
            return model()

    def _write_model(self, path: Path, model: BaseModel):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_model(model), encoding="utf-8")

    def load_paths_config(self) -> PathsConfig:
        return self._read_model(self.paths_config_path, PathsConfig)

    def save_paths_config(self, config: PathsConfig):
        self._write_model(self.paths_config_path, config)

    def load_mods_order(self) -> ModOrder:
        return self._read_model(self.mods_order_path, ModOrder)

    def save_mods_order(self, order: ModOrder):
        self._write_model(self.mods_order_path, order)

    @staticmethod
    def export_mods_order(order: ModOrder, path: str | Path):
        try:
            Path(path).write_text(dump_model(order), encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Could not write order file {path}: {exc}") from exc

    @staticmethod
    def load_mods_order_from_file(path: str | Path) -> ModOrder:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Order file not found: {path}")
        try:
            return ModOrder.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            raise ConfigError(f"Could not read order file {path.name}: {exc}") from exc

    def load_legacy_config(self) -> tuple[PathsConfig, ModOrder] | None:
        """Convert mods_config.json from older releases, if present."""
        if not self.legacy_config_path.exists():
            return None
        try:
            legacy = LegacyModConfig.model_validate(
                json.loads(self.legacy_config_path.read_text(encoding="utf-8"))
            )
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            _log.warning("Ignoring unreadable legacy config: %s", exc)
            return None

        paths = PathsConfig(
            vortex_path=legacy.vortex_path or "",
            target_path=legacy.target_path or "",
        )
        items = sorted(legacy.mods or [], key=lambda item: item.order)
        return paths, ModOrder(mods=items)


# ── Applying a saved order ────────────────────────────────────────────


def create_mods_order(mods: list[ModEntry]) -> ModOrder:
    return ModOrder(
        mods=[
            ModOrderItem(
                name=mod.name,
                order=mod.order,
                is_enabled=mod.is_enabled,
                file_states=dict(mod.file_overrides),
            )
            for mod in sorted(mods, key=lambda m: m.order)
        ]
    )


def _match_saved_item(
    item: ModOrderItem,
    by_name: dict[str, ModEntry],
    by_base_name: dict[str, list[ModEntry]] | None,
) -> ModEntry | None:
    mod = by_name.get(item.name.casefold())
    if mod is not None or by_base_name is None:
        return mod
    versions = by_base_name.get(normalize_order_name(item.name).casefold())
    if not versions:
        return None
    # Without version matching, the alphabetically last folder is the newest.
    return max(versions, key=lambda m: m.name.casefold())


def apply_mods_order(
    mods: list[ModEntry],
    order: ModOrder,
    consider_version: bool = False,
) -> list[ModEntry]:
    """Return ``mods`` reordered by ``order``, with saved flags restored.

    Saved entries are matched by name, case-insensitively. With
    ``consider_version`` off, an entry that does not match exactly falls back
    to its normalised name so that an updated mod version inherits the old
    one's slot. Mods unknown to the saved order are appended, enabled, in
    their current order. The result is renumbered densely from 0.
    """
    current = [mod.copy() for mod in sorted(mods, key=lambda m: m.order)]
    by_name = {mod.name.casefold(): mod for mod in current}
    by_base_name: dict[str, list[ModEntry]] | None = None
    if not consider_version:
        by_base_name = {}
        for mod in current:
            by_base_name.setdefault(normalize_order_name(mod.name).casefold(), []).append(mod)

    matched: list[ModEntry] = []
    seen: set[int] = set()
    for item in sorted(order.mods, key=lambda i: i.order):
        mod = _match_saved_item(item, by_name, by_base_name)
        if mod is None:
            _log.debug("Saved order entry %r matches no discovered mod", item.name)
            continue
        if id(mod) in seen:
            continue
        seen.add(id(mod))
        mod.is_enabled = item.is_enabled
        mod.file_overrides = dict(item.file_states)
        matched.append(mod)

    unknown = [mod for mod in current if id(mod) not in seen]
    for mod in unknown:
        mod.is_enabled = True

    result = matched + unknown
    for index, mod in enumerate(result):
        mod.order = index
    return result


def import_mods_order(
    mods: list[ModEntry],
    order: ModOrder,
    consider_version: bool = False,
) -> list[ModEntry]:
    """Apply an imported order file; mods it does not mention end up disabled."""

    def key(name: str) -> str:
        return (name.strip() if consider_version else normalize_order_name(name)).casefold()

    listed = {key(item.name) for item in order.mods}
    result = apply_mods_order(mods, order, consider_version=consider_version)
    for mod in result:
        if key(mod.name) not in listed:
            mod.is_enabled = False
    return result
