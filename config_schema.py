"""
On-disk JSON schemas for Stalker 2 Mod Manager.

Three files live in the config directory:

    config.json         <- PathsConfig: source/target folders and options
    mods_order.json     <- ModOrder: order, enabled flag and per-file states
    mods_config.json    <- LegacyModConfig: older single-file format, read only

Keys are PascalCase on disk so files written by earlier releases keep
loading. Python code uses the snake_case field names.

mods_order.json example:

{
    "Mods": [
        {
            "Name": "SimpleModLoader-304-0-4-9-1748465595",
            "Order": 0,
            "IsEnabled": true,
            "FileStates": {"Paks/optional_patch.pak": false}
        }
    ]
}
"""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field, field_validator

from directory_sync import CompareMode
from mod_entry import normalize_rel_path


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PathsConfig(_ConfigModel):
    """Folder paths and user options."""

    vortex_path: str = Field(default="", alias="VortexPath")
    target_path: str = Field(default="", alias="TargetPath")
    window_width: float = Field(default=800, alias="WindowWidth")
    window_height: float = Field(default=600, alias="WindowHeight")
    consider_mod_version: bool = Field(default=False, alias="ConsiderModVersion")
    compare_mode: CompareMode = Field(default="mtime", alias="CompareMode")
    last_import_order_path: str = Field(default="", alias="LastImportOrderPath")
    last_export_order_path: str = Field(default="", alias="LastExportOrderPath")

    @field_validator("vortex_path", "target_path", mode="before")
    @classmethod
    def _none_to_empty(cls, v: str | None) -> str:
        return v or ""


class ModOrderItem(_ConfigModel):
    """Saved state of one mod, keyed by folder name."""

    name: str = Field(alias="Name")
    order: int = Field(default=0, ge=0, alias="Order")
    is_enabled: bool = Field(default=True, alias="IsEnabled")
    file_states: dict[str, bool] = Field(default_factory=dict, alias="FileStates")

    @field_validator("file_states", mode="before")
    @classmethod
    def _normalize_paths(cls, v: dict[str, bool] | None) -> dict[str, bool]:
        if not v:
            return {}
        return {normalize_rel_path(path): enabled for path, enabled in v.items()}


class ModOrder(_ConfigModel):
    mods: list[ModOrderItem] = Field(default_factory=list, alias="Mods")


class LegacyModConfig(_ConfigModel):
    """Pre-split config holding paths and the mod list in one file."""

    vortex_path: str | None = Field(default=None, alias="VortexPath")
    target_path: str | None = Field(default=None, alias="TargetPath")
    mods: list[ModOrderItem] | None = Field(default=None, alias="Mods")


def dump_model(model: BaseModel) -> str:
    """Serialize ``model`` the way the config files are written."""
    return json.dumps(model.model_dump(by_alias=True), indent=2, ensure_ascii=False)
