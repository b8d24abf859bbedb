"""
Reorder mods to match a Vortex deployment snapshot.

Vortex snapshot files list deployed paths such as
``AAC-SomeMod-123-1-0-1700000000/Paks/some.pak``. The first path segment
carries the folder prefix, so the order in which folder names first appear
is the load order that was deployed. This module recovers that order and
maps it onto the currently discovered mods with a best-effort name match.

It only produces a new ``order`` assignment; nothing is installed.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from mod_entry import ModEntry

_log = logging.getLogger(__name__)

_VERSION_PAREN_RE = re.compile(r"\s*\(v?\d+[.\d]*\)\s*$", re.IGNORECASE)
_REV_SUFFIX_RE = re.compile(r"-rev\d+$", re.IGNORECASE)
_NEXUS_FOUR_RE = re.compile(r"-\d+-\d+-\d+-\d+$")
_NEXUS_THREE_RE = re.compile(r"-\d+-\d+-\d+$")

SCORE_BASE_EQUAL = 900
SCORE_PREFIX = 500
SCORE_BASE_CONTAINS = 450
SCORE_SUFFIX = 400
SCORE_CONTAINS = 300


class SnapshotFormatError(ValueError):
    """The snapshot file is empty or not in a supported format."""


class _SnapshotObject(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    files: list[str] = Field(alias="Files")


_PATH_LIST = TypeAdapter(list[str])


@dataclass
class SnapshotMatch:
    snapshot_name: str
    mod_name: str
    match_type: str  # "exact", "base name" or "partial (score: N)"


@dataclass
class SnapshotSortResult:
    mods: list[ModEntry]
    snapshot_names: list[str] = field(default_factory=list)
    matches: list[SnapshotMatch] = field(default_factory=list)
    unmatched_snapshot_names: list[str] = field(default_factory=list)


# ── Reading ───────────────────────────────────────────────────────────


def _parse_json_paths(text: str) -> list[str]:
    data = json.loads(text)
    for parse in (
        _PATH_LIST.validate_python,
        lambda d: _SnapshotObject.model_validate(d).files,
    ):
        try:
            return parse(data)
        except ValidationError:
            continue
    raise SnapshotFormatError("Unsupported snapshot JSON format")


def read_snapshot_paths(path: str | Path) -> list[str]:
    """Read deployed file paths from a ``.txt`` or ``.json`` snapshot."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise SnapshotFormatError(f"{path.name} is not UTF-8 text: {exc}") from exc

    if path.suffix.lower() == ".txt":
        paths = []
        for line in text.splitlines():
            entry = line.strip().strip('", ')
            if "\\" in entry or "/" in entry:
                paths.append(entry)
        if not paths:
            raise SnapshotFormatError(f"{path.name} contains no file paths")
        return paths

    try:
        paths = _parse_json_paths(text)
    except json.JSONDecodeError as exc:
        raise SnapshotFormatError(f"{path.name} is not valid JSON: {exc}") from exc
    if not paths:
        raise SnapshotFormatError(f"{path.name} is empty")
    return paths


def extract_mod_order(paths: list[str]) -> list[str]:
    """Return mod names in order of first appearance in ``paths``.

    Only first segments shaped like ``<letters>-<name>`` count, with at least
    two letters in the prefix. Names are de-duplicated case-insensitively.
    """
    names: list[str] = []
    seen: set[str] = set()

    for entry in paths:
        if not entry or ("\\" not in entry and "/" not in entry):
            continue
        separator = "\\" if "\\" in entry else "/"
        folder = entry.split(separator)[0].strip()

        dash = folder.find("-")
        if dash <= 0 or dash >= len(folder) - 1:
            continue
        prefix, mod_name = folder[:dash], folder[dash + 1:]
        if len(prefix) < 2 or not prefix.isalpha() or not mod_name.strip():
            continue

        key = mod_name.casefold()
        if key in seen:
            continue
        seen.add(key)
        names.append(mod_name)

    return names


# ── Matching ──────────────────────────────────────────────────────────


def base_mod_name(name: str) -> str:
    """Strip version decorations: ``(v2.0)``, ``-rev75``, Nexus id tails."""
    base = _VERSION_PAREN_RE.sub("", name)
    base = _REV_SUFFIX_RE.sub("", base)
    base = _NEXUS_FOUR_RE.sub("", base)
    base = _NEXUS_THREE_RE.sub("", base)
    return base.strip()


def _longest_aligned_run(a: str, b: str) -> int:
    shorter, longer = (a, b) if len(a) < len(b) else (b, a)
    best = 0
    for offset in range(len(longer) - len(shorter) + 1):
        run = 0
        for i, ch in enumerate(shorter):
            if longer[offset + i] != ch:
                break
            run += 1
        best = max(best, run)
    return best


def match_score(candidate: str, wanted: str) -> int:
    """Score how well mod folder ``candidate`` matches snapshot name ``wanted``.

    0 means no match.
    """
    cand = candidate.casefold()
    want = wanted.casefold()
    cand_base = base_mod_name(candidate).casefold()
    want_base = base_mod_name(wanted).casefold()

    if want_base and cand_base == want_base:
        return SCORE_BASE_EQUAL
    if cand == want:
        return 1000
    if cand.startswith(want) or want.startswith(cand):
        return SCORE_PREFIX
    if cand.endswith(want) or want.endswith(cand):
        return SCORE_SUFFIX
    if cand_base and want_base and (cand_base in want_base or want_base in cand_base):
        return SCORE_BASE_CONTAINS
    if cand in want or want in cand:
        return SCORE_CONTAINS + _longest_aligned_run(cand, want)
    return 0


def sort_by_snapshot_names(mods: list[ModEntry], snapshot_names: list[str]) -> SnapshotSortResult:
    current = [mod.copy() for mod in sorted(mods, key=lambda m: m.order)]
    by_name = {mod.name.casefold(): mod for mod in current}
    by_base: dict[str, list[ModEntry]] = {}
    for mod in current:
        by_base.setdefault(base_mod_name(mod.name).casefold(), []).append(mod)

    result = SnapshotSortResult(mods=[], snapshot_names=list(snapshot_names))
    ordered: list[ModEntry] = []
    taken: set[int] = set()

    for wanted in snapshot_names:
        mod: ModEntry | None = None
        match_type = ""

        exact = by_name.get(wanted.casefold())
        if exact is not None and id(exact) not in taken:
            mod, match_type = exact, "exact"

        if mod is None:
            for candidate in by_base.get(base_mod_name(wanted).casefold(), []):
                if id(candidate) not in taken:
                    mod, match_type = candidate, "base name"
                    break

        if mod is None:
            best_score = 0
            for candidate in current:
                if id(candidate) in taken:
                    continue
                score = match_score(candidate.name, wanted)
                if score > best_score:
                    best_score, mod = score, candidate
            if mod is not None:
                match_type = f"partial (score: {best_score})"

        if mod is None:
            _log.warning("Could not match mod from snapshot: %r", wanted)
            result.unmatched_snapshot_names.append(wanted)
            continue

        taken.add(id(mod))
        ordered.append(mod)
        result.matches.append(SnapshotMatch(wanted, mod.name, match_type))

    ordered.extend(mod for mod in current if id(mod) not in taken)
    for index, mod in enumerate(ordered):
        mod.order = index
    result.mods = ordered
    return result


def sort_by_snapshot(mods: list[ModEntry], snapshot_path: str | Path) -> SnapshotSortResult:
    """Reorder ``mods`` to follow the deployment recorded in ``snapshot_path``."""
    names = extract_mod_order(read_snapshot_paths(snapshot_path))
    _log.info("Extracted %d unique mods from %s", len(names), Path(snapshot_path).name)
    return sort_by_snapshot_names(mods, names)
