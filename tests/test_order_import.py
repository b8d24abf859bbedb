"""
Tests for reordering mods from a Vortex deployment snapshot.
"""

import json
from pathlib import Path

import pytest

from mod_entry import ModEntry
from order_import import (
    SCORE_BASE_CONTAINS,
    SCORE_BASE_EQUAL,
    SCORE_PREFIX,
    SCORE_SUFFIX,
    SnapshotFormatError,
    base_mod_name,
    extract_mod_order,
    match_score,
    read_snapshot_paths,
    sort_by_snapshot,
    sort_by_snapshot_names,
)

SML_OLD = "SimpleModLoader-304-0-4-9-1748465595"
SML_NEW = "SimpleModLoader-304-0-5-0-1750000000"

SNAPSHOT_PATHS = [
    "AAA-UE4SS-rev80/ue4ss/UE4SS.dll",
    "AAA-UE4SS-rev80/ue4ss/Mods/mods.txt",
    f"AAB-{SML_NEW}/Paks/sml.pak",
    "AAC-Better Sprint/Paks/bs.pak",
]


def entries(*names):
    return [ModEntry(source_path=Path("/vortex") / n, name=n, order=i) for i, n in enumerate(names)]


def discovered():
    return entries("Better Sprint (v2.0)", SML_OLD, "UE4SS-rev75", "Unrelated Mod")


# ── reading ──────────────────────────────────────────────────────────────────

def test_read_txt_snapshot(tmp_path):
    path = tmp_path / "snapshot.txt"
    path.write_text(
        "[\n" + "\n".join(f'  "{p}",' for p in SNAPSHOT_PATHS) + "\n]\n",
        encoding="utf-8",
    )
    assert read_snapshot_paths(path) == SNAPSHOT_PATHS


def test_read_json_list(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(SNAPSHOT_PATHS), encoding="utf-8")
    assert read_snapshot_paths(path) == SNAPSHOT_PATHS


@pytest.mark.parametrize("key", ["Files", "files"])
def test_read_json_object(tmp_path, key):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps({key: SNAPSHOT_PATHS, "Version": 2}), encoding="utf-8")
    assert read_snapshot_paths(path) == SNAPSHOT_PATHS


@pytest.mark.parametrize(
    "filename, content",
    [
        ("empty.json", "[]"),
        ("other.json", '{"Entries": ["a/b"]}'),
        ("broken.json", "{not json"),
        ("nopaths.txt", "hello\nworld\n"),
    ],
)
def test_unreadable_snapshots_rejected(tmp_path, filename, content):
    path = tmp_path / filename
    path.write_text(content, encoding="utf-8")
    with pytest.raises(SnapshotFormatError):
        read_snapshot_paths(path)


def test_extract_mod_order():
    paths = SNAPSHOT_PATHS + [
        "A-TooShort/x.pak",
        "123-Numeric/x.pak",
        "NoDash/x.pak",
        "loose.pak",
        "AAD-better sprint/dup.pak",
        "AAE-Backslash Mod\\Paks\\x.pak",
    ]
    assert extract_mod_order(paths) == ["UE4SS-rev80", SML_NEW, "Better Sprint", "Backslash Mod"]


# ── matching ─────────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "name, expected",
    [
        ("UE4SS-rev75", "UE4SS"),
        ("Better Sprint (v2.0)", "Better Sprint"),
        ("Mod (1.2.3)", "Mod"),
        ("Mod-1-2-3", "Mod"),
        (SML_OLD, "SimpleModLoader-304"),
        ("Plain", "Plain"),
    ],
)
def test_base_mod_name(name, expected):
    assert base_mod_name(name) == expected


def test_match_scores():
    assert match_score("Better Sprint (v2.0)", "Better Sprint") == SCORE_BASE_EQUAL
    assert match_score(SML_OLD, "SimpleMod") == SCORE_PREFIX
    assert match_score("Sprint Fix", "Better Sprint Fix") == SCORE_SUFFIX
    assert match_score("Stamina (v1.0)", "More Stamina Mod") == SCORE_BASE_CONTAINS
    assert match_score("Unrelated Mod", "UE4SS") == 0


def test_sort_by_snapshot_names():
    result = sort_by_snapshot_names(discovered(), ["UE4SS-rev80", SML_NEW, "Better Sprint"])

    assert [(m.name, m.order) for m in result.mods] == [
        ("UE4SS-rev75", 0),
        (SML_OLD, 1),
        ("Better Sprint (v2.0)", 2),
        ("Unrelated Mod", 3),
    ]
    assert [(m.snapshot_name, m.mod_name, m.match_type) for m in result.matches] == [
        ("UE4SS-rev80", "UE4SS-rev75", "base name"),
        (SML_NEW, SML_OLD, "base name"),
        ("Better Sprint", "Better Sprint (v2.0)", "base name"),
    ]
    assert result.unmatched_snapshot_names == []


def test_exact_and_partial_matches_and_unmatched():
    mods = entries("Alpha", SML_OLD, "Gamma")

    result = sort_by_snapshot_names(mods, ["gamma", "SimpleMod", "Nothing Like It"])

    assert [m.name for m in result.mods] == ["Gamma", SML_OLD, "Alpha"]
    assert result.matches[0].match_type == "exact"
    assert result.matches[1].match_type == f"partial (score: {SCORE_PREFIX})"
    assert result.unmatched_snapshot_names == ["Nothing Like It"]


def test_each_mod_taken_once():
    result = sort_by_snapshot_names(entries("Mod-1-0-0"), ["Mod-1-0-0", "Mod-2-0-0"])

    assert len(result.matches) == 1
    assert result.unmatched_snapshot_names == ["Mod-2-0-0"]


def test_sort_keeps_flags_and_does_not_mutate_input():
    mods = discovered()
    mods[3].is_enabled = False

    result = sort_by_snapshot_names(mods, ["Unrelated Mod"])

    assert result.mods[0].name == "Unrelated Mod"
    assert not result.mods[0].is_enabled
    assert mods[3].order == 3


def test_sort_by_snapshot_file(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps({"Files": SNAPSHOT_PATHS}), encoding="utf-8")

    result = sort_by_snapshot(discovered(), path)

    assert [m.name for m in result.mods] == [
        "UE4SS-rev75",
        SML_OLD,
        "Better Sprint (v2.0)",
        "Unrelated Mod",
    ]


@pytest.mark.parametrize("filename", ["snapshot.json", "snapshot.txt"])
def test_non_utf8_snapshot_rejected(tmp_path, filename):
    path = tmp_path / filename
    path.write_bytes(b'["AAA-Mod/\xff.pak"]')
    with pytest.raises(SnapshotFormatError):
        read_snapshot_paths(path)
