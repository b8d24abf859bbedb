"""
Tests for file enumeration and required-state planning.
"""

import planner
from file_enumerator import iter_relative_files
from planner import build_required_state, path_key
from tests.conftest import write_files


# ── enumeration ──────────────────────────────────────────────────────────────

def test_enumerates_nested_files_sorted(tmp_path):
    root = write_files(
        tmp_path / "mod",
        {"b.pak": "b", "a.pak": "a", "Paks/z.utoc": "z", "Paks/Sub/y.ucas": "y"},
    )

    files = list(iter_relative_files(root))

    assert files == ["a.pak", "b.pak", "Paks/z.utoc", "Paks/Sub/y.ucas"]


def test_enumeration_is_restartable(tmp_path):
    root = write_files(tmp_path / "mod", {"a.pak": "a", "sub/b.pak": "b"})
    assert list(iter_relative_files(root)) == list(iter_relative_files(root))


def test_missing_root_yields_nothing(tmp_path):
    assert list(iter_relative_files(tmp_path / "gone")) == []


def test_empty_directories_are_not_listed(tmp_path):
    root = tmp_path / "mod"
    (root / "empty" / "deeper").mkdir(parents=True)
    assert list(iter_relative_files(root)) == []


# ── planning ─────────────────────────────────────────────────────────────────

def test_required_state_for_enabled_mods(dirs, make_mod):
    _, target = dirs
    a = make_mod("ModA", {"a.pak": "a", "sub/b.pak": "b"}, order=0)
    b = make_mod("ModB", {"c.pak": "c"}, order=1)

    state = build_required_state([a, b], target)

    assert state.required_directories == {
        path_key(target / "AAA-ModA"),
        path_key(target / "AAB-ModB"),
    }
    assert state.required_files == {
        path_key(target / "AAA-ModA" / "a.pak"),
        path_key(target / "AAA-ModA" / "sub" / "b.pak"),
        path_key(target / "AAB-ModB" / "c.pak"),
    }


def test_disabled_mods_and_files_excluded(dirs, make_mod):
    _, target = dirs
    a = make_mod("ModA", {"a.pak": "a", "b.pak": "b"}, order=0, file_overrides={"b.pak": False})
    b = make_mod("ModB", {"c.pak": "c"}, order=1, is_enabled=False)

    state = build_required_state([a, b], target)

    assert state.contains_directory(target / "AAA-ModA")
    assert not state.contains_directory(target / "AAB-ModB")
    assert state.contains_file(target / "AAA-ModA" / "a.pak")
    assert not state.contains_file(target / "AAA-ModA" / "b.pak")


def test_membership_is_case_insensitive(dirs, make_mod):
    _, target = dirs
    mod = make_mod("ModA", {"Data.pak": "a"})

    state = build_required_state([mod], target)

    assert state.contains_directory(target / "aaa-moda")
    assert state.contains_file(target / "AAA-MODA" / "data.PAK")


def test_missing_source_still_requires_directory(dirs, make_mod):
    _, target = dirs
    mod = make_mod("ModA", {"a.pak": "a"})
    mod.source_path = mod.source_path.parent / "vanished"

    state = build_required_state([mod], target)

    assert state.contains_directory(target / "AAA-ModA")
    assert not state.required_files


def test_plan_independent_of_input_order(dirs, make_mod):
    _, target = dirs
    a = make_mod("ModA", {"a.pak": "a"}, order=0)
    b = make_mod("ModB", {"b.pak": "b"}, order=1)

    assert build_required_state([a, b], target) == build_required_state([b, a], target)


def test_listing_failure_marks_directory_incomplete(dirs, make_mod, monkeypatch):
    _, target = dirs
    a = make_mod("ModA", {"a.pak": "a"}, order=0)
    b = make_mod("ModB", {"b.pak": "b"}, order=1)

    def failing_for_mod_a(root):
        if root == a.source_path:
            yield "a.pak"
            raise PermissionError("denied")
        yield from iter_relative_files(root)

    monkeypatch.setattr(planner, "iter_relative_files", failing_for_mod_a)
    state = build_required_state([a, b], target)

    assert state.incomplete_directories == {path_key(target / "AAA-ModA")}
    assert state.contains_file(target / "AAA-ModA" / "a.pak")
    assert state.contains_file(target / "AAB-ModB" / "b.pak")
