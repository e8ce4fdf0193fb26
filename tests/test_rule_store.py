"""Tests for kwrulegen.rules.store: per-file and GLOBAL aggregation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from kwrulegen.rules.line_parser import parse_line
from kwrulegen.rules.store import FileRuleSet, GlobalConflict, IngestError, RuleStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def _add(store: RuleStore, key: str, *lines: str) -> list[str | None]:
    results = []
    for line in lines:
        decl = parse_line(line)
        assert decl is not None, line
        results.append(store.add_declaration(key, decl))
    return results


# ---------------------------------------------------------------------------
# FileRuleSet
# ---------------------------------------------------------------------------


class TestFileRuleSet:
    def test_group_keeps_duplicates_in_order(self) -> None:
        rules = FileRuleSet()
        for word in ("b", "a", "b", "c"):
            rules.add_to_group("LOCAL", word)
        assert rules.groups["LOCAL"] == ["b", "a", "b", "c"]

    def test_words_includes_scored_only(self) -> None:
        rules = FileRuleSet(scored={"x": 2})
        rules.add_to_group("G", "y")
        assert rules.words() == {"x", "y"}


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


class TestAddDeclaration:
    def test_readme_example(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path)
        _add(store, "example.txt", "word", "another 2", "final group LOCAL")
        rules = store.files["example.txt"]
        assert rules.groups == {"LOCAL": ["word", "another", "final"], "GROUP": ["final"]}
        assert rules.scored == {"another": 2}
        assert rules.comments == {}

    def test_group_only_word_not_local(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path)
        _add(store, "a.txt", "word GROUP", "other")
        rules = store.files["a.txt"]
        assert rules.groups["LOCAL"] == ["other"]
        assert rules.groups["GROUP"] == ["word"]

    def test_global_goes_to_index_not_groups(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path)
        _add(store, "a.txt", "shared GLOBAL")
        assert store.global_index == {"shared": "a.txt"}
        assert "GLOBAL" not in store.files["a.txt"].groups
        assert store.component_words("a.txt") == ["shared"]

    def test_zero_score_and_empty_comment_do_not_overwrite(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path)
        _add(store, "a.txt", "word 3 # first", "word GROUP")
        rules = store.files["a.txt"]
        assert rules.scored == {"word": 3}
        assert rules.comments == {"word": "first"}

    def test_later_score_wins(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path)
        _add(store, "a.txt", "word 3", "word 5")
        assert store.files["a.txt"].scored == {"word": 5}


class TestGlobalConflict:
    def test_last_origin_wins_by_default(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        store = RuleStore(tmp_path)
        _add(store, "a.txt", "shared GLOBAL")
        with caplog.at_level("WARNING", logger="kwrulegen.rules.store"):
            results = _add(store, "b.txt", "shared GLOBAL")
        assert results == [None]
        assert store.global_index == {"shared": "b.txt"}
        assert "moved from a.txt to b.txt" in caplog.text

    def test_error_policy_keeps_first_origin(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path, global_conflict=GlobalConflict.ERROR)
        _add(store, "a.txt", "shared GLOBAL")
        results = _add(store, "b.txt", "shared GLOBAL")
        assert results == ["GLOBAL word 'shared' in b.txt already declared in a.txt"]
        assert store.global_index == {"shared": "a.txt"}

    def test_same_file_redeclaration_is_not_a_conflict(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path, global_conflict=GlobalConflict.ERROR)
        assert _add(store, "a.txt", "shared GLOBAL", "shared 2 GLOBAL") == [None, None]


# ---------------------------------------------------------------------------
# File ingestion
# ---------------------------------------------------------------------------


class TestReadFile:
    def test_counts_declarations(
        self, tmp_path: Path, readme_list: Path
    ) -> None:
        store = RuleStore(tmp_path)
        assert store.read_file(readme_list) == 3
        assert "example.txt" in store.files

    def test_skips_comments_and_invalid_lines(
        self, tmp_path: Path, write_list: Callable[[str, str], Path]
    ) -> None:
        path = write_list("a.txt", "# header\n\nword\n2 bad\nword 1 2\nother 1\n")
        store = RuleStore(tmp_path)
        assert store.read_file(path) == 2
        assert store.component_words("a.txt") == ["other", "word"]

    def test_nested_key_relative_to_root(
        self, tmp_path: Path, write_list: Callable[[str, str], Path]
    ) -> None:
        path = write_list("lists/drugs.txt", "pill\n")
        store = RuleStore(tmp_path)
        store.read_file(path)
        assert list(store.files) == ["lists/drugs.txt"]

    def test_no_rules(self, tmp_path: Path, write_list: Callable[[str, str], Path]) -> None:
        path = write_list("empty.txt", "# nothing here\n\n2 bad\n")
        store = RuleStore(tmp_path)
        with pytest.raises(IngestError, match=r"No rules found in empty\.txt"):
            store.read_file(path)

    def test_unreadable(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path)
        with pytest.raises(IngestError, match=r"Failed to read missing\.txt"):
            store.read_file(tmp_path / "missing.txt")

    def test_conflict_reported_after_file_is_read(
        self, tmp_path: Path, write_list: Callable[[str, str], Path]
    ) -> None:
        a = write_list("a.txt", "shared GLOBAL\n")
        b = write_list("b.txt", "shared GLOBAL\nkept\n")
        store = RuleStore(tmp_path, global_conflict=GlobalConflict.ERROR)
        store.read_file(a)
        with pytest.raises(IngestError, match="already declared in a.txt"):
            store.read_file(b)
        assert store.component_words("b.txt") == ["kept"]


class TestReadAll:
    def test_collects_failures_and_continues(
        self, tmp_path: Path, write_list: Callable[[str, str], Path]
    ) -> None:
        good = write_list("good.txt", "word\n")
        empty = write_list("empty.txt", "\n")
        store = RuleStore(tmp_path)
        failures = store.read_all([empty, tmp_path / "missing.txt", good])
        assert list(store.files) == ["good.txt"]
        assert len(failures) == 2
        assert any("No rules found in empty.txt" in f for f in failures)
        assert any("does not exist" in f for f in failures)


# ---------------------------------------------------------------------------
# Component words and clearing
# ---------------------------------------------------------------------------


class TestComponentWords:
    def test_global_words_belong_to_their_origin(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path)
        _add(store, "a.txt", "shared GLOBAL", "alpha")
        _add(store, "b.txt", "beta")
        assert store.component_words("a.txt") == ["alpha", "shared"]
        assert store.component_words("b.txt") == ["beta"]

    def test_sorted_and_distinct(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path)
        _add(store, "a.txt", "zeta", "alpha 2", "zeta GROUP")
        assert store.component_words("a.txt") == ["alpha", "zeta"]

    def test_unknown_file(self, tmp_path: Path) -> None:
        assert RuleStore(tmp_path).component_words("nope.txt") == []


class TestClear:
    def test_clear_file_drops_global_origins(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path)
        _add(store, "a.txt", "shared GLOBAL")
        _add(store, "b.txt", "other GLOBAL")
        store.clear_file("a.txt")
        assert list(store.files) == ["b.txt"]
        assert store.global_index == {"other": "b.txt"}

    def test_clear_unknown_file(self, tmp_path: Path) -> None:
        with pytest.raises(KeyError):
            RuleStore(tmp_path).clear_file("nope.txt")

    def test_clear_all(self, tmp_path: Path) -> None:
        store = RuleStore(tmp_path)
        _add(store, "a.txt", "shared GLOBAL", "word")
        store.clear_all()
        assert store.files == {}
        assert store.global_index == {}
