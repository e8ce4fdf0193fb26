"""Tests for kwrulegen.rules.line_parser: keyword line grammar."""

from __future__ import annotations

import pytest

from kwrulegen.rules.line_parser import (
    GLOBAL_GROUP,
    LOCAL_GROUP,
    KeywordDeclaration,
    format_declaration,
    is_skippable,
    parse_line,
)

# ---------------------------------------------------------------------------
# Valid lines
# ---------------------------------------------------------------------------


class TestParseLine:
    def test_bare_word(self) -> None:
        assert parse_line("word") == KeywordDeclaration(word="word")

    def test_word_with_score(self) -> None:
        decl = parse_line("another 2")
        assert decl == KeywordDeclaration(word="another", score=2, groups=(LOCAL_GROUP,))
        assert isinstance(decl.score, int)

    def test_groups_upper_cased_in_order(self) -> None:
        decl = parse_line("final group LOCAL")
        assert decl is not None
        assert decl.groups == ("GROUP", "LOCAL")
        assert decl.score == 0

    def test_named_group_replaces_local(self) -> None:
        decl = parse_line("word GROUP")
        assert decl is not None
        assert decl.groups == ("GROUP",)

    def test_score_and_several_groups(self) -> None:
        decl = parse_line("word 1 GROUP GLOBAL LOCAL")
        assert decl is not None
        assert decl.score == 1
        assert decl.groups == ("GROUP", GLOBAL_GROUP, LOCAL_GROUP)

    def test_decimal_score(self) -> None:
        decl = parse_line("word 2.5")
        assert decl is not None
        assert decl.score == 2.5
        assert isinstance(decl.score, float)

    def test_word_lower_cased(self) -> None:
        decl = parse_line("Viagra 3")
        assert decl is not None
        assert decl.word == "viagra"

    def test_trailing_comment(self) -> None:
        decl = parse_line("word 2 GROUP # cheap   pills")
        assert decl is not None
        assert decl.comment == "cheap pills"
        assert decl.groups == ("GROUP",)

    def test_comment_without_space(self) -> None:
        decl = parse_line("word #note")
        assert decl is not None
        assert decl.comment == "note"

    def test_duplicate_groups_collapsed(self) -> None:
        decl = parse_line("word group GROUP")
        assert decl is not None
        assert decl.groups == ("GROUP",)

    def test_surrounding_whitespace(self) -> None:
        decl = parse_line("   word\t2  ")
        assert decl == KeywordDeclaration(word="word", score=2)

    def test_punctuation_in_word(self) -> None:
        decl = parse_line("c++ 1")
        assert decl is not None
        assert decl.word == "c++"

    def test_is_scored(self) -> None:
        assert parse_line("word 2").is_scored  # type: ignore[union-attr]
        assert not parse_line("word").is_scored  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# Invalid lines
# ---------------------------------------------------------------------------


class TestInvalidLines:
    @pytest.mark.parametrize(
        "line",
        [
            "word 1 2",
            "2 bad",
            "",
            "   ",
            "# comment",
            "   # indented comment",
            "word GROUP-1",
            "word 2 3 GROUP",
            "3",
        ],
    )
    def test_rejected(self, line: str) -> None:
        assert parse_line(line) is None

    def test_rejection_logged_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("DEBUG", logger="kwrulegen.rules.line_parser"):
            parse_line("word 1 2")
        assert "Invalid clauses" in caplog.text


class TestIsSkippable:
    def test_blank_and_comment(self) -> None:
        assert is_skippable("")
        assert is_skippable("  \t")
        assert is_skippable("# note")
        assert is_skippable("  # note")

    def test_declaration(self) -> None:
        assert not is_skippable("word")


# ---------------------------------------------------------------------------
# Canonical form
# ---------------------------------------------------------------------------


class TestFormatDeclaration:
    def test_canonical_line(self) -> None:
        decl = KeywordDeclaration(word="word", score=2, comment="note", groups=("GROUP", "LOCAL"))
        assert format_declaration(decl) == "word 2 GROUP LOCAL # note"

    @pytest.mark.parametrize(
        "line",
        [
            "word",
            "another 2",
            "final group LOCAL",
            "word 1.5 GROUP GLOBAL # some   comment",
        ],
    )
    def test_reparse_gives_same_declaration(self, line: str) -> None:
        decl = parse_line(line)
        assert decl is not None
        assert parse_line(format_declaration(decl)) == decl
