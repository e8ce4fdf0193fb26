"""Rule store: aggregate keyword declarations per input file and per group."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from kwrulegen.rules.line_parser import GLOBAL_GROUP, is_skippable, parse_line
from kwrulegen.rules.traversal import expand_inputs

if TYPE_CHECKING:
    from kwrulegen.rules.line_parser import KeywordDeclaration, Score

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class IngestError(Exception):
    """Raised when an input file cannot contribute any rules."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


class GlobalConflict(enum.Enum):
    """What to do when a word is declared GLOBAL in more than one file."""

    LAST = "last"  # keep the most recent origin
    ERROR = "error"  # keep the first origin and report the clash


@dataclass
class FileRuleSet:
    """Declarations collected from one input file.

    Group word lists, scores and comments are kept in separate fields so
    metadata can never be mistaken for a group.
    """

    groups: dict[str, list[str]] = field(default_factory=dict)
    scored: dict[str, Score] = field(default_factory=dict)
    comments: dict[str, str] = field(default_factory=dict)

    def add_to_group(self, group: str, word: str) -> None:
        self.groups.setdefault(group, []).append(word)

    def words(self) -> set[str]:
        """Every word reachable from a group or the scored map."""
        found: set[str] = set(self.scored)
        for members in self.groups.values():
            found.update(members)
        return found


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class RuleStore:
    """In-memory aggregation of keyword declarations.

    Files are indexed by a key relative to *root* (``./`` and the root
    prefix stripped). ``global_index`` maps each GLOBAL word to the key of
    the file whose component rule it refers to.
    """

    def __init__(
        self,
        root: Path | None = None,
        *,
        global_conflict: GlobalConflict = GlobalConflict.LAST,
    ) -> None:
        self.root = (root or Path.cwd()).absolute()
        self.global_conflict = global_conflict
        self.files: dict[str, FileRuleSet] = {}
        self.global_index: dict[str, str] = {}

    def file_key(self, path: str | Path) -> str:
        """Normalize *path* into the key used for rule sets and artifacts."""
        p = Path(path)
        if p.is_absolute() and p.is_relative_to(self.root):
            p = p.relative_to(self.root)
        return p.as_posix()

    def add_declaration(self, key: str, decl: KeywordDeclaration) -> str | None:
        """Merge *decl* into the rule set for *key*.

        Returns a conflict message when the GLOBAL policy rejects the word,
        otherwise ``None``.
        """
        rules = self.files.setdefault(key, FileRuleSet())
        conflict: str | None = None
        for group in decl.groups:
            if group == GLOBAL_GROUP:
                conflict = self._register_global(decl.word, key)
            else:
                rules.add_to_group(group, decl.word)
        if decl.score:
            rules.scored[decl.word] = decl.score
        if decl.comment:
            rules.comments[decl.word] = decl.comment
        return conflict

    def _register_global(self, word: str, key: str) -> str | None:
        previous = self.global_index.get(word)
        if previous is None or previous == key:
            self.global_index[word] = key
            return None
        if self.global_conflict is GlobalConflict.ERROR:
            return f"GLOBAL word '{word}' in {key} already declared in {previous}"
        logger.warning("GLOBAL word '%s' moved from %s to %s", word, previous, key)
        self.global_index[word] = key
        return None

    def read_file(self, path: str | Path) -> int:
        """Ingest one keyword list file and return the number of declarations.

        Raises
        ------
        IngestError
            When the file cannot be read, yields no declarations, or
            declares GLOBAL words rejected by the conflict policy.
        """
        key = self.file_key(path)
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Failed to read {key}"
            raise IngestError(msg) from exc

        count = 0
        conflicts: list[str] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if is_skippable(line):
                continue
            decl = parse_line(line)
            if decl is None:
                logger.debug("Invalid input in %s, line %d: %s", key, lineno, line)
                continue
            logger.debug(
                "Found '%s' %s %s in %s", decl.word, decl.score, ",".join(decl.groups), key
            )
            conflict = self.add_declaration(key, decl)
            if conflict:
                conflicts.append(conflict)
            count += 1

        if count == 0:
            msg = f"No rules found in {key}"
            raise IngestError(msg)
        if conflicts:
            raise IngestError("; ".join(conflicts))
        return count

    def read_all(self, paths: list[str | Path]) -> list[str]:
        """Ingest every file reachable from *paths*.

        Returns one failure description per problem; the remaining inputs
        are still processed.
        """
        expanded = expand_inputs(paths, self.root)
        failures = list(expanded.failures)
        for path in expanded.files:
            try:
                self.read_file(path)
            except IngestError as exc:
                logger.debug("%s", exc)
                failures.append(str(exc))
        return failures

    def component_words(self, key: str) -> list[str]:
        """Sorted words needing component rules in the artifact for *key*.

        Includes GLOBAL words whose origin is *key*, since the GLOBAL
        threshold rules reference them there.
        """
        rules = self.files.get(key)
        words = rules.words() if rules is not None else set()
        words.update(w for w, origin in self.global_index.items() if origin == key)
        return sorted(words)

    def clear_file(self, key: str) -> None:
        """Drop the rule set for *key* and any GLOBAL words it originated."""
        if key not in self.files:
            msg = f"No rules loaded for {key}"
            raise KeyError(msg)
        del self.files[key]
        for word in [w for w, origin in self.global_index.items() if origin == key]:
            del self.global_index[word]

    def clear_all(self) -> None:
        self.files.clear()
        self.global_index.clear()
