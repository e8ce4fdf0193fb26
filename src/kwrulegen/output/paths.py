"""Output path resolution: which artifact lands in which ``.cf`` file.

SpamAssassin loads configuration files in lexicographic order, and a rule
referenced by a ``meta`` must already be defined. GLOBAL rules reference
component rules from every per-file artifact, so the GLOBAL artifact has
to sort after all of them::

    50_KW_EXAMPLE.cf
    50_KW_EXAMPLE_SCORES.cf
    51_KW.cf
    51_KW_SCORES.cf
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from kwrulegen.config import GeneratorConfig

logger = logging.getLogger(__name__)

RULE_EXTENSION = ".cf"
SCORES = "SCORES"
SCORES_SUFFIX = f"_{SCORES}"
MAX_PRIORITY = 99

_LEADING_PRIORITY_RE = re.compile(r"^(\d\d)")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class NamingError(Exception):
    """Raised when no valid, collision-free output name can be chosen."""


# ---------------------------------------------------------------------------
# Keys and helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class ArtifactKey:
    """Logical artifact: the rules or scores of one input file, or of GLOBAL."""

    source: str | None  # input file key; None for GLOBAL
    scores: bool = False

    @property
    def is_global(self) -> bool:
        return self.source is None

    def __str__(self) -> str:
        base = "GLOBAL" if self.source is None else self.source
        return f"{base}{SCORES_SUFFIX}" if self.scores else base


GLOBAL = ArtifactKey(None)
GLOBAL_SCORES = ArtifactKey(None, scores=True)

ArtifactMap = dict[ArtifactKey, str]


def sorts_after(candidate: str, last: str | None) -> bool:
    """Return True when *candidate* is loaded after *last*.

    The order is plain code-point string comparison over full paths, which
    is the order SpamAssassin reads a configuration directory in.
    """
    return last is None or candidate > last


def file_segment(key: str) -> str:
    """Upper-cased file stem used in artifact names: ``dir/list.txt`` -> ``DIR_LIST``."""
    stem = PurePosixPath(key).with_suffix("").as_posix()
    return stem.replace("/", "_").upper()


def insert_scores_suffix(path: str) -> str:
    """``dir/50_KW.cf`` -> ``dir/50_KW_SCORES.cf``."""
    root, ext = os.path.splitext(path)
    return f"{root}{SCORES_SUFFIX}{ext}"


def double_first_underscore(path: str) -> str:
    """Double the first underscore of the file name, leaving the directory alone."""
    head, tail = os.path.split(path)
    return os.path.join(head, tail.replace("_", "__", 1))


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class PathResolver:
    """Compute and hold the artifact map for one generation pass."""

    def __init__(self, config: GeneratorConfig) -> None:
        self.config = config
        self.artifacts: ArtifactMap = {}

    # -- naming primitives --------------------------------------------------

    @property
    def directory(self) -> str:
        return str(self.config.output_dir)

    def _name(self, priority: int, *parts: str) -> str:
        return f"{self.directory}/{priority:02d}_{'_'.join(parts)}{RULE_EXTENSION}"

    @property
    def shared_path(self) -> str:
        """``<dir>/<priority>_<ID>.cf``: the single-file and canonical GLOBAL path."""
        return self._name(self.config.priority, self.config.id)

    def _taken(self, path: str, *, exclude: ArtifactKey) -> bool:
        return any(p == path for k, p in self.artifacts.items() if k != exclude)

    def last_file_path(self) -> str | None:
        """Lexicographically last per-file rules path resolved so far."""
        paths = [p for k, p in self.artifacts.items() if not k.is_global and not k.scores]
        return max(paths) if paths else None

    # -- per-file artifacts -------------------------------------------------

    def set_outfile(self, source: str, path: str) -> None:
        """Pin the rules path for *source*."""
        self.artifacts[ArtifactKey(source)] = path

    def set_scores_outfile(self, source: str, path: str) -> None:
        """Pin the scores path for *source*."""
        self.artifacts[ArtifactKey(source, scores=True)] = path

    def outfile(self, source: str) -> str:
        """Rules path for input file *source*."""
        key = ArtifactKey(source)
        if key not in self.artifacts:
            if self.config.single_outfile:
                path = self.shared_path
            else:
                path = self._name(self.config.priority, self.config.id, file_segment(source))
            self.artifacts[key] = path
        return self.artifacts[key]

    def scores_outfile(self, source: str) -> str:
        """Scores path for input file *source*; the rules path when scores are joined."""
        key = ArtifactKey(source, scores=True)
        if key not in self.artifacts:
            if self.config.join_scores:
                path = self.outfile(source)
            elif self.config.single_outfile:
                path = insert_scores_suffix(self.shared_path)
            else:
                path = insert_scores_suffix(self.outfile(source))
            self.artifacts[key] = path
        return self.artifacts[key]

    # -- GLOBAL artifacts ---------------------------------------------------

    def global_outfile(self) -> str:
        """Rules path for GLOBAL, sorted after every per-file rules path.

        Raises
        ------
        NamingError
            When every fallback would load before a per-file artifact.
        """
        if GLOBAL in self.artifacts:
            return self.artifacts[GLOBAL]
        path = self._resolve_global()
        logger.debug("GLOBAL rules -> %s", path)
        self.artifacts[GLOBAL] = path
        return path

    def _resolve_global(self) -> str:
        if self.config.single_outfile:
            return self.shared_path

        last = self.last_file_path()
        canonical = self.shared_path
        if sorts_after(canonical, last) and not self._taken(canonical, exclude=GLOBAL):
            return canonical

        if self.config.priority < MAX_PRIORITY:
            bumped = self._name(self.config.priority + 1, self.config.id)
            if not self._taken(bumped, exclude=GLOBAL):
                return bumped

        doubled = double_first_underscore(canonical)
        if sorts_after(doubled, last) and not self._taken(doubled, exclude=GLOBAL):
            return doubled

        msg = "Cannot determine a valid GLOBAL output file"
        raise NamingError(msg)

    def global_scores_outfile(self) -> str:
        """Scores path for GLOBAL, sorted at or after the GLOBAL rules path.

        Raises
        ------
        NamingError
            When no candidate sorts after GLOBAL without colliding.
        """
        if GLOBAL_SCORES in self.artifacts:
            return self.artifacts[GLOBAL_SCORES]
        path = self._resolve_global_scores(self.global_outfile())
        logger.debug("GLOBAL scores -> %s", path)
        self.artifacts[GLOBAL_SCORES] = path
        return path

    def _resolve_global_scores(self, global_path: str) -> str:
        if self.config.join_scores:
            return global_path
        if self.config.single_outfile:
            return insert_scores_suffix(self.shared_path)

        candidates = [
            insert_scores_suffix(global_path),
            self._name(self.config.priority, self.config.id, SCORES),
        ]
        match = _LEADING_PRIORITY_RE.match(os.path.basename(global_path))
        if match and int(match.group(1)) < MAX_PRIORITY:
            candidates.append(
                self._name(int(match.group(1)) + 1, self.config.id, SCORES)
            )
        candidates.append(double_first_underscore(global_path))

        for candidate in candidates:
            if sorts_after(candidate, global_path) and not self._taken(
                candidate, exclude=GLOBAL_SCORES
            ):
                return candidate

        msg = "Cannot determine a valid GLOBAL output file for scores"
        raise NamingError(msg)

    # -- whole map ----------------------------------------------------------

    def resolve_all(self, sources: Iterable[str], *, include_global: bool = True) -> ArtifactMap:
        """Resolve every per-file artifact, then GLOBAL, then check uniqueness."""
        for source in sources:
            self.outfile(source)
            self.scores_outfile(source)
        if include_global:
            self.global_outfile()
            self.global_scores_outfile()
        self.validate()
        return self.artifacts

    def _alias_group(self, key: ArtifactKey) -> tuple[str | None, bool]:
        separate_scores = key.scores and not self.config.join_scores
        if self.config.single_outfile:
            return ("", separate_scores)
        return (key.source, separate_scores)

    def validate(self) -> None:
        """Fail when two logical artifacts share a path without being meant to.

        Raises
        ------
        NamingError
            On any unintended path collision.
        """
        owners: dict[str, tuple[ArtifactKey, tuple[str | None, bool]]] = {}
        for key, path in sorted(self.artifacts.items(), key=lambda item: str(item[0])):
            group = self._alias_group(key)
            if path in owners and owners[path][1] != group:
                other = owners[path][0]
                msg = f"Output file {path} would be shared by {other} and {key}"
                raise NamingError(msg)
            owners.setdefault(path, (key, group))

    def unique_paths(self) -> list[str]:
        """Distinct output paths in load order."""
        return sorted(set(self.artifacts.values()))
