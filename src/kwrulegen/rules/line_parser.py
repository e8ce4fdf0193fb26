"""Keyword list grammar: turn one text line into a keyword declaration.

Grammar::

    word [score] [GROUP ...] [# comment]

Examples::

    word                        # LOCAL group, no standalone score
    word 2                      # LOCAL group, scores 2
    word GROUP                  # GROUP group only, no score
    word 1 GROUP GLOBAL LOCAL   # three groups, scores 1
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

LOCAL_GROUP = "LOCAL"
GLOBAL_GROUP = "GLOBAL"

_NUMBER_RE = re.compile(r"^\d+(?:\.\d+)?$")
_WORD_RE = re.compile(r"^[^\d\s#]\S*$")
_GROUP_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_COMMENT_PREFIX_RE = re.compile(r"^#\s*")

Score = int | float

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeywordDeclaration:
    """A single parsed keyword line."""

    word: str
    score: Score = 0
    comment: str = ""
    groups: tuple[str, ...] = (LOCAL_GROUP,)

    @property
    def is_scored(self) -> bool:
        """True when the declaration carries a standalone (non-zero) score."""
        return bool(self.score)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def is_skippable(line: str) -> bool:
    """Return True for blank lines and ``#`` comment lines."""
    stripped = line.strip()
    return not stripped or stripped.startswith("#")


def _to_score(text: str) -> Score:
    if "." in text:
        return float(text)
    return int(text)


def parse_line(line: str) -> KeywordDeclaration | None:
    """Parse one keyword line.

    Returns ``None`` when the line is not a declaration: blank, a comment,
    or malformed. Malformed lines are reported at DEBUG level only.
    """
    if is_skippable(line):
        return None

    word: str | None = None
    score: Score | None = None
    comment: str | None = None
    groups: list[str] = []
    invalid: list[str] = []

    tokens = line.split()
    for index, token in enumerate(tokens):
        if token.startswith("#"):
            # Everything from here to end of line is the comment.
            comment = _COMMENT_PREFIX_RE.sub("", " ".join(tokens[index:]))
            break
        if _NUMBER_RE.match(token):
            if word is None or score is not None:
                invalid.append(token)
            else:
                score = _to_score(token)
        elif word is None:
            if _WORD_RE.match(token):
                word = token.lower()
            else:
                invalid.append(token)
        elif _GROUP_RE.match(token):
            group = token.upper()
            if group not in groups:
                groups.append(group)
        else:
            invalid.append(token)

    if invalid:
        logger.debug("Invalid clauses %s in line %r", ", ".join(repr(t) for t in invalid), line)
        return None
    if word is None:
        logger.debug("No keyword found in line %r", line)
        return None

    return KeywordDeclaration(
        word=word,
        score=score if score is not None else 0,
        comment=comment or "",
        groups=tuple(groups) if groups else (LOCAL_GROUP,),
    )


def format_declaration(decl: KeywordDeclaration) -> str:
    """Render *decl* as a canonical keyword line that parses back to *decl*."""
    parts = [decl.word]
    if decl.score:
        parts.append(str(decl.score))
    parts.extend(decl.groups)
    if decl.comment:
        parts.append(f"# {decl.comment}")
    return " ".join(parts)
