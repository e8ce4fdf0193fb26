"""Input expansion: files, directories, symlinks, and glob patterns."""

from __future__ import annotations

import glob
import logging
import os
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class ExpandedInputs:
    """Result of expanding a list of input paths."""

    files: list[Path] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)


def _fail(result: ExpandedInputs, message: str) -> None:
    logger.debug(message)
    result.failures.append(message)


def _escapes_root(link: Path, root: Path) -> bool:
    """Return True when the target of symlink *link* lies outside *root*."""
    raw = os.readlink(link)
    if os.path.isabs(raw):
        stripped = raw.removeprefix(f"{root}{os.sep}")
        return stripped == raw
    target = Path(os.path.realpath(link.parent / raw))
    return not target.is_relative_to(os.path.realpath(root))


def _link_target(link: Path) -> Path:
    raw = os.readlink(link)
    if os.path.isabs(raw):
        return Path(raw)
    return link.parent / raw


def expand_inputs(paths: list[str | Path], root: Path | None = None) -> ExpandedInputs:
    """Expand *paths* into the regular files they denote.

    Directories are walked (hidden entries skipped, children in sorted
    order), symlinks are followed only when their target stays inside
    *root*, and anything that does not exist is tried as a glob pattern.
    Problems are collected in ``failures``; expansion carries on past them.
    """
    root = (root or Path.cwd()).absolute()
    result = ExpandedInputs()
    seen: set[Path] = set()
    seen_links: set[Path] = set()
    pending: deque[Path] = deque(Path(p) for p in paths)

    while pending:
        path = pending.popleft()

        if path.is_symlink():
            link_id = path.absolute()
            if link_id in seen_links:
                logger.debug("Skipping symlink loop at %s", path)
                continue
            seen_links.add(link_id)
            if _escapes_root(path, root):
                _fail(result, f"Symlink outside of working root: {path}")
                continue
            pending.appendleft(_link_target(path))
            continue

        if not path.exists():
            matches = sorted(glob.glob(str(path))) if glob.has_magic(str(path)) else []
            if matches:
                pending.extendleft(Path(m) for m in reversed(matches))
            elif glob.has_magic(str(path)):
                _fail(result, f"No files match {path}")
            else:
                _fail(result, f"{path} does not exist")
            continue

        resolved = path.resolve()
        if resolved in seen:
            logger.debug("Skipping already visited %s", path)
            continue
        seen.add(resolved)

        if path.is_dir():
            children = sorted(c for c in path.iterdir() if not c.name.startswith("."))
            pending.extendleft(reversed(children))
        elif path.is_file():
            result.files.append(path)
        else:
            _fail(result, f"{path} is not a regular file")

    return result
