"""Output buffers and the filesystem writer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)


class OutputBuffers:
    """Ordered text lines per output path.

    Every caller asking for the same path gets the same list, so logical
    artifacts that alias one file interleave in generation order.
    """

    def __init__(self) -> None:
        self._buffers: dict[str, list[str]] = {}

    def for_path(self, path: str) -> list[str]:
        return self._buffers.setdefault(path, [])

    def __getitem__(self, path: str) -> list[str]:
        return self._buffers[path]

    def __contains__(self, path: object) -> bool:
        return path in self._buffers

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._buffers))

    def __len__(self) -> int:
        return len(self._buffers)

    def text(self, path: str) -> str:
        """The full file content that would be written for *path*."""
        return "".join(self._buffers.get(path, []))

    def non_empty(self) -> list[str]:
        """Paths with something to write, in load order."""
        return [p for p in sorted(self._buffers) if self._buffers[p]]


def create_dir(directory: str | Path) -> str | None:
    """Create *directory* (and parents). Returns an error message on failure."""
    try:
        Path(directory).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return f"Failed to mkdir '{directory}': {exc}"
    return None


def clean_dir(paths: Iterable[str]) -> tuple[list[str], list[str]]:
    """Remove stale output files at *paths*; returns ``(removed, errors)``.

    A file that cannot be deleted does not stop the remaining removals.
    """
    removed: list[str] = []
    errors: list[str] = []
    for path in sorted(set(paths)):
        target = Path(path)
        if not target.is_file():
            continue
        logger.debug("Removing old file %s", path)
        try:
            target.unlink()
        except OSError as exc:
            logger.debug("Could not remove %s: %s", path, exc)
            errors.append(f"Could not remove {path}")
            continue
        removed.append(path)
    return removed, errors


def write_file(path: str, lines: list[str]) -> str | None:
    """Write *lines* verbatim to *path*, overwriting it.

    An empty buffer writes nothing. Returns an error message on failure.
    """
    if not lines:
        return None
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as fh:
            fh.writelines(lines)
    except OSError as exc:
        logger.debug("Could not write %s: %s", path, exc)
        return f"Could not open {path} for writing"
    return None


def write_buffers(buffers: OutputBuffers) -> tuple[list[str], list[str]]:
    """Flush every non-empty buffer; returns ``(written, errors)``.

    A failed file does not stop the remaining writes.
    """
    written: list[str] = []
    errors: list[str] = []
    for path in buffers.non_empty():
        error = write_file(path, buffers[path])
        if error:
            errors.append(error)
        else:
            written.append(path)
    return written, errors
