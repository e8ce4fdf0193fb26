"""Shared test fixtures for kwrulegen."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from kwrulegen.config import GeneratorConfig

if TYPE_CHECKING:
    from collections.abc import Callable


@pytest.fixture()
def write_list(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a helper that writes a keyword list under ``tmp_path``."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def readme_list(write_list: Callable[[str, str], Path]) -> Path:
    """The keyword list from the README: three words, one scored, one grouped."""
    return write_list("example.txt", "word\nanother 2\nfinal group LOCAL\n")


@pytest.fixture()
def static_config() -> Callable[..., GeneratorConfig]:
    """Config factory with a fixed, never-touched output directory."""

    def _make(**overrides: object) -> GeneratorConfig:
        values: dict[str, object] = {"root": Path("/srv"), "dir": Path("/srv/out")}
        values.update(overrides)
        return GeneratorConfig(**values)  # type: ignore[arg-type]

    return _make
