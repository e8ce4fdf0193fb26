"""Generator configuration: defaults, YAML file loading, and overrides."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from kwrulegen.rules.store import GlobalConflict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "kwrulegen.yml"
DEFAULT_ID = "KW"
DEFAULT_PRIORITY = 50
DEFAULT_GROUP_SCORE = 0.01


class ConfigError(Exception):
    """Raised when a configuration value is invalid."""


@dataclass(frozen=True)
class GeneratorConfig:
    """Options recognised by the generator.

    ``dir`` defaults to ``<root>/<id>`` when not set.
    """

    id: str = DEFAULT_ID
    priority: int = DEFAULT_PRIORITY
    debug: bool = False
    single_outfile: bool = False
    join_scores: bool = True
    dir: Path | None = None
    root: Path = dataclasses.field(default_factory=Path.cwd)
    global_conflict: GlobalConflict = GlobalConflict.LAST
    group_score: float = DEFAULT_GROUP_SCORE

    def __post_init__(self) -> None:
        ident = str(self.id).upper()
        if not ident or not ident[0].isalpha():
            msg = f"id must start with a letter, got '{self.id}'"
            raise ConfigError(msg)
        if not ident.replace("_", "").isalnum():
            msg = f"id may only contain letters, digits and '_', got '{self.id}'"
            raise ConfigError(msg)
        object.__setattr__(self, "id", ident)

        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            msg = f"priority must be an integer, got {self.priority!r}"
            raise ConfigError(msg)
        if not 0 <= self.priority <= 99:
            msg = f"priority must be between 0 and 99, got {self.priority}"
            raise ConfigError(msg)

        if not isinstance(self.global_conflict, GlobalConflict):
            try:
                conflict = GlobalConflict(str(self.global_conflict))
            except ValueError:
                choices = [c.value for c in GlobalConflict]
                msg = f"global_conflict must be one of {choices}, got '{self.global_conflict}'"
                raise ConfigError(msg) from None
            object.__setattr__(self, "global_conflict", conflict)

        if self.dir is not None and not isinstance(self.dir, Path):
            object.__setattr__(self, "dir", Path(self.dir))
        if not isinstance(self.root, Path):
            object.__setattr__(self, "root", Path(self.root))

        try:
            object.__setattr__(self, "group_score", float(self.group_score))
        except (TypeError, ValueError):
            msg = f"group_score must be a number, got {self.group_score!r}"
            raise ConfigError(msg) from None

    @property
    def output_dir(self) -> Path:
        if self.dir is not None:
            return self.dir if self.dir.is_absolute() else self.root / self.dir
        return self.root / self.id

    def with_overrides(self, **overrides: Any) -> GeneratorConfig:
        """Return a copy with every non-``None`` override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)


_KNOWN_KEYS = frozenset(f.name for f in dataclasses.fields(GeneratorConfig)) - {"root"}
_ALIASES = {"singleOutfile": "single_outfile", "joinScores": "join_scores"}


def load_config(path: Path | None = None, *, root: Path | None = None) -> GeneratorConfig:
    """Load a :class:`GeneratorConfig` from a YAML mapping.

    A missing file gives the defaults; an unreadable or malformed file logs
    a warning and gives the defaults as well. Unknown keys are ignored with
    a warning.

    Raises
    ------
    ConfigError
        When a recognised key holds an invalid value.
    """
    root = root or Path.cwd()
    config_path = path or root / DEFAULT_CONFIG_NAME
    if not config_path.is_file():
        if path is not None:
            logger.warning("Config file %s not found, using defaults", config_path)
        return GeneratorConfig(root=root)

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError):
        logger.warning("Failed to read %s, using defaults", config_path)
        return GeneratorConfig(root=root)

    if data is None:
        return GeneratorConfig(root=root)
    if not isinstance(data, dict):
        logger.warning("%s is not a mapping, using defaults", config_path)
        return GeneratorConfig(root=root)

    values: dict[str, Any] = {}
    for key, value in data.items():
        name = str(key)
        name = _ALIASES.get(name, name.replace("-", "_"))
        if name not in _KNOWN_KEYS:
            logger.warning("Ignoring unknown config key '%s' in %s", key, config_path)
            continue
        values[name] = value

    return GeneratorConfig(root=root, **values)
