"""Output domain: artifact paths, rule generation, and writing."""

from kwrulegen.output.generator import RuleGenerator, rule_segment, word_pattern
from kwrulegen.output.paths import (
    GLOBAL,
    GLOBAL_SCORES,
    ArtifactKey,
    ArtifactMap,
    NamingError,
    PathResolver,
    file_segment,
    sorts_after,
)
from kwrulegen.output.writer import OutputBuffers, clean_dir, create_dir, write_buffers

__all__ = [
    "GLOBAL",
    "GLOBAL_SCORES",
    "ArtifactKey",
    "ArtifactMap",
    "NamingError",
    "OutputBuffers",
    "PathResolver",
    "RuleGenerator",
    "clean_dir",
    "create_dir",
    "file_segment",
    "rule_segment",
    "sorts_after",
    "word_pattern",
    "write_buffers",
]
