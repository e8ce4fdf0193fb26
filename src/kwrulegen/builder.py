"""Build orchestrator: ingest keyword lists, generate rules, write, and report."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from kwrulegen.config import GeneratorConfig
from kwrulegen.output.generator import RuleGenerator
from kwrulegen.output.paths import ArtifactKey, NamingError, PathResolver
from kwrulegen.output.writer import clean_dir, create_dir, write_buffers
from kwrulegen.rules.store import RuleStore
from kwrulegen.verify import VerifyResult, verify_output

if TYPE_CHECKING:
    from pathlib import Path

    from kwrulegen.output.writer import OutputBuffers

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class GenerationError(Exception):
    """Raised when rules cannot be generated, so nothing may be written."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class BuildResult:
    """Result of a build run."""

    files_read: int = 0
    words: int = 0
    artifacts: dict[str, str] = field(default_factory=dict)
    written: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)
    write_errors: list[str] = field(default_factory=list)
    verification: VerifyResult | None = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        verified = self.verification is None or self.verification.ok
        return not self.failures and not self.write_errors and verified


# ---------------------------------------------------------------------------
# Generator object
# ---------------------------------------------------------------------------


class KeywordRuleGenerator:
    """One generator instance: configure, ingest, generate, write, clean.

    Example::

        kw = KeywordRuleGenerator(GeneratorConfig(id="KW"))
        failures = kw.read_all(["keywords.txt"])
        errors = kw.write_all()
    """

    def __init__(self, config: GeneratorConfig | None = None) -> None:
        self.config = config or GeneratorConfig()
        self.store = RuleStore(self.config.root, global_conflict=self.config.global_conflict)
        self.resolver = PathResolver(self.config)
        self.buffers: OutputBuffers | None = None
        self._pins: dict[ArtifactKey, str] = {}

    def read_file(self, path: str | Path) -> int:
        """Ingest one file; see :meth:`RuleStore.read_file`."""
        self.buffers = None
        return self.store.read_file(path)

    def read_all(self, paths: list[str | Path]) -> list[str]:
        """Ingest files, directories, symlinks and globs; returns failure messages."""
        self.buffers = None
        return self.store.read_all(paths)

    def set_outfile(self, source: str | Path, path: str) -> None:
        """Pin the rules output path for input *source*."""
        self._pins[ArtifactKey(self.store.file_key(source))] = path
        self.buffers = None

    def set_scores_outfile(self, source: str | Path, path: str) -> None:
        """Pin the scores output path for input *source*."""
        self._pins[ArtifactKey(self.store.file_key(source), scores=True)] = path
        self.buffers = None

    def generate(self) -> OutputBuffers:
        """Generate every artifact into fresh buffers.

        Raises
        ------
        GenerationError
            When output files or rule names cannot be made unique.
        """
        self.resolver = PathResolver(self.config)
        self.resolver.artifacts.update(self._pins)
        generator = RuleGenerator(self.store, self.resolver, self.config)
        try:
            self.buffers = generator.generate()
        except NamingError as exc:
            self.buffers = None
            raise GenerationError(str(exc)) from exc
        return self.buffers

    def artifact_paths(self) -> list[str]:
        """Distinct output paths of the current generation."""
        if self.buffers is None:
            self.generate()
        return self.resolver.unique_paths()

    def create_dir(self) -> str | None:
        return create_dir(self.config.output_dir)

    def clean_dir(self) -> tuple[list[str], list[str]]:
        """Delete existing files at every artifact path; returns ``(removed, errors)``."""
        return clean_dir(self.artifact_paths())

    def write_all(self) -> list[str]:
        """Generate if needed, then write every non-empty buffer.

        Returns the per-file error messages; an empty list means success.
        """
        buffers = self.buffers if self.buffers is not None else self.generate()
        error = self.create_dir()
        if error:
            return [error]
        _written, errors = write_buffers(buffers)
        return errors

    def verify_output(self, path: Path | None = None) -> VerifyResult:
        return verify_output(path or self.config.output_dir)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def build(
    inputs: list[str | Path],
    config: GeneratorConfig,
    *,
    clean: bool = True,
    verify: bool = False,
) -> BuildResult:
    """Run a whole batch: read inputs, generate, clean, write, optionally lint.

    Ingestion failures are collected and do not stop the build.

    Raises
    ------
    GenerationError
        When artifact naming fails; nothing is written in that case.
    """
    start = time.monotonic()
    kw = KeywordRuleGenerator(config)

    failures = kw.read_all(inputs)
    buffers = kw.generate()

    write_errors: list[str] = []
    if clean:
        removed, clean_errors = kw.clean_dir()
        if removed:
            logger.debug("Removed %d stale files", len(removed))
        write_errors.extend(clean_errors)

    written: list[str] = []
    dir_error = kw.create_dir()
    if dir_error:
        write_errors.append(dir_error)
    else:
        written, errors = write_buffers(buffers)
        write_errors.extend(errors)

    verification = kw.verify_output() if verify and written else None

    return BuildResult(
        files_read=len(kw.store.files),
        words=sum(len(kw.store.component_words(k)) for k in kw.store.files),
        artifacts=dict(sorted((str(k), p) for k, p in kw.resolver.artifacts.items())),
        written=written,
        failures=failures,
        write_errors=write_errors,
        verification=verification,
        elapsed_ms=(time.monotonic() - start) * 1000,
    )


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def format_rich(result: BuildResult) -> str:
    """Format a BuildResult as human-readable text.

    Example output::

        Inputs: 2 files, 5 words
        Wrote: 3 files

          KW/50_KW_EXAMPLE.cf
          KW/50_KW_OTHER.cf
          KW/51_KW.cf

        x missing.txt does not exist

        1 problem found (0.0s)
    """
    lines: list[str] = [
        f"Inputs: {result.files_read} files, {result.words} words",
        f"Wrote: {len(result.written)} files",
        "",
    ]
    for path in result.written:
        lines.append(f"  {path}")
    if result.written:
        lines.append("")

    problems = [*result.failures, *result.write_errors]
    if result.verification is not None and not result.verification.ok:
        problems.append(f"Verification failed: {result.verification.output}")
    for problem in problems:
        lines.append(f"✗ {problem}")
    if problems:
        lines.append("")

    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"
    if problems:
        noun = "problem" if len(problems) == 1 else "problems"
        lines.append(f"{len(problems)} {noun} found ({elapsed_str})")
    else:
        verified = ", verified" if result.verification is not None else ""
        lines.append(f"✓ Rules generated{verified} ({elapsed_str})")
    return "\n".join(lines)


def format_json(result: BuildResult) -> str:
    """Format a BuildResult as structured JSON."""
    verification: dict[str, object] | None = None
    if result.verification is not None:
        verification = {"ok": result.verification.ok, "output": result.verification.output}
    output: dict[str, object] = {
        "artifacts": result.artifacts,
        "written": result.written,
        "failures": result.failures,
        "write_errors": result.write_errors,
        "verification": verification,
        "summary": {
            "files_read": result.files_read,
            "words": result.words,
            "ok": result.ok,
            "elapsed_ms": result.elapsed_ms,
        },
    }
    return json.dumps(output, indent=2)


def format_porcelain(result: BuildResult) -> str:
    """One line per event: ``written:<path>``, ``failure:<msg>``, ``error:<msg>``."""
    lines = [f"written:{p}" for p in result.written]
    lines.extend(f"failure:{m}" for m in result.failures)
    lines.extend(f"error:{m}" for m in result.write_errors)
    if result.verification is not None:
        lines.append(f"verify:{'ok' if result.verification.ok else 'failed'}")
    return "\n".join(lines)
