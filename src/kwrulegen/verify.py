"""Lint generated rules with the ``spamassassin`` executable."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

SPAMASSASSIN = "spamassassin"
DEFAULT_TIMEOUT = 120


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of a lint run."""

    ok: bool
    output: str


def verify_output(
    path: Path, *, executable: str = SPAMASSASSIN, timeout: int = DEFAULT_TIMEOUT
) -> VerifyResult:
    """Run ``spamassassin --lint`` with *path* as the site rules directory.

    A missing executable or a timeout is reported as a failed result.
    """
    cmd = [executable, "--lint", f"--siteconfigpath={path}"]
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(  # noqa: S603
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        return VerifyResult(ok=False, output=f"{executable} executable not found")
    except subprocess.TimeoutExpired:
        return VerifyResult(ok=False, output=f"{executable} --lint timed out after {timeout}s")

    output = "\n".join(part for part in (result.stdout.strip(), result.stderr.strip()) if part)
    return VerifyResult(ok=result.returncode == 0, output=output)
