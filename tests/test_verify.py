"""Tests for kwrulegen.verify: spamassassin --lint wrapper."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

from kwrulegen.verify import verify_output


def _completed(
    returncode: int, stdout: str = "", stderr: str = ""
) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


class TestVerifyOutput:
    def test_command_line(self) -> None:
        with patch("kwrulegen.verify.subprocess.run", return_value=_completed(0)) as run:
            result = verify_output(Path("/srv/KW"))
        assert result.ok
        assert result.output == ""
        args, kwargs = run.call_args
        assert args[0] == ["spamassassin", "--lint", "--siteconfigpath=/srv/KW"]
        assert kwargs["capture_output"] is True
        assert kwargs["timeout"] == 120

    def test_lint_failure(self) -> None:
        completed = _completed(2, stdout="", stderr="config: failed to parse line\n")
        with patch("kwrulegen.verify.subprocess.run", return_value=completed):
            result = verify_output(Path("/srv/KW"))
        assert not result.ok
        assert result.output == "config: failed to parse line"

    def test_output_streams_joined(self) -> None:
        completed = _completed(0, stdout="out\n", stderr="warn\n")
        with patch("kwrulegen.verify.subprocess.run", return_value=completed):
            result = verify_output(Path("/srv/KW"))
        assert result.output == "out\nwarn"

    def test_missing_executable(self) -> None:
        with patch("kwrulegen.verify.subprocess.run", side_effect=FileNotFoundError):
            result = verify_output(Path("/srv/KW"), executable="sa-lint")
        assert not result.ok
        assert result.output == "sa-lint executable not found"

    def test_timeout(self) -> None:
        error = subprocess.TimeoutExpired(cmd="spamassassin", timeout=5)
        with patch("kwrulegen.verify.subprocess.run", side_effect=error):
            result = verify_output(Path("/srv/KW"), timeout=5)
        assert not result.ok
        assert "timed out after 5s" in result.output
