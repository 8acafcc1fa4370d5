"""Tests for relkit.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from relkit.core.result import Err, Ok
from relkit.platform.process import ProcessError, run


class TestProcessError:
    """Test ProcessError dataclass."""

    def test_str_short_command(self) -> None:
        error = ProcessError(command=("git", "push"), returncode=1, stdout="", stderr="rejected")
        assert str(error) == "git push failed (exit 1)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("git", "tag", "--annotate", "--message=Release 1.1.0", "1.1.0"),
            returncode=128,
            stdout="",
            stderr="",
        )
        assert str(error) == "git tag --annotate ... failed (exit 128)"

    def test_text_prefers_stderr(self) -> None:
        error = ProcessError(("npm", "publish"), 1, "stdout text", "npm ERR! 403\n")
        assert error.text == "npm ERR! 403"

    def test_text_falls_back_to_stdout_then_summary(self) -> None:
        assert ProcessError(("git", "commit"), 1, "nothing to commit\n", "").text == "nothing to commit"
        assert ProcessError(("false",), 1, "", "").text == "false failed (exit 1)"

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestRun:
    """Test run function."""

    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert result.value.strip() == "hello"

    def test_runs_in_cwd(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert Path(result.value.strip()).resolve() == tmp_path.resolve()

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "import sys; sys.exit(42)"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == 42

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1

    def test_timeout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout=0.2)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert "timed out" in result.error.stderr

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell syntax")
    def test_string_runs_through_shell(self, tmp_path: Path) -> None:
        result = run("echo one | tr a-z A-Z", cwd=tmp_path)

        assert isinstance(result, Ok)
        assert result.value.strip() == "ONE"
