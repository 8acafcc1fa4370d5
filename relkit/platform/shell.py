"""Shell adapter used by plugins and hooks.

Commands are template-rendered against the current context before they
run. Commands flagged as writes (the default) are echoed and skipped in
dry-run mode; read-only commands (`write=False`) always run, so a dry run
still sees the real repository state.
"""

from __future__ import annotations

import shlex
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from relkit.core.result import Err, Ok, Result
from relkit.core.template import render
from relkit.output.console import ConsoleProtocol, Style, print_command
from relkit.platform.process import run as run_process

__all__ = ["MockShell", "Shell", "ShellCall", "ShellError", "ShellProtocol"]


@dataclass(frozen=True, slots=True)
class ShellError:
    """A command that exited non-zero.

    Attributes:
        command: The rendered command line
        message: stderr (or stdout) text of the failure
        returncode: Process exit code
    """

    command: str
    message: str
    returncode: int = 1


class ShellProtocol(Protocol):
    def exec(
        self,
        command: str | Sequence[str],
        *,
        write: bool = True,
        context: Mapping[str, object] | None = None,
    ) -> Result[str, ShellError]: ...


class Shell:
    """Runs commands in the project directory."""

    def __init__(
        self,
        console: ConsoleProtocol,
        *,
        cwd: Path,
        dry_run: bool = False,
        verbose: bool = False,
        timeout: float | None = None,
    ) -> None:
        self._console = console
        self._cwd = cwd
        self._dry_run = dry_run
        self._verbose = verbose
        self._timeout = timeout

    @property
    def cwd(self) -> Path:
        return self._cwd

    def exec(
        self,
        command: str | Sequence[str],
        *,
        write: bool = True,
        context: Mapping[str, object] | None = None,
    ) -> Result[str, ShellError]:
        ctx = context or {}
        if isinstance(command, str):
            rendered: str | list[str] = render(command, ctx)
            display = rendered
        else:
            rendered = [render(arg, ctx) for arg in command]
            display = shlex.join(rendered)

        if self._dry_run and write:
            print_command(self._console, display, dry_run=True)
            return Ok("")

        if write or self._verbose:
            print_command(self._console, display)

        result = run_process(rendered, cwd=self._cwd, timeout=self._timeout)
        if isinstance(result, Err):
            e = result.error
            return Err(ShellError(command=display, message=e.text, returncode=e.returncode))

        stdout = result.value.strip()
        if self._verbose and stdout:
            self._console.print(stdout, Style.DIM)
        return Ok(stdout)


@dataclass(frozen=True, slots=True)
class ShellCall:
    command: str
    write: bool


class MockShell:
    """Scripted shell for tests.

    Responses are matched by command prefix, the longest prefix wins.
    Commands without a scripted response succeed with empty output.

    Usage:
        shell = MockShell()
        shell.set_output("git describe", "1.0.0")
        shell.set_error("git push", "rejected")
    """

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run
        self._responses: dict[str, tuple[str, int] | str] = {}
        self.calls: list[ShellCall] = []

    def set_output(self, prefix: str, stdout: str) -> None:
        self._responses[prefix] = stdout

    def set_error(self, prefix: str, message: str, returncode: int = 1) -> None:
        self._responses[prefix] = (message, returncode)

    @property
    def commands(self) -> list[str]:
        return [call.command for call in self.calls]

    def ran(self, prefix: str) -> bool:
        return any(command.startswith(prefix) for command in self.commands)

    def exec(
        self,
        command: str | Sequence[str],
        *,
        write: bool = True,
        context: Mapping[str, object] | None = None,
    ) -> Result[str, ShellError]:
        ctx = context or {}
        if isinstance(command, str):
            display = render(command, ctx)
        else:
            display = shlex.join(render(arg, ctx) for arg in command)
        self.calls.append(ShellCall(display, write))

        if self.dry_run and write:
            return Ok("")

        matches = [prefix for prefix in self._responses if display.startswith(prefix)]
        if not matches:
            return Ok("")
        response = self._responses[max(matches, key=len)]
        if isinstance(response, tuple):
            message, returncode = response
            return Err(ShellError(command=display, message=message, returncode=returncode))
        return Ok(response)
