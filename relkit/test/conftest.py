from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from relkit.core.config import Config
from relkit.output.console import MockConsole
from relkit.output.prompt import MockPrompt
from relkit.platform.shell import MockShell
from relkit.plugins.base import Container
from relkit.release.rollback import RollbackScope
from relkit.remote.http import MockHttpClient

ContainerFactory = Callable[..., Container]


@pytest.fixture
def make_container(tmp_path: Path) -> ContainerFactory:
    """Build a Container over mocks; `interactive` decides the ci option."""

    def make(
        options: Mapping[str, object] | None = None,
        *,
        console: MockConsole | None = None,
        shell: MockShell | None = None,
        prompt: MockPrompt | None = None,
        http: MockHttpClient | None = None,
        local: Mapping[str, object] | None = None,
        interactive: bool = False,
        cwd: Path | None = None,
    ) -> Container:
        merged = {"ci": not interactive, **(options or {})}
        return Container(
            console=console or MockConsole(),
            shell=shell or MockShell(),
            prompt=prompt or MockPrompt(),
            config=Config(merged, local=local, interactive_terminal=interactive),
            http=http or MockHttpClient(),
            rollback=RollbackScope(),
            cwd=cwd or tmp_path,
        )

    return make


@pytest.fixture
def git_shell() -> MockShell:
    """Shell answering like a clean checkout of acme/widget on main, tagged 1.0.0."""
    shell = MockShell()
    shell.set_output("git config --get remote.origin.url", "git@github.com:acme/widget.git")
    shell.set_output("git rev-parse --abbrev-ref --symbolic-full-name", "origin/main")
    shell.set_output("git rev-parse --abbrev-ref HEAD", "main")
    shell.set_output("git describe --tags --abbrev=0", "1.0.0")
    shell.set_output("git rev-list", "3")
    shell.set_output("git log", "* Add feature (abc1234)")
    # No tag exists yet.
    shell.set_error("git show-ref", "")
    return shell
