"""Tests for release/orchestrator.py - the release cycle state machine."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Mapping
from pathlib import Path

from relkit.core.config import LOCAL_CONFIG_FILE
from relkit.core.result import Err, Ok, Result
from relkit.output.console import MockConsole
from relkit.output.prompt import MockPrompt
from relkit.platform.shell import MockShell
from relkit.plugins.base import Container, Plugin
from relkit.plugins.git import GitPlugin
from relkit.plugins.version import VersionPlugin
from relkit.release.errors import ReleaseError
from relkit.release.orchestrator import PHASES, ReleaseCycle, run_release
from relkit.remote.http import MockHttpClient


class RecordingPlugin(Plugin):
    """Records lifecycle calls.

    Phases in `skip` return Ok(False), `fail` returns Err and `explode` raises.
    """

    def __init__(
        self,
        namespace: str,
        options: Mapping[str, object],
        container: Container,
        *,
        log: list[str],
        name: str | None = "widget",
        latest: str | None = "1.0.0",
        skip: tuple[str, ...] = (),
        fail: str | None = None,
        guard: bool = False,
        explode: str | None = None,
    ) -> None:
        super().__init__(namespace, options, container)
        self.log = log
        self._name = name
        self._latest = latest
        self._skip = skip
        self._fail = fail
        self._guard = guard
        self._explode = explode

    def _raise_if(self, phase: str) -> None:
        if phase == self._explode:
            raise RuntimeError(f"{phase} blew up")

    def _act(self, phase: str) -> Result[bool, ReleaseError]:
        self.log.append(f"{self.namespace}:{phase}")
        self._raise_if(phase)
        if phase == self._fail:
            return Err(ReleaseError(kind="local_mutation", message=f"{phase} failed"))
        return Ok(phase not in self._skip)

    def init(self) -> Result[None, ReleaseError]:
        self.log.append(f"{self.namespace}:init")
        self._raise_if("init")
        if self._fail == "init":
            return Err(ReleaseError(kind="precondition", message="init failed"))
        return Ok(None)

    def get_name(self) -> str | None:
        self._raise_if("resolveName")
        return self._name

    def get_latest_version(self) -> str | None:
        return self._latest

    def before_bump(self) -> Result[bool, ReleaseError]:
        return self._act("beforeBump")

    def bump(self, version: str) -> Result[bool, ReleaseError]:
        self.set_context({"tagName": f"v{version}"})
        return self._act("bump")

    def before_release(self) -> Result[bool, ReleaseError]:
        if self._guard:
            self.container.rollback.guard(self.namespace, lambda: self.log.append(f"{self.namespace}:rollback"))
        return self._act("beforeRelease")

    def release(self) -> Result[bool, ReleaseError]:
        return self._act("release")

    def after_release(self) -> Result[bool, ReleaseError]:
        return self._act("afterRelease")


def _cycle(
    make_container: Callable[..., Container],
    options: Mapping[str, object] | None = None,
    *,
    console: MockConsole | None = None,
    shell: MockShell | None = None,
    prompt: MockPrompt | None = None,
    interactive: bool = False,
    **behavior: object,
) -> tuple[ReleaseCycle, list[str]]:
    container = make_container(
        {"increment": "minor", **(options or {})},
        console=console,
        shell=shell,
        prompt=prompt,
        interactive=interactive,
    )
    log: list[str] = []
    plugins: list[Plugin] = [
        RecordingPlugin("demo", {}, container, log=log, **behavior),  # type: ignore[arg-type]
        VersionPlugin("version", container.config.namespace_options("version") or {}, container),
    ]
    return ReleaseCycle(container.config, container, plugins), log


def test_full_cycle(make_container: Callable[..., Container]) -> None:
    console = MockConsole()
    cycle, log = _cycle(make_container, console=console)

    result = cycle.run()

    assert isinstance(result, Ok)
    record = result.value
    assert record.name == "widget"
    assert record.latest_version == "1.0.0"
    assert record.version == "1.1.0"
    assert record.tag_name == "v1.1.0"
    assert log == [
        "demo:init",
        "demo:beforeBump",
        "demo:bump",
        "demo:beforeRelease",
        "demo:release",
        "demo:afterRelease",
    ]
    assert console.find("Let's release widget (1.0.0...1.1.0)")
    assert console.find("Done (1.1.0)")


def test_each_hook_fires_exactly_once(make_container: Callable[..., Container]) -> None:
    cycle, _ = _cycle(make_container)

    assert isinstance(cycle.run(), Ok)

    fired = Counter(cycle.hooks.fired)
    assert all(count == 1 for count in fired.values())
    for phase in PHASES:
        assert fired[f"before:{phase}"] == 1
        assert fired[f"after:{phase}"] == 1
    assert fired["before:demo:bump"] == 1
    assert fired["after:demo:bump"] == 1


def test_resolution_phases_run_global_hooks_only(make_container: Callable[..., Container]) -> None:
    cycle, _ = _cycle(make_container)
    assert isinstance(cycle.run(), Ok)
    assert "before:demo:resolveVersion" not in cycle.hooks.fired
    assert "after:version:resolveName" not in cycle.hooks.fired


def test_hook_commands_render_run_context(make_container: Callable[..., Container]) -> None:
    shell = MockShell()
    cycle, _ = _cycle(
        make_container,
        {"hooks": {"after:bump": "echo ${name}@${version}", "after:demo:release": "echo ${demo.tagName}"}},
        shell=shell,
    )

    assert isinstance(cycle.run(), Ok)
    assert "echo widget@1.1.0" in shell.commands
    assert "echo v1.1.0" in shell.commands


def test_repo_is_shared_at_root(make_container: Callable[..., Container]) -> None:
    shell = MockShell()
    cycle, _ = _cycle(make_container, {"hooks": {"after:release": "echo ${repo.repository}"}}, shell=shell)
    cycle.plugins[0].set_context({"repo": {"project": "widget", "repository": "acme/widget"}})

    assert isinstance(cycle.run(), Ok)
    assert "echo acme/widget" in shell.commands


def test_tag_name_is_shared_at_root(make_container: Callable[..., Container]) -> None:
    shell = MockShell()
    cycle, _ = _cycle(
        make_container,
        {"hooks": {"after:bump": "echo ${tagName}", "after:demo:release": "echo pushed ${tagName}"}},
        shell=shell,
    )

    assert isinstance(cycle.run(), Ok)
    assert "echo v1.1.0" in shell.commands
    assert "echo pushed v1.1.0" in shell.commands


def test_git_tag_name_renders_in_hooks(make_container: Callable[..., Container], git_shell: MockShell) -> None:
    container = make_container(
        {"increment": "minor", "hooks": {"after:git:release": "echo pushed ${tagName}"}},
        shell=git_shell,
    )
    plugins: list[Plugin] = [
        VersionPlugin("version", container.config.namespace_options("version") or {}, container),
        GitPlugin("git", container.config.namespace_options("git") or {}, container),
    ]

    result = ReleaseCycle(container.config, container, plugins).run()

    assert isinstance(result, Ok)
    assert result.value.tag_name == "1.1.0"
    assert "echo pushed 1.1.0" in git_shell.commands


def test_skipped_plugin_gets_no_after_hook(make_container: Callable[..., Container]) -> None:
    cycle, _ = _cycle(make_container, skip=("release",))

    assert isinstance(cycle.run(), Ok)
    assert "before:demo:release" in cycle.hooks.fired
    assert "after:demo:release" not in cycle.hooks.fired
    assert "before:version:release" in cycle.hooks.fired
    assert "after:release" in cycle.hooks.fired


def test_default_phases_get_no_after_hooks(make_container: Callable[..., Container]) -> None:
    cycle, _ = _cycle(make_container)

    assert isinstance(cycle.run(), Ok)
    for phase in ("beforeBump", "bump", "beforeRelease", "release", "afterRelease"):
        assert f"before:version:{phase}" in cycle.hooks.fired
        assert f"after:version:{phase}" not in cycle.hooks.fired


def test_init_failure_aborts_before_resolution(make_container: Callable[..., Container]) -> None:
    cycle, log = _cycle(make_container, fail="init")

    result = cycle.run()

    assert isinstance(result, Err)
    assert result.error.kind == "precondition"
    assert log == ["demo:init"]
    assert "before:resolveName" not in cycle.hooks.fired


def test_release_failure_fires_rollback(make_container: Callable[..., Container]) -> None:
    console = MockConsole()
    cycle, log = _cycle(make_container, console=console, guard=True, fail="release")

    result = cycle.run()

    assert isinstance(result, Err)
    assert result.error.kind == "local_mutation"
    assert log[-2:] == ["demo:release", "demo:rollback"]
    assert "demo:afterRelease" not in log
    assert console.find("Local changes were rolled back.")


def test_bump_failure_before_guard_is_armed(make_container: Callable[..., Container]) -> None:
    console = MockConsole()
    cycle, log = _cycle(make_container, console=console, guard=True, fail="bump")

    assert isinstance(cycle.run(), Err)
    assert "demo:rollback" not in log
    assert not console.find("rolled back")


def test_failing_hook_fires_rollback(make_container: Callable[..., Container]) -> None:
    shell = MockShell()
    shell.set_error("exit 1", "hook failed")
    cycle, log = _cycle(make_container, {"hooks": {"before:release": "exit 1"}}, shell=shell, guard=True)

    result = cycle.run()

    assert isinstance(result, Err)
    assert "before:release" in result.error.message
    assert "demo:release" not in log
    assert log[-1] == "demo:rollback"


def test_after_release_errors_are_warnings(make_container: Callable[..., Container]) -> None:
    console = MockConsole()
    cycle, _ = _cycle(make_container, console=console, fail="afterRelease")

    result = cycle.run()

    assert isinstance(result, Ok)
    assert console.find("warning: afterRelease failed")
    assert "after:afterRelease" in cycle.hooks.fired


def test_after_release_exception_keeps_the_release(
    make_container: Callable[..., Container], git_shell: MockShell
) -> None:
    console = MockConsole()
    container = make_container({"increment": "minor", "git": {"push": False}}, console=console, shell=git_shell)
    log: list[str] = []
    plugins: list[Plugin] = [
        RecordingPlugin("notify", {}, container, log=log, explode="afterRelease"),
        VersionPlugin("version", container.config.namespace_options("version") or {}, container),
        GitPlugin("git", container.config.namespace_options("git") or {}, container),
    ]

    result = ReleaseCycle(container.config, container, plugins).run()

    assert isinstance(result, Ok)
    assert git_shell.ran("git commit")
    assert git_shell.ran("git tag --annotate")
    assert not git_shell.ran("git tag --delete")
    assert not git_shell.ran("git reset")
    assert console.find("notify afterRelease: afterRelease blew up")
    assert not console.find("rolled back")


class TestPluginExceptions:
    def test_init(self, make_container: Callable[..., Container]) -> None:
        cycle, log = _cycle(make_container, explode="init")

        result = cycle.run()

        assert isinstance(result, Err)
        assert result.error.kind == "precondition"
        assert result.error.message == "demo init: init blew up"
        assert log == ["demo:init"]

    def test_resolution(self, make_container: Callable[..., Container]) -> None:
        cycle, _ = _cycle(make_container, explode="resolveName")

        result = cycle.run()

        assert isinstance(result, Err)
        assert result.error.kind == "precondition"
        assert result.error.message == "resolveName: resolveName blew up"

    def test_release_fires_rollback(self, make_container: Callable[..., Container]) -> None:
        console = MockConsole()
        cycle, log = _cycle(make_container, console=console, guard=True, explode="release")

        result = cycle.run()

        assert isinstance(result, Err)
        assert result.error.kind == "local_mutation"
        assert result.error.message == "demo release: release blew up"
        assert log[-2:] == ["demo:release", "demo:rollback"]
        assert console.find("Local changes were rolled back.")


def test_release_version_stops_before_mutation(make_container: Callable[..., Container]) -> None:
    cycle, log = _cycle(make_container, {"releaseVersion": True})

    result = cycle.run()

    assert isinstance(result, Ok)
    assert result.value.version == "1.1.0"
    assert log == ["demo:init"]


def test_no_increment_is_an_update(make_container: Callable[..., Container]) -> None:
    console = MockConsole()
    cycle, _ = _cycle(make_container, {"increment": False}, console=console)

    result = cycle.run()

    assert isinstance(result, Ok)
    assert result.value.version == "1.0.0"
    assert result.value.is_update
    assert console.find("Let's update widget (currently at 1.0.0)")


def test_unresolvable_version(make_container: Callable[..., Container]) -> None:
    cycle, log = _cycle(make_container, {"increment": "soon"})

    result = cycle.run()

    assert isinstance(result, Err)
    assert result.error.kind == "config"
    assert log == ["demo:init"]


def test_recommended_increment(make_container: Callable[..., Container]) -> None:
    shell = MockShell()
    shell.set_output("git log", "feat: publish assets\n\x1e\nfix: retry uploads\n\x1e\n")
    cycle, _ = _cycle(make_container, {"increment": "conventional:angular"}, shell=shell)

    result = cycle.run()

    assert isinstance(result, Ok)
    assert result.value.version == "1.1.0"


def test_recommendation_without_commits_falls_back_to_patch(make_container: Callable[..., Container]) -> None:
    cycle, _ = _cycle(make_container, {"increment": "conventional"})

    result = cycle.run()

    assert isinstance(result, Ok)
    assert result.value.version == "1.0.1"


def test_latest_version_defaults_to_zero(make_container: Callable[..., Container]) -> None:
    cycle, _ = _cycle(make_container, latest=None)
    result = cycle.run()
    assert isinstance(result, Ok)
    assert result.value.latest_version == "0.0.0"
    assert result.value.version == "0.1.0"


def test_interactive_version_prompt(make_container: Callable[..., Container]) -> None:
    prompt = MockPrompt(answers={"incrementList": "major"})
    cycle, _ = _cycle(make_container, {"increment": None}, prompt=prompt, interactive=True)

    result = cycle.run()

    assert isinstance(result, Ok)
    assert result.value.version == "2.0.0"
    assert prompt.names == ["incrementList"]


def test_pre_release_sets_run_context(make_container: Callable[..., Container]) -> None:
    cycle, _ = _cycle(make_container, {"preRelease": "beta"})

    result = cycle.run()

    assert isinstance(result, Ok)
    assert result.value.version == "1.1.0-beta.0"
    assert result.value.is_pre_release is True
    assert result.value.pre_release_id == "beta"


class TestRunRelease:
    def test_without_git_or_manifest(self, tmp_path: Path) -> None:
        shell = MockShell()
        result = run_release(
            {"increment": "patch", "ci": True},
            cwd=tmp_path,
            console=MockConsole(),
            shell=shell,
            http=MockHttpClient(),
        )
        assert isinstance(result, Ok)
        assert result.value.version == "0.0.1"
        assert result.value.targets == {}
        assert shell.commands == []

    def test_invalid_config_file(self, tmp_path: Path) -> None:
        (tmp_path / LOCAL_CONFIG_FILE).write_text("[git\n", encoding="utf-8")
        result = run_release({"ci": True}, cwd=tmp_path, console=MockConsole(), shell=MockShell())
        assert isinstance(result, Err)
        assert result.error.kind == "config"
        assert LOCAL_CONFIG_FILE in result.error.message

    def test_missing_plugin(self, tmp_path: Path) -> None:
        result = run_release(
            {"ci": True, "plugins": {"relkit_missing_plugin_pkg": {}}},
            cwd=tmp_path,
            console=MockConsole(),
            shell=MockShell(),
        )
        assert isinstance(result, Err)
        assert result.error.kind == "plugin_load"
