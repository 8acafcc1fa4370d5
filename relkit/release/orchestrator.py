"""Release cycle driver.

Phases run strictly in order:

    init -> resolveName -> resolveLatestVersion -> resolveIncrement ->
    resolveVersion -> beforeBump -> bump -> beforeRelease -> release ->
    afterRelease

Fan-out phases call every plugin in order, wrapped by hooks:
before:<phase>, then per plugin before:<ns>:<phase> / method /
after:<ns>:<phase>, then after:<phase>. A plugin that skips (Ok(False))
gets no after-hook. Resolution phases ask plugins in order until one
yields a value and only run the global hooks. A configured increment wins
over the plugins unless it asks for a recommendation (`conventional`).

Failure handling:
- init and resolution errors abort before anything is mutated
- from beforeBump through release, errors fire the armed rollback guards
  first
- afterRelease runs after the rollback scope has closed; its errors are
  reported as warnings
- exceptions raised by a plugin become ReleaseErrors
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

from relkit.core.config import Config, load_config
from relkit.core.result import Err, Ok, Result
from relkit.core.structured import StrDict, get_str
from relkit.output.console import ConsoleProtocol, print_preview
from relkit.output.prompt import PromptProtocol, TyperPrompt
from relkit.platform.shell import Shell, ShellProtocol
from relkit.plugins.base import Container, IncrementRequest, Plugin
from relkit.plugins.registry import get_plugins
from relkit.release.errors import ReleaseError, ReleaseErrorKind
from relkit.release.hooks import HookRunner, hook_key
from relkit.release.recommend import recommendation_preset
from relkit.release.record import ReleaseRecord
from relkit.release.rollback import RollbackScope
from relkit.release.semver import SemVer
from relkit.remote.http import HttpClient, RealHttpClient

__all__ = ["PHASES", "ReleaseCycle", "run_release"]

PHASES = (
    "init",
    "resolveName",
    "resolveLatestVersion",
    "resolveIncrement",
    "resolveVersion",
    "beforeBump",
    "bump",
    "beforeRelease",
    "release",
    "afterRelease",
)

DEFAULT_LATEST_VERSION = "0.0.0"

PluginCall = Callable[[Plugin], Result[object, ReleaseError]]


class ReleaseCycle:
    """Drives the enabled plugins through one release."""

    def __init__(
        self,
        config: Config,
        container: Container,
        plugins: list[Plugin],
        hooks: HookRunner | None = None,
    ) -> None:
        self.config = config
        self.container = container
        self.console = container.console
        self.plugins = plugins
        self.hooks = hooks or HookRunner(config.hooks, container.shell)

    # Context

    def template_context(self) -> StrDict:
        return self.config.context.view({p.namespace: p.context_view() for p in self.plugins})

    def _hook(self, key: str, kind: ReleaseErrorKind) -> Result[None, ReleaseError]:
        return self.hooks.run(key, self.template_context(), kind=kind)

    # Phases

    def _fan_out(
        self,
        phase: str,
        call: PluginCall,
        *,
        kind: ReleaseErrorKind = "local_mutation",
        tolerant: bool = False,
    ) -> Result[None, ReleaseError]:
        before = self._hook(hook_key("before", phase), kind)
        if isinstance(before, Err):
            return before

        for plugin in self.plugins:
            outcome = self._run_plugin(phase, plugin, call, kind)
            if isinstance(outcome, Err):
                if not tolerant:
                    return outcome
                self.console.warning(outcome.error.pretty())

        return self._hook(hook_key("after", phase), kind)

    def _run_plugin(
        self,
        phase: str,
        plugin: Plugin,
        call: PluginCall,
        kind: ReleaseErrorKind,
    ) -> Result[None, ReleaseError]:
        before = self._hook(hook_key("before", phase, plugin.namespace), kind)
        if isinstance(before, Err):
            return before

        try:
            result = call(plugin)
        except Exception as e:  # noqa: BLE001
            return Err(ReleaseError(kind=kind, message=f"{plugin.namespace} {phase}: {e}"))
        if isinstance(result, Err):
            return result
        if result.value is False:
            return Ok(None)

        return self._hook(hook_key("after", phase, plugin.namespace), kind)

    def _resolve[T](
        self,
        phase: str,
        reduce: Callable[[], Result[T, ReleaseError]],
    ) -> Result[T, ReleaseError]:
        before = self._hook(hook_key("before", phase), "precondition")
        if isinstance(before, Err):
            return before
        try:
            result = reduce()
        except Exception as e:  # noqa: BLE001
            return Err(ReleaseError(kind="precondition", message=f"{phase}: {e}"))
        if isinstance(result, Err):
            return result
        after = self._hook(hook_key("after", phase), "precondition")
        if isinstance(after, Err):
            return after
        return result

    def _first[T](self, ask: Callable[[Plugin], T | None]) -> T | None:
        for plugin in self.plugins:
            value = ask(plugin)
            if value is not None:
                return value
        return None

    def _resolve_name(self) -> Result[str | None, ReleaseError]:
        name = get_str(self.config.options, "name") or self._first(lambda p: p.get_name())
        repo = self._first(lambda p: p.get_context("repo"))
        self.config.set_context({"name": name, "repo": repo})
        return Ok(name)

    def _resolve_latest_version(self) -> Result[str, ReleaseError]:
        latest = self._first(lambda p: p.get_latest_version()) or DEFAULT_LATEST_VERSION

        changelog: str | None = None
        for plugin in self.plugins:
            result = plugin.get_changelog(latest)
            if isinstance(result, Err):
                return result
            if result.value is not None:
                changelog = result.value
                break

        self.config.set_context({"latestVersion": latest, "changelog": changelog})
        print_preview(self.console, "changelog", changelog)
        return Ok(latest)

    def _request(self, latest: str, increment: str | bool | None) -> IncrementRequest:
        version_options = self.config.namespace_options("version") or {}
        pre_release_base = version_options.get("preReleaseBase")
        return IncrementRequest(
            latest_version=latest,
            increment=increment,
            is_pre_release=version_options.get("isPreRelease") is True,
            pre_release_id=get_str(version_options, "preReleaseId"),
            pre_release_base=None if pre_release_base is None else str(pre_release_base),
        )

    def _resolve_increment(self, latest: str) -> Result[str | bool | None, ReleaseError]:
        configured = self.config.options.get("increment")
        if isinstance(configured, str | bool) and recommendation_preset(configured) is None:
            return Ok(configured)
        request = self._request(latest, configured if isinstance(configured, str) else None)
        return Ok(self._first(lambda p: p.get_increment(request)))

    def _resolve_version(self, latest: str, increment: str | bool | None) -> Result[str, ReleaseError]:
        request = self._request(latest, increment)

        version = self._first(lambda p: p.get_incremented_version_ci(request))
        if version is None:
            for plugin in self.plugins:
                result = plugin.get_incremented_version(request)
                if isinstance(result, Err):
                    return result
                if result.value is not None:
                    version = result.value
                    break

        if version is None:
            return Err(
                ReleaseError(
                    kind="config",
                    message=f"Unable to find a version to release (latest: {latest}, increment: {increment}).",
                    hint="pass a release type (patch, minor, major) or a valid version",
                )
            )

        parsed = SemVer.parse(version)
        self.config.set_context(
            {
                "version": version,
                "isPreRelease": bool(parsed and parsed.is_prerelease),
                "preReleaseId": parsed.prerelease_id if parsed else None,
            }
        )
        return Ok(version)

    # Driver

    def run(self) -> Result[ReleaseRecord, ReleaseError]:
        init = self._fan_out("init", lambda p: p.init(), kind="precondition")
        if isinstance(init, Err):
            return init

        name = self._resolve("resolveName", self._resolve_name)
        if isinstance(name, Err):
            return name

        latest = self._resolve("resolveLatestVersion", self._resolve_latest_version)
        if isinstance(latest, Err):
            return latest

        increment = self._resolve("resolveIncrement", lambda: self._resolve_increment(latest.value))
        if isinstance(increment, Err):
            return increment

        version = self._resolve(
            "resolveVersion", lambda: self._resolve_version(latest.value, increment.value)
        )
        if isinstance(version, Err):
            return version

        if self.config.is_release_version:
            return Ok(self._record())

        if version.value == latest.value:
            self.console.header(f"Let's update {name.value or 'the project'} (currently at {latest.value})")
        else:
            self.console.header(f"Let's release {name.value or 'the project'} ({latest.value}...{version.value})")

        released = self._mutate(version.value)
        if isinstance(released, Err):
            return released

        record = self._record()
        self.console.success(f"Done ({record.version})")
        return Ok(record)

    def _mutate(self, version: str) -> Result[None, ReleaseError]:
        steps: tuple[tuple[str, PluginCall], ...] = (
            ("beforeBump", lambda p: p.before_bump()),
            ("bump", lambda p: self._bump(p, version)),
            ("beforeRelease", lambda p: p.before_release()),
            ("release", lambda p: p.release()),
        )
        with self.container.rollback as scope:
            for phase, call in steps:
                result = self._fan_out(phase, call)
                if isinstance(result, Err):
                    if scope.fail():
                        self.console.warning("Local changes were rolled back.")
                    return result

        after = self._fan_out("afterRelease", lambda p: p.after_release(), tolerant=True)
        if isinstance(after, Err):
            self.console.warning(after.error.pretty())
        return Ok(None)

    def _bump(self, plugin: Plugin, version: str) -> Result[bool, ReleaseError]:
        result = plugin.bump(version)
        if isinstance(result, Ok) and result.value and self.config.get_context("tagName") is None:
            tag_name = get_str(plugin.context_view(), "tagName")
            if tag_name is not None:
                self.config.set_context({"tagName": tag_name})
        return result

    def _record(self) -> ReleaseRecord:
        tag_name = get_str(self.config.context.root(), "tagName")
        targets = {p.namespace: p.context_view() for p in self.plugins if p.is_remote_target}
        return ReleaseRecord.from_context(self.config.context.root(), tag_name=tag_name, targets=targets)


def run_release(
    options: Mapping[str, object] | None = None,
    *,
    cwd: Path,
    console: ConsoleProtocol,
    config_path: Path | None = None,
    prompt: PromptProtocol | None = None,
    http: HttpClient | None = None,
    shell: ShellProtocol | None = None,
) -> Result[ReleaseRecord, ReleaseError]:
    """Load configuration, instantiate plugins and run one release cycle."""
    loaded = load_config(options, cwd=cwd, config_path=config_path)
    if isinstance(loaded, Err):
        e = loaded.error
        where = f" ({e.path})" if e.path else ""
        return Err(ReleaseError(kind="config", message=f"{e.message}{where}"))
    config = loaded.value

    container = Container(
        console=console,
        shell=shell or Shell(console, cwd=cwd, dry_run=config.is_dry_run, verbose=config.is_verbose),
        prompt=prompt or TyperPrompt(console),
        config=config,
        http=http or RealHttpClient(),
        rollback=RollbackScope(),
        cwd=cwd,
    )

    plugins = get_plugins(config, container)
    if isinstance(plugins, Err):
        return plugins

    return ReleaseCycle(config, container, plugins.value).run()
