"""Plugin contract.

A plugin owns one namespace of the configuration and of the run context.
The orchestrator calls its lifecycle methods in a fixed order; every
method has a default so plugins implement only the phases they take part
in.

Lifecycle methods that act (before_bump, bump, before_release, release,
after_release) return Result[bool, ReleaseError]: Ok(True) when the phase
ran, Ok(False) when the plugin skipped it (no after-hook fires then).
The defaults skip.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import ClassVar

from relkit.core.config import Config
from relkit.core.context import deep_merge, get_path
from relkit.core.result import Err, Ok, Result
from relkit.core.structured import StrDict, as_str_list
from relkit.core.template import render
from relkit.output.console import ConsoleProtocol, print_preview
from relkit.output.prompt import PromptProtocol, PromptSpec
from relkit.platform.shell import ShellProtocol
from relkit.release.errors import ReleaseError, ReleaseErrorKind
from relkit.release.rollback import RollbackScope
from relkit.remote.http import HttpClient

__all__ = [
    "AssetUploads",
    "Container",
    "IncrementRequest",
    "Plugin",
    "ReleaseNotes",
]


@dataclass(slots=True)
class Container:
    """Collaborators shared by every plugin of one run."""

    console: ConsoleProtocol
    shell: ShellProtocol
    prompt: PromptProtocol
    config: Config
    http: HttpClient
    rollback: RollbackScope
    cwd: Path


@dataclass(frozen=True, slots=True)
class IncrementRequest:
    latest_version: str
    increment: str | bool | None = None
    is_pre_release: bool = False
    pre_release_id: str | None = None
    pre_release_base: str | None = None


Task = Callable[[], Result[object, ReleaseError]]


class Plugin:
    """Base class for built-in and external plugins."""

    # Built-in namespace a subclass registers under; external plugins get
    # theirs from configuration.
    namespace_name: ClassVar[str] = ""

    # Remote targets report isReleased/releaseUrl in the release record.
    is_remote_target: ClassVar[bool] = False

    @classmethod
    def is_enabled(cls, options: Mapping[str, object] | None, *, cwd: Path) -> bool:
        """Decide from the namespace options whether to instantiate at all.

        Args:
            options: The namespace's options, None when configured as false.
            cwd: Project directory (for plugins keyed on files such as .git).
        """
        return options is not None

    @classmethod
    def disable_plugins(cls) -> tuple[str, ...]:
        """Built-in namespaces this plugin replaces."""
        return ()

    def __init__(self, namespace: str, options: Mapping[str, object], container: Container) -> None:
        self.namespace = namespace
        self.options: Mapping[str, object] = MappingProxyType(deep_merge(options))
        self.container = container
        self.console = container.console
        self.shell = container.shell
        self.prompt = container.prompt
        self.config = container.config
        self.http = container.http

    def __repr__(self) -> str:
        return f"{type(self).__name__}(namespace={self.namespace!r})"

    # Lifecycle

    def init(self) -> Result[None, ReleaseError]:
        return Ok(None)

    def get_name(self) -> str | None:
        return None

    def get_latest_version(self) -> str | None:
        return None

    def get_changelog(self, latest_version: str | None) -> Result[str | None, ReleaseError]:
        return Ok(None)

    def get_increment(self, request: IncrementRequest) -> str | bool | None:
        return None

    def get_incremented_version_ci(self, request: IncrementRequest) -> str | None:
        return None

    def get_incremented_version(self, request: IncrementRequest) -> Result[str | None, ReleaseError]:
        return Ok(None)

    def before_bump(self) -> Result[bool, ReleaseError]:
        return Ok(False)

    def bump(self, version: str) -> Result[bool, ReleaseError]:
        return Ok(False)

    def before_release(self) -> Result[bool, ReleaseError]:
        return Ok(False)

    def release(self) -> Result[bool, ReleaseError]:
        return Ok(False)

    def after_release(self) -> Result[bool, ReleaseError]:
        return Ok(False)

    # Context

    def get_context(self, path: str | None = None) -> object:
        """Frozen options merged with this plugin's private overlay."""
        view = deep_merge(self.options, self.config.context.overlay(self.namespace))
        return view if path is None else get_path(view, path)

    def context_view(self) -> StrDict:
        view = self.get_context()
        return view if isinstance(view, dict) else {}

    def set_context(self, partial: Mapping[str, object]) -> None:
        self.config.context.set_overlay(self.namespace, partial)

    def template_context(self, extra: Mapping[str, object] | None = None) -> StrDict:
        """Shared root with this plugin's view under its namespace."""
        return deep_merge(extra, self.config.context.view({self.namespace: self.context_view()}))

    def format(self, template: str, extra: Mapping[str, object] | None = None) -> str:
        return render(template, self.template_context(extra))

    # Helpers

    def exec(
        self,
        command: str | Sequence[str],
        *,
        write: bool = True,
        context: Mapping[str, object] | None = None,
        kind: ReleaseErrorKind = "local_mutation",
    ) -> Result[str, ReleaseError]:
        result = self.shell.exec(command, write=write, context=self.template_context(context))
        match result:
            case Ok(stdout):
                return Ok(stdout)
            case Err(e):
                return Err(ReleaseError(kind=kind, message=f"{e.command}: {e.message}"))

    def step(
        self,
        task: Task,
        *,
        label: str,
        prompt: str | None = None,
        message: str | None = None,
        enabled: bool = True,
    ) -> Result[bool, ReleaseError]:
        """Run a task, asking for confirmation first when interactive.

        Returns:
            Ok(True) when the task ran, Ok(False) when disabled, declined or
            when the task itself reports Ok(False).
        """
        if not enabled:
            return Ok(False)

        if prompt is not None and self.config.is_interactive:
            spec = PromptSpec(type="confirm", name=prompt, message=message or f"{label}?", default=True)
            answer = self.prompt.show(spec)
            if not answer.get(prompt):
                return Ok(False)
        else:
            self.console.info(label)

        result = task()
        if isinstance(result, Err):
            return result
        return Ok(result.value is not False)

    def preview(self, title: str, text: str | None) -> None:
        print_preview(self.console, title, text)

    @property
    def is_dry_run(self) -> bool:
        return self.config.is_dry_run

    @property
    def is_ci(self) -> bool:
        return self.config.is_ci


class ReleaseNotes:
    """Resolve release notes: output of the `releaseNotes` script, else the changelog."""

    def __init__(self, plugin: Plugin) -> None:
        self._plugin = plugin

    def resolve(self) -> Result[str | None, ReleaseError]:
        script = self._plugin.options.get("releaseNotes")
        changelog = self._plugin.config.get_context("changelog")
        changelog_text = changelog if isinstance(changelog, str) else None

        if isinstance(script, str) and script.strip():
            result = self._plugin.exec(script, write=False)
            if isinstance(result, Err):
                return result
            notes: str | None = result.value
        else:
            notes = changelog_text

        self._plugin.set_context({"releaseNotes": notes})
        if notes != changelog_text:
            self._plugin.preview("release notes", notes)
        return Ok(notes)


class AssetUploads:
    """Glob the `assets` option and upload each matching file."""

    def __init__(self, plugin: Plugin) -> None:
        self._plugin = plugin

    @property
    def patterns(self) -> list[str]:
        return as_str_list(self._plugin.options.get("assets"))

    def files(self) -> list[Path]:
        cwd = self._plugin.container.cwd
        found: dict[Path, None] = {}
        for pattern in self.patterns:
            candidate = Path(pattern)
            if candidate.is_absolute():
                matches = [candidate] if candidate.is_file() else []
            else:
                matches = sorted(p for p in cwd.glob(pattern) if p.is_file())
            for path in matches:
                found[path] = None
        return list(found)

    def upload_all[T](
        self,
        upload: Callable[[Path], Result[T, ReleaseError]],
        *,
        label: str,
    ) -> Result[list[T], ReleaseError]:
        """Upload every matching file; the first failure stops the batch."""
        files = self.files()
        if not files:
            self._plugin.console.warning(
                f'{label}: could not find "{", ".join(self.patterns)}" relative to {self._plugin.container.cwd}'
            )
            return Ok([])

        uploaded: list[T] = []
        for path in files:
            result = upload(path)
            if isinstance(result, Err):
                return result
            uploaded.append(result.value)
        return Ok(uploaded)
