"""Shared behavior of remote release plugins (GitHub, GitLab).

They inherit the git options that matter to them (tagName, tagMatch,
pushRepo, changelog), read their API token from the environment, resolve
release notes and report the release URL.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from pathlib import Path

from relkit.core.config import DEFAULT_CONFIG
from relkit.core.context import deep_merge
from relkit.core.result import Err, Ok, Result
from relkit.core.structured import as_str_dict, get_bool, get_number, get_str
from relkit.output.console import print_command
from relkit.release.errors import ReleaseError
from relkit.release.retry import DEFAULT_MIN_DELAY_SECONDS, DEFAULT_RETRIES, with_retry
from relkit.remote.http import HttpError

from .base import AssetUploads, Container, ReleaseNotes
from .git_base import GitBase

__all__ = ["GitReleasePlugin"]

_INHERITED_GIT_OPTIONS = ("tagName", "tagMatch", "pushRepo", "changelog")


class GitReleasePlugin(GitBase):
    is_remote_target = True
    service = ""

    @classmethod
    def is_enabled(cls, options: Mapping[str, object] | None, *, cwd: Path) -> bool:
        return options is not None and get_bool(options, "release")

    def __init__(self, namespace: str, options: Mapping[str, object], container: Container) -> None:
        git = container.config.namespace_options("git") or as_str_dict(DEFAULT_CONFIG["git"]) or {}
        inherited = {key: git.get(key) for key in _INHERITED_GIT_OPTIONS}
        super().__init__(namespace, deep_merge(inherited, options), container)
        self.notes = ReleaseNotes(self)
        self.assets = AssetUploads(self)

    @property
    def token(self) -> str | None:
        ref = get_str(self.options, "tokenRef")
        return os.environ.get(ref) if ref else None

    def init(self) -> Result[None, ReleaseError]:
        if not self.token and not get_bool(self.options, "skipChecks") and not self.is_dry_run:
            ref = get_str(self.options, "tokenRef")
            return Err(
                ReleaseError(
                    kind="precondition",
                    message=f'Environment variable "{ref}" is required for {self.service} releases.',
                    hint=f"export {ref}=<token>",
                )
            )
        return super().init()

    def before_release(self) -> Result[bool, ReleaseError]:
        notes = self.notes.resolve()
        if isinstance(notes, Err):
            return notes
        return Ok(True)

    def after_release(self) -> Result[bool, ReleaseError]:
        if not self.get_context("isReleased"):
            return Ok(False)
        self.console.success(f"{self.service} release: {self.get_context('releaseUrl')}")
        return Ok(True)

    # Helpers for subclasses

    @property
    def release_name(self) -> str:
        return self.format(get_str(self.options, "releaseName") or "Release ${version}")

    def echo(self, action: str) -> None:
        print_command(self.console, action, dry_run=self.is_dry_run)

    def call[T](self, call: Callable[[], Result[T, HttpError]], *, action: str) -> Result[T, ReleaseError]:
        return with_retry(
            call,
            action=action,
            retries=int(get_number(self.options, "retries", DEFAULT_RETRIES)),
            min_delay=get_number(self.options, "retryMinTimeout", DEFAULT_MIN_DELAY_SECONDS),
        )

    def mark_released(self, url: str | None) -> None:
        self.set_context({"isReleased": True, "releaseUrl": url})
