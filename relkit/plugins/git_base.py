"""Shared behavior of plugins that work on the git repository.

Resolves the remote (URL and host/owner/project), fetches, and finds the
latest tag. The git plugin and the remote release plugins all build on it.
"""

from __future__ import annotations

from collections.abc import Mapping

from relkit.core.context import deep_merge
from relkit.core.result import Err, Ok, Result
from relkit.core.structured import get_str
from relkit.core.template import render
from relkit.git.remote import parse_remote_url
from relkit.git.repository import Repository
from relkit.release.errors import ReleaseError

from .base import Container, Plugin

__all__ = ["GitBase"]


class GitBase(Plugin):
    def __init__(self, namespace: str, options: Mapping[str, object], container: Container) -> None:
        super().__init__(namespace, options, container)
        self.repo = Repository(self.shell)

    def init(self) -> Result[None, ReleaseError]:
        remote_url = get_str(self.options, "remoteUrl") or self.repo.remote_url(
            get_str(self.options, "pushRepo") or "origin"
        )
        if not remote_url:
            return Err(
                ReleaseError(
                    kind="precondition",
                    message="Could not get remote Git url.",
                    hint="add a remote repository (git remote add origin <url>)",
                )
            )

        fetched = self.repo.fetch()
        if isinstance(fetched, Err):
            return Err(
                ReleaseError(
                    kind="precondition",
                    message=f"Unable to fetch from {remote_url}: {fetched.error.message}",
                    hint="check the network and the remote url",
                )
            )

        self.set_context(
            {
                "remoteUrl": remote_url,
                "repo": parse_remote_url(remote_url).as_context(),
                "latestTagName": self.repo.latest_tag(get_str(self.options, "tagMatch")),
            }
        )
        return Ok(None)

    def get_name(self) -> str | None:
        project = self.get_context("repo.project")
        return project if isinstance(project, str) else None

    def get_latest_version(self) -> str | None:
        tag = self.get_context("latestTagName")
        if not isinstance(tag, str) or not tag:
            return None
        return tag.removeprefix("v")

    def get_changelog(self, latest_version: str | None) -> Result[str | None, ReleaseError]:
        script = get_str(self.options, "changelog")
        if script is None:
            return Ok(None)

        latest_tag = self.get_context("latestTagName")
        result = self.exec(
            script,
            write=False,
            context={"from": latest_tag if isinstance(latest_tag, str) else "", "to": "HEAD"},
            kind="precondition",
        )
        if isinstance(result, Err):
            return result
        return Ok(result.value or None)

    def tag_name_for(self, version: str | None) -> str | None:
        if version is None:
            return None
        template = get_str(self.options, "tagName") or "${version}"
        return render(template, deep_merge(self.template_context(), {"version": version}))

    def bump(self, version: str) -> Result[bool, ReleaseError]:
        self.set_context(
            {
                "version": version,
                "tagName": self.tag_name_for(version),
                "latestTagName": self.tag_name_for(self.get_latest_version()),
            }
        )
        return Ok(True)
