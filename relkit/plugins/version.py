"""Built-in version plugin: increment resolution, commit-based recommendation
and the increment prompts.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

from relkit.core.result import Err, Ok, Result
from relkit.core.structured import get_str
from relkit.git.repository import Repository
from relkit.output.prompt import PromptChoice, PromptSpec
from relkit.release.errors import ReleaseError
from relkit.release.recommend import recommend_increment, recommendation_preset
from relkit.release.resolver import increment_choices, resolve
from relkit.release.semver import SemVer

from .base import IncrementRequest, Plugin

__all__ = ["VersionPlugin"]


def _validate_version(latest_version: str) -> Callable[[str], str | None]:
    def validate(value: str) -> str | None:
        parsed = SemVer.parse(value)
        if parsed is None:
            return "The version must follow the semver standard."
        latest = SemVer.parse(latest_version)
        if latest is not None and not parsed > latest:
            return f"The version must be greater than {latest_version}."
        return None

    return validate


class VersionPlugin(Plugin):
    namespace_name = "version"

    @classmethod
    def is_enabled(cls, options: Mapping[str, object] | None, *, cwd: Path) -> bool:
        return True

    def get_increment(self, request: IncrementRequest) -> str | bool | None:
        increment = request.increment
        if increment is None:
            configured = self.options.get("increment")
            increment = configured if isinstance(configured, str | bool) else None
        preset = recommendation_preset(increment)
        if preset is None:
            return increment
        return self.recommend(preset)

    def recommend(self, preset: str) -> str | None:
        """Release type recommended by the conventional commits since the latest tag."""
        git_options = self.config.namespace_options("git") or {}
        repo = Repository(self.shell)
        messages = repo.commit_messages_since(repo.latest_tag(get_str(git_options, "tagMatch")))
        if isinstance(messages, Err):
            self.console.warning(f"Could not read commits to recommend an increment: {messages.error.message}")
            return None

        increment = recommend_increment(messages.value)
        if increment is None:
            self.console.warning("No commits since the latest tag, no increment to recommend.")
            return None
        self.console.info(f"Recommended increment ({preset}): {increment}")
        self.set_context({"recommendedIncrement": increment})
        return increment

    def _resolve(self, request: IncrementRequest, *, is_ci: bool) -> str | None:
        latest = SemVer.parse(request.latest_version)
        self.set_context({"latestIsPreRelease": bool(latest and latest.is_prerelease)})
        return resolve(
            request.latest_version,
            request.increment,
            is_ci=is_ci,
            is_pre_release=request.is_pre_release,
            pre_release_id=request.pre_release_id,
            pre_release_base=request.pre_release_base,
            warn=self.console.warning,
        )

    def get_incremented_version_ci(self, request: IncrementRequest) -> str | None:
        return self._resolve(request, is_ci=self.is_ci)

    def get_incremented_version(self, request: IncrementRequest) -> Result[str | None, ReleaseError]:
        version = self._resolve(request, is_ci=self.is_ci)
        if version is not None or self.is_ci:
            return Ok(version)
        return Ok(self._prompt_version(request))

    def _prompt_version(self, request: IncrementRequest) -> str | None:
        choices = increment_choices(
            request.latest_version,
            is_pre_release=request.is_pre_release,
            pre_release_id=request.pre_release_id,
            pre_release_base=request.pre_release_base,
        )
        picked = self.prompt.show(
            PromptSpec(
                type="list",
                name="incrementList",
                message="Select increment (next version):",
                choices=tuple(PromptChoice(c.label, c.increment) for c in choices),
            )
        ).get("incrementList")

        if isinstance(picked, str) and picked:
            return resolve(
                request.latest_version,
                picked,
                is_pre_release=request.is_pre_release,
                pre_release_id=request.pre_release_id,
                pre_release_base=request.pre_release_base,
            )

        answer = self.prompt.show(
            PromptSpec(
                type="input",
                name="version",
                message="Please enter a valid version:",
                validate=_validate_version(request.latest_version),
            )
        ).get("version")
        if isinstance(answer, str) and SemVer.parse(answer) is not None:
            return answer.strip().removeprefix("v")
        return None
