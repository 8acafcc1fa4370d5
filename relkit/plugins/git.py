"""Built-in git plugin: preconditions, stage, commit, tag, push.

Local mutations (stage, commit, tag) are covered by a rollback guard that
is armed in before_release and disarmed right before pushing, or when the
release phase completes without a push.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from relkit.core.result import Err, Ok, Result
from relkit.core.structured import as_str_list, get_bool, get_str
from relkit.git.repository import is_remote_name
from relkit.release.errors import ReleaseError
from relkit.release.rollback import RollbackGuard

from .git_base import GitBase

__all__ = ["GitPlugin"]


def _first_line(text: str) -> str:
    lines = text.splitlines() or [""]
    return lines[0] + (" [...]" if len(lines) > 1 else "")


class GitPlugin(GitBase):
    namespace_name = "git"

    _guard: RollbackGuard | None = None

    @classmethod
    def is_enabled(cls, options: Mapping[str, object] | None, *, cwd: Path) -> bool:
        return options is not None and (cwd / ".git").exists()

    def _precondition(self, message: str, hint: str | None = None) -> Err[ReleaseError]:
        return Err(ReleaseError(kind="precondition", message=message, hint=hint))

    def init(self) -> Result[None, ReleaseError]:
        if not self.repo.is_repo():
            return self._precondition("Not a git repository.")

        required = as_str_list(self.options.get("requireBranch"))
        if required:
            branch = self.repo.current_branch()
            if branch not in required:
                return self._precondition(
                    f"Must be on branch {' or '.join(required)} (currently on {branch or 'detached HEAD'}).",
                    hint="check out the release branch or change git.requireBranch",
                )

        if get_bool(self.options, "requireCleanWorkingDir", True) and not self.repo.is_clean():
            return self._precondition(
                "Working dir must be clean.",
                hint="commit or stash changes, or set git.requireCleanWorkingDir = false",
            )

        base = super().init()
        if isinstance(base, Err):
            return base

        if get_bool(self.options, "requireUpstream", True) and not self.repo.has_upstream():
            return self._precondition(
                "No upstream configured for current branch.",
                hint="push with --set-upstream, or set git.requireUpstream = false",
            )

        if get_bool(self.options, "requireCommits"):
            latest_tag = self.get_context("latestTagName")
            if self.repo.commits_since(latest_tag if isinstance(latest_tag, str) else None) == 0:
                return self._precondition("There are no commits since the latest tag.")

        return Ok(None)

    def bump(self, version: str) -> Result[bool, ReleaseError]:
        bumped = super().bump(version)
        if isinstance(bumped, Err):
            return bumped
        tag_name = self.get_context("tagName")
        if get_bool(self.options, "tag", True) and isinstance(tag_name, str) and self.repo.tag_exists(tag_name):
            return self._precondition(
                f'Tag "{tag_name}" already exists.',
                hint="pick another version or delete the tag",
            )
        return Ok(True)

    def before_release(self) -> Result[bool, ReleaseError]:
        if not get_bool(self.options, "commit", True):
            return Ok(False)

        if get_bool(self.options, "requireCleanWorkingDir", True):
            self._guard = self.container.rollback.guard("git", self.rollback)

        status = self.repo.status()
        if isinstance(status, Ok):
            self.preview("changeset", status.value.changeset())

        staged = self.repo.stage_all(include_untracked=get_bool(self.options, "addUntrackedFiles"))
        if isinstance(staged, Err):
            return Err(ReleaseError(kind="local_mutation", message=f"git add failed: {staged.error.message}"))
        return Ok(True)

    def release(self) -> Result[bool, ReleaseError]:
        commit_message = self.format(get_str(self.options, "commitMessage") or "Release ${version}")
        tag_name = self.get_context("tagName")

        steps = (
            ("commit", "Git commit", f"Commit ({_first_line(commit_message)})?", self.commit),
            ("tag", "Git tag", f"Tag ({tag_name})?", self.tag),
            ("push", "Git push", "Push?", self.push),
        )
        ran = False
        for key, label, message, task in steps:
            result = self.step(
                task,
                label=label,
                prompt=key,
                message=message,
                enabled=get_bool(self.options, key, True),
            )
            if isinstance(result, Err):
                return result
            ran = ran or result.value
        return Ok(ran)

    # Steps

    def _args(self, key: str) -> list[str]:
        return [self.format(arg) for arg in as_str_list(self.options.get(key))]

    def commit(self) -> Result[bool, ReleaseError]:
        message = self.format(get_str(self.options, "commitMessage") or "Release ${version}")
        result = self.repo.commit(message, self._args("commitArgs"))
        match result:
            case Err(e):
                return Err(ReleaseError(kind="local_mutation", message=f"git commit failed: {e.message}"))
            case Ok(False):
                self.console.warning("No changes to commit. The latest commit will be tagged.")
            case Ok(_):
                self.set_context({"isCommitted": True})
        return Ok(True)

    def tag(self) -> Result[bool, ReleaseError]:
        name = self.get_context("tagName")
        if not isinstance(name, str) or not name:
            return Err(ReleaseError(kind="local_mutation", message="No tag name resolved."))
        annotation = self.format(get_str(self.options, "tagAnnotation") or "Release ${version}")
        result = self.repo.tag(name, annotation, self._args("tagArgs"))
        if isinstance(result, Err):
            return Err(ReleaseError(kind="local_mutation", message=f"git tag failed: {result.error.message}"))
        self.set_context({"isTagged": True})
        return Ok(True)

    def push_target(self) -> list[str]:
        push_repo = get_str(self.options, "pushRepo")
        if push_repo and not is_remote_name(push_repo):
            return [push_repo]
        if not self.repo.has_upstream():
            branch = self.repo.current_branch() or "HEAD"
            return ["--set-upstream", push_repo or "origin", branch]
        return [push_repo or "origin"]

    def push(self) -> Result[bool, ReleaseError]:
        # Commits that may already be on the remote are never reset.
        if self._guard is not None:
            self._guard.disarm()

        target = self.push_target()
        result = self.repo.push(self._args("pushArgs"), target)
        if isinstance(result, Ok):
            return Ok(True)

        tag_name = self.get_context("tagName")
        if self.get_context("isTagged") and isinstance(tag_name, str):
            remote = get_str(self.options, "pushRepo") or "origin"
            cleanup = self.repo.delete_remote_tag(remote, tag_name)
            if isinstance(cleanup, Err):
                self.console.warning(f"Could not delete remote tag {tag_name}: {cleanup.error.message}")
        return Err(ReleaseError(kind="remote_failed", message=f"git push failed: {result.error.message}"))

    def rollback(self) -> None:
        self.console.info("Rolling back changes...")
        tag_name = self.get_context("tagName")
        if self.get_context("isTagged") and isinstance(tag_name, str):
            deleted = self.repo.delete_tag(tag_name)
            if isinstance(deleted, Err):
                self.console.warning(f"Could not delete tag {tag_name}: {deleted.error.message}")
        ref = "HEAD~1" if self.get_context("isCommitted") else "HEAD"
        reset = self.repo.reset_hard(ref)
        if isinstance(reset, Err):
            self.console.warning(f"Could not reset to {ref}: {reset.error.message}")
