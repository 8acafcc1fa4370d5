"""Git repository abstraction.

This module provides the Repository class for the git operations a release
needs. Commands run through the injected shell, so writes are echoed and
skipped in dry-run mode while reads always hit the real repository.
All fallible operations return Result types.

Usage:
    repo = Repository(shell)

    match repo.status():
        case Ok(status):
            print(f"Branch: {status.branch}")
            if status.is_clean:
                print("Working tree clean")
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from relkit.core.result import Err, Ok, Result
from relkit.platform.shell import ShellError, ShellProtocol

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
    "is_remote_name",
]

_NOTHING_TO_COMMIT = re.compile(r"nothing (added )?to commit")


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry in git status.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??")
        path: File path
    """

    xy: str
    path: str

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"

    def __str__(self) -> str:
        return f"{self.xy} {self.path}"


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed `git status --porcelain=v1 -b` output.

    Attributes:
        branch: Current branch name
        upstream: Upstream branch (e.g., "origin/main"), None if not set
        entries: All status entries (staged, unstaged, untracked)
    """

    branch: str
    upstream: str | None = None
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def tracked_changes(self) -> list[StatusEntry]:
        return [e for e in self.entries if not e.is_untracked]

    @property
    def is_clean(self) -> bool:
        """True when no tracked file changed; untracked files are ignored."""
        return not self.tracked_changes

    def changeset(self) -> str:
        return "\n".join(str(e) for e in self.tracked_changes)


def is_remote_name(remote_or_url: str) -> bool:
    """True for remote names like origin, False for URLs and scp-style paths."""
    return "/" not in remote_or_url


def _as_git_error(e: ShellError, command: str) -> GitError:
    return GitError(command=command, message=e.message, returncode=e.returncode)


class Repository:
    """Git operations for the repository the shell runs in."""

    def __init__(self, shell: ShellProtocol) -> None:
        self._shell = shell

    def _read(self, *args: str) -> Result[str, ShellError]:
        return self._shell.exec(["git", *args], write=False)

    def _write(self, *args: str, label: str) -> Result[str, GitError]:
        result = self._shell.exec(["git", *args])
        match result:
            case Err(e):
                return Err(_as_git_error(e, label))
            case Ok(stdout):
                return Ok(stdout)

    # Queries

    def is_repo(self) -> bool:
        return isinstance(self._read("rev-parse", "--git-dir"), Ok)

    def status(self) -> Result[GitStatus, GitError]:
        """Get repository status.

        Returns:
            Ok(GitStatus) on success
            Err(GitError) on failure
        """
        result = self._read("status", "--porcelain=v1", "-b")
        match result:
            case Err(e):
                return Err(_as_git_error(e, "status"))
            case Ok(stdout):
                return Ok(self._parse_status(stdout))

    def is_clean(self) -> bool:
        """True when tracked files match HEAD. False if it cannot be determined."""
        return isinstance(self._read("diff-index", "--quiet", "HEAD", "--"), Ok)

    def current_branch(self) -> str | None:
        """Get current branch name. Returns None if detached HEAD or error."""
        result = self._read("rev-parse", "--abbrev-ref", "HEAD")
        match result:
            case Ok(stdout):
                return None if stdout in ("", "HEAD") else stdout
            case Err(_):
                return None

    def has_upstream(self) -> bool:
        """Check if current branch has an upstream configured."""
        result = self._read("rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}")
        return isinstance(result, Ok) and bool(result.value)

    def remote_url(self, remote_or_url: str = "origin") -> str | None:
        if not is_remote_name(remote_or_url):
            return remote_or_url
        result = self._read("config", "--get", f"remote.{remote_or_url}.url")
        match result:
            case Ok(stdout):
                return stdout or None
            case Err(_):
                return None

    def latest_tag(self, match: str | None = None) -> str | None:
        args = ["describe", "--tags", "--abbrev=0"]
        if match:
            args.append(f"--match={match}")
        result = self._read(*args)
        match result:
            case Ok(stdout):
                return stdout or None
            case Err(_):
                return None

    def tag_exists(self, tag: str) -> bool:
        result = self._read("show-ref", "--tags", "--quiet", "--verify", "--", f"refs/tags/{tag}")
        return isinstance(result, Ok)

    def commits_since(self, tag: str | None) -> int:
        """Number of commits on HEAD after `tag` (all commits without a tag)."""
        rev = f"{tag}..HEAD" if tag else "HEAD"
        result = self._read("rev-list", rev, "--count")
        match result:
            case Ok(stdout):
                return int(stdout) if stdout.isdigit() else 0
            case Err(_):
                return 0

    def commit_messages_since(self, tag: str | None) -> Result[list[str], GitError]:
        """Full messages of the commits on HEAD after `tag`, newest first."""
        rev = f"{tag}..HEAD" if tag else "HEAD"
        result = self._read("log", "--format=%B%x1e", rev)
        match result:
            case Err(e):
                return Err(_as_git_error(e, "log"))
            case Ok(stdout):
                return Ok([m.strip() for m in stdout.split("\x1e") if m.strip()])

    # Mutations

    def fetch(self) -> Result[str, GitError]:
        return self._write("fetch", label="fetch")

    def stage(self, paths: Sequence[str]) -> Result[str, GitError]:
        if not paths:
            return Ok("")
        return self._write("add", *paths, label="add")

    def stage_all(self, *, include_untracked: bool = False) -> Result[str, GitError]:
        return self._write("add", ".", "--all" if include_untracked else "--update", label="add")

    def commit(self, message: str, args: Sequence[str] = ()) -> Result[bool, GitError]:
        """Commit staged changes.

        Returns:
            Ok(True) when a commit was created, Ok(False) when there was
            nothing to commit, Err(GitError) otherwise.
        """
        result = self._shell.exec(["git", "commit", f"--message={message}", *args])
        match result:
            case Ok(_):
                return Ok(True)
            case Err(e):
                if _NOTHING_TO_COMMIT.search(e.message):
                    return Ok(False)
                return Err(_as_git_error(e, "commit"))

    def tag(self, name: str, annotation: str, args: Sequence[str] = ()) -> Result[str, GitError]:
        return self._write("tag", "--annotate", f"--message={annotation}", *args, name, label="tag")

    def push(self, args: Sequence[str] = (), target: Sequence[str] = ()) -> Result[str, GitError]:
        return self._write("push", *args, *target, label="push")

    def delete_tag(self, name: str) -> Result[str, GitError]:
        return self._write("tag", "--delete", name, label="tag --delete")

    def delete_remote_tag(self, remote: str, name: str) -> Result[str, GitError]:
        return self._write("push", remote, "--delete", f"refs/tags/{name}", label="push --delete")

    def reset_hard(self, ref: str = "HEAD") -> Result[str, GitError]:
        return self._write("reset", "--hard", ref, label="reset --hard")

    # Parsing

    def _parse_status(self, output: str) -> GitStatus:
        """Parse git status --porcelain=v1 -b output."""
        lines = [ln for ln in output.splitlines() if ln.strip()]

        if not lines or not lines[0].startswith("##"):
            return GitStatus(branch="", entries=self._parse_entries(lines))

        # First line is branch info: ## branch...upstream [tracking]
        branch, upstream = self._parse_branch_line(lines[0])

        return GitStatus(
            branch=branch,
            upstream=upstream,
            entries=self._parse_entries(lines[1:]),
        )

    def _parse_branch_line(self, line: str) -> tuple[str, str | None]:
        """Parse branch line: ## branch...upstream [info]"""
        s = line.strip()[2:].lstrip()

        # Drop the tracking suffix
        s = s.split(" [", 1)[0].strip()

        if "..." in s:
            left, right = s.split("...", 1)
            return (left.strip(), right.strip())

        return (s, None)

    def _parse_entries(self, lines: list[str]) -> tuple[StatusEntry, ...]:
        entries: list[StatusEntry] = []
        for line in lines:
            # Format: XY path; untracked: ?? path
            if len(line) < 4:
                continue
            entries.append(StatusEntry(xy=line[:2], path=line[3:]))
        return tuple(entries)
