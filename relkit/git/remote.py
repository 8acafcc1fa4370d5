"""Parse git remote URLs into host/owner/project parts.

Handles https/ssh/git/file URLs and scp-style `git@host:owner/project.git`.
Owners may contain slashes (GitLab subgroups: `group/sub/project`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlparse

__all__ = ["RemoteInfo", "parse_remote_url"]

_SCP_RE = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<path>(?!//).+)$")


@dataclass(frozen=True, slots=True)
class RemoteInfo:
    host: str | None = None
    owner: str | None = None
    project: str | None = None
    protocol: str | None = None
    remote: str | None = None

    @property
    def repository(self) -> str | None:
        if self.owner is None or self.project is None:
            return None
        return f"{self.owner}/{self.project}"

    def as_context(self) -> dict[str, object]:
        return {
            "host": self.host,
            "owner": self.owner,
            "project": self.project,
            "protocol": self.protocol,
            "remote": self.remote,
            "repository": self.repository,
        }


def _split_path(path: str) -> tuple[str | None, str | None]:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts:
        return (None, None)
    project = parts[-1].removesuffix(".git")
    owner = "/".join(parts[:-1]) or None
    return (owner, project)


def parse_remote_url(url: str | None) -> RemoteInfo:
    """Parse a remote URL. Unparseable input yields an empty RemoteInfo."""
    if not url:
        return RemoteInfo()

    normalized = url.strip().replace("\\", "/")

    if "://" not in normalized:
        m = _SCP_RE.match(normalized)
        if m is not None:
            owner, project = _split_path(m.group("path"))
            return RemoteInfo(m.group("host"), owner, project, "ssh", url)
        owner, project = _split_path(normalized)
        # Local paths only keep the last directory as owner.
        if owner is not None:
            owner = owner.rsplit("/", 1)[-1]
        return RemoteInfo(None, owner, project, "file", url)

    parsed = urlparse(normalized)
    owner, project = _split_path(parsed.path)
    if parsed.scheme == "file" and owner is not None:
        owner = owner.rsplit("/", 1)[-1]
    return RemoteInfo(parsed.hostname, owner, project, parsed.scheme, url)
