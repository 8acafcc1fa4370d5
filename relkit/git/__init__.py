"""Git repository access."""

from .remote import RemoteInfo, parse_remote_url
from .repository import GitError, GitStatus, Repository, StatusEntry, is_remote_name

__all__ = [
    "GitError",
    "GitStatus",
    "RemoteInfo",
    "Repository",
    "StatusEntry",
    "is_remote_name",
    "parse_remote_url",
]
