"""Error taxonomy for the release cycle.

Kinds:
- config: invalid/missing config file, invalid version, no version found
- plugin_load: a configured plugin could not be imported
- precondition: dirty working dir, wrong branch, no upstream, no commits, missing token
- local_mutation: stage/commit/tag/bump failures (fires the rollback guard)
- remote_failed: remote call failed after exhausting retries (network, 5xx)
- remote_terminal: remote call bailed on a terminal status (auth, not found, validation)
- cancelled: the operator declined at a prompt that cannot be skipped
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from relkit.core.errors import ErrorCode

__all__ = ["ReleaseError", "ReleaseErrorKind", "exit_code_for"]

ReleaseErrorKind = Literal[
    "config",
    "plugin_load",
    "precondition",
    "local_mutation",
    "remote_failed",
    "remote_terminal",
    "cancelled",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload."""

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
    status: int | None = None  # HTTP status for remote_* errors

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message

    @property
    def is_remote(self) -> bool:
        return self.kind in ("remote_failed", "remote_terminal")


def exit_code_for(error: ReleaseError) -> ErrorCode:
    match error.kind:
        case "precondition":
            return ErrorCode.ENV_ERROR
        case "local_mutation":
            return ErrorCode.IO_ERROR
        case "remote_failed" | "remote_terminal":
            return ErrorCode.NETWORK_ERROR
        case "config" | "plugin_load" | "cancelled":
            return ErrorCode.USER_ERROR
