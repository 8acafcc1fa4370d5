"""Lifecycle hooks: shell commands configured per phase.

Keys are `before:<phase>`, `after:<phase>` (global) and
`before:<namespace>:<phase>`, `after:<namespace>:<phase>` (per plugin).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Literal

from relkit.core.result import Err, Ok, Result
from relkit.platform.shell import ShellProtocol
from relkit.release.errors import ReleaseError, ReleaseErrorKind

__all__ = ["HookRunner", "hook_key"]

HookPrefix = Literal["before", "after"]


def hook_key(prefix: HookPrefix, phase: str, namespace: str | None = None) -> str:
    if namespace:
        return f"{prefix}:{namespace}:{phase}"
    return f"{prefix}:{phase}"


class HookRunner:
    """Runs the commands configured for a hook key, in order."""

    def __init__(self, hooks: Mapping[str, Sequence[str]], shell: ShellProtocol) -> None:
        self._hooks = {key: list(commands) for key, commands in hooks.items()}
        self._shell = shell
        self.fired: list[str] = []

    def commands(self, key: str) -> list[str]:
        return list(self._hooks.get(key, ()))

    def run(
        self,
        key: str,
        context: Mapping[str, object],
        *,
        kind: ReleaseErrorKind = "local_mutation",
    ) -> Result[None, ReleaseError]:
        """Run every command of `key`; the first failure stops the hook."""
        self.fired.append(key)
        for command in self._hooks.get(key, ()):
            result = self._shell.exec(command, context=context)
            if isinstance(result, Err):
                e = result.error
                return Err(
                    ReleaseError(
                        kind=kind,
                        message=f"Hook {key} failed: {e.command}: {e.message}",
                        hint=f"exit code {e.returncode}",
                    )
                )
        return Ok(None)
