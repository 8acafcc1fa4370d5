"""Release cycle: versions, errors, retry and rollback policies, hooks.

The orchestrator lives in relkit.release.orchestrator (it depends on the
plugins, which depend on this package).
"""

from .errors import ReleaseError, ReleaseErrorKind, exit_code_for
from .hooks import HookRunner, hook_key
from .record import ReleaseRecord, TargetResult
from .resolver import IncrementChoice, increment_choices, resolve
from .retry import TERMINAL_STATUSES, with_retry
from .rollback import RollbackGuard, RollbackScope
from .semver import SemVer, coerce

__all__ = [
    "HookRunner",
    "IncrementChoice",
    "ReleaseError",
    "ReleaseErrorKind",
    "ReleaseRecord",
    "RollbackGuard",
    "RollbackScope",
    "SemVer",
    "TERMINAL_STATUSES",
    "TargetResult",
    "coerce",
    "exit_code_for",
    "hook_key",
    "increment_choices",
    "resolve",
    "with_retry",
]
