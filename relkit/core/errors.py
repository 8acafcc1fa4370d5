"""Exit codes for the relkit CLI.

Each release error kind maps onto one of these codes (see
relkit.release.errors.exit_code_for). The numeric values are part of the
CLI contract and must remain stable:
- 0: Success
- 1: User error (bad config, invalid version, cancelled)
- 2: Environment error (dirty working dir, missing token, no upstream)
- 4: Network error (remote release or registry failure)
- 5: I/O error (local commit/tag failed)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
