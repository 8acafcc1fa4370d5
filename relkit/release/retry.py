"""Retry/bail policy for remote API calls.

One canonical policy for every remote target:
- 400, 401, 404, 422 (validation, auth, not found) are terminal: bail after
  the first attempt.
- everything else (5xx, 429, network errors and timeouts reported as
  status 0) is retried, `retries` times, with a linear backoff.
"""

from __future__ import annotations

from collections.abc import Callable
from time import sleep as _sleep

from relkit.core.result import Err, Ok, Result
from relkit.release.errors import ReleaseError
from relkit.remote.http import HttpError

__all__ = [
    "DEFAULT_MIN_DELAY_SECONDS",
    "DEFAULT_RETRIES",
    "TERMINAL_STATUSES",
    "describe_http_error",
    "with_retry",
]

TERMINAL_STATUSES = frozenset({400, 401, 404, 422})
DEFAULT_RETRIES = 2
DEFAULT_MIN_DELAY_SECONDS = 1.0


def describe_http_error(error: HttpError) -> str:
    """Normalized "<status> (<message>)" text."""
    return f"{error.status} ({error.message})"


def with_retry[T](
    call: Callable[[], Result[T, HttpError]],
    *,
    action: str,
    retries: int = DEFAULT_RETRIES,
    min_delay: float = DEFAULT_MIN_DELAY_SECONDS,
    terminal: frozenset[int] = TERMINAL_STATUSES,
    sleep: Callable[[float], None] | None = None,
) -> Result[T, ReleaseError]:
    """Run a remote call under the retry/bail policy.

    Args:
        call: The remote call; Err(HttpError) signals failure.
        action: Label used as error hint ("github createRelease").
        retries: Extra attempts after the first one.
        min_delay: Backoff unit in seconds (attempt n waits n * min_delay).
        terminal: Statuses that bail immediately.
        sleep: Backoff function, time.sleep when omitted.

    Returns:
        Ok(value), or Err(ReleaseError) with kind remote_terminal (bailed)
        or remote_failed (retries exhausted).
    """
    wait = sleep or _sleep
    for attempt in range(max(0, retries)):
        result = call()
        if isinstance(result, Ok):
            return result
        if result.error.status in terminal:
            return Err(_as_release_error(result.error, action, bailed=True))
        wait(min_delay * (attempt + 1))

    result = call()
    if isinstance(result, Ok):
        return result
    return Err(_as_release_error(result.error, action, bailed=result.error.status in terminal))


def _as_release_error(error: HttpError, action: str, *, bailed: bool) -> ReleaseError:
    return ReleaseError(
        kind="remote_terminal" if bailed else "remote_failed",
        message=describe_http_error(error),
        hint=action,
        status=error.status,
    )
