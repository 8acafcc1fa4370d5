"""Scoped rollback of local mutations.

The orchestrator opens a RollbackScope around the mutation window
(beforeBump through release). Plugins arm guards inside it; when the
scope exits by exception (KeyboardInterrupt included) or the run fails,
every armed guard fires once, newest first. A clean exit disarms every
guard, so nothing after the window can revert the release.
"""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType

__all__ = ["RollbackGuard", "RollbackScope"]


class RollbackGuard:
    """An idempotent undo action.

    The undo callable inspects plugin state when it fires, not when it is
    armed, so it only reverts what actually happened.
    """

    def __init__(self, name: str, undo: Callable[[], None]) -> None:
        self.name = name
        self._undo = undo
        self._armed = False
        self._ran = False

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def ran(self) -> bool:
        return self._ran

    def arm(self) -> None:
        if not self._ran:
            self._armed = True

    def disarm(self) -> None:
        self._armed = False

    def fire(self) -> bool:
        """Run the undo if armed and not yet run. Returns True when it ran."""
        if not self._armed or self._ran:
            return False
        self._ran = True
        self._armed = False
        self._undo()
        return True


class RollbackScope:
    def __init__(self) -> None:
        self._guards: list[RollbackGuard] = []
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def guards(self) -> tuple[RollbackGuard, ...]:
        return tuple(self._guards)

    def guard(self, name: str, undo: Callable[[], None]) -> RollbackGuard:
        """Create, register and arm a guard."""
        guard = RollbackGuard(name, undo)
        self._guards.append(guard)
        guard.arm()
        return guard

    def fail(self) -> list[str]:
        """Fire every armed guard, newest first. Returns names of guards that ran."""
        fired: list[str] = []
        for guard in reversed(self._guards):
            if guard.fire():
                fired.append(guard.name)
        return fired

    def disarm_all(self) -> None:
        for guard in self._guards:
            guard.disarm()

    def __enter__(self) -> RollbackScope:
        self._open = True
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._open = False
        if exc_type is not None:
            self.fail()
        else:
            self.disarm_all()
