"""Tests for release/rollback.py."""

from __future__ import annotations

import pytest

from relkit.release.rollback import RollbackGuard, RollbackScope


class TestRollbackGuard:
    def test_fires_once(self) -> None:
        calls: list[str] = []
        guard = RollbackGuard("git", lambda: calls.append("undo"))
        guard.arm()

        assert guard.fire() is True
        assert guard.fire() is False
        assert calls == ["undo"]
        assert guard.ran is True
        assert guard.armed is False

    def test_unarmed_guard_does_not_fire(self) -> None:
        calls: list[str] = []
        guard = RollbackGuard("git", lambda: calls.append("undo"))
        assert guard.fire() is False
        assert calls == []

    def test_disarm(self) -> None:
        calls: list[str] = []
        guard = RollbackGuard("git", lambda: calls.append("undo"))
        guard.arm()
        guard.disarm()
        assert guard.fire() is False
        assert calls == []

    def test_cannot_rearm_after_running(self) -> None:
        calls: list[str] = []
        guard = RollbackGuard("git", lambda: calls.append("undo"))
        guard.arm()
        guard.fire()
        guard.arm()
        assert guard.armed is False
        assert guard.fire() is False
        assert calls == ["undo"]


class TestRollbackScope:
    def test_clean_exit_fires_nothing(self) -> None:
        calls: list[str] = []
        with RollbackScope() as scope:
            scope.guard("git", lambda: calls.append("git"))
            assert scope.is_open
        assert not scope.is_open
        assert calls == []

    def test_clean_exit_disarms_guards(self) -> None:
        calls: list[str] = []
        with RollbackScope() as scope:
            guard = scope.guard("git", lambda: calls.append("git"))
        assert guard.armed is False
        assert scope.fail() == []
        assert calls == []

    def test_exception_fires_newest_first(self) -> None:
        calls: list[str] = []
        with pytest.raises(RuntimeError):
            with RollbackScope() as scope:
                scope.guard("first", lambda: calls.append("first"))
                scope.guard("second", lambda: calls.append("second"))
                raise RuntimeError("bump failed")
        assert calls == ["second", "first"]

    def test_keyboard_interrupt_fires_guards(self) -> None:
        calls: list[str] = []
        with pytest.raises(KeyboardInterrupt):
            with RollbackScope() as scope:
                scope.guard("git", lambda: calls.append("git"))
                raise KeyboardInterrupt
        assert calls == ["git"]

    def test_fail_then_exception_runs_each_guard_once(self) -> None:
        calls: list[str] = []
        with pytest.raises(RuntimeError):
            with RollbackScope() as scope:
                scope.guard("git", lambda: calls.append("git"))
                assert scope.fail() == ["git"]
                raise RuntimeError("late failure")
        assert calls == ["git"]

    def test_disarmed_guards_are_skipped(self) -> None:
        calls: list[str] = []
        scope = RollbackScope()
        kept = scope.guard("kept", lambda: calls.append("kept"))
        pushed = scope.guard("pushed", lambda: calls.append("pushed"))
        pushed.disarm()

        assert scope.fail() == ["kept"]
        assert calls == ["kept"]
        assert kept.ran and not pushed.ran
        assert len(scope.guards) == 2
