"""Unit tests for action execution scopes."""

from __future__ import annotations

from pathlib import Path

import pytest

from trellis.errors import GuardViolation
from trellis.scope import ActionScope, ExecutionState, ensure_active


@pytest.fixture
def dirs(isolated_cwd: Path) -> tuple[Path, Path]:
    outer = isolated_cwd / "outer"
    inner = isolated_cwd / "inner"
    outer.mkdir()
    inner.mkdir()
    return outer.resolve(), inner.resolve()


def test_guard_rejects_use_outside_actions() -> None:
    state = ExecutionState()
    with pytest.raises(GuardViolation, match=r"exec\(\) can only be used inside actions\(\)."):
        ensure_active(state, "exec()")


def test_scope_applies_and_restores_working_dir(isolated_cwd: Path, dirs: tuple[Path, Path]) -> None:
    outer, _ = dirs
    state = ExecutionState(base_dir=isolated_cwd)

    with ActionScope.start(state, outer):
        assert Path.cwd() == outer
        assert state.is_active()
        assert state.current_dir() == outer

    assert Path.cwd() == isolated_cwd
    assert not state.is_active()
    assert state.current_dir() is None


def test_scope_without_dir_uses_base_dir(isolated_cwd: Path, dirs: tuple[Path, Path]) -> None:
    outer, _ = dirs
    state = ExecutionState(base_dir=isolated_cwd)

    with ActionScope.start(state, outer):
        with ActionScope.start_nested(state, "trigger()"):
            assert Path.cwd() == isolated_cwd
            assert state.depth == 2
            assert state.current_dir() is None
        assert Path.cwd() == outer


def test_nested_scopes_restore_in_lifo_order(isolated_cwd: Path, dirs: tuple[Path, Path]) -> None:
    outer, inner = dirs
    state = ExecutionState(base_dir=isolated_cwd)

    with ActionScope.start(state, outer):
        with ActionScope.start_nested(state, "trigger()", inner):
            assert Path.cwd() == inner
        assert Path.cwd() == outer
    assert Path.cwd() == isolated_cwd


def test_scope_restores_when_action_raises(isolated_cwd: Path, dirs: tuple[Path, Path]) -> None:
    outer, inner = dirs
    state = ExecutionState(base_dir=isolated_cwd)

    with pytest.raises(ValueError, match="boom"):
        with ActionScope.start(state, outer):
            with ActionScope.start_nested(state, "trigger()", inner):
                raise ValueError("boom")

    assert Path.cwd() == isolated_cwd
    assert state.depth == 0


def test_nested_start_requires_running_action(isolated_cwd: Path) -> None:
    state = ExecutionState(base_dir=isolated_cwd)
    with pytest.raises(GuardViolation, match=r"trigger\(\) can only be used inside actions\(\)."):
        ActionScope.start_nested(state, "trigger()")
    assert state.depth == 0
