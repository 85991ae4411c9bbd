"""Pytest configuration and fixtures for Trellis tests."""

from __future__ import annotations

import textwrap
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from trellis.build_stack import BuildStack
from trellis.engine import ScriptEngine
from trellis.registry import TaskRegistry

# A layout entry is a task name, or (group name, [children]).
Layout = str | tuple[str, Sequence["Layout"]]


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every test inside tmp_path with trellis env vars cleared."""
    for var in ("TRELLIS_FILE", "TRELLIS_LOG_LEVEL", "TRELLIS_FLAT", "TRELLIS_COLOR"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path.resolve()


def _declare(stack: BuildStack, registry: TaskRegistry, layout: Sequence[Layout]) -> None:
    for entry in layout:
        if isinstance(entry, str):
            stack.begin_task(registry, entry)
            stack.end_task(registry)
        else:
            name, children = entry
            stack.begin_group(registry, name)
            _declare(stack, registry, children)
            stack.end_group(registry)


@pytest.fixture
def registry_builder() -> Callable[..., TaskRegistry]:
    """Build a registry from a nested layout, e.g. ``("ops", ["deploy"]), "hello"``."""

    def build(*layout: Layout) -> TaskRegistry:
        registry = TaskRegistry()
        _declare(BuildStack(), registry, layout)
        return registry

    return build


@pytest.fixture
def write_script(isolated_cwd: Path) -> Callable[..., Path]:
    def write(source: str, name: str = "trellisfile.py") -> Path:
        path = isolated_cwd / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path

    return write


@pytest.fixture
def load_script(write_script: Callable[..., Path], isolated_cwd: Path) -> Callable[[str], ScriptEngine]:
    """Write a trellisfile into the test directory and evaluate it."""

    def load(source: str) -> ScriptEngine:
        path = write_script(source)
        engine = ScriptEngine(base_dir=isolated_cwd)
        engine.run_script(path)
        return engine

    return load
