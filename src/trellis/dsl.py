"""Functions injected into the globals of a trellisfile.

A trellisfile is plain Python::

    with group("build"):
        description("Build tasks")

        with task("compile"):
            args(profile="debug", target=None)

            @actions
            def run(profile, target):
                exec(f"cargo build --profile {profile} --target {target}")

    default_task("build.compile")

``exec`` and ``dir`` shadow the builtins of the same name inside the script.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Any

from trellis.errors import TrellisError
from trellis.model import CallableAction
from trellis.process import ExecResult, LineCallback

if TYPE_CHECKING:
    from trellis.engine import ScriptEngine

logger = logging.getLogger(__name__)

_F = Callable[..., Any]


class ScriptScope:
    """An open task() or group() scope.

    Works as a context manager, or as a decorator that runs the decorated
    function once inside the scope.
    """

    def __init__(self, engine: ScriptEngine, name: str, kind: str):
        self.engine = engine
        self.name = name
        self.kind = kind
        self.full_path: str | None = None

    def __enter__(self) -> ScriptScope:
        stack, registry = self.engine.build_stack, self.engine.registry
        if self.kind == "task":
            self.full_path = stack.begin_task(registry, self.name)
        else:
            self.full_path = stack.begin_group(registry, self.name)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        stack, registry = self.engine.build_stack, self.engine.registry
        try:
            if self.kind == "task":
                stack.end_task(registry)
            else:
                stack.end_group(registry)
        except TrellisError as close_error:
            if exc is None:
                raise
            # The body's own error is the one worth reporting.
            logger.debug("failed to close %s '%s': %s", self.kind, self.name, close_error)

    def __call__(self, body: _F) -> _F:
        with self:
            body()
        return body


def build_namespace(engine: ScriptEngine) -> dict[str, Any]:
    """Bind the script primitives to one engine."""

    def task(name: str) -> ScriptScope:
        return ScriptScope(engine, name, "task")

    def group(name: str) -> ScriptScope:
        return ScriptScope(engine, name, "group")

    def description(text: str) -> None:
        engine.build_stack.set_description(text)

    def args(params: Mapping[str, object] | None = None, /, **named: object) -> None:
        merged: dict[str, object] = dict(params or {})
        merged.update(named)
        engine.build_stack.set_args(merged)

    def actions(func: _F) -> _F:
        engine.build_stack.set_actions(CallableAction(func))
        return func

    def dir(path: str | Path) -> Path:  # noqa: A001
        return engine.build_stack.set_directory(path)

    def default_task(name: str) -> None:
        engine.registry.set_default_task(name)

    def trigger(name: str, /, *positional: object, **named: object) -> None:
        engine.trigger(
            name,
            [_text(value) for value in positional],
            {key: _text(value) for key, value in named.items()},
        )

    def exec(command: str | list[str], *, check: bool = True) -> ExecResult:  # noqa: A001
        return engine.exec(command, check=check)

    def exec_stream(
        command: str | list[str],
        on_stdout: LineCallback | None = None,
        on_stderr: LineCallback | None = None,
        *,
        check: bool = True,
    ) -> ExecResult:
        return engine.exec_stream(command, on_stdout, on_stderr, check=check)

    return {
        "task": task,
        "group": group,
        "description": description,
        "args": args,
        "actions": actions,
        "dir": dir,
        "default_task": default_task,
        "trigger": trigger,
        "exec": exec,
        "exec_stream": exec_stream,
    }


def _text(value: object) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
