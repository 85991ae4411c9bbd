"""Script host: evaluates a trellisfile and runs its tasks."""

from __future__ import annotations

import logging
import runpy
from collections.abc import Mapping, Sequence
from pathlib import Path

from trellis.arguments import prepare_arguments_from_cli, prepare_arguments_from_parts
from trellis.build_stack import BuildStack
from trellis.dsl import build_namespace
from trellis.errors import AmbiguousTask, ConstructionError, MissingActionError, TaskNotFound
from trellis.listing import ListOutput, collect_list_output, task_candidates
from trellis.model import Task
from trellis.process import ExecResult, LineCallback, run_command, stream_command
from trellis.registry import TaskRegistry
from trellis.resolver import Ambiguous, Found, Lookup
from trellis.scope import ActionScope, ExecutionState, ensure_active
from trellis.ui import print_warning

logger = logging.getLogger(__name__)

DEFAULT_SCRIPT_NAME = "trellisfile.py"


def locate_script(path: str | Path, start: Path | None = None) -> Path:
    """Find the script file.

    Absolute paths must exist. Relative paths are tried against ``start`` (the
    current directory by default) and then each of its parents.
    """
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        if candidate.exists():
            return candidate.resolve()
        raise ConstructionError(
            f"Unable to locate script file '{path}': Absolute path '{candidate}' does not exist"
        )

    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        joined = directory / candidate
        if joined.exists():
            return joined.resolve()

    raise ConstructionError(
        f"Unable to locate script file '{path}': "
        f"Could not find '{path}' when walking up parent directories"
    )


class ScriptEngine:
    """Owns the registry, the build stack and the execution state for one process."""

    def __init__(self, *, base_dir: Path | None = None):
        self.registry = TaskRegistry()
        self.build_stack = BuildStack()
        self.exec_state = ExecutionState(base_dir=(base_dir or Path.cwd()).resolve())
        self.script_path: Path | None = None

    # construction

    def run_script(self, path: str | Path = DEFAULT_SCRIPT_NAME) -> Path:
        """Evaluate the script once, populating the registry."""
        script = locate_script(path)
        logger.debug("run_script: %s", script)

        self.build_stack.reset()
        self.build_stack.set_script_root(script.parent)
        runpy.run_path(str(script), init_globals=build_namespace(self), run_name="__trellis__")

        if self.build_stack.depth:
            raise ConstructionError("context mismatch: script finished with open scopes.")
        self.script_path = script
        logger.debug("run_script: registered %d task(s)", sum(1 for _ in self.registry.tasks()))
        return script

    # queries

    def default_task(self) -> str | None:
        return self.registry.default_task

    def list_tasks(self, group: str | None = None) -> ListOutput:
        return collect_list_output(self.registry, group)

    def task_candidates(self, prefix: str = "") -> list[str]:
        return task_candidates(self.registry, prefix)

    # execution

    def run_task(self, name: str, raw_args: Sequence[str] = ()) -> None:
        """Resolve a task typed on the command line and run its action."""
        logger.debug("run_task: %s %s", name, list(raw_args))
        full_path = _require_found(name, self.registry.resolve_task(name))
        call_args = prepare_arguments_from_cli(self.registry, full_path, raw_args)
        task = self._task(full_path)
        if task.action is None:
            raise MissingActionError(full_path)

        with ActionScope.start(self.exec_state, task.working_dir):
            logger.debug("run_task: invoking %s with %d argument(s)", full_path, len(call_args))
            task.action.invoke(call_args)

    def trigger(
        self,
        name: str,
        positional: Sequence[str] = (),
        named: Mapping[str, str] | None = None,
    ) -> None:
        """Run another task from inside a running action."""
        ensure_active(self.exec_state, "trigger()")
        full_path = _require_found(name, self.registry.resolve_task(name))
        call_args = prepare_arguments_from_parts(self.registry, full_path, positional, named or {})
        task = self._task(full_path)
        if task.action is None:
            logger.warning("trigger: task %s has no actions registered", full_path)
            print_warning(f"Task '{full_path}' has no actions() registered.")
            return

        with ActionScope.start_nested(self.exec_state, "trigger()", task.working_dir):
            logger.debug("trigger: invoking %s with %d argument(s)", full_path, len(call_args))
            task.action.invoke(call_args)

    def exec(self, command: str | Sequence[str], *, check: bool = True) -> ExecResult:
        ensure_active(self.exec_state, "exec()")
        return run_command(command, cwd=self._action_dir(), check=check)

    def exec_stream(
        self,
        command: str | Sequence[str],
        on_stdout: LineCallback | None = None,
        on_stderr: LineCallback | None = None,
        *,
        check: bool = True,
    ) -> ExecResult:
        ensure_active(self.exec_state, "exec_stream()")
        return stream_command(
            command,
            cwd=self._action_dir(),
            on_stdout=on_stdout,
            on_stderr=on_stderr,
            check=check,
        )

    def _action_dir(self) -> Path:
        return self.exec_state.current_dir() or Path.cwd()

    def _task(self, full_path: str) -> Task:
        task = self.registry.task(full_path)
        if task is None:
            raise TaskNotFound(full_path)
        return task


def _require_found(name: str, lookup: Lookup) -> str:
    if isinstance(lookup, Found):
        return lookup.full_path
    if isinstance(lookup, Ambiguous):
        logger.debug("task %r is ambiguous: %s", name, lookup.candidates)
        raise AmbiguousTask(name, lookup.candidates)
    raise TaskNotFound(name)
