"""Construction-time state machine driven by script callbacks.

The stack always starts with a root frame. ``task()`` and ``group()`` push
frames; closing a frame finalizes it into the registry and attaches a reference
to whichever frame is then on top.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from trellis.errors import BuildStackCorrupted, ConstructionError, GuardViolation
from trellis.model import (
    ActionHandle,
    GroupBuilder,
    GroupRef,
    ParameterSpec,
    RegistryEntry,
    TaskBuilder,
    TaskRef,
)
from trellis.registry import TaskRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RootFrame:
    pass


@dataclass(frozen=True)
class GroupFrame:
    builder: GroupBuilder

    @property
    def full_path(self) -> str:
        return self.builder.full_path


@dataclass(frozen=True)
class TaskFrame:
    builder: TaskBuilder

    @property
    def full_path(self) -> str:
        return self.builder.full_path


Frame = RootFrame | GroupFrame | TaskFrame


class BuildStack:
    """Stack of open task/group scopes."""

    def __init__(self) -> None:
        self._frames: list[Frame] = [RootFrame()]
        self._script_root: Path | None = None

    def reset(self) -> None:
        """Drop unfinished scopes and the script root before a fresh evaluation."""
        self._frames = [RootFrame()]
        self._script_root = None

    @property
    def depth(self) -> int:
        """Number of task/group scopes currently open."""
        return sum(1 for frame in self._frames if not isinstance(frame, RootFrame))

    @property
    def script_root(self) -> Path | None:
        return self._script_root

    def set_script_root(self, path: Path) -> None:
        self._script_root = path.resolve()

    # scopes

    def begin_task(self, registry: TaskRegistry, name: str) -> str:
        name = name.strip()
        if not name:
            raise ConstructionError("Task name cannot be empty.")
        full_path = self._child_path(name)
        self._ensure_task_name_available(registry, full_path)
        self._frames.append(TaskFrame(TaskBuilder(full_path)))
        logger.debug("begin_task: %s", full_path)
        return full_path

    def end_task(self, registry: TaskRegistry) -> str:
        frame = self._pop()
        if isinstance(frame, GroupFrame):
            raise ConstructionError("context mismatch: end_task() called while inside group().")
        if isinstance(frame, RootFrame):
            raise ConstructionError("context mismatch: end_task() called before task() was started.")

        full_path, task = frame.builder.build()
        registry.insert_task_entry(full_path, task)
        self._attach_to_parent(registry, TaskRef(full_path))
        logger.debug("end_task: %s (%d params)", full_path, len(task.params))
        return full_path

    def begin_group(self, registry: TaskRegistry, name: str) -> str:
        name = name.strip()
        if not name:
            raise ConstructionError("Group name cannot be empty.")
        full_path = self._child_path(name)
        self._ensure_group_name_available(registry, full_path)
        self._frames.append(GroupFrame(GroupBuilder(full_path)))
        logger.debug("begin_group: %s", full_path)
        return full_path

    def end_group(self, registry: TaskRegistry) -> str:
        frame = self._pop()
        if isinstance(frame, TaskFrame):
            raise ConstructionError(
                "context mismatch: task() scope was not closed before ending group()."
            )
        if isinstance(frame, RootFrame):
            raise ConstructionError("context mismatch: end_group() called before group() was started.")

        full_path, group = frame.builder.build()
        registry.insert_group_entry(full_path, group)
        self._attach_to_parent(registry, GroupRef(full_path))
        logger.debug("end_group: %s (%d entries)", full_path, len(group.entries))
        return full_path

    # properties of the open scope

    def set_actions(self, handle: ActionHandle) -> None:
        top = self._top()
        if not isinstance(top, TaskFrame):
            raise GuardViolation("actions() can only be used inside task(). Call task() first.")
        top.builder.action = handle

    def set_description(self, text: str) -> None:
        top = self._top()
        if isinstance(top, RootFrame):
            raise GuardViolation("description() can only be used inside task() or group().")
        top.builder.description = text

    def set_args(self, params: Mapping[str, object]) -> None:
        """Replace the open task's parameters. Stored sorted by name."""
        top = self._top()
        if not isinstance(top, TaskFrame):
            raise GuardViolation("args() can only be used inside task().")

        specs = [
            ParameterSpec(name=str(key), default=_default_text(value))
            for key, value in params.items()
        ]
        specs.sort(key=lambda spec: spec.name)
        top.builder.params = specs

    def set_directory(self, path: str | Path) -> Path:
        top = self._top()
        if not isinstance(top, TaskFrame):
            raise GuardViolation("dir() can only be used inside task().")
        if top.builder.dir_declared:
            raise ConstructionError("dir() can only be defined once per task().")
        top.builder.dir_declared = True

        raw = str(path).strip()
        if not raw:
            raise ConstructionError("dir() requires a non-empty path.")

        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            if self._script_root is None:
                raise ConstructionError("dir() cannot be used before the trellisfile root is known.")
            candidate = self._script_root / candidate

        try:
            resolved = candidate.resolve(strict=True)
        except OSError as exc:
            raise ConstructionError(f"dir(): unable to resolve '{candidate}': {exc}") from exc
        if not resolved.is_dir():
            raise ConstructionError(f"dir(): '{resolved}' is not a directory.")

        top.builder.working_dir = resolved
        logger.debug("dir: %s -> %s", top.full_path, resolved)
        return resolved

    # helpers

    def _top(self) -> Frame:
        if not self._frames:
            raise BuildStackCorrupted("context mismatch: context stack is empty.")
        return self._frames[-1]

    def _pop(self) -> Frame:
        if not self._frames:
            raise BuildStackCorrupted("context mismatch: context stack is empty.")
        frame = self._frames[-1]
        if isinstance(frame, RootFrame):
            # The root frame is never popped.
            return frame
        return self._frames.pop()

    def _child_path(self, name: str) -> str:
        top = self._top()
        if isinstance(top, TaskFrame):
            raise ConstructionError("Nested task() calls are not supported.")
        if isinstance(top, GroupFrame):
            return f"{top.full_path}.{name}"
        return name

    def _attach_to_parent(self, registry: TaskRegistry, entry: RegistryEntry) -> None:
        top = self._top()
        if isinstance(top, RootFrame):
            registry.push_root_entry(entry)
        elif isinstance(top, GroupFrame):
            top.builder.add_entry(entry)
        else:
            raise ConstructionError("Nested task() calls are not supported.")

    def _open_paths(self, frame_type: type[GroupFrame] | type[TaskFrame]) -> set[str]:
        return {frame.full_path for frame in self._frames if isinstance(frame, frame_type)}

    def _ensure_task_name_available(self, registry: TaskRegistry, full_path: str) -> None:
        if registry.contains_task(full_path) or full_path in self._open_paths(TaskFrame):
            raise ConstructionError(f"Task '{full_path}' is already defined.")
        if registry.contains_group(full_path) or full_path in self._open_paths(GroupFrame):
            raise ConstructionError(f"Task '{full_path}' is already defined as a group.")

    def _ensure_group_name_available(self, registry: TaskRegistry, full_path: str) -> None:
        if registry.contains_group(full_path) or full_path in self._open_paths(GroupFrame):
            raise ConstructionError(f"Group '{full_path}' is already defined.")
        if registry.contains_task(full_path) or full_path in self._open_paths(TaskFrame):
            raise ConstructionError(f"Group '{full_path}' is already defined as a task.")


def _default_text(value: object) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text or None
