"""Registry of finalized tasks and groups."""

from __future__ import annotations

from collections.abc import Iterator

from trellis.errors import ConstructionError
from trellis.model import Group, RegistryEntry, Task
from trellis.resolver import Lookup, resolve_group, resolve_task


class TaskRegistry:
    """Finalized tasks and groups keyed by full path, in declaration order.

    The build stack is the only writer. Everything else reads.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._groups: dict[str, Group] = {}
        self._root_entries: list[RegistryEntry] = []
        self._default_task: str | None = None

    def task(self, path: str) -> Task | None:
        return self._tasks.get(path)

    def group(self, path: str) -> Group | None:
        return self._groups.get(path)

    def contains_task(self, path: str) -> bool:
        return path in self._tasks

    def contains_group(self, path: str) -> bool:
        return path in self._groups

    def tasks(self) -> Iterator[tuple[str, Task]]:
        return iter(self._tasks.items())

    def groups(self) -> Iterator[tuple[str, Group]]:
        return iter(self._groups.items())

    @property
    def root_entries(self) -> tuple[RegistryEntry, ...]:
        return tuple(self._root_entries)

    def insert_task_entry(self, path: str, task: Task) -> None:
        self._tasks[path] = task

    def insert_group_entry(self, path: str, group: Group) -> None:
        self._groups[path] = group

    def push_root_entry(self, entry: RegistryEntry) -> None:
        self._root_entries.append(entry)

    @property
    def default_task(self) -> str | None:
        return self._default_task

    def set_default_task(self, name: str) -> None:
        """Record the task run when no command is given. Allowed once per script."""
        trimmed = name.strip()
        if not trimmed:
            raise ConstructionError("default_task() requires a non-empty task name.")
        if self._default_task is not None:
            raise ConstructionError("default_task() can only be defined once.")
        self._default_task = trimmed

    def resolve_task(self, identifier: str) -> Lookup:
        return resolve_task(self, identifier)

    def resolve_group(self, identifier: str) -> Lookup:
        return resolve_group(self, identifier)
