"""Task and group data model."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class ActionHandle(Protocol):
    """Deferred action body. Invoked with bound argument values, errors propagate."""

    def invoke(self, args: Sequence[str]) -> object: ...


@dataclass(frozen=True)
class CallableAction:
    """ActionHandle backed by a plain Python callable."""

    func: Callable[..., object]

    def invoke(self, args: Sequence[str]) -> object:
        return self.func(*args)


@dataclass(frozen=True)
class ParameterSpec:
    """Declared task parameter with an optional default value."""

    name: str
    default: str | None = None


@dataclass(frozen=True)
class TaskRef:
    full_path: str


@dataclass(frozen=True)
class GroupRef:
    full_path: str


RegistryEntry = TaskRef | GroupRef


@dataclass(frozen=True)
class Task:
    """Finalized task."""

    description: str | None = None
    action: ActionHandle | None = None
    params: tuple[ParameterSpec, ...] = ()
    working_dir: Path | None = None


@dataclass(frozen=True)
class Group:
    """Finalized group. Entries keep declaration order for listing."""

    description: str | None = None
    entries: tuple[RegistryEntry, ...] = ()


@dataclass
class TaskBuilder:
    """Mutable task accumulated while its task() scope is open."""

    full_path: str
    description: str | None = None
    action: ActionHandle | None = None
    params: list[ParameterSpec] = field(default_factory=list)
    working_dir: Path | None = None
    dir_declared: bool = False

    def build(self) -> tuple[str, Task]:
        return self.full_path, Task(
            description=self.description,
            action=self.action,
            params=tuple(self.params),
            working_dir=self.working_dir,
        )


@dataclass
class GroupBuilder:
    """Mutable group accumulated while its group() scope is open."""

    full_path: str
    description: str | None = None
    entries: list[RegistryEntry] = field(default_factory=list)

    def add_entry(self, entry: RegistryEntry) -> None:
        self.entries.append(entry)

    def build(self) -> tuple[str, Group]:
        return self.full_path, Group(description=self.description, entries=tuple(self.entries))


def leaf_name(path: str) -> str:
    """Return the final dot-separated segment of a full path."""
    return path.rsplit(".", 1)[-1]
