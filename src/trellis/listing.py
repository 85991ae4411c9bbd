"""Listing model for ``trellis list``.

Produces plain data. Rendering lives in ``trellis.ui``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from trellis.model import GroupRef, RegistryEntry, TaskRef, leaf_name
from trellis.registry import TaskRegistry
from trellis.resolver import Ambiguous, Found

logger = logging.getLogger(__name__)


class ListItemKind(str, Enum):
    GROUP = "group"
    TASK = "task"


class ListMessageLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True)
class ListItem:
    kind: ListItemKind
    depth: int
    name: str
    full_name: str
    description: str | None = None


@dataclass(frozen=True)
class ListMessage:
    level: ListMessageLevel
    text: str


@dataclass
class ListOutput:
    items: list[ListItem] = field(default_factory=list)
    messages: list[ListMessage] = field(default_factory=list)

    def warn(self, text: str) -> None:
        self.messages.append(ListMessage(ListMessageLevel.WARN, text))

    def tasks(self) -> list[ListItem]:
        return [item for item in self.items if item.kind is ListItemKind.TASK]


def collect_list_output(registry: TaskRegistry, group: str | None = None) -> ListOutput:
    """Collect the items to list, optionally restricted to one group's subtree."""
    output = ListOutput()

    if group is not None:
        lookup = registry.resolve_group(group)
        if isinstance(lookup, Found):
            logger.debug("list: group %r resolved to %r", group, lookup.full_path)
            _collect_group(registry, lookup.full_path, 0, output)
        elif isinstance(lookup, Ambiguous):
            output.warn(f"Group '{group}' matches multiple candidates:")
            for candidate in lookup.candidates:
                output.warn(f"  - {candidate}")
            output.warn("Please use the fully-qualified name (e.g. parent.child).")
        else:
            output.warn(f"Group '{group}' does not exist.")
        return output

    if not registry.root_entries:
        for full_path, task in registry.tasks():
            output.items.append(
                ListItem(ListItemKind.TASK, 0, leaf_name(full_path), full_path, task.description)
            )
        return output

    for entry in registry.root_entries:
        _collect_entry(registry, entry, 0, output)
    return output


def _collect_entry(registry: TaskRegistry, entry: RegistryEntry, depth: int, output: ListOutput) -> None:
    if isinstance(entry, TaskRef):
        task = registry.task(entry.full_path)
        output.items.append(
            ListItem(
                ListItemKind.TASK,
                depth,
                leaf_name(entry.full_path),
                entry.full_path,
                task.description if task else None,
            )
        )
    elif isinstance(entry, GroupRef):
        _collect_group(registry, entry.full_path, depth, output)


def _collect_group(registry: TaskRegistry, full_path: str, depth: int, output: ListOutput) -> None:
    group = registry.group(full_path)
    output.items.append(
        ListItem(
            ListItemKind.GROUP,
            depth,
            leaf_name(full_path),
            full_path,
            group.description if group else None,
        )
    )
    if group is None:
        return
    for entry in group.entries:
        _collect_entry(registry, entry, depth + 1, output)


def task_candidates(registry: TaskRegistry, prefix: str = "") -> list[str]:
    """Sorted, unique task and group paths starting with ``prefix``."""
    names = {path for path, _ in registry.tasks()}
    names.update(path for path, _ in registry.groups())
    return sorted(name for name in names if name.startswith(prefix))
