"""Name resolution for tasks and groups."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from trellis.model import leaf_name

if TYPE_CHECKING:
    from trellis.registry import TaskRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Found:
    full_path: str


@dataclass(frozen=True)
class Ambiguous:
    candidates: tuple[str, ...]


@dataclass(frozen=True)
class NotFound:
    pass


Lookup = Found | Ambiguous | NotFound


def resolve_name(identifier: str, known_paths: Iterable[str], *, kind: str = "task") -> Lookup:
    """Map a user-typed name onto one of ``known_paths``.

    Exact full paths always win. Dotted identifiers are treated as fully
    qualified and never fall back to leaf matching. Bare names match on the
    leaf segment; more than one match is reported as ``Ambiguous`` with the
    candidates sorted.
    """
    trimmed = identifier.strip()
    logger.debug("resolve %s: identifier=%r", kind, identifier)
    if not trimmed:
        return NotFound()

    paths = list(known_paths)
    if trimmed in paths:
        logger.debug("resolve %s: %r matched exactly", kind, trimmed)
        return Found(trimmed)

    if "." in trimmed:
        logger.debug("resolve %s: dotted identifier %r not found", kind, trimmed)
        return NotFound()

    matches = sorted(path for path in paths if leaf_name(path) == trimmed)
    if not matches:
        logger.debug("resolve %s: %r not found as leaf", kind, trimmed)
        return NotFound()
    if len(matches) == 1:
        logger.debug("resolve %s: leaf %r resolved to %r", kind, trimmed, matches[0])
        return Found(matches[0])

    logger.debug("resolve %s: leaf %r is ambiguous: %s", kind, trimmed, matches)
    return Ambiguous(tuple(matches))


def resolve_task(registry: TaskRegistry, identifier: str) -> Lookup:
    return resolve_name(identifier, (path for path, _ in registry.tasks()), kind="task")


def resolve_group(registry: TaskRegistry, identifier: str) -> Lookup:
    return resolve_name(identifier, (path for path, _ in registry.groups()), kind="group")
