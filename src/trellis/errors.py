"""Error taxonomy for trellis.

Every user-facing failure derives from ``TrellisError`` so the CLI boundary can
report it and exit non-zero. ``BuildStackCorrupted`` is the one exception kept
outside the hierarchy: it signals a broken construction protocol, not bad input.
"""

from __future__ import annotations

from collections.abc import Sequence


class TrellisError(RuntimeError):
    """Base class for recoverable, user-facing trellis errors."""


class ConstructionError(TrellisError):
    """Raised while the task script is being evaluated."""


class GuardViolation(ConstructionError):
    """Raised when a script primitive is used in the wrong scope."""


class TaskLookupError(TrellisError):
    """Raised when a task name does not resolve to exactly one task."""

    def __init__(self, name: str, message: str):
        super().__init__(message)
        self.name = name


class TaskNotFound(TaskLookupError):
    def __init__(self, name: str):
        super().__init__(name, f"Task '{name}' does not exist.")


class AmbiguousTask(TaskLookupError):
    """Raised when a leaf name matches more than one task."""

    def __init__(self, name: str, candidates: Sequence[str]):
        lines = [f"Task '{name}' matches multiple candidates:"]
        lines.extend(f"  - {candidate}" for candidate in candidates)
        lines.append("Please use the fully-qualified name (e.g. group.task).")
        super().__init__(name, "\n".join(lines))
        self.candidates = tuple(candidates)


class ArgumentBindingError(TrellisError):
    """Raised when CLI or trigger arguments cannot be bound to a task."""


class MissingActionError(TrellisError):
    def __init__(self, full_path: str):
        super().__init__(f"Task '{full_path}' has no actions() registered.")
        self.full_path = full_path


class BuildStackCorrupted(AssertionError):
    """The build stack lost its root frame. This is a bug, never user error."""
