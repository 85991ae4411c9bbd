"""Execution scopes for running actions.

An ``ActionScope`` marks that an action body is running and applies the task's
working directory for its duration. Scopes nest strictly LIFO and each one
restores exactly the directory it found on entry.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType

from trellis.errors import GuardViolation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionContext:
    working_dir: Path | None = None


@dataclass
class ExecutionState:
    """Stack of running action contexts plus the directory trellis was launched from."""

    base_dir: Path = field(default_factory=Path.cwd)
    contexts: list[ActionContext] = field(default_factory=list)

    def is_active(self) -> bool:
        return bool(self.contexts)

    @property
    def depth(self) -> int:
        return len(self.contexts)

    def current_dir(self) -> Path | None:
        """Working directory declared by the innermost running task, if any."""
        if not self.contexts:
            return None
        return self.contexts[-1].working_dir


def actions_only_error(label: str) -> GuardViolation:
    return GuardViolation(f"{label} can only be used inside actions().")


def ensure_active(state: ExecutionState, label: str) -> None:
    if not state.is_active():
        logger.debug("%s rejected outside of actions", label)
        raise actions_only_error(label)


class ActionScope:
    """Context manager around one action invocation."""

    def __init__(self, state: ExecutionState, working_dir: Path | None = None):
        self.state = state
        self.working_dir = working_dir
        self._previous_dir: Path | None = None
        self._entered = False

    @classmethod
    def start(cls, state: ExecutionState, working_dir: Path | None = None) -> ActionScope:
        return cls(state, working_dir)

    @classmethod
    def start_nested(
        cls,
        state: ExecutionState,
        label: str,
        working_dir: Path | None = None,
    ) -> ActionScope:
        """Like ``start`` but only valid while another action is already running."""
        ensure_active(state, label)
        return cls(state, working_dir)

    def __enter__(self) -> ActionScope:
        target = self.working_dir or self.state.base_dir
        current = Path.cwd()
        if current != target:
            os.chdir(target)
            self._previous_dir = current
            logger.debug("action scope: chdir %s -> %s", current, target)
        self.state.contexts.append(ActionContext(self.working_dir))
        self._entered = True
        logger.debug("action scope: enter depth=%d", self.state.depth)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._entered:
            return
        self._entered = False
        try:
            self.state.contexts.pop()
        finally:
            if self._previous_dir is not None:
                os.chdir(self._previous_dir)
                logger.debug("action scope: restored %s", self._previous_dir)
                self._previous_dir = None
        logger.debug("action scope: exit depth=%d", self.state.depth)
