"""Bind command-line or trigger() arguments to declared task parameters."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from trellis.errors import ArgumentBindingError
from trellis.registry import TaskRegistry

logger = logging.getLogger(__name__)


def parse_cli_arguments(raw_args: Sequence[str]) -> tuple[list[str], dict[str, str]]:
    """Split raw tokens into positional values and named values.

    Accepted forms: ``--key=value``, ``--key value``, ``key=value`` and bare
    positional values. A later named value replaces an earlier one with the
    same key.
    """
    positional: list[str] = []
    named: dict[str, str] = {}

    i = 0
    while i < len(raw_args):
        arg = raw_args[i]
        if arg.startswith("--"):
            rest = arg[2:]
            if not rest:
                raise ArgumentBindingError("Argument name required after '--'.")
            if "=" in rest:
                key, value = rest.split("=", 1)
            elif (
                i + 1 < len(raw_args)
                and raw_args[i + 1]
                and not raw_args[i + 1].startswith("--")
                and "=" not in raw_args[i + 1]
            ):
                i += 1
                key, value = rest, raw_args[i]
            else:
                raise ArgumentBindingError(f"Option '--{rest}' is missing a value.")
            if not key:
                raise ArgumentBindingError("Argument name cannot be empty.")
            named[key] = value
        elif "=" in arg:
            key, value = arg.split("=", 1)
            if not key:
                raise ArgumentBindingError("Argument name cannot be empty.")
            named[key] = value
        else:
            positional.append(arg)
        i += 1

    logger.debug("parse_cli_arguments: positional=%s named=%s", positional, named)
    return positional, named


def prepare_arguments_from_parts(
    registry: TaskRegistry,
    task_name: str,
    positional: Sequence[str],
    named: Mapping[str, str],
) -> list[str]:
    """Bind values to the task's parameters in their stored order.

    Each parameter takes its named value first, then the next positional value,
    then its default. Leftover positional or named values are errors.
    """
    task = registry.task(task_name)
    if task is None:
        raise ArgumentBindingError(f"Internal error: task '{task_name}' not found")

    remaining = dict(named)
    logger.debug(
        "prepare_arguments: task=%s positional=%s named=%s", task_name, list(positional), remaining
    )

    if not task.params:
        if positional or remaining:
            raise ArgumentBindingError(f"Task '{task_name}' does not accept arguments.")
        return []

    values: list[str] = []
    pending = iter(positional)
    for spec in task.params:
        if spec.name in remaining:
            values.append(remaining.pop(spec.name))
            continue
        value = next(pending, None)
        if value is not None:
            values.append(value)
        elif spec.default is not None:
            values.append(spec.default)
        else:
            raise ArgumentBindingError(f"Argument '{spec.name}' is missing.")

    extra = next(pending, None)
    if extra is not None:
        raise ArgumentBindingError(f"Unexpected positional argument '{extra}' provided.")
    if remaining:
        raise ArgumentBindingError(f"Unknown argument(s): {', '.join(remaining)}")

    logger.debug("prepared arguments for %s: %s", task_name, values)
    return values


def prepare_arguments_from_cli(
    registry: TaskRegistry,
    task_name: str,
    raw_args: Sequence[str],
) -> list[str]:
    positional, named = parse_cli_arguments(raw_args)
    return prepare_arguments_from_parts(registry, task_name, positional, named)
