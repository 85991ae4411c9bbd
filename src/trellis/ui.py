from __future__ import annotations

import os
import sys

from rich.console import Console
from rich.text import Text

from trellis.listing import ListItem, ListItemKind, ListMessageLevel, ListOutput

GROUP_STYLE = "bold bright_white on dodger_blue3"
TASK_STYLE = "cyan"
DESCRIPTION_STYLE = "bright_black"


def colors_enabled() -> bool:
    if os.getenv("TRELLIS_COLOR", "1") == "0":
        return False
    return sys.stdout.isatty()


def _console(*, stderr: bool = False) -> Console:
    return Console(stderr=stderr, highlight=False, no_color=not colors_enabled(), soft_wrap=True)


def print_warning(text: str) -> None:
    _console(stderr=True).print(Text(text))


def print_messages(output: ListOutput) -> None:
    out = _console()
    for message in output.messages:
        if message.level is ListMessageLevel.INFO:
            out.print(Text(message.text))
        else:
            print_warning(message.text)


def print_list(output: ListOutput, *, flat: bool = False) -> None:
    """Print messages, then the listing as a tree or as flat full names."""
    print_messages(output)
    console = _console()
    lines = flat_lines(output) if flat else tree_lines(output)
    for line in lines:
        console.print(line)


def tree_lines(output: ListOutput) -> list[Text]:
    widths: dict[int, int] = {}
    for item in output.items:
        widths[item.depth] = max(widths.get(item.depth, 0), len(item.name))

    lines: list[Text] = []
    for item in output.items:
        symbol = ">" if item.kind is ListItemKind.GROUP else "-"
        base = f"{'  ' * item.depth}{symbol} {item.name.ljust(widths[item.depth])}"
        style = GROUP_STYLE if item.kind is ListItemKind.GROUP else TASK_STYLE
        line = Text(base, style=style)
        if item.description is not None:
            line.append(f" : {item.description}", style=_description_style(item))
        lines.append(line)
    return lines


def flat_lines(output: ListOutput) -> list[Text]:
    tasks = output.tasks()
    width = max((len(item.full_name) for item in tasks), default=0)

    lines: list[Text] = []
    for item in tasks:
        line = Text(item.full_name.ljust(width), style=TASK_STYLE)
        if item.description is not None:
            line.append("  ")
            line.append(item.description, style=DESCRIPTION_STYLE)
        lines.append(line)
    return lines


def _description_style(item: ListItem) -> str:
    return GROUP_STYLE if item.kind is ListItemKind.GROUP else DESCRIPTION_STYLE
