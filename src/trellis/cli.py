"""Trellis CLI: list and run the tasks declared in a trellisfile."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click
import typer
from typer.core import TyperGroup

from trellis import __version__
from trellis.config import LOG_LEVELS, TrellisConfig, load_config
from trellis.engine import ScriptEngine
from trellis.errors import TrellisError
from trellis.logs import setup_logging
from trellis.ui import print_list


class ShorthandGroup(TyperGroup):
    """Treat ``trellis TASK ...`` as ``trellis run TASK ...``."""

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        if args and not args[0].startswith("-") and args[0] not in self.commands:
            args = ["run", *args]
        return super().resolve_command(ctx, args)


cli = typer.Typer(
    name="trellis",
    help="Trellis - hierarchical task runner driven by a Python trellisfile",
    cls=ShorthandGroup,
    add_completion=True,
)


@dataclass
class CliState:
    config: TrellisConfig
    script: str
    engine: ScriptEngine | None = None

    def load(self) -> ScriptEngine:
        if self.engine is None:
            engine = ScriptEngine()
            engine.run_script(self.script)
            self.engine = engine
        return self.engine


@contextmanager
def _exit_on_error() -> Iterator[None]:
    try:
        yield
    except TrellisError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(1) from exc


def _complete_task_names(ctx: typer.Context, incomplete: str) -> list[str]:
    script = ctx.find_root().params.get("file")
    try:
        if script is None:
            script = load_config(Path.cwd()).script_name
        engine = ScriptEngine()
        engine.run_script(script)
    except TrellisError:
        return []
    return engine.task_candidates(incomplete)


def _version_option_callback(value: bool) -> None:
    """Handle eager --version option."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback(invoke_without_command=True)
def _cli_callback(
    ctx: typer.Context,
    file: str | None = typer.Option(
        None,
        "--file",
        "-f",
        help="Script file to load (searched upward from the current directory).",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level for trellis itself.",
        click_type=click.Choice(LOG_LEVELS, case_sensitive=False),
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show Trellis version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    """
    Load configuration on every invocation.

    Without a command, runs the default task or lists all tasks.
    """
    _ = version
    with _exit_on_error():
        config = load_config(Path.cwd())
    setup_logging(log_level or config.log_level)
    state = CliState(config=config, script=file or config.script_name)
    ctx.obj = state

    if ctx.invoked_subcommand is not None:
        return
    with _exit_on_error():
        engine = state.load()
        default = engine.default_task()
        if default:
            engine.run_task(default)
        else:
            print_list(engine.list_tasks(), flat=config.flat_listing)


@cli.command("list")
def list_command(
    ctx: typer.Context,
    group: str | None = typer.Argument(
        None,
        help="Only list this group (leaf or fully-qualified name).",
        autocompletion=_complete_task_names,
    ),
    flat: bool = typer.Option(False, "--flat", help="List tasks by full name without grouping."),
) -> None:
    """List groups and tasks."""
    state: CliState = ctx.obj
    with _exit_on_error():
        output = state.load().list_tasks(group)
    print_list(output, flat=flat or state.config.flat_listing)


@cli.command(
    "run",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def run_command(
    ctx: typer.Context,
    task: str = typer.Argument(
        ...,
        metavar="TASK",
        help="Task to run (leaf or fully-qualified name).",
        autocompletion=_complete_task_names,
    ),
) -> None:
    """Run a task. Remaining arguments are bound to its parameters."""
    state: CliState = ctx.obj
    with _exit_on_error():
        state.load().run_task(task, ctx.args)


@cli.command("complete-tasks")
def complete_tasks(
    ctx: typer.Context,
    prefix: str = typer.Argument("", help="Only print names starting with this prefix."),
) -> None:
    """Print task and group names for shell completion, one per line."""
    state: CliState = ctx.obj
    with _exit_on_error():
        names = state.load().task_candidates(prefix)
    for name in names:
        typer.echo(name)


def main() -> None:
    cli()
