"""Tests for the trellis command line."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from trellis import __version__
from trellis.cli import cli

runner = CliRunner()

SCRIPT = """
    with group("build"):
        description("Build tasks")

        with task("compile"):
            description("Compile sources")
            args(profile="debug")

            @actions
            def compile_(profile):
                print(f"compiling {profile}")

    with group("web"):
        with task("test"):
            actions(lambda: print("web tests"))

    with group("api"):
        with task("test"):
            actions(lambda: print("api tests"))
"""


@pytest.fixture
def project(write_script) -> Path:
    return write_script(SCRIPT)


def test_version() -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == __version__


def test_list_prints_tree(project: Path) -> None:
    result = runner.invoke(cli, ["list"])

    assert result.exit_code == 0, result.output
    lines = [line.rstrip() for line in result.output.splitlines()]
    assert lines[:2] == ["> build : Build tasks", "  - compile : Compile sources"]
    assert "> web" in lines


def test_list_flat_and_group_filter(project: Path) -> None:
    result = runner.invoke(cli, ["list", "--flat"])
    assert result.exit_code == 0
    assert [line.rstrip() for line in result.output.splitlines()] == [
        "build.compile  Compile sources",
        "web.test",
        "api.test",
    ]

    result = runner.invoke(cli, ["list", "web"])
    assert [line.rstrip() for line in result.output.splitlines()] == ["> web", "  - test"]


def test_list_unknown_group_warns(project: Path) -> None:
    result = runner.invoke(cli, ["list", "nope"])
    assert result.exit_code == 0
    assert "Group 'nope' does not exist." in result.output


def test_run_binds_arguments(project: Path) -> None:
    result = runner.invoke(cli, ["run", "compile", "--profile", "release"])
    assert result.exit_code == 0, result.output
    assert "compiling release" in result.output


def test_task_name_shorthand(project: Path) -> None:
    result = runner.invoke(cli, ["build.compile", "profile=fast"])
    assert result.exit_code == 0, result.output
    assert "compiling fast" in result.output

    result = runner.invoke(cli, ["web.test"])
    assert "web tests" in result.output


def test_ambiguous_task_exits_non_zero(project: Path) -> None:
    result = runner.invoke(cli, ["run", "test"])

    assert result.exit_code == 1
    assert "error: Task 'test' matches multiple candidates:" in result.output
    assert "  - api.test" in result.output
    assert "  - web.test" in result.output


def test_unknown_task_and_bad_arguments_exit_non_zero(project: Path) -> None:
    result = runner.invoke(cli, ["deploy"])
    assert result.exit_code == 1
    assert "error: Task 'deploy' does not exist." in result.output

    result = runner.invoke(cli, ["compile", "extra", "more"])
    assert result.exit_code == 1
    assert "Unexpected positional argument 'more' provided." in result.output


def test_no_command_lists_without_default(project: Path) -> None:
    result = runner.invoke(cli, [])
    assert result.exit_code == 0
    assert "> build : Build tasks" in result.output


def test_no_command_runs_default_task(write_script) -> None:
    write_script(
        """
        with task("hello"):
            actions(lambda: print("hello from default"))

        default_task("hello")
        """
    )
    result = runner.invoke(cli, [])
    assert result.exit_code == 0, result.output
    assert "hello from default" in result.output


def test_complete_tasks(project: Path) -> None:
    result = runner.invoke(cli, ["complete-tasks", "b"])
    assert result.exit_code == 0
    assert result.output.splitlines() == ["build", "build.compile"]


def test_file_option_and_config(write_script, isolated_cwd: Path) -> None:
    write_script(
        """
        with task("ci"):
            actions(lambda: print("ci ran"))
        """,
        name="ci.py",
    )

    result = runner.invoke(cli, ["--file", "ci.py", "ci"])
    assert "ci ran" in result.output

    (isolated_cwd / ".trellis.yaml").write_text("script: ci.py\nflat: true\n", encoding="utf-8")
    result = runner.invoke(cli, ["list"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "ci"


def test_missing_script_reports_error() -> None:
    result = runner.invoke(cli, ["list"])
    assert result.exit_code == 1
    assert "Unable to locate script file 'trellisfile.py'" in result.output


def test_failing_command_exits_non_zero(write_script) -> None:
    write_script(
        """
        with task("fail"):
            actions(lambda: exec("exit 4"))
        """
    )
    result = runner.invoke(cli, ["fail"])
    assert result.exit_code == 1
    assert "command failed (4): exit 4" in result.output


def test_trigger_warning_survives_quiet_log_level(write_script) -> None:
    write_script(
        """
        with task("empty"):
            pass

        with task("caller"):
            actions(lambda: trigger("empty"))
        """
    )
    result = runner.invoke(cli, ["--log-level", "ERROR", "caller"])

    assert result.exit_code == 0, result.output
    assert "Task 'empty' has no actions() registered." in result.output
