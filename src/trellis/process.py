"""Command runners backing the exec() and exec_stream() script primitives."""

from __future__ import annotations

import subprocess
import sys
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from trellis.errors import TrellisError

LineCallback = Callable[[str], object]

# A killed shell can leave grandchildren holding stderr open.
_READER_JOIN_TIMEOUT = 5.0


@dataclass(frozen=True)
class ExecResult:
    """Result envelope for subprocess execution."""

    command: str
    cwd: Path
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ExecError(TrellisError):
    """Raised when a command returns non-zero in check mode."""

    def __init__(self, result: ExecResult):
        detail = (result.stderr or result.stdout).strip()
        message = f"command failed ({result.returncode}): {result.command}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)
        self.result = result


def _render(command: str | Sequence[str]) -> str:
    if isinstance(command, str):
        return command
    return " ".join(command)


def run_command(
    command: str | Sequence[str],
    *,
    cwd: Path,
    check: bool = True,
    forward: bool = True,
) -> ExecResult:
    """Run command and return structured result.

    A string is run through the shell, a sequence is run as argv.
    """
    completed = subprocess.run(
        command if isinstance(command, str) else list(command),
        cwd=cwd,
        shell=isinstance(command, str),
        capture_output=True,
        text=True,
        check=False,
    )
    result = ExecResult(
        command=_render(command),
        cwd=cwd.resolve(),
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
    )
    if forward:
        _forward(result)
    if check and result.returncode != 0:
        raise ExecError(result)
    return result


def stream_command(
    command: str | Sequence[str],
    *,
    cwd: Path,
    on_stdout: LineCallback | None = None,
    on_stderr: LineCallback | None = None,
    check: bool = True,
) -> ExecResult:
    """Run command, handing each output line to a callback as it arrives.

    Without a callback the line is echoed to the matching stream.
    """
    proc = subprocess.Popen(
        command if isinstance(command, str) else list(command),
        cwd=cwd,
        shell=isinstance(command, str),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        bufsize=1,
    )
    out_lines: list[str] = []
    err_lines: list[str] = []
    assert proc.stdout is not None and proc.stderr is not None
    err_reader = _StderrReader(proc.stderr, err_lines, on_stderr or _echo(sys.stderr))
    err_reader.start()
    try:
        _pump(proc.stdout, out_lines, on_stdout or _echo(sys.stdout))
        err_reader.join()
        if err_reader.error is not None:
            raise err_reader.error
    except BaseException:
        proc.kill()
        raise
    finally:
        returncode = proc.wait()
        err_reader.join(timeout=_READER_JOIN_TIMEOUT)

    result = ExecResult(
        command=_render(command),
        cwd=cwd.resolve(),
        returncode=returncode,
        stdout="".join(out_lines),
        stderr="".join(err_lines),
    )
    if check and result.returncode != 0:
        raise ExecError(result)
    return result


def _pump(stream: IO[str], sink: list[str], callback: LineCallback) -> None:
    try:
        for line in stream:
            sink.append(line)
            callback(line.rstrip("\n"))
    finally:
        stream.close()


class _StderrReader(threading.Thread):
    """Pumps stderr on a side thread. A callback failure is kept for the caller to raise."""

    def __init__(self, stream: IO[str], sink: list[str], callback: LineCallback):
        super().__init__(daemon=True)
        self.stream = stream
        self.sink = sink
        self.callback = callback
        self.error: BaseException | None = None

    def run(self) -> None:
        try:
            _pump(self.stream, self.sink, self.callback)
        except BaseException as exc:
            self.error = exc


def _echo(target: IO[str]) -> LineCallback:
    def emit(line: str) -> None:
        target.write(f"{line}\n")
        target.flush()

    return emit


def _forward(result: ExecResult) -> None:
    if result.stdout:
        sys.stdout.write(result.stdout)
        sys.stdout.flush()
    if result.stderr:
        sys.stderr.write(result.stderr)
        sys.stderr.flush()
