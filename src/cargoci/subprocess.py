"""Running external commands (cargo, rustup, git, actionlint, step shells)."""

from __future__ import annotations

import os
import selectors
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from .errors import CargociError


@dataclass
class RunResult:
    """
    Exit code and output of a finished command.

    When output was streamed, `stdout` and `stderr` hold the echoed lines
    joined with newlines (without a trailing one).
    """

    returncode: int
    stdout: str = ""
    stderr: str = ""
    command: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def failed(self) -> bool:
        return not self.ok


class SubprocessError(CargociError):
    """A command run with check=True exited non-zero."""

    def __init__(self, result: RunResult):
        self.result = result
        super().__init__(f"Command '{' '.join(result.command)}' failed with exit code {result.returncode}")


def run(
    *args: str | Path,
    cwd: str | Path | None = None,
    env: dict[str, str] | None = None,
    capture: bool = False,
    check: bool = False,
) -> RunResult:
    """
    Run a command to completion.

    Output is echoed line by line through sys.stdout/sys.stderr while the
    command runs, so it picks up whatever prefixing the output manager has
    installed. With `capture=True` nothing is echoed.

    Args:
        *args: The program and its arguments, e.g. `run("cargo", "build", "--verbose")`.
        cwd: Directory to run in. Default: the current directory.
        env: Variables added on top of the current environment.
        capture: Collect output silently instead of echoing it.
        check: Raise SubprocessError if the command exits non-zero.

    Raises:
        FileNotFoundError: The program does not exist.

    """
    command = [str(a) for a in args]
    popen_kwargs = {
        "cwd": str(cwd) if cwd else None,
        "env": {**os.environ, **(env or {})},
        "text": True,
    }

    if capture:
        completed = subprocess.run(command, capture_output=True, **popen_kwargs)
        result = RunResult(completed.returncode, completed.stdout, completed.stderr, command)
    else:
        result = _run_streaming(command, popen_kwargs)

    if check and result.failed:
        raise SubprocessError(result)
    return result


def _run_streaming(command: list[str], popen_kwargs: dict) -> RunResult:
    proc = subprocess.Popen(command, stdout=subprocess.PIPE, stderr=subprocess.PIPE, bufsize=1, **popen_kwargs)
    collected: dict[str, list[str]] = {"stdout": [], "stderr": []}
    try:
        _pump(proc, collected)
    finally:
        # Don't leave the child running if we were interrupted
        if proc.poll() is None:
            proc.kill()
        proc.wait()
    return RunResult(proc.returncode, "\n".join(collected["stdout"]), "\n".join(collected["stderr"]), command)


def _echo(line: str, stream_name: str, collected: dict[str, list[str]]) -> None:
    text = line.rstrip("\n")
    collected[stream_name].append(text)
    target: TextIO = sys.stderr if stream_name == "stderr" else sys.stdout
    print(text, file=target, flush=True)


def _pump(proc: subprocess.Popen[str], collected: dict[str, list[str]]) -> None:
    """Echo both pipes of `proc` as lines arrive, until both are closed."""
    pipes = {"stdout": proc.stdout, "stderr": proc.stderr}

    if sys.platform == "win32":
        # No select() on pipes: drain one after the other
        for name, pipe in pipes.items():
            for line in pipe or ():
                _echo(line, name, collected)
        return

    with selectors.DefaultSelector() as selector:
        for name, pipe in pipes.items():
            if pipe is not None:
                selector.register(pipe, selectors.EVENT_READ, name)
        while selector.get_map():
            for key, _ in selector.select():
                line = key.fileobj.readline()  # type: ignore[union-attr]
                if line:
                    _echo(line, key.data, collected)
                else:
                    selector.unregister(key.fileobj)
