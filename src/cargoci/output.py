"""Console output for local pipeline runs.

The OutputManager draws a run as a tree: the workflow at the top, each job as
a branch, each step as a bracketed header followed by its output and a status
line. Anything a step prints (including subprocess output) is indented under
it by swapping sys.stdout/sys.stderr for a PrefixWriter while a job runs.

Under GitHub Actions (GITHUB_ACTIONS=true) the tree is replaced by the
runner's own log commands: `::group::` per step and `::error::` for errors.
"""

from __future__ import annotations

import os
import sys
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, TextIO

from rich.console import Console

# Symbols for tree output
SYMBOLS = {
    "entry": "▼",  # Workflow header (▼)
    "branch": "├─▶",  # Job header (├─▶)
    "pipe": "│",  # Continuation line (│)
    "success": "✓",  # Step or job succeeded (✓)
    "failure": "✗",  # Step or job failed (✗)
    "skipped": "↷",  # Nothing to do locally, or dry run (↷)
    "not_run": "·",  # Never started after an earlier failure (·)
}

STATUS_STYLES = {
    "success": "green",
    "failure": "red",
    "skipped": "yellow",
    "not_run": "dim",
}

INDENT = SYMBOLS["pipe"] + "    "


@dataclass
class ScopeInfo:
    """An open job or step."""

    name: str
    kind: str  # "job" or "step"
    start_time: float = field(default_factory=time.perf_counter)

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self.start_time


class PrefixWriter:
    """Text stream wrapper that starts every non-empty line with the current tree prefix."""

    def __init__(self, wrapped: TextIO, get_prefix: Callable[[], str]):
        self._wrapped = wrapped
        self._get_prefix = get_prefix
        self._pending_prefix = True

    def write(self, s: str) -> int:
        if not s:
            return 0
        chunks = []
        for line in s.splitlines(keepends=True):
            if self._pending_prefix and line != "\n":
                chunks.append(self._get_prefix())
            chunks.append(line)
            self._pending_prefix = line.endswith("\n")
        self._wrapped.write("".join(chunks))
        return len(s)

    def flush(self) -> None:
        self._wrapped.flush()

    def fileno(self) -> int:
        return int(self._wrapped.fileno())

    def isatty(self) -> bool:
        return bool(self._wrapped.isatty())

    @property
    def encoding(self) -> str:
        return getattr(self._wrapped, "encoding", "utf-8")


@dataclass
class OutputManager:
    """
    Formats workflow, job and step output.

    Headers and status lines go straight to the real stdout with an explicit
    prefix. Step output goes through the PrefixWriter installed by job_scope().
    """

    console: Console = field(default_factory=Console)
    _scopes: list[ScopeInfo] = field(default_factory=list)
    _is_gha: bool = field(default_factory=lambda: os.environ.get("GITHUB_ACTIONS") == "true")
    _saved_streams: tuple[TextIO, TextIO] | None = None
    _real_console: Console | None = None  # writes to the saved stdout while a job is open

    @property
    def depth(self) -> int:
        return len(self._scopes)

    @property
    def in_gha(self) -> bool:
        """Whether running in GitHub Actions."""
        return self._is_gha

    def _prefix(self) -> str:
        return INDENT * len(self._scopes)

    # =========================================================================
    # Stream redirection
    # =========================================================================

    def _redirect_streams(self) -> None:
        if self._saved_streams is not None or self._is_gha:
            return
        self._saved_streams = (sys.stdout, sys.stderr)
        self._real_console = Console(file=sys.stdout, no_color=self.console.no_color, highlight=False)
        sys.stdout = PrefixWriter(sys.stdout, self._prefix)
        sys.stderr = PrefixWriter(sys.stderr, self._prefix)

    def _restore_streams(self) -> None:
        if self._saved_streams is None:
            return
        sys.stdout, sys.stderr = self._saved_streams
        self._saved_streams = None
        self._real_console = None

    def _emit(self, text: str, style: str | None = None, *, prefixed: bool = True) -> None:
        """Write one line to the real stdout, bypassing the PrefixWriter."""
        line = self._prefix() + text if prefixed else text
        real_stdout = self._saved_streams[0] if self._saved_streams else None

        if style is None:
            stream = real_stdout or sys.stdout
            stream.write(line + "\n")
            stream.flush()
            return

        console = self._real_console or self.console
        console.print(line, style=style, markup=False, highlight=False, soft_wrap=True)

    # =========================================================================
    # Headers and status lines
    # =========================================================================

    def workflow_header(self, name: str, detail: str | None = None) -> None:
        if self._is_gha:
            return
        title = f"{name} ({detail})" if detail else name
        self._emit("")
        self._emit(f"{SYMBOLS['entry']} {title}", "bold blue")
        self._emit(SYMBOLS["pipe"])

    def workflow_status(self, name: str, success: bool, elapsed: float, step_count: int) -> None:
        if self._is_gha:
            return
        self._emit("")
        if success:
            self._emit(f"{SYMBOLS['success']} {name} succeeded in {elapsed:.2f}s ({step_count} steps)", "bold green")
        else:
            self._emit(f"{SYMBOLS['failure']} {name} failed in {elapsed:.2f}s", "bold red")

    def job_status(self, name: str, success: bool, elapsed: float) -> None:
        status = "success" if success else "failure"
        if self._is_gha:
            print(f"{SYMBOLS[status]} {name} completed in {elapsed:.2f}s", flush=True)
            return
        self._emit(f"{SYMBOLS[status]} {elapsed:.2f}s", STATUS_STYLES[status])

    def step_status(self, status: str, elapsed: float | None = None, note: str | None = None) -> None:
        """Print the outcome of the step that just finished."""
        text = SYMBOLS.get(status, "?")
        if elapsed is not None:
            text += f" {elapsed:.2f}s"
        if note:
            text += f" ({note})"

        if self._is_gha:
            print(f"{text} [{status}]", flush=True)
            print("::endgroup::", flush=True)
            return
        self._emit(text, STATUS_STYLES.get(status))

    def step_not_run(self, name: str) -> None:
        """Report a step that never started because an earlier step failed."""
        text = f"{SYMBOLS['not_run']} {name} (not run)"
        if self._is_gha:
            print(text, flush=True)
        else:
            self._emit(text, "dim")

    def error(self, message: str) -> None:
        if self._is_gha:
            print(f"::error::{message}", flush=True)
        else:
            self._emit(f"Error: {message}", "bold red", prefixed=False)

    def error_detail(self, lines: list[str], max_lines: int = 20) -> None:
        """Print detail lines under an error, truncated after max_lines."""
        shown = list(lines[:max_lines])
        if len(lines) > max_lines:
            shown.append(f"... {len(lines) - max_lines} more")
        for line in shown:
            self._emit(f"  {line}", "red")

    # =========================================================================
    # Scopes
    # =========================================================================

    @contextmanager
    def job_scope(self, name: str) -> Iterator[ScopeInfo]:
        """
        Open a job: print its header and indent everything printed inside.

        The job's status line is left to the caller, which knows the step results.
        """
        if not self._is_gha:
            self._emit(f"{SYMBOLS['branch']} {name}", "bold cyan")
        scope = ScopeInfo(name, "job")
        self._scopes.append(scope)
        self._redirect_streams()
        try:
            yield scope
        finally:
            self._scopes.pop()
            if not self._scopes:
                self._restore_streams()

    @contextmanager
    def step_scope(self, name: str) -> Iterator[ScopeInfo]:
        """Open a step: print its header and indent its output one level deeper."""
        if self._is_gha:
            print(f"::group::{name}", flush=True)
        else:
            self._emit(f"[{name}]", "dim")
        scope = ScopeInfo(name, "step")
        self._scopes.append(scope)
        try:
            yield scope
        finally:
            self._scopes.pop()


_output_manager: OutputManager | None = None


def get_output_manager() -> OutputManager:
    """Get the global output manager instance."""
    global _output_manager
    if _output_manager is None:
        _output_manager = OutputManager()
    return _output_manager


def reset_output_manager() -> None:
    """Drop the global output manager, putting back stdout/stderr if a job was open."""
    global _output_manager
    if _output_manager is not None:
        _output_manager._restore_streams()
    _output_manager = None


def configure_output(force_color: bool | None = None) -> OutputManager:
    """
    Replace the global output manager with one using the given color setting.

    Args:
        force_color: True or False to force color on or off, None to let rich decide.

    """
    global _output_manager

    console_kwargs: dict[str, Any] = {}
    if force_color is not None:
        console_kwargs["force_terminal"] = force_color
        console_kwargs["no_color"] = not force_color

    reset_output_manager()
    _output_manager = OutputManager(console=Console(**console_kwargs))
    return _output_manager
