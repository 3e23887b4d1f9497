"""Cargo command lines used by the pipeline's `run:` steps."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field

_DENY_FLAGS = ("-D", "--deny")


@dataclass(frozen=True)
class CargoCommand:
    """
    A `cargo` invocation.

    Renders as `cargo [+toolchain] <subcommand> <args...> [-- <tool_args...>]`,
    where tool_args are passed through to the underlying tool (rustfmt, clippy,
    the test harness).
    """

    subcommand: str
    args: tuple[str, ...] = ()
    toolchain: str | None = None
    tool_args: tuple[str, ...] = field(default=())

    def __str__(self) -> str:
        parts = ["cargo"]
        if self.toolchain:
            parts.append(f"+{self.toolchain}")
        parts.append(self.subcommand)
        parts.extend(self.args)
        if self.tool_args:
            parts.append("--")
            parts.extend(self.tool_args)
        return " ".join(shlex.quote(p) for p in parts)

    @property
    def denies_warnings(self) -> bool:
        """True if the tool is told to turn warnings into errors."""
        args = self.tool_args
        for i, arg in enumerate(args):
            if arg in ("-Dwarnings", "--deny=warnings"):
                return True
            if arg in _DENY_FLAGS and i + 1 < len(args) and args[i + 1] == "warnings":
                return True
        return False


def build(*, verbose: bool = True, toolchain: str | None = None) -> CargoCommand:
    """`cargo build`."""
    return CargoCommand("build", ("--verbose",) if verbose else (), toolchain=toolchain)


def test(*, verbose: bool = True, toolchain: str | None = None) -> CargoCommand:
    """`cargo test`."""
    return CargoCommand("test", ("--verbose",) if verbose else (), toolchain=toolchain)


def fmt_check(*, toolchain: str | None = "nightly") -> CargoCommand:
    """`cargo fmt` over the whole workspace, failing instead of rewriting files."""
    return CargoCommand("fmt", ("--all",), toolchain=toolchain, tool_args=("--check",))


def clippy(*, toolchain: str | None = "nightly", deny_warnings: bool = True) -> CargoCommand:
    """`cargo clippy` over all packages, features and test targets."""
    tool_args = ("-D", "warnings") if deny_warnings else ()
    return CargoCommand(
        "clippy",
        ("--all", "--all-features", "--tests"),
        toolchain=toolchain,
        tool_args=tool_args,
    )


def parse_cargo_command(text: str) -> CargoCommand | None:
    """
    Parse a single-line `run:` script into a CargoCommand.

    Returns None if the script is not a plain cargo invocation (multi-line
    scripts, pipelines, other programs).
    """
    if "\n" in text.strip():
        return None
    try:
        parts = shlex.split(text)
    except ValueError:
        return None
    if not parts or parts[0] != "cargo":
        return None
    if any(p in ("|", "&&", "||", ";") for p in parts):
        return None

    rest = parts[1:]
    toolchain = None
    if rest and rest[0].startswith("+"):
        toolchain = rest[0][1:]
        rest = rest[1:]
    if not rest:
        return None

    subcommand, rest = rest[0], rest[1:]
    tool_args: tuple[str, ...] = ()
    if "--" in rest:
        idx = rest.index("--")
        tool_args = tuple(rest[idx + 1 :])
        rest = rest[:idx]
    return CargoCommand(subcommand, tuple(rest), toolchain=toolchain, tool_args=tool_args)
