"""Process-wide configuration and console helpers for cargoci."""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

DEFAULT_WORKFLOW_PATH = Path(".github") / "workflows" / "test.yml"
DEFAULT_SHELL = ("bash", "-e", "-c")

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (1/0, true/false), got {value!r}")


@dataclass(frozen=True)
class Config:
    """
    Settings shared by the CLI, the generator and the local executor.

    Attributes:
        workflow_path: Workflow file read by `check`/`run` and written by `generate`.
        shell: Command prefix used to execute `run:` steps; the step script is appended.
        install_toolchains: Whether `setup-rust-action` steps install toolchains via rustup.
        working_directory: Directory in which steps run locally.
        debug: Print debug output and tracebacks.

    """

    workflow_path: Path = DEFAULT_WORKFLOW_PATH
    shell: tuple[str, ...] = DEFAULT_SHELL
    install_toolchains: bool = True
    working_directory: Path = field(default_factory=Path.cwd)
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """
        Build a Config from CARGOCI_* environment variables.

        Recognised variables: CARGOCI_WORKFLOW, CARGOCI_SHELL, CARGOCI_INSTALL_TOOLCHAINS,
        CARGOCI_WORKDIR and CARGOCI_DEBUG. Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}

        if "CARGOCI_WORKFLOW" in env:
            overrides["workflow_path"] = Path(env["CARGOCI_WORKFLOW"])
        if "CARGOCI_SHELL" in env:
            shell = tuple(shlex.split(env["CARGOCI_SHELL"]))
            if not shell:
                raise ValueError("CARGOCI_SHELL must not be empty")
            overrides["shell"] = shell
        if "CARGOCI_INSTALL_TOOLCHAINS" in env:
            overrides["install_toolchains"] = _parse_bool(
                "CARGOCI_INSTALL_TOOLCHAINS", env["CARGOCI_INSTALL_TOOLCHAINS"]
            )
        if "CARGOCI_WORKDIR" in env:
            overrides["working_directory"] = Path(env["CARGOCI_WORKDIR"])
        if "CARGOCI_DEBUG" in env:
            overrides["debug"] = _parse_bool("CARGOCI_DEBUG", env["CARGOCI_DEBUG"])

        return cls(**overrides)

    def with_overrides(self, **overrides: Any) -> Config:
        """Return a copy with the given fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


_config: Config | None = None


def get_config() -> Config:
    """Get the process-wide config, reading the environment on first use."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def set_config(config: Config | None) -> None:
    """Set the process-wide config (None resets it to be re-read from the environment)."""
    global _config
    _config = config


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return get_config().debug


def out(message: str) -> None:
    """
    Output a message.

    In tree mode stdout is wrapped by the OutputManager, which adds the
    prefixes, so this just prints.
    """
    print(message, flush=True)


def dbg(message: str) -> None:
    """Output a debug message (only printed when debug mode is enabled)."""
    if is_debug():
        print(f"[debug] {message}", flush=True)


def find_git_root(start: Path | None = None) -> Path | None:
    """Find the git repository root directory."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            timeout=10,
            cwd=str(start) if start else None,
        )
        if result.returncode == 0:
            return Path(result.stdout.strip())
        return None
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
