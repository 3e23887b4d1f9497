"""Structural checks for the Rust CI workflow.

A workflow file can drift from what the pipeline is supposed to be: a step
gets reordered, the nightly toolchain loses a component, someone drops
`-D warnings` from clippy. `check_structure` verifies the facts the pipeline
relies on; `diff_specs` compares two workflows key by key.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from . import actions
from .cargo import CargoCommand, parse_cargo_command
from .result import Err, Ok, Result
from .workflow import StepSpec, WorkflowSpec

EXPECTED_TRIGGERS = ("push", "pull_request")
EXPECTED_ENV = ("CARGO_TERM_COLOR", "CI")


@dataclass(frozen=True)
class Finding:
    """A single structural problem."""

    rule: str
    message: str

    def __str__(self) -> str:
        return f"[{self.rule}] {self.message}"


def _cargo_of(step: StepSpec) -> CargoCommand | None:
    return parse_cargo_command(step.run) if step.run else None


def _uses(step: StepSpec, repo: str) -> bool:
    return bool(step.uses) and actions.action_ref(step.uses or "")[0] == repo


def _components(step: StepSpec) -> set[str]:
    return set(actions.split_components((step.with_ or {}).get("components")))


def _is_toolchain(step: StepSpec, version: str, components: tuple[str, ...] = ()) -> bool:
    if not _uses(step, actions.SETUP_RUST):
        return False
    if str((step.with_ or {}).get("rust-version")) != version:
        return False
    return set(components) <= _components(step)


def _is_cargo(step: StepSpec, subcommand: str, toolchain: str | None = None) -> bool:
    command = _cargo_of(step)
    if command is None or command.subcommand != subcommand:
        return False
    return toolchain is None or command.toolchain == toolchain


def _is_fmt_check(step: StepSpec) -> bool:
    command = _cargo_of(step)
    return command is not None and command.subcommand == "fmt" and "--check" in command.tool_args


# (description, predicate) for each position of the pipeline, in order
EXPECTED_STEPS: list[tuple[str, Callable[[StepSpec], bool]]] = [
    (f"dependency cache ({actions.RUST_CACHE})", lambda s: _uses(s, actions.RUST_CACHE)),
    (f"checkout ({actions.CHECKOUT})", lambda s: _uses(s, actions.CHECKOUT)),
    ("stable toolchain install", lambda s: _is_toolchain(s, "stable")),
    ("nightly toolchain install with rustfmt and clippy", lambda s: _is_toolchain(s, "nightly", ("rustfmt", "clippy"))),
    ("cargo build", lambda s: _is_cargo(s, "build")),
    ("cargo test", lambda s: _is_cargo(s, "test")),
    ("cargo +nightly fmt --check", lambda s: _is_fmt_check(s) and _is_cargo(s, "fmt", "nightly")),
    ("cargo +nightly clippy", lambda s: _is_cargo(s, "clippy", "nightly")),
]


def check_structure(spec: WorkflowSpec) -> list[Finding]:
    """
    Verify the structural facts of the Rust CI workflow.

    Checks that the workflow triggers on exactly push and pull_request, sets
    the two pipeline environment variables, defines exactly one job, and that
    the job has exactly eight steps in the expected order with the lint step
    treating warnings as errors.

    Returns:
        List of findings; empty if the workflow has the expected structure.

    """
    findings: list[Finding] = []

    events = sorted(t.event for t in spec.triggers())
    if events != sorted(EXPECTED_TRIGGERS):
        findings.append(
            Finding("triggers", f"expected triggers {list(EXPECTED_TRIGGERS)}, found {events}")
        )

    env_keys = sorted((spec.env or {}).keys())
    if env_keys != sorted(EXPECTED_ENV):
        findings.append(Finding("env", f"expected workflow env {sorted(EXPECTED_ENV)}, found {env_keys}"))

    if len(spec.jobs) != 1:
        findings.append(Finding("jobs", f"expected exactly one job, found {len(spec.jobs)}: {list(spec.jobs)}"))
        return findings

    job_id, job = next(iter(spec.jobs.items()))

    if len(job.steps) != len(EXPECTED_STEPS):
        findings.append(
            Finding("steps", f"job '{job_id}' has {len(job.steps)} steps, expected {len(EXPECTED_STEPS)}")
        )

    for i, (description, predicate) in enumerate(EXPECTED_STEPS):
        if i >= len(job.steps):
            findings.append(Finding("step-order", f"step {i + 1} missing, expected {description}"))
            continue
        step = job.steps[i]
        if not predicate(step):
            findings.append(
                Finding("step-order", f"step {i + 1} ('{step.display_name}') is not {description}")
            )

    clippy_steps = [s for s in job.steps if _is_cargo(s, "clippy")]
    if not clippy_steps:
        findings.append(Finding("lint", "no cargo clippy step found"))
    for step in clippy_steps:
        command = _cargo_of(step)
        if command is not None and not command.denies_warnings:
            findings.append(Finding("lint", f"'{step.display_name}' does not deny warnings (-D warnings)"))

    return findings


def check_rust_ci(spec: WorkflowSpec) -> Result[None]:
    """Run check_structure and wrap the outcome in a Result."""
    findings = check_structure(spec)
    if findings:
        return Err(
            f"{spec.name}: {len(findings)} structural problem(s)",
            details=[str(f) for f in findings],
        )
    return Ok(None)


def _normalize(value: Any) -> Any:
    # Compare the way the runner reads values: `CI: true` and `CI: "true"` are the same
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize(v) for v in value]
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return None
    return str(value)


def _diff(expected: Any, actual: Any, path: str, out: list[str]) -> None:
    if isinstance(expected, dict) and isinstance(actual, dict):
        for key in expected:
            sub = f"{path}.{key}" if path else key
            if key not in actual:
                out.append(f"{sub}: missing (expected {expected[key]!r})")
            else:
                _diff(expected[key], actual[key], sub, out)
        for key in actual:
            if key not in expected:
                sub = f"{path}.{key}" if path else key
                out.append(f"{sub}: unexpected (found {actual[key]!r})")
        return
    if isinstance(expected, list) and isinstance(actual, list):
        for i in range(max(len(expected), len(actual))):
            sub = f"{path}[{i}]"
            if i >= len(actual):
                out.append(f"{sub}: missing (expected {expected[i]!r})")
            elif i >= len(expected):
                out.append(f"{sub}: unexpected (found {actual[i]!r})")
            else:
                _diff(expected[i], actual[i], sub, out)
        return
    if expected != actual:
        out.append(f"{path}: expected {expected!r}, found {actual!r}")


def diff_specs(expected: WorkflowSpec, actual: WorkflowSpec) -> list[str]:
    """
    Compare two workflows, ignoring formatting and YAML typing.

    Returns:
        One line per difference, keyed by dotted path (e.g.
        `jobs.build.steps[3].with.components: expected 'rustfmt, clippy', found 'rustfmt'`).

    """
    differences: list[str] = []
    _diff(_normalize(expected.to_dict()), _normalize(actual.to_dict()), "", differences)
    return differences
