"""Pipeline definitions.

`rust_ci()` is the CI pipeline for a Cargo workspace: restore the dependency
cache, check out the source, install a stable and a nightly toolchain, then
build, test, check formatting and lint with warnings denied.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from . import actions, cargo
from .context import DEFAULT_WORKFLOW_PATH
from .triggers import on_pull_request, on_push
from .workflow import JobSpec, StepSpec, WorkflowSpec

DEFAULT_OUTPUT = DEFAULT_WORKFLOW_PATH


def rust_ci(
    *,
    branches: Sequence[str] = ("main",),
    runs_on: str = "ubuntu-latest",
    nightly_components: Sequence[str] = ("rustfmt", "clippy"),
) -> WorkflowSpec:
    """
    Build the Rust CI workflow.

    Args:
        branches: Branches whose pushes, and pull requests targeting them, start the workflow
        runs_on: Runner label for the build job
        nightly_components: rustup components installed with the nightly toolchain

    Returns:
        WorkflowSpec with a single `build` job of eight ordered steps.

    """
    steps = [
        actions.rust_cache().step(),
        actions.checkout().step(),
        actions.setup_rust("stable").step(name="setup toolchain"),
        actions.setup_rust("nightly", components=list(nightly_components)).step(name="setup toolchain"),
        StepSpec(name="Build", run=str(cargo.build())),
        StepSpec(name="Run tests", run=str(cargo.test())),
        StepSpec(name="rustfmt", run=str(cargo.fmt_check())),
        StepSpec(name="clippy", run=str(cargo.clippy())),
    ]

    trigger = on_push(branches=list(branches)) | on_pull_request(branches=list(branches))

    return WorkflowSpec(
        name="Rust",
        on=trigger.to_gha_dict(),
        env={"CARGO_TERM_COLOR": "always", "CI": True},
        jobs={"build": JobSpec(name="build", runs_on=runs_on, steps=steps)},
    )


PIPELINES: dict[str, Callable[..., WorkflowSpec]] = {
    "rust": rust_ci,
}


def get_pipeline(name: str) -> Callable[..., WorkflowSpec]:
    """Look up a pipeline factory by name."""
    try:
        return PIPELINES[name]
    except KeyError:
        raise ValueError(f"Unknown pipeline '{name}'. Available: {', '.join(sorted(PIPELINES))}") from None
