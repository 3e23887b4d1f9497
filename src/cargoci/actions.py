"""Reusable packaged actions (`uses:` steps) and their local equivalents.

An Action renders to a `uses:` step in workflow YAML. When the pipeline runs
locally there is no Actions runner, so each known action maps to a
LocalAction: either a command that does the same job on a developer machine,
or a reason why the step has nothing to do locally.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from .workflow import StepSpec


@dataclass(frozen=True)
class LocalAction:
    """What running an action locally amounts to: a command, or a reason to skip."""

    command: list[str] | None = None
    skip_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.command is None


# Builds the local equivalent from the step's `with:` params and whether toolchain installs are allowed
LocalHandler = Callable[[dict[str, Any], bool], LocalAction]


class Action:
    """
    A GitHub Actions `uses:` step.

    Most actions are exposed through factory functions like
    `setup_rust("nightly", components=["clippy"])` which return an Action
    configured with default `with:` parameters. `Action.step()` turns it
    into a StepSpec for a job.

    Example:
        steps = [
            rust_cache().step(),
            checkout().step(),
            setup_rust("stable").step(name="setup toolchain"),
        ]

    """

    def __init__(self, name: str, uses: str, *, with_params: dict[str, str] | None = None):
        """
        Create an action.

        Args:
            name: Short name for the action (e.g., "checkout", "setup_rust")
            uses: The action reference (e.g., "actions/checkout@v3")
            with_params: Default `with:` parameters for the action

        """
        self.name = name
        self.uses = uses
        self.default_with_params = with_params or {}

    def __repr__(self) -> str:
        return f"Action({self.name}, {self.uses})"

    def step(self, name: str | None = None, **with_params: Any) -> StepSpec:
        """Create a step using this action; keyword params override the defaults."""
        merged = {**self.default_with_params, **with_params}
        return StepSpec(name=name, uses=self.uses, with_=merged or None)


def action_ref(uses: str) -> tuple[str, str | None]:
    """Split `owner/repo@version` into (`owner/repo`, version)."""
    if "@" in uses:
        repo, version = uses.rsplit("@", 1)
        return repo, version
    return uses, None


# =============================================================================
# Pre-defined actions
# =============================================================================

RUST_CACHE = "Swatinem/rust-cache"
CHECKOUT = "actions/checkout"
SETUP_RUST = "hecrj/setup-rust-action"


def rust_cache(version: str = "v2", **kwargs: Any) -> Action:
    """Create a cargo dependency/target cache action."""
    return Action("rust_cache", f"{RUST_CACHE}@{version}", with_params=kwargs or None)


def checkout(version: str = "v3", **kwargs: Any) -> Action:
    """Create a repository checkout action."""
    return Action("checkout", f"{CHECKOUT}@{version}", with_params=kwargs or None)


def setup_rust(
    rust_version: str = "stable",
    *,
    components: Sequence[str] | None = None,
    version: str = "v1",
    **kwargs: Any,
) -> Action:
    """
    Create a toolchain installer action.

    Args:
        rust_version: Toolchain channel or version to install (e.g., "stable", "nightly")
        components: Extra rustup components, rendered comma-separated
        version: Version of the action itself
        **kwargs: Additional parameters for the action

    Returns:
        Action that installs the toolchain

    """
    params: dict[str, Any] = {"rust-version": rust_version}
    if components:
        params["components"] = ", ".join(components)
    params.update(kwargs)
    return Action("setup_rust", f"{SETUP_RUST}@{version}", with_params=params)


# =============================================================================
# Local equivalents
# =============================================================================


def split_components(value: Any) -> list[str]:
    """Components from a `with: components:` value, which may be comma or space separated."""
    if not value:
        return []
    return [c.strip() for c in str(value).replace(" ", ",").split(",") if c.strip()]


def _local_checkout(params: dict[str, Any], install_toolchains: bool) -> LocalAction:
    return LocalAction(skip_reason="already running inside the working copy")


def _local_rust_cache(params: dict[str, Any], install_toolchains: bool) -> LocalAction:
    return LocalAction(skip_reason="local builds reuse the existing target directory and cargo registry")


def _local_setup_rust(params: dict[str, Any], install_toolchains: bool) -> LocalAction:
    if not install_toolchains:
        return LocalAction(skip_reason="toolchain installation disabled")
    toolchain = str(params.get("rust-version") or "stable")
    command = ["rustup", "toolchain", "install", toolchain, "--profile", "minimal"]
    for component in split_components(params.get("components")):
        command.extend(["--component", component])
    return LocalAction(command=command)


_LOCAL_ACTIONS: dict[str, LocalHandler] = {
    CHECKOUT: _local_checkout,
    RUST_CACHE: _local_rust_cache,
    SETUP_RUST: _local_setup_rust,
}


def find_local_action(uses: str) -> LocalHandler | None:
    """Look up the local handler for an action reference, ignoring its version."""
    repo, _version = action_ref(uses)
    return _LOCAL_ACTIONS.get(repo)


def resolve_local_action(step: StepSpec, *, install_toolchains: bool = True) -> LocalAction:
    """Resolve a `uses:` step to what should happen when it runs locally."""
    if not step.uses:
        raise ValueError(f"Step '{step.display_name}' is not a 'uses:' step")
    handler = find_local_action(step.uses)
    if handler is None:
        return LocalAction(skip_reason=f"no local equivalent for {step.uses}")
    return handler(dict(step.with_ or {}), install_toolchains)
