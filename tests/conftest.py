"""Pytest configuration for cargoci tests."""

import pytest

from .workflow_fixtures import RUST_WORKFLOW_YAML


@pytest.fixture(autouse=True)
def reset_state(monkeypatch: pytest.MonkeyPatch):
    """Reset all state between tests and disable colors for CLI invocations."""
    from cargoci.context import set_config
    from cargoci.output import reset_output_manager

    # Rich ignores NO_COLOR when FORCE_COLOR is set
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("GITHUB_ACTIONS", raising=False)
    for var in ("CARGOCI_WORKFLOW", "CARGOCI_SHELL", "CARGOCI_INSTALL_TOOLCHAINS", "CARGOCI_WORKDIR", "CARGOCI_DEBUG"):
        monkeypatch.delenv(var, raising=False)

    set_config(None)
    reset_output_manager()

    yield

    set_config(None)
    reset_output_manager()


@pytest.fixture
def rust_workflow_file(tmp_path):
    """A hand-written copy of the Rust CI workflow, as it sits in a repository."""
    path = tmp_path / ".github" / "workflows" / "test.yml"
    path.parent.mkdir(parents=True)
    path.write_text(RUST_WORKFLOW_YAML)
    return path
