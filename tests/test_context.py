"""Tests for configuration and console helpers."""

from pathlib import Path

import pytest

from cargoci.context import DEFAULT_SHELL, DEFAULT_WORKFLOW_PATH, Config, dbg, get_config, is_debug, out, set_config
from cargoci.errors import WorkflowError


def test_config_defaults():
    config = Config.from_env({})
    assert config.workflow_path == DEFAULT_WORKFLOW_PATH
    assert config.shell == DEFAULT_SHELL == ("bash", "-e", "-c")
    assert config.install_toolchains is True
    assert config.debug is False


def test_config_from_env():
    config = Config.from_env(
        {
            "CARGOCI_WORKFLOW": "ci/rust.yml",
            "CARGOCI_SHELL": "sh -c",
            "CARGOCI_INSTALL_TOOLCHAINS": "0",
            "CARGOCI_WORKDIR": "/tmp/ws",
            "CARGOCI_DEBUG": "true",
        }
    )
    assert config.workflow_path == Path("ci/rust.yml")
    assert config.shell == ("sh", "-c")
    assert config.install_toolchains is False
    assert config.working_directory == Path("/tmp/ws")
    assert config.debug is True


def test_config_rejects_bad_bool():
    with pytest.raises(ValueError, match="CARGOCI_DEBUG"):
        Config.from_env({"CARGOCI_DEBUG": "maybe"})


def test_config_rejects_empty_shell():
    with pytest.raises(ValueError, match="CARGOCI_SHELL"):
        Config.from_env({"CARGOCI_SHELL": "  "})


def test_with_overrides_ignores_none():
    config = Config.from_env({})
    updated = config.with_overrides(debug=True, install_toolchains=None)
    assert updated.debug is True
    assert updated.install_toolchains is True
    assert config.debug is False


def test_get_config_reads_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CARGOCI_DEBUG", "1")
    set_config(None)
    assert get_config().debug is True
    assert is_debug()


def test_dbg_only_prints_in_debug_mode(capsys: pytest.CaptureFixture[str]):
    set_config(Config(debug=False))
    dbg("hidden")
    out("shown")
    assert capsys.readouterr().out == "shown\n"

    set_config(Config(debug=True))
    dbg("visible")
    assert capsys.readouterr().out == "[debug] visible\n"


def test_workflow_error_includes_path():
    err = WorkflowError("expected a mapping", path="jobs.build")
    assert str(err) == "jobs.build: expected a mapping"
    assert err.path == "jobs.build"
    assert str(WorkflowError("bad")) == "bad"
