"""Tests for packaged actions and their local equivalents."""

import pytest

from cargoci import actions
from cargoci.workflow import StepSpec


def test_catalog_refs():
    assert actions.rust_cache().uses == "Swatinem/rust-cache@v2"
    assert actions.checkout().uses == "actions/checkout@v3"
    assert actions.setup_rust().uses == "hecrj/setup-rust-action@v1"


def test_setup_rust_params():
    action = actions.setup_rust("nightly", components=["rustfmt", "clippy"])
    assert action.default_with_params == {"rust-version": "nightly", "components": "rustfmt, clippy"}


def test_step_merges_with_params():
    step = actions.setup_rust("stable").step(name="setup toolchain", profile="minimal")
    assert step == StepSpec(
        name="setup toolchain",
        uses="hecrj/setup-rust-action@v1",
        with_={"rust-version": "stable", "profile": "minimal"},
    )


def test_action_fields():
    action = actions.Action("checkout", "actions/checkout@v4", with_params={"fetch-depth": "0"})
    assert vars(action) == {
        "name": "checkout",
        "uses": "actions/checkout@v4",
        "default_with_params": {"fetch-depth": "0"},
    }
    assert repr(action) == "Action(checkout, actions/checkout@v4)"
    with pytest.raises(TypeError):
        actions.Action("checkout", "actions/checkout@v4", doc="Check out the repository")


def test_step_without_params_has_no_with():
    step = actions.checkout().step()
    assert step.with_ is None
    assert step.to_dict() == {"uses": "actions/checkout@v3"}


def test_action_ref():
    assert actions.action_ref("actions/checkout@v3") == ("actions/checkout", "v3")
    assert actions.action_ref("./local-action") == ("./local-action", None)


def test_find_local_action_ignores_version():
    assert actions.find_local_action("actions/checkout@v4") is not None
    assert actions.find_local_action("someone/else@v1") is None


class TestResolveLocalAction:
    def test_checkout_and_cache_are_skipped(self):
        for action in (actions.checkout(), actions.rust_cache()):
            local = actions.resolve_local_action(action.step())
            assert local.skipped
            assert local.skip_reason

    def test_setup_rust_installs_toolchain(self):
        step = actions.setup_rust("nightly", components=["rustfmt", "clippy"]).step()
        local = actions.resolve_local_action(step)
        assert not local.skipped
        assert local.command == [
            "rustup",
            "toolchain",
            "install",
            "nightly",
            "--profile",
            "minimal",
            "--component",
            "rustfmt",
            "--component",
            "clippy",
        ]

    def test_setup_rust_respects_install_toolchains(self):
        local = actions.resolve_local_action(actions.setup_rust().step(), install_toolchains=False)
        assert local.skipped
        assert local.skip_reason == "toolchain installation disabled"

    def test_unknown_action(self):
        local = actions.resolve_local_action(StepSpec(uses="docker/login-action@v3"))
        assert local.skipped
        assert local.skip_reason == "no local equivalent for docker/login-action@v3"

    def test_run_step_is_rejected(self):
        with pytest.raises(ValueError, match="not a 'uses:' step"):
            actions.resolve_local_action(StepSpec(run="cargo build"))
