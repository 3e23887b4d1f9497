"""Tests for the workflow model: rendering and loading."""

from pathlib import Path

import pytest
from ruamel.yaml import YAML

from cargoci.errors import WorkflowError
from cargoci.triggers import Event
from cargoci.workflow import (
    JobSpec,
    StepSpec,
    WorkflowSpec,
    env_to_strings,
    generate_workflow_header,
    load_workflow,
    parse_workflow,
)

MINIMAL_JOBS = "jobs:\n  a:\n    runs-on: x\n    steps:\n      - run: 'true'\n"


def _load_yaml(text: str):
    return YAML(typ="safe", pure=True).load(text)


def _simple_workflow(**kwargs) -> WorkflowSpec:
    return WorkflowSpec(
        name="Demo",
        on={"push": {"branches": ["main"]}},
        jobs={"build": JobSpec(name="build", steps=[StepSpec(name="Build", run="cargo build")])},
        **kwargs,
    )


class TestStepSpec:
    def test_display_name(self):
        assert StepSpec(name="Build", run="cargo build").display_name == "Build"
        assert StepSpec(uses="actions/checkout@v3").display_name == "Run actions/checkout@v3"
        assert StepSpec(run="cargo build\ncargo test").display_name == "Run cargo build"

    def test_validate_requires_exactly_one_of_run_uses(self):
        with pytest.raises(WorkflowError, match="exactly one"):
            StepSpec(name="empty").validate()
        with pytest.raises(WorkflowError, match="exactly one"):
            StepSpec(run="x", uses="y@v1").validate()

    def test_validate_with_requires_uses(self):
        with pytest.raises(WorkflowError, match="'with'"):
            StepSpec(run="x", with_={"a": "b"}).validate()

    def test_to_dict_key_order(self):
        step = StepSpec(name="n", uses="a/b@v1", with_={"k": "v"}, env={"E": "1"}, extra={"id": "s"})
        assert list(step.to_dict()) == ["name", "uses", "with", "env", "id"]

    def test_from_dict_keeps_unknown_keys(self):
        step = StepSpec.from_dict({"run": "cargo test", "if": "always()", "timeout-minutes": 5})
        assert step.run == "cargo test"
        assert step.extra == {"if": "always()", "timeout-minutes": 5}


class TestRendering:
    def test_to_yaml_structure(self):
        spec = _simple_workflow(env={"CI": True})
        data = _load_yaml(spec.to_yaml())
        assert data == {
            "name": "Demo",
            "on": {"push": {"branches": ["main"]}},
            "env": {"CI": True},
            "jobs": {"build": {"runs-on": "ubuntu-latest", "steps": [{"name": "Build", "run": "cargo build"}]}},
        }

    def test_top_level_key_order(self):
        yaml_text = _simple_workflow(env={"CI": True}).to_yaml()
        keys = [line.split(":")[0] for line in yaml_text.splitlines() if line and not line.startswith(" ")]
        assert keys == ["name", "on", "env", "jobs"]

    def test_branch_filters_render_inline(self):
        yaml_text = _simple_workflow().to_yaml()
        assert "branches: [main]" in yaml_text

    def test_boolean_env_stays_boolean(self):
        yaml_text = _simple_workflow(env={"CI": True}).to_yaml()
        assert "CI: true" in yaml_text

    def test_header(self):
        yaml_text = _simple_workflow().to_yaml(include_header=True, source="pipeline: rust")
        assert yaml_text.startswith("# ===")
        assert "GENERATED FILE - DO NOT EDIT MANUALLY" in yaml_text
        assert "# Source: pipeline: rust" in yaml_text
        assert "cargoci generate" in yaml_text

    def test_header_defaults_to_workflow_name(self):
        yaml_text = _simple_workflow().to_yaml(include_header=True)
        assert "# Source: workflow: Demo" in yaml_text

    def test_header_without_source(self):
        assert "Source" not in generate_workflow_header()

    def test_working_directory_renders_as_defaults(self):
        job = JobSpec(name="build", steps=[StepSpec(run="cargo build")], working_directory="crates/core")
        assert job.to_dict()["defaults"] == {"run": {"working-directory": "crates/core"}}

    def test_str(self):
        assert str(_simple_workflow()) == "WorkflowSpec(Demo) - 1 job(s), 1 step(s), on: push"


class TestLoading:
    def test_load_rust_workflow(self, rust_workflow_file: Path):
        spec = load_workflow(rust_workflow_file)
        assert spec.name == "Rust"
        assert spec.path == rust_workflow_file
        assert spec.env == {"CARGO_TERM_COLOR": "always", "CI": True}
        job = spec.jobs["build"]
        assert job.runs_on == "ubuntu-latest"
        assert len(job.steps) == 8
        assert job.steps[0].uses == "Swatinem/rust-cache@v2"
        assert job.steps[3].with_ == {"rust-version": "nightly", "components": "rustfmt, clippy"}
        assert job.steps[7].run == "cargo +nightly clippy --all --all-features --tests -- -D warnings"

    def test_is_triggered_by(self, rust_workflow_file: Path):
        spec = load_workflow(rust_workflow_file)
        assert spec.is_triggered_by(Event("push", "main"))
        assert spec.is_triggered_by(Event("pull_request", "main"))
        assert not spec.is_triggered_by(Event("push", "feature/x"))
        assert not spec.is_triggered_by(Event("workflow_dispatch"))

    def test_render_then_load_preserves_model(self):
        spec = _simple_workflow(env={"CI": True})
        loaded = parse_workflow(spec.to_yaml(include_header=True))
        assert loaded.to_dict() == spec.to_dict()

    @pytest.mark.parametrize(
        ("runs_on", "expected", "runner"),
        [
            ("[self-hosted, linux]", ["self-hosted", "linux"], "self-hosted, linux"),
            (
                "{group: rust-runners, labels: linux}",
                {"group": "rust-runners", "labels": "linux"},
                "group=rust-runners, labels=linux",
            ),
        ],
    )
    def test_runs_on_list_and_mapping(self, runs_on: str, expected, runner: str):
        spec = parse_workflow(f"on: push\njobs:\n  a:\n    runs-on: {runs_on}\n    steps:\n      - run: 'true'\n")
        job = spec.jobs["a"]
        assert job.runs_on == expected
        assert job.runner == runner
        assert _load_yaml(spec.to_yaml())["jobs"]["a"]["runs-on"] == expected

    def test_job_defaults_survive_round_trip(self):
        content = (
            "on: push\njobs:\n  a:\n    runs-on: x\n"
            "    defaults:\n      run:\n        shell: pwsh\n        working-directory: crates\n"
            "    steps:\n      - run: 'true'\n"
        )
        job = parse_workflow(content).jobs["a"]
        assert job.working_directory == "crates"
        assert job.defaults == {"run": {"shell": "pwsh"}}

        rendered = _load_yaml(parse_workflow(content).to_yaml())
        assert rendered["jobs"]["a"]["defaults"] == {"run": {"shell": "pwsh", "working-directory": "crates"}}

    def test_working_directory_only_defaults(self):
        content = (
            "on: push\njobs:\n  a:\n    runs-on: x\n"
            "    defaults:\n      run:\n        working-directory: crates\n"
            "    steps:\n      - run: 'true'\n"
        )
        job = parse_workflow(content).jobs["a"]
        assert job.working_directory == "crates"
        assert job.defaults is None
        assert job.to_dict()["defaults"] == {"run": {"working-directory": "crates"}}

    def test_on_list_form_is_normalised(self):
        spec = parse_workflow("on: [push, pull_request]\n" + MINIMAL_JOBS)
        assert spec.on == {"push": None, "pull_request": None}

    def test_unnamed_workflow_uses_path(self, tmp_path: Path):
        path = tmp_path / "ci.yml"
        path.write_text("on: push\n" + MINIMAL_JOBS)
        assert load_workflow(path).name == str(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_workflow(tmp_path / "nope.yml")

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ("", "empty workflow document"),
            ("name: [unclosed", "invalid YAML"),
            ("- just\n- a list\n", "expected a mapping"),
            ("name: x\njobs: {}\n", "missing 'on'"),
            ("on: push\njobs:\n  a:\n    steps:\n      - run: x\n", "jobs.a.runs-on"),
            ("on: push\njobs:\n  a:\n    runs-on: x\n    steps: []\n", "jobs.a.steps"),
            ("on: push\njobs:\n  a:\n    runs-on: x\n    steps:\n      - name: nothing\n", r"jobs.a.steps\[0\]"),
            (
                "on: push\njobs:\n  a:\n    runs-on: x\n    steps:\n      - run: 42\n",
                r"jobs.a.steps\[0\].run: expected a string",
            ),
            (
                "on: push\njobs:\n  a:\n    runs-on: x\n    steps:\n      - uses: 3\n",
                r"jobs.a.steps\[0\].uses: expected a string",
            ),
            (
                "on: push\njobs:\n  a:\n    runs-on: x\n    steps:\n      - name: [x]\n        run: 'true'\n",
                r"jobs.a.steps\[0\].name: expected a string",
            ),
            ("on: push\njobs:\n  a:\n    runs-on: []\n    steps:\n      - run: 'true'\n", "jobs.a.runs-on"),
            ("on: push\njobs:\n  a:\n    runs-on: [1, 2]\n    steps:\n      - run: 'true'\n", "jobs.a.runs-on"),
            (
                "on: push\njobs:\n  a:\n    runs-on: x\n    defaults:\n      run:\n        working-directory: 3\n"
                "    steps:\n      - run: 'true'\n",
                "jobs.a.defaults.run.working-directory",
            ),
        ],
    )
    def test_malformed_documents(self, tmp_path: Path, content: str, message: str):
        path = tmp_path / "bad.yml"
        path.write_text(content)
        with pytest.raises(WorkflowError, match=message) as exc_info:
            load_workflow(path)
        assert str(path) in str(exc_info.value)


def test_env_to_strings():
    assert env_to_strings({"CI": True, "DEBUG": False, "N": 3, "S": "x", "E": None}) == {
        "CI": "true",
        "DEBUG": "false",
        "N": "3",
        "S": "x",
        "E": "",
    }
    assert env_to_strings(None) == {}
