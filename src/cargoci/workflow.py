"""GitHub Actions workflow model.

This module provides:
- Dataclasses for the workflow structure (workflow, jobs, steps)
- Rendering to YAML in GitHub's conventional key order
- Loading existing workflow files back into the same model
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import StringIO
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.error import YAMLError

from .errors import WorkflowError
from .triggers import Event, Trigger, triggers_from_gha_dict

_STEP_KEYS = ("name", "uses", "with", "run", "env")
_JOB_KEYS = ("runs-on", "defaults", "env", "steps")
_WORKFLOW_KEYS = ("name", "on", "env", "jobs")


def env_to_strings(env: dict[str, Any] | None) -> dict[str, str]:
    """Convert YAML-typed env values to process environment strings."""
    if not env:
        return {}
    result: dict[str, str] = {}
    for key, value in env.items():
        if isinstance(value, bool):
            result[key] = "true" if value else "false"
        elif value is None:
            result[key] = ""
        else:
            result[key] = str(value)
    return result


def _expect_mapping(value: Any, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise WorkflowError("expected a mapping", path=path)
    return value


def _optional_mapping(value: Any, path: str) -> dict[str, Any] | None:
    if value is None:
        return None
    return dict(_expect_mapping(value, path))


def _optional_string(value: Any, path: str) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise WorkflowError("expected a string", path=path)


@dataclass
class StepSpec:
    """A step within a GHA job: either a `uses:` action or a `run:` script."""

    name: str | None = None
    run: str | None = None
    uses: str | None = None
    with_: dict[str, Any] | None = None
    env: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)  # keys cargoci does not model (id, if, ...)

    @property
    def display_name(self) -> str:
        """Name shown for the step, falling back the way the GitHub UI does."""
        if self.name:
            return self.name
        if self.uses:
            return f"Run {self.uses}"
        first_line = (self.run or "").strip().splitlines()
        return f"Run {first_line[0]}" if first_line else "Run"

    def validate(self, path: str = "step") -> None:
        """Raise WorkflowError unless exactly one of `run`/`uses` is set."""
        if bool(self.run) == bool(self.uses):
            raise WorkflowError("a step needs exactly one of 'run' or 'uses'", path=path)
        if self.with_ and not self.uses:
            raise WorkflowError("'with' is only valid on 'uses' steps", path=path)

    def to_dict(self) -> dict[str, Any]:
        """The step as a mapping, keys in the order GitHub documents them."""
        d: dict[str, Any] = CommentedMap()
        if self.name:
            d["name"] = self.name
        if self.uses:
            d["uses"] = self.uses
        if self.with_:
            d["with"] = dict(self.with_)
        if self.run:
            d["run"] = self.run
        if self.env:
            d["env"] = dict(self.env)
        for key, value in self.extra.items():
            d[key] = value
        return d

    @classmethod
    def from_dict(cls, data: Any, path: str = "step") -> StepSpec:
        """Build a StepSpec from a parsed YAML mapping."""
        data = _expect_mapping(data, path)
        step = cls(
            name=_optional_string(data.get("name"), f"{path}.name"),
            run=_optional_string(data.get("run"), f"{path}.run"),
            uses=_optional_string(data.get("uses"), f"{path}.uses"),
            with_=_optional_mapping(data.get("with"), f"{path}.with"),
            env=_optional_mapping(data.get("env"), f"{path}.env"),
            extra={k: v for k, v in data.items() if k not in _STEP_KEYS},
        )
        step.validate(path)
        return step


@dataclass
class JobSpec:
    """
    One entry under `jobs:`.

    `runs_on` is a runner label, a list of labels (`[self-hosted, linux]`) or a
    mapping (`{group: ..., labels: ...}`). `defaults` holds the job's
    `defaults:` entries other than `run.working-directory`, which is modelled
    as `working_directory`.
    """

    name: str
    runs_on: str | list[str] | dict[str, Any] = "ubuntu-latest"
    steps: list[StepSpec] = field(default_factory=list)
    env: dict[str, Any] | None = None
    working_directory: str | None = None
    defaults: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def runner(self) -> str:
        """`runs-on` as a single line of text."""
        if isinstance(self.runs_on, str):
            return self.runs_on
        if isinstance(self.runs_on, list):
            return ", ".join(self.runs_on)
        return ", ".join(f"{key}={value}" for key, value in self.runs_on.items())

    def _rendered_defaults(self) -> dict[str, Any] | None:
        defaults = {k: dict(v) if isinstance(v, dict) else v for k, v in (self.defaults or {}).items()}
        if self.working_directory:
            defaults["run"] = {**(defaults.get("run") or {}), "working-directory": self.working_directory}
        return defaults or None

    def to_dict(self) -> dict[str, Any]:
        """The job as a mapping (`runs-on`, `defaults`, `env`, `steps`)."""
        d: dict[str, Any] = CommentedMap()
        if isinstance(self.runs_on, list):
            d["runs-on"] = list(self.runs_on)
        elif isinstance(self.runs_on, dict):
            d["runs-on"] = dict(self.runs_on)
        else:
            d["runs-on"] = self.runs_on
        defaults = self._rendered_defaults()
        if defaults:
            d["defaults"] = defaults
        if self.env:
            d["env"] = dict(self.env)
        for key, value in self.extra.items():
            d[key] = value
        d["steps"] = [s.to_dict() for s in self.steps]
        return d

    @classmethod
    def from_dict(cls, name: str, data: Any, path: str | None = None) -> JobSpec:
        """Build a JobSpec from a parsed YAML mapping."""
        path = path or f"jobs.{name}"
        data = _expect_mapping(data, path)

        runs_on = data.get("runs-on")
        if isinstance(runs_on, list) and runs_on and all(isinstance(label, str) for label in runs_on):
            runs_on = list(runs_on)
        elif isinstance(runs_on, dict) and runs_on:
            runs_on = dict(runs_on)
        elif not isinstance(runs_on, str):
            raise WorkflowError(
                "'runs-on' must be a runner label, a list of labels or a mapping", path=f"{path}.runs-on"
            )

        raw_steps = data.get("steps")
        if not isinstance(raw_steps, list) or not raw_steps:
            raise WorkflowError("a job needs a non-empty 'steps' list", path=f"{path}.steps")

        working_directory = None
        defaults = _optional_mapping(data.get("defaults"), f"{path}.defaults")
        if defaults is not None:
            run_defaults = _optional_mapping(defaults.get("run"), f"{path}.defaults.run")
            if run_defaults is not None:
                working_directory = _optional_string(
                    run_defaults.pop("working-directory", None), f"{path}.defaults.run.working-directory"
                )
                if run_defaults:
                    defaults["run"] = run_defaults
                else:
                    del defaults["run"]

        return cls(
            name=name,
            runs_on=runs_on,
            steps=[StepSpec.from_dict(s, f"{path}.steps[{i}]") for i, s in enumerate(raw_steps)],
            env=_optional_mapping(data.get("env"), f"{path}.env"),
            working_directory=working_directory,
            defaults=defaults or None,
            extra={k: v for k, v in data.items() if k not in _JOB_KEYS},
        )


def generate_workflow_header(source: str | None = None) -> str:
    """Comment block marking a file as generated, naming `source` (e.g. "pipeline: rust") if given."""
    rule = "# " + "=" * 76
    lines = [
        rule,
        "# GENERATED FILE - DO NOT EDIT MANUALLY",
        "#",
        "# This workflow is generated by cargoci. To modify:",
        "#   1. Edit the pipeline definition",
        "#   2. Run: cargoci generate",
        "#   3. Commit the regenerated file",
        "#",
    ]
    if source:
        lines.append(f"# Source: {source}")
    lines += [rule, ""]
    return "\n".join(lines)


def _flow_style_filters(on: dict[str, Any]) -> dict[str, Any]:
    """Copy an `on:` mapping, rendering branch filter lists inline (`branches: [main]`)."""
    rendered: dict[str, Any] = CommentedMap()
    for event, config in on.items():
        if isinstance(config, dict):
            new_config: dict[str, Any] = CommentedMap()
            for key, value in config.items():
                if isinstance(value, list) and all(isinstance(v, str) for v in value):
                    seq = CommentedSeq(value)
                    seq.fa.set_flow_style()
                    new_config[key] = seq
                else:
                    new_config[key] = value
            rendered[event] = new_config
        else:
            rendered[event] = config
    return rendered


@dataclass
class WorkflowSpec:
    """A workflow file: name, triggers, env and jobs."""

    name: str
    on: dict[str, Any]
    jobs: dict[str, JobSpec]
    env: dict[str, Any] | None = None
    path: Path | None = None  # Source or output file path, if known
    extra: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        steps = sum(len(job.steps) for job in self.jobs.values())
        text = f"WorkflowSpec({self.name}) - {len(self.jobs)} job(s), {steps} step(s), on: {', '.join(self.on)}"
        return f"{text} -> {self.path}" if self.path else text

    __repr__ = __str__

    def triggers(self) -> list[Trigger]:
        """The workflow's triggers, parsed from its `on:` mapping."""
        return triggers_from_gha_dict(self.on)

    def is_triggered_by(self, event: Event) -> bool:
        """Whether the given event starts this workflow."""
        return any(t.matches(event) for t in self.triggers())

    def validate(self) -> None:
        """Raise WorkflowError if the workflow is structurally invalid."""
        if not self.jobs:
            raise WorkflowError("a workflow needs at least one job", path="jobs")
        self.triggers()
        for job_id, job in self.jobs.items():
            if not job.steps:
                raise WorkflowError("a job needs at least one step", path=f"jobs.{job_id}.steps")
            for i, step in enumerate(job.steps):
                step.validate(f"jobs.{job_id}.steps[{i}]")

    def to_dict(self) -> dict[str, Any]:
        """The workflow as a mapping ready for the round-trip dumper."""
        d: dict[str, Any] = CommentedMap()
        d["name"] = self.name
        d["on"] = _flow_style_filters(self.on)
        if self.env:
            d["env"] = dict(self.env)
        for key, value in self.extra.items():
            d[key] = value
        d["jobs"] = {job_id: job.to_dict() for job_id, job in self.jobs.items()}
        return d

    def to_yaml(self, *, include_header: bool = False, source: str | None = None) -> str:
        """
        Render the workflow as YAML.

        With `include_header`, the generated-file header is prepended. Its
        source line is `source`, or "workflow: <name>" when not given.
        """
        yaml = YAML()
        yaml.default_flow_style = False
        yaml.indent(mapping=2, sequence=4, offset=2)
        yaml.width = 4096

        stream = StringIO()
        yaml.dump(self.to_dict(), stream)
        yaml_content = stream.getvalue()

        if not include_header:
            return yaml_content
        return generate_workflow_header(source or f"workflow: {self.name}") + yaml_content

    @classmethod
    def from_dict(cls, data: Any, path: Path | None = None) -> WorkflowSpec:
        """Build a WorkflowSpec from a parsed YAML document."""
        data = _expect_mapping(data, "<document>")
        if "on" not in data:
            raise WorkflowError("missing 'on' (workflow triggers)", path="on")
        raw_jobs = _expect_mapping(data.get("jobs"), "jobs")

        on = data["on"]
        triggers_from_gha_dict(on)
        if isinstance(on, str):
            on = {on: None}
        elif isinstance(on, list):
            on = {name: None for name in on}

        name = data.get("name")
        if name is None:
            # GitHub shows the file path for unnamed workflows
            name = str(path) if path else "workflow"

        spec = cls(
            name=str(name),
            on=dict(on),
            jobs={str(job_id): JobSpec.from_dict(str(job_id), job) for job_id, job in raw_jobs.items()},
            env=_optional_mapping(data.get("env"), "env"),
            path=path,
            extra={k: v for k, v in data.items() if k not in _WORKFLOW_KEYS},
        )
        spec.validate()
        return spec


def parse_workflow(yaml_content: str, path: Path | None = None) -> WorkflowSpec:
    """Parse workflow YAML into a WorkflowSpec."""
    yaml = YAML(typ="safe", pure=True)
    try:
        data = yaml.load(yaml_content)
    except YAMLError as e:
        raise WorkflowError(f"invalid YAML: {e}", path=str(path) if path else None) from e
    if data is None:
        raise WorkflowError("empty workflow document", path=str(path) if path else None)
    try:
        return WorkflowSpec.from_dict(data, path=path)
    except WorkflowError as e:
        if path is None:
            raise
        raise WorkflowError(str(e), path=str(path)) from e


def load_workflow(path: str | Path) -> WorkflowSpec:
    """
    Load a workflow file.

    Raises:
        FileNotFoundError: If the file does not exist.
        WorkflowError: If the file is not a valid workflow.

    """
    workflow_path = Path(path)
    return parse_workflow(workflow_path.read_text(encoding="utf-8"), path=workflow_path)
