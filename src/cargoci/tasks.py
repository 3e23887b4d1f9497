"""Operations behind the CLI commands that produce or describe workflow files.

These return Result so that callers (the CLI, or other tooling importing
cargoci) decide how to report an expected failure such as an out-of-sync file.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .checks import diff_specs
from .context import dbg, find_git_root, get_config, out
from .errors import WorkflowError
from .pipelines import get_pipeline
from .result import Err, Ok, Result
from .validate import ACTIONLINT_NOT_FOUND, validate_workflow
from .workflow import WorkflowSpec, env_to_strings, load_workflow

STATUS_ICONS = {
    "created": "+",
    "updated": "~",
    "unchanged": "=",
    "would change": "~",
    "would create": "+",
}


def default_workflow_path() -> Path:
    """
    The workflow file used when no path is given.

    Relative paths from the config are resolved against the git root when
    there is one, so the commands work from any subdirectory.
    """
    path = get_config().workflow_path
    if path.is_absolute():
        return path
    git_root = find_git_root()
    return git_root / path if git_root else path


def build_pipeline(pipeline: str = "rust", branches: Sequence[str] | None = None) -> WorkflowSpec:
    """Build a registered pipeline, optionally overriding its branch filter."""
    factory = get_pipeline(pipeline)
    if branches:
        return factory(branches=tuple(branches))
    return factory()


def generate_workflow(
    *,
    pipeline: str = "rust",
    output: Path | None = None,
    branches: Sequence[str] | None = None,
    check_only: bool = False,
) -> Result[Path | None]:
    """
    Write the pipeline's workflow file, or check that it is up to date.

    Args:
        pipeline: Name of the registered pipeline to render.
        output: File to write. Default: the configured workflow path.
        branches: Branch filter override for the pipeline's triggers.
        check_only: If True, only check if the file is up-to-date (don't write).
                   Returns Err if the file would change.

    Returns:
        The path that was created/updated, or None if nothing changed.

    """
    output_file = output or default_workflow_path()

    try:
        spec = build_pipeline(pipeline, branches)
    except ValueError as e:
        return Err(str(e))
    spec.path = output_file
    yaml_content = spec.to_yaml(include_header=True, source=f"pipeline: {pipeline}")

    if output_file.exists():
        existing = output_file.read_text()
        if existing != yaml_content:
            status = "would change" if check_only else "updated"
        else:
            status = "unchanged"
    else:
        status = "would create" if check_only else "created"

    mode = "Checking" if check_only else "Generating"
    out(f"{mode} {output_file}")

    if not check_only and status in ("created", "updated"):
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(yaml_content)

    valid, validation_msg = validate_workflow(yaml_content)
    if valid:
        dbg(f"actionlint: {output_file.name} passed validation")
    elif validation_msg == ACTIONLINT_NOT_FOUND:
        dbg("actionlint: not available, skipping validation")
    else:
        # Pinned action versions may fail actionlint's runner-age checks
        out(f"  [!] actionlint reported problems in {output_file.name} (run: cargoci validate)")
        for line in validation_msg.splitlines():
            dbg(f"actionlint: {line}")

    out(f"  [{STATUS_ICONS[status]}] {output_file.name} - {spec.name}")

    if check_only and status != "unchanged":
        details: list[str] = []
        if output_file.exists():
            try:
                details = diff_specs(spec, load_workflow(output_file))
            except (WorkflowError, OSError) as e:
                details = [f"existing file could not be parsed: {e}"]
            if not details:
                details = ["formatting or header differs"]
        return Err(
            f"Workflow out of sync ({output_file} {status}).\nRun without --check-only to update.",
            details=details,
        )

    if check_only:
        out("Workflow up-to-date!")
        return Ok(None)

    return Ok(output_file if status != "unchanged" else None)


def describe_workflow(spec: WorkflowSpec) -> list[str]:
    """Human-readable summary of a workflow: triggers, env, jobs and ordered steps."""
    lines = [f"Workflow: {spec.name}"]
    if spec.path:
        lines.append(f"File: {spec.path}")

    lines.append("Triggers:")
    for trigger in spec.triggers():
        config = trigger.to_gha_dict()[trigger.event]
        filters = ""
        if isinstance(config, dict):
            filters = " " + ", ".join(f"{k}={v}" for k, v in config.items())
        lines.append(f"  {trigger.event}{filters}")

    if spec.env:
        lines.append("Env:")
        for key, value in env_to_strings(spec.env).items():
            lines.append(f"  {key}={value}")

    lines.append("Jobs:")
    for job_id, job in spec.jobs.items():
        lines.append(f"  {job_id} (runs-on: {job.runner}, {len(job.steps)} steps)")
        for i, step in enumerate(job.steps, 1):
            run_lines = (step.run or "").strip().splitlines()
            target = step.uses or (run_lines[0] if run_lines else "")
            lines.append(f"    {i}. {step.display_name}: {target}")
    return lines
