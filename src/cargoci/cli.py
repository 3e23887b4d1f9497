"""Command-line interface for cargoci."""

from __future__ import annotations

import sys
import traceback
from pathlib import Path
from typing import Any, NoReturn

import click
from rich.markup import escape

from .checks import check_rust_ci, diff_specs
from .context import get_config, is_debug, out, set_config
from .errors import WorkflowError
from .executor import LocalExecutor, current_branch
from .output import get_output_manager
from .pipelines import PIPELINES
from .result import Result
from .tasks import build_pipeline, default_workflow_path, describe_workflow, generate_workflow
from .triggers import Event
from .validate import ACTIONLINT_NOT_FOUND, actionlint_available, validate_workflow
from .workflow import WorkflowSpec, load_workflow


def _get_console():
    """Get console from OutputManager to respect NO_COLOR settings."""
    return get_output_manager().console


def _fail(message: str, details: list[str] | None = None, exc: BaseException | None = None) -> NoReturn:
    """Report an error and exit with status 1."""
    output_mgr = get_output_manager()
    output_mgr.error(message)
    if details:
        output_mgr.error_detail(details)
    if exc is not None and is_debug():
        _get_console().print(f"[dim]{escape(''.join(traceback.format_exception(exc)))}[/dim]")
    sys.exit(1)


def _report(name: str, result: Result[Any]) -> None:
    """Print a Result the way every command does, exiting 1 on failure."""
    console = _get_console()
    console.print()
    if result.ok:
        console.print(f"[bold green]✓[/bold green] [bold]{escape(name)}[/bold] succeeded")
        return
    console.print(f"[bold red]✗[/bold red] [bold]{escape(name)}[/bold] failed")
    _fail(result.error or "failed", result.details)


def _load(path: Path | None) -> WorkflowSpec:
    workflow_path = path or default_workflow_path()
    try:
        return load_workflow(workflow_path)
    except FileNotFoundError as e:
        _fail(f"Workflow file not found: {workflow_path}", exc=e)
    except WorkflowError as e:
        _fail(f"Invalid workflow: {e}", exc=e)


pipeline_option = click.option(
    "--pipeline",
    type=click.Choice(sorted(PIPELINES)),
    default="rust",
    show_default=True,
    help="Pipeline definition to use",
)
branch_option = click.option(
    "--branch",
    "branches",
    multiple=True,
    help="Branch filter for push/pull_request triggers (repeatable; default: main)",
)
workflow_argument = click.argument("path", required=False, type=click.Path(path_type=Path, dir_okay=False))


@click.group(name="cargoci")
@click.option("--debug/--no-debug", default=None, help="Enable debug output")
@click.version_option(package_name="cargoci")
def cli(debug: bool | None) -> None:
    """Generate, check and locally run the Rust CI workflow."""
    try:
        config = get_config()
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    set_config(config.with_overrides(debug=debug))


@cli.command()
@pipeline_option
@branch_option
@click.option("--header/--no-header", default=False, help="Prepend the generated-file header")
def render(pipeline: str, branches: tuple[str, ...], header: bool) -> None:
    """Print the pipeline's workflow YAML to stdout."""
    spec = build_pipeline(pipeline, branches)
    click.echo(spec.to_yaml(include_header=header, source=f"pipeline: {pipeline}"), nl=False)


@cli.command()
@pipeline_option
@branch_option
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Workflow file to write (default: .github/workflows/test.yml in the git root)",
)
@click.option("--check-only", is_flag=True, default=False, help="Only check that the file is up to date")
def generate(pipeline: str, branches: tuple[str, ...], output: Path | None, check_only: bool) -> None:
    """Write the workflow file, or report drift with --check-only."""
    result = generate_workflow(pipeline=pipeline, output=output, branches=branches, check_only=check_only)
    _report("generate", result)


@cli.command()
@workflow_argument
@click.option(
    "--against-pipeline",
    is_flag=True,
    default=False,
    help="Also report differences from the workflow the pipeline would generate",
)
@pipeline_option
@branch_option
def check(path: Path | None, against_pipeline: bool, pipeline: str, branches: tuple[str, ...]) -> None:
    """Check a workflow file's structure (triggers, job, step order, lint settings)."""
    spec = _load(path)
    out(f"Checking {spec.path}")

    result = check_rust_ci(spec)
    details = list(result.details)
    if against_pipeline:
        differences = diff_specs(build_pipeline(pipeline, branches), spec)
        details.extend(f"[drift] {d}" for d in differences)

    console = _get_console()
    console.print()
    if not details:
        console.print(f"[bold green]✓[/bold green] {escape(spec.name)}: structure OK")
        return
    console.print(f"[bold red]✗[/bold red] {escape(spec.name)}: {len(details)} problem(s)")
    for line in details:
        out(f"  {line}")
    sys.exit(1)


@cli.command()
@workflow_argument
def validate(path: Path | None) -> None:
    """Validate a workflow file with actionlint."""
    if not actionlint_available():
        _fail("actionlint is required for validation", ACTIONLINT_NOT_FOUND.splitlines())

    workflow_path = path or default_workflow_path()
    if not workflow_path.exists():
        _fail(f"Workflow file not found: {workflow_path}")

    valid, message = validate_workflow(workflow_path.read_text(), workflow_path)
    if not valid:
        _fail(f"actionlint: {workflow_path} failed validation", message.splitlines())
    _get_console().print(f"[bold green]✓[/bold green] {escape(str(workflow_path))}: actionlint passed")


@cli.command()
@workflow_argument
def inspect(path: Path | None) -> None:
    """Show a workflow's triggers, env, jobs and ordered steps."""
    spec = _load(path)
    for line in describe_workflow(spec):
        out(line)


@cli.command(name="run")
@workflow_argument
@click.option(
    "--event",
    type=click.Choice(["push", "pull_request"]),
    default=None,
    help="Only run if the workflow triggers on this event",
)
@click.option("--branch", default=None, help="Branch pushed to, or targeted by the pull request")
@click.option("--job", default=None, help="Only run this job")
@click.option("--dry-run", is_flag=True, default=False, help="Show what each step would run")
@click.option(
    "--toolchains/--no-toolchains",
    default=None,
    help="Install toolchains for setup-rust-action steps (default: CARGOCI_INSTALL_TOOLCHAINS or on)",
)
@click.option(
    "--workdir",
    "-C",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=None,
    help="Directory to run steps in (default: current directory)",
)
def run_workflow(
    path: Path | None,
    event: str | None,
    branch: str | None,
    job: str | None,
    dry_run: bool,
    toolchains: bool | None,
    workdir: Path | None,
) -> None:
    """Execute a workflow's steps locally, in order, stopping at the first failure."""
    spec = _load(path)
    config = get_config().with_overrides(install_toolchains=toolchains, working_directory=workdir)

    trigger_event: Event | None = None
    if event is not None or branch is not None:
        event_branch = branch or current_branch(config.working_directory)
        if event_branch is None:
            _fail("Could not determine the current branch. Pass --branch explicitly.")
        trigger_event = Event(event or "push", event_branch)

    executor = LocalExecutor(config, dry_run=dry_run)
    try:
        result = executor.execute(spec, event=trigger_event, job=job)
    except ValueError as e:
        _fail(str(e), exc=e)
    except KeyboardInterrupt:
        get_output_manager().error("Interrupted")
        sys.exit(130)

    if not result.triggered:
        out(f"{spec.name} does not run on {trigger_event}; nothing to do.")
        return

    if not result.success:
        for step in result.failed_steps:
            get_output_manager().error(f"{step.name}: {step.error}")
        sys.exit(1)


def main() -> None:
    """Entry point for the `cargoci` console script."""
    cli()
