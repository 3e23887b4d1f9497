"""Local execution of workflows.

Runs the steps of a workflow's jobs on the developer machine, in order, one
process at a time. `run:` steps go through the configured shell; `uses:` steps
are resolved to their local equivalent (see `actions.resolve_local_action`).

The first failing step fails its job; the steps after it are reported as
not run. Jobs themselves run one after another in file order.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from pathlib import Path

from . import actions
from .context import Config, dbg, get_config
from .output import get_output_manager
from .subprocess import run
from .triggers import Event
from .workflow import JobSpec, StepSpec, WorkflowSpec, env_to_strings

SUCCESS = "success"
FAILURE = "failure"
SKIPPED = "skipped"
NOT_RUN = "not_run"


@dataclass
class StepResult:
    """Result of executing a single step."""

    name: str
    status: str
    elapsed_seconds: float = 0.0
    returncode: int | None = None
    command: list[str] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True unless the step failed (skipped steps count as ok)."""
        return self.status != FAILURE


@dataclass
class JobResult:
    """Result of executing a single job."""

    job_id: str
    success: bool
    elapsed_seconds: float
    step_results: list[StepResult] = field(default_factory=list)

    @property
    def failed_steps(self) -> list[StepResult]:
        return [s for s in self.step_results if s.status == FAILURE]


@dataclass
class WorkflowResult:
    """Result of executing a workflow."""

    workflow_name: str
    success: bool
    elapsed_seconds: float
    triggered: bool = True
    event: Event | None = None
    job_results: list[JobResult] = field(default_factory=list)

    @property
    def failed_jobs(self) -> list[JobResult]:
        """Get list of failed jobs."""
        return [j for j in self.job_results if not j.success]

    @property
    def failed_steps(self) -> list[StepResult]:
        """All failed steps across jobs, in execution order."""
        return [s for j in self.job_results for s in j.failed_steps]


def _missing_executable_hint(command: list[str]) -> str:
    program = command[0] if command else "?"
    hint = f"executable not found: {program}"
    if program in ("cargo", "rustup"):
        hint += " (install Rust from https://rustup.rs)"
    elif program == "bash":
        hint += " (set CARGOCI_SHELL to another shell)"
    return hint


class LocalExecutor:
    """
    Executes workflows locally, step by step.

    Example:
        >>> executor = LocalExecutor(dry_run=True)
        >>> result = executor.execute(rust_ci(), event=Event("push", "main"))
        >>> result.success
        True

    """

    def __init__(self, config: Config | None = None, *, dry_run: bool = False):
        self.config = config or get_config()
        self.dry_run = dry_run

    def execute(
        self,
        workflow: WorkflowSpec,
        event: Event | None = None,
        job: str | None = None,
    ) -> WorkflowResult:
        """
        Execute a workflow.

        Args:
            workflow: The workflow to run.
            event: If given, only run when the workflow triggers on this event.
            job: If given, only run the job with this id.

        Returns:
            WorkflowResult with per-job and per-step results.

        Raises:
            ValueError: If `job` names a job the workflow does not define.

        """
        start_time = time.perf_counter()
        output_mgr = get_output_manager()

        if job is not None and job not in workflow.jobs:
            raise ValueError(f"Unknown job '{job}'. Available: {', '.join(workflow.jobs)}")

        if event is not None and not workflow.is_triggered_by(event):
            dbg(f"{workflow.name} does not trigger on {event}")
            return WorkflowResult(
                workflow_name=workflow.name,
                success=True,
                elapsed_seconds=time.perf_counter() - start_time,
                triggered=False,
                event=event,
            )

        output_mgr.workflow_header(workflow.name, str(event) if event else None)

        job_results: list[JobResult] = []
        for job_id, job_spec in workflow.jobs.items():
            if job is not None and job_id != job:
                continue
            job_results.append(self._execute_job(workflow, job_id, job_spec))

        elapsed = time.perf_counter() - start_time
        success = all(r.success for r in job_results)
        step_count = sum(len(r.step_results) for r in job_results)
        output_mgr.workflow_status(workflow.name, success, elapsed, step_count)

        return WorkflowResult(
            workflow_name=workflow.name,
            success=success,
            elapsed_seconds=elapsed,
            event=event,
            job_results=job_results,
        )

    def _job_cwd(self, job_spec: JobSpec) -> Path:
        cwd = self.config.working_directory
        if job_spec.working_directory:
            cwd = cwd / job_spec.working_directory
        return cwd

    def _execute_job(self, workflow: WorkflowSpec, job_id: str, job_spec: JobSpec) -> JobResult:
        start_time = time.perf_counter()
        output_mgr = get_output_manager()
        cwd = self._job_cwd(job_spec)
        step_results: list[StepResult] = []
        failed = False

        with output_mgr.job_scope(job_id):
            for step in job_spec.steps:
                if failed:
                    output_mgr.step_not_run(step.display_name)
                    step_results.append(StepResult(name=step.display_name, status=NOT_RUN))
                    continue

                env = {
                    **env_to_strings(workflow.env),
                    **env_to_strings(job_spec.env),
                    **env_to_strings(step.env),
                }
                result = self._execute_step(step, env, cwd)
                step_results.append(result)
                if result.status == FAILURE:
                    failed = True

            elapsed = time.perf_counter() - start_time
            output_mgr.job_status(job_id, not failed, elapsed)

        return JobResult(job_id=job_id, success=not failed, elapsed_seconds=elapsed, step_results=step_results)

    def _resolve_command(self, step: StepSpec) -> tuple[list[str] | None, str | None]:
        """Return (command, skip_reason) for a step."""
        if "if" in step.extra:
            return None, "conditional steps are not evaluated locally"
        if step.uses:
            local = actions.resolve_local_action(step, install_toolchains=self.config.install_toolchains)
            return local.command, local.skip_reason
        return [*self.config.shell, step.run or ""], None

    def _execute_step(self, step: StepSpec, env: dict[str, str], cwd: Path) -> StepResult:
        output_mgr = get_output_manager()
        name = step.display_name

        with output_mgr.step_scope(name) as scope:
            command, skip_reason = self._resolve_command(step)

            if command is None:
                output_mgr.step_status(SKIPPED, note=skip_reason)
                return StepResult(name=name, status=SKIPPED, error=skip_reason)

            if self.dry_run:
                print(f"Would run: {step.run.strip() if step.run else ' '.join(command)}", flush=True)
                output_mgr.step_status(SKIPPED, note="dry run")
                return StepResult(name=name, status=SKIPPED, command=command)

            dbg(f"cwd={cwd} command={command}")
            try:
                result = run(*command, cwd=cwd, env=env)
            except FileNotFoundError:
                hint = _missing_executable_hint(command)
                output_mgr.step_status(FAILURE, scope.elapsed, note=hint)
                return StepResult(
                    name=name, status=FAILURE, elapsed_seconds=scope.elapsed, command=command, error=hint
                )

            elapsed = scope.elapsed
            if result.ok:
                output_mgr.step_status(SUCCESS, elapsed)
                return StepResult(
                    name=name, status=SUCCESS, elapsed_seconds=elapsed, returncode=result.returncode, command=command
                )

            error = f"exit code {result.returncode}"
            output_mgr.step_status(FAILURE, elapsed, note=error)
            return StepResult(
                name=name,
                status=FAILURE,
                elapsed_seconds=elapsed,
                returncode=result.returncode,
                command=command,
                error=error,
            )


def execute_workflow(
    workflow: WorkflowSpec,
    *,
    event: Event | None = None,
    job: str | None = None,
    dry_run: bool = False,
    config: Config | None = None,
) -> WorkflowResult:
    """Convenience wrapper around LocalExecutor.execute()."""
    return LocalExecutor(config, dry_run=dry_run).execute(workflow, event=event, job=job)


def current_branch(cwd: Path | None = None) -> str | None:
    """Name of the checked-out git branch, or None outside a repository or on a detached HEAD."""
    try:
        result = run("git", "rev-parse", "--abbrev-ref", "HEAD", cwd=cwd or os.getcwd(), capture=True)
    except FileNotFoundError:
        return None
    branch = result.stdout.strip()
    if result.failed or not branch or branch == "HEAD":
        return None
    return branch
