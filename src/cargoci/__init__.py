"""
cargoci - the CI pipeline of a Rust (Cargo) workspace, as code.

The pipeline is defined in Python, rendered to a GitHub Actions workflow,
checked for structural drift, and can be executed locally step by step.

Basic usage:

    import cargoci

    spec = cargoci.rust_ci()
    print(spec.to_yaml(include_header=True))

    # Check an existing workflow file:
    result = cargoci.check_rust_ci(cargoci.load_workflow(".github/workflows/test.yml"))
    assert result.ok, result.details

    # Run it locally without executing anything:
    cargoci.LocalExecutor(dry_run=True).execute(spec, event=cargoci.Event("push", "main"))
"""

from . import actions, cargo
from .actions import Action, LocalAction, checkout, rust_cache, setup_rust
from .cargo import CargoCommand, parse_cargo_command
from .checks import Finding, check_rust_ci, check_structure, diff_specs
from .context import Config, dbg, find_git_root, get_config, is_debug, out, set_config
from .errors import CargociError, WorkflowError
from .executor import JobResult, LocalExecutor, StepResult, WorkflowResult, execute_workflow
from .output import configure_output, get_output_manager, reset_output_manager
from .pipelines import PIPELINES, get_pipeline, rust_ci
from .result import Err, Ok, Result
from .subprocess import RunResult, SubprocessError, run
from .tasks import describe_workflow, generate_workflow
from .triggers import (
    CombinedTrigger,
    Event,
    PullRequestTrigger,
    PushTrigger,
    Trigger,
    WorkflowDispatchTrigger,
    on_pull_request,
    on_push,
    on_workflow_dispatch,
)
from .validate import validate_workflow
from .workflow import JobSpec, StepSpec, WorkflowSpec, load_workflow, parse_workflow

__version__ = "0.1.0"

__all__ = [
    # Result types
    "Result",
    "Ok",
    "Err",
    # Errors
    "CargociError",
    "WorkflowError",
    "SubprocessError",
    # Workflow model
    "WorkflowSpec",
    "JobSpec",
    "StepSpec",
    "load_workflow",
    "parse_workflow",
    # Triggers
    "Event",
    "Trigger",
    "CombinedTrigger",
    "PushTrigger",
    "PullRequestTrigger",
    "WorkflowDispatchTrigger",
    "on_push",
    "on_pull_request",
    "on_workflow_dispatch",
    # Actions and cargo commands
    "actions",
    "cargo",
    "Action",
    "LocalAction",
    "checkout",
    "rust_cache",
    "setup_rust",
    "CargoCommand",
    "parse_cargo_command",
    # Pipelines
    "PIPELINES",
    "get_pipeline",
    "rust_ci",
    "generate_workflow",
    "describe_workflow",
    # Checks
    "Finding",
    "check_structure",
    "check_rust_ci",
    "diff_specs",
    "validate_workflow",
    # Local execution
    "LocalExecutor",
    "execute_workflow",
    "StepResult",
    "JobResult",
    "WorkflowResult",
    "RunResult",
    "run",
    # Config and output
    "Config",
    "get_config",
    "set_config",
    "is_debug",
    "out",
    "dbg",
    "find_git_root",
    "configure_output",
    "get_output_manager",
    "reset_output_manager",
]
