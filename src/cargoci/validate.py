"""Checking workflow files with actionlint (https://github.com/rhysd/actionlint)."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

from .subprocess import run

ACTIONLINT_NOT_FOUND = (
    "actionlint not found. Install with:\n"
    "  brew install actionlint\n"
    "  # or\n"
    "  go install github.com/rhysd/actionlint/cmd/actionlint@latest"
)


def actionlint_available() -> bool:
    return shutil.which("actionlint") is not None


def validate_workflow(yaml_content: str, filepath: Path | None = None) -> tuple[bool, str]:
    """
    Run actionlint over a workflow.

    If `filepath` exists it is linted in place, so findings name the real file.
    Otherwise `yaml_content` is written to a temporary file first.

    Returns:
        (True, "Validation passed"), or (False, actionlint's report). When
        actionlint is not installed the report is ACTIONLINT_NOT_FOUND.

    """
    actionlint = shutil.which("actionlint")
    if actionlint is None:
        return False, ACTIONLINT_NOT_FOUND

    if filepath is not None and filepath.exists():
        result = run(actionlint, filepath, capture=True)
    else:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "workflow.yml"
            target.write_text(yaml_content)
            result = run(actionlint, target, capture=True)

    if result.ok:
        return True, "Validation passed"
    return False, result.stdout + result.stderr
