"""Tests for actionlint validation."""

import shutil
from pathlib import Path

import pytest

from cargoci.validate import ACTIONLINT_NOT_FOUND, actionlint_available, validate_workflow

requires_actionlint = pytest.mark.skipif(shutil.which("actionlint") is None, reason="actionlint not installed")

VALID_WORKFLOW = """\
name: Demo
on:
  push:
    branches: [main]
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - name: Build
        run: cargo build --verbose
"""


def test_reports_missing_actionlint(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    assert not actionlint_available()
    assert validate_workflow(VALID_WORKFLOW) == (False, ACTIONLINT_NOT_FOUND)


@requires_actionlint
def test_valid_workflow():
    valid, message = validate_workflow(VALID_WORKFLOW)
    assert valid, message


@requires_actionlint
def test_invalid_workflow():
    content = VALID_WORKFLOW.replace("runs-on: ubuntu-latest", "runs-on: ubuntu-latest\n    needs: missing-job")
    valid, message = validate_workflow(content)
    assert not valid
    assert "missing-job" in message


@requires_actionlint
def test_validates_existing_file(tmp_path: Path):
    path = tmp_path / "demo.yml"
    path.write_text(VALID_WORKFLOW)
    valid, message = validate_workflow(path.read_text(), path)
    assert valid, message
