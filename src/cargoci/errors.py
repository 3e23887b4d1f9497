"""Exception types raised by cargoci."""

from __future__ import annotations


class CargociError(Exception):
    """Base class for cargoci errors."""


class WorkflowError(CargociError):
    """A workflow definition or document is malformed."""

    def __init__(self, message: str, *, path: str | None = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)
