"""Ok/Err values for operations that can fail in expected ways.

An out-of-sync workflow file or a structure check with findings is not an
exception: the operation returns Err with a message and detail lines, and the
caller decides how to report it.
"""

from __future__ import annotations

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, PrivateAttr

T = TypeVar("T")


class Result(BaseModel, Generic[T]):
    """Immutable outcome of an operation. Build one with Ok() or Err()."""

    status: Literal["success", "failure"] = "success"
    error: str | None = None
    details: list[str] = []
    _value: T | None = PrivateAttr(default=None)

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @property
    def failed(self) -> bool:
        return not self.ok

    def value(self) -> T:
        """
        The wrapped value (None for Ok(None)).

        Raises:
            RuntimeError: If this is an Err.

        """
        if self.failed:
            raise RuntimeError(f"Attempted to get value from a failed result: {self.error}")
        return self._value  # type: ignore[return-value]

    def value_or(self, default: T) -> T:
        """The wrapped value, or `default` for an Err or an Ok(None)."""
        return default if self.failed or self._value is None else self._value


def Ok(value: T) -> Result[T]:
    result = Result[T](status="success")
    # Frozen model: private attrs can only be set this way
    object.__setattr__(result, "_value", value)
    return result


def Err(error: str, *, details: list[str] | None = None) -> Result[Any]:
    """A failed Result with a one-line message and optional detail lines (one finding per line)."""
    return Result(status="failure", error=error, details=list(details or []))
