"""Workflow triggers and the events that fire them.

Triggers render to the GitHub Actions `on:` mapping and can be parsed back
from it. Each trigger can also answer whether a given event (a push to a
branch, a pull request targeting a branch) would start the workflow, using
GitHub's filter-pattern rules for branch names.
"""

from __future__ import annotations

import functools
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .errors import WorkflowError


@dataclass(frozen=True)
class Event:
    """
    An event that may start a workflow.

    For `push` the branch is the pushed branch; for `pull_request` it is the
    base branch the pull request targets.
    """

    name: str
    branch: str | None = None

    def __post_init__(self) -> None:
        if self.branch and self.branch.startswith("refs/heads/"):
            object.__setattr__(self, "branch", self.branch[len("refs/heads/") :])

    def __str__(self) -> str:
        return f"{self.name} ({self.branch})" if self.branch else self.name


@functools.lru_cache(maxsize=256)
def _compile_filter(pattern: str) -> re.Pattern[str]:
    """
    Translate a GitHub filter pattern into a regex.

    Raises:
        re.error: If a character class in the pattern is not a valid regex class.

    """
    out: list[str] = []
    # Whether the last token is a single character (or class) that `?`/`+` can repeat
    repeatable = False
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                out.append(".*")
                i += 2
                repeatable = False
                continue
            out.append("[^/]*")
            repeatable = False
        elif char in "?+" and repeatable:
            out.append(char)
            repeatable = False
        elif char == "[" and pattern.find("]", i + 1) != -1:
            end = pattern.find("]", i + 1)
            out.append(pattern[i : end + 1])
            i = end + 1
            repeatable = True
            continue
        else:
            out.append(re.escape(char))
            repeatable = True
        i += 1
    return re.compile("".join(out) + r"\Z")


def check_filters(patterns: Iterable[str], path: str) -> None:
    """Raise WorkflowError if any of the patterns cannot be compiled."""
    for pattern in patterns:
        try:
            _compile_filter(pattern[1:] if pattern.startswith("!") else pattern)
        except re.error as e:
            raise WorkflowError(f"invalid filter pattern {pattern!r}: {e}", path=path) from e


def match_filter(name: str, patterns: Iterable[str]) -> bool:
    """
    Check a branch name against GitHub filter patterns.

    Patterns are evaluated in order and the last matching one wins; a pattern
    prefixed with `!` excludes the names it matches.
    """
    matched = False
    for pattern in patterns:
        negated = pattern.startswith("!")
        body = pattern[1:] if negated else pattern
        if _compile_filter(body).match(name):
            matched = not negated
    return matched


class Trigger:
    """An event kind that starts a workflow. Combine several with `|`."""

    event: str = ""

    def __or__(self, other: Trigger) -> CombinedTrigger:
        return CombinedTrigger([self, other])

    def to_gha_dict(self) -> dict[str, Any]:
        """This trigger's entry in a workflow's `on:` mapping."""
        raise NotImplementedError

    def matches(self, event: Event) -> bool:
        """Whether this trigger starts the workflow for the given event."""
        return event.name == self.event


@dataclass
class CombinedTrigger(Trigger):
    """Several triggers; any of them starts the workflow."""

    triggers: list[Trigger]

    def __or__(self, other: Trigger) -> CombinedTrigger:
        return CombinedTrigger(self.triggers + [other])

    def to_gha_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for trigger in self.triggers:
            result.update(trigger.to_gha_dict())
        return result

    def matches(self, event: Event) -> bool:
        return any(t.matches(event) for t in self.triggers)


@dataclass
class _BranchFilteredTrigger(Trigger):
    branches: list[str] | None = None
    branches_ignore: list[str] | None = None

    def __post_init__(self) -> None:
        if self.branches and self.branches_ignore:
            raise WorkflowError(f"'{self.event}' cannot filter on both branches and branches-ignore")
        check_filters(self.branches or [], f"on.{self.event}.branches")
        check_filters(self.branches_ignore or [], f"on.{self.event}.branches-ignore")

    def to_gha_dict(self) -> dict[str, Any]:
        config: dict[str, Any] = {}
        if self.branches:
            config["branches"] = list(self.branches)
        if self.branches_ignore:
            config["branches-ignore"] = list(self.branches_ignore)
        return {self.event: config or None}

    def matches(self, event: Event) -> bool:
        if event.name != self.event:
            return False
        if not self.branches and not self.branches_ignore:
            return True
        if event.branch is None:
            # A filtered trigger can't be decided without a branch
            return False
        if self.branches:
            return match_filter(event.branch, self.branches)
        return not match_filter(event.branch, self.branches_ignore or [])


@dataclass
class PushTrigger(_BranchFilteredTrigger):
    """`on: push`, optionally filtered by branch."""

    event: str = field(default="push", init=False)


@dataclass
class PullRequestTrigger(_BranchFilteredTrigger):
    """Trigger on pull request events; branch filters apply to the base branch."""

    event: str = field(default="pull_request", init=False)


@dataclass
class WorkflowDispatchTrigger(Trigger):
    """`on: workflow_dispatch` (started by hand from the Actions tab)."""

    event: str = field(default="workflow_dispatch", init=False)

    def to_gha_dict(self) -> dict[str, Any]:
        return {"workflow_dispatch": None}


@dataclass
class OtherTrigger(Trigger):
    """Any other event kind, kept verbatim so loaded workflows round-trip."""

    event: str = ""
    config: Any = None

    def to_gha_dict(self) -> dict[str, Any]:
        return {self.event: self.config}


def on_push(branches: list[str] | None = None, branches_ignore: list[str] | None = None) -> PushTrigger:
    return PushTrigger(branches=branches, branches_ignore=branches_ignore)


def on_pull_request(
    branches: list[str] | None = None,
    branches_ignore: list[str] | None = None,
) -> PullRequestTrigger:
    return PullRequestTrigger(branches=branches, branches_ignore=branches_ignore)


def on_workflow_dispatch() -> WorkflowDispatchTrigger:
    return WorkflowDispatchTrigger()


def _string_list(value: Any, path: str) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise WorkflowError("expected a string or a list of strings", path=path)


def _trigger_from_entry(event: str, config: Any) -> Trigger:
    if event in ("push", "pull_request"):
        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise WorkflowError("expected a mapping", path=f"on.{event}")
        branches = config.get("branches")
        ignore = config.get("branches-ignore")
        cls = PushTrigger if event == "push" else PullRequestTrigger
        return cls(
            branches=_string_list(branches, f"on.{event}.branches") if branches is not None else None,
            branches_ignore=_string_list(ignore, f"on.{event}.branches-ignore") if ignore is not None else None,
        )
    if event == "workflow_dispatch":
        return WorkflowDispatchTrigger()
    return OtherTrigger(event=event, config=config)


def triggers_from_gha_dict(on: Any) -> list[Trigger]:
    """
    Parse a GHA `on:` value into triggers.

    Accepts the three forms GitHub accepts: a single event name, a list of
    event names, or a mapping of event name to its configuration.
    """
    if isinstance(on, str):
        return [_trigger_from_entry(on, None)]
    if isinstance(on, list):
        return [_trigger_from_entry(name, None) for name in _string_list(on, "on")]
    if isinstance(on, dict):
        return [_trigger_from_entry(str(name), config) for name, config in on.items()]
    raise WorkflowError("expected an event name, a list or a mapping", path="on")
