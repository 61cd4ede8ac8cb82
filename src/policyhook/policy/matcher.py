"""
Condition Matcher.

Decides whether a policy applies to an event. A policy has up to three
conditions, all of which must hold (an absent condition always holds):

1. Event kind: `event` equals the event's kind
2. Tool: `tool` matches the whole tool name (re.fullmatch)
3. Content: one compiled regex searched (unanchored) in one field value

The content regex comes from exactly one of four sources, modelled as a
closed tagged union (ContentPattern):
    - REGEX: `match: <regex>`
    - CONSTANT: `match: ":git_push"` from MATCH_CONSTANTS
    - FILE_LITERAL: `file: .env` anchored to a path component
    - FILE_REGEX: `file: {regex: ...}` searched in the whole path

Broken conditions (bad regex, unknown constant) are reported and the policy
simply does not match. Nothing here raises past `match()`.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from policyhook.config import FILE_PATH_FIELD, EngineConfig
from policyhook.errors import InvalidPatternError, MatchError, UnknownMatchConstantError
from policyhook.policy.constants import MATCH_CONSTANTS, constant_name, is_constant_reference
from policyhook.report.diagnostics import Reporter
from policyhook.schema import Event, FileRegex, Policy


class PatternKind(str, Enum):
    """Where a policy's content pattern came from."""

    REGEX = "regex"
    CONSTANT = "constant"
    FILE_LITERAL = "file_literal"
    FILE_REGEX = "file_regex"


@dataclass(frozen=True)
class ContentPattern:
    """
    A policy's content condition before compilation.

    Attributes:
        kind: Which form the author used
        value: The regex, constant name, or literal filename
        field: Field the pattern is forced to test, if any (filename sugar)
    """

    kind: PatternKind
    value: str
    field: str | None = None

    @classmethod
    def from_policy(cls, policy: Policy) -> "ContentPattern | None":
        """Pick the content pattern of a policy (filename sugar wins over match)."""
        if isinstance(policy.file, FileRegex):
            return cls(PatternKind.FILE_REGEX, policy.file.regex, FILE_PATH_FIELD)
        if isinstance(policy.file, str):
            return cls(PatternKind.FILE_LITERAL, policy.file, FILE_PATH_FIELD)
        if policy.match is None:
            return None
        if is_constant_reference(policy.match):
            return cls(PatternKind.CONSTANT, constant_name(policy.match))
        return cls(PatternKind.REGEX, policy.match)

    def source(self, policy_name: str) -> str:
        """
        Resolve to regex source text.

        Raises:
            UnknownMatchConstantError: CONSTANT names no entry in MATCH_CONSTANTS
        """
        if self.kind is PatternKind.CONSTANT:
            try:
                return MATCH_CONSTANTS[self.value]
            except KeyError:
                raise UnknownMatchConstantError(policy=policy_name, constant=self.value) from None
        if self.kind is PatternKind.FILE_LITERAL:
            return rf"(?:^|/){re.escape(self.value)}$"
        return self.value

    def compile(self, policy_name: str) -> re.Pattern[str]:
        """
        Resolve and compile.

        Raises:
            UnknownMatchConstantError: Unknown constant
            InvalidPatternError: The resulting regex does not compile
        """
        return _compile(self.source(policy_name), policy_name)


def _compile(pattern: str, policy_name: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(
            policy=policy_name,
            pattern=pattern,
            underlying_error=str(e),
        ) from e


@dataclass(frozen=True)
class MatchOutcome:
    """
    Result of matching one policy against one event.

    Attributes:
        matched: Whether every condition held
        field: The tool-input field the content condition resolved to
            (None for prompt events); transforms default to rewriting it
    """

    matched: bool
    field: str | None = None


NO_MATCH = MatchOutcome(matched=False)


class ConditionMatcher:
    """
    Evaluates policy conditions against events.

    Usage:
        matcher = ConditionMatcher(config, reporter)
        if matcher.matches(policy, event):
            ...
    """

    def __init__(self, config: EngineConfig, reporter: Reporter) -> None:
        self.config = config
        self.reporter = reporter

    def matches(self, policy: Policy, event: Event) -> bool:
        """Whether every condition of `policy` holds for `event`."""
        return self.match(policy, event).matched

    def match(self, policy: Policy, event: Event) -> MatchOutcome:
        """
        Match a policy and report which field its content condition used.

        Returns NO_MATCH (after a diagnostic) when a condition is broken.
        """
        try:
            return self._match(policy, event)
        except MatchError as e:
            self.reporter.diagnose(f"{e.message}; skipping policy")
            return NO_MATCH

    def resolve_field(self, policy: Policy, event: Event) -> str:
        """Field a policy's content condition tests for a tool event."""
        if policy.file is not None:
            return FILE_PATH_FIELD
        if policy.match_field is not None:
            return policy.match_field
        return self.config.default_field_for(event.tool_name)

    def _match(self, policy: Policy, event: Event) -> MatchOutcome:
        if policy.event is not None and policy.event != event.kind:
            return NO_MATCH

        if policy.tool is not None:
            if event.tool_name is None:
                return NO_MATCH
            if _compile(policy.tool, policy.name).fullmatch(event.tool_name) is None:
                return NO_MATCH

        field = self.resolve_field(policy, event) if event.is_tool_event else None
        pattern = ContentPattern.from_policy(policy)
        if pattern is None:
            return MatchOutcome(matched=True, field=field)

        regex = pattern.compile(policy.name)
        text = self._subject(event, field)
        if text is None or regex.search(text) is None:
            return NO_MATCH
        return MatchOutcome(matched=True, field=field)

    def _subject(self, event: Event, field: str | None) -> str | None:
        """The text a content pattern is searched in."""
        if not event.is_tool_event:
            return event.prompt
        tool_input = event.tool_input or {}
        if field is not None and field in tool_input:
            return _as_text(tool_input[field])
        # Unexpected shapes stay matchable through the whole input
        return event.serialized_input()


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value, ensure_ascii=False)
