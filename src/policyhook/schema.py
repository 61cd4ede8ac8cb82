"""
Schema definitions for policyhook.

This module defines the Pydantic models used throughout policyhook:
- Event: The hook occurrence being evaluated (tool call or prompt)
- Policy and its actions (GateAction, TransformAction, InjectAction)
- ClassifierSpec: Optional yes/no judgment gating a policy
- PolicySource: One discovered policy file and its policies
- Decision: The result of evaluating one event

Design Decisions:
    - Models are immutable (frozen=True); nothing is mutated after load
    - Policy files accept a few shorthands (gate: "msg", inject: [files],
      when: "condition") which validators normalize into full models
    - Exactly one action per policy, enforced at load time
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# Enums
# =============================================================================


class EventKind(str, Enum):
    """Hook events an agent can deliver."""

    PRE_TOOL_USE = "PreToolUse"
    POST_TOOL_USE = "PostToolUse"
    USER_PROMPT_SUBMIT = "UserPromptSubmit"
    NOTIFICATION = "Notification"
    STOP = "Stop"
    SUBAGENT_STOP = "SubagentStop"
    PRE_COMPACT = "PreCompact"
    SESSION_START = "SessionStart"
    SESSION_END = "SessionEnd"


class ActionKind(str, Enum):
    """What a policy does once it fires."""

    GATE = "gate"
    TRANSFORM = "transform"
    INJECT = "inject"


# =============================================================================
# Event
# =============================================================================


class Event(BaseModel):
    """
    The triggering occurrence, parsed from the hook payload.

    Attributes:
        kind: Which hook fired
        tool_name: Tool being invoked (tool events only)
        tool_input: Arguments of the tool call (tool events only)
        prompt: Text the user submitted (prompt events only)
        origin_directory: Absolute directory anchoring policy resolution
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    kind: EventKind = Field(..., alias="hook_event_name")
    tool_name: str | None = Field(default=None)
    tool_input: dict[str, Any] | None = Field(default=None)
    prompt: str | None = Field(default=None)
    origin_directory: Path = Field(default_factory=Path.cwd, alias="cwd")

    @field_validator("origin_directory", mode="after")
    @classmethod
    def make_absolute(cls, v: Path) -> Path:
        """Anchor relative directories to the process working directory."""
        return v if v.is_absolute() else Path.cwd() / v

    @property
    def is_tool_event(self) -> bool:
        """Whether this event carries a tool call."""
        return self.tool_name is not None

    def serialized_input(self) -> str:
        """Serialize tool_input as JSON text ("{}" when absent)."""
        return json.dumps(self.tool_input or {}, ensure_ascii=False)

    def payload_text(self) -> str:
        """
        The event's textual payload.

        Used as classifier input and as stdin for injected commands: the
        prompt text for prompt events, the tool input as JSON otherwise.
        """
        if self.prompt is not None and not self.is_tool_event:
            return self.prompt
        return json.dumps(self.tool_input or {}, ensure_ascii=False, indent=2)


# =============================================================================
# Policy Models
# =============================================================================


class FileRegex(BaseModel):
    """Filename sugar given as a regex, searched unanchored in the path."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    regex: str = Field(..., min_length=1)


class ClassifierSpec(BaseModel):
    """
    External yes/no judgment that must agree before a policy fires.

    Exactly one of `condition` and `prompt` is set.

    Attributes:
        condition: Plain-language condition; the yes/no prompt is synthesized
        prompt: Literal classifier prompt; "{input}" is replaced by the payload
        model: Classifier model (defaults to the engine's configured model)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    condition: str | None = Field(default=None, min_length=1)
    prompt: str | None = Field(default=None, min_length=1)
    model: str | None = Field(default=None, min_length=1)

    @model_validator(mode="before")
    @classmethod
    def expand_shorthand(cls, data: Any) -> Any:
        """Accept a bare string as a condition."""
        if isinstance(data, str):
            return {"condition": data}
        return data

    @model_validator(mode="after")
    def exactly_one_form(self) -> "ClassifierSpec":
        """A classifier needs a condition or a prompt, not both."""
        if (self.condition is None) == (self.prompt is None):
            msg = "classifier needs exactly one of 'condition' or 'prompt'"
            raise ValueError(msg)
        return self


class GateAction(BaseModel):
    """Deny the action, with an optional message shown to the agent."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    message: str | None = Field(default=None)

    @model_validator(mode="before")
    @classmethod
    def expand_shorthand(cls, data: Any) -> Any:
        """Accept `gate: "message"` and `gate: true`."""
        if data is True or data is None:
            return {}
        if isinstance(data, str):
            return {"message": data}
        return data


def _as_path_list(v: Any) -> Any:
    """Allow a single context path where a list is expected."""
    if isinstance(v, str):
        return [v]
    return v


class TransformAction(BaseModel):
    """
    Rewrite one field of the tool input through the rewrite model.

    Attributes:
        prompt: Instruction for the rewrite
        context: Files (relative to the source root) given to the model
        field: Field to overwrite (defaults to the matched field)
        model: Rewrite-model override
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    prompt: str = Field(..., min_length=1)
    context: tuple[str, ...] = Field(default=())
    field: str | None = Field(default=None, min_length=1)
    model: str | None = Field(default=None, min_length=1)

    @field_validator("context", mode="before")
    @classmethod
    def normalize_context(cls, v: Any) -> Any:
        """Accept a single path."""
        return _as_path_list(v)


class InjectAction(BaseModel):
    """
    Add context to the agent's reasoning loop.

    Attributes:
        context: Files (relative to the source root) to surface, tagged by base name
        command: Shell command whose stdout is surfaced as-is
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    context: tuple[str, ...] = Field(default=())
    command: str | None = Field(default=None, min_length=1)

    @model_validator(mode="before")
    @classmethod
    def expand_shorthand(cls, data: Any) -> Any:
        """Accept `inject: FILE` and `inject: [FILES]`."""
        if isinstance(data, (str, list, tuple)):
            return {"context": _as_path_list(data)}
        return data

    @field_validator("context", mode="before")
    @classmethod
    def normalize_context(cls, v: Any) -> Any:
        """Accept a single path."""
        return _as_path_list(v)

    @model_validator(mode="after")
    def has_something_to_inject(self) -> "InjectAction":
        """An inject with neither files nor a command would never add anything."""
        if not self.context and self.command is None:
            msg = "inject needs at least one context file or a command"
            raise ValueError(msg)
        return self


class Policy(BaseModel):
    """
    One rule from a policy file.

    Attributes:
        name: Human-readable policy name (used in default deny reasons)
        event: Event kind filter (any event when absent)
        tool: Tool-name regex, matched against the whole name
        match: Content regex, or ":name" to use a match constant
        match_field: Tool-input field the content pattern is tested against
        file: Filename sugar; a literal path component or {regex: ...}
        gate / transform / inject: The action (exactly one)
        classifier: Optional yes/no judgment (also accepted as `when`)
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    name: str = Field(..., min_length=1)
    event: EventKind | None = Field(default=None)
    tool: str | None = Field(default=None, min_length=1)
    match: str | None = Field(default=None, min_length=1)
    match_field: str | None = Field(default=None, min_length=1)
    file: str | FileRegex | None = Field(default=None)
    gate: GateAction | None = Field(default=None)
    transform: TransformAction | None = Field(default=None)
    inject: InjectAction | None = Field(default=None)
    classifier: ClassifierSpec | None = Field(default=None, alias="when")

    @model_validator(mode="before")
    @classmethod
    def keep_bare_gate(cls, data: Any) -> Any:
        """`gate:` with no value still declares a gate."""
        if isinstance(data, dict) and "gate" in data and data["gate"] is None:
            data = {**data, "gate": {}}
        return data

    @model_validator(mode="after")
    def exactly_one_action(self) -> "Policy":
        """Every policy declares exactly one of gate, transform, inject."""
        declared = [a for a in (self.gate, self.transform, self.inject) if a is not None]
        if len(declared) != 1:
            msg = (
                f"policy '{self.name}' must declare exactly one of gate, transform, inject "
                f"(found {len(declared)})"
            )
            raise ValueError(msg)
        return self

    @property
    def action_kind(self) -> ActionKind:
        """Which action this policy carries."""
        if self.gate is not None:
            return ActionKind.GATE
        if self.transform is not None:
            return ActionKind.TRANSFORM
        return ActionKind.INJECT


class PolicyFile(BaseModel):
    """Top-level structure of a policy file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    policies: tuple[Policy, ...] = Field(default=())


class PolicySource(BaseModel):
    """
    One discovered policy file.

    Attributes:
        root_directory: Directory that anchors relative file references
        path: The policy file itself
        scope_rank: Position in the broadest-first ordering (0 = broadest)
        policies: Policies in declaration order (empty if loading failed)
        load_error: Why loading failed, if it did
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    root_directory: Path
    path: Path
    scope_rank: int = Field(..., ge=0)
    policies: tuple[Policy, ...] = Field(default=())
    load_error: str | None = Field(default=None)

    @property
    def ok(self) -> bool:
        """Whether the source loaded cleanly."""
        return self.load_error is None


# =============================================================================
# Decision
# =============================================================================


class Decision(BaseModel):
    """
    Result of evaluating one event.

    A denial is terminal: a denied Decision never carries updated input or
    additional context.

    Attributes:
        denied: Whether the action is blocked
        reason: Why it was blocked (denials only)
        updated_input: Rewritten tool input (only when a transform succeeded)
        additional_context: Tagged text blocks for the agent, in order
        warnings: Diagnostics collected during evaluation, in order
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    denied: bool = Field(default=False)
    reason: str | None = Field(default=None)
    updated_input: dict[str, Any] | None = Field(default=None)
    additional_context: tuple[str, ...] = Field(default=())
    warnings: tuple[str, ...] = Field(default=())

    @model_validator(mode="after")
    def denial_is_terminal(self) -> "Decision":
        """Denials carry nothing but the reason (and warnings)."""
        if self.denied and (self.updated_input is not None or self.additional_context):
            msg = "a denied decision cannot carry updated input or context"
            raise ValueError(msg)
        return self

    @classmethod
    def allow(cls, warnings: list[str] | tuple[str, ...] = ()) -> "Decision":
        """Create a silent ALLOW decision."""
        return cls(warnings=tuple(warnings))

    @classmethod
    def deny(cls, reason: str, warnings: list[str] | tuple[str, ...] = ()) -> "Decision":
        """Create a DENY decision."""
        return cls(denied=True, reason=reason, warnings=tuple(warnings))

    @property
    def is_empty(self) -> bool:
        """Whether there is nothing to tell the agent."""
        return not self.denied and self.updated_input is None and not self.additional_context
