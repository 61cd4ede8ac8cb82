"""
Exception hierarchy for policyhook.

All policyhook exceptions inherit from PolicyhookError, allowing callers to
catch every policyhook-specific exception with a single except clause.

Exception Categories:
    - PolicySourceError: A policy file could not be read or parsed
    - MatchError: A policy's match condition cannot be compiled
    - InvocationError: An external collaborator (model, classifier, command) failed
    - EventParseError: The incoming hook event is malformed

None of these ever escape the evaluation pipeline. They are raised at the
collaborator boundary and converted into warnings by the engine, which then
allows the action (fail-open).
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Source errors: 1xxx
ERROR_SOURCE_UNREADABLE = 1001
ERROR_SOURCE_INVALID = 1002

# Match errors: 2xxx
ERROR_MATCH_INVALID_REGEX = 2001
ERROR_MATCH_UNKNOWN_CONSTANT = 2002

# Invocation errors: 3xxx
ERROR_INVOCATION_FAILED = 3001
ERROR_INVOCATION_NOT_FOUND = 3002
ERROR_INVOCATION_TIMEOUT = 3003
ERROR_INVOCATION_EMPTY = 3004

# Event errors: 4xxx
ERROR_EVENT_INVALID = 4001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class PolicyhookError(Exception):
    """
    Base exception for all policyhook errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Source Errors
# =============================================================================


@dataclass
class PolicySourceError(PolicyhookError):
    """
    Raised when a policy file cannot be loaded.

    The loader converts this into a LoadResult; the resolver records it as the
    source's load_error and moves on to the next directory.
    """

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"failed to load policies from {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_SOURCE_INVALID
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Match Errors
# =============================================================================


@dataclass
class MatchError(PolicyhookError):
    """
    Base class for errors in a policy's match conditions.

    Attributes:
        policy: Name of the policy whose condition failed
    """

    policy: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["policy"] = self.policy


@dataclass
class InvalidPatternError(MatchError):
    """Raised when a tool or content pattern is not a valid regex."""

    pattern: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"invalid regex in policy '{self.policy}': "
                f"{self.pattern!r} ({self.underlying_error})"
            )
        if self.code == 0:
            self.code = ERROR_MATCH_INVALID_REGEX
        super().__post_init__()
        self.context.update({
            "pattern": self.pattern,
            "underlying_error": self.underlying_error,
        })


@dataclass
class UnknownMatchConstantError(MatchError):
    """Raised when a policy references a match constant that does not exist."""

    constant: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"unknown match constant :{self.constant} in policy '{self.policy}'"
        if self.code == 0:
            self.code = ERROR_MATCH_UNKNOWN_CONSTANT
        if not self.suggestion:
            self.suggestion = "Run `policyhook constants` to list the available constants"
        super().__post_init__()
        self.context["constant"] = self.constant


# =============================================================================
# Invocation Errors
# =============================================================================


@dataclass
class InvocationError(PolicyhookError):
    """
    Base class for failures of external collaborators.

    Attributes:
        service: Which collaborator failed ("rewrite", "classifier", "command")
    """

    service: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.service} invocation failed"
        if self.code == 0:
            self.code = ERROR_INVOCATION_FAILED
        self.context["service"] = self.service


@dataclass
class ExecutableNotFoundError(InvocationError):
    """Raised when the executable backing a collaborator is not on PATH."""

    executable: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.service}: executable not found: {self.executable}"
        if self.code == 0:
            self.code = ERROR_INVOCATION_NOT_FOUND
        super().__post_init__()
        self.context["executable"] = self.executable


@dataclass
class InvocationTimeoutError(InvocationError):
    """Raised when a collaborator exceeds its timeout."""

    timeout_seconds: float = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.service}: timed out after {self.timeout_seconds}s"
        if self.code == 0:
            self.code = ERROR_INVOCATION_TIMEOUT
        super().__post_init__()
        self.context["timeout_seconds"] = self.timeout_seconds


@dataclass
class InvocationFailedError(InvocationError):
    """Raised on a non-zero exit status or an unusable HTTP response."""

    return_code: int | None = None
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            detail = self.underlying_error or f"exit status {self.return_code}"
            self.message = f"{self.service}: {detail}"
        super().__post_init__()
        self.context.update({
            "return_code": self.return_code,
            "underlying_error": self.underlying_error,
        })


@dataclass
class EmptyResponseError(InvocationError):
    """Raised when a collaborator succeeds but returns no text."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.service}: empty response"
        if self.code == 0:
            self.code = ERROR_INVOCATION_EMPTY
        super().__post_init__()


# =============================================================================
# Event Errors
# =============================================================================


@dataclass
class EventParseError(PolicyhookError):
    """Raised when the hook payload on stdin cannot be turned into an Event."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"invalid event: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_EVENT_INVALID
        self.context["underlying_error"] = self.underlying_error
