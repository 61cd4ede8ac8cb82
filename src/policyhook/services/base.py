"""
Base classes for policyhook's external collaborators.

The evaluation core never spawns a process or opens a socket itself. Every
side effect goes through an ExternalServices implementation with exactly
four methods:

- load_policies: Parse one policy file (never raises; failures become a LoadResult)
- rewrite: Ask the rewrite model for a transformed value
- classify: Ask the classifier model a yes/no question
- run_command: Run an injected command and capture its stdout

Design Principles:
    - Each call is bounded by the implementation's own timeout
    - rewrite/classify/run_command raise InvocationError on any failure;
      the core converts that into "condition not met" or "no rewrite"
    - Tests substitute a deterministic double; nothing here is global
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from policyhook.schema import Policy


@dataclass(frozen=True)
class LoadResult:
    """
    Outcome of loading one policy file.

    Attributes:
        policies: Policies in declaration order (empty on failure)
        error: Why loading failed, or None
    """

    policies: tuple[Policy, ...] = field(default_factory=tuple)
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the file loaded cleanly."""
        return self.error is None

    @classmethod
    def loaded(cls, policies: list[Policy] | tuple[Policy, ...]) -> "LoadResult":
        """Create a successful result."""
        return cls(policies=tuple(policies))

    @classmethod
    def failed(cls, error: str) -> "LoadResult":
        """Create a failed result."""
        return cls(error=error)


class ExternalServices(ABC):
    """
    Abstract interface to everything outside the evaluation core.

    Implementations:
        - LocalServices: YAML loader, `claude -p`, Ollama over HTTP, /bin/sh
    """

    @abstractmethod
    def load_policies(self, path: Path) -> LoadResult:
        """
        Load the policies declared in a policy file.

        Must not raise: any failure is reported through LoadResult.error.
        """
        ...

    @abstractmethod
    def rewrite(self, prompt: str, model: str | None = None) -> str:
        """
        Send an assembled rewrite request to the rewrite model.

        Args:
            prompt: Complete rewrite prompt
            model: Optional model override

        Returns:
            Raw response text

        Raises:
            InvocationError: On any failure (missing executable, exit status, timeout)
        """
        ...

    @abstractmethod
    def classify(self, prompt: str, model: str) -> str:
        """
        Send a yes/no judgment request to the classifier model.

        Raises:
            InvocationError: On any failure
        """
        ...

    @abstractmethod
    def run_command(self, command: str, cwd: Path, stdin: str) -> str:
        """
        Run an injected command and return its stdout.

        Raises:
            InvocationError: On non-zero exit, missing executable, or timeout
        """
        ...

    def close(self) -> None:
        """Release any held resources (HTTP clients, etc.)."""

    def __enter__(self) -> "ExternalServices":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
