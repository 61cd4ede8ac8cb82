"""
Fail-open reporter.

Every failure inside an evaluation ends up here instead of propagating.
Diagnostics are printed to stderr (the hook's stdout belongs to the agent)
prefixed with `policyhook:`; those that the agent should also see are
collected as warnings and later attached to the Decision.

Two levels:
    - diagnose(): operator-only (bad policy file, bad regex, bad event)
    - warn(): operator and agent (an external call failed, a file is missing)
"""

from rich.console import Console
from rich.text import Text

PREFIX = "policyhook:"
WARNINGS_TAG = "policyhook-warnings"


def format_warning_block(warnings: list[str] | tuple[str, ...]) -> str:
    """Render warnings as one tagged block for additional context."""
    lines = "\n".join(f"- {w}" for w in warnings)
    return f"<{WARNINGS_TAG}>\n{lines}\n</{WARNINGS_TAG}>"


class Reporter:
    """
    Collects warnings for one evaluation and writes diagnostics to stderr.

    Usage:
        reporter = Reporter()
        reporter.warn("classifier: timed out after 30s")
        decision = Decision.allow(warnings=reporter.warnings)
    """

    def __init__(self, console: Console | None = None, quiet: bool = False) -> None:
        """
        Initialize the reporter.

        Args:
            console: Rich console to print to (defaults to stderr)
            quiet: Collect warnings without printing anything
        """
        if console is None:
            console = Console(stderr=True, soft_wrap=True, highlight=False)
        self.console = console
        self.quiet = quiet
        self._warnings: list[str] = []

    @property
    def warnings(self) -> tuple[str, ...]:
        """Warnings collected so far, in order."""
        return tuple(self._warnings)

    def _emit(self, message: str, style: str) -> None:
        if self.quiet:
            return
        line = Text(f"{PREFIX} ", style=style)
        # Messages quote user-written policies; never interpret them as markup
        line.append(message)
        self.console.print(line)

    def diagnose(self, message: str) -> None:
        """Report a problem to the operator only."""
        self._emit(message, "bold red")

    def warn(self, message: str) -> None:
        """Report a problem to the operator and record it for the agent."""
        self._warnings.append(message)
        self._emit(message, "yellow")

    def info(self, message: str) -> None:
        """Print an informational line."""
        self._emit(message, "dim")
