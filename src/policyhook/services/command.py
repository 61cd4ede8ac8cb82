"""
Command-injection invoker.

Inject policies may name a command whose stdout becomes extra context, e.g.
`git log --oneline -5` or `./scripts/summarize-diff.sh`. Policy authors
write these as shell command lines (pipes included), so the command is run
as `/bin/sh -c <command>`:
    - cwd is the root directory of the policy's source
    - stdin carries the event payload (prompt text or tool input JSON), UTF-8
      encoded; characters UTF-8 cannot represent become "?"
    - a timeout bounds every run
"""

import subprocess
from pathlib import Path

from policyhook.errors import (
    ExecutableNotFoundError,
    InvocationFailedError,
    InvocationTimeoutError,
)

SERVICE_NAME = "command"
SHELL = "/bin/sh"


class ShellCommandRunner:
    """Runs injected commands and captures their stdout."""

    def __init__(self, timeout_seconds: float = 10.0, shell: str = SHELL) -> None:
        self.timeout_seconds = timeout_seconds
        self.shell = shell

    def run(self, command: str, cwd: Path, stdin: str) -> str:
        """
        Run a command and return its stdout.

        Raises:
            ExecutableNotFoundError: The shell (or cwd) does not exist
            InvocationTimeoutError: The command exceeded timeout_seconds
            InvocationFailedError: Non-zero exit status
        """
        try:
            result = subprocess.run(
                [self.shell, "-c", command],
                cwd=str(cwd),
                input=stdin.encode("utf-8", errors="replace"),
                capture_output=True,
                timeout=self.timeout_seconds,
                shell=False,
            )
        except FileNotFoundError as e:
            raise ExecutableNotFoundError(
                service=SERVICE_NAME,
                executable=self.shell,
                message=f"command: cannot run {command!r} in {cwd}: {e}",
            ) from e
        except subprocess.TimeoutExpired as e:
            raise InvocationTimeoutError(
                service=SERVICE_NAME,
                timeout_seconds=self.timeout_seconds,
                message=f"command: {command!r} timed out after {self.timeout_seconds}s",
            ) from e
        except OSError as e:
            raise InvocationFailedError(service=SERVICE_NAME, underlying_error=str(e)) from e

        stdout = result.stdout.decode("utf-8", errors="replace")
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            # 127 is the shell's "command not found"
            if result.returncode == 127:
                raise ExecutableNotFoundError(
                    service=SERVICE_NAME,
                    executable=command.split()[0] if command.split() else command,
                    message=f"command: not found: {command!r}",
                )
            raise InvocationFailedError(
                service=SERVICE_NAME,
                return_code=result.returncode,
                underlying_error=(
                    f"{command!r} exited with status {result.returncode}"
                    + (f": {stderr[:200]}" if stderr else "")
                ),
            )

        return stdout.rstrip("\n")
