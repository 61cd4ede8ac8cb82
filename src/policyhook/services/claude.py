"""
Rewrite-model invoker backed by the `claude` CLI.

Runs `claude -p [--model MODEL]` with the assembled rewrite prompt on stdin
and returns whatever the model printed:
    - The command is a list (no shell string parsing)
    - A timeout bounds every call
    - Every failure is raised as an InvocationError subclass
"""

import subprocess

from policyhook.errors import (
    EmptyResponseError,
    ExecutableNotFoundError,
    InvocationFailedError,
    InvocationTimeoutError,
)

SERVICE_NAME = "rewrite"


def _decode(data: bytes) -> str:
    """Decode process output (best effort)."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("utf-8", errors="replace")


class ClaudeRewriter:
    """
    Sends rewrite requests to `claude -p`.

    Attributes:
        executable: Name or path of the claude CLI
        timeout_seconds: Bound on one call
    """

    def __init__(self, executable: str = "claude", timeout_seconds: float = 90.0) -> None:
        self.executable = executable
        self.timeout_seconds = timeout_seconds

    def build_command(self, model: str | None) -> list[str]:
        """Build the argv for one rewrite call."""
        cmd = [self.executable, "-p"]
        if model:
            cmd.extend(["--model", model])
        return cmd

    def rewrite(self, prompt: str, model: str | None = None) -> str:
        """
        Ask the model for a rewritten value.

        Returns:
            The response with surrounding whitespace removed

        Raises:
            ExecutableNotFoundError: claude is not on PATH
            InvocationTimeoutError: The call exceeded timeout_seconds
            InvocationFailedError: Non-zero exit status
            EmptyResponseError: The model printed nothing
        """
        cmd = self.build_command(model)
        try:
            result = subprocess.run(
                cmd,
                input=prompt.encode("utf-8", errors="replace"),
                capture_output=True,
                timeout=self.timeout_seconds,
                shell=False,
            )
        except FileNotFoundError as e:
            raise ExecutableNotFoundError(service=SERVICE_NAME, executable=self.executable) from e
        except PermissionError as e:
            raise InvocationFailedError(
                service=SERVICE_NAME,
                underlying_error=f"permission denied executing {self.executable}",
            ) from e
        except subprocess.TimeoutExpired as e:
            raise InvocationTimeoutError(
                service=SERVICE_NAME,
                timeout_seconds=self.timeout_seconds,
            ) from e
        except OSError as e:
            raise InvocationFailedError(service=SERVICE_NAME, underlying_error=str(e)) from e

        if result.returncode != 0:
            stderr = _decode(result.stderr).strip()
            raise InvocationFailedError(
                service=SERVICE_NAME,
                return_code=result.returncode,
                underlying_error=(
                    f"{self.executable} exited with status {result.returncode}"
                    + (f": {stderr[:200]}" if stderr else "")
                ),
            )

        text = _decode(result.stdout).strip()
        if not text:
            raise EmptyResponseError(service=SERVICE_NAME)
        return text
