"""
Pytest configuration and fixtures for policyhook tests.

This module provides shared fixtures used across unit and integration tests:
temporary directory trees with policy files, an EngineConfig whose home
directory is isolated from the real one, and FakeServices, a deterministic
stand-in for the four external collaborators.
"""

import io
import tempfile
import textwrap
from collections.abc import Callable
from pathlib import Path
from typing import Generator

import pytest
from rich.console import Console

from policyhook.config import EngineConfig
from policyhook.errors import ExecutableNotFoundError, InvocationError
from policyhook.report.diagnostics import Reporter
from policyhook.schema import Event
from policyhook.services.base import ExternalServices, LoadResult
from policyhook.services.loader import YamlPolicyLoader

Responder = str | InvocationError | Callable[..., str]


def write_policies(directory: Path, content: str) -> Path:
    """Write `<directory>/.claude/policies.yaml` and return its path."""
    path = directory / ".claude" / "policies.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
    return path


def make_event(
    kind: str = "PreToolUse",
    tool_name: str | None = "Bash",
    tool_input: dict | None = None,
    prompt: str | None = None,
    cwd: Path | str | None = None,
) -> Event:
    """Build an Event the way the hook payload would describe it."""
    data: dict = {"hook_event_name": kind}
    if tool_name is not None:
        data["tool_name"] = tool_name
        data["tool_input"] = tool_input if tool_input is not None else {}
    if prompt is not None:
        data["prompt"] = prompt
    if cwd is not None:
        data["cwd"] = str(cwd)
    return Event.model_validate(data)


def _respond(responder: Responder, *args: object) -> str:
    if isinstance(responder, InvocationError):
        raise responder
    if callable(responder):
        return responder(*args)
    return responder


class FakeServices(ExternalServices):
    """
    Deterministic collaborators for tests.

    Policy files are loaded for real (YamlPolicyLoader); the model and
    command calls are answered from canned responses and recorded.

    Attributes:
        classify_answer: Reply (or exception, or callable) for classify()
        rewrite_answer: Reply (or exception, or callable) for rewrite()
        command_outputs: Per-command reply; unknown commands fail
        classify_calls / rewrite_calls / command_calls: Recorded calls
    """

    def __init__(
        self,
        classify_answer: Responder = "yes",
        rewrite_answer: Responder = "rewritten",
        command_outputs: dict[str, Responder] | None = None,
    ) -> None:
        self.loader = YamlPolicyLoader()
        self.classify_answer = classify_answer
        self.rewrite_answer = rewrite_answer
        self.command_outputs = command_outputs or {}
        self.loaded: list[Path] = []
        self.classify_calls: list[tuple[str, str]] = []
        self.rewrite_calls: list[tuple[str, str | None]] = []
        self.command_calls: list[tuple[str, Path, str]] = []
        self.closed = False

    def load_policies(self, path: Path) -> LoadResult:
        self.loaded.append(path)
        return self.loader.load(path)

    def classify(self, prompt: str, model: str) -> str:
        self.classify_calls.append((prompt, model))
        return _respond(self.classify_answer, prompt, model)

    def rewrite(self, prompt: str, model: str | None = None) -> str:
        self.rewrite_calls.append((prompt, model))
        return _respond(self.rewrite_answer, prompt, model)

    def run_command(self, command: str, cwd: Path, stdin: str) -> str:
        self.command_calls.append((command, cwd, stdin))
        if command not in self.command_outputs:
            raise ExecutableNotFoundError(service="command", executable=command)
        return _respond(self.command_outputs[command], command, cwd, stdin)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files (symlinks resolved)."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def home_dir(temp_dir: Path) -> Path:
    """An isolated home directory (no policies unless a test writes some)."""
    home = temp_dir / "home"
    home.mkdir()
    return home


@pytest.fixture
def project_dir(temp_dir: Path) -> Path:
    """A project tree: <temp>/work/app, with <temp>/work as the broader scope."""
    app = temp_dir / "work" / "app"
    app.mkdir(parents=True)
    return app


@pytest.fixture
def config(home_dir: Path) -> EngineConfig:
    """Default config with the home directory isolated."""
    return EngineConfig(home_dir=home_dir)


@pytest.fixture
def fake_services() -> FakeServices:
    """Collaborators that answer yes and rewrite to 'rewritten'."""
    return FakeServices()


@pytest.fixture
def quiet_reporter() -> Reporter:
    """A reporter that only collects warnings."""
    return Reporter(quiet=True)


@pytest.fixture
def recording_console() -> Console:
    """A console writing to a buffer; read it with console.file.getvalue()."""
    return Console(file=io.StringIO(), width=200, soft_wrap=True, highlight=False)
