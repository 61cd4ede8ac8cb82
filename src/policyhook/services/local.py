"""
Default ExternalServices implementation.

Composes the four concrete collaborators:
    - YamlPolicyLoader for policy files
    - ClaudeRewriter (`claude -p`) for transforms
    - OllamaClassifier (HTTP) for classifiers
    - ShellCommandRunner (/bin/sh) for injected commands
"""

from pathlib import Path

from policyhook.config import EngineConfig
from policyhook.services.base import ExternalServices, LoadResult
from policyhook.services.claude import ClaudeRewriter
from policyhook.services.command import ShellCommandRunner
from policyhook.services.loader import YamlPolicyLoader
from policyhook.services.ollama import OllamaClassifier


class LocalServices(ExternalServices):
    """
    Collaborators that run on the local machine.

    Usage:
        with LocalServices(config) as services:
            engine = Engine(config, services)
            decision = engine.evaluate(event)
    """

    def __init__(self, config: EngineConfig) -> None:
        self.loader = YamlPolicyLoader()
        self.rewriter = ClaudeRewriter(
            executable=config.rewrite_executable,
            timeout_seconds=config.rewrite_timeout_seconds,
        )
        self.classifier = OllamaClassifier(
            base_url=config.ollama_url,
            timeout_seconds=config.classifier_timeout_seconds,
        )
        self.runner = ShellCommandRunner(timeout_seconds=config.command_timeout_seconds)

    def load_policies(self, path: Path) -> LoadResult:
        return self.loader.load(path)

    def rewrite(self, prompt: str, model: str | None = None) -> str:
        return self.rewriter.rewrite(prompt, model)

    def classify(self, prompt: str, model: str) -> str:
        return self.classifier.classify(prompt, model)

    def run_command(self, command: str, cwd: Path, stdin: str) -> str:
        return self.runner.run(command, cwd, stdin)

    def close(self) -> None:
        self.classifier.close()
