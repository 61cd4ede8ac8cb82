"""
Inject executor.

Collects the additional context produced by every inject policy that fires:
tagged context files, and the stdout of the policy's command if it has one.
Blocks stay in broadest-scope-first, declaration order. A missing file or a
failing command costs only its own block.

Command output is used untagged and otherwise unchanged, except that trailing
whitespace is removed (blocks are joined with a blank line). A command that
prints only whitespace adds no block.
"""

from pathlib import Path

from policyhook.actions.context import ContextCollector
from policyhook.errors import InvocationError
from policyhook.policy.aggregator import Candidate
from policyhook.report.diagnostics import Reporter
from policyhook.schema import Event
from policyhook.services.base import ExternalServices


class InjectExecutor:
    """Builds the additional-context blocks for an event's inject policies."""

    def __init__(self, services: ExternalServices, reporter: Reporter) -> None:
        self.services = services
        self.reporter = reporter

    def execute(
        self,
        candidates: tuple[Candidate, ...] | list[Candidate],
        event: Event,
    ) -> list[str]:
        """
        Produce context blocks in order.

        Returns:
            Blocks to join into additionalContext (possibly empty)
        """
        collector = ContextCollector(self.reporter)
        commands_run: set[tuple[str, Path]] = set()
        blocks: list[str] = []
        payload = event.payload_text()

        for candidate in candidates:
            inject = candidate.policy.inject
            if inject is None:
                continue
            root = candidate.source.root_directory
            blocks.extend(collector.collect(inject.context, root))

            if inject.command is None or (inject.command, root) in commands_run:
                continue
            commands_run.add((inject.command, root))

            try:
                output = self.services.run_command(inject.command, root, payload)
            except InvocationError as e:
                self.reporter.warn(
                    f"inject command for policy '{candidate.policy.name}' failed: {e.message}"
                )
                continue
            if output.strip():
                blocks.append(output.rstrip())

        return blocks
