"""
Transform executor.

All transform policies that fire for one event are merged into a single
rewrite request:

    <IDENTITY.md>
    ...
    </IDENTITY.md>

    Original tool input (Bash):
    command: git commit -m "fix bug"

    Instructions:
    1. Add emoji prefix.
    2. Make it lowercase.

    Return only the new value of the `command` field. ...

The rewrite model's answer replaces that one field in a copy of the tool
input. Any failure leaves the input untouched and records a warning.
"""

from typing import Any

import yaml

from policyhook.actions.context import ContextCollector
from policyhook.config import EngineConfig
from policyhook.errors import InvocationError
from policyhook.policy.aggregator import Candidate
from policyhook.report.diagnostics import Reporter
from policyhook.schema import Event
from policyhook.services.base import ExternalServices


def merge_instructions(prompts: list[str]) -> str:
    """One prompt as-is; several numbered in order."""
    if len(prompts) == 1:
        return prompts[0].strip()
    return "\n".join(f"{i}. {p.strip()}" for i, p in enumerate(prompts, start=1))


def final_directive(target_field: str) -> str:
    return (
        f"Return only the new value of the `{target_field}` field. "
        "No explanation, no preamble, no markdown, no code fences, no surrounding quotes."
    )


def build_rewrite_prompt(
    context_blocks: list[str],
    tool_name: str | None,
    tool_input: dict[str, Any],
    prompts: list[str],
    target_field: str,
) -> str:
    """Assemble the complete rewrite request."""
    serialized = yaml.safe_dump(
        tool_input,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    ).rstrip()

    sections = []
    if context_blocks:
        sections.append("\n\n".join(context_blocks))
    sections.append(f"Original tool input ({tool_name or 'unknown tool'}):\n{serialized}")
    sections.append(f"Instructions:\n{merge_instructions(prompts)}")
    sections.append(final_directive(target_field))
    return "\n\n".join(sections)


class TransformExecutor:
    """
    Runs the merged rewrite for an event's transform policies.

    Usage:
        executor = TransformExecutor(config, services, reporter)
        updated = executor.execute(aggregation.transforms, event)
    """

    def __init__(
        self,
        config: EngineConfig,
        services: ExternalServices,
        reporter: Reporter,
    ) -> None:
        self.config = config
        self.services = services
        self.reporter = reporter

    def target_field(self, candidates: tuple[Candidate, ...] | list[Candidate], event: Event) -> str:
        """The first policy's `field`, else its matched field, else the tool default."""
        first = candidates[0]
        transform = first.policy.transform
        if transform is not None and transform.field:
            return transform.field
        if first.match_field:
            return first.match_field
        return self.config.default_field_for(event.tool_name)

    def execute(
        self,
        candidates: tuple[Candidate, ...] | list[Candidate],
        event: Event,
    ) -> dict[str, Any] | None:
        """
        Rewrite the event's tool input.

        Returns:
            A copy of tool_input with the target field replaced, or None when
            there is nothing to do or the rewrite failed
        """
        if not candidates:
            return None

        names = ", ".join(f"'{c.policy.name}'" for c in candidates)
        if not event.is_tool_event:
            self.reporter.warn(f"transform policies {names} skipped: event has no tool input")
            return None

        tool_input = dict(event.tool_input or {})
        field = self.target_field(candidates, event)

        collector = ContextCollector(self.reporter)
        context_blocks: list[str] = []
        prompts: list[str] = []
        model: str | None = None
        for candidate in candidates:
            transform = candidate.policy.transform
            if transform is None:
                continue
            context_blocks.extend(
                collector.collect(transform.context, candidate.source.root_directory)
            )
            prompts.append(transform.prompt)
            if model is None and transform.model:
                model = transform.model

        request = build_rewrite_prompt(context_blocks, event.tool_name, tool_input, prompts, field)
        try:
            response = self.services.rewrite(request, model)
        except InvocationError as e:
            self.reporter.warn(f"transform {names} produced no rewrite: {e.message}")
            return None

        value = response.strip()
        if not value:
            self.reporter.warn(f"transform {names} produced no rewrite: empty response")
            return None

        tool_input[field] = value
        return tool_input
