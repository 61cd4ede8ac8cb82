"""
Evaluation engine for policyhook.

The Engine runs one hook event through the whole pipeline:

    1. Resolve policy sources (broadest scope first)
    2. Match every policy against the event
    3. Gate pass: classify gate candidates in order, stop at the first that fires
    4. Otherwise classify the transform and inject candidates
    5. Aggregate survivors into a denial or a set of actions
    6. Run the transform and inject executors
    7. Return a Decision (warnings included)

Design Principles:
    - Fail-open: any failure allows the action and says why on stderr
    - Broad before narrow: a broader gate denies before a narrower policy is
      classified or executed
    - Stateless: nothing survives from one evaluation to the next
"""

import json
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console

from policyhook.actions import InjectExecutor, TransformExecutor
from policyhook.config import EngineConfig
from policyhook.errors import EventParseError
from policyhook.policy import (
    Candidate,
    ClassifierGate,
    ConditionMatcher,
    PolicySourceResolver,
    aggregate,
)
from policyhook.report.diagnostics import Reporter
from policyhook.report.output import render_json
from policyhook.schema import ActionKind, Decision, Event, PolicySource
from policyhook.services.base import ExternalServices
from policyhook.services.loader import format_validation_error


def parse_event(text: str) -> Event:
    """
    Parse the hook payload.

    Raises:
        EventParseError: Not JSON, not an object, or missing/invalid fields
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise EventParseError(message=f"invalid JSON on stdin: {e}", underlying_error=str(e)) from e

    if not isinstance(data, dict):
        raise EventParseError(underlying_error=f"expected a JSON object, got {type(data).__name__}")

    try:
        return Event.model_validate(data)
    except ValidationError as e:
        raise EventParseError(underlying_error=format_validation_error(e)) from e


class Engine:
    """
    Evaluates hook events against the applicable policies.

    Usage:
        config, _ = EngineConfig.from_env()
        with LocalServices(config) as services:
            engine = Engine(config, services)
            decision = engine.evaluate(event)

    Attributes:
        config: Engine configuration
        services: External collaborators
    """

    def __init__(
        self,
        config: EngineConfig,
        services: ExternalServices,
        console: Console | None = None,
        quiet: bool = False,
    ) -> None:
        """
        Initialize the engine.

        Args:
            config: Engine configuration
            services: Loader, rewriter, classifier and command runner
            console: Console for diagnostics (stderr by default)
            quiet: Suppress diagnostics (warnings are still collected)
        """
        self.config = config
        self.services = services
        self.console = console
        self.quiet = quiet

    def _reporter(self) -> Reporter:
        return Reporter(console=self.console, quiet=self.quiet)

    def resolve_sources(self, start_directory: Path, reporter: Reporter | None = None) -> list[PolicySource]:
        """Policy sources applying to a directory, broadest first."""
        resolver = PolicySourceResolver(self.config, self.services, reporter or self._reporter())
        return resolver.resolve(start_directory)

    def evaluate(self, event: Event) -> Decision:
        """
        Evaluate one event. Never raises.

        Returns:
            The Decision (possibly empty)
        """
        reporter = self._reporter()
        try:
            return self._evaluate(event, reporter)
        except Exception as e:
            reporter.diagnose(f"internal error, allowing: {type(e).__name__}: {e}")
            return Decision.allow(warnings=reporter.warnings)

    def _evaluate(self, event: Event, reporter: Reporter) -> Decision:
        sources = self.resolve_sources(event.origin_directory, reporter)
        if not sources:
            return Decision.allow()

        matcher = ConditionMatcher(self.config, reporter)
        candidates: list[Candidate] = []
        for source in sources:
            for index, policy in enumerate(source.policies):
                outcome = matcher.match(policy, event)
                if outcome.matched:
                    candidates.append(
                        Candidate(source=source, policy=policy, index=index, match_field=outcome.field)
                    )

        classifier = ClassifierGate(self.config, self.services, reporter)

        survivors: list[Candidate] = []
        for candidate in candidates:
            if candidate.action_kind is ActionKind.GATE and classifier.should_fire(
                candidate.policy, event
            ):
                survivors.append(candidate)
                break

        if not survivors:
            survivors = [
                c
                for c in candidates
                if c.action_kind is not ActionKind.GATE and classifier.should_fire(c.policy, event)
            ]

        aggregation = aggregate(survivors)
        if aggregation.denied:
            return Decision.deny(aggregation.deny_reason or "", warnings=reporter.warnings)

        updated_input = TransformExecutor(self.config, self.services, reporter).execute(
            aggregation.transforms, event
        )
        blocks = InjectExecutor(self.services, reporter).execute(aggregation.injects, event)

        return Decision(
            updated_input=updated_input,
            additional_context=tuple(blocks),
            warnings=reporter.warnings,
        )

    def evaluate_payload(self, text: str) -> tuple[Event | None, Decision]:
        """
        Parse and evaluate a raw hook payload. Never raises.

        Returns:
            Tuple of (event or None if unparsable, decision)
        """
        try:
            event = parse_event(text)
        except EventParseError as e:
            self._reporter().diagnose(e.message)
            return None, Decision.allow()
        return event, self.evaluate(event)

    def run_hook(self, text: str) -> str:
        """Evaluate a raw payload and return what the hook should print."""
        event, decision = self.evaluate_payload(text)
        if event is None:
            return ""
        return render_json(decision, event.kind)
