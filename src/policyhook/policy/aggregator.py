"""
Decision Aggregator.

Combines every policy that survived matching and classification into one
outcome:

1. Gate pass: the first gate (broadest scope, then declaration order) denies
   and nothing else happens.
2. Otherwise all transforms and all injects fire, each list kept in
   broadest-scope-first, then declaration order.

aggregate() is a pure function of its input; calling it twice on the same
survivors gives equal results.
"""

from dataclasses import dataclass

from policyhook.schema import ActionKind, Policy, PolicySource


@dataclass(frozen=True)
class Candidate:
    """
    A policy that matched the event, with where it came from.

    Attributes:
        source: The policy's source (rank and root directory)
        policy: The policy itself
        index: Declaration position within the source
        match_field: Field the content condition resolved to (tool events)
    """

    source: PolicySource
    policy: Policy
    index: int
    match_field: str | None = None

    @property
    def order_key(self) -> tuple[int, int]:
        """Scope rank, then declaration order."""
        return (self.source.scope_rank, self.index)

    @property
    def action_kind(self) -> ActionKind:
        return self.policy.action_kind


def default_deny_reason(policy: Policy) -> str:
    """Reason used when a gate has no message."""
    return f"blocked by policy: {policy.name}"


@dataclass(frozen=True)
class Aggregation:
    """
    What the executors should do.

    Attributes:
        deny_reason: Set when a gate fired; nothing else applies then
        gate: The gate that fired
        transforms: Transform candidates in evaluation order
        injects: Inject candidates in evaluation order
    """

    deny_reason: str | None = None
    gate: Candidate | None = None
    transforms: tuple[Candidate, ...] = ()
    injects: tuple[Candidate, ...] = ()

    @property
    def denied(self) -> bool:
        return self.deny_reason is not None

    @property
    def is_empty(self) -> bool:
        return not self.denied and not self.transforms and not self.injects


def aggregate(survivors: list[Candidate] | tuple[Candidate, ...]) -> Aggregation:
    """
    Combine surviving candidates into one Aggregation.

    Args:
        survivors: Candidates whose conditions and classifiers held

    Returns:
        A denial if any gate survived, else the transforms and injects to run
    """
    ordered = sorted(survivors, key=lambda c: c.order_key)

    for candidate in ordered:
        if candidate.action_kind is ActionKind.GATE:
            gate = candidate.policy.gate
            message = gate.message if gate is not None else None
            return Aggregation(
                deny_reason=message or default_deny_reason(candidate.policy),
                gate=candidate,
            )

    return Aggregation(
        transforms=tuple(c for c in ordered if c.action_kind is ActionKind.TRANSFORM),
        injects=tuple(c for c in ordered if c.action_kind is ActionKind.INJECT),
    )
