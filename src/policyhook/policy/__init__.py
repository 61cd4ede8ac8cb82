"""
Policy evaluation core.

- PolicySourceResolver: which policy files apply, broadest first
- ConditionMatcher: does a policy apply to an event
- ClassifierGate: does the policy's classifier agree
- aggregate: gate short-circuit, then transforms and injects
"""

from policyhook.policy.aggregator import Aggregation, Candidate, aggregate
from policyhook.policy.classifier import ClassifierGate
from policyhook.policy.constants import MATCH_CONSTANTS
from policyhook.policy.matcher import ConditionMatcher, ContentPattern, MatchOutcome, PatternKind
from policyhook.policy.resolver import PolicySourceResolver

__all__ = [
    "Aggregation",
    "Candidate",
    "ClassifierGate",
    "ConditionMatcher",
    "ContentPattern",
    "MATCH_CONSTANTS",
    "MatchOutcome",
    "PatternKind",
    "PolicySourceResolver",
    "aggregate",
]
