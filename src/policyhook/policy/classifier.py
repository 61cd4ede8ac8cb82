"""
Classifier Gate.

Some policies should only fire when a model agrees, e.g. "inject the review
panel when the prompt discusses architecture". Those declare a classifier;
the gate asks the classifier model a yes/no question and lets the policy
through only on an affirmative answer.

Fail-open: a classifier that errors, times out, or is not installed counts
as "no", which for every action kind means the policy does not fire.
"""

from policyhook.config import EngineConfig
from policyhook.errors import InvocationError
from policyhook.report.diagnostics import Reporter
from policyhook.schema import ClassifierSpec, Event, Policy
from policyhook.services.base import ExternalServices

INPUT_PLACEHOLDER = "{input}"
AFFIRMATIVE = "yes"


def build_classifier_prompt(spec: ClassifierSpec, payload: str) -> str:
    """
    Build the judgment request for a classifier.

    A literal prompt is sent as written (with {input} replaced by the
    payload); a condition is wrapped in a yes/no question.
    """
    if spec.prompt is not None:
        return spec.prompt.replace(INPUT_PLACEHOLDER, payload)

    return (
        "You are a strict classifier. Decide whether the condition below is true "
        "for the input.\n"
        "\n"
        f"Condition: {spec.condition}\n"
        "\n"
        "Input:\n"
        f"{payload}\n"
        "\n"
        "Answer with exactly one word: yes or no."
    )


def is_affirmative(response: str) -> bool:
    """Whether a classifier response means yes."""
    return response.strip().lower().startswith(AFFIRMATIVE)


class ClassifierGate:
    """
    Filters matched policies through their classifiers.

    Usage:
        gate = ClassifierGate(config, services, reporter)
        survivors = [p for p in matched if gate.should_fire(p, event)]
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

    def model_for(self, spec: ClassifierSpec) -> str:
        """The model a classifier runs on."""
        return spec.model or self.config.classifier_model

    def should_fire(self, policy: Policy, event: Event) -> bool:
        """
        Ask the policy's classifier, if any. Never raises.

        Returns:
            True when there is no classifier or it answered yes
        """
        spec = policy.classifier
        if spec is None:
            return True

        prompt = build_classifier_prompt(spec, event.payload_text())
        try:
            response = self.services.classify(prompt, self.model_for(spec))
        except InvocationError as e:
            self.reporter.warn(f"classifier for policy '{policy.name}' failed: {e.message}")
            return False

        return is_affirmative(response)
