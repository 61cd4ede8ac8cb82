"""
Decision rendering.

Turns a Decision into the hook's stdout payload. Exactly one of:
    - a deny object
    - a combined object carrying updatedInput and/or additionalContext
    - None (print nothing; the agent proceeds)
"""

import json
from typing import Any

from policyhook.report.diagnostics import format_warning_block
from policyhook.schema import Decision, EventKind


def render_decision(decision: Decision, event_kind: EventKind | str) -> dict[str, Any] | None:
    """
    Build the stdout object for a decision.

    Warnings only reach the agent when there is context to carry them;
    a decision that consists of warnings alone renders as None.

    Args:
        decision: Evaluation result
        event_kind: The hook event that produced it

    Returns:
        The object to print, or None for a silent allow
    """
    event_name = event_kind.value if isinstance(event_kind, EventKind) else str(event_kind)

    if decision.denied:
        return {
            "hookSpecificOutput": {
                "hookEventName": event_name,
                "permissionDecision": "deny",
                "permissionDecisionReason": decision.reason or "",
            }
        }

    if decision.is_empty:
        return None

    output: dict[str, Any] = {"hookEventName": event_name}
    if decision.updated_input is not None:
        output["updatedInput"] = decision.updated_input

    blocks = list(decision.additional_context)
    if blocks:
        if decision.warnings:
            blocks.append(format_warning_block(decision.warnings))
        output["additionalContext"] = "\n\n".join(blocks)

    return {"hookSpecificOutput": output}


def render_json(decision: Decision, event_kind: EventKind | str) -> str:
    """
    Render a decision as the text to print ("" for a silent allow).

    Non-ASCII characters are escaped, so text the agent sent in (including
    lone surrogates) always survives the trip back through stdout.
    """
    rendered = render_decision(decision, event_kind)
    if rendered is None:
        return ""
    return json.dumps(rendered, ensure_ascii=True)
