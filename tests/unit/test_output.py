"""
Unit tests for decision rendering and the reporter.

Tests cover:
- Deny, combined, and silent renderings
- Warnings attached only when context exists
- Reporter output and collected warnings
"""

import json

from policyhook.report.diagnostics import PREFIX, Reporter, format_warning_block
from policyhook.report.output import render_decision, render_json
from policyhook.schema import Decision, EventKind


class TestRenderDecision:
    """Tests for render_decision."""

    def test_deny(self) -> None:
        rendered = render_decision(Decision.deny("Force push denied."), EventKind.PRE_TOOL_USE)
        assert rendered == {
            "hookSpecificOutput": {
                "hookEventName": "PreToolUse",
                "permissionDecision": "deny",
                "permissionDecisionReason": "Force push denied.",
            }
        }

    def test_silent_allow(self) -> None:
        assert render_decision(Decision.allow(), EventKind.PRE_TOOL_USE) is None
        assert render_json(Decision.allow(), EventKind.PRE_TOOL_USE) == ""

    def test_warnings_alone_render_nothing(self) -> None:
        assert render_decision(Decision.allow(warnings=["classifier failed"]), "PreToolUse") is None

    def test_updated_input(self) -> None:
        decision = Decision(updated_input={"command": "ls"})
        rendered = render_decision(decision, EventKind.PRE_TOOL_USE)
        assert rendered == {
            "hookSpecificOutput": {"hookEventName": "PreToolUse", "updatedInput": {"command": "ls"}}
        }

    def test_context_joined_with_blank_line(self) -> None:
        decision = Decision(additional_context=("<A.md>\na\n</A.md>", "<B.md>\nb\n</B.md>"))
        rendered = render_decision(decision, EventKind.USER_PROMPT_SUBMIT)
        output = rendered["hookSpecificOutput"]
        assert output["hookEventName"] == "UserPromptSubmit"
        assert output["additionalContext"] == "<A.md>\na\n</A.md>\n\n<B.md>\nb\n</B.md>"
        assert "updatedInput" not in output

    def test_both(self) -> None:
        decision = Decision(updated_input={"command": "ls"}, additional_context=("ctx",))
        output = render_decision(decision, EventKind.PRE_TOOL_USE)["hookSpecificOutput"]
        assert output["updatedInput"] == {"command": "ls"}
        assert output["additionalContext"] == "ctx"

    def test_warnings_appended_to_context(self) -> None:
        decision = Decision(additional_context=("ctx",), warnings=("inject command failed",))
        context = render_decision(decision, EventKind.PRE_TOOL_USE)["hookSpecificOutput"]["additionalContext"]
        assert context.startswith("ctx\n\n<policyhook-warnings>")
        assert "- inject command failed" in context

    def test_warnings_not_added_to_updated_input_only(self) -> None:
        decision = Decision(updated_input={"command": "ls"}, warnings=("w",))
        output = render_decision(decision, EventKind.PRE_TOOL_USE)["hookSpecificOutput"]
        assert "additionalContext" not in output

    def test_render_json_is_one_object(self) -> None:
        text = render_json(Decision.deny("no"), EventKind.PRE_TOOL_USE)
        assert "\n" not in text
        assert json.loads(text)["hookSpecificOutput"]["permissionDecision"] == "deny"

    def test_render_json_escapes_non_ascii(self) -> None:
        decision = Decision(updated_input={"command": "echo café", "note": "\ud800"})
        text = render_json(decision, EventKind.PRE_TOOL_USE)
        assert text.isascii()
        assert json.loads(text)["hookSpecificOutput"]["updatedInput"] == {
            "command": "echo café",
            "note": "\ud800",
        }


class TestReporter:
    """Tests for the fail-open reporter."""

    def test_warn_collects_and_prints(self, recording_console) -> None:
        reporter = Reporter(console=recording_console)
        reporter.warn("classifier: timed out after 30s")
        assert reporter.warnings == ("classifier: timed out after 30s",)
        assert f"{PREFIX} classifier: timed out after 30s" in recording_console.file.getvalue()

    def test_diagnose_not_collected(self, recording_console) -> None:
        reporter = Reporter(console=recording_console)
        reporter.diagnose("invalid JSON on stdin")
        assert reporter.warnings == ()
        assert "invalid JSON" in recording_console.file.getvalue()

    def test_markup_not_interpreted(self, recording_console) -> None:
        Reporter(console=recording_console).diagnose("invalid regex: '[red]x'")
        assert "[red]x" in recording_console.file.getvalue()

    def test_quiet(self, recording_console) -> None:
        reporter = Reporter(console=recording_console, quiet=True)
        reporter.warn("w")
        assert recording_console.file.getvalue() == ""
        assert reporter.warnings == ("w",)

    def test_warning_block(self) -> None:
        assert format_warning_block(["a", "b"]) == (
            "<policyhook-warnings>\n- a\n- b\n</policyhook-warnings>"
        )
