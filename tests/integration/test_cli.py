"""
Integration tests for the policyhook CLI.

Tests cover:
- hook: deny, rewrite, silent allow, invalid input (always exit 0)
- sources: table and JSON listings, broken files
- constants: table and JSON listings
- doctor: JSON report with the classifier server mocked
- --version
"""

import json
import stat
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import write_policies
from typer.testing import CliRunner

from policyhook import __version__
from policyhook.cli import app
from policyhook.policy.constants import MATCH_CONSTANTS
from policyhook.services.ollama import OllamaClassifier

runner = CliRunner()


@pytest.fixture
def env(home_dir: Path) -> dict[str, str]:
    """Environment isolating the home scope and pointing Ollama nowhere."""
    return {
        "POLICYHOOK_HOME": str(home_dir),
        "POLICYHOOK_OLLAMA_URL": "http://127.0.0.1:9",
    }


def hook_payload(cwd: Path, command: str) -> str:
    return json.dumps({
        "hook_event_name": "PreToolUse",
        "tool_name": "Bash",
        "tool_input": {"command": command},
        "cwd": str(cwd),
    })


def make_shim(directory: Path, name: str, script: str) -> Path:
    path = directory / name
    path.write_text("#!/bin/sh\n" + script)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


# =============================================================================
# hook
# =============================================================================


class TestHookCommand:
    """Tests for `policyhook hook`."""

    def test_deny(self, project_dir: Path, env) -> None:
        write_policies(
            project_dir,
            """
            policies:
              - name: No force push
                tool: Bash
                match: ":git_push_force"
                gate: Force push is not allowed.
            """,
        )
        result = runner.invoke(app, ["hook"], input=hook_payload(project_dir, "git push -f"), env=env)

        assert result.exit_code == 0
        output = json.loads(result.stdout)["hookSpecificOutput"]
        assert output == {
            "hookEventName": "PreToolUse",
            "permissionDecision": "deny",
            "permissionDecisionReason": "Force push is not allowed.",
        }

    def test_silent_allow(self, project_dir: Path, env) -> None:
        write_policies(
            project_dir,
            """
            policies:
              - name: No force push
                tool: Bash
                match: ":git_push_force"
                gate: Force push is not allowed.
            """,
        )
        result = runner.invoke(app, ["hook"], input=hook_payload(project_dir, "ls -la"), env=env)
        assert result.exit_code == 0
        assert result.stdout == ""

    def test_rewrite_and_inject(self, temp_dir: Path, project_dir: Path, env) -> None:
        shim = make_shim(temp_dir, "claude", "cat >/dev/null; echo 'git commit -m \"calm words\"'\n")
        (project_dir / "STYLE.md").write_text("Be calm.")
        write_policies(
            project_dir,
            """
            policies:
              - name: Style
                tool: Bash
                inject: STYLE.md
              - name: Calm commits
                tool: Bash
                match: ":git_commit"
                transform:
                  prompt: Rewrite calmly.
            """,
        )
        result = runner.invoke(
            app,
            ["hook"],
            input=hook_payload(project_dir, 'git commit -m "ANGRY"'),
            env={**env, "POLICYHOOK_REWRITE_EXECUTABLE": str(shim)},
        )

        assert result.exit_code == 0
        output = json.loads(result.stdout)["hookSpecificOutput"]
        assert output["updatedInput"] == {"command": 'git commit -m "calm words"'}
        assert output["additionalContext"] == "<STYLE.md>\nBe calm.\n</STYLE.md>"

    def test_injected_command_output(self, project_dir: Path, env) -> None:
        write_policies(
            project_dir,
            """
            policies:
              - name: Where am I
                event: UserPromptSubmit
                inject:
                  command: echo "branch is main"
            """,
        )
        payload = json.dumps({
            "hook_event_name": "UserPromptSubmit",
            "prompt": "what next?",
            "cwd": str(project_dir),
        })
        result = runner.invoke(app, ["hook"], input=payload, env=env)

        assert result.exit_code == 0
        output = json.loads(result.stdout)["hookSpecificOutput"]
        assert output["hookEventName"] == "UserPromptSubmit"
        assert output["additionalContext"] == "branch is main"

    def test_classifier_unreachable_allows(self, project_dir: Path, env) -> None:
        write_policies(
            project_dir,
            """
            policies:
              - name: Needs judgment
                when: The command is destructive.
                gate: Destructive.
            """,
        )
        result = runner.invoke(app, ["hook"], input=hook_payload(project_dir, "rm -rf build"), env=env)
        assert result.exit_code == 0
        assert "hookSpecificOutput" not in result.output
        assert "classifier" in result.output

    @pytest.mark.parametrize("payload", ["", "{not json", "[]"])
    def test_invalid_input_exits_zero(self, payload: str, env) -> None:
        result = runner.invoke(app, ["hook"], input=payload, env=env)
        assert result.exit_code == 0
        assert "hookSpecificOutput" not in result.output

    def test_invalid_json_reported(self, env) -> None:
        result = runner.invoke(app, ["hook"], input="{not json", env=env)
        assert result.exit_code == 0
        assert "invalid JSON" in result.output

    def test_broken_policy_file_allows(self, project_dir: Path, env) -> None:
        write_policies(project_dir, "policies: [\n")
        result = runner.invoke(app, ["hook"], input=hook_payload(project_dir, "ls"), env=env)
        assert result.exit_code == 0
        assert "failed to load policies" in result.output
        assert "hookSpecificOutput" not in result.output

    def test_surrogate_and_non_ascii_input(self, temp_dir: Path, project_dir: Path, env) -> None:
        shim = make_shim(temp_dir, "claude", "cat >/dev/null; echo 'git commit -m \"café\"'\n")
        write_policies(
            project_dir,
            """
            policies:
              - name: Rewrite commits
                tool: Bash
                match: ":git_commit"
                transform:
                  prompt: Rewrite.
            """,
        )
        payload = json.dumps({
            "hook_event_name": "PreToolUse",
            "tool_name": "Bash",
            "tool_input": {"command": "git commit", "note": "\ud800 naïve"},
            "cwd": str(project_dir),
        })

        result = runner.invoke(
            app,
            ["hook"],
            input=payload,
            env={**env, "POLICYHOOK_REWRITE_EXECUTABLE": str(shim)},
        )

        assert result.exit_code == 0
        assert result.stdout.isascii()
        updated = json.loads(result.stdout)["hookSpecificOutput"]["updatedInput"]
        assert updated == {"command": 'git commit -m "café"', "note": "\ud800 naïve"}


# =============================================================================
# sources
# =============================================================================


class TestSourcesCommand:
    """Tests for `policyhook sources`."""

    def test_json(self, home_dir: Path, project_dir: Path, env) -> None:
        write_policies(home_dir, "policies:\n  - name: Home gate\n    gate: stop\n")
        write_policies(project_dir, "policies:\n  - name: App rules\n    inject: [RULES.md]\n")

        result = runner.invoke(app, ["sources", str(project_dir), "--json"], env=env)

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["directory"] == str(project_dir)
        assert [s["rank"] for s in data["sources"]] == [0, 1]
        assert data["sources"][0]["root"] == str(home_dir)
        assert data["sources"][0]["policies"] == ["Home gate"]
        assert data["sources"][1]["policies"] == ["App rules"]
        assert data["sources"][1]["error"] is None

    def test_broken_file_exits_one(self, project_dir: Path, env) -> None:
        write_policies(project_dir, "policies:\n  - name: Two actions\n    gate: stop\n    inject: A.md\n")
        result = runner.invoke(app, ["sources", str(project_dir), "--json"], env=env)
        assert result.exit_code == 1
        source = json.loads(result.stdout)["sources"][0]
        assert source["policies"] == []
        assert "exactly one of gate, transform, inject" in source["error"]

    def test_table(self, project_dir: Path, env) -> None:
        write_policies(project_dir, "policies:\n  - name: Gate\n    gate: stop\n")
        result = runner.invoke(app, ["sources", str(project_dir)], env=env)
        assert result.exit_code == 0
        assert "Policy file" in result.stdout
        assert "ok" in result.stdout

    def test_none(self, project_dir: Path, env) -> None:
        result = runner.invoke(app, ["sources", str(project_dir)], env=env)
        assert result.exit_code == 0
        assert "No policy files" in result.stdout


# =============================================================================
# constants
# =============================================================================


class TestConstantsCommand:
    """Tests for `policyhook constants`."""

    def test_json(self) -> None:
        result = runner.invoke(app, ["constants", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == dict(MATCH_CONSTANTS)

    def test_table(self) -> None:
        result = runner.invoke(app, ["constants"])
        assert result.exit_code == 0
        assert ":git_commit" in result.stdout


# =============================================================================
# doctor and --version
# =============================================================================


class TestDoctorCommand:
    """Tests for `policyhook doctor`."""

    def test_all_ok(self, temp_dir: Path, project_dir: Path, env, monkeypatch) -> None:
        shim = make_shim(temp_dir, "claude", "exit 0\n")
        monkeypatch.chdir(project_dir)

        with patch.object(OllamaClassifier, "check_connection", return_value=(True, "Connected")):
            result = runner.invoke(
                app,
                ["doctor", "--json"],
                env={**env, "POLICYHOOK_REWRITE_EXECUTABLE": str(shim)},
            )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["version"] == __version__
        assert [c["name"] for c in data["checks"]] == ["Rewrite executable", "Ollama", "Policy files"]

    def test_failures(self, temp_dir: Path, project_dir: Path, env, monkeypatch) -> None:
        write_policies(project_dir, "policies: [\n")
        monkeypatch.chdir(project_dir)

        with patch.object(OllamaClassifier, "check_connection", return_value=(False, "Cannot connect")):
            result = runner.invoke(
                app,
                ["doctor", "--json"],
                env={**env, "POLICYHOOK_REWRITE_EXECUTABLE": str(temp_dir / "no-such-claude")},
            )

        assert result.exit_code == 1
        checks = {c["name"]: c for c in json.loads(result.stdout)["checks"]}
        assert not checks["Rewrite executable"]["ok"]
        assert not checks["Ollama"]["ok"]
        assert "classifiers will answer no" in checks["Ollama"]["message"]
        assert not checks["Policy files"]["ok"]


class TestVersion:
    """Tests for --version."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout
