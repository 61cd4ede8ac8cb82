"""
CLI entry point for policyhook.

This module provides the Typer-based command-line interface. The agent's
hook configuration runs `policyhook hook`; the other commands help policy
authors see what the hook will do.

Commands:
    hook        Evaluate one hook event from stdin (always exits 0)
    sources     List the policy files that apply to a directory
    constants   List the match constants
    doctor      Check the rewrite executable and the classifier server

Architecture Note:
    The CLI only wires stdin/stdout and configuration to the Engine. stdout
    of `hook` belongs to the agent and carries nothing but the rendered
    decision; every diagnostic goes to stderr.
"""

import json
import shutil
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from policyhook import __version__
from policyhook.config import EngineConfig
from policyhook.engine import Engine
from policyhook.policy.constants import CONSTANT_PREFIX, MATCH_CONSTANTS
from policyhook.report.diagnostics import Reporter
from policyhook.services import LocalServices
from policyhook.services.ollama import OllamaClassifier

app = typer.Typer(
    name="policyhook",
    help="Evaluate coding-agent hook events against directory-scoped policies.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for human-facing output
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]policyhook[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    policyhook - fail-open policies for coding-agent hooks.

    Gate, rewrite, or add context to tool calls and prompts using
    .claude/policies.yaml files found from / down to the working directory.
    """
    pass


def _load_config(reporter: Reporter) -> EngineConfig:
    """Build the config from the environment, reporting ignored values."""
    config, problems = EngineConfig.from_env()
    for problem in problems:
        reporter.diagnose(problem)
    return config


@app.command()
def hook() -> None:
    """
    Evaluate one hook event read from stdin.

    Prints a deny or an update/context object for the agent, or nothing.
    Always exits 0: a broken policy never blocks the agent.

    Example:
        $ echo '{"hook_event_name": "PreToolUse", ...}' | policyhook hook
    """
    reporter = Reporter()
    try:
        config = _load_config(reporter)
        payload = sys.stdin.read()
        with LocalServices(config) as services:
            output = Engine(config, services).run_hook(payload)
        if output:
            typer.echo(output)
    except Exception as e:
        reporter.diagnose(f"internal error, allowing: {type(e).__name__}: {e}")

    raise typer.Exit(code=0)


@app.command()
def sources(
    directory: Annotated[
        Optional[Path],
        typer.Argument(
            help="Directory to resolve from (defaults to the current directory).",
            file_okay=False,
            resolve_path=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
) -> None:
    """
    List the policy files that apply to a directory, broadest first.

    Example:
        $ policyhook sources ~/work/app
    """
    reporter = Reporter(quiet=json_output)
    config = _load_config(reporter)
    start = directory or Path.cwd()

    with LocalServices(config) as services:
        resolved = Engine(config, services, quiet=True).resolve_sources(start)

    if json_output:
        output = {
            "directory": str(start),
            "sources": [
                {
                    "rank": s.scope_rank,
                    "root": str(s.root_directory),
                    "path": str(s.path),
                    "policies": [p.name for p in s.policies],
                    "error": s.load_error,
                }
                for s in resolved
            ],
        }
        print(json.dumps(output, indent=2))
        raise typer.Exit(code=0 if all(s.ok for s in resolved) else 1)

    if not resolved:
        console.print(f"[dim]No policy files apply to {start}[/dim]")
        raise typer.Exit(code=0)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Rank", justify="right")
    table.add_column("Policy file", style="cyan")
    table.add_column("Policies", justify="right")
    table.add_column("Status")

    for s in resolved:
        status = Text("ok", style="green") if s.ok else Text(s.load_error or "", style="red")
        table.add_row(str(s.scope_rank), str(s.path), str(len(s.policies)), status)

    console.print(table)
    raise typer.Exit(code=0 if all(s.ok for s in resolved) else 1)


@app.command()
def constants(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
) -> None:
    """
    List the match constants usable as `match: ":name"`.

    Example:
        $ policyhook constants
    """
    if json_output:
        print(json.dumps(dict(MATCH_CONSTANTS), indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Reference", style="cyan")
    table.add_column("Regex", overflow="fold")
    for name, pattern in MATCH_CONSTANTS.items():
        table.add_row(f"{CONSTANT_PREFIX}{name}", pattern)
    console.print(table)


@app.command()
def doctor(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
) -> None:
    """
    Check the collaborators policyhook relies on.

    Verifies:
    - The rewrite executable (claude) is on PATH
    - The Ollama server answering classifier prompts is reachable
    - Policy files for the current directory load cleanly

    Example:
        $ policyhook doctor
    """
    reporter = Reporter(quiet=json_output)
    config = _load_config(reporter)
    checks = []

    # Check 1: rewrite executable
    rewrite_path = shutil.which(config.rewrite_executable)
    checks.append({
        "name": "Rewrite executable",
        "ok": rewrite_path is not None,
        "value": config.rewrite_executable,
        "message": rewrite_path or "Not found on PATH; transforms will be skipped",
    })

    # Check 2: classifier server
    with OllamaClassifier(base_url=config.ollama_url, timeout_seconds=5.0) as classifier:
        ollama_ok, ollama_message = classifier.check_connection()
    checks.append({
        "name": "Ollama",
        "ok": ollama_ok,
        "value": config.ollama_url,
        "message": ollama_message if ollama_ok else f"{ollama_message}; classifiers will answer no",
    })

    # Check 3: policy files for the current directory
    with LocalServices(config) as services:
        resolved = Engine(config, services, quiet=True).resolve_sources(Path.cwd())
    broken = [s for s in resolved if not s.ok]
    checks.append({
        "name": "Policy files",
        "ok": not broken,
        "value": f"{len(resolved)} found",
        "message": "; ".join(f"{s.path}: {s.load_error}" for s in broken) or "OK",
    })

    all_ok = all(check["ok"] for check in checks)

    if json_output:
        output = {
            "ok": all_ok,
            "version": __version__,
            "checks": checks,
        }
        print(json.dumps(output, indent=2))
    else:
        console.print(f"[bold]policyhook doctor[/bold] v{__version__}")
        console.print()

        for check in checks:
            icon = "[green]✓[/green]" if check["ok"] else "[red]✗[/red]"
            if check["ok"]:
                console.print(f"{icon} {check['name']}: [dim]{check['value']}[/dim] - {check['message']}")
            else:
                console.print(f"{icon} {check['name']}: [dim]{check['value']}[/dim]")
                console.print(Text(f"    {check['message']}", style="red"))

        console.print()
        if all_ok:
            console.print("[green]All checks passed![/green]")
        else:
            console.print("[yellow]Some checks failed. See above for details.[/yellow]")

    raise typer.Exit(code=0 if all_ok else 1)


if __name__ == "__main__":
    app()
