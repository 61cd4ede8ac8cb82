"""
Reporting for policyhook.

- Reporter: stderr diagnostics plus the warnings collected for the agent
- render_decision / render_json: the hook's stdout payload
"""

from policyhook.report.diagnostics import Reporter, format_warning_block
from policyhook.report.output import render_decision, render_json

__all__ = [
    "Reporter",
    "format_warning_block",
    "render_decision",
    "render_json",
]
