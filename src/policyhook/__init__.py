"""
policyhook - Fail-open policy engine for coding-agent hooks.

policyhook sits behind an agent's hook mechanism. For every tool call or
submitted prompt it evaluates the policies found in the directory hierarchy
and decides whether to:
- Deny the action (gate)
- Rewrite one field of the tool input (transform)
- Add context to the agent's reasoning loop (inject)

Any internal failure results in the original action being allowed.

Example usage:
    $ echo '{"hook_event_name": "PreToolUse", ...}' | policyhook hook
    $ policyhook sources .
    $ policyhook doctor
"""

__version__ = "0.1.0"
__author__ = "policyhook Contributors"

__all__ = [
    "__version__",
    "__author__",
]
