"""
Action executors.

- TransformExecutor: one merged rewrite of the tool input
- InjectExecutor: tagged context files and command output
"""

from policyhook.actions.context import ContextCollector, tag_block
from policyhook.actions.inject import InjectExecutor
from policyhook.actions.transform import TransformExecutor, build_rewrite_prompt

__all__ = [
    "ContextCollector",
    "InjectExecutor",
    "TransformExecutor",
    "build_rewrite_prompt",
    "tag_block",
]
