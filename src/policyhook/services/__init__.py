"""
External collaborators for policyhook.

Everything that touches the world outside the evaluation core lives here:
reading policy files, calling the rewrite model, calling the classifier,
and running injected commands.

Components:
    - ExternalServices: Abstract interface (four methods)
    - LoadResult: Outcome of loading one policy file
    - LocalServices: Default implementation
"""

from policyhook.services.base import ExternalServices, LoadResult
from policyhook.services.local import LocalServices

__all__ = [
    "ExternalServices",
    "LoadResult",
    "LocalServices",
]
