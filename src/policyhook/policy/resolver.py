"""
Policy Source Resolver.

Finds every policy file that applies to a directory, broadest scope first:

    ~/.claude/policies.yaml          rank 0 (home, when present)
    /.claude/policies.yaml           rank 1
    /work/.claude/policies.yaml      rank 2
    /work/app/.claude/policies.yaml  rank 3 (the start directory)

Each level is loaded independently. A level that fails to load (bad YAML,
or a file or directory that cannot be accessed) stays in the list with no
policies and its load_error set, so one broken level never hides the others.
"""

from pathlib import Path

from policyhook.config import EngineConfig
from policyhook.report.diagnostics import Reporter
from policyhook.schema import PolicySource
from policyhook.services.base import ExternalServices, LoadResult


def _normalize(directory: Path) -> Path:
    """Absolute, symlink-free form (best effort) used to deduplicate levels."""
    try:
        return directory.expanduser().resolve()
    except (OSError, RuntimeError):
        return directory.expanduser().absolute()


class PolicySourceResolver:
    """
    Builds the ordered list of policy sources for an event.

    Usage:
        resolver = PolicySourceResolver(config, services, reporter)
        for source in resolver.resolve(event.origin_directory):
            ...
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

    def candidate_directories(self, start_directory: Path) -> list[Path]:
        """
        Directories whose policy file would apply, broadest first.

        The home directory is always first; a directory is never listed twice.
        """
        start = _normalize(start_directory)
        walk = [start, *start.parents]
        walk.reverse()

        ordered: list[Path] = []
        if self.config.home_dir is not None:
            ordered.append(_normalize(self.config.home_dir))
        for directory in walk:
            if directory not in ordered:
                ordered.append(directory)
        return ordered

    def resolve(self, start_directory: Path) -> list[PolicySource]:
        """
        Load every policy file from the filesystem root down to start_directory.

        Returns:
            Sources ordered broadest first; empty if none exist
        """
        sources: list[PolicySource] = []
        for directory in self.candidate_directories(start_directory):
            path = self.config.policy_file_for(directory)
            try:
                if not path.is_file():
                    continue
                result = self.services.load_policies(path)
            except OSError as e:
                # e.g. an unreadable .claude directory; only this level is lost
                result = LoadResult.failed(f"cannot access policy file: {e}")

            if not result.ok:
                self.reporter.diagnose(f"failed to load policies from {path}: {result.error}")

            sources.append(
                PolicySource(
                    root_directory=directory,
                    path=path,
                    scope_rank=len(sources),
                    policies=result.policies if result.ok else (),
                    load_error=result.error,
                )
            )
        return sources
