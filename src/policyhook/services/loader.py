"""
YAML policy-file loader.

Turns `<dir>/.claude/policies.yaml` into validated Policy records. This is
the loader collaborator: it never raises past its boundary. Every failure
(unreadable file, YAML syntax error, schema violation) comes back as a
LoadResult carrying an error string, so one broken file cannot stop the
directory walk.
"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from policyhook.errors import ERROR_SOURCE_UNREADABLE, PolicySourceError
from policyhook.schema import PolicyFile
from policyhook.services.base import LoadResult


def format_validation_error(e: ValidationError) -> str:
    """Condense a pydantic error into one line per problem."""
    problems = []
    for err in e.errors():
        location = ".".join(str(part) for part in err["loc"]) or "<root>"
        problems.append(f"{location}: {err['msg']}")
    return "; ".join(problems)


class YamlPolicyLoader:
    """
    Loads policy files written in YAML.

    Example:
        loader = YamlPolicyLoader()
        result = loader.load(Path("/repo/.claude/policies.yaml"))
        if result.ok:
            for policy in result.policies:
                ...
    """

    def load(self, path: Path) -> LoadResult:
        """Load one policy file. Never raises."""
        try:
            return LoadResult.loaded(self._load(path).policies)
        except PolicySourceError as e:
            return LoadResult.failed(e.underlying_error)

    def load_from_string(self, content: str, path: Path | str = "<string>") -> LoadResult:
        """Load policies from YAML text. Never raises."""
        try:
            return LoadResult.loaded(self._parse(content, str(path)).policies)
        except PolicySourceError as e:
            return LoadResult.failed(e.underlying_error)

    def _load(self, path: Path) -> PolicyFile:
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PolicySourceError(
                path=str(path),
                underlying_error=str(e),
                code=ERROR_SOURCE_UNREADABLE,
            ) from e
        return self._parse(content, str(path))

    def _parse(self, content: str, path: str) -> PolicyFile:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise PolicySourceError(path=path, underlying_error=f"YAML error: {e}") from e

        # An empty file (or one with only comments) declares no policies
        if data is None:
            return PolicyFile()

        if isinstance(data, list):
            data = {"policies": data}

        if not isinstance(data, dict):
            raise PolicySourceError(
                path=path,
                underlying_error=f"expected a mapping with 'policies', got {type(data).__name__}",
            )

        try:
            return PolicyFile.model_validate(data)
        except ValidationError as e:
            raise PolicySourceError(
                path=path,
                underlying_error=format_validation_error(e),
            ) from e
