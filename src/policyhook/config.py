"""
Engine configuration for policyhook.

EngineConfig holds every process-wide constant the evaluation pipeline needs:
where policy files live, which models and executables the collaborators use,
how long each external call may block, and the per-tool default match fields.

It is built once at process start (usually via EngineConfig.from_env()) and
passed by reference into the components that need it. It is frozen; nothing
mutates it at runtime.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_CLASSIFIER_MODEL = "qwen2.5:0.5b"
DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_REWRITE_EXECUTABLE = "claude"

POLICY_DIR_NAME = ".claude"
POLICY_FILE_NAME = "policies.yaml"

# Field a policy's content pattern is tested against when it names none.
DEFAULT_MATCH_FIELDS: Mapping[str, str] = MappingProxyType(
    {
        "Bash": "command",
        "Write": "file_path",
        "Edit": "file_path",
        "MultiEdit": "file_path",
        "Read": "file_path",
        "NotebookEdit": "notebook_path",
        "Glob": "pattern",
        "Grep": "pattern",
        "LS": "path",
        "WebFetch": "url",
        "WebSearch": "query",
        "Task": "prompt",
    }
)
FALLBACK_MATCH_FIELD = "command"
FILE_PATH_FIELD = "file_path"

# Environment variable -> EngineConfig field
ENV_OVERRIDES: Mapping[str, str] = MappingProxyType(
    {
        "POLICYHOOK_HOME": "home_dir",
        "POLICYHOOK_CLASSIFIER_MODEL": "classifier_model",
        "POLICYHOOK_OLLAMA_URL": "ollama_url",
        "POLICYHOOK_REWRITE_EXECUTABLE": "rewrite_executable",
        "POLICYHOOK_CLASSIFIER_TIMEOUT": "classifier_timeout_seconds",
        "POLICYHOOK_REWRITE_TIMEOUT": "rewrite_timeout_seconds",
        "POLICYHOOK_COMMAND_TIMEOUT": "command_timeout_seconds",
    }
)


class EngineConfig(BaseModel):
    """
    Immutable configuration shared by every component of one evaluation.

    Attributes:
        policy_dir_name: Directory (inside each scanned directory) holding the policy file
        policy_file_name: Name of the policy file inside policy_dir_name
        home_dir: System-wide policy location, always ranked broadest. None disables it.
        classifier_model: Model used by classifiers that don't name one
        ollama_url: Base URL of the Ollama server answering classifier prompts
        rewrite_executable: CLI invoked to rewrite tool input for transforms
        classifier_timeout_seconds: Bound on one classifier call
        rewrite_timeout_seconds: Bound on one rewrite call
        command_timeout_seconds: Bound on one injected command
        default_match_fields: Per-tool default field for content matching
        fallback_match_field: Field used for tools missing from the table
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    policy_dir_name: str = Field(default=POLICY_DIR_NAME, min_length=1)
    policy_file_name: str = Field(default=POLICY_FILE_NAME, min_length=1)
    home_dir: Path | None = Field(
        default_factory=Path.home,
        description="System-wide policy location (None disables it)",
    )
    classifier_model: str = Field(default=DEFAULT_CLASSIFIER_MODEL, min_length=1)
    ollama_url: str = Field(default=DEFAULT_OLLAMA_URL, min_length=1)
    rewrite_executable: str = Field(default=DEFAULT_REWRITE_EXECUTABLE, min_length=1)
    classifier_timeout_seconds: float = Field(default=30.0, gt=0, le=600)
    rewrite_timeout_seconds: float = Field(default=90.0, gt=0, le=600)
    command_timeout_seconds: float = Field(default=10.0, gt=0, le=600)
    default_match_fields: Mapping[str, str] = Field(default_factory=lambda: DEFAULT_MATCH_FIELDS)
    fallback_match_field: str = Field(default=FALLBACK_MATCH_FIELD, min_length=1)

    @field_validator("default_match_fields", mode="after")
    @classmethod
    def freeze_match_fields(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        """Store the table as a read-only mapping."""
        if isinstance(v, MappingProxyType):
            return v
        return MappingProxyType(dict(v))

    def policy_file_for(self, directory: Path) -> Path:
        """Return where the policy file for `directory` would live."""
        return directory / self.policy_dir_name / self.policy_file_name

    def default_field_for(self, tool_name: str | None) -> str:
        """Return the default match field for a tool."""
        if tool_name is None:
            return self.fallback_match_field
        return self.default_match_fields.get(tool_name, self.fallback_match_field)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> tuple["EngineConfig", list[str]]:
        """
        Build a config from POLICYHOOK_* environment variables.

        Invalid values never abort startup: each one is dropped, reported in
        the returned problem list, and the default is used instead.

        Args:
            environ: Environment to read (defaults to os.environ)
            **overrides: Explicit field values that win over the environment

        Returns:
            Tuple of (config, problems)
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for env_name, field_name in ENV_OVERRIDES.items():
            raw = environ.get(env_name)
            if raw is not None and raw.strip():
                values[field_name] = raw.strip()
        values.update(overrides)

        problems: list[str] = []
        try:
            return cls.model_validate(values), problems
        except ValidationError as e:
            bad_fields = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
            for env_name, field_name in ENV_OVERRIDES.items():
                if field_name in bad_fields and field_name not in overrides:
                    problems.append(f"ignoring invalid {env_name}={environ.get(env_name)!r}")
                    values.pop(field_name, None)

        return cls.model_validate(values), problems
