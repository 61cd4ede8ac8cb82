"""
Match constants.

A match constant is a named regex that policies reference as `match: ":name"`
instead of writing the pattern out. Every git constant tolerates the global
options git accepts before its subcommand, so all of these match git_commit:

    git commit -m "x"
    git -C /repo commit -m "x"
    git -c user.name=bot --no-pager commit -m "x"
    cd /repo && GIT_EDITOR=true git commit

while `git log --grep commit` and `echo "git commit"` style argument text
does not, because `git` must start a command and the subcommand must be the
first word after the global options.
"""

from collections.abc import Mapping
from types import MappingProxyType

CONSTANT_PREFIX = ":"

# git must be the first word of a command, optionally after VAR=value pairs.
_COMMAND_START = r"(?:^|[;&|(]|\$\()\s*(?:[A-Za-z_][A-Za-z0-9_]*=\S*\s+)*"

_GIT_GLOBAL_OPTION = (
    r"(?:"
    r"-C\s*(?:\"[^\"]*\"|'[^']*'|\S+)"
    r"|-c\s*\S+"
    r"|--(?:git-dir|work-tree|namespace|exec-path|super-prefix|config-env)(?:=|\s+)\S+"
    r"|--exec-path"
    r"|--no-pager|--paginate|-p|-P"
    r"|--bare|--no-replace-objects|--literal-pathspecs|--glob-pathspecs"
    r"|--noglob-pathspecs|--icase-pathspecs|--no-optional-locks"
    r")"
)

_SUBCOMMAND_END = r"(?=\s|$|[;&|)])"


def git_subcommand(subcommand: str) -> str:
    """Build the regex for `git [global options] <subcommand>`."""
    return (
        rf"{_COMMAND_START}git(?:\s+{_GIT_GLOBAL_OPTION})*"
        rf"\s+{subcommand}{_SUBCOMMAND_END}"
    )


# Forced push: --force, --force-with-lease, --force-if-includes, a short
# flag cluster containing f, or a +refspec.
_FORCE_ARG = (
    r"\s+(?:"
    r"--force(?:-with-lease|-if-includes)?(?:=\S*)?"
    r"|-[A-Za-z]*f[A-Za-z]*"
    r"|\+\S+"
    r")(?=\s|$|[;&|)])"
)

MATCH_CONSTANTS: Mapping[str, str] = MappingProxyType(
    {
        "git_commit": git_subcommand("commit"),
        "git_push": git_subcommand("push"),
        "git_push_force": git_subcommand("push") + r"(?:\s+[^\s;&|]+)*?" + _FORCE_ARG,
        "git_reset": git_subcommand("reset"),
        "git_rebase": git_subcommand("rebase"),
        "git_checkout": git_subcommand("checkout"),
        "git_merge": git_subcommand("merge"),
        "git_stash": git_subcommand("stash"),
        "git_switch": git_subcommand("switch"),
        "git_restore": git_subcommand("restore"),
    }
)


def is_constant_reference(pattern: str) -> bool:
    """Whether a match pattern names a constant (":name")."""
    return pattern.startswith(CONSTANT_PREFIX) and len(pattern) > len(CONSTANT_PREFIX)


def constant_name(pattern: str) -> str:
    """Strip the reference prefix: ":git_push" -> "git_push"."""
    return pattern[len(CONSTANT_PREFIX):]
