"""
Context-file handling shared by transforms and injects.

Context files are listed relative to the root directory of the policy's
source, read as UTF-8, and wrapped in a tag named after the file:

    <IDENTITY.md>
    I am the project persona.
    </IDENTITY.md>

A ContextCollector lives for one executor run and never reads the same
absolute path twice.
"""

from collections.abc import Iterable
from pathlib import Path

from policyhook.report.diagnostics import Reporter


def tag_block(name: str, content: str) -> str:
    """Wrap content in <name>...</name>."""
    return f"<{name}>\n{content.rstrip()}\n</{name}>"


def resolve_context_path(root_directory: Path, relative: str) -> Path:
    """Anchor a context path to its source root (absolute paths pass through)."""
    path = Path(relative).expanduser()
    if not path.is_absolute():
        path = root_directory / path
    return _absolute(path)


def _absolute(path: Path) -> Path:
    try:
        return path.resolve()
    except (OSError, RuntimeError):
        return path.absolute()


class ContextCollector:
    """
    Reads and tags context files, skipping duplicates and missing files.

    Usage:
        collector = ContextCollector(reporter)
        blocks = collector.collect(["IDENTITY.md"], source.root_directory)
    """

    def __init__(self, reporter: Reporter) -> None:
        self.reporter = reporter
        self._seen: set[Path] = set()

    def collect(self, files: Iterable[str], root_directory: Path) -> list[str]:
        """
        Tagged blocks for the files not seen before, in the given order.

        Missing or unreadable files are reported and left out.
        """
        blocks: list[str] = []
        for relative in files:
            path = resolve_context_path(root_directory, relative)
            if path in self._seen:
                continue
            self._seen.add(path)

            if not path.is_file():
                self.reporter.warn(f"context file not found: {path}")
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                self.reporter.warn(f"cannot read context file {path}: {e}")
                continue

            blocks.append(tag_block(path.name, content))
        return blocks
