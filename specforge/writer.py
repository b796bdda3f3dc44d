"""
Specforge Writer - Overwrite policy and filename write directives

A generated filename may carry ``!!w`` (always overwrite) or ``!!nw`` (never
overwrite). The directive beats the run's global overwrite flag and is
removed from the path before anything touches the disk.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from specforge.fs import FileSystem

logger = logging.getLogger(__name__)

_DIRECTIVE = re.compile(r"!!(n?w)", re.IGNORECASE)


class WriteMode(str, Enum):
    OVERWRITE = "w"
    KEEP = "nw"


def parse_write_directive(path: str | Path) -> tuple[Path, WriteMode | None]:
    """Split a path into its clean form and the first write directive in it."""
    text = str(path)
    match = _DIRECTIVE.search(text)
    if match is None:
        return Path(text), None
    return Path(_DIRECTIVE.sub("", text)), WriteMode(match.group(1).lower())


@dataclass
class GenerationResult:
    """What a generation run did."""

    files: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0


class OutputWriter:
    """Applies the overwrite policy, then writes through the file system."""

    def __init__(self, fs: FileSystem, overwrite: bool = False, result: GenerationResult | None = None):
        self.fs = fs
        self.overwrite = overwrite
        self.result = result if result is not None else GenerationResult()

    def write(self, path: str | Path, content: str, skip_existence_check: bool = False) -> bool:
        """Write ``content`` to ``path``. Returns False when policy skipped it."""
        target, mode = parse_write_directive(path)

        overwrite = self.overwrite
        if mode is WriteMode.OVERWRITE:
            overwrite = True
        elif mode is WriteMode.KEEP:
            overwrite = False

        if not skip_existence_check and not overwrite and self.fs.exists(target):
            logger.debug("File exists, not overwriting: %s", target)
            self.result.skipped.append(target)
            return False

        self.fs.write(target, content)
        self.result.files.append(target)
        logger.debug("Wrote %s", target)
        return True
