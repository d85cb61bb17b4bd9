"""Load preprocessed header text.

Preprocessors leave line markers (`#line 12 "foo.h"`, `# 12 "foo.h" 1`) and
pragmas (`#pragma pack(push, 8)`) in their output. These lines carry no
declarations and are dropped before tokenizing. The remaining lines are joined,
and a line map keeps diagnostics pointing at the original file.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .diagnostics import SourceReadError
from .logging import get_logger

logger = get_logger("source")

_LINE_MARKER = re.compile(r"^#\s*(line\b|\d)")
_PRAGMA = re.compile(r"^#\s*pragma\b")


@dataclass
class SourceText:
    """Filtered source text with a map back to original line numbers."""

    text: str
    line_map: list[int] = field(default_factory=list)
    path: str | None = None
    dropped_lines: int = 0


def filter_lines(lines: Iterable[str], path: str | None = None) -> SourceText:
    """
    Drop blank lines, line markers, pragmas and other leftover directives.

    Args:
        lines: Source lines, with or without trailing newlines
        path: File the lines came from, for reporting

    Returns:
        SourceText whose `line_map[i]` is the original 1-based line of line i+1
    """
    kept: list[str] = []
    line_map: list[int] = []
    dropped = 0

    for number, line in enumerate(lines, start=1):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("#"):
            dropped += 1
            if not (_LINE_MARKER.match(stripped) or _PRAGMA.match(stripped)):
                logger.debug("Line %d: dropping directive %s", number, stripped[:60])
            continue
        kept.append(line.rstrip("\r\n"))
        line_map.append(number)

    return SourceText(text="\n".join(kept), line_map=line_map, path=path, dropped_lines=dropped)


def read_source(path: Path, encoding: str = "utf-8") -> SourceText:
    """
    Read and filter a preprocessed header file.

    Raises:
        SourceReadError: If the file cannot be opened, read or decoded
    """
    try:
        with open(path, encoding=encoding) as f:
            source = filter_lines(f, path=str(path))
    except (OSError, UnicodeDecodeError) as e:
        raise SourceReadError(f"Cannot read {path}: {e}") from e

    logger.debug(
        "Read %s: %d lines kept, %d directive lines dropped",
        path,
        len(source.line_map),
        source.dropped_lines,
    )
    return source
