"""Errors and non-fatal diagnostics.

Only `SourceReadError` (and configuration errors) stop a run. Everything else
found in a header is recorded as a `Diagnostic` and processing continues, so a
single malformed declaration never costs the rest of the output.
"""

from dataclasses import dataclass, field
from enum import Enum

from .logging import get_logger

logger = get_logger("diagnostics")


class HeaderError(Exception):
    """Base exception for header processing errors."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        if self.column is None:
            return f"line {self.line}: {self.message}"
        return f"line {self.line}, column {self.column}: {self.message}"


class SourceReadError(HeaderError):
    """Raised when the input header cannot be opened, read or decoded."""

    pass


class MalformedLiteral(HeaderError):
    """Raised by the tokenizer for a string or char literal without a closing quote."""

    pass


class UnbalancedNesting(HeaderError):
    """Raised by the segmenter for a closer without opener, or an unclosed opener."""

    pass


class CatalogFrozenError(HeaderError):
    """Raised when the type catalog is modified after resolution started."""

    pass


class DiagnosticKind(Enum):
    MALFORMED_LITERAL = "malformed-literal"
    UNBALANCED_NESTING = "unbalanced-nesting"
    UNRECOGNIZED_STATEMENT = "unrecognized-statement"
    UNDEFINED_REFERENCED_TYPE = "undefined-referenced-type"
    DUPLICATE_DEFINITION = "duplicate-definition"
    UNREPRESENTABLE_TYPE = "unrepresentable-type"


@dataclass(frozen=True)
class Diagnostic:
    """A recorded, non-fatal problem found while processing a header."""

    kind: DiagnosticKind
    message: str
    line: int | None = None
    column: int | None = None

    def __str__(self) -> str:
        where = ""
        if self.line is not None:
            where = f"line {self.line}: " if self.column is None else (
                f"line {self.line}:{self.column}: "
            )
        return f"{where}{self.kind.value}: {self.message}"


@dataclass
class Diagnostics:
    """Collects diagnostics for one run and mirrors each one to the logger."""

    items: list[Diagnostic] = field(default_factory=list)

    def report(
        self,
        kind: DiagnosticKind,
        message: str,
        line: int | None = None,
        column: int | None = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(kind=kind, message=message, line=line, column=column)
        self.items.append(diagnostic)
        logger.warning(
            "%s",
            diagnostic,
            extra={"diagnostic": kind.value, "line": line, "column": column},
        )
        return diagnostic

    def report_error(self, kind: DiagnosticKind, error: HeaderError) -> Diagnostic:
        """Record a recovered exception."""
        return self.report(kind, error.message, line=error.line, column=error.column)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.items if d.kind == kind]

    def counts(self) -> dict[str, int]:
        """Count diagnostics per kind, in kind declaration order."""
        counts = {}
        for kind in DiagnosticKind:
            n = len(self.of_kind(kind))
            if n:
                counts[kind.value] = n
        return counts

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)
