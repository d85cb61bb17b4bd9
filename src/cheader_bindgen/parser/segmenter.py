"""Group a token stream into top-level statements.

A statement ends at a `;` seen outside any bracket, paren or brace. Statements
led by a compiler-directive marker (`__pragma(...)`) carry no `;` and end as
soon as their brackets close.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from ..diagnostics import DiagnosticKind, Diagnostics, MalformedLiteral, UnbalancedNesting
from ..logging import get_logger
from .tokenizer import Token

logger = get_logger("segmenter")

OPENERS = frozenset("{[(")
CLOSERS = frozenset("}])")

DEFAULT_DIRECTIVE_MARKERS = ("__pragma", "_Pragma", "_Static_assert", "static_assert")


@dataclass(frozen=True)
class Statement:
    """Tokens of one top-level statement, without its terminating `;`."""

    tokens: tuple[Token, ...]

    @property
    def texts(self) -> tuple[str, ...]:
        return tuple(token.text for token in self.tokens)

    @property
    def line(self) -> int | None:
        return self.tokens[0].line if self.tokens else None

    def __len__(self) -> int:
        return len(self.tokens)

    def __str__(self) -> str:
        return " ".join(self.texts)


class StatementSegmenter:
    """
    Iterate over the statements in a token stream.

    Malformed literals and unbalanced closers cost only the statement they
    occur in: it is reported to `diagnostics`, dropped, and scanning resumes
    after its terminating `;`. The tokenizer already skips the rest of a line
    holding a malformed literal, so outside brackets that line end is where the
    broken statement stops.
    """

    def __init__(
        self,
        tokens: Iterable[Token],
        diagnostics: Diagnostics | None = None,
        directive_markers: Iterable[str] = DEFAULT_DIRECTIVE_MARKERS,
    ):
        self.tokens = iter(tokens)
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.directive_markers = frozenset(directive_markers)
        self._buffer: list[Token] = []
        self._open: list[Token] = []
        self._skipping = False

    def __iter__(self) -> Iterator[Statement]:
        while True:
            try:
                token = next(self.tokens)
            except StopIteration:
                break
            except MalformedLiteral as e:
                self.diagnostics.report_error(DiagnosticKind.MALFORMED_LITERAL, e)
                if self._open:
                    self._discard()
                else:
                    # the rest of the bad line went with the literal
                    self._drop()
                continue

            if self._skipping:
                self._skip(token)
                continue

            try:
                statement = self._push(token)
            except UnbalancedNesting as e:
                self.diagnostics.report_error(DiagnosticKind.UNBALANCED_NESTING, e)
                self._discard()
                continue

            if statement is not None:
                yield statement

        yield from self._finish()

    @property
    def balance(self) -> int:
        return len(self._open)

    def _push(self, token: Token) -> Statement | None:
        """Add a token; return the statement it completes, if any."""
        text = token.text

        if text == ";" and not self._open:
            return self._flush()

        self._buffer.append(token)
        if text in OPENERS:
            self._open.append(token)
        elif text in CLOSERS:
            if not self._open:
                raise UnbalancedNesting(
                    f"'{text}' without matching opener", line=token.line, column=token.column
                )
            self._open.pop()
            if not self._open and self._buffer[0].text in self.directive_markers:
                return self._flush()
        return None

    def _flush(self) -> Statement | None:
        tokens = tuple(self._buffer)
        self._buffer = []
        if not tokens:
            # Bare `;`
            return None
        return Statement(tokens)

    def _drop(self) -> None:
        """Drop the current statement; the next token starts a new one."""
        if self._buffer:
            logger.debug("Dropping statement starting at line %s", self._buffer[0].line)
        self._buffer = []
        self._skipping = False

    def _discard(self) -> None:
        """Drop the current statement and skip to its terminating `;`."""
        self._drop()
        self._skipping = True

    def _skip(self, token: Token) -> None:
        text = token.text
        if text in OPENERS:
            self._open.append(token)
        elif text in CLOSERS:
            if self._open:
                self._open.pop()
        elif text == ";" and not self._open:
            self._skipping = False

    def _finish(self) -> Iterator[Statement]:
        if self._skipping:
            return
        if self._open:
            opener = self._open[0]
            self.diagnostics.report(
                DiagnosticKind.UNBALANCED_NESTING,
                f"'{opener.text}' not closed before end of input",
                line=opener.line,
                column=opener.column,
            )
            self._buffer = []
            self._open = []
            return
        statement = self._flush()
        if statement is not None:
            yield statement


def segment(
    tokens: Iterable[Token],
    diagnostics: Diagnostics | None = None,
    directive_markers: Iterable[str] = DEFAULT_DIRECTIVE_MARKERS,
) -> list[Statement]:
    """Collect all statements of a token stream."""
    return list(StatementSegmenter(tokens, diagnostics, directive_markers))
