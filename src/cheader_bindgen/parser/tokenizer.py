"""Lexical scanner for preprocessed C source.

Token kinds are decided by the leading character. Operators are recognized
with one character of lookahead, so `->`, `<<=` and `...` come out as single
tokens.

The scanner is an explicit iterator rather than a generator: when it raises
`MalformedLiteral` it has already moved past the offending line, and the next
call to `next()` keeps scanning from there.
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum

from ..diagnostics import MalformedLiteral

WHITESPACE = " \t\r\n\f\v"

PUNCTUATION = frozenset(";,{}[]()?:")

# Characters that may be followed by `=` (`*=`, `!=`, `==`, ...)
_TAKES_ASSIGN = frozenset("*^!=/%")

# Characters that may double or be followed by `=` (`&&`, `&=`, ...)
_DOUBLES_OR_ASSIGN = frozenset("&|+")


class TokenKind(Enum):
    IDENTIFIER = "identifier"
    NUMBER = "number"
    STRING = "string"
    CHAR = "char"
    PUNCTUATION = "punctuation"
    OPERATOR = "operator"


@dataclass(frozen=True)
class Token:
    text: str
    kind: TokenKind
    line: int
    column: int

    def __str__(self) -> str:
        return self.text


def _is_identifier_start(c: str) -> bool:
    return c == "_" or ("a" <= c <= "z") or ("A" <= c <= "Z")


def _is_identifier_char(c: str) -> bool:
    return _is_identifier_start(c) or ("0" <= c <= "9")


def _is_digit(c: str) -> bool:
    return "0" <= c <= "9"


class Tokenizer:
    """
    Iterate over the tokens of `text`.

    Args:
        text: Source text, possibly spanning many lines
        line_map: Optional map from 1-based line of `text` to the line number
            reported on tokens (used when lines were filtered out upstream)
    """

    def __init__(self, text: str, line_map: Sequence[int] | None = None):
        self.text = text
        self.line_map = line_map
        self.pos = 0
        self.line = 1
        self.line_start = 0

    def __iter__(self) -> Iterator[Token]:
        return self

    def __next__(self) -> Token:
        self._skip_whitespace()
        if self.pos >= len(self.text):
            raise StopIteration

        start = self.pos
        line = self._reported_line()
        column = start - self.line_start + 1
        c = self.text[start]

        if _is_identifier_start(c):
            end = self._scan_while(start + 1, _is_identifier_char)
            kind = TokenKind.IDENTIFIER
        elif _is_digit(c):
            end = self._scan_number(start + 1)
            kind = TokenKind.NUMBER
        elif c in "\"'":
            end = self._scan_literal(start, line, column)
            kind = TokenKind.STRING if c == '"' else TokenKind.CHAR
        elif c in PUNCTUATION:
            end = start + 1
            kind = TokenKind.PUNCTUATION
        else:
            end = start + self._operator_length(start)
            kind = TokenKind.OPERATOR

        self.pos = end
        # Escaped newlines inside a literal
        newlines = self.text.count("\n", start, end)
        if newlines:
            self.line += newlines
            self.line_start = self.text.rfind("\n", start, end) + 1
        return Token(self.text[start:end], kind, line, column)

    def _reported_line(self) -> int:
        if self.line_map is not None and 0 < self.line <= len(self.line_map):
            return self.line_map[self.line - 1]
        return self.line

    def _skip_whitespace(self) -> None:
        text = self.text
        while self.pos < len(text) and text[self.pos] in WHITESPACE:
            if text[self.pos] == "\n":
                self.line += 1
                self.line_start = self.pos + 1
            self.pos += 1

    def _scan_while(self, pos: int, predicate) -> int:
        while pos < len(self.text) and predicate(self.text[pos]):
            pos += 1
        return pos

    def _scan_number(self, pos: int) -> int:
        # Digits and dots, plus attached letters so `0x1F` and `10UL` stay whole
        return self._scan_while(pos, lambda c: c == "." or _is_identifier_char(c))

    def _scan_literal(self, start: int, line: int, column: int) -> int:
        text = self.text
        quote = text[start]
        pos = start + 1
        while pos < len(text):
            c = text[pos]
            if c == "\\":
                pos += 2
                continue
            if c == quote:
                return pos + 1
            if c == "\n":
                break
            pos += 1

        # Resume after the offending line; the newline is left for whitespace
        # skipping so line counting stays right.
        newline = text.find("\n", start)
        self.pos = len(text) if newline == -1 else newline
        kind = "string" if quote == '"' else "character"
        raise MalformedLiteral(f"unterminated {kind} literal", line=line, column=column)

    def _operator_length(self, pos: int) -> int:
        text = self.text
        c = text[pos]
        nxt = text[pos + 1] if pos + 1 < len(text) else ""

        if c == ".":
            return 3 if text.startswith("...", pos) else 1
        if c in _TAKES_ASSIGN:
            return 2 if nxt == "=" else 1
        if c in _DOUBLES_OR_ASSIGN:
            return 2 if nxt in (c, "=") else 1
        if c in "<>":
            if nxt == c:
                after = text[pos + 2] if pos + 2 < len(text) else ""
                return 3 if after == "=" else 2
            return 2 if nxt == "=" else 1
        if c == "-":
            return 2 if nxt in (">", "-", "=") else 1
        return 1


def tokenize(text: str) -> list[str]:
    """Return the token texts of `text`. Raises MalformedLiteral on a bad literal."""
    return [token.text for token in Tokenizer(text)]
