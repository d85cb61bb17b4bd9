"""Classify top-level statements into type definitions.

Each recognizer takes the statement's token texts and a start index, and
returns a `Classification` or None. They are tried in order and the first
match wins:

1. typedef struct/union with a body
2. typedef enum with a body
3. typedef of a function pointer or function type (recognized, not kept)
4. any other typedef (alias)
5. bare struct/union/enum (recognized, not kept)
6. function declaration (recognized, not kept)
7. compiler directive (recognized, not kept)
8. extern: strip it and classify the rest once
"""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum

from ..logging import get_logger
from ..types import (
    AGGREGATE_KEYWORDS,
    PRIMITIVE_WORDS,
    QUALIFIERS,
    AliasDef,
    Definition,
    EnumDef,
    EnumValue,
    Member,
    StructDef,
    TypeTokens,
    split_pointer,
)
from .segmenter import CLOSERS, DEFAULT_DIRECTIVE_MARKERS, OPENERS, Statement

logger = get_logger("classifier")

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class StatementKind(Enum):
    STRUCT = "struct"
    ENUM = "enum"
    FUNCTION_POINTER = "function-pointer"
    ALIAS = "alias"
    BARE_AGGREGATE = "bare-aggregate"
    FUNCTION = "function"
    DIRECTIVE = "directive"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class Classification:
    kind: StatementKind
    definitions: tuple[Definition, ...] = ()
    extern: bool = False

    @property
    def recognized(self) -> bool:
        return self.kind != StatementKind.UNRECOGNIZED


@dataclass(frozen=True)
class Declarator:
    name: str
    pointer: TypeTokens = ()
    dimensions: TypeTokens | None = None

    @property
    def plain(self) -> bool:
        return not self.pointer and self.dimensions is None


Recognizer = Callable[[TypeTokens, int], Classification | None]


def is_identifier(text: str) -> bool:
    return _IDENTIFIER.fullmatch(text) is not None


# =============================================================================
# Token helpers
# =============================================================================


def find_closing(tokens: TypeTokens, open_index: int) -> int:
    """Index of the closer matching the opener at `open_index`, or -1."""
    depth = 0
    for i in range(open_index, len(tokens)):
        if tokens[i] in OPENERS:
            depth += 1
        elif tokens[i] in CLOSERS:
            depth -= 1
            if depth == 0:
                return i
    return -1


def find_opening(tokens: TypeTokens, close_index: int) -> int:
    """Index of the opener matching the closer at `close_index`, or -1."""
    depth = 0
    for i in range(close_index, -1, -1):
        if tokens[i] in CLOSERS:
            depth += 1
        elif tokens[i] in OPENERS:
            depth -= 1
            if depth == 0:
                return i
    return -1


def split_top_level(tokens: TypeTokens, separator: str) -> list[TypeTokens]:
    """Split on `separator` where it is outside any brackets."""
    parts: list[TypeTokens] = []
    depth = 0
    start = 0
    for i, token in enumerate(tokens):
        if token in OPENERS:
            depth += 1
        elif token in CLOSERS:
            depth -= 1
        elif token == separator and depth == 0:
            parts.append(tokens[start:i])
            start = i + 1
    parts.append(tokens[start:])
    return parts


def index_top_level(tokens: TypeTokens, target: str) -> int:
    """Index of the first `target` outside any brackets, or -1."""
    depth = 0
    for i, token in enumerate(tokens):
        if token in OPENERS:
            depth += 1
        elif token in CLOSERS:
            depth -= 1
        elif token == target and depth == 0:
            return i
    return -1


def parse_declarator(group: TypeTokens) -> tuple[TypeTokens, Declarator] | None:
    """
    Parse `<prefix> name [dims]` into the prefix and a declarator.

    With a `[`, the name is the token right before the first `[` and the
    dimensions are the tokens between it and the final `]`. Otherwise the name
    is the last token.
    """
    if not group:
        return None
    bracket = index_top_level(group, "[")
    if bracket != -1:
        last = len(group) - 1 - group[::-1].index("]") if "]" in group else len(group)
        name_index = bracket - 1
        dimensions = group[bracket + 1 : last]
    else:
        name_index = len(group) - 1
        dimensions = None
    if name_index < 0:
        return None

    prefix = group[:name_index]
    base, pointer = split_pointer(prefix)
    return base, Declarator(name=group[name_index], pointer=pointer, dimensions=dimensions)


def parse_declarator_list(tokens: TypeTokens) -> tuple[TypeTokens, list[Declarator]] | None:
    """
    Parse `base d1, d2, ...` where later declarators share the first's base.

    `int *a, b[4]` gives base `int` with declarators `*a` and `b[4]`.
    """
    groups = split_top_level(tokens, ",")
    first = parse_declarator(groups[0])
    if first is None:
        return None
    base, declarator = first
    declarators = [declarator]

    for group in groups[1:]:
        parsed = parse_declarator(group)
        if parsed is None:
            continue
        # everything before a later declarator's name is its pointer part
        prefix, other = parsed
        declarators.append(replace(other, pointer=prefix + other.pointer))
    return base, declarators


# =============================================================================
# Body parsing
# =============================================================================


def parse_members(body: TypeTokens) -> tuple[Member, ...]:
    """Parse the fields of a struct or union body, in declaration order."""
    members: list[Member] = []
    anonymous = 0
    padding = 0

    for field in split_top_level(body, ";"):
        if not field:
            continue

        if index_top_level(field, "(") != -1:
            member = _parse_callback_member(field)
            if member is not None:
                members.append(member)
            continue

        bit_width = None
        colon = index_top_level(field, ":")
        if colon != -1:
            bit_width = " ".join(field[colon + 1 :]) or None
            field = field[:colon]
            if _is_unnamed(field):
                # `int : 5;` only pads, but still takes up bits
                members.append(
                    Member(identifier=f"__pad_{padding}", base_type=field, bit_width=bit_width)
                )
                padding += 1
                continue

        if field[-1] == "}":
            # Anonymous nested struct/union (C11)
            members.append(Member(identifier=f"__anonymous_{anonymous}", base_type=field))
            anonymous += 1
            continue

        parsed = parse_declarator_list(field)
        if parsed is None:
            continue
        base, declarators = parsed
        for declarator in declarators:
            members.append(
                Member(
                    identifier=declarator.name,
                    base_type=base + declarator.pointer,
                    dimensions=declarator.dimensions,
                    bit_width=bit_width,
                )
            )

    return tuple(members)


def _is_unnamed(field: TypeTokens) -> bool:
    """True when a bit-field's type is not followed by a declarator name."""
    return len(field) <= 1 or field[-1] in PRIMITIVE_WORDS or field[-1] in QUALIFIERS


def _parse_callback_member(field: TypeTokens) -> Member | None:
    """Parse `ret (*name)(params)`; the type keeps every token except the name."""
    paren = index_top_level(field, "(")
    close = find_closing(field, paren)
    if close == -1:
        return None
    names = [i for i in range(paren + 1, close) if is_identifier(field[i])]
    if not names:
        return None
    name_index = names[-1]
    return Member(
        identifier=field[name_index],
        base_type=field[:name_index] + field[name_index + 1 :],
        callback=True,
    )


def parse_values(body: TypeTokens) -> tuple[EnumValue, ...]:
    """Parse enumerators. Values are kept as token text and never computed."""
    values: list[EnumValue] = []
    for field in split_top_level(body, ","):
        if not field:
            continue
        equals = index_top_level(field, "=")
        if equals == -1:
            values.append(EnumValue(identifier=field[0]))
        else:
            values.append(
                EnumValue(identifier=field[0], value=" ".join(field[equals + 1 :]))
            )
    return tuple(values)


# =============================================================================
# Recognizers
# =============================================================================


def _typedef_aggregate(
    tokens: TypeTokens, start: int, keywords: frozenset[str]
) -> Classification | None:
    if tokens[start] != "typedef":
        return None
    i = start + 1
    while i < len(tokens) and tokens[i] in QUALIFIERS:
        i += 1
    if i >= len(tokens) or tokens[i] not in keywords:
        return None
    keyword = tokens[i]
    i += 1

    tag = None
    if i < len(tokens) and is_identifier(tokens[i]):
        tag = tokens[i]
        i += 1
    if i >= len(tokens) or tokens[i] != "{":
        # `typedef struct Foo Foo;` is a plain alias
        return None
    close = find_closing(tokens, i)
    if close == -1:
        return None
    body = tokens[i + 1 : close]

    declarators = []
    for group in split_top_level(tokens[close + 1 :], ","):
        parsed = parse_declarator(group)
        if parsed is not None:
            declarators.append(parsed[1])

    plain = [d for d in declarators if d.plain]
    name = plain[0].name if plain else tag
    if name is None and declarators:
        # `typedef struct { ... } *PFoo;` names only a pointer to the body
        name = f"__anon_{declarators[0].name}"
    if name is None:
        logger.debug("Anonymous typedef %s without a name, skipped", keyword)
        return Classification(StatementKind.BARE_AGGREGATE)

    if keyword == "enum":
        kind = StatementKind.ENUM
        definition: Definition = EnumDef(name=name, values=parse_values(body))
    else:
        kind = StatementKind.STRUCT
        definition = StructDef(name=name, members=parse_members(body), is_union=keyword == "union")

    definitions: list[Definition] = [definition]
    for declarator in declarators:
        if declarator.name == name:
            continue
        definitions.append(
            AliasDef(
                name=declarator.name,
                target=(name,) + declarator.pointer,
                dimensions=declarator.dimensions,
            )
        )
    if tag is not None and tag != name:
        definitions.append(AliasDef(name=tag, target=(name,)))

    return Classification(kind, tuple(definitions))


def match_typedef_struct(tokens: TypeTokens, start: int) -> Classification | None:
    return _typedef_aggregate(tokens, start, frozenset({"struct", "union"}))


def match_typedef_enum(tokens: TypeTokens, start: int) -> Classification | None:
    return _typedef_aggregate(tokens, start, frozenset({"enum"}))


def match_typedef_function(tokens: TypeTokens, start: int) -> Classification | None:
    """`typedef int (*cb)(void *);` and `typedef void fn(int);`."""
    if tokens[start] != "typedef" or index_top_level(tokens[start + 1 :], "(") == -1:
        return None
    return Classification(StatementKind.FUNCTION_POINTER)


def match_typedef_alias(tokens: TypeTokens, start: int) -> Classification | None:
    if tokens[start] != "typedef":
        return None
    parsed = parse_declarator_list(tokens[start + 1 :])
    if parsed is None:
        return None
    base, declarators = parsed
    if not base:
        return None

    definitions = tuple(
        AliasDef(
            name=declarator.name,
            target=base + declarator.pointer,
            dimensions=declarator.dimensions,
        )
        for declarator in declarators
        if is_identifier(declarator.name)
    )
    if not definitions:
        return None
    return Classification(StatementKind.ALIAS, definitions)


def match_bare_aggregate(tokens: TypeTokens, start: int) -> Classification | None:
    """`struct Foo { ... };`, `struct Foo { ... } var;` and `struct Foo;`."""
    if tokens[start] not in AGGREGATE_KEYWORDS:
        return None
    rest = tokens[start + 1 :]
    if "{" in rest or (len(rest) == 1 and is_identifier(rest[0])):
        return Classification(StatementKind.BARE_AGGREGATE)
    return None


def match_function(tokens: TypeTokens, start: int) -> Classification | None:
    """`<ret...> name ( <params> )`."""
    if tokens[-1] != ")":
        return None
    opening = find_opening(tokens, len(tokens) - 1)
    if opening - 1 <= start or not is_identifier(tokens[opening - 1]):
        return None
    return Classification(StatementKind.FUNCTION)


class DeclarationClassifier:
    """Classify statements with the recognizers in priority order."""

    def __init__(self, directive_markers: Iterable[str] = DEFAULT_DIRECTIVE_MARKERS):
        self.directive_markers = frozenset(directive_markers)
        self.recognizers: list[Recognizer] = [
            match_typedef_struct,
            match_typedef_enum,
            match_typedef_function,
            match_typedef_alias,
            match_bare_aggregate,
            match_function,
            self.match_directive,
        ]

    def match_directive(self, tokens: TypeTokens, start: int) -> Classification | None:
        if tokens[start] in self.directive_markers:
            return Classification(StatementKind.DIRECTIVE)
        return None

    def classify(self, statement: Statement) -> Classification:
        classification = self.classify_tokens(statement.texts)
        if classification.recognized and not classification.definitions:
            logger.debug(
                "Line %s: handled %s statement", statement.line, classification.kind.value
            )
        return classification

    def classify_tokens(self, tokens: TypeTokens, start: int = 0) -> Classification:
        if start >= len(tokens):
            return Classification(StatementKind.UNRECOGNIZED)

        for recognizer in self.recognizers:
            result = recognizer(tokens, start)
            if result is not None:
                return result

        if tokens[start] == "extern" and start == 0:
            inner = self.classify_tokens(tokens, start + 1)
            return replace(inner, extern=True)

        return Classification(StatementKind.UNRECOGNIZED)
