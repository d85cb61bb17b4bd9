"""Type model for catalog definitions.

Type text is kept as a tuple of tokens rather than a joined string, so it can
always be split again without guessing where one token ends.
"""

from dataclasses import asdict, dataclass
from typing import Any, Union

TypeTokens = tuple[str, ...]

QUALIFIERS = frozenset(
    {
        "const",
        "volatile",
        "restrict",
        "__restrict",
        "__restrict__",
        "__unaligned",
        "__ptr32",
        "__ptr64",
    }
)

AGGREGATE_KEYWORDS = frozenset({"struct", "union", "enum"})

PRIMITIVE_WORDS = frozenset(
    {
        "void",
        "char",
        "short",
        "int",
        "long",
        "float",
        "double",
        "signed",
        "unsigned",
        "_Bool",
        "__int8",
        "__int16",
        "__int32",
        "__int64",
    }
)

# Bases that never combine with `int` or `long`
_FIXED_BASES = frozenset(
    {"char", "void", "float", "_Bool", "__int8", "__int16", "__int32", "__int64"}
)


@dataclass(frozen=True)
class EnumValue:
    """One enumerator. `value` is the literal token text after `=`, if any."""

    identifier: str
    value: str | None = None


@dataclass(frozen=True)
class Member:
    """One struct or union field in declaration order."""

    identifier: str
    base_type: TypeTokens
    dimensions: TypeTokens | None = None
    bit_width: str | None = None
    callback: bool = False

    @property
    def referenced_name(self) -> str | None:
        """Name of the type this member depends on, None if it needs no lookup."""
        if self.callback:
            return None
        return referenced_type_name(self.base_type)


@dataclass(frozen=True)
class AliasDef:
    name: str
    target: TypeTokens
    dimensions: TypeTokens | None = None

    @property
    def is_forward_declaration(self) -> bool:
        """True for `typedef struct Foo Foo;` style opaque aliases."""
        return (
            any(t in AGGREGATE_KEYWORDS for t in self.target)
            and "*" not in self.target
            and referenced_type_name(self.target) == self.name
        )

    @property
    def is_tag_reference(self) -> bool:
        """True for `typedef struct _H H;`: the target is a bare aggregate tag."""
        return len(self.target) == 2 and self.target[0] in AGGREGATE_KEYWORDS


@dataclass(frozen=True)
class EnumDef:
    name: str
    values: tuple[EnumValue, ...]


@dataclass(frozen=True)
class StructDef:
    name: str
    members: tuple[Member, ...]
    is_union: bool = False


Definition = Union[AliasDef, EnumDef, StructDef]


def definition_kind(definition: Definition) -> str:
    if isinstance(definition, AliasDef):
        return "alias"
    if isinstance(definition, EnumDef):
        return "enum"
    return "union" if definition.is_union else "struct"


def definition_to_dict(definition: Definition) -> dict[str, Any]:
    """Convert a definition to a JSON-friendly dict."""
    data = asdict(definition)
    data["kind"] = definition_kind(definition)
    return data


def type_words(tokens: TypeTokens) -> list[str]:
    """Strip qualifiers, aggregate keywords and pointer stars from type tokens."""
    return [
        t for t in tokens if t != "*" and t not in QUALIFIERS and t not in AGGREGATE_KEYWORDS
    ]


def referenced_type_name(tokens: TypeTokens) -> str | None:
    """
    Name a type expression refers to, for catalog lookup.

    Returns None for C builtin primitives and inline aggregates, which have
    nothing to resolve.
    """
    if "{" in tokens or "(" in tokens:
        return None
    words = type_words(tokens)
    if not words or c_primitive(words) is not None:
        return None
    return " ".join(words)


def c_primitive(words: list[str]) -> str | None:
    """
    Canonical spelling of a C builtin type, or None if `words` is not one.

    `unsigned` alone becomes `unsigned int`, `signed` is dropped where C treats
    it as the default, and `int` is dropped after `short` or `long`.
    """
    words = [w for w in words if w not in QUALIFIERS]
    if not words or any(w not in PRIMITIVE_WORDS for w in words):
        return None

    is_signed = "signed" in words
    is_unsigned = "unsigned" in words
    if is_signed and is_unsigned:
        return None

    longs = words.count("long")
    has_int = "int" in words
    bases = [w for w in words if w not in ("signed", "unsigned", "long", "int")]
    if len(bases) > 1:
        return None
    base = bases[0] if bases else None

    if base in _FIXED_BASES:
        if longs or has_int:
            return None
        if base == "char":
            if is_signed:
                return "signed char"
            return "unsigned char" if is_unsigned else "char"
        if base.startswith("__int"):
            return f"unsigned {base}" if is_unsigned else base
        if is_signed or is_unsigned:
            return None
        return base

    if base == "double":
        if has_int or is_signed or is_unsigned or longs > 1:
            return None
        return "long double" if longs else "double"

    if base == "short":
        if longs:
            return None
        core = "short"
    elif longs == 0:
        core = "int"
    elif longs == 1:
        core = "long"
    elif longs == 2:
        core = "long long"
    else:
        return None

    return f"unsigned {core}" if is_unsigned else core


def split_pointer(prefix: TypeTokens) -> tuple[TypeTokens, TypeTokens]:
    """
    Split a type prefix into its base and trailing pointer part.

    `const char * const *` splits into `const char` and `* const *`.
    """
    j = len(prefix)
    while j > 0 and (prefix[j - 1] == "*" or prefix[j - 1] in QUALIFIERS):
        j -= 1
    # qualifiers right after the base belong to it (`char const *`)
    while j < len(prefix) and prefix[j] != "*":
        j += 1
    return prefix[:j], prefix[j:]


def split_dimensions(dimensions: TypeTokens) -> list[TypeTokens]:
    """
    Split recorded dimension tokens into one group per array rank.

    `a[2][3]` is recorded as the tokens between the first `[` and the final
    `]`, i.e. `2 ] [ 3`, which splits into `[("2",), ("3",)]`.
    """
    groups: list[list[str]] = [[]]
    depth = 0
    i = 0
    while i < len(dimensions):
        token = dimensions[i]
        if token == "[":
            depth += 1
            groups[-1].append(token)
        elif token == "]":
            if depth == 0:
                groups.append([])
                # skip the `[` that opens the next rank
                if i + 1 < len(dimensions) and dimensions[i + 1] == "[":
                    i += 1
            else:
                depth -= 1
                groups[-1].append(token)
        else:
            groups[-1].append(token)
        i += 1
    return [tuple(g) for g in groups]


def join_tokens(tokens: TypeTokens) -> str:
    return " ".join(tokens)


def format_dimensions(dimensions: TypeTokens) -> str:
    """Render dimension tokens as C array suffixes: `[2][3]`."""
    return "".join(f"[{join_tokens(group)}]" for group in split_dimensions(dimensions))
