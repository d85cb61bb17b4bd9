"""Emitters that render resolved definitions as binding declarations.

- text: the canonical line format (`name = type`, `identifier[=value]`,
  `identifier: type[dimension]`)
- rust: `#[repr(C)]` declarations using `core::ffi` types; anything whose C
  layout cannot be reproduced becomes an opaque zero-sized struct
"""

import re

from .diagnostics import DiagnosticKind, Diagnostics
from .logging import get_logger
from .parser.tokenizer import tokenize
from .types import (
    AGGREGATE_KEYWORDS,
    AliasDef,
    Definition,
    EnumDef,
    Member,
    StructDef,
    TypeTokens,
    c_primitive,
    format_dimensions,
    join_tokens,
    referenced_type_name,
    split_dimensions,
    split_pointer,
    type_words,
)

logger = get_logger("emitters")

INDENT = "    "


class Emitter:
    """Collects rendered declarations in the order definitions are emitted."""

    name = ""
    description = ""

    def __init__(self, diagnostics: Diagnostics | None = None):
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.blocks: list[str] = []
        self.emitted: list[str] = []

    def emit(self, definition: Definition) -> None:
        if isinstance(definition, AliasDef):
            block = self.render_alias(definition)
        elif isinstance(definition, EnumDef):
            block = self.render_enum(definition)
        else:
            block = self.render_struct(definition)
        self.blocks.append(block)
        self.emitted.append(definition.name)

    def render_alias(self, alias: AliasDef) -> str:
        raise NotImplementedError

    def render_enum(self, enum: EnumDef) -> str:
        raise NotImplementedError

    def render_struct(self, struct: StructDef) -> str:
        raise NotImplementedError

    def preamble(self) -> list[str]:
        return []

    def render(self) -> str:
        """Full output: preamble followed by every emitted block."""
        parts = self.preamble() + self.blocks
        return "\n".join(parts) + "\n" if parts else ""


class TextEmitter(Emitter):
    name = "text"
    description = "Plain declaration listing (name = type, identifier: type[dim])"

    def render_alias(self, alias: AliasDef) -> str:
        text = f"{alias.name} = {join_tokens(alias.target)}"
        if alias.dimensions is not None:
            text += format_dimensions(alias.dimensions)
        return text

    def render_enum(self, enum: EnumDef) -> str:
        lines = [f"enum {enum.name} {{"]
        for value in enum.values:
            if value.value is None:
                lines.append(f"{INDENT}{value.identifier}")
            else:
                lines.append(f"{INDENT}{value.identifier}={value.value}")
        lines.append("}")
        return "\n".join(lines)

    def render_struct(self, struct: StructDef) -> str:
        keyword = "union" if struct.is_union else "struct"
        lines = [f"{keyword} {struct.name} {{"]
        for member in struct.members:
            lines.append(f"{INDENT}{self.render_member(member)}")
        lines.append("}")
        return "\n".join(lines)

    def render_member(self, member: Member) -> str:
        text = f"{member.identifier}: {join_tokens(member.base_type)}"
        if member.dimensions is not None:
            text += format_dimensions(member.dimensions)
        if member.bit_width is not None:
            text += f" : {member.bit_width}"
        return text


# =============================================================================
# Rust
# =============================================================================

RUST_PRIMITIVES = {
    "void": "c_void",
    "char": "c_char",
    "signed char": "c_schar",
    "unsigned char": "c_uchar",
    "short": "c_short",
    "unsigned short": "c_ushort",
    "int": "c_int",
    "unsigned int": "c_uint",
    "long": "c_long",
    "unsigned long": "c_ulong",
    "long long": "c_longlong",
    "unsigned long long": "c_ulonglong",
    "float": "c_float",
    "double": "c_double",
    # Rust has no extended-precision float
    "long double": "f64",
    "_Bool": "bool",
    "__int8": "i8",
    "unsigned __int8": "u8",
    "__int16": "i16",
    "unsigned __int16": "u16",
    "__int32": "i32",
    "unsigned __int32": "u32",
    "__int64": "i64",
    "unsigned __int64": "u64",
}

RUST_KEYWORDS = frozenset(
    {
        "as", "async", "await", "box", "break", "const", "continue", "dyn", "else",
        "enum", "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop",
        "match", "mod", "move", "mut", "pub", "ref", "return", "static", "struct",
        "trait", "true", "type", "unsafe", "use", "where", "while", "abstract",
        "become", "do", "final", "macro", "override", "priv", "try", "typeof",
        "unsized", "virtual", "yield",
    }
)

# Keywords that cannot be raw identifiers
_RUST_RESERVED = frozenset({"self", "Self", "super", "crate", "_"})

_INTEGER_SUFFIX = re.compile(r"^(0[xX][0-9a-fA-F]+|[0-9]+)[uUlL]+$")
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def rust_ident(name: str) -> str:
    if name in _RUST_RESERVED:
        return f"{name}_"
    if name in RUST_KEYWORDS:
        return f"r#{name}"
    return name


def rust_type(tokens: TypeTokens, dimensions: TypeTokens | None = None) -> str | None:
    """
    Translate C type tokens to a Rust type, or None if they cannot be.

    Pointer constness follows the pointee: `const char * const *` becomes
    `*const *const c_char`.
    """
    if "{" in tokens or "(" in tokens:
        return None
    base, pointer = split_pointer(tokens)
    words = type_words(base)
    if not words:
        return None

    primitive = c_primitive(words)
    if primitive is not None:
        result = RUST_PRIMITIVES[primitive]
    else:
        result = rust_ident("_".join(words))

    levels = []
    pointee_const = "const" in base
    for token in pointer:
        if token == "*":
            levels.append(pointee_const)
            pointee_const = False
        elif token == "const":
            pointee_const = True
    for is_const in levels:
        result = f"*{'const' if is_const else 'mut'} {result}"

    if dimensions is not None:
        for group in reversed(split_dimensions(dimensions)):
            length = rust_expression(group) or "0"
            result = f"[{result}; {length}]"
    return result


def rust_expression(tokens: TypeTokens) -> str:
    """Render C expression tokens, dropping integer suffixes (`10UL` -> `10`)."""
    rendered = []
    for token in tokens:
        match = _INTEGER_SUFFIX.match(token)
        if match:
            rendered.append(match.group(1))
        elif _IDENTIFIER.fullmatch(token):
            rendered.append(rust_ident(token))
        else:
            rendered.append(token)
    return " ".join(rendered)


def opaque_struct(name: str) -> str:
    return "\n".join(
        ["#[repr(C)]", f"pub struct {name} {{", f"{INDENT}_private: [u8; 0],", "}", ""]
    )


class RustEmitter(Emitter):
    """
    Rust FFI declarations.

    Enums become a `c_int` type alias plus one constant per enumerator, so
    enumerators may share values or refer to each other as they do in C.
    Structs with bit-fields, inline aggregates or by-value opaque members
    cannot be laid out faithfully and are emitted as opaque zero-sized structs
    with an `unrepresentable-type` diagnostic. Aggregate tags that are only
    referenced (`typedef struct _Handle *Handle;`) are declared opaque too.
    """

    name = "rust"
    description = "Rust FFI declarations (#[repr(C)] structs and unions, c_int enums)"

    def __init__(self, diagnostics: Diagnostics | None = None):
        super().__init__(diagnostics)
        # Tag name -> aggregate keyword, for tags used in rendered types
        self.tags: dict[str, str] = {}
        self.opaque: set[str] = set()

    def preamble(self) -> list[str]:
        return [
            "#![allow(non_camel_case_types, non_snake_case, non_upper_case_globals)]",
            "#![allow(dead_code)]",
            "",
            "use core::ffi::*;",
            "",
        ]

    def render(self) -> str:
        parts = self.preamble() + self.undeclared_tags() + self.blocks
        return "\n".join(parts) + "\n"

    def undeclared_tags(self) -> list[str]:
        """Opaque declarations for referenced tags no definition provided."""
        emitted = set(self.emitted)
        blocks = []
        for tag, keyword in self.tags.items():
            if tag in emitted:
                continue
            logger.debug("Declaring opaque %s %s", keyword, tag)
            if keyword == "enum":
                blocks.append(f"pub type {rust_ident(tag)} = c_int;\n")
            else:
                blocks.append(opaque_struct(rust_ident(tag)))
        return blocks

    def _note_tags(self, tokens: TypeTokens) -> None:
        for keyword, tag in zip(tokens, tokens[1:]):
            if keyword in AGGREGATE_KEYWORDS and _IDENTIFIER.fullmatch(tag):
                self.tags.setdefault(tag, keyword)

    def _report(self, name: str, reason: str) -> None:
        self.diagnostics.report(
            DiagnosticKind.UNREPRESENTABLE_TYPE, f"{name}: {reason}; no Rust layout emitted"
        )

    def render_alias(self, alias: AliasDef) -> str:
        name = rust_ident(alias.name)
        if alias.is_forward_declaration:
            self.opaque.add(alias.name)
            return opaque_struct(name)
        target = rust_type(alias.target, alias.dimensions)
        if target is None:
            self._report(alias.name, f"unsupported type {join_tokens(alias.target)}")
            return f"// {alias.name}: unsupported type {join_tokens(alias.target)}\n"
        self._note_tags(alias.target)
        if "*" not in alias.target and referenced_type_name(alias.target) in self.opaque:
            self.opaque.add(alias.name)
        return f"pub type {name} = {target};\n"

    def render_enum(self, enum: EnumDef) -> str:
        name = rust_ident(enum.name)
        lines = [f"pub type {name} = c_int;"]
        previous = None
        for value in enum.values:
            constant = rust_ident(value.identifier)
            if value.value is not None:
                expression = rust_expression(tuple(tokenize(value.value)))
            elif previous is None:
                expression = "0"
            else:
                expression = f"{previous} + 1"
            lines.append(f"pub const {constant}: {name} = {expression};")
            previous = constant
        lines.append("")
        return "\n".join(lines)

    def render_struct(self, struct: StructDef) -> str:
        reason = self._unrepresentable(struct)
        if reason is not None:
            self._report(struct.name, reason)
            self.opaque.add(struct.name)
            return f"// {struct.name}: {reason}\n" + opaque_struct(rust_ident(struct.name))

        keyword = "union" if struct.is_union else "struct"
        lines = [
            "#[repr(C)]",
            "#[derive(Copy, Clone)]",
            f"pub {keyword} {rust_ident(struct.name)} {{",
        ]
        for member in struct.members:
            lines.append(f"{INDENT}{self.render_member(member)}")
        lines.extend(["}", ""])
        return "\n".join(lines)

    def _unrepresentable(self, struct: StructDef) -> str | None:
        """Why `struct` has no faithful Rust layout, or None if it has one."""
        for member in struct.members:
            if member.callback:
                continue
            if member.bit_width is not None:
                return f"bit-field {member.identifier}"
            if rust_type(member.base_type, member.dimensions) is None:
                return f"member {member.identifier} has no Rust type"
            referenced = member.referenced_name
            if "*" not in member.base_type and referenced in self.opaque:
                return f"member {member.identifier} embeds opaque {referenced}"
        return None

    def render_member(self, member: Member) -> str:
        name = rust_ident(member.identifier)
        if member.callback:
            return f"pub {name}: *mut c_void,"
        self._note_tags(member.base_type)
        return f"pub {name}: {rust_type(member.base_type, member.dimensions)},"


EMITTERS: dict[str, type[Emitter]] = {
    TextEmitter.name: TextEmitter,
    RustEmitter.name: RustEmitter,
}


def create_emitter(target: str, diagnostics: Diagnostics | None = None) -> Emitter:
    """Create the emitter for `target`. Raises ValueError for unknown targets."""
    try:
        return EMITTERS[target](diagnostics)
    except KeyError:
        raise ValueError(
            f"Unknown target '{target}'. Must be one of: {sorted(EMITTERS)}"
        ) from None
