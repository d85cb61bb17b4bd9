"""Tests for output emitters."""

import pytest

from cheader_bindgen.diagnostics import DiagnosticKind, Diagnostics
from cheader_bindgen.emitters import (
    RustEmitter,
    TextEmitter,
    create_emitter,
    rust_expression,
    rust_ident,
    rust_type,
)
from cheader_bindgen.types import AliasDef, EnumDef, EnumValue, Member, StructDef

POINT = StructDef(
    name="Point",
    members=(
        Member(identifier="x", base_type=("int",)),
        Member(identifier="tag", base_type=("char",), dimensions=("8",)),
        Member(identifier="flags", base_type=("unsigned", "int"), bit_width="3"),
    ),
)

COLOR = EnumDef(name="Color", values=(EnumValue("RED", "1"), EnumValue("GREEN")))


class TestTextEmitter:
    """Tests for the canonical text format."""

    def test_alias(self):
        """Should render name = target."""
        emitter = TextEmitter()
        emitter.emit(AliasDef(name="Handle", target=("struct", "_Handle", "*")))
        assert emitter.render() == "Handle = struct _Handle *\n"

    def test_array_alias(self):
        """Should append dimensions to array aliases."""
        emitter = TextEmitter()
        emitter.emit(AliasDef(name="Grid", target=("int",), dimensions=("2", "]", "[", "3")))
        assert emitter.blocks == ["Grid = int[2][3]"]

    def test_enum(self):
        """Should render one identifier[=value] line per enumerator."""
        emitter = TextEmitter()
        emitter.emit(COLOR)
        assert emitter.blocks == ["enum Color {\n    RED=1\n    GREEN\n}"]

    def test_struct(self):
        """Should render members with dimensions and bit widths."""
        emitter = TextEmitter()
        emitter.emit(POINT)
        assert emitter.blocks[0].splitlines() == [
            "struct Point {",
            "    x: int",
            "    tag: char[8]",
            "    flags: unsigned int : 3",
            "}",
        ]

    def test_union(self):
        """Should use the union keyword for union definitions."""
        emitter = TextEmitter()
        emitter.emit(StructDef(name="U", members=(), is_union=True))
        assert emitter.blocks == ["union U {\n}"]

    def test_empty_render(self):
        """Should render nothing when nothing was emitted."""
        assert TextEmitter().render() == ""


class TestRustTypes:
    """Tests for C to Rust type translation."""

    @pytest.mark.parametrize(
        "tokens,expected",
        [
            (("int",), "c_int"),
            (("unsigned",), "c_uint"),
            (("unsigned", "long"), "c_ulong"),
            (("long", "long", "int"), "c_longlong"),
            (("signed", "char"), "c_schar"),
            (("long", "double"), "f64"),
            (("unsigned", "__int64"), "u64"),
            (("void", "*"), "*mut c_void"),
            (("const", "char", "*"), "*const c_char"),
            (("const", "char", "*", "const", "*"), "*const *const c_char"),
            (("struct", "Node", "*"), "*mut Node"),
        ],
    )
    def test_rust_type(self, tokens, expected):
        """Should map builtins to core::ffi types and render pointers."""
        assert rust_type(tokens) == expected

    def test_arrays(self):
        """Should nest arrays with the outermost rank first."""
        assert rust_type(("char",), ("8",)) == "[c_char; 8]"
        assert rust_type(("int",), ("2", "]", "[", "3")) == "[[c_int; 3]; 2]"

    def test_inline_aggregate_unsupported(self):
        """Should return None for types with an inline body."""
        assert rust_type(("union", "{", "int", "a", ";", "}")) is None

    def test_keywords_escaped(self):
        """Should escape keywords as raw identifiers."""
        assert rust_ident("type") == "r#type"
        assert rust_ident("self") == "self_"
        assert rust_ident("value") == "value"

    def test_integer_suffix_dropped(self):
        """Should strip C integer suffixes."""
        assert rust_expression(("10UL", "+", "0x1Fu")) == "10 + 0x1F"


class TestRustEmitter:
    """Tests for Rust declarations."""

    def test_preamble(self):
        """Should import core::ffi types."""
        emitter = RustEmitter()
        emitter.emit(AliasDef(name="DWORD", target=("unsigned", "long")))
        output = emitter.render()
        assert "use core::ffi::*;" in output
        assert "pub type DWORD = c_ulong;" in output

    def test_forward_declaration_is_opaque(self):
        """Should emit a zero-sized struct for an opaque alias."""
        emitter = RustEmitter()
        emitter.emit(AliasDef(name="Foo", target=("struct", "Foo")))
        assert "pub struct Foo {" in emitter.blocks[0]
        assert "_private: [u8; 0]," in emitter.blocks[0]

    def test_undeclared_tag_declared_opaque(self):
        """Should declare a pointed-to tag that nothing defines."""
        emitter = RustEmitter()
        emitter.emit(AliasDef(name="Handle", target=("struct", "_Handle", "*")))
        output = emitter.render()
        assert "pub type Handle = *mut _Handle;" in output
        assert "pub struct _Handle {\n    _private: [u8; 0],\n}" in output
        assert output.index("pub struct _Handle") < output.index("pub type Handle")

    def test_defined_tag_not_redeclared(self):
        """Should not add an opaque struct for a tag that was emitted."""
        emitter = RustEmitter()
        emitter.emit(StructDef(name="Node", members=(Member("next", ("struct", "Node", "*")),)))
        emitter.emit(AliasDef(name="PNode", target=("struct", "Node", "*")))
        assert emitter.render().count("pub struct Node {") == 1

    def test_undeclared_enum_tag(self):
        """Should declare an undefined enum tag as c_int."""
        emitter = RustEmitter()
        emitter.emit(StructDef(name="S", members=(Member("mode", ("enum", "Mode")),)))
        assert "pub type Mode = c_int;" in emitter.render()

    def test_enum(self):
        """Should emit a c_int type and one constant per enumerator."""
        emitter = RustEmitter()
        emitter.emit(COLOR)
        assert emitter.blocks[0].splitlines() == [
            "pub type Color = c_int;",
            "pub const RED: Color = 1;",
            "pub const GREEN: Color = RED + 1;",
        ]

    def test_enum_sibling_references_and_duplicates(self):
        """Should allow enumerators that reuse or refer to earlier values."""
        emitter = RustEmitter()
        values = (
            EnumValue("A"),
            EnumValue("X", "1 << 4"),
            EnumValue("Y", "X | 2"),
            EnumValue("LAST", "Y"),
            EnumValue("type"),
        )
        emitter.emit(EnumDef(name="E", values=values))
        assert emitter.blocks[0].splitlines() == [
            "pub type E = c_int;",
            "pub const A: E = 0;",
            "pub const X: E = 1 << 4;",
            "pub const Y: E = X | 2;",
            "pub const LAST: E = Y;",
            "pub const r#type: E = LAST + 1;",
        ]

    def test_empty_enum(self):
        """Should emit only the c_int type for an enum without enumerators."""
        emitter = RustEmitter()
        emitter.emit(EnumDef(name="Empty", values=()))
        assert emitter.blocks == ["pub type Empty = c_int;\n"]

    def test_struct(self):
        """Should emit repr(C) fields with Rust types."""
        emitter = RustEmitter()
        emitter.emit(
            StructDef(
                name="Point",
                members=(
                    Member(identifier="x", base_type=("int",)),
                    Member(identifier="tag", base_type=("char",), dimensions=("8",)),
                ),
            )
        )
        block = emitter.blocks[0]
        assert block.startswith("#[repr(C)]\n#[derive(Copy, Clone)]\npub struct Point {")
        assert "    pub x: c_int," in block
        assert "    pub tag: [c_char; 8]," in block
        assert len(emitter.diagnostics) == 0

    def test_bit_fields_make_struct_opaque(self):
        """Should not emit a field layout for a struct with bit-fields."""
        emitter = RustEmitter()
        emitter.emit(POINT)
        block = emitter.blocks[0]
        assert block.startswith("// Point: bit-field flags\n")
        assert "pub struct Point {\n    _private: [u8; 0],\n}" in block
        assert "pub x" not in block
        errors = emitter.diagnostics.of_kind(DiagnosticKind.UNREPRESENTABLE_TYPE)
        assert len(errors) == 1
        assert errors[0].message.startswith("Point: bit-field flags")

    def test_inline_aggregate_makes_struct_opaque(self):
        """Should not drop an inline nested aggregate from a repr(C) struct."""
        emitter = RustEmitter()
        inner = Member(identifier="in", base_type=("struct", "{", "int", "x", ";", "}"))
        emitter.emit(StructDef(name="S", members=(inner, Member("y", ("int",)))))
        block = emitter.blocks[0]
        assert "pub y" not in block
        assert "_private: [u8; 0]," in block
        assert emitter.diagnostics.counts() == {"unrepresentable-type": 1}

    def test_opaque_member_by_value(self):
        """Should make a struct opaque when it embeds an opaque struct by value."""
        emitter = RustEmitter()
        emitter.emit(POINT)
        emitter.emit(
            StructDef(
                name="Line",
                members=(Member("a", ("Point",)), Member("next", ("Point", "*"))),
            )
        )
        assert "embeds opaque Point" in emitter.blocks[1]
        emitter.emit(StructDef(name="Ref", members=(Member("p", ("Point", "*")),)))
        assert "    pub p: *mut Point," in emitter.blocks[2]

    def test_unsupported_alias_reported(self):
        """Should report an alias without a Rust type."""
        emitter = RustEmitter()
        emitter.emit(AliasDef(name="Blob", target=("struct", "{", "int", "a", ";", "}")))
        assert emitter.blocks[0].startswith("// Blob: unsupported type")
        assert len(emitter.diagnostics.of_kind(DiagnosticKind.UNREPRESENTABLE_TYPE)) == 1

    def test_union_and_callback(self):
        """Should emit unions and render callbacks as opaque pointers."""
        emitter = RustEmitter()
        callback = Member(
            identifier="cb", base_type=("void", "(", "*", ")", "(", "int", ")"), callback=True
        )
        emitter.emit(StructDef(name="V", members=(callback,), is_union=True))
        assert "pub union V {" in emitter.blocks[0]
        assert "pub cb: *mut c_void," in emitter.blocks[0]


class TestCreateEmitter:
    """Tests for emitter lookup."""

    def test_known_targets(self):
        """Should create emitters by name."""
        assert isinstance(create_emitter("text"), TextEmitter)
        assert isinstance(create_emitter("rust"), RustEmitter)

    def test_shared_diagnostics(self):
        """Should report into the collector it was created with."""
        diagnostics = Diagnostics()
        emitter = create_emitter("rust", diagnostics)
        emitter.emit(POINT)
        assert len(diagnostics) == 1

    def test_unknown_target(self):
        """Should reject unknown targets."""
        with pytest.raises(ValueError, match="Unknown target"):
            create_emitter("cobol")
