# backend/emit_rust.py
"""Rust source emitter.

Emits the tag constants, the `#[repr(C)]` union and record, and an
`impl ::tagged_union::TaggedUnion` for the enum. The output is meant to be
`include!`d next to the enum declaration it was generated from.
"""
from __future__ import annotations
from typing import List

from tagged_union.backend.declarations import DeclarationBundle
from tagged_union.internals.errors import raise_internal_error
from tagged_union.semantics.typesys import (
    ArrayType, BuiltinType, NamedType, PayloadType, PointerType, ReferenceType,
    StructType, UnionType,
)

TRAIT_PATH = "::tagged_union::TaggedUnion"
INVALID_TAG_PATH = "::tagged_union::InvalidTag"

INDENT = "    "


def rust_type(t: PayloadType) -> str:
    match t:
        case BuiltinType():
            return t.value
        case NamedType():
            return "::core::ffi::c_void" if t.name == "c_void" else t.name
        case ArrayType():
            return f"[{rust_type(t.element)}; {t.length}]"
        case PointerType():
            return f"*{'mut' if t.mutable else 'const'} {rust_type(t.pointee)}"
        case ReferenceType():
            # The enum has no lifetime parameters, so only 'static can appear here
            lifetime = t.lifetime or "'static"
            return f"&{lifetime} {rust_type(t.referent)}"
        case StructType() | UnionType():
            return t.name
    raise_internal_error("TU0003", target="Rust", type=str(t))


class RustEmitter:
    def __init__(self, header: str = "") -> None:
        self.header = header

    def emit(self, bundle: DeclarationBundle) -> str:
        return self.emit_many([bundle])

    def emit_many(self, bundles) -> str:
        """One file for several enums, each section separated by a blank line."""
        sections = [self._body(b) for b in bundles]
        if self.header:
            sections.insert(0, f"// {self.header}\n")
        return "\n".join(sections)

    def _body(self, bundle: DeclarationBundle) -> str:
        out: List[str] = []
        out.extend(self._tags(bundle))
        out.append("")
        out.extend(self._union(bundle))
        out.append("")
        out.extend(self._record(bundle))
        out.append("")
        out.extend(self._impl(bundle))
        return "\n".join(out) + "\n"

    def _tags(self, b: DeclarationBundle) -> List[str]:
        return [f"pub const {t.name}: u32 = {t.number};" for t in b.tags]

    def _union(self, b: DeclarationBundle) -> List[str]:
        lines = ["#[repr(C)]", "#[derive(Clone, Copy)]", f"pub union {b.union.name} {{"]
        for f in b.union.fields:
            lines.append(f"{INDENT}pub {f.name}: {rust_type(f.payload)},")
        lines.append("}")
        return lines

    def _record(self, b: DeclarationBundle) -> List[str]:
        return [
            "#[repr(C)]",
            "#[derive(Clone, Copy)]",
            f"pub struct {b.record.name} {{",
            f"{INDENT}pub tag: u32,",
            f"{INDENT}pub kind: {b.union.name},",
            "}",
        ]

    def _impl(self, b: DeclarationBundle) -> List[str]:
        c = b.contract
        i2, i3, i4 = INDENT * 2, INDENT * 3, INDENT * 4
        lines = [
            f"impl {TRAIT_PATH} for {c.sum_type} {{",
            f"{INDENT}type Target = {c.target};",
            "",
            f"{INDENT}fn as_tagged(&self) -> {c.target} {{",
            f"{i2}match *self {{",
        ]
        for arm in c.arms:
            if arm.is_unit:
                pattern, value = f"{c.sum_type}::{arm.variant}", "()"
            else:
                pattern, value = f"{c.sum_type}::{arm.variant}(value)", "value"
            lines.append(f"{i3}{pattern} => {c.target} {{")
            lines.append(f"{i4}tag: {arm.tag.name},")
            lines.append(f"{i4}kind: {c.union} {{ {arm.field}: {value} }},")
            lines.append(f"{i3}}},")
        lines += [
            f"{i2}}}",
            f"{INDENT}}}",
            "",
            f"{INDENT}unsafe fn from_tagged(tagged: &{c.target}) -> Result<Self, {INVALID_TAG_PATH}> {{",
            f"{i2}match tagged.tag {{",
        ]
        for arm in c.arms:
            if arm.is_unit:
                lines.append(f"{i3}{arm.tag.name} => Ok({c.sum_type}::{arm.variant}),")
            else:
                lines.append(f"{i3}{arm.tag.name} => Ok({c.sum_type}::{arm.variant}(tagged.kind.{arm.field})),")
        lines += [
            f"{i3}got => Err({INVALID_TAG_PATH} {{",
            f"{i4}got,",
            f"{i4}possible_tags: {c.possible_tags.start}..{c.possible_tags.stop},",
            f"{i3}}}),",
            f"{i2}}}",
            f"{INDENT}}}",
            "}",
        ]
        return lines

