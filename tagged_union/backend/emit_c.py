# backend/emit_c.py
"""C header emitter.

Payload structs and unions are emitted once per header, in dependency
order, followed by the tag table, the union and the record of every enum.
The layout computed in backend.layout is pinned with _Static_assert so a
compiler with a different ABI fails loudly instead of silently.
"""
from __future__ import annotations
import re
from typing import List, Sequence

from tagged_union.backend.declarations import DeclarationBundle
from tagged_union.backend.layout import C_KEYWORDS, layout_of
from tagged_union.internals.errors import raise_internal_error
from tagged_union.semantics.typesys import (
    ArrayType, BuiltinType, NamedType, PayloadType, PointerType, ReferenceType,
    StructType, UnionType,
)

INDENT = "    "

C_BUILTINS = {
    BuiltinType.BOOL: "bool",
    BuiltinType.CHAR: "uint32_t",
    BuiltinType.I8: "int8_t",
    BuiltinType.I16: "int16_t",
    BuiltinType.I32: "int32_t",
    BuiltinType.I64: "int64_t",
    BuiltinType.ISIZE: "intptr_t",
    BuiltinType.U8: "uint8_t",
    BuiltinType.U16: "uint16_t",
    BuiltinType.U32: "uint32_t",
    BuiltinType.U64: "uint64_t",
    BuiltinType.USIZE: "uintptr_t",
    BuiltinType.F32: "float",
    BuiltinType.F64: "double",
}


def c_identifier(name: str) -> str:
    """Make a field or type name usable in C."""
    name = re.sub(r"[^A-Za-z0-9_]", "_", name)
    if name[:1].isdigit():
        name = "_" + name
    if name in C_KEYWORDS:
        name += "_"
    return name


def c_decl(t: PayloadType, name: str) -> str:
    """Declaration of `name` with type `t`, declarator syntax included."""
    match t:
        case BuiltinType.UNIT:
            return f"uint8_t {name}[0]"
        case BuiltinType():
            return f"{C_BUILTINS[t]} {name}"
        case ArrayType():
            return c_decl(t.element, f"{name}[{t.length}]")
        case PointerType() | ReferenceType():
            target = t.pointee if isinstance(t, PointerType) else t.referent
            mutable = isinstance(t, PointerType) and t.mutable
            inner = f"*{name}" if mutable else f"const *{name}"
            if isinstance(target, ArrayType):
                inner = f"({inner})"
            if target is BuiltinType.UNIT:
                return f"void {inner}"
            return c_decl(target, inner)
        case NamedType():
            if t.name == "c_void":
                return f"void {name}"
            return f"struct {c_identifier(t.name)} {name}"
        case StructType() | UnionType():
            return f"{t.name} {name}"
    raise_internal_error("TU0003", target="C", type=str(t))


class CEmitter:
    def __init__(self, header: str = "") -> None:
        self.header = header

    def emit(self, bundle: DeclarationBundle, guard: str = "") -> str:
        return self.emit_many([bundle], guard)

    def emit_many(self, bundles: Sequence[DeclarationBundle], guard: str = "") -> str:
        guard = guard or _guard_for(bundles)
        out: List[str] = []
        if self.header:
            out += [f"/* {self.header} */", ""]
        out += [
            f"#ifndef {guard}",
            f"#define {guard}",
            "",
            "#include <stdbool.h>",
            "#include <stddef.h>",
            "#include <stdint.h>",
            "",
        ]

        emitted: List[PayloadType] = []
        for b in bundles:
            for agg in b.aggregates():
                if agg not in emitted:
                    emitted.append(agg)
                    out += self._aggregate(agg)
                    out.append("")

        for b in bundles:
            out += self._tags(b)
            out.append("")
            out += self._union(b)
            out.append("")
            out += self._record(b)
            out.append("")
            out += self._checks(b)
            out.append("")

        out.append(f"#endif /* {guard} */")
        return "\n".join(out) + "\n"

    def _aggregate(self, t: PayloadType) -> List[str]:
        keyword = "union" if isinstance(t, UnionType) else "struct"
        attrs = []
        pack = t.packed if isinstance(t, StructType) else 0
        if pack == 1:
            attrs.append("packed")
        if t.min_align > 1:
            attrs.append(f"aligned({t.min_align})")
        suffix = f" __attribute__(({', '.join(attrs)}))" if attrs else ""

        lines = [f"typedef {keyword} {t.name} {{"]
        for fname, ft in t.fields:
            lines.append(f"{INDENT}{c_decl(ft, c_identifier(fname))};")
        lines.append(f"}}{suffix} {t.name};")
        if pack > 1:
            # packed(N) caps field alignment at N, which only the pragma expresses
            lines = [f"#pragma pack(push, {pack})", *lines, "#pragma pack(pop)"]
        tl = layout_of(t)
        lines.append(f'_Static_assert(sizeof({t.name}) == {tl.size}, "{t.name} size");')
        return lines

    def _tags(self, b: DeclarationBundle) -> List[str]:
        return [f"#define {t.name} UINT32_C({t.number})" for t in b.tags]

    def _union(self, b: DeclarationBundle) -> List[str]:
        lines = [f"typedef union {b.union.name} {{"]
        for f in b.union.fields:
            lines.append(f"{INDENT}{c_decl(f.payload, f.name)};")
        lines.append(f"}} {b.union.name};")
        return lines

    def _record(self, b: DeclarationBundle) -> List[str]:
        return [
            f"typedef struct {b.record.name} {{",
            f"{INDENT}uint32_t tag;",
            f"{INDENT}{b.union.name} kind;",
            f"}} {b.record.name};",
        ]

    def _checks(self, b: DeclarationBundle) -> List[str]:
        rec = b.record
        return [
            f"static inline bool {rec.name}_tag_is_valid(const {rec.name} *rec) {{",
            f"{INDENT}return rec->tag < UINT32_C({b.tag_count});",
            "}",
            "",
            f'_Static_assert(sizeof({rec.name}) == {rec.size}, "{rec.name} size");',
            f'_Static_assert(offsetof({rec.name}, kind) == {rec.kind_offset}, "{rec.name} kind offset");',
        ]


def _guard_for(bundles: Sequence[DeclarationBundle]) -> str:
    names = "_".join(b.sum_type.upper() for b in bundles) or "TAGGED"
    return f"{names}_TAGGED_H"
