# backend/layout.py
"""Layout synthesis: the raw union and the tagged record.

Sizes and alignments follow C struct and union rules on a 64-bit target.
This module is the single source of truth for them; every emitter reads
the numbers computed here instead of asking its own toolchain.
"""
from __future__ import annotations
import keyword
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Tuple

from tagged_union.backend.constants import (
    BOOL_SIZE_BYTES, CHAR_SIZE_BYTES, POINTER_SIZE_BYTES, TAG_SIZE_BYTES,
)
from tagged_union.internals.errors import raise_internal_error
from tagged_union.semantics.passes.typemap import TypeMap
from tagged_union.semantics.typesys import (
    ArrayType, BuiltinType, NamedType, PayloadType, PointerType, ReferenceType,
    StructType, UnionType,
)


RUST_KEYWORDS = {
    "as", "async", "await", "break", "const", "continue", "crate", "dyn", "else",
    "enum", "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop",
    "match", "mod", "move", "mut", "pub", "ref", "return", "self", "static",
    "struct", "super", "trait", "true", "type", "union", "unsafe", "use",
    "where", "while", "abstract", "become", "box", "do", "final", "macro",
    "override", "priv", "try", "typeof", "unsized", "virtual", "yield",
}

C_KEYWORDS = {
    "auto", "break", "case", "char", "const", "continue", "default", "do",
    "double", "else", "enum", "extern", "float", "for", "goto", "if", "inline",
    "int", "long", "register", "restrict", "return", "short", "signed",
    "sizeof", "static", "struct", "switch", "typedef", "union", "unsigned",
    "void", "volatile", "while", "bool", "true", "false", "alignas", "alignof",
    "static_assert", "thread_local",
}

# Python keywords, plus ctypes.Union internals a field would shadow
PY_RESERVED = set(keyword.kwlist) | {"_fields_", "_pack_", "_anonymous_"}

RESERVED_FIELD_NAMES = RUST_KEYWORDS | C_KEYWORDS | PY_RESERVED


@dataclass(frozen=True)
class TypeLayout:
    size: int
    align: int
    offsets: Tuple[int, ...] = ()       # per field, structs only


@dataclass(frozen=True)
class UnionField:
    name: str                           # lower-cased first variant of the entry
    payload: PayloadType
    variants: Tuple[str, ...]
    size: int
    align: int


@dataclass(frozen=True)
class RawUnion:
    name: str                           # <Sum>Kind
    fields: Tuple[UnionField, ...]
    size: int
    align: int

    def field_for(self, variant: str) -> UnionField:
        for f in self.fields:
            if variant in f.variants:
                return f
        raise KeyError(variant)


@dataclass(frozen=True)
class TaggedRecord:
    """`{ tag: u32, kind: <Sum>Kind }` laid out as a C struct."""
    name: str                           # Tagged<Sum>
    union: RawUnion
    size: int
    align: int
    tag_offset: int = 0
    kind_offset: int = TAG_SIZE_BYTES


def round_up(n: int, align: int) -> int:
    return (n + align - 1) // align * align


@lru_cache(maxsize=None)
def layout_of(t: PayloadType) -> TypeLayout:
    """Size and alignment of a payload type.

    Unit and empty structs are zero-sized with alignment 1.
    """
    if isinstance(t, BuiltinType):
        match t:
            case BuiltinType.UNIT:
                return TypeLayout(0, 1)
            case BuiltinType.I8 | BuiltinType.U8:
                return TypeLayout(1, 1)
            case BuiltinType.BOOL:
                return TypeLayout(BOOL_SIZE_BYTES, BOOL_SIZE_BYTES)
            case BuiltinType.I16 | BuiltinType.U16:
                return TypeLayout(2, 2)
            case BuiltinType.I32 | BuiltinType.U32 | BuiltinType.F32:
                return TypeLayout(4, 4)
            case BuiltinType.CHAR:
                return TypeLayout(CHAR_SIZE_BYTES, CHAR_SIZE_BYTES)
            case BuiltinType.I64 | BuiltinType.U64 | BuiltinType.F64:
                return TypeLayout(8, 8)
            case BuiltinType.ISIZE | BuiltinType.USIZE:
                return TypeLayout(POINTER_SIZE_BYTES, POINTER_SIZE_BYTES)

    match t:
        case PointerType() | ReferenceType():
            return TypeLayout(POINTER_SIZE_BYTES, POINTER_SIZE_BYTES)
        case ArrayType():
            element = layout_of(t.element)
            return TypeLayout(element.size * t.length, element.align)
        case StructType():
            return _struct_layout(t)
        case UnionType():
            size, align = 0, max(1, t.min_align)
            for _, ft in t.fields:
                fl = layout_of(ft)
                size = max(size, fl.size)
                align = max(align, fl.align)
            return TypeLayout(round_up(size, align), align)
        case NamedType():
            # only reachable behind a pointer
            raise_internal_error("TU0002", type=str(t))
    raise_internal_error("TU0002", type=str(t))


def _struct_layout(t: StructType) -> TypeLayout:
    offset = 0
    max_align = 1
    offsets: List[int] = []
    for _, ft in t.fields:
        fl = layout_of(ft)
        field_align = min(fl.align, t.packed) if t.packed else fl.align
        offset = round_up(offset, field_align)
        offsets.append(offset)
        offset += fl.size
        max_align = max(max_align, field_align)
    max_align = max(max_align, t.min_align)
    return TypeLayout(round_up(offset, max_align), max_align, tuple(offsets))


def field_name(variant: str, taken: set) -> str:
    """Union field name for the entry whose first variant is `variant`."""
    name = variant.lower()
    while name in taken or name in RESERVED_FIELD_NAMES:
        name += "_"
    return name


def union_name(enum_name: str) -> str:
    return f"{enum_name}Kind"


def record_name(enum_name: str) -> str:
    return f"Tagged{enum_name}"


def synthesize_layout(enum_name: str, type_map: TypeMap) -> Tuple[RawUnion, TaggedRecord]:
    taken: set = set()
    fields: List[UnionField] = []
    size, align = 0, 1
    for payload, variants in type_map.entries():
        name = field_name(variants[0], taken)
        taken.add(name)
        tl = layout_of(payload)
        fields.append(UnionField(name, payload, tuple(variants), tl.size, tl.align))
        size = max(size, tl.size)
        align = max(align, tl.align)

    union = RawUnion(union_name(enum_name), tuple(fields), round_up(size, align), align)
    kind_offset = round_up(TAG_SIZE_BYTES, union.align)
    record_align = max(TAG_SIZE_BYTES, union.align)
    record = TaggedRecord(
        record_name(enum_name),
        union,
        size=round_up(kind_offset + union.size, record_align),
        align=record_align,
        kind_offset=kind_offset,
    )
    return union, record
