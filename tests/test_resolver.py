from __future__ import annotations

import pytest

from tagged_union.internals.parser import parse_source
from tagged_union.semantics.exceptions import NotTriviallyCopyable, RecursiveType, UnknownPayloadType
from tagged_union.semantics.passes.collect import collect
from tagged_union.semantics.resolver import ResolveSite, TypeResolver
from tagged_union.semantics.typesys import (
    ArrayType, BuiltinType, NamedType, PointerType, ReferenceType, StructType, UnionType,
)

DECLS = """
#[derive(Clone, Copy)] #[repr(C)] struct Point { x: f64, y: f64 }
#[derive(Clone, Copy)] #[repr(C)] struct Meters(f64);
#[derive(Clone, Copy)] #[repr(C, packed)] struct Packed { a: u8, b: u32 }
#[derive(Clone, Copy)] #[repr(C, packed(2))] struct Packed2 { a: u8, b: u32 }
#[derive(Clone, Copy)] #[repr(C)] union Bits { i: u32, f: f32 }
#[derive(Clone)] struct NotCopy { a: u8 }
#[derive(Clone, Copy)] struct Generic<T> { a: T }
type Millis = u32;
type PointAlias = crate::Point;
type Loop1 = Loop2;
type Loop2 = Loop1;
#[derive(Clone, Copy)] struct SelfRef { inner: SelfRef }
#[derive(Clone, Copy)] enum Inner { A }
"""


def _resolve(type_text: str):
    source = parse_source(DECLS + f"enum Holder {{ A({type_text}) }}")
    types, _ = collect(source)
    holder = source.find("Holder")
    return TypeResolver(types).resolve(holder.variants[0].fields[0].ty, ResolveSite("Holder", "A"))


@pytest.mark.parametrize(
    "spelling",
    ["u32", "::core::primitive::u32", "std::primitive::u32", "core::ffi::c_uint", "c_uint", "Millis"],
)
def test_spellings_of_u32_collapse(spelling: str) -> None:
    assert _resolve(spelling) is BuiltinType.U32


def test_unit_spellings() -> None:
    assert _resolve("()") is BuiltinType.UNIT


def test_struct_paths_collapse() -> None:
    direct = _resolve("Point")
    assert _resolve("crate::Point") == direct
    assert _resolve("self::Point") == direct
    assert _resolve("PointAlias") == direct
    assert direct == StructType("Point", (("x", BuiltinType.F64), ("y", BuiltinType.F64)))


def test_tuple_struct_fields_are_numbered() -> None:
    meters = _resolve("Meters")
    assert meters.positional
    assert meters.fields == (("0", BuiltinType.F64),)


def test_repr_hints() -> None:
    assert _resolve("Packed").packed == 1
    assert _resolve("Packed2").packed == 2
    assert _resolve("Point").packed == 0
    assert isinstance(_resolve("Bits"), UnionType)


def test_arrays_and_pointers() -> None:
    assert _resolve("[Millis; 3]") == ArrayType(BuiltinType.U32, 3)
    assert _resolve("*mut u8") == PointerType(BuiltinType.U8, mutable=True)
    assert _resolve("*const std::os::raw::c_void") == PointerType(NamedType("c_void"))
    assert _resolve("&'static Point") == ReferenceType(NamedType("Point"))
    assert _resolve("*const Opaque") == PointerType(NamedType("Opaque"))


def test_pointer_to_self_referencing_struct_is_fine() -> None:
    assert _resolve("*const SelfRef") == PointerType(NamedType("SelfRef"))


@pytest.mark.parametrize("spelling", ["Unknown", "Generic<u8>", "(u8, u16)", "Inner", "foo::Bar"])
def test_unknown_payloads(spelling: str) -> None:
    with pytest.raises(UnknownPayloadType):
        _resolve(spelling)


def test_non_copy_struct_payload() -> None:
    with pytest.raises(NotTriviallyCopyable):
        _resolve("NotCopy")


def test_alias_cycle_is_recursive() -> None:
    with pytest.raises(RecursiveType) as exc_info:
        _resolve("Loop1")
    assert exc_info.value.params["path"] == "Loop1 -> Loop2 -> Loop1"


def test_struct_containing_itself_is_recursive() -> None:
    with pytest.raises(RecursiveType):
        _resolve("SelfRef")
