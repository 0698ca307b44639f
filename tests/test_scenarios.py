"""The worked examples: one test per documented scenario."""
from __future__ import annotations

import pytest

from tagged_union.runtime.binding import bind
from tagged_union.runtime.contract import InvalidTag
from tagged_union.semantics.exceptions import GenericNotSupported, NotAnEnum, UnsupportedVariantShape
from tagged_union.semantics.typesys import UNIT, BuiltinType
from tests.helpers import analyze_source, copy_enum


def test_message_tags_and_union_fields(message_bundle) -> None:
    assert [(t.name, t.number) for t in message_bundle.tags] == [
        ("MESSAGE_HALT", 0), ("MESSAGE_MOVE", 1), ("MESSAGE_WAIT", 2),
    ]
    fields = message_bundle.union.fields
    assert [f.name for f in fields] == ["halt", "move_", "wait"]
    assert fields[0].payload is UNIT
    assert str(fields[1].payload) == "Point"
    assert fields[2].payload is BuiltinType.U32


def test_shared_u32_payload_gets_one_field() -> None:
    bundle = analyze_source(copy_enum("A(u32), B(u32)"))
    assert bundle.type_map.entries() == [(BuiltinType.U32, ["A", "B"])]
    assert [(f.name, f.payload) for f in bundle.union.fields] == [("a", BuiltinType.U32)]


def test_struct_input_is_not_an_enum() -> None:
    with pytest.raises(NotAnEnum):
        analyze_source("struct Foo { x: u32 }", "Foo")


def test_generic_enum_is_rejected() -> None:
    with pytest.raises(GenericNotSupported):
        analyze_source("#[derive(Clone, Copy)] enum Foo<T> { A(T) }")


def test_two_field_variant_is_rejected() -> None:
    with pytest.raises(UnsupportedVariantShape):
        analyze_source(copy_enum("A(u32, u32)"))


def test_tag_99_is_invalid(message_bundle) -> None:
    Message = bind(message_bundle)
    with pytest.raises(InvalidTag) as exc_info:
        Message.from_tagged(Message.record_type(tag=99))
    assert (exc_info.value.got, exc_info.value.possible_tags) == (99, range(0, 3))
