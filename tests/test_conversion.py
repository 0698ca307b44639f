from __future__ import annotations

import ctypes

import pytest

from tagged_union.runtime.binding import bind
from tagged_union.runtime.contract import InvalidTag, TaggedUnion
from tests.helpers import analyze_source, copy_enum


def test_contract_arms_follow_tags(message_bundle) -> None:
    c = message_bundle.contract
    assert c.sum_type == "Message"
    assert c.target == "TaggedMessage"
    assert c.possible_tags == range(0, 3)
    assert [(a.variant, a.tag.number, a.field) for a in c.arms] == [
        ("Halt", 0, "halt"), ("Move", 1, "move_"), ("Wait", 2, "wait"),
    ]
    assert c.arms[0].is_unit
    assert c.arm_for_variant("Wait").tag.name == "MESSAGE_WAIT"
    with pytest.raises(KeyError):
        c.arm_for_tag(3)


def test_bound_record_matches_computed_layout(message_bundle) -> None:
    Message = bind(message_bundle)
    assert ctypes.sizeof(Message.record_type) == message_bundle.record.size
    assert ctypes.sizeof(Message.union_type) == message_bundle.union.size
    assert Message.record_type.kind.offset == message_bundle.record.kind_offset
    assert Message.tags.MESSAGE_MOVE == 1


def test_round_trip(message_bundle) -> None:
    Message = bind(message_bundle)
    Point = Message.payload("Point")
    values = [Message.Halt(), Message.Move(Point(x=1.5, y=-2.0)), Message.Wait(7)]
    for v in values:
        assert isinstance(v, TaggedUnion)
        assert Message.from_tagged(v.as_tagged()) == v


def test_as_tagged_writes_tag_and_payload(message_bundle) -> None:
    Message = bind(message_bundle)
    rec = Message.Wait(42).as_tagged()
    assert rec.tag == 2
    assert rec.kind.wait == 42
    assert Message.Wait(42).tag == 2


def test_from_tagged_copies_struct_payload(message_bundle) -> None:
    Message = bind(message_bundle)
    Point = Message.payload("Point")
    rec = Message.Move(Point(x=3.0, y=4.0)).as_tagged()
    value = Message.from_tagged(rec)
    rec.kind.move_.x = 100.0
    assert value.value.x == 3.0


def test_invalid_tag(message_bundle) -> None:
    Message = bind(message_bundle)
    rec = Message.record_type()
    rec.tag = 99
    with pytest.raises(InvalidTag) as exc_info:
        Message.from_tagged(rec)
    assert exc_info.value.got == 99
    assert exc_info.value.possible_tags == range(0, 3)
    assert exc_info.value == InvalidTag(99, range(0, 3))


@pytest.mark.parametrize("tag", [3, 4, 1000, 2**32 - 1])
def test_every_out_of_range_tag_is_rejected(message_bundle, tag: int) -> None:
    Message = bind(message_bundle)
    rec = Message.record_type(tag=tag)
    with pytest.raises(InvalidTag):
        Message.from_tagged(rec)


def test_round_trip_of_arrays_chars_bools_and_pointers() -> None:
    src = copy_enum("Bytes([u8; 3]), Letter(char), Flag(bool), Raw(*const u8), Nested([[i16; 2]; 2])")
    Foo = bind(analyze_source(src))
    values = [
        Foo.Bytes((1, 2, 3)),
        Foo.Letter("é"),
        Foo.Flag(True),
        Foo.Raw(0x1000),
        Foo.Raw(0),
        Foo.Nested(((1, -2), (3, -4))),
    ]
    for v in values:
        assert Foo.from_tagged(v.as_tagged()) == v


def test_wrong_array_length_is_rejected() -> None:
    Foo = bind(analyze_source(copy_enum("Bytes([u8; 3])")))
    with pytest.raises(ValueError):
        Foo.Bytes((1, 2)).as_tagged()


def test_unit_constructor_takes_no_arguments(message_bundle) -> None:
    Message = bind(message_bundle)
    with pytest.raises(TypeError):
        Message.Halt(1)
    assert repr(Message.Halt()) == "Message.Halt"
    assert repr(Message.Wait(3)) == "Message.Wait(3)"


def test_aligned_payload_keeps_computed_layout() -> None:
    prefix = "#[derive(Clone, Copy)] #[repr(C, align(16))] struct Wide { a: u8 }"
    bundle = analyze_source(copy_enum("A(Wide), B(u8)", prefix=prefix))
    Foo = bind(bundle)
    assert ctypes.sizeof(Foo.record_type) == bundle.record.size == 32
    assert Foo.record_type.kind.offset == bundle.record.kind_offset == 16
    Wide = Foo.payload("Wide")
    value = Foo.A(Wide(a=9))
    assert Foo.from_tagged(value.as_tagged()) == value


def test_null_pointer_reads_back_as_zero() -> None:
    Foo = bind(analyze_source(copy_enum("Raw(*const u8), Ref(&'static u32)")))
    assert Foo.from_tagged(Foo.Raw(0).as_tagged()) == Foo.Raw(0)
    rec = Foo.Ref(0).as_tagged()
    assert Foo.from_tagged(rec).value == 0
    with pytest.raises(TypeError):
        Foo.Raw(None).as_tagged()
    with pytest.raises(ValueError):
        Foo.Raw(-1).as_tagged()


@pytest.mark.parametrize(
    "variant, value",
    [("Small", 300), ("Small", -1), ("Signed", 128), ("Signed", -129), ("Wide", 2**64)],
)
def test_out_of_range_integers_are_rejected(variant: str, value: int) -> None:
    Foo = bind(analyze_source(copy_enum("Small(u8), Signed(i8), Wide(u64)")))
    with pytest.raises(ValueError):
        getattr(Foo, variant)(value).as_tagged()


@pytest.mark.parametrize("variant, value", [("Small", 255), ("Signed", -128), ("Wide", 2**64 - 1)])
def test_integer_limits_round_trip(variant: str, value: int) -> None:
    Foo = bind(analyze_source(copy_enum("Small(u8), Signed(i8), Wide(u64)")))
    v = getattr(Foo, variant)(value)
    assert Foo.from_tagged(v.as_tagged()) == v


def test_scalar_payloads_are_type_checked() -> None:
    Foo = bind(analyze_source(copy_enum("Flag(bool), Letter(char), Ratio(f32), N(u16)")))
    with pytest.raises(TypeError):
        Foo.Flag(1).as_tagged()
    with pytest.raises(TypeError):
        Foo.Letter("ab").as_tagged()
    with pytest.raises(TypeError):
        Foo.N(1.5).as_tagged()
    with pytest.raises(ValueError):
        Foo.Ratio(0.1).as_tagged()
    assert Foo.from_tagged(Foo.Ratio(0.5).as_tagged()) == Foo.Ratio(0.5)


def test_padding_fields_do_not_shadow_user_names() -> None:
    prefix = """
    #[derive(Clone, Copy)] #[repr(C, align(8))] struct Padded { _tail_padding: u8 }
    """
    Foo = bind(analyze_source(copy_enum("A(Padded), _Storage(u16)", prefix=prefix)))
    Padded = Foo.payload("Padded")
    assert ctypes.sizeof(Padded) == 8
    value = Foo.A(Padded(_tail_padding=7))
    assert Foo.from_tagged(value.as_tagged()) == value
    assert Foo.from_tagged(Foo._Storage(9).as_tagged()) == Foo._Storage(9)


def test_shared_registry_keeps_same_named_structs_apart() -> None:
    from tagged_union.runtime.ctypes_types import CTypesRegistry

    first_src = "#[derive(Clone, Copy)] #[repr(C)] struct P { a: u8 }" + copy_enum("A(P)", name="First")
    second_src = "#[derive(Clone, Copy)] #[repr(C)] struct P { a: u64, b: u64 }" + copy_enum("A(P)", name="Second")
    registry = CTypesRegistry()
    First = bind(analyze_source(first_src), registry)
    Second = bind(analyze_source(second_src), registry)
    assert ctypes.sizeof(First.payload("P")) == 1
    assert ctypes.sizeof(Second.payload("P")) == 16
    value = Second.A(Second.payload("P")(a=1, b=2))
    assert Second.from_tagged(value.as_tagged()) == value
