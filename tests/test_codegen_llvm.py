from __future__ import annotations

import pytest
from llvmlite import binding as llvm

from tagged_union.backend.codegen_llvm import DATA_LAYOUT, LLVMDeclarationEmitter, emit_ir
from tests.helpers import analyze_source, copy_enum


def _parsed(bundles):
    em = LLVMDeclarationEmitter("test")
    return em.verify(em.emit_many(bundles))


def _abi_size(llmod, name: str) -> int:
    return llvm.create_target_data(DATA_LAYOUT).get_abi_size(llmod.get_struct_type(name))


def test_message_module_verifies(message_bundle) -> None:
    text = emit_ir([message_bundle], "message")
    assert "MESSAGE_HALT" in text
    assert "TaggedMessage_tag_is_valid" in text
    assert "icmp ult" in text


def test_llvm_layout_matches_computed_layout(message_bundle) -> None:
    llmod = _parsed([message_bundle])
    assert _abi_size(llmod, "TaggedMessage") == message_bundle.record.size
    assert _abi_size(llmod, "MessageKind") == message_bundle.union.size


def test_union_padding() -> None:
    bundle = analyze_source(copy_enum("A(u8), B([u8; 5]), C(u16)"))
    assert (bundle.union.size, bundle.record.size) == (6, 12)
    text = emit_ir([bundle])
    assert "[4 x i8]" in text
    llmod = _parsed([bundle])
    assert _abi_size(llmod, "FooKind") == 6
    assert _abi_size(llmod, "TaggedFoo") == 12


def test_tag_globals_are_constants(message_bundle) -> None:
    llmod = _parsed([message_bundle])
    g = llmod.get_global_variable("MESSAGE_WAIT")
    assert g.name == "MESSAGE_WAIT"
    assert llmod.get_function("TaggedMessage_tag_is_valid").name == "TaggedMessage_tag_is_valid"


def test_unit_only_enum() -> None:
    bundle = analyze_source(copy_enum("A, B, C"))
    llmod = _parsed([bundle])
    assert _abi_size(llmod, "TaggedFoo") == 4


def test_packed_and_aligned_payloads_keep_their_size() -> None:
    prefix = """
    #[derive(Clone, Copy)] #[repr(C, packed)] struct Packed { a: u8, b: u32 }
    #[derive(Clone, Copy)] #[repr(C, align(16))] struct Wide { a: u8 }
    """
    bundle = analyze_source(copy_enum("A(Packed), B(Wide), C(*const u8)", prefix=prefix))
    llmod = _parsed([bundle])
    assert _abi_size(llmod, "Packed") == 5
    assert _abi_size(llmod, "Wide") == 16
    assert _abi_size(llmod, "TaggedFoo") == bundle.record.size == 32


def test_several_enums_in_one_module(message_bundle) -> None:
    other = analyze_source(copy_enum("X(i64)", name="Other"))
    llmod = _parsed([message_bundle, other])
    assert _abi_size(llmod, "TaggedOther") == 16


def test_each_emitter_uses_its_own_context(message_bundle) -> None:
    first = emit_ir([message_bundle])
    second = emit_ir([message_bundle])
    assert first == second


def test_verification_failure_is_an_internal_error() -> None:
    em = LLVMDeclarationEmitter()
    with pytest.raises(RuntimeError, match="TU0005"):
        em.verify("this is not IR")


def test_packed_n_payload_keeps_c_offsets() -> None:
    prefix = """
    #[derive(Clone, Copy)] #[repr(C, packed(2))] struct Half { a: u8, b: u32 }
    #[derive(Clone, Copy)] #[repr(C)] struct Holder { tag: u8, half: Half }
    """
    bundle = analyze_source(copy_enum("A(Holder)", prefix=prefix))
    llmod = _parsed([bundle])
    td = llvm.create_target_data(DATA_LAYOUT)
    assert _abi_size(llmod, "Half") == 6
    assert _abi_size(llmod, "Holder") == 8
    assert td.get_element_offset(llmod.get_struct_type("Holder"), 2) == 2
    assert _abi_size(llmod, "TaggedFoo") == bundle.record.size
