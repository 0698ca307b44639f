"""
LLVM IR emitter for tagged-union declarations.

Builds, with llvmlite, a module holding:

- identified struct types for payload structs and unions
- the raw union, lowered as its most aligned member plus byte padding
- the tagged record `{ i32, %<Sum>Kind }`
- one `constant i32` global per tag
- `i1 @<Record>_tag_is_valid(%<Record>)`, the range check from_tagged relies on

API:
    from tagged_union.backend.codegen_llvm import LLVMDeclarationEmitter
    em = LLVMDeclarationEmitter()
    module = em.emit_many(bundles)
    text = str(module)
"""
from __future__ import annotations
from typing import Dict, Optional, Sequence

from llvmlite import ir, binding as llvm

from tagged_union.backend.constants import RECORD_TAG_INDEX, TAG_BIT_WIDTH, TAG_SIZE_BYTES
from tagged_union.backend.declarations import DeclarationBundle
from tagged_union.backend.layout import layout_of
from tagged_union.internals.errors import raise_internal_error
from tagged_union.semantics.typesys import (
    ArrayType, BuiltinType, NamedType, PayloadType, PointerType, ReferenceType,
    StructType, UnionType, walk,
)

TARGET_TRIPLE = "x86_64-unknown-linux-gnu"
DATA_LAYOUT = "e-m:e-p270:32:32-p271:32:32-p272:64:64-i64:64-i128:128-f80:128-n8:16:32:64-S128"


class LLVMDeclarationEmitter:
    """Lowers declaration bundles to one LLVM module."""

    def __init__(self, module_name: str = "tagged_union") -> None:
        # A fresh context per module keeps identified type names from leaking
        # between modules built in the same process.
        self.context = ir.Context()
        self.module: ir.Module = ir.Module(name=module_name, context=self.context)
        self.module.triple = TARGET_TRIPLE
        self.module.data_layout = DATA_LAYOUT

        self.i1 = ir.IntType(1)
        self.i8 = ir.IntType(8)
        self.i32 = ir.IntType(TAG_BIT_WIDTH)
        self._named: Dict[str, ir.Type] = {}

    # === Type lowering ===

    def ll_type(self, t: PayloadType) -> ir.Type:
        if isinstance(t, BuiltinType):
            match t:
                case BuiltinType.UNIT:
                    return ir.ArrayType(self.i8, 0)
                case BuiltinType.BOOL | BuiltinType.I8 | BuiltinType.U8:
                    return self.i8
                case BuiltinType.I16 | BuiltinType.U16:
                    return ir.IntType(16)
                case BuiltinType.I32 | BuiltinType.U32 | BuiltinType.CHAR:
                    return self.i32
                case BuiltinType.I64 | BuiltinType.U64 | BuiltinType.ISIZE | BuiltinType.USIZE:
                    return ir.IntType(64)
                case BuiltinType.F32:
                    return ir.FloatType()
                case BuiltinType.F64:
                    return ir.DoubleType()

        match t:
            case ArrayType():
                return ir.ArrayType(self.ll_type(t.element), t.length)
            case PointerType() | ReferenceType():
                # pointee types are opaque at this level
                return self.i8.as_pointer()
            case StructType():
                return self._struct_type(t)
            case UnionType():
                return self._union_type(t.name, [ft for _, ft in t.fields], layout_of(t).size)
            case NamedType():
                pass
        raise_internal_error("TU0003", target="LLVM", type=str(t))

    def _identified(self, name: str) -> Optional[ir.IdentifiedStructType]:
        if name in self._named:
            return None
        ty = self.context.get_identified_type(name)
        self._named[name] = ty
        return ty

    def _struct_type(self, t: StructType) -> ir.Type:
        ty = self._identified(t.name)
        if ty is None:
            return self._named[t.name]
        tl = layout_of(t)
        if t.packed or _has_align_hint(t):
            # LLVM cannot express align(N), so spell every offset out
            ty.packed = True
            placed = [(offset, ft) for offset, (_, ft) in zip(tl.offsets, t.fields)]
            ty.set_body(*self._explicit_body(placed, tl.size))
        else:
            ty.set_body(*[self.ll_type(ft) for _, ft in t.fields])
        return ty

    def _explicit_body(self, placed, size: int) -> list:
        """Element list for a packed struct with the given (offset, type) fields."""
        elems = []
        pos = 0
        for offset, ft in placed:
            if offset > pos:
                elems.append(ir.ArrayType(self.i8, offset - pos))
            elems.append(self.ll_type(ft))
            pos = offset + layout_of(ft).size
        if size > pos:
            elems.append(ir.ArrayType(self.i8, size - pos))
        return elems

    def _union_type(self, name: str, members: Sequence[PayloadType], size: int) -> ir.Type:
        ty = self._identified(name)
        if ty is None:
            return self._named[name]
        if not members:
            ty.set_body(ir.ArrayType(self.i8, size))
            return ty
        widest = max(members, key=lambda m: (layout_of(m).align, layout_of(m).size))
        elems = [self.ll_type(widest)]
        pad = size - layout_of(widest).size
        if pad > 0:
            elems.append(ir.ArrayType(self.i8, pad))
        ty.set_body(*elems)
        return ty

    # === Declarations ===

    def emit(self, bundle: DeclarationBundle) -> ir.Module:
        return self.emit_many([bundle])

    def emit_many(self, bundles: Sequence[DeclarationBundle]) -> ir.Module:
        for b in bundles:
            self._emit_bundle(b)
        return self.module

    def _emit_bundle(self, b: DeclarationBundle) -> None:
        union_ty = self._union_type(b.union.name, [f.payload for f in b.union.fields], b.union.size)
        record_ty = self._identified(b.record.name)
        rec = b.record
        if any(_has_align_hint(f.payload) for f in b.union.fields):
            record_ty.packed = True
            elems = [self.i32]
            if rec.kind_offset > TAG_SIZE_BYTES:
                elems.append(ir.ArrayType(self.i8, rec.kind_offset - TAG_SIZE_BYTES))
            elems.append(union_ty)
            tail = rec.size - rec.kind_offset - b.union.size
            if tail > 0:
                elems.append(ir.ArrayType(self.i8, tail))
            record_ty.set_body(*elems)
        else:
            record_ty.set_body(self.i32, union_ty)

        for tag in b.tags:
            g = ir.GlobalVariable(self.module, self.i32, name=tag.name)
            g.global_constant = True
            g.initializer = ir.Constant(self.i32, tag.number)
            g.unnamed_addr = True

        self._emit_tag_check(b, record_ty)

    def _emit_tag_check(self, b: DeclarationBundle, record_ty: ir.Type) -> None:
        fnty = ir.FunctionType(self.i1, [record_ty])
        fn = ir.Function(self.module, fnty, name=f"{b.record.name}_tag_is_valid")
        fn.args[0].name = "rec"
        builder = ir.IRBuilder(fn.append_basic_block("entry"))
        tag = builder.extract_value(fn.args[0], RECORD_TAG_INDEX, name="tag")
        ok = builder.icmp_unsigned("<", tag, ir.Constant(self.i32, b.tag_count), name="ok")
        builder.ret(ok)

    # === Verification ===

    @staticmethod
    def verify(module: ir.Module) -> llvm.ModuleRef:
        """Parse and verify the textual IR with LLVM.

        Raises:
            RuntimeError: If LLVM rejects the module.
        """
        try:
            llmod = llvm.parse_assembly(str(module))
            llmod.verify()
        except RuntimeError as e:
            raise_internal_error("TU0005", message=str(e).strip())
        return llmod


def _has_align_hint(t: PayloadType) -> bool:
    """True when LLVM's natural layout of `t` would differ from its C layout."""
    return any(
        isinstance(x, (StructType, UnionType)) and x.min_align > 1
        or isinstance(x, StructType) and x.packed > 1
        for x in walk(t)
    )


def emit_ir(bundles: Sequence[DeclarationBundle], module_name: str = "tagged_union",
            verify: bool = True) -> str:
    em = LLVMDeclarationEmitter(module_name)
    module = em.emit_many(bundles)
    if verify:
        em.verify(module)
    return str(module)
