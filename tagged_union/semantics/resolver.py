"""Resolves payload type expressions to semantic identities."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from tagged_union.internals.errors import ERR
from tagged_union.internals.report import Span
from tagged_union.semantics.ast import (
    ArrayTypeExpr, DeclKind, PathTypeExpr, PointerTypeExpr, ReferenceTypeExpr,
    TupleTypeExpr, TypeDescription, TypeExpr,
)
from tagged_union.semantics.exceptions import NotTriviallyCopyable, RecursiveType, UnknownPayloadType
from tagged_union.semantics.passes.collect import TypeTable
from tagged_union.semantics.typesys import (
    C_ALIASES, FFI_MODULES, OWNING_TYPES, PRIMITIVE_MODULES, PRIMITIVES, STD_ROOTS,
    ArrayType, BuiltinType, NamedType, PayloadType, PointerType, ReferenceType,
    StructType, UnionType,
)

LOCAL_ROOTS = ("crate", "self")


@dataclass(frozen=True)
class ResolveSite:
    """Where a payload expression came from, for error messages."""
    enum: str
    variant: str
    span: Optional[Span] = None


class TypeResolver:
    """Maps type expressions to PayloadType values.

    Struct and union payloads are resolved once and cached by name. Names
    resolved without #[repr(C)] are remembered in `unpinned` so the caller
    can warn about them.
    """

    def __init__(self, types: Optional[TypeTable] = None) -> None:
        self.types = types or TypeTable()
        self.unpinned: List[Tuple[str, Optional[Span]]] = []
        self._cache: Dict[str, PayloadType] = {}
        self._site = ResolveSite("?", "?")

    def resolve(self, expr: TypeExpr, site: ResolveSite) -> PayloadType:
        self._site = site
        return self._resolve(expr, ())

    # === By-value types ===

    def _resolve(self, expr: TypeExpr, stack: Tuple[str, ...]) -> PayloadType:
        if isinstance(expr, TupleTypeExpr):
            if not expr.elements:
                return BuiltinType.UNIT
            self._unknown(expr)
        if isinstance(expr, ArrayTypeExpr):
            return ArrayType(self._resolve(expr.element, stack), expr.length)
        if isinstance(expr, PointerTypeExpr):
            return PointerType(self._pointee(expr.pointee, stack), expr.mutable)
        if isinstance(expr, ReferenceTypeExpr):
            if expr.mutable:
                self._not_copy(expr)
            return ReferenceType(self._pointee(expr.referent, stack), expr.lifetime)
        return self._resolve_path(expr, stack)

    def _resolve_path(self, expr: PathTypeExpr, stack: Tuple[str, ...]) -> PayloadType:
        module, name = _split(expr)

        builtin = _builtin(module, name, expr)
        if builtin is not None:
            return builtin
        if name in OWNING_TYPES and (not module or module[0] in STD_ROOTS):
            self._not_copy(expr)
        if module or expr.args:
            self._unknown(expr)

        decl = self.types.get(name)
        if decl is None or decl.generics:
            self._unknown(expr)
        if name in stack:
            self._recursive(name, stack)
        if decl.kind == DeclKind.ALIAS:
            return self._resolve(decl.aliased, stack + (name,))

        cached = self._cache.get(name)
        if cached is not None:
            return cached
        if "Copy" not in decl.derives():
            self._not_copy(expr)

        inner = stack + (name,)
        fields = tuple(
            (f.name if f.name is not None else str(i), self._resolve(f.ty, inner))
            for i, f in enumerate(decl.fields)
        )
        resolved = _aggregate(decl, fields)
        if not resolved.repr_c:
            self.unpinned.append((name, decl.name_span or decl.loc))
        self._cache[name] = resolved
        return resolved

    # === Pointer targets ===

    def _pointee(self, expr: TypeExpr, stack: Tuple[str, ...]) -> PayloadType:
        """Resolve the target of a pointer or reference without expanding it.

        Pointers never need the layout of what they point to, so opaque
        foreign names are accepted and user declarations stay by name.
        """
        if isinstance(expr, TupleTypeExpr):
            if not expr.elements:
                return BuiltinType.UNIT
            return NamedType(str(expr))
        if isinstance(expr, ArrayTypeExpr):
            return ArrayType(self._pointee(expr.element, stack), expr.length)
        if isinstance(expr, PointerTypeExpr):
            return PointerType(self._pointee(expr.pointee, stack), expr.mutable)
        if isinstance(expr, ReferenceTypeExpr):
            return ReferenceType(self._pointee(expr.referent, stack), expr.lifetime)

        module, name = _split(expr)
        builtin = _builtin(module, name, expr)
        if builtin is not None:
            return builtin
        if name == "c_void" and (not module or module in FFI_MODULES):
            return NamedType("c_void")
        decl = self.types.get(name) if not module else None
        if decl is not None and decl.kind == DeclKind.ALIAS and not decl.generics:
            if name in stack:
                self._recursive(name, stack)
            return self._pointee(decl.aliased, stack + (name,))
        return NamedType("::".join(module + (name,)) + _args_text(expr))

    # === Failures ===

    def _unknown(self, expr: TypeExpr) -> None:
        raise UnknownPayloadType(ERR.TU2001, getattr(expr, "loc", None) or self._site.span,
                                 type=str(expr), enum=self._site.enum, variant=self._site.variant)

    def _not_copy(self, expr: TypeExpr) -> None:
        raise NotTriviallyCopyable(ERR.TU1007, getattr(expr, "loc", None) or self._site.span,
                                   type=str(expr), enum=self._site.enum, variant=self._site.variant)

    def _recursive(self, name: str, stack: Tuple[str, ...]) -> None:
        path = " -> ".join(stack[stack.index(name):] + (name,))
        decl = self.types.get(name)
        raise RecursiveType(ERR.TU2002, decl.name_span if decl else self._site.span, name=name, path=path)


def _split(expr: PathTypeExpr) -> Tuple[Tuple[str, ...], str]:
    segments = expr.segments
    if len(segments) > 1 and segments[0] in LOCAL_ROOTS and not expr.leading_sep:
        segments = segments[1:]
    return tuple(segments[:-1]), segments[-1]


def _builtin(module: Tuple[str, ...], name: str, expr: PathTypeExpr) -> Optional[BuiltinType]:
    if expr.args:
        return None
    if name in PRIMITIVES and (not module or module in PRIMITIVE_MODULES):
        return PRIMITIVES[name]
    if name in C_ALIASES and (not module or module in FFI_MODULES):
        return C_ALIASES[name]
    return None


def _args_text(expr: PathTypeExpr) -> str:
    if not expr.args:
        return ""
    return "<" + ", ".join(str(a) for a in expr.args) + ">"


def _repr_hints(decl: TypeDescription) -> tuple[bool, int, int]:
    """(repr_c, pack, min_align); pack is 0 when not packed and 1 for bare `packed`."""
    hints = decl.repr()
    repr_c = "C" in hints or "transparent" in hints
    packed = 0
    min_align = 1
    for h in hints:
        if h == "packed":
            packed = 1
        elif h.startswith("packed(") and h.endswith(")"):
            packed = int(h[len("packed("):-1])
        elif h.startswith("align(") and h.endswith(")"):
            min_align = max(min_align, int(h[len("align("):-1]))
    return repr_c, packed, min_align


def _aggregate(decl: TypeDescription, fields) -> PayloadType:
    repr_c, packed, min_align = _repr_hints(decl)
    if decl.kind == DeclKind.UNION:
        return UnionType(decl.name, fields, repr_c=repr_c, min_align=min_align)
    positional = bool(decl.fields) and decl.fields[0].name is None
    return StructType(decl.name, fields, positional=positional, repr_c=repr_c,
                      packed=packed, min_align=min_align)
