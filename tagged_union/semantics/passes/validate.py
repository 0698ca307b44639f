# semantics/passes/validate.py
"""Shape validation: decides whether an enum can become a tagged union.

Checks run in a fixed order and the first failure aborts:

1. the description is an enum (NotAnEnum)
2. it declares no generic, lifetime or const parameters and no where clause
   (GenericNotSupported)
3. it declares at least one variant (EmptyEnum)
4. every variant is unit or carries exactly one positional value
   (UnsupportedVariantShape)
5. the enum derives Copy (NotTriviallyCopyable)
6. every payload resolves to a trivially copyable type (TypeResolver)

Warnings for ignored discriminants and payload structs without #[repr(C)]
go to the reporter and never stop the pass.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional

from tagged_union.internals import errors as er
from tagged_union.internals.errors import ERR
from tagged_union.internals.report import Reporter, Span
from tagged_union.semantics.ast import DeclKind, TypeDescription, VariantDecl, VariantShape
from tagged_union.semantics.exceptions import (
    EmptyEnum, GenericNotSupported, NotAnEnum, NotTriviallyCopyable, UnsupportedVariantShape,
)
from tagged_union.semantics.passes.collect import TypeTable
from tagged_union.semantics.resolver import ResolveSite, TypeResolver
from tagged_union.semantics.typesys import UNIT, PayloadType


@dataclass(frozen=True)
class VariantSpec:
    """A validated variant: its name, resolved payload and declaration index."""
    name: str
    payload: PayloadType
    index: int
    span: Optional[Span] = None

    @property
    def is_unit(self) -> bool:
        return self.payload is UNIT


class ShapeValidator:
    def __init__(
        self,
        types: Optional[TypeTable] = None,
        reporter: Optional[Reporter] = None,
        require_copy: bool = True,
    ) -> None:
        self.types = types or TypeTable()
        self.reporter = reporter or Reporter()
        self.require_copy = require_copy

    def run(self, desc: TypeDescription) -> List[VariantSpec]:
        if desc.kind != DeclKind.ENUM:
            raise NotAnEnum(ERR.TU1001, desc.name_span or desc.loc, name=desc.name, kind=desc.kind.value)
        if desc.is_generic:
            raise GenericNotSupported(ERR.TU1002, desc.name_span or desc.loc,
                                      name=desc.name, params=_describe_generics(desc))
        if not desc.variants:
            raise EmptyEnum(ERR.TU1003, desc.name_span or desc.loc, name=desc.name)
        for v in desc.variants:
            self._check_shape(desc.name, v)
        if self.require_copy and "Copy" not in desc.derives():
            raise NotTriviallyCopyable(ERR.TU1006, desc.name_span or desc.loc, name=desc.name)

        resolver = TypeResolver(self.types)
        specs: List[VariantSpec] = []
        for index, v in enumerate(desc.variants):
            if v.discriminant is not None:
                er.emit(self.reporter, ERR.TW0001, v.name_span or v.loc, enum=desc.name, variant=v.name)
            payload = UNIT
            if v.fields:
                payload = resolver.resolve(v.fields[0].ty, ResolveSite(desc.name, v.name, v.loc))
            specs.append(VariantSpec(v.name, payload, index, v.name_span or v.loc))

        for name, span in _unique(resolver.unpinned):
            er.emit(self.reporter, ERR.TW0002, span, name=name)
        return specs

    def _check_shape(self, enum: str, v: VariantDecl) -> None:
        span = v.name_span or v.loc
        if v.shape == VariantShape.STRUCT:
            raise UnsupportedVariantShape(ERR.TU1005, span, enum=enum, variant=v.name)
        if len(v.fields) > 1:
            raise UnsupportedVariantShape(ERR.TU1004, span, enum=enum, variant=v.name, count=len(v.fields))


def validate(desc: TypeDescription, types: Optional[TypeTable] = None,
             reporter: Optional[Reporter] = None) -> List[VariantSpec]:
    return ShapeValidator(types, reporter).run(desc)


def _describe_generics(desc: TypeDescription) -> str:
    parts = []
    if desc.generics:
        parts.append("<" + ", ".join(str(g) for g in desc.generics) + ">")
    if desc.where:
        parts.append("where " + ", ".join(str(w) for w in desc.where))
    return " ".join(parts)


def _unique(items):
    seen = set()
    for name, span in items:
        if name not in seen:
            seen.add(name)
            yield name, span
