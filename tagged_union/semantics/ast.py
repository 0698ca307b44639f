# semantics/ast.py
"""Type description model handed from the parser (or a host) to the analysis."""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

from tagged_union.internals.report import Span


class DeclKind(str, Enum):
    ENUM = "enum"
    STRUCT = "struct"
    UNION = "union"
    ALIAS = "type alias"


class VariantShape(str, Enum):
    UNIT = "unit"
    TUPLE = "tuple"
    STRUCT = "struct"


# === Type expressions ===
# Spans are excluded from equality: two spellings at different places in the
# source are the same expression.

@dataclass(frozen=True)
class PathTypeExpr:
    segments: Tuple[str, ...]                   # ("core", "primitive", "u32")
    args: Tuple["TypeExpr", ...] = ()           # generic arguments of the last segment
    leading_sep: bool = False                   # spelled with a leading '::'
    loc: Optional[Span] = field(default=None, compare=False)

    def __str__(self) -> str:
        text = "::".join(self.segments)
        if self.leading_sep:
            text = "::" + text
        if self.args:
            text += "<" + ", ".join(str(a) for a in self.args) + ">"
        return text


@dataclass(frozen=True)
class ArrayTypeExpr:
    element: "TypeExpr"
    length: int
    loc: Optional[Span] = field(default=None, compare=False)

    def __str__(self) -> str:
        return f"[{self.element}; {self.length}]"


@dataclass(frozen=True)
class TupleTypeExpr:
    elements: Tuple["TypeExpr", ...] = ()
    loc: Optional[Span] = field(default=None, compare=False)

    def __str__(self) -> str:
        if len(self.elements) == 1:
            return f"({self.elements[0]},)"
        return "(" + ", ".join(str(e) for e in self.elements) + ")"


@dataclass(frozen=True)
class PointerTypeExpr:
    pointee: "TypeExpr"
    mutable: bool
    loc: Optional[Span] = field(default=None, compare=False)

    def __str__(self) -> str:
        return f"*{'mut' if self.mutable else 'const'} {self.pointee}"


@dataclass(frozen=True)
class ReferenceTypeExpr:
    referent: "TypeExpr"
    mutable: bool
    lifetime: Optional[str] = None
    loc: Optional[Span] = field(default=None, compare=False)

    def __str__(self) -> str:
        parts = ["&"]
        if self.lifetime:
            parts.append(f"{self.lifetime} ")
        if self.mutable:
            parts.append("mut ")
        parts.append(str(self.referent))
        return "".join(parts)


TypeExpr = Union[PathTypeExpr, ArrayTypeExpr, TupleTypeExpr, PointerTypeExpr, ReferenceTypeExpr]


# === Declarations ===

@dataclass
class Node:
    loc: Optional[Span]


@dataclass
class Attribute(Node):
    """Outer attribute such as #[derive(Copy, Clone)] or #[repr(C)]."""
    path: str
    args: List["Attribute"] = field(default_factory=list)
    value: Optional[str] = None

    def __str__(self) -> str:
        if self.args:
            return f"{self.path}({', '.join(str(a) for a in self.args)})"
        if self.value is not None:
            return f"{self.path} = {self.value}"
        return self.path


@dataclass
class GenericParam(Node):
    kind: str                               # "lifetime", "type" or "const"
    name: str
    bounds: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        prefix = "const " if self.kind == "const" else ""
        if self.bounds:
            return f"{prefix}{self.name}: {' + '.join(self.bounds)}"
        return f"{prefix}{self.name}"


@dataclass
class WherePredicate(Node):
    bounded: str
    bounds: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.bounded}: {' + '.join(self.bounds)}"


@dataclass
class FieldDecl(Node):
    name: Optional[str]                     # None for positional fields
    ty: TypeExpr
    attributes: List[Attribute] = field(default_factory=list)


@dataclass
class VariantDecl(Node):
    name: str
    shape: VariantShape
    fields: List[FieldDecl] = field(default_factory=list)
    discriminant: Optional[int] = None
    attributes: List[Attribute] = field(default_factory=list)
    name_span: Optional[Span] = None


@dataclass
class TypeDescription(Node):
    """One parsed type declaration.

    Enums fill `variants`, structs and unions fill `fields`, aliases fill
    `aliased`. Everything else is shared.
    """
    kind: DeclKind
    name: str
    attributes: List[Attribute] = field(default_factory=list)
    generics: List[GenericParam] = field(default_factory=list)
    where: List[WherePredicate] = field(default_factory=list)
    variants: List[VariantDecl] = field(default_factory=list)
    fields: List[FieldDecl] = field(default_factory=list)
    aliased: Optional[TypeExpr] = None
    public: bool = False
    name_span: Optional[Span] = None

    @property
    def is_generic(self) -> bool:
        return bool(self.generics) or bool(self.where)

    def derives(self) -> List[str]:
        """Trait names listed in #[derive(...)] attributes, last path segment only."""
        names: List[str] = []
        for attr in self.attributes:
            if attr.path == "derive":
                names.extend(a.path.split("::")[-1] for a in attr.args)
        return names

    def repr(self) -> List[str]:
        """Representation hints from #[repr(...)] attributes."""
        hints: List[str] = []
        for attr in self.attributes:
            if attr.path == "repr":
                hints.extend(str(a) for a in attr.args)
        return hints


@dataclass
class SourceFile(Node):
    items: List[TypeDescription] = field(default_factory=list)

    def enums(self) -> List[TypeDescription]:
        return [d for d in self.items if d.kind == DeclKind.ENUM]

    def find(self, name: str) -> Optional[TypeDescription]:
        for item in self.items:
            if item.name == name:
                return item
        return None
