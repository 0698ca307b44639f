# semantics/passes/collect.py
"""Declaration collection: splits a source into enums and payload types."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List

from tagged_union.internals.errors import ERR
from tagged_union.semantics.ast import DeclKind, SourceFile, TypeDescription
from tagged_union.semantics.exceptions import DuplicateTypeName


@dataclass
class TypeTable:
    """Structs, unions and aliases a payload may refer to."""
    by_name: Dict[str, TypeDescription] = field(default_factory=dict)
    order: List[str] = field(default_factory=list)

    def add(self, desc: TypeDescription) -> None:
        self.by_name[desc.name] = desc
        self.order.append(desc.name)

    def get(self, name: str):
        return self.by_name.get(name)


@dataclass
class EnumTable:
    """Enum declarations, candidates for lowering."""
    by_name: Dict[str, TypeDescription] = field(default_factory=dict)
    order: List[str] = field(default_factory=list)

    def __iter__(self):
        return (self.by_name[n] for n in self.order)


class TypeCollector:
    """Collects declarations from a parsed source.

    Every declared name, enum or not, must be unique; the check runs across
    both tables since payloads and enums share one namespace.
    """

    def __init__(self) -> None:
        self.types = TypeTable()
        self.enums = EnumTable()

    def run(self, source: SourceFile) -> tuple[TypeTable, EnumTable]:
        for desc in source.items:
            self._collect(desc)
        return self.types, self.enums

    def _collect(self, desc: TypeDescription) -> None:
        if desc.name in self.types.by_name or desc.name in self.enums.by_name:
            raise DuplicateTypeName(ERR.TU2003, desc.name_span or desc.loc, name=desc.name)
        if desc.kind == DeclKind.ENUM:
            self.enums.by_name[desc.name] = desc
            self.enums.order.append(desc.name)
        else:
            self.types.add(desc)


def collect(source: SourceFile) -> tuple[TypeTable, EnumTable]:
    return TypeCollector().run(source)
