# backend/declarations.py
"""The declaration bundle handed from analysis to the emitters."""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Tuple

from tagged_union.backend.conversion import ConversionContract
from tagged_union.backend.layout import RawUnion, TaggedRecord
from tagged_union.semantics.passes.tags import Tag
from tagged_union.semantics.passes.typemap import TypeMap
from tagged_union.semantics.passes.validate import VariantSpec
from tagged_union.semantics.typesys import PayloadType, StructType, UnionType, walk


@dataclass(frozen=True)
class DeclarationBundle:
    """Everything needed to emit one tagged union, derived once and never mutated."""
    sum_type: str
    variants: Tuple[VariantSpec, ...]
    type_map: TypeMap
    tags: Tuple[Tag, ...]
    union: RawUnion
    record: TaggedRecord
    contract: ConversionContract

    @property
    def tag_count(self) -> int:
        return len(self.tags)

    def aggregates(self) -> List[PayloadType]:
        """Payload structs and unions in dependency order, each once."""
        out: List[PayloadType] = []
        for f in self.union.fields:
            for t in reversed(list(walk(f.payload))):
                if isinstance(t, (StructType, UnionType)) and t not in out:
                    out.append(t)
        return out
