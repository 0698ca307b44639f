# semantics/passes/typemap.py
"""Groups validated variants by payload identity."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Sequence, Tuple

from tagged_union.semantics.passes.validate import VariantSpec
from tagged_union.semantics.typesys import UNIT, PayloadType


@dataclass
class TypeMap:
    """Ordered payload identity -> variant names.

    Keys keep first-seen order and every variant appears under exactly one
    key. Variants without a payload share the UNIT entry.
    """
    by_type: Dict[PayloadType, List[str]] = field(default_factory=dict)

    def add(self, payload: PayloadType, variant: str) -> None:
        self.by_type.setdefault(payload, []).append(variant)

    def entries(self) -> List[Tuple[PayloadType, List[str]]]:
        return list(self.by_type.items())

    def payload_of(self, variant: str) -> PayloadType:
        for payload, names in self.by_type.items():
            if variant in names:
                return payload
        raise KeyError(variant)

    @property
    def has_unit(self) -> bool:
        return UNIT in self.by_type

    def __iter__(self) -> Iterator[PayloadType]:
        return iter(self.by_type)

    def __len__(self) -> int:
        return len(self.by_type)


def build_type_map(variants: Sequence[VariantSpec]) -> TypeMap:
    tm = TypeMap()
    for v in variants:
        tm.add(v.payload, v.name)
    return tm
