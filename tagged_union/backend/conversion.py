# backend/conversion.py
"""Conversion synthesis between a sum value and its tagged record.

`as_tagged` is total: each variant writes its tag and stores its payload in
its arm's field. `from_tagged` is partial: a tag outside `possible_tags`
fails with InvalidTag, and for a known tag the caller guarantees the arm's
field is the one last written.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from tagged_union.backend.layout import RawUnion, TaggedRecord
from tagged_union.internals.errors import raise_internal_error
from tagged_union.semantics.passes.tags import Tag
from tagged_union.semantics.passes.typemap import TypeMap
from tagged_union.semantics.typesys import PayloadType, is_unit


@dataclass(frozen=True)
class ConversionArm:
    variant: str
    tag: Tag
    field: str                          # union field holding the payload
    payload: PayloadType

    @property
    def is_unit(self) -> bool:
        return is_unit(self.payload)


@dataclass(frozen=True)
class ConversionContract:
    sum_type: str
    target: str                         # record type name
    union: str
    arms: Tuple[ConversionArm, ...]
    possible_tags: range

    def arm_for_tag(self, number: int) -> ConversionArm:
        """The arm for a tag number; KeyError when the tag is unknown."""
        if number not in self.possible_tags:
            raise KeyError(number)
        return self.arms[number]

    def arm_for_variant(self, variant: str) -> ConversionArm:
        for arm in self.arms:
            if arm.variant == variant:
                return arm
        raise KeyError(variant)


def synthesize_conversions(
    enum_name: str,
    type_map: TypeMap,
    tags: Sequence[Tag],
    raw_union: RawUnion,
    record: TaggedRecord,
) -> ConversionContract:
    fields: Dict[str, str] = {}
    for f in raw_union.fields:
        for v in f.variants:
            fields[v] = f.name

    arms: List[ConversionArm] = []
    for tag in tags:
        if tag.variant not in fields:
            raise_internal_error("TU0004", variant=tag.variant)
        arms.append(ConversionArm(tag.variant, tag, fields[tag.variant], type_map.payload_of(tag.variant)))

    return ConversionContract(
        sum_type=enum_name,
        target=record.name,
        union=raw_union.name,
        arms=tuple(arms),
        possible_tags=range(0, len(arms)),
    )
