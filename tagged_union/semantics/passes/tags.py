# semantics/passes/tags.py
"""Tag assignment: one u32 constant per variant, in declaration order."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Sequence

from tagged_union.internals.errors import ERR
from tagged_union.semantics.exceptions import DuplicateTagName
from tagged_union.semantics.passes.validate import VariantSpec


@dataclass(frozen=True)
class Tag:
    name: str                               # MESSAGE_MOVE
    number: int
    variant: str


def tag_name(enum_name: str, variant: str) -> str:
    return f"{enum_name.upper()}_{variant.upper()}"


def assign_tags(enum_name: str, variants: Sequence[VariantSpec]) -> List[Tag]:
    """Number variants 0..N-1.

    Raises:
        DuplicateTagName: when two variants upper-case to the same constant.
    """
    seen: Dict[str, str] = {}
    tags: List[Tag] = []
    for number, v in enumerate(variants):
        name = tag_name(enum_name, v.name)
        if name in seen:
            raise DuplicateTagName(ERR.TU1008, v.span, first=seen[name], second=v.name, tag=name)
        seen[name] = v.name
        tags.append(Tag(name, number, v.name))
    return tags
