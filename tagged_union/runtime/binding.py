# runtime/binding.py
"""Live Python binding for a declaration bundle.

`bind(bundle)` returns a sum-type class whose values convert to and from a
ctypes record with exactly the layout the other emitters describe:

    Message = bind(bundle)
    rec = Message.Move(Message.payload("Point")(x=1.0, y=2.0)).as_tagged()
    Message.from_tagged(rec)        # Message.Move(Point(x=1.0, y=2.0))

The record can be passed straight to foreign code through ctypes.
"""
from __future__ import annotations
import ctypes
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, ClassVar, Dict, Optional

from tagged_union.backend.constants import TAG_SIZE_BYTES
from tagged_union.backend.conversion import ConversionArm, ConversionContract
from tagged_union.backend.declarations import DeclarationBundle
from tagged_union.runtime.contract import InvalidTag, TaggedUnion
from tagged_union.runtime.ctypes_types import CTypesRegistry, ctypes_size, spare_name
from tagged_union.semantics.typesys import PayloadType


@dataclass(frozen=True)
class BoundSum(TaggedUnion):
    """Base of every bound sum type. One value is a variant name plus its payload."""
    variant: str
    value: Any = None

    contract: ClassVar[ConversionContract]
    registry: ClassVar[CTypesRegistry]
    tags: ClassVar[type]                # IntEnum of tag constants
    union_type: ClassVar[type]
    record_type: ClassVar[type]
    aggregates: ClassVar[Dict[str, PayloadType]]   # payload structs and unions by name

    def __repr__(self) -> str:
        arm = self.contract.arm_for_variant(self.variant)
        if arm.is_unit:
            return f"{self.contract.sum_type}.{self.variant}"
        return f"{self.contract.sum_type}.{self.variant}({self.value!r})"

    @property
    def tag(self) -> int:
        return self.contract.arm_for_variant(self.variant).tag.number

    def as_tagged(self) -> Any:
        arm = self.contract.arm_for_variant(self.variant)
        rec = self.record_type()
        rec.tag = arm.tag.number
        setattr(rec.kind, arm.field, self.registry.to_c(arm.payload, self.value))
        return rec

    @classmethod
    def from_tagged(cls, tagged: Any) -> "BoundSum":
        try:
            arm = cls.contract.arm_for_tag(tagged.tag)
        except KeyError:
            raise InvalidTag(tagged.tag, cls.contract.possible_tags) from None
        if arm.is_unit:
            return cls(arm.variant)
        raw = getattr(tagged.kind, arm.field)
        return cls(arm.variant, cls.registry.from_c(arm.payload, raw))

    @classmethod
    def payload(cls, name: str) -> type:
        """ctypes class generated for the payload struct or union `name`."""
        return cls.registry.ctype(cls.aggregates[name])


def bind(bundle: DeclarationBundle, registry: Optional[CTypesRegistry] = None) -> type:
    """Build the ctypes classes and the sum-type class for one bundle.

    Several bundles bound with one registry share their payload classes.
    """
    registry = registry or CTypesRegistry()
    kind_cls = _union_class(bundle, registry)
    record_cls = _record_class(bundle, kind_cls)
    tag_enum = IntEnum(f"{bundle.sum_type}Tag", [(t.name, t.number) for t in bundle.tags])

    namespace: Dict[str, Any] = {
        "contract": bundle.contract,
        "registry": registry,
        "tags": tag_enum,
        "union_type": kind_cls,
        "record_type": record_cls,
        "aggregates": {t.name: t for t in bundle.aggregates()},
        "__module__": __name__,
    }
    cls = type(bundle.sum_type, (BoundSum,), namespace)
    for arm in bundle.contract.arms:
        setattr(cls, arm.variant, _constructor(cls, arm))
    return cls


def _constructor(cls: type, arm: ConversionArm) -> Callable[..., BoundSum]:
    if arm.is_unit:
        def make() -> BoundSum:
            return cls(arm.variant)
    else:
        def make(value: Any) -> BoundSum:
            return cls(arm.variant, value)
    make.__name__ = arm.variant
    make.__qualname__ = f"{cls.__name__}.{arm.variant}"
    return staticmethod(make)


def _union_class(bundle: DeclarationBundle, registry: CTypesRegistry) -> type:
    union = bundle.union
    fields = [(f.name, registry.ctype(f.payload)) for f in union.fields]
    if ctypes_size(ctypes.Union, fields, {}) < union.size:
        storage = spare_name("_storage", {name for name, _ in fields})
        fields.append((storage, ctypes.c_uint8 * union.size))
    return type(union.name, (ctypes.Union,), {"_fields_": fields})


def _record_class(bundle: DeclarationBundle, kind_cls: type) -> type:
    rec = bundle.record
    if ctypes.alignment(kind_cls) == bundle.union.align:
        fields = [("tag", ctypes.c_uint32), ("kind", kind_cls)]
        return type(rec.name, (ctypes.Structure,), {"_fields_": fields})
    # ctypes ignored an align(N) payload, so spell out where kind goes
    fields = [
        ("tag", ctypes.c_uint32),
        ("_kind_padding", ctypes.c_uint8 * (rec.kind_offset - TAG_SIZE_BYTES)),
        ("kind", kind_cls),
        ("_tail_padding", ctypes.c_uint8 * (rec.size - rec.kind_offset - bundle.union.size)),
    ]
    return type(rec.name, (ctypes.Structure,), {"_pack_": 1, "_fields_": fields})
