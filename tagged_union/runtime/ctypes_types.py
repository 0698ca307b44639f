# runtime/ctypes_types.py
"""ctypes mirrors of resolved payload types, and value conversion both ways."""
from __future__ import annotations
import ctypes
import math
from typing import Any, Dict

from tagged_union.backend.constants import POINTER_SIZE_BYTES
from tagged_union.backend.layout import layout_of
from tagged_union.internals.errors import raise_internal_error
from tagged_union.semantics.typesys import (
    ArrayType, BuiltinType, NamedType, PayloadType, PointerType, ReferenceType,
    StructType, UnionType,
)

CTYPES_BUILTINS = {
    BuiltinType.BOOL: ctypes.c_bool,
    BuiltinType.CHAR: ctypes.c_uint32,
    BuiltinType.I8: ctypes.c_int8,
    BuiltinType.I16: ctypes.c_int16,
    BuiltinType.I32: ctypes.c_int32,
    BuiltinType.I64: ctypes.c_int64,
    BuiltinType.ISIZE: ctypes.c_ssize_t,
    BuiltinType.U8: ctypes.c_uint8,
    BuiltinType.U16: ctypes.c_uint16,
    BuiltinType.U32: ctypes.c_uint32,
    BuiltinType.U64: ctypes.c_uint64,
    BuiltinType.USIZE: ctypes.c_size_t,
    BuiltinType.F32: ctypes.c_float,
    BuiltinType.F64: ctypes.c_double,
}

UNIT_CTYPE = ctypes.c_uint8 * 0


class PayloadMixin:
    """Value semantics for generated payload Structures and Unions."""

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return bytes(self) == bytes(other)

    def __hash__(self) -> int:
        return hash(bytes(self))

    def __repr__(self) -> str:
        if isinstance(self, ctypes.Union):
            return f"{type(self).__name__}(<{ctypes.sizeof(self)} bytes>)"
        args = ", ".join(f"{name}={getattr(self, name)!r}" for name, *_ in self._fields_)
        return f"{type(self).__name__}({args})"


def field_attr(name: str) -> str:
    """ctypes attribute for a payload field; tuple struct fields become _0, _1, ..."""
    return f"_{name}" if name[:1].isdigit() else name


class CTypesRegistry:
    """Builds one ctypes class per payload struct or union and reuses it.

    Classes are keyed by the resolved type, so same-named structs from
    different sources get their own class.
    """

    def __init__(self) -> None:
        self.classes: Dict[PayloadType, type] = {}

    def ctype(self, t: PayloadType) -> Any:
        match t:
            case BuiltinType.UNIT:
                return UNIT_CTYPE
            case BuiltinType():
                return CTYPES_BUILTINS[t]
            case ArrayType():
                return self.ctype(t.element) * t.length
            case PointerType() | ReferenceType():
                return ctypes.c_void_p
            case StructType() | UnionType():
                return self._aggregate(t)
        raise_internal_error("TU0003", target="ctypes", type=str(t))

    def _aggregate(self, t: StructType | UnionType) -> type:
        cls = self.classes.get(t)
        if cls is not None:
            return cls
        base = ctypes.Union if isinstance(t, UnionType) else ctypes.Structure
        namespace: Dict[str, Any] = {}
        if isinstance(t, StructType) and t.packed:
            namespace["_pack_"] = t.packed
        if t.min_align > 1:
            namespace["_align_"] = t.min_align
        fields = [(field_attr(name), self.ctype(ft)) for name, ft in t.fields]
        # tail padding from align(N) that ctypes would not add by itself
        natural = ctypes_size(base, fields, namespace)
        size = layout_of(t).size
        if size > natural:
            pad_name = spare_name("_tail_padding", {name for name, _ in fields})
            fields.append((pad_name, ctypes.c_uint8 * (size - natural)))
        namespace["_fields_"] = fields
        cls = type(t.name, (PayloadMixin, base), namespace)
        self.classes[t] = cls
        return cls

    # === Value conversion ===

    def to_c(self, t: PayloadType, value: Any) -> Any:
        """Python value -> something assignable to a field of ctype(t)."""
        match t:
            case BuiltinType.UNIT:
                return UNIT_CTYPE()
            case BuiltinType.CHAR:
                if not isinstance(value, str) or len(value) != 1:
                    raise TypeError(f"expected a single character for char, got {value!r}")
                return ord(value)
            case BuiltinType.BOOL:
                if not isinstance(value, bool):
                    raise TypeError(f"expected bool, got {type(value).__name__}")
                return value
            case BuiltinType.F32:
                narrowed = ctypes.c_float(value).value
                if narrowed != value and not (math.isnan(narrowed) and math.isnan(value)):
                    raise ValueError(f"{value!r} is not exactly representable as f32")
                return value
            case BuiltinType() if t.is_integer:
                _check_range(str(t), value, *int_range(t))
                return value
            case BuiltinType():
                return value
            case ArrayType():
                if len(value) != t.length:
                    raise ValueError(f"expected {t.length} elements for {t}, got {len(value)}")
                return self.ctype(t)(*(self.to_c(t.element, v) for v in value))
            case PointerType() | ReferenceType():
                # addresses are plain integers; the null pointer is 0
                _check_range(str(t), value, 0, 2 ** (8 * POINTER_SIZE_BYTES) - 1)
                return value
            case StructType() | UnionType():
                cls = self.ctype(t)
                if not isinstance(value, cls):
                    raise TypeError(f"expected {cls.__name__}, got {type(value).__name__}")
                return value
        raise_internal_error("TU0003", target="ctypes", type=str(t))

    def from_c(self, t: PayloadType, raw: Any) -> Any:
        """Field value read from ctypes -> the Python value a variant holds."""
        match t:
            case BuiltinType.UNIT:
                return None
            case BuiltinType.CHAR:
                return chr(raw)
            case BuiltinType():
                return raw
            case ArrayType():
                return tuple(self.from_c(t.element, v) for v in raw)
            case PointerType() | ReferenceType():
                return raw or 0
            case StructType() | UnionType():
                return self.ctype(t).from_buffer_copy(raw)
        raise_internal_error("TU0003", target="ctypes", type=str(t))


def ctypes_size(base: type, fields, namespace: Dict[str, Any]) -> int:
    trial = type("_Trial", (base,), dict(namespace, _fields_=list(fields)))
    return ctypes.sizeof(trial)


def spare_name(base: str, taken) -> str:
    """`base`, with `_` appended until it is not in `taken`."""
    name = base
    while name in taken:
        name += "_"
    return name


def int_range(t: BuiltinType) -> tuple[int, int]:
    """Inclusive value range of an integer builtin."""
    bits = 8 * layout_of(t).size
    if t.is_signed:
        return -(2 ** (bits - 1)), 2 ** (bits - 1) - 1
    return 0, 2 ** bits - 1


def _check_range(type_name: str, value: Any, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer for {type_name}, got {type(value).__name__}")
    if not low <= value <= high:
        raise ValueError(f"{value} does not fit in {type_name} ({low}..={high})")
