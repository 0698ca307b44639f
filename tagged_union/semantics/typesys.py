"""Semantic payload type identities.

Two spellings of the same type resolve to equal (and equally hashed) values,
which is what lets the type map group variants by representation instead of
by how the payload was written.
"""
from __future__ import annotations
from enum import Enum
from typing import Mapping, Optional, Union
from dataclasses import dataclass, field


class BuiltinType(Enum):
    UNIT = "()"
    BOOL = "bool"
    CHAR = "char"
    I8 = "i8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    ISIZE = "isize"
    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"
    USIZE = "usize"
    F32 = "f32"
    F64 = "f64"

    def __str__(self) -> str:
        return self.value

    @property
    def is_integer(self) -> bool:
        return self.value[0] in "iu"

    @property
    def is_signed(self) -> bool:
        return self.value[0] == "i"

    @property
    def is_float(self) -> bool:
        return self.value[0] == "f"


@dataclass(frozen=True)
class NamedType:
    """A type known only by name: the target of a raw pointer or reference."""
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayType:
    element: "PayloadType"
    length: int

    def __str__(self) -> str:
        return f"[{self.element}; {self.length}]"


@dataclass(frozen=True)
class PointerType:
    pointee: "PayloadType"
    mutable: bool = False

    def __str__(self) -> str:
        return f"*{'mut' if self.mutable else 'const'} {self.pointee}"


@dataclass(frozen=True)
class ReferenceType:
    """A shared reference. Only `&T` is trivially copyable, so `mutable` is always False here."""
    referent: "PayloadType"
    lifetime: Optional[str] = field(default=None, compare=False)

    def __str__(self) -> str:
        if self.lifetime:
            return f"&{self.lifetime} {self.referent}"
        return f"&{self.referent}"


@dataclass(frozen=True)
class StructType:
    """A user-declared struct used as a payload.

    Field order is preserved; positional (tuple struct) fields are named
    "0", "1", ... Layout hints come from #[repr(...)].
    """
    name: str
    fields: tuple[tuple[str, "PayloadType"], ...]
    positional: bool = False
    repr_c: bool = field(default=True, compare=False)
    packed: int = 0                     # pack(N) value; 0 when not packed
    min_align: int = 1

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class UnionType:
    """A user-declared union used as a payload."""
    name: str
    fields: tuple[tuple[str, "PayloadType"], ...]
    repr_c: bool = field(default=True, compare=False)
    min_align: int = 1

    def __str__(self) -> str:
        return self.name


PayloadType = Union[BuiltinType, NamedType, ArrayType, PointerType, ReferenceType, StructType, UnionType]

UNIT = BuiltinType.UNIT


PRIMITIVES: Mapping[str, BuiltinType] = {
    b.value: b for b in BuiltinType if b is not BuiltinType.UNIT
}

# Fixed-width C aliases only; c_long and friends change size across platforms.
C_ALIASES: Mapping[str, BuiltinType] = {
    "c_char": BuiltinType.I8,
    "c_schar": BuiltinType.I8,
    "c_uchar": BuiltinType.U8,
    "c_short": BuiltinType.I16,
    "c_ushort": BuiltinType.U16,
    "c_int": BuiltinType.I32,
    "c_uint": BuiltinType.U32,
    "c_longlong": BuiltinType.I64,
    "c_ulonglong": BuiltinType.U64,
    "c_float": BuiltinType.F32,
    "c_double": BuiltinType.F64,
}

PRIMITIVE_MODULES = {("core", "primitive"), ("std", "primitive")}

FFI_MODULES = {("std", "os", "raw"), ("core", "ffi"), ("std", "ffi"), ("libc",)}

# Standard library types that own heap memory or are otherwise not Copy.
OWNING_TYPES = {
    "String", "Vec", "Box", "Rc", "Arc", "Cell", "RefCell", "Mutex", "RwLock",
    "HashMap", "HashSet", "BTreeMap", "BTreeSet", "VecDeque", "LinkedList",
    "CString", "OsString", "PathBuf",
}

STD_ROOTS = {"std", "core", "alloc"}


def is_unit(t: PayloadType) -> bool:
    return t is BuiltinType.UNIT


def walk(t: PayloadType):
    """Yield `t` and every type nested in it by value."""
    yield t
    if isinstance(t, ArrayType):
        yield from walk(t.element)
    elif isinstance(t, (StructType, UnionType)):
        for _, ft in t.fields:
            yield from walk(ft)
