# internals/errors.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from tagged_union.internals.report import Span, Reporter


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class Category(str, Enum):
    GENERAL  = "general"
    SHAPE    = "shape"
    TAG      = "tag"
    TYPE     = "type"
    CONFIG   = "config"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ErrorMessage:
    code: str
    severity: Severity
    text: str
    category: Category = Category.GENERAL
    doc: str = ""


REGISTRY: Dict[str, ErrorMessage] = {}

class _ErrorCatalog:
    def __init__(self, backing: Dict[str, ErrorMessage]) -> None:
        self._registry = backing

    def __getattr__(self, name: str) -> ErrorMessage:
        try:
            return self._registry[name]
        except KeyError as e:
            raise AttributeError(name) from e

    def __getitem__(self, code: str) -> ErrorMessage:
        return self._registry[code]


ERR = _ErrorCatalog(REGISTRY)

def emit(r: Reporter, em: ErrorMessage, span: Optional[Span], **kwargs) -> None:
    text = _fmt(em.code, **kwargs)
    if em.severity == Severity.ERROR:
        r.error(em.code, text, span)
    else:
        r.warn(em.code, text, span)

def format_message(em: ErrorMessage, **kwargs) -> str:
    """Render the text of a catalog entry with its parameters."""
    return _fmt(em.code, **kwargs)

def raise_internal_error(code: str, **kwargs) -> None:
    """Raise a RuntimeError for internal generator errors.

    Internal errors (TU0xxx codes) indicate generator bugs, not problems in
    the analyzed declarations.

    Raises:
        RuntimeError: Always raises with formatted error message
    """
    text = _fmt(code, **kwargs)
    raise RuntimeError(f"{code}: {text}")


#
# --- Helpers
#

def _add(msg: ErrorMessage) -> None:
    if msg.code in REGISTRY:
        raise ValueError(f"duplicate error code {REGISTRY[msg.code]} in {msg}")
    REGISTRY[msg.code] = msg

def _get(code: str) -> ErrorMessage:
    try:
        return REGISTRY[code]
    except KeyError:
        raise KeyError(f"unknown error code: {code}")

def _fmt(code: str, **kwargs) -> str:
    msg = _get(code)
    try:
        return msg.text.format(**kwargs)
    except KeyError as key_error:
        missing = key_error.args[0]
        raise KeyError(f"missing text key '{missing}' for {code} "
                       f"(needed by: {msg.text!r})") from None

#
# --- Registry population
#

# Internal errors (generator bugs) - TU0xxx range
_add(ErrorMessage("TU0001", Severity.ERROR,
    "unknown type node '{node}'",
    Category.INTERNAL, "Found an unexpected parse tree node (bug or unsupported syntax)."))

_add(ErrorMessage("TU0002", Severity.ERROR,
    "no layout rule for payload type '{type}'",
    Category.INTERNAL, "A resolved payload type has no size/alignment rule."))

_add(ErrorMessage("TU0003", Severity.ERROR,
    "no {target} spelling for payload type '{type}'",
    Category.INTERNAL, "An emitter was handed a payload type it cannot spell."))

_add(ErrorMessage("TU0004", Severity.ERROR,
    "variant '{variant}' has no conversion arm",
    Category.INTERNAL, "The conversion contract does not cover every variant."))

_add(ErrorMessage("TU0005", Severity.ERROR,
    "LLVM IR verification failed: {message}",
    Category.INTERNAL, "The generated IR module was rejected by the LLVM verifier."))

# Syntax errors - TU01xx range
_add(ErrorMessage("TU0100", Severity.ERROR,
    "syntax error: {detail}",
    Category.GENERAL, "The declaration source could not be parsed."))

# Shape errors - TU10xx range
_add(ErrorMessage("TU1001", Severity.ERROR,
    "'{name}' is a {kind}, not an enum; TaggedUnion can only be derived for enums",
    Category.SHAPE, "Only sum types can be lowered to a tag plus a raw union."))

_add(ErrorMessage("TU1002", Severity.ERROR,
    "cannot derive TaggedUnion for generic type '{name}' (declares {params})",
    Category.SHAPE, "A raw union needs a concrete layout; generic, lifetime and const parameters and where clauses are rejected."))

_add(ErrorMessage("TU1003", Severity.ERROR,
    "enum '{name}' has no variants",
    Category.SHAPE, "Neither C nor Rust accepts a union without fields."))

_add(ErrorMessage("TU1004", Severity.ERROR,
    "variant '{enum}::{variant}' carries {count} values; only a single payload value is supported",
    Category.SHAPE, "Each variant may carry at most one positional payload."))

_add(ErrorMessage("TU1005", Severity.ERROR,
    "variant '{enum}::{variant}' has named fields; struct-style variants are not supported",
    Category.SHAPE, "Wrap the fields in a struct and carry that struct as the payload."))

_add(ErrorMessage("TU1006", Severity.ERROR,
    "enum '{name}' must derive Copy to be lowered to a raw union",
    Category.SHAPE, "The raw union cannot hold values that are not trivially copyable."))

_add(ErrorMessage("TU1007", Severity.ERROR,
    "payload type '{type}' of variant '{enum}::{variant}' is not trivially copyable",
    Category.SHAPE, "Owning, reference-counted and mutably borrowed payloads cannot live in a raw union."))

_add(ErrorMessage("TU1008", Severity.ERROR,
    "variants '{first}' and '{second}' both map to tag constant '{tag}'",
    Category.TAG, "Tag constant names are upper-cased and must stay unique."))

# Type resolution and selection errors - TU20xx range
_add(ErrorMessage("TU2001", Severity.ERROR,
    "unknown payload type '{type}' in variant '{enum}::{variant}'",
    Category.TYPE, "Payload types must be primitives or structs, unions and aliases declared in the same source."))

_add(ErrorMessage("TU2002", Severity.ERROR,
    "type '{name}' is recursive ({path})",
    Category.TYPE, "A type alias cycle or a struct containing itself by value has no finite layout."))

_add(ErrorMessage("TU2003", Severity.ERROR,
    "type '{name}' is declared more than once",
    Category.TYPE, "Every declared type name must be unique within one source."))

_add(ErrorMessage("TU2004", Severity.ERROR,
    "no enum named '{name}' in this source",
    Category.TYPE, "A requested type was not found among the parsed enums."))

_add(ErrorMessage("TU2005", Severity.ERROR,
    "generated name '{name}' for enum '{enum}' collides with {other}",
    Category.TYPE, "Unions, records and tag constants of every selected enum share one namespace with the declared types."))

# Configuration errors - TU30xx range
_add(ErrorMessage("TU3001", Severity.ERROR,
    "invalid configuration: {reason}",
    Category.CONFIG, "The tagunion.toml file could not be used."))

# Warnings - TW0xxx range
_add(ErrorMessage("TW0001", Severity.WARNING,
    "explicit discriminant on '{enum}::{variant}' is ignored; tags follow declaration order",
    Category.TAG, "Tag numbers are always the contiguous range 0..N in declaration order."))

_add(ErrorMessage("TW0002", Severity.WARNING,
    "payload type '{name}' has no #[repr(C)]; its layout is assumed to follow C rules",
    Category.TYPE, "Pin payload struct layouts with #[repr(C)] for cross-language use."))

_add(ErrorMessage("TW0003", Severity.WARNING,
    "no enum in this source derives TaggedUnion; generating for every enum",
    Category.GENERAL, "Add #[derive(TaggedUnion)] or pass --type to select enums explicitly."))
