"""Exceptions raised when a declaration cannot be lowered to a tagged union.

Each exception carries the catalog entry it was raised for, the formatted
message and the span of the offending declaration, so a Reporter can render
it exactly like any other diagnostic.
"""
from __future__ import annotations
from typing import Optional, TYPE_CHECKING

from tagged_union.internals import errors as er

if TYPE_CHECKING:
    from tagged_union.internals.report import Reporter, Span


class AnalysisError(Exception):
    """Base class for analysis-time failures. Aborts the whole pipeline."""

    def __init__(self, error: er.ErrorMessage, span: Optional['Span'] = None, **kwargs):
        self.error = error
        self.text = er.format_message(error, **kwargs)
        self.span = span
        self.params = kwargs
        super().__init__(f"{error.code}: {self.text}")

    @property
    def code(self) -> str:
        return self.error.code

    def report(self, reporter: 'Reporter') -> None:
        reporter.error(self.code, self.text, self.span)


class NotAnEnum(AnalysisError):
    """The description is a struct, union or alias."""


class GenericNotSupported(AnalysisError):
    """The enum declares generic, lifetime or const parameters or a where clause."""


class EmptyEnum(AnalysisError):
    """The enum declares no variants."""


class UnsupportedVariantShape(AnalysisError):
    """A variant carries several values or named fields."""


class NotTriviallyCopyable(AnalysisError):
    """The enum or one of its payloads cannot be stored in a raw union."""


class DuplicateTagName(AnalysisError):
    """Two variants upper-case to the same tag constant."""


class UnknownPayloadType(AnalysisError):
    """A payload names a type that is neither primitive nor declared."""


class RecursiveType(AnalysisError):
    """An alias cycle or a struct containing itself by value."""


class DuplicateTypeName(AnalysisError):
    """Two declarations share one name."""


class UnknownSelectedType(AnalysisError):
    """A requested enum does not exist in the source."""
