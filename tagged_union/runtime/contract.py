# runtime/contract.py
"""The capability every bound sum type provides."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any


class InvalidTag(Exception):
    """A tagged record carried a tag outside the enum's tag range."""

    def __init__(self, got: int, possible_tags: range) -> None:
        self.got = got
        self.possible_tags = possible_tags
        super().__init__(
            f"invalid tag {got}, expected {possible_tags.start}..{possible_tags.stop}"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InvalidTag):
            return NotImplemented
        return self.got == other.got and self.possible_tags == other.possible_tags

    __hash__ = Exception.__hash__


class TaggedUnion(ABC):
    """A sum value that converts to and from its C-compatible tagged record."""

    @abstractmethod
    def as_tagged(self) -> Any:
        """Return a fresh tagged record holding this value. Never fails."""

    @classmethod
    @abstractmethod
    def from_tagged(cls, tagged: Any) -> "TaggedUnion":
        """Rebuild a value from a tagged record.

        The union field matching the stored tag must be the one last written.

        Raises:
            InvalidTag: if the stored tag is not a tag of this type.
        """
