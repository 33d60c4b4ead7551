"""Slisp runtime values - immutable tagged values handled by the virtual machine."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class SlispValue(ABC):
    """
    Abstract base class for all Slisp runtime values.

    Values are immutable and copied by value between stack and locals.
    """

    @abstractmethod
    def to_python(self) -> Any:
        """Convert to Python value."""

    @abstractmethod
    def type_name(self) -> str:
        """Return Slisp type name for error messages."""

    @abstractmethod
    def describe(self) -> str:
        """Describe the value."""


@dataclass(frozen=True)
class SlispNumber(SlispValue):
    """Signed 64-bit integer."""
    value: int

    def to_python(self) -> int:
        return self.value

    def type_name(self) -> str:
        return "number"

    def describe(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class SlispBoolean(SlispValue):
    """Boolean true or false."""
    value: bool

    def to_python(self) -> bool:
        return self.value

    def type_name(self) -> str:
        return "boolean"

    def describe(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class SlispFunction(SlispValue):
    """Function value: the absolute program counter of the function's first instruction."""
    entry: int

    def to_python(self) -> 'SlispFunction':
        return self

    def type_name(self) -> str:
        return "function"

    def describe(self) -> str:
        return f"<function @{self.entry}>"


@dataclass(frozen=True)
class SlispReference(SlispValue):
    """Handle to a heap cell.  Index 0 is always nil."""
    index: int

    def to_python(self) -> int:
        """References only make sense relative to a heap; see SlispHeap.to_python."""
        return self.index

    def type_name(self) -> str:
        return "reference"

    def describe(self) -> str:
        return f"<ref {self.index}>"

    def is_nil(self) -> bool:
        """Check whether this is the canonical nil reference."""
        return self.index == 0
