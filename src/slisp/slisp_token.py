"""Token types and token representation for Slisp source text."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SlispTokenType(Enum):
    """Token types for Slisp source text."""
    LPAREN = "("
    RPAREN = ")"
    NUMBER = "NUMBER"
    IDENT = "IDENT"


@dataclass
class SlispToken:
    """Represents a single token in Slisp source text."""
    type: SlispTokenType
    value: Any
    position: int
    length: int = 1

    def __repr__(self) -> str:
        return f"SlispToken({self.type.name}, {self.value!r}, pos={self.position})"
