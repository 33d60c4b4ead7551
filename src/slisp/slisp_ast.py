"""Slisp expression tree - the S-expression form shared by parser, resolver and emitter.

All syntactic forms are plain lists distinguished by their leading identifier,
so there are only four node types.  After name resolution, identifiers that
named bound variables are replaced by positional variable references.

Source positions are carried for diagnostics only and never take part in
equality, so a resolved tree compares equal to a hand-built one.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class SlispASTNode(ABC):
    """
    Abstract base class for all Slisp expression tree nodes.

    Nodes are immutable.  The source position is keyword-only so that
    positional construction stays short.
    """
    position: int | None = field(default=None, kw_only=True, compare=False)

    @abstractmethod
    def describe(self) -> str:
        """Render the node in source-like form."""


@dataclass(frozen=True)
class SlispASTNumber(SlispASTNode):
    """Integer literal."""
    value: int

    def describe(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class SlispASTIdent(SlispASTNode):
    """Identifier: a keyword, a boolean literal, or a not-yet-resolved name."""
    name: str

    def describe(self) -> str:
        return self.name


@dataclass(frozen=True)
class SlispASTVar(SlispASTNode):
    """Positional variable reference produced by name resolution."""
    var_id: int

    def describe(self) -> str:
        return f"${self.var_id}"


@dataclass(frozen=True)
class SlispASTList(SlispASTNode):
    """List of expressions; encodes every compound form."""
    elements: Tuple[SlispASTNode, ...] = ()

    def describe(self) -> str:
        return "(" + " ".join(element.describe() for element in self.elements) + ")"

    def head_name(self) -> str | None:
        """Return the leading identifier's name, or None if the list does not start with one."""
        if self.elements and isinstance(self.elements[0], SlispASTIdent):
            return self.elements[0].name

        return None


def is_ident(node: SlispASTNode, name: str) -> bool:
    """Check whether a node is the identifier with the given name."""
    return isinstance(node, SlispASTIdent) and node.name == name
