"""Slisp heap - an append-only arena of cons cells addressed by index."""

from dataclasses import dataclass
from typing import Any, List, Union

from slisp.slisp_error import SlispEvalError
from slisp.slisp_value import SlispValue, SlispReference


@dataclass(frozen=True)
class SlispNil:
    """The empty list.  Lives at heap index 0."""

    def describe(self) -> str:
        return "Nil"


@dataclass(frozen=True)
class SlispCons:
    """One list node."""
    left: SlispValue
    right: SlispValue

    def describe(self) -> str:
        return f"Cons({self.left.describe()}, {self.right.describe()})"


SlispHeapCell = Union[SlispNil, SlispCons]


NIL_REFERENCE = SlispReference(0)


class SlispHeap:
    """
    Append-only cell arena.

    Object identity is the cell index, which stays valid for the whole run
    because nothing is ever reclaimed.
    """

    def __init__(self) -> None:
        self.cells: List[SlispHeapCell] = [SlispNil()]

    def allocate_cons(self, left: SlispValue, right: SlispValue) -> SlispReference:
        """
        Append a new cons cell.

        Args:
            left: Value stored in the left field
            right: Value stored in the right field

        Returns:
            Reference to the new cell
        """
        self.cells.append(SlispCons(left, right))
        return SlispReference(len(self.cells) - 1)

    def get(self, ref: SlispReference) -> SlispHeapCell:
        """Fetch the cell a reference points at."""
        if not 0 <= ref.index < len(self.cells):
            raise SlispEvalError(
                message=f"Dangling heap reference: {ref.index}",
                context=f"Heap holds {len(self.cells)} cells"
            )

        return self.cells[ref.index]

    def snapshot(self) -> List[SlispHeapCell]:
        """Return the heap contents in allocation order, nil sentinel included."""
        return list(self.cells)

    def format_value(self, value: SlispValue) -> str:
        """
        Format a value using Lisp conventions, following references into the heap.

        Proper lists print as (1 2 3), dotted pairs as (1 . 2) and nil as ().
        """
        if not isinstance(value, SlispReference):
            return value.describe()

        parts: List[str] = []
        current: SlispValue = value
        while isinstance(current, SlispReference):
            cell = self.get(current)
            if isinstance(cell, SlispNil):
                return "(" + " ".join(parts) + ")"

            parts.append(self.format_value(cell.left))
            current = cell.right

        return "(" + " ".join(parts) + " . " + current.describe() + ")"

    def to_python(self, value: SlispValue) -> Any:
        """
        Convert a value to Python, turning proper lists into Python lists.

        An improper tail is kept as a (head, tail) tuple.
        """
        if not isinstance(value, SlispReference):
            return value.to_python()

        items: List[Any] = []
        current: SlispValue = value
        while isinstance(current, SlispReference):
            cell = self.get(current)
            if isinstance(cell, SlispNil):
                return items

            items.append(self.to_python(cell.left))
            current = cell.right

        # Improper tail: fold the collected heads back into nested pairs
        result: Any = current.to_python()
        for item in reversed(items):
            result = (item, result)

        return result

    def __len__(self) -> int:
        return len(self.cells)
