"""Bytecode definitions for the Slisp virtual machine."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Tuple


def _op(n: int, arg_count: int = 0, takes_label: bool = False) -> Tuple[int, int, bool]:
    """Helper to construct an Opcode value: (integer_value, arg_count, takes_label).

    arg_count is the number of instruction-stream arguments the opcode encodes
    (0 or 1; operands popped from the stack do not count).

    takes_label marks opcodes whose argument is a symbolic label before linking
    and an absolute program counter afterwards.
    """
    return (n, arg_count, takes_label)


class Opcode(IntEnum):
    """Bytecode operation codes.

    Each member's value is an (integer_value, arg_count, takes_label) tuple.
    The integer value is used for VM dispatch; the other two fields are exposed
    as properties for the linker and the disassembler.
    """

    _arg_count: int
    _takes_label: bool

    def __new__(cls, int_value: int, arg_count: int = 0, takes_label: bool = False) -> 'Opcode':
        obj = int.__new__(cls, int_value)
        obj._value_ = int_value
        obj._arg_count = arg_count
        obj._takes_label = takes_label
        return obj

    @property
    def arg_count(self) -> int:
        """Number of instruction-stream arguments (0 or 1)."""
        return self._arg_count

    @property
    def takes_label(self) -> bool:
        """True if the argument is a jump target that the linker patches."""
        return self._takes_label

    HALT = _op(0)                           # Stop execution

    # Constants
    PUSH_CONST = _op(1, 1)                  # PUSH_CONST n
    PUSH_TRUE = _op(2)                      # Push true
    PUSH_FALSE = _op(3)                     # Push false
    PUSH_NIL = _op(4)                       # Push reference to heap cell 0
    PUSH_FUNCTION = _op(5, 1, True)         # PUSH_FUNCTION entry

    # Integer operations
    ADD = _op(10)                           # a + b
    SUB = _op(11)                           # a - b
    LESS = _op(12)                          # a < b

    # Locals
    BIND_LOCAL = _op(20)                    # Pop and append to frame locals
    LOAD_LOCAL = _op(21, 1)                 # LOAD_LOCAL slot

    # Control flow
    BRANCH_IF_FALSE = _op(30, 1, True)      # Pop boolean, jump to target if false
    JUMP = _op(31, 1, True)                 # Unconditional jump

    # Heap
    MAKE_CONS = _op(40)                     # Pop right, pop left, push new cell reference

    # Functions
    CALL = _op(50, 1)                       # CALL argc (callee on top of the arguments)
    RETURN = _op(51, 1)                     # RETURN retc

    # Linker pseudo-instruction
    LABEL = _op(60, 1)                      # LABEL id  (removed by the linker)


@dataclass
class SlispInstruction:
    """Single bytecode instruction."""
    opcode: Opcode
    arg: int = 0

    def arg_count(self) -> int:
        """Return the number of instruction-stream arguments this instruction takes."""
        return self.opcode.arg_count

    def is_label(self) -> bool:
        """Check whether this is a label marker rather than a real instruction."""
        return self.opcode == Opcode.LABEL

    def __repr__(self) -> str:
        """Human-readable representation."""
        if self.arg_count() == 0:
            return f"{self.opcode.name}"

        return f"{self.opcode.name} {self.arg}"


@dataclass
class SlispProgram:
    """
    A flat instruction stream.

    Before linking it may contain LABEL markers and symbolic targets; after
    linking every target is an absolute index into the stream.
    """
    instructions: List[SlispInstruction] = field(default_factory=list)

    def is_linked(self) -> bool:
        """Check whether the stream is free of label markers."""
        return not any(instr.is_label() for instr in self.instructions)

    def __len__(self) -> int:
        return len(self.instructions)

    def __repr__(self) -> str:
        return f"SlispProgram({len(self.instructions)} instructions)"

    def disassemble(self) -> str:
        """
        Return a listing of the program for debugging.

        Label markers are shown as "L<n>:" lines and do not take an index,
        so indices match the positions the linker will assign.
        """
        lines = []
        index = 0
        for instr in self.instructions:
            if instr.is_label():
                lines.append(f"L{instr.arg}:")
                continue

            lines.append(f"  {index:4d}: {instr}")
            index += 1

        return "\n".join(lines)
