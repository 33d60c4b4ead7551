"""Slisp Virtual Machine - executes linked bytecode."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from slisp.slisp_bytecode import Opcode, SlispInstruction, SlispProgram
from slisp.slisp_error import SlispEvalError
from slisp.slisp_heap import SlispHeap, SlispHeapCell, NIL_REFERENCE
from slisp.slisp_trace import SlispTraceWatcher
from slisp.slisp_value import (
    SlispValue, SlispNumber, SlispBoolean, SlispFunction, SlispReference, INT64_MIN, INT64_MAX
)


@dataclass
class Frame:
    """
    Execution frame for one function activation.

    Each frame owns its operand stack and its locals.  Locals only ever grow
    within a frame.  The outermost frame has no return address.
    """
    locals: List[SlispValue] = field(default_factory=list)
    stack: List[SlispValue] = field(default_factory=list)
    return_pc: Optional[int] = None


@dataclass
class SlispExecutionResult:
    """Outcome of a run: the final value (if any) and the heap contents."""
    value: Optional[SlispValue]
    heap: List[SlispHeapCell]


# Operation names used in runtime fault messages
_OPERATION_NAMES = {
    Opcode.ADD: "addition",
    Opcode.SUB: "subtraction",
    Opcode.LESS: "less-than comparison",
}


class SlispVM:
    """
    Virtual machine for executing Slisp bytecode.

    Uses a flat instruction array with a single program counter, a stack of
    call frames, and an append-only heap of cons cells.
    """

    def __init__(self, max_call_depth: int = 1000) -> None:
        """
        Initialize the virtual machine.

        Args:
            max_call_depth: Maximum number of simultaneously active frames
        """
        self.max_call_depth = max_call_depth
        self.pc = 0
        self.frames: List[Frame] = []
        self.heap = SlispHeap()
        self.instructions: List[SlispInstruction] = []

        # Execution counters, reset on each run
        self.call_count = 0
        self.return_count = 0

        self.trace_watcher: Optional[SlispTraceWatcher] = None
        self._logger = logging.getLogger("SlispVM")

        self._dispatch_table = self._build_dispatch_table()

    def set_trace_watcher(self, watcher: Optional[SlispTraceWatcher]) -> None:
        """
        Set the trace watcher (replaces any existing watcher).

        Args:
            watcher: SlispTraceWatcher instance or None to disable tracing
        """
        self.trace_watcher = watcher

    def _build_dispatch_table(self) -> List[Any]:
        """Build jump table for opcode dispatch, indexed by opcode value."""
        table: List[Optional[Callable[[Frame, int], Optional[bool]]]] = [None] * (max(Opcode) + 1)
        table[Opcode.HALT] = self._op_halt
        table[Opcode.PUSH_CONST] = self._op_push_const
        table[Opcode.PUSH_TRUE] = self._op_push_true
        table[Opcode.PUSH_FALSE] = self._op_push_false
        table[Opcode.PUSH_NIL] = self._op_push_nil
        table[Opcode.PUSH_FUNCTION] = self._op_push_function
        table[Opcode.ADD] = self._op_add
        table[Opcode.SUB] = self._op_sub
        table[Opcode.LESS] = self._op_less
        table[Opcode.BIND_LOCAL] = self._op_bind_local
        table[Opcode.LOAD_LOCAL] = self._op_load_local
        table[Opcode.BRANCH_IF_FALSE] = self._op_branch_if_false
        table[Opcode.JUMP] = self._op_jump
        table[Opcode.MAKE_CONS] = self._op_make_cons
        table[Opcode.CALL] = self._op_call
        table[Opcode.RETURN] = self._op_return
        return table

    def execute(self, program: SlispProgram) -> SlispExecutionResult:
        """
        Execute a linked program and return the result.

        Args:
            program: Linked program (no LABEL markers)

        Returns:
            Top of the outermost frame's operand stack (or None) and the heap snapshot

        Raises:
            SlispEvalError: On any runtime fault
        """
        if not program.is_linked():
            raise SlispEvalError(
                message="Program contains unlinked label markers",
                suggestion="Run the program through SlispLinker before executing it"
            )

        self.instructions = program.instructions
        self.pc = 0
        self.frames = [Frame()]
        self.heap = SlispHeap()
        self.call_count = 0
        self.return_count = 0

        self._logger.debug("Executing %d instructions", len(self.instructions))
        self._run()

        final_frame = self.frames[-1]
        value = final_frame.stack[-1] if final_frame.stack else None
        self._logger.debug(
            "Halted at pc %d after %d calls, heap holds %d cells", self.pc, self.call_count, len(self.heap)
        )
        return SlispExecutionResult(value, self.heap.snapshot())

    def _run(self) -> None:
        """Fetch-decode-execute loop.  Stops at HALT or when the pc runs off the end."""
        instructions = self.instructions
        dispatch = self._dispatch_table

        while self.pc < len(instructions):
            instr = instructions[self.pc]
            frame = self.frames[-1]

            if self.trace_watcher is not None:
                self.trace_watcher.on_trace(f"{self.pc:5d}: {instr!r} [depth {len(self.frames)}]")

            # Increment pc before executing so jumps and calls can override it
            self.pc += 1

            handler = dispatch[instr.opcode]
            if handler is None:
                raise SlispEvalError(f"Unimplemented opcode: {instr.opcode.name}")

            if handler(frame, instr.arg):
                return

    def _pop(self, frame: Frame, role: str) -> SlispValue:
        """Pop one operand, reporting which operand was missing on underflow."""
        if not frame.stack:
            raise SlispEvalError(
                message=f"Operand stack underflow: missing {role}",
                context=f"At pc {self.pc - 1}"
            )

        return frame.stack.pop()

    def _pop_number(self, frame: Frame, role: str) -> int:
        value = self._pop(frame, role)
        if not isinstance(value, SlispNumber):
            raise SlispEvalError(
                message=f"The {role} must be a number",
                received=f"{value.describe()} ({value.type_name()})",
                expected="number",
                context=f"At pc {self.pc - 1}"
            )

        return value.value

    def _check_range(self, result: int, operation: str) -> int:
        if not INT64_MIN <= result <= INT64_MAX:
            raise SlispEvalError(
                message=f"Integer overflow in {operation}",
                received=str(result),
                expected=f"Result between {INT64_MIN} and {INT64_MAX}"
            )

        return result

    def _op_halt(self, _frame: Frame, _arg: int) -> Optional[bool]:
        """HALT: stop the machine."""
        return True

    def _op_push_const(self, frame: Frame, arg: int) -> Optional[bool]:
        """PUSH_CONST: push a number literal."""
        frame.stack.append(SlispNumber(arg))
        return None

    def _op_push_true(self, frame: Frame, _arg: int) -> Optional[bool]:
        frame.stack.append(SlispBoolean(True))
        return None

    def _op_push_false(self, frame: Frame, _arg: int) -> Optional[bool]:
        frame.stack.append(SlispBoolean(False))
        return None

    def _op_push_nil(self, frame: Frame, _arg: int) -> Optional[bool]:
        frame.stack.append(NIL_REFERENCE)
        return None

    def _op_push_function(self, frame: Frame, entry: int) -> Optional[bool]:
        """PUSH_FUNCTION: push a function value for the given entry address."""
        frame.stack.append(SlispFunction(entry))
        return None

    def _op_add(self, frame: Frame, _arg: int) -> Optional[bool]:
        operation = _OPERATION_NAMES[Opcode.ADD]
        right = self._pop_number(frame, f"right operand of {operation}")
        left = self._pop_number(frame, f"left operand of {operation}")
        frame.stack.append(SlispNumber(self._check_range(left + right, operation)))
        return None

    def _op_sub(self, frame: Frame, _arg: int) -> Optional[bool]:
        operation = _OPERATION_NAMES[Opcode.SUB]
        right = self._pop_number(frame, f"right operand of {operation}")
        left = self._pop_number(frame, f"left operand of {operation}")
        frame.stack.append(SlispNumber(self._check_range(left - right, operation)))
        return None

    def _op_less(self, frame: Frame, _arg: int) -> Optional[bool]:
        operation = _OPERATION_NAMES[Opcode.LESS]
        right = self._pop_number(frame, f"right operand of {operation}")
        left = self._pop_number(frame, f"left operand of {operation}")
        frame.stack.append(SlispBoolean(left < right))
        return None

    def _op_bind_local(self, frame: Frame, _arg: int) -> Optional[bool]:
        """BIND_LOCAL: pop a value into the next unused local slot."""
        frame.locals.append(self._pop(frame, "value to bind"))
        return None

    def _op_load_local(self, frame: Frame, slot: int) -> Optional[bool]:
        """LOAD_LOCAL: push a copy of a local."""
        if not 0 <= slot < len(frame.locals):
            raise SlispEvalError(
                message=f"Local slot {slot} does not exist",
                context=f"Frame has {len(frame.locals)} locals, at pc {self.pc - 1}"
            )

        frame.stack.append(frame.locals[slot])
        return None

    def _op_branch_if_false(self, frame: Frame, target: int) -> Optional[bool]:
        """BRANCH_IF_FALSE: pop a boolean and jump if it is false."""
        condition = self._pop(frame, "if condition")
        if not isinstance(condition, SlispBoolean):
            raise SlispEvalError(
                message="If condition must be boolean",
                received=f"{condition.describe()} ({condition.type_name()})",
                expected="true or false",
                example="(if (< x 1) 0 x)"
            )

        if not condition.value:
            self.pc = target

        return None

    def _op_jump(self, _frame: Frame, target: int) -> Optional[bool]:
        self.pc = target
        return None

    def _op_make_cons(self, frame: Frame, _arg: int) -> Optional[bool]:
        """MAKE_CONS: pop right then left, allocate a cell, push its reference."""
        right = self._pop(frame, "right operand of cons")
        left = self._pop(frame, "left operand of cons")
        frame.stack.append(self.heap.allocate_cons(left, right))
        return None

    def _op_call(self, frame: Frame, argc: int) -> Optional[bool]:
        """CALL: pop the callee and argc arguments, then enter a new frame."""
        func = self._pop(frame, "function to call")
        if not isinstance(func, SlispFunction):
            raise SlispEvalError(
                message="Cannot call non-function value",
                received=f"Attempted to call: {func.describe()} ({func.type_name()})",
                expected="Function",
                suggestion="Only functions defined with (let name (params) body in ...) can be called"
            )

        if len(frame.stack) < argc:
            raise SlispEvalError(
                message=f"Operand stack underflow: call needs {argc} arguments, found {len(frame.stack)}",
                context=f"At pc {self.pc - 1}"
            )

        if len(self.frames) >= self.max_call_depth:
            raise SlispEvalError(
                message=f"Maximum call depth exceeded ({self.max_call_depth})",
                suggestion="Check for unbounded recursion or raise max_call_depth"
            )

        args = frame.stack[len(frame.stack) - argc:]
        del frame.stack[len(frame.stack) - argc:]

        self.frames.append(Frame(locals=args, return_pc=self.pc))
        self.pc = func.entry
        self.call_count += 1
        return None

    def _op_return(self, frame: Frame, retc: int) -> Optional[bool]:
        """RETURN: move retc values to the caller's stack and resume at the return address."""
        if frame.return_pc is None or len(self.frames) < 2:
            raise SlispEvalError(
                message="Return from the outermost frame",
                context=f"At pc {self.pc - 1}"
            )

        if len(frame.stack) < retc:
            raise SlispEvalError(
                message=f"Operand stack underflow: return needs {retc} values, found {len(frame.stack)}",
                context=f"At pc {self.pc - 1}"
            )

        values = frame.stack[len(frame.stack) - retc:]
        self.frames.pop()
        self.frames[-1].stack.extend(values)
        self.pc = frame.return_pc
        self.return_count += 1
        return None
