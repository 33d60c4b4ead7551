"""Slisp code generator - turns a resolved expression tree into bytecode with symbolic labels.

The emitter dispatches on the leading identifier of each list over a closed
set of forms; anything that is not a recognised form is a function
application, and anything that fits no shape at all is a compile error.

Jump targets are emitted as label ids together with LABEL markers.  The
linker later replaces them with absolute instruction positions.

Each function definition is compiled by a nested emitter that shares the
label counter but has its own frame layout (parameters in slots 0..n-1).
The resulting blocks are kept in a side buffer and appended after the main
block, which is terminated by HALT at the top level.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from slisp.slisp_ast import SlispASTNode, SlispASTNumber, SlispASTIdent, SlispASTVar, SlispASTList, is_ident
from slisp.slisp_bytecode import Opcode, SlispInstruction, SlispProgram
from slisp.slisp_error import SlispCompileError


class SlispLabelCounter:
    """Hands out label ids that are unique across one compilation unit."""

    def __init__(self) -> None:
        self._next = 0

    def next_label(self) -> int:
        """Allocate a fresh label id."""
        label = self._next
        self._next += 1
        return label

    @property
    def count(self) -> int:
        """Number of labels allocated so far."""
        return self._next


@dataclass
class EmitterContext:
    """
    Emission state for one frame layout (the main block or one function body).

    Tracks the instruction stream, the side buffer of compiled function
    blocks, and the mapping from positional ids to frame local slots.
    """
    instructions: List[SlispInstruction] = field(default_factory=list)
    function_blocks: List[SlispInstruction] = field(default_factory=list)
    slots: Dict[int, int] = field(default_factory=dict)
    local_count: int = 0

    def emit(self, opcode: Opcode, arg: int = 0) -> int:
        """Emit an instruction and return its index."""
        index = len(self.instructions)
        self.instructions.append(SlispInstruction(opcode, arg))
        return index

    def mark(self, label: int) -> None:
        """Emit a label marker."""
        self.emit(Opcode.LABEL, label)

    def bind(self, var_id: int) -> None:
        """Emit BIND_LOCAL and record the slot it will occupy at runtime."""
        self.emit(Opcode.BIND_LOCAL)
        self.slots[var_id] = self.local_count
        self.local_count += 1

    def pad_locals(self, target: int) -> None:
        """Bind filler locals until the frame holds target locals."""
        while self.local_count < target:
            self.emit(Opcode.PUSH_NIL)
            self.emit(Opcode.BIND_LOCAL)
            self.local_count += 1


class SlispEmitter:
    """
    Generates bytecode from a resolved expression tree.

    An emitter compiles exactly one frame layout.  The top-level emitter is
    created with no function; nested emitters are created for each function
    definition with the function's self id, its entry label and its
    parameter ids.
    """

    # Keywords that head a special form
    _KEYWORDS = frozenset({"+", "-", "<", "let", "if", "cons", "in"})

    def __init__(
        self,
        labels: Optional[SlispLabelCounter] = None,
        self_id: Optional[int] = None,
        self_label: Optional[int] = None,
        params: Optional[List[int]] = None,
        arities: Optional[Dict[int, int]] = None
    ) -> None:
        """
        Initialize an emitter.

        Args:
            labels: Label counter shared with the enclosing emitter, if any
            self_id: Positional id of the function being compiled, if any
            self_label: Entry label of the function being compiled, if any
            params: Positional ids of the function's parameters
            arities: Parameter counts of named functions, shared with the enclosing emitter
        """
        self.labels = labels if labels is not None else SlispLabelCounter()
        self.self_id = self_id
        self.self_label = self_label
        self.params = params or []
        self.arities: Dict[int, int] = arities if arities is not None else {}

    @property
    def is_function(self) -> bool:
        """True if this emitter compiles a function body rather than the top level."""
        return self.self_label is not None

    def generate(self, expr: SlispASTNode) -> SlispProgram:
        """
        Generate bytecode for a resolved expression.

        Args:
            expr: Resolved expression tree

        Returns:
            Unlinked program: the main block, then HALT, then every function block

        Raises:
            SlispCompileError: If the tree contains a malformed form
        """
        ctx = self._new_context()
        self._emit_expr(expr, ctx)
        ctx.emit(Opcode.HALT)
        return SlispProgram(ctx.instructions + ctx.function_blocks)

    def generate_function(self, body: SlispASTNode) -> List[SlispInstruction]:
        """
        Generate a function block: entry label, body, RETURN 1, then nested function blocks.

        Args:
            body: Resolved function body

        Returns:
            Unlinked instruction block
        """
        assert self.self_label is not None, "generate_function requires a function emitter"
        ctx = self._new_context()
        ctx.mark(self.self_label)
        self._emit_expr(body, ctx)
        ctx.emit(Opcode.RETURN, 1)
        return ctx.instructions + ctx.function_blocks

    def _new_context(self) -> EmitterContext:
        ctx = EmitterContext()
        for param_id in self.params:
            ctx.slots[param_id] = ctx.local_count
            ctx.local_count += 1

        return ctx

    def _emit_expr(self, expr: SlispASTNode, ctx: EmitterContext) -> None:
        """Generate code for an expression."""
        if isinstance(expr, SlispASTNumber):
            ctx.emit(Opcode.PUSH_CONST, expr.value)

        elif isinstance(expr, SlispASTIdent):
            self._emit_ident(expr, ctx)

        elif isinstance(expr, SlispASTVar):
            self._emit_var(expr, ctx)

        elif isinstance(expr, SlispASTList):
            self._emit_list(expr, ctx)

        else:
            raise SlispCompileError(
                message=f"Unknown expression node: {type(expr).__name__}",
                received=repr(expr)
            )

    def _emit_ident(self, expr: SlispASTIdent, ctx: EmitterContext) -> None:
        if expr.name == "true":
            ctx.emit(Opcode.PUSH_TRUE)
            return

        if expr.name == "false":
            ctx.emit(Opcode.PUSH_FALSE)
            return

        if expr.name in self._KEYWORDS:
            raise SlispCompileError(
                message=f"Keyword '{expr.name}' cannot be used as a value",
                received=expr.describe(),
                suggestion=f"'{expr.name}' is only valid at the head of its form",
                position=expr.position
            )

        raise SlispCompileError(
            message=f"Unbound identifier: '{expr.name}'",
            received=expr.describe(),
            suggestion="Bind it with let or make it a function parameter",
            example=f"(let (({expr.name} 1)) in {expr.name})",
            position=expr.position
        )

    def _emit_var(self, expr: SlispASTVar, ctx: EmitterContext) -> None:
        if expr.var_id == self.self_id:
            assert self.self_label is not None
            ctx.emit(Opcode.PUSH_FUNCTION, self.self_label)
            return

        slot = ctx.slots.get(expr.var_id)
        if slot is None:
            raise SlispCompileError(
                message=f"Variable {expr.describe()} is not local to the current function",
                received=expr.describe(),
                context="Functions can only reference their parameters, their own locals and themselves",
                suggestion="Pass the value to the function as an extra parameter",
                position=expr.position
            )

        ctx.emit(Opcode.LOAD_LOCAL, slot)

    def _emit_list(self, expr: SlispASTList, ctx: EmitterContext) -> None:
        """Dispatch a list on its leading identifier."""
        if not expr.elements:
            ctx.emit(Opcode.PUSH_NIL)
            return

        head = expr.head_name()
        if head == "+":
            self._emit_arithmetic(expr, Opcode.ADD, ctx)

        elif head == "-":
            self._emit_arithmetic(expr, Opcode.SUB, ctx)

        elif head == "<":
            self._emit_less(expr, ctx)

        elif head == "let":
            self._emit_let(expr, ctx)

        elif head == "if":
            self._emit_if(expr, ctx)

        elif head == "cons":
            self._emit_cons(expr, ctx)

        elif head == "in":
            raise self._shape_error(expr, "'in' outside of a let expression", "(let ((x 1)) in x)")

        else:
            self._emit_call(expr, ctx)

    def _emit_arithmetic(self, expr: SlispASTList, opcode: Opcode, ctx: EmitterContext) -> None:
        """Generate a left-associative chain: (- a b c) is ((a - b) - c)."""
        operands = expr.elements[1:]
        if len(operands) < 2:
            raise self._shape_error(expr, f"'{expr.head_name()}' needs at least two operands", "(+ 1 2 3)")

        self._emit_expr(operands[0], ctx)
        for operand in operands[1:]:
            self._emit_expr(operand, ctx)
            ctx.emit(opcode)

    def _emit_less(self, expr: SlispASTList, ctx: EmitterContext) -> None:
        if len(expr.elements) != 3:
            raise self._shape_error(expr, "'<' takes exactly two operands", "(< 1 2)")

        self._emit_expr(expr.elements[1], ctx)
        self._emit_expr(expr.elements[2], ctx)
        ctx.emit(Opcode.LESS)

    def _emit_let(self, expr: SlispASTList, ctx: EmitterContext) -> None:
        elements = expr.elements
        if len(elements) == 4 and isinstance(elements[1], SlispASTList) and is_ident(elements[2], "in"):
            self._emit_sequential_let(expr, ctx)
            return

        if (
            len(elements) == 6 and isinstance(elements[1], SlispASTVar)
            and isinstance(elements[2], SlispASTList) and is_ident(elements[4], "in")
        ):
            self._emit_function_let(expr, ctx)
            return

        raise self._shape_error(
            expr, "Malformed let expression", "(let ((x 5)) in x) or (let f (n) n in (f 1))"
        )

    def _emit_sequential_let(self, expr: SlispASTList, ctx: EmitterContext) -> None:
        declarations = expr.elements[1]
        assert isinstance(declarations, SlispASTList)

        bound: List[int] = []
        for decl in declarations.elements:
            if not (
                isinstance(decl, SlispASTList) and len(decl.elements) == 2
                and isinstance(decl.elements[0], SlispASTVar)
            ):
                raise self._shape_error(decl, "Malformed let declaration", "(let ((x 5)) in x)")

            var = decl.elements[0]
            assert isinstance(var, SlispASTVar)
            self._emit_expr(decl.elements[1], ctx)
            ctx.bind(var.var_id)
            bound.append(var.var_id)

        self._emit_expr(expr.elements[3], ctx)

        # The slots stay allocated in the frame; only the names go out of scope
        for var_id in bound:
            ctx.slots.pop(var_id, None)

    def _emit_function_let(self, expr: SlispASTList, ctx: EmitterContext) -> None:
        _, fn_var, params, fn_body, _, body = expr.elements
        assert isinstance(fn_var, SlispASTVar) and isinstance(params, SlispASTList)

        param_ids = []
        for param in params.elements:
            if not isinstance(param, SlispASTVar):
                raise self._shape_error(param, "Function parameter must be an identifier", "(let f (x y) x in (f 1 2))")

            param_ids.append(param.var_id)

        # Recorded before the body is compiled so recursive calls are checked too
        self.arities[fn_var.var_id] = len(param_ids)

        entry = self.labels.next_label()
        nested = SlispEmitter(
            self.labels, self_id=fn_var.var_id, self_label=entry, params=param_ids, arities=self.arities
        )
        ctx.function_blocks.extend(nested.generate_function(fn_body))

        ctx.emit(Opcode.PUSH_FUNCTION, entry)
        ctx.bind(fn_var.var_id)
        self._emit_expr(body, ctx)
        ctx.slots.pop(fn_var.var_id, None)

    def _emit_if(self, expr: SlispASTList, ctx: EmitterContext) -> None:
        if len(expr.elements) != 4:
            raise self._shape_error(expr, "'if' takes a condition, a then branch and an else branch", "(if (< x 1) 0 x)")

        _, condition, then_branch, else_branch = expr.elements
        self._emit_expr(condition, ctx)

        else_label = self.labels.next_label()
        end_label = self.labels.next_label()
        ctx.emit(Opcode.BRANCH_IF_FALSE, else_label)

        # Locals are appended at runtime, so both branches must leave the frame
        # with the same number of locals.  Each branch is emitted from the same
        # starting count and the shorter one is padded.  Targets are symbolic
        # until linking, so padding can be spliced into the then branch late.
        base_count = ctx.local_count
        self._emit_expr(then_branch, ctx)
        then_count = ctx.local_count
        then_end = len(ctx.instructions)

        ctx.local_count = base_count
        ctx.emit(Opcode.JUMP, end_label)
        ctx.mark(else_label)
        self._emit_expr(else_branch, ctx)

        target = max(then_count, ctx.local_count)
        ctx.pad_locals(target)
        ctx.mark(end_label)

        padding = []
        for _ in range(target - then_count):
            padding.append(SlispInstruction(Opcode.PUSH_NIL))
            padding.append(SlispInstruction(Opcode.BIND_LOCAL))

        ctx.instructions[then_end:then_end] = padding
        ctx.local_count = target

    def _emit_cons(self, expr: SlispASTList, ctx: EmitterContext) -> None:
        if len(expr.elements) != 3:
            raise self._shape_error(expr, "'cons' takes exactly two operands", "(cons 1 ())")

        self._emit_expr(expr.elements[1], ctx)
        self._emit_expr(expr.elements[2], ctx)
        ctx.emit(Opcode.MAKE_CONS)

    def _emit_call(self, expr: SlispASTList, ctx: EmitterContext) -> None:
        """Generate a call: arguments left to right, then the callee, then CALL argc."""
        callee = expr.elements[0]
        args = expr.elements[1:]
        if isinstance(callee, SlispASTVar) and callee.var_id in self.arities:
            expected = self.arities[callee.var_id]
            if len(args) != expected:
                raise SlispCompileError(
                    message=f"Function {callee.describe()} takes {expected} "
                            f"{'argument' if expected == 1 else 'arguments'}, called with {len(args)}",
                    received=expr.describe(),
                    suggestion="Pass exactly one argument per declared parameter",
                    example="(let add (x y) (+ x y) in (add 1 2))",
                    position=expr.position
                )

        for arg in args:
            self._emit_expr(arg, ctx)

        self._emit_expr(callee, ctx)
        ctx.emit(Opcode.CALL, len(args))

    def _shape_error(self, expr: SlispASTNode, message: str, example: str) -> SlispCompileError:
        return SlispCompileError(
            message=message,
            received=expr.describe(),
            example=example,
            position=expr.position
        )
