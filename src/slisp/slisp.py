"""Main Slisp class - compiles and runs Slisp programs."""

from typing import Any, Optional, Tuple

from slisp.slisp_bytecode import SlispProgram
from slisp.slisp_compiler import SlispCompiler
from slisp.slisp_trace import SlispTraceWatcher
from slisp.slisp_vm import SlispVM, SlispExecutionResult


class Slisp:
    """
    Slisp compiler and virtual machine front end.

    Each call compiles the source from scratch and runs it on a fresh machine
    state, so results are deterministic and independent between calls.
    """

    def __init__(self, max_call_depth: int = 1000):
        """
        Initialize Slisp.

        Args:
            max_call_depth: Maximum number of simultaneously active call frames
        """
        self.max_call_depth = max_call_depth
        self.compiler = SlispCompiler()
        self.trace_watcher: Optional[SlispTraceWatcher] = None

    def set_trace_watcher(self, watcher: Optional[SlispTraceWatcher]) -> None:
        """
        Set a trace watcher that will see every executed instruction.

        Args:
            watcher: SlispTraceWatcher instance or None to disable tracing
        """
        self.trace_watcher = watcher

    def compile(self, source: str) -> SlispProgram:
        """
        Compile source to a linked program.

        Args:
            source: Slisp source code

        Returns:
            Linked program
        """
        return self.compiler.compile(source)

    def run(self, source: str) -> SlispExecutionResult:
        """
        Compile and execute source.

        Args:
            source: Slisp source code

        Returns:
            Final value (or None) and heap snapshot

        Raises:
            SlispTokenError: If tokenization fails
            SlispParseError: If parsing fails
            SlispCompileError: If the program is malformed
            SlispEvalError: If execution faults
        """
        _, result = self._execute(source)
        return result

    def evaluate(self, source: str) -> Any:
        """
        Compile and execute source, converting the result to Python types.

        Numbers become int, booleans bool, lists Python lists (dotted tails
        become (head, tail) tuples) and functions stay SlispFunction values.

        Args:
            source: Slisp source code

        Returns:
            The result converted to Python, or None if there is no result
        """
        vm, result = self._execute(source)
        if result.value is None:
            return None

        return vm.heap.to_python(result.value)

    def evaluate_and_format(self, source: str) -> str:
        """
        Compile and execute source, returning the result in Lisp notation.

        Args:
            source: Slisp source code

        Returns:
            String representation of the result, or an empty string if there is no result
        """
        vm, result = self._execute(source)
        if result.value is None:
            return ""

        return vm.heap.format_value(result.value)

    def _execute(self, source: str) -> Tuple[SlispVM, SlispExecutionResult]:
        program = self.compile(source)
        vm = SlispVM(max_call_depth=self.max_call_depth)
        vm.set_trace_watcher(self.trace_watcher)
        return vm, vm.execute(program)
