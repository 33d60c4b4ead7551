"""Shared fixtures and utilities for Slisp tests."""

import pytest
from typing import Any, List, Tuple

from slisp import Slisp, SlispCompiler, SlispProgram, Opcode


@pytest.fixture
def slisp():
    """Create a fresh Slisp instance for each test."""
    return Slisp()


@pytest.fixture
def compiler():
    """Create a fresh compiler for each test."""
    return SlispCompiler()


class SlispTestHelpers:
    """Helper utilities for Slisp testing."""

    @staticmethod
    def assert_evaluates_to(slisp: Slisp, expression: str, expected: str) -> None:
        """Assert that expression evaluates to expected Lisp-formatted result."""
        result = slisp.evaluate_and_format(expression)
        assert result == expected, f"Expected '{expected}', got '{result}'"

    @staticmethod
    def assert_python_result(slisp: Slisp, expression: str, expected: Any) -> None:
        """Assert that expression evaluates to expected Python object."""
        result = slisp.evaluate(expression)
        assert result == expected, f"Expected Python result {expected!r}, got {result!r}"

    @staticmethod
    def ops(program: SlispProgram) -> List[Tuple[Opcode, int]]:
        """Flatten a program into (opcode, arg) pairs for comparison."""
        return [(instr.opcode, instr.arg) for instr in program.instructions]

    @staticmethod
    def build_nested_expression(operator: str, depth: int, base_value: str = "1") -> str:
        """Build deeply nested expression for recursion testing."""
        if depth <= 0:
            return base_value

        inner = SlispTestHelpers.build_nested_expression(operator, depth - 1, base_value)
        return f"({operator} {base_value} {inner})"


@pytest.fixture
def helpers():
    """Provide test helper utilities."""
    return SlispTestHelpers
