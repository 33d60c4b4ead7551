"""Exception classes for Slisp with detailed context."""

from typing import Optional


class SlispError(Exception):
    """Base exception for Slisp errors with detailed context information."""

    def __init__(
        self,
        message: str,
        context: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        suggestion: Optional[str] = None,
        example: Optional[str] = None,
        position: Optional[int] = None
    ):
        """
        Initialize detailed error.

        Args:
            message: Core error description
            context: Additional context information
            expected: What was expected
            received: What was actually received
            suggestion: Suggestion for fixing the error
            example: Example of correct usage
            position: Character position where error occurred
        """
        self.message = message
        self.context = context
        self.expected = expected
        self.received = received
        self.suggestion = suggestion
        self.example = example
        self.position = position

        super().__init__(self._format_detailed_message())

    def _format_detailed_message(self) -> str:
        """Format the error message with all available details."""
        parts = [f"Error: {self.message}"]

        if self.position is not None:
            parts.append(f"Position: {self.position}")

        if self.received:
            parts.append(f"Received: {self.received}")

        if self.expected:
            parts.append(f"Expected: {self.expected}")

        if self.context:
            parts.append(f"Context: {self.context}")

        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")

        if self.example:
            parts.append(f"Example: {self.example}")

        return "\n".join(parts)


class SlispTokenError(SlispError):
    """Tokenization errors with detailed context."""


class SlispParseError(SlispError):
    """Parsing errors with detailed context."""


class SlispCompileError(SlispError):
    """Malformed program shapes found by the resolver or the emitter."""


class SlispLinkError(SlispError):
    """Label patching failures (always an emitter bug, never user input)."""


class SlispEvalError(SlispError):
    """Runtime faults raised by the virtual machine."""
