"""Slisp trace watcher implementations.

A trace watcher attached to the virtual machine receives one message for
every instruction executed, which is useful when debugging the emitter or
following a program's calls and returns.
"""

from typing import Any, List, Protocol


class SlispTraceWatcher(Protocol):
    """Protocol for Slisp trace watchers."""
    def on_trace(self, message: str) -> None:
        """
        Called for each executed instruction.

        Args:
            message: Description of the instruction and the machine state
        """


class SlispStdoutTraceWatcher:
    """Watcher that prints trace messages to stdout."""

    def on_trace(self, message: str) -> None:
        print(message)


class SlispFileTraceWatcher:
    """Watcher that writes trace messages to a file."""

    def __init__(self, filepath: str):
        """
        Initialize file trace watcher.

        Args:
            filepath: Path to the file to write traces to
        """
        try:
            self.file = open(filepath, 'w', encoding='utf-8')  # pylint: disable=consider-using-with

        except IOError as e:
            raise RuntimeError(f"Failed to open trace file '{filepath}': {e}") from e

    def on_trace(self, message: str) -> None:
        try:
            self.file.write(message + '\n')
            self.file.flush()

        except IOError as e:
            raise RuntimeError(f"Failed to write to trace file: {e}") from e

    def close(self) -> None:
        """Close the trace file."""
        self.file.close()

    def __enter__(self) -> 'SlispFileTraceWatcher':
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class SlispBufferingTraceWatcher:
    """Watcher that buffers trace messages for programmatic access."""

    def __init__(self) -> None:
        self.traces: List[str] = []

    def on_trace(self, message: str) -> None:
        self.traces.append(message)

    def get_traces(self) -> List[str]:
        """
        Get all buffered traces.

        Returns:
            Copy of the trace messages in execution order
        """
        return self.traces.copy()

    def clear(self) -> None:
        """Clear all buffered traces."""
        self.traces.clear()
