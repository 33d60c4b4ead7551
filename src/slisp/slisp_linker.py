"""Slisp linker - resolves symbolic labels to absolute instruction positions."""

import logging
from typing import Dict

from slisp.slisp_bytecode import SlispInstruction, SlispProgram
from slisp.slisp_error import SlispLinkError


class SlispLinker:
    """
    Two-pass label patcher.

    Pass 1 records where each LABEL marker falls in the marker-free stream.
    Pass 2 drops the markers and rewrites every label argument using that
    table.  The table only lives for the duration of one link() call.
    """

    def __init__(self) -> None:
        self._logger = logging.getLogger("SlispLinker")

    def link(self, program: SlispProgram) -> SlispProgram:
        """
        Link a program.

        Args:
            program: Program containing LABEL markers and symbolic targets

        Returns:
            New program with no markers and absolute targets

        Raises:
            SlispLinkError: If a label is defined twice or referenced but never defined
        """
        labels = self._build_label_table(program)
        linked = self._patch(program, labels)
        self._logger.debug(
            "Linked %d labels: %d instructions in, %d out", len(labels), len(program), len(linked)
        )
        return linked

    def _build_label_table(self, program: SlispProgram) -> Dict[int, int]:
        labels: Dict[int, int] = {}
        position = 0
        for instr in program.instructions:
            if not instr.is_label():
                position += 1
                continue

            if instr.arg in labels:
                raise SlispLinkError(
                    message=f"Label L{instr.arg} is defined more than once",
                    context=f"First defined at position {labels[instr.arg]}, again at {position}"
                )

            labels[instr.arg] = position

        return labels

    def _patch(self, program: SlispProgram, labels: Dict[int, int]) -> SlispProgram:
        patched = []
        for index, instr in enumerate(program.instructions):
            if instr.is_label():
                continue

            if not instr.opcode.takes_label:
                patched.append(SlispInstruction(instr.opcode, instr.arg))
                continue

            if instr.arg not in labels:
                raise SlispLinkError(
                    message=f"Reference to undefined label L{instr.arg}",
                    received=f"{instr!r} at stream index {index}",
                    context="Every jump target must have exactly one LABEL marker"
                )

            patched.append(SlispInstruction(instr.opcode, labels[instr.arg]))

        return SlispProgram(patched)
