#!/usr/bin/env python3
"""
Slisp Disassembler - compile Slisp source files and show annotated bytecode.

This tool compiles a Slisp source file and prints the instruction stream with
a note on what each instruction does.  It can also show the stream before
linking (with label markers and symbolic targets) and run the program.

Usage:
    python slisp_disassemble.py <file.slisp>
    python slisp_disassemble.py <file.slisp> --output disasm.txt
    python slisp_disassemble.py <file.slisp> --unlinked
    python slisp_disassemble.py <file.slisp> --run
"""

import argparse
import logging
from pathlib import Path
import sys
from typing import List

from slisp import Slisp, SlispError
from slisp.slisp_bytecode import Opcode, SlispInstruction, SlispProgram


def annotate_instruction(instr: SlispInstruction, linked: bool) -> str:
    """Return a comment describing what an instruction does."""
    opcode = instr.opcode
    arg = instr.arg
    target = f"instruction {arg}" if linked else f"L{arg}"

    annotations = {
        Opcode.HALT: "Stop",
        Opcode.PUSH_CONST: f"Push number {arg}",
        Opcode.PUSH_TRUE: "Push true",
        Opcode.PUSH_FALSE: "Push false",
        Opcode.PUSH_NIL: "Push nil reference",
        Opcode.PUSH_FUNCTION: f"Push function entering at {target}",
        Opcode.ADD: "Pop two numbers, push sum",
        Opcode.SUB: "Pop two numbers, push difference",
        Opcode.LESS: "Pop two numbers, push left < right",
        Opcode.BIND_LOCAL: "Pop into next local slot",
        Opcode.LOAD_LOCAL: f"Push local[{arg}]",
        Opcode.BRANCH_IF_FALSE: f"Jump to {target} if top of stack is false",
        Opcode.JUMP: f"Jump to {target}",
        Opcode.MAKE_CONS: "Pop right and left, push new cons cell",
        Opcode.CALL: f"Call function with {arg} {'arg' if arg == 1 else 'args'}",
        Opcode.RETURN: f"Return {arg} {'value' if arg == 1 else 'values'} to caller",
    }

    return annotations.get(opcode, "")


def disassemble(program: SlispProgram, linked: bool) -> List[str]:
    """Produce annotated listing lines for a program."""
    output = []
    output.append('=' * 70)
    output.append(f"Instructions: {sum(1 for instr in program.instructions if not instr.is_label())}")
    output.append('=' * 70)

    index = 0
    for instr in program.instructions:
        if instr.is_label():
            output.append(f"L{instr.arg}:")
            continue

        instr_str = f"{index:6}: {instr.opcode.name:16} "
        instr_str += f"{instr.arg:5}" if instr.arg_count() else " " * 5
        output.append(f"{instr_str}  ; {annotate_instruction(instr, linked)}")
        index += 1

    output.append('-' * 70)
    return output


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Disassemble Slisp bytecode with annotations",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('file', help='Slisp source file to disassemble')
    parser.add_argument('--output', '-o', help='Output file (default: stdout)')
    parser.add_argument('--unlinked', '-u', action='store_true',
                        help='Show the stream before label patching')
    parser.add_argument('--run', '-r', action='store_true',
                        help='Also run the program and show the result and heap')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Show compiler debug logging')

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    source_path = Path(args.file)
    if not source_path.exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return 1

    with open(source_path, 'r', encoding='utf-8') as f:
        source = f.read()

    slisp = Slisp()

    try:
        if args.unlinked:
            program = slisp.compiler.compile_unlinked(source)

        else:
            program = slisp.compile(source)

    except SlispError as e:
        print(f"Error compiling {args.file}:\n{e}", file=sys.stderr)
        return 1

    output_lines = disassemble(program, linked=not args.unlinked)

    if args.run:
        try:
            result = slisp.run(source)

        except SlispError as e:
            print(f"Error running {args.file}:\n{e}", file=sys.stderr)
            return 1

        output_lines.append("Result: " + (result.value.describe() if result.value is not None else "<no value>"))
        output_lines.append("Heap:")
        for i, cell in enumerate(result.heap):
            output_lines.append(f"  [{i:4}] {cell.describe()}")

    output_text = '\n'.join(output_lines)

    if args.output:
        output_path = Path(args.output)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(output_text)

        print(f"Disassembly written to: {output_path}", file=sys.stderr)

    else:
        print(output_text)

    return 0


if __name__ == '__main__':
    sys.exit(main())
