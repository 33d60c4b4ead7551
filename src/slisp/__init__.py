"""Slisp - a small s-expression language compiled to bytecode for a stack machine."""

# Main API
from slisp.slisp import Slisp

# Exceptions
from slisp.slisp_error import (
    SlispError, SlispTokenError, SlispParseError, SlispCompileError, SlispLinkError, SlispEvalError
)

# Expression tree
from slisp.slisp_ast import SlispASTNode, SlispASTNumber, SlispASTIdent, SlispASTVar, SlispASTList

# Runtime values and heap
from slisp.slisp_value import SlispValue, SlispNumber, SlispBoolean, SlispFunction, SlispReference
from slisp.slisp_heap import SlispHeap, SlispNil, SlispCons

# Pipeline stages (for advanced usage)
from slisp.slisp_token import SlispToken, SlispTokenType
from slisp.slisp_tokenizer import SlispTokenizer
from slisp.slisp_parser import SlispParser
from slisp.slisp_resolver import SlispResolver
from slisp.slisp_emitter import SlispEmitter, SlispLabelCounter
from slisp.slisp_linker import SlispLinker
from slisp.slisp_compiler import SlispCompiler
from slisp.slisp_bytecode import Opcode, SlispInstruction, SlispProgram
from slisp.slisp_vm import SlispVM, SlispExecutionResult

# Trace watchers (for debugging)
from slisp.slisp_trace import (
    SlispTraceWatcher, SlispStdoutTraceWatcher, SlispFileTraceWatcher, SlispBufferingTraceWatcher
)


__all__ = [
    # Main API
    "Slisp",

    # Exceptions
    "SlispError", "SlispTokenError", "SlispParseError", "SlispCompileError", "SlispLinkError", "SlispEvalError",

    # Expression tree
    "SlispASTNode", "SlispASTNumber", "SlispASTIdent", "SlispASTVar", "SlispASTList",

    # Runtime values and heap
    "SlispValue", "SlispNumber", "SlispBoolean", "SlispFunction", "SlispReference",
    "SlispHeap", "SlispNil", "SlispCons",

    # Pipeline stages
    "SlispToken", "SlispTokenType", "SlispTokenizer", "SlispParser", "SlispResolver",
    "SlispEmitter", "SlispLabelCounter", "SlispLinker", "SlispCompiler",
    "Opcode", "SlispInstruction", "SlispProgram", "SlispVM", "SlispExecutionResult",

    # Trace watchers
    "SlispTraceWatcher", "SlispStdoutTraceWatcher", "SlispFileTraceWatcher", "SlispBufferingTraceWatcher",
]
