"""Slisp Compiler - orchestrates the compilation pipeline.

This is the main entry point for compiling Slisp source code to bytecode.
It chains together the passes in order:

    tokenizer -> parser -> resolver -> emitter -> linker
"""

import logging

from slisp.slisp_ast import SlispASTNode
from slisp.slisp_bytecode import SlispProgram
from slisp.slisp_emitter import SlispEmitter, SlispLabelCounter
from slisp.slisp_linker import SlispLinker
from slisp.slisp_parser import SlispParser
from slisp.slisp_resolver import SlispResolver
from slisp.slisp_tokenizer import SlispTokenizer


class SlispCompiler:
    """
    Main compiler pass manager.
    """

    def __init__(self) -> None:
        self.tokenizer = SlispTokenizer()
        self.resolver = SlispResolver()
        self.linker = SlispLinker()
        self._logger = logging.getLogger("SlispCompiler")

    def parse(self, source: str) -> SlispASTNode:
        """
        Parse source text into an expression tree.

        Args:
            source: Slisp source code

        Returns:
            Unresolved expression tree
        """
        tokens = self.tokenizer.tokenize(source)
        return SlispParser(tokens, source).parse()

    def resolve(self, source: str) -> SlispASTNode:
        """
        Parse and resolve source text.

        Args:
            source: Slisp source code

        Returns:
            Expression tree with positional variable references
        """
        resolved = self.resolver.resolve(self.parse(source))
        self._logger.debug("Resolved %d bindings", self.resolver.ids_allocated)
        return resolved

    def compile_unlinked(self, source: str) -> SlispProgram:
        """
        Compile source text to bytecode that still contains label markers.

        Args:
            source: Slisp source code

        Returns:
            Unlinked program
        """
        resolved = self.resolve(source)
        labels = SlispLabelCounter()
        program = SlispEmitter(labels).generate(resolved)
        self._logger.debug("Emitted %d instructions using %d labels", len(program), labels.count)
        return program

    def compile(self, source: str) -> SlispProgram:
        """
        Compile Slisp source code to linked bytecode.

        This is the main entry point that runs the complete pipeline.

        Args:
            source: Slisp source code

        Returns:
            Linked program ready for execution

        Raises:
            SlispTokenError: If tokenization fails
            SlispParseError: If parsing fails
            SlispCompileError: If the program is malformed
            SlispLinkError: If label patching fails
        """
        return self.linker.link(self.compile_unlinked(source))
