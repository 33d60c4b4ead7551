"""Tokenizer for Slisp source text with detailed error messages."""

from typing import List

from slisp.slisp_error import SlispTokenError
from slisp.slisp_token import SlispToken, SlispTokenType
from slisp.slisp_value import INT64_MIN, INT64_MAX


class SlispTokenizer:
    """Tokenizes Slisp source text into tokens with detailed error messages."""

    # Characters that have no meaning in Slisp, with a hint for each
    _INVALID_CHARACTERS = {
        '"': "Slisp has no strings - only integers, booleans and lists",
        "'": "Slisp has no quote syntax - build lists with (cons a b) and ()",
        '#': "Use true and false for booleans, not #t and #f",
        '[': "Use parentheses ( ) for lists, not brackets [ ]",
        ']': "Use parentheses ( ) for lists, not brackets [ ]",
        '{': "Use parentheses ( ) for all grouping, not braces { }",
        '}': "Use parentheses ( ) for all grouping, not braces { }",
    }

    def tokenize(self, expression: str) -> List[SlispToken]:
        """
        Tokenize Slisp source text with detailed error reporting.

        Args:
            expression: The source text to tokenize

        Returns:
            List of tokens

        Raises:
            SlispTokenError: If tokenization fails
        """
        tokens = []
        i = 0

        while i < len(expression):
            char = expression[i]

            if char.isspace():
                i += 1
                continue

            # Comments run from ';' to end of line
            if char == ';':
                while i < len(expression) and expression[i] != '\n':
                    i += 1

                continue

            if char == '(':
                tokens.append(SlispToken(SlispTokenType.LPAREN, '(', i))
                i += 1
                continue

            if char == ')':
                tokens.append(SlispToken(SlispTokenType.RPAREN, ')', i))
                i += 1
                continue

            if char in self._INVALID_CHARACTERS:
                raise SlispTokenError(
                    message=f"Invalid character: {char}",
                    position=i,
                    received=f"Character: {char}",
                    expected="Integers, identifiers, ( or )",
                    suggestion=self._INVALID_CHARACTERS[char],
                    example="(let ((x 5)) in (+ x 1))"
                )

            if ord(char) < 32:
                char_display = f"\\u{ord(char):04x}"
                raise SlispTokenError(
                    message=f"Invalid control character in source code: {char_display}",
                    position=i,
                    received=f"Control character: {char_display} (code {ord(char)})",
                    suggestion="Remove the control character"
                )

            length = self._atom_length(expression, i)
            text = expression[i:i + length]
            if self._is_number(text):
                tokens.append(SlispToken(SlispTokenType.NUMBER, self._read_number(text, i), i, length))

            else:
                tokens.append(SlispToken(SlispTokenType.IDENT, text, i, length))

            i += length

        return tokens

    def _atom_length(self, expression: str, start: int) -> int:
        """Return the length of the atom (number or identifier) starting at start."""
        end = start
        while end < len(expression) and not self._is_delimiter(expression[end]):
            end += 1

        return end - start

    def _is_delimiter(self, char: str) -> bool:
        """Check if a character ends an atom."""
        return char.isspace() or char in '();' or char in self._INVALID_CHARACTERS or ord(char) < 32

    def _is_number(self, text: str) -> bool:
        """Check if an atom is an integer literal, with optional leading sign."""
        digits = text[1:] if text[0] in '+-' else text
        return digits != "" and digits.isdigit() and digits.isascii()

    def _read_number(self, text: str, position: int) -> int:
        """Convert an integer literal, rejecting values outside the 64-bit range."""
        value = int(text)
        if not INT64_MIN <= value <= INT64_MAX:
            raise SlispTokenError(
                message=f"Integer literal out of range: {text}",
                position=position,
                received=f"Literal: {text}",
                expected=f"Integer between {INT64_MIN} and {INT64_MAX}",
                suggestion="Slisp numbers are signed 64-bit integers"
            )

        return value
