"""Parser for Slisp tokens with detailed error messages."""

from typing import List

from slisp.slisp_ast import SlispASTNode, SlispASTNumber, SlispASTIdent, SlispASTList
from slisp.slisp_error import SlispParseError
from slisp.slisp_token import SlispToken, SlispTokenType


class SlispParser:
    """Parses tokens into a generic S-expression tree."""

    def __init__(self, tokens: List[SlispToken], expression: str = ""):
        """
        Initialize parser with tokens and original expression.

        Args:
            tokens: List of tokens to parse
            expression: Original source text for error context
        """
        self.tokens = tokens
        self.pos = 0
        self.current_token: SlispToken | None = tokens[0] if tokens else None
        self.expression = expression

        # Positions of currently unclosed '(' tokens
        self.paren_stack: List[int] = []

    def parse(self) -> SlispASTNode:
        """
        Parse tokens into an expression tree.

        Returns:
            Parsed expression

        Raises:
            SlispParseError: If parsing fails
        """
        if self.current_token is None:
            raise SlispParseError(
                message="Empty expression",
                expected="Valid Slisp expression",
                example="(+ 1 2) or 42",
                suggestion="Provide a complete expression to evaluate"
            )

        expr = self._parse_expression()

        if self.current_token is not None:
            raise SlispParseError(
                message="Unexpected token after complete expression",
                position=self.current_token.position,
                received=f"Found: {self.current_token.value}",
                expected="End of expression",
                suggestion="Remove extra tokens or wrap everything in a single let",
                context="A program is a single expression"
            )

        return expr

    def _parse_expression(self) -> SlispASTNode:
        """Parse a single expression."""
        assert self.current_token is not None, "Current token must not be None here"
        token = self.current_token

        if token.type == SlispTokenType.LPAREN:
            return self._parse_list()

        if token.type == SlispTokenType.NUMBER:
            self._advance()
            return SlispASTNumber(token.value, position=token.position)

        if token.type == SlispTokenType.IDENT:
            self._advance()
            return SlispASTIdent(token.value, position=token.position)

        assert token.type == SlispTokenType.RPAREN, f"Unexpected token type ({token.type}) encountered"
        raise SlispParseError(
            message="Unexpected token: )",
            position=token.position,
            received="Closing parenthesis with no matching opening parenthesis",
            expected="Number, identifier or '('",
            suggestion="Remove the extra ')'"
        )

    def _parse_list(self) -> SlispASTList:
        """Parse (element1 element2 ...)."""
        assert self.current_token is not None
        start_pos = self.current_token.position
        self.paren_stack.append(start_pos)
        self._advance()  # consume '('

        elements = []
        while self.current_token is not None and self.current_token.type != SlispTokenType.RPAREN:
            elements.append(self._parse_expression())

        if self.current_token is None:
            raise self._unterminated_error(start_pos)

        self.paren_stack.pop()
        self._advance()  # consume ')'

        return SlispASTList(tuple(elements), position=start_pos)

    def _unterminated_error(self, start_pos: int) -> SlispParseError:
        """Build the error for input that ends inside one or more lists."""
        depth = len(self.paren_stack)
        paren_word = "parenthesis" if depth == 1 else "parentheses"
        unclosed = ", ".join(str(pos) for pos in self.paren_stack)

        return SlispParseError(
            message=f"Unterminated list - missing {depth} closing {paren_word}",
            position=start_pos,
            expected=f"{depth} more ')'",
            context=f"Unclosed '(' at positions: {unclosed}",
            suggestion=f"Add {depth} closing {paren_word}"
        )

    def _advance(self) -> None:
        """Move to the next token."""
        self.pos += 1
        if self.pos < len(self.tokens):
            self.current_token = self.tokens[self.pos]

        else:
            self.current_token = None
