"""Tests for the tokenizer and parser."""

import pytest

from slisp import (
    SlispASTIdent, SlispASTList, SlispASTNumber, SlispParseError, SlispTokenError, SlispTokenizer,
    SlispTokenType
)


@pytest.fixture
def tokenizer():
    return SlispTokenizer()


class TestTokenizer:
    """Test tokenization."""

    def test_simple_list(self, tokenizer):
        tokens = tokenizer.tokenize("(+ -5 x)")
        assert [token.type for token in tokens] == [
            SlispTokenType.LPAREN,
            SlispTokenType.IDENT,
            SlispTokenType.NUMBER,
            SlispTokenType.IDENT,
            SlispTokenType.RPAREN,
        ]
        assert tokens[2].value == -5
        assert tokens[3].value == "x"

    @pytest.mark.parametrize("text", ["-", "+", "<", "x1", "-x", "foo-bar", "1a"])
    def test_identifiers(self, tokenizer, text):
        tokens = tokenizer.tokenize(text)
        assert len(tokens) == 1
        assert tokens[0].type == SlispTokenType.IDENT
        assert tokens[0].value == text

    @pytest.mark.parametrize("text,value", [
        ("0", 0),
        ("42", 42),
        ("-17", -17),
        ("+3", 3),
        ("9223372036854775807", 9223372036854775807),
        ("-9223372036854775808", -9223372036854775808),
    ])
    def test_numbers(self, tokenizer, text, value):
        tokens = tokenizer.tokenize(text)
        assert tokens[0].type == SlispTokenType.NUMBER
        assert tokens[0].value == value

    def test_positions(self, tokenizer):
        tokens = tokenizer.tokenize("(cons  12 ())")
        assert [token.position for token in tokens] == [0, 1, 7, 10, 11, 12]

    def test_comments_skipped(self, tokenizer):
        tokens = tokenizer.tokenize("; leading comment\n(+ 1 2) ; trailing")
        assert len(tokens) == 5

    def test_parentheses_delimit_atoms(self, tokenizer):
        tokens = tokenizer.tokenize("(f(g))")
        assert [token.value for token in tokens] == ["(", "f", "(", "g", ")", ")"]

    @pytest.mark.parametrize("char", ['"', "'", "#", "[", "]", "{", "}"])
    def test_invalid_characters(self, tokenizer, char):
        with pytest.raises(SlispTokenError, match="Invalid character"):
            tokenizer.tokenize(f"(+ 1 {char})")

    def test_invalid_character_has_suggestion(self, tokenizer):
        with pytest.raises(SlispTokenError) as exc_info:
            tokenizer.tokenize("#t")

        assert exc_info.value.position == 0
        assert "true and false" in exc_info.value.suggestion

    def test_control_character(self, tokenizer):
        with pytest.raises(SlispTokenError, match="control character"):
            tokenizer.tokenize("(+ 1\x00 2)")

    @pytest.mark.parametrize("text", ["9223372036854775808", "-9223372036854775809"])
    def test_number_out_of_range(self, tokenizer, text):
        with pytest.raises(SlispTokenError, match="out of range"):
            tokenizer.tokenize(text)


class TestParser:
    """Test parsing."""

    def test_atom(self, compiler):
        assert compiler.parse("42") == SlispASTNumber(42)

    def test_nested_list(self, compiler):
        assert compiler.parse("(+ 1 (f x))") == SlispASTList((
            SlispASTIdent("+"),
            SlispASTNumber(1),
            SlispASTList((SlispASTIdent("f"), SlispASTIdent("x"))),
        ))

    def test_empty_list(self, compiler):
        assert compiler.parse("()") == SlispASTList(())

    def test_describe_round_trip(self, compiler):
        source = "(let fib (n) (if (< n 2) n (+ (fib (- n 1)) (fib (- n 2)))) in (fib 8))"
        assert compiler.parse(source).describe() == source

    def test_node_positions(self, compiler):
        tree = compiler.parse("(+ 1 (f x))")
        assert tree.position == 0
        assert tree.elements[1].position == 3
        assert tree.elements[2].position == 5
        assert tree.elements[2].elements[1].position == 8

    def test_positions_ignored_by_equality(self, compiler):
        assert compiler.parse("  (+ 1 2)") == compiler.parse("(+ 1 2)")

    @pytest.mark.parametrize("source", ["", "   ", "; only a comment"])
    def test_empty_expression(self, compiler, source):
        with pytest.raises(SlispParseError, match="Empty expression"):
            compiler.parse(source)

    def test_unterminated_list(self, compiler):
        with pytest.raises(SlispParseError, match="missing 2 closing parentheses"):
            compiler.parse("(+ 1 (f 2")

    def test_unterminated_single_list(self, compiler):
        with pytest.raises(SlispParseError, match="missing 1 closing parenthesis") as exc_info:
            compiler.parse("(+ 1 2")

        assert exc_info.value.position == 0

    def test_unexpected_close(self, compiler):
        with pytest.raises(SlispParseError, match="Unexpected token: \\)"):
            compiler.parse(")")

    def test_trailing_tokens(self, compiler):
        with pytest.raises(SlispParseError, match="Unexpected token after complete expression"):
            compiler.parse("(+ 1 2) 3")

    def test_trailing_close(self, compiler):
        with pytest.raises(SlispParseError, match="Unexpected token after complete expression"):
            compiler.parse("(+ 1 2))")
