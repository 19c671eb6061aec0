"""
Unit tests for the configuration language lexer.

Tests cover:
- Token classes and values
- Comments and whitespace
- Source positions
- Error reporting
"""

import pytest

from kestrel.faults import LexError
from kestrel.language.lexer import Lexer, TokenType, tokenize


def types(source):
    return [t.type for t in tokenize(source)]


class TestTokenize:
    """Token classes produced by the lexer."""

    def test_empty_source(self):
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_parameter_definition(self):
        tokens = tokenize(':db.host: "localhost"')

        assert tokens[0].type == TokenType.PARAMETER
        assert tokens[0].value == "db.host"
        assert tokens[0].lexeme == ":db.host"
        assert tokens[1].type == TokenType.COLON
        assert tokens[2].type == TokenType.STRING
        assert tokens[2].value == "localhost"
        assert tokens[3].type == TokenType.EOF

    def test_service_definition_with_arguments(self):
        source = "@db: app.db.Database(:db.host, @logger, 3306, -1.5, true, null)"
        assert types(source) == [
            TokenType.SERVICE,
            TokenType.COLON,
            TokenType.IDENT,
            TokenType.LPAREN,
            TokenType.PARAMETER,
            TokenType.COMMA,
            TokenType.SERVICE,
            TokenType.COMMA,
            TokenType.NUMBER,
            TokenType.COMMA,
            TokenType.NUMBER,
            TokenType.COMMA,
            TokenType.BOOL,
            TokenType.COMMA,
            TokenType.NULL,
            TokenType.RPAREN,
            TokenType.EOF,
        ]

    def test_literal_values(self):
        tokens = tokenize("42 -7 3.25 true false null")
        assert [t.value for t in tokens[:-1]] == [42, -7, 3.25, True, False, None]

    def test_keywords(self):
        assert types("import override") == [TokenType.IMPORT, TokenType.OVERRIDE, TokenType.EOF]

    def test_identifiers_keep_dots_and_underscores(self):
        tokens = tokenize("app.db_main.Database")
        assert tokens[0].type == TokenType.IDENT
        assert tokens[0].value == "app.db_main.Database"

    def test_import_path(self):
        assert types("import app/services") == [
            TokenType.IMPORT,
            TokenType.IDENT,
            TokenType.SLASH,
            TokenType.IDENT,
            TokenType.EOF,
        ]

    def test_method_call_and_metadata_punctuation(self):
        assert types('- connect() = tags: "a"') == [
            TokenType.MINUS,
            TokenType.IDENT,
            TokenType.LPAREN,
            TokenType.RPAREN,
            TokenType.EQUALS,
            TokenType.IDENT,
            TokenType.COLON,
            TokenType.STRING,
            TokenType.EOF,
        ]

    def test_minus_followed_by_space_is_punctuation(self):
        tokens = tokenize("- 5")
        assert tokens[0].type == TokenType.MINUS
        assert tokens[1].value == 5

    def test_colon_glued_to_name_is_punctuation(self):
        tokens = tokenize("@db:app.Database")
        assert [t.type for t in tokens] == [
            TokenType.SERVICE,
            TokenType.COLON,
            TokenType.IDENT,
            TokenType.EOF,
        ]

    def test_glued_colon_before_keyword(self):
        tokens = tokenize("= debug:true")
        assert tokens[2].type == TokenType.COLON
        assert tokens[3].type == TokenType.BOOL

    def test_parameter_sigil_after_comma(self):
        tokens = tokenize("(@a,:b)")
        assert tokens[3].type == TokenType.PARAMETER
        assert tokens[3].value == "b"


class TestStrings:
    """String literal handling."""

    def test_double_and_single_quotes(self):
        tokens = tokenize("\"one\" 'two'")
        assert tokens[0].value == "one"
        assert tokens[1].value == "two"

    def test_escapes(self):
        tokens = tokenize(r'"a\n\"b\\"')
        assert tokens[0].value == 'a\n"b\\'

    def test_other_quote_needs_no_escape(self):
        tokens = tokenize("'say \"hi\"'")
        assert tokens[0].value == 'say "hi"'


class TestComments:
    """Whitespace and comments are discarded."""

    def test_line_comments(self):
        source = "// first\n# second\n@a: b"
        assert types(source) == [TokenType.SERVICE, TokenType.COLON, TokenType.IDENT, TokenType.EOF]

    def test_block_comment(self):
        source = "/* spans\n two lines */ :p: 1"
        assert types(source) == [TokenType.PARAMETER, TokenType.COLON, TokenType.NUMBER, TokenType.EOF]

    def test_comment_marker_inside_string(self):
        tokens = tokenize('"http://example.com"')
        assert tokens[0].value == "http://example.com"


class TestPositions:
    """Source positions attached to tokens."""

    def test_line_and_column(self):
        tokens = tokenize("\n  @logger: app.Logger")
        assert tokens[0].span.line == 2
        assert tokens[0].span.column == 3
        assert tokens[2].span.column == 12

    def test_span_offsets(self):
        tokens = tokenize("  :name")
        assert tokens[0].span.start == 2
        assert tokens[0].span.end == 7


class TestErrors:
    """LexError reporting."""

    def test_unterminated_string(self):
        with pytest.raises(LexError) as exc_info:
            tokenize('@a: b("abc')
        assert "Unterminated string" in exc_info.value.reason
        assert exc_info.value.line == 1
        assert exc_info.value.column == 7

    def test_unterminated_block_comment(self):
        with pytest.raises(LexError, match="Unterminated block comment"):
            tokenize("/* never closed")

    def test_sigil_without_name(self):
        with pytest.raises(LexError, match="service name"):
            tokenize("@ logger")

    def test_invalid_character(self):
        with pytest.raises(LexError) as exc_info:
            tokenize(":a: 1\n:b: $")
        assert exc_info.value.line == 2
        assert exc_info.value.column == 5
        assert exc_info.value.code == "LEX_ERROR"

    def test_error_carries_file_name(self):
        with pytest.raises(LexError) as exc_info:
            Lexer("%", filename="app.ctn").tokenize()
        assert exc_info.value.file == "app.ctn"
        assert "app.ctn:1:1" in str(exc_info.value)
