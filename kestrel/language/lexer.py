"""
Lexer for the container configuration language.

Turns source text into a flat token stream terminated by an EOF token.
Whitespace and comments (``// ...``, ``# ...``, ``/* ... */``) are skipped.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from ..faults import LexError
from .ast_nodes import Span


class TokenType(str, Enum):
    """Token types for the lexer."""
    IDENT = "IDENT"
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOL = "BOOL"
    NULL = "NULL"
    IMPORT = "IMPORT"
    OVERRIDE = "OVERRIDE"
    PARAMETER = "PARAMETER"   # :name
    SERVICE = "SERVICE"       # @name
    COLON = "COLON"
    COMMA = "COMMA"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    MINUS = "MINUS"
    EQUALS = "EQUALS"
    SLASH = "SLASH"
    EOF = "EOF"


KEYWORDS = {
    "import": (TokenType.IMPORT, "import"),
    "override": (TokenType.OVERRIDE, "override"),
    "true": (TokenType.BOOL, True),
    "false": (TokenType.BOOL, False),
    "null": (TokenType.NULL, None),
}

PUNCTUATION = {
    ":": TokenType.COLON,
    ",": TokenType.COMMA,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "-": TokenType.MINUS,
    "=": TokenType.EQUALS,
    "/": TokenType.SLASH,
}

# a ':' glued to one of these is punctuation, never a parameter sigil
NAMED = (TokenType.IDENT, TokenType.PARAMETER, TokenType.SERVICE)

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}


@dataclass(frozen=True)
class Token:
    """A lexical token with position information."""
    type: TokenType
    value: Any
    lexeme: str
    span: Span

    def __repr__(self) -> str:
        return f"{self.type.value}({self.lexeme!r}) at {self.span}"


def is_name_start(ch: Optional[str]) -> bool:
    return ch is not None and (ch.isalpha() or ch == "_")


def is_name_char(ch: Optional[str]) -> bool:
    return ch is not None and (ch.isalnum() or ch in "_.")


class Lexer:
    """Lexer for configuration units."""

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

    def error(self, message: str, span: Optional[Span] = None) -> LexError:
        """Create lex error at current position."""
        return LexError(
            message,
            span=span or Span(self.pos, self.pos + 1, self.line, self.column),
            file=self.filename,
        )

    def peek(self, offset: int = 0) -> Optional[str]:
        """Peek at character without consuming."""
        pos = self.pos + offset
        return self.source[pos] if pos < len(self.source) else None

    def advance(self) -> Optional[str]:
        """Consume and return next character."""
        if self.pos >= len(self.source):
            return None
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def skip_line(self):
        while self.peek() is not None and self.peek() != "\n":
            self.advance()

    def skip_block_comment(self, start: Span):
        self.advance()
        self.advance()
        while self.peek() is not None:
            if self.peek() == "*" and self.peek(1) == "/":
                self.advance()
                self.advance()
                return
            self.advance()
        raise self.error("Unterminated block comment", span=start)

    def follows_name(self) -> bool:
        """Does the previous token end directly at the current position with a name?"""
        if not self.tokens:
            return False
        last = self.tokens[-1]
        return last.span.end == self.pos and last.type in NAMED

    def read_name(self) -> str:
        """Read name [A-Za-z_][A-Za-z0-9_.]*."""
        start = self.pos
        if not is_name_start(self.peek()):
            raise self.error("Expected name")
        while is_name_char(self.peek()):
            self.advance()
        return self.source[start:self.pos]

    def read_number(self) -> Any:
        """Read numeric literal, optionally negative."""
        start = self.pos
        if self.peek() == "-":
            self.advance()

        has_dot = False
        while self.peek() is not None:
            ch = self.peek()
            if ch.isdigit():
                self.advance()
            elif ch == "." and not has_dot and (self.peek(1) or "").isdigit():
                has_dot = True
                self.advance()
            else:
                break

        text = self.source[start:self.pos]
        return float(text) if has_dot else int(text)

    def read_string(self, quote: str, start: Span) -> str:
        """Read quoted string, resolving backslash escapes."""
        self.advance()
        chars: List[str] = []

        while self.peek() is not None:
            ch = self.advance()
            if ch == "\\":
                escaped = self.advance()
                if escaped is None:
                    break
                chars.append(ESCAPES.get(escaped, escaped))
            elif ch == quote:
                return "".join(chars)
            else:
                chars.append(ch)

        raise self.error("Unterminated string literal", span=start)

    def tokenize(self) -> List[Token]:
        """Tokenize the source into tokens."""
        self.tokens = []

        while self.pos < len(self.source):
            start_pos = self.pos
            start = Span(self.pos, self.pos + 1, self.line, self.column)
            ch = self.peek()

            if ch in " \t\r\n":
                self.advance()
                continue
            elif ch == "#" or (ch == "/" and self.peek(1) == "/"):
                self.skip_line()
                continue
            elif ch == "/" and self.peek(1) == "*":
                self.skip_block_comment(start)
                continue
            elif ch == ":" and is_name_start(self.peek(1)) and not self.follows_name():
                self.advance()
                value = self.read_name()
                token_type = TokenType.PARAMETER
            elif ch == "@":
                self.advance()
                if not is_name_start(self.peek()):
                    raise self.error("Expected service name after '@'", span=start)
                value = self.read_name()
                token_type = TokenType.SERVICE
            elif ch == '"' or ch == "'":
                value = self.read_string(ch, start)
                token_type = TokenType.STRING
            elif ch.isdigit() or (ch == "-" and (self.peek(1) or "").isdigit()):
                value = self.read_number()
                token_type = TokenType.NUMBER
            elif is_name_start(ch):
                value = self.read_name()
                token_type, value = KEYWORDS.get(value, (TokenType.IDENT, value))
            elif ch in PUNCTUATION:
                self.advance()
                value = ch
                token_type = PUNCTUATION[ch]
            else:
                raise self.error(f"Unexpected character {ch!r}", span=start)

            self.tokens.append(Token(
                token_type,
                value,
                self.source[start_pos:self.pos],
                Span(start_pos, self.pos, start.line, start.column),
            ))

        self.tokens.append(Token(
            TokenType.EOF,
            None,
            "",
            Span(self.pos, self.pos, self.line, self.column),
        ))

        return self.tokens


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """Tokenize configuration source text."""
    return Lexer(source, filename).tokenize()
