"""
Scope parser for the container configuration language.

Recursive descent over the token stream produced by the lexer.  Purely
syntactic: duplicate definitions, override rules and import targets are
checked later by the interpreter.

Grammar:
    scope       := statement* EOF
    statement   := import | "override"? definition
    import      := "import" ( STRING | IDENT ( "/" IDENT )* )
    definition  := PARAMETER ":" literal
                 | SERVICE ":" SERVICE                       (alias)
                 | SERVICE ":" target arguments? tail*        (service)
    target      := IDENT ( ":" IDENT )?                      (no whitespace around ":")
    tail        := "-" IDENT arguments                       (method call)
                 | "=" IDENT ( ":" literal ( "," literal )* )?  (metadata)
    arguments   := "(" ( argument ( "," argument )* )? ")"
    argument    := literal | PARAMETER | SERVICE
    literal     := STRING | NUMBER | BOOL | NULL
"""

from typing import Any, List, Optional

from ..faults import ParseError
from .ast_nodes import (
    AliasDefinitionNode,
    ArgumentArrayNode,
    ArgumentNode,
    ParameterDefinitionNode,
    ParameterReferenceNode,
    ScopeImportNode,
    ScopeNode,
    ServiceDefinitionNode,
    ServiceMethodCallNode,
    ServiceReferenceNode,
    Span,
    StatementNode,
    ValueNode,
)
from .lexer import Token, TokenType, tokenize

LITERALS = (TokenType.STRING, TokenType.NUMBER, TokenType.BOOL, TokenType.NULL)


class ScopeParser:
    """Parser for one configuration unit."""

    def __init__(self, tokens: List[Token], filename: Optional[str] = None):
        if not tokens or tokens[-1].type != TokenType.EOF:
            raise ParseError("Token stream must end with EOF", file=filename)
        self.tokens = tokens
        self.filename = filename
        self.pos = 0

    def error(self, message: str, token: Optional[Token] = None) -> ParseError:
        """Create syntax error at the given (or current) token."""
        token = token or self.current()
        return ParseError(message, span=token.span, file=self.filename)

    def current(self) -> Token:
        """Get current token."""
        return self.tokens[self.pos] if self.pos < len(self.tokens) else self.tokens[-1]

    def peek(self, offset: int = 0) -> Token:
        """Peek at token without consuming."""
        pos = self.pos + offset
        return self.tokens[pos] if pos < len(self.tokens) else self.tokens[-1]

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return token

    def expect(self, token_type: TokenType, what: Optional[str] = None) -> Token:
        """Consume token of expected type or error."""
        token = self.current()
        if token.type != token_type:
            raise self.error(f"Expected {what or token_type.value}, got {describe(token)}")
        return self.advance()

    def match(self, *token_types: TokenType) -> bool:
        """Check if current token matches any of the given types."""
        return self.current().type in token_types

    def parse(self) -> ScopeNode:
        """Parse tokens into a scope node."""
        start = self.current().span
        nodes: List[StatementNode] = []

        while not self.match(TokenType.EOF):
            nodes.append(self.parse_statement())

        end = self.current().span
        return ScopeNode(
            nodes=nodes,
            file=self.filename,
            span=Span(start.start, end.end, start.line, start.column),
        )

    def parse_statement(self) -> StatementNode:
        """Parse a single statement."""
        if self.match(TokenType.IMPORT):
            return self.parse_import()

        is_override = False
        if self.match(TokenType.OVERRIDE):
            self.advance()
            is_override = True

        if self.match(TokenType.PARAMETER):
            return self.parse_parameter_definition(is_override)
        elif self.match(TokenType.SERVICE):
            return self.parse_service_definition(is_override)

        if is_override:
            raise self.error(f"Expected a definition after 'override', got {describe(self.current())}")
        raise self.error(f"Unexpected {describe(self.current())}, expected a statement")

    def parse_import(self) -> ScopeImportNode:
        """Parse ``import path``."""
        start = self.expect(TokenType.IMPORT).span

        if self.match(TokenType.STRING):
            token = self.advance()
            return ScopeImportNode(path=token.value, span=merge(start, token.span))

        parts = [self.expect(TokenType.IDENT, "import path").value]
        end = self.tokens[self.pos - 1].span
        while self.match(TokenType.SLASH):
            self.advance()
            token = self.expect(TokenType.IDENT, "import path segment")
            parts.append(token.value)
            end = token.span

        return ScopeImportNode(path="/".join(parts), span=merge(start, end))

    def parse_parameter_definition(self, is_override: bool) -> ParameterDefinitionNode:
        """Parse ``:name: literal``."""
        name_token = self.expect(TokenType.PARAMETER)
        self.expect(TokenType.COLON, "':' after parameter name")
        value = self.parse_literal()

        return ParameterDefinitionNode(
            name=name_token.value,
            value=value,
            is_override=is_override,
            span=merge(name_token.span, value.span),
        )

    def parse_service_definition(self, is_override: bool) -> StatementNode:
        """Parse ``@name: target(args)`` with tail, or ``@name: @target``."""
        name_token = self.expect(TokenType.SERVICE)
        self.expect(TokenType.COLON, "':' after service name")

        if self.match(TokenType.SERVICE):
            target = self.advance()
            return AliasDefinitionNode(
                name=name_token.value,
                target=target.value,
                is_override=is_override,
                span=merge(name_token.span, target.span),
            )

        class_token = self.expect(TokenType.IDENT, "service target")
        class_name = class_token.value

        # module:qualname, written without whitespace around the colon
        colon, qualname = self.peek(), self.peek(1)
        if (
            colon.type == TokenType.COLON
            and qualname.type == TokenType.IDENT
            and colon.span.start == class_token.span.end
            and qualname.span.start == colon.span.end
        ):
            self.advance()
            self.advance()
            class_name = f"{class_name}:{qualname.value}"

        node = ServiceDefinitionNode(
            name=name_token.value,
            class_name=class_name,
            is_override=is_override,
        )

        if self.match(TokenType.LPAREN):
            node.arguments = self.parse_arguments()

        while self.match(TokenType.MINUS, TokenType.EQUALS):
            if self.match(TokenType.MINUS):
                node.method_calls.append(self.parse_method_call())
            else:
                self.parse_metadata(node)

        node.span = merge(name_token.span, self.tokens[self.pos - 1].span)
        return node

    def parse_method_call(self) -> ServiceMethodCallNode:
        """Parse ``- method(args)``."""
        start = self.expect(TokenType.MINUS).span
        name_token = self.expect(TokenType.IDENT, "method name")
        if not self.match(TokenType.LPAREN):
            raise self.error(f"Expected '(' after method name '{name_token.value}'")
        arguments = self.parse_arguments()

        return ServiceMethodCallNode(
            name=name_token.value,
            arguments=arguments,
            span=merge(start, arguments.span),
        )

    def parse_metadata(self, node: ServiceDefinitionNode) -> None:
        """Parse ``= key: literal, literal`` and append the payload."""
        self.expect(TokenType.EQUALS)
        key = self.expect(TokenType.IDENT, "metadata key").value
        payload: List[Any] = []

        if self.match(TokenType.COLON):
            self.advance()
            payload.append(self.parse_literal().raw)
            while self.match(TokenType.COMMA):
                self.advance()
                payload.append(self.parse_literal().raw)

        node.metadata.setdefault(key, []).append(payload)

    def parse_arguments(self) -> ArgumentArrayNode:
        """Parse ``( argument, ... )``."""
        start = self.expect(TokenType.LPAREN).span
        arguments: List[ArgumentNode] = []

        if not self.match(TokenType.RPAREN):
            arguments.append(self.parse_argument())
            while self.match(TokenType.COMMA):
                self.advance()
                arguments.append(self.parse_argument())

        end = self.expect(TokenType.RPAREN, "',' or ')'").span
        return ArgumentArrayNode(arguments=arguments, span=merge(start, end))

    def parse_argument(self) -> ArgumentNode:
        """Parse a literal, parameter reference or service reference."""
        if self.match(TokenType.PARAMETER):
            token = self.advance()
            return ParameterReferenceNode(name=token.value, span=token.span)
        elif self.match(TokenType.SERVICE):
            token = self.advance()
            return ServiceReferenceNode(name=token.value, span=token.span)
        return self.parse_literal()

    def parse_literal(self) -> ValueNode:
        """Parse a literal value."""
        if not self.match(*LITERALS):
            raise self.error(f"Expected a literal value, got {describe(self.current())}")
        token = self.advance()
        return ValueNode(raw=token.value, span=token.span)


def describe(token: Token) -> str:
    if token.type == TokenType.EOF:
        return "end of input"
    return f"{token.type.value} {token.lexeme!r}"


def merge(start: Span, end: Optional[Span]) -> Span:
    if end is None:
        return start
    return Span(start.start, end.end, start.line, start.column)


def parse_scope(tokens: List[Token], filename: Optional[str] = None) -> ScopeNode:
    """Parse a token stream into a scope node."""
    return ScopeParser(tokens, filename).parse()


def parse_source(source: str, filename: Optional[str] = None) -> ScopeNode:
    """Tokenize and parse configuration source text."""
    return ScopeParser(tokenize(source, filename), filename).parse()
