"""
Container configuration language - lexer, parser and interpreter.

Example:
    from kestrel.language import parse_source

    scope = parse_source('''
        :db.host: "localhost"
        @logger: app.log.Logger
        @db: app.db.Database(:db.host, @logger)
    ''')
"""

from .ast_nodes import (
    AliasDefinitionNode,
    ArgumentArrayNode,
    NodeKind,
    ParameterDefinitionNode,
    ParameterReferenceNode,
    ScopeImportNode,
    ScopeNode,
    ServiceDefinitionNode,
    ServiceMethodCallNode,
    ServiceReferenceNode,
    Span,
    ValueNode,
)
from .interpreter import ContainerInterpreter, interpret
from .lexer import Lexer, Token, TokenType, tokenize
from .parser import ScopeParser, parse_scope, parse_source

__all__ = [
    # AST
    "NodeKind",
    "Span",
    "ScopeNode",
    "ScopeImportNode",
    "ParameterDefinitionNode",
    "ServiceDefinitionNode",
    "ServiceMethodCallNode",
    "AliasDefinitionNode",
    "ArgumentArrayNode",
    "ValueNode",
    "ParameterReferenceNode",
    "ServiceReferenceNode",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    "tokenize",
    # Parser
    "ScopeParser",
    "parse_scope",
    "parse_source",
    # Interpreter
    "ContainerInterpreter",
    "interpret",
]
