"""
Interpreter - walks parsed scopes and populates a ContainerNamespace.

Applies the semantic rules the parser leaves out:
- a parameter, service or alias may only be defined once unless the later
  definition is marked ``override``; services and aliases share names
- imports are lexed, parsed and interpreted recursively into the same
  namespace before the importing scope continues
- a unit that (transitively) imports itself fails with ImportCycleError
"""

import logging
from typing import List

from ..definition import ServiceArguments, ServiceDefinition
from ..faults import ImportCycleError, InterpreterError
from ..namespace import ContainerNamespace
from .ast_nodes import (
    AliasDefinitionNode,
    ArgumentArrayNode,
    ParameterDefinitionNode,
    ParameterReferenceNode,
    ScopeImportNode,
    ScopeNode,
    ServiceDefinitionNode,
    ServiceReferenceNode,
    ValueNode,
)
from .parser import parse_source

logger = logging.getLogger("kestrel.language.interpreter")


class ContainerInterpreter:
    """Interprets scope nodes into the given namespace."""

    def __init__(self, namespace: ContainerNamespace):
        self.namespace = namespace
        # units currently being expanded, outermost first
        self._expanding: List[str] = []

    def handle_unit(self, name: str) -> None:
        """Fetch, parse and interpret the named unit."""
        if name in self._expanding:
            cycle = self._expanding[self._expanding.index(name):] + [name]
            raise ImportCycleError(cycle)

        code = self.namespace.get_code(name)
        self.handle_source(code, name)

    def handle_source(self, code: str, name: str = "<string>") -> None:
        """Parse and interpret source text attributed to ``name``."""
        scope = parse_source(code, name)

        self._expanding.append(name)
        try:
            self.handle_scope(scope)
        finally:
            self._expanding.pop()

    def handle_scope(self, scope: ScopeNode) -> None:
        """Handle every statement of a scope in order."""
        for node in scope.nodes:
            if isinstance(node, ScopeImportNode):
                self.handle_scope_import(node)
            elif isinstance(node, ParameterDefinitionNode):
                self.handle_parameter_definition(node)
            elif isinstance(node, ServiceDefinitionNode):
                self.handle_service_definition(node)
            elif isinstance(node, AliasDefinitionNode):
                self.handle_alias_definition(node)
            else:
                raise InterpreterError(f"Unexpected node of kind '{node.kind.value}' in scope.")

    def handle_scope_import(self, node: ScopeImportNode) -> None:
        """Expand an import statement into the current namespace."""
        path = node.path
        if not path or not path.strip():
            raise InterpreterError("An import statement cannot be empty.", code="EMPTY_IMPORT")

        logger.debug("Importing configuration unit '%s' (depth %d)", path, len(self._expanding))
        self.handle_unit(path)

    def handle_parameter_definition(self, node: ParameterDefinitionNode) -> None:
        if self.namespace.has_parameter(node.name) and not node.is_override:
            raise InterpreterError(
                f'A parameter named "{node.name}" is already defined, you can prefix '
                f'the definition with "override" to get around this error.',
                code="DUPLICATE_PARAMETER",
                metadata={"name": node.name},
            )

        self.namespace.set_parameter(node.name, node.value.raw)

    def handle_service_definition(self, node: ServiceDefinitionNode) -> None:
        if self.namespace.has_service(node.name) and not node.is_override:
            raise InterpreterError(
                f'A service named "{node.name}" is already defined, you can prefix '
                f'the definition with "override" to get around this error.',
                code="DUPLICATE_SERVICE",
                metadata={"name": node.name},
            )

        self._check_name_conflict(node.name, node.is_override, self.namespace.has_alias, "an alias")
        self.namespace.remove_alias(node.name)

        service = ServiceDefinition(node.class_name, self.build_arguments(node.arguments))

        for call in node.method_calls:
            service.calls(call.name, self.build_arguments(call.arguments))

        for key, payloads in node.metadata.items():
            for payload in payloads:
                service.add_metadata(key, payload)

        self.namespace.set_service(node.name, service)

    def handle_alias_definition(self, node: AliasDefinitionNode) -> None:
        if self.namespace.has_alias(node.name) and not node.is_override:
            raise InterpreterError(
                f'An alias named "{node.name}" is already defined, you can prefix '
                f'the definition with "override" to get around this error.',
                code="DUPLICATE_ALIAS",
                metadata={"name": node.name},
            )

        self._check_name_conflict(node.name, node.is_override, self.namespace.has_service, "a service")
        self.namespace.remove_service(node.name)

        self.namespace.set_alias(node.name, node.target)

    def _check_name_conflict(self, name: str, is_override: bool, taken, what: str) -> None:
        """Services and aliases share one name space."""
        if taken(name) and not is_override:
            raise InterpreterError(
                f'The name "{name}" is already defined as {what}, you can prefix '
                f'the definition with "override" to replace it.',
                code="NAME_CONFLICT",
                metadata={"name": name},
            )

    def build_arguments(self, node: ArgumentArrayNode) -> ServiceArguments:
        """Classify argument nodes into a ServiceArguments list."""
        arguments = ServiceArguments()

        for argument in node.arguments:
            if isinstance(argument, ServiceReferenceNode):
                arguments.add_dependency(argument.name)
            elif isinstance(argument, ParameterReferenceNode):
                arguments.add_parameter(argument.name)
            elif isinstance(argument, ValueNode):
                arguments.add_raw(argument.raw)
            else:
                raise InterpreterError(
                    f'Unable to handle argument node of type "{type(argument).__name__}".',
                    code="INVALID_ARGUMENT_NODE",
                )

        return arguments


def interpret(scope: ScopeNode, namespace: ContainerNamespace) -> ContainerNamespace:
    """Interpret a parsed scope into ``namespace`` and return it."""
    interpreter = ContainerInterpreter(namespace)
    interpreter._expanding.append(scope.file or "<string>")
    try:
        interpreter.handle_scope(scope)
    finally:
        interpreter._expanding.pop()
    return namespace
