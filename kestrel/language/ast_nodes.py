"""
AST node definitions for the container configuration language.

These nodes represent the parsed structure of one configuration unit.
Statement nodes live directly inside a ``ScopeNode``; argument nodes live
inside an ``ArgumentArrayNode``.  Nodes own their children and carry no
back-references.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class NodeKind(str, Enum):
    """Kind of AST node."""
    SCOPE = "scope"
    IMPORT = "import"
    PARAMETER_DEFINITION = "parameter_definition"
    SERVICE_DEFINITION = "service_definition"
    ALIAS_DEFINITION = "alias_definition"
    METHOD_CALL = "method_call"
    ARGUMENTS = "arguments"
    VALUE = "value"
    PARAMETER_REFERENCE = "parameter_reference"
    SERVICE_REFERENCE = "service_reference"


@dataclass
class Span:
    """Source code span for diagnostics."""
    start: int
    end: int
    line: int = 1
    column: int = 1

    def __repr__(self) -> str:
        return f"Line {self.line}:{self.column} (pos {self.start}-{self.end})"


@dataclass
class BaseNode:
    """Base class for all nodes."""
    kind: NodeKind = field(default=NodeKind.VALUE, init=False)
    span: Optional[Span] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value}


# ============================================================================
# Argument nodes
# ============================================================================

@dataclass
class ValueNode(BaseNode):
    """Literal value: string, number, bool or null."""
    raw: Any = None

    def __post_init__(self):
        self.kind = NodeKind.VALUE

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "raw": self.raw}


@dataclass
class ParameterReferenceNode(BaseNode):
    """Reference to a parameter (``:name``)."""
    name: str = ""

    def __post_init__(self):
        self.kind = NodeKind.PARAMETER_REFERENCE

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "name": self.name}


@dataclass
class ServiceReferenceNode(BaseNode):
    """Reference to a service (``@name``)."""
    name: str = ""

    def __post_init__(self):
        self.kind = NodeKind.SERVICE_REFERENCE

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "name": self.name}


ArgumentNode = Union[ValueNode, ParameterReferenceNode, ServiceReferenceNode]


@dataclass
class ArgumentArrayNode(BaseNode):
    """Ordered, positional argument list."""
    arguments: List[ArgumentNode] = field(default_factory=list)

    def __post_init__(self):
        self.kind = NodeKind.ARGUMENTS

    def __len__(self) -> int:
        return len(self.arguments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "arguments": [a.to_dict() for a in self.arguments],
        }


# ============================================================================
# Statement nodes
# ============================================================================

@dataclass
class ScopeImportNode(BaseNode):
    """``import some/unit``"""
    path: str = ""

    def __post_init__(self):
        self.kind = NodeKind.IMPORT

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "path": self.path}


@dataclass
class ParameterDefinitionNode(BaseNode):
    """``[override] :name: <literal>``"""
    name: str = ""
    value: ValueNode = field(default_factory=ValueNode)
    is_override: bool = False

    def __post_init__(self):
        self.kind = NodeKind.PARAMETER_DEFINITION

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "name": self.name,
            "value": self.value.raw,
            "override": self.is_override,
        }


@dataclass
class ServiceMethodCallNode(BaseNode):
    """``- method(arguments)`` following a service definition."""
    name: str = ""
    arguments: ArgumentArrayNode = field(default_factory=ArgumentArrayNode)

    def __post_init__(self):
        self.kind = NodeKind.METHOD_CALL

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "name": self.name,
            "arguments": self.arguments.to_dict(),
        }


@dataclass
class ServiceDefinitionNode(BaseNode):
    """``[override] @name: target(arguments)`` plus method calls and metadata."""
    name: str = ""
    class_name: str = ""
    arguments: ArgumentArrayNode = field(default_factory=ArgumentArrayNode)
    is_override: bool = False
    method_calls: List[ServiceMethodCallNode] = field(default_factory=list)
    metadata: Dict[str, List[List[Any]]] = field(default_factory=dict)

    def __post_init__(self):
        self.kind = NodeKind.SERVICE_DEFINITION

    def has_arguments(self) -> bool:
        return len(self.arguments) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "name": self.name,
            "class": self.class_name,
            "arguments": self.arguments.to_dict(),
            "override": self.is_override,
            "calls": [c.to_dict() for c in self.method_calls],
            "metadata": self.metadata,
        }


@dataclass
class AliasDefinitionNode(BaseNode):
    """``[override] @name: @target``"""
    name: str = ""
    target: str = ""
    is_override: bool = False

    def __post_init__(self):
        self.kind = NodeKind.ALIAS_DEFINITION

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "name": self.name,
            "target": self.target,
            "override": self.is_override,
        }


StatementNode = Union[
    ScopeImportNode,
    ParameterDefinitionNode,
    ServiceDefinitionNode,
    AliasDefinitionNode,
]


@dataclass
class ScopeNode(BaseNode):
    """One parsed configuration unit: an ordered sequence of statements."""
    nodes: List[StatementNode] = field(default_factory=list)
    file: Optional[str] = None

    def __post_init__(self):
        self.kind = NodeKind.SCOPE

    def __iter__(self):
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "file": self.file,
            "nodes": [n.to_dict() for n in self.nodes],
        }
