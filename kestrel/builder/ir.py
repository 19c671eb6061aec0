"""
Compiled-module intermediate representation.

The builder lowers a set of service definitions into a ``CompiledModule``:
lookup tables plus one ``ResolverUnit`` per service whose arguments are
expression trees.  Renderers turn the IR into source text; nothing in here
knows about any concrete output syntax.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..container import ResolverKind


# ============================================================================
# Argument expressions
# ============================================================================

@dataclass(frozen=True)
class SelfRef:
    """The container itself."""


@dataclass(frozen=True)
class SharedServiceCall:
    """Cached instance of a shared service, resolving it on first use."""
    service: str
    method: str


@dataclass(frozen=True)
class ServiceCall:
    """Fresh instance of an unshared service."""
    service: str
    method: str


@dataclass(frozen=True)
class ContainerLookup:
    """Service unknown at build time, looked up through ``get``."""
    service: str


@dataclass(frozen=True)
class ParameterLookup:
    name: str


@dataclass(frozen=True)
class Literal:
    value: Any


Expression = Union[SelfRef, SharedServiceCall, ServiceCall, ContainerLookup, ParameterLookup, Literal]


# ============================================================================
# Units
# ============================================================================

@dataclass
class MethodCall:
    """Post-construction call on the instance."""
    name: str
    arguments: List[Expression] = field(default_factory=list)


@dataclass
class ResolverUnit:
    """
    Everything needed to emit the resolver method of one service.

    Attributes:
        service: Service name
        method_name: Collision-free resolver method name
        target: Target identifier (see ``kestrel.targets``)
        factory_method: Static factory on the target to construct with, if any
        arguments: Constructor argument expressions
        calls: Method calls applied in order after construction
        shared: Whether the instance is cached
    """
    service: str
    method_name: str
    target: str
    factory_method: Optional[str] = None
    arguments: List[Expression] = field(default_factory=list)
    calls: List[MethodCall] = field(default_factory=list)
    shared: bool = True


@dataclass
class CompiledModule:
    """A whole compiled container: tables plus resolver units."""
    module_name: str
    class_name: str
    namespace: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    aliases: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Dict[str, List[List[Any]]]] = field(default_factory=dict)
    metadata_service: Dict[str, List[str]] = field(default_factory=dict)
    resolver_types: Dict[str, ResolverKind] = field(default_factory=dict)
    resolver_methods: Dict[str, str] = field(default_factory=dict)
    units: List[ResolverUnit] = field(default_factory=list)
    override_repr: bool = True

    def unit(self, service: str) -> ResolverUnit:
        for unit in self.units:
            if unit.service == service:
                return unit
        raise KeyError(service)
