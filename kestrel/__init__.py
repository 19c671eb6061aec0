"""
Kestrel - dependency injection containers compiled from a small
configuration language.

Pipeline:
    source text -> tokens -> scope AST -> ContainerNamespace
        -> ContainerBuilder -> compiled Container subclass

or, without compilation, ``bind_namespace`` onto a plain ``Container``.
"""

__version__ = "0.1.0"

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    SourceFault,
    LexError,
    ParseError,
    InterpreterError,
    SourceNotFoundError,
    ImportCycleError,
    BuilderError,
    ContainerFault,
    UnknownServiceError,
    InvalidServiceError,
    ContainerError,
    ConfigInvalidFault,
)
from .targets import load_target, target_name
from .definition import ArgumentKind, ServiceArguments, ServiceDefinition
from .namespace import (
    ContainerNamespace,
    MappingSourceResolver,
    PathSourceResolver,
    SourceResolver,
)
from .diagnostics import (
    ContainerDiagnostics,
    ContainerEvent,
    ContainerEventType,
    LoggingDiagnosticListener,
)
from .container import Container, ResolverKind, ServiceFactoryProtocol
from .factory import ServiceFactory, bind_namespace
from .builder import ContainerBuilder
from .config import BuildConfig, ConfigLoader, compile_from_config

__all__ = [
    "__version__",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "SourceFault",
    "LexError",
    "ParseError",
    "InterpreterError",
    "SourceNotFoundError",
    "ImportCycleError",
    "BuilderError",
    "ContainerFault",
    "UnknownServiceError",
    "InvalidServiceError",
    "ContainerError",
    "ConfigInvalidFault",
    # Definitions
    "load_target",
    "target_name",
    "ArgumentKind",
    "ServiceArguments",
    "ServiceDefinition",
    # Namespace
    "ContainerNamespace",
    "SourceResolver",
    "MappingSourceResolver",
    "PathSourceResolver",
    # Runtime
    "Container",
    "ResolverKind",
    "ServiceFactoryProtocol",
    "ServiceFactory",
    "bind_namespace",
    "ContainerDiagnostics",
    "ContainerEvent",
    "ContainerEventType",
    "LoggingDiagnosticListener",
    # Compilation
    "ContainerBuilder",
    "BuildConfig",
    "ConfigLoader",
    "compile_from_config",
]
