"""
KestrelFaults - Structured fault taxonomy.

Every error raised by the toolchain is a ``Fault``: a first-class value with a
stable machine-readable code, a human-readable message, a domain and a
severity.  Faults are terminal at the point they are raised; nothing in the
toolchain retries them.

Domains:
- lexer        malformed tokens
- parser       grammar violations
- interpreter  override conflicts, imports, malformed argument nodes
- builder      invalid module/service names, unknown resolvers
- container    runtime lookups and bindings
- config       build configuration
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    from .language.ast_nodes import Span


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """Fault severity levels."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the stage of the pipeline where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


FaultDomain.LEXER = FaultDomain("lexer", "Lexical analysis errors")
FaultDomain.PARSER = FaultDomain("parser", "Grammar violations")
FaultDomain.INTERPRETER = FaultDomain("interpreter", "Semantic interpretation errors")
FaultDomain.BUILDER = FaultDomain("builder", "Container compilation errors")
FaultDomain.CONTAINER = FaultDomain("container", "Runtime resolution errors")
FaultDomain.CONFIG = FaultDomain("config", "Build configuration errors")


DOMAIN_DEFAULTS = {
    FaultDomain.LEXER: Severity.FATAL,
    FaultDomain.PARSER: Severity.FATAL,
    FaultDomain.INTERPRETER: Severity.FATAL,
    FaultDomain.BUILDER: Severity.FATAL,
    FaultDomain.CONTAINER: Severity.ERROR,
    FaultDomain.CONFIG: Severity.FATAL,
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "UNKNOWN_SERVICE")
        message: Human-readable summary
        domain: Fault domain (LEXER, PARSER, ...)
        severity: Fault severity
        retryable: Always False for toolchain faults
        metadata: Additional context data
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        self.severity = severity or DOMAIN_DEFAULTS.get(self.domain, Severity.ERROR)
        self.retryable = retryable
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize fault to dictionary."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "metadata": self.metadata,
        }


# ============================================================================
# Source diagnostics (lexer / parser)
# ============================================================================

class SourceFault(Fault):
    """
    Fault pointing at a location inside configuration source text.
    """

    def __init__(
        self,
        code: str,
        reason: str,
        *,
        domain: FaultDomain,
        span: Optional[Span] = None,
        file: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.reason = reason
        self.span = span
        self.file = file
        self.suggestions = suggestions or []

        location = file or "<string>"
        if span is not None:
            location = f"{location}:{span.line}:{span.column}"

        super().__init__(
            code=code,
            message=f"{reason} ({location})",
            domain=domain,
            metadata={
                "file": file,
                "line": span.line if span else None,
                "column": span.column if span else None,
                "reason": reason,
            },
        )

    @property
    def line(self) -> Optional[int]:
        return self.span.line if self.span else None

    @property
    def column(self) -> Optional[int]:
        return self.span.column if self.span else None

    def format(self) -> str:
        """Format diagnostic for display."""
        parts = [f"{self.__class__.__name__}: {self.reason}"]
        if self.span is not None:
            parts.append(f"  --> {self.file or '<string>'}:{self.span.line}:{self.span.column}")

        if self.suggestions:
            parts.append("\nSuggestions:")
            for i, suggestion in enumerate(self.suggestions, 1):
                parts.append(f"  {i}) {suggestion}")

        return "\n".join(parts)


class LexError(SourceFault):
    """Malformed token in configuration source."""

    def __init__(self, reason: str, span: Optional[Span] = None, file: Optional[str] = None, **kwargs):
        super().__init__("LEX_ERROR", reason, domain=FaultDomain.LEXER, span=span, file=file, **kwargs)


class ParseError(SourceFault):
    """Token sequence does not match the grammar."""

    def __init__(self, reason: str, span: Optional[Span] = None, file: Optional[str] = None, **kwargs):
        super().__init__("PARSE_ERROR", reason, domain=FaultDomain.PARSER, span=span, file=file, **kwargs)


# ============================================================================
# INTERPRETER Faults
# ============================================================================

class InterpreterError(Fault):
    """Semantic error while interpreting a scope into a namespace."""

    def __init__(self, message: str, *, code: str = "INTERPRETER_ERROR", metadata: Optional[dict[str, Any]] = None):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.INTERPRETER,
            metadata=metadata,
        )


class SourceNotFoundError(InterpreterError):
    """A named configuration unit could not be found or read."""

    def __init__(self, name: str, reason: str = "is not bound to any source"):
        self.name = name
        super().__init__(
            f"The configuration unit '{name}' {reason}.",
            code="SOURCE_NOT_FOUND",
            metadata={"unit": name},
        )


class ImportCycleError(InterpreterError):
    """A unit imports itself, directly or transitively."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(
            "Import cycle detected: " + " -> ".join(cycle),
            code="IMPORT_CYCLE",
            metadata={"cycle": cycle},
        )


# ============================================================================
# BUILDER Faults
# ============================================================================

class BuilderError(Fault):
    """Container compilation failed."""

    def __init__(self, message: str, *, code: str = "BUILDER_ERROR", metadata: Optional[dict[str, Any]] = None):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.BUILDER,
            metadata=metadata,
        )


# ============================================================================
# CONTAINER Faults
# ============================================================================

class ContainerFault(Fault):
    """Base class for runtime container faults."""

    def __init__(self, code: str, message: str, *, metadata: Optional[dict[str, Any]] = None):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONTAINER,
            metadata=metadata,
        )


class UnknownServiceError(ContainerFault):
    """Lookup of a name that is unregistered or has an unknown resolver kind."""

    def __init__(self, service_name: str, message: Optional[str] = None):
        self.service_name = service_name
        super().__init__(
            "UNKNOWN_SERVICE",
            message or f'Could not find service named "{service_name}" registered in the container.',
            metadata={"service": service_name},
        )


class InvalidServiceError(ContainerFault):
    """A registered factory is neither callable nor a factory object."""

    def __init__(self, service_name: str, factory: Any):
        self.service_name = service_name
        super().__init__(
            "INVALID_SERVICE",
            f'Service "{service_name}" could not be resolved, the registered factory '
            f"of type {type(factory).__name__} is invalid.",
            metadata={"service": service_name},
        )


class ContainerError(ContainerFault):
    """Illegal operation on the container itself."""

    def __init__(self, message: str):
        super().__init__("CONTAINER_ERROR", message)


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigInvalidFault(Fault):
    """Build configuration value is invalid."""

    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            domain=FaultDomain.CONFIG,
            metadata={"key": key, "reason": reason},
        )
