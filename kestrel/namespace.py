"""
Container namespace - accumulated parameters, services and aliases.

A namespace collects the definitions of one or many configuration units
(imports are merged into the same namespace).  It is owned by whoever
drives a build; only the interpreter mutates it.
"""

from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Union, runtime_checkable

from .definition import ServiceDefinition
from .faults import SourceNotFoundError


@runtime_checkable
class SourceResolver(Protocol):
    """Source-resolution collaborator: unit name -> source text."""

    def has(self, name: str) -> bool:
        ...

    def get_code(self, name: str) -> str:
        """
        Return the source text of the named unit.

        Raises:
            SourceNotFoundError: If the unit is unknown or unreadable
        """
        ...


class MappingSourceResolver:
    """Units held in memory, keyed by name."""

    def __init__(self, units: Optional[Mapping[str, str]] = None):
        self.units: Dict[str, str] = dict(units or {})

    def add(self, name: str, code: str) -> None:
        self.units[name] = code

    def has(self, name: str) -> bool:
        return name in self.units

    def get_code(self, name: str) -> str:
        if name not in self.units:
            raise SourceNotFoundError(name)
        return self.units[name]


class PathSourceResolver:
    """
    Units stored as files, keyed by name.

    Example:
        PathSourceResolver({"app": "config/app.ctn", "db": "config/db.ctn"})
    """

    def __init__(self, paths: Optional[Mapping[str, Union[str, Path]]] = None):
        self.paths: Dict[str, Path] = {name: Path(p) for name, p in (paths or {}).items()}

    def has(self, name: str) -> bool:
        return name in self.paths

    def get_code(self, name: str) -> str:
        if name not in self.paths:
            raise SourceNotFoundError(name)

        path = self.paths[name]
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SourceNotFoundError(name, f"file '{path}' is not readable or does not exist ({exc.strerror})") from exc


class ContainerNamespace:
    """
    Parameters, service definitions and aliases gathered from configuration
    units.  Redefining a key replaces its value but keeps its original
    insertion position.
    """

    def __init__(self, resolver: Optional[SourceResolver] = None):
        self.resolver = resolver or MappingSourceResolver()
        self.parameters: Dict[str, object] = {}
        self.services: Dict[str, ServiceDefinition] = {}
        self.aliases: Dict[str, str] = {}

    # -- parameters ---------------------------------------------------------

    def has_parameter(self, name: str) -> bool:
        return name in self.parameters

    def set_parameter(self, name: str, value: object) -> None:
        self.parameters[name] = value

    def get_parameters(self) -> Dict[str, object]:
        return dict(self.parameters)

    # -- services -----------------------------------------------------------

    def has_service(self, name: str) -> bool:
        return name in self.services

    def set_service(self, name: str, definition: ServiceDefinition) -> None:
        self.services[name] = definition

    def get_services(self) -> Dict[str, ServiceDefinition]:
        return dict(self.services)

    def remove_service(self, name: str) -> None:
        self.services.pop(name, None)

    # -- aliases ------------------------------------------------------------

    def has_alias(self, name: str) -> bool:
        return name in self.aliases

    def set_alias(self, name: str, target: str) -> None:
        self.aliases[name] = target

    def get_aliases(self) -> Dict[str, str]:
        return dict(self.aliases)

    def remove_alias(self, name: str) -> None:
        self.aliases.pop(name, None)

    # -- sources ------------------------------------------------------------

    def has(self, name: str) -> bool:
        """Is a configuration unit with this name available?"""
        return self.resolver.has(name)

    def get_code(self, name: str) -> str:
        return self.resolver.get_code(name)

    def parse(self, name: str) -> "ContainerNamespace":
        """Interpret the named unit (and its imports) into this namespace."""
        from .language.interpreter import ContainerInterpreter

        ContainerInterpreter(self).handle_unit(name)
        return self

    def parse_source(self, code: str, name: str = "<string>") -> "ContainerNamespace":
        """Interpret raw source text into this namespace."""
        from .language.interpreter import ContainerInterpreter

        ContainerInterpreter(self).handle_source(code, name)
        return self

    def __repr__(self) -> str:
        return (
            f"ContainerNamespace(parameters={len(self.parameters)}, "
            f"services={len(self.services)}, aliases={len(self.aliases)})"
        )
