"""
Runtime Container - the minimal resolver every compiled container extends.

A container maps service names to a resolver kind.  Compiled subclasses ship
their tables as class attributes (``_parameters``, ``_resolver_types``, ...)
together with one resolver method per service; the base class copies those
tables into the instance on construction so each container owns its state.

Example:
    container = Container({"db.host": "localhost"})
    container.bind("logger", lambda c: Logger(), shared=False)
    container.bind("db", lambda c: Database(c.get_parameter("db.host"), c.get("logger")))

    db = container.get("db")
    assert container.get("db") is db
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Union, runtime_checkable

from .diagnostics import ContainerDiagnostics, ContainerEventType
from .faults import ContainerError, InvalidServiceError, UnknownServiceError

logger = logging.getLogger("kestrel.container")


class ResolverKind(str, Enum):
    """How a registered name produces its value."""
    METHOD = "method"     # compiled resolver method
    FACTORY = "factory"   # unshared, invoked on every get
    SHARED = "shared"     # invoked once, then cached
    SETTER = "setter"     # value injected directly
    ALIAS = "alias"       # forwards to another name


@runtime_checkable
class ServiceFactoryProtocol(Protocol):
    """Factory capability: an object that can create a service."""

    def create(self, container: "Container") -> Any:
        ...


Factory = Union[Callable[["Container"], Any], ServiceFactoryProtocol]


class Container:
    """
    Service container.

    The name ``"container"`` is reserved: it always resolves to the
    container itself and can never be set, bound or aliased.
    """

    SELF_NAME = "container"

    # Tables provided by compiled subclasses.
    _parameters: Dict[str, Any] = {}
    _service_aliases: Dict[str, str] = {}
    _metadata: Dict[str, Dict[str, List[List[Any]]]] = {}
    _metadata_service: Dict[str, List[str]] = {}
    _resolver_types: Dict[str, ResolverKind] = {}
    _resolver_methods: Dict[str, str] = {}

    def __init__(
        self,
        parameters: Optional[Dict[str, Any]] = None,
        diagnostics: Optional[ContainerDiagnostics] = None,
    ):
        cls = type(self)

        self._parameters: Dict[str, Any] = dict(cls._parameters)
        if parameters:
            self._parameters.update(parameters)

        self._service_aliases: Dict[str, str] = dict(cls._service_aliases)
        self._metadata = {
            key: {name: list(payloads) for name, payloads in services.items()}
            for key, services in cls._metadata.items()
        }
        self._metadata_service = {name: list(tags) for name, tags in cls._metadata_service.items()}
        self._resolver_types: Dict[str, ResolverKind] = dict(cls._resolver_types)
        self._resolver_methods: Dict[str, str] = dict(cls._resolver_methods)

        self._factories: Dict[str, Factory] = {}
        self._shared_factories: Dict[str, Factory] = {}
        self._resolved_shared: Dict[str, Any] = {}

        self._lock = threading.RLock()
        self._diagnostics = diagnostics or ContainerDiagnostics()

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def has_parameter(self, name: str) -> bool:
        return name in self._parameters

    def get_parameter(self, name: str, default: Any = None) -> Any:
        return self._parameters.get(name, default)

    def set_parameter(self, name: str, value: Any) -> None:
        self._parameters[name] = value

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def has(self, name: str) -> bool:
        """Is a service with this name available?"""
        return name == self.SELF_NAME or name in self._resolver_types

    def available(self) -> List[str]:
        """Names of every resolvable service, the container itself included."""
        return [self.SELF_NAME, *self._resolver_types]

    def set(self, name: str, value: Any) -> None:
        """
        Register an already resolved value.

        Raises:
            ContainerError: If ``name`` is the reserved self name
        """
        self._guard_reserved(name, "Cannot overwrite self container reference!")

        with self._lock:
            self._resolved_shared[name] = value
            self._set_resolver_type(name, ResolverKind.SETTER)

    def bind(self, name: str, factory: Factory, shared: bool = True) -> None:
        """
        Bind a factory to a service name.

        A factory is either a callable receiving the container or an object
        with a ``create(container)`` method.  Classes are always called.
        """
        if shared:
            self.bind_shared_factory(name, factory)
        else:
            self.bind_factory(name, factory)

    def bind_factory(self, name: str, factory: Factory) -> None:
        """Bind an unshared factory, invoked on every ``get``."""
        self._guard_reserved(name, "Cannot bind a factory to the self container reference!")

        with self._lock:
            self._resolved_shared.pop(name, None)
            self._shared_factories.pop(name, None)
            self._factories[name] = factory
            self._set_resolver_type(name, ResolverKind.FACTORY)

    def bind_shared_factory(self, name: str, factory: Factory) -> None:
        """Bind a shared factory, invoked once and cached."""
        self._guard_reserved(name, "Cannot bind a factory to the self container reference!")

        with self._lock:
            self._resolved_shared.pop(name, None)
            self._factories.pop(name, None)
            self._shared_factories[name] = factory
            self._set_resolver_type(name, ResolverKind.SHARED)

    def alias(self, name: str, target: str) -> None:
        """Make ``name`` resolve to whatever ``target`` resolves to."""
        self._guard_reserved(name, "Cannot alias the self container reference!")

        with self._lock:
            self._resolved_shared.pop(name, None)
            self._service_aliases[name] = target
            self._set_resolver_type(name, ResolverKind.ALIAS)

    def get_service_resolver_type(self, name: str) -> ResolverKind:
        """
        Raises:
            UnknownServiceError: If no resolver kind is registered for ``name``
        """
        kind = self._resolver_types.get(name)
        if kind is None:
            raise UnknownServiceError(
                name, f'There is no type for the service named "{name}" specified.'
            )
        return kind

    def _set_resolver_type(self, name: str, kind: ResolverKind) -> None:
        self._resolver_types[name] = kind
        self._diagnostics.emit(ContainerEventType.REGISTRATION, service=name, kind=kind.value)

    def _guard_reserved(self, name: str, message: str) -> None:
        if name == self.SELF_NAME:
            raise ContainerError(message)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def get(self, name: str) -> Any:
        """
        Resolve a service by name.

        Raises:
            UnknownServiceError: If the name is not registered
            InvalidServiceError: If the registered factory is unusable
        """
        if name == self.SELF_NAME:
            return self

        with self._lock:
            kind = self._resolver_types.get(name)
            if kind is None:
                raise UnknownServiceError(name)

            if kind is not ResolverKind.FACTORY and name in self._resolved_shared:
                return self._resolved_shared[name]

            if not self._diagnostics.enabled:
                return self._dispatch(name, kind)

            with self._diagnostics.measure(name, kind=kind.value):
                return self._dispatch(name, kind)

    def _dispatch(self, name: str, kind: ResolverKind) -> Any:
        if kind is ResolverKind.METHOD:
            method = self._resolver_methods.get(name)
            if method is None:
                raise UnknownServiceError(
                    name, f'Could not resolve service named "{name}", no resolver method is registered.'
                )
            return getattr(self, method)()

        elif kind is ResolverKind.FACTORY:
            return self._resolve_from_factory(name, self._factories[name])

        elif kind is ResolverKind.SHARED:
            instance = self._resolve_from_factory(name, self._shared_factories[name])
            self._resolved_shared[name] = instance
            return instance

        elif kind is ResolverKind.ALIAS:
            return self.get(self._service_aliases[name])

        raise UnknownServiceError(
            name, f'Could not resolve service named "{name}", the resolver type is unknown.'
        )

    def _resolve_from_factory(self, name: str, factory: Factory) -> Any:
        if isinstance(factory, ServiceFactoryProtocol) and not isinstance(factory, type):
            return factory.create(self)
        elif callable(factory):
            return factory(self)

        raise InvalidServiceError(name, factory)

    def is_resolved(self, name: str) -> bool:
        """Has a shared instance of ``name`` been created (or set)?"""
        if name == self.SELF_NAME:
            return True

        kind = self._resolver_types.get(name)
        if kind is None or kind is ResolverKind.FACTORY:
            return False

        return name in self._resolved_shared

    def release(self, name: str) -> bool:
        """
        Drop the cached shared instance of ``name``.

        The registration is kept; the next ``get`` creates a new instance.
        Returns whether anything was evicted.
        """
        with self._lock:
            if name not in self._resolved_shared:
                return False
            del self._resolved_shared[name]

        logger.debug("Released shared instance of '%s'", name)
        self._diagnostics.emit(ContainerEventType.RELEASE, service=name)
        return True

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def add_metadata(self, service: str, key: str, payload: Optional[List[Any]] = None) -> None:
        """Tag ``service`` with ``key``, appending ``payload`` to its payload list."""
        with self._lock:
            self._metadata.setdefault(key, {}).setdefault(service, []).append(list(payload or []))
            tags = self._metadata_service.setdefault(service, [])
            if key not in tags:
                tags.append(key)

    def service_names_with_metadata(self, key: str) -> Dict[str, List[List[Any]]]:
        """All services tagged ``key``, mapped to their payload lists."""
        return {name: list(payloads) for name, payloads in self._metadata.get(key, {}).items()}

    def get_metadata(self, service: str) -> List[str]:
        """Tags carried by ``service``."""
        return list(self._metadata_service.get(service, []))

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} services={len(self._resolver_types)} "
            f"parameters={len(self._parameters)} resolved={len(self._resolved_shared)}>"
        )
