"""
Dynamic service construction.

``ServiceFactory`` builds a service from its ``ServiceDefinition`` at
resolution time, wiring arguments the same way a compiled resolver method
does:

- dependency  -> ``container.get(name)``
- parameter   -> ``container.get_parameter(name)``
- raw         -> the literal value
"""

import logging
from typing import Any, Collection, List, Union

from .container import Container
from .definition import ArgumentKind, ServiceArguments, ServiceDefinition
from .namespace import ContainerNamespace
from .targets import load_target

logger = logging.getLogger("kestrel.factory")


class ServiceFactory:
    """Creates instances of one service definition."""

    __slots__ = ("definition",)

    def __init__(self, definition: ServiceDefinition):
        self.definition = definition

    def create(self, container: Container) -> Any:
        target = load_target(self.definition.class_name)

        factory_method = self.definition.factory_method
        if factory_method is not None:
            target = getattr(target, factory_method)

        instance = target(*self.resolve_arguments(container, self.definition.arguments))

        for method, arguments in self.definition.method_calls:
            getattr(instance, method)(*self.resolve_arguments(container, arguments))

        return instance

    @staticmethod
    def resolve_arguments(container: Container, arguments: ServiceArguments) -> List[Any]:
        resolved = []
        for value, kind in arguments:
            if kind is ArgumentKind.DEPENDENCY:
                resolved.append(container.get(value))
            elif kind is ArgumentKind.PARAMETER:
                resolved.append(container.get_parameter(value))
            else:
                resolved.append(value)
        return resolved

    def __repr__(self) -> str:
        return f"ServiceFactory({self.definition.class_name!r})"


def bind_namespace(
    container: Container,
    namespace: ContainerNamespace,
    shared: Union[bool, Collection[str]] = True,
) -> Container:
    """
    Register everything a namespace defines on ``container``.

    Parameters are copied, every service is bound through a
    ``ServiceFactory`` and aliases are registered as aliases.

    ``shared`` is either one flag for every service or the collection of
    service names to bind shared (the rest are bound unshared), matching
    ``ContainerBuilder.shared``.
    """
    for name, value in namespace.parameters.items():
        container.set_parameter(name, value)

    for name, definition in namespace.services.items():
        is_shared = shared if isinstance(shared, bool) else name in shared
        container.bind(name, ServiceFactory(definition), shared=is_shared)
        for key, payloads in definition.metadata.items():
            for payload in payloads:
                container.add_metadata(name, key, payload)

    for name, target in namespace.aliases.items():
        container.alias(name, target)

    logger.debug(
        "Bound namespace to %s: %d parameters, %d services, %d aliases",
        type(container).__name__,
        len(namespace.parameters),
        len(namespace.services),
        len(namespace.aliases),
    )
    return container
