"""
Container Builder - compiles service definitions into a container class.

Pipeline:
    definitions --plan()--> CompiledModule (IR) --generate()--> source --build()--> class

The builder validates names, assigns every service a collision-free resolver
method, and decides per dependency argument how it is wired:

- ``container``                  -> the container itself
- known, shared service          -> cached instance, resolved on first use
- known, unshared service        -> fresh instance from its resolver method
- anything else                  -> ``get(name)`` at runtime
"""

import keyword
import logging
import math
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, Union

from ..container import Container, ResolverKind
from ..definition import ArgumentKind, ServiceArguments, ServiceDefinition
from ..faults import BuilderError
from ..namespace import ContainerNamespace
from .ir import (
    CompiledModule,
    ContainerLookup,
    Expression,
    Literal,
    MethodCall,
    ParameterLookup,
    ResolverUnit,
    SelfRef,
    ServiceCall,
    SharedServiceCall,
)

logger = logging.getLogger("kestrel.builder")

_MODULE_NAME = re.compile(r"^[A-Za-z0-9_.]*$")
_SERVICE_NAME = re.compile(r"^[A-Za-z0-9._]+$")
_SEPARATORS = re.compile(r"[._]")


def is_valid_service_name(name: Any) -> bool:
    """
    Service names: non-empty, not numeric, no surrounding whitespace, only
    alphanumerics, ``.`` and ``_``, neither starting with a digit, ``.`` or
    ``_`` nor ending with ``.`` or ``_``.
    """
    if not isinstance(name, str) or not name or name.strip() != name:
        return False
    if not _SERVICE_NAME.match(name):
        return False
    if name[0].isdigit() or name[0] in "._":
        return False
    if name[-1] in "._":
        return False
    return True


def is_identifier(name: str) -> bool:
    """A Python identifier that is not a keyword."""
    return name.isidentifier() and not keyword.iskeyword(name)


def camelize(name: str) -> str:
    """``"app.db_main"`` -> ``"AppDbMain"``."""
    return "".join(part[:1].upper() + part[1:] for part in _SEPARATORS.split(name))


def is_literal(value: Any) -> bool:
    """Can ``value`` be embedded verbatim in generated source?"""
    if value is None or isinstance(value, (bool, int, str)):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, (list, tuple)):
        return all(is_literal(item) for item in value)
    if isinstance(value, dict):
        return all(is_literal(k) and is_literal(v) for k, v in value.items())
    return False


class ContainerBuilder:
    """
    Collects services, parameters and aliases and compiles them into a
    ``Container`` subclass.

    Example:
        builder = ContainerBuilder("app.containers.AppContainer")
        builder.set_parameter("db.host", "localhost")
        builder.add("logger", "app.log.Logger", shared=False)
        builder.add("db", "app.db.Database", [":db.host", "@logger"])

        AppContainer = builder.build()
    """

    def __init__(self, container_name: str, override_repr: bool = True):
        self.override_repr = override_repr
        self.set_container_name(container_name)

        self.parameters: Dict[str, Any] = {}
        self.aliases: Dict[str, str] = {}
        self.services: Dict[str, ServiceDefinition] = {}
        self.shared: List[str] = []
        self._method_names: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------

    def set_container_name(self, container_name: str) -> None:
        """
        Set the dotted module path of the generated class.

        ``"app.containers.AppContainer"`` is emitted as class ``AppContainer``
        in module ``app.containers``; a name without dots has no module prefix.
        """
        if (
            not container_name
            or not _MODULE_NAME.match(container_name)
            or container_name[0].isdigit()
        ):
            raise BuilderError(
                f'The container name "{container_name}" cannot be empty, start with a number '
                f'or contain special characters except ".".',
                code="INVALID_CONTAINER_NAME",
            )

        if container_name[0] == ".":
            container_name = container_name[1:]

        if not all(is_identifier(part) for part in container_name.split(".")):
            raise BuilderError(
                f'The container name "{container_name}" is not a valid dotted module path.',
                code="INVALID_CONTAINER_NAME",
            )

        namespace, _, class_name = container_name.rpartition(".")

        self.container_name = container_name
        self.container_class_name = class_name
        self.container_namespace: Optional[str] = namespace or None

    def get_resolver_method_name(self, service_name: str) -> str:
        if service_name not in self._method_names:
            raise BuilderError(
                f'The "{service_name}" service has never been defined.',
                code="UNKNOWN_RESOLVER",
                metadata={"service": service_name},
            )
        return "resolve" + self._method_names[service_name]

    def _assign_method_name(self, service_name: str) -> None:
        if service_name in self._method_names:
            return

        base = camelize(service_name)
        taken = set(self._method_names.values())

        candidate = base
        counter = 0
        while candidate in taken:
            counter += 1
            candidate = f"{base}{counter}"

        self._method_names[service_name] = candidate

    def _validate_name(self, name: str, what: str = "service") -> None:
        if not is_valid_service_name(name):
            raise BuilderError(
                f'The "{name}" {what} name cannot be numeric, empty or contain any special '
                f'characters except "." and "_", and must not start or end with "." or "_".',
                code="INVALID_SERVICE_NAME",
                metadata={"name": name},
            )
        if name == Container.SELF_NAME:
            raise BuilderError(
                f'The {what} name "{name}" is reserved for the container itself.',
                code="RESERVED_SERVICE_NAME",
            )

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add(
        self,
        name: str,
        target: Any,
        arguments: Union[Sequence[Any], ServiceArguments] = (),
        shared: bool = True,
    ) -> ServiceDefinition:
        """Define and register a service, returning its definition for chaining."""
        definition = ServiceDefinition(target, arguments)
        self.add_service(name, definition, shared)
        return definition

    def add_service(self, name: str, definition: ServiceDefinition, shared: bool = True) -> None:
        self._validate_name(name)

        self.services[name] = definition
        self._assign_method_name(name)

        if shared and name not in self.shared:
            self.shared.append(name)
        elif not shared and name in self.shared:
            self.shared.remove(name)

    def add_dict(self, services: Mapping[str, Mapping[str, Any]]) -> None:
        """
        Register services from plain mappings.

        Example:
            builder.add_dict({
                "logger": {"class": "app.log.Logger", "shared": False},
                "db": {"class": "app.db.Database", "arguments": [":db.host", "@logger"]},
            })
        """
        for name, config in services.items():
            self.add_service(name, ServiceDefinition.from_dict(dict(config)), config.get("shared", True))

    def add_alias(self, name: str, target: str) -> None:
        self._validate_name(name, "alias")
        self.aliases[name] = target

    def set_parameter(self, name: str, value: Any) -> None:
        self.parameters[name] = value

    def import_namespace(self, namespace: ContainerNamespace, shared: bool = True) -> None:
        """Take over every parameter, alias and service of an interpreted namespace."""
        self.parameters.update(namespace.get_parameters())

        for name, target in namespace.get_aliases().items():
            self.add_alias(name, target)

        for name, definition in namespace.get_services().items():
            self.add_service(name, definition, shared)

        logger.debug(
            "Imported namespace into %s: %d parameters, %d services, %d aliases",
            self.container_name,
            len(namespace.parameters),
            len(namespace.services),
            len(namespace.aliases),
        )

    def is_shared(self, name: str) -> bool:
        return name in self.shared

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def plan(self) -> CompiledModule:
        """Lower the registered definitions into the compiled-module IR."""
        for name in self.aliases:
            if name in self.services:
                raise BuilderError(
                    f'The name "{name}" is registered both as a service and as an alias.',
                    code="ALIAS_CONFLICT",
                    metadata={"name": name},
                )

        for name, value in self.parameters.items():
            if not is_literal(value):
                raise BuilderError(
                    f'The parameter "{name}" holds a {type(value).__name__} which cannot be '
                    f'embedded in a compiled container.',
                    code="INVALID_LITERAL",
                    metadata={"parameter": name},
                )

        module = CompiledModule(
            module_name=self.container_name,
            class_name=self.container_class_name,
            namespace=self.container_namespace,
            parameters=dict(self.parameters),
            aliases=dict(self.aliases),
            override_repr=self.override_repr,
        )

        for name, definition in self.services.items():
            for key, payloads in definition.metadata.items():
                if not is_literal(payloads):
                    raise BuilderError(
                        f'The "{key}" metadata of service "{name}" cannot be embedded in a compiled container.',
                        code="INVALID_LITERAL",
                        metadata={"service": name},
                    )
                module.metadata.setdefault(key, {})[name] = [list(p) for p in payloads]
                tags = module.metadata_service.setdefault(name, [])
                if key not in tags:
                    tags.append(key)

        for name in self.services:
            module.resolver_types[name] = ResolverKind.METHOD
        for name in self.aliases:
            module.resolver_types[name] = ResolverKind.ALIAS

        for name, definition in self.services.items():
            module.resolver_methods[name] = self.get_resolver_method_name(name)
            module.units.append(self._plan_unit(name, definition))

        logger.debug(
            "Planned container %s with %d resolver units",
            self.container_name,
            len(module.units),
        )
        return module

    def _plan_unit(self, name: str, definition: ServiceDefinition) -> ResolverUnit:
        factory_method = definition.factory_method
        if factory_method is not None and not is_identifier(factory_method):
            raise BuilderError(
                f'The factory method "{factory_method}" of service "{name}" is not a valid identifier.',
                code="INVALID_METHOD_NAME",
            )

        calls = []
        for method, arguments in definition.method_calls:
            if not is_identifier(method):
                raise BuilderError(
                    f'The method "{method}" called on service "{name}" is not a valid identifier.',
                    code="INVALID_METHOD_NAME",
                )
            calls.append(MethodCall(method, self._plan_arguments(name, arguments)))

        return ResolverUnit(
            service=name,
            method_name=self.get_resolver_method_name(name),
            target=definition.class_name,
            factory_method=factory_method,
            arguments=self._plan_arguments(name, definition.arguments),
            calls=calls,
            shared=self.is_shared(name),
        )

    def _plan_arguments(self, service: str, arguments: ServiceArguments) -> List[Expression]:
        expressions: List[Expression] = []

        for value, kind in arguments:
            if kind is ArgumentKind.DEPENDENCY:
                if value == Container.SELF_NAME:
                    expressions.append(SelfRef())
                elif value in self.services:
                    method = self.get_resolver_method_name(value)
                    if self.is_shared(value):
                        expressions.append(SharedServiceCall(value, method))
                    else:
                        expressions.append(ServiceCall(value, method))
                else:
                    expressions.append(ContainerLookup(value))

            elif kind is ArgumentKind.PARAMETER:
                expressions.append(ParameterLookup(value))

            elif kind is ArgumentKind.RAW:
                if not is_literal(value):
                    raise BuilderError(
                        f'An argument of service "{service}" holds a {type(value).__name__} '
                        f'which cannot be embedded in a compiled container.',
                        code="INVALID_LITERAL",
                        metadata={"service": service},
                    )
                expressions.append(Literal(value))

        return expressions

    def generate(self) -> str:
        """Render the compiled container as Python source."""
        from .renderer import PythonRenderer

        return PythonRenderer().render(self.plan())

    def build(self) -> Type[Container]:
        """Compile, load and return the container class."""
        from .loader import load_container

        return load_container(self.generate(), self.container_name)

    def dump(self, path: Union[str, Path]) -> Path:
        """Write the generated source to ``path``."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.generate(), encoding="utf-8")
        logger.info("Wrote compiled container %s to %s", self.container_name, path)
        return path

    def __repr__(self) -> str:
        return (
            f"ContainerBuilder({self.container_name!r}, services={len(self.services)}, "
            f"aliases={len(self.aliases)}, parameters={len(self.parameters)})"
        )
