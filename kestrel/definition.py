"""
Service definition model.

A ``ServiceDefinition`` describes how one service is built: its target,
ordered constructor arguments, post-construction method calls and
arbitrary metadata tags.  Definitions are plain value objects; both the
container builder and the dynamic ``ServiceFactory`` consume them.
"""

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .targets import target_name


class ArgumentKind(str, Enum):
    """How an argument value is interpreted."""
    DEPENDENCY = "dependency"
    PARAMETER = "parameter"
    RAW = "raw"


class ServiceArguments:
    """
    Ordered argument list.

    Order is significant: arguments map positionally onto the target's
    constructor (or a method's) parameters.
    """

    __slots__ = ("_arguments",)

    def __init__(self, arguments: Optional[Sequence[Tuple[Any, ArgumentKind]]] = None):
        self._arguments: List[Tuple[Any, ArgumentKind]] = list(arguments or [])

    @classmethod
    def from_list(cls, values: Sequence[Any]) -> "ServiceArguments":
        """
        Build arguments from shorthand values.

        Strings starting with ``@`` become dependencies, strings starting
        with ``:`` become parameters, anything else is passed as-is.

        Example:
            ServiceArguments.from_list(["@logger", ":db.host", 3306])
        """
        arguments = cls()
        for value in values:
            if isinstance(value, str) and len(value) > 1 and value[0] == "@":
                arguments.add_dependency(value[1:])
            elif isinstance(value, str) and len(value) > 1 and value[0] == ":":
                arguments.add_parameter(value[1:])
            else:
                arguments.add_raw(value)
        return arguments

    def add_dependency(self, name: str) -> "ServiceArguments":
        self._arguments.append((name, ArgumentKind.DEPENDENCY))
        return self

    def add_parameter(self, name: str) -> "ServiceArguments":
        self._arguments.append((name, ArgumentKind.PARAMETER))
        return self

    def add_raw(self, value: Any) -> "ServiceArguments":
        self._arguments.append((value, ArgumentKind.RAW))
        return self

    def all(self) -> List[Tuple[Any, ArgumentKind]]:
        return list(self._arguments)

    def dependencies(self) -> List[str]:
        return [value for value, kind in self._arguments if kind == ArgumentKind.DEPENDENCY]

    def __iter__(self) -> Iterator[Tuple[Any, ArgumentKind]]:
        return iter(self._arguments)

    def __len__(self) -> int:
        return len(self._arguments)

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, ServiceArguments) and self._arguments == other._arguments

    def __repr__(self) -> str:
        return f"ServiceArguments({self._arguments!r})"


class ServiceDefinition:
    """
    Describes one service.

    Attributes:
        class_name: Target identifier (see ``kestrel.targets``)
        arguments: Constructor arguments
        method_calls: Ordered ``(method, arguments)`` pairs applied after construction
        metadata: ``tag -> [payload, ...]``; each payload is a list of values
    """

    FACTORY_TAG = "factory"

    def __init__(self, target: Any, arguments: Optional[Any] = None):
        self.class_name = target_name(target)

        if arguments is None:
            self.arguments = ServiceArguments()
        elif isinstance(arguments, ServiceArguments):
            self.arguments = arguments
        else:
            self.arguments = ServiceArguments.from_list(arguments)

        self.method_calls: List[Tuple[str, ServiceArguments]] = []
        self.metadata: Dict[str, List[List[Any]]] = {}

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "ServiceDefinition":
        """
        Build a definition from a plain mapping.

        Example:
            ServiceDefinition.from_dict({
                "class": "app.db.Database",
                "arguments": [":db.host", "@logger"],
                "calls": [{"method": "connect", "arguments": []}],
                "metadata": {"tags": [["storage"]]},
            })
        """
        if "class" not in config:
            raise ValueError("A service definition requires a 'class' key")

        definition = cls(config["class"], config.get("arguments") or [])

        for call in config.get("calls") or []:
            definition.calls(call["method"], call.get("arguments") or [])

        for key, payloads in (config.get("metadata") or {}).items():
            for payload in payloads:
                definition.add_metadata(key, payload)

        return definition

    def add_dependency_argument(self, name: str) -> "ServiceDefinition":
        self.arguments.add_dependency(name)
        return self

    def add_parameter_argument(self, name: str) -> "ServiceDefinition":
        self.arguments.add_parameter(name)
        return self

    def add_raw_argument(self, value: Any) -> "ServiceDefinition":
        self.arguments.add_raw(value)
        return self

    def calls(self, method: str, arguments: Optional[Any] = None) -> "ServiceDefinition":
        """Append a post-construction method call."""
        if isinstance(arguments, ServiceArguments):
            call_arguments = arguments
        else:
            call_arguments = ServiceArguments.from_list(arguments or [])
        self.method_calls.append((method, call_arguments))
        return self

    def add_metadata(self, key: str, payload: Optional[Sequence[Any]] = None) -> "ServiceDefinition":
        self.metadata.setdefault(key, []).append(list(payload or []))
        return self

    @property
    def factory_method(self) -> Optional[str]:
        """Name of the static factory to construct with, if tagged."""
        payloads = self.metadata.get(self.FACTORY_TAG)
        if payloads and payloads[0] and isinstance(payloads[0][0], str):
            return payloads[0][0]
        return None

    def __repr__(self) -> str:
        return (
            f"ServiceDefinition({self.class_name!r}, arguments={len(self.arguments)}, "
            f"calls={[name for name, _ in self.method_calls]})"
        )
