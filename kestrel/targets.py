"""
Service target identifiers.

A target is the callable a service is constructed from: usually a class,
sometimes a plain function.  Targets travel through the toolchain as strings
so they can be embedded in generated code:

    "package.module.ClassName"          dotted path
    "package.module:Outer.Inner"        explicit module / qualified name split

``load_target`` is shared by the dynamic ``ServiceFactory`` and the generated
container modules, so both resolve a given identifier identically.
"""

import importlib
from typing import Any, Callable, Dict

_target_cache: Dict[str, Any] = {}


def target_name(target: Any) -> str:
    """Normalise a target (string, class or function) to its identifier."""
    if isinstance(target, str):
        name = target.strip()
        if not name:
            raise ValueError("Target identifier cannot be empty")
        return name

    module = getattr(target, "__module__", None)
    qualname = getattr(target, "__qualname__", None)
    if not module or not qualname or "<locals>" in qualname:
        raise ValueError(f"Cannot derive an importable identifier for {target!r}")
    return f"{module}:{qualname}"


def _resolve_attribute(obj: Any, path: str) -> Any:
    for part in path.split("."):
        obj = getattr(obj, part)
    return obj


def load_target(identifier: str) -> Callable[..., Any]:
    """
    Import and return the object named by ``identifier``.

    Dotted paths without an explicit ``:`` are resolved by importing the
    longest importable module prefix and walking the remaining attributes.
    Names without any module part resolve against ``builtins``.

    Raises:
        ImportError: If no module prefix can be imported
        AttributeError: If the attribute path does not exist
    """
    cached = _target_cache.get(identifier)
    if cached is not None:
        return cached

    if ":" in identifier:
        module_name, _, qualname = identifier.partition(":")
        target = _resolve_attribute(importlib.import_module(module_name), qualname)
    else:
        target = _load_dotted(identifier)

    _target_cache[identifier] = target
    return target


def _load_dotted(identifier: str) -> Any:
    parts = identifier.split(".")
    if len(parts) == 1:
        return _resolve_attribute(importlib.import_module("builtins"), identifier)

    for index in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:index])
        try:
            module = importlib.import_module(module_name)
        except ModuleNotFoundError as exc:
            # a missing import *inside* an existing module must surface
            missing = exc.name or module_name
            if not (module_name == missing or module_name.startswith(missing + ".")):
                raise
            continue
        return _resolve_attribute(module, ".".join(parts[index:]))

    raise ImportError(f"Cannot import any module for target '{identifier}'")
