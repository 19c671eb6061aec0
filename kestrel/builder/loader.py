"""
Load generated container source as a Python module.
"""

import linecache
import logging
import sys
import types
from typing import Type

from ..container import Container
from ..faults import BuilderError

logger = logging.getLogger("kestrel.builder.loader")


def load_module(source: str, module_name: str, register: bool = False) -> types.ModuleType:
    """
    Execute ``source`` in a fresh module named ``module_name``.

    The source is registered with ``linecache`` so tracebacks through
    resolver methods show the generated lines.  With ``register=True`` the
    module is also placed in ``sys.modules``.
    """
    filename = f"<kestrel:{module_name}>"
    try:
        code = compile(source, filename, "exec")
    except SyntaxError as exc:
        raise BuilderError(
            f"Generated source for {module_name} does not compile: {exc.msg} (line {exc.lineno})",
            code="INVALID_GENERATED_SOURCE",
        ) from exc

    linecache.cache[filename] = (len(source), None, source.splitlines(True), filename)

    module = types.ModuleType(module_name)
    module.__file__ = filename
    exec(code, module.__dict__)

    if register:
        sys.modules[module_name] = module

    logger.debug("Loaded compiled container module %s", module_name)
    return module


def load_container(source: str, container_name: str, register: bool = False) -> Type[Container]:
    """Load generated source and return its container class."""
    class_name = container_name.rpartition(".")[2]
    module = load_module(source, container_name.rpartition(".")[0] or class_name, register)

    container_class = getattr(module, class_name, None)
    if not (isinstance(container_class, type) and issubclass(container_class, Container)):
        raise BuilderError(
            f"Generated module does not define a container class named {class_name}.",
            code="INVALID_GENERATED_SOURCE",
        )
    return container_class
