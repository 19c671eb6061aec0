"""
Python renderer - turns a CompiledModule into Python source via Jinja2.
"""

import pprint
from typing import Any, List

from jinja2 import DictLoader, Environment, StrictUndefined

from ..faults import BuilderError
from .ir import (
    CompiledModule,
    ContainerLookup,
    Expression,
    Literal,
    ParameterLookup,
    SelfRef,
    ServiceCall,
    SharedServiceCall,
)
from .templates import CONTAINER_TEMPLATE


def pyrepr(value: Any) -> str:
    return repr(value)


def pyformat(value: Any, indent: int = 4) -> str:
    """Pretty-print a literal, indenting continuation lines."""
    text = pprint.pformat(value, width=88, sort_dicts=False)
    return text.replace("\n", "\n" + " " * indent)


def render_expression(expression: Expression) -> str:
    """Render a single argument expression."""
    if isinstance(expression, SelfRef):
        return "self"
    elif isinstance(expression, SharedServiceCall):
        key = repr(expression.service)
        return (
            f"(self._resolved_shared[{key}] if {key} in self._resolved_shared "
            f"else self.{expression.method}())"
        )
    elif isinstance(expression, ServiceCall):
        return f"self.{expression.method}()"
    elif isinstance(expression, ContainerLookup):
        return f"self.get({expression.service!r})"
    elif isinstance(expression, ParameterLookup):
        return f"self.get_parameter({expression.name!r})"
    elif isinstance(expression, Literal):
        return repr(expression.value)

    raise BuilderError(
        f"Cannot render expression of type {type(expression).__name__}.",
        code="UNKNOWN_EXPRESSION",
    )


def render_arguments(expressions: List[Expression]) -> str:
    return ", ".join(render_expression(e) for e in expressions)


class PythonRenderer:
    """Renders compiled containers as importable Python modules."""

    template_name = "container.py.j2"

    def __init__(self):
        self.env = Environment(
            loader=DictLoader({self.template_name: CONTAINER_TEMPLATE}),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["pyrepr"] = pyrepr
        self.env.filters["pyformat"] = pyformat
        self.env.filters["arguments"] = render_arguments

    def render(self, module: CompiledModule) -> str:
        from .. import __version__

        template = self.env.get_template(self.template_name)
        return template.render(module=module, version=__version__)
