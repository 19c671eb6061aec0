"""
Container Builder - compiles service graphs into Container subclasses.
"""

from .builder import ContainerBuilder, camelize, is_literal, is_valid_service_name
from .ir import (
    CompiledModule,
    ContainerLookup,
    Literal,
    MethodCall,
    ParameterLookup,
    ResolverUnit,
    SelfRef,
    ServiceCall,
    SharedServiceCall,
)
from .loader import load_container, load_module
from .renderer import PythonRenderer, render_expression

__all__ = [
    "ContainerBuilder",
    "camelize",
    "is_literal",
    "is_valid_service_name",
    "CompiledModule",
    "ResolverUnit",
    "MethodCall",
    "SelfRef",
    "SharedServiceCall",
    "ServiceCall",
    "ContainerLookup",
    "ParameterLookup",
    "Literal",
    "PythonRenderer",
    "render_expression",
    "load_container",
    "load_module",
]
