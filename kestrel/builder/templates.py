"""
Jinja2 templates for rendering compiled containers as Python source.
"""

CONTAINER_TEMPLATE = '''\
"""
Compiled container {{ module.module_name }}.

Generated by kestrel {{ version }}. Do not edit, rebuild instead.
"""

from kestrel.container import Container as _Container
from kestrel.container import ResolverKind as _ResolverKind
from kestrel.targets import load_target as _load_target


class {{ module.class_name }}(_Container):

    _parameters = {{ module.parameters | pyformat(8) }}

    _service_aliases = {{ module.aliases | pyformat(8) }}

    _metadata = {{ module.metadata | pyformat(8) }}

    _metadata_service = {{ module.metadata_service | pyformat(8) }}

    _resolver_types = {
{% for name, kind in module.resolver_types.items() %}
        {{ name | pyrepr }}: _ResolverKind.{{ kind.name }},
{% endfor %}
    }

    _resolver_methods = {
{% for name, method in module.resolver_methods.items() %}
        {{ name | pyrepr }}: {{ method | pyrepr }},
{% endfor %}
    }
{% for unit in module.units %}

    def {{ unit.method_name }}(self):
{% if unit.shared %}
        if {{ unit.service | pyrepr }} in self._resolved_shared:
            return self._resolved_shared[{{ unit.service | pyrepr }}]
{% endif %}
        instance = _load_target({{ unit.target | pyrepr }}){% if unit.factory_method %}.{{ unit.factory_method }}{% endif %}({{ unit.arguments | arguments }})
{% for call in unit.calls %}
        instance.{{ call.name }}({{ call.arguments | arguments }})
{% endfor %}
{% if unit.shared %}
        self._resolved_shared[{{ unit.service | pyrepr }}] = instance
{% endif %}
        return instance
{% endfor %}
{% if module.override_repr %}

    def __repr__(self):
        return "<%s services=%r>" % (type(self).__name__, self.available())
{% endif %}
'''
