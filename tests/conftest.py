"""
Shared test fixtures and helpers for the kestrel test suite.
"""

import pytest

from kestrel.container import Container
from kestrel.diagnostics import ContainerDiagnostics, RecordingDiagnosticListener
from kestrel.namespace import ContainerNamespace, MappingSourceResolver

# Dotted prefix of the importable sample targets (tests/sample_services.py)
SERVICES = "sample_services"


APP_UNIT = f"""
// application services
:db.host: "localhost"
:db.port: 3306

@logger: {SERVICES}.Logger
@db: {SERVICES}.Database(:db.host, @logger, :db.port)
  - set_option("timeout", 30)
  = tags: "storage"
"""


@pytest.fixture
def units():
    """In-memory configuration units keyed by name."""
    return MappingSourceResolver({"app": APP_UNIT})


@pytest.fixture
def namespace(units):
    return ContainerNamespace(units)


@pytest.fixture
def parse():
    """Interpret source text into a fresh namespace, with optional extra units."""
    def _parse(code, units=None):
        ns = ContainerNamespace(MappingSourceResolver(units))
        return ns.parse_source(code)
    return _parse


@pytest.fixture
def recorder():
    return RecordingDiagnosticListener()


@pytest.fixture
def container(recorder):
    diagnostics = ContainerDiagnostics()
    diagnostics.add_listener(recorder)
    return Container(diagnostics=diagnostics)
