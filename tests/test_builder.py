"""
Tests for the ContainerBuilder compiler backend.

Tests cover:
- Container and service name validation
- Resolver method naming and collisions
- IR planning (argument wiring, tables, metadata)
- Source generation and loading
"""

import pytest

from kestrel.builder import (
    ContainerBuilder,
    ContainerLookup,
    Literal,
    ParameterLookup,
    SelfRef,
    ServiceCall,
    SharedServiceCall,
    camelize,
    is_literal,
    is_valid_service_name,
)
from kestrel.container import Container, ResolverKind
from kestrel.faults import BuilderError, UnknownServiceError

from sample_services import Database, Logger, NeedsContainer, Pair, Transport

SERVICES = "sample_services"


@pytest.fixture
def builder():
    return ContainerBuilder("TestContainer")


class TestContainerName:

    def test_plain_name(self):
        builder = ContainerBuilder("AppContainer")
        assert builder.container_class_name == "AppContainer"
        assert builder.container_namespace is None

    def test_dotted_name(self):
        builder = ContainerBuilder("app.containers.AppContainer")
        assert builder.container_name == "app.containers.AppContainer"
        assert builder.container_namespace == "app.containers"
        assert builder.container_class_name == "AppContainer"

    def test_leading_separator_is_stripped(self):
        builder = ContainerBuilder(".app.AppContainer")
        assert builder.container_name == "app.AppContainer"

    @pytest.mark.parametrize("name", [
        "", "1Container", "App-Container", "app/Container", "app.", "app..C",
        "app.class.Container", "app.None",
    ])
    def test_invalid_names(self, name):
        with pytest.raises(BuilderError) as exc_info:
            ContainerBuilder(name)
        assert exc_info.value.code == "INVALID_CONTAINER_NAME"


class TestServiceNames:

    @pytest.mark.parametrize("name", [
        "good.name_1", "logger", "app.db.main", "a", "A1", "mail_transport",
    ])
    def test_valid(self, name):
        assert is_valid_service_name(name) is True

    @pytest.mark.parametrize("name", [
        ".bad", "1abc", "trailing_", "trailing.", "_leading", "", " padded", "padded ",
        "with-dash", "with space", "123", "ümlaut",
    ])
    def test_invalid(self, name):
        assert is_valid_service_name(name) is False

    @pytest.mark.parametrize("name", [".bad", "1abc", "trailing_"])
    def test_add_rejects_invalid_name(self, builder, name):
        with pytest.raises(BuilderError) as exc_info:
            builder.add(name, "app.Service")
        assert exc_info.value.code == "INVALID_SERVICE_NAME"

    def test_add_accepts_valid_name(self, builder):
        builder.add("good.name_1", "app.Service")
        assert "good.name_1" in builder.services

    def test_reserved_name(self, builder):
        with pytest.raises(BuilderError, match="reserved"):
            builder.add("container", "app.Service")

    def test_alias_name_is_validated(self, builder):
        with pytest.raises(BuilderError):
            builder.add_alias("bad.", "logger")


class TestResolverNaming:

    def test_camelize(self):
        assert camelize("logger") == "Logger"
        assert camelize("app.db_main") == "AppDbMain"
        assert camelize("mail.Transport") == "MailTransport"

    def test_method_names(self, builder):
        builder.add("db.main", "app.Database")
        assert builder.get_resolver_method_name("db.main") == "resolveDbMain"

    def test_collision_gets_numeric_suffix(self, builder):
        builder.add("foo.bar", "app.A")
        builder.add("foo_bar", "app.B")
        builder.add("fooBar", "app.C")

        assert builder.get_resolver_method_name("foo.bar") == "resolveFooBar"
        assert builder.get_resolver_method_name("foo_bar") == "resolveFooBar1"
        assert builder.get_resolver_method_name("fooBar") == "resolveFooBar2"

    def test_redefinition_keeps_method_name(self, builder):
        builder.add("foo.bar", "app.A")
        builder.add("foo_bar", "app.B")
        builder.add("foo.bar", "app.C")

        assert builder.get_resolver_method_name("foo.bar") == "resolveFooBar"
        assert builder.get_resolver_method_name("foo_bar") == "resolveFooBar1"

    def test_unknown_service(self, builder):
        with pytest.raises(BuilderError, match="never been defined") as exc_info:
            builder.get_resolver_method_name("ghost")
        assert exc_info.value.code == "UNKNOWN_RESOLVER"


class TestRegistration:

    def test_shared_flag_toggles(self, builder):
        builder.add("a", "app.A")
        assert builder.is_shared("a")

        builder.add("a", "app.A", shared=False)
        assert not builder.is_shared("a")

        builder.add("a", "app.A", shared=True)
        assert builder.shared == ["a"]

    def test_add_returns_definition(self, builder):
        definition = builder.add("mailer", "app.Mailer", ["@transport"])
        definition.calls("add_logger", ["@logger"])
        assert builder.services["mailer"].method_calls[0][0] == "add_logger"

    def test_add_dict(self, builder):
        builder.add_dict({
            "logger": {"class": "app.Logger", "shared": False},
            "db": {"class": "app.Database", "arguments": [":db.host", "@logger"]},
        })
        assert list(builder.services) == ["logger", "db"]
        assert builder.shared == ["db"]

    def test_import_namespace(self, builder, parse):
        ns = parse(':host: "h"\n@logger: app.Logger\n@log: @logger')
        builder.import_namespace(ns)

        assert builder.parameters == {"host": "h"}
        assert builder.aliases == {"log": "logger"}
        assert builder.shared == ["logger"]

    def test_import_namespace_unshared(self, builder, parse):
        builder.import_namespace(parse("@logger: app.Logger"), shared=False)
        assert builder.shared == []


class TestPlan:

    def test_argument_wiring_strategies(self, builder):
        builder.add("shared_dep", "app.A")
        builder.add("fresh_dep", "app.B", shared=False)
        builder.add("svc", "app.C", ["@container", "@shared_dep", "@fresh_dep", "@external", ":p", 5, "x"])

        unit = builder.plan().unit("svc")
        assert unit.arguments == [
            SelfRef(),
            SharedServiceCall("shared_dep", "resolveSharedDep"),
            ServiceCall("fresh_dep", "resolveFreshDep"),
            ContainerLookup("external"),
            ParameterLookup("p"),
            Literal(5),
            Literal("x"),
        ]

    def test_resolver_tables(self, builder):
        builder.add("logger", "app.Logger")
        builder.add_alias("log", "logger")

        module = builder.plan()
        assert module.resolver_types == {"logger": ResolverKind.METHOD, "log": ResolverKind.ALIAS}
        assert module.resolver_methods == {"logger": "resolveLogger"}
        assert module.aliases == {"log": "logger"}

    def test_metadata_tables(self, builder):
        builder.add("db", "app.Database").add_metadata("tags", ["storage"]).add_metadata("tags", ["sql"])
        builder.add("cache", "app.Cache").add_metadata("tags", []).add_metadata("volatile")

        module = builder.plan()
        assert module.metadata == {
            "tags": {"db": [["storage"], ["sql"]], "cache": [[]]},
            "volatile": {"cache": [[]]},
        }
        assert module.metadata_service == {"db": ["tags"], "cache": ["tags", "volatile"]}

    def test_unit_details(self, builder):
        builder.add("db", "app.Database", [":host"], shared=False).add_metadata("factory", ["connect"]).calls(
            "set_option", ["timeout", 30]
        )
        unit = builder.plan().unit("db")

        assert unit.target == "app.Database"
        assert unit.factory_method == "connect"
        assert unit.shared is False
        assert unit.calls[0].name == "set_option"
        assert unit.calls[0].arguments == [Literal("timeout"), Literal(30)]

    def test_service_alias_conflict(self, builder):
        builder.add("logger", "app.Logger")
        builder.add_alias("logger", "other")
        with pytest.raises(BuilderError, match="both as a service and as an alias"):
            builder.plan()

    def test_non_literal_argument(self, builder):
        builder.add("svc", "app.A", [object()])
        with pytest.raises(BuilderError) as exc_info:
            builder.plan()
        assert exc_info.value.code == "INVALID_LITERAL"

    def test_non_literal_parameter(self, builder):
        builder.set_parameter("p", {1, 2})
        with pytest.raises(BuilderError, match='parameter "p"'):
            builder.plan()

    def test_invalid_method_name(self, builder):
        builder.add("svc", "app.A").calls("not valid")
        with pytest.raises(BuilderError, match="not a valid identifier"):
            builder.plan()

    @pytest.mark.parametrize("method", ["class", "lambda"])
    def test_keyword_method_name(self, builder, method):
        builder.add("svc", "app.A").calls(method)
        with pytest.raises(BuilderError) as exc_info:
            builder.plan()
        assert exc_info.value.code == "INVALID_METHOD_NAME"

    def test_keyword_factory_method(self, builder):
        builder.add("svc", "app.A").add_metadata("factory", ["import"])
        with pytest.raises(BuilderError, match="factory method"):
            builder.plan()

    @pytest.mark.parametrize("value,expected", [
        (None, True), (True, True), (1, True), (1.5, True), ("s", True),
        ([1, "a", None], True), ((1, 2), True), ({"a": [1]}, True),
        (float("nan"), False), (float("inf"), False), (object(), False), ({1}, False), ([object()], False),
    ])
    def test_is_literal(self, value, expected):
        assert is_literal(value) is expected


class TestGenerate:

    def test_generated_source_is_python(self, builder):
        builder.set_parameter("db.host", "localhost")
        builder.add("logger", f"{SERVICES}.Logger", shared=False)
        builder.add("db", f"{SERVICES}.Database", [":db.host", "@logger"])

        source = builder.generate()

        compile(source, "<generated>", "exec")
        assert "class TestContainer(_Container):" in source
        assert "def resolveDb(self):" in source
        assert "def resolveLogger(self):" in source
        assert "self.get_parameter('db.host')" in source
        assert "'db': _ResolverKind.METHOD" in source

    def test_shared_unit_checks_cache(self, builder):
        builder.add("db", "app.Database")
        source = builder.generate()
        assert "if 'db' in self._resolved_shared:" in source
        assert "self._resolved_shared['db'] = instance" in source

    def test_unshared_unit_does_not_cache(self, builder):
        builder.add("db", "app.Database", shared=False)
        assert "_resolved_shared['db']" not in builder.generate()

    def test_factory_method_call(self, builder):
        builder.add("db", "app.Database").add_metadata("factory", ["connect"])
        assert "_load_target('app.Database').connect()" in builder.generate()

    def test_repr_override_switch(self):
        assert "def __repr__" in ContainerBuilder("A").generate()
        assert "def __repr__" not in ContainerBuilder("A", override_repr=False).generate()

    def test_empty_container_generates(self, builder):
        container_class = builder.build()
        assert container_class().available() == ["container"]

    def test_dump(self, builder, tmp_path):
        builder.add("logger", f"{SERVICES}.Logger")
        path = builder.dump(tmp_path / "out" / "container.py")
        assert path.read_text(encoding="utf-8") == builder.generate()


class TestBuild:

    def test_build_returns_container_subclass(self):
        builder = ContainerBuilder("app.containers.AppContainer")
        builder.add("logger", Logger)
        container_class = builder.build()

        assert issubclass(container_class, Container)
        assert container_class.__name__ == "AppContainer"
        assert container_class.__module__ == "app.containers"

    def test_resolves_services(self, builder):
        builder.set_parameter("db.host", "localhost")
        builder.add("logger", Logger, shared=False)
        builder.add("db", Database, [":db.host", "@logger", 5432, True])

        container = builder.build()()
        db = container.get("db")

        assert isinstance(db, Database)
        assert db.host == "localhost"
        assert isinstance(db.logger, Logger)
        assert db.port == 5432
        assert db.debug is True
        assert container.get("db") is db

    def test_shared_dependency_resolved_once(self, builder):
        builder.add("transport", Transport)
        builder.add("pair", Pair, ["@transport", "@transport"])

        container = builder.build()()
        pair = container.get("pair")
        assert pair.left is pair.right
        assert pair.left is container.get("transport")

    def test_unshared_dependency_is_fresh(self, builder):
        builder.add("transport", Transport, shared=False)
        builder.add("pair", Pair, ["@transport", "@transport"])

        pair = builder.build()().get("pair")
        assert pair.left is not pair.right

    def test_self_reference(self, builder):
        builder.add("needs", NeedsContainer, ["@container"])
        container = builder.build()()
        assert container.get("needs").container is container

    def test_external_dependency_uses_get(self, builder):
        builder.add("db", Database, [":host", "@logger"])
        container = builder.build()({"host": "dynamic"})

        logger = Logger()
        container.set("logger", logger)
        assert container.get("db").logger is logger

    def test_external_dependency_missing(self, builder):
        builder.add("db", Database, [":host", "@logger"])
        with pytest.raises(UnknownServiceError, match="logger"):
            builder.build()().get("db")

    def test_factory_method_and_calls(self, builder):
        builder.add("db", Database, ["h", "@logger"]).add_metadata("factory", ["connect"]).calls(
            "set_option", ["timeout", 30]
        )
        builder.add("logger", Logger)

        db = builder.build()().get("db")
        assert db.connected is True
        assert db.options == {"timeout": 30}

    def test_function_target(self, builder):
        builder.add("settings", f"{SERVICES}.make_settings")
        assert builder.build()().get("settings") == {}

    def test_release_recreates_compiled_shared(self, builder):
        builder.add("transport", Transport)
        container = builder.build()()

        first = container.get("transport")
        assert container.is_resolved("transport")
        assert container.release("transport") is True
        assert container.get("transport") is not first

    def test_alias_and_metadata_in_compiled_container(self, builder):
        builder.add("transport", Transport).add_metadata("tags", ["io"])
        builder.add_alias("mail.transport", "transport")

        container = builder.build()()
        assert container.get("mail.transport") is container.get("transport")
        assert container.get_service_resolver_type("mail.transport") is ResolverKind.ALIAS
        assert container.service_names_with_metadata("tags") == {"transport": [["io"]]}
        assert container.get_metadata("transport") == ["tags"]

    def test_compiled_container_can_be_extended_dynamically(self, builder):
        builder.add("transport", Transport)
        container = builder.build()()

        container.bind("extra", lambda c: Pair(c.get("transport"), None))
        assert container.get("extra").left is container.get("transport")
        assert container.get_service_resolver_type("transport") is ResolverKind.METHOD

    def test_instances_do_not_share_cache(self, builder):
        builder.add("transport", Transport)
        container_class = builder.build()
        assert container_class().get("transport") is not container_class().get("transport")

    def test_constructor_parameters_override_compiled(self, builder):
        builder.set_parameter("host", "compiled")
        builder.add("t", Transport, [":host"])
        container_class = builder.build()

        assert container_class().get("t").host == "compiled"
        assert container_class({"host": "runtime"}).get("t").host == "runtime"

    def test_repr_lists_services(self, builder):
        builder.add("transport", Transport)
        assert "transport" in repr(builder.build()())
