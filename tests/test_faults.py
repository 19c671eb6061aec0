"""
Tests for the fault taxonomy and the logging diagnostics listener.
"""

import logging

import pytest

from kestrel.container import Container
from kestrel.diagnostics import ContainerDiagnostics, LoggingDiagnosticListener
from kestrel.faults import (
    BuilderError,
    ContainerError,
    Fault,
    FaultDomain,
    ImportCycleError,
    LexError,
    ParseError,
    Severity,
    SourceNotFoundError,
    UnknownServiceError,
)
from kestrel.language.ast_nodes import Span


class TestFault:

    def test_requires_code_message_domain(self):
        with pytest.raises(TypeError):
            Fault(code="X")

    def test_default_severity_from_domain(self):
        assert BuilderError("bad").severity is Severity.FATAL
        assert ContainerError("bad").severity is Severity.ERROR

    def test_str_and_dict(self):
        fault = UnknownServiceError("db")

        assert str(fault) == '[UNKNOWN_SERVICE] Could not find service named "db" registered in the container.'
        data = fault.to_dict()
        assert data["code"] == "UNKNOWN_SERVICE"
        assert data["domain"] == "container"
        assert data["retryable"] is False
        assert data["metadata"] == {"service": "db"}

    def test_domain_equality(self):
        assert FaultDomain.CONFIG == "config"
        assert FaultDomain("parser") == FaultDomain.PARSER

    def test_hierarchy(self):
        assert isinstance(SourceNotFoundError("app"), Fault)
        assert ImportCycleError(["a", "b", "a"]).message == "Import cycle detected: a -> b -> a"


class TestSourceFault:

    def test_location_in_message(self):
        error = ParseError("Unexpected token", Span(4, 5, line=2, column=3), file="app")

        assert error.message == "Unexpected token (app:2:3)"
        assert error.line == 2
        assert error.column == 3
        assert error.metadata["file"] == "app"

    def test_without_span(self):
        error = LexError("Unterminated string")
        assert error.message == "Unterminated string (<string>)"
        assert error.line is None

    def test_format_with_suggestions(self):
        error = ParseError(
            "Expected ':'", Span(0, 1, line=1, column=8), suggestions=["Add a colon after the name"]
        )
        formatted = error.format()

        assert formatted.startswith("ParseError: Expected ':'")
        assert "--> <string>:1:8" in formatted
        assert "1) Add a colon after the name" in formatted


class TestLoggingListener:

    def test_events_are_logged(self, caplog):
        diagnostics = ContainerDiagnostics()
        diagnostics.add_listener(LoggingDiagnosticListener(logging.INFO))
        container = Container(diagnostics=diagnostics)

        with caplog.at_level(logging.DEBUG, logger="kestrel.diagnostics"):
            container.bind("t", lambda c: object())
            container.get("t")
            container.release("t")

        messages = [r.getMessage() for r in caplog.records]
        assert "Registered service 't' (kind=shared)" in messages
        assert any(m.startswith("Resolved service 't'") for m in messages)
        assert "Released shared instance of 't'" in messages

    def test_failures_are_logged_as_errors(self, caplog):
        diagnostics = ContainerDiagnostics()
        diagnostics.add_listener(LoggingDiagnosticListener())
        container = Container(diagnostics=diagnostics)
        container.bind("bad", lambda c: 1 / 0)

        with caplog.at_level(logging.DEBUG, logger="kestrel.diagnostics"):
            with pytest.raises(ZeroDivisionError):
                container.get("bad")

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert errors[0].getMessage().startswith("Failed to resolve service 'bad'")
