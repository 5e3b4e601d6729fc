"""Unit tests for connection error classification."""

import logging
from unittest.mock import MagicMock, patch

import pytest

from dal.error_classification import (
    classify_connect_error,
    connection_error_for,
    emit_classified_error,
)
from dal.errors import AuthRejected, ConnectionUnavailable, CredentialUnavailable


class _PostgresInvalidAuthorization(Exception):
    __module__ = "asyncpg.exceptions"


@pytest.mark.parametrize(
    "engine, exc, expected",
    [
        ("mysql", Exception(1045, "Access denied for user"), "auth"),
        ("mysql", Exception(1698, "Access denied"), "auth"),
        ("mysql", Exception(2003, "Can't connect to MySQL server"), "connectivity"),
        ("mysql", Exception(2013, "Lost connection during query"), "connectivity"),
        ("postgres", _PostgresInvalidAuthorization("role does not exist"), "auth"),
        ("postgres", Exception('password authentication failed for user "x"'), "auth"),
        ("postgres", Exception("no pg_hba.conf entry for host"), "auth"),
        ("postgres", ConnectionRefusedError(111, "Connection refused"), "connectivity"),
        ("postgres", TimeoutError(), "connectivity"),
        ("postgres", OSError("Name or service not known"), "connectivity"),
        ("postgres", Exception("unexpected handshake message"), "auth"),
    ],
)
def test_classify_connect_error(engine, exc, expected) -> None:
    """Driver exceptions fold into auth or connectivity."""
    assert classify_connect_error(engine, exc) == expected


def test_connection_error_for_builds_taxonomy_errors() -> None:
    """Classified errors become AuthRejected or ConnectionUnavailable."""
    auth = connection_error_for("mysql", Exception(1045, "Access denied"))
    network = connection_error_for("postgres", ConnectionResetError("Connection reset by peer"))

    assert isinstance(auth, AuthRejected) and auth.engine == "mysql"
    assert isinstance(network, ConnectionUnavailable) and network.engine == "postgres"


def test_connection_error_for_passes_through_taxonomy_errors() -> None:
    """Errors already in the taxonomy are not reclassified."""
    original = CredentialUnavailable("no creds")
    assert connection_error_for("postgres", original) is original


def test_emit_classified_error_logs_when_enabled(monkeypatch, caplog) -> None:
    """Structured telemetry is emitted when enabled."""
    monkeypatch.setenv("DB_QUERY_CLASSIFIED_ERROR_TELEMETRY", "true")
    with caplog.at_level(logging.WARNING):
        emit_classified_error("postgres", "connect", "auth", Exception("bad"))

    record = next(r for r in caplog.records if r.message == "db_error_classified")
    assert record.engine == "postgres"
    assert record.operation == "connect"
    assert record.error_category == "auth"


def test_emit_classified_error_disabled(monkeypatch, caplog) -> None:
    """Structured telemetry is suppressed when disabled."""
    monkeypatch.setenv("DB_QUERY_CLASSIFIED_ERROR_TELEMETRY", "false")
    with caplog.at_level(logging.WARNING):
        emit_classified_error("postgres", "connect", "auth", Exception("bad"))

    assert not caplog.records


def test_span_event_emitted_with_expected_attributes(monkeypatch) -> None:
    """Emit a span event with bounded attributes."""
    monkeypatch.setenv("DB_QUERY_CLASSIFIED_ERROR_TELEMETRY", "true")
    mock_span = MagicMock()
    mock_span.is_recording.return_value = True

    with patch("opentelemetry.trace.get_current_span", return_value=mock_span):
        emit_classified_error("mysql", "connect", "connectivity", Exception("bad"))

    mock_span.add_event.assert_called_once()
    name, attributes = mock_span.add_event.call_args.args
    assert name == "db.error.classified"
    assert attributes == {"engine": "mysql", "category": "connectivity", "operation": "connect"}
