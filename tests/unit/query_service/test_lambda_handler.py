"""Unit tests for the Lambda entry point."""

from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from common.config.settings import QueryServiceSettings
from common.observability.context import request_id_var
from dal.errors import InvalidConfiguration, QueryFailed
from dal.negotiator import ConnectionNegotiator
from dal.target import CredentialKind
from query_service import handler as handler_module
from query_service.models import QueryRequest
from query_service.service import QueryService
from tests._support.fake_database import FakeConnection, FakeDriver, FakeResolver


class _RecordingResolver(FakeResolver):
    def __init__(self):
        super().__init__()
        self.request_ids = []

    async def resolve(self, target):
        self.request_ids.append(request_id_var.get())
        return await super().resolve(target)


def _install_service(monkeypatch, driver, resolver=None, engine="postgres"):
    settings = QueryServiceSettings(
        engine=engine, host="db", user="reporter", region="us-east-1", database="app"
    )
    negotiator = ConnectionNegotiator(resolver=resolver or FakeResolver())
    negotiator.driver_for = lambda target: driver
    service = QueryService(settings, negotiator=negotiator)
    monkeypatch.setattr(handler_module, "get_service", lambda: service)
    return service


def test_handler_returns_rows(monkeypatch):
    """The handler answers with the flattened rows."""
    conn = FakeConnection(
        results={"SELECT id, name FROM t": (["id", "name"], [(1, "a"), (2, None)])}
    )
    _install_service(
        monkeypatch, FakeDriver(connections={CredentialKind.IDENTITY_TOKEN: conn})
    )

    response = handler_module.handler({"query": "SELECT id, name FROM t", "database": ""})

    assert response == {"rows": [{"id": "1", "name": "a"}, {"id": "2", "name": "NULL"}]}
    assert conn.close_calls == 1


def test_handler_binds_request_id(monkeypatch):
    """The invocation's request id is visible to the request flow, then cleared."""
    resolver = _RecordingResolver()
    _install_service(monkeypatch, FakeDriver(), resolver=resolver)

    handler_module.handler({"query": "SELECT 1"}, SimpleNamespace(aws_request_id="req-123"))

    assert resolver.request_ids == ["req-123"]
    assert request_id_var.get() is None


def test_handler_propagates_query_failures(monkeypatch):
    """Failures raise instead of returning an empty response."""
    _install_service(monkeypatch, FakeDriver())

    with pytest.raises(QueryFailed):
        handler_module.handler({"query": "SELECT * FROM nonexistent_table"})


def test_handler_propagates_invalid_configuration(monkeypatch):
    _install_service(monkeypatch, FakeDriver(), engine="oracle")

    with pytest.raises(InvalidConfiguration):
        handler_module.handler({"query": "SELECT 1"})


def test_handler_requires_query(monkeypatch):
    _install_service(monkeypatch, FakeDriver())

    with pytest.raises(ValidationError):
        handler_module.handler({"database": "app"})


def test_get_service_builds_from_env_once(monkeypatch):
    """Settings are loaded once per process and reused."""
    monkeypatch.setenv("RDS_ENGINE", "mysql")
    monkeypatch.setenv("RDS_HOST", "db")
    monkeypatch.setenv("RDS_USER", "reporter")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setattr(handler_module, "load_dotenv", lambda: False)

    first = handler_module.get_service()
    second = handler_module.get_service()

    assert first is second
    assert isinstance(first, QueryService)


def test_request_model_treats_null_database_as_default():
    assert QueryRequest.model_validate({"query": "SELECT 1", "database": None}).database == ""
