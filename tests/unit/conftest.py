"""Unit test environment helpers."""

import pytest

_SERVICE_ENV = (
    "RDS_ENGINE",
    "RDS_HOST",
    "RDS_USER",
    "RDS_PORT",
    "RDS_DATABASE",
    "RDS_PASSWORD_INITIAL",
    "RDS_SWITCH_TO_IAM_AUTH",
    "RDS_SSL_CA_PATH",
    "AWS_DEFAULT_REGION",
    "AWS_REGION",
    "DB_QUERY_FUNCTION_NAME",
)


@pytest.fixture(autouse=True)
def _clean_service_env(monkeypatch):
    """Start every unit test without service configuration in the environment."""
    for name in _SERVICE_ENV:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_cached_service():
    """Drop the per-process service cached by the Lambda handler."""
    from query_service.handler import get_service

    get_service.cache_clear()
    yield
    get_service.cache_clear()
