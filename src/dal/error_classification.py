from __future__ import annotations

import logging
from typing import Optional

from common.config.env import get_env_bool
from dal.errors import AuthRejected, ConnectionUnavailable, QueryServiceError

logger = logging.getLogger(__name__)

# MySQL server/client error codes carried in OperationalError.args[0].
_MYSQL_AUTH_CODES = {1044, 1045, 1698, 2059}
_MYSQL_CONNECTIVITY_CODES = {2002, 2003, 2005, 2006, 2013, 2026}

_AUTH_FRAGMENTS = (
    "access denied",
    "password authentication failed",
    "pam authentication failed",
    "permission denied",
    "not authorized",
    "no pg_hba.conf entry",
)
_CONNECTIVITY_FRAGMENTS = (
    "could not connect",
    "can't connect",
    "connection refused",
    "connection reset",
    "connection failed",
    "name or service not known",
    "network",
    "timed out",
    "timeout",
)


def classify_connect_error(engine: str, exc: BaseException) -> str:
    """Classify a connection-time driver error as ``auth`` or ``connectivity``."""
    if isinstance(exc, QueryServiceError):
        return exc.category

    message = str(exc).lower()
    class_name = exc.__class__.__name__.lower()
    module_name = exc.__class__.__module__.lower()

    if engine == "mysql":
        code = _mysql_error_code(exc)
        if code in _MYSQL_AUTH_CODES:
            return "auth"
        if code in _MYSQL_CONNECTIVITY_CODES:
            return "connectivity"

    if module_name.startswith("asyncpg") and (
        "invalidpassword" in class_name or "invalidauthorization" in class_name
    ):
        return "auth"

    if any(fragment in message for fragment in _AUTH_FRAGMENTS):
        return "auth"

    if isinstance(exc, (OSError, TimeoutError)):
        return "connectivity"
    if any(fragment in message for fragment in _CONNECTIVITY_FRAGMENTS):
        return "connectivity"

    # Anything else happened during the handshake; the credential was not accepted.
    return "auth"


def connection_error_for(engine: str, exc: BaseException) -> QueryServiceError:
    """Build the taxonomy error for a failed connection attempt."""
    if isinstance(exc, QueryServiceError):
        return exc
    category = classify_connect_error(engine, exc)
    emit_classified_error(engine, "connect", category, exc)
    if category == "connectivity":
        return ConnectionUnavailable(f"unable to reach {engine} database: {exc}", engine=engine)
    return AuthRejected(f"{engine} database rejected credentials: {exc}", engine=engine)


def emit_classified_error(engine: str, operation: str, category: str, exc: BaseException) -> None:
    """Emit structured telemetry for classified errors when enabled."""
    if not get_env_bool("DB_QUERY_CLASSIFIED_ERROR_TELEMETRY", True):
        return

    from opentelemetry import trace

    span = trace.get_current_span()
    if span is not None and span.is_recording():
        span.set_attribute("error.classification.category", category)
        span.set_attribute("error.classification.engine", engine)
        span.set_attribute("error.classification.operation", operation)
        span.add_event(
            "db.error.classified",
            {"engine": engine, "category": category, "operation": operation},
        )

    logger.warning(
        "db_error_classified",
        extra={
            "event": "db_error_classified",
            "engine": engine,
            "operation": operation,
            "error_category": category,
            "error_type": exc.__class__.__name__,
        },
    )


def _mysql_error_code(exc: BaseException) -> Optional[int]:
    args = getattr(exc, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None
