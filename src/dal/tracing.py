import hashlib
from typing import Any, Awaitable, Dict, Optional

from common.observability.context import request_id_var
from common.observability.metrics import telemetry_enabled


def trace_enabled() -> bool:
    """Return True when query tracing is enabled or OTEL exporter defaults apply."""
    return telemetry_enabled("DB_QUERY_TRACE")


def _hash_sql(sql: str) -> str:
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


async def trace_query_operation(
    name: str,
    engine: str,
    sql: Optional[str],
    operation: Awaitable,
    attributes: Optional[Dict[str, Any]] = None,
):
    """Trace a token, connect or query operation with OTEL when enabled."""
    if not trace_enabled():
        return await operation

    from opentelemetry import trace

    tracer = trace.get_tracer("dal")
    with tracer.start_as_current_span(name) as span:
        request_id = request_id_var.get()
        if request_id:
            span.set_attribute("request_id", request_id)
        span.set_attribute("db.system", engine)
        if sql:
            span.set_attribute("db.statement_hash", _hash_sql(sql))
        for key, value in (attributes or {}).items():
            span.set_attribute(key, value)
        try:
            result = await operation
            span.set_attribute("db.status", "ok")
            return result
        except Exception:
            span.set_attribute("db.status", "error")
            raise
