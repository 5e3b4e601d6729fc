import logging
from typing import Any, Dict, Optional

import asyncpg

from dal.engines.base import DescribedRows, build_ssl_context
from dal.error_classification import connection_error_for
from dal.target import ConnectionTarget, Credential, Engine
from dal.tracing import trace_query_operation

logger = logging.getLogger(__name__)


class PostgresDriver:
    """PostgreSQL connections using asyncpg, always with verify-full TLS."""

    engine = Engine.POSTGRES
    default_port = 5432

    def __init__(self, ssl_ca_path: Optional[str] = None) -> None:
        """Initialize with an optional CA bundle for server verification."""
        self._ssl_ca_path = ssl_ca_path

    def build_connect_params(
        self, target: ConnectionTarget, credential: Credential
    ) -> Dict[str, Any]:
        return {
            "host": target.host,
            "port": target.port,
            "user": target.user,
            "password": credential.secret,
            "database": target.database or None,
            "ssl": build_ssl_context(self._ssl_ca_path),
        }

    async def connect(
        self, target: ConnectionTarget, credential: Credential
    ) -> "PostgresConnection":
        params = self.build_connect_params(target, credential)

        async def _open():
            try:
                conn = await asyncpg.connect(**params)
            except Exception as exc:
                raise connection_error_for(self.engine.value, exc) from exc
            return PostgresConnection(conn)

        return await trace_query_operation(
            "db.connect",
            engine=self.engine.value,
            sql=None,
            operation=_open(),
            attributes={"db.auth_mode": credential.kind.value},
        )


class PostgresConnection:
    """Adapter exposing column-described fetches over an asyncpg connection."""

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn
        self._closed = False

    async def fetch_described(self, sql: str) -> DescribedRows:
        async def _run():
            statement = await self._conn.prepare(sql)
            columns = [attr.name for attr in statement.get_attributes()]
            records = await statement.fetch()
            return columns, [tuple(record) for record in records]

        return await trace_query_operation(
            "db.query.execute",
            engine="postgres",
            sql=sql,
            operation=_run(),
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._conn.close()
        except Exception as exc:
            logger.warning("Graceful Postgres close failed, terminating: %s", exc)
            self._conn.terminate()
