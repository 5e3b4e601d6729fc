import logging
from typing import Any, Dict, Optional

import aiomysql
from pymysql.constants import CLIENT

from dal.engines.base import DescribedRows, build_ssl_context
from dal.error_classification import connection_error_for
from dal.errors import ConnectionUnavailable
from dal.target import ConnectionTarget, Credential, CredentialKind, Engine
from dal.tracing import trace_query_operation

logger = logging.getLogger(__name__)

# RDS validates IAM tokens only when they arrive through the cleartext plugin, over TLS.
CLEARTEXT_AUTH_PLUGIN = "mysql_clear_password"


class TlsRequiredConnection(aiomysql.Connection):
    """aiomysql connection that never authenticates over plain TCP.

    aiomysql upgrades to TLS only when the server advertises ``CLIENT_SSL`` and
    otherwise writes the handshake response, password included, unencrypted.
    Here the handshake fails instead, before any credential leaves the client.
    """

    async def _request_authentication(self):
        if self._ssl_context and not self.server_capabilities & CLIENT.SSL:
            raise ConnectionUnavailable(
                f"MySQL server at {self._host}:{self._port} does not offer TLS",
                engine=Engine.MYSQL.value,
            )
        await super()._request_authentication()


async def open_tls_connection(**params: Any) -> aiomysql.Connection:
    """Open and authenticate a ``TlsRequiredConnection``."""
    conn = TlsRequiredConnection(**params)
    await conn._connect()
    return conn


class MysqlDriver:
    """MySQL connections using aiomysql."""

    engine = Engine.MYSQL
    default_port = 3306

    def __init__(self, ssl_ca_path: Optional[str] = None) -> None:
        """Initialize with an optional CA bundle for server verification."""
        self._ssl_ca_path = ssl_ca_path

    def build_connect_params(
        self, target: ConnectionTarget, credential: Credential
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "host": target.host,
            "port": target.port,
            "user": target.user,
            "password": credential.secret,
            "db": target.database or None,
            "ssl": build_ssl_context(self._ssl_ca_path),
            "autocommit": True,
        }
        if credential.kind is CredentialKind.IDENTITY_TOKEN:
            params["auth_plugin"] = CLEARTEXT_AUTH_PLUGIN
        return params

    async def connect(self, target: ConnectionTarget, credential: Credential) -> "MysqlConnection":
        params = self.build_connect_params(target, credential)

        async def _open():
            try:
                conn = await open_tls_connection(**params)
            except ConnectionUnavailable:
                raise
            except Exception as exc:
                raise connection_error_for(self.engine.value, exc) from exc
            return MysqlConnection(conn)

        return await trace_query_operation(
            "db.connect",
            engine=self.engine.value,
            sql=None,
            operation=_open(),
            attributes={"db.auth_mode": credential.kind.value},
        )


class MysqlConnection:
    """Adapter exposing column-described fetches over an aiomysql connection."""

    def __init__(self, conn: aiomysql.Connection) -> None:
        self._conn = conn
        self._closed = False

    async def fetch_described(self, sql: str) -> DescribedRows:
        async def _run():
            async with self._conn.cursor() as cursor:
                # No args: the statement is sent as-is, without %-interpolation.
                await cursor.execute(sql)
                columns = [entry[0] for entry in cursor.description or ()]
                rows = await cursor.fetchall()
                return columns, list(rows or ())

        return await trace_query_operation(
            "db.query.execute",
            engine="mysql",
            sql=sql,
            operation=_run(),
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._conn.close()
        logger.debug("Closed MySQL connection")
