import ssl
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from dal.target import ConnectionTarget, Credential, Engine

DescribedRows = Tuple[List[str], List[Sequence[Any]]]


@runtime_checkable
class EngineConnection(Protocol):
    """A live, request-scoped database connection."""

    async def fetch_described(self, sql: str) -> DescribedRows:
        """Run ``sql`` verbatim and return its column names and raw row values."""
        ...

    async def close(self) -> None:
        """Release the connection. Calling it again is a no-op."""
        ...


@runtime_checkable
class EngineDriver(Protocol):
    """Builds connection parameters and opens connections for one engine."""

    engine: Engine
    default_port: int

    def build_connect_params(
        self, target: ConnectionTarget, credential: Credential
    ) -> Dict[str, Any]:
        """Return driver keyword arguments for a connection attempt."""
        ...

    async def connect(self, target: ConnectionTarget, credential: Credential) -> EngineConnection:
        """Open a connection.

        Raises:
            AuthRejected: If the database refuses the credential.
            ConnectionUnavailable: If the endpoint cannot be reached.
        """
        ...


def build_ssl_context(ca_path: Optional[str] = None) -> ssl.SSLContext:
    """Return a TLS context that verifies the server certificate and hostname."""
    context = ssl.create_default_context(cafile=ca_path)
    context.check_hostname = True
    context.verify_mode = ssl.CERT_REQUIRED
    return context
