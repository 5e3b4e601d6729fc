"""Short-lived RDS IAM authentication tokens."""

import asyncio
import logging
from typing import Any, Optional, Protocol, runtime_checkable

from botocore.exceptions import NoCredentialsError

from dal.errors import CredentialUnavailable
from dal.target import ConnectionTarget
from dal.tracing import trace_query_operation

logger = logging.getLogger(__name__)


@runtime_checkable
class CredentialResolver(Protocol):
    """Protocol for producing an identity token for a connection target."""

    async def resolve(self, target: ConnectionTarget) -> str:
        """Return a bearer token valid for a single authentication handshake.

        Raises:
            CredentialUnavailable: If the token cannot be produced.
        """
        ...


class RdsIamTokenResolver:
    """Sign RDS IAM auth tokens with the ambient AWS identity.

    Tokens are never cached; every call signs a fresh one. The port is part of
    the signed host string, and a token signed without it is rejected by the
    database even though it looks valid.

    The RDS client is built once and shared by the signing threads; boto3
    clients are thread-safe, sessions are not.
    """

    def __init__(self, region: str, session: Optional[Any] = None) -> None:
        """Initialize the RDS client for the signing region."""
        if session is None:
            import boto3

            session = boto3.session.Session(region_name=region)
        self._region = region
        self._client = session.client("rds", region_name=region)

    async def resolve(self, target: ConnectionTarget) -> str:
        """Generate an auth token for the target's host, port and user."""
        return await trace_query_operation(
            "db.auth.token",
            engine=target.engine.value,
            sql=None,
            operation=asyncio.to_thread(self._sign, target),
        )

    def _sign(self, target: ConnectionTarget) -> str:
        try:
            token = self._client.generate_db_auth_token(
                DBHostname=target.host,
                Port=target.port,
                DBUsername=target.user,
                Region=self._region,
            )
        except NoCredentialsError as exc:
            raise CredentialUnavailable(
                "no ambient AWS credentials available for RDS IAM auth",
                engine=target.engine.value,
            ) from exc
        except Exception as exc:
            raise CredentialUnavailable(
                f"unable to generate database token: {exc}", engine=target.engine.value
            ) from exc

        if not token:
            raise CredentialUnavailable(
                "RDS token signer returned an empty token", engine=target.engine.value
            )
        logger.debug(
            "Generated RDS IAM auth token for %s@%s:%s", target.user, target.host, target.port
        )
        return token
