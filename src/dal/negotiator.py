"""Connection negotiation: identity-token auth first, static secret second.

    START -> TRY_IDENTITY_AUTH -> CONNECTED_IDENTITY
                               -> TRY_FALLBACK_AUTH -> CONNECTED_FALLBACK
                                                    -> FAILED

Each attempt is only successful once a probe query has run on the new
connection. At most one connection is open at any time, and a connection whose
probe failed is closed before the next attempt starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from common.observability.metrics import query_metrics
from dal.credentials import CredentialResolver
from dal.engines import EngineConnection, EngineDriver, get_engine_driver
from dal.errors import AuthRejected, QueryServiceError
from dal.flattening import flatten
from dal.target import ConnectionTarget, Credential

logger = logging.getLogger(__name__)

PROBE_QUERY = "SELECT 1"


class NegotiationState(str, Enum):
    """States of a single connection negotiation."""

    START = "start"
    TRY_IDENTITY_AUTH = "try_identity_auth"
    CONNECTED_IDENTITY = "connected_identity"
    TRY_FALLBACK_AUTH = "try_fallback_auth"
    CONNECTED_FALLBACK = "connected_fallback"
    FAILED = "failed"


@dataclass(frozen=True)
class AuthMigrationIntent:
    """A recorded wish to move an account onto identity-based auth.

    Nothing acts on it yet; the grant itself is not performed.
    """

    engine: str
    host: str
    user: str


@dataclass
class NegotiatedConnection:
    """A probed connection and how it was obtained."""

    connection: EngineConnection
    state: NegotiationState
    migration_intent: Optional[AuthMigrationIntent] = None

    @property
    def used_fallback(self) -> bool:
        return self.state is NegotiationState.CONNECTED_FALLBACK


class ConnectionNegotiator:
    """Open a validated connection for a target.

    The negotiator holds only immutable configuration, so a single instance can
    serve concurrent requests; every call negotiates its own connection.
    """

    def __init__(
        self,
        resolver: CredentialResolver,
        fallback_password: Optional[str] = None,
        switch_to_iam_auth: bool = False,
        ssl_ca_path: Optional[str] = None,
    ) -> None:
        """Initialize with the token resolver and fallback settings."""
        self._resolver = resolver
        self._fallback_password = fallback_password
        self._switch_to_iam_auth = switch_to_iam_auth
        self._ssl_ca_path = ssl_ca_path

    def driver_for(self, target: ConnectionTarget) -> EngineDriver:
        return get_engine_driver(target.engine, ssl_ca_path=self._ssl_ca_path)

    async def connect(self, target: ConnectionTarget) -> NegotiatedConnection:
        """Run the negotiation and return a probed connection.

        Raises:
            InvalidConfiguration: If the engine has no driver. Raised before any
                network call.
            AuthRejected, ConnectionUnavailable: The error of the fallback attempt
                when both attempts fail.
        """
        _enter(NegotiationState.START, target)
        driver = self.driver_for(target)
        engine = target.engine.value

        _enter(NegotiationState.TRY_IDENTITY_AUTH, target)
        logger.info("getting RDS IAM auth token")
        try:
            token = await self._resolver.resolve(target)
            connection = await self._open_probed(driver, target, Credential.identity_token(token))
        except Exception as exc:
            logger.warning("unable to open db connection using iam auth: %s", exc)
            self._record_attempt(engine, "identity", "failure", exc)
        else:
            self._record_attempt(engine, "identity", "success")
            logger.info("connected to the database using IAM auth")
            return NegotiatedConnection(
                connection, _enter(NegotiationState.CONNECTED_IDENTITY, target)
            )

        _enter(NegotiationState.TRY_FALLBACK_AUTH, target)
        try:
            connection = await self._open_probed(driver, target, self._fallback_credential(target))
        except Exception as exc:
            _enter(NegotiationState.FAILED, target)
            logger.error("unable to open db connection using initial password: %s", exc)
            self._record_attempt(engine, "fallback", "failure", exc)
            raise

        self._record_attempt(engine, "fallback", "success")
        logger.info("connected to the database using initial password")
        return NegotiatedConnection(
            connection,
            _enter(NegotiationState.CONNECTED_FALLBACK, target),
            migration_intent=self._migration_intent(target),
        )

    def _fallback_credential(self, target: ConnectionTarget) -> Credential:
        if not self._fallback_password:
            raise AuthRejected(
                "identity auth failed and no fallback password is configured",
                engine=target.engine.value,
            )
        return Credential.static_secret(self._fallback_password)

    async def _open_probed(
        self, driver: EngineDriver, target: ConnectionTarget, credential: Credential
    ) -> EngineConnection:
        connection = await driver.connect(target, credential)
        logger.info("checking connection and auth")
        try:
            await flatten(connection, PROBE_QUERY)
        except Exception as exc:
            await connection.close()
            raise AuthRejected(f"probe query failed: {exc}", engine=target.engine.value) from exc
        except BaseException:
            await connection.close()
            raise
        return connection

    def _migration_intent(self, target: ConnectionTarget) -> Optional[AuthMigrationIntent]:
        if not self._switch_to_iam_auth:
            return None
        intent = AuthMigrationIntent(
            engine=target.engine.value, host=target.host, user=target.user
        )
        # TODO: grant rds_iam (postgres) or switch to AWSAuthenticationPlugin (mysql)
        # once the permission-granting flow is agreed.
        logger.info(
            "recorded intent to switch %s@%s to IAM auth; migration not performed",
            intent.user,
            intent.host,
            extra={"event": "db_auth_migration_deferred", "engine": intent.engine},
        )

        from opentelemetry import trace

        span = trace.get_current_span()
        if span is not None and span.is_recording():
            span.add_event(
                "db.auth.migration_deferred", {"engine": intent.engine, "user": intent.user}
            )
        return intent

    @staticmethod
    def _record_attempt(
        engine: str, mode: str, outcome: str, exc: Optional[BaseException] = None
    ) -> None:
        category = exc.category if isinstance(exc, QueryServiceError) else None
        query_metrics.add_counter(
            "db_query.auth.attempts_total",
            description="Connection authentication attempts by mode and outcome",
            attributes={
                "engine": engine,
                "mode": mode,
                "outcome": outcome,
                "error_category": category,
            },
        )


def _enter(state: NegotiationState, target: ConnectionTarget) -> NegotiationState:
    logger.debug("negotiation %s for %s@%s", state.value, target.user, target.host)
    return state
