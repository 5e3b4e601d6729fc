import logging
from typing import Optional

from common.config.settings import QueryServiceSettings
from common.observability.metrics import query_metrics
from dal.credentials import RdsIamTokenResolver
from dal.engines import get_engine_driver
from dal.flattening import QueryResult, flatten
from dal.negotiator import ConnectionNegotiator
from dal.target import ConnectionTarget, Engine

logger = logging.getLogger(__name__)


def build_target(
    settings: QueryServiceSettings, database: Optional[str] = None
) -> ConnectionTarget:
    """Build the connection target for one request.

    Raises:
        InvalidConfiguration: If the configured engine is not supported.
    """
    engine = Engine.parse(settings.engine)
    port = settings.port or get_engine_driver(engine).default_port
    return ConnectionTarget(
        engine=engine,
        host=settings.host,
        port=port,
        user=settings.user,
        database=settings.database_for(database),
    )


class QueryService:
    """Run one query per call on a freshly negotiated connection."""

    def __init__(
        self,
        settings: QueryServiceSettings,
        negotiator: Optional[ConnectionNegotiator] = None,
    ) -> None:
        """Initialize the service; a default negotiator is built from settings."""
        self._settings = settings
        self._negotiator = negotiator or ConnectionNegotiator(
            resolver=RdsIamTokenResolver(region=settings.region),
            fallback_password=settings.fallback_password,
            switch_to_iam_auth=settings.switch_to_iam_auth,
            ssl_ca_path=settings.ssl_ca_path,
        )

    async def execute(self, query_text: str, database: Optional[str] = None) -> QueryResult:
        """Execute ``query_text`` and return every row, or raise.

        The connection is closed before returning on every path. Errors from
        negotiation or the query propagate unchanged.
        """
        target = build_target(self._settings, database)
        logger.info("creating database connection")
        negotiated = await self._negotiator.connect(target)
        try:
            logger.info("querying database")
            result = await flatten(negotiated.connection, query_text)
        except Exception:
            self._record_request(target, "failure")
            raise
        finally:
            await negotiated.connection.close()

        logger.info("got %d rows from database", len(result.rows))
        self._record_request(target, "success", fallback=negotiated.used_fallback)
        query_metrics.record_histogram(
            "db_query.rows_returned",
            len(result.rows),
            description="Rows returned per query",
            attributes={"engine": target.engine.value},
        )
        return result

    @staticmethod
    def _record_request(
        target: ConnectionTarget, outcome: str, fallback: Optional[bool] = None
    ) -> None:
        query_metrics.add_counter(
            "db_query.requests_total",
            description="Query requests by outcome",
            attributes={"engine": target.engine.value, "outcome": outcome, "fallback": fallback},
        )
