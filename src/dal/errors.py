"""Error taxonomy for credential resolution, connection negotiation and queries."""

from typing import Optional


class QueryServiceError(Exception):
    """Base class for failures surfaced by the query path."""

    category = "unknown"

    def __init__(self, message: str, engine: Optional[str] = None) -> None:
        """Initialize the error with an optional engine label."""
        self.engine = engine
        super().__init__(message)


class CredentialUnavailable(QueryServiceError):
    """An identity token could not be produced."""

    category = "credential_unavailable"


class AuthRejected(QueryServiceError):
    """The database refused the presented credential."""

    category = "auth"


class ConnectionUnavailable(QueryServiceError):
    """The database endpoint could not be reached."""

    category = "connectivity"


class QueryFailed(QueryServiceError):
    """The query failed after a connection was established."""

    category = "query"


class InvalidConfiguration(QueryServiceError):
    """The configured engine is not supported."""

    category = "invalid_configuration"
