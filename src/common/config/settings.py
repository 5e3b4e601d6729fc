"""Process-level settings for the database query service."""

from dataclasses import dataclass, field
from typing import Optional

from common.config.env import get_env_bool, get_env_int, get_env_str, get_first_env_str


@dataclass(frozen=True)
class QueryServiceSettings:
    """Resolved configuration, built once at process start and passed down explicitly.

    The engine identifier is kept as given; it is validated when a connection is
    attempted so that a bad value surfaces as an invalid-configuration failure of
    the request rather than a startup crash.
    """

    engine: str
    host: str
    user: str
    region: str
    port: Optional[int] = None
    database: str = ""
    fallback_password: Optional[str] = field(default=None, repr=False)
    switch_to_iam_auth: bool = False
    ssl_ca_path: Optional[str] = None

    def database_for(self, override: Optional[str]) -> str:
        """Return the effective database name for a request."""
        if override:
            return override
        return self.database

    @classmethod
    def from_env(cls) -> "QueryServiceSettings":
        """Load settings from environment variables."""
        engine = get_env_str("RDS_ENGINE")
        host = get_env_str("RDS_HOST")
        user = get_env_str("RDS_USER")
        region = get_first_env_str(("AWS_DEFAULT_REGION", "AWS_REGION"))

        missing = [
            name
            for name, value in {
                "RDS_ENGINE": engine,
                "RDS_HOST": host,
                "RDS_USER": user,
                "AWS_DEFAULT_REGION": region,
            }.items()
            if not value
        ]
        if missing:
            missing_list = ", ".join(missing)
            raise ValueError(
                f"Query service missing required config: {missing_list}. "
                "Set RDS_ENGINE, RDS_HOST, RDS_USER, and AWS_DEFAULT_REGION."
            )

        return cls(
            engine=engine,
            host=host,
            user=user,
            region=region,
            port=get_env_int("RDS_PORT"),
            database=get_env_str("RDS_DATABASE", ""),
            fallback_password=get_env_str("RDS_PASSWORD_INITIAL") or None,
            switch_to_iam_auth=get_env_bool("RDS_SWITCH_TO_IAM_AUTH", False),
            ssl_ca_path=get_env_str("RDS_SSL_CA_PATH") or None,
        )
