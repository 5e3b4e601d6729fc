from dataclasses import dataclass, field
from enum import Enum

from dal.errors import InvalidConfiguration
from dal.util.env import normalize_engine


class Engine(str, Enum):
    """Supported database engines."""

    MYSQL = "mysql"
    POSTGRES = "postgres"

    @classmethod
    def parse(cls, value: str) -> "Engine":
        """Parse a configured engine identifier, accepting common aliases."""
        normalized = normalize_engine(value or "")
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(sorted(member.value for member in cls))
            raise InvalidConfiguration(
                f"Invalid database engine specified: '{value}'. Allowed values: {allowed}"
            ) from None


class CredentialKind(str, Enum):
    """How the secret in a credential was obtained."""

    IDENTITY_TOKEN = "identity_token"
    STATIC_SECRET = "static_secret"


@dataclass(frozen=True)
class ConnectionTarget:
    """Where a single request connects to."""

    engine: Engine
    host: str
    port: int
    user: str
    database: str


@dataclass(frozen=True)
class Credential:
    """A secret presented for one connection attempt."""

    kind: CredentialKind
    secret: str = field(repr=False)

    @classmethod
    def identity_token(cls, token: str) -> "Credential":
        return cls(CredentialKind.IDENTITY_TOKEN, token)

    @classmethod
    def static_secret(cls, password: str) -> "Credential":
        return cls(CredentialKind.STATIC_SECRET, password)
