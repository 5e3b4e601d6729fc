"""Data access layer for the query service.

Exposes the error taxonomy and connection types shared by the credential
resolver, the connection negotiator and the row flattener.
"""

from dal.errors import (
    AuthRejected,
    ConnectionUnavailable,
    CredentialUnavailable,
    InvalidConfiguration,
    QueryFailed,
    QueryServiceError,
)
from dal.target import ConnectionTarget, Credential, CredentialKind, Engine

__all__ = [
    "AuthRejected",
    "ConnectionTarget",
    "ConnectionUnavailable",
    "Credential",
    "CredentialKind",
    "CredentialUnavailable",
    "Engine",
    "InvalidConfiguration",
    "QueryFailed",
    "QueryServiceError",
]
