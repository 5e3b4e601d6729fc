"""Request-scoped SQL query service with RDS IAM auth and password fallback."""

from query_service.service import QueryService, build_target

__all__ = ["QueryService", "build_target"]
