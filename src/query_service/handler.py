"""AWS Lambda entry point for the query service."""

import asyncio
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from common.config.settings import QueryServiceSettings
from common.observability.context import request_id_var
from query_service.models import QueryRequest, QueryResponse
from query_service.service import QueryService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_service() -> QueryService:
    """Build the service once per process from the environment."""
    load_dotenv()
    return QueryService(QueryServiceSettings.from_env())


def handler(event: Optional[Dict[str, Any]], context: Any = None) -> Dict[str, Any]:
    """Handle a ``{"query": ..., "database": ...}`` invocation.

    Failures are raised so the invocation layer reports them as function errors.
    """
    request = QueryRequest.model_validate(event or {})
    reset_token = request_id_var.set(getattr(context, "aws_request_id", None))
    try:
        result = asyncio.run(get_service().execute(request.query, request.database))
    finally:
        request_id_var.reset(reset_token)
    return QueryResponse(rows=result.rows).model_dump()
