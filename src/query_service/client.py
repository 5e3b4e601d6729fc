"""Command-line client that forwards a query to the deployed function."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from common.config.env import get_env_str
from query_service.models import QueryRequest, QueryResponse

logger = logging.getLogger(__name__)

DEFAULT_FUNCTION_NAME = "db-query"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="db-query",
        usage="%(prog)s [--function-name NAME] [database name] <query>",
        description="Run a SQL query through the db-query function and print the rows.",
    )
    parser.add_argument("arguments", nargs="*", help="optional database name, then the query")
    parser.add_argument(
        "--function-name",
        default=None,
        help=f"Function to invoke (default: $DB_QUERY_FUNCTION_NAME or {DEFAULT_FUNCTION_NAME})",
    )
    return parser


def build_request(arguments: List[str]) -> Optional[QueryRequest]:
    """Map positional arguments to a request; None when the arity is wrong."""
    if len(arguments) == 1:
        return QueryRequest(query=arguments[0])
    if len(arguments) == 2:
        return QueryRequest(database=arguments[0], query=arguments[1])
    return None


def invoke(function_name: str, request: QueryRequest, session=None) -> dict:
    """Invoke the function synchronously and return its decoded response."""
    if session is None:
        import boto3

        session = boto3.session.Session()
    client = session.client("lambda")
    response = client.invoke(
        FunctionName=function_name,
        Payload=json.dumps(request.model_dump()).encode("utf-8"),
    )
    payload = json.loads(response["Payload"].read() or b"null")
    return {"error": response.get("FunctionError"), "payload": payload}


def main(argv: Optional[List[str]] = None, session=None) -> int:
    """Run the CLI."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    request = build_request(args.arguments)
    if request is None:
        parser.print_usage(sys.stdout)
        return 1

    function_name = (
        args.function_name or get_env_str("DB_QUERY_FUNCTION_NAME") or DEFAULT_FUNCTION_NAME
    )
    try:
        result = invoke(function_name, request, session=session)
    except Exception as e:
        logger.error("Invoking %s failed: %s", function_name, e, exc_info=True)
        return 1

    if result["error"]:
        print(json.dumps(result["payload"], indent=2), file=sys.stderr)
        return 1

    rows = QueryResponse.model_validate(result["payload"]).rows
    print(json.dumps(rows, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
