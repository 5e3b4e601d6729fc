"""Flatten engine-native result sets into uniform string-keyed rows.

The column list is taken from the result metadata, so any query shape works,
including ``SELECT *`` and computed columns. Every cell is rendered to text
with one rule regardless of engine or native type; SQL NULL becomes
``NULL_SENTINEL``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Sequence

from dal.engines.base import EngineConnection
from dal.errors import QueryFailed

NULL_SENTINEL = "NULL"

ResultRow = Dict[str, str]


@dataclass
class QueryResult:
    """Rows in engine order, plus the column list they were keyed by."""

    columns: List[str] = field(default_factory=list)
    rows: List[ResultRow] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


def format_cell(value: Any) -> str:
    """Render a single native cell value as text."""
    if value is None:
        return NULL_SENTINEL
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return "\\x" + raw.hex()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def flatten_row(columns: Sequence[str], values: Sequence[Any]) -> ResultRow:
    """Key one row's cells by column name.

    Duplicate column names keep the last cell.
    """
    if len(values) != len(columns):
        raise ValueError(f"row has {len(values)} values for {len(columns)} columns")
    return {name: format_cell(value) for name, value in zip(columns, values)}


async def flatten(connection: EngineConnection, query_text: str) -> QueryResult:
    """Execute ``query_text`` verbatim and flatten the whole result set.

    Raises:
        QueryFailed: If execution, metadata retrieval or row conversion fails.
            No partial result is returned.
    """
    try:
        columns, records = await connection.fetch_described(query_text)
        rows = [flatten_row(columns, record) for record in records]
    except QueryFailed:
        raise
    except Exception as exc:
        raise QueryFailed(f"unable to query database: {exc}") from exc

    return QueryResult(columns=list(columns), rows=rows)
