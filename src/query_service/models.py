"""Invocation envelope models."""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QueryRequest(BaseModel):
    """A query to run, optionally against a non-default database."""

    model_config = ConfigDict(extra="ignore")

    query: str = Field(..., description="SQL text, executed verbatim")
    database: str = Field("", description="Target database; empty means the configured default")

    @field_validator("database", mode="before")
    @classmethod
    def _none_database_is_default(cls, value):
        return "" if value is None else value


class QueryResponse(BaseModel):
    """Flattened result rows in the order the engine returned them."""

    rows: List[Dict[str, str]] = Field(default_factory=list)
