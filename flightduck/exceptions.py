"""
Error Types

Exceptions raised by the loader and the query engine, plus the non-fatal
warning emitted by the reporter when a group has no usable values.
"""

from pathlib import Path
from typing import Iterable, Optional


class FlightDuckError(Exception):
    """Base class for all FlightDuck errors."""


class SourceNotFound(FlightDuckError):
    """A source file path does not resolve to an existing file."""

    def __init__(self, path):
        self.path = Path(path)
        super().__init__(f"Source file not found: {self.path}")


class SchemaMismatch(FlightDuckError):
    """A section or expected columns are absent from a source."""

    def __init__(self, source: str, missing: Iterable[str], kind: str = 'missing columns'):
        self.source = source
        self.missing = list(missing)
        self.kind = kind
        super().__init__(f"{source}: {kind} {self.missing}")


class QueryError(FlightDuckError):
    """
    Base class for query engine failures.

    Attributes:
        sql: The query text that failed, when available
    """

    def __init__(self, message: str, sql: Optional[str] = None):
        self.sql = sql
        if sql:
            message = f"{message}\nSQL: {sql.strip()[:200]}"
        super().__init__(message)


class QuerySyntaxError(QueryError):
    """The query text could not be parsed."""


class QueryExecutionError(QueryError):
    """The query parsed but the engine could not run it."""


class UnknownTable(QueryExecutionError):
    """A query or expression referenced a table that has not been staged."""

    def __init__(self, table_name: str, sql: Optional[str] = None):
        self.table_name = table_name
        super().__init__(f"Table '{table_name}' does not exist", sql)


class EmptyGroupWarning(UserWarning):
    """A group had no non-null values, so its mean is undefined."""
