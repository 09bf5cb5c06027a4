"""
Database Connection Management

This module provides a DatabaseConnection class for managing a DuckDB
connection, staging pandas DataFrames as tables, and answering queries
either as raw SQL text or as composed QueryExpression objects.
"""

import logging
import re
from typing import Any, List, Optional, Sequence, Union

import duckdb
import pandas as pd

from flightduck.config import DB_CONFIG
from flightduck.exceptions import QueryExecutionError, QuerySyntaxError, UnknownTable
from flightduck.query_builder import Node, QueryExpression, TableRef, compile_query
from flightduck.utils import quote_identifier

logger = logging.getLogger(__name__)

_MISSING_TABLE = re.compile(r'Table with name "?([^"\s!]+)"? does not exist')

_STAGING_VIEW = '_flightduck_staging'


class DatabaseConnection:
    """
    Manages the database connection and query execution for FlightDuck.

    The connection is meant to be used as a context manager so it is always
    released, including when a query fails:

        with DatabaseConnection() as conn:
            conn.load_table('flights', flights_df)
            df = conn.execute_query('SELECT COUNT(*) FROM flights')

    Attributes:
        config (dict): Connection settings (database path, read_only flag)
        conn: DuckDB connection object, None while disconnected
    """

    def __init__(self, database: Optional[str] = None, read_only: Optional[bool] = None):
        """
        Initialize database connection manager.

        Args:
            database: Database path, or ':memory:' (default from DB_CONFIG)
            read_only: Open the database read-only (default from DB_CONFIG)
        """
        self.config = dict(DB_CONFIG)
        if database is not None:
            self.config['database'] = database
        if read_only is not None:
            self.config['read_only'] = read_only
        self.conn = None

    def connect(self) -> None:
        """
        Open the DuckDB connection.

        Raises:
            QueryExecutionError: If the database cannot be opened
        """
        try:
            self.conn = duckdb.connect(
                database=self.config['database'],
                read_only=self.config['read_only']
            )
        except duckdb.Error as e:
            raise QueryExecutionError(f"Error opening database {self.config['database']}: {e}") from e
        logger.info("Connected to %s", self.config['database'])

    def _cursor(self):
        if self.conn is None:
            raise RuntimeError("Not connected; call connect() or use 'with DatabaseConnection()'")
        return self.conn

    def _execute(self, sql: str, params: Optional[Sequence[Any]] = None, fetch: bool = True):
        """Run a statement, translating engine errors into FlightDuck errors."""
        cursor = self._cursor()
        try:
            result = cursor.execute(sql, params) if params else cursor.execute(sql)
            return result.df() if fetch else None
        except duckdb.ParserException as e:
            raise QuerySyntaxError(str(e), sql) from e
        except duckdb.CatalogException as e:
            match = _MISSING_TABLE.search(str(e))
            if match:
                raise UnknownTable(match.group(1), sql) from e
            raise QueryExecutionError(str(e), sql) from e
        except duckdb.Error as e:
            raise QueryExecutionError(str(e), sql) from e

    def execute_query(self, sql: str, params: Optional[Sequence[Any]] = None) -> pd.DataFrame:
        """
        Execute a SQL query and return the result table.

        Args:
            sql: SQL query string to execute
            params: Optional values for '?' placeholders

        Returns:
            DataFrame containing the query results

        Raises:
            QuerySyntaxError: If the query cannot be parsed
            UnknownTable: If the query references a table that is not staged
            QueryExecutionError: If the engine rejects the query otherwise
        """
        logger.debug("Executing query:\n%s", sql)
        return self._execute(sql, params)

    def execute_write(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        """
        Execute a statement that returns no rows (CREATE, INSERT, DROP).

        Raises:
            QuerySyntaxError, UnknownTable, QueryExecutionError: As execute_query
        """
        self._execute(sql, params, fetch=False)

    def load_table(self, name: str, data: pd.DataFrame) -> int:
        """
        Stage a DataFrame as a named table, replacing any existing table.

        Args:
            name: Table name
            data: Rows to store

        Returns:
            Number of rows written
        """
        cursor = self._cursor()
        cursor.register(_STAGING_VIEW, data)
        try:
            self.execute_write(
                f"CREATE OR REPLACE TABLE {quote_identifier(name)} AS "
                f"SELECT * FROM {quote_identifier(_STAGING_VIEW)}"
            )
        finally:
            cursor.unregister(_STAGING_VIEW)

        logger.info("Wrote table %s (%d rows)", name, len(data))
        return len(data)

    def list_tables(self) -> List[str]:
        """
        List the tables staged in the database.

        Returns:
            Sorted list of table names
        """
        result = self.execute_query(
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = 'main' ORDER BY table_name"
        )
        return result['table_name'].tolist()

    def has_table(self, name: str) -> bool:
        """Check whether a table is staged (names are case-insensitive)."""
        return name.lower() in (table.lower() for table in self.list_tables())

    def read_table(self, name: str) -> pd.DataFrame:
        """
        Read a whole table back as a DataFrame.

        Raises:
            UnknownTable: If the table is not staged
        """
        return self.execute_query(f"SELECT * FROM {quote_identifier(name)}")

    def get_table_info(self, name: str) -> dict:
        """
        Get information about a table (row count and columns).

        Args:
            name: Table name

        Returns:
            Dictionary with row_count, column_count and columns

        Raises:
            UnknownTable: If the table is not staged
        """
        if not self.has_table(name):
            raise UnknownTable(name)

        count = self.execute_query(f"SELECT COUNT(*) AS row_count FROM {quote_identifier(name)}")
        columns = self.execute_query(
            "SELECT column_name FROM information_schema.columns "
            "WHERE table_schema = 'main' AND lower(table_name) = lower(?) "
            "ORDER BY ordinal_position",
            [name]
        )['column_name'].tolist()

        return {
            'row_count': int(count['row_count'].iloc[0]),
            'column_count': len(columns),
            'columns': columns
        }

    def build_query(self, name: str) -> QueryExpression:
        """
        Start a composable query over a staged table.

        Nothing is executed; the returned expression only describes work
        until it is materialized.

        Args:
            name: Table name

        Returns:
            QueryExpression bound to this connection

        Raises:
            UnknownTable: If the table is not staged
        """
        if not self.has_table(name):
            raise UnknownTable(name)
        return QueryExpression(TableRef(name), self)

    def explain(self, expression: Union[QueryExpression, Node]) -> str:
        """
        Render the SQL an expression translates to, without running it.

        Args:
            expression: QueryExpression or expression tree node

        Returns:
            SQL query string
        """
        node = expression.node if isinstance(expression, QueryExpression) else expression
        return compile_query(node)

    def materialize(self, expression: Union[QueryExpression, Node]) -> pd.DataFrame:
        """
        Translate an expression to SQL and run it.

        Args:
            expression: QueryExpression or expression tree node

        Returns:
            DataFrame containing the query results
        """
        return self.execute_query(self.explain(expression))

    def get_explain(self, sql: str) -> str:
        """
        Get the engine's physical query plan (EXPLAIN).

        Args:
            sql: SQL query to analyze

        Returns:
            Plan text as printed by the engine
        """
        plan = self.execute_query(f"EXPLAIN {sql}")
        return '\n'.join(plan.iloc[:, -1].astype(str))

    def test_connection(self) -> bool:
        """
        Test if the connection is alive and working.

        Returns:
            True if connection is working, False otherwise
        """
        try:
            self._cursor().execute("SELECT 1")
            return True
        except (duckdb.Error, RuntimeError):
            return False

    def close(self) -> None:
        """Close the database connection."""
        if self.conn is not None:
            self.conn.close()
            self.conn = None
            logger.info("Closed connection to %s", self.config['database'])

    def __enter__(self):
        """Context manager entry: establish connection."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit: close connection."""
        self.close()
        return False

    def __repr__(self) -> str:
        """String representation of the connection."""
        status = "connected" if self.test_connection() else "disconnected"
        return f"DatabaseConnection(database='{self.config['database']}', status='{status}')"
