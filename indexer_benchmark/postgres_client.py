"""
PostgreSQL access for platforms whose indexed tables are queried directly
(Ponder, Subsquid).
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import psycopg2
from psycopg2 import sql
from psycopg2.extras import RealDictCursor

logger = logging.getLogger(__name__)


class PostgresClient:
    """
    Thin wrapper over a single psycopg2 connection.

    The connection is opened lazily on first use and shared by every page of
    one extraction run.
    """

    def __init__(
        self,
        dsn: str,
        schema: str = "public",
        connect_timeout: int = 30,
        statement_timeout_ms: int = 300000
    ):
        """
        Initialize the client.

        Args:
            dsn: libpq connection string or postgresql:// URL
            schema: Schema holding the indexed tables
            connect_timeout: Connection timeout in seconds
            statement_timeout_ms: Per-statement timeout in milliseconds
        """
        if not dsn:
            raise ValueError("A database URL is required")
        self.dsn = dsn
        self.schema = schema
        self.connect_timeout = connect_timeout
        self.statement_timeout_ms = statement_timeout_ms
        self._conn = None

    @property
    def conn(self):
        """Lazily open the database connection."""
        if self._conn is None:
            try:
                self._conn = psycopg2.connect(
                    self.dsn,
                    connect_timeout=self.connect_timeout,
                    options=f"-c statement_timeout={self.statement_timeout_ms}"
                )
                self._conn.autocommit = True
                logger.info(f"Connected to PostgreSQL (schema: {self.schema})")
            except psycopg2.OperationalError as e:
                logger.error(f"Could not connect to the database: {e}")
                raise
        return self._conn

    def compose(self, query: str) -> sql.Composed:
        """Substitute the `{schema}` placeholder with a quoted identifier."""
        return sql.SQL(query).format(schema=sql.Identifier(self.schema))

    def fetch_all(
        self,
        query: Union[str, sql.Composable],
        params: Optional[Sequence[Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute a query and return every row as a dictionary.

        Args:
            query: SQL text (with an optional `{schema}` placeholder) or composed SQL
            params: Positional parameters for %s placeholders

        Returns:
            List of row dictionaries
        """
        statement = self.compose(query) if isinstance(query, str) else query
        with self.conn.cursor(cursor_factory=RealDictCursor) as cursor:
            cursor.execute(statement, params)
            return [dict(row) for row in cursor.fetchall()]

    def health_check(self) -> bool:
        try:
            self.fetch_all("SELECT 1 AS ok")
            return True
        except psycopg2.Error as e:
            logger.warning(f"Health check failed: {e}")
            return False

    def close(self):
        """Close the connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
