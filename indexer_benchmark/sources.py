"""
Paginated source adapters.

Every adapter answers `fetch_page(cursor) -> (records, next_cursor)`. The
cursor is whatever the platform paginates by (an offset, the last seen id,
a block number). `next_cursor` is None once the source is exhausted: an
empty page, or a page shorter than the requested size.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .http_clients import GraphQLClient, HyperSyncClient, SentioSqlClient
from .postgres_client import PostgresClient

logger = logging.getLogger(__name__)

Page = Tuple[List[Dict[str, Any]], Optional[Any]]


class SourceAdapter:
    """Base class for paginated sources."""

    kind = "base"

    def __init__(self, page_size: int):
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.page_size = page_size

    def initial_cursor(self) -> Any:
        return 0

    def fetch_page(self, cursor: Any) -> Page:
        raise NotImplementedError

    def _offset_page(self, rows: List[Dict[str, Any]], offset: int) -> Page:
        if len(rows) < self.page_size:
            return rows, None
        return rows, offset + len(rows)

    def describe(self, cursor: Any) -> str:
        return f"offset={cursor}, limit={self.page_size}"

    def close(self):
        client = getattr(self, 'client', None)
        if client is not None:
            client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class SentioSqlSource(SourceAdapter):
    """Sentio SQL-over-HTTP, paginated with LIMIT/OFFSET appended to the SQL."""

    kind = "sentio_sql"

    def __init__(self, client: SentioSqlClient, sql: str, page_size: int = 5000):
        super().__init__(page_size)
        self.client = client
        self.sql = sql.strip().rstrip(';')

    def build_sql(self, offset: int) -> str:
        return f"{self.sql} LIMIT {self.page_size} OFFSET {offset}"

    def fetch_page(self, cursor: int) -> Page:
        rows = self.client.execute_sql(self.build_sql(cursor))
        return self._offset_page(rows, cursor)


class GraphQLOffsetSource(SourceAdapter):
    """
    GraphQL source paginated with limit/offset variables.

    The query must declare `$limit: Int!` and `$offset: Int!` and select the
    records under `root_field`.
    """

    kind = "graphql_offset"

    def __init__(
        self,
        client: GraphQLClient,
        query: str,
        root_field: str,
        page_size: int = 1000,
        variables: Optional[Dict[str, Any]] = None
    ):
        super().__init__(page_size)
        self.client = client
        self.query = query
        self.root_field = root_field
        self.variables = variables or {}

    def fetch_page(self, cursor: int) -> Page:
        variables = dict(self.variables, limit=self.page_size, offset=cursor)
        data = self.client.query(self.query, variables)
        rows = data.get(self.root_field) or []
        return self._offset_page(rows, cursor)


def graphql_literal(value: Any) -> str:
    """Render a Python value as an inline GraphQL argument."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, dict):
        inner = ', '.join(f"{key}: {graphql_literal(item)}" for key, item in value.items())
        return '{' + inner + '}'
    return json.dumps(str(value))


class GraphQLCursorSource(SourceAdapter):
    """
    GraphQL source paginated by `<cursor_field>_gt`, The Graph style.

    The first page omits the cursor condition; later pages ask for records
    after the last value of `cursor_field` seen.
    """

    kind = "graphql_cursor"

    def __init__(
        self,
        client: GraphQLClient,
        entity: str,
        selection: str,
        page_size: int = 1000,
        cursor_field: str = "id",
        where: Optional[Dict[str, Any]] = None,
        numeric_cursor: bool = False
    ):
        super().__init__(page_size)
        self.client = client
        self.entity = entity
        self.selection = selection
        self.cursor_field = cursor_field
        self.where = where or {}
        self.numeric_cursor = numeric_cursor

    def initial_cursor(self) -> Any:
        return None

    def build_query(self, cursor: Any) -> str:
        where = dict(self.where)
        if cursor is not None:
            where[f"{self.cursor_field}_gt"] = int(cursor) if self.numeric_cursor else str(cursor)

        arguments = [
            f"first: {self.page_size}",
            f"orderBy: {self.cursor_field}",
            "orderDirection: asc",
        ]
        if where:
            arguments.append(f"where: {graphql_literal(where)}")

        return f"{{ {self.entity}({', '.join(arguments)}) {{ {self.selection} }} }}"

    def fetch_page(self, cursor: Any) -> Page:
        data = self.client.query(self.build_query(cursor))
        rows = data.get(self.entity) or []
        if len(rows) < self.page_size:
            return rows, None
        return rows, rows[-1].get(self.cursor_field)

    def describe(self, cursor: Any) -> str:
        return f"{self.cursor_field}_gt={cursor if cursor is not None else 'start'}, first={self.page_size}"


class PostgresSource(SourceAdapter):
    """Direct SQL source paginated with LIMIT %s OFFSET %s."""

    kind = "postgres"

    def __init__(
        self,
        client: PostgresClient,
        sql: str,
        page_size: int = 5000,
        params: Sequence[Any] = ()
    ):
        super().__init__(page_size)
        self.client = client
        self.sql = sql.strip().rstrip(';')
        self.params = tuple(params)

    def fetch_page(self, cursor: int) -> Page:
        query = f"{self.sql} LIMIT %s OFFSET %s"
        rows = self.client.fetch_all(query, self.params + (self.page_size, cursor))
        return self._offset_page(rows, cursor)


class HyperSyncSource(SourceAdapter):
    """
    HyperSync source paginated by block number.

    The server decides how much of the range each response covers and
    reports `next_block`; the source is exhausted once `next_block` reaches
    `to_block` or stops advancing. Pages may be empty while the range still
    continues.
    """

    kind = "hypersync"

    def __init__(
        self,
        client: HyperSyncClient,
        from_block: int,
        to_block: int,
        field_selection: Dict[str, List[str]],
        record_section: str = "transactions",
        page_size: int = 10000,
        include_all_blocks: bool = False
    ):
        super().__init__(page_size)
        if to_block <= from_block:
            raise ValueError(f"Empty block range {from_block}-{to_block}")
        self.client = client
        self.from_block = from_block
        self.to_block = to_block
        self.field_selection = field_selection
        self.record_section = record_section
        self.include_all_blocks = include_all_blocks

    def initial_cursor(self) -> int:
        return self.from_block

    def build_query(self, cursor: int) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            'from_block': cursor,
            'to_block': self.to_block,
            'field_selection': self.field_selection,
            'max_num_transactions': self.page_size,
        }
        if self.record_section == 'transactions':
            body['transactions'] = [{}]
        if self.include_all_blocks:
            body['include_all_blocks'] = True
        return body

    def fetch_page(self, cursor: int) -> Page:
        response = self.client.query(self.build_query(cursor))

        data = response.get('data') or []
        batches = data if isinstance(data, list) else [data]
        rows: List[Dict[str, Any]] = []
        for batch in batches:
            rows.extend(batch.get(self.record_section) or [])

        next_block = response.get('next_block')
        if next_block is None or int(next_block) <= cursor or int(next_block) >= self.to_block:
            return rows, None
        return rows, int(next_block)

    def describe(self, cursor: Any) -> str:
        return f"from_block={cursor}, to_block={self.to_block}"
