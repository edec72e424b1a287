"""
Benchmark case registry.

Each case fixes a dataset (an indexed contract or chain slice) and, per data
type, how every platform serving it is queried. Endpoints listed here are
the public defaults; environment overrides take precedence (see config.py).
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .config import BenchmarkConfig
from .http_clients import GraphQLClient, HyperSyncClient, SentioSqlClient
from .pipeline import LatestRecordReducer
from .postgres_client import PostgresClient
from .sources import (
    GraphQLCursorSource,
    GraphQLOffsetSource,
    HyperSyncSource,
    PostgresSource,
    SentioSqlSource,
    SourceAdapter,
)

logger = logging.getLogger(__name__)

SENTIO_SQL = "sentio_sql"
GRAPHQL_OFFSET = "graphql_offset"
GRAPHQL_CURSOR = "graphql_cursor"
POSTGRES = "postgres"
HYPERSYNC = "hypersync"

HYPERSYNC_ENDPOINT = "https://eth.hypersync.xyz"


@dataclass
class PlatformSource:
    """How one platform is queried for one data type of a case."""
    kind: str
    query: str = ""
    endpoint: str = ""
    root_field: str = ""
    page_size: int = 1000

    # Sentio project name under the analytics base URL
    sentio_project: str = ""

    # Cursor pagination
    cursor_field: str = "id"
    numeric_cursor: bool = False
    where: Dict[str, Any] = field(default_factory=dict)

    # Direct SQL: which configured database ("ponder" or "subsquid")
    database: str = ""

    # HyperSync
    block_range: Optional[Tuple[int, int]] = None
    field_selection: Dict[str, List[str]] = field(default_factory=dict)
    record_section: str = "transactions"

    # Keep only the newest record per id, ordered by this field
    latest_by: Optional[str] = None


@dataclass
class CaseDefinition:
    """A benchmark case: one dataset, served by several platforms."""
    name: str
    title: str
    block_range: Optional[Tuple[int, int]]
    sources: Dict[str, Dict[str, PlatformSource]]

    @property
    def data_types(self) -> List[str]:
        return list(self.sources)

    def platforms(self, data_type: str) -> List[str]:
        return list(self.sources.get(data_type, {}))


_TRANSFER_FIELDS = "id blockNumber transactionHash from to value"

CASE_1 = CaseDefinition(
    name="case_1",
    title="LBTC transfer events only",
    block_range=(0, 22281000),
    sources={
        'transfers': {
            'sentio': PlatformSource(
                kind=SENTIO_SQL,
                sentio_project="case_1_lbtc_event_only",
                query="select * from Transfer order by id",
                page_size=5000,
            ),
            'envio': PlatformSource(
                kind=GRAPHQL_OFFSET,
                endpoint="https://indexer.dev.hyperindex.xyz/6c63ec1/v1/graphql",
                root_field="TransparentUpgradeableProxy_Transfer",
                query="""
query Transfers($limit: Int!, $offset: Int!) {
  TransparentUpgradeableProxy_Transfer(limit: $limit, offset: $offset, order_by: {id: asc}, where: {blockNumber: {_gte: 0, _lte: 22281000}}) {
    id blockNumber transactionHash from to value
  }
}""",
            ),
            'ponder': PlatformSource(
                kind=POSTGRES,
                database="ponder",
                page_size=5000,
                query="""
SELECT id, block_number AS "blockNumber", transaction_hash AS "transactionHash", "from", "to", value
FROM {schema}.lbtc_transfer
WHERE block_number BETWEEN 0 AND 22281000
ORDER BY block_number, id""",
            ),
            'subsquid': PlatformSource(
                kind=POSTGRES,
                database="subsquid",
                page_size=5000,
                query="""
SELECT id, block_number, transaction_hash, "from", "to", value::text AS value
FROM transfer
WHERE block_number BETWEEN 0 AND 22281000
ORDER BY block_number, id""",
            ),
            'subgraph': PlatformSource(
                kind=GRAPHQL_CURSOR,
                endpoint="https://api.studio.thegraph.com/query/108520/case_1_lbtc_event_only/version/latest",
                root_field="transfers",
                query=_TRANSFER_FIELDS,
                where={'blockNumber_gte': 0, 'blockNumber_lte': 22281000},
            ),
        },
    },
)

CASE_2 = CaseDefinition(
    name="case_2",
    title="LBTC transfers with balances and points",
    block_range=None,
    sources={
        'transfers': {
            'sentio': PlatformSource(
                kind=SENTIO_SQL,
                sentio_project="case_2_lbtc_full",
                query="select * from Transfer order by id",
                page_size=5000,
            ),
            'envio': PlatformSource(
                kind=GRAPHQL_OFFSET,
                endpoint="https://indexer.dev.hyperindex.xyz/f11543e/v1/graphql",
                root_field="Transfer",
                query="""
query Transfers($limit: Int!, $offset: Int!) {
  Transfer(limit: $limit, offset: $offset, order_by: {id: asc}) {
    id blockNumber transactionHash from to value
  }
}""",
            ),
            'ponder': PlatformSource(
                kind=POSTGRES,
                database="ponder",
                page_size=5000,
                query="""
SELECT id, block_number, transaction_hash, "from", "to", value
FROM {schema}.lbtc_transfer
ORDER BY block_number, id""",
            ),
            'subsquid': PlatformSource(
                kind=POSTGRES,
                database="subsquid",
                page_size=5000,
                query="""
SELECT id, block_number, transaction_hash, "from", "to", value::text AS value
FROM "transfer"
ORDER BY id""",
            ),
            'subgraph': PlatformSource(
                kind=GRAPHQL_CURSOR,
                endpoint="https://api.studio.thegraph.com/query/108520/case_2_lbtc_full/version/latest",
                root_field="transfers",
                query=_TRANSFER_FIELDS,
            ),
        },
        'accounts': {
            'sentio': PlatformSource(
                kind=SENTIO_SQL,
                sentio_project="case_2_lbtc_full",
                page_size=5000,
                query="""
WITH LatestSnapshots AS (
  SELECT id AS account_id, MAX(timestampMilli) AS latest_timestamp
  FROM AccountSnapshot
  GROUP BY id
),
LatestPointUpdates AS (
  SELECT account, points, newTimestampMilli,
    ROW_NUMBER() OVER (PARTITION BY account ORDER BY newTimestampMilli DESC) AS rn
  FROM point_update
)
SELECT
  a.id,
  a.lbtcBalance * 100000000 AS balance,
  a.timestampMilli AS timestamp,
  COALESCE(p.points * 100000000, 0) AS point
FROM AccountSnapshot a
INNER JOIN LatestSnapshots l ON a.id = l.account_id AND a.timestampMilli = l.latest_timestamp
LEFT JOIN LatestPointUpdates p ON a.id = p.account AND p.rn = 1
ORDER BY a.id""",
            ),
            'envio': PlatformSource(
                kind=GRAPHQL_OFFSET,
                endpoint="https://indexer.dev.hyperindex.xyz/f11543e/v1/graphql",
                root_field="Snapshot",
                query="""
query Snapshots($limit: Int!, $offset: Int!) {
  Snapshot(limit: $limit, offset: $offset, order_by: {id: asc}) {
    id account { id } timestampMilli balance point
  }
}""",
                latest_by="timestamp",
            ),
            'ponder': PlatformSource(
                kind=POSTGRES,
                database="ponder",
                page_size=5000,
                query="""
WITH latest_snapshots AS (
  SELECT DISTINCT ON (account_id) account_id, point, timestamp
  FROM {schema}.snapshot
  ORDER BY account_id, timestamp DESC
)
SELECT a.id, a.balance, s.timestamp, s.point
FROM {schema}.accounts a
LEFT JOIN latest_snapshots s ON a.id = s.account_id
ORDER BY a.id""",
            ),
            'subsquid': PlatformSource(
                kind=POSTGRES,
                database="subsquid",
                page_size=5000,
                query="""
WITH latest_snapshots AS (
  SELECT DISTINCT ON (account_id)
    account_id AS id, balance::text AS balance, point::text AS point, timestamp
  FROM "snapshot"
  ORDER BY account_id, timestamp DESC
)
SELECT * FROM latest_snapshots
ORDER BY id""",
            ),
            'subgraph': PlatformSource(
                kind=GRAPHQL_CURSOR,
                endpoint="https://api.studio.thegraph.com/query/108520/case_2_lbtc_full/version/latest",
                root_field="snapshots",
                query="id account { id } balance point timestampMilli",
                latest_by="timestamp",
            ),
        },
    },
)

CASE_3 = CaseDefinition(
    name="case_3",
    title="Ethereum blocks",
    block_range=(0, 100000),
    sources={
        'blocks': {
            'sentio': PlatformSource(
                kind=SENTIO_SQL,
                sentio_project="case_3_ethereum_block",
                page_size=5000,
                query="""
SELECT number, hash, parentHash, timestamp
FROM `Block`
WHERE number >= 0 AND number <= 100000
ORDER BY number ASC""",
            ),
            'envio': PlatformSource(
                kind=HYPERSYNC,
                endpoint=HYPERSYNC_ENDPOINT,
                block_range=(0, 100000),
                field_selection={'block': ['number', 'hash', 'parent_hash', 'timestamp']},
                record_section="blocks",
                page_size=10000,
            ),
            'ponder': PlatformSource(
                kind=POSTGRES,
                database="ponder",
                page_size=5000,
                query="""
SELECT number, hash, parent_hash AS "parentHash", timestamp
FROM {schema}.block
WHERE number >= 0 AND number <= 100000
ORDER BY number ASC""",
            ),
            'subsquid': PlatformSource(
                kind=POSTGRES,
                database="subsquid",
                page_size=5000,
                query="""
SELECT number, hash, parent_hash AS "parentHash", timestamp
FROM block
WHERE number >= 0 AND number <= 100000
ORDER BY number ASC""",
            ),
            'subgraph': PlatformSource(
                kind=GRAPHQL_CURSOR,
                endpoint="https://api.studio.thegraph.com/query/108520/case_3_ethereum_block/version/latest",
                root_field="blocks",
                query="number hash parentHash timestamp",
                cursor_field="number",
                numeric_cursor=True,
                where={'number_gte': 0, 'number_lte': 100000},
            ),
        },
    },
)

CASE_4 = CaseDefinition(
    name="case_4",
    title="Gas spent per transaction",
    block_range=(22280000, 22290000),
    sources={
        'gas': {
            'sentio': PlatformSource(
                kind=SENTIO_SQL,
                sentio_project="case_4_on_transaction",
                page_size=1000,
                query="""
SELECT id, blockNumber, transactionHash, from__ AS sender, to__ AS recipient, gasValue
FROM GasSpent
WHERE blockNumber >= 22280000 AND blockNumber <= 22290000
ORDER BY blockNumber ASC, id ASC""",
            ),
            'envio': PlatformSource(
                kind=HYPERSYNC,
                endpoint=HYPERSYNC_ENDPOINT,
                block_range=(22280000, 22290000),
                field_selection={
                    'transaction': [
                        'block_number', 'hash', 'from', 'to',
                        'gas_used', 'gas_price', 'effective_gas_price',
                    ],
                },
                record_section="transactions",
                page_size=10000,
            ),
            'ponder': PlatformSource(
                kind=POSTGRES,
                database="ponder",
                page_size=1000,
                query="""
SELECT * FROM {schema}.gas_spent
WHERE "blockNumber" >= 22280000 AND "blockNumber" <= 22290000
ORDER BY "blockNumber" ASC, id ASC""",
            ),
            'subsquid': PlatformSource(
                kind=GRAPHQL_OFFSET,
                endpoint="https://pine-quench.squids.live/case-4-on-transaction@v1/api/graphql",
                root_field="gasSpents",
                query="""
query GasRecords($limit: Int!, $offset: Int!) {
  gasSpents(limit: $limit, offset: $offset, orderBy: [blockNumber_ASC, id_ASC], where: {blockNumber_gte: 22280000, blockNumber_lte: 22290000}) {
    id blockNumber transactionHash from to gasValue gasUsed gasPrice effectiveGasPrice
  }
}""",
            ),
        },
    },
)

CASE_5 = CaseDefinition(
    name="case_5",
    title="Uniswap V2 swaps at trace level",
    block_range=(22200000, 22290000),
    sources={
        'swaps': {
            'sentio': PlatformSource(
                kind=SENTIO_SQL,
                sentio_project="case_5_on_trace",
                page_size=1000,
                query="""
SELECT * FROM `Swap`
WHERE blockNumber >= 22200000 AND blockNumber <= 22290000
ORDER BY transactionHash, id""",
            ),
            'envio': PlatformSource(
                kind=GRAPHQL_OFFSET,
                endpoint="https://indexer.dev.hyperindex.xyz/0aa1b1/v1/graphql",
                root_field="SwapEvent",
                query="""
query SwapEvents($limit: Int!, $offset: Int!) {
  SwapEvent(limit: $limit, offset: $offset, order_by: [{blockNumber: asc}, {id: asc}]) {
    id blockNumber txHash from to amountIn amountOutMin deadline path pathLength
  }
}""",
            ),
            'subsquid': PlatformSource(
                kind=GRAPHQL_OFFSET,
                endpoint="https://pine-quench.squids.live/case-5-on-trace@v1/api/graphql",
                root_field="swapEvents",
                query="""
query SwapEvents($limit: Int!, $offset: Int!) {
  swapEvents(limit: $limit, offset: $offset, orderBy: [blockNumber_ASC, id_ASC]) {
    id blockNumber transactionHash sender amountIn amountOut tokenIn tokenOut
  }
}""",
            ),
            'subgraph': PlatformSource(
                kind=GRAPHQL_CURSOR,
                endpoint="https://api.studio.thegraph.com/query/108520/case_5_on_trace/version/latest",
                root_field="swaps",
                query="id blockNumber transactionHash from to amountIn amountOutMin deadline path pathLength",
            ),
        },
    },
)

CASES: Dict[str, CaseDefinition] = {
    case.name: case for case in (CASE_1, CASE_2, CASE_3, CASE_4, CASE_5)
}


def get_case(case_name: str) -> CaseDefinition:
    """Look up a case by name ("case_1" or just "1")."""
    name = case_name if case_name.startswith('case_') else f"case_{case_name}"
    try:
        return CASES[name]
    except KeyError:
        raise ValueError(f"Unknown case '{case_name}', expected one of {sorted(CASES)}") from None


def get_platform_source(case: CaseDefinition, platform: str, data_type: str) -> PlatformSource:
    entries = case.sources.get(data_type)
    if entries is None:
        raise ValueError(f"{case.name} has no '{data_type}' data (has {case.data_types})")
    if platform not in entries:
        raise ValueError(f"{case.name} {data_type} is not served by '{platform}' (served by {list(entries)})")
    return entries[platform]


def output_path(config: BenchmarkConfig, case_name: str, platform: str, data_type: str) -> str:
    """Parquet path for one platform's dataset: <data_dir>/<case>/<platform>-<case>-<type>.parquet"""
    return os.path.join(
        config.case_data_dir(case_name),
        f"{platform}-{case_name}-{data_type}.parquet"
    )


def build_client(config: BenchmarkConfig, case: CaseDefinition, platform: str, entry: PlatformSource):
    """
    Create the client an entry is queried through.

    Raises:
        ValueError: If the credential or URL the client needs is not configured
    """
    if entry.kind == SENTIO_SQL:
        url = f"{config.sentio_base_url.rstrip('/')}/{entry.sentio_project}/sql/execute"
        return SentioSqlClient(
            base_url=url,
            api_key=config.sentio_api_key,
            timeout=config.request_timeout,
            max_retries=config.max_retries
        )

    if entry.kind in (GRAPHQL_OFFSET, GRAPHQL_CURSOR):
        endpoint = config.endpoint_for(platform, case.name, default=entry.endpoint)
        if not endpoint:
            raise ValueError(f"No GraphQL endpoint configured for {platform} {case.name}")
        return GraphQLClient(
            base_url=endpoint,
            timeout=config.request_timeout,
            max_retries=config.max_retries
        )

    if entry.kind == HYPERSYNC:
        return HyperSyncClient(
            base_url=config.endpoint_for('hypersync', case.name, default=entry.endpoint),
            api_token=config.hypersync_api_token,
            timeout=config.request_timeout,
            max_retries=config.max_retries
        )

    if entry.kind == POSTGRES:
        if entry.database == 'ponder':
            dsn, schema = config.ponder_database_url, config.ponder_schema
        else:
            dsn, schema = config.subsquid_database_url, 'public'
        if not dsn:
            raise ValueError(f"No database URL configured for {entry.database} (set {entry.database.upper()}_DATABASE_URL)")
        return PostgresClient(
            dsn=dsn,
            schema=schema,
            connect_timeout=config.connect_timeout,
            statement_timeout_ms=config.statement_timeout_ms
        )

    raise ValueError(f"Unknown source kind '{entry.kind}'")


def build_source(
    config: BenchmarkConfig,
    case: CaseDefinition,
    platform: str,
    data_type: str
) -> SourceAdapter:
    """Create the paginated source for one platform's dataset."""
    entry = get_platform_source(case, platform, data_type)
    client = build_client(config, case, platform, entry)
    page_size = config.page_size or entry.page_size

    if entry.kind == SENTIO_SQL:
        return SentioSqlSource(client, entry.query, page_size=page_size)
    if entry.kind == GRAPHQL_OFFSET:
        return GraphQLOffsetSource(client, entry.query, entry.root_field, page_size=page_size)
    if entry.kind == GRAPHQL_CURSOR:
        return GraphQLCursorSource(
            client,
            entry.root_field,
            entry.query,
            page_size=page_size,
            cursor_field=entry.cursor_field,
            where=entry.where,
            numeric_cursor=entry.numeric_cursor
        )
    if entry.kind == HYPERSYNC:
        from_block, to_block = entry.block_range
        # HyperSync's to_block is exclusive
        return HyperSyncSource(
            client,
            from_block=from_block,
            to_block=to_block + 1,
            field_selection=entry.field_selection,
            record_section=entry.record_section,
            page_size=page_size,
            include_all_blocks=entry.record_section == 'blocks'
        )
    return PostgresSource(client, entry.query, page_size=page_size)


def build_reducer(case: CaseDefinition, platform: str, data_type: str) -> Optional[LatestRecordReducer]:
    entry = get_platform_source(case, platform, data_type)
    if entry.latest_by:
        return LatestRecordReducer(key_field='id', order_field=entry.latest_by)
    return None
