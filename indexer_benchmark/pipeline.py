"""
Extraction Pipeline

Runs one platform's extraction for one data type:
1. Fetch pages from a source adapter until it reports end of data
2. Normalize each native record into the common shape
3. Append normalized rows to the Parquet output file

A failed page ends the run early; rows already appended stay readable
because the writer is always closed.
"""

import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field, asdict

import psycopg2
import requests

from .columnar import ColumnarWriter
from .http_clients import GraphQLError
from .normalizer import RecordNormalizer
from .records import get_schema
from .sources import SourceAdapter

logger = logging.getLogger(__name__)

# Failures that end fetching without aborting the run
PAGE_ERRORS = (requests.exceptions.RequestException, GraphQLError, psycopg2.Error, ValueError)


@dataclass
class ExtractionStats:
    """Statistics from an extraction run."""
    platform: str = ""
    data_type: str = ""
    output_path: str = ""
    started_at: str = ""
    completed_at: str = ""
    pages_fetched: int = 0
    records_fetched: int = 0
    records_written: int = 0
    records_skipped: int = 0
    rows_rejected: int = 0
    defaulted_fields: Dict[str, int] = field(default_factory=dict)
    wrote_placeholder: bool = False
    reached_end: bool = False
    errors: List[str] = field(default_factory=list)
    success: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class LatestRecordReducer:
    """
    Keeps only the newest record per key.

    Used where a platform exposes every balance snapshot and the dataset
    wants one row per account.
    """

    def __init__(self, key_field: str = "id", order_field: str = "timestamp"):
        self.key_field = key_field
        self.order_field = order_field
        self._latest: Dict[Any, Dict[str, Any]] = {}

    def add(self, record: Dict[str, Any]):
        key = record.get(self.key_field)
        current = self._latest.get(key)
        if current is None or record.get(self.order_field, 0) > current.get(self.order_field, 0):
            self._latest[key] = record

    def records(self) -> List[Dict[str, Any]]:
        return [self._latest[key] for key in sorted(self._latest, key=str)]

    def __len__(self):
        return len(self._latest)


class ExtractionPipeline:
    """
    Generic paginated source -> normalizer -> Parquet sink.
    """

    def __init__(
        self,
        source: SourceAdapter,
        platform: str,
        data_type: str,
        output_path: str,
        max_pages: int = 10000,
        request_delay: float = 0.5,
        reducer: Optional[LatestRecordReducer] = None
    ):
        """
        Initialize the pipeline.

        Args:
            source: Paginated source adapter
            platform: Platform name, selects the field mapping
            data_type: Record type being extracted
            output_path: Parquet file to create (truncated if present)
            max_pages: Upper bound on pages fetched in one run
            request_delay: Fixed sleep between pages in seconds
            reducer: Optional reducer keeping the latest record per key
        """
        self.source = source
        self.platform = platform
        self.data_type = data_type
        self.output_path = output_path
        self.max_pages = max_pages
        self.request_delay = request_delay
        self.reducer = reducer
        self.schema = get_schema(data_type)
        self.normalizer = RecordNormalizer(platform, data_type)

    def run(self) -> ExtractionStats:
        """
        Execute the extraction.

        Returns:
            ExtractionStats with results of the run
        """
        stats = ExtractionStats(
            platform=self.platform,
            data_type=self.data_type,
            output_path=self.output_path,
            started_at=datetime.utcnow().isoformat()
        )

        # Not being able to create the output file is fatal
        writer = ColumnarWriter(self.schema, self.output_path)

        try:
            cursor = self.source.initial_cursor()

            for page_num in range(1, self.max_pages + 1):
                logger.info(f"[{self.platform}] Fetching page {page_num} ({self.source.describe(cursor)})")

                try:
                    raws, next_cursor = self.source.fetch_page(cursor)
                except PAGE_ERRORS as e:
                    error_msg = f"Page {page_num} failed: {e}"
                    logger.error(f"[{self.platform}] {error_msg}")
                    stats.errors.append(error_msg)
                    break

                stats.pages_fetched += 1
                stats.records_fetched += len(raws)

                for raw in raws:
                    record = self.normalizer.normalize(raw)
                    if record is None:
                        continue
                    if self.reducer is not None:
                        self.reducer.add(record)
                    elif writer.append_row(record):
                        stats.records_written += 1

                logger.info(
                    f"[{self.platform}] Received {len(raws)} records, "
                    f"total fetched: {stats.records_fetched}"
                )

                if next_cursor is None:
                    logger.info(f"[{self.platform}] Reached end of data")
                    stats.reached_end = True
                    break

                cursor = next_cursor

                # Rate limiting
                if self.request_delay > 0:
                    time.sleep(self.request_delay)
            else:
                logger.warning(f"[{self.platform}] Stopped after max pages ({self.max_pages})")

            stats.success = not stats.errors

        finally:
            if self.reducer is not None:
                logger.info(f"[{self.platform}] Writing {len(self.reducer)} reduced records")
                for record in self.reducer.records():
                    if writer.append_row(record):
                        stats.records_written += 1
            writer.close()

            stats.rows_rejected = writer.rows_rejected
            stats.wrote_placeholder = writer.wrote_placeholder
            stats.records_skipped = self.normalizer.records_skipped
            stats.defaulted_fields = dict(self.normalizer.defaulted_fields)
            stats.completed_at = datetime.utcnow().isoformat()

        if stats.defaulted_fields:
            logger.warning(f"[{self.platform}] Fields defaulted because they were missing: {stats.defaulted_fields}")

        logger.info(
            f"[{self.platform}] Extraction finished: {stats.records_written} rows written, "
            f"{stats.records_skipped} skipped, {stats.rows_rejected} rejected"
        )
        return stats
