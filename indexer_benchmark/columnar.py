"""
Columnar storage for normalized records.

Records are appended row by row to a Parquet file with a fixed schema and
streamed back in insertion order through a forward-only cursor.
"""

import logging
import os
from typing import Any, Dict, Iterator, List, Optional

import pyarrow as pa
import pyarrow.parquet as pq

from .records import BOOLEAN, INT32, INT64, UTF8, RecordSchema

logger = logging.getLogger(__name__)

ARROW_TYPES = {
    UTF8: pa.string(),
    INT64: pa.int64(),
    INT32: pa.int32(),
    BOOLEAN: pa.bool_(),
}

_INT_BOUNDS = {
    INT64: (-2 ** 63, 2 ** 63 - 1),
    INT32: (-2 ** 31, 2 ** 31 - 1),
}


def arrow_schema(schema: RecordSchema) -> pa.Schema:
    """Build the Arrow schema for a record schema."""
    return pa.schema([
        pa.field(name, ARROW_TYPES[column_type], nullable=False)
        for name, column_type in schema.columns
    ])


def coerce_value(value: Any, column_type: str) -> Any:
    """
    Coerce one value to its column type.

    Raises:
        ValueError: If the value does not fit the column
    """
    if column_type == UTF8:
        if value is None:
            raise ValueError("null is not allowed")
        return value if isinstance(value, str) else str(value)

    if column_type == BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ('true', 'false'):
            return value.lower() == 'true'
        raise ValueError(f"not a boolean: {value!r}")

    if isinstance(value, bool) or value is None:
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().lstrip('-').isdigit():
        number = int(value.strip())
    else:
        raise ValueError(f"not an integer: {value!r}")

    low, high = _INT_BOUNDS[column_type]
    if not low <= number <= high:
        raise ValueError(f"{number} out of range for {column_type}")
    return number


class ColumnarWriter:
    """
    Append-only Parquet writer.

    Opening truncates any existing file at `path`. Rows are buffered and
    written in row groups of `row_group_size`. `close()` must be called for
    the file to be readable; when nothing was appended it writes a single
    placeholder row first.
    """

    def __init__(self, schema: RecordSchema, path: str, row_group_size: int = 10000):
        self.schema = schema
        self.path = path
        self.row_group_size = row_group_size
        self.rows_written = 0
        self.rows_rejected = 0
        self.wrote_placeholder = False
        self._buffer: List[Dict[str, Any]] = []
        self._arrow_schema = arrow_schema(schema)

        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        self._writer: Optional[pq.ParquetWriter] = pq.ParquetWriter(path, self._arrow_schema)
        logger.info(f"Opened {path} for {schema.name}")

    @classmethod
    def open(cls, schema: RecordSchema, path: str, row_group_size: int = 10000) -> "ColumnarWriter":
        return cls(schema, path, row_group_size=row_group_size)

    @property
    def closed(self) -> bool:
        return self._writer is None

    def append_row(self, record: Dict[str, Any]) -> bool:
        """
        Validate and buffer one row.

        Returns:
            True if the row was accepted, False if it was rejected
        """
        if self.closed:
            raise ValueError(f"Writer for {self.path} is closed")

        row: Dict[str, Any] = {}
        for name, column_type in self.schema.columns:
            if name not in record:
                return self._reject(f"missing column '{name}'", record)
            try:
                row[name] = coerce_value(record[name], column_type)
            except ValueError as e:
                return self._reject(f"column '{name}': {e}", record)

        self._buffer.append(row)
        self.rows_written += 1
        if len(self._buffer) >= self.row_group_size:
            self._flush()
        return True

    def _reject(self, reason: str, record: Dict[str, Any]) -> bool:
        self.rows_rejected += 1
        logger.warning(f"Skipping row for {self.path}, {reason}: {record}")
        return False

    def _flush(self):
        if not self._buffer:
            return
        table = pa.Table.from_pylist(self._buffer, schema=self._arrow_schema)
        self._writer.write_table(table)
        self._buffer = []

    def close(self):
        """Flush buffered rows and finalize the file."""
        if self.closed:
            return
        try:
            if self.rows_written == 0:
                logger.info(f"No rows written to {self.path}, adding placeholder row")
                self._buffer.append(self.schema.placeholder())
                self.wrote_placeholder = True
            self._flush()
        finally:
            self._writer.close()
            self._writer = None
        logger.info(f"Closed {self.path}: {self.rows_written} rows, {self.rows_rejected} rejected")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ColumnarCursor:
    """Forward-only cursor over a Parquet file's rows."""

    def __init__(self, parquet_file: pq.ParquetFile, batch_size: int = 10000):
        self._batches = parquet_file.iter_batches(batch_size=batch_size)
        self._rows: List[Dict[str, Any]] = []
        self._index = 0

    def next(self) -> Optional[Dict[str, Any]]:
        """Return the next row, or None at end of stream."""
        while self._index >= len(self._rows):
            batch = next(self._batches, None)
            if batch is None:
                return None
            self._rows = batch.to_pylist()
            self._index = 0
        row = self._rows[self._index]
        self._index += 1
        return row


class ColumnarReader:
    """Reader for files produced by ColumnarWriter."""

    def __init__(self, path: str):
        self.path = path
        self._file = pq.ParquetFile(path)

    @classmethod
    def open_file(cls, path: str) -> "ColumnarReader":
        return cls(path)

    @property
    def row_count(self) -> int:
        return self._file.metadata.num_rows

    @property
    def field_names(self) -> List[str]:
        return list(self._file.schema_arrow.names)

    def get_cursor(self) -> ColumnarCursor:
        return ColumnarCursor(self._file)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        cursor = self.get_cursor()
        row = cursor.next()
        while row is not None:
            yield row
            row = cursor.next()

    def close(self):
        self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
