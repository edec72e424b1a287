"""Tests for the Parquet writer, reader and cursor."""
import pyarrow.parquet as pq
import pytest

from indexer_benchmark.columnar import ColumnarReader, ColumnarWriter, arrow_schema, coerce_value
from indexer_benchmark.records import (
    BLOCK,
    BOOLEAN,
    INT32,
    INT64,
    PLACEHOLDER_MARKER,
    SWAP,
    TRANSFER,
    UTF8,
    get_schema,
)


class TestCoerceValue:
    def test_strings(self):
        assert coerce_value("abc", UTF8) == "abc"
        assert coerce_value(12, UTF8) == "12"
        with pytest.raises(ValueError):
            coerce_value(None, UTF8)

    def test_integers(self):
        assert coerce_value(5, INT64) == 5
        assert coerce_value("17", INT64) == 17
        assert coerce_value("-3", INT32) == -3
        with pytest.raises(ValueError):
            coerce_value("12a", INT64)
        with pytest.raises(ValueError):
            coerce_value(True, INT64)
        with pytest.raises(ValueError):
            coerce_value(None, INT64)

    def test_integer_range(self):
        with pytest.raises(ValueError):
            coerce_value(2 ** 31, INT32)
        with pytest.raises(ValueError):
            coerce_value(2 ** 63, INT64)

    def test_booleans(self):
        assert coerce_value(True, BOOLEAN) is True
        assert coerce_value("false", BOOLEAN) is False
        with pytest.raises(ValueError):
            coerce_value(1, BOOLEAN)


class TestWriterReader:
    def test_round_trip(self, parquet_path, transfer_records):
        with ColumnarWriter(TRANSFER, parquet_path) as writer:
            for record in transfer_records:
                assert writer.append_row(record)

        with ColumnarReader.open_file(parquet_path) as reader:
            assert reader.row_count == 3
            assert reader.field_names == TRANSFER.field_names
            rows = list(reader)

        assert rows == transfer_records
        assert isinstance(rows[0]["blockNumber"], int)

    def test_integer_strings_read_back_as_integers(self, parquet_path, transfer_records):
        record = dict(transfer_records[0], blockNumber="100")
        with ColumnarWriter(TRANSFER, parquet_path) as writer:
            writer.append_row(record)

        with ColumnarReader(parquet_path) as reader:
            assert list(reader)[0]["blockNumber"] == 100

    def test_empty_file_gets_placeholder(self, parquet_path):
        writer = ColumnarWriter.open(TRANSFER, parquet_path)
        writer.close()

        assert writer.wrote_placeholder
        with ColumnarReader(parquet_path) as reader:
            assert reader.row_count == 1
            row = reader.get_cursor().next()
        assert row["id"] == PLACEHOLDER_MARKER
        assert row["blockNumber"] == 0
        assert row["value"] == "0"
        assert row["from"] == ""
        assert TRANSFER.is_placeholder(row)

    def test_block_placeholder_uses_hash(self):
        row = BLOCK.placeholder()
        assert row == {"number": 0, "hash": PLACEHOLDER_MARKER, "parentHash": "", "timestamp": 0}

    def test_rejected_rows_are_skipped(self, parquet_path, transfer_records):
        bad_type = dict(transfer_records[0], blockNumber="not a number")
        missing = {k: v for k, v in transfer_records[1].items() if k != "to"}

        with ColumnarWriter(TRANSFER, parquet_path) as writer:
            assert not writer.append_row(bad_type)
            assert not writer.append_row(missing)
            assert writer.append_row(transfer_records[2])

        assert writer.rows_written == 1
        assert writer.rows_rejected == 2
        assert not writer.wrote_placeholder
        with ColumnarReader(parquet_path) as reader:
            assert [row["id"] for row in reader] == ["0x03-0"]

    def test_row_groups(self, parquet_path, transfer_records):
        with ColumnarWriter(TRANSFER, parquet_path, row_group_size=2) as writer:
            for i in range(5):
                writer.append_row(dict(transfer_records[0], id=f"t{i}", blockNumber=i))

        assert pq.ParquetFile(parquet_path).num_row_groups == 3
        with ColumnarReader(parquet_path) as reader:
            assert [row["blockNumber"] for row in reader] == [0, 1, 2, 3, 4]

    def test_reopening_truncates(self, parquet_path, transfer_records):
        with ColumnarWriter(TRANSFER, parquet_path) as writer:
            for record in transfer_records:
                writer.append_row(record)
        with ColumnarWriter(TRANSFER, parquet_path) as writer:
            writer.append_row(transfer_records[0])

        with ColumnarReader(parquet_path) as reader:
            assert reader.row_count == 1

    def test_append_after_close(self, parquet_path, transfer_records):
        writer = ColumnarWriter(TRANSFER, parquet_path)
        writer.close()
        assert writer.closed
        with pytest.raises(ValueError):
            writer.append_row(transfer_records[0])

    def test_cursor_end_of_stream(self, parquet_path, transfer_records):
        with ColumnarWriter(TRANSFER, parquet_path) as writer:
            writer.append_row(transfer_records[0])

        with ColumnarReader(parquet_path) as reader:
            cursor = reader.get_cursor()
            assert cursor.next()["id"] == "0x01-0"
            assert cursor.next() is None
            assert cursor.next() is None


class TestSchemas:
    def test_arrow_schema_types(self):
        schema = arrow_schema(SWAP)
        assert str(schema.field("pathLength").type) == "int32"
        assert str(schema.field("blockNumber").type) == "int64"
        assert str(schema.field("amountIn").type) == "string"

    def test_unknown_data_type(self):
        with pytest.raises(ValueError):
            get_schema("nfts")
