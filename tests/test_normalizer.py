"""Tests for per-platform field mapping and value conversion."""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from indexer_benchmark.normalizer import (
    FIELD_ALIASES,
    NormalizationError,
    RecordNormalizer,
    bytes_to_hex,
    lookup,
    normalize_record,
    normalize_records,
    to_decimal_string,
    to_int,
)


class TestValueConversion:
    def test_bytes_to_hex(self):
        assert bytes_to_hex(b"\xab\xcd") == "0xabcd"
        assert bytes_to_hex(memoryview(b"\x01\x02")) == "0x0102"
        assert bytes_to_hex("0xABCD") == "0xABCD"

    def test_hex_to_decimal(self):
        assert to_decimal_string("0x10") == "16"
        assert to_decimal_string("0X5208") == "21000"

    def test_scientific_notation(self):
        assert to_decimal_string("1.23e20") == "123000000000000000000"
        assert to_decimal_string("1E+3") == "1000"

    def test_fractional_values_kept_exact(self):
        assert to_decimal_string("1.50") == "1.5"
        assert to_decimal_string(Decimal("0.00000001")) == "0.00000001"

    def test_long_fractional_values_not_rounded(self):
        assert to_decimal_string("123456712345678.9012345678901234") == "123456712345678.9012345678901234"
        assert to_decimal_string("0.100000000000000000000000000000000000001000") == (
            "0.100000000000000000000000000000000000001"
        )

    def test_large_integers_exact(self):
        big = 2 ** 200
        assert to_decimal_string(big) == str(big)
        assert to_decimal_string(str(big)) == str(big)

    def test_not_a_number(self):
        with pytest.raises(NormalizationError):
            to_decimal_string("abc")
        with pytest.raises(NormalizationError):
            to_decimal_string("0xZZ")
        with pytest.raises(NormalizationError):
            to_decimal_string(True)

    def test_to_int(self):
        assert to_int(5) == 5
        assert to_int("42") == 42
        assert to_int("0x10") == 16
        assert to_int("1:22000000") == 22000000
        assert to_int("2024-01-01T00:00:00Z") == 1704067200
        assert to_int(datetime(2024, 1, 1, tzinfo=timezone.utc)) == 1704067200

    def test_to_int_rejects_text(self):
        with pytest.raises(NormalizationError):
            to_int("not a block")

    def test_lookup_dotted_path(self):
        raw = {"account": {"id": "0xabc"}, "id": "snap"}
        assert lookup(raw, "account.id") == "0xabc"
        assert lookup(raw, "account.missing") is None
        assert lookup(raw, "id.nested") is None


class TestTransfers:
    def test_sentio_fields(self):
        raw = {
            "id": "0xabc-3",
            "__genBlockChain__": "1:22000000",
            "from__": "0xAA",
            "to__": "0xBB",
            "value": "1.23e20",
        }
        record = normalize_record("sentio", "transfers", raw)
        assert record == {
            "id": "0xabc-3",
            "blockNumber": 22000000,
            "transactionHash": "0xabc",
            "from": "0xAA",
            "to": "0xBB",
            "value": "123000000000000000000",
        }

    def test_postgres_bytes_and_snake_case(self):
        raw = {
            "id": "t1",
            "block_number": 7,
            "transaction_hash": b"\xab\xcd",
            "from": memoryview(b"\x01"),
            "to": b"\x02",
            "value": Decimal("10"),
        }
        record = normalize_record("ponder", "transfers", raw)
        assert record["transactionHash"] == "0xabcd"
        assert record["from"] == "0x01"
        assert record["to"] == "0x02"
        assert record["value"] == "10"
        assert record["blockNumber"] == 7

    def test_missing_required_field_skips(self):
        normalizer = RecordNormalizer("envio", "transfers")
        assert normalizer.normalize({"id": "t1", "to": "0xbb", "value": "1"}) is None
        assert normalizer.records_skipped == 1

    def test_missing_optional_field_defaults(self):
        normalizer = RecordNormalizer("envio", "transfers")
        record = normalizer.normalize({"id": "t1", "from": "0xaa", "to": "0xbb", "value": "5"})
        assert record["blockNumber"] == 0
        assert normalizer.defaulted_fields["blockNumber"] == 1
        assert normalizer.records_skipped == 0

    def test_unreadable_number_defaults_to_zero(self):
        normalizer = RecordNormalizer("subgraph", "transfers")
        record = normalizer.normalize({"id": "t1", "from": "0xaa", "to": "0xbb", "value": "n/a"})
        assert record["value"] == "0"
        assert normalizer.defaulted_fields["value"] == 1

    def test_non_dict_record_skipped(self):
        normalizer = RecordNormalizer("subgraph", "transfers")
        assert normalizer.normalize(["not", "a", "record"]) is None
        assert normalizer.records_skipped == 1

    def test_normalize_records_drops_skipped(self):
        raws = [
            {"id": "t1", "from": "0xaa", "to": "0xbb", "value": "1"},
            {"id": "t2"},
        ]
        records = normalize_records("subsquid", "transfers", raws)
        assert [r["id"] for r in records] == ["t1"]


class TestAccounts:
    def test_envio_snapshot(self):
        raw = {
            "id": "snapshot-1",
            "account": {"id": "0xAcc"},
            "timestampMilli": "1700000000000",
            "balance": "5",
            "point": "2.5",
        }
        record = normalize_record("envio", "accounts", raw)
        assert record == {"id": "0xAcc", "balance": "5", "point": "2.5", "timestamp": 1700000000000}

    def test_subgraph_snapshot(self):
        raw = {"id": "s", "account": {"id": "0xacc"}, "timestampMilli": 1, "balance": "0", "point": "0"}
        record = normalize_record("subgraph", "accounts", raw)
        assert record["id"] == "0xacc"
        assert record["timestamp"] == 1


class TestGas:
    def test_hypersync_transaction(self):
        raw = {
            "block_number": "0x10",
            "hash": "0xtx",
            "from": "0xa",
            "to": "0xb",
            "gas_used": "0x5208",
            "gas_price": "0x3b9aca00",
        }
        record = normalize_record("envio", "gas", raw)
        assert record["id"] == "0xtx"
        assert record["transactionHash"] == "0xtx"
        assert record["blockNumber"] == 16
        assert record["sender"] == "0xa"
        assert record["recipient"] == "0xb"
        assert record["gasUsed"] == "21000"
        assert record["effectiveGasPrice"] == "1000000000"
        assert record["gasValue"] == "21000000000000"

    def test_reported_gas_value_kept(self):
        raw = {"id": "g1", "transactionHash": "0xtx", "from__": "0xa", "to__": "0xb", "gasValue": "99"}
        record = normalize_record("sentio", "gas", raw)
        assert record["gasValue"] == "99"
        assert record["sender"] == "0xa"
        assert record["gasUsed"] == "0"

    def test_fractional_price_multiplied_exactly(self):
        raw = {"id": "g1", "transactionHash": "0xtx", "gasUsed": "21000", "gasPrice": "12.5"}
        record = normalize_record("sentio", "gas", raw)
        assert record["effectiveGasPrice"] == "12.5"
        assert record["gasValue"] == "262500"

    def test_gas_value_beyond_default_precision(self):
        raw = {"hash": "0xtx", "gas_used": str(10 ** 20 + 1), "gas_price": str(10 ** 20 + 3)}
        assert normalize_record("envio", "gas", raw)["gasValue"] == str((10 ** 20 + 1) * (10 ** 20 + 3))

    def test_non_numeric_price_skips_record(self):
        normalizer = RecordNormalizer("sentio", "gas")
        assert normalizer.normalize({"transactionHash": "0xtx", "gasUsed": "1", "gasPrice": "n/a"}) is None
        assert normalizer.records_skipped == 1


class TestSwaps:
    def test_subsquid_token_pair(self):
        raw = {
            "id": "s1",
            "blockNumber": 100,
            "transactionHash": "0xt",
            "sender": "0xS",
            "amountIn": "10",
            "amountOut": "9",
            "tokenIn": "0xA",
            "tokenOut": "0xB",
        }
        record = normalize_record("subsquid", "swaps", raw)
        assert record["from"] == "0xS"
        assert record["amountOutMin"] == "9"
        assert record["path"] == "0xA,0xB"
        assert record["pathLength"] == 2
        assert record["deadline"] == "0"

    def test_list_path(self):
        raw = {"id": "s1", "txHash": "0xt", "path": ["0xA", "0xB", "0xC"]}
        record = normalize_record("envio", "swaps", raw)
        assert record["transactionHash"] == "0xt"
        assert record["path"] == "0xA,0xB,0xC"
        assert record["pathLength"] == 3

    def test_string_path_length(self):
        raw = {"id": "s1", "transactionHash": "0xt", "path": "0xA,0xB"}
        assert normalize_record("subgraph", "swaps", raw)["pathLength"] == 2

    def test_id_from_trace_address(self):
        raw = {"transactionHash": "0xt", "traceAddress": [0, 1]}
        assert normalize_record("sentio", "swaps", raw)["id"] == "0xt-0-1"

    def test_id_without_trace_address(self):
        raw = {"transactionHash": "0xt"}
        assert normalize_record("sentio", "swaps", raw)["id"] == "0xt-0"


class TestAliases:
    def test_every_platform_and_type_mapped(self):
        for platform in ("sentio", "envio", "ponder", "subsquid", "subgraph"):
            for data_type in ("transfers", "accounts", "blocks", "gas", "swaps"):
                assert (platform, data_type) in FIELD_ALIASES

    def test_unknown_platform(self):
        with pytest.raises(ValueError):
            RecordNormalizer("nowhere", "transfers")
