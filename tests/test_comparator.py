"""Tests for fingerprinting, Jaccard similarity and field agreement."""
import json
from decimal import Decimal

import pytest

from indexer_benchmark.columnar import ColumnarWriter
from indexer_benchmark.comparator import (
    MAX_EXAMPLES,
    compare_datasets,
    compare_pair,
    get_comparison_spec,
    jaccard,
    load_dataset,
    pair_key,
    trace_index,
)
from indexer_benchmark.records import TRANSFER
from indexer_benchmark.values import canonical_number, canonical_path, normalize_hex, normalize_timestamp

TRANSFERS = get_comparison_spec("transfers")
BLOCKS = get_comparison_spec("blocks")
SWAPS = get_comparison_spec("swaps")


def tx(hash_, from_="0xaa", to="0xbb", value="100", block=1):
    return {"id": f"{hash_}-0", "blockNumber": block, "transactionHash": hash_, "from": from_, "to": to, "value": value}


class TestValues:
    def test_canonical_number(self):
        assert canonical_number("123000000000000000000") == canonical_number("1.23e20")
        assert canonical_number("0x10") == 16
        assert canonical_number("1.50") == Decimal("1.5")
        assert canonical_number("0.12345678901234567890123456789012300") == Decimal("0.123456789012345678901234567890123")
        assert canonical_number(None) == 0
        assert canonical_number("garbage") == 0

    def test_normalize_hex(self):
        assert normalize_hex("0xABCdef") == "abcdef"
        assert normalize_hex("abc") == "abc"
        assert normalize_hex(None) == ""

    def test_normalize_timestamp(self):
        assert normalize_timestamp(1700000000000) == 1700000000
        assert normalize_timestamp("1700000000") == 1700000000

    def test_canonical_path(self):
        assert canonical_path("0xAA,0xbb") == ("aa", "bb")
        assert canonical_path(["0xAA", "0xBB"]) == ("aa", "bb")
        assert canonical_path("") == ()


class TestJaccard:
    def test_symmetry(self):
        a, b = {1, 2, 3}, {2, 3, 4, 5}
        assert jaccard(a, b) == jaccard(b, a) == pytest.approx(2 / 5)

    def test_identity(self):
        assert jaccard({"x", "y"}, {"x", "y"}) == 1.0

    def test_empty(self):
        assert jaccard(set(), set()) == 0.0
        assert jaccard({"x"}, set()) == 0.0

    def test_common_bounded_by_smaller_dataset(self):
        records_1 = [tx(f"0x{i}") for i in range(3)]
        records_2 = [tx(f"0x{i}") for i in range(1, 10)]
        result = compare_pair(records_1, records_2, TRANSFERS.identity)
        assert result.common <= min(result.count_1, result.count_2)
        assert 0.0 <= result.jaccard_similarity <= 1.0


class TestComparePair:
    def test_half_overlap_scenario(self):
        a = [{"transactionHash": "0x1", "from": "0xaa", "to": "0xbb", "value": "100"}]
        b = [
            {"transactionHash": "0x1", "from": "0xAA", "to": "0xBB", "value": "100"},
            {"transactionHash": "0x2", "from": "0xcc", "to": "0xdd", "value": "5"},
        ]
        result = compare_pair(a, b, TRANSFERS.identity, "envio", "subgraph", fields=TRANSFERS.fields)

        assert result.common == 1
        assert result.unique_to_1 == 0
        assert result.unique_to_2 == 1
        assert result.jaccard_similarity == 0.5
        assert result.field_stats["from"] == {"matches": 1, "mismatches": 0, "match_percent": 100.0}
        assert result.unique_examples["subgraph"][0]["transactionHash"] == "0x2"

    def test_scientific_value_matches(self):
        a = [tx("0x1", value="123000000000000000000")]
        b = [tx("0x1", value="1.23e20")]
        result = compare_pair(a, b, TRANSFERS.identity, fields=TRANSFERS.fields)
        assert result.field_stats["value"]["mismatches"] == 0

    def test_long_fractional_values_compared_exactly(self):
        a = [tx("0x1", value="123456712345678.9012345678901234")]
        b = [tx("0x1", value="123456712345678.9012345678901299")]
        c = [tx("0x1", value="123456712345678.90123456789012340")]
        assert compare_pair(a, b, TRANSFERS.identity, fields=TRANSFERS.fields).field_stats["value"]["mismatches"] == 1
        assert compare_pair(a, c, TRANSFERS.identity, fields=TRANSFERS.fields).field_stats["value"]["mismatches"] == 0

    def test_address_case_matches(self):
        a = [tx("0xABC", from_="0xABCDEF")]
        b = [tx("0xabc", from_="0xabcdef")]
        result = compare_pair(a, b, TRANSFERS.identity, fields=TRANSFERS.fields)
        assert result.common == 1
        assert result.field_stats["from"]["matches"] == 1

    def test_millisecond_timestamp_matches(self):
        a = [{"number": 1, "hash": "0x01", "parentHash": "0x00", "timestamp": 1700000000000}]
        b = [{"number": 1, "hash": "0x01", "parentHash": "0x00", "timestamp": 1700000000}]
        identity = compare_pair(a, b, BLOCKS.identity, fields=BLOCKS.fields)
        content = compare_pair(a, b, BLOCKS.content)

        assert identity.field_stats["timestamp"]["matches"] == 1
        assert content.jaccard_similarity == 1.0

    def test_mismatch_examples_capped(self):
        a = [tx(f"0x{i}", value="1") for i in range(7)]
        b = [tx(f"0x{i}", value="2") for i in range(7)]
        result = compare_pair(a, b, TRANSFERS.identity, "sentio", "ponder", fields=TRANSFERS.fields)

        assert result.field_stats["value"] == {"matches": 0, "mismatches": 7, "match_percent": 0.0}
        assert len(result.mismatch_examples) == MAX_EXAMPLES
        example = result.mismatch_examples[0]
        assert set(example) == {"key", "field", "sentio", "ponder"}
        assert example["field"] == "value"
        assert (example["sentio"], example["ponder"]) == ("1", "2")

    def test_unique_examples_capped(self):
        a = [tx(f"0x{i}") for i in range(8)]
        result = compare_pair(a, [], TRANSFERS.identity, "sentio", "envio")
        assert len(result.unique_examples["sentio"]) == MAX_EXAMPLES
        assert result.unique_examples["envio"] == []
        assert result.field_stats == {}

    def test_duplicate_keys_counted_once(self):
        a = [tx("0x1"), tx("0x1", value="999")]
        b = [tx("0x1")]
        result = compare_pair(a, b, TRANSFERS.identity, fields=TRANSFERS.fields)
        assert result.count_1 == 1
        assert result.field_stats["value"]["matches"] == 1

    def test_swaps_keyed_by_trace(self):
        assert trace_index({"id": "0xt-0_1"}) == "0_1"
        assert trace_index({"id": "0xt"}) == "0"

        a = [{"id": "0xt-0", "transactionHash": "0xt"}, {"id": "0xt-1", "transactionHash": "0xt"}]
        b = [{"id": "0xT-0", "transactionHash": "0xT"}]
        result = compare_pair(a, b, SWAPS.identity)
        assert result.count_1 == 2
        assert result.common == 1


class TestCompareDatasets:
    def test_report_structure(self):
        datasets = {
            "subgraph": [tx("0x1"), tx("0x2")],
            "sentio": [tx("0x1")],
            "envio": [tx("0x1"), tx("0x3", block=9)],
        }
        report = compare_datasets(datasets, "transfers")

        assert report["platforms"] == ["sentio", "envio", "subgraph"]
        assert set(report["consistency"]) == {"sentio_vs_envio", "sentio_vs_subgraph", "envio_vs_subgraph"}
        assert report["data_counts"]["envio"] == {"count": 2, "success": True}
        assert report["block_ranges"]["envio"] == {"min": 1, "max": 9, "count": 2}
        assert report["unique_counts"]["subgraph"] == {"blocks": 1, "transactions": 2}

        pair = report["consistency"]["envio_vs_subgraph"]
        assert pair["common"] == 1
        assert pair["jaccard_similarity"] == pytest.approx(1 / 3)
        assert "field_stats" not in pair

        fields = report["field_comparisons"]["sentio_vs_envio"]
        assert fields["fields"]["value"]["match_percent"] == 100.0
        assert fields["mismatch_examples"] == []

        content = report["content_comparison"]["sentio_vs_envio"]
        assert content["key_fields"] == ["from", "to", "value"]

        json.dumps(report, default=str)

    def test_accounts_have_no_content_comparison(self):
        accounts = [{"id": "0xa", "balance": "1", "point": "1", "timestamp": 1}]
        report = compare_datasets({"sentio": accounts, "ponder": accounts}, "accounts")
        assert report["content_comparison"] == {}
        assert report["consistency"]["sentio_vs_ponder"]["jaccard_similarity"] == 1.0
        assert "points_correlation" in report["summaries"]

    def test_empty_dataset(self):
        report = compare_datasets({"sentio": [], "envio": [tx("0x1")]}, "transfers")
        assert report["data_counts"]["sentio"] == {"count": 0, "success": False}
        assert report["consistency"]["sentio_vs_envio"]["jaccard_similarity"] == 0.0

    def test_unknown_data_type(self):
        with pytest.raises(ValueError):
            compare_datasets({"sentio": []}, "nfts")

    def test_pair_key(self):
        assert pair_key("sentio", "envio") == "sentio_vs_envio"


class TestLoadDataset:
    def test_placeholder_dropped(self, parquet_path):
        ColumnarWriter(TRANSFER, parquet_path).close()
        assert load_dataset(parquet_path, "transfers") == []

    def test_rows_read(self, parquet_path, transfer_records):
        with ColumnarWriter(TRANSFER, parquet_path) as writer:
            for record in transfer_records:
                writer.append_row(record)
        assert load_dataset(parquet_path, "transfers") == transfer_records
