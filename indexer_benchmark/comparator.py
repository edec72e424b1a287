"""
Dataset Comparator

Compares normalized datasets from several platforms, pair by pair:
1. Fingerprint every record by an identity key (and, where defined, a content key)
2. Intersect the key sets and compute Jaccard similarity
3. For keys present on both sides, compare a fixed list of fields
4. Keep a few mismatching and unique records as examples

Amounts are compared as exact integers (or exact decimals when fractional),
never as floats. Hashes and addresses are compared case-insensitively with
the 0x prefix stripped.
"""

import itertools
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

from . import ordered_platforms
from .columnar import ColumnarReader
from .records import get_schema
from . import summaries
from .values import canonical_number, canonical_path, normalize_hex, normalize_timestamp

logger = logging.getLogger(__name__)

MAX_EXAMPLES = 5

HEX = "hex"
NUMBER = "number"
TIMESTAMP = "timestamp"
PATH = "path"
TEXT = "text"


_CANONICALIZERS: Dict[str, Callable[[Any], Any]] = {
    HEX: normalize_hex,
    NUMBER: canonical_number,
    TIMESTAMP: normalize_timestamp,
    PATH: canonical_path,
    TEXT: lambda value: "" if value is None else str(value),
}


def canonical_value(kind: str, value: Any) -> Any:
    return _CANONICALIZERS[kind](value)


def trace_index(record: Dict[str, Any]) -> str:
    """Trace position encoded as the id suffix in "<txHash>-<traceAddress>"."""
    record_id = str(record.get('id') or '')
    if '-' in record_id:
        return record_id.split('-', 1)[1]
    return "0"


@dataclass
class ComparisonSpec:
    """How records of one data type are fingerprinted and compared."""
    data_type: str
    identity: Callable[[Dict[str, Any]], Hashable]
    fields: List[Tuple[str, str]]
    content: Optional[Callable[[Dict[str, Any]], Hashable]] = None
    content_fields: Tuple[str, ...] = ()


COMPARISON_SPECS: Dict[str, ComparisonSpec] = {
    'transfers': ComparisonSpec(
        data_type='transfers',
        identity=lambda r: normalize_hex(r.get('transactionHash')),
        fields=[('blockNumber', NUMBER), ('from', HEX), ('to', HEX), ('value', NUMBER)],
        content=lambda r: (
            normalize_hex(r.get('from')),
            normalize_hex(r.get('to')),
            canonical_number(r.get('value')),
        ),
        content_fields=('from', 'to', 'value'),
    ),
    'accounts': ComparisonSpec(
        data_type='accounts',
        identity=lambda r: normalize_hex(r.get('id')),
        fields=[('balance', NUMBER), ('point', NUMBER), ('timestamp', NUMBER)],
    ),
    'blocks': ComparisonSpec(
        data_type='blocks',
        identity=lambda r: canonical_number(r.get('number')),
        fields=[('hash', HEX), ('parentHash', HEX), ('timestamp', TIMESTAMP)],
        content=lambda r: (
            canonical_number(r.get('number')),
            normalize_hex(r.get('hash')),
            normalize_hex(r.get('parentHash')),
            normalize_timestamp(r.get('timestamp')),
        ),
        content_fields=('number', 'hash', 'parentHash', 'timestamp'),
    ),
    'gas': ComparisonSpec(
        data_type='gas',
        identity=lambda r: normalize_hex(r.get('transactionHash')),
        fields=[
            ('blockNumber', NUMBER),
            ('sender', HEX),
            ('recipient', HEX),
            ('gasValue', NUMBER),
            ('gasUsed', NUMBER),
            ('gasPrice', NUMBER),
            ('effectiveGasPrice', NUMBER),
        ],
    ),
    'swaps': ComparisonSpec(
        data_type='swaps',
        identity=lambda r: (normalize_hex(r.get('transactionHash')), trace_index(r)),
        fields=[
            ('blockNumber', NUMBER),
            ('from', HEX),
            ('to', HEX),
            ('amountIn', NUMBER),
            ('amountOutMin', NUMBER),
            ('deadline', NUMBER),
            ('path', PATH),
        ],
        content=lambda r: (
            canonical_number(r.get('blockNumber')),
            normalize_hex(r.get('from')),
            canonical_number(r.get('amountIn')),
            canonical_path(r.get('path')),
        ),
        content_fields=('blockNumber', 'from', 'amountIn', 'path'),
    ),
}


def get_comparison_spec(data_type: str) -> ComparisonSpec:
    try:
        return COMPARISON_SPECS[data_type]
    except KeyError:
        raise ValueError(f"No comparison defined for data type '{data_type}'") from None


@dataclass
class PairComparison:
    """Overlap and agreement between two platforms' datasets."""
    platform_1: str
    platform_2: str
    count_1: int = 0
    count_2: int = 0
    common: int = 0
    unique_to_1: int = 0
    unique_to_2: int = 0
    jaccard_similarity: float = 0.0
    field_stats: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    mismatch_examples: List[Dict[str, Any]] = field(default_factory=list)
    unique_examples: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_index(
    records: List[Dict[str, Any]],
    key_fn: Callable[[Dict[str, Any]], Hashable]
) -> Dict[Hashable, Dict[str, Any]]:
    """Map fingerprint -> record; the first record wins on duplicate keys."""
    index: Dict[Hashable, Dict[str, Any]] = {}
    duplicates = 0
    for record in records:
        key = key_fn(record)
        if key in index:
            duplicates += 1
            continue
        index[key] = record
    if duplicates:
        logger.debug(f"{duplicates} records share a fingerprint with an earlier record")
    return index


def jaccard(keys_1: set, keys_2: set) -> float:
    """|A & B| / |A | B|, 0.0 when both sets are empty."""
    union = keys_1 | keys_2
    if not union:
        return 0.0
    return len(keys_1 & keys_2) / len(union)


def _sort_key(key: Hashable) -> str:
    return str(key)


def compare_pair(
    records_1: List[Dict[str, Any]],
    records_2: List[Dict[str, Any]],
    key_fn: Callable[[Dict[str, Any]], Hashable],
    platform_1: str = "platform_1",
    platform_2: str = "platform_2",
    fields: Optional[List[Tuple[str, str]]] = None
) -> PairComparison:
    """
    Compare two datasets by fingerprint.

    Args:
        records_1: First platform's records
        records_2: Second platform's records
        key_fn: Fingerprint function
        platform_1: Name of the first platform
        platform_2: Name of the second platform
        fields: (field, kind) pairs to compare on common keys; None skips field comparison

    Returns:
        PairComparison with overlap counts, Jaccard similarity and examples
    """
    index_1 = build_index(records_1, key_fn)
    index_2 = build_index(records_2, key_fn)
    keys_1 = set(index_1)
    keys_2 = set(index_2)
    common = keys_1 & keys_2
    only_1 = keys_1 - keys_2
    only_2 = keys_2 - keys_1

    result = PairComparison(
        platform_1=platform_1,
        platform_2=platform_2,
        count_1=len(keys_1),
        count_2=len(keys_2),
        common=len(common),
        unique_to_1=len(only_1),
        unique_to_2=len(only_2),
        jaccard_similarity=jaccard(keys_1, keys_2),
        unique_examples={
            platform_1: [index_1[key] for key in sorted(only_1, key=_sort_key)[:MAX_EXAMPLES]],
            platform_2: [index_2[key] for key in sorted(only_2, key=_sort_key)[:MAX_EXAMPLES]],
        },
    )

    if fields is None:
        return result

    stats = {name: {'matches': 0, 'mismatches': 0} for name, _ in fields}
    for key in sorted(common, key=_sort_key):
        record_1 = index_1[key]
        record_2 = index_2[key]
        for name, kind in fields:
            value_1 = record_1.get(name)
            value_2 = record_2.get(name)
            if canonical_value(kind, value_1) == canonical_value(kind, value_2):
                stats[name]['matches'] += 1
                continue
            stats[name]['mismatches'] += 1
            if len(result.mismatch_examples) < MAX_EXAMPLES:
                result.mismatch_examples.append({
                    'key': str(key),
                    'field': name,
                    platform_1: value_1,
                    platform_2: value_2,
                })

    for name, counts in stats.items():
        total = counts['matches'] + counts['mismatches']
        counts['match_percent'] = round(counts['matches'] / total * 100, 2) if total else 0.0
    result.field_stats = stats

    return result


def pair_key(platform_1: str, platform_2: str) -> str:
    return f"{platform_1}_vs_{platform_2}"


def compare_datasets(
    datasets: Dict[str, List[Dict[str, Any]]],
    data_type: str,
    bucket_size: int = summaries.DEFAULT_BUCKET_SIZE
) -> Dict[str, Any]:
    """
    Compare every pair of platform datasets for one data type.

    Args:
        datasets: Platform name -> normalized records (placeholders removed)
        data_type: Record type of every dataset
        bucket_size: Bucket width for the block distribution summary

    Returns:
        JSON-serializable report dictionary
    """
    spec = get_comparison_spec(data_type)
    platforms = ordered_platforms(datasets)

    report: Dict[str, Any] = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'data_type': data_type,
        'platforms': platforms,
        'data_counts': {},
        'unique_counts': {},
        'block_ranges': {},
        'consistency': {},
        'content_comparison': {},
        'field_comparisons': {},
    }

    for platform in platforms:
        records = datasets[platform]
        report['data_counts'][platform] = {'count': len(records), 'success': len(records) > 0}
        report['unique_counts'][platform] = summaries.unique_counts(records, data_type)
        report['block_ranges'][platform] = summaries.block_range(records, data_type)

    for platform_1, platform_2 in itertools.combinations(platforms, 2):
        key = pair_key(platform_1, platform_2)
        logger.info(f"Comparing {platform_1} and {platform_2}")

        identity = compare_pair(
            datasets[platform_1], datasets[platform_2], spec.identity,
            platform_1, platform_2, fields=spec.fields
        )
        consistency = identity.to_dict()
        field_stats = consistency.pop('field_stats')
        mismatch_examples = consistency.pop('mismatch_examples')
        report['consistency'][key] = consistency
        report['field_comparisons'][key] = {
            'fields': field_stats,
            'mismatch_examples': mismatch_examples,
        }

        if spec.content is not None:
            content = compare_pair(
                datasets[platform_1], datasets[platform_2], spec.content,
                platform_1, platform_2
            ).to_dict()
            content.pop('field_stats')
            content.pop('mismatch_examples')
            content['key_fields'] = list(spec.content_fields)
            report['content_comparison'][key] = content

        logger.info(
            f"{key}: common={identity.common}, jaccard={identity.jaccard_similarity:.4f}"
        )

    report['summaries'] = summaries.summarize(datasets, data_type, bucket_size=bucket_size)
    return report


def load_dataset(path: str, data_type: str) -> List[Dict[str, Any]]:
    """
    Read a persisted dataset, dropping placeholder rows.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    schema = get_schema(data_type)
    records: List[Dict[str, Any]] = []
    placeholders = 0

    with ColumnarReader.open_file(path) as reader:
        logger.info(f"Reading {reader.row_count} rows from {path}")
        for row in reader:
            if schema.is_placeholder(row):
                placeholders += 1
                continue
            records.append(row)
            if len(records) % 10000 == 0:
                logger.info(f"Read {len(records)} rows from {path}")

    if placeholders:
        logger.info(f"{path} holds a placeholder row (empty extraction)")
    return records
