"""
Per-platform dataset statistics reported alongside the pairwise comparison.
"""

import itertools
import logging
from typing import Any, Dict, List, Optional

import numpy as np

from . import ordered_platforms
from .values import canonical_number, canonical_path, normalize_hex

logger = logging.getLogger(__name__)

DEFAULT_BUCKET_SIZE = 5000

_BLOCK_FIELDS = {
    'transfers': 'blockNumber',
    'gas': 'blockNumber',
    'swaps': 'blockNumber',
    'blocks': 'number',
}


def block_numbers(records: List[Dict[str, Any]], data_type: str) -> List[int]:
    field_name = _BLOCK_FIELDS.get(data_type)
    if field_name is None:
        return []
    return [int(canonical_number(r.get(field_name))) for r in records]


def block_range(records: List[Dict[str, Any]], data_type: str) -> Dict[str, Optional[int]]:
    """Lowest and highest block seen, plus the record count."""
    numbers = block_numbers(records, data_type)
    return {
        'min': min(numbers) if numbers else None,
        'max': max(numbers) if numbers else None,
        'count': len(records),
    }


def unique_counts(records: List[Dict[str, Any]], data_type: str) -> Dict[str, int]:
    """Distinct blocks and distinct transactions in a dataset."""
    transactions = {
        normalize_hex(r.get('transactionHash'))
        for r in records
        if r.get('transactionHash')
    }
    return {
        'blocks': len(set(block_numbers(records, data_type))),
        'transactions': len(transactions),
    }


def gas_summary(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Total and average gas value with sender/recipient counts."""
    total = sum(int(canonical_number(r.get('gasValue'))) for r in records)
    n = len(records)
    # exact for any total, rounds half up
    average = (2 * total + n) // (2 * n) if n else 0
    return {
        'count': len(records),
        'total_gas_value': str(total),
        'avg_gas_per_tx': str(average),
        'unique_senders': len({normalize_hex(r.get('sender')) for r in records if r.get('sender')}),
        'unique_recipients': len({normalize_hex(r.get('recipient')) for r in records if r.get('recipient')}),
    }


def swap_summary(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Sender, recipient and input token counts for swap traces."""
    paths = [canonical_path(r.get('path')) for r in records]
    path_lengths = [len(path) for path in paths]
    return {
        'count': len(records),
        'unique_senders': len({normalize_hex(r.get('from')) for r in records if r.get('from')}),
        'unique_recipients': len({normalize_hex(r.get('to')) for r in records if r.get('to')}),
        'unique_input_tokens': len({path[0] for path in paths if path}),
        'avg_path_length': round(sum(path_lengths) / len(path_lengths), 2) if path_lengths else 0.0,
    }


def block_distribution(
    records: List[Dict[str, Any]],
    bucket_size: int = DEFAULT_BUCKET_SIZE,
    data_type: str = 'blocks'
) -> Dict[str, int]:
    """
    Count distinct blocks per fixed-width bucket.

    Buckets span the dataset's own block range and are keyed "start-end";
    empty buckets in between are kept so gaps stay visible.
    """
    numbers = sorted(set(block_numbers(records, data_type)))
    if not numbers:
        return {}

    counts: Dict[int, int] = {}
    for number in numbers:
        start = number - number % bucket_size
        counts[start] = counts.get(start, 0) + 1

    first = numbers[0] - numbers[0] % bucket_size
    distribution = {}
    for start in range(first, numbers[-1] + 1, bucket_size):
        distribution[f"{start}-{start + bucket_size - 1}"] = counts.get(start, 0)
    return distribution


def average_ranks(values: np.ndarray) -> np.ndarray:
    """1-based ranks, ties sharing the mean of their positions."""
    n = len(values)
    order = np.argsort(values, kind='mergesort')
    sorted_values = values[order]
    ranks = np.empty(n, dtype=float)

    i = 0
    while i < n:
        j = i
        while j + 1 < n and sorted_values[j + 1] == sorted_values[i]:
            j += 1
        ranks[order[i:j + 1]] = (i + j) / 2.0 + 1
        i = j + 1
    return ranks


def pearson(x: np.ndarray, y: np.ndarray) -> Optional[float]:
    """Pearson correlation, None when undefined (fewer than 2 points or zero variance)."""
    if len(x) < 2 or np.std(x) == 0 or np.std(y) == 0:
        return None
    return float(np.corrcoef(x, y)[0, 1])


def points_correlation(
    datasets: Dict[str, List[Dict[str, Any]]],
    platforms: List[str]
) -> Dict[str, Dict[str, Any]]:
    """
    Correlate account points between every platform pair.

    Accounts are matched by address; an account missing on one side counts
    as 0 there. Only accounts with a positive point on either side are used.
    Pearson runs on log(point + 1), Spearman on average ranks.
    """
    points: Dict[str, Dict[str, Any]] = {}
    for platform in platforms:
        points[platform] = {
            normalize_hex(r.get('id')): canonical_number(r.get('point'))
            for r in datasets[platform]
        }

    matrix: Dict[str, Dict[str, Any]] = {p: {} for p in platforms}
    for platform in platforms:
        matrix[platform][platform] = {'pearson': 1.0, 'spearman': 1.0, 'accounts': len(points[platform])}

    for platform_1, platform_2 in itertools.combinations(platforms, 2):
        points_1 = points[platform_1]
        points_2 = points[platform_2]
        accounts = sorted(
            account for account in set(points_1) | set(points_2)
            if points_1.get(account, 0) > 0 or points_2.get(account, 0) > 0
        )

        x = np.array([float(points_1.get(a, 0)) for a in accounts], dtype=float)
        y = np.array([float(points_2.get(a, 0)) for a in accounts], dtype=float)

        entry = {
            'pearson': pearson(np.log1p(x), np.log1p(y)) if accounts else None,
            'spearman': pearson(average_ranks(x), average_ranks(y)) if accounts else None,
            'accounts': len(accounts),
        }
        matrix[platform_1][platform_2] = entry
        matrix[platform_2][platform_1] = entry

    return matrix


def summarize(
    datasets: Dict[str, List[Dict[str, Any]]],
    data_type: str,
    bucket_size: int = DEFAULT_BUCKET_SIZE
) -> Dict[str, Any]:
    """Type-specific statistics for every platform dataset."""
    platforms = ordered_platforms(datasets)
    result: Dict[str, Any] = {'platforms': {}}

    for platform in platforms:
        records = datasets[platform]
        stats: Dict[str, Any] = {
            'count': len(records),
            'block_range': block_range(records, data_type),
            'unique': unique_counts(records, data_type),
        }
        if data_type == 'gas':
            stats.update(gas_summary(records))
        elif data_type == 'swaps':
            stats.update(swap_summary(records))
        result['platforms'][platform] = stats

    if data_type == 'blocks':
        result['bucket_size'] = bucket_size
        result['block_distribution'] = {
            platform: block_distribution(datasets[platform], bucket_size)
            for platform in platforms
        }
    elif data_type == 'accounts':
        result['points_correlation'] = points_correlation(datasets, platforms)

    return result
