#!/usr/bin/env python3
"""
Print row counts, columns and placeholder status of extracted Parquet files.

Usage:
    python scripts/count_records.py --case case_1
    python scripts/count_records.py data/case_3/sentio-case_3-blocks.parquet
"""

import argparse
import glob
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from indexer_benchmark.columnar import ColumnarReader
from indexer_benchmark.config import BenchmarkConfig
from indexer_benchmark.records import SCHEMAS

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


def data_type_of(path: str):
    """Infer the data type from a <platform>-<case>-<type>.parquet name."""
    stem = os.path.splitext(os.path.basename(path))[0]
    candidate = stem.rsplit('-', 1)[-1]
    return SCHEMAS.get(candidate)


def describe_file(path: str) -> dict:
    with ColumnarReader.open_file(path) as reader:
        info = {
            'path': path,
            'rows': reader.row_count,
            'fields': reader.field_names,
            'placeholder': False,
        }
        schema = data_type_of(path)
        if schema is not None and reader.row_count == 1:
            first = reader.get_cursor().next()
            info['placeholder'] = first is not None and schema.is_placeholder(first)
    return info


def main():
    parser = argparse.ArgumentParser(description='Inspect extracted Parquet files')
    parser.add_argument('paths', nargs='*', help='Parquet files (default: every file of --case)')
    parser.add_argument('--case', default='case_1', help='Benchmark case (default: case_1)')
    parser.add_argument('--data-dir', help='Root directory of extracted data (default: data)')
    args = parser.parse_args()

    paths = args.paths
    if not paths:
        config = BenchmarkConfig.from_env()
        if args.data_dir:
            config.data_dir = args.data_dir
        case_name = args.case if args.case.startswith('case_') else f"case_{args.case}"
        paths = sorted(glob.glob(os.path.join(config.case_data_dir(case_name), '*.parquet')))

    if not paths:
        logger.error("No Parquet files found")
        return 1

    failures = 0
    for path in paths:
        try:
            info = describe_file(path)
        except (OSError, ValueError) as e:
            logger.error(f"Cannot read {path}: {e}")
            failures += 1
            continue

        rows = "0 (placeholder only)" if info['placeholder'] else str(info['rows'])
        print(f"{os.path.basename(path)}")
        print(f"  rows:   {rows}")
        print(f"  fields: {', '.join(info['fields'])}")

    return 1 if failures else 0


if __name__ == '__main__':
    sys.exit(main())
