#!/usr/bin/env python3
"""
Check that every platform configured for a case is reachable.

Each platform gets a minimal request: `select 1` for Sentio, `{ __typename }`
for GraphQL endpoints, the height endpoint for HyperSync and `SELECT 1` for
Postgres databases.

Usage:
    python scripts/check_endpoints.py --case case_2
"""

import argparse
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from indexer_benchmark.cases import build_client, get_case
from indexer_benchmark.config import BenchmarkConfig

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


def check_case(config: BenchmarkConfig, case) -> dict:
    """Return {"<data_type>/<platform>": reachable} for a case."""
    results = {}
    for data_type, entries in case.sources.items():
        for platform, entry in entries.items():
            name = f"{data_type}/{platform}"
            try:
                client = build_client(config, case, platform, entry)
            except ValueError as e:
                logger.error(f"{name}: not configured ({e})")
                results[name] = False
                continue

            with client:
                results[name] = client.health_check()
    return results


def main():
    parser = argparse.ArgumentParser(description='Check indexing platform connectivity')
    parser.add_argument('--case', default='case_1', help='Benchmark case (default: case_1)')
    args = parser.parse_args()

    try:
        case = get_case(args.case)
        results = check_case(BenchmarkConfig.from_env(), case)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1

    print(f"\n{'=' * 60}")
    print(f"  Endpoint status: {case.name} ({case.title})")
    print(f"{'=' * 60}")
    for name, ok in results.items():
        print(f"  {'✓' if ok else '✗'} {name}")

    reachable = sum(1 for ok in results.values() if ok)
    print(f"\n  {reachable}/{len(results)} reachable")

    return 0 if reachable else 1


if __name__ == '__main__':
    sys.exit(main())
