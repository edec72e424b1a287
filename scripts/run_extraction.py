#!/usr/bin/env python3
"""
Extraction script: fetch one case's datasets from the indexing platforms
and store them as Parquet files.

Usage:
    # Every platform and data type of case 1
    python scripts/run_extraction.py --case case_1

    # A single platform and data type
    python scripts/run_extraction.py --case case_2 --platform subgraph --data-type accounts

    # Custom pagination
    python scripts/run_extraction.py --case case_3 --page-size 1000 --max-pages 50

Output:
    <data_dir>/<case>/<platform>-<case>-<data_type>.parquet

Environment variables:
    SENTIO_API_KEY - Sentio API key (required for Sentio)
    PONDER_DATABASE_URL / PONDER_SCHEMA - Ponder Postgres database
    SUBSQUID_DATABASE_URL - Subsquid Postgres database
    ENVIO_ENDPOINT, SUBGRAPH_ENDPOINT, SUBSQUID_GRAPHQL_ENDPOINT, HYPERSYNC_ENDPOINT
        - endpoint overrides, also per case (e.g. ENVIO_ENDPOINT_CASE_1)
    HYPERSYNC_API_TOKEN - HyperSync bearer token
    BENCHMARK_DATA_DIR, BENCHMARK_PAGE_SIZE, BENCHMARK_MAX_PAGES, BENCHMARK_REQUEST_DELAY
"""

import argparse
import json
import logging
import os
import sys
from datetime import datetime

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from indexer_benchmark.cases import build_reducer, build_source, get_case, output_path
from indexer_benchmark.config import BenchmarkConfig
from indexer_benchmark.pipeline import ExtractionPipeline, ExtractionStats

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


def get_config(args) -> BenchmarkConfig:
    """Build configuration from environment and command line args."""
    config = BenchmarkConfig.from_env()
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.page_size:
        config.page_size = args.page_size
    if args.max_pages:
        config.max_pages = args.max_pages
    if args.request_delay is not None:
        config.request_delay_seconds = args.request_delay
    return config


def extract_one(config: BenchmarkConfig, case, platform: str, data_type: str) -> ExtractionStats:
    """Run the extraction of one platform's dataset."""
    path = output_path(config, case.name, platform, data_type)

    logger.info("")
    logger.info("=" * 50)
    logger.info(f"{case.name} / {data_type} / {platform}")
    logger.info("=" * 50)

    try:
        source = build_source(config, case, platform, data_type)
    except ValueError as e:
        logger.error(f"Cannot open {platform} source: {e}")
        return ExtractionStats(
            platform=platform,
            data_type=data_type,
            output_path=path,
            errors=[str(e)]
        )

    with source:
        pipeline = ExtractionPipeline(
            source=source,
            platform=platform,
            data_type=data_type,
            output_path=path,
            max_pages=config.max_pages,
            request_delay=config.request_delay_seconds,
            reducer=build_reducer(case, platform, data_type)
        )
        return pipeline.run()


def run_extraction(args) -> int:
    config = get_config(args)
    case = get_case(args.case)

    data_types = [args.data_type] if args.data_type else case.data_types

    logger.info("=" * 50)
    logger.info(f"Indexer Benchmark Extraction: {case.name} ({case.title})")
    logger.info("=" * 50)
    logger.info(f"Started at: {datetime.utcnow().isoformat()}")
    logger.info(f"Data dir: {config.case_data_dir(case.name)}")

    results = []
    for data_type in data_types:
        platforms = [args.platform] if args.platform else case.platforms(data_type)
        for platform in platforms:
            results.append(extract_one(config, case, platform, data_type))

    logger.info("")
    logger.info("=" * 50)
    logger.info("Results")
    logger.info("=" * 50)
    for stats in results:
        status = "OK" if stats.success else "FAILED"
        logger.info(
            f"[{status}] {stats.platform:<10} {stats.data_type:<10} "
            f"pages={stats.pages_fetched} written={stats.records_written} "
            f"skipped={stats.records_skipped} -> {stats.output_path}"
        )
        if stats.errors:
            logger.error(f"  Errors: {stats.errors}")

    if args.stats_json:
        with open(args.stats_json, 'w') as f:
            json.dump([s.to_dict() for s in results], f, indent=2, default=str)
        logger.info(f"Run statistics saved to {args.stats_json}")

    return 0 if results and all(s.success for s in results) else 1


def main():
    parser = argparse.ArgumentParser(
        description='Fetch benchmark datasets from indexing platforms into Parquet files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--case', default='case_1', help='Benchmark case (default: case_1)')
    parser.add_argument('--platform', help='Only this platform (default: every platform of the case)')
    parser.add_argument('--data-type', help='Only this data type (default: every data type of the case)')
    parser.add_argument('--page-size', type=int, help='Records per request (default: per source)')
    parser.add_argument('--max-pages', type=int, help='Maximum pages per platform (default: 10000)')
    parser.add_argument('--request-delay', type=float, help='Delay between pages in seconds (default: 0.5)')
    parser.add_argument('--data-dir', help='Output root directory (default: data)')
    parser.add_argument('--stats-json', help='Write run statistics to this JSON file')

    args = parser.parse_args()

    try:
        return run_extraction(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
