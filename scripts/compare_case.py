#!/usr/bin/env python3
"""
Comparison script: load one case's Parquet datasets, compare every platform
pair and write JSON/HTML reports.

Usage:
    python scripts/compare_case.py --case case_1
    python scripts/compare_case.py --case case_2 --data-type accounts
    python scripts/compare_case.py --case case_3 --heatmap reports/case_3_blocks.png
    python scripts/compare_case.py --case case_1 --output-json out.json --output-html out.html

Default outputs:
    <report_dir>/<case>-<data_type>-comparison.json
    <report_dir>/<case>-<data_type>-comparison.html
"""

import argparse
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from indexer_benchmark.cases import get_case, output_path
from indexer_benchmark.comparator import compare_datasets, load_dataset
from indexer_benchmark.config import BenchmarkConfig
from indexer_benchmark.report import plot_similarity_heatmap, save_html_report, save_json_report

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


def banner(text: str, char: str = "=", width: int = 78):
    print(f"\n{char * width}")
    print(f"  {text}")
    print(f"{char * width}", flush=True)


def sub_banner(text: str):
    banner(text, char="-", width=78)


def load_case_datasets(config: BenchmarkConfig, case, data_type: str):
    """Load every platform file present for a data type; missing files are reported and skipped."""
    datasets = {}
    for platform in case.platforms(data_type):
        path = output_path(config, case.name, platform, data_type)
        if not os.path.exists(path):
            logger.warning(f"No data for {platform}: {path} not found")
            continue
        datasets[platform] = load_dataset(path, data_type)
        logger.info(f"Loaded {len(datasets[platform])} {data_type} records for {platform}")
    return datasets


def print_summary(report):
    sub_banner(f"Record counts ({report['data_type']})")
    for platform, counts in report['data_counts'].items():
        print(f"  {platform:<10} {counts['count']:>10}")

    sub_banner("Pairwise Jaccard similarity")
    for key, entry in report['consistency'].items():
        content = report['content_comparison'].get(key)
        content_text = f"  content={content['jaccard_similarity']:.4f}" if content else ""
        print(
            f"  {key:<24} common={entry['common']:>8}  "
            f"jaccard={entry['jaccard_similarity']:.4f}{content_text}"
        )

    sub_banner("Field agreement")
    for key, comparison in report['field_comparisons'].items():
        fields = ', '.join(
            f"{name} {stats['match_percent']:.1f}%"
            for name, stats in comparison['fields'].items()
        )
        print(f"  {key:<24} {fields}")


def compare(args) -> int:
    config = BenchmarkConfig.from_env()
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.report_dir:
        config.report_dir = args.report_dir

    case = get_case(args.case)
    data_types = [args.data_type] if args.data_type else case.data_types

    banner(f"Indexer Comparison: {case.name} ({case.title})")

    for data_type in data_types:
        datasets = load_case_datasets(config, case, data_type)
        if len(datasets) < 2:
            logger.error(f"Need at least two platform datasets for {data_type}, found {list(datasets)}")
            return 1

        report = compare_datasets(datasets, data_type, bucket_size=args.bucket_size)
        report['case'] = case.name

        base = os.path.join(config.report_dir, f"{case.name}-{data_type}-comparison")
        json_path = args.output_json if args.output_json and len(data_types) == 1 else f"{base}.json"
        html_path = args.output_html if args.output_html and len(data_types) == 1 else f"{base}.html"

        save_json_report(report, json_path)
        save_html_report(report, html_path, title=f"{case.title}: {data_type}")
        if args.heatmap:
            heatmap_path = args.heatmap if len(data_types) == 1 else f"{base}.png"
            plot_similarity_heatmap(report, heatmap_path)

        print_summary(report)
        print(f"\n  JSON report: {json_path}")
        print(f"  HTML report: {html_path}")

    return 0


def main():
    parser = argparse.ArgumentParser(
        description='Compare platform datasets of a benchmark case',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--case', default='case_1', help='Benchmark case (default: case_1)')
    parser.add_argument('--data-type', help='Only this data type (default: every data type of the case)')
    parser.add_argument('--data-dir', help='Root directory of extracted data (default: data)')
    parser.add_argument('--report-dir', help='Directory for reports (default: reports)')
    parser.add_argument('--output-json', help='JSON report path')
    parser.add_argument('--output-html', help='HTML report path')
    parser.add_argument('--heatmap', help='Also write a PNG similarity heatmap to this path')
    parser.add_argument('--bucket-size', type=int, default=5000,
                        help='Block bucket width for coverage distribution (default: 5000)')

    args = parser.parse_args()

    try:
        return compare(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
