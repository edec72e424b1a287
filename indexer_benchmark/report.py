"""
Report Renderer

Turns a comparison report (see comparator.compare_datasets) into:
- a JSON document
- a self-contained static HTML page with tables and similarity heatmaps
- a PNG heatmap of pairwise Jaccard similarity
"""

import html
import json
import logging
import math
import os
from typing import Any, Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np

logger = logging.getLogger(__name__)

DIAGONAL_COLOR = "rgb(0, 128, 0)"
MISSING_COLOR = "#888"


def save_json_report(report: Dict[str, Any], path: str) -> str:
    """Write the report as indented JSON and return the path."""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(report, f, indent=2, default=str)
    logger.info(f"JSON report saved to {path}")
    return path


def similarity_color(similarity: float) -> str:
    """Interpolate from red (0) to green (1)."""
    s = min(max(float(similarity), 0.0), 1.0)
    return f"rgb({math.floor(255 * (1 - s))}, {math.floor(255 * s)}, 0)"


def _esc(value: Any) -> str:
    if value is None:
        return "-"
    return html.escape(str(value))


def _pair_value(section: Dict[str, Any], p1: str, p2: str) -> Optional[Dict[str, Any]]:
    return section.get(f"{p1}_vs_{p2}") or section.get(f"{p2}_vs_{p1}")


def similarity_matrix(report: Dict[str, Any], section: str = 'consistency') -> List[List[Optional[float]]]:
    """Square matrix of Jaccard similarity in platform order; None where no pair exists."""
    platforms = report.get('platforms', [])
    pairs = report.get(section, {})
    matrix: List[List[Optional[float]]] = []
    for p1 in platforms:
        row: List[Optional[float]] = []
        for p2 in platforms:
            if p1 == p2:
                row.append(1.0)
                continue
            entry = _pair_value(pairs, p1, p2)
            row.append(entry['jaccard_similarity'] if entry else None)
        matrix.append(row)
    return matrix


def _heatmap_table(report: Dict[str, Any], section: str) -> str:
    platforms = report.get('platforms', [])
    pairs = report.get(section, {})
    header = ''.join(f"<th>{_esc(p)}</th>" for p in platforms)
    rows = []
    for p1 in platforms:
        cells = []
        for p2 in platforms:
            if p1 == p2:
                cells.append(f'<td style="background:{DIAGONAL_COLOR};color:#fff">1.00</td>')
                continue
            entry = _pair_value(pairs, p1, p2)
            if entry is None:
                cells.append(f'<td style="background:{MISSING_COLOR};color:#fff">N/A</td>')
                continue
            similarity = entry['jaccard_similarity']
            cells.append(
                f'<td style="background:{similarity_color(similarity)};color:#fff" '
                f'title="common {entry["common"]}">{similarity:.2f}</td>'
            )
        rows.append(f"<tr><th>{_esc(p1)}</th>{''.join(cells)}</tr>")
    return f"<table class=\"heatmap\"><tr><th></th>{header}</tr>{''.join(rows)}</table>"


def _table(headers: List[str], rows: List[List[Any]]) -> str:
    head = ''.join(f"<th>{_esc(h)}</th>" for h in headers)
    body = ''.join(
        "<tr>" + ''.join(f"<td>{_esc(cell)}</td>" for cell in row) + "</tr>"
        for row in rows
    )
    return f"<table><tr>{head}</tr>{body}</table>"


def _summary_tables(report: Dict[str, Any]) -> str:
    summaries = report.get('summaries') or {}
    parts = []

    platform_stats = summaries.get('platforms') or {}
    extra_keys: List[str] = []
    for stats in platform_stats.values():
        for key, value in stats.items():
            if key not in ('count', 'block_range', 'unique') and key not in extra_keys and not isinstance(value, dict):
                extra_keys.append(key)
    if extra_keys:
        rows = [[p] + [stats.get(k) for k in extra_keys] for p, stats in platform_stats.items()]
        parts.append("<h2>Dataset Statistics</h2>" + _table(['Platform'] + extra_keys, rows))

    distribution = summaries.get('block_distribution')
    if distribution:
        buckets: List[str] = []
        for per_platform in distribution.values():
            for bucket in per_platform:
                if bucket not in buckets:
                    buckets.append(bucket)
        buckets.sort(key=lambda b: int(b.split('-')[0]))
        rows = [[b] + [distribution[p].get(b, 0) for p in distribution] for b in buckets]
        parts.append(
            f"<h2>Block Coverage (bucket size {_esc(summaries.get('bucket_size'))})</h2>"
            + _table(['Blocks'] + list(distribution), rows)
        )

    correlation = summaries.get('points_correlation')
    if correlation:
        names = list(correlation)
        rows = []
        for p1 in names:
            row: List[Any] = [p1]
            for p2 in names:
                entry = correlation[p1].get(p2) or {}
                pearson = entry.get('pearson')
                spearman = entry.get('spearman')
                row.append(
                    f"{pearson:.4f} / {spearman:.4f}" if pearson is not None and spearman is not None else "N/A"
                )
            rows.append(row)
        parts.append("<h2>Point Correlation (Pearson log / Spearman)</h2>" + _table([''] + names, rows))

    return ''.join(parts)


_STYLE = """
body { font-family: Arial, sans-serif; margin: 24px; color: #222; }
table { border-collapse: collapse; margin-bottom: 24px; }
th, td { border: 1px solid #ccc; padding: 6px 10px; text-align: right; }
th { background: #f0f0f0; }
table.heatmap td { text-align: center; font-weight: bold; min-width: 60px; }
"""


def render_html_report(report: Dict[str, Any], title: Optional[str] = None) -> str:
    """Render a comparison report as a self-contained HTML page."""
    platforms = report.get('platforms', [])
    data_type = report.get('data_type', '')
    title = title or f"Indexer Comparison: {data_type}"

    counts_rows = []
    for p in platforms:
        counts = report.get('data_counts', {}).get(p, {})
        unique = report.get('unique_counts', {}).get(p, {})
        block_range = report.get('block_ranges', {}).get(p, {})
        counts_rows.append([
            p,
            counts.get('count'),
            'yes' if counts.get('success') else 'no',
            unique.get('blocks'),
            unique.get('transactions'),
            block_range.get('min'),
            block_range.get('max'),
        ])

    sections = [
        f"<h1>{_esc(title)}</h1>",
        f"<p>Generated {_esc(report.get('timestamp'))}</p>",
        "<h2>Record Counts</h2>",
        _table(
            ['Platform', 'Records', 'Has data', 'Unique blocks', 'Unique transactions', 'Min block', 'Max block'],
            counts_rows
        ),
        "<h2>Identity Similarity (Jaccard)</h2>",
        _heatmap_table(report, 'consistency'),
    ]

    if report.get('content_comparison'):
        sections += ["<h2>Content Similarity (Jaccard)</h2>", _heatmap_table(report, 'content_comparison')]

    pair_rows = []
    for key, entry in report.get('consistency', {}).items():
        pair_rows.append([
            key, entry['common'], entry['unique_to_1'], entry['unique_to_2'],
            f"{entry['jaccard_similarity']:.4f}",
        ])
    if pair_rows:
        sections += [
            "<h2>Pairwise Overlap</h2>",
            _table(['Pair', 'Common', 'Only first', 'Only second', 'Jaccard'], pair_rows),
        ]

    for key, comparison in report.get('field_comparisons', {}).items():
        rows = [
            [name, stats['matches'], stats['mismatches'], f"{stats['match_percent']:.2f}%"]
            for name, stats in comparison.get('fields', {}).items()
        ]
        sections += [f"<h2>Field Agreement: {_esc(key)}</h2>", _table(['Field', 'Matches', 'Mismatches', 'Match %'], rows)]
        examples = comparison.get('mismatch_examples') or []
        if examples:
            sections.append(f"<pre>{_esc(json.dumps(examples, indent=2, default=str))}</pre>")

    sections.append(_summary_tables(report))

    return (
        "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n"
        f"<title>{_esc(title)}</title>\n<style>{_STYLE}</style>\n</head>\n<body>\n"
        + "\n".join(sections)
        + "\n</body>\n</html>\n"
    )


def save_html_report(report: Dict[str, Any], path: str, title: Optional[str] = None) -> str:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(render_html_report(report, title=title))
    logger.info(f"HTML report saved to {path}")
    return path


def plot_similarity_heatmap(
    report: Dict[str, Any],
    output_file: str = 'similarity_heatmap.png',
    section: str = 'consistency'
) -> str:
    """
    Plot pairwise Jaccard similarity as a heatmap.

    Args:
        report: Comparison report
        output_file: Output filename
        section: 'consistency' (identity keys) or 'content_comparison'

    Returns:
        Output filename
    """
    platforms = report.get('platforms', [])
    matrix = similarity_matrix(report, section)
    os.makedirs(os.path.dirname(os.path.abspath(output_file)), exist_ok=True)
    data = np.array([[np.nan if v is None else v for v in row] for row in matrix], dtype=float)

    size = max(6, len(platforms) * 1.5)
    fig, ax = plt.subplots(figsize=(size, size * 0.8))

    im = ax.imshow(data, cmap='RdYlGn', vmin=0.0, vmax=1.0, interpolation='nearest')

    ax.set_xticks(np.arange(len(platforms)))
    ax.set_yticks(np.arange(len(platforms)))
    ax.set_xticklabels(platforms, fontsize=10)
    ax.set_yticklabels(platforms, fontsize=10)
    plt.setp(ax.get_xticklabels(), rotation=45, ha="right", rotation_mode="anchor")

    # Annotate cells
    for i in range(len(platforms)):
        for j in range(len(platforms)):
            label = "N/A" if np.isnan(data[i, j]) else f"{data[i, j]:.2f}"
            ax.text(j, i, label, ha="center", va="center", color="black", fontsize=10)

    cbar = plt.colorbar(im, ax=ax)
    cbar.set_label('Jaccard similarity', rotation=270, labelpad=20, fontsize=10)

    kind = 'Content' if section == 'content_comparison' else 'Identity'
    ax.set_title(f"{kind} Similarity: {report.get('data_type', '')}",
                 fontsize=14, fontweight='bold', pad=20)

    plt.tight_layout()
    plt.savefig(output_file, dpi=300, bbox_inches='tight')
    plt.close()

    logger.info(f"Heatmap saved to {output_file}")
    return output_file
