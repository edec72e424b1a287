"""
Indexer Benchmark

Fetches the same on-chain datasets from several blockchain indexing platforms,
normalizes them into a common Parquet layout and compares them pairwise.
"""

__version__ = "0.1.0"

PLATFORMS = ["sentio", "envio", "ponder", "subsquid", "subgraph"]


def ordered_platforms(names):
    """Known platforms in registry order, then any others alphabetically."""
    known = [p for p in PLATFORMS if p in names]
    return known + sorted(p for p in names if p not in PLATFORMS)
