"""
Core functionality for tiny-hdr.
"""

from tiny_hdr.core.base import QuantileEstimator, StreamSummary
from tiny_hdr.core.equivalence import EquivalenceRanges
from tiny_hdr.core.indexing import IndexMapper
from tiny_hdr.core.layout import HistogramLayout, buckets_needed_to_cover_value

__all__ = [
    # Base classes
    "StreamSummary",
    "QuantileEstimator",
    # Layout and mapping
    "HistogramLayout",
    "IndexMapper",
    "EquivalenceRanges",
    # Utility functions
    "buckets_needed_to_cover_value",
]
