"""
tiny-hdr - High Dynamic Range Histograms

tiny-hdr is a Python library for recording integer measurements such as
latencies in a fixed-size logarithmic histogram and answering percentile,
mean and standard deviation queries with bounded relative error.
"""

import logging

__version__ = "0.1.0"

# Import main classes to make them available at the top level
from tiny_hdr.algorithms.hdr_histogram import HdrHistogram
from tiny_hdr.core.base import QuantileEstimator, StreamSummary
from tiny_hdr.core.equivalence import EquivalenceRanges
from tiny_hdr.core.indexing import IndexMapper
from tiny_hdr.core.layout import HistogramLayout

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core base classes
    "StreamSummary",
    "QuantileEstimator",
    # Layout and mapping
    "HistogramLayout",
    "IndexMapper",
    "EquivalenceRanges",
    # Algorithm implementations
    "HdrHistogram",
]
