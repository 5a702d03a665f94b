"""
Algorithm implementations for tiny-hdr.
"""

from tiny_hdr.algorithms.hdr_histogram import HdrHistogram

__all__ = [
    "HdrHistogram",
]
