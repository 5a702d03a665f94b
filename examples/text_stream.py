"""
Percentile report for a stream of integers read from standard input.

Usage:
    seq 1 100000 | python examples/text_stream.py
"""

import logging
import sys

from tiny_hdr.algorithms.hdr_histogram import HdrHistogram

logger = logging.getLogger(__name__)

PERCENTILES = [10.0, 20.0, 30.0, 40.0, 50.0, 60.0, 70.0, 80.0, 90.0, 95.0, 99.0, 99.9, 99.99]


def main() -> int:
    histogram = HdrHistogram(1, 30_000_000, 2)
    histogram.open()

    for line_number, line in enumerate(sys.stdin, start=1):
        for token in line.split():
            try:
                histogram.record(int(token))
            except ValueError as e:
                logger.warning("Skipping %r on line %d: %s", token, line_number, e)

    for percentile in PERCENTILES:
        print(
            f"percentile {percentile:f} value {histogram.value_at_percentile(percentile)}"
        )

    histogram.close()
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(message)s")
    sys.exit(main())
