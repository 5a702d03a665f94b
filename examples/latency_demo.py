"""
HDR Histogram Demo for tiny-hdr.

This example demonstrates how to use the HDR histogram to record
simulated request latencies and report percentiles with bounded error.
"""

import logging
import random
import sys

from tiny_hdr.algorithms.hdr_histogram import HdrHistogram

PERCENTILES = [50.0, 90.0, 99.0, 99.9, 99.99, 100.0]


def demonstrate_layout():
    """Show how the configuration drives the histogram's memory layout."""
    print("\n=== Layout Demo ===")

    for digits in range(1, 6):
        histogram = HdrHistogram(1, 3_600_000_000, digits)
        print(
            f"  {digits} significant figures: {histogram.counts_length} slots, "
            f"{histogram.layout.counts_size_bytes} bytes, "
            f"relative error {histogram.layout.relative_error:.4%}"
        )

    print("\nFull layout for (1, 30_000_000, 2):")
    print(HdrHistogram(1, 30_000_000, 2).layout.describe())


def demonstrate_latency_percentiles():
    """Record simulated latencies in microseconds and compare with exact values."""
    print("\n=== Latency Percentiles Demo ===")

    # One microsecond to one hour, 3 significant figures
    histogram = HdrHistogram(1, 3_600_000_000, 3)
    rng = random.Random(42)

    latencies = []
    for _ in range(100_000):
        # Mostly fast requests with a long tail of slow ones
        if rng.random() < 0.99:
            latency = int(rng.gauss(2000, 300))
        else:
            latency = int(rng.expovariate(1 / 250_000))
        latency = max(latency, 1)
        latencies.append(latency)
        histogram.record(latency)

    latencies.sort()
    print(f"Recorded {histogram.total_count} latencies")
    print(f"  Min: {histogram.min()} us (exact: {latencies[0]} us)")
    print(f"  Max: {histogram.max()} us (exact: {latencies[-1]} us)")
    print(f"  Mean: {histogram.mean():.1f} us")
    print(f"  Stddev: {histogram.stddev():.1f} us")

    print("\nPercentiles:")
    for percentile, value in histogram.value_at_percentiles(PERCENTILES).items():
        exact = latencies[min(len(latencies) - 1, int(percentile / 100 * len(latencies)))]
        error = abs(value - exact) / exact if exact else 0.0
        print(f"  p{percentile:<6g} {value:>10} us  exact {exact:>10} us  error {error:.3%}")

    print(f"\nHistogram memory usage: {histogram.estimate_size()} bytes")
    exact_size = sys.getsizeof(latencies) + sum(sys.getsizeof(v) for v in latencies)
    print(f"Memory for exact storage: {exact_size} bytes")


def demonstrate_reset():
    """Reuse one histogram across measurement sessions."""
    print("\n=== Reset Demo ===")

    histogram = HdrHistogram(1, 1_000_000, 2)
    for session in range(3):
        histogram.reset()
        for value in range(1, (session + 1) * 1000 + 1):
            histogram.record(value)
        print(
            f"  Session {session + 1}: {histogram.total_count} values, "
            f"p50={histogram.value_at_percentile(50)}, max={histogram.max()}"
        )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    demonstrate_layout()
    demonstrate_latency_percentiles()
    demonstrate_reset()
