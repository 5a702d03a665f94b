"""
High Dynamic Range histogram implementation for tiny-hdr.

This module provides a fixed-configuration logarithmic histogram for
recording non-negative integer measurements such as latencies, and for
answering percentile, mean and standard deviation queries with a bounded
relative error.

Memory is O(log(max/min)): values are counted in exponentially growing
buckets, each split linearly into enough sub-buckets to keep the
configured number of significant decimal digits.

References:
    - Tene, G. HdrHistogram: A High Dynamic Range Histogram.
      http://hdrhistogram.org/
"""

import logging
import math
import sys
from array import array
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple

from tiny_hdr.core.base import QuantileEstimator
from tiny_hdr.core.equivalence import EquivalenceRanges
from tiny_hdr.core.indexing import IndexMapper
from tiny_hdr.core.layout import HistogramLayout

logger = logging.getLogger(__name__)


class HdrHistogram(QuantileEstimator[int]):
    """
    HDR histogram over a fixed, pre-declared value range.

    The histogram keeps one 64-bit counter per slot of its layout, a running
    total and the raw minimum and maximum recorded values. It never resizes:
    values outside the configured range are rejected.

    Query results are reported through equivalent value ranges rather than
    raw values:

    1. ``value_at_percentile`` and ``max`` return highest equivalent values
    2. ``mean`` and ``stddev`` weight each slot by its median equivalent value
    3. ``min`` is the exception and returns the raw minimum

    Instances are not thread-safe; give each worker its own histogram or
    guard it with an external lock.

    Example:
        >>> hist = HdrHistogram(1, 30_000_000, 2)
        >>> hist.record(2)
        >>> hist.record(30000)
        >>> hist.value_at_percentile(100)
        30079
    """

    DEFAULT_LOWEST_TRACKABLE_VALUE: int = 1
    DEFAULT_HIGHEST_TRACKABLE_VALUE: int = 3_600_000_000
    DEFAULT_SIGNIFICANT_FIGURES: int = 3

    INITIAL_MIN_VALUE: int = sys.maxsize
    INITIAL_MAX_VALUE: int = 0

    def __init__(
        self,
        lowest_trackable_value: int = DEFAULT_LOWEST_TRACKABLE_VALUE,
        highest_trackable_value: int = DEFAULT_HIGHEST_TRACKABLE_VALUE,
        significant_figures: int = DEFAULT_SIGNIFICANT_FIGURES,
        memory_limit_bytes: Optional[int] = None,
    ):
        """
        Initialize an HDR histogram.

        Args:
            lowest_trackable_value: The lowest value that can be distinguished
                from 0. Must be an integer >= 1. Resolution is effectively
                rounded down to the nearest power of 2.
            highest_trackable_value: The highest value to be tracked. Must be
                an integer >= 2 * lowest_trackable_value.
            significant_figures: Decimal digits of precision to keep for every
                recorded value. Must be an integer between 1 and 5.
            memory_limit_bytes: Optional maximum memory usage in bytes.

        Raises:
            ValueError: If the configuration is invalid.
        """
        super().__init__(memory_limit_bytes)

        # Validated before the counts array is allocated
        self._layout = HistogramLayout.from_config(
            lowest_trackable_value, highest_trackable_value, significant_figures
        )
        self._mapper = IndexMapper(self._layout)
        self._ranges = EquivalenceRanges(self._mapper)

        self._counts = array("q", [0]) * self._layout.counts_length
        self._total_count = 0
        self._min_value = self.INITIAL_MIN_VALUE
        self._max_value = self.INITIAL_MAX_VALUE

    #
    # Lifecycle
    #
    def open(self) -> None:
        """Prepare the histogram for recording; equivalent to ``reset``."""
        self.reset()

    def close(self) -> None:
        """Finish a recording session. The histogram holds no external resources."""

    def reset(self) -> None:
        """
        Return the histogram to its empty state.

        The counts array is zeroed in place and keeps its length.
        """
        self._counts[:] = array("q", [0]) * self._layout.counts_length
        self._total_count = 0
        self._min_value = self.INITIAL_MIN_VALUE
        self._max_value = self.INITIAL_MAX_VALUE
        logger.debug("Histogram reset (counts_length=%d)", self._layout.counts_length)

    def clear(self) -> None:
        """Reset both the recorded data and the benchmarking counters."""
        super().clear()
        self.reset()

    #
    # Recording
    #
    def record(self, value: int, count: int = 1) -> None:
        """
        Record a value, optionally several times.

        Args:
            value: The value to record. Must be an integer no lower than
                ``lowest_trackable_value`` whose slot lies inside the
                counts array.
            count: How many times to record it. Must be an integer >= 1.

        Raises:
            ValueError: If the value or count is outside the contract. The
                histogram is left unchanged.
        """
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Recorded values must be integers, got {value!r}")
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise ValueError(f"Count must be a positive integer, got {count!r}")
        if value < self._layout.lowest_trackable_value:
            raise ValueError(
                f"Value {value} is below lowest_trackable_value "
                f"{self._layout.lowest_trackable_value}"
            )

        if not self._mapper.is_trackable(value):
            raise ValueError(
                f"Value {value} is beyond the trackable range of this histogram "
                f"(highest_trackable_value={self._layout.highest_trackable_value})"
            )
        index = self._mapper.slot_index_of(value)

        start_time = self._start_timing()
        super().update(value)

        self._counts[index] += count
        self._total_count += count

        if value < self._min_value:
            self._min_value = value
        if value > self._max_value:
            self._max_value = value

        self._stop_timing(start_time)

    def update(self, item: int) -> None:
        """
        Record a single occurrence of a value.

        Args:
            item: The value to record.
        """
        self.record(item)

    def record_values(self, values: Iterable[int]) -> None:
        """
        Record each value of an iterable once.

        Args:
            values: The values to record.
        """
        for value in values:
            self.record(value)

    #
    # Slot access
    #
    def recorded_slots(self) -> Iterator[Tuple[int, int]]:
        """
        Iterate over the non-empty slots in ascending value order.

        Each call returns a fresh iterator, so the traversal can be restarted.

        Yields:
            ``(index, count)`` pairs for every slot with a non-zero count.
        """
        for index, count in enumerate(self._counts):
            if count:
                yield index, count

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return self.recorded_slots()

    def count_at_index(self, index: int) -> int:
        """
        Get the count stored in a slot.

        Args:
            index: A slot index in ``[0, counts_length)``.

        Returns:
            The number of values recorded in that slot.

        Raises:
            IndexError: If the index is outside the counts array.
        """
        if index < 0 or index >= self._layout.counts_length:
            raise IndexError(
                f"Slot index {index} out of range [0, {self._layout.counts_length})"
            )
        return self._counts[index]

    def count_at_value(self, value: int) -> int:
        """
        Get the count of the slot a value maps to.

        Args:
            value: A trackable value.

        Returns:
            The number of recorded values equivalent to ``value``.
        """
        return self.count_at_index(self._mapper.slot_index_of(value))

    def value_at_index(self, index: int) -> int:
        """Return the lowest value stored in a slot."""
        return self._mapper.value_of_slot(index)

    def size_of_equivalent_range(self, value: int) -> int:
        """Return the width of the range of values equivalent to ``value``."""
        return self._ranges.size_of_equivalent_range(value)

    def lowest_equivalent_value(self, value: int) -> int:
        """Return the smallest value equivalent to ``value``."""
        return self._ranges.lowest_equivalent_value(value)

    def highest_equivalent_value(self, value: int) -> int:
        """Return the largest value equivalent to ``value``."""
        return self._ranges.highest_equivalent_value(value)

    def median_equivalent_value(self, value: int) -> int:
        """Return the midpoint of the range equivalent to ``value``."""
        return self._ranges.median_equivalent_value(value)

    def next_non_equivalent_value(self, value: int) -> int:
        """Return the smallest value above ``value`` that lands in another slot."""
        return self._ranges.next_non_equivalent_value(value)

    def values_are_equivalent(self, value1: int, value2: int) -> bool:
        """Check whether two values are counted in the same slot."""
        return self._ranges.values_are_equivalent(value1, value2)

    #
    # Queries
    #
    def min(self) -> int:
        """
        Get the smallest recorded value.

        Returns:
            The exact raw minimum, or ``INITIAL_MIN_VALUE`` if empty.
        """
        return self._min_value

    def max(self) -> int:
        """
        Get the largest recorded value, quantized to its slot.

        Returns:
            The highest equivalent value of the raw maximum, or
            ``INITIAL_MAX_VALUE`` if empty.
        """
        if self._max_value == self.INITIAL_MAX_VALUE:
            return self.INITIAL_MAX_VALUE
        return self._ranges.highest_equivalent_value(self._max_value)

    @staticmethod
    def _check_percentile(percentile: float) -> None:
        if isinstance(percentile, bool) or not isinstance(percentile, (int, float)):
            raise ValueError(f"Percentile must be a number, got {percentile!r}")
        if math.isnan(percentile):
            raise ValueError("Percentile must not be NaN")

    def _target_count_at_percentile(self, percentile: float) -> int:
        requested_percentile = min(percentile, 100.0)
        count_at_percentile = math.ceil(requested_percentile * self._total_count / 100.0)
        return max(count_at_percentile, 1)

    def value_at_percentile(self, percentile: float) -> int:
        """
        Get the value at a given percentile.

        Percentiles above 100 are treated as 100.

        Args:
            percentile: A percentage, normally in [0.0, 100.0].

        Returns:
            The highest equivalent value of the first slot at which the
            cumulative count reaches the percentile, or 0 if the histogram
            is empty.

        Raises:
            ValueError: If the percentile is NaN or not a number.
        """
        self._check_percentile(percentile)
        if self._total_count == 0:
            return 0

        count_at_percentile = self._target_count_at_percentile(percentile)
        cumulative_count = 0
        for index, count in self.recorded_slots():
            cumulative_count += count
            if cumulative_count >= count_at_percentile:
                return self._ranges.highest_equivalent_value(
                    self._mapper.value_of_slot(index)
                )

        return 0

    def value_at_percentiles(self, percentiles: Iterable[float]) -> Dict[float, int]:
        """
        Get the values of several percentiles in one pass over the counts.

        Args:
            percentiles: Percentiles in any order; duplicates are ignored.

        Returns:
            A dictionary mapping each requested percentile to its value.

        Raises:
            ValueError: If any percentile is NaN or not a number.
        """
        requested = set(percentiles)
        for percentile in requested:
            self._check_percentile(percentile)
        requested = sorted(requested)
        result = {p: 0 for p in requested}
        if self._total_count == 0 or not requested:
            return result

        targets = [(p, self._target_count_at_percentile(p)) for p in requested]
        position = 0
        cumulative_count = 0
        for index, count in self.recorded_slots():
            cumulative_count += count
            while position < len(targets) and cumulative_count >= targets[position][1]:
                result[targets[position][0]] = self._ranges.highest_equivalent_value(
                    self._mapper.value_of_slot(index)
                )
                position += 1
            if position == len(targets):
                break

        return result

    def query(self, percentile: float) -> int:
        """
        Query the histogram for a percentile.

        This is a convenience method that calls value_at_percentile.

        Args:
            percentile: A percentage in [0.0, 100.0].

        Returns:
            The value at that percentile.
        """
        return self.value_at_percentile(percentile)

    def mean(self) -> float:
        """
        Get the mean of the recorded values.

        Each slot contributes its median equivalent value, weighted by count.

        Returns:
            The mean, or NaN if the histogram is empty.
        """
        if self._total_count == 0:
            return float("nan")

        weighted_sum = 0
        for index, count in self.recorded_slots():
            weighted_sum += count * self._ranges.median_equivalent_value(
                self._mapper.value_of_slot(index)
            )
        return weighted_sum / self._total_count

    def stddev(self, mean: Optional[float] = None) -> float:
        """
        Get the population standard deviation of the recorded values.

        Args:
            mean: A precomputed ``mean()``; computed when omitted.

        Returns:
            The standard deviation, or NaN if the histogram is empty.
        """
        if self._total_count == 0:
            return float("nan")
        if mean is None:
            mean = self.mean()

        deviation_total = 0.0
        for index, count in self.recorded_slots():
            dev = (
                float(
                    self._ranges.median_equivalent_value(
                        self._mapper.value_of_slot(index)
                    )
                )
                - mean
            )
            deviation_total += (dev * dev) * count
        return math.sqrt(deviation_total / self._total_count)

    #
    # Properties
    #
    @property
    def layout(self) -> HistogramLayout:
        """The derived layout constants of this histogram."""
        return self._layout

    @property
    def lowest_trackable_value(self) -> int:
        return self._layout.lowest_trackable_value

    @property
    def highest_trackable_value(self) -> int:
        return self._layout.highest_trackable_value

    @property
    def significant_figures(self) -> int:
        return self._layout.significant_figures

    @property
    def bucket_count(self) -> int:
        return self._layout.bucket_count

    @property
    def sub_bucket_count(self) -> int:
        return self._layout.sub_bucket_count

    @property
    def counts_length(self) -> int:
        return self._layout.counts_length

    @property
    def unit_magnitude(self) -> int:
        return self._layout.unit_magnitude

    @property
    def sub_bucket_half_count_magnitude(self) -> int:
        return self._layout.sub_bucket_half_count_magnitude

    @property
    def total_count(self) -> int:
        """Total number of recorded values, counting repeats."""
        return self._total_count

    @property
    def is_empty(self) -> bool:
        """Check if the histogram contains any data."""
        return self._total_count == 0

    def __len__(self) -> int:
        """Return the number of values recorded."""
        return self._total_count

    def __repr__(self) -> str:
        return (
            f"HdrHistogram(lowest_trackable_value={self.lowest_trackable_value}, "
            f"highest_trackable_value={self.highest_trackable_value}, "
            f"significant_figures={self.significant_figures}, "
            f"total_count={self._total_count})"
        )

    #
    # Benchmarking hooks
    #
    def estimate_size(self) -> int:
        """
        Estimate the memory footprint of the histogram in bytes.

        Returns:
            Estimated size in bytes.
        """
        size = super().estimate_size()

        # The array object reports its buffer as part of its own size
        size += sys.getsizeof(self._counts)
        size += sys.getsizeof(self._layout)
        size += sys.getsizeof(self._mapper)
        size += sys.getsizeof(self._ranges)

        return size

    def error_bounds(self) -> Dict[str, Any]:
        """
        Get the precision guarantee of this histogram.

        Returns:
            A dictionary with the relative error bound and the value
            resolution at the lowest and highest trackable values.
        """
        return {
            "relative_error": self._layout.relative_error,
            "significant_figures": self._layout.significant_figures,
            "resolution_at_lowest": self._ranges.size_of_equivalent_range(
                self._layout.lowest_trackable_value
            ),
            "resolution_at_highest": self._ranges.size_of_equivalent_range(
                self._layout.highest_trackable_value
            ),
        }

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the histogram.

        Returns:
            A dictionary with the layout constants, recorded totals and,
            when populated, the distribution summary.
        """
        stats = super().get_stats()
        stats.update(self._layout.to_dict())
        stats["total_count"] = self._total_count
        stats["non_empty_slots"] = sum(1 for _ in self.recorded_slots())

        if not self.is_empty:
            stats["min_value"] = self.min()
            stats["max_value"] = self.max()

        return stats
