"""
Bucket layout for HDR histograms.

A layout turns three configuration parameters (lowest trackable value,
highest trackable value and significant figures) into the geometric
constants every other part of the histogram works from: how many
exponential buckets are needed, how finely each bucket is split into
linear sub-buckets, and how long the flat counts array must be.

The sub-bucket count is the smallest power of two that can represent
``2 * 10**significant_figures`` distinct values at unit resolution. That
keeps the quantization error of any recorded value within
``1 / (2 * 10**significant_figures)`` of the value itself.

References:
    - Tene, G. HdrHistogram: A High Dynamic Range Histogram.
      http://hdrhistogram.org/
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict

logger = logging.getLogger(__name__)

MIN_SIGNIFICANT_FIGURES = 1
MAX_SIGNIFICANT_FIGURES = 5

# Recorded values are shifted left by up to this many bits; beyond it a
# 64-bit counter index would overflow.
MAX_SHIFT_MAGNITUDE = 61

# Largest value representable by a signed 64-bit counter.
MAX_VALUE = (1 << 63) - 1

COUNTER_SIZE_BYTES = 8


def _require_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")


@dataclass(frozen=True)
class HistogramLayout:
    """
    Immutable set of derived constants for one histogram configuration.

    Instances should be built with ``HistogramLayout.from_config`` so that
    the configuration is validated before anything is derived from it.

    Attributes:
        lowest_trackable_value: Smallest value that can be distinguished from 0.
        highest_trackable_value: Largest value the histogram is sized to track.
        significant_figures: Decimal digits of precision kept for every value.
        largest_value_with_single_unit_resolution: ``2 * 10**significant_figures``.
        sub_bucket_count_magnitude: ``ceil(log2(largest_value_with_single_unit_resolution))``.
        sub_bucket_half_count_magnitude: ``log2(sub_bucket_half_count)``.
        unit_magnitude: ``floor(log2(lowest_trackable_value))``.
        sub_bucket_count: Linear sub-buckets per bucket (a power of two).
        sub_bucket_half_count: Half of ``sub_bucket_count``.
        sub_bucket_mask: Bit mask covering the sub-bucket range of bucket 0.
        bucket_count: Number of exponential buckets.
        counts_length: Number of slots in the flat counts array.
    """

    lowest_trackable_value: int
    highest_trackable_value: int
    significant_figures: int
    largest_value_with_single_unit_resolution: int
    sub_bucket_count_magnitude: int
    sub_bucket_half_count_magnitude: int
    unit_magnitude: int
    sub_bucket_count: int
    sub_bucket_half_count: int
    sub_bucket_mask: int
    bucket_count: int
    counts_length: int

    @classmethod
    def from_config(
        cls,
        lowest_trackable_value: int,
        highest_trackable_value: int,
        significant_figures: int,
    ) -> "HistogramLayout":
        """
        Validate a configuration and derive its layout.

        Args:
            lowest_trackable_value: Must be an integer >= 1.
            highest_trackable_value: Must be an integer >= 2 * lowest_trackable_value.
            significant_figures: Must be an integer between 1 and 5.

        Returns:
            The derived layout.

        Raises:
            ValueError: If any configuration invariant is violated.
        """
        _require_int("lowest_trackable_value", lowest_trackable_value)
        _require_int("highest_trackable_value", highest_trackable_value)
        _require_int("significant_figures", significant_figures)

        if lowest_trackable_value < 1:
            raise ValueError(
                f"lowest_trackable_value must be >= 1, got {lowest_trackable_value}"
            )
        if highest_trackable_value < 2 * lowest_trackable_value:
            raise ValueError(
                "highest_trackable_value must be >= 2 * lowest_trackable_value, "
                f"got {highest_trackable_value} < 2 * {lowest_trackable_value}"
            )
        if highest_trackable_value > MAX_VALUE:
            raise ValueError(
                f"highest_trackable_value must be <= {MAX_VALUE} (the largest "
                f"64-bit signed value), got {highest_trackable_value}"
            )
        if not (
            MIN_SIGNIFICANT_FIGURES <= significant_figures <= MAX_SIGNIFICANT_FIGURES
        ):
            raise ValueError(
                f"significant_figures must be between {MIN_SIGNIFICANT_FIGURES} "
                f"and {MAX_SIGNIFICANT_FIGURES}, got {significant_figures}"
            )

        largest_value_with_single_unit_resolution = 2 * 10**significant_figures
        # ceil(log2(n)) computed exactly on integers
        sub_bucket_count_magnitude = (
            largest_value_with_single_unit_resolution - 1
        ).bit_length()
        sub_bucket_half_count_magnitude = max(sub_bucket_count_magnitude - 1, 0)
        unit_magnitude = lowest_trackable_value.bit_length() - 1

        if unit_magnitude + sub_bucket_half_count_magnitude > MAX_SHIFT_MAGNITUDE:
            raise ValueError(
                "unit_magnitude + sub_bucket_half_count_magnitude must be <= "
                f"{MAX_SHIFT_MAGNITUDE}, got {unit_magnitude} + "
                f"{sub_bucket_half_count_magnitude}; lower lowest_trackable_value "
                "or significant_figures"
            )

        sub_bucket_count = 1 << (sub_bucket_half_count_magnitude + 1)
        sub_bucket_half_count = sub_bucket_count // 2
        sub_bucket_mask = (sub_bucket_count - 1) << unit_magnitude
        bucket_count = buckets_needed_to_cover_value(
            highest_trackable_value, sub_bucket_count, unit_magnitude
        )
        counts_length = (bucket_count + 1) * sub_bucket_half_count

        layout = cls(
            lowest_trackable_value=lowest_trackable_value,
            highest_trackable_value=highest_trackable_value,
            significant_figures=significant_figures,
            largest_value_with_single_unit_resolution=largest_value_with_single_unit_resolution,
            sub_bucket_count_magnitude=sub_bucket_count_magnitude,
            sub_bucket_half_count_magnitude=sub_bucket_half_count_magnitude,
            unit_magnitude=unit_magnitude,
            sub_bucket_count=sub_bucket_count,
            sub_bucket_half_count=sub_bucket_half_count,
            sub_bucket_mask=sub_bucket_mask,
            bucket_count=bucket_count,
            counts_length=counts_length,
        )
        logger.debug(
            "Derived layout for (%d, %d, %d): bucket_count=%d sub_bucket_count=%d "
            "counts_length=%d",
            lowest_trackable_value,
            highest_trackable_value,
            significant_figures,
            bucket_count,
            sub_bucket_count,
            counts_length,
        )
        return layout

    @property
    def relative_error(self) -> float:
        """The worst-case relative quantization error of a recorded value."""
        return 1.0 / self.largest_value_with_single_unit_resolution

    @property
    def counts_size_bytes(self) -> int:
        """Size of the counts array when stored as 64-bit counters."""
        return self.counts_length * COUNTER_SIZE_BYTES

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the layout to a dictionary of named constants.

        Returns:
            Every configuration parameter and derived constant by name.
        """
        data = asdict(self)
        data["counts_size_bytes"] = self.counts_size_bytes
        return data

    def describe(self) -> str:
        """
        Render the layout constants as a human-readable report.

        Returns:
            One ``name: value`` line per constant.
        """
        header = (
            f"lowest: {self.lowest_trackable_value} "
            f"highest: {self.highest_trackable_value} "
            f"significant: {self.significant_figures}"
        )
        lines = [header]
        for name, value in self.to_dict().items():
            if name in (
                "lowest_trackable_value",
                "highest_trackable_value",
                "significant_figures",
            ):
                continue
            lines.append(f"{name}: {value}")
        return "\n".join(lines)


def buckets_needed_to_cover_value(
    value: int, sub_bucket_count: int, unit_magnitude: int
) -> int:
    """
    Count the exponential buckets needed for the top one to cover a value.

    Args:
        value: The value that must be trackable.
        sub_bucket_count: Linear sub-buckets per bucket.
        unit_magnitude: Bit shift of the smallest resolvable unit.

    Returns:
        The number of buckets.
    """
    smallest_untrackable_value = sub_bucket_count << unit_magnitude
    buckets_needed = 1

    while smallest_untrackable_value <= value:
        if smallest_untrackable_value > MAX_VALUE // 2:
            return buckets_needed + 1
        smallest_untrackable_value <<= 1
        buckets_needed += 1

    return buckets_needed
