"""
Equivalent value ranges.

All raw values that land in the same slot are indistinguishable once
recorded. Queries therefore never report a raw value; they report the
lowest, highest or median value of the range the slot stands for.
"""

from tiny_hdr.core.indexing import IndexMapper


class EquivalenceRanges:
    """Computes the range of raw values sharing a slot with a given value."""

    __slots__ = ["_mapper", "_unit_magnitude", "_sub_bucket_count"]

    def __init__(self, mapper: IndexMapper):
        self._mapper = mapper
        self._unit_magnitude = mapper.layout.unit_magnitude
        self._sub_bucket_count = mapper.layout.sub_bucket_count

    def size_of_equivalent_range(self, value: int) -> int:
        """
        Width of the range of values that map to the same slot as ``value``.

        Args:
            value: A trackable value.

        Returns:
            The number of distinct raw values in the range.
        """
        bucket_index, sub_bucket_index = self._mapper.locate(value)
        # A sub-bucket index past the end means the value sits at a bucket
        # boundary and is counted at the next bucket's resolution.
        if sub_bucket_index >= self._sub_bucket_count:
            bucket_index += 1
        return 1 << (self._unit_magnitude + bucket_index)

    def lowest_equivalent_value(self, value: int) -> int:
        """Return the smallest value equivalent to ``value``."""
        bucket_index, sub_bucket_index = self._mapper.locate(value)
        return self._mapper.value_from_sub_bucket(bucket_index, sub_bucket_index)

    def next_non_equivalent_value(self, value: int) -> int:
        """Return the smallest value greater than ``value`` in a different slot."""
        return self.lowest_equivalent_value(value) + self.size_of_equivalent_range(
            value
        )

    def highest_equivalent_value(self, value: int) -> int:
        """Return the largest value equivalent to ``value``."""
        return self.next_non_equivalent_value(value) - 1

    def median_equivalent_value(self, value: int) -> int:
        """Return the midpoint of the range equivalent to ``value``."""
        return self.lowest_equivalent_value(value) + (
            self.size_of_equivalent_range(value) >> 1
        )

    def values_are_equivalent(self, value1: int, value2: int) -> bool:
        """
        Check whether two values fall in the same slot.

        Args:
            value1: A trackable value.
            value2: Another trackable value.

        Returns:
            True if both values share their lowest equivalent value.
        """
        return self.lowest_equivalent_value(value1) == self.lowest_equivalent_value(
            value2
        )
