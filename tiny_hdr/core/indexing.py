"""
Mapping between raw values and slots of the flat counts array.

Every value is first placed in an exponential bucket (the position of its
highest set bit) and then in a linear sub-bucket within it (the value
shifted down to the bucket's resolution). Buckets 0 and 1 would overlap
in their lower halves, so all buckets after the first only store their
upper half and the slot offset is shifted by one half-bucket.
"""

from typing import Tuple

from tiny_hdr.core.layout import HistogramLayout


class IndexMapper:
    """
    Converts raw values to counts-array slots and back for one layout.

    Values below ``lowest_trackable_value`` are outside the mapper's
    contract; callers must check ``is_trackable`` first.
    """

    __slots__ = [
        "_layout",
        "_unit_magnitude",
        "_sub_bucket_mask",
        "_sub_bucket_half_count",
        "_sub_bucket_half_count_magnitude",
        "_counts_length",
    ]

    def __init__(self, layout: HistogramLayout):
        """
        Initialize a mapper for a layout.

        Args:
            layout: The layout whose constants drive the mapping.
        """
        self._layout = layout
        # Hot-path constants copied out of the dataclass
        self._unit_magnitude = layout.unit_magnitude
        self._sub_bucket_mask = layout.sub_bucket_mask
        self._sub_bucket_half_count = layout.sub_bucket_half_count
        self._sub_bucket_half_count_magnitude = layout.sub_bucket_half_count_magnitude
        self._counts_length = layout.counts_length

    @property
    def layout(self) -> HistogramLayout:
        """The layout this mapper was built from."""
        return self._layout

    def bucket_index_of(self, value: int) -> int:
        """
        Find the exponential bucket a value falls into.

        Args:
            value: A trackable value.

        Returns:
            The bucket index, 0 for the finest bucket.
        """
        # Smallest power of 2 containing value
        pow2ceiling = (value | self._sub_bucket_mask).bit_length()
        return pow2ceiling - self._unit_magnitude - (
            self._sub_bucket_half_count_magnitude + 1
        )

    def sub_bucket_index_of(self, value: int, bucket_index: int) -> int:
        """
        Find the linear position of a value within its bucket.

        Args:
            value: A trackable value.
            bucket_index: The bucket returned by ``bucket_index_of(value)``.

        Returns:
            The sub-bucket index.
        """
        return value >> (bucket_index + self._unit_magnitude)

    def slot_index(self, bucket_index: int, sub_bucket_index: int) -> int:
        """
        Flatten a (bucket, sub-bucket) pair into a counts-array offset.

        Args:
            bucket_index: The exponential bucket.
            sub_bucket_index: The linear position within the bucket.

        Returns:
            The slot index.
        """
        # Equivalent to (bucket_index + 1) * sub_bucket_half_count
        bucket_base_index = (bucket_index + 1) << self._sub_bucket_half_count_magnitude
        offset_in_bucket = sub_bucket_index - self._sub_bucket_half_count
        return bucket_base_index + offset_in_bucket

    def locate(self, value: int) -> Tuple[int, int]:
        """
        Find both the bucket and sub-bucket of a value.

        Args:
            value: A trackable value.

        Returns:
            A ``(bucket_index, sub_bucket_index)`` tuple.
        """
        bucket_index = self.bucket_index_of(value)
        return bucket_index, self.sub_bucket_index_of(value, bucket_index)

    def slot_index_of(self, value: int) -> int:
        """
        Map a value straight to its slot index.

        Args:
            value: A trackable value.

        Returns:
            The slot index.
        """
        bucket_index, sub_bucket_index = self.locate(value)
        return self.slot_index(bucket_index, sub_bucket_index)

    def value_from_sub_bucket(self, bucket_index: int, sub_bucket_index: int) -> int:
        """Return the lowest value mapping to a (bucket, sub-bucket) pair."""
        return sub_bucket_index << (bucket_index + self._unit_magnitude)

    def value_of_slot(self, index: int) -> int:
        """
        Recover the lowest value that maps to a slot.

        Args:
            index: A slot index in ``[0, counts_length)``.

        Returns:
            The lowest raw value stored in that slot.
        """
        bucket_index = (index >> self._sub_bucket_half_count_magnitude) - 1
        sub_bucket_index = (
            index & (self._sub_bucket_half_count - 1)
        ) + self._sub_bucket_half_count

        # Slots below the first half-bucket belong to the lower half of bucket 0
        if bucket_index < 0:
            sub_bucket_index -= self._sub_bucket_half_count
            bucket_index = 0

        return self.value_from_sub_bucket(bucket_index, sub_bucket_index)

    def is_trackable(self, value: int) -> bool:
        """
        Check whether a value can be recorded without leaving the counts array.

        Args:
            value: The candidate value.

        Returns:
            True if the value is at least the lowest trackable value and its
            slot lies inside the counts array.
        """
        if value < self._layout.lowest_trackable_value:
            return False
        return self.slot_index_of(value) < self._counts_length
