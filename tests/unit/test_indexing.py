"""
Unit tests for value/slot mapping and equivalent value ranges.
"""

import random
import unittest

from tiny_hdr.core.equivalence import EquivalenceRanges
from tiny_hdr.core.indexing import IndexMapper
from tiny_hdr.core.layout import HistogramLayout


def _build(lowest, highest, digits):
    layout = HistogramLayout.from_config(lowest, highest, digits)
    mapper = IndexMapper(layout)
    return layout, mapper, EquivalenceRanges(mapper)


def _sample_values(layout, rng, count=2000):
    """Values spread logarithmically across the trackable range."""
    values = [layout.lowest_trackable_value, layout.highest_trackable_value]
    low_bits = layout.lowest_trackable_value.bit_length()
    high_bits = layout.highest_trackable_value.bit_length()
    for _ in range(count):
        bits = rng.randint(low_bits, high_bits)
        value = rng.randint(1 << (bits - 1), (1 << bits) - 1)
        if layout.lowest_trackable_value <= value <= layout.highest_trackable_value:
            values.append(value)
    return values


class TestIndexMapper(unittest.TestCase):
    """Test cases for IndexMapper with a 1..30M, 2-digit layout."""

    def setUp(self):
        self.layout, self.mapper, _ = _build(1, 30_000_000, 2)

    def test_bucket_index(self):
        self.assertEqual(self.mapper.bucket_index_of(1), 0)
        self.assertEqual(self.mapper.bucket_index_of(255), 0)
        self.assertEqual(self.mapper.bucket_index_of(256), 1)
        self.assertEqual(self.mapper.bucket_index_of(511), 1)
        self.assertEqual(self.mapper.bucket_index_of(512), 2)
        self.assertEqual(self.mapper.bucket_index_of(30000), 7)

    def test_sub_bucket_index(self):
        self.assertEqual(self.mapper.sub_bucket_index_of(2, 0), 2)
        self.assertEqual(self.mapper.sub_bucket_index_of(256, 1), 128)
        self.assertEqual(self.mapper.sub_bucket_index_of(257, 1), 128)
        self.assertEqual(self.mapper.sub_bucket_index_of(30000, 7), 234)

    def test_slot_index(self):
        self.assertEqual(self.mapper.slot_index(0, 1), 1)
        self.assertEqual(self.mapper.slot_index(0, 255), 255)
        self.assertEqual(self.mapper.slot_index(1, 128), 256)
        self.assertEqual(self.mapper.slot_index(7, 234), 1130)

    def test_slot_index_of(self):
        self.assertEqual(self.mapper.slot_index_of(2), 2)
        self.assertEqual(self.mapper.slot_index_of(256), 256)
        self.assertEqual(self.mapper.slot_index_of(257), 256)
        self.assertEqual(self.mapper.slot_index_of(30000), 1130)

    def test_value_of_slot(self):
        self.assertEqual(self.mapper.value_of_slot(2), 2)
        self.assertEqual(self.mapper.value_of_slot(255), 255)
        self.assertEqual(self.mapper.value_of_slot(256), 256)
        self.assertEqual(self.mapper.value_of_slot(1130), 29952)

    def test_value_of_slot_folds_into_bucket_zero(self):
        """Slots below the first half-bucket map to the lower half of bucket 0."""
        for index in range(self.layout.sub_bucket_half_count):
            self.assertEqual(self.mapper.value_of_slot(index), index)

    def test_last_slot(self):
        last = self.layout.counts_length - 1
        self.assertEqual(self.mapper.value_of_slot(last), 255 << 17)
        self.assertEqual(self.mapper.slot_index_of((256 << 17) - 1), last)

    def test_is_trackable(self):
        self.assertFalse(self.mapper.is_trackable(0))
        self.assertTrue(self.mapper.is_trackable(1))
        self.assertTrue(self.mapper.is_trackable(30_000_000))
        # The top bucket covers a little more than the highest trackable value
        self.assertTrue(self.mapper.is_trackable((256 << 17) - 1))
        self.assertFalse(self.mapper.is_trackable(256 << 17))

    def test_slots_are_ascending_in_value(self):
        previous = -1
        for index in range(self.layout.counts_length):
            value = self.mapper.value_of_slot(index)
            self.assertGreater(value, previous)
            previous = value

    def test_round_trip_rounds_down(self):
        """The value of a value's slot never exceeds the value."""
        rng = random.Random(42)
        for value in _sample_values(self.layout, rng):
            slot_value = self.mapper.value_of_slot(self.mapper.slot_index_of(value))
            self.assertLessEqual(slot_value, value)
            self.assertEqual(self.mapper.slot_index_of(slot_value),
                             self.mapper.slot_index_of(value))


class TestIndexMapperUnitMagnitude(unittest.TestCase):
    """Test cases for IndexMapper when lowest_trackable_value is above 1."""

    def setUp(self):
        self.layout, self.mapper, _ = _build(1000, 100_000_000, 3)

    def test_lowest_value(self):
        self.assertEqual(self.mapper.bucket_index_of(1000), 0)
        self.assertEqual(self.mapper.sub_bucket_index_of(1000, 0), 1)
        self.assertEqual(self.mapper.slot_index_of(1000), 1)
        self.assertEqual(self.mapper.value_of_slot(1), 512)

    def test_round_trip_rounds_down(self):
        rng = random.Random(7)
        for value in _sample_values(self.layout, rng):
            slot_value = self.mapper.value_of_slot(self.mapper.slot_index_of(value))
            self.assertLessEqual(slot_value, value)


class TestEquivalenceRanges(unittest.TestCase):
    """Test cases for EquivalenceRanges."""

    def setUp(self):
        self.layout, self.mapper, self.ranges = _build(1, 30_000_000, 2)

    def test_unit_resolution_in_first_bucket(self):
        for value in (1, 2, 100, 255):
            self.assertEqual(self.ranges.size_of_equivalent_range(value), 1)
            self.assertEqual(self.ranges.lowest_equivalent_value(value), value)
            self.assertEqual(self.ranges.highest_equivalent_value(value), value)
            self.assertEqual(self.ranges.median_equivalent_value(value), value)

    def test_second_bucket(self):
        self.assertEqual(self.ranges.size_of_equivalent_range(257), 2)
        self.assertEqual(self.ranges.lowest_equivalent_value(257), 256)
        self.assertEqual(self.ranges.highest_equivalent_value(257), 257)
        self.assertEqual(self.ranges.median_equivalent_value(257), 257)
        self.assertEqual(self.ranges.next_non_equivalent_value(257), 258)

    def test_value_30000(self):
        self.assertEqual(self.ranges.size_of_equivalent_range(30000), 128)
        self.assertEqual(self.ranges.lowest_equivalent_value(30000), 29952)
        self.assertEqual(self.ranges.highest_equivalent_value(30000), 30079)
        self.assertEqual(self.ranges.median_equivalent_value(30000), 30016)
        self.assertEqual(self.ranges.next_non_equivalent_value(30000), 30080)

    def test_values_are_equivalent(self):
        self.assertTrue(self.ranges.values_are_equivalent(29952, 30079))
        self.assertFalse(self.ranges.values_are_equivalent(30079, 30080))
        self.assertFalse(self.ranges.values_are_equivalent(1, 2))

    def test_bounds_bracket_value(self):
        """lowest <= value <= highest for every configuration sampled."""
        rng = random.Random(1234)
        configs = [
            (1, 30_000_000, 2),
            (1, 3_600_000_000, 3),
            (1000, 100_000_000, 3),
            (3, 10**12, 1),
            (1, 10**9, 5),
        ]
        for config in configs:
            layout, mapper, ranges = _build(*config)
            for value in _sample_values(layout, rng, count=500):
                lowest = ranges.lowest_equivalent_value(value)
                highest = ranges.highest_equivalent_value(value)
                self.assertLessEqual(lowest, value, config)
                self.assertGreaterEqual(highest, value, config)
                self.assertEqual(
                    highest - lowest + 1, ranges.size_of_equivalent_range(value)
                )
                self.assertTrue(ranges.values_are_equivalent(value, lowest))
                self.assertTrue(ranges.values_are_equivalent(value, highest))
                self.assertEqual(
                    mapper.value_of_slot(mapper.slot_index_of(value)), lowest
                )

    def test_relative_error_bound(self):
        """The median equivalent value is within the configured precision."""
        rng = random.Random(99)
        for digits in range(1, 6):
            layout, _, ranges = _build(1, 10**10, digits)
            for value in _sample_values(layout, rng, count=500):
                error = abs(ranges.median_equivalent_value(value) - value) / value
                self.assertLessEqual(error, layout.relative_error)


if __name__ == "__main__":
    unittest.main()
