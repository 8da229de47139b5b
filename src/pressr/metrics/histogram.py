from __future__ import annotations

import math

import numpy as np

MICROS_PER_MS = 1000
LOWEST_TRACKABLE_US = 1
HIGHEST_TRACKABLE_US = 3_600_000_000  # one hour


class LatencyHistogram:
    """Log-linear histogram of integer values with bounded relative error.

    Values are grouped into power-of-two buckets, each split into linear
    sub-buckets, so every recorded value is represented to within
    ``significant_digits`` decimal digits. With the default of two digits
    the relative error of any reported value stays under 1% no matter how
    far apart the smallest and largest samples are, and memory is fixed by
    the trackable range rather than by the number of samples.

    Not thread-safe on its own; ``ResultAggregator`` serializes access.
    """

    def __init__(
        self,
        lowest: int = LOWEST_TRACKABLE_US,
        highest: int = HIGHEST_TRACKABLE_US,
        significant_digits: int = 2,
    ) -> None:
        if lowest < 1:
            msg = f"lowest trackable value must be >= 1, got {lowest}"
            raise ValueError(msg)
        if highest < 2 * lowest:
            msg = f"highest trackable value must be >= 2 * lowest, got {highest}"
            raise ValueError(msg)
        if not 1 <= significant_digits <= 5:
            msg = f"significant_digits must be between 1 and 5, got {significant_digits}"
            raise ValueError(msg)
        self.lowest = lowest
        self.highest = highest
        self.significant_digits = significant_digits

        single_unit_resolution = 2 * 10**significant_digits
        sub_bucket_count_magnitude = math.ceil(math.log2(single_unit_resolution))
        self._unit_magnitude = int(math.floor(math.log2(lowest)))
        self._half_count_magnitude = max(sub_bucket_count_magnitude, 1) - 1
        self._sub_bucket_count = 1 << (self._half_count_magnitude + 1)
        self._half_count = self._sub_bucket_count // 2
        self._sub_bucket_mask = (self._sub_bucket_count - 1) << self._unit_magnitude
        self.bucket_count = self._buckets_to_cover(highest)
        self._counts = np.zeros((self.bucket_count + 1) * self._half_count, dtype=np.int64)
        self.total_count = 0

    def _buckets_to_cover(self, value: int) -> int:
        smallest_untrackable = self._sub_bucket_count << self._unit_magnitude
        needed = 1
        while smallest_untrackable <= value:
            smallest_untrackable <<= 1
            needed += 1
        return needed

    def _bucket_index(self, value: int) -> int:
        return (value | self._sub_bucket_mask).bit_length() - self._unit_magnitude - (self._half_count_magnitude + 1)

    def _counts_index(self, value: int) -> int:
        bucket = self._bucket_index(value)
        sub_bucket = value >> (bucket + self._unit_magnitude)
        return ((bucket + 1) << self._half_count_magnitude) + (sub_bucket - self._half_count)

    def _bucket_bounds(self, index: int) -> tuple[int, int]:
        bucket = (index >> self._half_count_magnitude) - 1
        sub_bucket = (index & (self._half_count - 1)) + self._half_count
        if bucket < 0:
            sub_bucket -= self._half_count
            bucket = 0
        shift = bucket + self._unit_magnitude
        low = sub_bucket << shift
        return low, low + (1 << shift) - 1

    def clamp(self, value: int) -> int:
        return min(max(value, self.lowest), self.highest)

    def record(self, value: int, count: int = 1) -> None:
        self._counts[self._counts_index(self.clamp(value))] += count
        self.total_count += count

    def lowest_equivalent(self, value: int) -> int:
        return self._bucket_bounds(self._counts_index(self.clamp(value)))[0]

    def highest_equivalent(self, value: int) -> int:
        return self._bucket_bounds(self._counts_index(self.clamp(value)))[1]

    def value_at_percentile(self, percentile: float) -> int:
        """Smallest bucket value with at least ``percentile``% of samples at or below it.

        The upper edge of the selected bucket is returned, so every sample
        counted towards the percentile is <= the reported value.
        """
        if self.total_count == 0:
            return 0
        requested = min(max(percentile, 0.0), 100.0)
        target = max(1, math.ceil(requested * self.total_count / 100.0 - 1e-9))
        cumulative = np.cumsum(self._counts)
        index = int(np.searchsorted(cumulative, target, side="left"))
        return self._bucket_bounds(index)[1]

    def nonzero_buckets(self) -> list[tuple[int, int, int]]:
        """(low, high, count) for every populated bucket, in value order."""
        return [
            (*self._bucket_bounds(int(index)), int(self._counts[index]))
            for index in np.flatnonzero(self._counts)
        ]

    def copy(self) -> LatencyHistogram:
        clone = LatencyHistogram(self.lowest, self.highest, self.significant_digits)
        clone._counts = self._counts.copy()
        clone.total_count = self.total_count
        return clone
