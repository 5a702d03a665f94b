"""
Base classes and interfaces for tiny-hdr summaries.

This module defines the abstract base classes that recording structures
implement to provide a consistent interface across the library.
It includes benchmarking hooks for measuring and comparing performance
characteristics.
"""

import abc
import math
import sys
import time
from collections import deque
from typing import Any, Dict, Generic, Iterable, Optional, TypeVar

T = TypeVar("T")  # Type for the items being processed
R = TypeVar("R")  # Type for the result of queries


class StreamSummary(Generic[T, R], abc.ABC):
    """
    Abstract base class for all streaming data structures.

    This class defines the common interface that all summaries must
    implement: updating with new items, querying results and resetting.
    It also provides benchmarking hooks for measuring performance
    characteristics.
    """

    def __init__(self, memory_limit_bytes: Optional[int] = None):
        """
        Initialize a new stream summary.

        Args:
            memory_limit_bytes: Optional maximum memory usage in bytes.
                                None means no explicit limit.
        """
        self._memory_limit_bytes = memory_limit_bytes
        self._items_processed = 0

        # Performance tracking attributes
        self._last_update_time: float = 0.0
        self._total_update_time: float = 0.0
        self._update_count: int = 0

        # Optional performance tracking buffer for recent updates
        self._track_recent_updates: bool = False
        self._recent_update_times: Optional[deque] = None
        self._max_update_history: int = 100

    @abc.abstractmethod
    def update(self, item: T) -> None:
        """
        Update the summary with a new item from the stream.

        Derived classes call ``super().update(item)`` to keep the item
        counter current, and may wrap their own work in
        ``_start_timing``/``_stop_timing`` to feed the performance stats.

        Args:
            item: The new item to process.
        """
        self._items_processed += 1

    @abc.abstractmethod
    def query(self, *args: Any, **kwargs: Any) -> R:
        """
        Query the current state of the summary.

        The parameters and return value depend on the specific algorithm.

        Returns:
            The result of the query, which depends on the specific algorithm.
        """
        pass

    def _start_timing(self) -> Optional[float]:
        """Return a start timestamp when performance tracking is enabled."""
        if not self._track_recent_updates:
            return None
        return time.perf_counter()

    def _stop_timing(self, start_time: Optional[float]) -> None:
        """
        Record the elapsed time of one update started by ``_start_timing``.

        Args:
            start_time: The value returned by ``_start_timing``.
        """
        if start_time is None:
            return

        self._last_update_time = time.perf_counter() - start_time
        self._total_update_time += self._last_update_time
        self._update_count += 1

        if self._recent_update_times is None:
            self._recent_update_times = deque(maxlen=self._max_update_history)
        self._recent_update_times.append(self._last_update_time)

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of this summary in bytes.

        This method provides a rough estimation of the memory footprint of the
        data structure. It accounts for the base object size and key data
        structures, but may not capture all memory usage due to Python's
        memory management.

        Derived classes should override this method to provide more accurate
        estimates specific to their internal data structures.

        Returns:
            Estimated memory usage in bytes.
        """
        # Start with the base size of the object
        size = sys.getsizeof(self)

        # Add size of instance dictionary
        if hasattr(self, "__dict__"):
            size += sys.getsizeof(self.__dict__)

        # Add performance tracking structures if present
        if self._recent_update_times is not None:
            size += sys.getsizeof(self._recent_update_times)
            size += len(self._recent_update_times) * sys.getsizeof(0.0)

        return size

    def check_memory_limit(self) -> bool:
        """
        Check if the current memory usage exceeds the limit.

        Returns:
            True if the memory usage is within limits, False otherwise.
        """
        if self._memory_limit_bytes is None:
            return True

        return self.estimate_size() <= self._memory_limit_bytes

    def clear(self) -> None:
        """
        Reset the summary to its initial empty state.

        This method resets the base counters and tracking metrics. Derived
        classes must override this method to properly clear their specific
        data structures while calling super().clear() to ensure base metrics
        are reset correctly.
        """
        self._items_processed = 0
        self._total_update_time = 0.0
        self._update_count = 0
        self._last_update_time = 0.0

        if self._recent_update_times is not None:
            self._recent_update_times.clear()

    def enable_performance_tracking(
        self, track_recent_updates: bool = True, max_history: int = 100
    ) -> None:
        """
        Enable detailed performance tracking for benchmarking.

        Performance tracking adds some overhead, so it should only be
        enabled when benchmarking or debugging performance issues.

        Args:
            track_recent_updates: Whether to track timing of recent updates.
            max_history: Maximum number of recent updates to track.
        """
        self._track_recent_updates = track_recent_updates
        self._max_update_history = max(1, max_history)

        if track_recent_updates and self._recent_update_times is None:
            self._recent_update_times = deque(maxlen=self._max_update_history)

    def disable_performance_tracking(self) -> None:
        """Disable performance tracking to reduce overhead."""
        self._track_recent_updates = False
        self._recent_update_times = None

    def get_performance_stats(self) -> Dict[str, Any]:
        """
        Get performance statistics for this summary.

        Returns:
            A dictionary containing performance metrics such as:
            - Total items processed
            - Average update time
            - Recent update times (if tracking is enabled)
            - Memory usage
        """
        stats = {
            "items_processed": self._items_processed,
            "memory_bytes": self.estimate_size(),
        }

        # Add timing statistics if available
        if self._update_count > 0:
            stats["avg_update_time_ns"] = (
                self._total_update_time / self._update_count
            ) * 1e9
            stats["last_update_time_ns"] = self._last_update_time * 1e9

        # Add recent update times if tracking is enabled
        if self._recent_update_times and len(self._recent_update_times) > 0:
            recent_times_ns = [t * 1e9 for t in self._recent_update_times]
            stats["recent_update_times_ns"] = recent_times_ns
            stats["min_update_time_ns"] = min(recent_times_ns)
            stats["max_update_time_ns"] = max(recent_times_ns)

        return stats

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the summary.

        This method returns algorithm-specific statistics and can be used
        for monitoring, debugging, or benchmarking. It combines performance
        statistics with algorithm-specific information.

        Derived classes should override this method to include their specific
        statistics while calling super().get_stats() to include base metrics.

        Returns:
            A dictionary containing various statistics about the summary state.
        """
        stats = {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
            "memory_bytes": self.estimate_size(),
        }

        # Add memory limit if specified
        if self._memory_limit_bytes is not None:
            stats["memory_limit_bytes"] = self._memory_limit_bytes
            stats["memory_usage_pct"] = (
                self.estimate_size() / self._memory_limit_bytes
            ) * 100

        # Add performance tracking stats if available
        if self._update_count > 0:
            stats["avg_update_time_ns"] = (
                self._total_update_time / self._update_count
            ) * 1e9

        # Add error bounds information
        error_bounds = self.error_bounds()
        if error_bounds:
            stats.update(error_bounds)

        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Get the theoretical error bounds for this summary.

        Derived classes should override this method to provide their specific
        error characteristics. The base implementation returns an empty dictionary.

        Returns:
            A dictionary containing error bound information specific to the algorithm.
        """
        return {}

    @property
    def items_processed(self) -> int:
        """Get the total number of update calls processed by this summary."""
        return self._items_processed


class QuantileEstimator(StreamSummary[T, T], abc.ABC):
    """
    Abstract base class for summaries answering percentile queries.

    Examples include HDR histograms.
    """

    REPORTED_PERCENTILES = (50.0, 90.0, 99.0, 99.9)

    @abc.abstractmethod
    def value_at_percentile(self, percentile: float) -> T:
        """
        Get the value at or below which the given percentage of recorded
        values fall.

        Args:
            percentile: A percentage in [0.0, 100.0].

        Returns:
            The (possibly quantized) value at that percentile.
        """
        pass

    @abc.abstractmethod
    def mean(self) -> float:
        """Return the mean of the recorded values."""
        pass

    @abc.abstractmethod
    def stddev(self, mean: Optional[float] = None) -> float:
        """Return the population standard deviation of the recorded values."""
        pass

    def value_at_percentiles(self, percentiles: Iterable[float]) -> Dict[float, T]:
        """
        Get the values for several percentiles at once.

        Derived classes may override this with a single-pass implementation.

        Args:
            percentiles: Percentiles to look up, in any order.

        Returns:
            A dictionary mapping each percentile to its value.
        """
        return {p: self.value_at_percentile(p) for p in percentiles}

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current state of the estimator.

        Returns:
            A dictionary with distribution statistics added when data is present.
        """
        stats = super().get_stats()

        mean = self.mean()
        if math.isnan(mean):
            return stats

        stats["mean"] = mean
        stats["stddev"] = self.stddev(mean)
        for percentile, value in self.value_at_percentiles(
            self.REPORTED_PERCENTILES
        ).items():
            stats[f"p{percentile:g}"] = value

        return stats
