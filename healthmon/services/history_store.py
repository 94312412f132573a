"""Bounded in-memory history of samples with derived statistics."""

import logging
import math
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..utils.metrics import Sample

MEMORY_USAGE_KEY = "memory_usage_percentage"


@dataclass(frozen=True)
class HistoryStatistics:
    """
    Statistics over the samples held by a HistoryStore.

    An empty store yields ``HistoryStatistics.no_data()``, whose numeric
    fields are None, so "0% healthy" and "never sampled" stay distinct.
    """

    sample_count: int
    average_health_percentage: Optional[float] = None
    max_health_percentage: Optional[float] = None
    min_health_percentage: Optional[float] = None
    average_memory_usage_percentage: Optional[float] = None
    max_memory_usage_percentage: Optional[float] = None
    min_memory_usage_percentage: Optional[float] = None
    memory_sample_count: int = 0
    total_probes: Optional[int] = None
    successful_probes: Optional[int] = None
    success_rate: Optional[float] = None
    time_range_seconds: Optional[float] = None

    @classmethod
    def no_data(cls) -> "HistoryStatistics":
        return cls(sample_count=0)

    @property
    def has_data(self) -> bool:
        return self.sample_count > 0

    def to_dict(self) -> Dict[str, Any]:
        if not self.has_data:
            return {"no_data": True}

        stats: Dict[str, Any] = {
            "no_data": False,
            "data_points_analyzed": self.sample_count,
            "time_range_seconds": self.time_range_seconds,
            "health_percentage_statistics": {
                "average": self.average_health_percentage,
                "max": self.max_health_percentage,
                "min": self.min_health_percentage,
            },
            "health_check_statistics": {
                "total_health_checks": self.total_probes,
                "successful_health_checks": self.successful_probes,
                "health_success_rate_percentage": self.success_rate,
            },
        }
        if self.memory_sample_count:
            stats["memory_usage_statistics"] = {
                "average": self.average_memory_usage_percentage,
                "max": self.max_memory_usage_percentage,
                "min": self.min_memory_usage_percentage,
                "sample_count": self.memory_sample_count,
            }
        return stats


class HistoryStore:
    """
    Thread-safe bounded sequence of samples.

    Appending beyond capacity evicts the oldest sample. The backing deque
    is never handed out; readers get tuple snapshots taken under the lock.
    """

    def __init__(self, capacity: int = 100, logger: Optional[logging.Logger] = None):
        """
        Initialize history store.

        Args:
            capacity: Maximum number of samples kept
            logger: Optional logger instance
        """
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")

        self.logger = logger or logging.getLogger(__name__)
        self._capacity = capacity
        self._samples: deque = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, sample: Sample) -> None:
        """Add a sample, evicting the oldest one when full."""
        with self._lock:
            evicted = len(self._samples) == self._capacity
            self._samples.append(sample)
            size = len(self._samples)

        if evicted:
            self.logger.debug(f"History full, evicted oldest sample (capacity {self._capacity})")
        self.logger.debug(f"Added sample to history. Current history size: {size}")

    def snapshot(self) -> Tuple[Sample, ...]:
        """Return an immutable copy of the current samples, oldest first."""
        with self._lock:
            return tuple(self._samples)

    def latest(self) -> Optional[Sample]:
        """Return the most recent sample, or None if nothing was sampled yet."""
        with self._lock:
            return self._samples[-1] if self._samples else None

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def statistics(self) -> HistoryStatistics:
        """
        Compute statistics over the stored samples.

        The lock is held only for the copy; the computation runs on the
        snapshot so concurrent appends are not delayed by it.

        Returns:
            HistoryStatistics: Health percentage and memory usage extremes,
            probe totals and success rate, or ``no_data()`` when empty
        """
        samples = self.snapshot()
        if not samples:
            return HistoryStatistics.no_data()

        health = [s.summary.health_percentage for s in samples]
        memory = [
            float(s.runtime[MEMORY_USAGE_KEY])
            for s in samples
            if isinstance(s.runtime.get(MEMORY_USAGE_KEY), (int, float))
        ]
        total_probes = sum(s.summary.total for s in samples)
        successful_probes = sum(s.summary.success_count for s in samples)

        return HistoryStatistics(
            sample_count=len(samples),
            average_health_percentage=math.fsum(health) / len(health),
            max_health_percentage=max(health),
            min_health_percentage=min(health),
            average_memory_usage_percentage=math.fsum(memory) / len(memory) if memory else None,
            max_memory_usage_percentage=max(memory) if memory else None,
            min_memory_usage_percentage=min(memory) if memory else None,
            memory_sample_count=len(memory),
            total_probes=total_probes,
            successful_probes=successful_probes,
            success_rate=successful_probes / total_probes * 100 if total_probes else None,
            time_range_seconds=samples[-1].timestamp - samples[0].timestamp,
        )
