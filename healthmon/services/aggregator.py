"""Reduction of one batch of probe results into a BatchSummary."""

import math
from typing import Iterable

from ..utils.metrics import BatchSummary, ProbeResult
from ..utils.status import BatchStatus


def aggregate(results: Iterable[ProbeResult]) -> BatchSummary:
    """
    Summarize a batch of probe results.

    The summary does not depend on input order: elapsed times are summed
    with ``math.fsum`` and failing target names are sorted.

    Args:
        results: Probe results of one batch

    Returns:
        BatchSummary: Counts, success ratio, timing extremes and status.
        An empty batch is NO_TARGETS with a 100% success ratio.
    """
    results = list(results)

    if not results:
        return BatchSummary(
            total=0,
            success_count=0,
            failure_count=0,
            success_ratio=100.0,
            avg_elapsed_ms=0.0,
            min_elapsed_ms=0.0,
            max_elapsed_ms=0.0,
            failing_targets=(),
            status=BatchStatus.NO_TARGETS,
        )

    total = len(results)
    success_count = sum(1 for r in results if r.success)
    failure_count = total - success_count
    elapsed = [r.elapsed_ms for r in results]

    return BatchSummary(
        total=total,
        success_count=success_count,
        failure_count=failure_count,
        success_ratio=success_count / total * 100,
        avg_elapsed_ms=math.fsum(elapsed) / total,
        min_elapsed_ms=min(elapsed),
        max_elapsed_ms=max(elapsed),
        failing_targets=tuple(sorted(r.target_name for r in results if not r.success)),
        status=BatchStatus.HEALTHY if failure_count == 0 else BatchStatus.UNHEALTHY,
    )
