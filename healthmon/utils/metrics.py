"""Data structures produced by probes, batches and collection cycles."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple
import time

from .status import BatchStatus

# Status code for TCP probes and probes that never got an HTTP response
STATUS_NONE = -1


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one health check against one target."""

    target_name: str
    address: str
    success: bool
    elapsed_ms: float
    status_code: int = STATUS_NONE
    error: Optional[str] = None
    kind: str = "http"
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_name": self.target_name,
            "address": self.address,
            "kind": self.kind,
            "success": self.success,
            "elapsed_ms": self.elapsed_ms,
            "status_code": self.status_code,
            "error": self.error,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProbeResult":
        return cls(
            target_name=data["target_name"],
            address=data["address"],
            success=bool(data["success"]),
            elapsed_ms=float(data["elapsed_ms"]),
            status_code=int(data.get("status_code", STATUS_NONE)),
            error=data.get("error"),
            kind=data.get("kind", "http"),
            timestamp=float(data["timestamp"]),
        )


@dataclass(frozen=True)
class BatchSummary:
    """Counts, rates and timing extremes over one batch of probe results."""

    total: int
    success_count: int
    failure_count: int
    success_ratio: float  # Percentage, 0-100
    avg_elapsed_ms: float
    min_elapsed_ms: float
    max_elapsed_ms: float
    failing_targets: Tuple[str, ...]
    status: BatchStatus

    @property
    def health_percentage(self) -> float:
        return self.success_ratio

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "success_ratio": self.success_ratio,
            "avg_elapsed_ms": self.avg_elapsed_ms,
            "min_elapsed_ms": self.min_elapsed_ms,
            "max_elapsed_ms": self.max_elapsed_ms,
            "failing_targets": list(self.failing_targets),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BatchSummary":
        return cls(
            total=int(data["total"]),
            success_count=int(data["success_count"]),
            failure_count=int(data["failure_count"]),
            success_ratio=float(data["success_ratio"]),
            avg_elapsed_ms=float(data["avg_elapsed_ms"]),
            min_elapsed_ms=float(data["min_elapsed_ms"]),
            max_elapsed_ms=float(data["max_elapsed_ms"]),
            failing_targets=tuple(data.get("failing_targets", ())),
            status=BatchStatus(data["status"]),
        )


@dataclass(frozen=True)
class Sample:
    """
    Output of one collection cycle.

    The runtime snapshot is opaque to the monitoring core; it is stored
    behind a read-only mapping so the sample stays immutable once built.
    """

    cycle: int
    timestamp: float
    runtime: Mapping[str, Any]
    summary: BatchSummary
    duration_ms: float
    results: Tuple[ProbeResult, ...] = ()

    def __post_init__(self):
        """Freeze the runtime snapshot and result sequence."""
        if not isinstance(self.runtime, MappingProxyType):
            object.__setattr__(self, "runtime", MappingProxyType(dict(self.runtime)))
        if not isinstance(self.results, tuple):
            object.__setattr__(self, "results", tuple(self.results))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle,
            "timestamp": self.timestamp,
            "runtime": dict(self.runtime),
            "summary": self.summary.to_dict(),
            "duration_ms": self.duration_ms,
            "results": [r.to_dict() for r in self.results],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Sample":
        return cls(
            cycle=int(data["cycle"]),
            timestamp=float(data["timestamp"]),
            runtime=data.get("runtime", {}),
            summary=BatchSummary.from_dict(data["summary"]),
            duration_ms=float(data["duration_ms"]),
            results=tuple(ProbeResult.from_dict(r) for r in data.get("results", [])),
        )
