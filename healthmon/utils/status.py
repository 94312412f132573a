"""Batch health status enumeration."""

from enum import Enum


class BatchStatus(Enum):
    """Overall health of one collection batch."""

    HEALTHY = "HEALTHY"
    UNHEALTHY = "UNHEALTHY"
    NO_TARGETS = "NO_TARGETS"

    def to_emoji(self) -> str:
        """
        Convert status to emoji representation.

        Returns:
            str: Emoji representing the batch status
        """
        return {
            BatchStatus.HEALTHY: "🟢",
            BatchStatus.UNHEALTHY: "🔴",
            BatchStatus.NO_TARGETS: "⚪"
        }[self]
