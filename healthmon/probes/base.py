"""Base probe abstract class for all health checks."""

from abc import ABC, abstractmethod
from typing import Optional
import logging
import time
from functools import wraps

from ..config.models import Target
from ..utils.metrics import ProbeResult, STATUS_NONE


class BaseProbe(ABC):
    """Abstract base class for all probes."""

    kind = "base"

    def __init__(self, target: Target, logger: Optional[logging.Logger] = None):
        """
        Initialize base probe.

        Args:
            target: Target to check
            logger: Logger instance
        """
        self.target = target
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    @abstractmethod
    async def check(self) -> ProbeResult:
        """
        Perform exactly one health check against the target.

        Returns:
            ProbeResult: Check outcome, successful or not

        Note:
            Implementations should use the @safe_probe decorator so that
            unexpected errors become failed results instead of exceptions.
        """
        pass

    def _result(
        self,
        success: bool,
        elapsed_ms: float,
        status_code: int = STATUS_NONE,
        error: Optional[str] = None
    ) -> ProbeResult:
        """Build a ProbeResult for this probe's target."""
        return ProbeResult(
            target_name=self.target.name,
            address=self.target.address,
            success=success,
            elapsed_ms=elapsed_ms,
            status_code=status_code,
            error=error,
            kind=self.kind,
        )


def safe_probe(func):
    """
    Decorator converting unexpected probe exceptions into failed results.

    Elapsed time covers the failure path as well, measured from just
    before the wrapped check started. Task cancellation is not an error
    and propagates.

    Args:
        func: Probe check method to wrap

    Returns:
        Wrapped coroutine function that never raises Exception
    """
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        start_time = time.perf_counter()
        try:
            return await func(self, *args, **kwargs)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.logger.error(
                f"Unexpected error checking {self.target.name}: {e}",
                exc_info=True
            )
            return self._result(False, elapsed_ms, error=f"Unexpected error: {e}")
    return wrapper
