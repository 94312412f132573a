"""Bounded, deadline-supervised fan-out of probes over a batch of targets."""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence

from ..config.models import Target
from ..probes import BaseProbe, build_probe
from ..utils.metrics import ProbeResult, STATUS_NONE

DEADLINE_EXCEEDED = "deadline exceeded"

ProbeFactory = Callable[[Target, logging.Logger], BaseProbe]


class Dispatcher:
    """
    Runs one probe per target with bounded parallelism.

    Every target gets a supervisory deadline of ``deadline_factor`` times
    its own timeout, measured from batch dispatch. Probes still running at
    their deadline are cancelled and reported as failed, so the output
    always holds exactly one result per input target.
    """

    def __init__(
        self,
        max_workers: int = 10,
        deadline_factor: float = 2.0,
        probe_factory: ProbeFactory = build_probe,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize dispatcher.

        Args:
            max_workers: Maximum number of probes running at once
            deadline_factor: Multiple of each target timeout after which
                its probe is abandoned
            probe_factory: Callable building a probe for a target
            logger: Optional logger instance
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if deadline_factor <= 0:
            raise ValueError("deadline_factor must be positive")

        self.max_workers = max_workers
        self.deadline_factor = deadline_factor
        self.probe_factory = probe_factory
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    async def dispatch(self, targets: Sequence[Target]) -> List[ProbeResult]:
        """
        Check all targets concurrently.

        Args:
            targets: Targets of this batch

        Returns:
            List[ProbeResult]: One result per target, in input order
        """
        targets = list(targets)
        if not targets:
            return []

        loop = asyncio.get_running_loop()
        semaphore = asyncio.Semaphore(self.max_workers)
        started = loop.time()

        async def run_probe(target: Target) -> ProbeResult:
            async with semaphore:
                probe = self.probe_factory(target, self.logger)
                return await probe.check()

        self.logger.info(
            f"Dispatching {len(targets)} probe(s) with {self.max_workers} worker(s)"
        )

        tasks: Dict[asyncio.Task, int] = {}
        deadlines: Dict[asyncio.Task, float] = {}
        for index, target in enumerate(targets):
            self.logger.debug(f"Dispatching probe {index + 1}/{len(targets)}: {target.name}")
            task = asyncio.ensure_future(run_probe(target))
            tasks[task] = index
            deadlines[task] = started + target.timeout_seconds * self.deadline_factor

        results: List[Optional[ProbeResult]] = [None] * len(targets)
        pending = set(tasks)

        try:
            while pending:
                next_deadline = min(deadlines[task] for task in pending)
                done, pending = await asyncio.wait(
                    pending,
                    timeout=max(0.0, next_deadline - loop.time()),
                    return_when=asyncio.FIRST_COMPLETED
                )

                for task in done:
                    index = tasks[task]
                    results[index] = self._collect(task, targets[index])

                now = loop.time()
                expired = {task for task in pending if deadlines[task] <= now}
                for task in expired:
                    task.cancel()
                    target = targets[tasks[task]]
                    self.logger.warning(
                        f"Probe for {target.name} exceeded its "
                        f"{target.timeout_seconds * self.deadline_factor:g}s deadline"
                    )
                    results[tasks[task]] = ProbeResult(
                        target_name=target.name,
                        address=target.address,
                        success=False,
                        elapsed_ms=(now - started) * 1000,
                        status_code=STATUS_NONE,
                        error=DEADLINE_EXCEEDED,
                        kind=target.kind.value,
                    )
                pending -= expired
        finally:
            # Only reached with pending tasks when the dispatch itself is cancelled
            for task in pending:
                task.cancel()

        return results

    def _collect(self, task: asyncio.Task, target: Target) -> ProbeResult:
        """Turn a finished probe task into a result, even if the probe misbehaved."""
        if task.cancelled():
            error = "Probe cancelled"
        else:
            exc = task.exception()
            if exc is None:
                return task.result()
            self.logger.error(f"Probe for {target.name} raised: {exc!r}")
            error = f"Unexpected error: {exc}"

        return ProbeResult(
            target_name=target.name,
            address=target.address,
            success=False,
            elapsed_ms=0.0,
            status_code=STATUS_NONE,
            error=error,
            kind=target.kind.value,
        )
