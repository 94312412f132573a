"""Tests for the bounded, deadline-supervised dispatcher."""

import asyncio
import time

import pytest

from healthmon.config.models import Target
from healthmon.probes import BaseProbe, safe_probe
from healthmon.services.aggregator import aggregate
from healthmon.services.dispatcher import DEADLINE_EXCEEDED, Dispatcher
from healthmon.utils.metrics import ProbeResult, STATUS_NONE
from healthmon.utils.status import BatchStatus


class ScriptedProbe(BaseProbe):
    """Probe whose behaviour is supplied by the test."""

    kind = "http"

    def __init__(self, target, logger, behaviour):
        super().__init__(target, logger)
        self.behaviour = behaviour

    @safe_probe
    async def check(self) -> ProbeResult:
        return await self.behaviour(self)


class RawProbe(BaseProbe):
    """Probe that breaks the contract and raises."""

    kind = "http"

    async def check(self) -> ProbeResult:
        raise RuntimeError("probe bug")


def scripted(behaviours):
    """Probe factory mapping target names to behaviours."""
    def factory(target, logger):
        return ScriptedProbe(target, logger, behaviours[target.name])
    return factory


async def healthy(probe):
    return probe._result(True, 5.0, 200)


async def hang(probe):
    await asyncio.Event().wait()


def slow(seconds, success=True):
    async def behaviour(probe):
        await asyncio.sleep(seconds)
        if success:
            return probe._result(True, seconds * 1000, 200)
        return probe._result(False, seconds * 1000, STATUS_NONE, error="Timeout: no response")
    return behaviour


def targets(count, timeout_ms=1000, prefix="t"):
    return [
        Target(name=f"{prefix}{i}", address=f"http://{prefix}{i}.test/", timeout_ms=timeout_ms)
        for i in range(count)
    ]


class TestDispatchCompleteness:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, 1, 5, 25])
    async def test_one_result_per_target(self, count, logger):
        batch = targets(count)
        dispatcher = Dispatcher(probe_factory=scripted({t.name: healthy for t in batch}), logger=logger)

        results = await dispatcher.dispatch(batch)

        assert len(results) == count
        assert [r.target_name for r in results] == [t.name for t in batch]

    @pytest.mark.asyncio
    async def test_raising_probe_recorded_as_failure(self, logger):
        batch = targets(3)

        def factory(target, log):
            if target.name == "t1":
                return RawProbe(target, log)
            return ScriptedProbe(target, log, healthy)

        results = await Dispatcher(probe_factory=factory, logger=logger).dispatch(batch)

        assert len(results) == 3
        assert results[0].success and results[2].success
        assert results[1].success is False
        assert results[1].error == "Unexpected error: probe bug"


class TestDeadline:
    @pytest.mark.asyncio
    async def test_hanging_probe_gets_synthetic_failure(self, logger):
        """A probe that never returns is failed at 2x its timeout, others unaffected."""
        batch = targets(3, timeout_ms=100)
        behaviours = {"t0": healthy, "t1": hang, "t2": healthy}
        dispatcher = Dispatcher(probe_factory=scripted(behaviours), logger=logger)

        start = time.monotonic()
        results = await dispatcher.dispatch(batch)
        duration = time.monotonic() - start

        assert len(results) == 3
        hung = results[1]
        assert hung.success is False
        assert hung.error == DEADLINE_EXCEEDED
        assert hung.status_code == STATUS_NONE
        assert hung.elapsed_ms >= 190
        assert results[0].success and results[2].success
        assert duration < 1.0

    @pytest.mark.asyncio
    async def test_batch_bounded_when_every_probe_hangs(self, logger):
        batch = targets(30, timeout_ms=100)
        dispatcher = Dispatcher(
            max_workers=10,
            probe_factory=scripted({t.name: hang for t in batch}),
            logger=logger
        )

        start = time.monotonic()
        results = await dispatcher.dispatch(batch)
        duration = time.monotonic() - start

        assert len(results) == 30
        assert all(r.error == DEADLINE_EXCEEDED for r in results)
        assert duration < 1.0

    @pytest.mark.asyncio
    async def test_deadlines_follow_each_target_timeout(self, logger):
        short = Target(name="short", address="http://short.test/", timeout_ms=50)
        long = Target(name="long", address="http://long.test/", timeout_ms=1000)
        behaviours = {"short": hang, "long": slow(0.2)}

        results = await Dispatcher(probe_factory=scripted(behaviours), logger=logger).dispatch([short, long])

        assert results[0].error == DEADLINE_EXCEEDED
        # 0.2s is past short's deadline but well within long's
        assert results[1].success is True

    @pytest.mark.asyncio
    async def test_custom_deadline_factor(self, logger):
        batch = targets(1, timeout_ms=100)
        dispatcher = Dispatcher(
            deadline_factor=1.0,
            probe_factory=scripted({"t0": hang}),
            logger=logger
        )

        start = time.monotonic()
        results = await dispatcher.dispatch(batch)

        assert results[0].error == DEADLINE_EXCEEDED
        assert time.monotonic() - start < 0.5

    @pytest.mark.asyncio
    async def test_three_target_scenario(self, logger):
        """Two healthy targets and one timing out at its own timeout."""
        batch = targets(3, timeout_ms=300)
        behaviours = {"t0": healthy, "t1": healthy, "t2": slow(0.3, success=False)}
        dispatcher = Dispatcher(probe_factory=scripted(behaviours), logger=logger)

        start = time.monotonic()
        summary = aggregate(await dispatcher.dispatch(batch))
        duration = time.monotonic() - start

        assert summary.total == 3
        assert summary.success_count == 2
        assert summary.failure_count == 1
        assert summary.status == BatchStatus.UNHEALTHY
        assert summary.failing_targets == ("t2",)
        assert duration < 0.6


class TestParallelism:
    @pytest.mark.asyncio
    async def test_worker_pool_bounds_concurrency(self, logger):
        running = 0
        peak = 0

        async def tracked(probe):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.02)
            running -= 1
            return probe._result(True, 20.0, 200)

        batch = targets(12)
        dispatcher = Dispatcher(
            max_workers=3,
            probe_factory=scripted({t.name: tracked for t in batch}),
            logger=logger
        )

        results = await dispatcher.dispatch(batch)

        assert len(results) == 12
        assert peak == 3

    @pytest.mark.asyncio
    async def test_probes_run_in_parallel(self, logger):
        batch = targets(10)
        dispatcher = Dispatcher(probe_factory=scripted({t.name: slow(0.1) for t in batch}), logger=logger)

        start = time.monotonic()
        await dispatcher.dispatch(batch)

        # Sequential execution would take a full second
        assert time.monotonic() - start < 0.5

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            Dispatcher(max_workers=0)
        with pytest.raises(ValueError):
            Dispatcher(deadline_factor=0)
